"""
darktable XMP sidecar support.

Reads the edit history darktable stores next to each image and appends new
history entries. Each history step is an ``rdf:li`` inside
``darktable:history/rdf:Seq``; the exposure module's steps carry
``darktable:operation="exposure"``, a per-image sequence number
``darktable:num`` and the packed parameters in ``darktable:params``.
"""

import os
import re
import logging
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass
import xml.etree.ElementTree as ET

from ..errors import SidecarUnavailable, MalformedRecord
from ..exposure.params import ExposureParams, decode_xmp_params

logger = logging.getLogger(__name__)

EXPOSURE_OPERATION = 'exposure'

# XMP namespaces
XMP_NAMESPACES = {
    'x': 'adobe:ns:meta/',
    'rdf': 'http://www.w3.org/1999/02/22-rdf-syntax-ns#',
    'xmp': 'http://ns.adobe.com/xap/1.0/',
    'xmpMM': 'http://ns.adobe.com/xap/1.0/mm/',
    'dc': 'http://purl.org/dc/elements/1.1/',
    'exif': 'http://ns.adobe.com/exif/1.0/',
    'darktable': 'http://darktable.sf.net/',
}

RDF = '{%s}' % XMP_NAMESPACES['rdf']
DT = '{%s}' % XMP_NAMESPACES['darktable']

# Fallback scan for documents ElementTree refuses
_LI_BLOCK_RE = re.compile(r'<rdf:li\b(.*?)/>', re.DOTALL)
_ATTR_RE = {
    'operation': re.compile(r'darktable:operation="([^"]*)"'),
    'num': re.compile(r'darktable:num="([^"]*)"'),
    'params': re.compile(r'darktable:params="([^"]*)"'),
    'enabled': re.compile(r'darktable:enabled="([^"]*)"'),
    'multi_priority': re.compile(r'darktable:multi_priority="([^"]*)"'),
}
_HISTORY_END_RE = re.compile(r'darktable:history_end="(\d+)"')


@dataclass(frozen=True)
class SidecarRecord:
    """One darktable history stack entry."""
    sequence_number: int
    operation_name: str
    params_hex: str
    enabled: bool = True
    multi_priority: int = 0

    @property
    def is_exposure(self) -> bool:
        return self.operation_name == EXPOSURE_OPERATION


def sidecar_path_for(image_path: str, naming: str = 'append') -> str:
    """
    Get the sidecar path for an image.

    Args:
        image_path: Path to the image file
        naming: 'append' for darktable's IMG_0001.CR2.xmp,
                'replace' for IMG_0001.xmp

    Returns:
        Sidecar path
    """
    image_path = os.fspath(image_path)
    if naming == 'replace':
        return f"{os.path.splitext(image_path)[0]}.xmp"
    if naming != 'append':
        raise ValueError(f"Unknown sidecar naming: {naming}")
    return f"{image_path}.xmp"


def _to_record(fields: Dict[str, Optional[str]]) -> Optional[SidecarRecord]:
    """Build a record from raw attribute values, None if num or params is unusable."""
    num = fields.get('num')
    params = fields.get('params')
    if num is None or not params:
        return None
    try:
        sequence_number = int(num.strip())
    except ValueError:
        return None
    if sequence_number < 0:
        return None

    try:
        multi_priority = int(fields.get('multi_priority') or 0)
    except ValueError:
        multi_priority = 0

    return SidecarRecord(
        sequence_number=sequence_number,
        operation_name=(fields.get('operation') or '').strip(),
        params_hex=params.strip(),
        enabled=(fields.get('enabled') or '1').strip() != '0',
        multi_priority=multi_priority,
    )


def select_latest(records: List[SidecarRecord],
                  operation: str = EXPOSURE_OPERATION,
                  history_end: Optional[int] = None) -> Optional[SidecarRecord]:
    """
    Pick the entry with the highest sequence number for an operation.

    Ties go to the entry encountered last. Entries at or above history_end
    are ignored when history_end is given.
    """
    latest = None
    for record in records:
        if record.operation_name != operation:
            continue
        if history_end is not None and record.sequence_number >= history_end:
            continue
        if latest is None or record.sequence_number >= latest.sequence_number:
            latest = record
    return latest


class DarktableSidecar:
    """Handles darktable XMP sidecar operations."""

    def __init__(self, sidecar_path: str):
        """Initialize with the path to the sidecar itself."""
        self.sidecar_path = os.fspath(sidecar_path)

    @classmethod
    def for_image(cls, image_path: str, naming: str = 'append') -> 'DarktableSidecar':
        return cls(sidecar_path_for(image_path, naming))

    def exists(self) -> bool:
        """Check if the sidecar file exists."""
        return os.path.exists(self.sidecar_path)

    def read_text(self) -> str:
        """Read the raw document, raising SidecarUnavailable on any I/O failure."""
        try:
            with open(self.sidecar_path, 'r', encoding='utf-8') as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise SidecarUnavailable(
                f"Cannot read sidecar {self.sidecar_path}: {e}"
            ) from e

    def history(self) -> List[SidecarRecord]:
        """All well-formed history entries in document order."""
        records, _ = self._scan(self.read_text())
        return records

    def history_end(self) -> Optional[int]:
        """The darktable:history_end marker, if present."""
        _, history_end = self._scan(self.read_text())
        return history_end

    def latest_record(self, operation: str = EXPOSURE_OPERATION,
                      respect_history_end: bool = False) -> Optional[SidecarRecord]:
        records, history_end = self._scan(self.read_text())
        return select_latest(
            records,
            operation,
            history_end if respect_history_end else None,
        )

    def latest_exposure(self, respect_history_end: bool = False) -> Optional[ExposureParams]:
        """Decode the most recent exposure entry, or None if there is none."""
        record = self.latest_record(EXPOSURE_OPERATION, respect_history_end)
        if record is None:
            logger.debug(f"No exposure entry in {self.sidecar_path}")
            return None

        logger.debug(f"Latest exposure entry in {self.sidecar_path}: num={record.sequence_number}")
        try:
            return decode_xmp_params(record.params_hex)
        except MalformedRecord as e:
            raise MalformedRecord(
                f"Exposure entry num={record.sequence_number}: {e}",
                image_path=self.sidecar_path,
            ) from e

    def append_history_entry(self, fields: Dict[str, str]) -> int:
        """
        Append a history step and move history_end past it.

        Steps at or above the current history_end (undone edits) are dropped
        first, as darktable does when a new edit is made.

        Args:
            fields: darktable attribute values without the namespace prefix,
                    e.g. {'operation': 'exposure', 'params': '...'}

        Returns:
            Sequence number of the new entry
        """
        if self.exists():
            try:
                tree = ET.parse(self.sidecar_path)
            except ET.ParseError as e:
                raise MalformedRecord(f"Sidecar is not valid XML: {e}",
                                      image_path=self.sidecar_path) from e
            except OSError as e:
                raise SidecarUnavailable(f"Cannot read sidecar: {e}",
                                         image_path=self.sidecar_path) from e
            self._register_namespaces()
            root = tree.getroot()
        else:
            root = self._create_xmp_structure()
            tree = ET.ElementTree(root)

        description = root.find(f'.//{RDF}Description')
        if description is None:
            rdf_root = root.find(f'.//{RDF}RDF')
            if rdf_root is None:
                rdf_root = ET.SubElement(root, f'{RDF}RDF')
            description = ET.SubElement(rdf_root, f'{RDF}Description')
            description.set(f'{RDF}about', '')

        seq = self._history_seq(description)

        history_end = description.get(f'{DT}history_end')
        if history_end is not None and history_end.isdigit():
            for li in list(seq.findall(f'{RDF}li')):
                num = li.get(f'{DT}num')
                if num is not None and num.isdigit() and int(num) >= int(history_end):
                    seq.remove(li)

        nums = [int(li.get(f'{DT}num')) for li in seq.findall(f'{RDF}li')
                if (li.get(f'{DT}num') or '').isdigit()]
        new_num = max(nums) + 1 if nums else 0

        li = ET.SubElement(seq, f'{RDF}li')
        li.set(f'{DT}num', str(new_num))
        for name, value in fields.items():
            li.set(f'{DT}{name}', str(value))

        description.set(f'{DT}history_end', str(new_num + 1))

        ET.indent(tree, space=' ')
        tree.write(self.sidecar_path, encoding='UTF-8', xml_declaration=True)
        logger.debug(f"Appended history entry num={new_num} to {self.sidecar_path}")
        return new_num

    def _scan(self, content: str) -> Tuple[List[SidecarRecord], Optional[int]]:
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            logger.debug(f"Falling back to pattern scan for {self.sidecar_path}: {e}")
            return self._scan_patterns(content)
        return self._scan_tree(root)

    def _scan_tree(self, root: ET.Element) -> Tuple[List[SidecarRecord], Optional[int]]:
        records = []
        for li in root.iter(f'{RDF}li'):
            fields = {name: self._field(li, name) for name in _ATTR_RE}
            if fields['operation'] is None:
                continue
            record = _to_record(fields)
            if record is not None:
                records.append(record)

        history_end = None
        for description in root.iter(f'{RDF}Description'):
            value = self._field(description, 'history_end')
            if value is not None and value.strip().isdigit():
                history_end = int(value)
                break

        return records, history_end

    def _scan_patterns(self, content: str) -> Tuple[List[SidecarRecord], Optional[int]]:
        records = []
        for block in _LI_BLOCK_RE.finditer(content):
            text = block.group(1)
            fields = {}
            for name, pattern in _ATTR_RE.items():
                match = pattern.search(text)
                fields[name] = match.group(1) if match else None
            if fields['operation'] is None:
                continue
            record = _to_record(fields)
            if record is not None:
                records.append(record)

        match = _HISTORY_END_RE.search(content)
        return records, int(match.group(1)) if match else None

    @staticmethod
    def _field(elem: ET.Element, name: str) -> Optional[str]:
        """A darktable field, stored either as attribute or as child element."""
        value = elem.get(f'{DT}{name}')
        if value is not None:
            return value
        child = elem.find(f'{DT}{name}')
        if child is not None:
            return child.text or ''
        return None

    def _history_seq(self, description: ET.Element) -> ET.Element:
        history = description.find(f'{DT}history')
        if history is None:
            history = ET.SubElement(description, f'{DT}history')
        seq = history.find(f'{RDF}Seq')
        if seq is None:
            seq = ET.SubElement(history, f'{RDF}Seq')
        return seq

    def _register_namespaces(self):
        """Keep the document's own prefixes when writing it back."""
        for prefix, uri in XMP_NAMESPACES.items():
            ET.register_namespace(prefix, uri)
        for _, (prefix, uri) in ET.iterparse(self.sidecar_path, events=('start-ns',)):
            if not prefix:
                continue
            try:
                ET.register_namespace(prefix, uri)
            except ValueError as e:
                # Reserved prefixes such as ns0 cannot be registered
                logger.debug(f"Skipping namespace {prefix}: {e}")

    def _create_xmp_structure(self) -> ET.Element:
        """Create an empty darktable XMP document."""
        for prefix, uri in XMP_NAMESPACES.items():
            ET.register_namespace(prefix, uri)

        xmp_root = ET.Element(f"{{{XMP_NAMESPACES['x']}}}xmpmeta")
        xmp_root.set(f"{{{XMP_NAMESPACES['x']}}}xmptk", 'XMP Core 4.4.0-Exiv2')
        rdf_root = ET.SubElement(xmp_root, f'{RDF}RDF')
        description = ET.SubElement(rdf_root, f'{RDF}Description')
        description.set(f'{RDF}about', '')
        description.set(f'{DT}xmp_version', '5')
        description.set(f'{DT}history_end', '0')
        return xmp_root


def read_latest_exposure(path: str, respect_history_end: bool = False) -> Optional[ExposureParams]:
    """
    Read the most recent exposure parameters from a sidecar.

    Args:
        path: Sidecar path
        respect_history_end: Ignore steps darktable considers undone

    Returns:
        ExposureParams, or None if the sidecar has no exposure entry

    Raises:
        SidecarUnavailable: the sidecar cannot be read
        MalformedRecord: the latest exposure entry cannot be decoded
    """
    return DarktableSidecar(path).latest_exposure(respect_history_end=respect_history_end)
