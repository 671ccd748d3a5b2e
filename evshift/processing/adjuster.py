"""
Batch exposure adjustment for darktable images.

Reads each image's current exposure parameters from its sidecar, computes new
ones (flat EV offset or equalization against a reference image), and pushes
them back through a temporary style applied by the preset host.
"""

import logging
from typing import Callable, Optional, Sequence, Tuple

from tqdm import tqdm

from ..errors import (
    ExposureError,
    InsufficientSelection,
    NoExposureRecord,
)
from ..exposure.ev import compute_ev
from ..exposure.params import ExposureParams, encode
from ..host.base import PresetHost
from ..io.images import Image
from ..styles.dtstyle import DEFAULT_NAME_PREFIX, make_style_name, render
from ..utils.logging import StructuredLogger
from ..utils.xmp_sidecar import read_latest_exposure
from .report import BatchReport

logger = logging.getLogger(__name__)

ParamsReader = Callable[..., Optional[ExposureParams]]


class ExposureAdjuster:
    """
    Applies exposure changes to a batch of images.

    Images are processed one at a time in the given order. A failure on one
    image is recorded in the returned BatchReport and the batch continues.
    """

    def __init__(self, host: PresetHost,
                 style_prefix: str = DEFAULT_NAME_PREFIX,
                 reader: ParamsReader = read_latest_exposure,
                 respect_history_end: bool = False,
                 progress: bool = False):
        """
        Initialize exposure adjuster

        Args:
            host: Collaborator that imports and applies style documents
            style_prefix: Prefix for generated style names
            reader: Callable(sidecar_path, respect_history_end=...) returning
                    the current ExposureParams or None
            respect_history_end: Ignore undone history steps when reading
            progress: Show a progress bar for multi-image batches
        """
        self.host = host
        self.style_prefix = style_prefix
        self.reader = reader
        self.respect_history_end = respect_history_end
        self.progress = progress
        self.log = StructuredLogger(__name__)

    def current_params(self, image: Image) -> ExposureParams:
        """
        Read the image's latest exposure parameters.

        Raises:
            SidecarUnavailable: sidecar missing or unreadable
            NoExposureRecord: sidecar has no exposure entry
            MalformedRecord: latest entry cannot be decoded
        """
        params = self.reader(image.sidecar_path, respect_history_end=self.respect_history_end)
        if params is None:
            raise NoExposureRecord("No exposure entry in sidecar", image_path=image.path)
        return params

    def apply_params(self, image: Image, params: ExposureParams) -> str:
        """
        Push parameters to an image through a temporary style.

        Returns:
            Name of the style that was applied
        """
        style_name = make_style_name(self.style_prefix)
        document = render(style_name, encode(params))
        logger.debug(f"Rendered style {style_name} for {image.path}")

        handle = self.host.import_preset(document)
        try:
            self.host.apply_preset(handle, image)
        finally:
            try:
                self.host.delete_preset(handle)
            except (ExposureError, OSError) as e:
                logger.warning(f"Could not delete style {handle.name}: {e}")

        return style_name

    def adjust_by(self, images: Sequence[Image], delta_ev: float) -> BatchReport:
        """
        Shift the exposure of every image by delta_ev.

        Args:
            images: Images to adjust, processed in order
            delta_ev: EV offset added to each image's exposure compensation

        Returns:
            BatchReport with one result per image
        """
        report = BatchReport(operation=f"adjust {delta_ev:+.2f} EV")
        logger.info(f"Adjusting {len(images)} image(s) by {delta_ev:+.3f} EV")

        for image in self._iterate(images, "Adjusting exposure"):
            try:
                params = self.current_params(image)
                new_params = params.with_exposure(params.exposure + delta_ev)
                self._apply(report, image, params, new_params)
            except ExposureError as e:
                self._record_failure(report, image, e)

        return report

    def equalize(self, images: Sequence[Image]) -> BatchReport:
        """
        Match the effective exposure of every image to the first one.

        ev[i] = compute_ev(aperture, exposure_time, iso) + exposure[i]
        For i >= 1 the new exposure is exposure[i] - (ev[0] - ev[i]).
        The first image is the reference and is never modified.

        Raises:
            InsufficientSelection: fewer than two images
            ExposureError: the reference image cannot be evaluated
        """
        if len(images) < 2:
            raise InsufficientSelection(
                f"Equalizing exposure needs at least 2 images, got {len(images)}"
            )

        reference = images[0]
        _, ref_ev = self._evaluate(reference)
        logger.info(f"Equalizing {len(images) - 1} image(s) to {reference.path} (EV {ref_ev:.2f})")

        report = BatchReport(operation="equalize")
        report.add_skipped(reference.path, "reference image")

        for image in self._iterate(images[1:], "Equalizing exposure"):
            try:
                params, ev = self._evaluate(image)
                delta_ev = ref_ev - ev
                logger.info(f"{image.path} EV delta: {delta_ev:.2f}")
                new_params = params.with_exposure(params.exposure - delta_ev)
                self._apply(report, image, params, new_params)
            except ExposureError as e:
                self._record_failure(report, image, e)

        return report

    def _evaluate(self, image: Image) -> Tuple[ExposureParams, float]:
        try:
            params = self.current_params(image)
            ev = compute_ev(image.aperture, image.exposure_time, image.iso)
        except ExposureError as e:
            e.image_path = e.image_path or image.path
            raise
        return params, ev + params.exposure

    def _apply(self, report: BatchReport, image: Image,
               params: ExposureParams, new_params: ExposureParams):
        style_name = self.apply_params(image, new_params)
        report.add_applied(image.path, params.exposure, new_params.exposure, style_name)
        self.log.info(
            "Applied exposure",
            image=image.path,
            old_exposure=round(params.exposure, 4),
            new_exposure=round(new_params.exposure, 4),
            style=style_name,
        )

    def _record_failure(self, report: BatchReport, image: Image, error: ExposureError):
        if error.image_path is None:
            error.image_path = image.path
        logger.error(f"{type(error).__name__}: {error}")
        report.add_failure(image.path, error)

    def _iterate(self, images: Sequence[Image], desc: str):
        return tqdm(images, desc=desc, unit="image",
                    disable=not self.progress or len(images) < 2)
