"""
Shared fixtures: darktable sidecars and exposure payloads.
"""

import pytest

from evshift.utils.logging import teardown_console_logging

from sidecars import DEFAULT_PARAMS_HEX, build_sidecar


@pytest.fixture
def write_sidecar(tmp_path):
    """Write a sidecar for a (fake) raw file and return the image path."""
    def _write(entries, name='IMG_0001.CR2', history_end=None, extra_description=''):
        image_path = tmp_path / name
        image_path.write_bytes(b'raw')
        sidecar = tmp_path / f'{name}.xmp'
        sidecar.write_text(build_sidecar(entries, history_end, extra_description), encoding='utf-8')
        return image_path
    return _write


@pytest.fixture
def default_history():
    """A typical fresh darktable history with a default exposure step."""
    return [
        (0, 'rawprepare', '00000000000000000000000000000000'),
        (1, 'temperature', '0000803f0000803f0000803f00000000'),
        (2, 'exposure', DEFAULT_PARAMS_HEX),
        (3, 'filmicrgb', 'aaaaaaaa'),
    ]


@pytest.fixture(autouse=True)
def _reset_console_logging():
    yield
    teardown_console_logging()
