"""
Tests for the evshift command line interface.
"""

import pytest
from click.testing import CliRunner

from evshift.cli.main import main
from evshift.io import images as images_module
from evshift.utils.xmp_sidecar import DarktableSidecar, read_latest_exposure

from sidecars import params_hex


class FakeExifToolHelper:

    def __init__(self, tags_by_path, **kwargs):
        self.tags_by_path = tags_by_path

    def run(self):
        pass

    def terminate(self):
        pass

    def get_tags(self, files, tags=None):
        return [dict(self.tags_by_path.get(f, {}), SourceFile=f) for f in files]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def exif_tags(monkeypatch):
    tags = {}
    monkeypatch.setattr(images_module.exiftool, 'ExifToolHelper',
                        lambda **kwargs: FakeExifToolHelper(tags, **kwargs))
    return tags


class TestAdjust:

    def test_writes_new_history_step(self, runner, write_sidecar, default_history):
        image = write_sidecar(default_history)

        result = runner.invoke(main, ['adjust', '--ev', '+1/3', str(image)])

        assert result.exit_code == 0, result.output
        sidecar = DarktableSidecar.for_image(str(image))
        assert sidecar.latest_exposure().exposure == pytest.approx(0.7 + 1.0 / 3.0, abs=1e-5)
        assert len(sidecar.history()) == 5
        assert '1 applied, 0 failed' in result.output

    def test_decimal_amount(self, runner, write_sidecar):
        image = write_sidecar([(0, 'exposure', params_hex(0.2))])
        result = runner.invoke(main, ['adjust', '--ev', '-0.5', str(image)])
        assert result.exit_code == 0, result.output
        assert read_latest_exposure(f'{image}.xmp').exposure == pytest.approx(-0.3, abs=1e-6)

    def test_dry_run_leaves_sidecar_alone(self, runner, write_sidecar, default_history):
        image = write_sidecar(default_history)
        before = open(f'{image}.xmp', encoding='utf-8').read()

        result = runner.invoke(main, ['adjust', '--ev', '1', '--dry-run', str(image)])

        assert result.exit_code == 0, result.output
        assert open(f'{image}.xmp', encoding='utf-8').read() == before
        assert '+0.70 -> +1.70' in result.output

    def test_failure_reported_and_exit_code(self, runner, tmp_path, write_sidecar):
        good = write_sidecar([(0, 'exposure', params_hex(0.0))], name='A.CR2')
        missing = tmp_path / 'B.CR2'
        missing.write_bytes(b'raw')

        result = runner.invoke(main, ['adjust', '--ev', '1', str(good), str(missing)])

        assert result.exit_code == 1
        assert 'SidecarUnavailable' in result.output
        assert read_latest_exposure(f'{good}.xmp').exposure == 1.0

    def test_invalid_amount(self, runner, write_sidecar):
        image = write_sidecar([(0, 'exposure', params_hex(0.0))])
        result = runner.invoke(main, ['adjust', '--ev', 'one', str(image)])
        assert result.exit_code == 2
        assert 'not a valid EV amount' in result.output


class TestEqualize:

    def test_equalizes_to_first_image(self, runner, write_sidecar, exif_tags):
        first = write_sidecar([(0, 'exposure', params_hex(0.0))], name='A.CR2')
        second = write_sidecar([(0, 'exposure', params_hex(0.0))], name='B.CR2')
        exif_tags[str(first)] = {'EXIF:FNumber': 2.8, 'EXIF:ExposureTime': 0.005, 'EXIF:ISO': 400}
        exif_tags[str(second)] = {'EXIF:FNumber': 2.8, 'EXIF:ExposureTime': 0.01, 'EXIF:ISO': 400}

        result = runner.invoke(main, ['equalize', str(first), str(second)])

        assert result.exit_code == 0, result.output
        assert read_latest_exposure(f'{first}.xmp').exposure == 0.0
        assert len(DarktableSidecar(f'{first}.xmp').history()) == 1
        assert read_latest_exposure(f'{second}.xmp').exposure == pytest.approx(-1.0, abs=1e-6)

    def test_single_image_rejected(self, runner, write_sidecar, exif_tags):
        image = write_sidecar([(0, 'exposure', params_hex(0.0))])
        result = runner.invoke(main, ['equalize', str(image)])
        assert result.exit_code == 1
        assert 'at least 2 images' in result.output


class TestActions:

    def test_list(self, runner):
        result = runner.invoke(main, ['actions'])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0].split() == ['minus-1', '-1', 'EV']
        assert lines[-1].split()[0] == 'equalize'
        assert len(lines) == 5

    def test_run_named_action(self, runner, write_sidecar):
        image = write_sidecar([(0, 'exposure', params_hex(0.5))])
        result = runner.invoke(main, ['action', 'minus-1', str(image)])
        assert result.exit_code == 0, result.output
        assert read_latest_exposure(f'{image}.xmp').exposure == -0.5

    def test_unknown_action(self, runner, write_sidecar):
        image = write_sidecar([(0, 'exposure', params_hex(0.5))])
        result = runner.invoke(main, ['action', 'plus-2', str(image)])
        assert result.exit_code == 2


class TestShow:

    def test_prints_current_exposure(self, runner, write_sidecar, default_history):
        image = write_sidecar(default_history)
        result = runner.invoke(main, ['show', str(image)])
        assert result.exit_code == 0, result.output
        assert f'{image}: exposure +0.70 EV' in result.output

    def test_with_ev(self, runner, write_sidecar, exif_tags):
        image = write_sidecar([(0, 'exposure', params_hex(0.0))])
        exif_tags[str(image)] = {'EXIF:FNumber': 2.0, 'EXIF:ExposureTime': 0.01, 'EXIF:ISO': 100}
        result = runner.invoke(main, ['show', '--ev', str(image)])
        assert result.exit_code == 0, result.output
        assert 'EV 8.64' in result.output

    def test_no_exposure_entry(self, runner, write_sidecar):
        image = write_sidecar([(0, 'rawprepare', params_hex())])
        result = runner.invoke(main, ['show', str(image)])
        assert result.exit_code == 1
        assert 'no exposure entry' in result.output
