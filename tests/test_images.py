"""
Tests for image handles and ExifTool metadata loading.
"""

import pytest

from evshift.io import images as images_module
from evshift.io.images import EXIF_TAGS, Image, ImageLoader, image_from_tags


class FakeExifToolHelper:
    """Stands in for exiftool.ExifToolHelper; serves canned tags per file."""

    instances = []

    def __init__(self, tags_by_path=None, **kwargs):
        self.tags_by_path = tags_by_path or {}
        self.kwargs = kwargs
        self.running = False
        self.requests = []
        FakeExifToolHelper.instances.append(self)

    def run(self):
        self.running = True

    def terminate(self):
        self.running = False

    def get_tags(self, files, tags=None):
        self.requests.append((list(files), tags))
        return [dict(self.tags_by_path.get(f, {}), SourceFile=f) for f in files]


@pytest.fixture
def fake_exiftool(monkeypatch):
    FakeExifToolHelper.instances = []
    tags = {}

    def factory(**kwargs):
        return FakeExifToolHelper(tags, **kwargs)

    monkeypatch.setattr(images_module.exiftool, 'ExifToolHelper', factory)
    return tags


class TestImage:

    def test_from_path(self, tmp_path):
        image = Image.from_path(tmp_path / 'IMG_0001.CR2')
        assert image.path == str(tmp_path / 'IMG_0001.CR2')
        assert image.sidecar_path == str(tmp_path / 'IMG_0001.CR2.xmp')
        assert image.name == 'IMG_0001.CR2'
        assert image.aperture is None and image.exposure_time is None and image.iso is None

    def test_from_path_replace_naming(self):
        image = Image.from_path('/photos/IMG_0001.NEF', naming='replace')
        assert image.sidecar_path == '/photos/IMG_0001.xmp'

    def test_frozen(self):
        image = Image.from_path('/photos/IMG_0001.NEF')
        with pytest.raises(AttributeError):
            image.iso = 200


class TestImageFromTags:

    def test_exif_group(self):
        image = image_from_tags('/p/A.CR2', {
            'EXIF:FNumber': 2.8,
            'EXIF:ExposureTime': 0.005,
            'EXIF:ISO': 400,
        })
        assert image.aperture == 2.8
        assert image.exposure_time == pytest.approx(0.005)
        assert image.iso == 400.0
        assert image.sidecar_path == '/p/A.CR2.xmp'

    def test_composite_fallback(self):
        image = image_from_tags('/p/A.CR2', {
            'Composite:Aperture': 4.0,
            'Composite:ShutterSpeed': '1/250',
            'Composite:ISO': 100,
        })
        assert image.aperture == 4.0
        assert image.exposure_time == pytest.approx(0.004)
        assert image.iso == 100.0

    def test_missing_or_unusable_values(self):
        image = image_from_tags('/p/A.CR2', {'EXIF:FNumber': 'undef', 'EXIF:ExposureTime': 'bulb'})
        assert image.aperture is None
        assert image.exposure_time is None
        assert image.iso is None


class TestImageLoader:

    def test_loads_capture_settings(self, fake_exiftool):
        fake_exiftool['/p/A.CR2'] = {'EXIF:FNumber': 2.0, 'EXIF:ExposureTime': 0.01, 'EXIF:ISO': 100}
        fake_exiftool['/p/B.CR2'] = {'EXIF:FNumber': 2.0, 'EXIF:ExposureTime': 0.02, 'EXIF:ISO': 200}

        with ImageLoader() as loader:
            loaded = loader.load_all(['/p/A.CR2', '/p/B.CR2'])

        assert [i.exposure_time for i in loaded] == [0.01, 0.02]
        assert [i.iso for i in loaded] == [100.0, 200.0]

        helper = FakeExifToolHelper.instances[0]
        assert helper.requests[0] == (['/p/A.CR2'], EXIF_TAGS)
        assert helper.running is False

    def test_composite_aperture_when_fnumber_missing(self, fake_exiftool):
        fake_exiftool['/p/A.CR2'] = {
            'Composite:Aperture': 5.6,
            'EXIF:ExposureTime': 0.008,
            'EXIF:ISO': 200,
        }

        with ImageLoader() as loader:
            image = loader.load('/p/A.CR2')

        assert 'Aperture' in EXIF_TAGS
        assert image.aperture == 5.6

    def test_single_process_per_batch(self, fake_exiftool):
        with ImageLoader() as loader:
            loader.load('/p/A.CR2')
            loader.load('/p/B.CR2')
        assert len(FakeExifToolHelper.instances) == 1

    def test_executable_passed_through(self, fake_exiftool):
        with ImageLoader(executable='/opt/exiftool/exiftool'):
            pass
        assert FakeExifToolHelper.instances[0].kwargs == {'executable': '/opt/exiftool/exiftool'}

    def test_requires_context(self):
        with pytest.raises(RuntimeError):
            ImageLoader().load('/p/A.CR2')
