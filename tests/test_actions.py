"""
Tests for the named batch actions.
"""

import pytest

from evshift.actions import ACTIONS, NEEDS_EXIF, get_action
from evshift.host import DryRunHost
from evshift.io.images import Image
from evshift.processing import ExposureAdjuster

from sidecars import make_params


def test_five_actions_in_menu_order():
    assert [a.label for a in ACTIONS] == [
        '-1 EV', '-1/3 EV', '+1/3 EV', '+1 EV', 'Equalize exposure',
    ]
    assert [a.key for a in ACTIONS] == ['minus-1', 'minus-third', 'plus-third', 'plus-1', 'equalize']


def test_lookup_by_key_or_label():
    assert get_action('plus-third') is get_action('+1/3 EV')
    assert get_action('Equalize exposure').key == 'equalize'


def test_unknown_action():
    with pytest.raises(KeyError):
        get_action('+2 EV')


def test_only_equalize_needs_capture_metadata():
    assert NEEDS_EXIF == {'equalize'}


@pytest.mark.parametrize('key,delta', [
    ('minus-1', -1.0),
    ('minus-third', -1.0 / 3.0),
    ('plus-third', 1.0 / 3.0),
    ('plus-1', 1.0),
])
def test_adjust_actions(key, delta):
    adjuster = ExposureAdjuster(DryRunHost(), reader=lambda path, **kwargs: make_params(0.0))
    report = get_action(key).run(adjuster, [Image(path='A.CR2', sidecar_path='A.CR2.xmp')])
    assert report.succeeded[0].new_exposure == pytest.approx(delta)


def test_equalize_action():
    images = [
        Image(path='A.CR2', sidecar_path='A.CR2.xmp', aperture=2.0, exposure_time=0.01, iso=100),
        Image(path='B.CR2', sidecar_path='B.CR2.xmp', aperture=2.0, exposure_time=0.01, iso=100),
    ]
    adjuster = ExposureAdjuster(DryRunHost(), reader=lambda path, **kwargs: make_params(0.0))
    report = get_action('equalize').run(adjuster, images)
    assert report.operation == 'equalize'
    assert [r.status for r in report.results] == ['skipped', 'applied']
