"""
The batch actions offered on a selection of images.

Each action takes the selection explicitly; there is no global "current
selection".
"""

from dataclasses import dataclass
from typing import Callable, Dict, Sequence

from .io.images import Image
from .processing.adjuster import ExposureAdjuster
from .processing.report import BatchReport


@dataclass(frozen=True)
class UserAction:
    """A named, zero-configuration batch action."""
    key: str
    name: str
    label: str
    run: Callable[[ExposureAdjuster, Sequence[Image]], BatchReport]


def _adjust(delta_ev: float) -> Callable[[ExposureAdjuster, Sequence[Image]], BatchReport]:
    def run(adjuster: ExposureAdjuster, images: Sequence[Image]) -> BatchReport:
        return adjuster.adjust_by(images, delta_ev)
    return run


def _equalize(adjuster: ExposureAdjuster, images: Sequence[Image]) -> BatchReport:
    return adjuster.equalize(images)


ACTIONS = [
    UserAction("minus-1", "Exposure adjust -1", "-1 EV", _adjust(-1.0)),
    UserAction("minus-third", "Exposure adjust -1/3", "-1/3 EV", _adjust(-1.0 / 3.0)),
    UserAction("plus-third", "Exposure adjust +1/3", "+1/3 EV", _adjust(1.0 / 3.0)),
    UserAction("plus-1", "Exposure adjust +1", "+1 EV", _adjust(1.0)),
    UserAction("equalize", "Equalize exposure", "Equalize exposure", _equalize),
]

# Which actions need capture metadata (aperture, shutter, ISO)
NEEDS_EXIF = {"equalize"}

ACTIONS_BY_KEY: Dict[str, UserAction] = {action.key: action for action in ACTIONS}
ACTIONS_BY_LABEL: Dict[str, UserAction] = {action.label: action for action in ACTIONS}


def get_action(name: str) -> UserAction:
    """Look up an action by key ("plus-third") or label ("+1/3 EV")."""
    action = ACTIONS_BY_KEY.get(name) or ACTIONS_BY_LABEL.get(name)
    if action is None:
        raise KeyError(f"Unknown action {name!r}; available: {', '.join(ACTIONS_BY_KEY)}")
    return action
