"""
Stage transitions.

    Encoded -> Decoded -> Cut

No stage is skipped and no stage goes back. Cut is final: seeing a cut
asset again is a no-op.
"""

from typing import Set, Tuple

from ..library import Stage
from .errors import InvalidStageTransitionError

_STAGE_TRANSITIONS: Set[Tuple[Stage, Stage]] = {
    (Stage.ENCODED, Stage.DECODED),
    (Stage.DECODED, Stage.CUT),
}


def is_final(stage: Stage) -> bool:
    return stage == Stage.CUT


def can_transition(current: Stage, target: Stage) -> bool:
    return (current, target) in _STAGE_TRANSITIONS


def validate_stage_transition(current: Stage, target: Stage) -> None:
    """
    Raises:
        InvalidStageTransitionError: If current -> target is not allowed
    """
    if not can_transition(current, target):
        raise InvalidStageTransitionError(current.value, target.value)
