"""Content block lifecycle state machine.

Every component that changes a block's status goes through
``ensure_legal_transition`` (directly, or via ``ContentStore.transition``).
The table below is the whole contract; ``failed`` and ``expired`` are terminal.
"""

from enum import Enum
from typing import Union

from .errors import IllegalTransitionError, InvalidStatusError


class ContentBlockStatus(str, Enum):
    PENDING = "pending"
    CONTENT_GENERATING = "content_generating"
    CONTENT_READY = "content_ready"
    CONTENT_FAILED = "content_failed"
    SCRIPT_GENERATING = "script_generating"
    SCRIPT_GENERATED = "script_generated"
    SCRIPT_FAILED = "script_failed"
    AUDIO_GENERATING = "audio_generating"
    READY = "ready"
    AUDIO_FAILED = "audio_failed"
    FAILED = "failed"
    EXPIRED = "expired"
    RETRY_PENDING = "retry_pending"


S = ContentBlockStatus

VALID_TRANSITIONS: dict[ContentBlockStatus, frozenset[ContentBlockStatus]] = {
    S.PENDING: frozenset({S.CONTENT_GENERATING, S.CONTENT_READY, S.CONTENT_FAILED}),
    S.CONTENT_GENERATING: frozenset({S.CONTENT_READY, S.CONTENT_FAILED}),
    S.CONTENT_READY: frozenset({S.SCRIPT_GENERATING, S.CONTENT_FAILED}),
    S.CONTENT_FAILED: frozenset({S.RETRY_PENDING, S.FAILED}),
    S.SCRIPT_GENERATING: frozenset({S.SCRIPT_GENERATED, S.SCRIPT_FAILED}),
    S.SCRIPT_GENERATED: frozenset({S.AUDIO_GENERATING, S.AUDIO_FAILED}),
    S.SCRIPT_FAILED: frozenset({S.RETRY_PENDING, S.FAILED}),
    S.AUDIO_GENERATING: frozenset({S.READY, S.AUDIO_FAILED}),
    S.READY: frozenset({S.EXPIRED}),
    S.AUDIO_FAILED: frozenset({S.RETRY_PENDING, S.FAILED}),
    S.FAILED: frozenset(),
    S.EXPIRED: frozenset(),
    S.RETRY_PENDING: frozenset(
        {S.CONTENT_GENERATING, S.SCRIPT_GENERATING, S.AUDIO_GENERATING, S.FAILED}
    ),
}

TERMINAL_STATUSES = frozenset({S.FAILED, S.EXPIRED})

# Statuses a worker owns while it runs; the stuck sweep watches these
IN_PROGRESS_STATUSES = (
    S.SCRIPT_GENERATING,
    S.AUDIO_GENERATING,
    S.CONTENT_GENERATING,
    S.RETRY_PENDING,
)

# Statuses a producer may create a block in
INITIAL_STATUSES = frozenset(
    {S.PENDING, S.CONTENT_GENERATING, S.CONTENT_READY, S.CONTENT_FAILED}
)

_FAILURE_FOR_STUCK = {
    S.SCRIPT_GENERATING: S.SCRIPT_FAILED,
    S.AUDIO_GENERATING: S.AUDIO_FAILED,
    S.CONTENT_GENERATING: S.CONTENT_FAILED,
}

_STUCK_DESCRIPTIONS = {
    S.SCRIPT_GENERATING: "Script generation",
    S.AUDIO_GENERATING: "Audio generation",
    S.CONTENT_GENERATING: "Content generation",
    S.RETRY_PENDING: "Retry pending",
}

StatusLike = Union[ContentBlockStatus, str]


def parse_status(value: StatusLike) -> ContentBlockStatus:
    """Coerce a raw value into a status.

    Raises:
        InvalidStatusError: If the value is not a known status
    """
    if isinstance(value, ContentBlockStatus):
        return value
    try:
        return ContentBlockStatus(value)
    except ValueError:
        raise InvalidStatusError(value) from None


def is_legal_transition(from_status: StatusLike, to_status: StatusLike) -> bool:
    """Return True if ``from_status -> to_status`` is in the transition table.

    Unknown status values are never legal.
    """
    try:
        source = ContentBlockStatus(from_status)
        target = ContentBlockStatus(to_status)
    except ValueError:
        return False
    return target in VALID_TRANSITIONS[source]


def ensure_legal_transition(from_status: StatusLike, to_status: StatusLike) -> None:
    """Raise unless the transition is legal.

    Raises:
        InvalidStatusError: If either value is not a known status
        IllegalTransitionError: If the table does not allow the move
    """
    source = parse_status(from_status)
    target = parse_status(to_status)
    if target not in VALID_TRANSITIONS[source]:
        raise IllegalTransitionError(source, target)


def is_terminal(status: StatusLike) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def failure_status_for(stuck_status: StatusLike) -> ContentBlockStatus:
    """Map a stuck in-progress status to the failure status it is moved to."""
    return _FAILURE_FOR_STUCK.get(parse_status(stuck_status), S.FAILED)


def describe_stuck_status(stuck_status: StatusLike) -> str:
    return _STUCK_DESCRIPTIONS.get(parse_status(stuck_status), "Unknown processing")
