"""Optimistic concurrency protocol for status transitions.

There are no locks, queues or leases. Two workers may select the same block;
the conditional write in ``ContentStore.transition`` lets exactly one of them
move it. The loser sees ``TransitionResult.MISSED`` and drops the block for
the rest of its pass.
"""

import logging
from enum import Enum
from typing import Any

from .content_store import ContentStore
from .status import StatusLike, ensure_legal_transition, parse_status

logger = logging.getLogger(__name__)


class TransitionResult(Enum):
    APPLIED = "applied"
    MISSED = "missed"

    @property
    def applied(self) -> bool:
        return self is TransitionResult.APPLIED


def advance(
    store: ContentStore,
    block_id: str,
    expected: StatusLike,
    new: StatusLike,
    **fields: Any,
) -> TransitionResult:
    """Re-fetch the block's status, then conditionally move it.

    The re-fetch only narrows the race window after slow work such as a
    vendor API call; the conditional write is what guarantees a single winner.

    Raises:
        IllegalTransitionError: Before reading or writing anything
        StoreUnavailableError: If the store cannot be reached
    """
    ensure_legal_transition(expected, new)
    expected = parse_status(expected)
    new = parse_status(new)

    current = store.get_status(block_id)
    if current is None:
        logger.warning(f"Content block {block_id} not found; skipping {expected.value} -> {new.value}")
        return TransitionResult.MISSED
    if current is not expected:
        logger.info(
            f"Content block {block_id} is {current.value}, not {expected.value}; "
            f"another worker got there first"
        )
        return TransitionResult.MISSED

    if store.transition(block_id, expected, new, **fields):
        return TransitionResult.APPLIED

    logger.info(f"Conditional update missed for {block_id} ({expected.value} -> {new.value})")
    return TransitionResult.MISSED
