"""Best-effort audit logging.

Audit entries go to the store's ``logs`` table and are echoed to the Python
logger. A failed write never aborts the operation being audited: ``record``
returns an ``AuditWriteResult`` that callers collect and report next to their
own result.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .content_store import ContentStore
from .errors import PipelineError
from .models import LogEntry

logger = logging.getLogger(__name__)

_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "partial_success": logging.WARNING,
}


@dataclass
class AuditWriteResult:
    """Outcome of one audit write."""

    event_type: str
    ok: bool
    error: Optional[str] = None

    def describe(self) -> str:
        return f"{self.event_type}: {self.error}"


class AuditLog:
    """Append-only audit sink backed by the content store."""

    def __init__(self, store: ContentStore):
        self.store = store

    def record(
        self,
        event_type: str,
        status: str,
        message: str,
        metadata: Optional[dict[str, Any]] = None,
        content_block_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> AuditWriteResult:
        """Write one audit entry.

        Returns:
            AuditWriteResult; ``ok`` is False if the entry could not be stored
        """
        logger.log(
            _LEVELS.get(status, logging.INFO),
            f"[{event_type}] {message}"
            + (f" (block={content_block_id})" if content_block_id else ""),
        )

        entry = LogEntry(
            event_type=event_type,
            status=status,
            message=message,
            metadata=metadata or {},
            content_block_id=content_block_id,
            user_id=user_id,
        )
        try:
            self.store.insert_log(entry)
        except PipelineError as e:
            logger.warning(f"Failed to write audit entry {event_type}: {e}")
            return AuditWriteResult(event_type=event_type, ok=False, error=str(e))

        return AuditWriteResult(event_type=event_type, ok=True)
