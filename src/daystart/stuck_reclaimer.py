"""Stuck-content reclamation sweep.

Finds blocks that have sat in an in-progress status longer than the timeout
(a crashed or hung worker) and moves each to its failure status:

    script_generating  -> script_failed
    audio_generating   -> audio_failed
    content_generating -> content_failed
    retry_pending      -> failed

Each move is a conditional write keyed on the stuck status. If another worker
finished the block in the meantime the write misses and the block is skipped
without an error or a log entry. The query is threshold-based, so a run that
fails outright is simply retried by the next scheduled run.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable

from .audit import AuditLog
from .config import SweepConfig
from .content_store import ContentStore
from .errors import PipelineError, StoreUnavailableError
from .models import ContentBlock, to_timestamp, utc_now
from .results import SweepResult
from .status import ContentBlockStatus, describe_stuck_status, failure_status_for

logger = logging.getLogger(__name__)


class StuckContentReclaimer:
    """Moves blocks stuck in an in-progress status to a failure status."""

    def __init__(
        self,
        store: ContentStore,
        audit: AuditLog,
        config: SweepConfig,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.audit = audit
        self.timeout_hours = config.stuck_timeout_hours
        self.batch_size = config.stuck_batch_size
        self.clock = clock

    def _settings_metadata(self, cutoff: datetime) -> dict:
        return {
            "stuck_timeout_hours": self.timeout_hours,
            "cutoff_time": to_timestamp(cutoff),
            "batch_size": self.batch_size,
        }

    def sweep(self) -> SweepResult:
        """Run one reclamation pass.

        Returns:
            SweepResult with counts ``found``, ``cleaned``, ``skipped``, ``failed``
            and ``status_breakdown`` keyed by the stuck status
        """
        result = SweepResult(
            name="cleanup-stuck-content",
            counts={"found": 0, "cleaned": 0, "skipped": 0, "failed": 0},
        )
        now = self.clock()
        cutoff = now - timedelta(hours=self.timeout_hours)

        logger.info(f"Stuck content cutoff: {to_timestamp(cutoff)} ({self.timeout_hours} hours ago)")

        try:
            stuck_blocks = self.store.find_stuck_blocks(cutoff, self.batch_size)
        except StoreUnavailableError as e:
            logger.error(f"Stuck content cleanup failed: {e}")
            result.abort(f"Cleanup failed: {e}")
            result.track_audit(self.audit.record(
                event_type="cleanup_stuck_content_failed",
                status="error",
                message=f"Stuck content cleanup failed: {e}",
                metadata={"error": str(e), **self._settings_metadata(cutoff)},
            ))
            return result

        if not stuck_blocks:
            result.track_audit(self.audit.record(
                event_type="cleanup_stuck_content_no_blocks",
                status="info",
                message="No stuck content blocks found during cleanup",
                metadata=self._settings_metadata(cutoff),
            ))
            return result

        result.counts["found"] = len(stuck_blocks)
        logger.info(f"Found {len(stuck_blocks)} stuck content blocks")

        by_status: dict[ContentBlockStatus, list[ContentBlock]] = defaultdict(list)
        for block in stuck_blocks:
            by_status[block.status].append(block)

        for stuck_status, blocks in by_status.items():
            logger.info(f"Processing {len(blocks)} blocks stuck in {stuck_status.value} status")
            for block in blocks:
                self._reclaim(block, now, result)

        cleaned = result.counts["cleaned"]
        result.track_audit(self.audit.record(
            event_type="cleanup_stuck_content_summary",
            status="warning" if cleaned > 0 else "info",
            message=(
                f"Stuck content cleanup completed: "
                f"{cleaned}/{result.counts['found']} blocks cleaned"
            ),
            metadata={
                "stuck_blocks_found": result.counts["found"],
                "blocks_cleaned": cleaned,
                "blocks_skipped": result.counts["skipped"],
                "error_count": len(result.errors),
                "status_breakdown": dict(result.status_breakdown),
                **self._settings_metadata(cutoff),
            },
        ))
        return result

    def _reclaim(self, block: ContentBlock, now: datetime, result: SweepResult) -> None:
        stuck_status = block.status
        failure_status = failure_status_for(stuck_status)

        try:
            moved = self.store.transition(
                block.id,
                stuck_status,
                failure_status,
                retry_count=0,  # giving up on this attempt chain
                parameters={
                    **block.parameters,
                    "stuck_cleanup": True,
                    "original_status": stuck_status.value,
                    "cleanup_timestamp": to_timestamp(now),
                },
            )
        except PipelineError as e:
            message = (
                f"Failed to update block {block.id} from {stuck_status.value} "
                f"to {failure_status.value}: {e}"
            )
            logger.error(message)
            result.errors.append(message)
            result.bump("failed")
            return

        if not moved:
            # Finished or reclaimed elsewhere since selection
            result.bump("skipped")
            return

        result.bump("cleaned")
        result.status_breakdown[stuck_status.value] = (
            result.status_breakdown.get(stuck_status.value, 0) + 1
        )

        stuck_hours = (now - block.updated_at).total_seconds() / 3600
        result.track_audit(self.audit.record(
            event_type="cleanup_stuck_content_success",
            status="warning",
            message=(
                f"Cleaned up stuck content block: {describe_stuck_status(stuck_status)} "
                f"timed out after {stuck_hours:.1f} hour(s)"
            ),
            content_block_id=block.id,
            user_id=block.owner,
            metadata={
                "content_type": block.content_type.value,
                "date": block.date.isoformat(),
                "user_id": block.owner,
                "stuck_status": stuck_status.value,
                "failure_status": failure_status.value,
                "stuck_duration_hours": round(stuck_hours, 2),
                "original_updated_at": to_timestamp(block.updated_at),
                "retry_count": block.retry_count,
            },
        ))
