"""Expiration sweep: reclaim audio storage for content past its expiration date.

The database row is authoritative and storage cleanup is best-effort. A block
whose blob cannot be deleted is still marked ``expired`` with its audio
location cleared; the storage error is logged and reported, never allowed to
leave the block in a non-terminal status.

Rows are kept for audit. Blocks already ``expired`` drop out of the selection,
so running the sweep twice is a no-op the second time.
"""

import logging
from datetime import date, datetime
from typing import Callable, Optional

from .audit import AuditLog
from .blob_storage import BlobStorage
from .config import SweepConfig
from .content_store import ContentStore
from .errors import PipelineError, StorageError, StoreUnavailableError
from .models import ContentBlock, utc_now
from .results import SweepResult
from .status import ContentBlockStatus, is_legal_transition

logger = logging.getLogger(__name__)


class ExpirationReclaimer:
    """Deletes expired audio and marks its blocks expired."""

    def __init__(
        self,
        store: ContentStore,
        storage: BlobStorage,
        audit: AuditLog,
        config: SweepConfig,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.storage = storage
        self.audit = audit
        self.batch_size = config.expiration_batch_size
        self.clock = clock

    def sweep(self) -> SweepResult:
        """Process every expired block, one page at a time.

        Returns:
            SweepResult with counts ``processed``, ``expired``, ``audio_deleted``,
            ``skipped`` and ``failed``
        """
        result = SweepResult(
            name="expiration-clean-up",
            counts={"processed": 0, "expired": 0, "audio_deleted": 0, "skipped": 0, "failed": 0},
        )
        today = self.clock().date()
        offset = 0
        page_number = 0

        while True:
            try:
                page = self.store.find_expired_blocks(today, self.batch_size, offset)
            except StoreUnavailableError as e:
                logger.error(f"Expiration query failed: {e}")
                if page_number == 0:
                    result.abort(f"Query error: {e}")
                    result.track_audit(self.audit.record(
                        event_type="expiration_cleanup",
                        status="error",
                        message=f"Batch processing failed: {e}",
                        metadata={"error": str(e)},
                    ))
                    return result
                result.errors.append(f"Query error: {e}")
                break

            if not page:
                break
            page_number += 1

            # Reclaimed rows leave the result set; only rows that still match
            # push the next page further along.
            still_matching = 0
            for block in page:
                if not self._process_block(block, result):
                    still_matching += 1

            if len(page) < self.batch_size:
                break
            offset += still_matching

        self._log_summary(result, today)
        return result

    def _process_block(self, block: ContentBlock, result: SweepResult) -> bool:
        """Reclaim one block.

        Returns:
            True if the block no longer matches the expiration query
        """
        result.bump("processed")

        expected = block.status
        if is_legal_transition(block.status, ContentBlockStatus.EXPIRED):
            target = ContentBlockStatus.EXPIRED
        else:
            target = None
            if block.status is not ContentBlockStatus.FAILED:
                logger.warning(
                    f"Content block {block.id} holds audio in status {block.status.value}; "
                    f"reclaiming audio without expiring it"
                )

        audio_deleted = self._delete_audio(block, result)

        try:
            if target is None:
                # No move to expired from here: status stays, audio is still reclaimed
                updated = self.store.update_fields(block.id, expected, audio_location=None)
            else:
                updated = self.store.transition(block.id, expected, target, audio_location=None)
        except PipelineError as e:
            message = f"Database update failed for {block.id}: {e}"
            logger.error(message)
            result.errors.append(message)
            result.bump("failed")
            return False

        if not updated:
            # Status changed since selection; the next run re-evaluates it
            result.bump("skipped")
            return True

        if target is not None:
            result.bump("expired")

        result.track_audit(self.audit.record(
            event_type="expiration_cleanup",
            status="success",
            message="Cleaned up expired content block",
            content_block_id=block.id,
            user_id=block.owner,
            metadata={
                "audio_deleted": audio_deleted,
                "expiration_date": block.expiration_date.isoformat(),
                "content_type": block.content_type.value,
                "previous_status": block.status.value,
            },
        ))
        return True

    def _delete_audio(self, block: ContentBlock, result: SweepResult) -> bool:
        """Best-effort blob deletion.

        Returns:
            True if an object was deleted
        """
        storage_path: Optional[str] = self.storage.path_from_url(block.audio_location)
        error: Optional[str] = None

        if storage_path is None:
            error = f"Could not extract storage path from URL for content block {block.id}"
        else:
            try:
                deleted = self.storage.delete(storage_path)
            except StorageError as e:
                error = f"Storage deletion failed for {block.id}: {e}"
            else:
                if deleted:
                    result.bump("audio_deleted")
                return deleted

        logger.error(error)
        result.errors.append(error)
        result.track_audit(self.audit.record(
            event_type="expiration_cleanup",
            status="error",
            message=f"Failed to delete audio from storage: {error}",
            content_block_id=block.id,
            metadata={"audio_url": block.audio_location},
        ))
        return False

    def _log_summary(self, result: SweepResult, today: date) -> None:
        result.track_audit(self.audit.record(
            event_type="expiration_cleanup",
            status="success" if not result.errors else "partial_success",
            message=(
                f"Expiration cleanup completed: {result.counts['processed']} processed, "
                f"{result.counts['audio_deleted']} audio files deleted"
            ),
            metadata={
                "processed_count": result.counts["processed"],
                "expired_count": result.counts["expired"],
                "deleted_audio_count": result.counts["audio_deleted"],
                "skipped_count": result.counts["skipped"],
                "error_count": len(result.errors),
                "today": today.isoformat(),
                "batch_size": self.batch_size,
            },
        ))
