"""Audio synthesis stage: script_generated -> ready.

Blocks are processed sequentially, at most ``audio_batch_size`` per run (the
TTS vendor's concurrency ceiling). Audio is uploaded under a path unique to
the block, voice and attempt before the block is conditionally moved to
``ready``; a lost race leaves an orphaned object that is deleted again.
"""

import logging
import time
from datetime import datetime
from typing import Callable, Optional

from .audit import AuditLog
from .blob_storage import BlobStorage, build_audio_path
from .concurrency import advance
from .config import SynthesisConfig
from .content_store import ContentStore
from .errors import ExternalAPIError, PipelineError, RetriesExhaustedError, StorageError, StoreUnavailableError
from .models import ContentBlock, utc_now
from .results import SweepResult
from .retry import BackoffPolicy, call_with_retry
from .status import ContentBlockStatus
from .voice_synth import OpenAITTSClient, SynthesizedAudio

logger = logging.getLogger(__name__)


class AudioSynthesizer:
    """Generates and stores audio for script_generated blocks."""

    def __init__(
        self,
        store: ContentStore,
        storage: BlobStorage,
        audit: AuditLog,
        tts: OpenAITTSClient,
        config: SynthesisConfig,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.storage = storage
        self.audit = audit
        self.tts = tts
        self.config = config
        self.sleep = sleep
        self.clock = clock
        self.policy = BackoffPolicy(
            max_retries=config.max_retries,
            base_delay=config.retry_base_delay_seconds,
            max_delay=config.retry_max_delay_seconds,
        )

    def voice_for(self, block: ContentBlock) -> str:
        return block.voice or self.config.default_voice

    def validate(self, block: ContentBlock) -> list[str]:
        errors = []
        if not block.script or not block.script.strip():
            errors.append(f"Missing or empty script for content block {block.id}")
        if block.status is not ContentBlockStatus.SCRIPT_GENERATED:
            errors.append(f"Invalid status for audio generation: {block.status.value}")
        if self.voice_for(block) not in self.config.voice_map:
            errors.append(f"Invalid voice for content block {block.id}: {block.voice}")
        return errors

    def run(self) -> SweepResult:
        """Process one batch of script_generated blocks in priority order."""
        result = SweepResult(
            name="generate-audio",
            counts={"selected": 0, "audio_generated": 0, "skipped": 0, "failed": 0},
        )

        try:
            blocks = self.store.find_by_status(
                ContentBlockStatus.SCRIPT_GENERATED,
                self.config.audio_batch_size,
                order_by="priority",
                require_script=True,
            )
        except StoreUnavailableError as e:
            logger.error(f"Failed to query content blocks: {e}")
            result.abort(f"Failed to query content blocks: {e}")
            result.track_audit(self.audit.record(
                event_type="audio_generation_batch_failed",
                status="error",
                message=f"Audio generation batch failed: {e}",
                metadata={"error": str(e), "batch_size": self.config.audio_batch_size},
            ))
            return result

        result.counts["selected"] = len(blocks)
        logger.info(f"Processing {len(blocks)} content blocks for audio generation")

        for block in blocks:
            self._process_block(block, result)

        result.track_audit(self.audit.record(
            event_type="audio_generation_batch_complete",
            status="success" if not result.errors else "partial_success",
            message="Audio generation batch completed",
            metadata={
                "total_content_blocks": len(blocks),
                "total_processed": result.counts["audio_generated"],
                "total_errors": len(result.errors),
                "batch_size": self.config.audio_batch_size,
            },
        ))
        return result

    def _process_block(self, block: ContentBlock, result: SweepResult) -> None:
        errors = self.validate(block)
        if errors:
            for error in errors:
                logger.error(error)
            result.errors.extend(errors)
            result.bump("failed")
            if block.status is ContentBlockStatus.SCRIPT_GENERATED:
                self._reject(block, errors, result)
            return

        try:
            claimed = advance(
                self.store,
                block.id,
                ContentBlockStatus.SCRIPT_GENERATED,
                ContentBlockStatus.AUDIO_GENERATING,
            )
        except PipelineError as e:
            result.errors.append(f"Content block {block.id}: {e}")
            result.bump("failed")
            return

        if not claimed.applied:
            result.bump("skipped")
            return

        voice = self.voice_for(block)
        attempts = 0

        def attempt() -> SynthesizedAudio:
            nonlocal attempts
            attempts += 1
            return self.tts.synthesize(block.script, voice)

        audio: Optional[SynthesizedAudio] = None
        failures = 0
        storage_path: Optional[str] = None
        try:
            outcome = call_with_retry(
                attempt,
                self.policy,
                sleep=self.sleep,
                description=f"audio generation for {block.id}",
            )
            audio, failures = outcome.value, len(outcome.failures)
            storage_path = build_audio_path(
                block.content_type.value, block.id, voice, self.clock(), extension=audio.format
            )
            self.storage.upload(storage_path, audio.data, audio.content_type)
        except RetriesExhaustedError as e:
            self._fail(block, voice, str(e.last_error), attempts, result)
            return
        except (ExternalAPIError, StorageError) as e:
            self._fail(block, voice, str(e), attempts, result)
            return

        self._finish(block, voice, audio, storage_path, failures, result)

    def _finish(
        self,
        block: ContentBlock,
        voice: str,
        audio: SynthesizedAudio,
        storage_path: str,
        failures: int,
        result: SweepResult,
    ) -> None:
        audio_url = self.storage.public_url(storage_path)
        try:
            moved = advance(
                self.store,
                block.id,
                ContentBlockStatus.AUDIO_GENERATING,
                ContentBlockStatus.READY,
                audio_location=audio_url,
                duration_seconds=audio.duration_estimate,
                audio_generated_at=self.clock(),
                retry_count=block.retry_count + failures,
                parameters={
                    **block.parameters,
                    "audio_generated": True,
                    "audio_duration": audio.duration_estimate,
                    "voice_used": voice,
                },
            )
        except PipelineError as e:
            result.errors.append(f"Content block {block.id}: {e}")
            result.bump("failed")
            self._discard_upload(storage_path)
            return

        if not moved.applied:
            logger.warning(f"Content block {block.id} left audio_generating elsewhere; discarding audio")
            result.bump("skipped")
            self._discard_upload(storage_path)
            return

        result.bump("audio_generated")
        result.track_audit(self.audit.record(
            event_type="audio_generation_success",
            status="success",
            message=f"Audio generated for {block.content_type.value}",
            content_block_id=block.id,
            user_id=block.owner,
            metadata={
                "content_type": block.content_type.value,
                "audio_duration": audio.duration_estimate,
                "voice_used": voice,
                "audio_url": audio_url,
            },
        ))

    def _reject(self, block: ContentBlock, errors: list[str], result: SweepResult) -> None:
        """Move a block that can never be voiced out of the queue."""
        try:
            moved = advance(
                self.store,
                block.id,
                ContentBlockStatus.SCRIPT_GENERATED,
                ContentBlockStatus.AUDIO_FAILED,
                parameters={
                    **block.parameters,
                    "audio_generated": False,
                    "validation_errors": errors,
                },
            )
        except PipelineError as e:
            result.errors.append(f"Failed to mark {block.id} as audio_failed: {e}")
            return

        if not moved.applied:
            logger.info(f"Content block {block.id} already moved on; validation failure not recorded")
            return

        result.track_audit(self.audit.record(
            event_type="audio_validation_failed",
            status="error",
            message=f"Content block {block.id} cannot be voiced: {'; '.join(errors)}",
            content_block_id=block.id,
            user_id=block.owner,
            metadata={
                "content_type": block.content_type.value,
                "voice": block.voice,
                "errors": errors,
            },
        ))

    def _fail(self, block: ContentBlock, voice: str, error: str, attempts: int, result: SweepResult) -> None:
        result.errors.append(f"Audio generation failed for {block.id}: {error}")
        result.bump("failed")

        try:
            moved = advance(
                self.store,
                block.id,
                ContentBlockStatus.AUDIO_GENERATING,
                ContentBlockStatus.AUDIO_FAILED,
                retry_count=block.retry_count + attempts,
                parameters={
                    **block.parameters,
                    "audio_generated": False,
                    "audio_error": error,
                },
            )
        except PipelineError as e:
            result.errors.append(f"Failed to mark {block.id} as audio_failed: {e}")
            return

        if not moved.applied:
            logger.info(f"Content block {block.id} already moved on; failure not recorded")
            return

        result.track_audit(self.audit.record(
            event_type="audio_generation_failed",
            status="error",
            message=f"Audio generation failed for content block {block.id}: {error}",
            content_block_id=block.id,
            user_id=block.owner,
            metadata={
                "content_type": block.content_type.value,
                "voice": voice,
                "attempts": attempts,
                "error": error,
            },
        ))

    def _discard_upload(self, storage_path: str) -> None:
        try:
            self.storage.delete(storage_path)
        except StorageError as e:
            logger.warning(f"Failed to delete orphaned audio {storage_path}: {e}")
