"""Script synthesis stage: content_ready -> script_generated.

Per block:

1. Validate the record (content type with a prompt, non-empty content, status);
   a block that fails moves to ``content_failed``
2. Claim it with a conditional move to ``script_generating``
3. Generate a script per voice through the LLM, with capped backoff
4. Conditionally move it to ``script_generated`` or ``script_failed``

User content gets one script in the user's voice. Shared content gets one per
configured voice: the original row takes the first voice and each other voice
becomes a new ``script_generated`` row pointing back at the original.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .audit import AuditLog
from .concurrency import advance
from .config import SynthesisConfig
from .content_store import ContentStore
from .errors import ExternalAPIError, PipelineError, RetriesExhaustedError, StoreUnavailableError
from .models import ContentBlock, utc_now
from .prompts import prompt_for
from .results import SweepResult
from .retry import BackoffPolicy, call_with_retry
from .script_writer import ClaudeScriptWriter
from .status import ContentBlockStatus

logger = logging.getLogger(__name__)


@dataclass
class VoiceScript:
    """Result of generating one voice's script."""

    voice: str
    script: Optional[str]
    attempts: int
    failures: int
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.script is not None


class ScriptSynthesizer:
    """Generates scripts for content_ready blocks."""

    def __init__(
        self,
        store: ContentStore,
        audit: AuditLog,
        writer: ClaudeScriptWriter,
        config: SynthesisConfig,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.audit = audit
        self.writer = writer
        self.config = config
        self.sleep = sleep
        self.clock = clock
        self.policy = BackoffPolicy(
            max_retries=config.max_retries,
            base_delay=config.retry_base_delay_seconds,
            max_delay=config.retry_max_delay_seconds,
        )

    def validate(self, block: ContentBlock) -> list[str]:
        """Return validation errors for a block; empty if it can be scripted."""
        errors = []
        if prompt_for(block.content_type) is None:
            errors.append(f"Invalid content type: {block.content_type.value}")
        if not block.raw_content or not block.raw_content.strip():
            errors.append(f"Missing or empty content for content block {block.id}")
        if block.status is not ContentBlockStatus.CONTENT_READY:
            errors.append(f"Invalid status for processing: {block.status.value}")
        if block.date is None:
            errors.append(f"Missing date for content block {block.id}")
        return errors

    def run(self) -> SweepResult:
        """Process one batch of content_ready blocks, oldest first."""
        result = SweepResult(
            name="generate-script",
            counts={"selected": 0, "scripts_generated": 0, "skipped": 0, "failed": 0},
        )

        try:
            blocks = self.store.find_by_status(
                ContentBlockStatus.CONTENT_READY,
                self.config.script_batch_size,
                order_by="created_at",
            )
        except StoreUnavailableError as e:
            logger.error(f"Failed to query content blocks: {e}")
            result.abort(f"Failed to query content blocks: {e}")
            result.track_audit(self.audit.record(
                event_type="script_generation_batch_failed",
                status="error",
                message=f"Script generation batch failed: {e}",
                metadata={"error": str(e), "batch_size": self.config.script_batch_size},
            ))
            return result

        result.counts["selected"] = len(blocks)
        if not blocks:
            logger.info("No content_ready rows found")

        for block in blocks:
            self._process_block(block, result)

        result.track_audit(self.audit.record(
            event_type="script_generation_batch_complete",
            status="success" if not result.errors else "partial_success",
            message="Script generation batch completed",
            metadata={
                "total_content_blocks": len(blocks),
                "total_processed": result.counts["scripts_generated"],
                "total_errors": len(result.errors),
                "batch_size": self.config.script_batch_size,
            },
        ))
        return result

    def _voices_for(self, block: ContentBlock) -> list[str]:
        if block.is_shared:
            return self.config.voices
        if block.voice in self.config.voice_map:
            return [block.voice]
        return [self.config.default_voice]

    def _generate(self, block: ContentBlock, voice: str) -> VoiceScript:
        attempts = 0

        def attempt() -> str:
            nonlocal attempts
            attempts += 1
            return self.writer.write(
                block.content_type,
                block.raw_content,
                voice,
                block.date,
                block.parameters,
            )

        try:
            outcome = call_with_retry(
                attempt,
                self.policy,
                sleep=self.sleep,
                description=f"script generation for {block.id} ({voice})",
            )
        except RetriesExhaustedError as e:
            return VoiceScript(voice, None, attempts, attempts, error=str(e.last_error))
        except ExternalAPIError as e:
            return VoiceScript(voice, None, attempts, attempts, error=str(e))

        return VoiceScript(voice, outcome.value, outcome.attempts, len(outcome.failures))

    def _process_block(self, block: ContentBlock, result: SweepResult) -> None:
        errors = self.validate(block)
        if errors:
            for error in errors:
                logger.error(error)
            result.errors.extend(errors)
            result.bump("failed")
            if block.status is ContentBlockStatus.CONTENT_READY:
                self._reject(block, errors, result)
            return

        try:
            claimed = advance(
                self.store,
                block.id,
                ContentBlockStatus.CONTENT_READY,
                ContentBlockStatus.SCRIPT_GENERATING,
            )
        except PipelineError as e:
            result.errors.append(f"Processing error for {block.id}: {e}")
            result.bump("failed")
            return

        if not claimed.applied:
            result.bump("skipped")
            return

        result.track_audit(self.audit.record(
            event_type="script_generation_started",
            status="info",
            message=f"Starting script generation for {block.content_type.value}",
            content_block_id=block.id,
            user_id=block.owner,
            metadata={
                "content_type": block.content_type.value,
                "date": block.date.isoformat(),
                "user_id": block.owner,
                "is_user_content": not block.is_shared,
            },
        ))

        primary, *extra_voices = [self._generate(block, voice) for voice in self._voices_for(block)]

        if not self._finish_primary(block, primary, result):
            # Lost the block to another worker; its siblings are not ours to create
            return

        for voice_script in extra_voices:
            self._insert_sibling(block, voice_script, result)

    def _reject(self, block: ContentBlock, errors: list[str], result: SweepResult) -> None:
        """Move a block that can never be scripted out of the queue."""
        try:
            moved = advance(
                self.store,
                block.id,
                ContentBlockStatus.CONTENT_READY,
                ContentBlockStatus.CONTENT_FAILED,
                parameters={**block.parameters, "validation_errors": errors},
            )
        except PipelineError as e:
            result.errors.append(f"Failed to mark {block.id} as content_failed: {e}")
            return

        if not moved.applied:
            logger.info(f"Content block {block.id} already moved on; validation failure not recorded")
            return

        result.track_audit(self.audit.record(
            event_type="script_validation_failed",
            status="error",
            message=f"Content block {block.id} cannot be scripted: {'; '.join(errors)}",
            content_block_id=block.id,
            user_id=block.owner,
            metadata={"content_type": block.content_type.value, "errors": errors},
        ))

    def _finish_primary(self, block: ContentBlock, voice_script: VoiceScript, result: SweepResult) -> bool:
        """Conditionally record the original row's outcome.

        Returns:
            True if this worker still owned the block
        """
        now = self.clock()
        metadata = {
            "content_type": block.content_type.value,
            "date": block.date.isoformat(),
            "user_id": block.owner,
            "voice": voice_script.voice,
        }

        try:
            if voice_script.ok:
                moved = advance(
                    self.store,
                    block.id,
                    ContentBlockStatus.SCRIPT_GENERATING,
                    ContentBlockStatus.SCRIPT_GENERATED,
                    script=voice_script.script,
                    voice=voice_script.voice,
                    script_generated_at=now,
                    retry_count=block.retry_count + voice_script.failures,
                )
            else:
                moved = advance(
                    self.store,
                    block.id,
                    ContentBlockStatus.SCRIPT_GENERATING,
                    ContentBlockStatus.SCRIPT_FAILED,
                    voice=voice_script.voice,
                    retry_count=block.retry_count + voice_script.attempts,
                    parameters={**block.parameters, "last_error": voice_script.error},
                )
        except PipelineError as e:
            result.errors.append(f"Failed to update {voice_script.voice} for {block.id}: {e}")
            result.bump("failed")
            return False

        if not moved.applied:
            logger.warning(f"Content block {block.id} left script_generating elsewhere; result discarded")
            result.bump("skipped")
            return False

        if voice_script.ok:
            result.bump("scripts_generated")
            result.track_audit(self.audit.record(
                event_type="script_generated",
                status="success",
                message=f"Script generated successfully for {voice_script.voice}",
                content_block_id=block.id,
                user_id=block.owner,
                metadata={**metadata, "script_length": len(voice_script.script)},
            ))
        else:
            result.bump("failed")
            result.errors.append(
                f"Script generation failed for {block.id} ({voice_script.voice}): {voice_script.error}"
            )
            result.track_audit(self.audit.record(
                event_type="script_generation_failed",
                status="error",
                message=f"Script generation failed for {voice_script.voice}: {voice_script.error}",
                content_block_id=block.id,
                user_id=block.owner,
                metadata={**metadata, "attempts": voice_script.attempts},
            ))
        return True

    def _insert_sibling(self, block: ContentBlock, voice_script: VoiceScript, result: SweepResult) -> None:
        metadata = {
            "content_type": block.content_type.value,
            "date": block.date.isoformat(),
            "voice": voice_script.voice,
            "original_content_block_id": block.id,
        }

        if not voice_script.ok:
            result.errors.append(
                f"Script generation failed for {block.id} ({voice_script.voice}): {voice_script.error}"
            )
            result.track_audit(self.audit.record(
                event_type="script_generation_failed",
                status="error",
                message=f"Script generation failed for {voice_script.voice}: {voice_script.error}",
                metadata={**metadata, "attempts": voice_script.attempts},
            ))
            return

        sibling = ContentBlock(
            content_type=block.content_type,
            date=block.date,
            expiration_date=block.expiration_date,
            status=ContentBlockStatus.SCRIPT_GENERATED,
            owner=block.owner,
            raw_content=block.raw_content,
            script=voice_script.script,
            voice=voice_script.voice,
            retry_count=voice_script.failures,
            priority=block.priority,
            language_code=block.language_code,
            parameters={**block.parameters, "original_content_block_id": block.id},
            script_generated_at=self.clock(),
        )
        try:
            self.store.insert_block(sibling)
        except PipelineError as e:
            result.errors.append(f"Failed to create {voice_script.voice} row for {block.id}: {e}")
            return

        result.bump("scripts_generated")
        result.track_audit(self.audit.record(
            event_type="script_generated",
            status="success",
            message=f"Script generated successfully for {voice_script.voice}",
            content_block_id=sibling.id,
            metadata={**metadata, "script_length": len(voice_script.script)},
        ))
