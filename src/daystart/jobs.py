"""Entry points shared by the HTTP triggers and the CLIs.

Each job wires one component from configuration and runs it once. Vendor
clients and storage may be injected; otherwise they are built from config.
"""

import time
from datetime import datetime
from typing import Callable, Optional

from .audio_synthesizer import AudioSynthesizer
from .audit import AuditLog
from .blob_storage import BlobStorage, create_blob_storage
from .config import PipelineConfig
from .content_store import ContentStore
from .expiration_reclaimer import ExpirationReclaimer
from .models import utc_now
from .results import SweepResult
from .script_synthesizer import ScriptSynthesizer
from .script_writer import ClaudeScriptWriter
from .stuck_reclaimer import StuckContentReclaimer
from .voice_synth import OpenAITTSClient

Clock = Callable[[], datetime]


def cleanup_stuck_content(
    config: PipelineConfig,
    store: ContentStore,
    clock: Clock = utc_now,
) -> SweepResult:
    return StuckContentReclaimer(store, AuditLog(store), config.sweeps, clock=clock).sweep()


def expire_content(
    config: PipelineConfig,
    store: ContentStore,
    storage: Optional[BlobStorage] = None,
    clock: Clock = utc_now,
) -> SweepResult:
    storage = storage or create_blob_storage(config)
    return ExpirationReclaimer(store, storage, AuditLog(store), config.sweeps, clock=clock).sweep()


def generate_scripts(
    config: PipelineConfig,
    store: ContentStore,
    writer: Optional[ClaudeScriptWriter] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Clock = utc_now,
) -> SweepResult:
    """Raises ValueError if no writer is given and the LLM key is missing."""
    writer = writer or ClaudeScriptWriter.from_config(config)
    return ScriptSynthesizer(
        store, AuditLog(store), writer, config.synthesis, sleep=sleep, clock=clock
    ).run()


def generate_audio(
    config: PipelineConfig,
    store: ContentStore,
    storage: Optional[BlobStorage] = None,
    tts: Optional[OpenAITTSClient] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Clock = utc_now,
) -> SweepResult:
    """Raises ValueError if no TTS client is given and the TTS key is missing."""
    tts = tts or OpenAITTSClient.from_config(config)
    storage = storage or create_blob_storage(config)
    return AudioSynthesizer(
        store, storage, AuditLog(store), tts, config.synthesis, sleep=sleep, clock=clock
    ).run()
