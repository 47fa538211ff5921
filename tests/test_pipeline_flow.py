"""End-to-end pass through the pipeline jobs with mocked vendors."""

from unittest.mock import Mock

from daystart import jobs
from daystart.audit import AuditLog
from daystart.blob_storage import LocalBlobStorage
from daystart.producers import ContentProducer
from daystart.results import RunOutcome
from daystart.script_writer import ClaudeScriptWriter
from daystart.status import ContentBlockStatus
from daystart.voice_synth import OpenAITTSClient, SynthesizedAudio

S = ContentBlockStatus


def test_block_travels_from_producer_to_expiry(store, config, clock, tmp_path):
    storage = LocalBlobStorage(tmp_path / "audio", "http://localhost/audio")
    writer = Mock(spec=ClaudeScriptWriter)
    writer.write.return_value = "Good morning. Here is the weather."
    tts = Mock(spec=OpenAITTSClient)
    tts.synthesize.side_effect = lambda script, voice: SynthesizedAudio(
        data=b"ID3", duration_estimate=3, voice=voice, model="tts-1"
    )

    producer = ContentProducer(store, AuditLog(store), expiration_days=1, clock=clock)
    block = producer.publish("weather", "Sunny, high of 72", owner="user-1", voice="voice_3")

    scripts = jobs.generate_scripts(config, store, writer=writer, sleep=Mock(), clock=clock)
    assert scripts.outcome is RunOutcome.SUCCEEDED
    assert store.get_status(block.id) is S.SCRIPT_GENERATED

    audio = jobs.generate_audio(config, store, storage=storage, tts=tts, sleep=Mock(), clock=clock)
    assert audio.outcome is RunOutcome.SUCCEEDED
    ready = store.get_block(block.id)
    assert ready.status is S.READY
    assert storage.path_from_url(ready.audio_location) is not None

    # Nothing is stuck, and nothing has expired yet
    assert jobs.cleanup_stuck_content(config, store, clock=clock).counts["found"] == 0
    assert jobs.expire_content(config, store, storage=storage, clock=clock).counts["processed"] == 0

    clock.advance(days=2)
    expired = jobs.expire_content(config, store, storage=storage, clock=clock)

    assert expired.outcome is RunOutcome.SUCCEEDED
    assert expired.counts["audio_deleted"] == 1
    final = store.get_block(block.id)
    assert final.status is S.EXPIRED
    assert final.audio_location is None
    assert list((tmp_path / "audio").rglob("*.mp3")) == []
