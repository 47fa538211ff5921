"""Tests for the audio synthesis stage."""

from unittest.mock import Mock

import pytest

from daystart.audio_synthesizer import AudioSynthesizer
from daystart.audit import AuditLog
from daystart.blob_storage import LocalBlobStorage
from daystart.config import SynthesisConfig
from daystart.errors import PermanentAPIError, StorageError, StoreUnavailableError, TransientAPIError
from daystart.results import RunOutcome
from daystart.status import ContentBlockStatus
from daystart.voice_synth import OpenAITTSClient, SynthesizedAudio

from conftest import NOW, make_block

S = ContentBlockStatus
BASE_URL = "http://localhost/audio"


def fake_audio(voice="voice_1"):
    return SynthesizedAudio(data=b"ID3-audio", duration_estimate=42, voice=voice, model="tts-1")


@pytest.fixture
def synthesis_config():
    return SynthesisConfig(_env_file=None)


@pytest.fixture
def storage(tmp_path):
    return LocalBlobStorage(tmp_path / "audio", BASE_URL)


@pytest.fixture
def tts():
    tts = Mock(spec=OpenAITTSClient)
    tts.synthesize.side_effect = lambda script, voice: fake_audio(voice)
    return tts


@pytest.fixture
def sleeps():
    return []


def make_synthesizer(store, storage, audit, tts, config, sleeps, clock):
    return AudioSynthesizer(store, storage, audit, tts, config, sleep=sleeps.append, clock=clock)


def insert_scripted(store, **overrides):
    overrides.setdefault("script", "Good morning, here are the headlines.")
    overrides.setdefault("voice", "voice_2")
    return store.insert_block(make_block(status="script_generated", **overrides))


class TestAudioSynthesizer:
    """Tests for AudioSynthesizer.run."""

    def test_generates_and_stores_audio(self, store, storage, audit, tts, synthesis_config, sleeps, clock, tmp_path):
        block = insert_scripted(store, parameters={"city": "Austin"})

        result = make_synthesizer(store, storage, audit, tts, synthesis_config, sleeps, clock).run()

        assert result.outcome is RunOutcome.SUCCEEDED
        assert result.counts == {"selected": 1, "audio_generated": 1, "skipped": 0, "failed": 0}
        tts.synthesize.assert_called_once_with("Good morning, here are the headlines.", "voice_2")

        fetched = store.get_block(block.id)
        assert fetched.status is S.READY
        assert fetched.duration_seconds == 42
        assert fetched.audio_generated_at == NOW
        assert fetched.parameters == {
            "city": "Austin",
            "audio_generated": True,
            "audio_duration": 42,
            "voice_used": "voice_2",
        }
        assert fetched.audio_location.startswith(f"{BASE_URL}/headlines/{block.id}_voice_2_")

        path = storage.path_from_url(fetched.audio_location)
        assert (tmp_path / "audio" / path).read_bytes() == b"ID3-audio"
        assert store.fetch_logs(event_type="audio_generation_success")[0].content_block_id == block.id

    def test_missing_voice_uses_default(self, store, storage, audit, tts, synthesis_config, sleeps, clock):
        insert_scripted(store, voice=None)

        make_synthesizer(store, storage, audit, tts, synthesis_config, sleeps, clock).run()

        assert tts.synthesize.call_args.args[1] == "voice_1"

    def test_transient_failure_then_success(self, store, storage, audit, synthesis_config, sleeps, clock):
        tts = Mock(spec=OpenAITTSClient)
        tts.synthesize.side_effect = [TransientAPIError("429"), fake_audio()]
        block = insert_scripted(store, retry_count=1)

        make_synthesizer(store, storage, audit, tts, synthesis_config, sleeps, clock).run()

        fetched = store.get_block(block.id)
        assert fetched.status is S.READY
        assert fetched.retry_count == 2
        assert sleeps == [1.0]

    def test_tts_failure_marks_audio_failed(self, store, storage, audit, synthesis_config, sleeps, clock):
        tts = Mock(spec=OpenAITTSClient)
        tts.synthesize.side_effect = PermanentAPIError("bad voice")
        block = insert_scripted(store)

        result = make_synthesizer(store, storage, audit, tts, synthesis_config, sleeps, clock).run()

        assert result.outcome is RunOutcome.PARTIAL
        assert result.counts["failed"] == 1
        fetched = store.get_block(block.id)
        assert fetched.status is S.AUDIO_FAILED
        assert fetched.retry_count == 1
        assert fetched.audio_location is None
        assert fetched.parameters["audio_error"] == "bad voice"
        assert store.fetch_logs(event_type="audio_generation_failed")[0].metadata["attempts"] == 1

    def test_exhausted_retries(self, store, storage, audit, synthesis_config, sleeps, clock):
        tts = Mock(spec=OpenAITTSClient)
        tts.synthesize.side_effect = TransientAPIError("timeout")
        block = insert_scripted(store)

        make_synthesizer(store, storage, audit, tts, synthesis_config, sleeps, clock).run()

        fetched = store.get_block(block.id)
        assert fetched.status is S.AUDIO_FAILED
        assert fetched.retry_count == 4
        assert sleeps == [1.0, 2.0, 4.0]

    def test_upload_failure_marks_audio_failed(self, store, audit, tts, synthesis_config, sleeps, clock):
        storage = Mock(spec=LocalBlobStorage)
        storage.upload.side_effect = StorageError("bucket full")
        block = insert_scripted(store)

        result = make_synthesizer(store, storage, audit, tts, synthesis_config, sleeps, clock).run()

        assert result.outcome is RunOutcome.PARTIAL
        assert store.get_status(block.id) is S.AUDIO_FAILED
        assert "bucket full" in store.get_block(block.id).parameters["audio_error"]

    def test_lost_race_discards_upload(self, store, second_store, storage, audit, synthesis_config, sleeps, clock, tmp_path):
        """The stuck sweep reclaimed the block while TTS was running."""
        block = insert_scripted(store)

        def slow_synthesize(script, voice):
            second_store.transition(block.id, S.AUDIO_GENERATING, S.AUDIO_FAILED, retry_count=0)
            return fake_audio(voice)

        tts = Mock(spec=OpenAITTSClient)
        tts.synthesize.side_effect = slow_synthesize

        result = make_synthesizer(store, storage, audit, tts, synthesis_config, sleeps, clock).run()

        assert result.counts["skipped"] == 1
        assert result.counts["audio_generated"] == 0
        fetched = store.get_block(block.id)
        assert fetched.status is S.AUDIO_FAILED
        assert fetched.audio_location is None
        assert list((tmp_path / "audio").rglob("*.mp3")) == []

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"voice": "voice_9"}, "Invalid voice"),
            ({"script": "   "}, "Missing or empty script"),
        ],
    )
    def test_invalid_block_moves_to_audio_failed(
        self, store, storage, audit, tts, synthesis_config, sleeps, clock, overrides, message
    ):
        block = insert_scripted(store, parameters={"city": "Austin"}, **overrides)

        result = make_synthesizer(store, storage, audit, tts, synthesis_config, sleeps, clock).run()

        assert result.outcome is RunOutcome.PARTIAL
        assert result.counts["failed"] == 1
        assert any(message in e for e in result.errors)
        fetched = store.get_block(block.id)
        assert fetched.status is S.AUDIO_FAILED
        assert fetched.parameters["city"] == "Austin"
        assert any(message in e for e in fetched.parameters["validation_errors"])
        assert store.fetch_logs(event_type="audio_validation_failed")[0].content_block_id == block.id
        tts.synthesize.assert_not_called()

    def test_invalid_blocks_do_not_stall_the_queue(self, store, storage, audit, tts, synthesis_config, sleeps, clock):
        """A full batch of unvoiceable blocks clears so later blocks get through."""
        bad = [insert_scripted(store, voice="voice_99", priority=0) for _ in range(synthesis_config.audio_batch_size)]
        good = insert_scripted(store, voice="voice_1", priority=1)
        synthesizer = make_synthesizer(store, storage, audit, tts, synthesis_config, sleeps, clock)

        first = synthesizer.run()
        second = synthesizer.run()

        assert first.counts["failed"] == len(bad)
        assert second.counts == {"selected": 1, "audio_generated": 1, "skipped": 0, "failed": 0}
        assert {store.get_status(b.id) for b in bad} == {S.AUDIO_FAILED}
        assert store.get_status(good.id) is S.READY

    def test_priority_order_and_batch_size(self, store, storage, audit, tts, sleeps, clock):
        low = insert_scripted(store, priority=9)
        high = insert_scripted(store, priority=1)
        middle = insert_scripted(store, priority=3)

        config = SynthesisConfig(_env_file=None, audio_batch_size=2)
        make_synthesizer(store, storage, audit, tts, config, sleeps, clock).run()

        assert store.get_status(high.id) is S.READY
        assert store.get_status(middle.id) is S.READY
        assert store.get_status(low.id) is S.SCRIPT_GENERATED

    def test_query_failure_fails_run(self, storage, tts, synthesis_config, sleeps, clock):
        store = Mock()
        store.find_by_status.side_effect = StoreUnavailableError("database is locked")
        audit = Mock(spec=AuditLog)

        result = make_synthesizer(store, storage, audit, tts, synthesis_config, sleeps, clock).run()

        assert result.outcome is RunOutcome.FAILED
        assert audit.record.call_args.kwargs["event_type"] == "audio_generation_batch_failed"
