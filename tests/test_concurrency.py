"""Tests for the re-fetch then conditional-write protocol."""

from unittest.mock import Mock

import pytest

from daystart.concurrency import TransitionResult, advance
from daystart.content_store import ContentStore
from daystart.errors import IllegalTransitionError
from daystart.status import ContentBlockStatus

from conftest import make_block

S = ContentBlockStatus


def test_applies_when_status_unchanged(store):
    block = store.insert_block(make_block())

    result = advance(store, block.id, "content_ready", "script_generating")

    assert result is TransitionResult.APPLIED
    assert result.applied
    assert store.get_status(block.id) is S.SCRIPT_GENERATING


def test_misses_when_another_worker_moved_block(store, second_store):
    block = store.insert_block(make_block(status="script_generating"))
    second_store.transition(block.id, S.SCRIPT_GENERATING, S.SCRIPT_GENERATED, script="done")

    result = advance(store, block.id, S.SCRIPT_GENERATING, S.SCRIPT_FAILED)

    assert result is TransitionResult.MISSED
    assert not result.applied
    assert store.get_block(block.id).script == "done"


def test_misses_for_missing_block(store):
    assert advance(store, "missing", S.CONTENT_READY, S.SCRIPT_GENERATING) is TransitionResult.MISSED


def test_illegal_transition_raises_before_reading():
    store = Mock(spec=ContentStore)

    with pytest.raises(IllegalTransitionError):
        advance(store, "block-1", S.READY, S.SCRIPT_GENERATING)

    store.get_status.assert_not_called()
    store.transition.assert_not_called()


def test_status_matches_but_write_misses():
    """The write is still conditional even after a matching re-fetch."""
    store = Mock(spec=ContentStore)
    store.get_status.return_value = S.AUDIO_GENERATING
    store.transition.return_value = False

    result = advance(store, "block-1", S.AUDIO_GENERATING, S.READY, audio_location="x")

    assert result is TransitionResult.MISSED
    store.transition.assert_called_once_with(
        "block-1", S.AUDIO_GENERATING, S.READY, audio_location="x"
    )


def test_skips_write_when_refetch_differs():
    store = Mock(spec=ContentStore)
    store.get_status.return_value = S.AUDIO_FAILED

    result = advance(store, "block-1", S.AUDIO_GENERATING, S.READY)

    assert result is TransitionResult.MISSED
    store.transition.assert_not_called()
