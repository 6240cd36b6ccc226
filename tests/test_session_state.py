"""Session transition tests."""

from __future__ import annotations

import random
from dataclasses import replace
from pathlib import Path

import pytest
from PIL import Image

from modules.services.gemini_service import MorphRequestError
from modules.services.history_service import HistoryEntry, MorphHistory
from modules.session import state
from modules.session.models import (
    DEFAULT_PROMPT,
    GENERIC_FAILURE_MESSAGE,
    NO_IMAGE_MESSAGE,
    SEED_UPPER_BOUND,
    MorphOutcome,
    MorphSession,
)

IMAGE_A = "data:image/png;base64,AAAA"
IMAGE_B = "data:image/png;base64,BBBB"


class RecordingMorph:
    """Stand-in for GeminiMorphService.morph."""

    def __init__(self, result: str = IMAGE_B, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[str, str, int]] = []

    def __call__(self, image: str, prompt: str, seed: int) -> str:
        self.calls.append((image, prompt, seed))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def png_file(tmp_path: Path) -> Path:
    path = tmp_path / "face.png"
    Image.new("RGB", (4, 4), color=(200, 120, 90)).save(path)
    return path


def test_new_session_defaults():
    session = state.new_session(rng=random.Random(1))

    assert session.prompt == DEFAULT_PROMPT
    assert 0 <= session.seed < SEED_UPPER_BOUND
    assert session.original_image is None
    assert session.morphed_image is None
    assert session.is_processing is False
    assert session.error is None


def test_select_image_loads_file_and_clears_outcome(png_file):
    session = MorphSession(morphed_image=IMAGE_B, error="old error")

    updated = state.select_image(session, png_file)

    assert updated.original_image is not None
    assert updated.original_image.startswith("data:image/png;base64,")
    assert updated.morphed_image is None
    assert updated.error is None
    assert session.error == "old error"


def test_select_image_accepts_bytes(png_file):
    updated = state.select_image(MorphSession(), png_file.read_bytes())

    assert updated.original_image is not None
    assert updated.original_image.startswith("data:image/png;base64,")


def test_select_image_none_is_noop():
    session = MorphSession(original_image=IMAGE_A)

    assert state.select_image(session, None) is session


def test_set_prompt_and_seed():
    session = state.set_seed(state.set_prompt(MorphSession(), "make it an oil painting"), "123")

    assert session.prompt == "make it an oil painting"
    assert session.seed == 123


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(42, 42), (42.0, 42), ("  7 ", 7), ("abc", 0), ("", 0), (None, 0), (float("nan"), 0)],
)
def test_parse_seed(raw, expected):
    assert state.parse_seed(raw) == expected


def test_randomize_seed_stays_in_range():
    rng = random.Random(1234)
    session = MorphSession()
    for _ in range(500):
        session = state.randomize_seed(session, rng)
        assert 0 <= session.seed < SEED_UPPER_BOUND
        assert isinstance(session.seed, int)


def test_can_submit():
    assert state.can_submit(MorphSession()) is False
    assert state.can_submit(MorphSession(original_image=IMAGE_A)) is True
    assert state.can_submit(MorphSession(original_image=IMAGE_A, is_processing=True)) is False


def test_submit_without_image_rejected_locally():
    morph = RecordingMorph()
    history = MorphHistory()

    session, updated_history = state.submit(MorphSession(), history, morph)

    assert session.error == NO_IMAGE_MESSAGE
    assert session.is_processing is False
    assert morph.calls == []
    assert updated_history is history
    assert len(updated_history) == 0


def test_begin_submit_marks_processing_and_clears_error():
    session = state.begin_submit(MorphSession(original_image=IMAGE_A, error="stale"))

    assert session.is_processing is True
    assert session.error is None


def test_submit_success_scenario():
    morph = RecordingMorph(result=IMAGE_B)
    session = MorphSession(original_image=IMAGE_A, prompt="turn into a vampire", seed=42)

    session, history = state.submit(session, MorphHistory(), morph)

    assert morph.calls == [(IMAGE_A, "turn into a vampire", 42)]
    assert session.morphed_image == IMAGE_B
    assert session.is_processing is False
    assert session.error is None
    assert len(history) == 1
    entry = history[0]
    assert (entry.original_image, entry.morphed_image, entry.prompt, entry.seed) == (
        IMAGE_A,
        IMAGE_B,
        "turn into a vampire",
        42,
    )


def test_each_success_prepends_one_entry_and_caps_history():
    history = MorphHistory()
    session = MorphSession(original_image=IMAGE_A)
    for seed in range(12):
        session = state.set_seed(session, seed)
        previous_length = len(history)
        session, history = state.submit(session, history, RecordingMorph(result=f"result-{seed}"))
        assert history[0].seed == seed
        assert len(history) == min(previous_length + 1, 10)

    assert [entry.seed for entry in history] == list(range(11, 1, -1))


def test_submit_failure_keeps_previous_result_and_history():
    history = MorphHistory().add(
        HistoryEntry(original_image=IMAGE_A, morphed_image=IMAGE_B, prompt="p", seed=1)
    )
    session = MorphSession(original_image=IMAGE_A, morphed_image=IMAGE_B)
    morph = RecordingMorph(error=MorphRequestError("no image returned"))

    session, updated_history = state.submit(session, history, morph)

    assert session.error == "no image returned"
    assert session.morphed_image == IMAGE_B
    assert session.original_image == IMAGE_A
    assert session.is_processing is False
    assert updated_history is history


def test_submit_failure_without_message_uses_generic_text():
    morph = RecordingMorph(error=RuntimeError())

    session, _ = state.submit(MorphSession(original_image=IMAGE_A), MorphHistory(), morph)

    assert session.error == GENERIC_FAILURE_MESSAGE


def test_complete_submit_uses_given_id_and_timestamp():
    pending = state.begin_submit(MorphSession(original_image=IMAGE_A, prompt="p", seed=9))

    session, history = state.complete_submit(pending, MorphHistory(), IMAGE_B, now=100.0, entry_id="fixed")

    assert history[0].id == "fixed"
    assert history[0].created_at == 100.0
    assert session.is_processing is False


def test_restore_from_history_round_trip():
    entry = HistoryEntry(original_image=IMAGE_A, morphed_image=IMAGE_B, prompt="vampire", seed=77)
    session = MorphSession(
        original_image="other",
        morphed_image=None,
        prompt="something else",
        seed=3,
        is_processing=True,
        error="kept",
    )

    restored = state.restore_from_history(session, entry)

    assert (restored.original_image, restored.morphed_image, restored.prompt, restored.seed) == (
        entry.original_image,
        entry.morphed_image,
        entry.prompt,
        entry.seed,
    )
    assert restored.is_processing is True
    assert restored.error == "kept"
    assert restored == replace(session, original_image=IMAGE_A, morphed_image=IMAGE_B, prompt="vampire", seed=77)


def test_select_image_rejects_non_image_bytes():
    session = MorphSession(original_image=IMAGE_A, morphed_image=IMAGE_B)

    with pytest.raises(ValueError, match="not a decodable image"):
        state.select_image(session, b"%PDF-1.7 definitely not a face")


def test_select_image_rejects_text_file(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")

    with pytest.raises(ValueError, match="notes.txt"):
        state.select_image(MorphSession(), path)


def test_clear_image_drops_image_and_result():
    session = MorphSession(original_image=IMAGE_A, morphed_image=IMAGE_B, prompt="keep", seed=9, error="old")

    cleared = state.clear_image(session)

    assert cleared.original_image is None
    assert cleared.morphed_image is None
    assert cleared.error is None
    assert cleared.prompt == "keep"
    assert cleared.seed == 9
    assert state.can_submit(cleared) is False


def test_run_morph_captures_request_snapshot():
    morph = RecordingMorph()
    pending = state.begin_submit(MorphSession(original_image=IMAGE_A, prompt="vampire", seed=42))

    outcome = state.run_morph(pending, morph)

    assert outcome == MorphOutcome(original_image=IMAGE_A, prompt="vampire", seed=42, morphed_image=IMAGE_B)
    assert outcome.succeeded is True
    assert morph.calls == [(IMAGE_A, "vampire", 42)]


def test_run_morph_turns_exceptions_into_outcome():
    pending = state.begin_submit(MorphSession(original_image=IMAGE_A, seed=3))

    outcome = state.run_morph(pending, RecordingMorph(error=MorphRequestError("")))

    assert outcome is not None
    assert outcome.succeeded is False
    assert outcome.error == GENERIC_FAILURE_MESSAGE


def test_run_morph_skips_sessions_not_processing():
    morph = RecordingMorph()

    assert state.run_morph(MorphSession(original_image=IMAGE_A), morph) is None
    assert morph.calls == []


def test_apply_outcome_keeps_edits_made_while_in_flight():
    morph = RecordingMorph()
    pending = state.begin_submit(MorphSession(original_image=IMAGE_A, prompt="vampire", seed=42))
    outcome = state.run_morph(pending, morph)
    edited = state.randomize_seed(state.set_prompt(pending, "werewolf"), random.Random(3))

    session, history = state.apply_outcome(edited, MorphHistory(), outcome)

    assert session.prompt == "werewolf"
    assert session.seed == edited.seed
    assert session.seed != 42
    assert session.morphed_image == IMAGE_B
    assert session.is_processing is False
    entry = history.latest()
    assert (entry.prompt, entry.seed, entry.original_image) == ("vampire", 42, IMAGE_A)


def test_apply_outcome_failure_keeps_edits_and_history():
    pending = state.begin_submit(MorphSession(original_image=IMAGE_A, morphed_image="previous", seed=1))
    outcome = state.run_morph(pending, RecordingMorph(error=MorphRequestError("quota")))
    edited = state.set_prompt(pending, "new idea")
    history = MorphHistory([HistoryEntry(original_image=IMAGE_A, morphed_image="previous", prompt="old", seed=1)])

    session, updated = state.apply_outcome(edited, history, outcome)

    assert session.prompt == "new idea"
    assert session.error == "quota"
    assert session.morphed_image == "previous"
    assert session.is_processing is False
    assert updated is history


def test_apply_outcome_after_image_replaced_only_records_history(png_file):
    pending = state.begin_submit(MorphSession(original_image=IMAGE_A, prompt="vampire", seed=42))
    outcome = state.run_morph(pending, RecordingMorph())
    replaced = state.select_image(pending, png_file)

    session, history = state.apply_outcome(replaced, MorphHistory(), outcome)

    assert session.original_image == replaced.original_image
    assert session.morphed_image is None
    assert session.is_processing is False
    assert len(history) == 1
    assert history.latest().original_image == IMAGE_A


def test_apply_outcome_without_request_clears_processing():
    session, history = state.apply_outcome(MorphSession(is_processing=True), MorphHistory(), None)

    assert session.is_processing is False
    assert len(history) == 0
