"""Callback implementations for the Gradio interface."""

from __future__ import annotations

import logging
import random
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Tuple

from config.settings import AppConfig
from modules.services.gemini_service import GeminiMorphService
from modules.services.history_service import MorphHistory
from modules.session import state as transitions
from modules.session.models import MorphOutcome, MorphSession
from modules.utils.image_utils import save_download

logger = logging.getLogger(__name__)

SUBMIT_LABEL = "Generate Morph"
PROCESSING_LABEL = "Morphing Face..."
READY_STATUS = "Ready for generation. Upload a photo and hit generate to see the transformation magic."
PROCESSING_STATUS = "**Analyzing facial features...** Applying neural transformations based on seed {seed}."
RESULT_STATUS = (
    "This generation utilized seed **{seed}**. You can reuse this exact seed with the same prompt "
    "and original image to reproduce this variation, or change it to discover new facial structures."
)
ERROR_STATUS = "**Error:** {error}"


@dataclass(slots=True)
class ViewState:
    """Everything the interface needs to redraw after an event."""

    session: MorphSession
    history: MorphHistory
    status: str
    submit_label: str
    submit_enabled: bool
    gallery: List[Tuple[str, str]]

    @property
    def original_image(self) -> Optional[str]:
        return self.session.original_image

    @property
    def morphed_image(self) -> Optional[str]:
        return self.session.morphed_image

    @property
    def prompt(self) -> str:
        return self.session.prompt

    @property
    def seed(self) -> int:
        return self.session.seed


def describe_status(session: MorphSession) -> str:
    if session.is_processing:
        return PROCESSING_STATUS.format(seed=session.seed)
    if session.error:
        return ERROR_STATUS.format(error=session.error)
    if session.morphed_image:
        return RESULT_STATUS.format(seed=session.seed)
    return READY_STATUS


def render_view(session: MorphSession, history: MorphHistory) -> ViewState:
    """Derive the view from the session and history."""
    return ViewState(
        session=session,
        history=history,
        status=describe_status(session),
        submit_label=PROCESSING_LABEL if session.is_processing else SUBMIT_LABEL,
        submit_enabled=transitions.can_submit(session),
        gallery=history.gallery_items(),
    )


def build_callbacks(
    config: AppConfig,
    morph_service: Optional[GeminiMorphService] = None,
    rng: Optional[random.Random] = None,
    download_dir: Optional[str] = None,
) -> dict[str, Callable[..., Any]]:
    """Return a dictionary of Gradio callback functions."""

    if download_dir:
        Path(download_dir).mkdir(parents=True, exist_ok=True)
    download_root = download_dir or tempfile.mkdtemp(prefix="morphyface-")

    def _ensure_morph_service() -> GeminiMorphService:
        if morph_service is None:
            raise RuntimeError("Morph service is not configured")
        return morph_service

    def on_load() -> ViewState:
        session = transitions.new_session(prompt=config.default_prompt, rng=rng)
        return render_view(session, MorphHistory(limit=config.history_limit))

    def on_upload(session: MorphSession, history: MorphHistory, file_path: Optional[str]) -> ViewState:
        try:
            updated = transitions.select_image(session, file_path)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read uploaded image %s: %s", file_path, exc)
            updated = replace(session, error=f"Could not read the uploaded image: {exc}")
        return render_view(updated, history)

    def on_prompt_change(session: MorphSession, text: Optional[str]) -> MorphSession:
        return transitions.set_prompt(session, text)

    def on_seed_change(session: MorphSession, value: Any) -> MorphSession:
        return transitions.set_seed(session, value)

    def on_randomize_seed(session: MorphSession, history: MorphHistory) -> ViewState:
        return render_view(transitions.randomize_seed(session, rng), history)

    def on_clear_image(session: MorphSession, history: MorphHistory) -> ViewState:
        return render_view(transitions.clear_image(session), history)

    def on_begin_submit(
        session: MorphSession,
        history: MorphHistory,
        prompt: Optional[str] = None,
        seed: Any = None,
    ) -> ViewState:
        # Form values travel with the click so a late input event cannot be lost.
        if prompt is not None:
            session = transitions.set_prompt(session, prompt)
        if seed is not None:
            session = transitions.set_seed(session, seed)
        return render_view(transitions.begin_submit(session), history)

    def on_run_morph(pending: MorphSession) -> Optional[MorphOutcome]:
        if not pending.is_processing:
            return None
        service = _ensure_morph_service()
        return transitions.run_morph(pending, service.morph)

    def on_apply_outcome(
        session: MorphSession,
        history: MorphHistory,
        outcome: Optional[MorphOutcome],
    ) -> ViewState:
        finished, updated_history = transitions.apply_outcome(session, history, outcome)
        return render_view(finished, updated_history)

    def on_submit(
        session: MorphSession,
        history: MorphHistory,
        prompt: Optional[str] = None,
        seed: Any = None,
    ) -> Iterator[ViewState]:
        """Run begin, call and apply back to back, yielding each view."""
        pending = on_begin_submit(session, history, prompt, seed)
        yield pending
        if not pending.session.is_processing:
            return
        outcome = on_run_morph(pending.session)
        yield on_apply_outcome(pending.session, pending.history, outcome)

    def on_export_download(session: MorphSession, history: MorphHistory) -> Optional[str]:
        """Write the current result as ``morph-seed-<seed>.png`` and return its path.

        The seed is the one the result was generated with, which can differ from
        the form value once the user has moved on.
        """
        if not session.morphed_image:
            return None
        seed = next(
            (entry.seed for entry in history if entry.morphed_image == session.morphed_image),
            session.seed,
        )
        target_dir = tempfile.mkdtemp(dir=download_root)
        try:
            path = save_download(session.morphed_image, seed, target_dir)
        except (OSError, ValueError) as exc:
            logger.warning("Could not export result for seed %s: %s", seed, exc)
            return None
        return str(path) if path is not None else None

    def on_select_history(session: MorphSession, history: MorphHistory, index: Any) -> ViewState:
        try:
            entry = history[int(index)]
        except (IndexError, TypeError, ValueError):
            return render_view(session, history)
        return render_view(transitions.restore_from_history(session, entry), history)

    return {
        "on_load": on_load,
        "on_upload": on_upload,
        "on_prompt_change": on_prompt_change,
        "on_seed_change": on_seed_change,
        "on_randomize_seed": on_randomize_seed,
        "on_clear_image": on_clear_image,
        "on_begin_submit": on_begin_submit,
        "on_run_morph": on_run_morph,
        "on_apply_outcome": on_apply_outcome,
        "on_submit": on_submit,
        "on_export_download": on_export_download,
        "on_select_history": on_select_history,
    }
