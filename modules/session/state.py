"""Session state transitions.

Every function takes the current :class:`MorphSession` (and history where
relevant) and returns new values; nothing is mutated in place, so the UI layer
only has to store whatever comes back.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Union

from modules.services.history_service import HistoryEntry, MorphHistory
from modules.session.models import (
    DEFAULT_PROMPT,
    GENERIC_FAILURE_MESSAGE,
    NO_IMAGE_MESSAGE,
    SEED_UPPER_BOUND,
    MorphOutcome,
    MorphSession,
)
from modules.utils.image_utils import bytes_to_data_uri, file_to_data_uri

logger = logging.getLogger(__name__)

MorphCallable = Callable[[str, str, int], str]


def random_seed(rng: Optional[random.Random] = None) -> int:
    """Return a seed drawn uniformly from ``[0, SEED_UPPER_BOUND)``."""
    return (rng or random).randrange(SEED_UPPER_BOUND)


def parse_seed(value: Any) -> int:
    """Coerce UI input into a seed; anything unparsable becomes 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


def new_session(
    prompt: str = DEFAULT_PROMPT,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> MorphSession:
    return MorphSession(prompt=prompt, seed=random_seed(rng) if seed is None else seed)


def select_image(session: MorphSession, file: Union[str, Path, bytes, None]) -> MorphSession:
    """Load an uploaded file as the original image and clear the previous outcome."""
    if file is None:
        return session
    if isinstance(file, (bytes, bytearray)):
        original = bytes_to_data_uri(bytes(file))
    else:
        original = file_to_data_uri(file)
    return replace(session, original_image=original, morphed_image=None, error=None)


def set_prompt(session: MorphSession, text: Optional[str]) -> MorphSession:
    return replace(session, prompt=text or "")


def set_seed(session: MorphSession, value: Any) -> MorphSession:
    return replace(session, seed=parse_seed(value))


def randomize_seed(session: MorphSession, rng: Optional[random.Random] = None) -> MorphSession:
    return replace(session, seed=random_seed(rng))


def can_submit(session: MorphSession) -> bool:
    """True when an image is loaded and no request is in flight."""
    return session.original_image is not None and not session.is_processing


def begin_submit(session: MorphSession) -> MorphSession:
    """Mark the request as issued, or reject it when no image is loaded."""
    if session.original_image is None:
        return replace(session, is_processing=False, error=NO_IMAGE_MESSAGE)
    return replace(session, is_processing=True, error=None)


def complete_submit(
    session: MorphSession,
    history: MorphHistory,
    morphed_image: str,
    now: Optional[float] = None,
    entry_id: Optional[str] = None,
) -> Tuple[MorphSession, MorphHistory]:
    """Store a successful result and prepend it to the history."""
    if session.original_image is None:
        raise ValueError("Cannot record a morph without an original image")

    extra: dict[str, Any] = {}
    if now is not None:
        extra["created_at"] = now
    if entry_id is not None:
        extra["id"] = entry_id
    entry = HistoryEntry(
        original_image=session.original_image,
        morphed_image=morphed_image,
        prompt=session.prompt,
        seed=session.seed,
        **extra,
    )
    finished = replace(session, morphed_image=morphed_image, is_processing=False, error=None)
    return finished, history.add(entry)


def fail_submit(session: MorphSession, message: Optional[str]) -> MorphSession:
    """Record a failed request; the previous result and the history stay intact."""
    return replace(session, is_processing=False, error=message or GENERIC_FAILURE_MESSAGE)


def run_morph(pending: MorphSession, morph: MorphCallable) -> Optional[MorphOutcome]:
    """Call ``morph`` for a session marked as processing and capture what came back.

    The request uses the prompt, seed and image held by ``pending``; later form
    edits do not affect it. Returns None when no request was issued.
    """
    if not pending.is_processing or pending.original_image is None:
        return None
    snapshot = {"original_image": pending.original_image, "prompt": pending.prompt, "seed": pending.seed}
    try:
        result = morph(pending.original_image, pending.prompt, pending.seed)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Morph failed for seed %s: %s", pending.seed, exc)
        return MorphOutcome(error=str(exc) or GENERIC_FAILURE_MESSAGE, **snapshot)
    return MorphOutcome(morphed_image=result, **snapshot)


def apply_outcome(
    session: MorphSession,
    history: MorphHistory,
    outcome: Optional[MorphOutcome],
) -> Tuple[MorphSession, MorphHistory]:
    """Merge a finished request into the current session.

    Only the result fields change, so a prompt or seed edited while the request
    was in flight survives. The history entry records what was actually sent.
    When the image was replaced or cleared meanwhile, the result goes to the
    history only.
    """
    if outcome is None:
        return replace(session, is_processing=False), history
    superseded = session.original_image != outcome.original_image
    if not outcome.succeeded:
        if superseded:
            return replace(session, is_processing=False), history
        return fail_submit(session, outcome.error), history

    entry = HistoryEntry(
        original_image=outcome.original_image,
        morphed_image=outcome.morphed_image,
        prompt=outcome.prompt,
        seed=outcome.seed,
    )
    if superseded:
        return replace(session, is_processing=False), history.add(entry)
    finished = replace(session, morphed_image=outcome.morphed_image, is_processing=False, error=None)
    return finished, history.add(entry)


def submit(
    session: MorphSession,
    history: MorphHistory,
    morph: MorphCallable,
) -> Tuple[MorphSession, MorphHistory]:
    """Run one full submit cycle against ``morph``."""
    pending = begin_submit(session)
    if not pending.is_processing:
        return pending, history
    return finish_submit(pending, history, morph)


def finish_submit(
    pending: MorphSession,
    history: MorphHistory,
    morph: MorphCallable,
) -> Tuple[MorphSession, MorphHistory]:
    """Issue the request for a session already marked as processing."""
    return apply_outcome(pending, history, run_morph(pending, morph))


def clear_image(session: MorphSession) -> MorphSession:
    """Drop the uploaded image together with its result."""
    return replace(session, original_image=None, morphed_image=None, error=None)


def restore_from_history(session: MorphSession, entry: HistoryEntry) -> MorphSession:
    """Bring a previous result back into the form."""
    return replace(
        session,
        original_image=entry.original_image,
        morphed_image=entry.morphed_image,
        prompt=entry.prompt,
        seed=entry.seed,
    )
