"""Data shapes for the morph session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from config.settings import DEFAULT_PROMPT

SEED_UPPER_BOUND = 1_000_000
NO_IMAGE_MESSAGE = "Please upload a face image first."
GENERIC_FAILURE_MESSAGE = "Failed to morph face. Please try again."

__all__ = [
    "DEFAULT_PROMPT",
    "GENERIC_FAILURE_MESSAGE",
    "MorphOutcome",
    "MorphSession",
    "NO_IMAGE_MESSAGE",
    "SEED_UPPER_BOUND",
]


@dataclass(frozen=True, slots=True)
class MorphSession:
    """Form fields and the outcome of the latest request.

    Images are held as data URIs so they can be sent to the provider and
    rendered without touching the filesystem.
    """

    original_image: Optional[str] = None
    morphed_image: Optional[str] = None
    prompt: str = DEFAULT_PROMPT
    seed: int = 0
    is_processing: bool = False
    error: Optional[str] = None


@dataclass(frozen=True, slots=True)
class MorphOutcome:
    """Result of one provider call together with the inputs it was issued for.

    Exactly one of ``morphed_image`` and ``error`` is set.
    """

    original_image: str
    prompt: str
    seed: int
    morphed_image: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.morphed_image is not None
