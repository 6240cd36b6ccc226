"""Recent morph history tracking."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

from config.settings import DEFAULT_HISTORY_LIMIT


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """Snapshot of one successful morph."""

    original_image: str
    morphed_image: str
    prompt: str
    seed: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: float = field(default_factory=time.time)

    @property
    def caption(self) -> str:
        return f"seed {self.seed}: {self.prompt}"


class MorphHistory:
    """Immutable most-recent-first list of history entries, capped at ``limit``."""

    __slots__ = ("_entries", "limit")

    def __init__(self, entries: Sequence[HistoryEntry] = (), limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = limit
        self._entries: Tuple[HistoryEntry, ...] = tuple(entries)[:limit]

    def add(self, entry: HistoryEntry) -> "MorphHistory":
        """Return a new history with ``entry`` first; the oldest entries fall off."""
        return MorphHistory((entry, *self._entries), limit=self.limit)

    @property
    def entries(self) -> Tuple[HistoryEntry, ...]:
        return self._entries

    def latest(self) -> Optional[HistoryEntry]:
        return self._entries[0] if self._entries else None

    def get(self, entry_id: str) -> HistoryEntry:
        """Retrieve an entry by id."""
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        raise KeyError(f"History entry '{entry_id}' not found")

    def gallery_items(self) -> List[Tuple[str, str]]:
        """Return ``(morphed_image, caption)`` pairs in display order."""
        return [(entry.morphed_image, entry.caption) for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> HistoryEntry:
        return self._entries[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MorphHistory):
            return NotImplemented
        return self._entries == other._entries and self.limit == other.limit

    def __repr__(self) -> str:
        return f"MorphHistory(entries={len(self._entries)}, limit={self.limit})"
