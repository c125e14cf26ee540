from __future__ import annotations

from typing import Iterable, Iterator, List, Optional

from webagent.models import TranscriptEntry


class ChatTranscript:
    """Append-only, in-memory log of chat turns in chronological order."""

    def __init__(self, entries: Optional[Iterable[TranscriptEntry]] = None) -> None:
        self._entries: List[TranscriptEntry] = []
        for entry in entries or ():
            self.append(entry)

    def append(self, entry: TranscriptEntry) -> None:
        # Past entries are never mutated
        self._entries.append(entry.model_copy())

    def last_n(self, n: int) -> List[TranscriptEntry]:
        if n <= 0:
            return []
        return [e.model_copy() for e in self._entries[-n:]]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TranscriptEntry]:
        return iter(self.last_n(len(self._entries)))
