from collections import deque
from typing import Deque, List, Optional, Tuple
from .model import Event


class EventLog:
    """Bounded event storage, read most-recent-first or streamed by offset.

    Offsets are absolute: they keep counting after old entries fall off the
    end, so a reader polling with ``since`` never sees an event twice.
    """

    def __init__(self, limit: int = 40):
        self._log: Deque[Event] = deque(maxlen=limit)
        self._appended = 0

    def __len__(self) -> int:
        return len(self._log)

    def append(self, evt: Event) -> int:
        """Append one event and return its offset."""
        self._log.append(evt)
        self._appended += 1
        return self._appended - 1

    def append_many(self, evts: List[Event]) -> Tuple[int, int]:
        """Append events and return (start_offset, end_offset)."""
        start = self._appended
        for e in evts:
            self.append(e)
        return start, self._appended - 1

    def recent(self, limit: Optional[int] = None) -> List[Event]:
        """Return retained events, newest first."""
        newest_first = list(reversed(self._log))
        return newest_first if limit is None else newest_first[:limit]

    def messages(self, limit: Optional[int] = None) -> List[str]:
        return [e.message for e in self.recent(limit)]

    def since(self, offset: int, limit: int = 1000) -> tuple[list[Event], int]:
        """Return retained events starting from offset, oldest first, up to limit."""
        first = self._appended - len(self._log)
        offset = max(first, offset)
        start = offset - first
        chunk = list(self._log)[start: start + limit]
        return chunk, offset + len(chunk)

    def clear(self) -> None:
        self._log.clear()
        self._appended = 0
