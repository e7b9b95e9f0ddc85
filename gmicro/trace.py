"""Per-thread trace identifiers."""

from __future__ import annotations

import threading
import uuid
from typing import Optional


class TraceContext:
    """A thread-safe map from a thread or task id to its trace id."""

    def __init__(self) -> None:
        self._ids: dict[int, str] = {}
        self._lock = threading.Lock()

    def remove(self, gid: int) -> None:
        with self._lock:
            self._ids.pop(gid, None)

    def get(self, gid: int) -> Optional[str]:
        """The trace id stored for ``gid``, or None."""
        with self._lock:
            return self._ids.get(gid)

    def set(self, gid: int, trace_id: str) -> None:
        with self._lock:
            self._ids[gid] = trace_id


ctx = TraceContext()


def gen_trace_id() -> str:
    """A new random trace id."""
    return str(uuid.uuid4())