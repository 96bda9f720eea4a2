"""
Per-room mutual exclusion inside one worker process.

Every read-modify-write on a room runs while holding that room's lock, so
two requests for the same room in this process can never interleave. Across
processes the record version compare-and-swap in the storage backend does
the same job.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List

from exceptions import ConflictError
from logging_config import get_logger

logger = get_logger(__name__)


class KeyedLock:
    def __init__(self, timeout: float):
        self.timeout = timeout
        self._guard = threading.Lock()
        # key -> [lock, number of threads holding or waiting]
        self._entries: Dict[str, List] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """
        Hold the lock for `key` for the duration of the block.

        Waits at most `timeout` seconds, then raises ConflictError so that no
        request blocks forever. Idle entries are dropped to keep the map small.
        """
        with self._guard:
            entry = self._entries.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1

        acquired = entry[0].acquire(timeout=self.timeout)
        try:
            if not acquired:
                logger.warning(f"Timed out after {self.timeout}s waiting for lock on room {key}")
                raise ConflictError(key, reason=f"Timed out waiting for the lock on room {key}")
            yield
        finally:
            if acquired:
                entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
