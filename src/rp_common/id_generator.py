"""Time-ordered string ids for listings, messages, offers and B2B records.

Ids sort by creation time, so "newest first" queries can order by id as a
tie-breaker. Each process uses its NODE_ID so two workers never mint the
same id in the same millisecond.

Layout (63 bits): 41 ms since 2026-01-01 | 10 node | 12 sequence
"""

import threading
import time

from config.settings import settings

_EPOCH_MS = 1_767_225_600_000  # 2026-01-01T00:00:00Z
_NODE_BITS = 10
_SEQ_BITS = 12
_SEQ_MASK = (1 << _SEQ_BITS) - 1
_MAX_NODE = (1 << _NODE_BITS) - 1


class SnowflakeIdGenerator:
    def __init__(self, node_id: int = 0) -> None:
        if not 0 <= node_id <= _MAX_NODE:
            raise ValueError(f"node_id must be 0-{_MAX_NODE}, got {node_id}")
        self._node = node_id << _SEQ_BITS
        self._seq = 0
        self._last_ms = -1
        self._mutex = threading.Lock()

    def next_id(self) -> str:
        with self._mutex:
            now = _now_ms()
            if now < self._last_ms:
                # Clock stepped backwards: keep issuing from the last instant.
                now = self._last_ms
            if now == self._last_ms:
                self._seq = (self._seq + 1) & _SEQ_MASK
                if self._seq == 0:
                    while now <= self._last_ms:
                        now = _now_ms()
            else:
                self._seq = 0
            self._last_ms = now
            return str(((now - _EPOCH_MS) << (_NODE_BITS + _SEQ_BITS)) | self._node | self._seq)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


_generator = SnowflakeIdGenerator(settings.NODE_ID)


def generate_id() -> str:
    return _generator.next_id()
