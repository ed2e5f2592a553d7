"""Per-record asyncio locks.

Operations on the same record id are serialized; different ids never
contend. The database compare-and-set is still the cross-process guard;
these locks only keep one process from racing itself.

Entries are reference-counted by their holders and waiters and dropped
once the last one leaves, so the registry only ever holds ids that are
in flight.
"""

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass, field


@dataclass
class _Entry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class KeyedLocks:
    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}

    def is_locked(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        """Acquire the locks for all keys, in sorted order to avoid deadlock."""
        ordered = _ordered(keys)
        entries = [self._checkout(key) for key in ordered]
        try:
            async with AsyncExitStack() as stack:
                for entry in entries:
                    await stack.enter_async_context(entry.lock)
                yield
        finally:
            for key in ordered:
                self._release(key)

    def _checkout(self, key: str) -> _Entry:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        entry.users += 1
        return entry

    def _release(self, key: str) -> None:
        entry = self._entries[key]
        entry.users -= 1
        if entry.users == 0:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


def _ordered(keys: Iterable[str]) -> list[str]:
    return sorted(set(keys))


# Shared registries: one per namespace so an account id never collides with a
# listing id that happens to share the same snowflake value.
account_locks = KeyedLocks()
listing_locks = KeyedLocks()
offer_locks = KeyedLocks()
b2b_listing_locks = KeyedLocks()
