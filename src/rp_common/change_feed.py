"""In-process change notification channel.

Mutating services publish an invalidation after their transaction commits.
Subscribers receive ChangeEvent values on an asyncio.Queue and re-read the
collection snapshot through the normal repositories; no diffs are sent.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime

from src.rp_common.datetime_utils import utc_now
from src.rp_common.enums import ChangeAction

logger = logging.getLogger(__name__)

_QUEUE_MAXSIZE = 256


@dataclass(frozen=True)
class ChangeEvent:
    collection: str          # "listings" | "messages" | "offers" | "b2b_listings" | "accounts"
    entity_id: str
    action: ChangeAction
    scope: str | None = None  # account id or region the change is relevant to
    occurred_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, str | None]:
        data = asdict(self)
        data["action"] = self.action.value
        data["occurred_at"] = self.occurred_at.isoformat()
        return data


@dataclass
class Subscription:
    collection: str
    scope: str | None
    queue: asyncio.Queue[ChangeEvent]

    def matches(self, event: ChangeEvent) -> bool:
        if event.collection != self.collection:
            return False
        return self.scope is None or event.scope is None or event.scope == self.scope


class ChangeFeed:
    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def subscribe(self, collection: str, scope: str | None = None) -> Subscription:
        sub = Subscription(collection, scope, asyncio.Queue(maxsize=_QUEUE_MAXSIZE))
        self._subscriptions.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    def publish(self, event: ChangeEvent) -> None:
        for sub in list(self._subscriptions):
            if not sub.matches(event):
                continue
            try:
                sub.queue.put_nowait(event)
            except asyncio.QueueFull:
                # Pending events already force a re-read.
                logger.warning(
                    "Change feed queue full for %s/%s, dropping %s",
                    sub.collection, sub.scope, event.entity_id,
                )

    def notify(
        self,
        collection: str,
        entity_id: str,
        action: ChangeAction,
        scope: str | None = None,
    ) -> None:
        self.publish(ChangeEvent(collection, entity_id, action, scope))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)


_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    return _feed
