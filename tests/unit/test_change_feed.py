"""Tests for rp_common.change_feed."""

import asyncio

from src.rp_common.change_feed import ChangeEvent, ChangeFeed
from src.rp_common.enums import ChangeAction


class TestChangeFeed:
    def test_subscriber_receives_matching_collection(self) -> None:
        feed = ChangeFeed()
        sub = feed.subscribe("listings")
        feed.notify("listings", "L1", ChangeAction.CREATED)
        feed.notify("offers", "O1", ChangeAction.CREATED)

        event = sub.queue.get_nowait()
        assert (event.collection, event.entity_id, event.action) == (
            "listings", "L1", ChangeAction.CREATED,
        )
        assert sub.queue.empty()

    def test_scoped_subscription_filters_other_scopes(self) -> None:
        feed = ChangeFeed()
        sub = feed.subscribe("accounts", scope="alice")
        feed.notify("accounts", "bob", ChangeAction.UPDATED, "bob")
        feed.notify("accounts", "alice", ChangeAction.UPDATED, "alice")

        assert sub.queue.qsize() == 1
        assert sub.queue.get_nowait().entity_id == "alice"

    def test_unscoped_event_reaches_scoped_subscriber(self) -> None:
        feed = ChangeFeed()
        sub = feed.subscribe("listings", scope="alice")
        feed.notify("listings", "L1", ChangeAction.DELETED)
        assert sub.queue.qsize() == 1

    def test_unsubscribe_stops_delivery(self) -> None:
        feed = ChangeFeed()
        sub = feed.subscribe("offers")
        feed.unsubscribe(sub)
        feed.notify("offers", "O1", ChangeAction.UPDATED)
        assert sub.queue.empty()
        assert feed.subscriber_count == 0

    def test_full_queue_drops_without_raising(self, caplog) -> None:
        feed = ChangeFeed()
        sub = feed.subscribe("listings")
        sub.queue = asyncio.Queue(maxsize=1)
        feed.notify("listings", "L1", ChangeAction.CREATED)
        feed.notify("listings", "L2", ChangeAction.CREATED)
        assert sub.queue.qsize() == 1
        assert "queue full" in caplog.text


def test_event_to_dict_is_json_ready() -> None:
    data = ChangeEvent("offers", "O1", ChangeAction.UPDATED, "Austin, TX").to_dict()
    assert data["action"] == "UPDATED"
    assert data["scope"] == "Austin, TX"
    assert isinstance(data["occurred_at"], str)
