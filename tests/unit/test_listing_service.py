"""Unit tests for ListingLedger: post, claim, complete, delete and chat."""

import asyncio

import pytest

from src.rp_account.application.ledger import PointsLedger
from src.rp_common.enums import ListingStatus, TransportMode
from src.rp_common.errors import (
    CodeNotFoundError,
    EmptyMessageError,
    InvalidAmountError,
    InvalidStateError,
    ListingNotFoundError,
    UnauthorizedError,
)
from src.rp_common.locks import KeyedLocks
from src.rp_listing.application.claim_verifier import ClaimVerifier
from src.rp_listing.application.service import ListingLedger
from src.rp_listing.domain.models import ListingDetails


@pytest.fixture
def svc(listing_repo, ledger: PointsLedger, feed) -> ListingLedger:
    locks = KeyedLocks()
    verifier = ClaimVerifier(listing_repo, ledger, feed, locks)
    return ListingLedger(repo=listing_repo, verifier=verifier, feed=feed, locks=locks)


def _details(quantity: int = 3, location: str = "12 Oak St, Austin, TX", distance: str = "0.5km",
             title: str = "Veggie Lasagna") -> ListingDetails:
    return ListingDetails(
        title=title,
        quantity=quantity,
        location=location,
        distance=distance,
        tags=["Free", "Pickup"],
        ingredients=["pasta", "spinach"],
        calories_per_serving=450,
    )


def _other_code(code: str) -> str:
    return str(1000 + (int(code) - 1000 + 1) % 9000)


class TestPost:
    async def test_zero_baseline_falls_back_to_floor(self, db, svc, sessions) -> None:
        listing = await svc.post(db, sessions["giver"], _details(quantity=3), 0.0, 0.0)

        assert listing.carbon_saved == pytest.approx(2.4)
        assert listing.carbon_saved_display == "2.40 kg CO2e"
        assert listing.status == ListingStatus.AVAILABLE
        assert listing.claimant_id is None
        assert listing.claim_code is None
        db.commit.assert_awaited_once()

    async def test_declared_baseline_minus_chosen_action(self, db, svc, sessions) -> None:
        listing = await svc.post(db, sessions["giver"], _details(quantity=2), 4.5, 0.3)
        assert listing.carbon_saved == pytest.approx(4.2)

    async def test_carbon_saved_never_negative(self, db, svc, sessions) -> None:
        listing = await svc.post(db, sessions["giver"], _details(quantity=1), None, 5.0)
        assert listing.carbon_saved == 0.0

    async def test_zero_quantity_rejected(self, db, svc, sessions, listing_repo) -> None:
        with pytest.raises(InvalidAmountError):
            await svc.post(db, sessions["giver"], _details(quantity=0), 1.0)
        assert listing_repo.listings == {}

    async def test_notifies_listing_subscribers(self, db, svc, sessions, feed) -> None:
        sub = feed.subscribe("listings")
        listing = await svc.post(db, sessions["giver"], _details(), 1.0)
        assert sub.queue.get_nowait().entity_id == listing.listing_id


class TestClaim:
    async def test_claim_issues_code_and_system_message(
        self, db, svc, sessions, listing_repo
    ) -> None:
        listing = await svc.post(db, sessions["giver"], _details(), 0.0)

        claim = await svc.claim(db, sessions["receiver"], listing.listing_id, TransportMode.BIKE)

        assert len(claim.claim_code) == 4
        assert 1000 <= int(claim.claim_code) <= 9999
        stored = listing_repo.listings[listing.listing_id]
        assert stored.status == ListingStatus.CLAIMED
        assert stored.claimant_id == "receiver"
        assert stored.claim_code == claim.claim_code
        assert stored.pickup_method == "bike"
        [msg] = listing_repo.messages
        assert msg.text == "System: I've claimed this item via bike."
        assert msg.is_system is True

    async def test_second_claim_fails_and_keeps_first_claimant(
        self, db, svc, sessions, listing_repo
    ) -> None:
        listing = await svc.post(db, sessions["giver"], _details(), 0.0)
        first = await svc.claim(db, sessions["receiver"], listing.listing_id)

        with pytest.raises(InvalidStateError):
            await svc.claim(db, sessions["stranger"], listing.listing_id)

        stored = listing_repo.listings[listing.listing_id]
        assert stored.claimant_id == "receiver"
        assert stored.claim_code == first.claim_code

    async def test_owner_cannot_claim_own_listing(self, db, svc, sessions, listing_repo) -> None:
        listing = await svc.post(db, sessions["giver"], _details(), 0.0)
        with pytest.raises(InvalidStateError):
            await svc.claim(db, sessions["giver"], listing.listing_id)
        assert listing_repo.listings[listing.listing_id].is_available

    async def test_unknown_listing(self, db, svc, sessions) -> None:
        with pytest.raises(ListingNotFoundError):
            await svc.claim(db, sessions["receiver"], "missing")

    async def test_code_not_reused_while_claimed(self, db, svc, sessions, monkeypatch) -> None:
        from src.rp_listing.domain import claim_code

        draws = iter(["4242", "4242", "5151"])
        monkeypatch.setattr(claim_code, "draw_code", lambda: next(draws))
        a = await svc.post(db, sessions["giver"], _details(), 0.0)
        b = await svc.post(db, sessions["giver"], _details(), 0.0)

        first = await svc.claim(db, sessions["receiver"], a.listing_id)
        second = await svc.claim(db, sessions["stranger"], b.listing_id)

        assert first.claim_code == "4242"
        assert second.claim_code == "5151"

    async def test_simultaneous_claims_have_one_winner(
        self, db, svc, sessions, listing_repo
    ) -> None:
        listing = await svc.post(db, sessions["giver"], _details(), 0.0)

        results = await asyncio.gather(
            svc.claim(db, sessions["receiver"], listing.listing_id),
            svc.claim(db, sessions["stranger"], listing.listing_id),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, BaseException)]
        losers = [r for r in results if isinstance(r, BaseException)]
        assert len(winners) == 1
        assert len(losers) == 1 and isinstance(losers[0], InvalidStateError)
        stored = listing_repo.listings[listing.listing_id]
        assert stored.claimant_id == ("receiver" if results[0] is winners[0] else "stranger")
        assert stored.claim_code == winners[0].claim_code
        assert len(listing_repo.messages) == 1

    async def test_claims_from_separate_workers_resolve_at_the_store(
        self, db, sessions, listing_repo, ledger, feed
    ) -> None:
        def worker() -> ListingLedger:
            locks = KeyedLocks()
            verifier = ClaimVerifier(listing_repo, ledger, feed, locks)
            return ListingLedger(repo=listing_repo, verifier=verifier, feed=feed, locks=locks)

        a, b = worker(), worker()
        listing = await a.post(db, sessions["giver"], _details(), 0.0)

        results = await asyncio.gather(
            a.claim(db, sessions["receiver"], listing.listing_id),
            b.claim(db, sessions["stranger"], listing.listing_id),
            return_exceptions=True,
        )

        assert sum(not isinstance(r, BaseException) for r in results) == 1
        assert sum(isinstance(r, InvalidStateError) for r in results) == 1
        stored = listing_repo.listings[listing.listing_id]
        assert stored.status == ListingStatus.CLAIMED
        assert stored.claimant_id in ("receiver", "stranger")

    async def test_claim_notifies_owner_and_claimant(self, db, svc, sessions, feed) -> None:
        listing = await svc.post(db, sessions["giver"], _details(), 0.0)
        owner_sub = feed.subscribe("listings", "giver")
        claimant_sub = feed.subscribe("listings", "receiver")
        stranger_sub = feed.subscribe("listings", "stranger")

        await svc.claim(db, sessions["receiver"], listing.listing_id)

        assert owner_sub.queue.get_nowait().entity_id == listing.listing_id
        event = claimant_sub.queue.get_nowait()
        assert event.entity_id == listing.listing_id
        assert event.scope == "receiver"
        assert stranger_sub.queue.empty()


class TestComplete:
    async def test_simultaneous_completions_pay_once(
        self, db, svc, sessions, accounts, listing_repo
    ) -> None:
        listing = await svc.post(db, sessions["giver"], _details(quantity=3), 0.0)
        claim = await svc.claim(db, sessions["receiver"], listing.listing_id)

        results = await asyncio.gather(
            svc.complete(db, sessions["giver"], claim.claim_code),
            svc.complete(db, sessions["giver"], claim.claim_code),
            return_exceptions=True,
        )

        assert sum(isinstance(r, CodeNotFoundError) for r in results) == 1
        assert accounts.balance_of("giver") == 14
        assert accounts.balance_of("receiver") == 14
        assert listing_repo.listings[listing.listing_id].status == ListingStatus.COMPLETED

    async def test_owner_completes_with_code_and_both_are_paid(
        self, db, svc, sessions, accounts, listing_repo, ledger
    ) -> None:
        listing = await svc.post(db, sessions["giver"], _details(quantity=3), 0.0)
        claim = await svc.claim(db, sessions["receiver"], listing.listing_id)

        result = await svc.complete(db, sessions["giver"], claim.claim_code)

        # 2.4 kg -> 24 + 5 = 29, 14 each, 1 forfeited
        assert result.credits_each == 14
        assert result.listing.status == ListingStatus.COMPLETED
        stored = listing_repo.listings[listing.listing_id]
        assert stored.claim_code is None
        assert stored.claimant_id == "receiver"
        assert stored.completed_at is not None
        assert accounts.balance_of("giver") == 14
        assert accounts.balance_of("receiver") == 14
        assert await ledger.verify_balance(db, "giver") == []
        assert await ledger.verify_balance(db, "receiver") == []

    async def test_wrong_code_changes_nothing(self, db, svc, sessions, accounts, listing_repo) -> None:
        listing = await svc.post(db, sessions["giver"], _details(), 0.0)
        claim = await svc.claim(db, sessions["receiver"], listing.listing_id)

        with pytest.raises(CodeNotFoundError):
            await svc.complete(db, sessions["giver"], _other_code(claim.claim_code))

        assert listing_repo.listings[listing.listing_id].status == ListingStatus.CLAIMED
        assert accounts.balance_of("receiver") == 0

    async def test_code_is_single_use(self, db, svc, sessions, accounts) -> None:
        listing = await svc.post(db, sessions["giver"], _details(), 0.0)
        claim = await svc.claim(db, sessions["receiver"], listing.listing_id)
        await svc.complete(db, sessions["giver"], claim.claim_code)

        with pytest.raises(CodeNotFoundError):
            await svc.complete(db, sessions["giver"], claim.claim_code)
        assert accounts.balance_of("giver") == 14

    async def test_code_scoped_to_requesting_owner(self, db, svc, sessions, listing_repo) -> None:
        listing = await svc.post(db, sessions["giver"], _details(), 0.0)
        claim = await svc.claim(db, sessions["receiver"], listing.listing_id)

        with pytest.raises(CodeNotFoundError):
            await svc.complete(db, sessions["stranger"], claim.claim_code)
        assert listing_repo.listings[listing.listing_id].status == ListingStatus.CLAIMED

    async def test_unclaimed_listing_has_no_code(self, db, svc, sessions) -> None:
        await svc.post(db, sessions["giver"], _details(), 0.0)
        with pytest.raises(CodeNotFoundError):
            await svc.complete(db, sessions["giver"], "1234")


class TestDelete:
    async def test_owner_deletes_listing_and_thread(self, db, svc, sessions, listing_repo) -> None:
        listing = await svc.post(db, sessions["giver"], _details(), 0.0)
        await svc.claim(db, sessions["receiver"], listing.listing_id)

        await svc.delete(db, sessions["giver"], listing.listing_id)

        assert listing.listing_id not in listing_repo.listings
        assert listing_repo.messages == []

    async def test_non_owner_rejected(self, db, svc, sessions, listing_repo) -> None:
        listing = await svc.post(db, sessions["giver"], _details(), 0.0)
        with pytest.raises(UnauthorizedError):
            await svc.delete(db, sessions["receiver"], listing.listing_id)
        assert listing.listing_id in listing_repo.listings
        db.rollback.assert_awaited()


class TestMessages:
    async def test_anyone_may_ask_about_available_listing(self, db, svc, sessions) -> None:
        listing = await svc.post(db, sessions["giver"], _details(), 0.0)
        msg = await svc.send_message(db, sessions["stranger"], listing.listing_id, " Still there? ")
        assert msg.text == "Still there?"
        assert msg.is_system is False

    async def test_thread_private_after_claim(self, db, svc, sessions) -> None:
        listing = await svc.post(db, sessions["giver"], _details(), 0.0)
        await svc.claim(db, sessions["receiver"], listing.listing_id)

        with pytest.raises(UnauthorizedError):
            await svc.send_message(db, sessions["stranger"], listing.listing_id, "hi")
        with pytest.raises(UnauthorizedError):
            await svc.get_thread(db, sessions["stranger"], listing.listing_id)

        await svc.send_message(db, sessions["receiver"], listing.listing_id, "On my way")
        await svc.send_message(db, sessions["giver"], listing.listing_id, "See you")
        thread = await svc.get_thread(db, sessions["receiver"], listing.listing_id)
        assert [m.text for m in thread.messages] == [
            "System: I've claimed this item via walk.",
            "On my way",
            "See you",
        ]

    async def test_empty_message_rejected(self, db, svc, sessions) -> None:
        listing = await svc.post(db, sessions["giver"], _details(), 0.0)
        with pytest.raises(EmptyMessageError):
            await svc.send_message(db, sessions["stranger"], listing.listing_id, "   ")


class TestQueries:
    async def test_claim_code_visible_only_to_claimant(self, db, svc, sessions) -> None:
        listing = await svc.post(db, sessions["giver"], _details(), 0.0)
        claim = await svc.claim(db, sessions["receiver"], listing.listing_id)

        assert (await svc.get_listing(db, sessions["receiver"], listing.listing_id)).claim_code == claim.claim_code
        assert [x.claim_code for x in (await svc.my_claims(db, sessions["receiver"])).items] == [claim.claim_code]
        assert (await svc.get_listing(db, sessions["giver"], listing.listing_id)).claim_code is None
        assert (await svc.get_listing(db, sessions["stranger"], listing.listing_id)).claim_code is None

    async def test_owner_views_never_carry_claim_code(self, db, svc, sessions) -> None:
        done = await svc.post(db, sessions["giver"], _details(title="Done"), 0.0)
        pending = await svc.post(db, sessions["giver"], _details(title="Pending"), 0.0)
        done_claim = await svc.claim(db, sessions["receiver"], done.listing_id)
        await svc.claim(db, sessions["receiver"], pending.listing_id)

        owner = sessions["giver"]
        assert (await svc.get_listing(db, owner, pending.listing_id)).claim_code is None
        assert [x.claim_code for x in (await svc.my_active(db, owner)).items] == [None, None]

        # the owner can still complete with the code the claimant presents
        await svc.complete(db, owner, done_claim.claim_code)

        assert [x.claim_code for x in (await svc.my_active(db, owner)).items] == [None]
        assert [x.claim_code for x in (await svc.giver_history(db, owner)).items] == [None]

    async def test_browse_excludes_own_and_claimed(self, db, svc, sessions) -> None:
        mine = await svc.post(db, sessions["stranger"], _details(title="Mine"), 0.0)
        claimed = await svc.post(db, sessions["giver"], _details(title="Claimed"), 0.0)
        open_ = await svc.post(db, sessions["giver"], _details(title="Open"), 0.0)
        await svc.claim(db, sessions["receiver"], claimed.listing_id)

        page = await svc.browse(db, sessions["stranger"])

        ids = [x.listing_id for x in page.items]
        assert ids == [open_.listing_id]
        assert mine.listing_id not in ids

    async def test_browse_location_filter_is_case_insensitive(self, db, svc, sessions) -> None:
        await svc.post(db, sessions["giver"], _details(location="1 Main St, Denver, CO"), 0.0)
        hit = await svc.post(db, sessions["giver"], _details(location="9 Elm St, Austin, TX"), 0.0)

        page = await svc.browse(db, sessions["receiver"], location="  austin ")
        assert [x.listing_id for x in page.items] == [hit.listing_id]

    async def test_active_claims_and_histories(self, db, svc, sessions) -> None:
        done = await svc.post(db, sessions["giver"], _details(title="Done"), 0.0)
        pending = await svc.post(db, sessions["giver"], _details(title="Pending"), 0.0)
        claim = await svc.claim(db, sessions["receiver"], done.listing_id)
        await svc.claim(db, sessions["receiver"], pending.listing_id)
        await svc.complete(db, sessions["giver"], claim.claim_code)

        assert [x.title for x in (await svc.my_active(db, sessions["giver"])).items] == ["Pending"]
        assert [x.title for x in (await svc.giver_history(db, sessions["giver"])).items] == ["Done"]
        assert [x.title for x in (await svc.receiver_history(db, sessions["receiver"])).items] == ["Done"]
        assert [x.title for x in (await svc.my_claims(db, sessions["receiver"])).items] == ["Pending"]


class TestPickupAnalysis:
    async def test_declared_distance_all_modes(self, db, svc, sessions) -> None:
        listing = await svc.post(db, sessions["giver"], _details(quantity=1, distance="2km"), 1.0)

        result = await svc.pickup_analysis(db, listing.listing_id)

        assert result.distance_km == 2.0
        car = next(o for o in result.options if o.mode == "car")
        assert car.travel_emissions == pytest.approx(0.768)
        assert car.net_impact == pytest.approx(0.232)
        assert car.is_worth_it is True

    async def test_distance_override_single_mode(self, db, svc, sessions) -> None:
        listing = await svc.post(db, sessions["giver"], _details(quantity=1), 1.0)

        result = await svc.pickup_analysis(db, listing.listing_id, 5.0, TransportMode.CAR)

        [car] = result.options
        assert car.net_impact == pytest.approx(-0.92)
        assert car.is_worth_it is False
