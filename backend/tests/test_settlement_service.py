import asyncio
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from auction_platform.models.product import AuctionStatus, DeliveryStatus
from auction_platform.services.notification_service import (
    AuctionEndedNoBids,
    AuctionSold,
    AuctionWon,
    NotificationKind,
)
from auction_platform.services.settlement_service import SettlementOutcome

from conftest import NOW, StoredAuction, make_contact


@pytest.mark.asyncio
async def test_highest_bidder_wins(engine, repository, make_auction):
    auction = make_auction()
    alice = make_contact("alice@example.com", location="Beirut")
    bob = make_contact("bob@example.com", location="Beirut")
    carol = make_contact("carol@example.com", location="Beirut")
    repository.place_bid(auction, alice, 50)
    repository.place_bid(auction, bob, 120)
    repository.place_bid(auction, carol, 90)

    result = await engine.settle(auction.id)

    assert result.outcome == SettlementOutcome.CLOSED_WITH_WINNER
    assert result.success
    assert result.winner_id == bob.id
    assert auction.status == AuctionStatus.ENDED
    assert auction.winner_id == bob.id
    assert auction.final_bid_amount == Decimal("120")


@pytest.mark.asyncio
async def test_winner_settlement_persists_financials(engine, repository, make_auction):
    auction = make_auction()
    winner = make_contact("winner@example.com", location="Beirut")
    repository.place_bid(auction, winner, 120)

    result = await engine.settle(auction.id)

    assert auction.delivery_fee == Decimal("3.00")
    assert auction.platform_commission == Decimal("7.20")
    assert auction.total_collected == Decimal("123.00")
    assert auction.seller_payout == Decimal("112.80")
    assert auction.delivery_status == DeliveryStatus.PENDING
    assert result.financials.total_collected == auction.total_collected
    assert auction.total_collected == auction.final_bid_amount + auction.delivery_fee
    assert auction.seller_payout == auction.final_bid_amount - auction.platform_commission


@pytest.mark.asyncio
async def test_winner_without_location_pays_outside_fee(engine, repository, make_auction):
    auction = make_auction()
    repository.place_bid(auction, make_contact("nolocation@example.com"), 120)

    await engine.settle(auction.id)

    assert auction.delivery_fee == Decimal("5.00")
    assert auction.total_collected == Decimal("125.00")


@pytest.mark.asyncio
async def test_equal_top_bids_go_to_earliest_bidder(engine, repository, make_auction):
    auction = make_auction()
    early = make_contact("early@example.com")
    late = make_contact("late@example.com")
    repository.place_bid(auction, late, 100, at=NOW - timedelta(minutes=10))
    repository.place_bid(auction, early, 100, at=NOW - timedelta(minutes=30))

    result = await engine.settle(auction.id)

    assert result.winner_id == early.id


@pytest.mark.asyncio
async def test_no_bids_closes_without_winner(engine, repository, notifier, make_auction):
    auction = make_auction()

    result = await engine.settle(auction.id)

    assert result.outcome == SettlementOutcome.CLOSED_NO_BIDS
    assert result.success
    assert auction.status == AuctionStatus.ENDED
    assert auction.winner_id is None
    assert auction.final_bid_amount is None
    assert auction.delivery_fee is None
    assert auction.platform_commission is None
    assert auction.total_collected is None
    assert auction.seller_payout is None
    assert auction.delivery_status is None

    assert notifier.kinds() == [NotificationKind.AUCTION_ENDED_NO_BIDS]
    event = notifier.events[0]
    assert isinstance(event, AuctionEndedNoBids)
    assert event.seller_email == "seller@example.com"
    assert event.seller_name == "Rami"
    assert event.product_title == "Vintage Camera"


@pytest.mark.asyncio
async def test_zero_current_bid_is_treated_as_no_bids(engine, repository, make_auction):
    auction = make_auction()
    repository.place_bid(auction, make_contact(), 10)
    auction.current_bid = Decimal("0")

    result = await engine.settle(auction.id)

    assert result.outcome == SettlementOutcome.CLOSED_NO_BIDS
    assert auction.winner_id is None


@pytest.mark.asyncio
async def test_settling_twice_is_idempotent(engine, repository, notifier, make_auction):
    auction = make_auction()
    repository.place_bid(auction, make_contact("w@example.com"), 75)

    first = await engine.settle(auction.id)
    snapshot = (
        auction.status,
        auction.winner_id,
        auction.final_bid_amount,
        auction.delivery_fee,
        auction.platform_commission,
        auction.total_collected,
        auction.seller_payout,
    )
    second = await engine.settle(auction.id)

    assert first.outcome == SettlementOutcome.CLOSED_WITH_WINNER
    assert second.outcome == SettlementOutcome.ALREADY_CLOSED
    assert not second.success
    assert snapshot == (
        auction.status,
        auction.winner_id,
        auction.final_bid_amount,
        auction.delivery_fee,
        auction.platform_commission,
        auction.total_collected,
        auction.seller_payout,
    )
    # No second round of e-mails
    assert len(notifier.events) == 2


@pytest.mark.asyncio
async def test_concurrent_settlement_writes_once(engine, repository, notifier, make_auction):
    auction = make_auction()
    repository.place_bid(auction, make_contact("w@example.com"), 75)

    results = await asyncio.gather(engine.settle(auction.id), engine.settle(auction.id))
    outcomes = sorted(r.outcome.value for r in results)

    assert outcomes == [
        SettlementOutcome.ALREADY_CLOSED.value,
        SettlementOutcome.CLOSED_WITH_WINNER.value,
    ]
    assert notifier.kinds() == [NotificationKind.AUCTION_WON, NotificationKind.AUCTION_SOLD]


@pytest.mark.asyncio
async def test_lost_race_sends_no_notifications(engine, repository, notifier, make_auction):
    auction = make_auction()
    repository.place_bid(auction, make_contact("w@example.com"), 75)

    original_load = repository.load_auction_for_settlement

    async def load_then_close_elsewhere(auction_id):
        snapshot = await original_load(auction_id)
        # Another worker commits between our read and our write
        auction.status = AuctionStatus.ENDED
        return snapshot

    repository.load_auction_for_settlement = load_then_close_elsewhere

    result = await engine.settle(auction.id)

    assert result.outcome == SettlementOutcome.ALREADY_CLOSED
    assert auction.winner_id is None
    assert notifier.events == []


@pytest.mark.asyncio
async def test_not_found(engine):
    result = await engine.settle(uuid4())

    assert result.outcome == SettlementOutcome.NOT_FOUND
    assert result.message == "Product not found"


@pytest.mark.asyncio
async def test_future_auction_is_not_due(engine, repository, notifier, make_auction):
    auction = make_auction(ends_in=timedelta(minutes=5))
    repository.place_bid(auction, make_contact(), 40)

    result = await engine.settle(auction.id)

    assert result.outcome == SettlementOutcome.NOT_YET_DUE
    assert auction.status == AuctionStatus.ACTIVE
    assert repository.commit_calls == []
    assert notifier.events == []


@pytest.mark.asyncio
async def test_auction_ending_exactly_now_is_due(engine, make_auction):
    auction = make_auction(ends_in=timedelta(0))

    result = await engine.settle(auction.id)

    assert result.outcome == SettlementOutcome.CLOSED_NO_BIDS


@pytest.mark.asyncio
async def test_cancelled_auction_is_treated_as_closed(engine, repository, make_auction):
    auction = make_auction(status=AuctionStatus.CANCELLED)

    result = await engine.settle(auction.id)

    assert result.outcome == SettlementOutcome.ALREADY_CLOSED
    assert auction.status == AuctionStatus.CANCELLED
    assert repository.commit_calls == []


@pytest.mark.asyncio
async def test_winner_and_seller_notification_payloads(engine, repository, notifier, make_auction):
    auction = make_auction()
    winner = make_contact(
        "maya@example.com", first_name="Maya", phone="+961 3 333 333", location="Outside Beirut"
    )
    repository.place_bid(auction, winner, 200)

    await engine.settle(auction.id)

    won, sold = notifier.events
    assert isinstance(won, AuctionWon)
    assert won.winner_email == "maya@example.com"
    assert won.winner_name == "Maya"
    assert won.product_title == "Vintage Camera"
    assert won.final_bid_amount == Decimal("200")
    assert won.delivery_fee == Decimal("5.00")
    assert won.total_amount == Decimal("205.00")
    assert won.seller_phone == "+961 1 111 111"

    assert isinstance(sold, AuctionSold)
    assert sold.seller_email == "seller@example.com"
    assert sold.seller_name == "Rami"
    assert sold.final_bid_amount == Decimal("200")
    assert sold.platform_commission == Decimal("12.00")
    assert sold.seller_payout == Decimal("188.00")
    assert sold.winner_name == "Maya"
    assert sold.winner_phone == "+961 3 333 333"


@pytest.mark.asyncio
async def test_missing_profile_details_fall_back(engine, repository, notifier):
    seller = make_contact("shop.owner@example.com")
    auction = repository.add(
        StoredAuction(title="Lamp", seller=seller, auction_end=NOW - timedelta(minutes=1))
    )
    repository.place_bid(auction, make_contact("buyer.one@example.com"), 30)

    await engine.settle(auction.id)

    won, sold = notifier.events
    assert won.winner_name == "buyer.one"
    assert won.seller_phone == "N/A"
    assert sold.seller_name == "shop.owner"
    assert sold.winner_phone == "N/A"


@pytest.mark.asyncio
async def test_notification_failure_does_not_undo_settlement(
    engine, repository, notifier, make_auction
):
    auction = make_auction()
    repository.place_bid(auction, make_contact("w@example.com"), 60)
    notifier.fail_kinds = {NotificationKind.AUCTION_WON}

    result = await engine.settle(auction.id)

    assert result.outcome == SettlementOutcome.CLOSED_WITH_WINNER
    assert auction.status == AuctionStatus.ENDED
    won, sold = result.notifications
    assert not won.delivered
    assert "SMTP server unavailable" in won.error
    assert sold.delivered
    assert notifier.kinds() == [NotificationKind.AUCTION_SOLD]


@pytest.mark.asyncio
async def test_party_without_email_is_skipped(engine, repository, notifier, make_auction):
    auction = make_auction()
    repository.place_bid(auction, make_contact(email=None), 60)

    result = await engine.settle(auction.id)

    won, sold = result.notifications
    assert won.skipped
    assert sold.delivered
    assert notifier.kinds() == [NotificationKind.AUCTION_SOLD]


@pytest.mark.asyncio
async def test_load_failure_is_reported_not_raised(engine, repository, make_auction):
    auction = make_auction()
    repository.fail_on_load.add(auction.id)

    result = await engine.settle(auction.id)

    assert result.outcome == SettlementOutcome.FAILED
    assert "could not load" in result.error
    assert auction.status == AuctionStatus.ACTIVE


@pytest.mark.asyncio
async def test_write_failure_leaves_auction_active(engine, repository, notifier, make_auction):
    auction = make_auction()
    repository.place_bid(auction, make_contact("w@example.com"), 60)
    repository.fail_on_commit.add(auction.id)

    result = await engine.settle(auction.id)

    assert result.outcome == SettlementOutcome.FAILED
    assert auction.status == AuctionStatus.ACTIVE
    assert auction.winner_id is None
    assert notifier.events == []


@pytest.mark.asyncio
async def test_result_serialization(engine, repository, make_auction):
    auction = make_auction()
    winner = make_contact("w@example.com", location="Beirut")
    repository.place_bid(auction, winner, 120)

    data = (await engine.settle(auction.id)).to_dict()

    assert data["outcome"] == "CLOSED_WITH_WINNER"
    assert data["success"] is True
    assert data["winnerId"] == str(winner.id)
    assert data["financials"] == {
        "finalBidAmount": "120",
        "deliveryFee": "3.00",
        "platformCommission": "7.20",
        "totalCollected": "123.00",
        "sellerPayout": "112.80",
    }
    assert [n["kind"] for n in data["notifications"]] == ["auctionWon", "auctionSold"]
