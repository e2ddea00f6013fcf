from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from auction_platform.models.product import AuctionStatus, DeliveryStatus
from auction_platform.services.auction_repository import (
    AuctionSnapshot,
    DueAuction,
    PartyContact,
    SettlementPatch,
    TopBid,
)
from auction_platform.services.financial import FeeSchedule
from auction_platform.services.settlement_service import SettlementEngine

NOW = datetime(2025, 12, 14, 12, 0, tzinfo=timezone.utc)

DEFAULT_FEES = FeeSchedule(
    delivery_fee_beirut=Decimal("3.00"),
    delivery_fee_outside=Decimal("5.00"),
    commission_rate=Decimal("0.06"),
)


@dataclass
class StoredBid:
    bidder: PartyContact
    amount: Decimal
    created_at: datetime
    id: UUID = field(default_factory=uuid4)


@dataclass
class StoredAuction:
    """Mutable row standing in for a products record"""

    title: str
    seller: PartyContact
    auction_end: datetime
    status: AuctionStatus = AuctionStatus.ACTIVE
    current_bid: Decimal = Decimal("0")
    bids: list[StoredBid] = field(default_factory=list)
    id: UUID = field(default_factory=uuid4)

    winner_id: UUID | None = None
    final_bid_amount: Decimal | None = None
    delivery_fee: Decimal | None = None
    platform_commission: Decimal | None = None
    total_collected: Decimal | None = None
    seller_payout: Decimal | None = None
    delivery_status: DeliveryStatus | None = None


class FakeAuctionRepository:
    """In-memory AuctionRepository with the same conditional-update semantics"""

    def __init__(self):
        self.auctions: dict[UUID, StoredAuction] = {}
        self.fail_on_load: set[UUID] = set()
        self.fail_on_commit: set[UUID] = set()
        self.fail_on_find = False
        self.commit_calls: list[UUID] = []

    def add(self, auction: StoredAuction) -> StoredAuction:
        self.auctions[auction.id] = auction
        return auction

    def place_bid(self, auction: StoredAuction, bidder: PartyContact, amount, at=None) -> StoredBid:
        amount = Decimal(str(amount))
        created_at = at or NOW - timedelta(hours=1) + timedelta(seconds=len(auction.bids))
        bid = StoredBid(bidder=bidder, amount=amount, created_at=created_at)
        auction.bids.append(bid)
        auction.current_bid = max(auction.current_bid, amount)
        return bid

    async def find_due_auctions(self, now: datetime, limit: int | None = None) -> list[DueAuction]:
        if self.fail_on_find:
            raise ConnectionError("database unavailable")

        due = sorted(
            (
                a
                for a in self.auctions.values()
                if a.status == AuctionStatus.ACTIVE and a.auction_end <= now
            ),
            key=lambda a: (a.auction_end, str(a.id)),
        )
        if limit is not None:
            due = due[:limit]
        return [
            DueAuction(id=a.id, title=a.title, auction_end=a.auction_end, status=a.status)
            for a in due
        ]

    async def load_auction_for_settlement(self, auction_id: UUID) -> AuctionSnapshot | None:
        if auction_id in self.fail_on_load:
            raise ConnectionError(f"could not load {auction_id}")

        auction = self.auctions.get(auction_id)
        if auction is None:
            return None

        top_bid = None
        if auction.bids:
            best = sorted(
                auction.bids, key=lambda b: (-b.amount, b.created_at, str(b.id))
            )[0]
            top_bid = TopBid(
                bid_id=best.id, bidder_id=best.bidder.id, amount=best.amount, bidder=best.bidder
            )

        return AuctionSnapshot(
            id=auction.id,
            title=auction.title,
            status=auction.status,
            auction_end=auction.auction_end,
            current_bid=auction.current_bid,
            seller=auction.seller,
            top_bid=top_bid,
        )

    async def commit_settlement(self, auction_id: UUID, patch: SettlementPatch) -> bool:
        self.commit_calls.append(auction_id)
        if auction_id in self.fail_on_commit:
            raise ConnectionError(f"could not write {auction_id}")

        auction = self.auctions[auction_id]
        if auction.status != AuctionStatus.ACTIVE:
            return False

        for key, value in patch.to_values().items():
            setattr(auction, key, value)
        return True


class RecordingNotifier:
    def __init__(self):
        self.events = []
        self.fail_kinds = set()

    async def notify(self, event) -> bool:
        if event.kind in self.fail_kinds:
            raise ConnectionRefusedError("SMTP server unavailable")
        self.events.append(event)
        return True

    def kinds(self):
        return [event.kind for event in self.events]


def make_contact(email="user@example.com", first_name=None, phone=None, location=None):
    return PartyContact(
        id=uuid4(), email=email, first_name=first_name, phone=phone, location=location
    )


@pytest.fixture
def repository():
    return FakeAuctionRepository()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(repository, notifier):
    return SettlementEngine(
        repository, notifier, fee_schedule=lambda: DEFAULT_FEES, clock=lambda: NOW
    )


@pytest.fixture
def seller():
    return make_contact(
        email="seller@example.com", first_name="Rami", phone="+961 1 111 111", location="Beirut"
    )


@pytest.fixture
def make_auction(repository, seller):
    def _make(title="Vintage Camera", ends_in=timedelta(minutes=-5), status=AuctionStatus.ACTIVE):
        return repository.add(
            StoredAuction(
                title=title,
                seller=seller,
                auction_end=NOW + ends_in,
                status=status,
                current_bid=Decimal("0"),
            )
        )

    return _make


class FakeResult:
    def __init__(self, value):
        self.value = value

    def unique(self):
        return self

    def scalar_one_or_none(self):
        return self.value


class FakeSession:
    """Just enough of AsyncSession for the delivery workflow"""

    def __init__(self, product=None):
        self.product = product
        self.commits = 0

    async def execute(self, stmt):
        return FakeResult(self.product)

    async def commit(self):
        self.commits += 1
