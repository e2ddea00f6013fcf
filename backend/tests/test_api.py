from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from auction_platform.api.deps import get_auction_scheduler, get_notifier
from auction_platform.core.config import settings
from auction_platform.core.database import get_db
from auction_platform.core.jwt import create_access_token
from auction_platform.main import app
from auction_platform.models.product import AuctionStatus, DeliveryStatus
from auction_platform.services.sweep_service import run_sweep
from auction_platform.tasks.auction_closer import AuctionSweepScheduler

from conftest import NOW, FakeSession, RecordingNotifier, make_contact


@pytest.fixture
def client():
    # No context manager: the lifespan (database, Redis, timer) stays off
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def scheduler(repository, engine):
    async def sweep():
        return await run_sweep(repository, engine, clock=lambda: NOW)

    scheduler = AuctionSweepScheduler(sweep)
    app.dependency_overrides[get_auction_scheduler] = lambda: scheduler
    return scheduler


def test_close_auctions_reports_every_outcome(client, scheduler, repository, make_auction):
    sold = make_auction(title="Guitar")
    repository.place_bid(sold, make_contact("w@example.com", location="Beirut"), 120)
    make_auction(title="Lamp")

    response = client.post("/api/cron/close-auctions")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Auction closing process completed"
    assert body["totalChecked"] == 2
    assert body["successful"] == 2
    assert body["failed"] == 0
    assert body["skipped"] == 0
    assert "timestamp" in body
    assert "results" not in body
    assert {d["productTitle"]: d["outcome"] for d in body["details"]} == {
        "Guitar": "CLOSED_WITH_WINNER",
        "Lamp": "CLOSED_NO_BIDS",
    }


def test_close_auctions_accepts_get(client, scheduler):
    response = client.get("/api/cron/close-auctions")

    assert response.status_code == 200
    assert response.json()["totalChecked"] == 0


def test_close_auctions_while_running_is_skipped(client, scheduler, monkeypatch):
    monkeypatch.setattr(scheduler._guard, "locked", lambda: True)

    response = client.post("/api/cron/close-auctions")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["alreadyRunning"] is True
    assert body["totalChecked"] == 0
    assert body["skipped"] == 0
    assert "results" not in body
    assert body["details"] == []


def test_close_auctions_query_failure_returns_500(client, scheduler, repository):
    repository.fail_on_find = True

    response = client.post("/api/cron/close-auctions")

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Failed to close auctions"
    assert body["error"] == "database unavailable"


def test_cron_secret_is_enforced(client, scheduler, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

    assert client.post("/api/cron/close-auctions").status_code == 401
    assert (
        client.post(
            "/api/cron/close-auctions", headers={"Authorization": "Bearer wrong"}
        ).status_code
        == 401
    )
    assert (
        client.post(
            "/api/cron/close-auctions", headers={"Authorization": "Bearer s3cret"}
        ).status_code
        == 200
    )


def test_scheduler_status(client, scheduler, make_auction):
    make_auction()
    client.post("/api/cron/close-auctions")

    response = client.get("/api/cron/status")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "stopped"
    assert body["checkIntervalSeconds"] == 60
    assert body["sweepInProgress"] is False
    assert body["lastResults"]["totalChecked"] == 1
    assert body["lastError"] is None


def test_cron_without_scheduler_is_unavailable(client):
    assert client.post("/api/cron/close-auctions").status_code == 503


def _auth(user_id, role="USER"):
    token = create_access_token(user_id, "user@example.com", role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sold():
    seller = SimpleNamespace(id=uuid4(), email="seller@example.com")
    winner = SimpleNamespace(id=uuid4(), email="winner@example.com")
    return SimpleNamespace(
        id=uuid4(),
        title="Vintage Camera",
        seller_id=seller.id,
        seller=seller,
        winner_id=winner.id,
        winner=winner,
        status=AuctionStatus.ENDED,
        delivery_status=DeliveryStatus.PENDING,
        is_paid=False,
        total_collected=Decimal("123.00"),
        seller_payout=Decimal("112.80"),
    )


@pytest.fixture
def db(sold):
    session = FakeSession(sold)
    app.dependency_overrides[get_db] = lambda: session
    return session


@pytest.fixture
def delivery_notifier():
    notifier = RecordingNotifier()
    app.dependency_overrides[get_notifier] = lambda: notifier
    return notifier


def test_request_delivery(client, db, sold):
    response = client.post(
        f"/api/products/{sold.id}/request-delivery", headers=_auth(sold.seller_id)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Delivery requested successfully"
    assert body["product"]["delivery_status"] == "REQUESTED"
    assert Decimal(body["product"]["total_collected"]) == Decimal("123.00")


def test_request_delivery_requires_login(client, db, sold):
    response = client.post(f"/api/products/{sold.id}/request-delivery")

    assert response.status_code == 401


def test_request_delivery_rejects_invalid_token(client, db, sold):
    response = client.post(
        f"/api/products/{sold.id}/request-delivery",
        headers={"Authorization": "Bearer not-a-token"},
    )

    assert response.status_code == 401


def test_request_delivery_by_other_user_is_forbidden(client, db, sold):
    response = client.post(f"/api/products/{sold.id}/request-delivery", headers=_auth(uuid4()))

    assert response.status_code == 403


def test_request_delivery_unknown_product(client, sold):
    app.dependency_overrides[get_db] = lambda: FakeSession(None)

    response = client.post(f"/api/products/{uuid4()}/request-delivery", headers=_auth(sold.seller_id))

    assert response.status_code == 404
    assert response.json()["detail"] == "Product not found"


def test_request_delivery_before_auction_end(client, db, sold):
    sold.status = AuctionStatus.ACTIVE

    response = client.post(
        f"/api/products/{sold.id}/request-delivery", headers=_auth(sold.seller_id)
    )

    assert response.status_code == 400


def test_delivered_paid_by_admin(client, db, sold, delivery_notifier):
    sold.delivery_status = DeliveryStatus.PICKED_UP

    response = client.post(
        "/api/delivery/status-update",
        json={"productId": str(sold.id), "status": "DELIVERED_PAID"},
        headers=_auth(uuid4(), role="ADMIN"),
    )

    assert response.status_code == 200
    product = response.json()["product"]
    assert product["delivery_status"] == "DELIVERED_PAID"
    assert product["is_paid"] is True
    assert len(delivery_notifier.events) == 2


def test_status_update_rejects_unknown_status(client, db, sold, delivery_notifier):
    response = client.post(
        "/api/delivery/status-update",
        json={"productId": str(sold.id), "status": "SHIPPED"},
        headers=_auth(sold.seller_id),
    )

    assert response.status_code == 422


def test_status_update_rejects_non_updatable_status(client, db, sold, delivery_notifier):
    response = client.post(
        "/api/delivery/status-update",
        json={"productId": str(sold.id), "status": "PENDING"},
        headers=_auth(sold.seller_id),
    )

    assert response.status_code == 400
    assert "Invalid status" in response.json()["detail"]


def test_health_reports_components(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "redis": "disconnected",
        "scheduler": "stopped",
    }
