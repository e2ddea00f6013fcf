"""
Auction notifications.

Settlement and delivery code build one of the event types below and pass it
to dispatch_notification(), which never raises: the outcome of each send is
returned so callers can record it next to their own result.
"""

import enum
import html
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, Union

from auction_platform.core.mail import MailTransport
from auction_platform.services import email_templates

logger = logging.getLogger(__name__)


class NotificationKind(str, enum.Enum):
    AUCTION_ENDED_NO_BIDS = "auctionEndedNoBids"
    AUCTION_WON = "auctionWon"
    AUCTION_SOLD = "auctionSold"
    DELIVERY_CONFIRMED = "deliveryConfirmed"
    PAYMENT_RECEIVED = "paymentReceived"


@dataclass(frozen=True)
class AuctionEndedNoBids:
    seller_email: str | None
    seller_name: str
    product_title: str

    kind = NotificationKind.AUCTION_ENDED_NO_BIDS

    @property
    def recipient(self) -> str | None:
        return self.seller_email


@dataclass(frozen=True)
class AuctionWon:
    winner_email: str | None
    winner_name: str
    product_title: str
    final_bid_amount: Decimal
    delivery_fee: Decimal
    total_amount: Decimal
    seller_phone: str

    kind = NotificationKind.AUCTION_WON

    @property
    def recipient(self) -> str | None:
        return self.winner_email


@dataclass(frozen=True)
class AuctionSold:
    seller_email: str | None
    seller_name: str
    product_title: str
    final_bid_amount: Decimal
    platform_commission: Decimal
    seller_payout: Decimal
    winner_name: str
    winner_phone: str

    kind = NotificationKind.AUCTION_SOLD

    @property
    def recipient(self) -> str | None:
        return self.seller_email


@dataclass(frozen=True)
class DeliveryConfirmed:
    winner_email: str | None
    product_title: str

    kind = NotificationKind.DELIVERY_CONFIRMED

    @property
    def recipient(self) -> str | None:
        return self.winner_email


@dataclass(frozen=True)
class PaymentReceived:
    seller_email: str | None
    product_title: str
    seller_payout: Decimal

    kind = NotificationKind.PAYMENT_RECEIVED

    @property
    def recipient(self) -> str | None:
        return self.seller_email


NotificationEvent = Union[
    AuctionEndedNoBids, AuctionWon, AuctionSold, DeliveryConfirmed, PaymentReceived
]


@dataclass(frozen=True)
class NotificationOutcome:
    kind: NotificationKind
    recipient: str | None
    delivered: bool
    skipped: bool = False
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "recipient": self.recipient,
            "delivered": self.delivered,
            "skipped": self.skipped,
            "error": self.error,
        }


class Notifier(Protocol):
    async def notify(self, event: NotificationEvent) -> bool: ...


@dataclass(frozen=True)
class RenderedEmail:
    to: str
    subject: str
    html: str


def render_email(event: NotificationEvent) -> RenderedEmail:
    """Subject and HTML body for an event; user-supplied text is escaped"""
    title = html.escape(event.product_title)

    if isinstance(event, AuctionWon):
        subject = f"Congratulations! You Won: {event.product_title}"
        body = email_templates.auction_won_html(
            winner_name=html.escape(event.winner_name),
            product_title=title,
            final_bid_amount=event.final_bid_amount,
            delivery_fee=event.delivery_fee,
            total_amount=event.total_amount,
            seller_phone=html.escape(event.seller_phone),
        )
    elif isinstance(event, AuctionSold):
        subject = f"Your Item Sold: {event.product_title}"
        body = email_templates.auction_sold_html(
            seller_name=html.escape(event.seller_name),
            product_title=title,
            final_bid_amount=event.final_bid_amount,
            platform_commission=event.platform_commission,
            seller_payout=event.seller_payout,
            winner_name=html.escape(event.winner_name),
            winner_phone=html.escape(event.winner_phone),
        )
    elif isinstance(event, AuctionEndedNoBids):
        subject = f"Auction Ended: {event.product_title}"
        body = email_templates.auction_ended_no_bids_html(
            seller_name=html.escape(event.seller_name), product_title=title
        )
    elif isinstance(event, DeliveryConfirmed):
        subject = f"Delivery Confirmed: {event.product_title}"
        body = email_templates.delivery_confirmed_html(product_title=title)
    elif isinstance(event, PaymentReceived):
        subject = f"Payment Received: {event.product_title}"
        body = email_templates.payment_received_html(
            product_title=title, seller_payout=event.seller_payout
        )
    else:
        raise ValueError(f"Unsupported notification event: {event!r}")

    return RenderedEmail(to=event.recipient, subject=subject, html=body)


class EmailNotifier:
    """Notifier that renders events to HTML e-mails and sends them over SMTP"""

    def __init__(self, transport: MailTransport):
        self.transport = transport

    async def notify(self, event: NotificationEvent) -> bool:
        email = render_email(event)
        return await self.transport.send_email(to=email.to, subject=email.subject, html=email.html)


async def dispatch_notification(
    notifier: Notifier, event: NotificationEvent
) -> NotificationOutcome:
    """Best-effort send. Failures are logged and returned, never raised."""
    if not event.recipient:
        logger.info(f"No e-mail address for {event.kind.value} notification, skipping")
        return NotificationOutcome(
            kind=event.kind, recipient=None, delivered=False, skipped=True
        )

    try:
        delivered = await notifier.notify(event)
    except Exception as e:
        logger.error(
            f"Failed to send {event.kind.value} notification to {event.recipient}: {e}"
        )
        return NotificationOutcome(
            kind=event.kind, recipient=event.recipient, delivered=False, error=str(e)
        )

    return NotificationOutcome(
        kind=event.kind, recipient=event.recipient, delivered=bool(delivered)
    )
