"""
Delivery bookkeeping after an auction is settled.

Status flow: PENDING -> REQUESTED -> PICKED_UP -> DELIVERED_PAID
(CANCELLED can be set by the seller or an admin at any point.)
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from auction_platform.core.jwt import TokenData
from auction_platform.models.product import AuctionStatus, DeliveryStatus, Product
from auction_platform.models.user import User
from auction_platform.services.notification_service import (
    DeliveryConfirmed,
    NotificationOutcome,
    Notifier,
    PaymentReceived,
    dispatch_notification,
)

logger = logging.getLogger(__name__)

UPDATABLE_STATUSES = frozenset(
    {DeliveryStatus.PICKED_UP, DeliveryStatus.DELIVERED_PAID, DeliveryStatus.CANCELLED}
)
ALREADY_REQUESTED = frozenset(
    {DeliveryStatus.REQUESTED, DeliveryStatus.PICKED_UP, DeliveryStatus.DELIVERED_PAID}
)


class DeliveryError(Exception):
    """Base class for delivery workflow errors"""


class ProductNotFoundError(DeliveryError):
    pass


class DeliveryForbiddenError(DeliveryError):
    pass


class InvalidDeliveryStateError(DeliveryError):
    pass


async def _load_product(db: AsyncSession, product_id: UUID) -> Product:
    result = await db.execute(
        select(Product)
        .options(
            joinedload(Product.seller).joinedload(User.profile),
            joinedload(Product.winner).joinedload(User.profile),
        )
        .where(Product.id == product_id)
    )
    product = result.unique().scalar_one_or_none()

    if not product:
        raise ProductNotFoundError("Product not found")
    return product


async def request_delivery(
    db: AsyncSession, product_id: UUID, user: TokenData
) -> Product:
    """Seller asks for pickup of a sold item"""
    product = await _load_product(db, product_id)

    if product.seller_id != user.user_id:
        raise DeliveryForbiddenError("Only the seller can request delivery.")

    if product.status != AuctionStatus.ENDED:
        raise InvalidDeliveryStateError(
            "Cannot request delivery. Auction has not ended yet."
        )

    if product.winner_id is None:
        raise InvalidDeliveryStateError(
            "Cannot request delivery. No winner for this auction."
        )

    if product.delivery_status in ALREADY_REQUESTED:
        raise InvalidDeliveryStateError(
            "Delivery has already been requested for this product."
        )

    product.delivery_status = DeliveryStatus.REQUESTED
    await db.commit()

    logger.info(
        f"✅ Delivery requested for product: {product.title} "
        f"(amount to collect: {product.total_collected})"
    )
    return product


async def update_delivery_status(
    db: AsyncSession,
    product_id: UUID,
    new_status: DeliveryStatus,
    user: TokenData,
    notifier: Notifier,
) -> tuple[Product, list[NotificationOutcome]]:
    """
    Move a product's delivery forward (seller or admin).

    DELIVERED_PAID marks the product paid and e-mails both parties.
    """
    if new_status not in UPDATABLE_STATUSES:
        allowed = ", ".join(sorted(s.value for s in UPDATABLE_STATUSES))
        raise InvalidDeliveryStateError(f"Invalid status. Must be one of: {allowed}")

    product = await _load_product(db, product_id)

    if product.seller_id != user.user_id and not user.is_admin:
        raise DeliveryForbiddenError(
            "Only seller or admin can update delivery status."
        )

    product.delivery_status = new_status
    if new_status == DeliveryStatus.DELIVERED_PAID:
        product.is_paid = True

    await db.commit()
    logger.info(f"✅ Delivery status updated: {product.title} → {new_status.value}")

    notifications: list[NotificationOutcome] = []
    if new_status == DeliveryStatus.DELIVERED_PAID and product.winner is not None:
        notifications.append(
            await dispatch_notification(
                notifier,
                DeliveryConfirmed(
                    winner_email=product.winner.email, product_title=product.title
                ),
            )
        )
        notifications.append(
            await dispatch_notification(
                notifier,
                PaymentReceived(
                    seller_email=product.seller.email,
                    product_title=product.title,
                    seller_payout=product.seller_payout,
                ),
            )
        )

    return product, notifications
