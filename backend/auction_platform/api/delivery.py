from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from auction_platform.api.deps import get_current_user, get_notifier
from auction_platform.core.database import get_db
from auction_platform.core.jwt import TokenData
from auction_platform.schemas.delivery import (
    DeliveryProduct,
    DeliveryResponse,
    DeliveryStatusUpdate,
)
from auction_platform.services.delivery_service import (
    DeliveryError,
    DeliveryForbiddenError,
    ProductNotFoundError,
    request_delivery,
    update_delivery_status,
)
from auction_platform.services.notification_service import Notifier

router = APIRouter()


def _http_error(exc: DeliveryError) -> HTTPException:
    if isinstance(exc, ProductNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, DeliveryForbiddenError):
        code = status.HTTP_403_FORBIDDEN
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(exc))


@router.post("/products/{product_id}/request-delivery", response_model=DeliveryResponse)
async def request_product_delivery(
    product_id: UUID,
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Seller requests delivery for a sold product.

    The auction must be ENDED with a winner, and delivery not yet requested.
    """
    try:
        product = await request_delivery(db, product_id, current_user)
    except DeliveryError as e:
        raise _http_error(e)

    return DeliveryResponse(
        message="Delivery requested successfully",
        product=DeliveryProduct.model_validate(product),
    )


@router.post("/delivery/status-update", response_model=DeliveryResponse)
async def delivery_status_update(
    body: DeliveryStatusUpdate,
    current_user: TokenData = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Update the delivery status of a product (seller or admin).

    Request body:
    {
        "productId": "uuid-here",
        "status": "PICKED_UP" | "DELIVERED_PAID" | "CANCELLED"
    }
    """
    try:
        product, _ = await update_delivery_status(
            db, body.product_id, body.status, current_user, notifier
        )
    except DeliveryError as e:
        raise _http_error(e)

    return DeliveryResponse(
        message="Delivery status updated successfully",
        product=DeliveryProduct.model_validate(product),
    )
