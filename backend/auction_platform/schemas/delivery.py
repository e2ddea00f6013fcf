from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from auction_platform.models.product import DeliveryStatus


class DeliveryStatusUpdate(BaseModel):
    """Request schema for updating a product's delivery status"""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "productId": "123e4567-e89b-12d3-a456-426614174000",
                "status": "DELIVERED_PAID",
            }
        },
    )

    product_id: UUID = Field(..., alias="productId", description="Product ID")
    status: DeliveryStatus = Field(..., description="New delivery status")


class DeliveryProduct(BaseModel):
    """Product fields returned by delivery routes"""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    delivery_status: Optional[DeliveryStatus] = None
    is_paid: bool = False
    total_collected: Optional[Decimal] = None
    seller_payout: Optional[Decimal] = None


class DeliveryResponse(BaseModel):
    message: str
    product: DeliveryProduct
