"""
SQLAlchemy ORM Models

All database models unified export point
"""

from auction_platform.models.bid import Bid
from auction_platform.models.product import (
    AuctionStatus,
    DeliveryStatus,
    Product,
)
from auction_platform.models.user import Profile, User, UserRole

__all__ = [
    "User",
    "UserRole",
    "Profile",
    "Product",
    "AuctionStatus",
    "DeliveryStatus",
    "Bid",
]
