"""
Financial calculations for closed auctions.

- Platform commission: a fraction of the final bid, taken from the seller
- Delivery fee: flat fee charged to the buyer, Beirut or Outside Beirut tier
- Total collected: final bid + delivery fee (what the buyer pays)
- Seller payout: final bid - platform commission (what the seller receives)

Rates and fees are read from settings each time a calculation runs.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from auction_platform.core.config import settings

logger = logging.getLogger(__name__)

BEIRUT = "Beirut"
OUTSIDE_BEIRUT = "Outside Beirut"

CENT = Decimal("0.01")


def _to_decimal(value) -> Decimal:
    # Floats go through str so 120.1 stays 120.1
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class FeeSchedule:
    """Delivery fee tiers and commission rate"""

    delivery_fee_beirut: Decimal
    delivery_fee_outside: Decimal
    commission_rate: Decimal

    @classmethod
    def from_settings(cls) -> "FeeSchedule":
        return cls(
            delivery_fee_beirut=Decimal(settings.DELIVERY_FEE_BEIRUT),
            delivery_fee_outside=Decimal(settings.DELIVERY_FEE_OUTSIDE),
            commission_rate=Decimal(settings.PLATFORM_COMMISSION_RATE),
        )


@dataclass(frozen=True)
class FinancialBreakdown:
    final_bid_amount: Decimal
    delivery_fee: Decimal
    platform_commission: Decimal
    total_collected: Decimal
    seller_payout: Decimal

    def to_dict(self) -> dict[str, str]:
        return {
            "finalBidAmount": str(self.final_bid_amount),
            "deliveryFee": str(self.delivery_fee),
            "platformCommission": str(self.platform_commission),
            "totalCollected": str(self.total_collected),
            "sellerPayout": str(self.seller_payout),
        }


def _schedule(schedule: FeeSchedule | None) -> FeeSchedule:
    return schedule if schedule is not None else FeeSchedule.from_settings()


def get_delivery_fee(buyer_location: str | None, schedule: FeeSchedule | None = None) -> Decimal:
    """Flat delivery fee for the buyer's location; unknown locations use the outside tier"""
    fees = _schedule(schedule)

    if buyer_location == BEIRUT:
        return fees.delivery_fee_beirut
    if buyer_location == OUTSIDE_BEIRUT:
        return fees.delivery_fee_outside

    # TODO: confirm with product whether unknown locations should be rejected instead
    logger.warning(
        f"Unrecognized buyer location {buyer_location!r}, using '{OUTSIDE_BEIRUT}' delivery fee"
    )
    return fees.delivery_fee_outside


def calculate_platform_commission(
    final_bid_amount: Decimal, schedule: FeeSchedule | None = None
) -> Decimal:
    """Commission on the final bid, rounded half-up to the cent"""
    fees = _schedule(schedule)
    commission = _to_decimal(final_bid_amount) * fees.commission_rate
    return commission.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_total_collected(
    final_bid_amount: Decimal, buyer_location: str | None, schedule: FeeSchedule | None = None
) -> Decimal:
    return _to_decimal(final_bid_amount) + get_delivery_fee(buyer_location, schedule)


def calculate_seller_payout(
    final_bid_amount: Decimal, schedule: FeeSchedule | None = None
) -> Decimal:
    amount = _to_decimal(final_bid_amount)
    return amount - calculate_platform_commission(amount, schedule)


def calculate_financials(
    final_bid_amount: Decimal, buyer_location: str | None, schedule: FeeSchedule | None = None
) -> FinancialBreakdown:
    """
    Calculate all financial values for a won auction.

    The fee schedule is resolved once so every field comes from the same rates.
    """
    fees = _schedule(schedule)
    amount = _to_decimal(final_bid_amount)

    delivery_fee = get_delivery_fee(buyer_location, fees)
    platform_commission = calculate_platform_commission(amount, fees)

    return FinancialBreakdown(
        final_bid_amount=amount,
        delivery_fee=delivery_fee,
        platform_commission=platform_commission,
        total_collected=amount + delivery_fee,
        seller_payout=amount - platform_commission,
    )


def format_currency(amount: Decimal) -> str:
    """Format an amount for display, e.g. "$150.00" """
    return f"${_to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)}"
