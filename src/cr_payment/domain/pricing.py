"""Server-owned price table. Clients display it; they never decide prices.

Unit prices in BRL cents; total = credits x unit price.
"""

from src.cr_common.errors import InvalidPackageError
from src.cr_payment.domain.models import PriceTier

PRICE_TIERS: tuple[PriceTier, ...] = (
    PriceTier(10, 1400),
    PriceTier(15, 1380),
    PriceTier(25, 1350),
    PriceTier(30, 1330),
    PriceTier(50, 1300),
    PriceTier(75, 1250),
    PriceTier(100, 1200),
    PriceTier(150, 1150),
    PriceTier(200, 1100),
    PriceTier(250, 1050),
    PriceTier(300, 1020),
    PriceTier(350, 1000),
    PriceTier(400, 980),
    PriceTier(500, 960),
    PriceTier(550, 950),
    PriceTier(600, 940),
    PriceTier(650, 930),
)

_BY_CREDITS = {tier.credits: tier for tier in PRICE_TIERS}

# Fixed package a master pays to provision one reseller
RESELLER_CREATION_PRICE_CENTS = 9000
RESELLER_INITIAL_CREDITS = 5


def price_for(credits: int) -> PriceTier:
    """Exact package lookup. Quantities between tiers are not sold."""
    tier = _BY_CREDITS.get(credits)
    if tier is None:
        raise InvalidPackageError(credits)
    return tier
