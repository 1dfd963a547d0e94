from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog


logger = structlog.get_logger(__name__)


class Platform(str, Enum):
    ETSY = "etsy"
    EBAY = "ebay"
    GUMROAD = "gumroad"
    SHOPIFY = "shopify"
    TIKTOK_SHOP = "tiktok_shop"
    STRIPE_LINKS = "stripe_links"
    OTHER = "other"


@dataclass(frozen=True)
class FeePreset:
    pct_bps: int  # percentage of price in bps (100 bps = 1%)
    fixed_cents: int  # per-transaction fixed component
    label: str


PLATFORM_FEES: dict[Platform, FeePreset] = {
    # 6.5% transaction + ~3.25% payment processing
    Platform.ETSY: FeePreset(pct_bps=650 + 325, fixed_cents=0, label="Etsy + payment (~9.75%)"),
    Platform.EBAY: FeePreset(pct_bps=1300, fixed_cents=0, label="eBay final value (avg)"),
    Platform.GUMROAD: FeePreset(pct_bps=1000, fixed_cents=30, label="Gumroad 10% + $0.30"),
    Platform.SHOPIFY: FeePreset(pct_bps=290, fixed_cents=30, label="Stripe 2.9% + $0.30"),
    Platform.TIKTOK_SHOP: FeePreset(pct_bps=600, fixed_cents=0, label="TikTok Shop (~6%)"),
    Platform.STRIPE_LINKS: FeePreset(pct_bps=290, fixed_cents=30, label="Stripe 2.9% + $0.30"),
    Platform.OTHER: FeePreset(pct_bps=300, fixed_cents=30, label="Generic PSP 3% + $0.30"),
}


def get_fee_preset(platform: str) -> FeePreset:
    """Return the fee preset for a platform, falling back to the generic one."""
    try:
        return PLATFORM_FEES[Platform(platform)]
    except ValueError:
        logger.warning("Unknown platform, using generic fee preset", platform=platform)
        return PLATFORM_FEES[Platform.OTHER]
