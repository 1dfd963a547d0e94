"""
Profit floor engine for listing prices.

All monetary values are integer cents and all rates (fees, buffers, floors)
are basis points, 100 bps = 1%.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Iterable, Optional, Sequence

import structlog

from .config import get_settings
from .fees import Platform, get_fee_preset

logger = structlog.get_logger(__name__)

BPS_SCALE = 10_000


def _shallow(instance) -> dict:
    return {field.name: getattr(instance, field.name) for field in fields(instance)}


class ProductKind(str, Enum):
    PHYSICAL = "physical"
    DIGITAL = "digital"
    SERVICE = "service"
    FLIP = "flip"  # also subject to a sell-through check


class Charm(str, Enum):
    NINETY_NINE = ".99"
    NINETY_FIVE = ".95"
    NINETY = ".90"
    NONE = "none"


CHARM_ENDINGS: dict[Charm, int] = {
    Charm.NINETY_NINE: 99,
    Charm.NINETY_FIVE: 95,
    Charm.NINETY: 90,
    Charm.NONE: 0,
}

DEFAULT_FLOORS_BPS: dict[ProductKind, int] = {
    ProductKind.PHYSICAL: 3000,
    ProductKind.DIGITAL: 7000,
    ProductKind.SERVICE: 2500,  # effective margin target
    ProductKind.FLIP: 2500,
}


class InvalidPriceError(ValueError):
    pass


@dataclass(frozen=True)
class FloorInputs:
    """Everything needed to evaluate a listing except the price itself."""

    cogs_cents: int  # include freight-in if known
    shipping_cents: int  # outbound, your cost
    platform: Platform | str
    kind: ProductKind | str
    packaging_cents: int = 0
    override_pct_bps: Optional[int] = None
    override_fixed_cents: Optional[int] = None
    buffer_bps: Optional[int] = None
    floor_bps: Optional[int] = None
    country: Optional[str] = None  # US, AU, UK, EU or Other; metadata only

    def with_price(self, price_cents: int) -> "EconInputs":
        return EconInputs(**{**_shallow(self), "price_cents": price_cents})


@dataclass(frozen=True, kw_only=True)
class EconInputs(FloorInputs):
    price_cents: int


@dataclass(frozen=True)
class FeeBreakdown:
    fee_label: str
    platform_pct_bps: int
    fixed_fee_cents: int


@dataclass(frozen=True)
class FeeQuote:
    fees_cents: int
    pct_bps: int
    fixed_cents: int
    label: str


@dataclass(frozen=True)
class EconResult:
    price_cents: int
    fees_cents: int
    buffer_cents: int
    cogs_cents: int
    shipping_cents: int
    packaging_cents: int
    profit_cents: int
    margin_bps: int  # 3390 = 33.90%
    passed: bool
    floor_bps: int
    breakdown: FeeBreakdown


@dataclass(frozen=True)
class VariantInput:
    sku: str
    price_cents: int
    cogs_cents: int
    shipping_cents: int
    packaging_cents: Optional[int] = None


@dataclass(frozen=True, kw_only=True)
class VariantEval(EconResult):
    sku: str


@dataclass(frozen=True)
class _Rates:
    pct_bps: int
    fixed_cents: int
    buffer_bps: int
    floor_bps: int
    label: str

    @property
    def headroom_bps(self) -> int:
        # share of price left once fees, buffer and the floor are taken out
        return BPS_SCALE - self.pct_bps - self.buffer_bps - self.floor_bps


def bps(pct: float) -> int:
    return math.floor(pct * 100 + 0.5)


def pct_from_bps(value: float) -> float:
    return value / BPS_SCALE


def _round_half_up(numerator: int, denominator: int) -> int:
    return (2 * numerator + denominator) // (2 * denominator)


def mul_bps(amount_cents: int, rate_bps: int) -> int:
    """amount * rate / 10000, rounded to the nearest cent."""
    return _round_half_up(amount_cents * rate_bps, BPS_SCALE)


def _default_floor_bps(kind: ProductKind | str) -> int:
    try:
        return DEFAULT_FLOORS_BPS[ProductKind(kind)]
    except ValueError:
        logger.warning("Unknown product kind, using physical floor", kind=kind)
        return DEFAULT_FLOORS_BPS[ProductKind.PHYSICAL]


def _resolve_rates(inputs: FloorInputs) -> _Rates:
    preset = get_fee_preset(inputs.platform)
    return _Rates(
        pct_bps=preset.pct_bps if inputs.override_pct_bps is None else inputs.override_pct_bps,
        fixed_cents=preset.fixed_cents if inputs.override_fixed_cents is None else inputs.override_fixed_cents,
        buffer_bps=get_settings().default_buffer_bps if inputs.buffer_bps is None else inputs.buffer_bps,
        floor_bps=_default_floor_bps(inputs.kind) if inputs.floor_bps is None else inputs.floor_bps,
        label=preset.label,
    )


def compute_fees_cents(
    price_cents: int,
    platform: Platform | str,
    override_pct_bps: Optional[int] = None,
    override_fixed_cents: Optional[int] = None,
) -> FeeQuote:
    preset = get_fee_preset(platform)
    pct_bps = preset.pct_bps if override_pct_bps is None else override_pct_bps
    fixed_cents = preset.fixed_cents if override_fixed_cents is None else override_fixed_cents
    fees_cents = mul_bps(price_cents, pct_bps) + fixed_cents
    return FeeQuote(fees_cents=fees_cents, pct_bps=pct_bps, fixed_cents=fixed_cents, label=preset.label)


def evaluate_econ(inputs: EconInputs) -> EconResult:
    """Evaluate a single SKU price against its profit floor."""
    price_cents = inputs.price_cents
    if price_cents <= 0:
        raise InvalidPriceError("price_cents must be > 0")

    rates = _resolve_rates(inputs)
    fees_cents = mul_bps(price_cents, rates.pct_bps) + rates.fixed_cents
    buffer_cents = mul_bps(price_cents, rates.buffer_bps)
    profit_cents = price_cents - (
        inputs.cogs_cents + inputs.shipping_cents + inputs.packaging_cents + fees_cents + buffer_cents
    )
    margin_bps = _round_half_up(profit_cents * BPS_SCALE, price_cents)
    passed = margin_bps >= rates.floor_bps

    logger.debug(
        "Evaluated price against floor",
        price_cents=price_cents,
        profit_cents=profit_cents,
        margin_bps=margin_bps,
        floor_bps=rates.floor_bps,
        passed=passed,
    )
    return EconResult(
        price_cents=price_cents,
        fees_cents=fees_cents,
        buffer_cents=buffer_cents,
        cogs_cents=inputs.cogs_cents,
        shipping_cents=inputs.shipping_cents,
        packaging_cents=inputs.packaging_cents,
        profit_cents=profit_cents,
        margin_bps=margin_bps,
        passed=passed,
        floor_bps=rates.floor_bps,
        breakdown=FeeBreakdown(
            fee_label=rates.label,
            platform_pct_bps=rates.pct_bps,
            fixed_fee_cents=rates.fixed_cents,
        ),
    )


def min_price_for_floor_cents(inputs: FloorInputs) -> int | float:
    """
    Solve for the lowest price (cents) that meets the floor.

    price * (1 - pct - buffer - floor) >= cogs + shipping + packaging + fixed

    Returns:
        Price in cents, or ``math.inf`` when fees, buffer and floor together
        consume 100% or more of the price.
    """
    rates = _resolve_rates(inputs)
    denom_bps = rates.headroom_bps
    if denom_bps <= 0:
        logger.warning(
            "Floor unreachable at any price",
            pct_bps=rates.pct_bps,
            buffer_bps=rates.buffer_bps,
            floor_bps=rates.floor_bps,
        )
        return math.inf

    rhs_cents = inputs.cogs_cents + inputs.shipping_cents + inputs.packaging_cents + rates.fixed_cents
    price_cents = -(-(rhs_cents * BPS_SCALE) // denom_bps)
    logger.debug("Solved minimum price for floor", price_cents=price_cents, floor_bps=rates.floor_bps)
    return price_cents


def max_cogs_for_floor_cents(inputs: EconInputs) -> int:
    """Highest cost of goods that still meets the floor at ``inputs.price_cents``."""
    rates = _resolve_rates(inputs)
    return mul_bps(inputs.price_cents, rates.headroom_bps) - (
        inputs.shipping_cents + inputs.packaging_cents + rates.fixed_cents
    )


def _charm_ceil(cents: int, ending: int) -> int:
    dollars = cents // 100
    target = dollars * 100 + ending
    if target >= cents:
        return target
    return (dollars + 1) * 100 + ending


def round_to_charm(
    price_cents: int,
    charm: Charm | str = Charm.NINETY_NINE,
    min_cents: Optional[int] = None,
) -> int:
    """Round up to the next .99/.95/.90 ending, never below ``min_cents``."""
    if min_cents and price_cents < min_cents:
        price_cents = min_cents
    charm = Charm(charm)
    if charm is Charm.NONE:
        return price_cents
    return _charm_ceil(price_cents, CHARM_ENDINGS[charm])


def build_price_ladder_cents(
    base_inputs: FloorInputs,
    steps: Sequence[float] = (1.0, 1.15, 1.30),
    charm: Charm | str = Charm.NINETY_NINE,
) -> list[int]:
    """Charm-priced ladder that meets the floor at entry and ascends by ``steps``."""
    p0 = min_price_for_floor_cents(base_inputs)
    if math.isinf(p0):
        return []
    p0 = int(p0)

    ladder: list[int] = []
    for index, multiplier in enumerate(steps):
        charmed = round_to_charm(math.ceil(p0 * multiplier), charm, p0)
        result = evaluate_econ(base_inputs.with_price(charmed))
        if not result.passed and index == 0:
            # fees/floor so tight that charm rounding of p0 fell short
            charmed = round_to_charm(p0 + 1, charm, p0)
        ladder.append(charmed)
    # charm rounding can collapse neighbouring rungs
    return list(dict.fromkeys(ladder))


def evaluate_variants(variants: Iterable[VariantInput], common: FloorInputs) -> list[VariantEval]:
    """Evaluate SKU variants sharing platform, kind and overrides."""
    evaluations: list[VariantEval] = []
    for variant in variants:
        base = replace(
            common,
            cogs_cents=variant.cogs_cents,
            shipping_cents=variant.shipping_cents,
            packaging_cents=variant.packaging_cents or 0,
        )
        result = evaluate_econ(base.with_price(variant.price_cents))
        evaluations.append(VariantEval(sku=variant.sku, **_shallow(result)))
    return evaluations


def passes_sell_through(expected_days_to_sell: float, threshold_days: Optional[float] = None) -> bool:
    """Flip heuristic: the item must be expected to sell within the threshold."""
    if threshold_days is None:
        threshold_days = get_settings().sell_through_threshold_days
    return expected_days_to_sell <= threshold_days


def humanize_cents(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    value = abs(cents)
    return f"{sign}${value // 100}.{value % 100:02d}"
