"""
Money and pricing helpers.

Amounts are held as integer minor units (cents) tagged with a currency.
Arithmetic never mixes currencies and always returns a new value.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, Sequence, TypedDict

import structlog
from babel import Locale
from babel.numbers import format_compact_decimal, format_currency, get_currency_symbol

from .config import get_settings

logger = structlog.get_logger(__name__)


class CurrencyCode(str, Enum):
    USD = "USD"
    AUD = "AUD"
    NZD = "NZD"
    CAD = "CAD"
    EUR = "EUR"
    GBP = "GBP"
    JPY = "JPY"
    SGD = "SGD"
    HKD = "HKD"


class Charm(str, Enum):
    NINETY_NINE = ".99"
    NINETY_FIVE = ".95"
    NINETY = ".90"
    NONE = "none"


DECIMALS: dict[CurrencyCode, int] = {
    CurrencyCode.USD: 2,
    CurrencyCode.AUD: 2,
    CurrencyCode.NZD: 2,
    CurrencyCode.CAD: 2,
    CurrencyCode.EUR: 2,
    CurrencyCode.GBP: 2,
    CurrencyCode.JPY: 0,
    CurrencyCode.SGD: 2,
    CurrencyCode.HKD: 2,
}

DEFAULT_LOCALE: dict[CurrencyCode, str] = {
    CurrencyCode.USD: "en-US",
    CurrencyCode.AUD: "en-AU",
    CurrencyCode.NZD: "en-NZ",
    CurrencyCode.CAD: "en-CA",
    CurrencyCode.EUR: "de-DE",
    CurrencyCode.GBP: "en-GB",
    CurrencyCode.JPY: "ja-JP",
    CurrencyCode.SGD: "en-SG",
    CurrencyCode.HKD: "en-HK",
}

CHARM_ENDINGS: dict[Charm, int] = {
    Charm.NINETY_NINE: 99,
    Charm.NINETY_FIVE: 95,
    Charm.NINETY: 90,
}


class CurrencyMismatchError(ValueError):
    pass


class ProcessorAmount(TypedDict):
    currency_code: str
    value: str


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def _round_half_up(value: Decimal) -> int:
    # halves go towards +infinity, same as the integer math in econ
    return int((value + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR))


def _locale(locale: str) -> Locale:
    # accept BCP 47 tags ("en-US") as well as babel identifiers ("en_US")
    return Locale.parse(locale.replace("-", "_"))


@dataclass(frozen=True)
class Money:
    cents: int
    currency: CurrencyCode

    def __post_init__(self) -> None:
        object.__setattr__(self, "currency", CurrencyCode(self.currency))

    @property
    def decimals(self) -> int:
        return DECIMALS[self.currency]

    @classmethod
    def from_cents(cls, cents: int | float | Decimal, currency: CurrencyCode | str) -> "Money":
        """Construct from integer minor units; fractional cents are truncated."""
        if isinstance(cents, (float, Decimal)) and not math.isfinite(cents):
            raise ValueError("Invalid cents")
        return cls(int(cents), CurrencyCode(currency))

    @classmethod
    def from_decimal(cls, amount: int | float | Decimal, currency: CurrencyCode | str) -> "Money":
        """Construct from a major-unit amount such as ``12.99``."""
        currency = CurrencyCode(currency)
        try:
            value = _to_decimal(amount)
        except InvalidOperation as exc:
            raise ValueError("Invalid amount") from exc
        if not value.is_finite():
            raise ValueError("Invalid amount")
        return cls(_round_half_up(value.scaleb(DECIMALS[currency])), currency)

    @classmethod
    def parse(cls, text: Optional[str], currency: CurrencyCode | str) -> "Money":
        """
        Parse user-entered text like ``"$12.99"`` or ``"1299"`` (JPY).

        Anything other than digits and dots is dropped; empty input is zero.
        """
        currency = CurrencyCode(currency)
        numeric_part = re.sub(r"[^0-9.]", "", text or "")
        if not numeric_part:
            return cls(0, currency)
        decimals = DECIMALS[currency]
        parts = numeric_part.split(".")
        whole = int(parts[0] or "0")
        if decimals == 0:
            return cls(whole, currency)
        fraction = (parts[1] if len(parts) > 1 else "").ljust(decimals, "0")[:decimals]
        return cls(whole * 10**decimals + int(fraction), currency)

    def to_decimal(self) -> Decimal:
        return Decimal(self.cents).scaleb(-self.decimals)

    def to_number(self) -> float:
        return float(self.to_decimal())

    def format(self, locale: Optional[str] = None, **options: Any) -> str:
        """
        Locale-aware display string, e.g. ``$12.99`` or ``12,99 €``.

        Extra keyword arguments are passed to ``babel.numbers.format_currency``.
        """
        return format_currency(
            self.to_decimal(),
            self.currency.value,
            locale=_locale(locale or DEFAULT_LOCALE[self.currency]),
            **options,
        )

    def to_processor_amount(self) -> ProcessorAmount:
        """Amount shape used by PayPal/Stripe style payment APIs."""
        return {
            "currency_code": self.currency.value,
            "value": f"{self.to_decimal():.{self.decimals}f}",
        }

    def add(self, other: "Money") -> "Money":
        self._assert_same_currency(other)
        return Money(self.cents + other.cents, self.currency)

    def sub(self, other: "Money") -> "Money":
        self._assert_same_currency(other)
        return Money(self.cents - other.cents, self.currency)

    def mul(self, factor: int | float | Decimal) -> "Money":
        """Multiply by a scalar such as a quantity."""
        return Money(_round_half_up(Decimal(self.cents) * _to_decimal(factor)), self.currency)

    def mul_bps(self, bps: int | float | Decimal) -> "Money":
        return Money(_round_half_up(Decimal(self.cents) * _to_decimal(bps) / 10000), self.currency)

    def __add__(self, other: object) -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: object) -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.sub(other)

    def __mul__(self, factor: object) -> "Money":
        if isinstance(factor, bool) or not isinstance(factor, (int, float, Decimal)):
            return NotImplemented
        return self.mul(factor)

    __rmul__ = __mul__

    def clamp(self, min: Optional["Money"] = None, max: Optional["Money"] = None) -> "Money":
        cents = self.cents
        if min is not None:
            self._assert_same_currency(min)
            cents = cents if cents >= min.cents else min.cents
        if max is not None:
            self._assert_same_currency(max)
            cents = cents if cents <= max.cents else max.cents
        return Money(cents, self.currency)

    def with_charm(self, charm: Charm | str = Charm.NINETY_NINE, min: Optional["Money"] = None) -> "Money":
        """Apply a .99/.95/.90 ending, rounding up, without going below ``min``."""
        charm = Charm(charm)
        if charm is Charm.NONE or self.decimals == 0:
            return self.clamp(min) if min is not None else self

        ending = CHARM_ENDINGS[charm]
        dollars = self.cents // 100
        candidate = dollars * 100 + ending
        if candidate < self.cents:
            candidate = (dollars + 1) * 100 + ending
        if min is not None:
            self._assert_same_currency(min)
            if candidate < min.cents:
                candidate = (min.cents // 100 + 1) * 100 + ending
        return Money(candidate, self.currency)

    def _assert_same_currency(self, other: "Money") -> None:
        if self.currency is not other.currency:
            raise CurrencyMismatchError(
                f"Currency mismatch: {self.currency.value} vs {other.currency.value}"
            )


def _currency(currency: CurrencyCode | str | None) -> CurrencyCode:
    return CurrencyCode(currency or get_settings().default_currency)


def dollars_to_cents(amount: float | Decimal, currency: CurrencyCode | str | None = None) -> int:
    return Money.from_decimal(amount, _currency(currency)).cents


def cents_to_dollars(cents: int, currency: CurrencyCode | str | None = None) -> float:
    return Money.from_cents(cents, _currency(currency)).to_number()


def humanize_cents(cents: int, currency: CurrencyCode | str | None = None, locale: Optional[str] = None) -> str:
    return Money.from_cents(cents, _currency(currency)).format(locale)


def build_charm_ladder(
    min_price_cents: int,
    currency: CurrencyCode | str | None = None,
    multipliers: Sequence[float] = (1.0, 1.15, 1.30),
    charm: Charm | str = Charm.NINETY_NINE,
) -> list[int]:
    """Charm-priced ladder from a minimum price that already meets the floor."""
    base = Money.from_cents(min_price_cents, _currency(currency))
    ladder = [base.mul(multiplier).with_charm(charm, base).cents for multiplier in multipliers]
    return list(dict.fromkeys(ladder))


def round_cents_to_charm(
    cents: int,
    currency: CurrencyCode | str | None = None,
    charm: Charm | str = Charm.NINETY_NINE,
    min_cents: Optional[int] = None,
) -> int:
    currency = _currency(currency)
    minimum = Money.from_cents(min_cents, currency) if min_cents else None
    return Money.from_cents(cents, currency).with_charm(charm, minimum).cents


def parse_price_param(
    raw: Optional[str],
    currency: CurrencyCode | str | None = None,
    *,
    min_cents: int = 0,
    max_cents: Optional[int] = None,
) -> int:
    """Parse a price query parameter and clamp it into a sane range."""
    if not raw:
        return min_cents
    if max_cents is None:
        max_cents = get_settings().price_param_max_cents
    cents = Money.parse(raw, _currency(currency)).cents
    if cents < min_cents or cents > max_cents:
        logger.debug("Clamping price param", raw=raw, cents=cents, min_cents=min_cents, max_cents=max_cents)
    return min(max(cents, min_cents), max_cents)


def to_paypal_amount(cents: int, currency: CurrencyCode | str | None = None) -> ProcessorAmount:
    return Money.from_cents(cents, _currency(currency)).to_processor_amount()


def format_compact(cents: int, currency: CurrencyCode | str | None = None, locale: Optional[str] = None) -> str:
    """Short KPI-badge form such as ``$12.9K``."""
    currency = _currency(currency)
    babel_locale = _locale(locale or DEFAULT_LOCALE[currency])
    # below 1K babel leaves the amount uncompacted, so cap the fraction here
    amount = Money.from_cents(cents, currency).to_decimal().quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    symbol = get_currency_symbol(currency.value, locale=babel_locale)
    # babel has no compact currency form for every locale; symbol + compact number is stable
    return f"{symbol}{format_compact_decimal(amount, locale=babel_locale, fraction_digits=1)}"
