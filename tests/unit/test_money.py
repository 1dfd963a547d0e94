from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from pricefloor.core.money import (
    CurrencyCode,
    CurrencyMismatchError,
    Money,
    build_charm_ladder,
    cents_to_dollars,
    dollars_to_cents,
    format_compact,
    humanize_cents,
    parse_price_param,
    round_cents_to_charm,
    to_paypal_amount,
)


def usd(cents: int) -> Money:
    return Money.from_cents(cents, "USD")


def test_from_cents_truncates_fractional_cents():
    assert usd(1299).cents == 1299
    assert usd(12.7).cents == 12
    assert usd(-12.7).cents == -12
    assert usd(1299).currency is CurrencyCode.USD


@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
def test_from_cents_rejects_non_finite(value):
    with pytest.raises(ValueError):
        Money.from_cents(value, "USD")


def test_unknown_currency_rejected():
    with pytest.raises(ValueError):
        Money.from_cents(100, "BTC")


def test_from_decimal_uses_currency_decimals():
    assert Money.from_decimal(12.99, "USD").cents == 1299
    assert Money.from_decimal(Decimal("12.99"), "EUR").cents == 1299
    assert Money.from_decimal(1299, "JPY").cents == 1299


def test_from_decimal_rounds_half_up():
    assert Money.from_decimal(0.125, "USD").cents == 13
    assert Money.from_decimal(-0.125, "USD").cents == -12


@pytest.mark.parametrize("value", [float("inf"), float("nan")])
def test_from_decimal_rejects_non_finite(value):
    with pytest.raises(ValueError):
        Money.from_decimal(value, "USD")


@pytest.mark.parametrize(
    ("amount", "currency"),
    [(12.99, "USD"), (0.01, "GBP"), (1999.5, "AUD"), (-3.5, "CAD"), (1299, "JPY")],
)
def test_from_decimal_round_trips_through_to_number(amount, currency):
    assert Money.from_decimal(amount, currency).to_number() == pytest.approx(amount)


@pytest.mark.parametrize(
    ("text", "currency", "expected"),
    [
        ("$12.99", "USD", 1299),
        ("12.9", "USD", 1290),
        ("12", "USD", 1200),
        ("12.999", "USD", 1299),
        (".50", "USD", 50),
        ("A$ 1,299.00", "AUD", 129900),
        ("1,299", "JPY", 1299),
        ("1299.7", "JPY", 1299),
        ("", "USD", 0),
        (None, "USD", 0),
        ("free", "USD", 0),
    ],
)
def test_parse(text, currency, expected):
    assert Money.parse(text, currency).cents == expected


def test_money_is_immutable():
    money = usd(100)
    with pytest.raises(FrozenInstanceError):
        money.cents = 200  # type: ignore[misc]


def test_arithmetic_returns_new_values():
    a, b = usd(1000), usd(250)
    assert a.add(b) == usd(1250)
    assert a.sub(b) == usd(750)
    assert a + b == usd(1250)
    assert b - a == usd(-750)
    assert a.cents == 1000


def test_scaling_rounds_to_nearest_cent():
    assert usd(1299).mul(3) == usd(3897)
    assert usd(1299).mul(1.15) == usd(1494)
    assert usd(5).mul(0.5) == usd(3)
    assert usd(1299) * 2 == usd(2598)
    assert 2 * usd(1299) == usd(2598)
    assert usd(1299).mul_bps(1000) == usd(130)
    assert usd(1490).mul_bps(975) == usd(145)


def test_operators_reject_non_money_operands():
    with pytest.raises(TypeError):
        usd(100) + 1
    with pytest.raises(TypeError):
        usd(100) - 1
    with pytest.raises(TypeError):
        usd(100) * usd(2)
    with pytest.raises(TypeError):
        usd(100) * "2"


def test_mismatched_currency_arithmetic_fails():
    eur = Money.from_cents(100, "EUR")
    with pytest.raises(CurrencyMismatchError):
        usd(100).add(eur)
    with pytest.raises(CurrencyMismatchError):
        usd(100) + eur
    with pytest.raises(CurrencyMismatchError):
        usd(100).sub(eur)
    with pytest.raises(ValueError):
        usd(100).clamp(min=eur)


def test_clamp():
    assert usd(500).clamp(min=usd(1000)) == usd(1000)
    assert usd(500).clamp(max=usd(300)) == usd(300)
    assert usd(500).clamp(usd(100), usd(900)) == usd(500)
    assert usd(500).clamp() == usd(500)


@pytest.mark.parametrize(
    ("cents", "charm", "expected"),
    [
        (1432, ".99", 1499),
        (1499, ".99", 1499),
        (1500, ".99", 1599),
        (1432, ".95", 1495),
        (1491, ".90", 1590),
        (1432, "none", 1432),
    ],
)
def test_with_charm(cents, charm, expected):
    assert usd(cents).with_charm(charm).cents == expected


def test_with_charm_respects_minimum():
    assert usd(1000).with_charm(".99", usd(1550)).cents == 1699
    assert usd(1000).with_charm("none", usd(1500)).cents == 1500
    assert usd(1600).with_charm(".99", usd(1550)).cents == 1699


def test_with_charm_skips_zero_decimal_currencies():
    yen = Money.from_cents(1234, "JPY")
    assert yen.with_charm(".99") == yen
    assert yen.with_charm(".99", Money.from_cents(2000, "JPY")).cents == 2000


def test_format_uses_currency_default_locale():
    assert usd(1299).format() == "$12.99"
    assert usd(123456789).format() == "$1,234,567.89"
    assert Money.from_cents(1299, "GBP").format() == "£12.99"
    assert Money.from_cents(1299, "EUR").format().replace("\xa0", " ") == "12,99 €"


def test_format_zero_decimal_currency():
    formatted = Money.from_cents(1299, "JPY").format()
    assert "1,299" in formatted
    assert "." not in formatted


def test_format_with_explicit_locale():
    assert Money.from_cents(1299, "EUR").format("en-US") == "€12.99"
    assert Money.from_cents(1299, "EUR").format("en_US") == "€12.99"
    assert usd(-350).format() == "-$3.50"


def test_to_processor_amount():
    assert usd(1299).to_processor_amount() == {"currency_code": "USD", "value": "12.99"}
    assert usd(1200).to_processor_amount()["value"] == "12.00"
    assert usd(5).to_processor_amount()["value"] == "0.05"
    assert usd(-150).to_processor_amount()["value"] == "-1.50"
    assert Money.from_cents(1299, "JPY").to_processor_amount() == {"currency_code": "JPY", "value": "1299"}


def test_cents_conversion_helpers_default_to_settings_currency():
    assert dollars_to_cents(12.99) == 1299
    assert cents_to_dollars(1299) == pytest.approx(12.99)


def test_cents_conversion_helpers_follow_default_currency(override_env):
    override_env(DEFAULT_CURRENCY="JPY")
    assert dollars_to_cents(1299) == 1299
    assert cents_to_dollars(1299) == 1299


def test_humanize_cents():
    assert humanize_cents(1299) == "$12.99"
    assert humanize_cents(1299, "GBP") == "£12.99"


def test_build_charm_ladder():
    assert build_charm_ladder(1433, "USD") == [1499, 1699, 1899]
    assert build_charm_ladder(1433, "USD", multipliers=(1.0, 1.01)) == [1499]


def test_round_cents_to_charm():
    assert round_cents_to_charm(1000, "USD") == 1099
    assert round_cents_to_charm(1000, "USD", ".99", 1550) == 1699
    assert round_cents_to_charm(1000, "JPY") == 1000


def test_parse_price_param():
    assert parse_price_param(None) == 0
    assert parse_price_param("") == 0
    assert parse_price_param("$12.99") == 1299
    assert parse_price_param("5", min_cents=1000) == 1000
    assert parse_price_param("9999999999") == 100_000_000
    assert parse_price_param("99", "USD", max_cents=5000) == 5000


def test_parse_price_param_max_from_settings(override_env):
    override_env(PRICE_PARAM_MAX_CENTS="5000")
    assert parse_price_param("$99") == 5000


def test_to_paypal_amount():
    assert to_paypal_amount(1299, "AUD") == {"currency_code": "AUD", "value": "12.99"}


def test_format_compact():
    assert format_compact(1_290_000, "USD") == "$12.9K"
    assert format_compact(250_000_000, "USD") == "$2.5M"


def test_format_compact_keeps_at_most_one_fraction_digit():
    assert format_compact(1299, "USD") == "$13"
    assert format_compact(1250, "USD") == "$12.5"
    assert format_compact(99_999, "USD") == "$1K"
