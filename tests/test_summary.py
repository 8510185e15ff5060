from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from freight_quote.rules.pricing import PER_CONTAINER, LineItem
from freight_quote.rules.summary import CalculationResult, Section, build_summary, convert


def _section(currency, *totals):
    items = [
        LineItem(label=f"line {i}", unit=PER_CONTAINER, qty=1, rate=Decimal(t), total=Decimal(t))
        for i, t in enumerate(totals)
    ]
    return Section(currency=currency, title=currency, items=items)


@pytest.mark.parametrize(
    "amount, rate, expected",
    [
        ("3000", "1.50", "4500.00"),
        ("0.01", "0.5", "0.01"),
        ("10.003", "1", "10.00"),
        ("1234.565", "1", "1234.57"),
    ],
)
def test_convert_rounds_half_up_to_cents(amount, rate, expected):
    assert convert(Decimal(amount), Decimal(rate)) == Decimal(expected)


def test_grand_total_adds_converted_ocean_to_local_sections():
    ocean = _section("USD", "1500", "1333.33")
    local = _section("AUD", "350", "95.50")
    transport = _section("AUD", "250")

    summary = build_summary(ocean, local, transport, Decimal("1.53"))

    assert summary.currency == "AUD"
    assert summary.ocean == convert(ocean.subtotal, Decimal("1.53"))
    assert summary.grand_total == summary.ocean + local.subtotal + transport.subtotal
    assert summary.to_dict()["grand_total"] == str(summary.grand_total)


def test_empty_sections_total_zero():
    summary = build_summary(_section("USD"), _section("AUD"), _section("AUD"), Decimal("1.5"))
    assert summary.grand_total == Decimal("0")


@pytest.mark.parametrize("rate", ["0", "-1.2"])
def test_non_positive_exchange_rate_rejected(rate):
    with pytest.raises(ValueError):
        build_summary(_section("USD"), _section("AUD"), _section("AUD"), Decimal(rate))


def test_with_exchange_rate_only_rebuilds_summary():
    ocean, local, transport = _section("USD", "1000"), _section("AUD", "200"), _section("AUD")
    result = CalculationResult(
        ocean=ocean,
        local=local,
        transport=transport,
        summary=build_summary(ocean, local, transport, Decimal("1.5")),
        validity_from=date(2024, 6, 1),
        validity_to=date(2024, 6, 30),
    )

    updated = result.with_exchange_rate(Decimal("1.6"))

    assert updated.ocean is result.ocean
    assert updated.summary.grand_total == Decimal("1800.00")
    assert result.summary.grand_total == Decimal("1700.00")
    assert updated.to_dict()["validity_period"] == {"from": "2024-06-01", "to": "2024-06-30"}
