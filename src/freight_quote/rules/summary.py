"""Sections, the cross-currency summary and the final calculation result.

Line totals and subtotals stay exact (rate x qty, summed). Only the converted
ocean amount is rounded to cents, and the grand total is built from that
rounded figure so the summary always adds up on paper.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List

from .pricing import LineItem
from .tariffs import ZERO

__all__ = [
    "Section",
    "Summary",
    "CalculationResult",
    "convert",
    "build_summary",
]


def _money(x: Decimal | int | float | str) -> Decimal:
    if not isinstance(x, Decimal):
        x = Decimal(str(x))
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def convert(amount: Decimal, rate: Decimal) -> Decimal:
    """Source-currency amount in the reporting currency, to the cent."""
    return _money(Decimal(amount) * Decimal(str(rate)))


@dataclass
class Section:
    currency: str
    title: str
    subtitle: str = ""
    items: List[LineItem] = field(default_factory=list)
    # data-quality notes, e.g. rows skipped for an unexpected currency
    warnings: List[str] = field(default_factory=list)

    @property
    def subtotal(self) -> Decimal:
        return sum((i.total for i in self.items), ZERO)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currency": self.currency,
            "title": self.title,
            "subtitle": self.subtitle,
            "items": [i.to_dict() for i in self.items],
            "subtotal": str(self.subtotal),
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class Summary:
    currency: str
    exchange_rate: Decimal
    ocean: Decimal
    local: Decimal
    transport: Decimal
    grand_total: Decimal

    def breakdown(self) -> List[Dict[str, str]]:
        return [
            {"label": "Ocean Freight (converted)", "amount": str(self.ocean)},
            {"label": "Local Charges", "amount": str(self.local)},
            {"label": "Transport", "amount": str(self.transport)},
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currency": self.currency,
            "exchange_rate": str(self.exchange_rate),
            "lines": self.breakdown(),
            "grand_total": str(self.grand_total),
        }


def build_summary(ocean: Section, local: Section, transport: Section, exchange_rate: Decimal) -> Summary:
    rate = Decimal(str(exchange_rate))
    if rate <= 0:
        raise ValueError(f"exchange rate must be positive, got {exchange_rate}")
    ocean_converted = convert(ocean.subtotal, rate)
    return Summary(
        currency=local.currency,
        exchange_rate=rate,
        ocean=ocean_converted,
        local=local.subtotal,
        transport=transport.subtotal,
        grand_total=ocean_converted + local.subtotal + transport.subtotal,
    )


@dataclass
class CalculationResult:
    ocean: Section
    local: Section
    transport: Section
    summary: Summary
    validity_from: date
    validity_to: date
    queries: List[str] = field(default_factory=list)

    def with_exchange_rate(self, exchange_rate: Decimal) -> "CalculationResult":
        """Same sections, summary re-converted at a new rate. Nothing is re-fetched."""
        summary = build_summary(self.ocean, self.local, self.transport, exchange_rate)
        return replace(self, summary=summary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ocean": self.ocean.to_dict(),
            "local": self.local.to_dict(),
            "transport": self.transport.to_dict(),
            "summary": self.summary.to_dict(),
            "validity_period": {
                "from": self.validity_from.isoformat(),
                "to": self.validity_to.isoformat(),
            },
            "queries": list(self.queries),
        }
