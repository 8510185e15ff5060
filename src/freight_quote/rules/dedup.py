"""Collapse duplicate ocean offers and order what remains.

The same commercial offer (route, carrier, mode, service level, transit time
and DG applicability) is often imported more than once. Only one row per
offer is priced: the cheapest positive one, or the first seen when prices tie.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from .criteria import SortBy
from .tariffs import OceanRate

__all__ = [
    "MISSING",
    "dedup_key",
    "representative_rate",
    "dedupe_ocean",
    "recommended_score",
    "sort_ocean",
]

MISSING = "N/A"

# Reference scales for the blended "recommended" score.
PRICE_SCALE = Decimal("5000")
TRANSIT_SCALE = Decimal("45")
DEFAULT_TRANSIT_DAYS = 30
PRICE_WEIGHT = Decimal("0.6")
TRANSIT_WEIGHT = Decimal("0.4")

DedupKey = Tuple[str, str, str, str, str, str, str]


def _part(value) -> str:
    if value is None or value == "" or value == 0:
        return MISSING
    return str(value)


def dedup_key(rate: OceanRate) -> DedupKey:
    return (
        _part(rate.port_of_loading),
        _part(rate.port_of_discharge),
        _part(rate.carrier),
        _part(rate.mode),
        _part(rate.service_type),
        _part(rate.transit_time),
        _part(rate.dg),
    )


def representative_rate(rate: OceanRate) -> Optional[Decimal]:
    """First positive rate across 20ft, 40ft and per-CBM, or None."""
    for value in (rate.rate_20, rate.rate_40, rate.cubic_rate):
        if value > 0:
            return value
    return None


def dedupe_ocean(rates: Iterable[OceanRate]) -> List[OceanRate]:
    kept: Dict[DedupKey, OceanRate] = {}
    for rate in rates:
        key = dedup_key(rate)
        existing = kept.get(key)
        if existing is None:
            kept[key] = rate
            continue
        current = representative_rate(rate)
        if current is None:
            continue
        held = representative_rate(existing)
        # strict < keeps the earlier row on ties
        if held is None or current < held:
            kept[key] = rate
    return list(kept.values())


def recommended_score(rate: OceanRate) -> Optional[Decimal]:
    price = representative_rate(rate)
    if price is None:
        return None
    transit = rate.transit_time or DEFAULT_TRANSIT_DAYS
    return PRICE_WEIGHT * (price / PRICE_SCALE) + TRANSIT_WEIGHT * (Decimal(transit) / TRANSIT_SCALE)


def _last_if_none(value) -> Tuple[int, Decimal]:
    return (1, Decimal(0)) if value is None else (0, Decimal(value))


def sort_ocean(rates: List[OceanRate], sort_by: Optional[SortBy]) -> List[OceanRate]:
    """Order deduplicated rows; Python's stable sort keeps input order on ties."""
    if sort_by is SortBy.CHEAPEST:
        return sorted(rates, key=lambda r: _last_if_none(representative_rate(r)))
    if sort_by is SortBy.FASTEST:
        return sorted(rates, key=lambda r: _last_if_none(r.transit_time))
    if sort_by is SortBy.RECOMMENDED:
        return sorted(rates, key=lambda r: _last_if_none(recommended_score(r)))
    return list(rates)
