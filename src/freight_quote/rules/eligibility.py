"""Which tariff rows may price a shipment.

Each category gets a ``FilterSpec`` that the store applies server-side. The
validity overlap is re-checked on every fetched row as well: paged queries
and string-typed date columns have let out-of-window rows through before, so
the query result alone is not trusted.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from ..connectors.tariff_store import FilterSpec
from ..settings import settings
from .criteria import Direction, ShipmentCriteria, SortBy

logger = logging.getLogger(__name__)

__all__ = [
    "ocean_filter",
    "local_filter",
    "transport_filter",
    "transport_location_column",
    "overlaps",
    "is_within_window",
    "currency_matches",
]


def _validity(spec: FilterSpec, criteria: ShipmentCriteria) -> FilterSpec:
    return spec.lte("effective_date", criteria.date_to).gte("valid_until", criteria.date_from)


def ocean_filter(criteria: ShipmentCriteria, limit: Optional[int] = None) -> FilterSpec:
    spec = FilterSpec(limit=limit if limit is not None else settings.ocean_row_limit)
    spec.iin("port_of_loading", criteria.pol)
    spec.iin("port_of_discharge", criteria.pod)
    spec.ieq("direction", criteria.direction_value)
    spec.ieq("currency", settings.source_currency)
    _validity(spec, criteria)

    if criteria.mode:
        spec.ieq("mode", criteria.mode)
    if criteria.carrier:
        spec.ieq("carrier", criteria.carrier)
    if criteria.transit_days is not None:
        spec.eq("transit_time", criteria.transit_days)
    if criteria.service_type:
        spec.ieq("service_type", criteria.service_type)
    if criteria.dangerous_goods is True:
        spec.ieq("dg", "Yes")
    elif criteria.dangerous_goods is False:
        spec.ieq("dg", "No")
    if criteria.sort_mode is SortBy.RECOMMENDED:
        spec.nonempty("preferred_vendor")
    return spec


def local_filter(criteria: ShipmentCriteria, limit: Optional[int] = None) -> FilterSpec:
    spec = FilterSpec(limit=limit if limit is not None else settings.local_row_limit)
    spec.ieq("direction", criteria.direction_value)
    spec.iin("port_of_discharge", criteria.local_ports)
    spec.ieq("currency", settings.reporting_currency)
    return _validity(spec, criteria)


def transport_location_column(criteria: ShipmentCriteria) -> str:
    """Import delivers to the point; export picks up from it."""
    if criteria.direction_value == Direction.IMPORT.value:
        return "delivery_location"
    return "pick_up_location"


def transport_filter(criteria: ShipmentCriteria, limit: Optional[int] = None) -> FilterSpec:
    spec = FilterSpec(limit=limit if limit is not None else settings.transport_row_limit)
    spec.ieq("direction", criteria.direction_value)
    spec.ieq("currency", settings.reporting_currency)
    _validity(spec, criteria)
    if criteria.vehicle_type:
        spec.ieq("vehicle_type", criteria.vehicle_type)
    if criteria.transport_vendor:
        spec.ieq("transport_vendor", criteria.transport_vendor)
    spec.ilike(transport_location_column(criteria), f"%{criteria.point}%")
    return spec


# ------------- Row-level checks -------------

def overlaps(
    effective: Optional[date],
    valid_until: Optional[date],
    window_from: date,
    window_to: date,
) -> bool:
    """Inclusive overlap of [effective, valid_until] with [window_from, window_to]."""
    if effective is None or valid_until is None:
        return False
    return effective <= window_to and valid_until >= window_from


def is_within_window(rate, criteria: ShipmentCriteria) -> bool:
    ok = overlaps(rate.effective_date, rate.valid_until, criteria.date_from, criteria.date_to)
    if not ok:
        logger.debug(
            "Skipping %s row outside %s..%s: %s - %s",
            type(rate).__name__,
            criteria.date_from,
            criteria.date_to,
            rate.effective_date,
            rate.valid_until,
        )
    return ok


def currency_matches(row_currency: Optional[str], expected: str) -> bool:
    return (row_currency or "").strip().upper() == expected.strip().upper()
