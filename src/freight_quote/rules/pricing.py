# src/freight_quote/rules/pricing.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple, Union

from .criteria import CONTAINER_EQUIPMENT, Direction, Equipment, ShipmentCriteria
from .tariffs import ZERO, LocalRate, OceanRate, TransportRate

__all__ = [
    "PER_CONTAINER",
    "PER_SHIPMENT",
    "PER_CBM",
    "LineItem",
    "Surcharge",
    "SURCHARGES",
    "applicable_surcharges",
    "price_ocean",
    "price_local",
    "price_transport",
]

PER_CONTAINER = "PER_CONTAINER"
PER_SHIPMENT = "PER_SHIPMENT"
PER_CBM = "PER_CBM"

Quantity = Union[int, Decimal]

# 20ft reefers price off the 20ft rate; every 40ft box shares the 40ft rate.
RATE_BAND = {
    Equipment.GP20: "rate_20",
    Equipment.RE20: "rate_20",
    Equipment.GP40: "rate_40",
    Equipment.HC40: "rate_40",
    Equipment.RH40: "rate_40",
}


@dataclass
class LineItem:
    label: str
    unit: str
    qty: Quantity
    rate: Decimal
    total: Decimal
    extra: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "unit": self.unit,
            "qty": str(self.qty),
            "rate": str(self.rate),
            "total": str(self.total),
            "extra": self.extra,
        }


def _line(label: str, unit: str, qty: Quantity, rate: Decimal, extra: Optional[str] = None) -> LineItem:
    return LineItem(label=label, unit=unit, qty=qty, rate=rate, total=rate * qty, extra=extra or None)


# -------------------------------
# Opt-in transport surcharges
# -------------------------------

@dataclass(frozen=True)
class Surcharge:
    """An add-on rate column switched on by a boolean shipment flag."""

    label: str
    flag: str     # ShipmentCriteria attribute
    column: str   # TransportRate surcharge column


SURCHARGES: Tuple[Surcharge, ...] = (
    Surcharge("DG", "dangerous_goods", "dg_surcharge"),
    Surcharge("Drop Trailer", "drop_trailer", "drop_trailer"),
    Surcharge("Heavy Weight", "heavy_weight_surcharge", "heavy_weight_surcharge"),
    Surcharge("Tailgate", "via_tailgate", "tail_gate"),
    Surcharge("Side Loader", "side_loader_access_fees", "side_loader_access_fees"),
    Surcharge("Unpack Loose", "unpack_loose", "container_unpack_rate_loose"),
    Surcharge("Unpack Palletized", "unpack_palletized", "container_unpack_rate_palletized"),
    Surcharge("Fumigation", "fumigation_surcharge", "fumigation_bmsb"),
    Surcharge("Sideloader Sameday", "sideloader_sameday_collection", "sideloader_same_day_collection"),
)


def applicable_surcharges(rate: TransportRate, criteria: ShipmentCriteria) -> List[Tuple[Surcharge, Decimal]]:
    """Surcharges the shipper opted into that this row actually prices."""
    applied: List[Tuple[Surcharge, Decimal]] = []
    for surcharge in SURCHARGES:
        if getattr(criteria, surcharge.flag) is not True:
            continue
        amount = rate.surcharge(surcharge.column)
        if amount > 0:
            applied.append((surcharge, amount))
    return applied


def _surcharge_note(applied: List[Tuple[Surcharge, Decimal]]) -> str:
    if not applied:
        return ""
    return " + " + " + ".join(f"{s.label}: {amount:.2f}" for s, amount in applied)


# -------------------------------
# Ocean
# -------------------------------

def _ocean_extra(rate: OceanRate) -> str:
    parts = [rate.mode, rate.carrier, rate.transit_time, rate.service_type]
    if rate.dg:
        parts.append(f"DG: {rate.dg}")
    return " - ".join(str(p) for p in parts if p)


def price_ocean(rate: OceanRate, criteria: ShipmentCriteria) -> List[LineItem]:
    items: List[LineItem] = []
    route = f"{rate.port_of_loading} → {rate.port_of_discharge}"
    extra = _ocean_extra(rate)
    suffix = f" - {extra}" if extra else ""
    quantities = criteria.quantities()

    for equipment in CONTAINER_EQUIPMENT:
        qty = quantities[equipment]
        if qty <= 0:
            continue
        unit_rate = getattr(rate, RATE_BAND[equipment])
        if unit_rate > 0:
            items.append(_line(f"{route} ({equipment.value}{suffix})", PER_CONTAINER, qty, unit_rate, extra))

    cbm = criteria.lcl_volume
    if cbm > 0 and rate.cubic_rate > 0:
        items.append(_line(f"{route} (LCL{suffix})", PER_CBM, cbm, rate.cubic_rate, extra))
    return items


# -------------------------------
# Destination local charges
# -------------------------------

def price_local(rate: LocalRate, criteria: ShipmentCriteria) -> List[LineItem]:
    items: List[LineItem] = []
    description = rate.charge_description or "Local Charge"
    code = rate.charge_code

    # Flat charges apply once, whatever the container count.
    if rate.per_shipment > 0:
        items.append(_line(description, PER_SHIPMENT, 1, rate.per_shipment, code))

    quantities = criteria.quantities()
    for equipment in CONTAINER_EQUIPMENT:
        qty = quantities[equipment]
        if qty <= 0:
            continue
        unit_rate = getattr(rate, RATE_BAND[equipment])
        if unit_rate > 0:
            items.append(_line(f"{description} ({equipment.value})", PER_CONTAINER, qty, unit_rate, code))

    cbm = criteria.lcl_volume
    if cbm > 0 and rate.cubic_rate > 0:
        items.append(_line(f"{description} (LCL)", PER_CBM, cbm, rate.cubic_rate, code))

    if criteria.dangerous_goods is True and rate.dg_surcharge > 0:
        items.append(_line(f"{description} (DG surcharge)", PER_SHIPMENT, 1, rate.dg_surcharge, code))
    return items


# -------------------------------
# Inland transport
# -------------------------------

def _transport_label(rate: TransportRate, criteria: ShipmentCriteria) -> str:
    if rate.charge_description:
        return rate.charge_description
    if criteria.direction_value == Direction.IMPORT.value:
        return f"{rate.delivery_location or criteria.point} delivery"
    return f"{rate.pick_up_location or criteria.point} pickup"


def price_transport(rate: TransportRate, criteria: ShipmentCriteria) -> List[LineItem]:
    items: List[LineItem] = []
    base_label = _transport_label(rate, criteria)
    vehicle = f" - {rate.vehicle_type}" if rate.vehicle_type else ""

    applied = applicable_surcharges(rate, criteria)
    add_on = sum((amount for _, amount in applied), ZERO)
    note = _surcharge_note(applied)

    quantities = criteria.quantities()
    for equipment in CONTAINER_EQUIPMENT:
        qty = quantities[equipment]
        if qty <= 0:
            continue
        unit_rate = getattr(rate, RATE_BAND[equipment]) + add_on
        if unit_rate > 0:
            label = f"{base_label} ({equipment.value}{vehicle}{note})"
            items.append(_line(label, PER_CONTAINER, qty, unit_rate, rate.vehicle_type))

    cbm = criteria.lcl_volume
    if cbm > 0:
        label = f"{base_label} (LCL{vehicle}{note})"
        if rate.cubic_rate > 0:
            items.append(_line(label, PER_CBM, cbm, rate.cubic_rate + add_on, rate.vehicle_type))
        else:
            # No per-CBM tariff: the LCL load moves as one 20ft container-equivalent.
            unit_rate = rate.rate_20 + add_on
            if unit_rate > 0:
                items.append(_line(label, PER_CONTAINER, 1, unit_rate, rate.vehicle_type))
    return items
