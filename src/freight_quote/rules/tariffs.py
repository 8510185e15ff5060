"""Typed views over raw tariff rows returned by the store."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

__all__ = [
    "ZERO",
    "to_rate",
    "to_date",
    "OceanRate",
    "LocalRate",
    "TransportRate",
]

ZERO = Decimal("0")


def to_rate(value: Any) -> Decimal:
    """Parse a rate cell; blanks and junk count as zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    text = str(value).strip().replace(",", "")
    if not text:
        return ZERO
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return ZERO
    return parsed if parsed.is_finite() else ZERO


def to_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError, OverflowError):
        return None


@dataclass
class OceanRate:
    port_of_loading: str
    port_of_discharge: str
    direction: Optional[str]
    currency: Optional[str]
    rate_20: Decimal = ZERO
    rate_40: Decimal = ZERO
    cubic_rate: Decimal = ZERO
    mode: Optional[str] = None
    carrier: Optional[str] = None
    transit_time: Optional[int] = None
    service_type: Optional[str] = None
    dg: Optional[str] = None
    preferred_vendor: Optional[str] = None
    effective_date: Optional[date] = None
    valid_until: Optional[date] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "OceanRate":
        return cls(
            port_of_loading=_text(row.get("port_of_loading")) or "",
            port_of_discharge=_text(row.get("port_of_discharge")) or "",
            direction=_text(row.get("direction")),
            currency=_text(row.get("currency")),
            rate_20=to_rate(row.get("20gp")),
            rate_40=to_rate(row.get("40gp_40hc")),
            cubic_rate=to_rate(row.get("cubic_rate")),
            mode=_text(row.get("mode")),
            carrier=_text(row.get("carrier")),
            transit_time=_int(row.get("transit_time")),
            service_type=_text(row.get("service_type")),
            dg=_text(row.get("dg")),
            preferred_vendor=_text(row.get("preferred_vendor")),
            effective_date=to_date(row.get("effective_date")),
            valid_until=to_date(row.get("valid_until")),
            raw=dict(row),
        )


@dataclass
class LocalRate:
    port_of_discharge: str
    direction: Optional[str]
    currency: Optional[str]
    charge_code: Optional[str] = None
    charge_description: Optional[str] = None
    basis: Optional[str] = None
    rate_20: Decimal = ZERO
    rate_40: Decimal = ZERO
    per_shipment: Decimal = ZERO
    cubic_rate: Decimal = ZERO
    dg_surcharge: Decimal = ZERO
    effective_date: Optional[date] = None
    valid_until: Optional[date] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "LocalRate":
        return cls(
            port_of_discharge=_text(row.get("port_of_discharge")) or "",
            direction=_text(row.get("direction")),
            currency=_text(row.get("currency")),
            charge_code=_text(row.get("cw1_charge_code")),
            charge_description=_text(row.get("charge_description")),
            basis=_text(row.get("basis")),
            rate_20=to_rate(row.get("20gp")),
            rate_40=to_rate(row.get("40gp_40hc")),
            per_shipment=to_rate(row.get("per_shipment_charge")),
            cubic_rate=to_rate(row.get("cubic_rate")),
            dg_surcharge=to_rate(row.get("dg_surcharge")),
            effective_date=to_date(row.get("effective_date")),
            valid_until=to_date(row.get("valid_until")),
            raw=dict(row),
        )


@dataclass
class TransportRate:
    pick_up_location: Optional[str]
    delivery_location: Optional[str]
    direction: Optional[str]
    currency: Optional[str]
    vehicle_type: Optional[str] = None
    charge_description: Optional[str] = None
    transport_vendor: Optional[str] = None
    rate_20: Decimal = ZERO
    rate_40: Decimal = ZERO
    cubic_rate: Decimal = ZERO
    surcharges: Dict[str, Decimal] = field(default_factory=dict)
    effective_date: Optional[date] = None
    valid_until: Optional[date] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # Surcharge columns as stored; see pricing.SURCHARGES for the flag mapping.
    SURCHARGE_COLUMNS = (
        "dg_surcharge",
        "drop_trailer",
        "heavy_weight_surcharge",
        "tail_gate",
        "side_loader_access_fees",
        "container_unpack_rate_loose",
        "container_unpack_rate_palletized",
        "fumigation_bmsb",
        "sideloader_same_day_collection",
    )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TransportRate":
        return cls(
            pick_up_location=_text(row.get("pick_up_location")),
            delivery_location=_text(row.get("delivery_location")),
            direction=_text(row.get("direction")),
            currency=_text(row.get("currency")),
            vehicle_type=_text(row.get("vehicle_type")),
            charge_description=_text(row.get("charge_description")),
            transport_vendor=_text(row.get("transport_vendor")),
            rate_20=to_rate(row.get("20gp")),
            rate_40=to_rate(row.get("40gp_40hc")),
            cubic_rate=to_rate(row.get("cubic_rate")),
            surcharges={col: to_rate(row.get(col)) for col in cls.SURCHARGE_COLUMNS},
            effective_date=to_date(row.get("effective_date")),
            valid_until=to_date(row.get("valid_until")),
            raw=dict(row),
        )

    def surcharge(self, column: str) -> Decimal:
        return self.surcharges.get(column, ZERO)
