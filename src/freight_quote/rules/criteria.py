"""Shipment criteria: the input side of a freight quote."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple, Union

__all__ = [
    "Direction",
    "SortBy",
    "Equipment",
    "CONTAINER_EQUIPMENT",
    "InvalidCriteria",
    "ShipmentCriteria",
]


class InvalidCriteria(ValueError):
    """Raised when shipment criteria cannot be priced."""

    def __init__(self, field_name: str, message: str):
        super().__init__(f"{field_name}: {message}")
        self.field_name = field_name
        self.message = message


class Direction(str, Enum):
    IMPORT = "import"
    EXPORT = "export"


class SortBy(str, Enum):
    CHEAPEST = "cheapest"
    FASTEST = "fastest"
    RECOMMENDED = "recommended"


class Equipment(str, Enum):
    GP20 = "20GP"
    GP40 = "40GP"
    HC40 = "40HC"
    RE20 = "20RE"
    RH40 = "40RH"
    LCL = "LCL"


# Pricing order for container lines.
CONTAINER_EQUIPMENT: Tuple[Equipment, ...] = (
    Equipment.GP20,
    Equipment.GP40,
    Equipment.HC40,
    Equipment.RE20,
    Equipment.RH40,
)


def _as_date(value: Union[date, datetime, str, None]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()


def _as_ports(value: Union[str, Sequence[str], None]) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    return tuple(p.strip() for p in value if p and p.strip())


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class ShipmentCriteria:
    """What the shipper asked for.

    ``pol`` / ``pod`` accept a single port or a list of ports. Optional string
    filters left blank impose no constraint; ``dangerous_goods`` is tri-state
    (``None`` means "either").
    """

    direction: Union[Direction, str]
    pol: Union[str, Sequence[str]]
    pod: Union[str, Sequence[str]]
    validity_from: Union[date, str, None]
    validity_to: Union[date, str, None]
    point: str = ""

    qty20: int = 0
    qty40: int = 0
    qty40hc: int = 0
    qty20re: int = 0
    qty40rh: int = 0
    lcl_cbm: Union[Decimal, float, int, str] = Decimal("0")

    mode: Optional[str] = None
    carrier: Optional[str] = None
    service_type: Optional[str] = None
    vehicle_type: Optional[str] = None
    transport_vendor: Optional[str] = None
    transit_time: Optional[Union[int, str]] = None
    dangerous_goods: Optional[bool] = None

    drop_trailer: bool = False
    heavy_weight_surcharge: bool = False
    via_tailgate: bool = False
    side_loader_access_fees: bool = False
    unpack_loose: bool = False
    unpack_palletized: bool = False
    fumigation_surcharge: bool = False
    sideloader_sameday_collection: bool = False

    sort_by: Optional[Union[SortBy, str]] = None

    def __post_init__(self) -> None:
        self.pol = _as_ports(self.pol)
        self.pod = _as_ports(self.pod)
        self.point = (self.point or "").strip()
        for name in ("mode", "carrier", "service_type", "vehicle_type", "transport_vendor"):
            setattr(self, name, _clean(getattr(self, name)))

    # ------------- Normalised accessors -------------

    @property
    def direction_value(self) -> str:
        if isinstance(self.direction, Direction):
            return self.direction.value
        return str(self.direction or "").strip().lower()

    @property
    def sort_mode(self) -> Optional[SortBy]:
        if self.sort_by in (None, ""):
            return None
        return SortBy(str(getattr(self.sort_by, "value", self.sort_by)).lower())

    @property
    def date_from(self) -> Optional[date]:
        return _as_date(self.validity_from)

    @property
    def date_to(self) -> Optional[date]:
        return _as_date(self.validity_to)

    @property
    def lcl_volume(self) -> Decimal:
        try:
            volume = Decimal(str(self.lcl_cbm or 0))
        except InvalidOperation:
            raise InvalidCriteria("lcl_cbm", f"not a number: {self.lcl_cbm!r}")
        if not volume.is_finite():
            raise InvalidCriteria("lcl_cbm", f"not a finite volume: {self.lcl_cbm!r}")
        return volume

    @property
    def transit_days(self) -> Optional[int]:
        """Transit-time filter, only when it is a positive whole number of days."""
        try:
            days = int(str(self.transit_time).strip())
        except (TypeError, ValueError):
            return None
        return days if days > 0 else None

    @property
    def local_ports(self) -> Tuple[str, ...]:
        """Ports whose local charges apply: discharge side on import, loading side on export."""
        return self.pod if self.direction_value == Direction.IMPORT.value else self.pol

    def quantities(self) -> Dict[Equipment, int]:
        return {
            Equipment.GP20: self.qty20,
            Equipment.GP40: self.qty40,
            Equipment.HC40: self.qty40hc,
            Equipment.RE20: self.qty20re,
            Equipment.RH40: self.qty40rh,
        }

    @property
    def is_priceable(self) -> bool:
        return any(q > 0 for q in self.quantities().values()) or self.lcl_volume > 0

    # ------------- Validation -------------

    def validate(self) -> "ShipmentCriteria":
        if self.direction_value not in {d.value for d in Direction}:
            raise InvalidCriteria("direction", "must be 'import' or 'export'")
        if not self.pol:
            raise InvalidCriteria("pol", "at least one port of loading is required")
        if not self.pod:
            raise InvalidCriteria("pod", "at least one port of discharge is required")

        try:
            start, end = self.date_from, self.date_to
        except ValueError as exc:
            raise InvalidCriteria("validity", f"dates must be YYYY-MM-DD ({exc})")
        if start is None or end is None:
            raise InvalidCriteria("validity", "both validity_from and validity_to are required")
        if start > end:
            raise InvalidCriteria("validity", f"{start.isoformat()} is after {end.isoformat()}")

        for equipment, qty in self.quantities().items():
            if isinstance(qty, bool) or not isinstance(qty, int):
                raise InvalidCriteria(equipment.value, f"container count must be an integer, got {qty!r}")
            if qty < 0:
                raise InvalidCriteria(equipment.value, "container count cannot be negative")
        if self.lcl_volume < 0:
            raise InvalidCriteria("lcl_cbm", "volume cannot be negative")
        if not self.is_priceable:
            raise InvalidCriteria("quantities", "enter at least one container or an LCL volume")

        try:
            self.sort_mode
        except ValueError:
            raise InvalidCriteria("sort_by", f"unknown ordering {self.sort_by!r}")
        return self
