from __future__ import annotations
from typing import Optional
import datetime
from decimal import Decimal

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, Numeric, Date, Integer, Text

class Base(DeclarativeBase):
    pass


# Column names mirror the tariff spreadsheets the tables are imported from,
# hence "20gp" / "40gp_40hc" keys mapped onto Python-friendly attributes.

class OceanFreight(Base):
    __tablename__ = "ocean_freight"

    id: Mapped[int] = mapped_column(primary_key=True)
    port_of_loading: Mapped[str] = mapped_column(String(120))
    port_of_discharge: Mapped[str] = mapped_column(String(120))
    direction: Mapped[str] = mapped_column(String(12))               # import/export
    rate_20: Mapped[Optional[Decimal]] = mapped_column("20gp", Numeric(12, 2))
    rate_40: Mapped[Optional[Decimal]] = mapped_column("40gp_40hc", Numeric(12, 2))
    cubic_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    mode: Mapped[Optional[str]] = mapped_column(String(64))
    carrier: Mapped[Optional[str]] = mapped_column(String(120))
    transit_time: Mapped[Optional[int]] = mapped_column(Integer)      # days
    service_type: Mapped[Optional[str]] = mapped_column(String(64))
    dg: Mapped[Optional[str]] = mapped_column(String(8))              # Yes/No
    preferred_vendor: Mapped[Optional[str]] = mapped_column(String(120))
    effective_date: Mapped[datetime.date] = mapped_column(Date)
    valid_until: Mapped[datetime.date] = mapped_column(Date)
    notes: Mapped[Optional[str]] = mapped_column(Text)


class LocalCharge(Base):
    __tablename__ = "local"

    id: Mapped[int] = mapped_column(primary_key=True)
    port_of_discharge: Mapped[str] = mapped_column(String(120))
    direction: Mapped[str] = mapped_column(String(12))
    cw1_charge_code: Mapped[Optional[str]] = mapped_column(String(32))
    charge_description: Mapped[Optional[str]] = mapped_column(String(200))
    basis: Mapped[Optional[str]] = mapped_column(String(32))
    rate_20: Mapped[Optional[Decimal]] = mapped_column("20gp", Numeric(12, 2))
    rate_40: Mapped[Optional[Decimal]] = mapped_column("40gp_40hc", Numeric(12, 2))
    per_shipment_charge: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    cubic_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    dg_surcharge: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    mode: Mapped[Optional[str]] = mapped_column(String(64))
    service_provider: Mapped[Optional[str]] = mapped_column(String(120))
    currency: Mapped[str] = mapped_column(String(3), default="AUD")
    effective_date: Mapped[datetime.date] = mapped_column(Date)
    valid_until: Mapped[datetime.date] = mapped_column(Date)


class TransportRate(Base):
    __tablename__ = "transport"

    id: Mapped[int] = mapped_column(primary_key=True)
    pick_up_location: Mapped[Optional[str]] = mapped_column(String(200))
    delivery_location: Mapped[Optional[str]] = mapped_column(String(200))
    direction: Mapped[str] = mapped_column(String(12))
    vehicle_type: Mapped[Optional[str]] = mapped_column(String(64))
    charge_description: Mapped[Optional[str]] = mapped_column(String(200))
    rate_20: Mapped[Optional[Decimal]] = mapped_column("20gp", Numeric(12, 2))
    rate_40: Mapped[Optional[Decimal]] = mapped_column("40gp_40hc", Numeric(12, 2))
    cubic_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    currency: Mapped[str] = mapped_column(String(3), default="AUD")
    transport_vendor: Mapped[Optional[str]] = mapped_column(String(120))
    mode: Mapped[Optional[str]] = mapped_column(String(64))

    # Optional surcharges, only added to a quote when the shipper opts in.
    dg_surcharge: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    drop_trailer: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    heavy_weight_surcharge: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    tail_gate: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    side_loader_access_fees: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    container_unpack_rate_loose: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    container_unpack_rate_palletized: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    fumigation_bmsb: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    sideloader_same_day_collection: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))

    effective_date: Mapped[datetime.date] = mapped_column(Date)
    valid_until: Mapped[datetime.date] = mapped_column(Date)


TARIFF_MODELS = {
    "ocean": OceanFreight,
    "local": LocalCharge,
    "transport": TransportRate,
}
