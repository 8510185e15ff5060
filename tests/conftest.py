from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

os.environ.setdefault("DATABASE_URL", "sqlite://")

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from freight_quote.connectors.tariff_store import TableResult
from freight_quote.rules.criteria import ShipmentCriteria


class StubStore:
    """In-memory stand-in for TariffStore: raw rows per category, optional failures."""

    def __init__(self, rows: Optional[Dict[str, List[Dict[str, Any]]]] = None, errors: Optional[Dict[str, Exception]] = None):
        self.rows = rows or {}
        self.errors = errors or {}
        self.calls: List[tuple] = []
        self.pings = 0

    def ping(self) -> None:
        self.pings += 1

    def query(self, category, spec):
        self.calls.append((category, spec))
        if category in self.errors:
            raise self.errors[category]
        return TableResult(table=category, rows=[dict(r) for r in self.rows.get(category, [])])

    def compile(self, category, spec, table_name):
        return f"SELECT * FROM {table_name} -- {len(spec.predicates)} predicate(s)"


def ocean_row(**overrides) -> Dict[str, Any]:
    row = {
        "port_of_loading": "Shanghai",
        "port_of_discharge": "Sydney",
        "direction": "export",
        "20gp": "1500",
        "40gp_40hc": None,
        "cubic_rate": None,
        "currency": "USD",
        "mode": "FCL",
        "carrier": "COSCO",
        "transit_time": 18,
        "service_type": "Direct",
        "dg": "No",
        "preferred_vendor": "Yes",
        "effective_date": "2024-01-01",
        "valid_until": "2024-12-31",
    }
    row.update(overrides)
    return row


def local_row(**overrides) -> Dict[str, Any]:
    row = {
        "port_of_discharge": "Sydney",
        "direction": "import",
        "cw1_charge_code": "THC",
        "charge_description": "Terminal Handling",
        "basis": "Per Container",
        "20gp": "350",
        "40gp_40hc": "450",
        "per_shipment_charge": None,
        "cubic_rate": None,
        "dg_surcharge": None,
        "currency": "AUD",
        "effective_date": "2024-01-01",
        "valid_until": "2024-12-31",
    }
    row.update(overrides)
    return row


def transport_row(**overrides) -> Dict[str, Any]:
    row = {
        "pick_up_location": "Port Botany",
        "delivery_location": "Parramatta NSW",
        "direction": "import",
        "vehicle_type": "Tautliner",
        "charge_description": None,
        "20gp": "200",
        "40gp_40hc": "280",
        "cubic_rate": None,
        "currency": "AUD",
        "transport_vendor": "Metro Haulage",
        "drop_trailer": "50",
        "effective_date": "2024-01-01",
        "valid_until": "2024-12-31",
    }
    row.update(overrides)
    return row


def make_criteria(**overrides) -> ShipmentCriteria:
    fields: Dict[str, Any] = {
        "direction": "import",
        "pol": ["Shanghai"],
        "pod": ["Sydney"],
        "validity_from": "2024-01-01",
        "validity_to": "2024-03-31",
        "qty20": 1,
    }
    fields.update(overrides)
    return ShipmentCriteria(**fields)


@pytest.fixture
def bare_engine():
    """In-memory SQLite with no tables; every connection sees the same database."""
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield eng
    eng.dispose()


@pytest.fixture
def tariff_engine(bare_engine):
    from freight_quote.models import Base

    Base.metadata.create_all(bare_engine)
    return bare_engine
