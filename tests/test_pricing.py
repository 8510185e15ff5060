from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import local_row, make_criteria, ocean_row, transport_row
from freight_quote.rules.pricing import (
    PER_CBM,
    PER_CONTAINER,
    PER_SHIPMENT,
    SURCHARGES,
    applicable_surcharges,
    price_local,
    price_ocean,
    price_transport,
)
from freight_quote.rules.tariffs import LocalRate, OceanRate, TransportRate


def _assert_consistent(items):
    for item in items:
        assert item.rate > 0
        assert item.total == item.rate * item.qty


# ------------- Transport surcharges -------------

def test_drop_trailer_excluded_unless_opted_in():
    rate = TransportRate.from_row(transport_row())

    off = price_transport(rate, make_criteria(point="Parramatta", drop_trailer=False))
    on = price_transport(rate, make_criteria(point="Parramatta", drop_trailer=True))

    assert [i.rate for i in off] == [Decimal("200")]
    assert [i.rate for i in on] == [Decimal("250")]
    assert on[0].label == "Parramatta NSW delivery (20GP - Tautliner + Drop Trailer: 50.00)"
    assert off[0].label == "Parramatta NSW delivery (20GP - Tautliner)"


@pytest.mark.parametrize("surcharge", SURCHARGES, ids=lambda s: s.label)
def test_each_surcharge_only_ever_raises_the_rate(surcharge):
    row = transport_row(**{"drop_trailer": None, surcharge.column: "15"})
    rate = TransportRate.from_row(row)

    base = price_transport(rate, make_criteria(point="Parramatta"))
    opted = price_transport(rate, make_criteria(point="Parramatta", **{surcharge.flag: True}))

    assert opted[0].rate == base[0].rate + Decimal("15")
    # base route and vehicle text is untouched
    assert opted[0].label.startswith(base[0].label[:-1])


def test_zero_or_missing_surcharge_is_a_no_op():
    rate = TransportRate.from_row(transport_row(drop_trailer="0", tail_gate=None))
    criteria = make_criteria(point="Parramatta", drop_trailer=True, via_tailgate=True)

    assert applicable_surcharges(rate, criteria) == []
    assert price_transport(rate, criteria)[0].rate == Decimal("200")


def test_unknown_dangerous_goods_does_not_add_dg_surcharge():
    rate = TransportRate.from_row(transport_row(dg_surcharge="80"))

    assert price_transport(rate, make_criteria(point="X", dangerous_goods=None))[0].rate == Decimal("200")
    assert price_transport(rate, make_criteria(point="X", dangerous_goods=True))[0].rate == Decimal("280")


def test_transport_label_uses_description_then_direction():
    described = TransportRate.from_row(transport_row(charge_description="Metro cartage"))
    assert price_transport(described, make_criteria(point="X"))[0].label.startswith("Metro cartage (")

    export = TransportRate.from_row(transport_row(direction="export", pick_up_location="Wetherill Park"))
    item = price_transport(export, make_criteria(direction="export", point="Wetherill"))[0]
    assert item.label.startswith("Wetherill Park pickup (")


def test_transport_lcl_uses_cubic_rate_when_present():
    rate = TransportRate.from_row(transport_row(cubic_rate="40"))
    items = price_transport(rate, make_criteria(point="X", qty20=0, lcl_cbm="2.5", drop_trailer=True))

    assert len(items) == 1
    assert items[0].unit == PER_CBM
    assert items[0].rate == Decimal("90")
    assert items[0].total == Decimal("225.0")


def test_transport_lcl_falls_back_to_one_twenty_foot_equivalent():
    rate = TransportRate.from_row(transport_row(cubic_rate=None))
    items = price_transport(rate, make_criteria(point="X", qty20=0, lcl_cbm="3"))

    assert len(items) == 1
    assert items[0].unit == PER_CONTAINER
    assert items[0].qty == 1
    assert items[0].total == Decimal("200")


# ------------- Ocean -------------

def test_ocean_line_per_equipment_type():
    rate = OceanRate.from_row(ocean_row(**{"20gp": "1500", "40gp_40hc": "2600"}))
    items = price_ocean(rate, make_criteria(qty20=2, qty40=1, qty40hc=3))

    assert [(i.qty, i.rate, i.total) for i in items] == [
        (2, Decimal("1500"), Decimal("3000")),
        (1, Decimal("2600"), Decimal("2600")),
        (3, Decimal("2600"), Decimal("7800")),
    ]
    assert items[0].label == "Shanghai → Sydney (20GP - FCL - COSCO - 18 - Direct - DG: No)"
    assert all(i.unit == PER_CONTAINER for i in items)


def test_reefers_price_off_matching_size_band():
    rate = OceanRate.from_row(ocean_row(**{"20gp": "1500", "40gp_40hc": "2600"}))
    items = price_ocean(rate, make_criteria(qty20=0, qty20re=1, qty40rh=2))

    assert [(i.label.split("(")[1].split(" ")[0], i.rate) for i in items] == [
        ("20RE", Decimal("1500")),
        ("40RH", Decimal("2600")),
    ]


def test_unpriced_equipment_emits_no_line():
    rate = OceanRate.from_row(ocean_row(**{"20gp": "1500", "40gp_40hc": "0"}))
    items = price_ocean(rate, make_criteria(qty20=1, qty40=4, lcl_cbm="5"))

    assert len(items) == 1
    _assert_consistent(items)


def test_ocean_lcl_priced_per_cbm():
    rate = OceanRate.from_row(ocean_row(**{"20gp": None, "cubic_rate": "85.50"}))
    items = price_ocean(rate, make_criteria(qty20=0, lcl_cbm="3.2"))

    assert items[0].unit == PER_CBM
    assert items[0].total == Decimal("273.600")


# ------------- Local -------------

def test_local_per_shipment_charge_applies_once():
    rate = LocalRate.from_row(local_row(**{"20gp": None, "40gp_40hc": None, "per_shipment_charge": "95"}))
    items = price_local(rate, make_criteria(qty20=4, qty40=2))

    assert len(items) == 1
    assert (items[0].unit, items[0].qty, items[0].total) == (PER_SHIPMENT, 1, Decimal("95"))
    assert items[0].extra == "THC"


def test_local_container_and_dg_lines():
    rate = LocalRate.from_row(local_row(dg_surcharge="120"))
    items = price_local(rate, make_criteria(qty20=2, qty40hc=1, dangerous_goods=True))

    assert [i.label for i in items] == [
        "Terminal Handling (20GP)",
        "Terminal Handling (40HC)",
        "Terminal Handling (DG surcharge)",
    ]
    assert sum(i.total for i in items) == Decimal("700") + Decimal("450") + Decimal("120")
    _assert_consistent(items)


def test_local_dg_surcharge_skipped_when_not_dangerous():
    rate = LocalRate.from_row(local_row(dg_surcharge="120"))
    items = price_local(rate, make_criteria(qty20=1, dangerous_goods=False))

    assert [i.label for i in items] == ["Terminal Handling (20GP)"]
