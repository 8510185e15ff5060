# src/freight_quote/rules/quote_engine.py
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from ..connectors.tariff_store import FilterSpec, TableNotFound, TariffCategory
from ..settings import settings
from .criteria import Direction, ShipmentCriteria, SortBy
from .dedup import dedupe_ocean, sort_ocean
from .eligibility import (
    currency_matches,
    is_within_window,
    local_filter,
    ocean_filter,
    transport_filter,
)
from .pricing import LineItem, price_local, price_ocean, price_transport
from .summary import CalculationResult, Section, build_summary
from .tariffs import LocalRate, OceanRate, TransportRate

logger = logging.getLogger(__name__)

__all__ = ["QuoteEngine", "equipment_summary"]

T = TypeVar("T")

OCEAN = TariffCategory.OCEAN.value
LOCAL = TariffCategory.LOCAL.value
TRANSPORT = TariffCategory.TRANSPORT.value


@dataclass
class _Fetched:
    table: Optional[str] = None
    rows: List[Dict[str, Any]] = field(default_factory=list)
    query: Optional[str] = None


def equipment_summary(criteria: ShipmentCriteria) -> str:
    parts = [f"{qty}x{eq.value}" for eq, qty in criteria.quantities().items() if qty > 0]
    cbm = criteria.lcl_volume
    if cbm > 0:
        parts.append(f"{format(cbm.normalize(), 'f')}CBM")
    return ", ".join(parts) or "No equipment"


def _unique(values: Iterable[Optional[str]]) -> List[str]:
    seen: Dict[str, None] = {}
    for v in values:
        if v and v not in seen:
            seen[v] = None
    return list(seen)


def _price_all(rates: Sequence[T], pricer: Callable[[T, ShipmentCriteria], List[LineItem]], criteria: ShipmentCriteria) -> List[LineItem]:
    items: List[LineItem] = []
    for rate in rates:
        items.extend(pricer(rate, criteria))
    return items


class QuoteEngine:
    """
    Freight quote calculator:
      - validates the shipment criteria before touching the store
      - fetches ocean, local and transport tariffs concurrently
      - a category that fails to load comes back as an empty section
      - dedupes and orders ocean offers, prices every category, then
        converts the ocean subtotal for a single grand total
    """

    def __init__(
        self,
        store,
        *,
        exchange_rate: Optional[Decimal] = None,
        row_limits: Optional[Dict[str, int]] = None,
    ):
        self.store = store
        self.exchange_rate = Decimal(str(exchange_rate)) if exchange_rate is not None else settings.usd_to_aud_rate
        self.row_limits = dict(settings.row_limits)
        if row_limits:
            self.row_limits.update(row_limits)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    # ------------- Entry points -------------

    def submit(self, criteria: ShipmentCriteria) -> "Future[CalculationResult]":
        """Run :meth:`calculate` in the background; the future carries any failure.

        The worker pool is started on first use and released by :meth:`close`.
        """
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="quote")
            return self._executor.submit(self.calculate, criteria)

    def close(self, wait: bool = True) -> None:
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def __enter__(self) -> "QuoteEngine":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def calculate(self, criteria: ShipmentCriteria) -> CalculationResult:
        criteria.validate()
        logger.info(
            "Quote %s %s -> %s point=%r window=%s..%s equipment=[%s] sort=%s",
            criteria.direction_value,
            ", ".join(criteria.pol),
            ", ".join(criteria.pod),
            criteria.point,
            criteria.date_from,
            criteria.date_to,
            equipment_summary(criteria),
            criteria.sort_mode.value if criteria.sort_mode else "none",
        )
        # Unreachable store fails the whole quote; everything after this is per category.
        self.store.ping()

        specs: Dict[str, FilterSpec] = {
            OCEAN: ocean_filter(criteria, self.row_limits[OCEAN]),
            LOCAL: local_filter(criteria, self.row_limits[LOCAL]),
        }
        if criteria.point:
            specs[TRANSPORT] = transport_filter(criteria, self.row_limits[TRANSPORT])
        else:
            logger.info("No pickup/delivery point given; transport section left empty")

        with ThreadPoolExecutor(max_workers=len(specs), thread_name_prefix="tariff") as pool:
            futures = {cat: pool.submit(self._fetch, cat, spec) for cat, spec in specs.items()}
            fetched = {cat: fut.result() for cat, fut in futures.items()}

        ocean = self._ocean_section(fetched.get(OCEAN, _Fetched()), criteria)
        local = self._local_section(fetched.get(LOCAL, _Fetched()), criteria)
        transport = self._transport_section(fetched.get(TRANSPORT, _Fetched()), criteria)

        logger.info(
            "Quote priced: ocean=%d local=%d transport=%d line(s)",
            len(ocean.items),
            len(local.items),
            len(transport.items),
        )
        return CalculationResult(
            ocean=ocean,
            local=local,
            transport=transport,
            summary=build_summary(ocean, local, transport, self.exchange_rate),
            validity_from=criteria.date_from,
            validity_to=criteria.date_to,
            queries=[fetched[c].query for c in (OCEAN, LOCAL, TRANSPORT) if c in fetched and fetched[c].query],
        )

    # ------------- Fetching -------------

    def _fetch(self, category: str, spec: FilterSpec) -> _Fetched:
        try:
            result = self.store.query(category, spec)
        except TableNotFound as exc:
            logger.warning("%s tariffs unavailable: %s", category, exc)
            return _Fetched()
        except SQLAlchemyError:
            logger.warning("%s tariff query failed; section left empty", category, exc_info=True)
            return _Fetched()

        query = self.store.compile(category, spec, result.table)
        logger.debug("%s query on %s: %s", category, result.table, query)
        logger.debug("%s: %d raw row(s)", category, len(result.rows))
        return _Fetched(table=result.table, rows=result.rows, query=query)

    @staticmethod
    def _screen(rates: Iterable[T], criteria: ShipmentCriteria, currency: str, section: Section) -> List[T]:
        """Re-check validity and currency on every fetched row."""
        kept: List[T] = []
        for rate in rates:
            if not is_within_window(rate, criteria):
                continue
            if not currency_matches(rate.currency, currency):
                message = f"skipped row priced in {rate.currency or 'no currency'} (expected {currency})"
                logger.warning("%s: %s", section.title, message)
                section.warnings.append(message)
                continue
            kept.append(rate)
        return kept

    # ------------- Sections -------------

    def _validity_text(self, criteria: ShipmentCriteria) -> str:
        return f"{criteria.date_from.isoformat()} to {criteria.date_to.isoformat()}"

    def _ocean_section(self, fetched: _Fetched, criteria: ShipmentCriteria) -> Section:
        currency = settings.source_currency
        section = Section(currency=currency, title=f"Ocean Freight ({currency})")

        rates = self._screen((OceanRate.from_row(r) for r in fetched.rows), criteria, currency, section)
        if criteria.sort_mode is SortBy.RECOMMENDED:
            rates = [r for r in rates if r.preferred_vendor]
        rates = sort_ocean(dedupe_ocean(rates), criteria.sort_mode)
        logger.debug("Ocean: %d unique offer(s) after dedup", len(rates))

        section.items = _price_all(rates, price_ocean, criteria)
        pols = _unique(r.port_of_loading for r in rates) or list(criteria.pol)
        pods = _unique(r.port_of_discharge for r in rates) or list(criteria.pod)
        section.subtitle = (
            f"{', '.join(pols)} → {', '.join(pods)} • {equipment_summary(criteria)} • {self._validity_text(criteria)}"
        )
        return section

    def _local_section(self, fetched: _Fetched, criteria: ShipmentCriteria) -> Section:
        currency = settings.reporting_currency
        section = Section(currency=currency, title=f"Locals ({currency})")

        rates = self._screen((LocalRate.from_row(r) for r in fetched.rows), criteria, currency, section)
        section.items = _price_all(rates, price_local, criteria)
        ports = _unique(r.port_of_discharge for r in rates) or list(criteria.local_ports)
        section.subtitle = f"{', '.join(ports)} • {equipment_summary(criteria)} • {self._validity_text(criteria)}"
        return section

    def _transport_section(self, fetched: _Fetched, criteria: ShipmentCriteria) -> Section:
        currency = settings.reporting_currency
        importing = criteria.direction_value == Direction.IMPORT.value
        title = "Destination Delivery" if importing else "Origin Pickup"
        section = Section(currency=currency, title=f"{title} ({currency})")

        rates = self._screen((TransportRate.from_row(r) for r in fetched.rows), criteria, currency, section)
        section.items = _price_all(rates, price_transport, criteria)
        if importing:
            places = _unique(r.delivery_location for r in rates)
        else:
            places = _unique(r.pick_up_location for r in rates)
        places = places or ([criteria.point] if criteria.point else [])
        section.subtitle = f"{', '.join(places) or 'No point given'} • {equipment_summary(criteria)} • {self._validity_text(criteria)}"
        return section
