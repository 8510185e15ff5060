# src/freight_quote/api/routes.py
"""
Quote and filter-option endpoints.

Notes:
- The engine is built per request; the store (and its table cache) is shared.
- Criteria problems come back as 422 with the offending field, an unreachable
  tariff database as 503. A single category failing does not fail the quote;
  the section is returned empty instead.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ..connectors.tariff_store import (
    Predicate,
    TableNotFound,
    TariffCategory,
    TariffStore,
    TariffStoreUnavailable,
)
from ..db import engine
from ..rules.criteria import InvalidCriteria, ShipmentCriteria
from ..rules.quote_engine import QuoteEngine

logger = logging.getLogger("freight-quote-api")

router = APIRouter(prefix="/api/v1", tags=["Freight Quotes"])


@lru_cache(maxsize=1)
def get_store() -> TariffStore:
    return TariffStore(engine)


# ============ Pydantic Models ============

class QuoteRequest(BaseModel):
    direction: str = Field(..., examples=["import"])
    pol: List[str] = Field(..., examples=[["Shanghai"]])
    pod: List[str] = Field(..., examples=[["Sydney"]])
    validity_from: date = Field(..., examples=["2024-06-01"])
    validity_to: date = Field(..., examples=["2024-06-30"])
    point: str = Field("", description="Pickup (export) or delivery (import) location", examples=["Parramatta"])

    qty20: int = 0
    qty40: int = 0
    qty40hc: int = 0
    qty20re: int = 0
    qty40rh: int = 0
    lcl_cbm: Decimal = Decimal("0")

    mode: Optional[str] = None
    carrier: Optional[str] = None
    service_type: Optional[str] = None
    vehicle_type: Optional[str] = None
    transport_vendor: Optional[str] = None
    transit_time: Optional[int] = None
    dangerous_goods: Optional[bool] = Field(None, description="None means either")

    drop_trailer: bool = False
    heavy_weight_surcharge: bool = False
    via_tailgate: bool = False
    side_loader_access_fees: bool = False
    unpack_loose: bool = False
    unpack_palletized: bool = False
    fumigation_surcharge: bool = False
    sideloader_sameday_collection: bool = False

    sort_by: Optional[str] = Field(None, examples=["cheapest"])
    exchange_rate: Optional[Decimal] = Field(
        None, gt=0, description="Override the configured source-to-reporting rate"
    )

    def to_criteria(self) -> ShipmentCriteria:
        fields = self.model_dump(exclude={"exchange_rate"})
        return ShipmentCriteria(**fields)


class OptionsResponse(BaseModel):
    category: str
    column: str
    values: List[str]


# ============ Endpoints ============

@router.post("/quote")
def create_quote(req: QuoteRequest, store: TariffStore = Depends(get_store)) -> Dict[str, Any]:
    quote_engine = QuoteEngine(store, exchange_rate=req.exchange_rate)
    try:
        result = quote_engine.calculate(req.to_criteria())
    except InvalidCriteria as e:
        raise HTTPException(status_code=422, detail={"field": e.field_name, "message": e.message})
    except TariffStoreUnavailable as e:
        logger.error("Quote rejected: %s", e)
        raise HTTPException(status_code=503, detail="Tariff database unavailable")
    except Exception:
        logger.exception("Quote calculation failed")
        raise HTTPException(status_code=500, detail="Quote calculation failed")
    return result.to_dict()


@router.get("/options/{category}/{column}", response_model=OptionsResponse)
def list_options(
    category: str,
    column: str,
    direction: Optional[str] = Query(None, description="Restrict to import or export rows"),
    store: TariffStore = Depends(get_store),
) -> OptionsResponse:
    try:
        category_value = TariffCategory(category.lower()).value
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown tariff category: {category}")

    predicates = [Predicate("direction", "ieq", direction)] if direction else []
    try:
        values = store.distinct_values(category_value, column, predicates)
    except KeyError:
        raise HTTPException(status_code=400, detail=f"Unknown column for {category_value}: {column}")
    except TableNotFound as e:
        logger.warning("Options unavailable: %s", e)
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception("Option lookup failed for %s.%s", category_value, column)
        raise HTTPException(status_code=500, detail="Option lookup failed")
    return OptionsResponse(category=category_value, column=column, values=values)
