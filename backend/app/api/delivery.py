from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_session, get_cache
from backend.app.schemas import AvailabilityResponse, AvailableDatesResponse, DeliverySlotResponse
from backend.app.core.exceptions import ServiceError
from backend.app.core.logging import get_logger
from backend.app.services.availability import DeliveryAvailabilityService
from backend.app.services.cache import CacheService

router = APIRouter()
logger = get_logger(__name__)


def _parse_ids(raw: Optional[str]) -> List[int]:
    if not raw:
        return []
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail="product_ids must be a comma-separated list of integers")


@router.get("/slots", response_model=List[DeliverySlotResponse])
async def list_delivery_slots(
    session: AsyncSession = Depends(get_session),
    cache: CacheService = Depends(get_cache),
):
    """Active platform delivery slots. Cached for an hour."""
    cached = await cache.get_delivery_slots()
    if cached is not None:
        return cached

    slots = await DeliveryAvailabilityService(session).list_slots()
    data = [DeliverySlotResponse.model_validate(s).model_dump(mode="json") for s in slots]
    await cache.set_delivery_slots(data)
    return data


@router.get("/availability", response_model=AvailabilityResponse)
async def delivery_availability(
    city_id: int,
    date: date = Query(..., alias="date"),
    product_ids: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    """
    Slots the city offers on `date`, with price and whether any vendor can
    take an order for `product_ids` (comma-separated) in each.
    """
    try:
        return await DeliveryAvailabilityService(session).get_availability(
            city_id, date, _parse_ids(product_ids)
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/available-dates", response_model=AvailableDatesResponse)
async def delivery_available_dates(
    city_id: int,
    product_ids: Optional[str] = None,
    days: int = Query(15, ge=0, le=60),
    session: AsyncSession = Depends(get_session),
):
    """Dates from today through `days` ahead that can be picked at checkout."""
    try:
        dates = await DeliveryAvailabilityService(session).get_available_dates(
            city_id, _parse_ids(product_ids), days
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"city_id": city_id, "available_dates": dates}
