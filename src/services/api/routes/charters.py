# src/services/api/routes/charters.py
"""
Кабинет чартера: доступность, база, входящие подборы.
"""

from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.common.constants import MatchStatus
from src.core.matching.service import MatchingService
from src.services.api.auth import CurrentUser, require_charter
from src.services.api.dependencies import get_matching_service
from src.shared.models.common import ApiResponse

router = APIRouter(prefix="/api/v1/charters/me", tags=["Charters"])


class AvailabilityRequest(BaseModel):
    is_available: bool


class OriginRequest(BaseModel):
    address: str
    latitude: Union[float, str]
    longitude: Union[float, str]


@router.get("/availability")
async def get_availability(
    charter: CurrentUser = Depends(require_charter),
    service: MatchingService = Depends(get_matching_service),
) -> ApiResponse:
    return ApiResponse.ok(await service.get_availability(charter.user_id))


@router.put("/availability")
async def set_availability(
    body: AvailabilityRequest,
    charter: CurrentUser = Depends(require_charter),
    service: MatchingService = Depends(get_matching_service),
) -> ApiResponse:
    availability = await service.toggle_availability(charter.user_id, body.is_available)
    return ApiResponse.ok(availability)


@router.put("/origin")
async def set_origin(
    body: OriginRequest,
    charter: CurrentUser = Depends(require_charter),
    service: MatchingService = Depends(get_matching_service),
) -> ApiResponse:
    account = await service.update_charter_origin(
        charter.user_id, body.address, body.latitude, body.longitude
    )
    return ApiResponse.ok(account, message="База обновлена")


@router.get("/matches")
async def list_charter_matches(
    status: Optional[MatchStatus] = None,
    charter: CurrentUser = Depends(require_charter),
    service: MatchingService = Depends(get_matching_service),
) -> ApiResponse:
    return ApiResponse.ok(await service.list_charter_matches(charter.user_id, status))
