# src/services/api/routes/matches.py
"""
Подборы: создание, выбор чартера, ответ чартера, создание поездки.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from src.common.constants import MatchStatus
from src.core.matching.models import CreateMatchRequest
from src.core.matching.service import MatchingService
from src.services.api.auth import CurrentUser, get_current_user, require_charter
from src.services.api.dependencies import get_matching_service
from src.shared.models.common import ApiResponse, ErrorResponse

router = APIRouter(
    prefix="/api/v1/matches",
    tags=["Matches"],
    responses={404: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)


class SelectCharterRequest(BaseModel):
    charter_id: int


class RespondRequest(BaseModel):
    accept: bool


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_match(
    request: CreateMatchRequest,
    user: CurrentUser = Depends(get_current_user),
    service: MatchingService = Depends(get_matching_service),
) -> ApiResponse:
    """Создание подбора; в ответе подбор и кандидаты по возрастанию расстояния до подачи."""
    result = await service.create_match(user.user_id, request)
    message = None if result.candidates else "Нет доступных чартеров поблизости"
    return ApiResponse.ok(result, message=message)


@router.get("")
async def list_matches(
    status: Optional[MatchStatus] = None,
    user: CurrentUser = Depends(get_current_user),
    service: MatchingService = Depends(get_matching_service),
) -> ApiResponse:
    return ApiResponse.ok(await service.list_user_matches(user.user_id, status))


@router.get("/{match_id}")
async def get_match(
    match_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: MatchingService = Depends(get_matching_service),
) -> ApiResponse:
    return ApiResponse.ok(await service.get_match(user.user_id, match_id))


@router.get("/{match_id}/candidates")
async def get_candidates(
    match_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: MatchingService = Depends(get_matching_service),
) -> ApiResponse:
    """Пересчёт кандидатов для подбора в статусе searching."""
    return ApiResponse.ok(await service.get_match_candidates(user.user_id, match_id))


@router.post("/{match_id}/select")
async def select_charter(
    match_id: int,
    body: SelectCharterRequest,
    user: CurrentUser = Depends(get_current_user),
    service: MatchingService = Depends(get_matching_service),
) -> ApiResponse:
    match = await service.select_charter(user.user_id, match_id, body.charter_id)
    return ApiResponse.ok(match, message="Запрос отправлен чартеру")


@router.post("/{match_id}/respond")
async def respond_to_match(
    match_id: int,
    body: RespondRequest,
    charter: CurrentUser = Depends(require_charter),
    service: MatchingService = Depends(get_matching_service),
) -> ApiResponse:
    match = await service.respond_to_match(charter.user_id, match_id, body.accept)
    return ApiResponse.ok(match, message="Подбор принят" if body.accept else "Подбор отклонён")


@router.post("/{match_id}/trip", status_code=status.HTTP_201_CREATED)
async def create_trip(
    match_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: MatchingService = Depends(get_matching_service),
) -> ApiResponse:
    """Создание поездки: списание кредитов и перевод подбора в completed."""
    trip = await service.create_trip_from_match(user.user_id, match_id)
    return ApiResponse.ok(trip, message="Поездка создана")


@router.post("/{match_id}/cancel")
async def cancel_match(
    match_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: MatchingService = Depends(get_matching_service),
) -> ApiResponse:
    return ApiResponse.ok(await service.cancel_match(user.user_id, match_id), message="Подбор отменён")
