# src/services/api/routes/trips.py
"""
Поездки: завершение чартером, подтверждение клиентом, отмена.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.core.trips.service import TripService
from src.services.api.auth import CurrentUser, get_current_user, require_charter
from src.services.api.dependencies import get_trip_service
from src.shared.models.common import ApiResponse

router = APIRouter(prefix="/api/v1/trips", tags=["Trips"])


@router.get("")
async def list_trips(
    user: CurrentUser = Depends(get_current_user),
    service: TripService = Depends(get_trip_service),
) -> ApiResponse:
    return ApiResponse.ok(await service.list_user_trips(user.user_id))


@router.get("/{trip_id}")
async def get_trip(
    trip_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: TripService = Depends(get_trip_service),
) -> ApiResponse:
    return ApiResponse.ok(await service.get_trip(trip_id, user.user_id))


@router.post("/{trip_id}/complete")
async def charter_complete(
    trip_id: int,
    charter: CurrentUser = Depends(require_charter),
    service: TripService = Depends(get_trip_service),
) -> ApiResponse:
    trip = await service.charter_complete(trip_id, charter.user_id)
    return ApiResponse.ok(trip, message="Ожидается подтверждение клиента")


@router.post("/{trip_id}/confirm")
async def client_confirm(
    trip_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: TripService = Depends(get_trip_service),
) -> ApiResponse:
    """Подтверждение клиентом: кредиты переходят чартеру."""
    trip = await service.client_confirm(trip_id, user.user_id)
    return ApiResponse.ok(trip, message="Поездка завершена")


@router.post("/{trip_id}/cancel")
async def cancel_trip(
    trip_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: TripService = Depends(get_trip_service),
) -> ApiResponse:
    trip = await service.cancel_trip(trip_id, user.user_id)
    return ApiResponse.ok(trip, message="Поездка отменена, кредиты возвращены")


@router.get("/{trip_id}/feedback-eligibility")
async def feedback_eligibility(
    trip_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: TripService = Depends(get_trip_service),
) -> ApiResponse:
    return ApiResponse.ok(await service.can_leave_feedback(user.user_id, trip_id))
