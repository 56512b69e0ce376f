# src/services/api/routes/reports.py
"""
Жалобы: создание участником чата и модерация администратором.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status

from src.common.constants import ReportStatus
from src.core.reports.models import CreateReportRequest, UpdateReportRequest
from src.core.reports.service import ReportService
from src.services.api.auth import CurrentUser, get_current_user, require_admin
from src.services.api.dependencies import get_report_service
from src.shared.models.common import ApiResponse

router = APIRouter(prefix="/api/v1/reports", tags=["Reports"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_report(
    body: CreateReportRequest,
    user: CurrentUser = Depends(get_current_user),
    service: ReportService = Depends(get_report_service),
) -> ApiResponse:
    report = await service.create_report(
        user.user_id,
        body.conversation_id,
        body.reported_id,
        body.reason,
        body.description,
    )
    return ApiResponse.ok(report, message="Жалоба отправлена")


@router.get("")
async def list_reports(
    status: Optional[ReportStatus] = None,
    admin: CurrentUser = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
) -> ApiResponse:
    return ApiResponse.ok(await service.list_reports(status))


@router.get("/mine")
async def list_my_reports(
    user: CurrentUser = Depends(get_current_user),
    service: ReportService = Depends(get_report_service),
) -> ApiResponse:
    return ApiResponse.ok(await service.list_reports_by_user(user.user_id))


@router.get("/against/{user_id}")
async def list_reports_against(
    user_id: int,
    admin: CurrentUser = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
) -> ApiResponse:
    return ApiResponse.ok(await service.list_reports_against_user(user_id))


@router.get("/{report_id}")
async def get_report(
    report_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: ReportService = Depends(get_report_service),
) -> ApiResponse:
    return ApiResponse.ok(await service.get_report(report_id, user.user_id, user.role))


@router.patch("/{report_id}")
async def update_report(
    report_id: int,
    body: UpdateReportRequest,
    admin: CurrentUser = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
) -> ApiResponse:
    report = await service.update_report(report_id, admin.user_id, body.status, body.admin_notes)
    return ApiResponse.ok(report, message="Жалоба обновлена")
