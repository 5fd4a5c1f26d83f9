"""
변경 요청 API입니다.
범위 밖 태스크로 자동 생성된 요청과 수동 요청을 조회하고 상태를 전이합니다.
"""

from typing import Optional

from fastapi import APIRouter, Header, Query

from taskscope.models import (
    ChangeRequestCreate,
    ChangeRequestStatus,
    ChangeRequestStatusUpdate,
    ChangeRequestType,
    Priority,
)
from taskscope.services import get_scope_service

router = APIRouter()


@router.get("/change-requests")
async def list_change_requests(
    project_id: str,
    status: Optional[ChangeRequestStatus] = None,
    type: Optional[ChangeRequestType] = None,
    priority: Optional[Priority] = None,
    requested_by: Optional[str] = Query(default=None, alias="requestedBy"),
) -> dict:
    """변경 요청 목록 (최신순). status/type/priority/requestedBy로 필터링합니다."""
    service = get_scope_service()
    crs = await service.list_change_requests(project_id, status, type, priority, requested_by)
    return {
        "changeRequests": [cr.to_api() for cr in crs],
        "total": len(crs),
    }


@router.post("/change-requests", status_code=201)
async def create_change_request(
    project_id: str,
    request: ChangeRequestCreate,
    x_actor: Optional[str] = Header(default=None),
) -> dict:
    service = get_scope_service()
    if request.requested_by is None and x_actor:
        request.requested_by = x_actor
    cr = await service.create_change_request(project_id, request)
    return cr.to_api()


@router.get("/change-requests-report")
async def change_requests_report(project_id: str) -> dict:
    """상태/유형/우선순위별 변경 요청 통계"""
    service = get_scope_service()
    return await service.change_request_stats(project_id)


@router.get("/change-requests/{cr_id}")
async def get_change_request(project_id: str, cr_id: str) -> dict:
    service = get_scope_service()
    cr = await service.get_change_request(project_id, cr_id)
    return cr.to_api()


@router.patch("/change-requests/{cr_id}/status")
async def update_change_request_status(
    project_id: str,
    cr_id: str,
    request: ChangeRequestStatusUpdate,
    x_actor: Optional[str] = Header(default=None),
) -> dict:
    """
    변경 요청 상태 전이.
    pending → approved/rejected, approved → implemented 만 허용되며 그 외는 409입니다.
    """
    service = get_scope_service()
    cr = await service.update_change_request_status(project_id, cr_id, request, actor=x_actor)
    return cr.to_api()
