"""
범위 관리 API입니다.
PRD 분석으로 요구사항 베이스라인을 만들고, 태스크의 범위를 판정하며,
프로젝트의 범위 건강도를 보고합니다.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body
from pydantic import Field

from taskscope.exceptions import ValidationError
from taskscope.models import CamelModel
from taskscope.services import get_scope_service

router = APIRouter()


class AnalyzePrdRequest(CamelModel):
    """analyze-prd 요청 본문"""
    prd_file_path: Optional[str] = Field(default=None, description="docs 폴더 기준 PRD 경로")
    force: bool = Field(default=False, description="내용이 같아도 다시 분석")


@router.post("/analyze-prd")
async def analyze_prd(project_id: str, request: AnalyzePrdRequest) -> dict:
    """
    PRD 문서를 분석하여 요구사항 베이스라인을 생성/교체합니다.
    내용 해시가 같으면 force 없이는 다시 분석하지 않습니다 (changed=false).
    """
    service = get_scope_service()
    return await service.analyze_prd(project_id, request.prd_file_path, request.force)


@router.post("/check-task-scope")
async def check_task_scope(project_id: str, body: dict[str, Any] = Body(...)) -> dict:
    """
    태스크 하나가 베이스라인 범위 안인지 판정합니다.
    아무것도 저장하지 않습니다.
    """
    if "task" not in body:
        raise ValidationError("task는 필수입니다", details={"field": "task"})
    service = get_scope_service()
    result = await service.check_task_scope(project_id, body["task"], body.get("operation"))
    return result.to_api()


@router.post("/check-tasks-scope")
async def check_tasks_scope(project_id: str, body: dict[str, Any] = Body(...)) -> dict:
    """여러 태스크를 한 번에 판정하고 범위 보고서를 함께 반환합니다."""
    tasks = body.get("tasks")
    if not isinstance(tasks, list):
        raise ValidationError("tasks는 배열이어야 합니다", details={"field": "tasks"})
    service = get_scope_service()
    return await service.check_tasks_scope(project_id, tasks, body.get("operation"))


@router.post("/auto-associate-tasks")
async def auto_associate_tasks(project_id: str) -> dict:
    """요구사항과 연결되지 않은 태스크를 베이스라인에 자동 연결합니다."""
    service = get_scope_service()
    result = await service.auto_associate(project_id)
    return result.to_api()


@router.get("/get-requirements-baseline")
@router.get("/requirements-baseline")
async def get_requirements_baseline(project_id: str) -> Optional[dict]:
    """현재 베이스라인. 아직 분석하지 않았으면 null."""
    service = get_scope_service()
    baseline = await service.get_baseline(project_id)
    return baseline.to_api() if baseline else None


@router.get("/task-scope-report")
async def task_scope_report(project_id: str) -> dict:
    service = get_scope_service()
    return await service.task_scope_report(project_id)


@router.get("/scope-health")
async def scope_health(project_id: str) -> dict:
    """
    범위 건강도 조회.

    포함 정보:
    - 위험 수준, 범위 준수율, 요구사항 커버리지
    - 최근 변경 요청 추세와 권고 사항
    - 베이스라인 요약과 상태별 변경 요청 수
    """
    service = get_scope_service()
    return await service.scope_health(project_id)


@router.post("/cleanup-scope-data")
async def cleanup_scope_data(project_id: str) -> dict:
    service = get_scope_service()
    return await service.cleanup_scope_data(project_id)
