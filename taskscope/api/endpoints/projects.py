"""
프로젝트 관리 API입니다.
범위 데이터(베이스라인, 변경 요청, 태스크)는 모두 프로젝트 단위로 저장됩니다.
"""

from fastapi import APIRouter

from taskscope.models import Project
from taskscope.services import get_scope_service

router = APIRouter()


@router.post("", status_code=201)
async def create_project(project: Project) -> dict:
    """프로젝트 생성. 같은 ID가 있으면 409를 반환합니다."""
    service = get_scope_service()
    created = await service.create_project(project)
    return created.to_api()


@router.get("")
async def list_projects() -> dict:
    service = get_scope_service()
    projects = await service.list_projects()
    return {
        "projects": [p.to_api() for p in projects],
        "total": len(projects),
    }


@router.get("/{project_id}")
async def get_project(project_id: str) -> dict:
    service = get_scope_service()
    project = await service.require_project(project_id)
    return project.to_api()
