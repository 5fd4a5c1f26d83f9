"""
태스크 API입니다.
생성/수정 시 범위 검사 훅이 실행되어 응답에 경고가 포함됩니다.
범위 검사는 권고 사항이므로 경고가 있어도 태스크는 저장됩니다.
"""

from typing import Optional

from fastapi import APIRouter, Header

from taskscope.models import TaskCreate, TaskUpdate
from taskscope.services import get_scope_service

router = APIRouter()


@router.get("")
async def list_tasks(project_id: str) -> dict:
    service = get_scope_service()
    tasks = await service.list_tasks(project_id)
    return {
        "tasks": [t.to_api() for t in tasks],
        "total": len(tasks),
    }


@router.get("/{task_id}")
async def get_task(project_id: str, task_id: str) -> dict:
    service = get_scope_service()
    task = await service.get_task(project_id, task_id)
    return task.to_api()


@router.post("", status_code=201)
async def create_task(
    project_id: str,
    request: TaskCreate,
    x_actor: Optional[str] = Header(default=None),
) -> dict:
    """태스크 생성 → {task, warnings}"""
    service = get_scope_service()
    return await service.create_task(project_id, request, actor=x_actor)


@router.put("/{task_id}")
async def update_task(
    project_id: str,
    task_id: str,
    request: TaskUpdate,
    x_actor: Optional[str] = Header(default=None),
) -> dict:
    """태스크 수정 → {task, warnings, impact?}"""
    service = get_scope_service()
    return await service.update_task(project_id, task_id, request, actor=x_actor)
