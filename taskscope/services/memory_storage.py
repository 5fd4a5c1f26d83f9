"""
메모리 기반 저장소입니다. 테스트와 일회성 실행에 사용합니다.
저장/조회 시 모델을 복사하여, 호출자가 반환값을 수정해도 저장된 상태가 바뀌지 않게 합니다.
"""

from typing import Dict, Optional

from taskscope.models import ChangeRequest, Project, RequirementBaseline, Task
from taskscope.services.locks import ProjectLockManager
from taskscope.services.stores import ScopeStorage


class MemoryStorage(ScopeStorage):
    """dict 기반 저장소."""

    def __init__(self, locks: Optional[ProjectLockManager] = None):
        super().__init__(locks)
        self._projects: Dict[str, Project] = {}
        self._baselines: Dict[str, RequirementBaseline] = {}
        self._change_requests: Dict[str, Dict[str, ChangeRequest]] = {}
        self._tasks: Dict[str, Dict[str, Task]] = {}
        self._documents: Dict[str, Dict[str, str]] = {}

    @property
    def backend_name(self) -> str:
        return "memory"

    async def save_project(self, project: Project) -> str:
        self._projects[project.id] = project.model_copy(deep=True)
        return project.id

    async def get_project(self, project_id: str) -> Optional[Project]:
        project = self._projects.get(project_id)
        return project.model_copy(deep=True) if project else None

    async def list_projects(self) -> list[Project]:
        return [p.model_copy(deep=True) for _, p in sorted(self._projects.items())]

    async def get_baseline(self, project_id: str) -> Optional[RequirementBaseline]:
        baseline = self._baselines.get(project_id)
        return baseline.model_copy(deep=True) if baseline else None

    async def save_baseline(self, project_id: str, baseline: RequirementBaseline) -> None:
        self._baselines[project_id] = baseline.model_copy(deep=True)

    async def list_change_requests(self, project_id: str) -> list[ChangeRequest]:
        items = self._change_requests.get(project_id, {})
        return [cr.model_copy(deep=True) for _, cr in sorted(items.items())]

    async def get_change_request(self, project_id: str, cr_id: str) -> Optional[ChangeRequest]:
        cr = self._change_requests.get(project_id, {}).get(cr_id)
        return cr.model_copy(deep=True) if cr else None

    async def save_change_request(self, project_id: str, change_request: ChangeRequest) -> None:
        self._change_requests.setdefault(project_id, {})[change_request.id] = (
            change_request.model_copy(deep=True)
        )

    async def get_task(self, project_id: str, task_id: str) -> Optional[Task]:
        task = self._tasks.get(project_id, {}).get(task_id)
        return task.model_copy(deep=True) if task else None

    async def put_task(self, project_id: str, task: Task) -> None:
        self._tasks.setdefault(project_id, {})[task.id] = task.model_copy(deep=True)

    async def list_tasks(self, project_id: str) -> list[Task]:
        # dict는 삽입 순서를 유지하므로 생성 순서대로 반환
        return [t.model_copy(deep=True) for t in self._tasks.get(project_id, {}).values()]

    async def save_document(self, project_id: str, filename: str, content: str) -> str:
        self._documents.setdefault(project_id, {})[filename] = content
        return filename

    async def read_document(self, project_id: str, relative_path: str) -> Optional[str]:
        return self._documents.get(project_id, {}).get(relative_path)
