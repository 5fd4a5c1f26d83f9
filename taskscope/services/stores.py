"""
엔진이 사용하는 저장소 인터페이스입니다.

엔진은 파일 경로를 직접 다루지 않고, 주입된 저장소 핸들(get/put/list/lock)을 통해서만
프로젝트 상태에 접근합니다. 파일 구현(FileStorage)과 메모리 구현(MemoryStorage)이 있습니다.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from taskscope.models import ChangeRequest, Project, RequirementBaseline, Task
from taskscope.services.locks import ProjectLockManager


class ProjectStore(ABC):
    @abstractmethod
    async def save_project(self, project: Project) -> str: ...

    @abstractmethod
    async def get_project(self, project_id: str) -> Optional[Project]: ...

    @abstractmethod
    async def list_projects(self) -> list[Project]: ...


class BaselineStore(ABC):
    @abstractmethod
    async def get_baseline(self, project_id: str) -> Optional[RequirementBaseline]: ...

    @abstractmethod
    async def save_baseline(self, project_id: str, baseline: RequirementBaseline) -> None:
        """베이스라인 전체를 원자적으로 교체합니다."""


class ChangeRequestStore(ABC):
    @abstractmethod
    async def list_change_requests(self, project_id: str) -> list[ChangeRequest]: ...

    @abstractmethod
    async def get_change_request(self, project_id: str, cr_id: str) -> Optional[ChangeRequest]: ...

    @abstractmethod
    async def save_change_request(self, project_id: str, change_request: ChangeRequest) -> None: ...


class TaskStore(ABC):
    """외부 태스크 저장소 계약 (getTask/putTask)."""

    @abstractmethod
    async def get_task(self, project_id: str, task_id: str) -> Optional[Task]: ...

    @abstractmethod
    async def put_task(self, project_id: str, task: Task) -> None: ...

    @abstractmethod
    async def list_tasks(self, project_id: str) -> list[Task]: ...


class DocumentStore(ABC):
    @abstractmethod
    async def save_document(self, project_id: str, filename: str, content: str) -> str:
        """PRD 문서를 저장하고 프로젝트 docs 기준 상대 경로를 반환합니다."""

    @abstractmethod
    async def read_document(self, project_id: str, relative_path: str) -> Optional[str]: ...


class ScopeStorage(ProjectStore, BaselineStore, ChangeRequestStore, TaskStore, DocumentStore):
    """모든 저장소 역할과 프로젝트 리소스 잠금을 함께 제공하는 핸들."""

    def __init__(self, locks: Optional[ProjectLockManager] = None):
        self.locks = locks or ProjectLockManager()

    @asynccontextmanager
    async def lock(self, project_id: str, resource: str, holder: str = "") -> AsyncIterator[None]:
        async with self.locks.acquire(project_id, resource, holder=holder):
            yield

    @property
    @abstractmethod
    def backend_name(self) -> str: ...
