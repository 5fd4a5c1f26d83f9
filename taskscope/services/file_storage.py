"""
파일 기반 저장소 서비스입니다.
데이터베이스 대신 파일 시스템(폴더와 파일)을 사용하여 프로젝트 상태를 저장합니다.

프로젝트별 폴더 구조:
    {base_path}/projects/{project_id}/
        project.json
        baseline.json
        change_requests/{cr_id}.json
        tasks/{task_id}.json
        docs/{filename}            (업로드된 PRD 원문)

모든 JSON 쓰기는 임시 파일에 쓴 뒤 os.replace로 교체하므로,
중간에 취소되어도 반쯤 쓰인 레코드가 남지 않습니다.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional, TypeVar, Type

import aiofiles
from pydantic import BaseModel

from taskscope.exceptions import StorageError, ValidationError
from taskscope.models import ChangeRequest, Project, RequirementBaseline, Task
from taskscope.services.locks import ProjectLockManager
from taskscope.services.stores import ScopeStorage

logger = logging.getLogger(__name__)


T = TypeVar("T", bound=BaseModel)


class FileStorage(ScopeStorage):
    """JSON 파일 기반 저장소 클래스입니다."""

    def __init__(self, base_path: str = "data", locks: Optional[ProjectLockManager] = None):
        super().__init__(locks)
        self.base_path = Path(base_path)
        self.projects_path = self.base_path / "projects"
        self.projects_path.mkdir(parents=True, exist_ok=True)

    @property
    def backend_name(self) -> str:
        return "file"

    def project_dir(self, project_id: str) -> Path:
        return self._record_path(project_id)

    def _record_path(self, project_id: str, *parts: str) -> Path:
        """
        프로젝트 폴더 안의 레코드 경로를 만듭니다.
        ID에 "..", "/" 등이 섞여 프로젝트 폴더 밖을 가리키면 ValidationError를 던집니다.
        """
        projects_root = self.projects_path.resolve()
        project_dir = (projects_root / project_id).resolve()
        file_path = project_dir.joinpath(*parts).resolve()
        inside = project_dir.parent == projects_root and (not parts or project_dir in file_path.parents)
        if not inside:
            logger.warning(f"[FileStorage] 프로젝트 폴더 밖 경로 거부: {project_id}/{'/'.join(parts)}")
            raise ValidationError(
                "레코드 ID가 올바르지 않습니다",
                details={"project_id": project_id, "path": "/".join(parts)},
            )
        return file_path

    def docs_dir(self, project_id: str) -> Path:
        return self.project_dir(project_id) / "docs"

    # ==================== 프로젝트 ====================

    async def save_project(self, project: Project) -> str:
        project_dir = self.project_dir(project.id)
        for sub in ("change_requests", "tasks", "docs"):
            (project_dir / sub).mkdir(parents=True, exist_ok=True)
        await self._save_model(project_dir / "project.json", project)
        return project.id

    async def get_project(self, project_id: str) -> Optional[Project]:
        return await self._load_model(self._record_path(project_id, "project.json"), Project)

    async def list_projects(self) -> list[Project]:
        projects = []
        for file_path in sorted(self.projects_path.glob("*/project.json")):
            project = await self._load_model(file_path, Project)
            if project:
                projects.append(project)
        return projects

    # ==================== 베이스라인 ====================

    async def get_baseline(self, project_id: str) -> Optional[RequirementBaseline]:
        return await self._load_model(
            self._record_path(project_id, "baseline.json"), RequirementBaseline
        )

    async def save_baseline(self, project_id: str, baseline: RequirementBaseline) -> None:
        await self._save_model(self._record_path(project_id, "baseline.json"), baseline)

    # ==================== 변경 요청 ====================

    async def list_change_requests(self, project_id: str) -> list[ChangeRequest]:
        items = []
        for file_path in sorted((self.project_dir(project_id) / "change_requests").glob("*.json")):
            cr = await self._load_model(file_path, ChangeRequest)
            if cr:
                items.append(cr)
        return items

    async def get_change_request(self, project_id: str, cr_id: str) -> Optional[ChangeRequest]:
        file_path = self._record_path(project_id, "change_requests", f"{cr_id}.json")
        return await self._load_model(file_path, ChangeRequest)

    async def save_change_request(self, project_id: str, change_request: ChangeRequest) -> None:
        file_path = self._record_path(project_id, "change_requests", f"{change_request.id}.json")
        await self._save_model(file_path, change_request)

    # ==================== 태스크 ====================

    async def get_task(self, project_id: str, task_id: str) -> Optional[Task]:
        return await self._load_model(self._record_path(project_id, "tasks", f"{task_id}.json"), Task)

    async def put_task(self, project_id: str, task: Task) -> None:
        await self._save_model(self._record_path(project_id, "tasks", f"{task.id}.json"), task)

    async def list_tasks(self, project_id: str) -> list[Task]:
        tasks = []
        for file_path in (self.project_dir(project_id) / "tasks").glob("*.json"):
            task = await self._load_model(file_path, Task)
            if task:
                tasks.append(task)
        # 생성 순서 유지
        tasks.sort(key=lambda t: (t.created_at, t.id))
        return tasks

    # ==================== PRD 문서 ====================

    async def save_document(self, project_id: str, filename: str, content: str) -> str:
        docs_dir = self.docs_dir(project_id)
        docs_dir.mkdir(parents=True, exist_ok=True)
        await self._write_atomic(docs_dir / filename, content)
        return filename

    async def read_document(self, project_id: str, relative_path: str) -> Optional[str]:
        docs_dir = self.docs_dir(project_id).resolve()
        file_path = (docs_dir / relative_path).resolve()
        if docs_dir not in file_path.parents or not file_path.is_file():
            return None
        async with aiofiles.open(file_path, "r", encoding="utf-8", errors="ignore") as f:
            return await f.read()

    # ==================== 내부 도우미 함수들 ====================

    async def _write_atomic(self, file_path: Path, content: str):
        """임시 파일에 쓴 뒤 교체하는 공통 함수"""
        tmp_path = file_path.with_name(f".{file_path.name}.{uuid.uuid4().hex}.tmp")
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(content)
            os.replace(tmp_path, file_path)
        except OSError as e:
            logger.error(f"[FileStorage] 파일 저장 실패 {file_path}: {e}", exc_info=True)
            if tmp_path.exists():
                tmp_path.unlink()
            raise StorageError(
                f"파일 저장에 실패했습니다: {file_path.name}",
                details={"path": str(file_path), "error": str(e)},
            )

    async def _save_model(self, file_path: Path, model: BaseModel):
        """데이터 모델을 JSON 파일로 저장하는 공통 함수"""
        await self._write_atomic(file_path, model.model_dump_json(indent=2, by_alias=True))

    async def _load_model(self, file_path: Path, model_class: Type[T]) -> Optional[T]:
        """JSON 파일을 읽어서 데이터 모델로 변환하는 공통 함수"""
        if not file_path.exists():
            return None

        try:
            async with aiofiles.open(file_path, "r", encoding="utf-8") as f:
                content = await f.read()
            return model_class.model_validate_json(content)
        except (OSError, ValueError) as e:
            logger.error(f"[FileStorage] 파일 로딩 에러 {file_path}: {e}", exc_info=True)
            return None
