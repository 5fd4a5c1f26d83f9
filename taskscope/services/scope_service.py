"""
범위 거버넌스 엔진의 전체 흐름을 조율하는 서비스입니다.

처리 흐름:
1. PRD 업로드 → analyze-prd: 베이스라인 추출기가 베이스라인을 만들거나 교체합니다.
2. 태스크 생성/수정 훅: 분류기로 범위를 판정하고, 필요하면 변경 요청을 자동 생성하며
   태스크에 _scopeExtension 표식을 남깁니다.
3. auto-associate-tasks: 연결 엔진이 미연결 태스크를 요구사항에 연결합니다.
4. scope-health / task-scope-report: 건강도 보고기가 세 저장소에서 지표를 계산합니다.

범위 검사는 권고 사항입니다. 훅 안에서 검사가 실패해도 태스크 작업은 성공하며,
실패는 경고(check_error)로 응답에 포함됩니다.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from taskscope.config import Settings, get_settings
from taskscope.exceptions import ConflictError, ExtractionError, NotFoundError
from taskscope.layers.layer1_extraction import BaselineExtractor, compute_source_hash
from taskscope.layers.layer2_classification import ScopeClassifier
from taskscope.layers.layer3_association import TaskAssociator, as_content
from taskscope.layers.layer4_change_requests import ChangeRequestManager
from taskscope.layers.layer5_health import HealthReporter
from taskscope.models import (
    AssociationResult,
    ChangeImpact,
    ChangeRequest,
    ChangeRequestCreate,
    ChangeRequestStatus,
    ChangeRequestStatusUpdate,
    ChangeRequestType,
    Priority,
    Project,
    RequirementBaseline,
    ScopeCheckResult,
    ScopeOperation,
    ScopeWarning,
    Task,
    TaskContent,
    TaskCreate,
    TaskUpdate,
)
from taskscope.services.cache import ReportCache
from taskscope.services.file_storage import FileStorage
from taskscope.services.locks import ProjectLockManager
from taskscope.services.memory_storage import MemoryStorage
from taskscope.services.stores import ScopeStorage
from taskscope.utils.validation import (
    validate_filename,
    validate_operation,
    validate_prd_path,
    validate_prd_size,
    validate_task_payload,
)

logger = logging.getLogger(__name__)


class ScopeService:
    """
    범위 거버넌스 엔진의 각 단계를 조율하는 클래스입니다.
    저장소 핸들은 주입받으므로 파일 저장소와 메모리 저장소 모두에서 동작합니다.
    """

    def __init__(
        self,
        storage: ScopeStorage,
        settings: Optional[Settings] = None,
        cache: Optional[ReportCache] = None,
    ):
        self.settings = settings or get_settings()
        self.storage = storage
        self.cache = cache or ReportCache(ttl_seconds=self.settings.report_cache_ttl_seconds)

        self.extractor = BaselineExtractor()
        self.classifier = ScopeClassifier(
            low_threshold=self.settings.scope_low_threshold,
            high_threshold=self.settings.scope_high_threshold,
            max_matches=self.settings.max_matched_requirements,
        )
        self.associator = TaskAssociator(self.classifier)
        self.change_requests = ChangeRequestManager(storage, self.settings)
        self.reporter = HealthReporter(self.settings)

    # ==================== 프로젝트 ====================

    async def create_project(self, project: Project) -> Project:
        if await self.storage.get_project(project.id):
            raise ConflictError(f"이미 존재하는 프로젝트입니다: {project.id}", details={"project_id": project.id})
        await self.storage.save_project(project)
        logger.info(f"[ScopeService] 프로젝트 생성: {project.id}")
        return project

    async def list_projects(self) -> list[Project]:
        return await self.storage.list_projects()

    async def require_project(self, project_id: str) -> Project:
        project = await self.storage.get_project(project_id)
        if project is None:
            raise NotFoundError("프로젝트", project_id)
        return project

    # ==================== PRD / 베이스라인 ====================

    async def upload_prd(self, project_id: str, filename: str, content: str) -> dict:
        """PRD 문서를 프로젝트 docs 폴더에 저장합니다."""
        await self.require_project(project_id)
        safe_name = validate_filename(filename)
        validate_prd_size(content)
        path = await self.storage.save_document(project_id, safe_name, content)
        logger.info(f"[ScopeService] PRD 업로드: {project_id}/{path}")
        return {
            "prdFilePath": path,
            "size": len(content.encode("utf-8")),
            "prdSourceHash": compute_source_hash(content),
        }

    async def analyze_prd(self, project_id: str, prd_file_path: Optional[str], force: bool = False) -> dict:
        """
        PRD를 분석하여 베이스라인을 만들거나 교체합니다.
        내용이 바뀌지 않았고 force가 아니면 아무것도 쓰지 않고 기존 요약을 반환합니다.
        """
        await self.require_project(project_id)
        relative_path = validate_prd_path(prd_file_path)
        text = await self.storage.read_document(project_id, relative_path)
        if text is None:
            raise NotFoundError("PRD 문서", relative_path, details={"project_id": project_id})
        validate_prd_size(text)

        source_hash = compute_source_hash(text)
        async with self.storage.lock(project_id, "baseline", holder="analyze_prd"):
            current = await self.storage.get_baseline(project_id)
            if current and current.metadata.prd_source_hash == source_hash and not force:
                logger.info(f"[ScopeService] PRD 변경 없음, 재분석 생략: {project_id}/{relative_path}")
                return self._analysis_summary(current, changed=False)

            try:
                baseline = self.extractor.extract(text, source_document=relative_path)
            except Exception as e:
                logger.error(f"[ScopeService] 베이스라인 추출 실패: {project_id}/{relative_path}: {e}", exc_info=True)
                raise ExtractionError(
                    "PRD에서 베이스라인을 추출하지 못했습니다",
                    details={"project_id": project_id, "prd_file_path": relative_path, "error": str(e)},
                ) from e
            if current:
                previous = {r.id: r.created_at for r in current.requirements}
                for requirement in baseline.requirements:
                    if requirement.id in previous:
                        requirement.created_at = previous[requirement.id]
            await self.storage.save_baseline(project_id, baseline)

        self.cache.invalidate(project_id)
        logger.info(
            f"[ScopeService] 베이스라인 교체: {project_id} "
            f"(요구사항 {baseline.metadata.total_requirements}개, force={force})"
        )
        return self._analysis_summary(baseline, changed=True)

    @staticmethod
    def _analysis_summary(baseline: RequirementBaseline, changed: bool) -> dict:
        summary = baseline.summary()
        summary.update({
            "changed": changed,
            "lastAnalyzed": baseline.metadata.last_analyzed.isoformat(),
            "exclusions": list(baseline.metadata.exclusions),
            "warnings": list(baseline.metadata.warnings),
        })
        return summary

    async def get_baseline(self, project_id: str) -> Optional[RequirementBaseline]:
        await self.require_project(project_id)
        return await self.storage.get_baseline(project_id)

    # ==================== 범위 검사 ====================

    async def check_task_scope(self, project_id: str, task: Any, operation: Optional[str] = None) -> ScopeCheckResult:
        """태스크 하나의 범위를 판정합니다 (저장하지 않음)."""
        await self.require_project(project_id)
        content = validate_task_payload(task)
        op = validate_operation(operation)
        baseline = await self.storage.get_baseline(project_id)
        return self.classifier.check(content, baseline, op)

    async def check_tasks_scope(self, project_id: str, tasks: list[Any], operation: Optional[str] = None) -> dict:
        await self.require_project(project_id)
        op = validate_operation(operation)
        contents = [validate_task_payload(t) for t in tasks]
        baseline = await self.storage.get_baseline(project_id)
        results = [self.classifier.check(c, baseline, op) for c in contents]
        return {
            "results": [r.to_api() for r in results],
            "report": self.classifier.build_scope_report(results, self.settings.low_confidence_threshold),
        }

    # ==================== 연결 ====================

    async def auto_associate(self, project_id: str) -> AssociationResult:
        await self.require_project(project_id)
        baseline = await self.storage.get_baseline(project_id)
        async with self.storage.lock(project_id, "tasks", holder="auto_associate"):
            tasks = await self.storage.list_tasks(project_id)
            outcome = self.associator.associate(tasks, baseline)
            for task in outcome.changed_tasks:
                await self.storage.put_task(project_id, task)
        if outcome.changed_tasks:
            self.cache.invalidate(project_id)
        return outcome.result

    async def cleanup_scope_data(self, project_id: str) -> dict:
        """없어진 요구사항/변경 요청을 가리키는 태스크 표식을 정리합니다."""
        await self.require_project(project_id)
        baseline = await self.storage.get_baseline(project_id)
        cr_ids = {cr.id for cr in await self.storage.list_change_requests(project_id)}

        async with self.storage.lock(project_id, "tasks", holder="cleanup"):
            tasks = await self.storage.list_tasks(project_id)
            changed = {t.id: t for t in self.associator.prune_stale(tasks, baseline)}
            for task in tasks:
                ext = task.scope_extension
                if ext and any(cid not in cr_ids for cid in ext.change_request_ids):
                    ext.change_request_ids = [cid for cid in ext.change_request_ids if cid in cr_ids]
                    ext.last_updated = datetime.now()
                    changed[task.id] = task
            for task in changed.values():
                await self.storage.put_task(project_id, task)

        if changed:
            self.cache.invalidate(project_id)
        logger.info(f"[ScopeService] 범위 데이터 정리: {project_id} ({len(changed)}개 태스크)")
        return {
            "totalTasks": len(tasks),
            "cleanedTasks": len(changed),
            "message": f"{len(changed)}개 태스크의 범위 데이터를 정리했습니다",
        }

    # ==================== 변경 요청 ====================

    async def list_change_requests(
        self,
        project_id: str,
        status: Optional[ChangeRequestStatus] = None,
        type: Optional[ChangeRequestType] = None,
        priority: Optional[Priority] = None,
        requested_by: Optional[str] = None,
    ) -> list[ChangeRequest]:
        await self.require_project(project_id)
        return await self.change_requests.list_requests(project_id, status, type, priority, requested_by)

    async def get_change_request(self, project_id: str, cr_id: str) -> ChangeRequest:
        await self.require_project(project_id)
        return await self.change_requests.get(project_id, cr_id)

    async def create_change_request(self, project_id: str, payload: ChangeRequestCreate) -> ChangeRequest:
        await self.require_project(project_id)
        if payload.related_requirements:
            baseline = await self.storage.get_baseline(project_id)
            known = baseline.ids if baseline else set()
            for requirement_id in payload.related_requirements:
                if requirement_id not in known:
                    raise NotFoundError("요구사항", requirement_id, details={"project_id": project_id})
        for task_id in payload.related_tasks:
            if await self.storage.get_task(project_id, task_id) is None:
                raise NotFoundError("태스크", task_id, details={"project_id": project_id})

        cr = await self.change_requests.create(project_id, payload)
        await self._link_change_request(project_id, cr)
        self.cache.invalidate(project_id)
        return cr

    async def update_change_request_status(
        self, project_id: str, cr_id: str, update: ChangeRequestStatusUpdate, actor: Optional[str] = None
    ) -> ChangeRequest:
        await self.require_project(project_id)
        cr = await self.change_requests.transition(
            project_id, cr_id, update.status,
            changed_by=update.approved_by or actor,
            comment=update.comment,
            approved_by=update.approved_by,
        )
        self.cache.invalidate(project_id)
        return cr

    async def change_request_stats(self, project_id: str) -> dict:
        await self.require_project(project_id)
        return await self.change_requests.stats(project_id)

    async def _link_change_request(self, project_id: str, cr: ChangeRequest) -> None:
        """변경 요청 ID를 관련 태스크의 _scopeExtension에 기록합니다."""
        if not cr.related_tasks:
            return
        async with self.storage.lock(project_id, "tasks", holder=f"link:{cr.id}"):
            for task_id in cr.related_tasks:
                task = await self.storage.get_task(project_id, task_id)
                if task is None:
                    continue
                ext = task.ensure_extension()
                if cr.id not in ext.change_request_ids:
                    ext.change_request_ids.append(cr.id)
                    ext.last_updated = datetime.now()
                    await self.storage.put_task(project_id, task)

    # ==================== 보고서 ====================

    async def scope_health(self, project_id: str) -> dict:
        await self.require_project(project_id)
        cached = self.cache.get(project_id, "scope-health")
        if cached is not None:
            return cached

        baseline = await self.storage.get_baseline(project_id)
        tasks = await self.storage.list_tasks(project_id)
        crs = await self.storage.list_change_requests(project_id)
        health = self.reporter.scope_health(baseline, tasks, crs)

        counts = health.change_requests
        response = {
            "health": health.to_api(),
            "baseline": {
                "totalRequirements": baseline.metadata.total_requirements,
                "coreRequirements": baseline.metadata.core_requirements,
                "extendedRequirements": baseline.metadata.extended_requirements,
                "optionalRequirements": baseline.metadata.optional_requirements,
                "analyzedAt": baseline.metadata.last_analyzed.isoformat(),
                "sourceDocument": baseline.metadata.source_document,
            } if baseline else None,
            "changeRequests": {
                "pending": counts.pending,
                "approved": counts.approved,
                "rejected": counts.rejected,
                "implemented": counts.implemented,
                "total": len(crs),
            },
        }
        self.cache.set(project_id, "scope-health", response)
        return response

    async def task_scope_report(self, project_id: str) -> dict:
        await self.require_project(project_id)
        cached = self.cache.get(project_id, "task-scope-report")
        if cached is not None:
            return cached

        baseline = await self.storage.get_baseline(project_id)
        tasks = await self.storage.list_tasks(project_id)
        crs = await self.storage.list_change_requests(project_id)
        report = self.reporter.task_scope_report(baseline, tasks, crs)
        self.cache.set(project_id, "task-scope-report", report)
        return report

    # ==================== 태스크 (외부 태스크 저장소 연동) ====================

    async def list_tasks(self, project_id: str) -> list[Task]:
        await self.require_project(project_id)
        return await self.storage.list_tasks(project_id)

    async def get_task(self, project_id: str, task_id: str) -> Task:
        await self.require_project(project_id)
        task = await self.storage.get_task(project_id, task_id)
        if task is None:
            raise NotFoundError("태스크", task_id, details={"project_id": project_id})
        return task

    async def create_task(self, project_id: str, payload: TaskCreate, actor: Optional[str] = None) -> dict:
        """태스크를 저장한 뒤 범위 검사 훅을 실행하고 경고와 함께 반환합니다."""
        await self.require_project(project_id)
        validate_task_payload(payload)

        async with self.storage.lock(project_id, "tasks", holder="create_task"):
            existing = await self.storage.list_tasks(project_id)
            task_id = payload.id or self._next_task_id(existing)
            if any(t.id == task_id for t in existing):
                raise ConflictError(f"이미 존재하는 태스크입니다: {task_id}", details={"task_id": task_id})
            now = datetime.now()
            task = Task(
                id=task_id,
                title=payload.title,
                description=payload.description,
                details=payload.details,
                status=payload.status,
                priority=payload.priority,
                created_at=now,
                updated_at=now,
            )
            await self.storage.put_task(project_id, task)
        self.cache.invalidate(project_id)

        task, warnings, _ = await self.on_task_mutation(project_id, task, ScopeOperation.ADD, actor=actor)
        return {"task": task.to_api(), "warnings": [w.to_api() for w in warnings]}

    async def update_task(
        self, project_id: str, task_id: str, payload: TaskUpdate, actor: Optional[str] = None
    ) -> dict:
        await self.require_project(project_id)
        async with self.storage.lock(project_id, "tasks", holder=f"update_task:{task_id}"):
            task = await self.storage.get_task(project_id, task_id)
            if task is None:
                raise NotFoundError("태스크", task_id, details={"project_id": project_id})
            original = as_content(task)

            changes = payload.model_dump(exclude_unset=True, exclude_none=True)
            updated = task.model_copy(update=changes)
            validate_task_payload({
                "title": updated.title,
                "description": updated.description,
                "details": updated.details,
            })
            updated.updated_at = datetime.now()
            await self.storage.put_task(project_id, updated)
        self.cache.invalidate(project_id)

        content_changed = original != as_content(updated)
        task, warnings, impact = await self.on_task_mutation(
            project_id, updated, ScopeOperation.UPDATE,
            original=original if content_changed else None,
            actor=actor,
        )
        response = {"task": task.to_api(), "warnings": [w.to_api() for w in warnings]}
        if impact is not None:
            response["impact"] = impact.to_api()
        return response

    @staticmethod
    def _next_task_id(existing: list[Task]) -> str:
        numeric = [int(t.id) for t in existing if t.id.isdigit()]
        return str(max(numeric, default=0) + 1)

    async def on_task_mutation(
        self,
        project_id: str,
        task: Task,
        operation: ScopeOperation,
        original: Optional[TaskContent] = None,
        actor: Optional[str] = None,
    ) -> tuple[Task, list[ScopeWarning], Optional[ChangeImpact]]:
        """
        태스크 생성/수정 후 범위 검사 훅.

        1. 베이스라인이 없으면 skip_check 경고만 남깁니다.
        2. 판정 결과를 _scopeExtension.scopeCheck에 기록합니다.
        3. 범위 밖이면 변경 요청을 자동 생성(또는 기존 요청 갱신)하고 ID를 태스크에 연결합니다.
        4. 어떤 단계에서 실패해도 태스크 작업은 성공으로 남고 check_error 경고가 추가됩니다.
        """
        warnings: list[ScopeWarning] = []
        impact: Optional[ChangeImpact] = None
        try:
            baseline = await self.storage.get_baseline(project_id)
            content = as_content(task)
            result = self.classifier.check(content, baseline, operation)

            if original is not None:
                impact = self.classifier.check_change_impact(original, content, baseline)

            cr_id: Optional[str] = None
            if self.change_requests.should_auto_file(result):
                cr, created = await self.change_requests.auto_file(
                    project_id, task, result, operation, requested_by=actor
                )
                cr_id = cr.id
                if created:
                    message = f"태스크가 요구사항 범위를 벗어나 변경 요청 {cr.id}이(가) 생성되었습니다."
                else:
                    message = f"태스크가 요구사항 범위를 벗어났습니다. 기존 변경 요청 {cr.id}을(를) 갱신했습니다."
                warnings.append(ScopeWarning(
                    type="scope_violation", message=message, task_id=task.id, change_request_id=cr.id,
                ))
            elif result.skip_check:
                warnings.append(ScopeWarning(
                    type="skip_check",
                    message="요구사항 베이스라인이 없어 범위 검사를 건너뛰었습니다.",
                    task_id=task.id,
                ))
            elif not result.in_scope:
                warnings.append(ScopeWarning(type="scope_violation", message=result.reasoning, task_id=task.id))
            elif result.confidence < self.settings.low_confidence_threshold:
                warnings.append(ScopeWarning(
                    type="low_confidence",
                    message=f"범위 판정 신뢰도가 낮습니다({result.confidence:.2f}). 요구사항과의 관련성을 확인하세요.",
                    task_id=task.id,
                ))

            async with self.storage.lock(project_id, "tasks", holder=f"annotate:{task.id}"):
                stored = await self.storage.get_task(project_id, task.id) or task
                ext = stored.ensure_extension()
                now = datetime.now()
                ext.scope_check = result
                if not result.skip_check:
                    ext.matched_requirement_ids = list(result.matched_requirement_ids)
                    ext.association_confidence = result.best_similarity if result.matched_requirement_ids else 0.0
                    ext.associated_baseline_hash = (
                        baseline.metadata.prd_source_hash if result.matched_requirement_ids else None
                    )
                    ext.associated_at = now if result.matched_requirement_ids else None
                if cr_id and cr_id not in ext.change_request_ids:
                    ext.change_request_ids.append(cr_id)
                ext.last_updated = now
                await self.storage.put_task(project_id, stored)
                task = stored
            self.cache.invalidate(project_id)
        except Exception as e:
            logger.warning(f"[ScopeService] 범위 검사 실패 (태스크 {task.id}): {e}", exc_info=True)
            warnings.append(ScopeWarning(
                type="check_error",
                message=f"범위 검사 중 오류가 발생했습니다: {e}",
                task_id=task.id,
            ))
        return task, warnings, impact

    # ==================== 상태 ====================

    def status(self) -> dict:
        return {
            "storage_backend": self.storage.backend_name,
            "locks": self.storage.locks.status(),
            "cache": self.cache.get_stats(),
        }


def build_storage(settings: Settings) -> ScopeStorage:
    """설정에 맞는 저장소를 만듭니다."""
    locks = ProjectLockManager(timeout_seconds=settings.lock_timeout_seconds)
    if settings.storage_backend == "memory":
        return MemoryStorage(locks)
    return FileStorage(settings.data_dir, locks)


# 싱글톤 인스턴스 (프로그램 전체에서 공유)
_scope_service: Optional[ScopeService] = None


def get_scope_service() -> ScopeService:
    """ScopeService 인스턴스를 반환합니다."""
    global _scope_service
    if _scope_service is None:
        settings = get_settings()
        _scope_service = ScopeService(build_storage(settings), settings)
    return _scope_service
