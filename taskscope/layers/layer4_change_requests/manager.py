"""
Layer 4: 변경 요청 관리자 (Change Request Manager).

변경 요청의 저장, 상태 전이, 조회를 담당하고,
분류기가 범위 밖으로 판정한 태스크에 대해 변경 요청을 자동으로 생성합니다.

모든 쓰기는 프로젝트의 change_requests 잠금 안에서 "검증 → 저장" 순서로 한 번에 수행됩니다.
"""

import logging
import re
from collections import Counter
from datetime import datetime
from typing import Optional

from taskscope.config import Settings, get_settings
from taskscope.exceptions import ConflictError, NotFoundError
from taskscope.models import (
    ALLOWED_TRANSITIONS,
    ChangeRequest,
    ChangeRequestCreate,
    ChangeRequestSource,
    ChangeRequestStatus,
    ChangeRequestType,
    Impact,
    Priority,
    RiskLevel,
    ScopeCheckResult,
    ScopeOperation,
    StatusHistoryEntry,
    Task,
)
from taskscope.services.stores import ScopeStorage

logger = logging.getLogger(__name__)

CR_ID_PATTERN = re.compile(r"^CR-(\d+)$")

PRIORITY_BY_RISK = {
    RiskLevel.HIGH: (Priority.HIGH, Impact.HIGH),
    RiskLevel.MEDIUM: (Priority.MEDIUM, Impact.MEDIUM),
    RiskLevel.LOW: (Priority.LOW, Impact.LOW),
}


def next_change_request_id(existing: list[ChangeRequest]) -> str:
    """기존 ID 중 가장 큰 번호 + 1 (CR-001 형식)."""
    highest = 0
    for cr in existing:
        match = CR_ID_PATTERN.match(cr.id)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"CR-{highest + 1:03d}"


class ChangeRequestManager:
    """프로젝트별 변경 요청 관리자."""

    def __init__(self, storage: ScopeStorage, settings: Optional[Settings] = None):
        self.storage = storage
        self.settings = settings or get_settings()

    # ==================== 자동 생성 ====================

    def should_auto_file(self, result: ScopeCheckResult) -> bool:
        """범위 밖이면서 위험이 높거나 신뢰도가 자동 생성 기준 이상일 때."""
        if result.in_scope or result.skip_check:
            return False
        return (
            result.risk_level == RiskLevel.HIGH
            or result.confidence >= self.settings.auto_file_confidence_threshold
        )

    async def auto_file(
        self,
        project_id: str,
        task: Task,
        result: ScopeCheckResult,
        operation: ScopeOperation = ScopeOperation.ADD,
        requested_by: Optional[str] = None,
    ) -> tuple[ChangeRequest, bool]:
        """
        범위 밖 태스크에 대한 변경 요청을 생성합니다.

        같은 태스크를 참조하는 열린(pending/approved) 변경 요청이 이미 있으면
        새로 만들지 않고 기존 요청의 updatedAt만 갱신합니다.

        Returns:
            (변경 요청, 새로 생성되었는지 여부)
        """
        async with self.storage.lock(project_id, "change_requests", holder=f"auto_file:{task.id}"):
            existing = await self.storage.list_change_requests(project_id)
            now = datetime.now()

            for cr in existing:
                if cr.is_open and task.id in cr.related_tasks:
                    cr.updated_at = now
                    await self.storage.save_change_request(project_id, cr)
                    logger.info(f"[ChangeRequestManager] 기존 변경 요청 갱신: {project_id}/{cr.id} (태스크 {task.id})")
                    return cr, False

            priority, impact = PRIORITY_BY_RISK[result.risk_level]
            op_label = "추가" if operation == ScopeOperation.ADD else "수정"
            cr = ChangeRequest(
                id=next_change_request_id(existing),
                type=ChangeRequestType.SCOPE_EXPANSION,
                title=f"범위 확장 요청: {task.title}",
                description=(
                    f"태스크 {task.id} '{task.title}' {op_label} 작업이 요구사항 베이스라인 범위를 벗어났습니다."
                ),
                status=ChangeRequestStatus.PENDING,
                priority=priority,
                impact=impact,
                related_tasks=[task.id],
                related_requirements=list(result.matched_requirement_ids),
                requested_by=requested_by or self.settings.system_actor,
                reason=result.reasoning,
                source=ChangeRequestSource.AUTO,
                requested_at=now,
                updated_at=now,
            )
            await self.storage.save_change_request(project_id, cr)

        logger.info(f"[ChangeRequestManager] 변경 요청 자동 생성: {project_id}/{cr.id} (태스크 {task.id})")
        return cr, True

    # ==================== 수동 생성 / 상태 전이 ====================

    async def create(
        self,
        project_id: str,
        payload: ChangeRequestCreate,
        requested_by: Optional[str] = None,
    ) -> ChangeRequest:
        """외부 호출로 변경 요청을 생성합니다."""
        async with self.storage.lock(project_id, "change_requests", holder="create"):
            existing = await self.storage.list_change_requests(project_id)
            now = datetime.now()
            cr = ChangeRequest(
                id=next_change_request_id(existing),
                type=payload.type,
                title=payload.title,
                description=payload.description,
                priority=payload.priority,
                impact=payload.impact,
                related_tasks=list(payload.related_tasks),
                related_requirements=list(payload.related_requirements),
                requested_by=payload.requested_by or requested_by or self.settings.system_actor,
                assigned_to=payload.assigned_to,
                estimated_effort=payload.estimated_effort,
                reason=payload.reason,
                source=ChangeRequestSource.MANUAL,
                requested_at=now,
                updated_at=now,
            )
            await self.storage.save_change_request(project_id, cr)

        logger.info(f"[ChangeRequestManager] 변경 요청 생성: {project_id}/{cr.id}")
        return cr

    async def transition(
        self,
        project_id: str,
        cr_id: str,
        new_status: ChangeRequestStatus,
        changed_by: Optional[str] = None,
        comment: str = "",
        approved_by: Optional[str] = None,
    ) -> ChangeRequest:
        """
        상태를 전이합니다.
        허용되지 않는 전이는 ConflictError를 발생시키며 상태는 바뀌지 않습니다.
        """
        async with self.storage.lock(project_id, "change_requests", holder=f"transition:{cr_id}"):
            cr = await self.storage.get_change_request(project_id, cr_id)
            if cr is None:
                raise NotFoundError("변경 요청", cr_id, details={"project_id": project_id})

            if new_status not in ALLOWED_TRANSITIONS[cr.status]:
                raise ConflictError(
                    f"허용되지 않는 상태 전이입니다: {cr.status.value} → {new_status.value}",
                    details={
                        "change_request_id": cr_id,
                        "from": cr.status.value,
                        "to": new_status.value,
                        "allowed": sorted(s.value for s in ALLOWED_TRANSITIONS[cr.status]),
                    },
                )

            actor = changed_by or approved_by or self.settings.system_actor
            now = datetime.now()
            cr.history.append(StatusHistoryEntry(
                from_status=cr.status,
                to_status=new_status,
                changed_by=actor,
                comment=comment,
                changed_at=now,
            ))
            if new_status == ChangeRequestStatus.APPROVED:
                cr.approved_by = approved_by or actor
            cr.status = new_status
            cr.updated_at = now
            await self.storage.save_change_request(project_id, cr)

        logger.info(
            f"[ChangeRequestManager] 상태 변경: {project_id}/{cr_id} "
            f"{cr.history[-1].from_status.value} → {new_status.value} ({actor})"
        )
        return cr

    async def approve(self, project_id: str, cr_id: str, approved_by: Optional[str] = None, comment: str = "") -> ChangeRequest:
        return await self.transition(project_id, cr_id, ChangeRequestStatus.APPROVED, approved_by, comment, approved_by)

    async def reject(self, project_id: str, cr_id: str, changed_by: Optional[str] = None, comment: str = "") -> ChangeRequest:
        return await self.transition(project_id, cr_id, ChangeRequestStatus.REJECTED, changed_by, comment)

    async def implement(self, project_id: str, cr_id: str, changed_by: Optional[str] = None, comment: str = "") -> ChangeRequest:
        return await self.transition(project_id, cr_id, ChangeRequestStatus.IMPLEMENTED, changed_by, comment)

    # ==================== 조회 ====================

    async def get(self, project_id: str, cr_id: str) -> ChangeRequest:
        cr = await self.storage.get_change_request(project_id, cr_id)
        if cr is None:
            raise NotFoundError("변경 요청", cr_id, details={"project_id": project_id})
        return cr

    async def list_requests(
        self,
        project_id: str,
        status: Optional[ChangeRequestStatus] = None,
        type: Optional[ChangeRequestType] = None,
        priority: Optional[Priority] = None,
        requested_by: Optional[str] = None,
    ) -> list[ChangeRequest]:
        """필터를 적용한 변경 요청 목록 (최신순)."""
        items = await self.storage.list_change_requests(project_id)
        if status is not None:
            items = [cr for cr in items if cr.status == status]
        if type is not None:
            items = [cr for cr in items if cr.type == type]
        if priority is not None:
            items = [cr for cr in items if cr.priority == priority]
        if requested_by:
            items = [cr for cr in items if cr.requested_by == requested_by]
        return sorted(items, key=lambda cr: (cr.requested_at, cr.id), reverse=True)

    async def stats(self, project_id: str) -> dict:
        """상태/종류/우선순위별 개수."""
        items = await self.storage.list_change_requests(project_id)
        by_status = Counter(cr.status.value for cr in items)
        by_type = Counter(cr.type.value for cr in items)
        by_priority = Counter(cr.priority.value for cr in items)
        return {
            "total": len(items),
            "byStatus": {s.value: by_status.get(s.value, 0) for s in ChangeRequestStatus},
            "byType": {t.value: by_type.get(t.value, 0) for t in ChangeRequestType},
            "byPriority": {p.value: by_priority.get(p.value, 0) for p in Priority},
            "open": sum(1 for cr in items if cr.is_open),
            "autoFiled": sum(1 for cr in items if cr.source == ChangeRequestSource.AUTO),
        }
