"""
Layer 3: 연결 엔진 (Association Engine).

프로젝트의 모든 태스크를 베이스라인 요구사항에 일괄 연결합니다.
분류기의 매칭 단계만 사용하며, 변경 요청을 만들지 않습니다.

멱등성:
- 요구사항이 연결되지 않은 태스크만 새로 연결합니다.
- 다른 베이스라인(해시)으로 연결된 태스크는 다시 매칭하되,
  새 유사도가 기록된 신뢰도보다 높을 때만 교체합니다.
- 같은 베이스라인으로 두 번 실행하면 아무것도 바뀌지 않습니다.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from taskscope.layers.layer2_classification import ScopeClassifier, get_classifier
from taskscope.models import AssociationResult, RequirementBaseline, Task, TaskContent

logger = logging.getLogger(__name__)


@dataclass
class AssociationOutcome:
    """연결 실행 결과와, 저장이 필요한 태스크 목록."""
    result: AssociationResult
    changed_tasks: list[Task] = field(default_factory=list)


def as_content(task: Task) -> TaskContent:
    return TaskContent(title=task.title, description=task.description or "", details=task.details)


class TaskAssociator:
    """태스크-요구사항 일괄 연결기."""

    def __init__(self, classifier: Optional[ScopeClassifier] = None):
        self.classifier = classifier or get_classifier()

    def associate(
        self,
        tasks: list[Task],
        baseline: Optional[RequirementBaseline],
        now: Optional[datetime] = None,
    ) -> AssociationOutcome:
        now = now or datetime.now()
        total = len(tasks)

        if not baseline or not baseline.requirements:
            associated = sum(1 for t in tasks if t.matched_requirement_ids)
            return AssociationOutcome(result=AssociationResult(
                total_tasks=total,
                associated_tasks=associated,
                newly_associated=0,
                message="요구사항 베이스라인이 없어 연결을 건너뛰었습니다",
            ))

        baseline_hash = baseline.metadata.prd_source_hash
        changed: list[Task] = []

        for task in tasks:
            ext = task.scope_extension
            has_association = bool(ext and ext.matched_requirement_ids)
            if has_association and ext.associated_baseline_hash == baseline_hash:
                continue

            matches = self.classifier.match_requirements(as_content(task), baseline)
            if not matches:
                continue

            best = matches[0].similarity
            if has_association and best <= ext.association_confidence:
                continue

            ext = task.ensure_extension()
            ext.matched_requirement_ids = [m.requirement_id for m in matches]
            ext.association_confidence = best
            ext.associated_baseline_hash = baseline_hash
            ext.associated_at = now
            ext.last_updated = now
            changed.append(task)

        changed_ids = {t.id for t in changed}
        associated = sum(
            1 for t in tasks if t.id in changed_ids or t.matched_requirement_ids
        )
        logger.info(
            f"[TaskAssociator] 연결 완료: 전체 {total}개, 연결됨 {associated}개, 이번 실행 {len(changed)}개"
        )
        return AssociationOutcome(
            result=AssociationResult(
                total_tasks=total,
                associated_tasks=associated,
                newly_associated=len(changed),
                message=f"{len(changed)}개 태스크를 요구사항과 연결했습니다",
            ),
            changed_tasks=changed,
        )

    def prune_stale(self, tasks: list[Task], baseline: Optional[RequirementBaseline]) -> list[Task]:
        """
        베이스라인에 더 이상 없는 요구사항 ID를 태스크에서 제거합니다.
        변경된 태스크만 반환합니다.
        """
        valid_ids = baseline.ids if baseline else set()
        changed = []
        for task in tasks:
            ext = task.scope_extension
            if not ext:
                continue
            kept = [rid for rid in ext.matched_requirement_ids if rid in valid_ids]
            stale_check = bool(
                ext.scope_check
                and any(rid not in valid_ids for rid in ext.scope_check.matched_requirement_ids)
            )
            if kept == ext.matched_requirement_ids and not stale_check:
                continue
            ext.matched_requirement_ids = kept
            if not kept:
                ext.association_confidence = 0.0
                ext.associated_baseline_hash = None
            if ext.scope_check:
                ext.scope_check.matched_requirement_ids = [
                    rid for rid in ext.scope_check.matched_requirement_ids if rid in valid_ids
                ]
            ext.last_updated = datetime.now()
            changed.append(task)
        return changed
