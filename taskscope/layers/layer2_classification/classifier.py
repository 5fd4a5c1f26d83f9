"""
Layer 2: 범위 분류기 (Scope Classifier).

태스크 텍스트를 베이스라인의 각 요구사항과 비교하여
범위 내/외 판정, 신뢰도, 위험 수준, 판정 근거를 계산합니다.
이 모듈은 순수 함수로만 구성되며 어떤 상태도 변경하지 않습니다.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from taskscope.config import get_settings
from taskscope.layers.lexicon import detect_categories
from taskscope.layers.text_similarity import similarity, tokenize
from taskscope.models import (
    ChangeImpact,
    Requirement,
    RequirementBaseline,
    RequirementMatch,
    RiskLevel,
    ScopeCheckResult,
    ScopeOperation,
    TaskContent,
)

logger = logging.getLogger(__name__)

RISK_ORDER = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}
CONFIDENCE_CHANGE_THRESHOLD = 0.2


@dataclass(frozen=True)
class _IndexedRequirement:
    requirement: Requirement
    title_tokens: tuple[str, ...]
    body_tokens: frozenset[str]
    categories: frozenset[str]


def task_text(task: TaskContent) -> str:
    return " ".join(part for part in (task.title, task.description, task.details) if part)


class ScopeClassifier:
    """
    토큰 겹침 기반 범위 분류기.

    판정 규칙:
    1. 베이스라인 없음 → 범위 내, 신뢰도 0, 위험 낮음 (판정 불가, 작업을 막지 않음)
    2. 최고 유사도 ≥ high → 범위 내, 위험 낮음
    3. low ≤ 최고 유사도 < high → 범위 내, 위험 중간 (부분 일치)
    4. 최고 유사도 < low 이고 베이스라인에 없는 분류 표식이 있음 → 범위 밖, 위험 높음
    5. 최고 유사도 < low 이지만 새로운 분류가 없음 → 범위 내, 위험 중간 (수동 확인 권장)
    """

    def __init__(
        self,
        low_threshold: Optional[float] = None,
        high_threshold: Optional[float] = None,
        max_matches: Optional[int] = None,
    ):
        settings = get_settings()
        self.low_threshold = settings.scope_low_threshold if low_threshold is None else low_threshold
        self.high_threshold = settings.scope_high_threshold if high_threshold is None else high_threshold
        self.max_matches = settings.max_matched_requirements if max_matches is None else max_matches

    # ==================== 매칭 ====================

    def _index(self, baseline: RequirementBaseline) -> list[_IndexedRequirement]:
        indexed = []
        for req in baseline.requirements:
            text = f"{req.title} {req.description}"
            indexed.append(_IndexedRequirement(
                requirement=req,
                title_tokens=tuple(tokenize(req.title)),
                body_tokens=frozenset(tokenize(f"{text} {req.section}")),
                categories=frozenset(detect_categories(text)) | {req.category},
            ))
        return indexed

    def score_all(self, task: TaskContent, baseline: RequirementBaseline) -> list[RequirementMatch]:
        """모든 요구사항과의 유사도를 높은 순서로 반환합니다 (동률은 베이스라인 순서)."""
        task_tokens = tokenize(task_text(task))
        scored = []
        for position, item in enumerate(self._index(baseline)):
            score, matched = similarity(task_tokens, list(item.title_tokens), set(item.body_tokens))
            scored.append((-score, position, RequirementMatch(
                requirement_id=item.requirement.id,
                title=item.requirement.title,
                similarity=score,
                matched_tokens=matched,
            )))
        return [match for _, _, match in sorted(scored, key=lambda x: (x[0], x[1]))]

    def match_requirements(self, task: TaskContent, baseline: Optional[RequirementBaseline]) -> list[RequirementMatch]:
        """하한 이상의 상위 매칭 (최대 max_matches개)."""
        if not baseline or not baseline.requirements:
            return []
        matches = [m for m in self.score_all(task, baseline) if m.similarity >= self.low_threshold]
        return matches[: self.max_matches]

    # ==================== 판정 ====================

    def check(
        self,
        task: TaskContent,
        baseline: Optional[RequirementBaseline],
        operation: ScopeOperation = ScopeOperation.ADD,
        checked_at: Optional[datetime] = None,
    ) -> ScopeCheckResult:
        """태스크 하나의 범위를 판정합니다."""
        checked_at = checked_at or datetime.now()
        task_categories = detect_categories(task_text(task))

        if not baseline or not baseline.requirements:
            return ScopeCheckResult(
                in_scope=True,
                confidence=0.0,
                risk_level=RiskLevel.LOW,
                matched_requirement_ids=[],
                reasoning="요구사항 베이스라인이 없어 범위를 판단할 수 없습니다. PRD를 먼저 분석하세요.",
                checked_at=checked_at,
                operation=operation,
                detected_categories=task_categories,
                skip_check=True,
            )

        ranked = self.score_all(task, baseline)
        best = ranked[0] if ranked else None
        best_score = best.similarity if best else 0.0
        matched_ids = [m.requirement_id for m in ranked if m.similarity >= self.low_threshold][: self.max_matches]

        covered = set()
        for item in self._index(baseline):
            covered |= item.categories
        novel = [c for c in task_categories if c not in covered]
        excluded_hits = self._excluded_hits(task_categories, baseline)

        if best_score >= self.high_threshold:
            in_scope, risk, confidence = True, RiskLevel.LOW, best_score
            rule = f"유사도가 상한({self.high_threshold}) 이상이므로 범위 내로 판정했습니다"
        elif best_score >= self.low_threshold:
            in_scope, risk, confidence = True, RiskLevel.MEDIUM, best_score
            rule = f"부분 일치(하한 {self.low_threshold} 이상, 상한 {self.high_threshold} 미만)이므로 범위 내이나 검토가 필요합니다"
        elif novel:
            in_scope, risk, confidence = False, RiskLevel.HIGH, 1.0 - best_score
            rule = f"베이스라인에 없는 분류({', '.join(novel)})가 감지되어 범위 밖으로 판정했습니다"
        else:
            in_scope, risk, confidence = True, RiskLevel.MEDIUM, best_score
            rule = "일치하는 요구사항이 약하지만 새로운 분류가 없어 범위 내로 보고 수동 확인을 권장합니다"

        if best and best_score >= self.low_threshold:
            subject = f"가장 유사한 요구사항은 {best.requirement_id} '{best.title}'(유사도 {best_score:.2f})이며, "
        elif best:
            subject = f"유사도 하한({self.low_threshold}) 이상인 요구사항이 없고(최고 {best_score:.2f}), "
        else:
            subject = "비교할 요구사항이 없고, "
        reasoning = subject + rule + "."
        if excluded_hits:
            reasoning += f" PRD에서 명시적으로 제외된 항목과 관련됩니다: {'; '.join(excluded_hits)}."

        confidence = round(min(max(confidence, 0.0), 1.0), 4)
        return ScopeCheckResult(
            in_scope=in_scope,
            confidence=confidence,
            risk_level=risk,
            matched_requirement_ids=matched_ids,
            reasoning=reasoning,
            checked_at=checked_at,
            operation=operation,
            best_similarity=best_score,
            detected_categories=task_categories,
            novel_categories=novel,
        )

    @staticmethod
    def _excluded_hits(task_categories: list[str], baseline: RequirementBaseline) -> list[str]:
        hits = []
        wanted = set(task_categories)
        for exclusion in baseline.metadata.exclusions:
            if wanted & set(detect_categories(exclusion)):
                hits.append(exclusion)
        return hits

    # ==================== 변경 영향 / 보고서 ====================

    def check_change_impact(
        self,
        original: TaskContent,
        modified: TaskContent,
        baseline: Optional[RequirementBaseline],
    ) -> ChangeImpact:
        """태스크 수정 전후의 판정을 비교합니다."""
        before = self.check(original, baseline, ScopeOperation.UPDATE)
        after = self.check(modified, baseline, ScopeOperation.UPDATE)
        return ChangeImpact(
            scope_changed=before.in_scope != after.in_scope,
            risk_increased=RISK_ORDER[after.risk_level] > RISK_ORDER[before.risk_level],
            confidence_changed=abs(after.confidence - before.confidence) > CONFIDENCE_CHANGE_THRESHOLD,
            original=before,
            modified=after,
            change_analysis={
                "titleChanged": original.title != modified.title,
                "descriptionChanged": (original.description or "") != (modified.description or ""),
                "detailsChanged": (original.details or "") != (modified.details or ""),
            },
        )

    def build_scope_report(self, results: list[ScopeCheckResult], low_confidence: Optional[float] = None) -> dict:
        """여러 태스크 판정 결과를 요약하고 권장 사항을 만듭니다."""
        if low_confidence is None:
            low_confidence = get_settings().low_confidence_threshold
        total = len(results)
        in_scope = sum(1 for r in results if r.in_scope)
        out_of_scope = total - in_scope
        high_risk = sum(1 for r in results if r.risk_level == RiskLevel.HIGH)
        weak = sum(1 for r in results if r.in_scope and not r.skip_check and r.confidence < low_confidence)

        recommendations = []
        if out_of_scope:
            recommendations.append({
                "type": "scope_violation",
                "message": f"{out_of_scope}개 태스크가 범위를 벗어났습니다. 변경 요청을 검토하세요.",
            })
        if high_risk:
            recommendations.append({
                "type": "high_risk",
                "message": f"{high_risk}개 태스크의 위험 수준이 높습니다. 우선 검토가 필요합니다.",
            })
        if weak:
            recommendations.append({
                "type": "low_confidence",
                "message": f"{weak}개 태스크의 판정 신뢰도가 낮습니다. 수동 확인을 권장합니다.",
            })

        return {
            "summary": {
                "totalTasks": total,
                "inScope": in_scope,
                "outOfScope": out_of_scope,
                "highRisk": high_risk,
                "scopeCompliance": round(in_scope / total * 100, 1) if total else 100.0,
            },
            "recommendations": recommendations,
        }


# 싱글톤 인스턴스
_classifier: Optional[ScopeClassifier] = None


def get_classifier() -> ScopeClassifier:
    global _classifier
    if _classifier is None:
        _classifier = ScopeClassifier()
    return _classifier
