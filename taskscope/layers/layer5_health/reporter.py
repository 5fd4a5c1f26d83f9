"""
Layer 5: 건강도 보고기 (Health Reporter).

베이스라인, 태스크의 _scopeExtension, 변경 요청을 읽어 범위 건강도와
태스크 범위 보고서를 계산합니다. 상태를 저장하지 않는 순수 집계입니다.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from taskscope.config import Settings, get_settings
from taskscope.models import (
    ChangeRequest,
    ChangeRequestCounts,
    ChangeRequestStatus,
    RequirementBaseline,
    RiskLevel,
    ScopeHealth,
    Task,
    Trend,
)

logger = logging.getLogger(__name__)

HIGH_RISK_PENDING = 5
MEDIUM_RISK_PENDING = 2
HIGH_RISK_COMPLIANCE = 50.0

# 태스크 범위 보고서 권장 기준
REPORT_LOW_COMPLIANCE = 50.0
REPORT_MIN_TASKS_WITH_REQUIREMENTS = 0.7
REPORT_MIN_COVERAGE = 80.0


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


class HealthReporter:
    """범위 건강도 집계기."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    # ==================== 지표 ====================

    @staticmethod
    def covered_requirement_ids(baseline: Optional[RequirementBaseline], tasks: list[Task]) -> set[str]:
        if not baseline:
            return set()
        valid = baseline.ids
        covered = set()
        for task in tasks:
            covered.update(rid for rid in task.matched_requirement_ids if rid in valid)
        return covered

    def requirements_coverage(self, baseline: Optional[RequirementBaseline], tasks: list[Task]) -> float:
        """태스크가 1개 이상 연결된 요구사항의 비율(%)."""
        if not baseline or not baseline.requirements:
            return 0.0
        covered = self.covered_requirement_ids(baseline, tasks)
        return _percent(len(covered), len(baseline.requirements))

    @staticmethod
    def checked_tasks(tasks: list[Task]) -> list[Task]:
        """실제로 판정된(베이스라인 없이 건너뛰지 않은) 범위 검사가 있는 태스크."""
        return [
            t for t in tasks
            if t.scope_extension and t.scope_extension.scope_check
            and not t.scope_extension.scope_check.skip_check
        ]

    def scope_compliance(self, tasks: list[Task]) -> float:
        """마지막 범위 검사가 범위 내였던 태스크의 비율(%). 검사된 태스크가 없으면 100."""
        checked = self.checked_tasks(tasks)
        if not checked:
            return 100.0
        in_scope = sum(1 for t in checked if t.scope_extension.scope_check.in_scope)
        return _percent(in_scope, len(checked))

    def change_request_trend(self, change_requests: list[ChangeRequest], now: datetime) -> Trend:
        """최근 기간과 직전 기간의 변경 요청 생성 수를 비교합니다."""
        window = timedelta(days=self.settings.trend_window_days)
        recent_start = now - window
        prior_start = now - 2 * window
        recent = sum(1 for cr in change_requests if recent_start < cr.requested_at <= now)
        prior = sum(1 for cr in change_requests if prior_start < cr.requested_at <= recent_start)
        diff = recent - prior
        if abs(diff) <= self.settings.trend_tolerance:
            return Trend.STABLE
        return Trend.INCREASING if diff > 0 else Trend.DECREASING

    @staticmethod
    def count_by_status(change_requests: list[ChangeRequest]) -> ChangeRequestCounts:
        counts = ChangeRequestCounts()
        for cr in change_requests:
            setattr(counts, cr.status.value, getattr(counts, cr.status.value) + 1)
        return counts

    # ==================== 건강도 ====================

    def scope_health(
        self,
        baseline: Optional[RequirementBaseline],
        tasks: list[Task],
        change_requests: list[ChangeRequest],
        now: Optional[datetime] = None,
    ) -> ScopeHealth:
        now = now or datetime.now()
        has_baseline = bool(baseline and baseline.requirements)
        counts = self.count_by_status(change_requests)
        coverage = self.requirements_coverage(baseline, tasks)
        compliance = self.scope_compliance(tasks)
        trend = self.change_request_trend(change_requests, now)
        coverage_applies = has_baseline and bool(tasks)

        if counts.pending > HIGH_RISK_PENDING or compliance < HIGH_RISK_COMPLIANCE:
            risk = RiskLevel.HIGH
        elif (
            not has_baseline
            or counts.pending > MEDIUM_RISK_PENDING
            or compliance < self.settings.compliance_warning_threshold
            or (coverage_applies and coverage < self.settings.coverage_warning_threshold)
        ):
            risk = RiskLevel.MEDIUM
        else:
            risk = RiskLevel.LOW

        recommendations = []
        if not has_baseline:
            recommendations.append("PRD 문서를 업로드하고 analyze-prd로 요구사항 베이스라인을 생성하세요.")
        if compliance < self.settings.compliance_warning_threshold:
            recommendations.append(
                f"범위 준수율이 {compliance}%로 낮습니다. 대기 중인 변경 요청을 검토하세요."
            )
        if coverage_applies and coverage < self.settings.coverage_warning_threshold:
            recommendations.append(
                f"요구사항 커버리지가 {coverage}%입니다. auto-associate-tasks로 태스크를 요구사항에 연결하세요."
            )
        if counts.pending:
            recommendations.append(f"대기 중인 변경 요청 {counts.pending}건을 검토하세요.")
        if trend == Trend.INCREASING:
            recommendations.append("변경 요청이 증가 추세입니다. PRD 베이스라인 갱신을 검토하세요.")
        if not recommendations:
            recommendations.append("범위 상태가 양호합니다.")

        return ScopeHealth(
            has_baseline=has_baseline,
            risk_level=risk,
            change_request_trend=trend,
            recommendations=recommendations,
            change_requests=counts,
            requirements_coverage=coverage,
            scope_compliance=compliance,
            generated_at=now,
        )

    # ==================== 태스크 범위 보고서 ====================

    def task_scope_report(
        self,
        baseline: Optional[RequirementBaseline],
        tasks: list[Task],
        change_requests: list[ChangeRequest],
        now: Optional[datetime] = None,
    ) -> dict:
        now = now or datetime.now()
        total = len(tasks)
        with_requirements = sum(1 for t in tasks if t.matched_requirement_ids)
        with_check = len(self.checked_tasks(tasks))
        with_crs = sum(1 for t in tasks if t.scope_extension and t.scope_extension.change_request_ids)
        compliance = self.scope_compliance(tasks)
        pending = sum(1 for cr in change_requests if cr.status == ChangeRequestStatus.PENDING)

        coverage_section = None
        if baseline:
            covered = self.covered_requirement_ids(baseline, tasks)
            coverage_section = {
                "total": len(baseline.requirements),
                "covered": len(covered),
                "uncoveredRequirementIds": [r.id for r in baseline.requirements if r.id not in covered],
                "coveragePercentage": _percent(len(covered), len(baseline.requirements)),
            }

        details = []
        for task in tasks:
            ext = task.scope_extension
            check = ext.scope_check if ext else None
            details.append({
                "taskId": task.id,
                "title": task.title,
                "matchedRequirementIds": list(task.matched_requirement_ids),
                "inScope": check.in_scope if check else None,
                "riskLevel": check.risk_level.value if check else None,
                "confidence": check.confidence if check else None,
                "changeRequestIds": list(ext.change_request_ids) if ext else [],
            })

        recommendations = []
        if with_check and compliance < REPORT_LOW_COMPLIANCE:
            recommendations.append({
                "type": "low_compliance",
                "priority": "high",
                "message": f"범위 준수율이 {compliance}%입니다. 범위 밖 태스크와 변경 요청을 검토하세요.",
            })
        if total and with_requirements < total * REPORT_MIN_TASKS_WITH_REQUIREMENTS:
            recommendations.append({
                "type": "missing_requirements",
                "priority": "medium",
                "message": f"{total - with_requirements}개 태스크가 요구사항과 연결되지 않았습니다. 자동 연결을 실행하세요.",
            })
        if coverage_section and coverage_section["total"] and coverage_section["coveragePercentage"] < REPORT_MIN_COVERAGE:
            recommendations.append({
                "type": "incomplete_coverage",
                "priority": "medium",
                "message": (
                    f"요구사항 {len(coverage_section['uncoveredRequirementIds'])}개에 연결된 태스크가 없습니다 "
                    f"(커버리지 {coverage_section['coveragePercentage']}%)."
                ),
            })
        if pending:
            recommendations.append({
                "type": "pending_changes",
                "priority": "low",
                "message": f"대기 중인 변경 요청 {pending}건이 있습니다.",
            })

        return {
            "summary": {
                "totalTasks": total,
                "scopeCompliance": compliance,
                "tasksWithRequirements": with_requirements,
                "tasksWithScopeCheck": with_check,
                "tasksWithChangeRequests": with_crs,
            },
            "requirementsCoverage": coverage_section,
            "taskDetails": details,
            "recommendations": recommendations,
            "generatedAt": now.isoformat(),
        }
