"""
범위 판정 관련 데이터 모델입니다.
범위 검사 결과, 태스크에 붙는 _scopeExtension 표식, 건강도 요약 등을 정의합니다.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel, RiskLevel, ScopeOperation, Trend


class ScopeCheckResult(CamelModel):
    """
    태스크 하나에 대한 범위 판정 결과입니다.
    단독으로 저장되지 않고 태스크의 _scopeExtension.scopeCheck에 포함됩니다.
    """

    in_scope: bool = Field(..., description="범위 내 여부")
    confidence: float = Field(..., ge=0.0, le=1.0, description="판정 신뢰도")
    risk_level: RiskLevel = Field(..., description="위험 수준")
    matched_requirement_ids: list[str] = Field(default_factory=list)
    reasoning: str = Field(..., description="판정 근거 문장")
    checked_at: datetime = Field(default_factory=datetime.now)
    operation: ScopeOperation = ScopeOperation.ADD
    best_similarity: float = 0.0
    detected_categories: list[str] = Field(default_factory=list)
    novel_categories: list[str] = Field(default_factory=list)
    skip_check: bool = Field(default=False, description="베이스라인이 없어 판정을 건너뜀")


class RequirementMatch(CamelModel):
    """요구사항 하나와의 유사도."""

    requirement_id: str
    title: str
    similarity: float
    matched_tokens: list[str] = Field(default_factory=list)


class ScopeExtension(CamelModel):
    """태스크에 부착되는 범위 관리 정보 (_scopeExtension)."""

    matched_requirement_ids: list[str] = Field(default_factory=list)
    association_confidence: float = 0.0
    associated_baseline_hash: Optional[str] = None
    associated_at: Optional[datetime] = None
    scope_check: Optional[ScopeCheckResult] = None
    change_request_ids: list[str] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=datetime.now)


class ScopeWarning(CamelModel):
    """태스크 변경 응답에 첨부되는 경고."""

    type: str = Field(..., description="check_error | skip_check | scope_violation | low_confidence")
    message: str
    task_id: Optional[str] = None
    change_request_id: Optional[str] = None


class ChangeImpact(CamelModel):
    """태스크 수정 전후의 범위 판정 비교."""

    scope_changed: bool
    risk_increased: bool
    confidence_changed: bool
    original: ScopeCheckResult
    modified: ScopeCheckResult
    change_analysis: dict[str, bool] = Field(default_factory=dict)


class AssociationResult(CamelModel):
    """자동 연결 실행 결과."""

    total_tasks: int
    associated_tasks: int
    newly_associated: int = 0
    message: str = ""


class ChangeRequestCounts(CamelModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    implemented: int = 0


class ScopeHealth(CamelModel):
    """프로젝트 범위 건강도 (저장되지 않는 파생 값)."""

    has_baseline: bool
    risk_level: RiskLevel
    change_request_trend: Trend = Trend.STABLE
    recommendations: list[str] = Field(default_factory=list)
    change_requests: ChangeRequestCounts = Field(default_factory=ChangeRequestCounts)
    requirements_coverage: float = 0.0
    scope_compliance: float = 100.0
    generated_at: datetime = Field(default_factory=datetime.now)
