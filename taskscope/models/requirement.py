"""
요구사항(Requirement) 및 요구사항 베이스라인 데이터 모델입니다.
PRD에서 추출된 개별 요구사항과, 프로젝트별 베이스라인 묶음을 정의합니다.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from .common import CamelModel, Priority, RequirementScope


class Requirement(CamelModel):
    """
    PRD에서 추출된 단일 요구사항입니다.
    재추출(베이스라인 전체 교체) 외에는 변경되지 않습니다.
    """

    id: str = Field(..., description="프로젝트 내 고유 ID (위치 + 내용 지문)")
    title: str = Field(..., description="요구사항 제목")
    description: str = Field(default="", description="상세 설명")
    scope: RequirementScope = Field(..., description="중요도 계층")
    priority: Priority = Field(default=Priority.MEDIUM, description="우선순위")
    category: str = Field(default="general", description="분류 라벨 (예: authentication)")
    section: str = Field(default="", description="추출된 PRD 섹션 제목")
    keywords: list[str] = Field(default_factory=list, description="매칭에 사용되는 키워드")
    extracted_from: str = Field(default="", description="원본 문서 이름")
    created_at: datetime = Field(default_factory=datetime.now, description="생성 시간")


class BaselineMetadata(CamelModel):
    """베이스라인 요약 정보. 개수 필드는 requirements에서 파생됩니다."""

    total_requirements: int = 0
    core_requirements: int = 0
    extended_requirements: int = 0
    optional_requirements: int = 0
    prd_source_hash: str = Field(default="", description="정규화된 PRD 본문의 SHA-256")
    last_analyzed: datetime = Field(default_factory=datetime.now)
    source_document: str = ""
    structure_recognized: bool = True
    sections_detected: list[str] = Field(default_factory=list)
    exclusions: list[str] = Field(default_factory=list, description="PRD가 명시적으로 제외한 항목")
    warnings: list[str] = Field(default_factory=list)


class RequirementBaseline(CamelModel):
    """프로젝트별 요구사항 베이스라인 (PRD 섹션 순서 유지)."""

    requirements: list[Requirement] = Field(default_factory=list)
    metadata: BaselineMetadata = Field(default_factory=BaselineMetadata)

    @model_validator(mode="after")
    def _derive_counts(self) -> "RequirementBaseline":
        # 개수는 항상 requirements로부터 다시 계산
        meta = self.metadata
        meta.total_requirements = len(self.requirements)
        meta.core_requirements = self.count_by_scope(RequirementScope.CORE)
        meta.extended_requirements = self.count_by_scope(RequirementScope.EXTENDED)
        meta.optional_requirements = self.count_by_scope(RequirementScope.OPTIONAL)
        return self

    def count_by_scope(self, scope: RequirementScope) -> int:
        return sum(1 for r in self.requirements if r.scope == scope)

    def get(self, requirement_id: str) -> Optional[Requirement]:
        for requirement in self.requirements:
            if requirement.id == requirement_id:
                return requirement
        return None

    @property
    def ids(self) -> set[str]:
        return {r.id for r in self.requirements}

    @property
    def categories(self) -> set[str]:
        return {r.category for r in self.requirements}

    def summary(self) -> dict:
        """analyze-prd 응답에 쓰이는 개수 요약."""
        meta = self.metadata
        return {
            "totalRequirements": meta.total_requirements,
            "coreRequirements": meta.core_requirements,
            "extendedRequirements": meta.extended_requirements,
            "optionalRequirements": meta.optional_requirements,
            "prdSourceHash": meta.prd_source_hash,
        }
