"""
공통 데이터 모델 모듈입니다.
요구사항, 태스크, 변경 요청 모델이 함께 쓰는 열거형과 기본 클래스를 정의합니다.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    API 입출력에 camelCase 필드명을 사용하는 기본 모델입니다.
    파이썬 코드에서는 snake_case 이름으로 접근합니다.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self) -> dict:
        """camelCase JSON 호환 dict로 변환합니다."""
        return self.model_dump(by_alias=True, mode="json")


class RequirementScope(str, Enum):
    """
    요구사항의 중요도 계층입니다.

    - CORE: 기능 요구사항 섹션의 항목 (반드시 구현)
    - EXTENDED: 비기능/제약 섹션의 항목
    - OPTIONAL: 선택, 향후 과제로 표시된 항목
    """
    CORE = "core"
    EXTENDED = "extended"
    OPTIONAL = "optional"


class Priority(str, Enum):
    """우선순위입니다."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RiskLevel(str, Enum):
    """범위 판정 및 건강도의 위험 수준입니다."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Impact(str, Enum):
    """변경 요청의 영향도입니다."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ScopeOperation(str, Enum):
    """범위 검사를 유발한 태스크 작업 종류입니다."""

    ADD = "add"
    UPDATE = "update"


class Trend(str, Enum):
    """변경 요청 발생 추세입니다."""

    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"
