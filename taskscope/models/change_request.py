"""
변경 요청(Change Request) 데이터 모델입니다.
범위 밖 태스크로 인해 베이스라인 확장/수정을 제안하는 레코드를 정의합니다.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from .common import CamelModel, Impact, Priority


class ChangeRequestType(str, Enum):
    SCOPE_EXPANSION = "scope_expansion"
    REQUIREMENT_CHANGE = "requirement_change"
    TASK_MODIFICATION = "task_modification"


class ChangeRequestStatus(str, Enum):
    """
    변경 요청 상태입니다.
    pending → approved/rejected, approved → implemented 만 허용됩니다.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    IMPLEMENTED = "implemented"


# 허용되는 상태 전이표
ALLOWED_TRANSITIONS: dict[ChangeRequestStatus, set[ChangeRequestStatus]] = {
    ChangeRequestStatus.PENDING: {ChangeRequestStatus.APPROVED, ChangeRequestStatus.REJECTED},
    ChangeRequestStatus.APPROVED: {ChangeRequestStatus.IMPLEMENTED},
    ChangeRequestStatus.REJECTED: set(),
    ChangeRequestStatus.IMPLEMENTED: set(),
}

OPEN_STATUSES = {ChangeRequestStatus.PENDING, ChangeRequestStatus.APPROVED}


class ChangeRequestSource(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class StatusHistoryEntry(CamelModel):
    """상태 전이 이력 한 건."""

    from_status: ChangeRequestStatus
    to_status: ChangeRequestStatus
    changed_by: str
    comment: str = ""
    changed_at: datetime = Field(default_factory=datetime.now)


class ChangeRequest(CamelModel):
    """변경 요청 레코드."""

    id: str = Field(..., description="프로젝트 내 고유 ID (CR-001 형식)")
    type: ChangeRequestType
    title: str
    description: str = ""
    status: ChangeRequestStatus = ChangeRequestStatus.PENDING
    priority: Priority = Priority.MEDIUM
    impact: Impact = Impact.MEDIUM
    related_tasks: list[str] = Field(default_factory=list)
    related_requirements: list[str] = Field(default_factory=list)
    requested_by: str
    assigned_to: Optional[str] = None
    estimated_effort: Optional[float] = Field(default=None, ge=0, description="예상 공수 (시간)")
    reason: str = ""
    source: ChangeRequestSource = ChangeRequestSource.MANUAL
    approved_by: Optional[str] = None
    history: list[StatusHistoryEntry] = Field(default_factory=list)
    requested_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES


class ChangeRequestCreate(CamelModel):
    """수동 변경 요청 생성 페이로드."""

    type: ChangeRequestType = ChangeRequestType.SCOPE_EXPANSION
    title: str = Field(..., min_length=1)
    description: str = ""
    priority: Priority = Priority.MEDIUM
    impact: Impact = Impact.MEDIUM
    related_tasks: list[str] = Field(default_factory=list)
    related_requirements: list[str] = Field(default_factory=list)
    requested_by: Optional[str] = None
    assigned_to: Optional[str] = None
    estimated_effort: Optional[float] = Field(default=None, ge=0)
    reason: str = ""


class ChangeRequestStatusUpdate(CamelModel):
    """PATCH /change-requests/{crId}/status 요청 본문."""

    status: ChangeRequestStatus
    comment: str = ""
    approved_by: Optional[str] = None
