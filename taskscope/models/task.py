"""
태스크 및 프로젝트 모델입니다.
태스크는 외부 태스크 저장소가 소유하며, 엔진은 _scopeExtension만 읽고 씁니다.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel
from .scope import ScopeExtension


class Task(CamelModel):
    """태스크 레코드."""

    id: str
    title: str
    description: str = ""
    details: Optional[str] = None
    status: str = "pending"
    priority: str = "medium"
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    scope_extension: Optional[ScopeExtension] = Field(default=None, alias="_scopeExtension")

    def ensure_extension(self) -> ScopeExtension:
        if self.scope_extension is None:
            self.scope_extension = ScopeExtension()
        return self.scope_extension

    @property
    def matched_requirement_ids(self) -> list[str]:
        if self.scope_extension is None:
            return []
        return self.scope_extension.matched_requirement_ids


class TaskContent(CamelModel):
    """범위 검사 대상이 되는 태스크 텍스트."""

    title: str = Field(..., min_length=1)
    description: str = ""
    details: Optional[str] = None


class TaskCreate(TaskContent):
    id: Optional[str] = Field(default=None, min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_\-]+$")
    status: str = "pending"
    priority: str = "medium"


class TaskUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    details: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None


class Project(CamelModel):
    """프로젝트 레코드."""

    id: str = Field(..., min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_\-]+$")
    name: str = Field(..., min_length=1)
    description: str = ""
    created_at: datetime = Field(default_factory=datetime.now)
