"""Data models for the scope governance engine."""

from .common import (
    CamelModel,
    RequirementScope,
    Priority,
    RiskLevel,
    Impact,
    ScopeOperation,
    Trend,
)
from .requirement import Requirement, BaselineMetadata, RequirementBaseline
from .scope import (
    ScopeCheckResult,
    RequirementMatch,
    ScopeExtension,
    ScopeWarning,
    ChangeImpact,
    AssociationResult,
    ChangeRequestCounts,
    ScopeHealth,
)
from .change_request import (
    ChangeRequestType,
    ChangeRequestStatus,
    ChangeRequestSource,
    StatusHistoryEntry,
    ChangeRequest,
    ChangeRequestCreate,
    ChangeRequestStatusUpdate,
    ALLOWED_TRANSITIONS,
    OPEN_STATUSES,
)
from .task import Task, TaskContent, TaskCreate, TaskUpdate, Project
from .error import ErrorResponse

__all__ = [
    # Common
    "CamelModel",
    "RequirementScope",
    "Priority",
    "RiskLevel",
    "Impact",
    "ScopeOperation",
    "Trend",
    # Requirement models
    "Requirement",
    "BaselineMetadata",
    "RequirementBaseline",
    # Scope models
    "ScopeCheckResult",
    "RequirementMatch",
    "ScopeExtension",
    "ScopeWarning",
    "ChangeImpact",
    "AssociationResult",
    "ChangeRequestCounts",
    "ScopeHealth",
    # Change request models
    "ChangeRequestType",
    "ChangeRequestStatus",
    "ChangeRequestSource",
    "StatusHistoryEntry",
    "ChangeRequest",
    "ChangeRequestCreate",
    "ChangeRequestStatusUpdate",
    "ALLOWED_TRANSITIONS",
    "OPEN_STATUSES",
    # Task models
    "Task",
    "TaskContent",
    "TaskCreate",
    "TaskUpdate",
    "Project",
    # Error
    "ErrorResponse",
]
