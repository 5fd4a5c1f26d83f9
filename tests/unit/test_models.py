"""Unit tests for the data models.

Covers camelCase serialization, baseline count derivation, the
_scopeExtension alias and change request transition rules.
"""

import pytest
from pydantic import ValidationError

from taskscope.models import (
    ALLOWED_TRANSITIONS,
    ChangeRequest,
    ChangeRequestStatus,
    ChangeRequestType,
    Requirement,
    RequirementBaseline,
    RequirementScope,
    ScopeExtension,
    Task,
    TaskCreate,
)


def _requirement(rid: str, scope: RequirementScope) -> Requirement:
    return Requirement(id=rid, title=f"req {rid}", scope=scope)


class TestRequirementBaseline:
    def test_counts_are_derived_from_requirements(self):
        baseline = RequirementBaseline(requirements=[
            _requirement("R1", RequirementScope.CORE),
            _requirement("R2", RequirementScope.CORE),
            _requirement("R3", RequirementScope.EXTENDED),
            _requirement("R4", RequirementScope.OPTIONAL),
        ])
        meta = baseline.metadata
        assert meta.total_requirements == 4
        assert meta.core_requirements == 2
        assert meta.extended_requirements == 1
        assert meta.optional_requirements == 1
        assert meta.core_requirements + meta.extended_requirements + meta.optional_requirements == meta.total_requirements

    def test_get_and_ids(self):
        baseline = RequirementBaseline(requirements=[_requirement("R1", RequirementScope.CORE)])
        assert baseline.get("R1").title == "req R1"
        assert baseline.get("missing") is None
        assert baseline.ids == {"R1"}

    def test_serializes_with_camel_case(self):
        baseline = RequirementBaseline(requirements=[_requirement("R1", RequirementScope.CORE)])
        data = baseline.to_api()
        assert data["metadata"]["totalRequirements"] == 1
        assert data["requirements"][0]["extractedFrom"] == ""
        assert data["requirements"][0]["scope"] == "core"


class TestTask:
    def test_scope_extension_alias_round_trip(self):
        task = Task(id="1", title="t")
        ext = task.ensure_extension()
        ext.matched_requirement_ids = ["R1"]

        data = task.to_api()
        assert data["_scopeExtension"]["matchedRequirementIds"] == ["R1"]

        restored = Task.model_validate(data)
        assert restored.matched_requirement_ids == ["R1"]

    def test_task_without_extension(self):
        task = Task(id="1", title="t")
        assert task.scope_extension is None
        assert task.matched_requirement_ids == []
        assert task.to_api()["_scopeExtension"] is None

    def test_populate_by_name(self):
        ext = ScopeExtension(change_request_ids=["CR-001"])
        assert ScopeExtension.model_validate({"changeRequestIds": ["CR-001"]}).change_request_ids == ext.change_request_ids

    def test_create_accepts_plain_ids(self):
        assert TaskCreate(id="task_1-a", title="t").id == "task_1-a"
        assert TaskCreate(title="t").id is None

    @pytest.mark.parametrize("task_id", ["../escaped", "a/b", "", "x y"])
    def test_create_rejects_path_like_ids(self, task_id):
        with pytest.raises(ValidationError):
            TaskCreate(id=task_id, title="t")


class TestChangeRequestModel:
    def test_allowed_transitions(self):
        assert ALLOWED_TRANSITIONS[ChangeRequestStatus.PENDING] == {
            ChangeRequestStatus.APPROVED, ChangeRequestStatus.REJECTED,
        }
        assert ALLOWED_TRANSITIONS[ChangeRequestStatus.APPROVED] == {ChangeRequestStatus.IMPLEMENTED}
        assert not ALLOWED_TRANSITIONS[ChangeRequestStatus.REJECTED]
        assert not ALLOWED_TRANSITIONS[ChangeRequestStatus.IMPLEMENTED]

    def test_is_open(self):
        cr = ChangeRequest(id="CR-001", type=ChangeRequestType.SCOPE_EXPANSION, title="x", requested_by="system")
        assert cr.is_open
        cr.status = ChangeRequestStatus.REJECTED
        assert not cr.is_open
