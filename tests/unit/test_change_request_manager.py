"""Unit tests for the change request manager.

Covers auto-filing with deduplication, the status lifecycle, filtering
and statistics.
"""

import asyncio

import pytest

from taskscope.exceptions import ConflictError, NotFoundError
from taskscope.layers.layer4_change_requests import ChangeRequestManager, next_change_request_id
from taskscope.models import (
    ChangeRequest,
    ChangeRequestCreate,
    ChangeRequestSource,
    ChangeRequestStatus,
    ChangeRequestType,
    Priority,
    RiskLevel,
    ScopeCheckResult,
    Task,
)

PROJECT = "cr-test"


def _out_of_scope_result(risk=RiskLevel.HIGH, confidence=1.0) -> ScopeCheckResult:
    return ScopeCheckResult(
        in_scope=False,
        confidence=confidence,
        risk_level=risk,
        reasoning="베이스라인에 없는 분류가 감지되었습니다.",
    )


@pytest.fixture
def manager(memory_storage, test_settings):
    return ChangeRequestManager(memory_storage, test_settings)


class TestIds:
    def test_next_id(self):
        existing = [
            ChangeRequest(id="CR-001", type=ChangeRequestType.SCOPE_EXPANSION, title="a", requested_by="s"),
            ChangeRequest(id="CR-007", type=ChangeRequestType.SCOPE_EXPANSION, title="b", requested_by="s"),
        ]
        assert next_change_request_id(existing) == "CR-008"
        assert next_change_request_id([]) == "CR-001"


class TestAutoFile:
    def test_should_auto_file(self, manager):
        assert manager.should_auto_file(_out_of_scope_result())
        assert manager.should_auto_file(_out_of_scope_result(RiskLevel.MEDIUM, 0.9))
        assert not manager.should_auto_file(_out_of_scope_result(RiskLevel.MEDIUM, 0.5))

        in_scope = ScopeCheckResult(in_scope=True, confidence=0.9, risk_level=RiskLevel.LOW, reasoning="ok")
        assert not manager.should_auto_file(in_scope)

    async def test_creates_pending_scope_expansion(self, manager):
        task = Task(id="2", title="添加用户登录系统")
        cr, created = await manager.auto_file(PROJECT, task, _out_of_scope_result())

        assert created is True
        assert cr.id == "CR-001"
        assert cr.type == ChangeRequestType.SCOPE_EXPANSION
        assert cr.status == ChangeRequestStatus.PENDING
        assert cr.related_tasks == ["2"]
        assert cr.priority == Priority.HIGH
        assert cr.source == ChangeRequestSource.AUTO
        assert cr.requested_by == "system"

    async def test_deduplicates_open_request_for_same_task(self, manager):
        task = Task(id="2", title="添加用户登录系统")
        first, _ = await manager.auto_file(PROJECT, task, _out_of_scope_result())
        second, created = await manager.auto_file(PROJECT, task, _out_of_scope_result())

        assert created is False
        assert second.id == first.id
        assert second.updated_at >= first.updated_at
        assert len(await manager.list_requests(PROJECT)) == 1

    async def test_concurrent_auto_file_creates_single_request(self, manager):
        task = Task(id="2", title="添加用户登录系统")
        results = await asyncio.gather(
            *[manager.auto_file(PROJECT, task, _out_of_scope_result()) for _ in range(10)]
        )

        assert sum(1 for _, created in results if created) == 1
        assert {cr.id for cr, _ in results} == {"CR-001"}
        assert len(await manager.list_requests(PROJECT)) == 1

    async def test_new_request_after_rejection(self, manager):
        task = Task(id="2", title="添加用户登录系统")
        first, _ = await manager.auto_file(PROJECT, task, _out_of_scope_result())
        await manager.reject(PROJECT, first.id, "pm")

        second, created = await manager.auto_file(PROJECT, task, _out_of_scope_result())
        assert created is True
        assert second.id == "CR-002"


class TestLifecycle:
    async def test_approve_then_implement(self, manager):
        cr = await manager.create(PROJECT, ChangeRequestCreate(title="범위 확장"), requested_by="dev")

        approved = await manager.approve(PROJECT, cr.id, approved_by="pm", comment="ok")
        assert approved.status == ChangeRequestStatus.APPROVED
        assert approved.approved_by == "pm"

        implemented = await manager.implement(PROJECT, cr.id, "dev")
        assert implemented.status == ChangeRequestStatus.IMPLEMENTED
        assert [(h.from_status, h.to_status) for h in implemented.history] == [
            (ChangeRequestStatus.PENDING, ChangeRequestStatus.APPROVED),
            (ChangeRequestStatus.APPROVED, ChangeRequestStatus.IMPLEMENTED),
        ]

    async def test_rejected_cannot_be_approved(self, manager):
        cr = await manager.create(PROJECT, ChangeRequestCreate(title="범위 확장"))
        await manager.reject(PROJECT, cr.id, "pm")

        with pytest.raises(ConflictError):
            await manager.approve(PROJECT, cr.id, "pm")

        stored = await manager.get(PROJECT, cr.id)
        assert stored.status == ChangeRequestStatus.REJECTED
        assert len(stored.history) == 1

    async def test_pending_cannot_be_implemented(self, manager):
        cr = await manager.create(PROJECT, ChangeRequestCreate(title="범위 확장"))
        with pytest.raises(ConflictError):
            await manager.implement(PROJECT, cr.id)

    async def test_unknown_request(self, manager):
        with pytest.raises(NotFoundError):
            await manager.approve(PROJECT, "CR-404", "pm")
        with pytest.raises(NotFoundError):
            await manager.get(PROJECT, "CR-404")


class TestQueries:
    async def test_filters_and_stats(self, manager):
        await manager.create(PROJECT, ChangeRequestCreate(title="a", priority=Priority.HIGH), requested_by="alice")
        second = await manager.create(PROJECT, ChangeRequestCreate(title="b"), requested_by="bob")
        await manager.reject(PROJECT, second.id, "pm")

        assert [cr.title for cr in await manager.list_requests(PROJECT, requested_by="alice")] == ["a"]
        assert [cr.title for cr in await manager.list_requests(PROJECT, status=ChangeRequestStatus.REJECTED)] == ["b"]
        assert [cr.title for cr in await manager.list_requests(PROJECT, priority=Priority.HIGH)] == ["a"]

        stats = await manager.stats(PROJECT)
        assert stats["total"] == 2
        assert stats["byStatus"]["pending"] == 1
        assert stats["byStatus"]["rejected"] == 1
        assert stats["open"] == 1
        assert stats["autoFiled"] == 0
