"""FileStorage unit tests.

Tests project, baseline, change request, task and document persistence
using a temporary directory.
"""

import json
from datetime import datetime

import pytest
from unittest.mock import patch

from taskscope.exceptions import StorageError, ValidationError
from taskscope.models import (
    ChangeRequest,
    ChangeRequestType,
    Project,
    Task,
)
from taskscope.services import FileStorage


@pytest.fixture
def storage(tmp_path):
    return FileStorage(base_path=str(tmp_path))


class TestProjects:
    async def test_save_and_get(self, storage):
        await storage.save_project(Project(id="p1", name="Project One"))
        loaded = await storage.get_project("p1")
        assert loaded.name == "Project One"
        assert (storage.project_dir("p1") / "docs").is_dir()

    async def test_missing_project(self, storage):
        assert await storage.get_project("nope") is None

    async def test_list_projects(self, storage):
        await storage.save_project(Project(id="b", name="B"))
        await storage.save_project(Project(id="a", name="A"))
        assert [p.id for p in await storage.list_projects()] == ["a", "b"]


class TestBaseline:
    async def test_round_trip(self, storage, sample_baseline):
        await storage.save_project(Project(id="p1", name="P"))
        await storage.save_baseline("p1", sample_baseline)

        loaded = await storage.get_baseline("p1")
        assert loaded.ids == sample_baseline.ids
        assert loaded.metadata.prd_source_hash == sample_baseline.metadata.prd_source_hash

        raw = json.loads((storage.project_dir("p1") / "baseline.json").read_text(encoding="utf-8"))
        assert "totalRequirements" in raw["metadata"]

    async def test_corrupt_file_returns_none(self, storage):
        await storage.save_project(Project(id="p1", name="P"))
        (storage.project_dir("p1") / "baseline.json").write_text("{broken", encoding="utf-8")
        assert await storage.get_baseline("p1") is None


class TestChangeRequests:
    async def test_save_list_get(self, storage):
        await storage.save_project(Project(id="p1", name="P"))
        for cr_id in ("CR-002", "CR-001"):
            await storage.save_change_request("p1", ChangeRequest(
                id=cr_id, type=ChangeRequestType.SCOPE_EXPANSION, title=cr_id, requested_by="system",
            ))
        assert [cr.id for cr in await storage.list_change_requests("p1")] == ["CR-001", "CR-002"]
        assert (await storage.get_change_request("p1", "CR-002")).title == "CR-002"
        assert await storage.get_change_request("p1", "CR-404") is None


class TestTasks:
    async def test_scope_extension_is_persisted_with_alias(self, storage):
        await storage.save_project(Project(id="p1", name="P"))
        task = Task(id="1", title="t", created_at=datetime(2024, 1, 1))
        task.ensure_extension().change_request_ids = ["CR-001"]
        await storage.put_task("p1", task)

        raw = json.loads((storage.project_dir("p1") / "tasks" / "1.json").read_text(encoding="utf-8"))
        assert raw["_scopeExtension"]["changeRequestIds"] == ["CR-001"]

        loaded = await storage.get_task("p1", "1")
        assert loaded.scope_extension.change_request_ids == ["CR-001"]

    async def test_list_in_creation_order(self, storage):
        await storage.save_project(Project(id="p1", name="P"))
        await storage.put_task("p1", Task(id="b", title="second", created_at=datetime(2024, 1, 2)))
        await storage.put_task("p1", Task(id="a", title="first", created_at=datetime(2024, 1, 1)))
        assert [t.id for t in await storage.list_tasks("p1")] == ["a", "b"]

    async def test_task_id_cannot_leave_project_dir(self, storage, tmp_path):
        await storage.save_project(Project(id="p1", name="P"))
        with pytest.raises(ValidationError):
            await storage.put_task("p1", Task(id="../../../../escaped", title="x"))
        assert not list(tmp_path.parent.glob("escaped.json"))
        assert not list(tmp_path.rglob("escaped.json"))

    async def test_record_ids_are_confined(self, storage):
        with pytest.raises(ValidationError):
            await storage.get_change_request("p1", "../../p2/change_requests/CR-001")
        with pytest.raises(ValidationError):
            await storage.get_project("..")


class TestDocuments:
    async def test_save_and_read(self, storage):
        path = await storage.save_document("p1", "prd.md", "# PRD")
        assert path == "prd.md"
        assert await storage.read_document("p1", "prd.md") == "# PRD"

    async def test_missing_document(self, storage):
        assert await storage.read_document("p1", "none.md") is None

    async def test_escape_is_blocked(self, storage, tmp_path):
        (tmp_path / "secret.md").write_text("secret", encoding="utf-8")
        await storage.save_document("p1", "prd.md", "# PRD")
        assert await storage.read_document("p1", "../../../secret.md") is None


class TestWriteFailure:
    async def test_os_error_becomes_storage_error(self, storage):
        with patch("taskscope.services.file_storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError):
                await storage.save_project(Project(id="p1", name="P"))
        assert not list(storage.project_dir("p1").glob(".*.tmp"))
