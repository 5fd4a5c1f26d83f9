"""API 통합 테스트용 fixture. 메모리 저장소를 쓰는 서비스로 교체합니다."""

import pytest
from httpx import AsyncClient, ASGITransport

from taskscope.main import app
from taskscope.services import MemoryStorage, ProjectLockManager, ScopeService

from tests.conftest import PROJECT_ID, SAMPLE_PRD


@pytest.fixture
def api_service(monkeypatch, test_settings):
    service = ScopeService(MemoryStorage(ProjectLockManager(timeout_seconds=1.0)), test_settings)
    monkeypatch.setattr("taskscope.services.scope_service._scope_service", service)
    return service


@pytest.fixture
async def client(api_service):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def project(client):
    """프로젝트를 만들고 샘플 PRD를 업로드합니다."""
    response = await client.post("/api/v1/projects", json={"id": PROJECT_ID, "name": "任务管理系统"})
    assert response.status_code == 201
    response = await client.post(
        f"/api/v1/projects/{PROJECT_ID}/prd/upload",
        json={"filename": "test-requirements.md", "content": SAMPLE_PRD},
    )
    assert response.status_code == 201
    return PROJECT_ID


@pytest.fixture
async def analyzed_project(client, project):
    response = await client.post(
        f"/api/v1/projects/{project}/scope/analyze-prd",
        json={"prdFilePath": "test-requirements.md"},
    )
    assert response.status_code == 200
    return project
