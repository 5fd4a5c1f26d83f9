"""
변경 요청 API 통합 테스트.
자동 생성, 목록/필터, 상태 전이, 통계를 확인합니다.
"""

from httpx import AsyncClient

from tests.conftest import IN_SCOPE_TASK, OUT_OF_SCOPE_TASK

BASE = "/api/v1/projects/scope-test/scope"
TASKS = "/api/v1/projects/scope-test/tasks"


async def _file_out_of_scope_request(client: AsyncClient) -> tuple[str, str]:
    response = await client.post(TASKS, json=OUT_OF_SCOPE_TASK)
    assert response.status_code == 201
    warning = next(w for w in response.json()["warnings"] if w["type"] == "scope_violation")
    return response.json()["task"]["id"], warning["changeRequestId"]


async def test_out_of_scope_task_files_request(client: AsyncClient, analyzed_project):
    task_id, cr_id = await _file_out_of_scope_request(client)

    response = await client.get(f"{BASE}/change-requests")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1

    cr = data["changeRequests"][0]
    assert cr["id"] == cr_id
    assert cr["type"] == "scope_expansion"
    assert cr["status"] == "pending"
    assert cr["relatedTasks"] == [task_id]
    assert cr["source"] == "auto"


async def test_get_change_request(client: AsyncClient, analyzed_project):
    _, cr_id = await _file_out_of_scope_request(client)

    response = await client.get(f"{BASE}/change-requests/{cr_id}")
    assert response.status_code == 200
    assert response.json()["id"] == cr_id

    missing = await client.get(f"{BASE}/change-requests/CR-404")
    assert missing.status_code == 404
    assert "CR-404" in missing.json()["message"]


async def test_status_lifecycle(client: AsyncClient, analyzed_project):
    _, cr_id = await _file_out_of_scope_request(client)

    approved = await client.patch(
        f"{BASE}/change-requests/{cr_id}/status",
        json={"status": "approved", "comment": "범위 확장 승인", "approvedBy": "pm"},
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"
    assert approved.json()["approvedBy"] == "pm"

    implemented = await client.patch(
        f"{BASE}/change-requests/{cr_id}/status",
        json={"status": "implemented"},
        headers={"X-Actor": "dev"},
    )
    assert implemented.status_code == 200
    history = implemented.json()["history"]
    assert [h["toStatus"] for h in history] == ["approved", "implemented"]
    assert history[-1]["changedBy"] == "dev"


async def test_illegal_transition(client: AsyncClient, analyzed_project):
    _, cr_id = await _file_out_of_scope_request(client)

    rejected = await client.patch(f"{BASE}/change-requests/{cr_id}/status", json={"status": "rejected"})
    assert rejected.status_code == 200

    response = await client.patch(f"{BASE}/change-requests/{cr_id}/status", json={"status": "approved"})
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_CONFLICT_001"

    current = await client.get(f"{BASE}/change-requests/{cr_id}")
    assert current.json()["status"] == "rejected"


async def test_invalid_status_value(client: AsyncClient, analyzed_project):
    _, cr_id = await _file_out_of_scope_request(client)
    response = await client.patch(f"{BASE}/change-requests/{cr_id}/status", json={"status": "done"})
    assert response.status_code == 400


async def test_filters(client: AsyncClient, analyzed_project):
    _, cr_id = await _file_out_of_scope_request(client)
    manual = await client.post(
        f"{BASE}/change-requests",
        json={"title": "增加导出功能", "type": "requirement_change", "requestedBy": "alice"},
    )
    assert manual.status_code == 201

    by_status = await client.get(f"{BASE}/change-requests", params={"status": "pending"})
    assert by_status.json()["total"] == 2

    by_type = await client.get(f"{BASE}/change-requests", params={"type": "requirement_change"})
    assert [cr["title"] for cr in by_type.json()["changeRequests"]] == ["增加导出功能"]

    by_requester = await client.get(f"{BASE}/change-requests", params={"requestedBy": "alice"})
    assert by_requester.json()["total"] == 1


async def test_manual_request_validation(client: AsyncClient, analyzed_project):
    missing_title = await client.post(f"{BASE}/change-requests", json={"description": "x"})
    assert missing_title.status_code == 400

    unknown_requirement = await client.post(
        f"{BASE}/change-requests",
        json={"title": "x", "relatedRequirements": ["REQ-999-000000"]},
    )
    assert unknown_requirement.status_code == 404


async def test_change_requests_report(client: AsyncClient, analyzed_project):
    await _file_out_of_scope_request(client)
    await client.post(TASKS, json=IN_SCOPE_TASK)

    response = await client.get(f"{BASE}/change-requests-report")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["byStatus"]["pending"] == 1
    assert data["byType"]["scope_expansion"] == 1
    assert data["autoFiled"] == 1
