"""
태스크 API 통합 테스트.
생성/수정 응답에 포함되는 범위 경고와 _scopeExtension 표식을 확인합니다.
"""

from httpx import AsyncClient

from tests.conftest import IN_SCOPE_TASK, OUT_OF_SCOPE_TASK

TASKS = "/api/v1/projects/scope-test/tasks"


async def test_create_without_baseline_warns_skip(client: AsyncClient, project):
    response = await client.post(TASKS, json=IN_SCOPE_TASK)
    assert response.status_code == 201
    assert [w["type"] for w in response.json()["warnings"]] == ["skip_check"]


async def test_create_in_scope_task(client: AsyncClient, analyzed_project):
    response = await client.post(TASKS, json=IN_SCOPE_TASK)
    assert response.status_code == 201

    data = response.json()
    assert data["task"]["id"] == "1"
    assert not [w for w in data["warnings"] if w["type"] == "scope_violation"]
    assert data["task"]["_scopeExtension"]["scopeCheck"]["inScope"] is True


async def test_create_out_of_scope_task(client: AsyncClient, analyzed_project):
    response = await client.post(TASKS, json=OUT_OF_SCOPE_TASK, headers={"X-Actor": "dev"})
    assert response.status_code == 201

    warnings = response.json()["warnings"]
    assert warnings[0]["type"] == "scope_violation"
    assert warnings[0]["taskId"] == response.json()["task"]["id"]
    assert warnings[0]["changeRequestId"] == "CR-001"


async def test_list_and_get(client: AsyncClient, analyzed_project):
    await client.post(TASKS, json=IN_SCOPE_TASK)
    await client.post(TASKS, json=OUT_OF_SCOPE_TASK)

    listing = await client.get(TASKS)
    assert listing.status_code == 200
    assert [t["id"] for t in listing.json()["tasks"]] == ["1", "2"]

    task = await client.get(f"{TASKS}/2")
    assert task.json()["_scopeExtension"]["changeRequestIds"] == ["CR-001"]

    missing = await client.get(f"{TASKS}/99")
    assert missing.status_code == 404


async def test_update_reports_impact(client: AsyncClient, analyzed_project):
    await client.post(TASKS, json=IN_SCOPE_TASK)

    response = await client.put(f"{TASKS}/1", json=OUT_OF_SCOPE_TASK)
    assert response.status_code == 200
    data = response.json()
    assert data["impact"]["scopeChanged"] is True
    assert data["task"]["title"] == OUT_OF_SCOPE_TASK["title"]
    assert any(w["type"] == "scope_violation" for w in data["warnings"])


async def test_status_only_update_has_no_impact(client: AsyncClient, analyzed_project):
    await client.post(TASKS, json=IN_SCOPE_TASK)
    response = await client.put(f"{TASKS}/1", json={"status": "done"})
    assert response.status_code == 200
    assert "impact" not in response.json()
    assert response.json()["task"]["status"] == "done"


async def test_create_requires_title(client: AsyncClient, analyzed_project):
    response = await client.post(TASKS, json={"description": "no title"})
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALID_001"


async def test_create_rejects_path_like_id(client: AsyncClient, analyzed_project):
    response = await client.post(TASKS, json={"id": "../../escaped", **IN_SCOPE_TASK})
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALID_001"

    listed = await client.get(TASKS)
    assert listed.json()["total"] == 0
