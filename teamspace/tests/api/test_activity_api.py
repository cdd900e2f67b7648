from fastapi.testclient import TestClient
from http import HTTPStatus


def test_activity_feed_includes_task_events(client: TestClient, normal_user_token_headers: dict, make_task, test_user):
    task = make_task(labels=["a"])

    feed = client.get(
        "/activity/",
        params={"target_type": "task", "target_id": str(task.id)},
        headers=normal_user_token_headers,
    ).json()
    actions = [record["action_type"] for record in feed]
    assert "Created Task" in actions
    assert "Created Subtask" in actions
    created = next(r for r in feed if r["action_type"] == "Created Task")
    assert created["metadata"]["taskId"] == task.id


def test_create_and_delete_activity(client: TestClient, normal_user_token_headers: dict, teammate_token_headers: dict):
    response = client.post("/activity/", json={
        "action_type": "Viewed Project",
        "description": "Opened the board",
        "metadata": {"source": "web"},
    }, headers=normal_user_token_headers)
    assert response.status_code == HTTPStatus.CREATED
    record = response.json()
    assert record["metadata"] == {"source": "web"}

    assert client.delete(f"/activity/{record['id']}", headers=teammate_token_headers).status_code == HTTPStatus.FORBIDDEN
    assert client.delete(f"/activity/{record['id']}", headers=normal_user_token_headers).status_code == HTTPStatus.OK
    assert client.delete(f"/activity/{record['id']}", headers=normal_user_token_headers).status_code == HTTPStatus.NOT_FOUND


def test_company_feed_membership(client: TestClient, normal_user_token_headers: dict, outsider_token_headers: dict, company):
    assert client.get(f"/activity/company/{company.id}", headers=normal_user_token_headers).status_code == HTTPStatus.OK
    assert client.get(f"/activity/company/{company.id}", headers=outsider_token_headers).status_code == HTTPStatus.FORBIDDEN
