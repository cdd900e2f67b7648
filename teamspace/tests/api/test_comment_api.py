from fastapi.testclient import TestClient
from http import HTTPStatus


def _comment(client, headers, body="hello", **extra):
    payload = {"target_id": "7", "target_type": "task", "body": body, **extra}
    return client.post("/comments/", json=payload, headers=headers)


def test_create_comment_with_mentions(client: TestClient, normal_user_token_headers: dict, teammate, test_user):
    response = _comment(client, normal_user_token_headers, body="hey @bob and @alice")

    assert response.status_code == HTTPStatus.CREATED
    assert set(response.json()["mentioned_user_ids"]) == {teammate.id, test_user.id}


def test_blank_comment_rejected(client: TestClient, normal_user_token_headers: dict, test_user):
    assert _comment(client, normal_user_token_headers, body=" ").status_code == HTTPStatus.BAD_REQUEST


def test_thread_listing(client: TestClient, normal_user_token_headers: dict, teammate_token_headers: dict):
    root = _comment(client, normal_user_token_headers, body="root").json()
    _comment(client, teammate_token_headers, body="reply", parent_id=root["id"])

    listing = client.get(
        "/comments/",
        params={"target_id": "7", "target_type": "task", "sort": "oldest"},
        headers=normal_user_token_headers,
    ).json()
    assert [c["id"] for c in listing] == [root["id"]]
    assert listing[0]["reply_count"] == 1

    replies = client.get(f"/comments/{root['id']}/replies", headers=normal_user_token_headers).json()
    assert [r["body"] for r in replies] == ["reply"]

    bad_sort = client.get("/comments/", params={"target_id": "7", "target_type": "task", "sort": "random"}, headers=normal_user_token_headers)
    assert bad_sort.status_code == HTTPStatus.BAD_REQUEST


def test_only_author_edits(client: TestClient, normal_user_token_headers: dict, teammate_token_headers: dict):
    comment = _comment(client, normal_user_token_headers).json()

    forbidden = client.patch(f"/comments/{comment['id']}", json={"body": "mine"}, headers=teammate_token_headers)
    assert forbidden.status_code == HTTPStatus.FORBIDDEN

    response = client.patch(f"/comments/{comment['id']}", json={"body": "edited"}, headers=normal_user_token_headers)
    assert response.json()["body"] == "edited"
    assert response.json()["updated_at"] is not None

    assert client.delete(f"/comments/{comment['id']}", headers=normal_user_token_headers).status_code == HTTPStatus.OK
    assert client.get(f"/comments/{comment['id']}", headers=normal_user_token_headers).status_code == HTTPStatus.NOT_FOUND


def test_reactions(client: TestClient, normal_user_token_headers: dict, test_user):
    comment = _comment(client, normal_user_token_headers).json()

    response = client.post(f"/comments/{comment['id']}/reactions", json={"kind": "heart"}, headers=normal_user_token_headers)
    assert response.json()["reactions"] == {"heart": [test_user.id]}

    response = client.delete(f"/comments/{comment['id']}/reactions/heart", headers=normal_user_token_headers)
    assert response.json()["reactions"] == {}

    invalid = client.post(f"/comments/{comment['id']}/reactions", json={"kind": "rocket"}, headers=normal_user_token_headers)
    assert invalid.status_code == HTTPStatus.BAD_REQUEST
