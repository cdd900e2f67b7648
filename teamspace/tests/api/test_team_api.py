from fastapi.testclient import TestClient
from http import HTTPStatus


def test_create_and_list_teams(client: TestClient, normal_user_token_headers: dict, company):
    response = client.post("/teams/", json={"name": "Platform"}, headers=normal_user_token_headers)
    assert response.status_code == HTTPStatus.CREATED
    team = response.json()
    assert team["company_id"] == company.id

    listing = client.get("/teams/", headers=normal_user_token_headers)
    assert [t["name"] for t in listing.json()] == ["Platform"]

    duplicate = client.post("/teams/", json={"name": "Platform"}, headers=normal_user_token_headers)
    assert duplicate.status_code == HTTPStatus.BAD_REQUEST


def test_team_hidden_from_other_company(client: TestClient, normal_user_token_headers: dict, outsider_token_headers: dict):
    team = client.post("/teams/", json={"name": "Secret"}, headers=normal_user_token_headers).json()
    response = client.get(f"/teams/{team['id']}", headers=outsider_token_headers)
    assert response.status_code == HTTPStatus.FORBIDDEN


def test_company_read(client: TestClient, normal_user_token_headers: dict, outsider_token_headers: dict, company):
    assert client.get(f"/companies/{company.id}", headers=normal_user_token_headers).json()["name"] == "Acme"
    assert client.get(f"/companies/{company.id}", headers=outsider_token_headers).status_code == HTTPStatus.FORBIDDEN
    assert client.get("/companies/999999", headers=normal_user_token_headers).status_code == HTTPStatus.NOT_FOUND


def test_update_and_delete_team(client: TestClient, normal_user_token_headers: dict, teammate_token_headers: dict):
    team = client.post("/teams/", json={"name": "Core"}, headers=normal_user_token_headers).json()

    response = client.patch(f"/teams/{team['id']}", json={"description": "backend"}, headers=normal_user_token_headers)
    assert response.status_code == HTTPStatus.OK
    assert response.json()["description"] == "backend"

    assert client.patch(f"/teams/{team['id']}", json={"name": "Mine"}, headers=teammate_token_headers).status_code == HTTPStatus.FORBIDDEN
    assert client.delete(f"/teams/{team['id']}", headers=teammate_token_headers).status_code == HTTPStatus.FORBIDDEN

    response = client.delete(f"/teams/{team['id']}", headers=normal_user_token_headers)
    assert response.status_code == HTTPStatus.OK
    assert response.json()["result"] == team["id"]
    assert client.get(f"/teams/{team['id']}", headers=normal_user_token_headers).status_code == HTTPStatus.NOT_FOUND


def test_team_members_endpoints(client: TestClient, normal_user_token_headers: dict, test_user, teammate, outsider):
    team = client.post("/teams/", json={"name": "Core"}, headers=normal_user_token_headers).json()
    assert team["member_ids"] == [test_user.id]

    response = client.post(f"/teams/{team['id']}/members", json={"user_ids": [teammate.id]}, headers=normal_user_token_headers)
    assert response.status_code == HTTPStatus.OK
    assert response.json()["member_ids"] == [test_user.id, teammate.id]

    foreign = client.post(f"/teams/{team['id']}/members", json={"user_ids": [outsider.id]}, headers=normal_user_token_headers)
    assert foreign.status_code == HTTPStatus.BAD_REQUEST

    response = client.request(
        "DELETE", f"/teams/{team['id']}/members", json={"user_ids": [teammate.id]}, headers=normal_user_token_headers
    )
    assert response.status_code == HTTPStatus.OK
    assert response.json()["member_ids"] == [test_user.id]
