from fastapi.testclient import TestClient
from http import HTTPStatus
from sqlalchemy.orm import Session
from teamspace.crud.user import create_user


def test_invite_and_accept_flow(client: TestClient, db: Session, normal_user_token_headers: dict, company):
    create_user(db, {
        "username": "newcomer",
        "email": "newcomer@example.com",
        "password": "testpassword",
        "name": "carol",
    })
    response = client.post("/invitations/", json={"email": "newcomer@example.com"}, headers=normal_user_token_headers)
    assert response.status_code == HTTPStatus.CREATED
    invitation = response.json()
    assert invitation["status"] == "pending"

    pending = client.get("/invitations/", headers=normal_user_token_headers).json()
    assert [i["id"] for i in pending] == [invitation["id"]]

    login = client.post("/auth/login", data={"username": "newcomer", "password": "testpassword"})
    headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

    response = client.post("/invitations/accept", json={"token": invitation["token"]}, headers=headers)
    assert response.status_code == HTTPStatus.OK
    assert response.json()["status"] == "accepted"
    assert client.get("/users/me", headers=headers).json()["company_id"] == company.id

    again = client.post("/invitations/accept", json={"token": invitation["token"]}, headers=headers)
    assert again.status_code == HTTPStatus.BAD_REQUEST


def test_invite_errors(client: TestClient, normal_user_token_headers: dict, teammate):
    missing = client.post("/invitations/", json={"email": "ghost@example.com"}, headers=normal_user_token_headers)
    assert missing.status_code == HTTPStatus.NOT_FOUND

    member = client.post("/invitations/", json={"email": teammate.email}, headers=normal_user_token_headers)
    assert member.status_code == HTTPStatus.BAD_REQUEST

    unknown = client.post("/invitations/accept", json={"token": "nope"}, headers=normal_user_token_headers)
    assert unknown.status_code == HTTPStatus.NOT_FOUND
