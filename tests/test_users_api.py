from typing import Any

from fastapi.testclient import TestClient

from practice_api.api.deps import Repositories

USERS_URL = "/api/v1/users"


def _signup(client: TestClient, email: str = "ann@example.com", **fields: Any) -> Any:
    payload = {
        "name": "Ann",
        "email": email,
        "password": "correct-horse",
        "password_confirm": "correct-horse",
        **fields,
    }
    return client.post(f"{USERS_URL}/signup", json=payload)


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def test_signup_returns_token_and_hides_password(client: TestClient) -> None:
    response = _signup(client, email="Ann@Example.com")

    body = response.json()
    assert response.status_code == 201
    assert body["status"] == "success"
    assert body["token"]
    user = body["data"]["user"]
    assert user["email"] == "ann@example.com"
    assert user["role"] == "reader"
    assert "password" not in user
    assert "version" not in user
    assert "jwt" in response.headers["set-cookie"]
    assert "HttpOnly" in response.headers["set-cookie"]


def test_signup_ignores_requested_role(client: TestClient) -> None:
    response = _signup(client, role="admin")

    assert response.json()["data"]["user"]["role"] == "reader"


def test_signup_validates_passwords(client: TestClient) -> None:
    mismatch = _signup(client, password_confirm="something-else")
    short = _signup(client, password="short", password_confirm="short")
    missing = client.post(f"{USERS_URL}/signup", json={"name": "Ann", "email": "ann@example.com", "password": "correct-horse"})

    assert mismatch.status_code == 400
    assert mismatch.json()["message"] == "The password does not match please try again"
    assert short.status_code == 400
    assert "at least 8 characters" in short.json()["message"]
    assert missing.status_code == 400
    assert missing.json()["message"] == "Please confirm the password"


def test_signup_rejects_duplicate_email(client: TestClient) -> None:
    _signup(client)

    response = _signup(client)

    assert response.status_code == 400
    assert "ann@example.com" in response.json()["message"]


def test_login(client: TestClient) -> None:
    _signup(client)

    ok = client.post(f"{USERS_URL}/login", json={"email": "ANN@example.com", "password": "correct-horse"})
    wrong = client.post(f"{USERS_URL}/login", json={"email": "ann@example.com", "password": "nope-nope"})
    incomplete = client.post(f"{USERS_URL}/login", json={"email": "ann@example.com"})

    assert ok.status_code == 200
    assert ok.json()["token"]
    assert "password" not in ok.json()["data"]["user"]
    assert wrong.status_code == 401
    assert wrong.json()["message"] == "Incorrect email or password"
    assert incomplete.status_code == 400


def test_protected_routes_need_a_valid_token(client: TestClient) -> None:
    anonymous = client.get(f"{USERS_URL}/me")
    forged = client.get(f"{USERS_URL}/me", headers=_auth("not.a.token"))

    assert anonymous.status_code == 401
    assert anonymous.json()["message"] == "You are not logged in. Please log in to get access"
    assert forged.status_code == 401
    assert forged.json()["message"] == "Invalid token. Please log in again"


def test_me_and_update_me(client: TestClient) -> None:
    token = _signup(client).json()["token"]

    me = client.get(f"{USERS_URL}/me", headers=_auth(token))
    assert me.status_code == 200
    assert me.json()["data"]["user"]["name"] == "Ann"

    updated = client.patch(f"{USERS_URL}/update-me", headers=_auth(token), json={"name": "Annie", "role": "admin"})
    assert updated.status_code == 200
    assert updated.json()["data"]["user"]["name"] == "Annie"
    assert updated.json()["data"]["user"]["role"] == "reader"

    refused = client.patch(f"{USERS_URL}/update-me", headers=_auth(token), json={"password": "new-password"})
    assert refused.status_code == 400


def test_update_password_issues_new_token(client: TestClient) -> None:
    token = _signup(client).json()["token"]

    wrong = client.patch(
        f"{USERS_URL}/update-password",
        headers=_auth(token),
        json={"password_current": "bad-guess", "password": "new-password", "password_confirm": "new-password"},
    )
    assert wrong.status_code == 401
    assert wrong.json()["message"] == "Your current password is wrong"

    changed = client.patch(
        f"{USERS_URL}/update-password",
        headers=_auth(token),
        json={"password_current": "correct-horse", "password": "new-password", "password_confirm": "new-password"},
    )
    assert changed.status_code == 200
    new_token = changed.json()["token"]
    assert client.get(f"{USERS_URL}/me", headers=_auth(new_token)).status_code == 200

    login = client.post(f"{USERS_URL}/login", json={"email": "ann@example.com", "password": "new-password"})
    assert login.status_code == 200


def test_delete_me_invalidates_the_token(client: TestClient) -> None:
    token = _signup(client).json()["token"]

    deleted = client.delete(f"{USERS_URL}/delete-me", headers=_auth(token))
    after = client.get(f"{USERS_URL}/me", headers=_auth(token))

    assert deleted.status_code == 204
    assert after.status_code == 401
    assert after.json()["message"] == "The user belonging to this token no longer exists"


def test_admin_routes_are_restricted(client: TestClient, repositories: Repositories) -> None:
    reader = _signup(client).json()
    admin = _signup(client, email="root@example.com").json()
    repositories["users"].update(admin["data"]["user"]["id"], {"role": "admin"})

    refused = client.get(USERS_URL, headers=_auth(reader["token"]))
    listed = client.get(USERS_URL, headers=_auth(admin["token"]))
    single = client.get(f"{USERS_URL}/{reader['data']['user']['id']}", headers=_auth(admin["token"]))

    assert refused.status_code == 403
    assert refused.json()["message"] == "You do not have permission to perform this action"
    assert listed.status_code == 200
    assert listed.json()["results"] == 2
    assert all("password" not in user for user in listed.json()["data"]["users"])
    assert single.json()["data"]["user"]["email"] == "ann@example.com"


def test_admin_list_accepts_query_features(client: TestClient, repositories: Repositories) -> None:
    _signup(client)
    _signup(client, email="bob@example.com")
    admin = _signup(client, email="root@example.com").json()
    repositories["users"].update(admin["data"]["user"]["id"], {"role": "admin"})

    response = client.get(USERS_URL, headers=_auth(admin["token"]), params={"sort": "email", "fields": "email", "limit": "2"})

    body = response.json()
    assert body["results"] == 2
    assert [user["email"] for user in body["data"]["users"]] == ["ann@example.com", "bob@example.com"]
    assert set(body["data"]["users"][0]) == {"id", "email"}


def test_forgot_and_reset_password(client: TestClient, mailbox: Any) -> None:
    _signup(client)

    forgot = client.post(f"{USERS_URL}/forgot-password", json={"email": "ann@example.com"})
    assert forgot.status_code == 200
    assert forgot.json() == {"status": "success", "message": "Token sent to email!"}
    link = mailbox.sent[-1]["message"].rsplit(" ", 1)[1]
    assert "/api/v1/users/reset-password/" in link
    token = link.rsplit("/", 1)[1]

    reset = client.patch(
        f"{USERS_URL}/reset-password/{token}",
        json={"password": "brand-new-pass", "password_confirm": "brand-new-pass"},
    )
    assert reset.status_code == 200
    assert reset.json()["token"]
    assert not {"password", "password_reset_token", "password_reset_expires"} & set(reset.json()["data"]["user"])

    login = client.post(f"{USERS_URL}/login", json={"email": "ann@example.com", "password": "brand-new-pass"})
    assert login.status_code == 200
    assert not {"password", "password_reset_token", "password_reset_expires"} & set(login.json()["data"]["user"])

    reused = client.patch(
        f"{USERS_URL}/reset-password/{token}",
        json={"password": "another-pass", "password_confirm": "another-pass"},
    )
    assert reused.status_code == 400
    assert reused.json()["message"] == "Token is invalid or has expired"


def test_forgot_password_for_unknown_email(client: TestClient, mailbox: Any) -> None:
    response = client.post(f"{USERS_URL}/forgot-password", json={"email": "ghost@example.com"})

    assert response.status_code == 404
    assert response.json()["message"] == "There is no user with that email address"
    assert mailbox.sent == []
