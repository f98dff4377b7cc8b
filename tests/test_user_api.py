"""
Tests for the user service endpoints.
"""

import pytest
from uuid import uuid4

from fleet.src import argon2
from fleet.src.redis import StateCache

BASE = "/user"


def passwordAccount(**overrides) -> dict:
    data = {
        "first_name": "Amani",
        "last_name": "Otieno",
        "email": "amani@example.com",
        "auth": {"method": "password", "password": "correct horse"},
        "accept_terms": True,
    }
    data.update(overrides)
    return data


def createAccount(client, **overrides) -> dict:
    response = client.post(f"{BASE}/account", json=passwordAccount(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


class TestPasswordRegistration:
    def test_created(self, client):
        user = createAccount(client, email="Amani@Example.com")
        assert user["status"] == "ACTIVE"
        assert user["email"] == "amani@example.com"
        assert user["auth_method"] == "password"
        assert user["terms_accepted_at"] is not None
        assert "password_hash" not in user

    def test_duplicate_email(self, client):
        createAccount(client)
        response = client.post(f"{BASE}/account", json=passwordAccount())
        assert response.status_code == 409

    def test_short_password(self, client):
        response = client.post(
            f"{BASE}/account",
            json=passwordAccount(auth={"method": "password", "password": "short"}),
        )
        assert response.status_code == 422

    def test_unknown_method(self, client):
        response = client.post(
            f"{BASE}/account",
            json=passwordAccount(auth={"method": "otp", "code": "123456"}),
        )
        assert response.status_code == 422


class TestSSORegistration:
    def test_issued_state_is_consumed(self, client, redis_client):
        state = client.post(f"{BASE}/account/sso/state").json()
        assert state["expires_in"] == 60
        auth = {"method": "sso", "sso_id": "google|42", "state": state["state"]}

        response = client.post(f"{BASE}/account", json=passwordAccount(auth=auth))
        assert response.status_code == 201, response.text
        assert response.json()["auth_method"] == "sso"
        assert response.json()["sso_id"] == "google|42"
        assert redis_client.store == {}

        response = client.post(
            f"{BASE}/account",
            json=passwordAccount(email="other@example.com", auth=auth),
        )
        assert response.status_code == 406
        assert response.headers["X-Error"] == "InvalidSSOState"

    def test_failed_registration_keeps_state(self, client, redis_client, monkeypatch):
        """An insert lost to a concurrent registration does not spend the state."""
        createAccount(client)
        monkeypatch.setattr("fleet.api.user.uniqueEmail", lambda *args, **kwargs: None)
        state = client.post(f"{BASE}/account/sso/state").json()["state"]
        auth = {"method": "sso", "sso_id": "google|42", "state": state}

        response = client.post(f"{BASE}/account", json=passwordAccount(auth=auth))
        assert response.status_code == 409
        assert redis_client.store == {StateCache.prefix + state: "register"}

        response = client.post(
            f"{BASE}/account",
            json=passwordAccount(email="other@example.com", auth=auth),
        )
        assert response.status_code == 201, response.text
        assert redis_client.store == {}

    def test_unknown_state(self, client):
        auth = {"method": "sso", "sso_id": "google|42", "state": "forged"}
        response = client.post(f"{BASE}/account", json=passwordAccount(auth=auth))
        assert response.status_code == 406


class TestVerify:
    def test_valid_password(self, client):
        user = createAccount(client)
        response = client.post(
            f"{BASE}/account/verify",
            json={"email": "AMANI@example.com", "password": "correct horse"},
        )
        assert response.status_code == 200
        assert response.json()["id"] == user["id"]

    def test_wrong_password(self, client):
        createAccount(client)
        response = client.post(
            f"{BASE}/account/verify",
            json={"email": "amani@example.com", "password": "wrong horse"},
        )
        assert response.status_code == 401

    def test_unknown_email(self, client):
        response = client.post(
            f"{BASE}/account/verify",
            json={"email": "nobody@example.com", "password": "correct horse"},
        )
        assert response.status_code == 401

    def test_suspended_account(self, client):
        user = createAccount(client)
        client.patch(
            f"{BASE}/account/status", json={"id": user["id"], "status": "SUSPENDED"}
        )
        response = client.post(
            f"{BASE}/account/verify",
            json={"email": "amani@example.com", "password": "correct horse"},
        )
        assert response.status_code == 412
        assert response.headers["X-Error"] == "InactiveAccount"


class TestAccountLifecycle:
    def test_update_and_list(self, client):
        user = createAccount(client)
        createAccount(client, first_name="Baraka", email="baraka@example.com")
        response = client.patch(
            f"{BASE}/account",
            json={"id": user["id"], "update_mask": ["last_name"], "last_name": "Wanjiru"},
        )
        assert response.json()["last_name"] == "Wanjiru"
        assert response.json()["first_name"] == "Amani"

        rows = client.get(f"{BASE}/account", params={"name": "amani wan"}).json()
        assert [row["id"] for row in rows["items"]] == [user["id"]]

    def test_close(self, client):
        user = createAccount(client)
        response = client.request("DELETE", f"{BASE}/account", json={"id": user["id"]})
        assert response.status_code == 204
        fetched = client.get(f"{BASE}/account/{user['id']}").json()
        assert fetched["status"] == "CLOSED"
        response = client.patch(
            f"{BASE}/account/status", json={"id": user["id"], "status": "ACTIVE"}
        )
        assert response.status_code == 406

    def test_unknown_account(self, client):
        response = client.get(f"{BASE}/account/{uuid4()}")
        assert response.status_code == 404


class TestHelpers:
    def test_password_hash(self):
        passwordHash = argon2.makePassword("correct horse")
        assert passwordHash != "correct horse"
        assert argon2.checkPassword("correct horse", passwordHash)
        assert not argon2.checkPassword("wrong horse", passwordHash)

    @pytest.mark.parametrize("passwordHash", [None, "", "not-a-hash"])
    def test_unusable_hash(self, passwordHash):
        assert not argon2.checkPassword("correct horse", passwordHash)

    def test_state_cache(self, redis_client):
        cache = StateCache(redis_client, ttl=30)
        state = cache.issue()
        redis_client.set.assert_called_once_with(
            StateCache.prefix + state, "register", ex=30
        )
        assert cache.consume(state) == "register"
        assert cache.consume(state) is None
        assert cache.consume("") is None

    def test_restored_state(self, redis_client):
        cache = StateCache(redis_client, ttl=30)
        state = cache.issue()
        assert cache.consume(state) == "register"
        cache.restore(state)
        assert cache.consume(state) == "register"
        cache.restore("")
        assert redis_client.store == {}
