"""인증 API 통합 테스트: 가입, 로그인, 토큰 갱신, 인증 미들웨어"""

from fastapi.testclient import TestClient

from toremain.main import app


class TestRegisterLogin:
    def test_register(self, client: TestClient) -> None:
        res = client.post(
            "/api/register",
            json={"username": "alice", "password": "pw", "wallet_address": "0xA"},
        )
        assert res.status_code == 200
        data = res.json()
        assert data["success"] is True
        assert data["user_id"] > 0

    def test_register_duplicate(self, client: TestClient, signup) -> None:
        signup("alice")
        res = client.post("/api/register", json={"username": "alice", "password": "x"})
        assert res.status_code == 409
        body = res.json()
        assert body["success"] is False
        assert body["error"]

    def test_register_validation(self, client: TestClient) -> None:
        res = client.post("/api/register", json={"username": "", "password": "pw"})
        assert res.status_code == 422

    def test_login_success(self, client: TestClient, signup) -> None:
        signup("alice")
        res = client.post("/api/login", json={"username": "alice", "password": "secret-pw"})
        assert res.status_code == 200
        data = res.json()
        assert data["success"] is True
        assert data["token_type"] == "Bearer"
        assert data["expires_in"] == app.state.token_provider.access_validity
        assert data["access_token"] and data["refresh_token"]

    def test_login_failure(self, client: TestClient, signup) -> None:
        signup("alice")
        res = client.post("/api/login", json={"username": "alice", "password": "wrong"})
        assert res.status_code == 400
        data = res.json()
        assert data["success"] is False
        assert data["access_token"] is None


class TestAuthGate:
    def test_me(self, client: TestClient, signup) -> None:
        user_id, headers = signup("alice", "0xAlice")
        res = client.get("/api/me", headers=headers)
        assert res.status_code == 200
        assert res.json() == {"id": user_id, "username": "alice", "wallet_address": "0xAlice"}

    def test_missing_token(self, client: TestClient) -> None:
        res = client.get("/api/me")
        assert res.status_code == 401
        assert res.headers["www-authenticate"] == "Bearer"

    def test_invalid_token(self, client: TestClient) -> None:
        res = client.get("/api/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert res.status_code == 401

    def test_non_bearer_scheme_ignored(self, client: TestClient, signup) -> None:
        _, headers = signup("alice")
        token = headers["Authorization"].split(" ", 1)[1]
        res = client.get("/api/me", headers={"Authorization": f"Token {token}"})
        assert res.status_code == 401

    def test_refresh_token_not_accepted_as_access(self, client: TestClient, signup) -> None:
        signup("alice")
        login = client.post("/api/login", json={"username": "alice", "password": "secret-pw"})
        refresh = login.json()["refresh_token"]
        res = client.get("/api/me", headers={"Authorization": f"Bearer {refresh}"})
        assert res.status_code == 401

    def test_token_for_deleted_user(self, client: TestClient) -> None:
        token = app.state.token_provider.generate_access_token("ghost")
        res = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_public_routes_ignore_bad_token(self, client: TestClient) -> None:
        res = client.get("/api/sell-orders", headers={"Authorization": "Bearer broken"})
        assert res.status_code == 200


class TestRefreshLogout:
    def _login(self, client: TestClient) -> dict:
        return client.post(
            "/api/login", json={"username": "alice", "password": "secret-pw"}
        ).json()

    def test_refresh(self, client: TestClient, signup) -> None:
        signup("alice")
        tokens = self._login(client)
        res = client.post("/api/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert res.status_code == 200
        data = res.json()
        assert data["username"] == "alice"
        new_headers = {"Authorization": f"Bearer {data['access_token']}"}
        assert client.get("/api/me", headers=new_headers).status_code == 200

    def test_refresh_reuse_rejected(self, client: TestClient, signup) -> None:
        signup("alice")
        tokens = self._login(client)
        client.post("/api/refresh", json={"refresh_token": tokens["refresh_token"]})
        res = client.post("/api/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert res.status_code == 401

    def test_logout_revokes_refresh(self, client: TestClient, signup) -> None:
        signup("alice")
        tokens = self._login(client)
        res = client.post("/api/logout", json={"refresh_token": tokens["refresh_token"]})
        assert res.status_code == 200
        assert res.json()["success"] is True
        res = client.post("/api/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert res.status_code == 401

    def test_logout_without_token(self, client: TestClient) -> None:
        assert client.post("/api/logout", json={}).status_code == 200
