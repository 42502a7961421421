"""End-to-end tests through the HTTP API."""
import httpx
import pytest
from fastapi.testclient import TestClient

from studybuddy.core.config import Settings
from studybuddy.main import app
from studybuddy.routers.chat import get_chat_proxy
from studybuddy.services.chat import SYSTEM_PROMPT, ChatProxy

pytestmark = pytest.mark.e2e

COOKIE = "studybuddy.session"

DECK = {
    "title": "Biology",
    "subject": "Science",
    "description": "Cell basics",
    "cards": [
        {"front": "Q1", "back": "A1"},
        {"front": "Q2", "back": "A2"},
        {"front": "Q3", "back": "A3"},
    ],
}


def signup(client: TestClient, email: str = "ana@x.com", password: str = "secret1", name: str = "Ana"):
    return client.post("/signup", json={"name": name, "email": email, "password": password})


def login(client: TestClient, email: str = "ana@x.com", password: str = "secret1") -> dict[str, str]:
    """Log in and return an Authorization header for the new session."""
    response = client.post("/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.cookies[COOKIE]}"}


def register(client: TestClient, email: str = "ana@x.com", name: str = "Ana") -> dict[str, str]:
    assert signup(client, email=email, name=name).status_code == 201
    return login(client, email=email)


class TestSignupAndLogin:
    def test_scenario_signup_then_duplicate(self, client: TestClient) -> None:
        first = signup(client)
        assert first.status_code == 201
        assert first.json() == {"message": "Account created successfully"}

        again = signup(client)
        assert again.status_code == 400
        assert again.json() == {"error": "Email already registered"}

        variant = signup(client, email="  ANA@X.com ")
        assert variant.status_code == 400
        assert variant.json() == {"error": "Email already registered"}

    def test_signup_validation_names_fields(self, client: TestClient) -> None:
        response = client.post("/signup", json={"name": "A", "email": "bad", "password": "123"})

        assert response.status_code == 400
        body = response.json()
        assert [f["field"] for f in body["fields"]] == ["name", "email", "password"]
        assert body["error"] == "Invalid value for: name, email, password"

    def test_signup_response_never_contains_secret(self, client: TestClient) -> None:
        response = signup(client)

        assert "secret1" not in response.text
        assert "password" not in response.text

    def test_scenario_login_failures_are_indistinguishable(self, client: TestClient) -> None:
        signup(client)

        ok = client.post("/login", json={"email": "ana@x.com", "password": "secret1"})
        wrong = client.post("/login", json={"email": "ana@x.com", "password": "wrong-password"})
        unknown = client.post("/login", json={"email": "zed@x.com", "password": "secret1"})

        assert ok.status_code == 200
        assert ok.json()["user"] == {"id": ok.json()["user"]["id"], "email": "ana@x.com", "name": "Ana"}
        assert "expires_at" in ok.json()
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"error": "Invalid email or password"}
        assert COOKIE not in wrong.cookies

    def test_login_sets_hardened_cookie(self, client: TestClient) -> None:
        signup(client)

        response = client.post("/login", json={"email": "ANA@x.com", "password": "secret1"})
        cookie = response.headers["set-cookie"]

        assert cookie.startswith(f"{COOKIE}=")
        assert "HttpOnly" in cookie
        assert "samesite=lax" in cookie.lower()
        assert "Path=/" in cookie
        assert "Max-Age=2592000" in cookie
        assert "Secure" not in cookie

    def test_production_cookie_is_secure(self, make_client, settings: Settings) -> None:
        client = make_client(settings.model_copy(update={"environment": "production"}))
        signup(client)

        response = client.post("/login", json={"email": "ana@x.com", "password": "secret1"})
        cookie = response.headers["set-cookie"]

        assert cookie.startswith("__Secure-studybuddy.session=")
        assert "Secure" in cookie


class TestSessions:
    def test_auth_check(self, client: TestClient) -> None:
        headers = register(client)
        client.cookies.clear()

        assert client.get("/auth/check").json() == {"authenticated": False, "user": None}
        checked = client.get("/auth/check", headers=headers).json()
        assert checked["authenticated"] is True
        assert checked["user"]["email"] == "ana@x.com"

    def test_tampered_token_rejected(self, client: TestClient) -> None:
        headers = register(client)
        client.cookies.clear()
        token = headers["Authorization"].removeprefix("Bearer ")
        header, payload, signature = token.split(".")
        forged = ".".join([header, payload, ("B" if signature[0] == "A" else "A") + signature[1:]])
        bad = {"Authorization": f"Bearer {forged}"}

        assert client.get("/auth/check", headers=bad).json()["authenticated"] is False
        response = client.get("/flashcards", headers=bad)
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized - Please log in"}

    def test_cookie_session_is_accepted(self, client: TestClient) -> None:
        signup(client)
        client.post("/login", json={"email": "ana@x.com", "password": "secret1"})

        assert client.get("/flashcards").status_code == 200

    def test_protected_routes_need_a_session(self, client: TestClient) -> None:
        for method, path in [
            ("get", "/flashcards"),
            ("post", "/flashcards"),
            ("get", "/flashcards/1"),
            ("patch", "/flashcards/1"),
            ("delete", "/flashcards/1"),
            ("get", "/account"),
        ]:
            response = client.request(method.upper(), path, json={"progress": 10} if method == "patch" else None)
            assert response.status_code == 401, (method, path)

    def test_logout_clears_cookie(self, client: TestClient) -> None:
        register(client)

        response = client.post("/logout")

        assert response.status_code == 200
        assert "Max-Age=0" in response.headers["set-cookie"]

    def test_session_refreshed_near_expiry(self, make_client, settings: Settings) -> None:
        client = make_client(settings.model_copy(update={"session_refresh_fraction": 1.0}))
        headers = register(client)

        response = client.get("/flashcards", headers=headers)

        assert response.status_code == 200
        assert response.headers["set-cookie"].startswith(f"{COOKIE}=")

    def test_fresh_session_not_refreshed(self, client: TestClient) -> None:
        headers = register(client)

        response = client.get("/flashcards", headers=headers)

        assert "set-cookie" not in response.headers


class TestFlashcards:
    def test_create_get_and_list(self, client: TestClient) -> None:
        headers = register(client)

        created = client.post("/flashcards", json=DECK, headers=headers)
        assert created.status_code == 201
        deck = created.json()
        assert deck["progress"] == 0
        assert deck["last_studied"] is None
        assert [c["back"] for c in deck["cards"]] == ["A1", "A2", "A3"]

        fetched = client.get(f"/flashcards/{deck['id']}", headers=headers).json()
        assert fetched["cards"] == deck["cards"]

        listed = client.get("/flashcards", headers=headers).json()
        assert [d["id"] for d in listed] == [deck["id"]]
        assert listed[0]["cards"] == [{"front": "Q1"}, {"front": "Q2"}, {"front": "Q3"}]

    def test_create_validation(self, client: TestClient) -> None:
        headers = register(client)

        response = client.post("/flashcards", json={**DECK, "cards": [{"front": "Q", "back": " "}]}, headers=headers)

        assert response.status_code == 400
        assert [f["field"] for f in response.json()["fields"]] == ["cards[0].back"]

    def test_scenario_progress_updates(self, client: TestClient) -> None:
        headers = register(client)
        deck_id = client.post("/flashcards", json=DECK, headers=headers).json()["id"]

        for value in (33, 67, 100):
            response = client.patch(f"/flashcards/{deck_id}", json={"progress": value}, headers=headers)
            assert response.status_code == 200
            assert response.json()["progress"] == value
            assert response.json()["last_studied"] is not None

    @pytest.mark.parametrize("body", [{"progress": 150}, {"progress": -1}, {"progress": "50"}, {"progress": True}, {}])
    def test_bad_progress_rejected(self, client: TestClient, body: dict) -> None:
        headers = register(client)
        deck_id = client.post("/flashcards", json=DECK, headers=headers).json()["id"]

        response = client.patch(f"/flashcards/{deck_id}", json=body, headers=headers)

        assert response.status_code == 400
        assert client.get(f"/flashcards/{deck_id}", headers=headers).json()["progress"] == 0

    def test_update_replaces_deck(self, client: TestClient) -> None:
        headers = register(client)
        deck_id = client.post("/flashcards", json=DECK, headers=headers).json()["id"]

        response = client.put(
            f"/flashcards/{deck_id}",
            json={"title": "Chemistry", "subject": "Science", "cards": [{"front": "H2O", "back": "Water"}]},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Chemistry"
        assert response.json()["cards"] == [{"front": "H2O", "back": "Water"}]

    def test_scenario_other_accounts_deck_is_not_found(self, client: TestClient) -> None:
        ana = register(client)
        bob = register(client, email="bob@x.com", name="Bob")
        deck_id = client.post("/flashcards", json=DECK, headers=ana).json()["id"]

        assert client.get(f"/flashcards/{deck_id}", headers=bob).status_code == 404
        assert client.put(f"/flashcards/{deck_id}", json=DECK, headers=bob).status_code == 404
        assert client.patch(f"/flashcards/{deck_id}", json={"progress": 50}, headers=bob).status_code == 404
        deleted = client.delete(f"/flashcards/{deck_id}", headers=bob)
        assert deleted.status_code == 404
        assert deleted.json() == client.get("/flashcards/99999", headers=bob).json()

        assert client.get("/flashcards", headers=bob).json() == []
        assert client.get(f"/flashcards/{deck_id}", headers=ana).status_code == 200

    def test_delete(self, client: TestClient) -> None:
        headers = register(client)
        deck_id = client.post("/flashcards", json=DECK, headers=headers).json()["id"]

        response = client.delete(f"/flashcards/{deck_id}", headers=headers)

        assert response.json() == {"message": "Deck deleted successfully"}
        assert client.get(f"/flashcards/{deck_id}", headers=headers).status_code == 404

    def test_study_position_follows_progress(self, client: TestClient) -> None:
        headers = register(client)
        deck_id = client.post("/flashcards", json=DECK, headers=headers).json()["id"]

        start = client.get(f"/flashcards/{deck_id}/study", headers=headers).json()
        assert start == {"deck_id": deck_id, "card_count": 3, "index": 0, "progress": 0}

        client.patch(f"/flashcards/{deck_id}", json={"progress": 67}, headers=headers)
        resumed = client.get(f"/flashcards/{deck_id}/study", headers=headers).json()
        assert resumed["index"] == 2
        assert resumed["progress"] == 67


class TestAccount:
    def test_account_defaults(self, client: TestClient) -> None:
        headers = register(client)

        body = client.get("/account", headers=headers).json()

        assert body["email"] == "ana@x.com"
        assert body["preferences"] == {"subjects": [], "daily_goal": 30, "reminder_time": "09:00"}
        assert "hashed_password" not in body

    def test_update_preferences(self, client: TestClient) -> None:
        headers = register(client)

        response = client.patch(
            "/account/preferences", json={"subjects": ["Math"], "reminder_time": "18:45"}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["preferences"] == {"subjects": ["Math"], "daily_goal": 30, "reminder_time": "18:45"}

    def test_invalid_preferences(self, client: TestClient) -> None:
        headers = register(client)

        response = client.patch("/account/preferences", json={"reminder_time": "25:00"}, headers=headers)

        assert response.status_code == 400
        assert response.json()["fields"][0]["field"] == "reminder_time"

    def test_change_password(self, client: TestClient) -> None:
        headers = register(client)

        rejected = client.post(
            "/account/password", json={"current_password": "nope-nope", "new_password": "secret2"}, headers=headers
        )
        changed = client.post(
            "/account/password", json={"current_password": "secret1", "new_password": "secret2"}, headers=headers
        )

        assert rejected.status_code == 401
        assert changed.status_code == 200
        assert client.post("/login", json={"email": "ana@x.com", "password": "secret1"}).status_code == 401
        assert client.post("/login", json={"email": "ana@x.com", "password": "secret2"}).status_code == 200


class TestChat:
    def _proxy_with(self, settings: Settings, handler) -> ChatProxy:
        configured = settings.model_copy(update={"chat_api_key": "test-key"})
        return ChatProxy(configured, transport=httpx.MockTransport(handler))

    def test_chat_relays_reply_with_system_prompt(self, client: TestClient, settings: Settings) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = request.read()
            return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": "Hi!"}}]})

        app.dependency_overrides[get_chat_proxy] = lambda: self._proxy_with(settings, handler)
        headers = register(client)

        response = client.post("/chat", json={"messages": [{"role": "user", "content": "Hello"}]}, headers=headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Hi!"}
        assert seen["auth"] == "Bearer test-key"
        assert SYSTEM_PROMPT.encode() in seen["body"]

    def test_provider_error_is_unavailable(self, client: TestClient, settings: Settings) -> None:
        app.dependency_overrides[get_chat_proxy] = lambda: self._proxy_with(
            settings, lambda request: httpx.Response(500, json={"error": "down"})
        )
        headers = register(client)

        response = client.post("/chat", json={"messages": [{"role": "user", "content": "Hello"}]}, headers=headers)

        assert response.status_code == 503

    def test_unconfigured_provider_is_unavailable(self, client: TestClient) -> None:
        headers = register(client)

        response = client.post("/chat", json={"messages": [{"role": "user", "content": "Hello"}]}, headers=headers)

        assert response.status_code == 503
        assert response.json() == {"error": "Service temporarily unavailable, please try again"}

    def test_chat_requires_session(self, client: TestClient) -> None:
        response = client.post("/chat", json={"messages": [{"role": "user", "content": "Hello"}]})

        assert response.status_code == 401


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok", "database": "ready"}
