"""
HTTP tests for the FastAPI app.

The app runs on mongomock with the fake agent and mailer. Most tests
sign in through a small test-only route that calls ``sign_in``, so the
real session cookie path is exercised.
"""

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from budgetpages.api import create_app, sign_in
from budgetpages.api.deps import get_components
from budgetpages.orchestrator import create_app_components
from budgetpages.services.storage.mongo import USERS

from tests.factories import FakeAgent, FakeMailer


EMAIL = "asha@example.com"


@pytest.fixture
def components(mongo_client):
    return create_app_components(
        mongo_client=mongo_client,
        agent=FakeAgent(),
        mailer=FakeMailer(),
    )


@pytest.fixture
def app(components):
    app = create_app(components=components)

    @app.post("/test/signin")
    async def test_signin(request: Request):
        body = await request.json()
        user = await sign_in(request, get_components(request).users, body["name"], body["email"])
        return {"id": user.id}

    return app


@pytest.fixture
def anonymous(app):
    return TestClient(app)


@pytest.fixture
def client(app):
    client = TestClient(app)
    response = client.post("/test/signin", json={"name": "Asha", "email": EMAIL})
    assert response.status_code == 200
    return client


class TestAuth:

    def test_routes_require_a_session(self, anonymous):
        for method, path in [
            ("get", "/user"),
            ("get", "/folder"),
            ("get", "/page"),
            ("post", "/ai/summary/daily"),
            ("get", "/ai/summary/weekly"),
        ]:
            response = getattr(anonymous, method)(path)
            assert response.status_code == 401, path
            assert response.json() == {"error": "Unauthorized"}

    def test_signin_creates_user_once(self, client, mongo_client):
        client.post("/test/signin", json={"name": "Asha", "email": EMAIL})
        assert mongo_client.collection(USERS).count_documents({"email": EMAIL}) == 1

    def test_signout_clears_session(self, client):
        assert client.post("/auth/signout").json() == {"success": True}
        assert client.get("/user").status_code == 401


class TestUserRoutes:

    def test_get_user_hides_keys(self, client):
        response = client.patch("/user", json={"aiKeys": {"openai": "sk-secret"}})
        assert response.status_code == 200

        body = client.get("/user").json()
        assert body["email"] == EMAIL
        assert "aiKeys" not in body
        assert "sk-secret" not in response.text

    def test_keys_are_encrypted_and_merged(self, client, mongo_client, cipher):
        client.patch("/user", json={"aiKeys": {"openai": "sk-1", "google": "g-1"}})
        client.patch("/user", json={"aiKeys": {"google": ""}})

        stored = mongo_client.collection(USERS).find_one({"email": EMAIL})["aiKeys"]
        assert set(stored) == {"openai"}
        assert cipher.decrypt(stored["openai"]) == "sk-1"
        assert client.get("/user/ai-keys/status").json() == {
            "openai": True,
            "google": False,
            "anthropic": False,
            "openrouter": False,
            "huggingface": False,
        }

    @pytest.mark.parametrize("name", ["openai.x", "", "mistral"])
    def test_unknown_key_provider_rejected(self, client, mongo_client, name):
        client.patch("/user", json={"aiKeys": {"openai": "sk-1"}})

        response = client.patch("/user", json={"aiKeys": {name: "k"}})

        assert response.status_code == 400
        assert client.get("/user").status_code == 200
        stored = mongo_client.collection(USERS).find_one({"email": EMAIL})["aiKeys"]
        assert set(stored) == {"openai"}

    def test_update_settings(self, client):
        response = client.patch("/user", json={
            "name": "Asha K",
            "onboardingCompleted": True,
            "settings": {
                "monthlyBudget": 3000,
                "fixedExpenses": [{"title": "Rent", "amount": 1000}],
                "preferredAIProvider": "google",
            },
        })
        body = response.json()
        assert body["name"] == "Asha K"
        assert body["onboardingCompleted"] is True
        assert body["settings"]["monthlyBudget"] == 3000
        assert body["settings"]["preferredAIProvider"] == "google"

    def test_cleanup(self, client, mongo_client):
        mongo_client.collection(USERS).update_one(
            {"email": EMAIL}, {"$set": {"monthlyBudget": 10}}
        )
        assert client.post("/user/cleanup").json() == {
            "success": True,
            "message": "Cleaned up duplicate fields",
            "matched": True,
        }
        assert "monthlyBudget" not in mongo_client.collection(USERS).find_one({"email": EMAIL})


class TestFolderAndPageRoutes:

    def test_folder_crud(self, client):
        created = client.post("/folder", json={"name": "Bills"})
        assert created.status_code == 201
        folder_id = created.json()["_id"]

        renamed = client.patch(f"/folder/{folder_id}", json={"name": "Utilities"})
        assert renamed.json()["name"] == "Utilities"
        assert [f["name"] for f in client.get("/folder").json()] == ["Utilities"]

        assert client.delete(f"/folder/{folder_id}").json() == {"success": True}
        assert client.get(f"/folder/{folder_id}").status_code == 404

    def test_page_listing_by_folder(self, client):
        folder_id = client.post("/folder", json={"name": "May"}).json()["_id"]
        client.post("/page", json={"title": "Root page"})
        client.post("/page", json={"title": "Week 20", "folderId": folder_id})

        assert len(client.get("/page").json()) == 2
        assert [p["title"] for p in client.get("/page?folderId=null").json()] == ["Root page"]
        assert [p["title"] for p in client.get(f"/page?folderId={folder_id}").json()] == ["Week 20"]

    def test_new_page_has_seven_days(self, client):
        page = client.post("/page", json={}).json()
        assert page["title"] == "Untitled Page"
        assert page["folderId"] is None
        assert [d["dayIndex"] for d in page["days"]] == [1, 2, 3, 4, 5, 6, 7]

    def test_entry_routes(self, client):
        page_id = client.post("/page", json={"title": "Week"}).json()["_id"]

        created = client.post(
            f"/page/{page_id}/day/2/entry",
            json={"title": "Lunch", "amount": 100, "category": "Food"},
        )
        assert created.status_code == 201
        entry_id = created.json()["entry"]["_id"]
        assert created.json()["page"]["days"][1]["entries"][0]["title"] == "Lunch"

        updated = client.patch(
            f"/page/{page_id}/day/2/entry/{entry_id}", json={"amount": 80}
        ).json()
        entry = updated["days"][1]["entries"][0]
        assert entry["amount"] == 80
        assert entry["title"] == "Lunch"

        deleted = client.delete(f"/page/{page_id}/day/2/entry/{entry_id}").json()
        assert deleted["days"][1]["entries"] == []

    @pytest.mark.parametrize("day", ["0", "8", "monday"])
    def test_invalid_day_index(self, client, day):
        page_id = client.post("/page", json={}).json()["_id"]
        response = client.post(f"/page/{page_id}/day/{day}/entry", json={"amount": 5})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid day index"}

    def test_negative_amount_rejected(self, client):
        page_id = client.post("/page", json={}).json()["_id"]
        response = client.post(f"/page/{page_id}/day/1/entry", json={"amount": -5})
        assert response.status_code == 400
        assert "amount" in response.json()["error"]

    def test_other_users_page_is_not_found(self, client, app):
        page_id = client.post("/page", json={}).json()["_id"]

        other = TestClient(app)
        other.post("/test/signin", json={"name": "Ben", "email": "ben@example.com"})
        assert other.get(f"/page/{page_id}").status_code == 404
        assert other.delete(f"/page/{page_id}").status_code == 404


class TestSummaryRoutes:

    def test_daily_then_list(self, client):
        page_id = client.post("/page", json={}).json()["_id"]
        client.post(f"/page/{page_id}/day/1/entry", json={"title": "Tea", "amount": 20})

        summary = client.post("/ai/summary/daily", json={"provider": "openai"})
        assert summary.status_code == 200
        assert summary.json()["totalSpent"] == 20
        assert summary.json()["type"] == "daily"

        listed = client.get("/ai/summary/daily").json()
        assert len(listed) == 1
        assert listed[0]["summary"] == "You spent steadily this week."

    def test_daily_for_one_day(self, client):
        page_id = client.post("/page", json={}).json()["_id"]
        response = client.post(
            "/ai/summary/daily", json={"pageId": page_id, "dayIndex": 3}
        )
        assert response.status_code == 200
        assert response.json()["totalSpent"] == 0

    def test_daily_needs_page_and_day_together(self, client):
        response = client.post("/ai/summary/daily", json={"dayIndex": 3})
        assert response.status_code == 400

    def test_daily_for_missing_page(self, client):
        response = client.post(
            "/ai/summary/daily",
            json={"pageId": "64b0000000000000000000aa", "dayIndex": 3},
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Page not found"}

    def test_daily_for_day_outside_the_week(self, client):
        page_id = client.post("/page", json={}).json()["_id"]
        response = client.post(
            "/ai/summary/daily", json={"pageId": page_id, "dayIndex": 9}
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Day not found"}

    def test_weekly_without_data(self, client):
        body = client.post("/ai/summary/weekly").json()
        assert body["totalSpent"] == 0
        assert body["insights"] == ["No transactions recorded this week"]
        assert client.get("/ai/summary/weekly").json() == []

    def test_signed_in_but_deleted_user(self, client, mongo_client):
        mongo_client.collection(USERS).delete_many({})
        response = client.post("/ai/summary/weekly")
        assert response.status_code == 404
        assert response.json() == {"error": "User not found"}


class TestCronRoute:

    def test_open_without_secret(self, anonymous, monkeypatch):
        monkeypatch.delenv("SECURITY_CRON_SECRET", raising=False)
        response = anonymous.get("/cron/weekly-email")
        assert response.status_code == 200
        assert response.json() == {
            "message": "Weekly emails processed",
            "results": {"total": 0, "success": 0, "failed": 0, "errors": []},
        }

    def test_bearer_token_required(self, anonymous, monkeypatch):
        monkeypatch.setenv("SECURITY_CRON_SECRET", "s3cret")

        assert anonymous.get("/cron/weekly-email").status_code == 401
        wrong = anonymous.get("/cron/weekly-email", headers={"Authorization": "Bearer nope"})
        assert wrong.status_code == 401
        right = anonymous.get("/cron/weekly-email", headers={"Authorization": "Bearer s3cret"})
        assert right.status_code == 200


class TestErrors:

    def test_unhandled_error_is_a_500(self, components, app, monkeypatch):
        async def broken(*args, **kwargs):
            raise RuntimeError("database exploded")

        monkeypatch.setattr(components.summary_flow, "list_summaries", broken)
        client = TestClient(app, raise_server_exceptions=False)
        client.post("/test/signin", json={"name": "Asha", "email": EMAIL})

        response = client.get("/ai/summary/daily")
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_health(self, anonymous):
        body = anonymous.get("/health").json()
        assert body["status"] == "ok"
        assert body["settings"]["security"] is True
        assert not any(key.endswith("_error") for key in body["settings"])
