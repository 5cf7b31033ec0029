import logging
import unittest

from fastapi.testclient import TestClient

from fakes import FakeGitHub, FakeLinear, issue_data, link_issue, make_engine, make_session, seed_link

logging.disable(logging.CRITICAL)

LINEAR_IP = {"X-Forwarded-For": "35.231.147.226"}


def _payload(**data):
    return {
        "action": "update",
        "type": "Issue",
        "data": issue_data(**data),
        "updatedFrom": {"title": "Old"},
        "url": "https://linear.app/acme/issue/T-42",
    }


class WebhookRouteTests(unittest.TestCase):
    def setUp(self):
        from syncbridge.api.webhooks import get_engine
        from syncbridge.main import app
        from syncbridge.models.base import get_db

        self.db = make_session()
        seed_link(self.db)
        self.github, self.linear = FakeGitHub(), FakeLinear()
        engine = make_engine(self.db, self.github, self.linear)

        def _db():
            yield self.db

        self.app = app
        app.dependency_overrides[get_engine] = lambda: engine
        app.dependency_overrides[get_db] = _db
        self.client = TestClient(app)

    def tearDown(self):
        self.app.dependency_overrides.clear()
        self.db.close()

    def test_unknown_origin_is_rejected(self):
        response = self.client.post(
            "/api/linear/webhook", json=_payload(), headers={"X-Forwarded-For": "1.2.3.4"}
        )

        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.github.calls, [])

    def test_update_is_reconciled(self):
        link_issue(self.db)

        response = self.client.post("/api/linear/webhook", json=_payload(title="New"), headers=LINEAR_IP)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["outcomes"][0]["field"], "title")
        self.assertEqual(body["outcomes"][0]["kind"], "synced")
        self.assertEqual(self.github.calls, [("patch_issue", 7, {"title": "[T-42] New"})])

    def test_unknown_actor_answers_200_with_message(self):
        response = self.client.post(
            "/api/linear/webhook", json=_payload(userId="stranger"), headers=LINEAR_IP
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Could not find Linear user in syncs.")

    def test_fatal_outcome_sets_status_code(self):
        from fakes import json_response

        link_issue(self.db)
        self.github.responses["set_issue_milestone"] = json_response(500, {"message": "boom"})
        payload = _payload(cycleId=None)
        payload["updatedFrom"] = {"cycleId": "cycle-1"}

        response = self.client.post("/api/linear/webhook", json=payload, headers=LINEAR_IP)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["outcomes"][0]["kind"], "failed")

    def test_invalid_payload_is_rejected(self):
        response = self.client.post("/api/linear/webhook", json={"data": {}}, headers=LINEAR_IP)

        self.assertEqual(response.status_code, 400)

    def test_sync_logs_are_listed(self):
        link_issue(self.db)
        self.client.post("/api/linear/webhook", json=_payload(title="New"), headers=LINEAR_IP)

        logs = self.client.get("/api/sync/logs").json()
        issues = self.client.get("/api/sync/synced-issues").json()

        self.assertEqual(len(logs), 1)
        self.assertEqual(logs[0]["status"], "success")
        self.assertEqual(logs[0]["linear_issue_id"], "ticket-42")
        self.assertEqual([i["github_issue_number"] for i in issues], [7])

    def test_health(self):
        self.assertEqual(self.client.get("/health").json()["status"], "healthy")


class UserMappingRouteTests(unittest.TestCase):
    def setUp(self):
        from syncbridge.main import app
        from syncbridge.models.base import get_db

        self.db = make_session()

        def _db():
            yield self.db

        self.app = app
        app.dependency_overrides[get_db] = _db
        self.client = TestClient(app)

    def tearDown(self):
        self.app.dependency_overrides.clear()
        self.db.close()

    def test_create_list_get_delete(self):
        payload = {
            "linear_user_id": "user-2",
            "linear_username": "bob",
            "github_user_id": 88,
            "github_username": "bob-gh",
        }

        created = self.client.post("/api/user-mappings/", json=payload)
        self.assertEqual(created.status_code, 200)
        mapping_id = created.json()["id"]

        duplicate = self.client.post("/api/user-mappings/", json=payload)
        self.assertEqual(duplicate.status_code, 400)

        listed = self.client.get("/api/user-mappings/").json()
        self.assertEqual([m["github_username"] for m in listed], ["bob-gh"])
        self.assertEqual(self.client.get(f"/api/user-mappings/{mapping_id}").json()["linear_username"], "bob")

        self.assertEqual(self.client.delete(f"/api/user-mappings/{mapping_id}").status_code, 200)
        self.assertEqual(self.client.get(f"/api/user-mappings/{mapping_id}").status_code, 404)


class BasicAuthMiddlewareTests(unittest.TestCase):
    def test_webhook_and_health_bypass_auth(self):
        from fastapi import FastAPI

        from syncbridge.security import BasicAuthMiddleware

        app = FastAPI()
        app.add_middleware(
            BasicAuthMiddleware,
            username="admin",
            password="secret",
            allow_paths={"/health", "/api/linear/webhook"},
        )

        @app.get("/health")
        def health():
            return {"status": "healthy"}

        @app.post("/api/linear/webhook")
        def webhook():
            return {"ok": True}

        @app.get("/api/sync/logs")
        def logs():
            return []

        client = TestClient(app)
        self.assertEqual(client.get("/health").status_code, 200)
        self.assertEqual(client.post("/api/linear/webhook").status_code, 200)
        self.assertEqual(client.get("/api/sync/logs").status_code, 401)
        self.assertEqual(client.get("/api/sync/logs", auth=("admin", "secret")).status_code, 200)


class LifespanTests(unittest.TestCase):
    def test_shutdown_stops_attachment_workers(self):
        from unittest import mock

        from syncbridge import main

        with mock.patch.object(main, "init_db") as init_db, mock.patch.object(
            main, "shutdown_workers"
        ) as shutdown_workers:
            with TestClient(main.app) as client:
                self.assertEqual(client.get("/health").status_code, 200)
                shutdown_workers.assert_not_called()

        init_db.assert_called_once_with()
        shutdown_workers.assert_called_once_with()
