import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from backend.app import create_app
from backend.config import Settings
from backend.db import user_path
from backend.dependencies import get_auth_client, get_document_store, reset_dependencies

EVENTS = "/api/events/club1/event1"
FREE_EVENT = {"name": "Hack Night", "date": "2026-11-01", "location": "Lab 3"}
PAID_EVENT = {**FREE_EVENT, "registration_fee": 150}


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        settings = Settings(use_in_memory_backends=True)
        self.settings_patch = patch(
            "backend.dependencies.get_settings", return_value=settings
        )
        self.settings_patch.start()
        reset_dependencies()
        self.client = TestClient(create_app())

        session = self.client.post(
            "/api/auth/sign-up",
            json={"email": "ana@example.com", "password": "secret1"},
        ).json()
        self.uid = session["uid"]
        self.headers = {"Authorization": f"Bearer {session['id_token']}"}

    def _sign_up(self, email: str) -> tuple[str, dict]:
        session = get_auth_client().sign_up_with_password(email, "secret2")
        return session.uid, {"Authorization": f"Bearer {session.id_token}"}

    def _grant_club_admin(self, headers: dict, club_id: str = "club1"):
        uid = self.client.get("/api/profile", headers=headers).json()["id"]
        get_document_store().update_document(
            user_path(uid), {"managedClubIds": [club_id]}
        )

    def tearDown(self):
        reset_dependencies()
        self.settings_patch.stop()

    def test_sign_in_and_errors(self):
        response = self.client.post(
            "/api/auth/sign-in",
            json={"email": "ana@example.com", "password": "secret1"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["uid"], self.uid)

        response = self.client.post(
            "/api/auth/sign-in",
            json={"email": "ana@example.com", "password": "wrong"},
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "INVALID_PASSWORD")

    def test_requires_bearer_token(self):
        self.assertEqual(self.client.get("/api/profile").status_code, 401)
        response = self.client.get(
            "/api/profile", headers={"Authorization": "Bearer nope"}
        )
        self.assertEqual(response.status_code, 401)

    def test_profile_created_on_first_read(self):
        response = self.client.get("/api/profile", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["id"], self.uid)
        self.assertEqual(payload["role"], "student")
        self.assertEqual(payload["name"], "User")

        response = self.client.patch(
            "/api/profile",
            json={"name": "Ana", "branch": "CSE"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["name"], "Ana")
        self.assertEqual(response.json()["branch"], "CSE")

    def test_free_registration_flow(self):
        response = self.client.post(
            f"{EVENTS}/registrations",
            json={"event_info": FREE_EVENT},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 201)
        registration_id = response.json()["registration_id"]
        self._grant_club_admin(self.headers)

        registered = self.client.get(
            f"{EVENTS}/registrations/me/registered", headers=self.headers
        )
        self.assertTrue(registered.json()["registered"])

        check_in = self.client.post(
            f"{EVENTS}/registrations/{registration_id}/check-in", headers=self.headers
        )
        self.assertEqual(check_in.status_code, 200)

        stats = self.client.get(f"{EVENTS}/registrations/stats", headers=self.headers)
        self.assertEqual(stats.json()["total_registrations"], 1)
        self.assertEqual(stats.json()["checked_in_count"], 1)

        mine = self.client.get(f"{EVENTS}/registrations/me", headers=self.headers)
        [registration] = mine.json()["registrations"]
        self.assertEqual(registration["id"], registration_id)
        self.assertEqual(registration["user_id"], self.uid)
        self.assertEqual(registration["status"], "confirmed")

    def test_paid_event_rejected_on_free_path(self):
        response = self.client.post(
            f"{EVENTS}/registrations",
            json={"event_info": PAID_EVENT},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)
        count = self.client.get(f"{EVENTS}/registrations/count", headers=self.headers)
        self.assertEqual(count.json()["count"], 0)

    def test_paid_registration_and_payment_record(self):
        response = self.client.post(
            f"{EVENTS}/registrations/paid",
            json={"event_info": PAID_EVENT, "payment_id": "pay_1"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 201)
        registration_id = response.json()["registration_id"]

        response = self.client.post(
            f"{EVENTS}/payments",
            json={
                "registration_id": registration_id,
                "user_id": self.uid,
                "user_name": "Ana",
                "user_email": "ana@example.com",
                "amount": 150,
                "payment_id": "pay_1",
            },
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 201)

        registration = self.client.get(
            f"{EVENTS}/registrations/{registration_id}", headers=self.headers
        ).json()
        self.assertEqual(registration["payment_status"], "paid")
        store = get_document_store()
        self.assertIsNotNone(
            store.get_document(
                ("events", "club1", "clubEvents", "event1", "payments", "pay_1")
            )
        )

    def test_missing_registration_returns_404(self):
        response = self.client.get(
            f"{EVENTS}/registrations/missing", headers=self.headers
        )
        self.assertEqual(response.status_code, 404)
        response = self.client.post(
            f"{EVENTS}/registrations/missing/cancel", headers=self.headers
        )
        self.assertEqual(response.status_code, 404)

    def test_teams(self):
        response = self.client.post(
            f"{EVENTS}/teams", json={"name": "Rockets"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 201)
        team_id = response.json()["team_id"]

        other = get_auth_client().sign_up_with_password("bo@example.com", "secret2")
        other_headers = {"Authorization": f"Bearer {other.id_token}"}
        for _ in range(2):
            response = self.client.post(
                f"{EVENTS}/teams/{team_id}/members", json={}, headers=other_headers
            )
            self.assertEqual(response.status_code, 200)

        response = self.client.get(
            f"{EVENTS}/teams", params={"search": "Ro"}, headers=self.headers
        )
        [team] = response.json()["teams"]
        self.assertEqual(
            [m["user_id"] for m in team["members"]], [self.uid, other.uid]
        )

        response = self.client.post(
            f"{EVENTS}/teams/missing/members", json={}, headers=other_headers
        )
        self.assertEqual(response.status_code, 404)

    def test_profile_role_is_not_self_editable(self):
        response = self.client.patch(
            "/api/profile",
            json={"role": "admin", "managed_club_ids": ["club1"]},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["role"], "student")
        self.assertEqual(response.json()["managed_club_ids"], [])

    def test_other_users_cannot_manage_registrations(self):
        response = self.client.post(
            f"{EVENTS}/registrations",
            json={"event_info": FREE_EVENT},
            headers=self.headers,
        )
        registration_id = response.json()["registration_id"]
        registration_url = f"{EVENTS}/registrations/{registration_id}"
        _, other_headers = self._sign_up("mallory@example.com")

        attempts = [
            (
                "patch",
                f"{registration_url}/payment",
                {"payment_status": "paid", "payment_id": "x"},
            ),
            ("patch", f"{registration_url}/status", {"status": "cancelled"}),
            ("post", f"{registration_url}/check-in", None),
            ("post", f"{registration_url}/cancel", None),
            ("delete", registration_url, None),
            ("get", registration_url, None),
            ("get", f"{EVENTS}/registrations", None),
            ("get", f"{EVENTS}/registrations/stats", None),
            ("get", f"{EVENTS}/registrations/count", None),
            (
                "post",
                f"{EVENTS}/payments",
                {
                    "registration_id": registration_id,
                    "user_id": self.uid,
                    "user_name": "Ana",
                    "user_email": "ana@example.com",
                    "amount": 0,
                    "payment_id": "pay_x",
                },
            ),
        ]
        for method, url, body in attempts:
            with self.subTest(method=method, url=url):
                kwargs = {"headers": other_headers}
                if body is not None:
                    kwargs["json"] = body
                response = getattr(self.client, method)(url, **kwargs)
                self.assertEqual(response.status_code, 403)

        registration = self.client.get(registration_url, headers=self.headers).json()
        self.assertEqual(registration["status"], "confirmed")
        self.assertNotEqual(registration["payment_status"], "paid")
        self.assertEqual(registration["check_in_status"], "not_checked_in")

    def test_owner_can_read_and_cancel_but_not_manage(self):
        response = self.client.post(
            f"{EVENTS}/registrations",
            json={"event_info": FREE_EVENT},
            headers=self.headers,
        )
        registration_url = f"{EVENTS}/registrations/{response.json()['registration_id']}"

        response = self.client.patch(
            f"{registration_url}/payment",
            json={"payment_status": "paid", "payment_id": "x"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(
            self.client.get(f"{EVENTS}/registrations", headers=self.headers).status_code,
            403,
        )

        response = self.client.post(f"{registration_url}/cancel", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        registration = self.client.get(registration_url, headers=self.headers).json()
        self.assertEqual(registration["status"], "cancelled")

    def test_admin_of_another_club_is_rejected(self):
        _, admin_headers = self._sign_up("admin@example.com")
        self._grant_club_admin(admin_headers, club_id="club2")

        response = self.client.get(f"{EVENTS}/registrations", headers=admin_headers)
        self.assertEqual(response.status_code, 403)

        self._grant_club_admin(admin_headers, club_id="club1")
        response = self.client.get(f"{EVENTS}/registrations", headers=admin_headers)
        self.assertEqual(response.status_code, 200)

    def test_payment_record_must_match_registration_user(self):
        response = self.client.post(
            f"{EVENTS}/registrations/paid",
            json={"event_info": PAID_EVENT, "payment_id": "pay_2"},
            headers=self.headers,
        )
        response = self.client.post(
            f"{EVENTS}/payments",
            json={
                "registration_id": response.json()["registration_id"],
                "user_id": "someone-else",
                "user_name": "Ana",
                "user_email": "ana@example.com",
                "amount": 150,
                "payment_id": "pay_2",
            },
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
