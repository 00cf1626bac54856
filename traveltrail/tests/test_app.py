import json
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import requests
from bson import ObjectId
from fastapi.testclient import TestClient

from traveltrail.app import create_app
from traveltrail.db import ACCOMMODATIONS, CMS_PAGES, TRIPS, InMemoryDocumentStore
from traveltrail.errors import ConfigurationError
from traveltrail.tests.helpers import (
    ADMIN_PASSWORD,
    ADMIN_USERNAME,
    make_settings,
    sample_accommodation,
    sample_trip,
)


class ApiTestCase(unittest.TestCase):
    settings_overrides: dict = {}

    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.app = create_app(make_settings(**self.settings_overrides), self.store)
        self.context = self.app.state.context
        self.client = TestClient(self.app)

    def auth_headers(self, scheme: str = "Bearer") -> dict:
        token = self.context.tokens.issue(ADMIN_USERNAME)
        return {"Authorization": f"{scheme} {token}"}


class LoginTests(ApiTestCase):
    def test_login_returns_token(self):
        response = self.client.post(
            "/api/admin/login",
            json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertTrue(payload["token"])
        self.assertEqual(payload["user"], {"username": ADMIN_USERNAME})
        self.assertEqual(self.context.tokens.verify(payload["token"]).username, ADMIN_USERNAME)

    def test_login_wrong_password(self):
        response = self.client.post(
            "/api/admin/login", json={"username": ADMIN_USERNAME, "password": "nope"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["success"], False)
        self.assertEqual(response.json()["code"], "INVALID_CREDENTIALS")

    def test_login_missing_fields(self):
        response = self.client.post("/api/admin/login", json={"username": "  "})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "MISSING_CREDENTIALS")

    def test_login_without_body(self):
        response = self.client.post("/api/admin/login")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "VALIDATION_ERROR")


class UnconfiguredAdminTests(ApiTestCase):
    settings_overrides = {"admin_username": None, "admin_password_hash": None}

    def test_login_reports_server_error(self):
        response = self.client.post(
            "/api/admin/login",
            json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
        )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["code"], "SERVER_ERROR")


class CheckAuthTests(ApiTestCase):
    def test_both_schemes_accepted(self):
        for scheme in ("Bearer", "AdminToken"):
            with self.subTest(scheme=scheme):
                response = self.client.get(
                    "/api/admin/check-auth", headers=self.auth_headers(scheme)
                )
                self.assertEqual(response.status_code, 200)
                self.assertEqual(response.json(), {"authenticated": True})

    def test_malformed_headers(self):
        token = self.context.tokens.issue(ADMIN_USERNAME)
        for header in (None, "", "Bearer", f"Basic {token}", f"Token {token}"):
            with self.subTest(header=header):
                headers = {} if header is None else {"Authorization": header}
                response = self.client.get("/api/admin/check-auth", headers=headers)
                self.assertEqual(response.status_code, 401)
                self.assertEqual(response.json()["code"], "INVALID_AUTH_HEADER")
                self.assertFalse(response.json()["success"])

    def test_expired_token(self):
        issued = datetime.now(timezone.utc) - timedelta(hours=2, seconds=16)
        token = self.context.tokens.issue(ADMIN_USERNAME, issued_at=issued)
        response = self.client.get(
            "/api/admin/check-auth", headers={"Authorization": f"Bearer {token}"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "TOKEN_EXPIRED")
        self.assertEqual(response.json()["message"], "Session expired")

    def test_forged_token(self):
        response = self.client.get(
            "/api/admin/check-auth", headers={"Authorization": "Bearer abc.def.ghi"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "INVALID_TOKEN")
        self.assertEqual(response.json()["message"], "Invalid credentials")


class CmsPageTests(ApiTestCase):
    def test_get_missing_page(self):
        response = self.client.get("/api/cms/pages/about")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Page content not found.")

    def test_put_creates_then_updates(self):
        response = self.client.put(
            "/api/cms/pages/about",
            json={"title": "About", "content": "<p>Hi</p>"},
            headers=self.auth_headers(),
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["created"])

        response = self.client.put(
            "/api/cms/pages/about",
            json={"title": "About us", "content": "<p>Hello</p>", "_id": "x"},
            headers=self.auth_headers(),
        )
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["created"])

        page = self.client.get("/api/cms/pages/about").json()
        self.assertEqual(page["key"], "about")
        self.assertEqual(page["title"], "About us")
        self.assertIsInstance(page["_id"], str)
        self.assertEqual(len(self.store.find(CMS_PAGES, {})), 1)

    def test_put_requires_auth(self):
        response = self.client.put(
            "/api/cms/pages/about", json={"title": "About", "content": "x"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(self.store.find(CMS_PAGES, {}), [])

    def test_put_requires_title_and_content(self):
        response = self.client.put(
            "/api/cms/pages/about", json={"title": ""}, headers=self.auth_headers()
        )
        self.assertEqual(response.status_code, 400)
        errors = response.json()["errors"]
        self.assertEqual(len(errors), 2)
        self.assertTrue(errors[0].startswith("title"))
        self.assertTrue(errors[1].startswith("content"))


class TripTests(ApiTestCase):
    def create_trip(self, **overrides) -> str:
        response = self.client.post(
            "/api/trips", json=sample_trip(**overrides), headers=self.auth_headers()
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["id"]

    def test_create_and_fetch(self):
        trip_id = self.create_trip(price=32000.9)
        trip = self.client.get(f"/api/trips/{trip_id}").json()
        self.assertEqual(trip["_id"], trip_id)
        self.assertEqual(trip["price"], 32000)
        self.assertIs(trip["availability"], True)

        trips = self.client.get("/api/trips").json()
        self.assertEqual([t["_id"] for t in trips], [trip_id])

    def test_create_requires_auth(self):
        response = self.client.post("/api/trips", json=sample_trip())
        self.assertEqual(response.status_code, 401)
        self.assertEqual(self.store.find(TRIPS, {}), [])

    def test_create_rejects_string_price(self):
        response = self.client.post(
            "/api/trips",
            json=sample_trip(price="32000"),
            headers=self.auth_headers(),
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "VALIDATION_ERROR")
        self.assertEqual(self.store.find(TRIPS, {}), [])

    def test_create_rejects_non_finite_numbers(self):
        for value in (float("inf"), float("nan")):
            with self.subTest(value=value):
                response = self.client.post(
                    "/api/trips",
                    content=json.dumps(sample_trip(price=value)),
                    headers={**self.auth_headers(), "Content-Type": "application/json"},
                )
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()["code"], "VALIDATION_ERROR")
                self.assertTrue(response.json()["errors"][0].startswith("price"))
        self.assertEqual(self.store.find(TRIPS, {}), [])

    def test_create_lists_every_failing_field(self):
        payload = sample_trip(price="cheap", themes="hills")
        del payload["desc"]
        response = self.client.post(
            "/api/trips", json=payload, headers=self.auth_headers()
        )
        self.assertEqual(response.status_code, 400)
        fields = sorted(error.split(":")[0] for error in response.json()["errors"])
        self.assertEqual(fields, ["desc", "price", "themes"])

    def test_create_from_form_submission(self):
        form = {
            "name": "Kashmir Escape",
            "desc": "Lakes and meadows",
            "price": "25000",
            "daysCount": "5",
            "nightsCount": "4",
            "themes": "lakes, meadows",
            "inclusions": '["stay", "shikara ride"]',
            "exclusions": "flights",
            "itineraries": '[{"day": 1}]',
            "availability": "true",
        }
        response = self.client.post(
            "/api/trips", data=form, headers=self.auth_headers()
        )
        self.assertEqual(response.status_code, 201, response.text)
        trip = self.store.find_one(TRIPS, {"name": "Kashmir Escape"})
        self.assertEqual(trip["price"], 25000)
        self.assertEqual(trip["daysCount"], 5)
        self.assertEqual(trip["themes"], ["lakes", "meadows"])
        self.assertEqual(trip["inclusions"], ["stay", "shikara ride"])
        self.assertEqual(trip["itineraries"], [{"day": 1}])
        self.assertIs(trip["availability"], True)

    def test_create_rejects_invalid_json(self):
        response = self.client.post(
            "/api/trips",
            content=b"{not json",
            headers={**self.auth_headers(), "Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)

    def test_update_existing_trip(self):
        trip_id = self.create_trip()
        response = self.client.put(
            f"/api/trips/{trip_id}",
            json={"_id": trip_id, "name": "Renamed", "price": 1000, "season": "summer"},
            headers=self.auth_headers(),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["modifiedCount"], 1)
        trip = self.client.get(f"/api/trips/{trip_id}").json()
        self.assertEqual(trip["name"], "Renamed")
        self.assertEqual(trip["season"], "summer")
        self.assertEqual(trip["desc"], sample_trip()["desc"])

    def test_update_unknown_trip_creates_nothing(self):
        response = self.client.put(
            f"/api/trips/{ObjectId()}",
            json={"name": "Ghost", "price": 10},
            headers=self.auth_headers(),
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.store.find(TRIPS, {}), [])

    def test_update_requires_name_and_numeric_price(self):
        trip_id = self.create_trip()
        response = self.client.put(
            f"/api/trips/{trip_id}",
            json={"price": "10"},
            headers=self.auth_headers(),
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(len(response.json()["errors"]), 2)

    def test_delete_twice(self):
        trip_id = self.create_trip()
        first = self.client.delete(f"/api/trips/{trip_id}", headers=self.auth_headers())
        second = self.client.delete(f"/api/trips/{trip_id}", headers=self.auth_headers())
        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 404)

    def test_delete_requires_auth(self):
        trip_id = self.create_trip()
        response = self.client.delete(f"/api/trips/{trip_id}")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(len(self.store.find(TRIPS, {})), 1)

    def test_invalid_id(self):
        response = self.client.get("/api/trips/not-an-object-id")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "INVALID_ID")

    def test_missing_trip(self):
        response = self.client.get(f"/api/trips/{ObjectId()}")
        self.assertEqual(response.status_code, 404)

    def test_filters_are_flat_and_unique(self):
        self.create_trip(destination="Spiti", themes=["mountains", "roadtrip"])
        self.create_trip(destination="Kashmir", themes=["lakes", "mountains"])
        self.store.insert_one(
            TRIPS, {"name": "legacy", "destination": "Spiti", "themes": [["nested"]]}
        )

        destinations = self.client.get("/api/trips/filters/destinations").json()
        self.assertEqual(sorted(destinations), ["Kashmir", "Spiti"])

        themes = self.client.get("/api/trips/filters/themes").json()
        self.assertEqual(
            sorted(themes), ["lakes", "mountains", "nested", "roadtrip"]
        )
        for path in ("inclusions", "exclusions"):
            values = self.client.get(f"/api/trips/filters/{path}").json()
            self.assertTrue(all(not isinstance(value, list) for value in values))
            self.assertEqual(len(values), len(set(values)))


class AccommodationTests(ApiTestCase):
    def create_accommodation(self, **overrides) -> str:
        response = self.client.post(
            "/api/accommodations",
            json=sample_accommodation(**overrides),
            headers=self.auth_headers(),
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["id"]

    def test_list_is_projected(self):
        accommodation_id = self.create_accommodation()
        response = self.client.get("/api/accommodations")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertEqual(
            set(payload["data"][0]),
            {"_id", "name", "price", "roomType", "maxOccupancy", "images"},
        )
        full = self.client.get(f"/api/accommodations/{accommodation_id}").json()
        self.assertEqual(full["overview"], sample_accommodation()["overview"])
        self.assertEqual(full["destination"], "Srinagar")

    def test_create_reports_all_violations(self):
        payload = sample_accommodation(price="4500", images="one.jpg", maxOccupancy=True)
        del payload["bedType"]
        response = self.client.post(
            "/api/accommodations", json=payload, headers=self.auth_headers()
        )
        self.assertEqual(response.status_code, 400)
        fields = sorted(error.split(":")[0] for error in response.json()["errors"])
        self.assertEqual(fields, ["bedType", "images", "maxOccupancy", "price"])
        self.assertEqual(self.store.find(ACCOMMODATIONS, {}), [])

    def test_create_and_update_reject_non_finite_numbers(self):
        response = self.client.post(
            "/api/accommodations",
            content=json.dumps(sample_accommodation(price=float("nan"))),
            headers={**self.auth_headers(), "Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.store.find(ACCOMMODATIONS, {}), [])

        accommodation_id = self.create_accommodation()
        response = self.client.put(
            f"/api/accommodations/{accommodation_id}",
            content=json.dumps({"name": "Lakeview", "price": float("-inf")}),
            headers={**self.auth_headers(), "Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        listed = self.client.get("/api/accommodations").json()["data"]
        self.assertEqual(listed[0]["price"], sample_accommodation()["price"])

    def test_create_rejects_non_object_body(self):
        response = self.client.post(
            "/api/accommodations", json=["a"], headers=self.auth_headers()
        )
        self.assertEqual(response.status_code, 400)

    def test_update_and_delete(self):
        accommodation_id = self.create_accommodation()
        response = self.client.put(
            f"/api/accommodations/{accommodation_id}",
            json={"name": "Lakeview Suite", "price": 5200.5},
            headers=self.auth_headers("AdminToken"),
        )
        self.assertEqual(response.status_code, 200)
        doc = self.client.get(f"/api/accommodations/{accommodation_id}").json()
        self.assertEqual(doc["price"], 5200.5)

        response = self.client.delete(
            f"/api/accommodations/{accommodation_id}", headers=self.auth_headers()
        )
        self.assertEqual(response.status_code, 200)
        response = self.client.delete(
            f"/api/accommodations/{accommodation_id}", headers=self.auth_headers()
        )
        self.assertEqual(response.status_code, 404)

    def test_update_unknown(self):
        response = self.client.put(
            f"/api/accommodations/{ObjectId()}",
            json={"name": "Nowhere", "price": 1},
            headers=self.auth_headers(),
        )
        self.assertEqual(response.status_code, 404)

    def test_update_requires_auth(self):
        accommodation_id = self.create_accommodation()
        response = self.client.put(
            f"/api/accommodations/{accommodation_id}",
            json={"name": "Hijacked", "price": 1},
        )
        self.assertEqual(response.status_code, 401)

    def test_filters(self):
        self.create_accommodation(themes=["lakeside", "family"], amenities=["wifi"])
        self.create_accommodation(
            destination="Leh", themes=["family"], amenities=["wifi", "heater"]
        )
        themes = self.client.get("/api/accommodations/filters/themes").json()
        self.assertEqual(sorted(themes), ["family", "lakeside"])
        amenities = self.client.get("/api/accommodations/filters/amenities").json()
        self.assertEqual(sorted(amenities), ["heater", "wifi"])
        destinations = self.client.get(
            "/api/accommodations/filters/destinations"
        ).json()
        self.assertEqual(sorted(destinations), ["Leh", "Srinagar"])


class SheetsProxyTests(ApiTestCase):
    settings_overrides = {
        "google_script_url": "https://script.example/exec",
        "gas_secret": "gas-shared-secret",
    }

    def setUp(self):
        super().setUp()
        self.session = MagicMock()
        self.context.relay.session = self.session

    def test_relays_status_and_body(self):
        upstream = MagicMock(status_code=202)
        upstream.json.return_value = {"result": "queued"}
        self.session.post.return_value = upstream

        response = self.client.post(
            "/api/sheets-proxy", json={"name": "Ravi", "secret": "client-value"}
        )
        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.json(), {"result": "queued"})
        _, kwargs = self.session.post.call_args
        self.assertEqual(
            kwargs["json"], {"name": "Ravi", "secret": "gas-shared-secret"}
        )

    def test_network_failure_is_opaque(self):
        self.session.post.side_effect = requests.ConnectionError("boom")
        response = self.client.post("/api/sheets-proxy", json={"name": "Ravi"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["message"], "Internal server error")
        self.assertNotIn("boom", response.text)

    def test_unparseable_upstream_body(self):
        upstream = MagicMock(status_code=200)
        upstream.json.side_effect = ValueError("no json")
        self.session.post.return_value = upstream
        response = self.client.post("/api/sheets-proxy", json={"name": "Ravi"})
        self.assertEqual(response.status_code, 500)


class UnconfiguredSheetsProxyTests(ApiTestCase):
    def test_fails_before_network(self):
        session = MagicMock()
        self.context.relay.session = session
        response = self.client.post("/api/sheets-proxy", json={"name": "Ravi"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["code"], "SHEETS_NOT_CONFIGURED")
        session.post.assert_not_called()


class SheetsProxyWithoutSecretTests(ApiTestCase):
    settings_overrides = {"google_script_url": "https://script.example/exec"}

    def test_client_secret_is_not_forwarded(self):
        session = MagicMock()
        upstream = MagicMock(status_code=200)
        upstream.json.return_value = {"result": "ok"}
        session.post.return_value = upstream
        self.context.relay.session = session

        response = self.client.post(
            "/api/sheets-proxy", json={"name": "Ravi", "secret": "client-chosen"}
        )
        self.assertEqual(response.status_code, 200)
        _, kwargs = session.post.call_args
        self.assertEqual(kwargs["json"], {"name": "Ravi"})


class RoutingErrorTests(ApiTestCase):
    def test_unknown_route_uses_error_envelope(self):
        response = self.client.get("/api/nope")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(
            response.json(),
            {"success": False, "code": "NOT_FOUND", "message": "Not Found"},
        )

    def test_wrong_method_uses_error_envelope(self):
        response = self.client.delete("/api/trips", headers=self.auth_headers())
        self.assertEqual(response.status_code, 405)
        self.assertEqual(response.json()["code"], "METHOD_NOT_ALLOWED")
        self.assertFalse(response.json()["success"])


class StartupTests(unittest.TestCase):
    def test_short_secret_is_fatal(self):
        with self.assertRaises(ConfigurationError):
            create_app(make_settings(admin_secret="short"), InMemoryDocumentStore())

    def test_missing_database_uri_is_fatal(self):
        with self.assertRaises(ConfigurationError):
            create_app(make_settings())

    def test_health(self):
        client = TestClient(create_app(make_settings(), InMemoryDocumentStore()))
        response = client.get("/health")
        self.assertEqual(response.json(), {"status": "ok", "database": "ok"})


if __name__ == "__main__":
    unittest.main()
