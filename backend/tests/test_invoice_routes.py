# Overview: Pytest coverage for the JSON API; auth, invoices, stock, shop settings and reports.

"""
HTTP API tests.

Requests go through the Flask test client with a bearer token, so these cover
tenant resolution, error-to-status mapping and response shapes.
"""

import pytest

from stockbook.time_utils import business_date
from tests.conftest import auth_headers, get_auth_token, item_quantity


@pytest.fixture
def headers_a(user_a):
    return auth_headers(get_auth_token(user_a))


@pytest.fixture
def headers_b(user_b):
    return auth_headers(get_auth_token(user_b))


def today_compact(app):
    return f"{business_date(app.config['BUSINESS_TIMEZONE']):%Y%m%d}"


def invoice_body(*lines):
    return {
        "customer_name": "Ravi Traders",
        "contact": "9876543210",
        "address": "12 MG Road",
        "tax_id": "29ABCDE1234F1Z5",
        "items": list(lines) or [{"description": "Widget", "quantity": 4, "rate": 100}],
    }


class TestAuthentication:

    @pytest.mark.parametrize("method,url", [
        ("get", "/api/invoices/new"),
        ("post", "/api/invoices"),
        ("get", "/api/invoices/INV-20261018-1-0001"),
        ("get", "/api/items/names"),
        ("get", "/api/shop-info"),
        ("get", "/api/sales/report"),
        ("get", "/api/auth/me"),
    ])
    def test_requires_token(self, client, db_session, method, url):
        response = getattr(client, method)(url)
        assert response.status_code == 401

    def test_rejects_unknown_token(self, client, db_session):
        response = client.get("/api/invoices/new", headers=auth_headers("not-a-token"))
        assert response.status_code == 401

    def test_login_me_logout(self, client, db_session, user_a):
        response = client.post("/api/auth/login", json={"email": "ASHA@example.com ", "password": "Password123"})
        assert response.status_code == 200
        token = response.get_json()["token"]

        me = client.get("/api/auth/me", headers=auth_headers(token))
        assert me.status_code == 200
        assert me.get_json()["user"]["email"] == "asha@example.com"

        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_login_wrong_password(self, client, db_session, user_a):
        response = client.post("/api/auth/login", json={"email": "asha@example.com", "password": "wrong1234"})
        assert response.status_code == 401

    def test_login_missing_fields(self, client, db_session):
        response = client.post("/api/auth/login", json={"email": "asha@example.com"})
        assert response.status_code == 400


class TestInvoiceEndpoints:

    def test_preview_does_not_consume(self, app, client, db_session, user_a, headers_a):
        expected = f"INV-{today_compact(app)}-{user_a.id}-0001"

        for _ in range(2):
            response = client.get("/api/invoices/new", headers=headers_a)
            assert response.status_code == 200
            assert response.get_json()["invoice_no"] == expected

    def test_create_then_fetch(self, app, client, db_session, user_a, widget, headers_a):
        response = client.post("/api/invoices", json=invoice_body(), headers=headers_a)

        assert response.status_code == 201
        created = response.get_json()
        assert created["invoice_no"] == f"INV-{today_compact(app)}-{user_a.id}-0001"
        assert item_quantity(db_session, widget.id) == 6

        fetched = client.get(f"/api/invoices/{created['invoice_no']}", headers=headers_a)
        assert fetched.status_code == 200
        invoice = fetched.get_json()["invoice"]
        assert invoice["id"] == created["invoice_id"]
        assert invoice["customer_name"] == "Ravi Traders"
        assert invoice["subtotal"] == "400.00"
        assert invoice["tax_amount"] == "72.00"
        assert invoice["total_amount"] == "472.00"
        assert [line["description"] for line in invoice["items"]] == ["Widget"]

        preview = client.get("/api/invoices/new", headers=headers_a)
        assert preview.get_json()["invoice_no"].endswith("-0002")

    def test_fetch_tolerates_quotes(self, client, db_session, widget, headers_a):
        created = client.post("/api/invoices", json=invoice_body(), headers=headers_a).get_json()

        response = client.get(f"/api/invoices/%22{created['invoice_no']}%22%20", headers=headers_a)

        assert response.status_code == 200
        assert response.get_json()["invoice"]["invoice_no"] == created["invoice_no"]

    def test_fetch_other_tenant_is_404(self, client, db_session, widget, headers_a, headers_b):
        created = client.post("/api/invoices", json=invoice_body(), headers=headers_a).get_json()

        response = client.get(f"/api/invoices/{created['invoice_no']}", headers=headers_b)

        assert response.status_code == 404
        assert response.get_json()["code"] == "not_found"

    @pytest.mark.parametrize("body", [
        None,
        {"items": []},
        {"items": [{"description": "Widget", "quantity": 0, "rate": 100}]},
        {"items": [{"description": "", "quantity": 1, "rate": 100}]},
    ])
    def test_invalid_input_is_400(self, client, db_session, widget, headers_a, body):
        response = client.post("/api/invoices", json=body, headers=headers_a)

        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_input"
        assert item_quantity(db_session, widget.id) == 10

    def test_unknown_item_is_422(self, client, db_session, widget, headers_a):
        body = invoice_body(
            {"description": "Widget", "quantity": 1, "rate": 100},
            {"description": "Gizmo", "quantity": 1, "rate": 100},
        )

        response = client.post("/api/invoices", json=body, headers=headers_a)

        assert response.status_code == 422
        payload = response.get_json()
        assert payload["code"] == "item_not_found"
        assert payload["details"]["description"] == "Gizmo"
        assert item_quantity(db_session, widget.id) == 10

    def test_insufficient_stock_is_409(self, client, db_session, widget, headers_a):
        body = invoice_body({"description": "widget", "quantity": 11, "rate": 100})

        response = client.post("/api/invoices", json=body, headers=headers_a)

        assert response.status_code == 409
        payload = response.get_json()
        assert payload["code"] == "insufficient_stock"
        assert payload["details"]["on_hand"] in ("10", "10.000")
        assert item_quantity(db_session, widget.id) == 10

    def test_failed_create_keeps_preview(self, app, client, db_session, user_a, widget, headers_a):
        client.post("/api/invoices", json=invoice_body({"description": "Gizmo", "quantity": 1, "rate": 1}), headers=headers_a)

        preview = client.get("/api/invoices/new", headers=headers_a)

        assert preview.get_json()["invoice_no"] == f"INV-{today_compact(app)}-{user_a.id}-0001"


class TestStockEndpoints:

    def test_add_then_top_up(self, client, db_session, headers_a):
        body = {"name": "Bolt", "quantity": 5, "buying_rate": 2, "selling_rate": 3.5}

        first = client.post("/api/items", json=body, headers=headers_a)
        second = client.post("/api/items", json=dict(body, name=" bolt ", quantity=2), headers=headers_a)

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.get_json()["item"]["quantity"] == "7"
        assert second.get_json()["item"]["selling_rate"] == "3.50"

    def test_add_invalid(self, client, db_session, headers_a):
        response = client.post("/api/items", json={"name": "Bolt", "quantity": -1, "buying_rate": 1, "selling_rate": 1}, headers=headers_a)
        assert response.status_code == 400

    def test_add_rejects_non_object_body(self, client, db_session, headers_a):
        response = client.post("/api/items", json=[{"name": "Bolt"}], headers=headers_a)
        assert response.status_code == 400

    def test_names_and_info(self, client, db_session, widget, headers_a):
        names = client.get("/api/items/names", headers=headers_a)
        assert names.get_json() == {"names": ["Widget"]}

        info = client.get("/api/items/info?name=WIDGET", headers=headers_a)
        assert info.status_code == 200
        assert info.get_json()["item"]["selling_rate"] == "100.00"

        missing = client.get("/api/items/info?name=Gizmo", headers=headers_a)
        assert missing.status_code == 404


class TestShopInfoEndpoints:

    def test_tax_rate_applies_to_new_invoices(self, client, db_session, widget, headers_a):
        update = client.post("/api/shop-info", json={"shop_name": "Asha Stores", "tax_rate": 12}, headers=headers_a)
        assert update.status_code == 200
        assert update.get_json()["settings"]["tax_rate"] == "12.00"

        created = client.post("/api/invoices", json=invoice_body(), headers=headers_a).get_json()
        invoice = client.get(f"/api/invoices/{created['invoice_no']}", headers=headers_a).get_json()["invoice"]

        assert invoice["tax_rate"] == "12.00"
        assert invoice["tax_amount"] == "48.00"
        assert invoice["total_amount"] == "448.00"

    def test_rejects_out_of_range_rate(self, client, db_session, headers_a):
        response = client.post("/api/shop-info", json={"tax_rate": 150}, headers=headers_a)
        assert response.status_code == 400

    @pytest.mark.parametrize("body", [["shop_name", "Asha Stores"], "Asha Stores", None])
    def test_rejects_non_object_body(self, client, db_session, headers_a, body):
        response = client.post("/api/shop-info", json=body, headers=headers_a)

        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_input"

    def test_empty_settings(self, client, db_session, headers_a):
        response = client.get("/api/shop-info", headers=headers_a)
        assert response.get_json() == {"settings": {}}


class TestSalesReportEndpoint:

    def test_report_lists_postings(self, app, client, db_session, widget, headers_a):
        client.post("/api/invoices", json=invoice_body(), headers=headers_a)
        today = business_date(app.config["BUSINESS_TIMEZONE"]).isoformat()

        response = client.get(f"/api/sales/report?from={today}&to={today}", headers=headers_a)

        assert response.status_code == 200
        report = response.get_json()
        assert [row["item_name"] for row in report["rows"]] == ["Widget"]
        assert report["totals"]["total_price"] == "400.00"

    @pytest.mark.parametrize("query", [
        "",
        "?from=2026-10-18",
        "?from=2026-10-19&to=2026-10-18",
        "?from=18-10-2026&to=2026-10-18",
        "?from=2025-01-01&to=2026-10-18",
    ])
    def test_report_rejects_bad_ranges(self, client, db_session, headers_a, query):
        response = client.get(f"/api/sales/report{query}", headers=headers_a)
        assert response.status_code == 400


def test_health(client, db_session):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"
