"""
HTTP layer tests.

Verifies:
- Unauthenticated requests return 401
- Cashier role denied admin operations (403)
- Engine errors map to 400/404/409 with a JSON body
- Happy paths for sales, adjustments, purchases and reports
"""

import pytest

from retailpos.models import Product


# =============================================================================
# UNAUTHENTICATED ACCESS — 401
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("POST", "/api/sales"),
            ("GET", "/api/sales"),
            ("GET", "/api/sales/reports/daily"),
            ("POST", "/api/stock/adjust"),
            ("POST", "/api/stock/purchases"),
            ("GET", "/api/stock/low-stock"),
            ("GET", "/api/users"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_bad_token(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401

    def test_health_is_public(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"


# =============================================================================
# CASHIER DENIED ADMIN OPERATIONS — 403
# =============================================================================


class TestCashierDenied:

    def test_cannot_adjust_stock(self, client, cashier_headers, make_product):
        product = make_product(quantity=5)
        resp = client.post(
            "/api/stock/adjust",
            json={"product_id": product.id, "quantity": 5, "reason": "restock"},
            headers=cashier_headers,
        )
        assert resp.status_code == 403

    def test_cannot_create_product(self, client, cashier_headers):
        resp = client.post(
            "/api/products",
            json={"name": "X", "barcode": "1", "selling_price": 1},
            headers=cashier_headers,
        )
        assert resp.status_code == 403

    def test_cannot_view_daily_report(self, client, cashier_headers):
        resp = client.get("/api/sales/reports/daily", headers=cashier_headers)
        assert resp.status_code == 403

    def test_can_read_products_and_low_stock(self, client, cashier_headers, make_product):
        make_product(quantity=1, reorder_level=5)
        assert client.get("/api/products", headers=cashier_headers).status_code == 200
        resp = client.get("/api/stock/low-stock", headers=cashier_headers)
        assert resp.status_code == 200
        assert len(resp.json) == 1


# =============================================================================
# AUTH
# =============================================================================


class TestAuth:

    def test_login_me_logout(self, client, admin_user):
        resp = client.post("/api/auth/login", json={"username": "admin", "password": "Password123"})
        assert resp.status_code == 200
        token = resp.json["token"]
        headers = {"Authorization": f"Bearer {token}"}

        me = client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json["user"]["role"] == "admin"

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_wrong_password(self, client, admin_user):
        resp = client.post("/api/auth/login", json={"username": "admin", "password": "nope"})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        assert client.post("/api/auth/login", json={}).status_code == 400


# =============================================================================
# SALES
# =============================================================================


class TestSalesRoutes:

    def test_create_sale(self, client, db_session, cashier_headers, make_product):
        product = make_product(selling_price="50.00", quantity=100)

        resp = client.post(
            "/api/sales",
            json={
                "items": [{"product_id": product.id, "quantity": 5}],
                "payment_method": "cash",
                "cash_received": 300,
            },
            headers=cashier_headers,
        )

        assert resp.status_code == 201
        body = resp.json
        assert body["bill_number"] == "INV-000001"
        assert body["total"] == 250.0
        assert body["change"] == 50.0
        assert body["items"][0]["quantity"] == 5

        db_session.expire_all()
        assert db_session.get(Product, product.id).quantity == 95

        fetched = client.get(f"/api/sales/{body['id']}", headers=cashier_headers)
        assert fetched.status_code == 200
        assert fetched.json["bill_number"] == "INV-000001"

        listed = client.get("/api/sales", headers=cashier_headers)
        assert [s["id"] for s in listed.json] == [body["id"]]

    def test_insufficient_stock_is_400_with_details(self, client, cashier_headers, make_product):
        product = make_product("Soap", quantity=3)

        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": product.id, "quantity": 10}], "payment_method": "card"},
            headers=cashier_headers,
        )

        assert resp.status_code == 400
        assert resp.json["kind"] == "insufficient_stock"
        assert resp.json["details"] == {
            "product_id": product.id,
            "product_name": "Soap",
            "requested": 10,
            "available": 3,
        }

    def test_unknown_product_is_404(self, client, cashier_headers):
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": 987654, "quantity": 1}], "payment_method": "card"},
            headers=cashier_headers,
        )
        assert resp.status_code == 404
        assert resp.json["kind"] == "not_found"

    @pytest.mark.parametrize(
        "payload",
        [
            {"items": [], "payment_method": "card"},
            {"payment_method": "card"},
            {"items": [{"product_id": 1, "quantity": 1}], "payment_method": "card", "store": 1},
            {"items": [{"product_id": 1, "quantity": 1, "price": 0}], "payment_method": "card"},
            {"items": [{"product_id": 1, "quantity": "2.5"}], "payment_method": "card"},
            {"items": [{"product_id": 1, "quantity": 1}], "payment_method": "barter"},
        ],
    )
    def test_invalid_payloads_are_400(self, client, cashier_headers, payload):
        resp = client.post("/api/sales", json=payload, headers=cashier_headers)
        assert resp.status_code == 400
        assert resp.json["kind"] == "invalid_input"

    def test_sale_not_found(self, client, cashier_headers):
        assert client.get("/api/sales/555", headers=cashier_headers).status_code == 404

    def test_reports(self, client, admin_headers, make_product):
        product = make_product(selling_price="4.00", quantity=10)
        client.post(
            "/api/sales",
            json={"items": [{"product_id": product.id, "quantity": 2}], "payment_method": "qr"},
            headers=admin_headers,
        )

        daily = client.get("/api/sales/reports/daily", headers=admin_headers)
        assert daily.status_code == 200
        assert daily.json["total_bills"] == 1
        assert daily.json["qr_sales"] == 8.0

        top = client.get("/api/sales/reports/top-products?limit=3", headers=admin_headers)
        assert top.status_code == 200
        assert top.json[0]["units_sold"] == 2

        bad = client.get("/api/sales/reports/daily?date=yesterday", headers=admin_headers)
        assert bad.status_code == 400

    def test_unknown_store_timezone_is_400(self, app, client, admin_headers, monkeypatch):
        monkeypatch.setitem(app.config, "STORE_TIMEZONE", "Mars/Olympus")

        daily = client.get("/api/sales/reports/daily", headers=admin_headers)
        assert daily.status_code == 400
        assert daily.json["kind"] == "invalid_input"

        listed = client.get("/api/sales?start_date=2024-01-01", headers=admin_headers)
        assert listed.status_code == 400


# =============================================================================
# STOCK
# =============================================================================


class TestStockRoutes:

    def test_adjust(self, client, db_session, admin_headers, make_product):
        product = make_product(quantity=4)

        resp = client.post(
            "/api/stock/adjust",
            json={"product_id": product.id, "quantity": 6, "reason": "restock", "note": "delivery"},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert resp.json["quantity_change"] == 6
        assert resp.json["new_stock"] == 10

        ledger = client.get(f"/api/stock/ledger/{product.id}", headers=admin_headers)
        assert ledger.status_code == 200
        assert ledger.json[0]["note"] == "delivery"

    def test_adjust_below_zero_is_400(self, client, admin_headers, make_product):
        product = make_product(quantity=4)

        resp = client.post(
            "/api/stock/adjust",
            json={"product_id": product.id, "quantity": -10, "reason": "damage"},
            headers=admin_headers,
        )

        assert resp.status_code == 400
        assert resp.json["kind"] == "invalid_adjustment"
        assert resp.json["details"]["current_quantity"] == 4

    def test_adjust_missing_fields(self, client, admin_headers):
        resp = client.post("/api/stock/adjust", json={"quantity": 1}, headers=admin_headers)
        assert resp.status_code == 400

    def test_purchase(self, client, db_session, admin_headers, make_product):
        product = make_product(cost_price="20.00", quantity=10)

        resp = client.post(
            "/api/stock/purchases",
            json={
                "supplier_name": "Mill Co",
                "items": [{"product_id": product.id, "quantity": 50, "cost_price": 22}],
                "payment_status": "paid",
            },
            headers=admin_headers,
        )

        assert resp.status_code == 201
        assert resp.json["invoice_number"] == "PO-000001"
        assert resp.json["items_count"] == 1

        db_session.expire_all()
        refreshed = db_session.get(Product, product.id)
        assert refreshed.quantity == 60
        assert float(refreshed.cost_price) == 22.0

        assert client.get("/api/stock/purchases", headers=admin_headers).json[0]["supplier_name"] == "Mill Co"
        purchase_id = resp.json["id"]
        assert client.get(f"/api/stock/purchases/{purchase_id}", headers=admin_headers).status_code == 200

    def test_value(self, client, admin_headers, make_product):
        make_product(cost_price="2.00", quantity=5)
        resp = client.get("/api/stock/value", headers=admin_headers)
        assert resp.json == {"total_value": 10.0, "total_products": 1, "total_units": 5}


# =============================================================================
# PRODUCTS & USERS
# =============================================================================


class TestProductRoutes:

    def test_create_and_conflict(self, client, admin_headers):
        payload = {"name": "Milk 1L", "barcode": "4006381333931", "selling_price": 1.99, "quantity": 12}

        created = client.post("/api/products", json=payload, headers=admin_headers)
        assert created.status_code == 201
        assert created.json["quantity"] == 12

        dup = client.post("/api/products", json=payload, headers=admin_headers)
        assert dup.status_code == 409

    def test_unknown_field_rejected(self, client, admin_headers):
        resp = client.post(
            "/api/products",
            json={"name": "X", "barcode": "9", "selling_price": 1, "version_id": 5},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_patch_and_delete(self, client, admin_headers, make_product):
        product = make_product(quantity=3, barcode="321")

        patched = client.patch(
            f"/api/products/{product.id}", json={"quantity": 8}, headers=admin_headers
        )
        assert patched.status_code == 200

        by_code = client.get("/api/products/barcode/321", headers=admin_headers)
        assert by_code.json["quantity"] == 8

        # has ledger history now
        assert client.delete(f"/api/products/{product.id}", headers=admin_headers).status_code == 409
        deactivated = client.post(f"/api/products/{product.id}/deactivate", headers=admin_headers)
        assert deactivated.json["is_active"] is False

    def test_missing_product_is_404(self, client, admin_headers):
        assert client.get("/api/products/4040", headers=admin_headers).status_code == 404


class TestUserRoutes:

    def test_admin_creates_cashier(self, client, admin_headers):
        resp = client.post(
            "/api/users",
            json={"username": "jane", "password": "Secret123", "role": "cashier"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["role"] == "cashier"

        login = client.post("/api/auth/login", json={"username": "jane", "password": "Secret123"})
        assert login.status_code == 200

    def test_weak_password_rejected(self, client, admin_headers):
        resp = client.post(
            "/api/users",
            json={"username": "joe", "password": "short"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
