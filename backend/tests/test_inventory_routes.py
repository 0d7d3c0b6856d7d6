"""Inventory API: CRUD, categories, live stream and sticker downloads."""

import json

from yomo import create_app
from yomo.extensions import db
from yomo.services import auth_service
from yomo.services.inventory_store import inventory_store

from conftest import TEST_CODE, get_auth_token, stock_row


class TestInventoryCrud:

    def test_create_and_list(self, client, headers):
        resp = client.post(
            "/api/inventory",
            json={"name": "Basic Tee", "price_cents": 25000, "total": 10},
            headers=headers,
        )
        assert resp.status_code == 201
        created = resp.json
        assert created["category"] == "T-Shirt"
        assert created["available"] == 10
        assert len(created["barcode"]) == 13

        listing = client.get("/api/inventory", headers=headers)
        assert listing.status_code == 200
        assert listing.json["count"] == 1
        assert listing.json["items"][0]["id"] == created["id"]

    def test_create_rejects_unknown_category(self, client, headers):
        resp = client.post(
            "/api/inventory",
            json={"name": "Cap", "price_cents": 100, "total": 1, "category": "Hats"},
            headers=headers,
        )
        assert resp.status_code == 400
        assert resp.json["code"] == "INVALID_INPUT"
        assert "Skirts" in resp.json["details"]["categories"]

    def test_search(self, client, headers, make_item):
        make_item(name="Basic Tee")
        make_item(name="Maxi", category="Dress")

        resp = client.get("/api/inventory?q=DRESS", headers=headers)

        assert [item["name"] for item in resp.json["items"]] == ["Maxi"]

    def test_categories(self, client, headers):
        resp = client.get("/api/inventory/categories", headers=headers)

        assert resp.json["categories"] == ["T-Shirt", "Sweatshirt", "Pants", "Dress", "Jacket", "Skirts", "Set"]
        assert resp.json["default"] == "T-Shirt"

    def test_update(self, client, headers, make_item):
        item = make_item(total=10, sold=2)

        resp = client.put(f"/api/inventory/T-Shirt/{item.id}", json={"price_cents": 19999}, headers=headers)

        assert resp.status_code == 200
        assert resp.json["price_cents"] == 19999
        assert resp.json["sold"] == 2

    def test_update_total_below_sold(self, client, headers, make_item):
        item = make_item(total=10, sold=6)

        resp = client.put(f"/api/inventory/T-Shirt/{item.id}", json={"total": 5}, headers=headers)

        assert resp.status_code == 400
        assert resp.json["error"] == "Invalid data for update. Total must be greater than or equal to Sold."

    def test_move_category(self, client, headers, make_item):
        item = make_item(category="T-Shirt")

        resp = client.put(f"/api/inventory/T-Shirt/{item.id}", json={"category": "Sweatshirt"}, headers=headers)

        assert resp.status_code == 200
        assert resp.json["category"] == "Sweatshirt"
        assert resp.json["id"] != item.id
        assert resp.json["barcode"] == item.barcode

    def test_delete(self, client, headers, make_item):
        item = make_item()

        assert client.delete(f"/api/inventory/T-Shirt/{item.id}", headers=headers).status_code == 200
        assert stock_row(item.id) is None
        assert client.delete(f"/api/inventory/T-Shirt/{item.id}", headers=headers).status_code == 404

    def test_unknown_field(self, client, headers, make_item):
        item = make_item()
        resp = client.put(f"/api/inventory/T-Shirt/{item.id}", json={"barcode": "1"}, headers=headers)
        assert resp.status_code == 400


class TestStream:

    def test_first_event_is_full_snapshot(self, client, token, make_item):
        make_item(name="Basic Tee", total=4, sold=1)

        resp = client.get(f"/api/inventory/stream?once=1&token={token}")

        assert resp.status_code == 200
        assert resp.mimetype == "text/event-stream"
        body = resp.get_data(as_text=True)
        assert body.startswith("event: snapshot\n")
        data = json.loads(body.split("data: ", 1)[1].strip())
        assert data["count"] == 1
        assert data["items"][0]["available"] == 3

    def test_open_stream_holds_no_connection(self, tmp_path):
        # File-backed database so the engine uses a real connection pool
        app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'stream.sqlite3'}",
            "BCRYPT_ROUNDS": 4,
        })
        with app.app_context():
            db.create_all()
            auth_service.add_access_code("counter", TEST_CODE)
            inventory_store.create({"name": "Basic Tee", "price_cents": 25000, "total": 3})
            engine = db.engine
            db.session.remove()

        client = app.test_client()
        token = get_auth_token(client, TEST_CODE)
        assert engine.pool.checkedout() == 0

        resp = client.get(f"/api/inventory/stream?token={token}", buffered=False)
        try:
            first = next(iter(resp.response))
            assert first.startswith(b"event: snapshot\n")
            assert engine.pool.checkedout() == 0
        finally:
            resp.close()
            engine.dispose()


class TestStickers:

    def test_all_stickers(self, client, headers, make_item):
        make_item(total=2)

        resp = client.get("/api/inventory/stickers.pdf", headers=headers)

        assert resp.status_code == 200
        assert resp.mimetype == "application/pdf"
        assert resp.data.startswith(b"%PDF")
        assert "all_inventory_qr_codes.pdf" in resp.headers["Content-Disposition"]

    def test_item_stickers_with_query_token(self, client, token, make_item):
        item = make_item(name="Basic Tee", total=1)

        resp = client.get(f"/api/inventory/T-Shirt/{item.id}/stickers.pdf?token={token}")

        assert resp.status_code == 200
        assert "Basic_Tee_qr_codes.pdf" in resp.headers["Content-Disposition"]

    def test_empty_inventory(self, client, headers):
        resp = client.get("/api/inventory/stickers.pdf", headers=headers)

        assert resp.status_code == 400
        assert resp.json["error"] == "No items in inventory to generate QR codes."

    def test_query_token_not_accepted_on_json_routes(self, client, token):
        assert client.get(f"/api/inventory?token={token}").status_code == 401
