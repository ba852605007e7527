# tests/test_api.py
import base64

import pytest


def upload(client, name="Widget", price="9.99", quan="2", code="W1", image=None):
    data = {"prod_name": name, "prod_price": price, "prod_quan": quan, "prod_code": code}
    files = {"prod_img": ("widget.png", image, "image/png")} if image is not None else None
    return client.post("/api/upload", data=data, files=files)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_upload_and_list_returns_base64_image(client, png_bytes):
    r = upload(client, image=png_bytes)
    assert r.status_code == 201
    pid = r.json()["prod_id"]

    products = client.get("/api/products").json()
    assert len(products) == 1
    p = products[0]
    assert p["prod_id"] == pid
    assert p["prod_name"] == "Widget"
    assert p["prod_price"] == 9.99
    assert p["prod_quan"] == 2
    assert p["prod_code"] == "W1"
    assert base64.b64decode(p["prod_img"]) == png_bytes


def test_upload_without_image(client):
    r = upload(client)
    assert r.status_code == 201
    assert client.get(f"/api/products/{r.json()['prod_id']}").json()["prod_img"] is None


def test_upload_leaves_no_transient_file(client, settings, png_bytes):
    upload(client, image=png_bytes)
    assert list(settings.upload_dir.iterdir()) == []


def test_upload_missing_fields_is_a_validation_error(client):
    r = client.post("/api/upload", data={"prod_name": "Widget"})
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "validation_error"
    assert "prod_price" in body["error"]
    assert "prod_code" in body["error"]
    assert client.get("/api/products").json() == []


def test_upload_rejects_negative_quantity(client):
    r = upload(client, quan="-1")
    assert r.status_code == 400
    assert "prod_quan" in r.json()["error"]


@pytest.mark.parametrize("field, kwargs", [
    ("prod_price", {"price": "9.999"}),
    ("prod_price", {"price": "100000000"}),
    ("prod_quan", {"quan": "2147483648"}),
])
def test_upload_rejects_values_the_columns_cannot_hold(client, field, kwargs):
    r = upload(client, **kwargs)
    assert r.status_code == 400
    assert field in r.json()["error"]
    assert client.get("/api/products").json() == []


def test_upload_accepts_largest_price_and_quantity(client):
    r = upload(client, price="99999999.99", quan="2147483647")
    assert r.status_code == 201
    p = client.get("/api/products").json()[0]
    assert p["prod_quan"] == 2147483647
    assert p["prod_price"] == 99999999.99


def test_upload_rejects_non_image_file(client):
    r = client.post(
        "/api/upload",
        data={"prod_name": "Widget", "prod_price": "1", "prod_quan": "1", "prod_code": "W1"},
        files={"prod_img": ("notes.txt", b"hello", "text/plain")},
    )
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"


def test_get_missing_product(client):
    r = client.get("/api/products/77")
    assert r.status_code == 404
    assert r.json() == {"error": "Product not found: 77", "code": "not_found", "prod_id": 77}


def test_update_without_image_keeps_previous_one(client, png_bytes):
    pid = upload(client, image=png_bytes).json()["prod_id"]
    r = client.put(
        f"/api/products/{pid}",
        data={"prod_name": "Widget v2", "prod_price": "11", "prod_quan": "4", "prod_code": "W2"},
    )
    assert r.status_code == 200
    updated = r.json()["updatedProduct"]
    assert updated["prod_name"] == "Widget v2"
    assert updated["prod_quan"] == 4
    assert base64.b64decode(updated["prod_img"]) == png_bytes


def test_update_with_new_image(client, png_bytes):
    pid = upload(client, image=png_bytes).json()["prod_id"]
    new_image = png_bytes + b"\x00"
    r = client.put(
        f"/api/products/{pid}",
        data={"prod_name": "Widget", "prod_price": "9.99", "prod_quan": "2", "prod_code": "W1"},
        files={"prod_img": ("new.png", new_image, "image/png")},
    )
    assert r.status_code == 200
    assert base64.b64decode(r.json()["updatedProduct"]["prod_img"]) == new_image


def test_update_missing_product_is_not_found(client):
    r = client.put(
        "/api/products/5",
        data={"prod_name": "Ghost", "prod_price": "1", "prod_quan": "1", "prod_code": "G"},
    )
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"


def test_delete_is_idempotent(client):
    pid = upload(client).json()["prod_id"]
    assert client.delete(f"/api/products/{pid}").status_code == 200
    r = client.delete(f"/api/products/{pid}")
    assert r.status_code == 200
    assert r.json() == {"message": "Product deleted successfully"}
    assert client.get("/api/products").json() == []


def test_checkout_example_flow(client):
    pid = upload(client, quan="2").json()["prod_id"]
    payload = {"products": [{"prod_id": pid}]}

    first = client.post("/api/checkout", json=payload)
    assert first.status_code == 200
    assert first.json() == {"message": "Checkout successful", "items": [{"prod_id": pid, "quantity": 1, "prod_quan": 1}]}

    second = client.post("/api/checkout", json=payload)
    assert second.json()["items"][0]["prod_quan"] == 0

    third = client.post("/api/checkout", json=payload)
    assert third.status_code == 409
    assert third.json() == {
        "error": f"Insufficient quantity for product ID: {pid}",
        "code": "insufficient_stock",
        "prod_id": pid,
    }


def test_checkout_batch_rolls_back(client):
    a = upload(client, name="A", code="A", quan="5").json()["prod_id"]
    b = upload(client, name="B", code="B", quan="0").json()["prod_id"]

    r = client.post("/api/checkout", json={"products": [{"prod_id": a}, {"prod_id": b}]})
    assert r.status_code == 409
    assert r.json()["prod_id"] == b
    assert client.get(f"/api/products/{a}").json()["prod_quan"] == 5


def test_checkout_unknown_product(client):
    r = client.post("/api/checkout", json={"products": [{"prod_id": 999}]})
    assert r.status_code == 404
    assert r.json()["prod_id"] == 999


def test_checkout_rejects_malformed_body(client):
    assert client.post("/api/checkout", json={"products": []}).status_code == 400
    assert client.post("/api/checkout", json={}).status_code == 400
    r = client.post("/api/checkout", json={"products": [{"prod_id": "abc"}]})
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"
