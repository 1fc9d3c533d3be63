import pytest

from .conftest import SESSION_HEADERS


@pytest.fixture
def lamp(make_product):
    return make_product(name="Desk Lamp", price="24.50", quantity=40)


def add_item(client, product_id, quantity=1, headers=SESSION_HEADERS):
    return client.post("/api/cart/items", json={"productId": product_id, "quantity": quantity}, headers=headers)


def test_session_header_is_required(client):
    response = client.get("/api/cart")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert client.get("/api/wishlist", headers={"X-Session-ID": "  "}).status_code == 400


def test_empty_cart(client):
    cart = client.get("/api/cart", headers=SESSION_HEADERS).json()["data"]["cart"]
    assert cart["id"] == "cart_sess_test_123"
    assert cart["items"] == []
    assert (cart["subtotal"], cart["item_count"]) == (0, 0)


def test_adding_same_product_merges_line(client, lamp):
    add_item(client, lamp.id, 2)
    response = add_item(client, lamp.id, 1)

    assert response.status_code == 200
    cart = response.json()["data"]["cart"]
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 3
    assert cart["items"][0]["line_total"] == pytest.approx(73.5)
    assert cart["item_count"] == 3
    assert cart["total"] == pytest.approx(73.5)
    assert cart["items"][0]["product"]["name"] == "Desk Lamp"


def test_carts_are_per_session(client, lamp):
    add_item(client, lamp.id, 2)
    other = client.get("/api/cart", headers={"X-Session-ID": "sess_other"}).json()["data"]["cart"]
    assert other["items"] == []


def test_update_and_remove_lines(client, lamp, make_product):
    mug = make_product(name="Mug", price="5.00")
    add_item(client, lamp.id)
    cart = add_item(client, mug.id).json()["data"]["cart"]
    lamp_line = next(item for item in cart["items"] if item["product_id"] == lamp.id)
    mug_line = next(item for item in cart["items"] if item["product_id"] == mug.id)

    updated = client.put(f"/api/cart/items/{lamp_line['id']}", json={"quantity": 4}, headers=SESSION_HEADERS)
    assert updated.json()["data"]["cart"]["item_count"] == 5

    zeroed = client.put(f"/api/cart/items/{mug_line['id']}", json={"quantity": 0}, headers=SESSION_HEADERS)
    assert [item["product_id"] for item in zeroed.json()["data"]["cart"]["items"]] == [lamp.id]

    removed = client.delete(f"/api/cart/items/{lamp_line['id']}", headers=SESSION_HEADERS)
    assert removed.json()["data"]["cart"]["items"] == []


def test_unknown_cart_item_is_404(client, lamp):
    add_item(client, lamp.id)
    assert client.put("/api/cart/items/item_missing", json={"quantity": 2}, headers=SESSION_HEADERS).status_code == 404
    assert client.delete("/api/cart/items/item_missing", headers=SESSION_HEADERS).status_code == 404


def test_other_sessions_cannot_touch_a_line(client, lamp):
    line = add_item(client, lamp.id).json()["data"]["cart"]["items"][0]
    response = client.delete(f"/api/cart/items/{line['id']}", headers={"X-Session-ID": "sess_other"})
    assert response.status_code == 404


def test_clear_cart(client, lamp):
    add_item(client, lamp.id, 3)
    response = client.delete("/api/cart", headers=SESSION_HEADERS)
    assert response.status_code == 200
    assert response.json()["data"]["cart"]["item_count"] == 0


def test_cannot_add_missing_or_inactive_product(client, make_product):
    hidden = make_product(status="inactive")
    assert add_item(client, "prod_missing").status_code == 404
    assert add_item(client, hidden.id).status_code == 404
    assert add_item(client, hidden.id, quantity=0).status_code == 400


def test_wishlist_flow(client, lamp):
    first = client.post("/api/wishlist/items", json={"productId": lamp.id}, headers=SESSION_HEADERS)
    assert first.json()["data"] == {"added": True, "product_id": lamp.id}
    assert first.json()["message"] == "Product added to wishlist"

    duplicate = client.post("/api/wishlist/items", json={"productId": lamp.id}, headers=SESSION_HEADERS)
    assert duplicate.json()["data"]["added"] is False
    assert duplicate.json()["message"] == "Product already in wishlist"

    wishlist = client.get("/api/wishlist", headers=SESSION_HEADERS).json()["data"]
    assert wishlist["count"] == 1
    assert wishlist["items"][0]["product"]["id"] == lamp.id

    contains = client.get(f"/api/wishlist/items/{lamp.id}", headers=SESSION_HEADERS).json()["data"]
    assert contains["in_wishlist"] is True

    removed = client.delete(f"/api/wishlist/items/{lamp.id}", headers=SESSION_HEADERS).json()["data"]
    assert removed["removed"] is True
    again = client.delete(f"/api/wishlist/items/{lamp.id}", headers=SESSION_HEADERS).json()["data"]
    assert again["removed"] is False
    assert client.get("/api/wishlist", headers=SESSION_HEADERS).json()["data"]["count"] == 0


def test_wishlist_unknown_product_is_404(client):
    response = client.post("/api/wishlist/items", json={"productId": "prod_missing"}, headers=SESSION_HEADERS)
    assert response.status_code == 404
