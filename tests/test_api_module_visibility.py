import uuid

from tests.factories import auth_headers, create_product, grant, shop_world


def test_reading_a_record_requires_view(client, db_session):
    owner, shop, worker = shop_world(db_session)
    product = create_product(db_session, shop, selling_price="120.00")
    url = f"/shopgate/records/Product/{product.id}"

    denied = client.get(url, headers=auth_headers(client, worker))
    assert denied.status_code == 403
    assert denied.json()["code"] == "INSUFFICIENT_PERMISSION"
    assert denied.json()["details"] == {"module": "PRODUCT_MANAGEMENT", "permission": "VIEW"}

    grant(db_session, worker, shop, "PRODUCT_MANAGEMENT", "VIEW")
    allowed = client.get(url, headers=auth_headers(client, worker))
    assert allowed.status_code == 200
    body = allowed.json()
    assert body["record_id"] == str(product.id)
    assert body["data"]["selling_price"] == 120.0
    assert body["data"]["shop_id"] == str(shop.id)

    owner_headers = auth_headers(client, owner)
    assert client.get(url, headers=owner_headers).status_code == 200
    missing = client.get(f"/shopgate/records/Product/{uuid.uuid4()}", headers=owner_headers)
    assert missing.status_code == 404


def test_record_from_another_shop_is_not_found(client, db_session):
    owner, _, _ = shop_world(db_session)
    _, other_shop, _ = shop_world(db_session)
    product = create_product(db_session, other_shop)

    response = client.get(f"/shopgate/records/Product/{product.id}", headers=auth_headers(client, owner))

    assert response.status_code == 404


def test_approval_payload_is_hidden_without_view(client, db_session):
    owner, shop, worker = shop_world(db_session)
    product = create_product(db_session, shop)
    worker_headers = auth_headers(client, worker)
    queued = client.patch(
        f"/shopgate/records/Product/{product.id}",
        json={"data": {"selling_price": "89.99"}},
        headers=worker_headers,
    )
    request_id = queued.json()["approval_request_id"]

    mine = client.get("/shopgate/approvals/mine", headers=worker_headers).json()
    assert mine["rows"][0]["request_data"] is None
    detail = client.get(f"/shopgate/approvals/{request_id}", headers=worker_headers).json()
    assert detail["request"]["request_data"] is None

    owner_view = client.get(f"/shopgate/approvals/{request_id}", headers=auth_headers(client, owner)).json()
    assert owner_view["request"]["request_data"] == {"selling_price": "89.99"}

    grant(db_session, worker, shop, "PRODUCT_MANAGEMENT", "VIEW")
    mine = client.get("/shopgate/approvals/mine", headers=worker_headers).json()
    assert mine["rows"][0]["request_data"] == {"selling_price": "89.99"}


def test_worker_history_hides_field_values_of_unviewable_modules(client, db_session):
    owner, shop, worker = shop_world(db_session)
    grant(db_session, worker, shop, "PRODUCT_MANAGEMENT", "EDIT")
    product = create_product(db_session, shop, selling_price="100.00")
    worker_headers = auth_headers(client, worker)
    edited = client.patch(
        f"/shopgate/records/Product/{product.id}",
        json={"data": {"selling_price": "95.00"}, "reason": "promo"},
        headers=worker_headers,
    )
    assert edited.json()["outcome"] == "applied"
    url = f"/shopgate/users/{worker.id}/audit-logs"

    (own,) = client.get(url, headers=worker_headers).json()["entries"]
    assert own["action"] == "UPDATE"
    assert own["changes"]["fields"] == []
    assert own["changes"]["redacted"] is True
    assert own["changes"]["reason"] == "promo"

    (seen_by_owner,) = client.get(url, headers=auth_headers(client, owner)).json()["entries"]
    assert {"field": "selling_price", "old_value": 100.0, "new_value": 95.0} in seen_by_owner["changes"]["fields"]
    assert "redacted" not in seen_by_owner["changes"]
