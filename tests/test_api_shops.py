import uuid

from tests.factories import auth_headers, create_shop, create_user, shop_world


def test_list_shops_by_role(client, db_session):
    owner, shop, worker = shop_world(db_session)
    second = create_shop(db_session, owner, name="Second Branch")
    other_owner, other_shop, _ = shop_world(db_session)

    owned = client.get("/shopgate/shops", headers=auth_headers(client, owner)).json()["shops"]
    assert [item["id"] for item in owned] == [str(shop.id), str(second.id)]
    assert all(item["is_owner"] for item in owned)

    assigned = client.get("/shopgate/shops", headers=auth_headers(client, worker)).json()["shops"]
    assert [item["id"] for item in assigned] == [str(shop.id)]
    assert assigned[0]["is_owner"] is False

    admin = create_user(db_session, role="SUPER_ADMIN")
    everything = client.get("/shopgate/shops", headers=auth_headers(client, admin)).json()["shops"]
    assert {item["id"] for item in everything} == {str(shop.id), str(second.id), str(other_shop.id)}


def test_current_shop_defaults_and_selection(client, db_session):
    owner, shop, _ = shop_world(db_session)
    second = create_shop(db_session, owner, name="Second Branch")
    headers = auth_headers(client, owner)

    default = client.get("/shopgate/shops/current", headers=headers)
    assert default.status_code == 200
    payload = default.json()
    assert payload["shop"]["id"] == str(shop.id)
    assert payload["role"] == "SHOP_OWNER"
    assert payload["accessible_shop_ids"] == [str(shop.id), str(second.id)]

    chosen = client.get("/shopgate/shops/current", params={"shop_id": str(second.id)}, headers=headers)
    assert chosen.json()["shop"]["id"] == str(second.id)


def test_current_shop_denies_foreign_shop(client, db_session):
    _, shop, _ = shop_world(db_session)
    _, _, other_worker = shop_world(db_session)

    response = client.get(
        "/shopgate/shops/current",
        params={"shop_id": str(shop.id)},
        headers={**auth_headers(client, other_worker), "X-Trace-ID": "trace-denied"},
    )

    assert response.status_code == 403
    assert response.json() == {
        "code": "ACCESS_DENIED",
        "message": "Access to this shop is denied",
        "details": {"shop_id": str(shop.id)},
        "trace_id": "trace-denied",
    }

    unknown = client.get(
        "/shopgate/shops/current", params={"shop_id": str(uuid.uuid4())}, headers=auth_headers(client, other_worker)
    )
    assert unknown.json()["code"] == "ACCESS_DENIED"


def test_worker_without_assignment_has_no_shop(client, db_session):
    loner = create_user(db_session, role="SHOP_WORKER")

    response = client.get("/shopgate/shops/current", headers=auth_headers(client, loner))

    assert response.status_code == 403
    assert response.json()["code"] == "NO_ACCESSIBLE_TENANT"


def test_catalog(client, db_session):
    owner, _, _ = shop_world(db_session)

    payload = client.get("/shopgate/catalog", headers=auth_headers(client, owner)).json()

    assert "PRODUCT_MANAGEMENT" in payload["modules"]
    assert payload["permissions"] == ["VIEW", "CREATE", "EDIT", "DELETE", "MANAGE"]
    assert payload["tables"]["Product"] == "PRODUCT_MANAGEMENT"
    assert payload["tables"]["Supplier"] == "SUPPLIER_MANAGEMENT"
