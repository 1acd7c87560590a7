from tests.factories import assign, audit_entries, auth_headers, create_shop, create_user, shop_world


def test_admin_deactivates_owner_with_cascade(client, db_session):
    owner, shop, worker = shop_world(db_session)
    second = create_shop(db_session, owner, name="Second Branch")
    assign(db_session, worker, second)
    admin = create_user(db_session, role="SUPER_ADMIN")
    worker_headers = auth_headers(client, worker)

    response = client.patch(
        f"/shopgate/users/{owner.id}/status",
        json={"status": "INACTIVE", "reason": "contract ended"},
        headers=auth_headers(client, admin),
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["changed"] is True
    assert payload["counts"] == {"User": 1, "Shop": 2, "ShopWorker": 2}
    cascade_entries = [e for e in audit_entries(db_session, actor_id=admin.id) if e.action != "LOGIN"]
    assert len(cascade_entries) == 5

    denied = client.get("/shopgate/shops/current", headers=worker_headers)
    assert denied.status_code == 403
    assert denied.json()["code"] == "NO_ACCESSIBLE_TENANT"


def test_owner_manages_shop_and_assignment_status(client, db_session):
    owner, shop, worker = shop_world(db_session)
    headers = auth_headers(client, owner)

    paused = client.patch(
        f"/shopgate/shops/{shop.id}/workers/{worker.id}/assignment",
        json={"is_active": False, "reason": "leave"},
        headers=headers,
    )
    assert paused.json()["counts"] == {"ShopWorker": 1}

    closed = client.patch(f"/shopgate/shops/{shop.id}/status", json={"status": "SUSPENDED"}, headers=headers)
    assert closed.status_code == 200
    assert closed.json()["counts"] == {"Shop": 1}

    blocked = client.patch(
        f"/shopgate/shops/{shop.id}/workers/{worker.id}/assignment",
        json={"is_active": True},
        headers=headers,
    )
    assert blocked.status_code == 409
    assert blocked.json()["code"] == "INVALID_STATE_TRANSITION"

    unchanged = client.patch(f"/shopgate/shops/{shop.id}/status", json={"status": "SUSPENDED"}, headers=headers)
    assert unchanged.json() | {"trace_id": ""} == {"changed": False, "changes": [], "counts": {}, "trace_id": ""}


def test_status_authority_rules(client, db_session):
    owner, shop, worker = shop_world(db_session)
    other_owner, _, _ = shop_world(db_session)
    owner_headers = auth_headers(client, owner)

    cross = client.patch(f"/shopgate/users/{other_owner.id}/status", json={"status": "INACTIVE"}, headers=owner_headers)
    assert cross.status_code == 409
    assert cross.json()["code"] == "INVALID_STATE_TRANSITION"

    self_off = client.patch(f"/shopgate/users/{owner.id}/status", json={"status": "INACTIVE"}, headers=owner_headers)
    assert self_off.status_code == 409

    by_worker = client.patch(
        f"/shopgate/shops/{shop.id}/status",
        json={"status": "INACTIVE"},
        headers=auth_headers(client, worker),
    )
    assert by_worker.status_code == 409

    bad_value = client.patch(f"/shopgate/users/{worker.id}/status", json={"status": "BANNED"}, headers=owner_headers)
    assert bad_value.status_code == 422
    assert bad_value.json()["code"] == "VALIDATION_ERROR"


def test_owner_sees_their_worker_status_change_in_shop_audit(client, db_session):
    owner, shop, worker = shop_world(db_session)
    headers = auth_headers(client, owner)

    changed = client.patch(
        f"/shopgate/users/{worker.id}/status",
        json={"status": "SUSPENDED", "reason": "cash shortfall"},
        headers=headers,
    )
    assert changed.status_code == 200

    trail = client.get("/shopgate/audit-logs", params={"table_name": "User"}, headers=headers).json()["entries"]
    assert [(entry["action"], entry["record_id"], entry["shop_id"]) for entry in trail] == [
        ("STATUS_CHANGE", str(worker.id), str(shop.id))
    ]
