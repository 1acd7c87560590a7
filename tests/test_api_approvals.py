import uuid
from decimal import Decimal

from app.shopgate.db.models import Product
from tests.factories import auth_headers, create_product, shop_world


def test_worker_edit_is_queued_then_applied_by_owner(client, db_session):
    owner, shop, worker = shop_world(db_session)
    product = create_product(db_session, shop, selling_price="100.00")
    worker_headers = auth_headers(client, worker)
    owner_headers = auth_headers(client, owner)

    queued = client.patch(
        f"/shopgate/records/Product/{product.id}",
        json={"data": {"selling_price": "89.99"}, "reason": "Price correction"},
        headers=worker_headers,
    )
    assert queued.status_code == 202
    body = queued.json()
    assert body["outcome"] == "submitted_for_approval"
    assert body["message"] == "Change submitted for owner approval"
    request_id = body["approval_request_id"]

    pending = client.get("/shopgate/approvals", params={"status": "PENDING"}, headers=owner_headers).json()
    assert pending["total"] == 1
    assert pending["rows"][0]["id"] == request_id
    assert pending["rows"][0]["request_data"] == {"selling_price": "89.99"}

    decided = client.post(
        f"/shopgate/approvals/{request_id}/decision",
        json={"outcome": "APPROVE", "note": "fine"},
        headers=owner_headers,
    )
    assert decided.status_code == 200
    assert decided.json()["request"]["status"] == "APPLIED"
    assert decided.json()["request"]["reviewed_by"] == str(owner.id)

    db_session.expire_all()
    assert db_session.get(Product, product.id).selling_price == Decimal("89.99")

    again = client.post(
        f"/shopgate/approvals/{request_id}/decision",
        json={"outcome": "REJECT"},
        headers=owner_headers,
    )
    assert again.status_code == 409
    assert again.json()["code"] == "INVALID_STATE_TRANSITION"


def test_owner_change_is_applied_directly(client, db_session):
    owner, shop, _ = shop_world(db_session)
    headers = auth_headers(client, owner)

    created = client.post(
        "/shopgate/records/Customer",
        json={"data": {"name": "Halima", "phone": "+255711000000"}},
        headers=headers,
    )
    assert created.status_code == 201
    assert created.json()["outcome"] == "applied"
    record_id = created.json()["record_id"]

    deleted = client.delete(f"/shopgate/records/Customer/{record_id}", params={"reason": "dup"}, headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "Change applied"

    missing = client.delete(f"/shopgate/records/Customer/{record_id}", headers=headers)
    assert missing.status_code == 404


def test_invalid_payload_is_rejected_before_queueing(client, db_session):
    _, shop, worker = shop_world(db_session)
    product = create_product(db_session, shop)

    response = client.patch(
        f"/shopgate/records/Product/{product.id}",
        json={"data": {"selling_price": "-5"}},
        headers=auth_headers(client, worker),
    )

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert client.get("/shopgate/approvals/mine", headers=auth_headers(client, worker)).json()["total"] == 0


def test_explicit_submission_rules(client, db_session):
    owner, shop, worker = shop_world(db_session)
    product = create_product(db_session, shop)
    body = {"type": "DELETE", "table_name": "Product", "record_id": str(product.id), "reason": "discontinued"}

    owner_attempt = client.post("/shopgate/approvals", json=body, headers=auth_headers(client, owner))
    assert owner_attempt.status_code == 409
    assert owner_attempt.json()["code"] == "NOT_ELIGIBLE_FOR_APPROVAL"

    worker_headers = auth_headers(client, worker)
    submitted = client.post("/shopgate/approvals", json=body, headers=worker_headers)
    assert submitted.status_code == 201
    request_id = submitted.json()["request"]["id"]
    assert submitted.json()["request"]["status"] == "PENDING"

    mine = client.get("/shopgate/approvals/mine", headers=worker_headers).json()
    assert [row["id"] for row in mine["rows"]] == [request_id]

    detail = client.get(f"/shopgate/approvals/{request_id}", headers=worker_headers)
    assert detail.status_code == 200

    self_review = client.post(
        f"/shopgate/approvals/{request_id}/decision",
        json={"outcome": "APPROVE"},
        headers=worker_headers,
    )
    assert self_review.status_code == 403
    assert self_review.json()["code"] == "ACCESS_DENIED"


def test_approvals_are_isolated_per_shop(client, db_session):
    _, shop, worker = shop_world(db_session)
    other_owner, _, _ = shop_world(db_session)
    product = create_product(db_session, shop)

    submitted = client.post(
        "/shopgate/approvals",
        json={"type": "UPDATE", "table_name": "Product", "record_id": str(product.id), "request_data": {"name": "X"}},
        headers=auth_headers(client, worker),
    )
    request_id = submitted.json()["request"]["id"]
    other_headers = auth_headers(client, other_owner)

    assert client.get(f"/shopgate/approvals/{request_id}", headers=other_headers).status_code == 404
    decision = client.post(
        f"/shopgate/approvals/{request_id}/decision",
        json={"outcome": "APPROVE"},
        headers=other_headers,
    )
    assert decision.status_code == 404
    assert client.get("/shopgate/approvals", headers=other_headers).json()["total"] == 0
    assert client.get(f"/shopgate/approvals/{uuid.uuid4()}", headers=other_headers).status_code == 404
