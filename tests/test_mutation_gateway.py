import uuid
from decimal import Decimal

import pytest

from app.shopgate.core.error_catalog import AppError, ErrorCatalog
from app.shopgate.db.models import ApprovalRequest, Category, Customer, Product
from app.shopgate.services.mutations import APPLIED, SUBMITTED_FOR_APPROVAL, MutationGateway
from tests.factories import (
    RecordingNotificationSink,
    assign,
    audit_entries,
    create_product,
    create_shop,
    create_user,
    grant,
    scope_for,
    shop_world,
)


def _category(db, shop, name="Smartphones"):
    category = Category(id=uuid.uuid4(), shop_id=shop.id, name=name)
    db.add(category)
    db.commit()
    return category


def test_owner_create_is_applied_and_audited(db_session):
    owner, shop, _ = shop_world(db_session)
    category = _category(db_session, shop)

    outcome = MutationGateway(db_session).execute(
        scope_for(db_session, owner, shop),
        change_type="CREATE",
        table_name="Product",
        data={"name": "Redmi 13C", "sku": "RM-13C", "category_id": str(category.id), "selling_price": "250.00"},
        reason="new stock",
    )

    assert outcome.outcome == APPLIED
    assert outcome.applied
    product = db_session.get(Product, uuid.UUID(outcome.record_id))
    assert product.shop_id == shop.id
    assert product.selling_price == Decimal("250.00")

    entry = audit_entries(db_session, action="CREATE")[0]
    assert entry.table_name == "Product"
    assert entry.record_id == outcome.record_id
    assert entry.actor_id == owner.id
    assert entry.changes["reason"] == "new stock"
    assert {"field": "sku", "old_value": None, "new_value": "RM-13C"} in entry.changes["fields"]


def test_worker_without_grant_gets_approval_request(db_session):
    _, shop, worker = shop_world(db_session)
    product = create_product(db_session, shop)
    sink = RecordingNotificationSink()

    outcome = MutationGateway(db_session, sink).execute(
        scope_for(db_session, worker, shop),
        change_type="DELETE",
        table_name="Product",
        record_id=str(product.id),
        reason="duplicate",
    )

    assert outcome.outcome == SUBMITTED_FOR_APPROVAL
    assert not outcome.applied
    approval = db_session.get(ApprovalRequest, uuid.UUID(outcome.approval_request_id))
    assert approval.type == "DELETE"
    assert approval.record_id == str(product.id)
    assert db_session.get(Product, product.id) is not None
    assert [entry.action for entry in audit_entries(db_session)] == ["REQUEST_SUBMITTED"]
    assert sink.kinds() == ["approval.submitted"]


def test_worker_with_grant_applies_directly(db_session):
    _, shop, worker = shop_world(db_session)
    grant(db_session, worker, shop, "CUSTOMER_MANAGEMENT", "CREATE")

    outcome = MutationGateway(db_session).execute(
        scope_for(db_session, worker, shop),
        change_type="CREATE",
        table_name="Customer",
        data={"name": "Juma"},
    )

    assert outcome.applied
    assert db_session.get(Customer, uuid.UUID(outcome.record_id)).name == "Juma"
    assert db_session.query(ApprovalRequest).count() == 0


def test_grant_from_one_owner_does_not_bypass_another_owners_approval(db_session):
    _, shop_a, worker = shop_world(db_session)
    owner_b = create_user(db_session, role="SHOP_OWNER")
    shop_b = create_shop(db_session, owner_b, name="Across The Road")
    assign(db_session, worker, shop_b)
    grant(db_session, worker, shop_a, "PRODUCT_MANAGEMENT", "MANAGE")
    product = create_product(db_session, shop_b, selling_price="100.00")

    outcome = MutationGateway(db_session).execute(
        scope_for(db_session, worker, shop_b),
        change_type="UPDATE",
        table_name="Product",
        record_id=str(product.id),
        data={"selling_price": "1.00"},
    )

    assert outcome.outcome == SUBMITTED_FOR_APPROVAL
    db_session.refresh(product)
    assert product.selling_price == Decimal("100.00")
    approval = db_session.get(ApprovalRequest, uuid.UUID(outcome.approval_request_id))
    assert approval.shop_id == shop_b.id


def test_update_of_record_in_another_shop_is_not_found(db_session):
    owner, shop, _ = shop_world(db_session)
    _, other_shop, _ = shop_world(db_session)
    foreign = create_product(db_session, other_shop, selling_price="80.00")

    with pytest.raises(AppError) as exc:
        MutationGateway(db_session).execute(
            scope_for(db_session, owner, shop),
            change_type="UPDATE",
            table_name="Product",
            record_id=str(foreign.id),
            data={"selling_price": "1.00"},
        )
    assert exc.value.error == ErrorCatalog.NOT_FOUND
    db_session.expire_all()
    assert db_session.get(Product, foreign.id).selling_price == Decimal("80.00")
    assert audit_entries(db_session) == []


def test_reference_to_another_shop_is_rejected(db_session):
    owner, shop, _ = shop_world(db_session)
    _, other_shop, _ = shop_world(db_session)
    foreign_category = _category(db_session, other_shop)

    with pytest.raises(AppError) as exc:
        MutationGateway(db_session).execute(
            scope_for(db_session, owner, shop),
            change_type="CREATE",
            table_name="Product",
            data={"name": "Itel A70", "sku": "IT-A70", "category_id": str(foreign_category.id)},
        )
    assert exc.value.error == ErrorCatalog.VALIDATION_ERROR
    assert exc.value.details["field"] == "category_id"
    assert db_session.query(Product).count() == 0


def test_duplicate_sku_is_transaction_conflict(db_session):
    owner, shop, _ = shop_world(db_session)
    create_product(db_session, shop, sku="DUP-1")

    with pytest.raises(AppError) as exc:
        MutationGateway(db_session).execute(
            scope_for(db_session, owner, shop),
            change_type="CREATE",
            table_name="Product",
            data={"name": "Copy", "sku": "DUP-1"},
        )
    assert exc.value.error == ErrorCatalog.TRANSACTION_CONFLICT
    assert audit_entries(db_session) == []


def test_unknown_table_is_rejected_and_admin_applies_directly(db_session):
    owner, shop, _ = shop_world(db_session)

    with pytest.raises(AppError) as exc:
        MutationGateway(db_session).execute(
            scope_for(db_session, owner, shop),
            change_type="CREATE",
            table_name="Invoice",
            data={"total": 10},
        )
    assert exc.value.error == ErrorCatalog.VALIDATION_ERROR

    admin = create_user(db_session, role="SUPER_ADMIN")
    outcome = MutationGateway(db_session).execute(
        scope_for(db_session, admin, shop),
        change_type="CREATE",
        table_name="Supplier",
        data={"name": "Dar Phones Ltd"},
    )
    assert outcome.applied


def test_read_checks_view_within_the_scoped_shop(db_session):
    _, shop, worker = shop_world(db_session)
    product = create_product(db_session, shop, name="Redmi 13C")
    gateway = MutationGateway(db_session)
    scope = scope_for(db_session, worker, shop)

    with pytest.raises(AppError) as exc:
        gateway.read(scope, "Product", str(product.id))
    assert exc.value.error == ErrorCatalog.INSUFFICIENT_PERMISSION

    grant(db_session, worker, shop, "PRODUCT_MANAGEMENT", "MANAGE")
    assert gateway.read(scope, "Product", str(product.id))["name"] == "Redmi 13C"
    with pytest.raises(AppError) as exc:
        gateway.read(scope, "Product", str(uuid.uuid4()))
    assert exc.value.error == ErrorCatalog.NOT_FOUND
