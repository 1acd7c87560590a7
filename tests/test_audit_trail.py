from datetime import datetime, timedelta

import pytest

from app.shopgate.core.error_catalog import AppError, ErrorCatalog
from app.shopgate.core.unit_of_work import UnitOfWork
from app.shopgate.services.audit import AuditQuery, AuditTrail, build_changes
from tests.factories import audit_entries, create_user, shop_world


def _record_many(db, actor, shop, count):
    trail = AuditTrail(db)
    with UnitOfWork(db):
        for index in range(count):
            trail.record(
                actor_id=actor.id,
                shop_id=shop.id,
                action="UPDATE",
                table_name="Product",
                record_id=f"rec-{index}",
                changes=build_changes({"stock_quantity": index}, {"stock_quantity": index + 1}),
            )


def test_build_changes_reports_only_changed_fields():
    changes = build_changes(
        {"name": "Tecno Spark", "selling_price": 120, "sku": "TS-1"},
        {"name": "Tecno Spark", "selling_price": 110, "status": "ACTIVE"},
        reason="promo",
        changed_by="u-1",
    )

    assert changes == {
        "fields": [
            {"field": "selling_price", "old_value": 120, "new_value": 110},
            {"field": "sku", "old_value": "TS-1", "new_value": None},
            {"field": "status", "old_value": None, "new_value": "ACTIVE"},
        ],
        "reason": "promo",
        "changed_by": "u-1",
    }


def test_build_changes_for_create_and_delete():
    created = build_changes(None, {"name": "Infinix"})
    deleted = build_changes({"name": "Infinix"}, None, context={"table_name": "Brand"})

    assert created["fields"] == [{"field": "name", "old_value": None, "new_value": "Infinix"}]
    assert deleted["fields"] == [{"field": "name", "old_value": "Infinix", "new_value": None}]
    assert deleted["context"] == {"table_name": "Brand"}


def test_query_pages_newest_first_without_gaps(db_session):
    owner, shop, _ = shop_world(db_session)
    _record_many(db_session, owner, shop, 5)
    trail = AuditTrail(db_session)
    filters = AuditQuery(shop_id=shop.id)

    seen = []
    cursor = None
    for _ in range(3):
        page = trail.query(filters, limit=2, cursor=cursor)
        seen.extend(entry.id for entry in page.entries)
        cursor = page.next_cursor
    assert cursor is None

    expected = [entry.id for entry in reversed(audit_entries(db_session, shop_id=shop.id))]
    assert seen == expected
    assert [entry.id for entry in trail.iterate(filters, page_size=2)] == expected


def test_query_filters(db_session):
    owner, shop, worker = shop_world(db_session)
    _record_many(db_session, owner, shop, 2)
    trail = AuditTrail(db_session)
    with UnitOfWork(db_session):
        trail.record(
            actor_id=worker.id,
            shop_id=shop.id,
            action="CREATE",
            table_name="Customer",
            record_id="c-1",
            changes=build_changes(None, {"name": "Neema"}),
        )

    by_actor = trail.query(AuditQuery(actor_id=worker.id))
    assert [entry.record_id for entry in by_actor.entries] == ["c-1"]
    assert by_actor.next_cursor is None

    assert len(trail.query(AuditQuery(table_name="Product")).entries) == 2
    assert len(trail.query(AuditQuery(action="CREATE", shop_id=shop.id)).entries) == 1
    assert trail.query(AuditQuery(record_id="rec-1")).entries[0].action == "UPDATE"

    future = datetime.utcnow() + timedelta(days=1)
    assert trail.query(AuditQuery(date_from=future)).entries == []
    assert len(trail.query(AuditQuery(date_to=future)).entries) == 3


def test_invalid_cursor_is_validation_error(db_session):
    with pytest.raises(AppError) as exc:
        AuditTrail(db_session).query(AuditQuery(), cursor="definitely-not-a-cursor")
    assert exc.value.error == ErrorCatalog.VALIDATION_ERROR


def test_entries_are_immutable(db_session):
    owner, shop, _ = shop_world(db_session)
    _record_many(db_session, owner, shop, 1)
    entry = audit_entries(db_session)[0]

    entry.action = "DELETE"
    with pytest.raises(ValueError):
        db_session.commit()
    db_session.rollback()

    db_session.delete(audit_entries(db_session)[0])
    with pytest.raises(ValueError):
        db_session.commit()
    db_session.rollback()

    assert [row.action for row in audit_entries(db_session)] == ["UPDATE"]


def test_rolled_back_mutation_leaves_no_entry(db_session):
    actor = create_user(db_session, role="SUPER_ADMIN")

    with pytest.raises(RuntimeError):
        with UnitOfWork(db_session):
            AuditTrail(db_session).record(
                actor_id=actor.id,
                action="STATUS_CHANGE",
                table_name="User",
                record_id=str(actor.id),
                changes=build_changes({"status": "ACTIVE"}, {"status": "INACTIVE"}),
            )
            raise RuntimeError("write failed")

    assert audit_entries(db_session) == []
