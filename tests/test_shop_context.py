import uuid

import pytest

from app.shopgate.core.error_catalog import AppError, ErrorCatalog
from app.shopgate.services.shop_context import ShopContextResolver
from tests.factories import assign, create_shop, create_user, principal, shop_world


def test_owner_resolves_first_owned_shop_by_creation(db_session):
    owner = create_user(db_session, role="SHOP_OWNER")
    first = create_shop(db_session, owner, name="First")
    second = create_shop(db_session, owner, name="Second")

    resolver = ShopContextResolver(db_session)
    scope = resolver.resolve(principal(owner))

    assert scope.shop_id == first.id
    assert scope.owner_id == owner.id
    assert scope.is_owner
    assert scope.accessible_shop_ids == (first.id, second.id)
    assert resolver.resolve(principal(owner), second.id).shop_id == second.id


def test_worker_sees_only_active_assignments_on_active_shops(db_session):
    owner, shop, worker = shop_world(db_session)
    dropped = create_shop(db_session, owner, name="Dropped")
    assign(db_session, worker, dropped, is_active=False)
    closed = create_shop(db_session, owner, name="Closed", status="INACTIVE")
    assign(db_session, worker, closed)

    resolver = ShopContextResolver(db_session)

    assert [s.id for s in resolver.accessible_shops(principal(worker))] == [shop.id]
    for shop_id in (dropped.id, closed.id):
        with pytest.raises(AppError) as exc:
            resolver.resolve(principal(worker), shop_id)
        assert exc.value.error == ErrorCatalog.ACCESS_DENIED


def test_unrelated_principal_is_denied_other_shop(db_session):
    _, shop_a, _ = shop_world(db_session)
    other_owner, _, other_worker = shop_world(db_session)

    resolver = ShopContextResolver(db_session)
    for user in (other_owner, other_worker):
        with pytest.raises(AppError) as exc:
            resolver.resolve(principal(user), shop_a.id)
        assert exc.value.error == ErrorCatalog.ACCESS_DENIED
        assert exc.value.details == {"shop_id": str(shop_a.id)}


def test_unknown_or_malformed_shop_id_is_denied(db_session):
    owner, _, _ = shop_world(db_session)
    resolver = ShopContextResolver(db_session)

    for requested in (uuid.uuid4(), "not-a-uuid"):
        with pytest.raises(AppError) as exc:
            resolver.resolve(principal(owner), requested)
        assert exc.value.error == ErrorCatalog.ACCESS_DENIED


def test_super_admin_sees_every_active_shop(db_session):
    admin = create_user(db_session, role="SUPER_ADMIN")
    _, shop_a, _ = shop_world(db_session)
    owner_b, shop_b, _ = shop_world(db_session)
    create_shop(db_session, owner_b, status="INACTIVE")

    shops = ShopContextResolver(db_session).accessible_shops(principal(admin))

    assert {s.id for s in shops} == {shop_a.id, shop_b.id}
    scope = ShopContextResolver(db_session).resolve(principal(admin), shop_b.id)
    assert scope.owner_id == owner_b.id
    assert not scope.is_owner


def test_no_accessible_shop(db_session):
    worker = create_user(db_session, role="SHOP_WORKER")

    with pytest.raises(AppError) as exc:
        ShopContextResolver(db_session).resolve(principal(worker))
    assert exc.value.error == ErrorCatalog.NO_ACCESSIBLE_TENANT


def test_inactive_principal_is_rejected_before_lookup(db_session):
    owner = create_user(db_session, role="SHOP_OWNER", status="SUSPENDED")
    shop = create_shop(db_session, owner)

    with pytest.raises(AppError) as exc:
        ShopContextResolver(db_session).resolve(principal(owner), shop.id)
    assert exc.value.error == ErrorCatalog.USER_INACTIVE
