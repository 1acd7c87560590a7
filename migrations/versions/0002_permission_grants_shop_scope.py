"""scope permission grants to a shop

Revision ID: 0002_grants_shop_scope
Revises: 0001_initial
Create Date: 2026-10-20 00:00:00.000000
"""

import uuid

from alembic import op
import sqlalchemy as sa


revision = "0002_grants_shop_scope"
down_revision = "0001_initial"
branch_labels = None
depends_on = None

OLD_UNIQUE = "uq_permission_grants_user_module_permission"
NEW_UNIQUE = "uq_permission_grants_user_shop_module_permission"
SHOP_FK = "fk_permission_grants_shop_id_shops"
SHOP_INDEX = "ix_permission_grants_shop_id"


def _column_names(inspector: sa.Inspector, table_name: str) -> set[str]:
    return {column["name"] for column in inspector.get_columns(table_name)}


def _fan_out_existing_grants(bind) -> None:
    # A grant made before shop scoping applied wherever the worker was assigned;
    # keep that effect by copying it onto each active assignment.
    grants = bind.execute(
        sa.text(
            "SELECT id, user_id, module, permission, is_active, granted_by, created_at "
            "FROM permission_grants WHERE shop_id IS NULL"
        )
    ).mappings().all()
    assignments: dict[str, list] = {}
    for row in bind.execute(sa.text("SELECT user_id, shop_id FROM shop_workers WHERE is_active")).mappings():
        assignments.setdefault(str(row["user_id"]), []).append(row["shop_id"])

    for grant in grants:
        shop_ids = assignments.get(str(grant["user_id"]), [])
        if not shop_ids:
            bind.execute(sa.text("DELETE FROM permission_grants WHERE id = :id"), {"id": grant["id"]})
            continue
        bind.execute(
            sa.text("UPDATE permission_grants SET shop_id = :shop_id WHERE id = :id"),
            {"shop_id": shop_ids[0], "id": grant["id"]},
        )
        for shop_id in shop_ids[1:]:
            bind.execute(
                sa.text(
                    "INSERT INTO permission_grants "
                    "(id, user_id, shop_id, module, permission, is_active, granted_by, created_at) "
                    "VALUES (:id, :user_id, :shop_id, :module, :permission, :is_active, :granted_by, :created_at)"
                ),
                {**dict(grant), "id": str(uuid.uuid4()), "shop_id": shop_id},
            )


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    shop_id_type = next(c["type"] for c in inspector.get_columns("shop_workers") if c["name"] == "shop_id")

    if "shop_id" not in _column_names(inspector, "permission_grants"):
        with op.batch_alter_table("permission_grants") as batch_op:
            batch_op.add_column(sa.Column("shop_id", shop_id_type, nullable=True))

    _fan_out_existing_grants(bind)

    with op.batch_alter_table("permission_grants") as batch_op:
        batch_op.alter_column("shop_id", existing_type=shop_id_type, nullable=False)
        batch_op.create_foreign_key(SHOP_FK, "shops", ["shop_id"], ["id"])
        batch_op.drop_constraint(OLD_UNIQUE, type_="unique")
        batch_op.create_unique_constraint(NEW_UNIQUE, ["user_id", "shop_id", "module", "permission"])
        batch_op.create_index(SHOP_INDEX, ["shop_id"], unique=False)


def downgrade() -> None:
    bind = op.get_bind()
    # Collapse per-shop copies back to one row per (user, module, permission).
    bind.execute(
        sa.text(
            "DELETE FROM permission_grants WHERE CAST(id AS VARCHAR(36)) NOT IN ("
            "SELECT MIN(CAST(id AS VARCHAR(36))) FROM permission_grants GROUP BY user_id, module, permission)"
        )
    )
    with op.batch_alter_table("permission_grants") as batch_op:
        batch_op.drop_index(SHOP_INDEX)
        batch_op.drop_constraint(NEW_UNIQUE, type_="unique")
        batch_op.drop_constraint(SHOP_FK, type_="foreignkey")
        batch_op.create_unique_constraint(OLD_UNIQUE, ["user_id", "module", "permission"])
        batch_op.drop_column("shop_id")
