"""initial shop access-control schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


class GUID(sa.TypeDecorator):
    impl = sa.CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(sa.CHAR(36))


def _shop_fk():
    return sa.Column("shop_id", GUID(), sa.ForeignKey("shops.id"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)

    op.create_table(
        "shops",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False, unique=True),
        sa.Column("owner_id", GUID(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_shops_owner_id", "shops", ["owner_id"], unique=False)

    op.create_table(
        "shop_workers",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("user_id", GUID(), sa.ForeignKey("users.id"), nullable=False),
        _shop_fk(),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("user_id", "shop_id", name="uq_shop_workers_user_shop"),
    )
    op.create_index("ix_shop_workers_user_id", "shop_workers", ["user_id"], unique=False)
    op.create_index("ix_shop_workers_shop_id", "shop_workers", ["shop_id"], unique=False)

    op.create_table(
        "permission_grants",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("user_id", GUID(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("module", sa.String(length=64), nullable=False),
        sa.Column("permission", sa.String(length=16), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("granted_by", GUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "module", "permission", name="uq_permission_grants_user_module_permission"),
    )
    op.create_index("ix_permission_grants_user_id", "permission_grants", ["user_id"], unique=False)

    op.create_table(
        "approval_requests",
        sa.Column("id", GUID(), primary_key=True),
        _shop_fk(),
        sa.Column("requested_by", GUID(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("table_name", sa.String(length=64), nullable=False),
        sa.Column("record_id", sa.String(length=64), nullable=True),
        sa.Column("request_data", sa.JSON(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("reviewed_by", GUID(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("review_note", sa.Text(), nullable=True),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        sa.Column("applied_record_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("decided_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_approval_requests_shop_id", "approval_requests", ["shop_id"], unique=False)
    op.create_index("ix_approval_requests_requested_by", "approval_requests", ["requested_by"], unique=False)
    op.create_index("ix_approval_requests_status", "approval_requests", ["status"], unique=False)
    op.create_index(
        "ix_approval_requests_shop_status_created",
        "approval_requests",
        ["shop_id", "status", "created_at"],
        unique=False,
    )

    op.create_table(
        "audit_log_entries",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("actor_id", GUID(), nullable=False),
        sa.Column("shop_id", GUID(), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("table_name", sa.String(length=64), nullable=False),
        sa.Column("record_id", sa.String(length=64), nullable=False),
        sa.Column("changes", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_log_entries_actor_id", "audit_log_entries", ["actor_id"], unique=False)
    op.create_index("ix_audit_log_entries_shop_id", "audit_log_entries", ["shop_id"], unique=False)
    op.create_index("ix_audit_log_entries_created_at", "audit_log_entries", ["created_at"], unique=False)
    op.create_index("ix_audit_log_entries_table_record", "audit_log_entries", ["table_name", "record_id"], unique=False)

    op.create_table(
        "categories",
        sa.Column("id", GUID(), primary_key=True),
        _shop_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_categories_shop_id", "categories", ["shop_id"], unique=False)

    op.create_table(
        "brands",
        sa.Column("id", GUID(), primary_key=True),
        _shop_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_brands_shop_id", "brands", ["shop_id"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", GUID(), primary_key=True),
        _shop_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("sku", sa.String(length=100), nullable=False),
        sa.Column("category_id", GUID(), sa.ForeignKey("categories.id"), nullable=True),
        sa.Column("brand_id", GUID(), sa.ForeignKey("brands.id"), nullable=True),
        sa.Column("cost_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("selling_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("stock_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("shop_id", "sku", name="uq_products_shop_sku"),
    )
    op.create_index("ix_products_shop_id", "products", ["shop_id"], unique=False)

    op.create_table(
        "inventory_items",
        sa.Column("id", GUID(), primary_key=True),
        _shop_fk(),
        sa.Column("product_id", GUID(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("imei", sa.String(length=32), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="IN_STOCK"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_inventory_items_shop_id", "inventory_items", ["shop_id"], unique=False)
    op.create_index("ix_inventory_items_product_id", "inventory_items", ["product_id"], unique=False)

    op.create_table(
        "customers",
        sa.Column("id", GUID(), primary_key=True),
        _shop_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_customers_shop_id", "customers", ["shop_id"], unique=False)

    op.create_table(
        "suppliers",
        sa.Column("id", GUID(), primary_key=True),
        _shop_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("contact_person", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_suppliers_shop_id", "suppliers", ["shop_id"], unique=False)


def downgrade() -> None:
    for table in ("suppliers", "customers", "inventory_items", "products", "brands", "categories"):
        op.drop_index(f"ix_{table}_shop_id", table_name=table)
    op.drop_index("ix_inventory_items_product_id", table_name="inventory_items")
    op.drop_table("suppliers")
    op.drop_table("customers")
    op.drop_table("inventory_items")
    op.drop_table("products")
    op.drop_table("brands")
    op.drop_table("categories")
    op.drop_index("ix_audit_log_entries_table_record", table_name="audit_log_entries")
    op.drop_index("ix_audit_log_entries_created_at", table_name="audit_log_entries")
    op.drop_index("ix_audit_log_entries_shop_id", table_name="audit_log_entries")
    op.drop_index("ix_audit_log_entries_actor_id", table_name="audit_log_entries")
    op.drop_table("audit_log_entries")
    op.drop_index("ix_approval_requests_shop_status_created", table_name="approval_requests")
    op.drop_index("ix_approval_requests_status", table_name="approval_requests")
    op.drop_index("ix_approval_requests_requested_by", table_name="approval_requests")
    op.drop_index("ix_approval_requests_shop_id", table_name="approval_requests")
    op.drop_table("approval_requests")
    op.drop_index("ix_permission_grants_user_id", table_name="permission_grants")
    op.drop_table("permission_grants")
    op.drop_index("ix_shop_workers_shop_id", table_name="shop_workers")
    op.drop_index("ix_shop_workers_user_id", table_name="shop_workers")
    op.drop_table("shop_workers")
    op.drop_index("ix_shops_owner_id", table_name="shops")
    op.drop_table("shops")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
