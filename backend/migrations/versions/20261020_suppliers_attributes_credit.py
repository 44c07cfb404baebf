"""Suppliers, attributes, store credit applied on sales, cost on sale lines

Revision ID: 20261020_suppliers_attributes
Revises: 20261019_initial
Create Date: 2026-10-20
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261020_suppliers_attributes"
down_revision = "20261019_initial"
branch_labels = None
depends_on = None


def _timestamp(name):
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False)


def upgrade():
    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("contact_person", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_suppliers_name", "suppliers", ["name"], unique=False)

    op.create_table(
        "attributes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("attribute_type", sa.String(16), nullable=False, server_default="text"),
        sa.Column("allowed_values", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_attributes_name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "product_attributes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("attribute_id", sa.Integer(), nullable=False),
        sa.Column("value", sa.String(255), nullable=False),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["attribute_id"], ["attributes.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "attribute_id", name="uq_product_attributes_product_attribute"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("product_attributes", schema=None) as batch_op:
        batch_op.create_index("ix_product_attributes_product_id", ["product_id"], unique=False)
        batch_op.create_index("ix_product_attributes_attribute_id", ["attribute_id"], unique=False)

    with op.batch_alter_table("sales", schema=None) as batch_op:
        batch_op.add_column(sa.Column("credit_applied", sa.Integer(), nullable=False, server_default=sa.text("0")))

    # Existing lines take the product's cost price as it stands at upgrade time
    with op.batch_alter_table("sale_items", schema=None) as batch_op:
        batch_op.add_column(sa.Column("unit_cost", sa.Integer(), nullable=False, server_default=sa.text("0")))
    op.execute(
        "UPDATE sale_items SET unit_cost = "
        "(SELECT products.cost_price FROM products WHERE products.id = sale_items.product_id)"
    )


def downgrade():
    with op.batch_alter_table("sale_items", schema=None) as batch_op:
        batch_op.drop_column("unit_cost")
    with op.batch_alter_table("sales", schema=None) as batch_op:
        batch_op.drop_column("credit_applied")
    op.drop_table("product_attributes")
    op.drop_table("attributes")
    op.drop_index("ix_suppliers_name", table_name="suppliers")
    op.drop_table("suppliers")
