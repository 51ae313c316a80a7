"""Initial pawn shop schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("id_card", sa.String(32), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("line_id", sa.String(64), nullable=True),
        sa.Column("line_user_id", sa.String(64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("id_card", name="uq_customers_id_card"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("customers", schema=None) as batch_op:
        batch_op.create_index("ix_customers_phone", ["phone"], unique=False)
        batch_op.create_index("ix_customers_line_user_id", ["line_user_id"], unique=False)

    op.create_table(
        "contracts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("type", sa.String(16), nullable=False, server_default="DEPOSIT"),
        sa.Column("status", sa.String(16), nullable=False, server_default="ACTIVE"),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("previous_contract_id", sa.Integer(), nullable=True),
        sa.Column("principal", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("fee_config", sa.JSON(), nullable=False),
        sa.Column("term_days", sa.Integer(), nullable=False, server_default=sa.text("15")),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("asset_model", sa.String(255), nullable=True),
        sa.Column("asset_serial", sa.String(128), nullable=True),
        sa.Column("asset_condition", sa.Text(), nullable=True),
        sa.Column("asset_accessories", sa.Text(), nullable=True),
        sa.Column("storage_code", sa.String(32), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("principal >= 0", name="ck_contracts_principal_non_negative"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["previous_contract_id"], ["contracts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", name="uq_contracts_code"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("contracts", schema=None) as batch_op:
        batch_op.create_index("ix_contracts_type", ["type"], unique=False)
        batch_op.create_index("ix_contracts_status", ["status"], unique=False)
        batch_op.create_index("ix_contracts_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_contracts_previous_contract_id", ["previous_contract_id"], unique=False)
        batch_op.create_index("ix_contracts_storage_code", ["storage_code"], unique=False)
        batch_op.create_index("ix_contracts_created_at", ["created_at"], unique=False)
        batch_op.create_index("ix_contracts_status_created", ["status", "created_at"], unique=False)

    op.create_table(
        "contract_images",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("contract_id", sa.Integer(), nullable=False),
        sa.Column("url_or_data", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["contract_id"], ["contracts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("contract_images", schema=None) as batch_op:
        batch_op.create_index("ix_contract_images_contract_id", ["contract_id"], unique=False)

    op.create_table(
        "contract_action_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("contract_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["contract_id"], ["contracts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("contract_action_logs", schema=None) as batch_op:
        batch_op.create_index("ix_contract_action_logs_contract_id", ["contract_id"], unique=False)
        batch_op.create_index("ix_contract_action_logs_action", ["action"], unique=False)
        batch_op.create_index("ix_contract_logs_contract_created", ["contract_id", "created_at"], unique=False)

    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("serial", sa.String(128), nullable=True),
        sa.Column("condition", sa.Text(), nullable=True),
        sa.Column("accessories", sa.Text(), nullable=True),
        sa.Column("storage_location", sa.String(64), nullable=True),
        sa.Column("source_type", sa.String(16), nullable=False, server_default="PURCHASE"),
        sa.Column("source_contract_id", sa.Integer(), nullable=True),
        sa.Column("source_contract_code", sa.String(32), nullable=True),
        sa.Column("consignment_contract_id", sa.Integer(), nullable=True),
        sa.Column("cost", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("target_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("selling_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("quantity_available", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("quantity_sold", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("gross_profit", sa.Numeric(12, 2), nullable=True),
        sa.Column("net_profit", sa.Numeric(12, 2), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="IN_STOCK"),
        sa.Column("buyer_customer_id", sa.Integer(), nullable=True),
        sa.Column("buyer_name", sa.String(255), nullable=True),
        sa.Column("buyer_phone", sa.String(32), nullable=True),
        sa.Column("buyer_address", sa.Text(), nullable=True),
        sa.Column("buyer_tax_id", sa.String(32), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("quantity_available >= 0", name="ck_inventory_items_available_non_negative"),
        sa.ForeignKeyConstraint(["source_contract_id"], ["contracts.id"]),
        sa.ForeignKeyConstraint(["buyer_customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", name="uq_inventory_items_code"),
        sa.UniqueConstraint("source_contract_id", name="uq_inventory_items_source_contract"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("inventory_items", schema=None) as batch_op:
        batch_op.create_index("ix_inventory_items_source_type", ["source_type"], unique=False)
        batch_op.create_index("ix_inventory_items_consignment_contract_id", ["consignment_contract_id"], unique=False)
        batch_op.create_index("ix_inventory_items_status", ["status"], unique=False)
        batch_op.create_index("ix_inventory_items_buyer_customer_id", ["buyer_customer_id"], unique=False)
        batch_op.create_index("ix_inventory_items_created_at", ["created_at"], unique=False)
        batch_op.create_index("ix_inventory_items_status_created", ["status", "created_at"], unique=False)

    op.create_table(
        "consignment_contracts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("seller_customer_id", sa.Integer(), nullable=True),
        sa.Column("seller_name", sa.String(255), nullable=False),
        sa.Column("seller_id_card", sa.String(32), nullable=True),
        sa.Column("seller_phone", sa.String(32), nullable=True),
        sa.Column("seller_address", sa.Text(), nullable=True),
        sa.Column("item_name", sa.String(255), nullable=False),
        sa.Column("serial", sa.String(128), nullable=True),
        sa.Column("condition", sa.Text(), nullable=True),
        sa.Column("accessories", sa.Text(), nullable=True),
        sa.Column("photos", sa.JSON(), nullable=False),
        sa.Column("advance_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("net_to_seller", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("target_price", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(16), nullable=False, server_default="ACTIVE"),
        sa.Column("inventory_item_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["seller_customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["inventory_item_id"], ["inventory_items.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", name="uq_consignment_contracts_code"),
        sa.UniqueConstraint("inventory_item_id", name="uq_consignment_contracts_item"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("consignment_contracts", schema=None) as batch_op:
        batch_op.create_index("ix_consignment_contracts_seller_customer_id", ["seller_customer_id"], unique=False)
        batch_op.create_index("ix_consignment_contracts_status", ["status"], unique=False)
        batch_op.create_index("ix_consignment_contracts_created_at", ["created_at"], unique=False)
        batch_op.create_index("ix_consignment_contracts_status_created", ["status", "created_at"], unique=False)

    op.create_table(
        "cashbook_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(8), nullable=False),
        sa.Column("category", sa.String(64), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("profit", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("contract_id", sa.Integer(), nullable=True),
        sa.Column("inventory_item_id", sa.Integer(), nullable=True),
        sa.Column("buyer_customer_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.CheckConstraint("amount >= 0", name="ck_cashbook_entries_amount_non_negative"),
        sa.ForeignKeyConstraint(["contract_id"], ["contracts.id"]),
        sa.ForeignKeyConstraint(["inventory_item_id"], ["inventory_items.id"]),
        sa.ForeignKeyConstraint(["buyer_customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("cashbook_entries", schema=None) as batch_op:
        batch_op.create_index("ix_cashbook_entries_category", ["category"], unique=False)
        batch_op.create_index("ix_cashbook_entries_contract_id", ["contract_id"], unique=False)
        batch_op.create_index("ix_cashbook_entries_inventory_item_id", ["inventory_item_id"], unique=False)
        batch_op.create_index("ix_cashbook_entries_buyer_customer_id", ["buyer_customer_id"], unique=False)
        batch_op.create_index("ix_cashbook_entries_created", ["created_at"], unique=False)
        batch_op.create_index("ix_cashbook_entries_type_created", ["type", "created_at"], unique=False)

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("period", sa.String(16), nullable=False, server_default=""),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("document_type", "period", name="uq_document_sequences_type_period"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("document_sequences", schema=None) as batch_op:
        batch_op.create_index("ix_document_sequences_document_type", ["document_type"], unique=False)

    op.create_table(
        "access_pins",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("pin_hash", sa.String(255), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("role", name="uq_access_pins_role"),
        sqlite_autoincrement=True,
    )


def downgrade():
    op.drop_table("access_pins")
    op.drop_table("document_sequences")
    op.drop_table("cashbook_entries")
    op.drop_table("consignment_contracts")
    op.drop_table("inventory_items")
    op.drop_table("contract_action_logs")
    op.drop_table("contract_images")
    op.drop_table("contracts")
    op.drop_table("customers")
