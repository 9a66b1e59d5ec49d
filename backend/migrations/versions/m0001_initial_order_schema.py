"""initial order schema

Revision ID: m0001_order_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the MAELZA order core from scratch:
- products, customers, suppliers: catalog and parties
- sales, sale_items, accounts_receivable
- purchases, purchase_items, accounts_payable
- document_sequences: numbering counters
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'm0001_order_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(with_updated: bool = True):
    cols = [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]
    if with_updated:
        cols.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                      server_default=sa.text('CURRENT_TIMESTAMP'))
        )
    return cols


def _party_table(name: str):
    op.create_table(
        name,
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('tax_id', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index(f'ix_{name}_name', name, ['name'])


def _document_tables(table: str, party_table: str, party_fk: str, item_table: str,
                     item_fk: str, account_table: str, default_status: str):
    op.create_table(
        table,
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('number', sa.String(length=32), nullable=False),
        sa.Column(party_fk, sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default=default_status),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint([party_fk], [f'{party_table}.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('number', name=f'uq_{table}_number'),
        sqlite_autoincrement=True
    )
    op.create_index(f'ix_{table}_{party_fk}', table, [party_fk])
    op.create_index(f'ix_{table}_user_id', table, ['user_id'])
    op.create_index(f'ix_{table}_status', table, ['status'])
    op.create_index(f'ix_{table}_status_date', table, ['status', 'date'])

    op.create_table(
        item_table,
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column(item_fk, sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint([item_fk], [f'{table}.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name=f'ck_{item_table}_quantity_positive'),
        sa.CheckConstraint('unit_price_cents >= 0', name=f'ck_{item_table}_price_nonnegative'),
        sqlite_autoincrement=True
    )
    op.create_index(f'ix_{item_table}_{item_fk}', item_table, [item_fk])
    op.create_index(f'ix_{item_table}_product_id', item_table, ['product_id'])

    op.create_table(
        account_table,
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column(item_fk, sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('paid_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        *_timestamps(with_updated=False),
        sa.ForeignKeyConstraint([item_fk], [f'{table}.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index(f'ix_{account_table}_{item_fk}', account_table, [item_fk])
    op.create_index(f'ix_{account_table}_status', account_table, ['status'])


def upgrade():
    # ============================================================================
    # products: stock never negative, code unique
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('unit', sa.String(length=32), nullable=False, server_default='UND'),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sale_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('min_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', name='uq_products_code'),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_nonnegative'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_index('ix_products_active', 'products', ['is_active'])

    _party_table('customers')
    _party_table('suppliers')

    # ============================================================================
    # sales / purchases with their lines and receivables / payables
    # ============================================================================
    _document_tables('sales', 'customers', 'customer_id', 'sale_items', 'sale_id',
                     'accounts_receivable', 'pending')
    _document_tables('purchases', 'suppliers', 'supplier_id', 'purchase_items', 'purchase_id',
                     'accounts_payable', 'PENDING')

    # ============================================================================
    # document_sequences: one counter per (document_type, scope_key)
    # ============================================================================
    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('scope_key', sa.String(length=16), nullable=False, server_default=''),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_type', 'scope_key', name='uq_doc_sequences_type_scope'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_document_sequences_document_type', 'document_sequences', ['document_type'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('document_sequences')
    op.drop_table('accounts_payable')
    op.drop_table('purchase_items')
    op.drop_table('purchases')
    op.drop_table('accounts_receivable')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('suppliers')
    op.drop_table('customers')
    op.drop_table('products')
