"""Initial glassworks schema: tenants, catalog, tax, sequences, documents

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration adds:
1. organizations and tax_rates (tenant root + GST configuration)
2. glass_rates and process_definitions (rate table + process master)
3. number_sequences (per-org document numbering)
4. quotes / quote_lines, orders / order_lines, invoices, payments
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _now():
    return sa.text('(CURRENT_TIMESTAMP)')


def _totals_columns():
    return [
        sa.Column('tax_mode', sa.String(length=8), nullable=False, server_default='INTRA'),
        sa.Column('discount_percent', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('subtotal', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('discount_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('after_discount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('delivery_charge', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('loading_charge', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('labour_charge', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('fittings_charge', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('additional_charge', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('cgst', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('sgst', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('igst', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('tax', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('total', sa.Numeric(14, 2), nullable=False, server_default='0'),
    ]


def _line_columns():
    return [
        sa.Column('line_no', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('glass_type', sa.String(length=120), nullable=False),
        sa.Column('thickness', sa.String(length=16), nullable=False),
        sa.Column('width_mm', sa.Numeric(12, 2), nullable=False),
        sa.Column('height_mm', sa.Numeric(12, 2), nullable=False),
        sa.Column('width_in', sa.Numeric(12, 2), nullable=False),
        sa.Column('height_in', sa.Numeric(12, 2), nullable=False),
        sa.Column('width_ft', sa.Numeric(12, 2), nullable=False),
        sa.Column('height_ft', sa.Numeric(12, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('area_sqft', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_area_sqft', sa.Numeric(14, 2), nullable=False),
        sa.Column('total_area_sqm', sa.Numeric(14, 2), nullable=False),
        sa.Column('perimeter_ft', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_length_ft', sa.Numeric(14, 2), nullable=False),
        sa.Column('glass_rate', sa.Numeric(12, 2), nullable=False),
        sa.Column('base_glass_price', sa.Numeric(14, 2), nullable=False),
        sa.Column('process_total', sa.Numeric(14, 2), nullable=False),
        sa.Column('line_total', sa.Numeric(14, 2), nullable=False),
        sa.Column('processes', sa.JSON(), nullable=False),
        sa.Column('diagnostics', sa.JSON(), nullable=False),
    ]


def upgrade():
    # ==========================================================================
    # 1. TENANTS & TAX
    # ==========================================================================
    op.create_table('organizations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('gst_enabled', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('state_code', sa.String(length=8), nullable=True),
        sa.Column('dimension_step_inches', sa.Integer(), nullable=True),
        sa.Column('min_line_charge', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('organizations', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_organizations_code'), ['code'], unique=True)
        batch_op.create_index(batch_op.f('ix_organizations_is_active'), ['is_active'], unique=False)

    op.create_table('tax_rates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=16), nullable=False),
        sa.Column('rate_percent', sa.Numeric(6, 2), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'name', name='uq_tax_rates_org_name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('tax_rates', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_tax_rates_org_id'), ['org_id'], unique=False)

    # ==========================================================================
    # 2. CATALOG
    # ==========================================================================
    op.create_table('glass_rates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('glass_type', sa.String(length=120), nullable=False),
        sa.Column('rate_3_5mm', sa.Numeric(12, 2), nullable=True),
        sa.Column('rate_4mm', sa.Numeric(12, 2), nullable=True),
        sa.Column('rate_5mm', sa.Numeric(12, 2), nullable=True),
        sa.Column('rate_6mm', sa.Numeric(12, 2), nullable=True),
        sa.Column('rate_8mm', sa.Numeric(12, 2), nullable=True),
        sa.Column('rate_10mm', sa.Numeric(12, 2), nullable=True),
        sa.Column('rate_12mm', sa.Numeric(12, 2), nullable=True),
        sa.Column('rate_19mm', sa.Numeric(12, 2), nullable=True),
        sa.Column('rate_dgu', sa.Numeric(12, 2), nullable=True),
        sa.Column('custom_rates', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'glass_type', name='uq_glass_rates_org_type'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('glass_rates', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_glass_rates_org_id'), ['org_id'], unique=False)

    op.create_table('process_definitions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('pricing_type', sa.String(length=1), nullable=False),
        sa.Column('rate', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'code', name='uq_process_definitions_org_code'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('process_definitions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_process_definitions_org_id'), ['org_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_process_definitions_is_active'), ['is_active'], unique=False)

    # ==========================================================================
    # 3. NUMBER SEQUENCES
    # ==========================================================================
    op.create_table('number_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('pattern', sa.String(length=64), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'document_type', name='uq_number_sequences_org_type'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('number_sequences', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_number_sequences_org_id'), ['org_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_number_sequences_document_type'), ['document_type'], unique=False)

    # ==========================================================================
    # 4. DOCUMENTS
    # ==========================================================================
    op.create_table('quotes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('document_number', sa.String(length=64), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='DRAFT'),
        sa.Column('needs_pricing_review', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_totals_columns(),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'document_number', name='uq_quotes_org_docnum'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('quotes', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_quotes_org_id'), ['org_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_quotes_status'), ['status'], unique=False)
        batch_op.create_index('ix_quotes_org_status_created', ['org_id', 'status', 'created_at'], unique=False)

    op.create_table('quote_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quote_id', sa.Integer(), nullable=False),
        *_line_columns(),
        sa.ForeignKeyConstraint(['quote_id'], ['quotes.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('quote_id', 'line_no', name='uq_quote_lines_quote_line_no'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('quote_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_quote_lines_quote_id'), ['quote_id'], unique=False)

    op.create_table('orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('document_number', sa.String(length=64), nullable=False),
        sa.Column('quote_id', sa.Integer(), nullable=True),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('balance_amount', sa.Numeric(14, 2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_totals_columns(),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ),
        sa.ForeignKeyConstraint(['quote_id'], ['quotes.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'document_number', name='uq_orders_org_docnum'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('orders', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_orders_org_id'), ['org_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_orders_quote_id'), ['quote_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_orders_status'), ['status'], unique=False)
        batch_op.create_index('ix_orders_org_status_created', ['org_id', 'status', 'created_at'], unique=False)

    op.create_table('order_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        *_line_columns(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'line_no', name='uq_order_lines_order_line_no'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('order_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_order_lines_order_id'), ['order_id'], unique=False)

    op.create_table('invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('document_number', sa.String(length=64), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='UNPAID'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_totals_columns(),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'document_number', name='uq_invoices_org_docnum'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('invoices', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_invoices_org_id'), ['org_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_invoices_order_id'), ['order_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_invoices_payment_status'), ['payment_status'], unique=False)

    op.create_table('payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('method', sa.String(length=32), nullable=True),
        sa.Column('reference', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_payments_org_id'), ['org_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_payments_invoice_id'), ['invoice_id'], unique=False)


def downgrade():
    for table in (
        'payments',
        'invoices',
        'order_lines',
        'orders',
        'quote_lines',
        'quotes',
        'number_sequences',
        'process_definitions',
        'glass_rates',
        'tax_rates',
        'organizations',
    ):
        op.drop_table(table)
