"""Create catalog, product, client, mapping and state tables.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create catalog storage tables."""
    # Catalogs table
    op.create_table(
        'catalogs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(255), nullable=False, server_default=''),
        sa.Column('owner_id', sa.Integer(), nullable=True, index=True),
        sa.Column('is_custom', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('product_data', sa.Text(), nullable=False, server_default=''),
        sa.Column('legacy_product_ids', postgresql.JSONB(), nullable=True),
        sa.Column('client_id', sa.Integer(), nullable=True, index=True),
        sa.Column('client_type_id', sa.Integer(), nullable=True),
        sa.Column('cover', postgresql.JSONB(), nullable=True),
        sa.Column('client_ids', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    # Products table
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('bundle', sa.String(32), nullable=False, server_default='product', index=True),
        sa.Column('sku', sa.String(100), nullable=True, index=True),
        sa.Column('title', sa.String(500), nullable=False, server_default=''),
        sa.Column('client_ids', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('client_type_ids', postgresql.JSONB(), nullable=False, server_default='[]'),
    )

    # Clients table
    op.create_table(
        'clients',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(255), nullable=False, server_default=''),
        sa.Column('owner_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('client_type_id', sa.Integer(), nullable=True),
    )

    # Catalog/product mapping table
    op.create_table(
        'catalog_products',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('catalog_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('weight', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_unique_constraint(
        'uq_catalog_products_catalog_product',
        'catalog_products',
        ['catalog_id', 'product_id'],
    )
    op.create_index('ix_catalog_products_catalog_id', 'catalog_products', ['catalog_id'])
    op.create_index('ix_catalog_products_product_id', 'catalog_products', ['product_id'])

    # Key/value state table
    op.create_table(
        'key_value_state',
        sa.Column('name', sa.String(255), primary_key=True),
        sa.Column('value', postgresql.JSONB(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )


def downgrade() -> None:
    """Drop catalog storage tables."""
    op.drop_table('key_value_state')
    op.drop_index('ix_catalog_products_product_id', table_name='catalog_products')
    op.drop_index('ix_catalog_products_catalog_id', table_name='catalog_products')
    op.drop_table('catalog_products')
    op.drop_table('clients')
    op.drop_table('products')
    op.drop_table('catalogs')
