"""Initial schema - products, receipt aliases, household inventories

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create products table
    op.create_table(
        'products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=500), nullable=False),
        sa.Column('name_key', sa.String(length=500), nullable=False),
        sa.Column('catalog_source_id', sa.String(length=100), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('expiration_days', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sa.UniqueConstraint('name_key', name='uq_products_name_key')
    )
    op.create_index('idx_products_catalog_source', 'products', ['catalog_source_id'])

    # Create product_receipt_names table
    op.create_table(
        'product_receipt_names',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('receipt_text', sa.String(length=500), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['product_id'], ['products.id'],
            name='fk_product_receipt_names_product_id_products', ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_product_receipt_names'),
        sa.UniqueConstraint('receipt_text', name='uq_product_receipt_names_receipt_text')
    )
    op.create_index('idx_product_receipt_names_product', 'product_receipt_names', ['product_id'])

    # Create house_inventories table
    op.create_table(
        'house_inventories',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('house_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('purchase_date', sa.Date(), nullable=False),
        sa.Column('best_before_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['product_id'], ['products.id'],
            name='fk_house_inventories_product_id_products', ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_house_inventories')
    )
    op.create_index('idx_house_inventories_house', 'house_inventories', ['house_id'])
    op.create_index('idx_house_inventories_best_before', 'house_inventories', ['house_id', 'best_before_date'])


def downgrade() -> None:
    op.drop_index('idx_house_inventories_best_before', table_name='house_inventories')
    op.drop_index('idx_house_inventories_house', table_name='house_inventories')
    op.drop_table('house_inventories')

    op.drop_index('idx_product_receipt_names_product', table_name='product_receipt_names')
    op.drop_table('product_receipt_names')

    op.drop_index('idx_products_catalog_source', table_name='products')
    op.drop_table('products')
