"""Create catalog, category, property and item tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

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
    """Create catalog tables."""
    # Catalogs table
    op.create_table(
        'catalogs',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('name', sa.String(128), nullable=False),
        sa.Column('is_virtual', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('default_language', sa.String(64), nullable=True),
        sa.Column('outer_id', sa.String(128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    # Categories table
    op.create_table(
        'categories',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('catalog_id', sa.String(128),
                  sa.ForeignKey('catalogs.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('parent_category_id', sa.String(128),
                  sa.ForeignKey('categories.id'), nullable=True, index=True),
        sa.Column('code', sa.String(64), nullable=True),
        sa.Column('name', sa.String(128), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    # Category links into virtual catalogs
    op.create_table(
        'category_relations',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('source_category_id', sa.String(128),
                  sa.ForeignKey('categories.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('target_catalog_id', sa.String(128), sa.ForeignKey('catalogs.id'), nullable=False),
        sa.Column('target_category_id', sa.String(128), sa.ForeignKey('categories.id'), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
    )

    # Property definitions (catalog level when category_id is null)
    op.create_table(
        'properties',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('catalog_id', sa.String(128),
                  sa.ForeignKey('catalogs.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('category_id', sa.String(128),
                  sa.ForeignKey('categories.id', ondelete='CASCADE'), nullable=True, index=True),
        sa.Column('name', sa.String(128), nullable=False),
        sa.Column('property_type', sa.String(64), nullable=False, server_default='Product'),
        sa.Column('value_type', sa.String(64), nullable=False, server_default='ShortText'),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_multivalue', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_dictionary', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('char_count_min', sa.Integer(), nullable=True),
        sa.Column('char_count_max', sa.Integer(), nullable=True),
        sa.Column('reg_exp', sa.String(2048), nullable=True),
    )

    # Items table (variations reference their main product)
    op.create_table(
        'items',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('code', sa.String(64), nullable=False, index=True),
        sa.Column('name', sa.String(1024), nullable=False),
        sa.Column('catalog_id', sa.String(128), sa.ForeignKey('catalogs.id'), nullable=False, index=True),
        sa.Column('category_id', sa.String(128), sa.ForeignKey('categories.id'), nullable=True, index=True),
        sa.Column('parent_id', sa.String(128), sa.ForeignKey('items.id'), nullable=True, index=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('is_buyable', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('track_inventory', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('gtin', sa.String(64), nullable=True),
        sa.Column('vendor', sa.String(128), nullable=True),
        sa.Column('product_type', sa.String(64), nullable=True),
        sa.Column('tax_type', sa.String(64), nullable=True),
        sa.Column('package_type', sa.String(64), nullable=True),
        sa.Column('weight_unit', sa.String(32), nullable=True),
        sa.Column('weight', sa.Numeric(18, 4), nullable=True),
        sa.Column('measure_unit', sa.String(32), nullable=True),
        sa.Column('height', sa.Numeric(18, 4), nullable=True),
        sa.Column('length', sa.Numeric(18, 4), nullable=True),
        sa.Column('width', sa.Numeric(18, 4), nullable=True),
        sa.Column('min_quantity', sa.Integer(), nullable=True),
        sa.Column('max_quantity', sa.Integer(), nullable=True),
        sa.Column('outer_id', sa.String(128), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(64), nullable=True),
        sa.Column('modified_by', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    # Create unique constraint on catalog_id + code
    op.create_unique_constraint(
        'uq_items_catalog_code',
        'items',
        ['catalog_id', 'code'],
    )

    # Item sections
    op.create_table(
        'item_images',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('item_id', sa.String(128),
                  sa.ForeignKey('items.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('url', sa.String(2083), nullable=False),
        sa.Column('name', sa.String(1024), nullable=True),
        sa.Column('language_code', sa.String(5), nullable=True),
        sa.Column('group', sa.String(64), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
    )

    op.create_table(
        'item_assets',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('item_id', sa.String(128),
                  sa.ForeignKey('items.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('url', sa.String(2083), nullable=False),
        sa.Column('name', sa.String(1024), nullable=True),
        sa.Column('mime_type', sa.String(128), nullable=True),
        sa.Column('size', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('language_code', sa.String(5), nullable=True),
        sa.Column('group', sa.String(64), nullable=True),
    )

    op.create_table(
        'item_editorial_reviews',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('item_id', sa.String(128),
                  sa.ForeignKey('items.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('review_type', sa.String(128), nullable=True),
        sa.Column('language_code', sa.String(64), nullable=True),
    )

    op.create_table(
        'property_values',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('item_id', sa.String(128),
                  sa.ForeignKey('items.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('property_id', sa.String(128), nullable=True),
        sa.Column('name', sa.String(64), nullable=False),
        sa.Column('value_type', sa.String(64), nullable=False),
        sa.Column('short_text_value', sa.String(512), nullable=True),
        sa.Column('long_text_value', sa.Text(), nullable=True),
        sa.Column('decimal_value', sa.Numeric(18, 5), nullable=True),
        sa.Column('integer_value', sa.Integer(), nullable=True),
        sa.Column('boolean_value', sa.Boolean(), nullable=True),
        sa.Column('datetime_value', sa.DateTime(timezone=True), nullable=True),
        sa.Column('locale', sa.String(64), nullable=True),
        sa.Column('alias', sa.String(512), nullable=True),
        sa.Column('outer_id', sa.String(128), nullable=True),
    )

    op.create_table(
        'category_item_relations',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('item_id', sa.String(128),
                  sa.ForeignKey('items.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('catalog_id', sa.String(128), sa.ForeignKey('catalogs.id'), nullable=False),
        sa.Column('category_id', sa.String(128), sa.ForeignKey('categories.id'), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
    )


def downgrade() -> None:
    """Drop catalog tables."""
    op.drop_table('category_item_relations')
    op.drop_table('property_values')
    op.drop_table('item_editorial_reviews')
    op.drop_table('item_assets')
    op.drop_table('item_images')
    op.drop_table('items')
    op.drop_table('properties')
    op.drop_table('category_relations')
    op.drop_table('categories')
    op.drop_table('catalogs')
