"""Initial catalog and inventory schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('categories',
        sa.Column('id', sa.String(40), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(120), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('parent_id', sa.String(40)),
        sa.Column('image_url', sa.String(255)),
        sa.Column('display_order', sa.Integer(), server_default='0'),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['parent_id'], ['categories.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sa.UniqueConstraint('slug'),
    )
    op.create_index('ix_categories_parent_id', 'categories', ['parent_id'])
    op.create_index('ix_categories_display_order', 'categories', ['display_order'])
    op.create_index('ix_categories_is_active', 'categories', ['is_active'])

    op.create_table('products',
        sa.Column('id', sa.String(40), nullable=False),
        sa.Column('sku', sa.String(64), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(220), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('short_description', sa.String(500)),
        sa.Column('category_id', sa.String(40), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('original_price', sa.Numeric(10, 2)),
        sa.Column('stock_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('stock_status', sa.String(20), nullable=False, server_default='out_of_stock'),
        sa.Column('low_stock_threshold', sa.Integer(), nullable=False, server_default='20'),
        sa.Column('reorder_level', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('is_featured', sa.Boolean(), server_default=sa.false()),
        sa.Column('images', sa.JSON()),
        sa.Column('rating_average', sa.Float(), server_default='0'),
        sa.Column('rating_count', sa.Integer(), server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_products_stock_non_negative'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )
    op.create_index('ix_products_sku', 'products', ['sku'], unique=True)
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_index('ix_products_category_id', 'products', ['category_id'])
    op.create_index('ix_products_price', 'products', ['price'])
    op.create_index('ix_products_stock_quantity', 'products', ['stock_quantity'])
    op.create_index('ix_products_stock_status', 'products', ['stock_status'])
    op.create_index('ix_products_is_active', 'products', ['is_active'])
    op.create_index('ix_products_is_featured', 'products', ['is_featured'])
    op.create_index('ix_products_created_at', 'products', ['created_at'])
    op.create_index('idx_products_category_status', 'products', ['category_id', 'status'])

    op.create_table('reviews',
        sa.Column('id', sa.String(40), nullable=False),
        sa.Column('product_id', sa.String(40), nullable=False),
        sa.Column('author_name', sa.String(100), nullable=False),
        sa.Column('author_verified', sa.Boolean(), server_default=sa.false()),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(200)),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('helpful_count', sa.Integer(), server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_reviews_rating_range'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_reviews_product_id', 'reviews', ['product_id'])

    op.create_table('cart_items',
        sa.Column('id', sa.String(40), nullable=False),
        sa.Column('session_id', sa.String(128), nullable=False),
        sa.Column('product_id', sa.String(40), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('selected_variants', sa.JSON()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cart_items_session_id', 'cart_items', ['session_id'])

    op.create_table('wishlist_items',
        sa.Column('id', sa.String(40), nullable=False),
        sa.Column('session_id', sa.String(128), nullable=False),
        sa.Column('product_id', sa.String(40), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', 'product_id', name='uq_wishlist_session_product'),
    )
    op.create_index('ix_wishlist_items_session_id', 'wishlist_items', ['session_id'])

    op.create_table('inventory_adjustments',
        sa.Column('id', sa.String(40), nullable=False),
        sa.Column('product_id', sa.String(40), nullable=False),
        sa.Column('adjustment_type', sa.String(20), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('notes', sa.Text()),
        sa.Column('created_by', sa.String(100)),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inventory_adjustments_product_id', 'inventory_adjustments', ['product_id'])
    op.create_index('ix_inventory_adjustments_adjustment_type', 'inventory_adjustments', ['adjustment_type'])
    op.create_index('ix_inventory_adjustments_created_at', 'inventory_adjustments', ['created_at'])

    op.create_table('low_stock_alerts',
        sa.Column('id', sa.String(40), nullable=False),
        sa.Column('product_id', sa.String(40), nullable=False),
        sa.Column('alert_type', sa.String(20), nullable=False, server_default='low_stock'),
        sa.Column('current_quantity', sa.Integer(), nullable=False),
        sa.Column('threshold', sa.Integer(), nullable=False),
        sa.Column('is_resolved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('resolved_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_low_stock_alerts_product_id', 'low_stock_alerts', ['product_id'])
    op.create_index('ix_low_stock_alerts_is_resolved', 'low_stock_alerts', ['is_resolved'])
    op.create_index(
        'uq_low_stock_alerts_open', 'low_stock_alerts', ['product_id', 'alert_type'],
        unique=True,
        sqlite_where=sa.text('is_resolved = 0'),
        postgresql_where=sa.text('is_resolved = false'),
    )


def downgrade():
    op.drop_table('low_stock_alerts')
    op.drop_table('inventory_adjustments')
    op.drop_table('wishlist_items')
    op.drop_table('cart_items')
    op.drop_table('reviews')
    op.drop_table('products')
    op.drop_table('categories')
