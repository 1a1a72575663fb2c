from alembic import op
import sqlalchemy as sa

revision = "20261102090000"
down_revision = "20261018120000"

def upgrade():
    op.create_table(
        'product_ratings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('user_email', sa.String(length=255), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint('product_id', 'user_email', name='uq_product_rating_user'),
    )

def downgrade():
    op.drop_table('product_ratings')
