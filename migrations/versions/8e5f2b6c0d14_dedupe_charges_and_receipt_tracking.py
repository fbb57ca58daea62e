"""dedupe recurring charges by gateway payment id; track donor receipt delivery

Revision ID: 8e5f2b6c0d14
Revises: 4a7c1e2d9b30
Create Date: 2026-09-16 14:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '8e5f2b6c0d14'
down_revision = '4a7c1e2d9b30'
branch_labels = None
depends_on = None


def upgrade():
    # existing duplicates must be resolved by hand before this runs
    with op.batch_alter_table('payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_payments_razorpay_payment_id'), ['razorpay_payment_id'], unique=True)

    with op.batch_alter_table('donations', schema=None) as batch_op:
        batch_op.add_column(sa.Column('confirmation_email_sent_at', sa.DateTime(), nullable=True))


def downgrade():
    with op.batch_alter_table('donations', schema=None) as batch_op:
        batch_op.drop_column('confirmation_email_sent_at')

    with op.batch_alter_table('payments', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_payments_razorpay_payment_id'))
