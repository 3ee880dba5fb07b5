"""Initial schema with instruments table

Revision ID: 001
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "instruments",
        sa.Column("id", sa.Integer, autoincrement=True, nullable=False),
        sa.Column("stock_code", sa.String(32), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price", sa.String(32), nullable=True),
        sa.Column("change_amount", sa.String(32), nullable=True),
        sa.Column("sign", sa.String(8), nullable=True),
        sa.Column("change_rate", sa.String(32), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index("ix_instruments_stock_code", "instruments", ["stock_code"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_instruments_stock_code", table_name="instruments")
    op.drop_table("instruments")
