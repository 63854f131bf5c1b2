"""create_generation_records

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2026-10-19 09:12:41.118202

"""

from typing import Sequence, Union

import sqlalchemy as sa
import sqlmodel

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1a9c2d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create generation_records table."""
    op.create_table(
        "generation_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        # NULL user_id marks an anonymous generation
        sa.Column("user_id", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column(
            "kind",
            sa.Enum("TEXT_TO_IMAGE", "IMAGE_TO_IMAGE", name="generationkind"),
            nullable=False,
        ),
        sa.Column("prompt", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("input_images", sa.JSON(), nullable=False),
        sa.Column("provider_job_id", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column(
            "status",
            sa.Enum("QUEUED", "PROCESSING", "SUCCEEDED", "FAILED", name="generationstatus"),
            nullable=False,
        ),
        sa.Column("output_image_url", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("error", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_generation_records_user_id", "generation_records", ["user_id"])
    op.create_index("ix_generation_records_kind", "generation_records", ["kind"])
    op.create_index("ix_generation_records_status", "generation_records", ["status"])


def downgrade() -> None:
    """Drop generation_records table."""
    op.drop_index("ix_generation_records_status", table_name="generation_records")
    op.drop_index("ix_generation_records_kind", table_name="generation_records")
    op.drop_index("ix_generation_records_user_id", table_name="generation_records")
    op.drop_table("generation_records")
    sa.Enum(name="generationstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="generationkind").drop(op.get_bind(), checkfirst=True)
