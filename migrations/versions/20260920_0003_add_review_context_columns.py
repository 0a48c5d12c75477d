"""Record the confidence and room observed at the latest review."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20260920_0003"
down_revision: Union[str, None] = "20260915_0002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "review_schedules",
        sa.Column("last_confidence", sa.String(length=16), nullable=True),
    )
    op.add_column(
        "review_schedules",
        sa.Column("last_room", sa.String(length=16), nullable=True),
    )


def downgrade() -> None:
    op.drop_column("review_schedules", "last_room")
    op.drop_column("review_schedules", "last_confidence")
