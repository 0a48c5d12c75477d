"""Create subject and topic tables used to group review schedules."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20260914_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "study_subjects",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
    )

    op.create_table(
        "study_topics",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("subject_id", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(
            ("subject_id",),
            ("study_subjects.id",),
            name="fk_study_topics_subject_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_study_topics_subject_id", "study_topics", ("subject_id",))


def downgrade() -> None:
    op.drop_index("ix_study_topics_subject_id", table_name="study_topics")
    op.drop_table("study_topics")
    op.drop_table("study_subjects")
