"""Create review schedule and attempt history tables."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20260915_0002"
down_revision: Union[str, None] = "20260914_0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "review_schedules",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("item_type", sa.String(length=16), nullable=False),
        sa.Column("item_id", sa.String(length=64), nullable=False),
        sa.Column("topic_id", sa.String(length=64), nullable=True),
        sa.Column("subject_id", sa.String(length=64), nullable=True),
        sa.Column("repetitions", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("interval_days", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("ease_factor", sa.Float(), server_default=sa.text("2.5"), nullable=False),
        sa.Column("correct_streak", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("last_review", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_review_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_result", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ("topic_id",),
            ("study_topics.id",),
            name="fk_review_schedules_topic_id",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("item_type", "item_id", name="uq_review_schedules_item"),
    )
    op.create_index(
        "ix_review_schedules_item_type_next_review_at",
        "review_schedules",
        ("item_type", "next_review_at"),
    )
    op.create_index("ix_review_schedules_subject_id", "review_schedules", ("subject_id",))

    op.create_table(
        "review_attempts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("schedule_id", sa.String(length=36), nullable=False),
        sa.Column("attempt_id", sa.String(length=64), nullable=True),
        sa.Column("is_correct", sa.Boolean(), nullable=False),
        sa.Column("quality", sa.Integer(), nullable=False),
        sa.Column("confidence", sa.String(length=16), nullable=True),
        sa.Column("room", sa.String(length=16), nullable=True),
        sa.Column("difficulty", sa.String(length=16), nullable=True),
        sa.Column(
            "reviewed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ("schedule_id",),
            ("review_schedules.id",),
            name="fk_review_attempts_schedule_id",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("attempt_id", name="uq_review_attempts_attempt_id"),
    )
    op.create_index(
        "ix_review_attempts_schedule_id_reviewed_at",
        "review_attempts",
        ("schedule_id", "reviewed_at"),
    )


def downgrade() -> None:
    op.drop_index("ix_review_attempts_schedule_id_reviewed_at", table_name="review_attempts")
    op.drop_table("review_attempts")
    op.drop_index("ix_review_schedules_subject_id", table_name="review_schedules")
    op.drop_index("ix_review_schedules_item_type_next_review_at", table_name="review_schedules")
    op.drop_table("review_schedules")
