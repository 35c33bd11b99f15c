"""initial schema

Revision ID: 3c1f9a7d2b10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c1f9a7d2b10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_UUID = postgresql.UUID(as_uuid=True)
_TS = sa.DateTime(timezone=True)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("full_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="student"),
    )
    op.create_table(
        "courses",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("created_by", _UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", _TS, nullable=True),
    )
    op.create_table(
        "lessons",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column(
            "course_id",
            _UUID,
            sa.ForeignKey("courses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("estimated_duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("video_url", sa.Text(), nullable=True),
    )
    op.create_index("ix_lessons_course_id", "lessons", ["course_id"])
    op.create_table(
        "quizzes",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column(
            "course_id",
            _UUID,
            sa.ForeignKey("courses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "lesson_id",
            _UUID,
            sa.ForeignKey("lessons.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("passing_score", sa.Integer(), nullable=False),
        sa.Column("time_limit", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_quizzes_course_id", "quizzes", ["course_id"])
    op.create_table(
        "questions",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column(
            "quiz_id",
            _UUID,
            sa.ForeignKey("quizzes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("question_type", sa.String(length=8), nullable=False, server_default="MCQ"),
    )
    op.create_index("ix_questions_quiz_id", "questions", ["quiz_id"])
    op.create_table(
        "answers",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column(
            "question_id",
            _UUID,
            sa.ForeignKey("questions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_answers_question_id", "answers", ["question_id"])

    op.create_table(
        "enrollments",
        sa.Column("user_id", _UUID, sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("course_id", _UUID, sa.ForeignKey("courses.id"), primary_key=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="NotStarted"),
        sa.Column("enrolled_at", _TS, nullable=False),
        sa.Column("started_at", _TS, nullable=True),
        sa.Column("last_accessed", _TS, nullable=True),
        sa.Column("completed_at", _TS, nullable=True),
    )
    op.create_table(
        "lesson_completions",
        sa.Column(
            "lesson_id",
            _UUID,
            sa.ForeignKey("lessons.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("user_id", _UUID, sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("completed_at", _TS, nullable=False),
    )
    op.create_table(
        "lesson_video_progress",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column(
            "lesson_id",
            _UUID,
            sa.ForeignKey("lessons.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", _UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("last_watched_seconds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_updated_at", _TS, nullable=False),
        sa.UniqueConstraint("user_id", "lesson_id", name="uq_video_progress_user_lesson"),
    )
    op.create_table(
        "quiz_attempts",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column(
            "quiz_id",
            _UUID,
            sa.ForeignKey("quizzes.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            _UUID,
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("passed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("attempt_date", _TS, nullable=False),
    )
    op.create_index("ix_quiz_attempts_user_quiz", "quiz_attempts", ["user_id", "quiz_id"])
    op.create_table(
        "certificates",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column(
            "user_id",
            _UUID,
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "course_id",
            _UUID,
            sa.ForeignKey("courses.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("verification_code", sa.String(length=64), nullable=False, unique=True),
        sa.Column("generated_at", _TS, nullable=False),
        sa.UniqueConstraint("user_id", "course_id", name="uq_certificate_user_course"),
    )

    op.create_table(
        "chat_messages",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column(
            "course_id",
            _UUID,
            sa.ForeignKey("courses.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "sender_id",
            _UUID,
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "receiver_id",
            _UUID,
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("sent_at", _TS, nullable=False),
    )
    op.create_index(
        "ix_chat_messages_course_sent", "chat_messages", ["course_id", "sent_at"]
    )


def downgrade() -> None:
    for table in (
        "chat_messages",
        "certificates",
        "quiz_attempts",
        "lesson_video_progress",
        "lesson_completions",
        "enrollments",
        "answers",
        "questions",
        "quizzes",
        "lessons",
        "courses",
        "users",
    ):
        op.drop_table(table)
