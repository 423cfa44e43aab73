"""initial schema

Revision ID: 3b7e0c1d9a42
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b7e0c1d9a42"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

UUID = postgresql.UUID(as_uuid=True)
TS = sa.DateTime(timezone=True)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("first_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column("permissions", postgresql.ARRAY(sa.String), nullable=True),
    )
    op.create_table(
        "courses",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("instructor_id", UUID, nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="draft"),
        sa.Column("total_students", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_table(
        "course_sections",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("course_id", UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
    )
    op.create_index("ix_course_sections_course_id", "course_sections", ["course_id"])
    op.create_table(
        "course_lectures",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "section_id", UUID, sa.ForeignKey("course_sections.id"), nullable=False
        ),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("content_id", UUID, nullable=True),
        sa.Column("duration_min", sa.Integer, nullable=True),
        sa.Column("is_preview", sa.Boolean, nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_course_lectures_section_id", "course_lectures", ["section_id"])
    op.create_table(
        "badges",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("criteria", sa.String(32), nullable=False),
        sa.Column("icon", sa.Text, nullable=False, server_default=""),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("threshold", sa.Integer, nullable=True),
        sa.Column("min_score", sa.Float, nullable=True),
        sa.Column("course_id", UUID, sa.ForeignKey("courses.id"), nullable=True),
        sa.Column("is_secret", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "payments",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("student_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("course_id", UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("amount", sa.Float, nullable=False),
        sa.Column("currency", sa.String(8), nullable=False, server_default="USD"),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("method", sa.String(32), nullable=False, server_default="other"),
    )
    op.create_table(
        "enrollments",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("student_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("course_id", UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column(
            "payment_id", UUID, sa.ForeignKey("payments.id"), nullable=True, unique=True
        ),
        sa.Column("enrolled_at", TS, nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("progress", sa.Integer, nullable=False, server_default="0"),
        sa.Column("completed_at", TS, nullable=True),
        sa.Column("last_accessed_at", TS, nullable=True),
        sa.UniqueConstraint("student_id", "course_id"),
    )
    op.create_table(
        "progress",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("student_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("course_id", UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column(
            "enrollment_id", UUID, sa.ForeignKey("enrollments.id"), nullable=False
        ),
        sa.Column("overall_progress", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_accessed", TS, nullable=True),
        sa.UniqueConstraint("student_id", "course_id"),
    )
    op.create_table(
        "assessments",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("course_id", UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("instructor_id", UUID, nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("total_points", sa.Integer, nullable=False, server_default="0"),
        sa.Column("pass_percentage", sa.Float, nullable=True),
        sa.Column(
            "is_published", sa.Boolean, nullable=False, server_default=sa.false()
        ),
    )
    op.create_index("ix_assessments_course_id", "assessments", ["course_id"])
    op.create_table(
        "assessment_questions",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "assessment_id", UUID, sa.ForeignKey("assessments.id"), nullable=False
        ),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("text", sa.Text, nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("correct_answer", sa.Text, nullable=True),
        sa.Column("points", sa.Integer, nullable=False, server_default="1"),
    )
    op.create_index(
        "ix_assessment_questions_assessment_id",
        "assessment_questions",
        ["assessment_id"],
    )
    op.create_table(
        "assessment_options",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "question_id",
            UUID,
            sa.ForeignKey("assessment_questions.id"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("text", sa.Text, nullable=False),
        sa.Column("is_correct", sa.Boolean, nullable=False, server_default=sa.false()),
    )
    op.create_index(
        "ix_assessment_options_question_id", "assessment_options", ["question_id"]
    )
    op.create_table(
        "progress_lecture_entries",
        sa.Column(
            "progress_id", UUID, sa.ForeignKey("progress.id"), primary_key=True
        ),
        sa.Column("section_id", UUID, primary_key=True),
        sa.Column("lecture_id", UUID, primary_key=True),
        sa.Column("completed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("completion_date", TS, nullable=True),
        sa.Column("time_spent", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_accessed", TS, nullable=True),
    )
    op.create_table(
        "progress_assessment_entries",
        sa.Column(
            "progress_id", UUID, sa.ForeignKey("progress.id"), primary_key=True
        ),
        sa.Column(
            "assessment_id", UUID, sa.ForeignKey("assessments.id"), primary_key=True
        ),
        sa.Column(
            "status", sa.String(16), nullable=False, server_default="not_started"
        ),
        sa.Column("score", sa.Float, nullable=True),
        sa.Column("total_points", sa.Integer, nullable=True),
        sa.Column("submission_date", TS, nullable=True),
        sa.Column("grading_date", TS, nullable=True),
        sa.Column("graded_by", UUID, nullable=True),
        sa.Column("feedback", sa.Text, nullable=True),
    )
    op.create_table(
        "student_enrolled_courses",
        sa.Column("student_id", UUID, sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("course_id", UUID, sa.ForeignKey("courses.id"), primary_key=True),
        sa.Column("enrolled_at", TS, nullable=False),
    )
    op.create_table(
        "student_completed_courses",
        sa.Column("student_id", UUID, sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("course_id", UUID, sa.ForeignKey("courses.id"), primary_key=True),
        sa.Column("added_at", TS, nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        "student_badges",
        sa.Column("student_id", UUID, sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("badge_id", UUID, sa.ForeignKey("badges.id"), primary_key=True),
        sa.Column("granted_at", TS, nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        "student_assessment_results",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("student_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("course_id", UUID, nullable=False),
        sa.Column("assessment_id", UUID, nullable=False),
        sa.Column("score", sa.Float, nullable=False),
        sa.Column("total_points", sa.Integer, nullable=False),
        sa.Column("passed", sa.Boolean, nullable=False),
        sa.Column("taken_at", TS, nullable=False),
    )
    op.create_index(
        "ix_student_assessment_results_student_id",
        "student_assessment_results",
        ["student_id"],
    )


def downgrade() -> None:
    op.drop_table("student_assessment_results")
    op.drop_table("student_badges")
    op.drop_table("student_completed_courses")
    op.drop_table("student_enrolled_courses")
    op.drop_table("progress_assessment_entries")
    op.drop_table("progress_lecture_entries")
    op.drop_table("assessment_options")
    op.drop_table("assessment_questions")
    op.drop_table("assessments")
    op.drop_table("progress")
    op.drop_table("enrollments")
    op.drop_table("payments")
    op.drop_table("badges")
    op.drop_table("course_lectures")
    op.drop_table("course_sections")
    op.drop_table("courses")
    op.drop_table("users")
