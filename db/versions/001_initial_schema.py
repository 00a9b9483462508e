"""Initial schema: the seven tables the progression engine reads.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    # -- terms --
    op.create_table(
        "terms",
        sa.Column("term_id", sa.String(50), nullable=False),
        sa.Column("academic_year", sa.String(20), nullable=False),
        sa.Column("name", sa.String(50), nullable=False, server_default=""),
        sa.Column("sequence", sa.Integer(), nullable=False, server_default="1"),
        _created_at(),
        sa.PrimaryKeyConstraint("term_id"),
    )
    op.create_index("idx_terms_academic_year", "terms", ["academic_year"])

    # -- school_classes --
    op.create_table(
        "school_classes",
        sa.Column("class_id", sa.String(50), nullable=False),
        sa.Column("name", sa.String(100), nullable=False, server_default=""),
        sa.Column("school_level", sa.String(50), nullable=True),
        sa.Column("is_terminal", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.PrimaryKeyConstraint("class_id"),
    )

    # -- student_enrollments --
    op.create_table(
        "student_enrollments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("student_id", sa.String(50), nullable=False),
        sa.Column("class_id", sa.String(50), nullable=False),
        sa.Column("enrollment_order", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.ForeignKeyConstraint(
            ["class_id"], ["school_classes.class_id"], ondelete="RESTRICT"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("student_id"),
    )
    op.create_index(
        "idx_student_enrollments_class_id", "student_enrollments", ["class_id"]
    )

    # -- assignment_scores --
    op.create_table(
        "assignment_scores",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("student_id", sa.String(50), nullable=False),
        sa.Column("subject_id", sa.String(50), nullable=False),
        sa.Column("class_id", sa.String(50), nullable=False),
        sa.Column("term_id", sa.String(50), nullable=False),
        sa.Column("assignment_type_id", sa.String(50), nullable=False, server_default=""),
        sa.Column("score", sa.Numeric(7, 2), nullable=False),
        sa.Column("max_score", sa.Numeric(7, 2), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["term_id"], ["terms.term_id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_assignment_scores_term_student",
        "assignment_scores",
        ["term_id", "student_id"],
    )

    # -- grade_settings --
    op.create_table(
        "grade_settings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("grade", sa.String(10), nullable=False),
        sa.Column("score_range", sa.String(20), nullable=False),
        sa.Column("remarks", sa.String(100), nullable=False, server_default=""),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    # -- promotion_criteria --
    op.create_table(
        "promotion_criteria",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("academic_year", sa.String(20), nullable=True),
        sa.Column("school_level", sa.String(50), nullable=True),
        sa.Column("min_average", sa.Numeric(5, 2), nullable=False),
        sa.Column("max_failed_subjects", sa.Integer(), nullable=False),
        sa.Column("min_attendance_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("fail_threshold", sa.Numeric(5, 2), nullable=False),
        sa.Column("compulsory_subjects", sa.Text(), nullable=True),
        sa.Column("elective_subjects", sa.Text(), nullable=True),
        sa.Column("min_electives_to_pass", sa.Integer(), nullable=False, server_default="0"),
        _created_at("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("academic_year", "school_level"),
    )

    # -- attendance_summaries --
    op.create_table(
        "attendance_summaries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("student_id", sa.String(50), nullable=False),
        sa.Column("term_id", sa.String(50), nullable=False),
        sa.Column("days_present", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_days", sa.Integer(), nullable=False, server_default="0"),
        _created_at("updated_at"),
        sa.ForeignKeyConstraint(["term_id"], ["terms.term_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("student_id", "term_id"),
    )


def downgrade() -> None:
    op.drop_table("attendance_summaries")
    op.drop_table("promotion_criteria")
    op.drop_table("grade_settings")
    op.drop_table("assignment_scores")
    op.drop_table("student_enrollments")
    op.drop_table("school_classes")
    op.drop_table("terms")
