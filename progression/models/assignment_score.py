"""SQLAlchemy ORM model for the assignment_scores table."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from progression.models.base import Base


class AssignmentScore(Base):
    """One graded assessment, written by the score-entry screen.

    Attributes:
        id: Auto-incrementing primary key.
        student_id: Student number.
        subject_id: Subject code.
        class_id: Class the score was entered for.
        term_id: Foreign key to terms.
        assignment_type_id: Assessment type (classwork, homework, exam...).
        score: Marks obtained.
        max_score: Marks available.
        created_at: Timestamp of record creation.
    """

    __tablename__ = "assignment_scores"
    __table_args__ = (Index("idx_assignment_scores_term_student", "term_id", "student_id"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    student_id: Mapped[str] = mapped_column(String(50), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(50), nullable=False)
    class_id: Mapped[str] = mapped_column(String(50), nullable=False)
    term_id: Mapped[str] = mapped_column(
        ForeignKey("terms.term_id", ondelete="RESTRICT"), nullable=False
    )
    assignment_type_id: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    score: Mapped[Decimal] = mapped_column(Numeric(7, 2), nullable=False)
    max_score: Mapped[Decimal] = mapped_column(Numeric(7, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default="CURRENT_TIMESTAMP"
    )

    def __repr__(self) -> str:
        return (
            f"<AssignmentScore(student='{self.student_id}', subject='{self.subject_id}', "
            f"{self.score}/{self.max_score})>"
        )
