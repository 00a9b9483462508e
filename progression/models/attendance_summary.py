"""SQLAlchemy ORM model for the attendance_summaries table."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from progression.models.base import Base


class AttendanceSummary(Base):
    """Days present out of school days for a student and term.

    Attributes:
        id: Auto-incrementing primary key.
        student_id: Student number.
        term_id: Foreign key to terms.
        days_present: Days the student attended.
        total_days: School days in the term.
        updated_at: Timestamp of last update by the attendance subsystem.
    """

    __tablename__ = "attendance_summaries"
    __table_args__ = (UniqueConstraint("student_id", "term_id"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    student_id: Mapped[str] = mapped_column(String(50), nullable=False)
    term_id: Mapped[str] = mapped_column(
        ForeignKey("terms.term_id", ondelete="CASCADE"), nullable=False
    )
    days_present: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default="CURRENT_TIMESTAMP"
    )

    @property
    def attendance_percent(self) -> float | None:
        """Attendance as a 0-100 percentage, or None when no school days recorded."""
        if not self.total_days or self.total_days <= 0:
            return None
        return min(100.0, max(0.0, self.days_present * 100 / self.total_days))

    def __repr__(self) -> str:
        return (
            f"<AttendanceSummary(student='{self.student_id}', term='{self.term_id}', "
            f"{self.days_present}/{self.total_days})>"
        )
