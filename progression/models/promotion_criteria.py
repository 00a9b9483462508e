"""SQLAlchemy ORM model for the promotion_criteria table."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from progression.models.base import Base


class PromotionCriteria(Base):
    """Promotion thresholds for an academic year and optional school level.

    Attributes:
        id: Auto-incrementing primary key.
        academic_year: Year label; NULL for standing rules.
        school_level: Level the rule applies to; NULL for every level.
        min_average: Minimum overall average (%).
        max_failed_subjects: Maximum failed subjects.
        min_attendance_percent: Minimum attendance (%).
        fail_threshold: Per-subject pass mark (%).
        compulsory_subjects: JSON string of subject ids that must be passed.
        elective_subjects: JSON string of elective subject ids.
        min_electives_to_pass: Electives from the pool that must be passed.
        updated_at: Timestamp of last edit.
    """

    __tablename__ = "promotion_criteria"
    __table_args__ = (UniqueConstraint("academic_year", "school_level"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    academic_year: Mapped[str | None] = mapped_column(String(20), nullable=True)
    school_level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    min_average: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    max_failed_subjects: Mapped[int] = mapped_column(Integer, nullable=False)
    min_attendance_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    fail_threshold: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    compulsory_subjects: Mapped[str | None] = mapped_column(Text, nullable=True)
    elective_subjects: Mapped[str | None] = mapped_column(Text, nullable=True)
    min_electives_to_pass: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default="CURRENT_TIMESTAMP"
    )

    def __repr__(self) -> str:
        return (
            f"<PromotionCriteria(year='{self.academic_year}', level='{self.school_level}')>"
        )
