"""SQLAlchemy ORM model for the student_enrollments table."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from progression.models.base import Base

if TYPE_CHECKING:
    from progression.models.school_class import SchoolClass


class StudentEnrollment(Base):
    """Current class of a student, in admission order.

    Attributes:
        id: Auto-incrementing primary key.
        student_id: Student number; one active enrolment per student.
        class_id: Foreign key to school_classes.
        enrollment_order: Admission order; the final ranking tie-break.
        created_at: Timestamp of record creation.
        school_class: Relationship to the class.
    """

    __tablename__ = "student_enrollments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    student_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    class_id: Mapped[str] = mapped_column(
        ForeignKey("school_classes.class_id", ondelete="RESTRICT"), nullable=False, index=True
    )
    enrollment_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default="CURRENT_TIMESTAMP"
    )

    school_class: Mapped[SchoolClass] = relationship("SchoolClass", back_populates="enrollments")

    def __repr__(self) -> str:
        return f"<StudentEnrollment(student='{self.student_id}', class='{self.class_id}')>"
