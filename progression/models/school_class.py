"""SQLAlchemy ORM model for the school_classes table."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from progression.models.base import Base

if TYPE_CHECKING:
    from progression.models.student_enrollment import StudentEnrollment


class SchoolClass(Base):
    """A class (form) of the school.

    Attributes:
        class_id: Primary key, e.g. 'b4' or 'jhs3'.
        name: Display name.
        school_level: Level sharing promotion rules (e.g. 'Upper Primary').
        is_terminal: Final class; passing students graduate.
        created_at: Timestamp of record creation.
        enrollments: Students currently enrolled.
    """

    __tablename__ = "school_classes"

    class_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    school_level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_terminal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default="CURRENT_TIMESTAMP"
    )

    enrollments: Mapped[List[StudentEnrollment]] = relationship(
        "StudentEnrollment", back_populates="school_class"
    )

    def __repr__(self) -> str:
        return f"<SchoolClass(id='{self.class_id}', level='{self.school_level}')>"
