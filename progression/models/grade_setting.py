"""SQLAlchemy ORM model for the grade_settings table."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from progression.models.base import Base


class GradeSetting(Base):
    """A grading-scheme row as saved by the scheme editor.

    Attributes:
        id: Auto-incrementing primary key.
        position: Row order in the editor; lower rows win overlaps.
        grade: Letter grade label.
        score_range: Inclusive range text, e.g. '80-100'.
        remarks: Remark for the grade.
        created_at: Timestamp of record creation.
    """

    __tablename__ = "grade_settings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    grade: Mapped[str] = mapped_column(String(10), nullable=False)
    score_range: Mapped[str] = mapped_column(String(20), nullable=False)
    remarks: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default="CURRENT_TIMESTAMP"
    )

    def __repr__(self) -> str:
        return f"<GradeSetting(grade='{self.grade}', range='{self.score_range}')>"
