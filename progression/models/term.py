"""SQLAlchemy ORM model for the terms table."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from progression.models.base import Base


class Term(Base):
    """A grading period within an academic year.

    Attributes:
        term_id: Primary key, e.g. 'T2-2023'.
        academic_year: Year label such as '2023/2024'.
        name: Display name (e.g. 'Second Term').
        sequence: Position of the term within its year.
        created_at: Timestamp of record creation.
    """

    __tablename__ = "terms"

    term_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default="CURRENT_TIMESTAMP"
    )

    def __repr__(self) -> str:
        return f"<Term(id='{self.term_id}', year='{self.academic_year}')>"
