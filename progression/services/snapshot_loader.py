"""
Database reader that assembles an :class:`EngineSnapshot` for one term.

Every table is read once, inside the request's session, and the rows are
copied into frozen pydantic records before any computation starts.  Edits
committed by other users after the load are not seen by that computation.
"""

import json
import logging
from typing import Mapping, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from progression.exceptions import DatabaseConnectionError, TermNotFoundError
from progression.models.assignment_score import AssignmentScore as AssignmentScoreModel
from progression.models.attendance_summary import AttendanceSummary
from progression.models.grade_setting import GradeSetting as GradeSettingModel
from progression.models.promotion_criteria import PromotionCriteria as PromotionCriteriaModel
from progression.models.school_class import SchoolClass as SchoolClassModel
from progression.models.student_enrollment import StudentEnrollment
from progression.models.term import Term as TermModel
from progression.schemas.records import (
    AssignmentScore,
    AttendanceRecord,
    GradeSetting,
    PromotionCriteria,
    RosterEntry,
    SchoolClass,
    Term,
)
from progression.services.snapshot import EngineSnapshot

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_json_ids(value: Optional[str]) -> tuple[str, ...]:
    """Parse a JSON-encoded list of subject ids stored in a text column.

    Args:
        value: Raw JSON string from the DB (e.g. ``'["math", "eng"]'``).

    Returns:
        Tuple of subject ids, or an empty tuple on any parse error.
    """
    if not value:
        return ()
    try:
        parsed = json.loads(value)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Ignoring malformed subject list %r", value)
        return ()
    if not isinstance(parsed, list):
        return ()
    return tuple(str(x) for x in parsed if isinstance(x, (str, int)))


def _to_criteria(row: PromotionCriteriaModel) -> PromotionCriteria:
    return PromotionCriteria(
        academic_year=row.academic_year,
        school_level=row.school_level,
        min_average=float(row.min_average),
        max_failed_subjects=row.max_failed_subjects,
        min_attendance_percent=float(row.min_attendance_percent),
        fail_threshold=float(row.fail_threshold),
        compulsory_subjects=_parse_json_ids(row.compulsory_subjects),
        elective_subjects=_parse_json_ids(row.elective_subjects),
        min_electives_to_pass=row.min_electives_to_pass or 0,
    )


# ---------------------------------------------------------------------------
# SnapshotLoader
# ---------------------------------------------------------------------------


class SnapshotLoader:
    """Load the engine's inputs for a term from PostgreSQL.

    Args:
        db: Async session scoped to the current request.
        assessment_weights: Optional assignment_type_id → weight mapping
            copied into every snapshot.
    """

    def __init__(
        self, db: AsyncSession, assessment_weights: Optional[Mapping[str, float]] = None
    ) -> None:
        self.db = db
        self.assessment_weights = dict(assessment_weights or {})

    async def load(self, term_id: str) -> EngineSnapshot:
        """Read every record needed to compute ``term_id``.

        Raises:
            TermNotFoundError: No such term.
            DatabaseConnectionError: The database could not be queried.
        """
        try:
            term_row = await self.db.get(TermModel, term_id)
            if term_row is None:
                raise TermNotFoundError(term_id)
            term = Term(
                term_id=term_row.term_id,
                academic_year=term_row.academic_year,
                name=term_row.name or "",
                sequence=term_row.sequence or 1,
            )

            grade_rows = (await self.db.execute(
                select(GradeSettingModel).order_by(GradeSettingModel.position, GradeSettingModel.id)
            )).scalars().all()

            score_rows = (await self.db.execute(
                select(AssignmentScoreModel)
                .where(AssignmentScoreModel.term_id == term_id)
                .order_by(AssignmentScoreModel.id)
            )).scalars().all()

            enrollment_rows = (await self.db.execute(
                select(StudentEnrollment).order_by(
                    StudentEnrollment.enrollment_order, StudentEnrollment.student_id
                )
            )).scalars().all()

            class_rows = (await self.db.execute(select(SchoolClassModel))).scalars().all()

            criteria_rows = (await self.db.execute(
                select(PromotionCriteriaModel)
                .where(or_(
                    PromotionCriteriaModel.academic_year == term.academic_year,
                    PromotionCriteriaModel.academic_year.is_(None),
                ))
                .order_by(PromotionCriteriaModel.id)
            )).scalars().all()

            attendance_rows = (await self.db.execute(
                select(AttendanceSummary).where(AttendanceSummary.term_id == term_id)
            )).scalars().all()
        except SQLAlchemyError as exc:
            logger.error("Failed to load snapshot for term %s: %s", term_id, exc)
            raise DatabaseConnectionError(str(exc)) from exc

        attendance = [
            AttendanceRecord(
                student_id=row.student_id,
                term_id=row.term_id,
                attendance_percent=row.attendance_percent,
            )
            for row in attendance_rows
            if row.attendance_percent is not None
        ]

        snapshot = EngineSnapshot.build(
            terms=[term],
            grade_settings=[
                GradeSetting(grade=r.grade, range=r.score_range, remarks=r.remarks or "")
                for r in grade_rows
            ],
            scores=[
                AssignmentScore(
                    student_id=r.student_id,
                    subject_id=r.subject_id,
                    class_id=r.class_id,
                    term_id=r.term_id,
                    assignment_type_id=r.assignment_type_id or "",
                    score=float(r.score),
                    max_score=float(r.max_score),
                )
                for r in score_rows
            ],
            roster=[
                RosterEntry(
                    student_id=r.student_id,
                    class_id=r.class_id,
                    enrollment_order=r.enrollment_order,
                )
                for r in enrollment_rows
            ],
            classes=[
                SchoolClass(
                    class_id=r.class_id,
                    name=r.name or "",
                    school_level=r.school_level,
                    is_terminal=bool(r.is_terminal),
                )
                for r in class_rows
            ],
            criteria=[_to_criteria(r) for r in criteria_rows],
            attendance=attendance,
            assessment_weights=self.assessment_weights,
        )
        logger.info(
            "Loaded snapshot for term %s: %d score(s), %d student(s), %d scheme row(s)",
            term_id, len(snapshot.scores), len(snapshot.roster), len(snapshot.grade_settings),
        )
        return snapshot
