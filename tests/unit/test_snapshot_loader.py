"""Unit tests for SnapshotLoader (progression/services/snapshot_loader.py).

The async session is mocked: ``get`` returns the term row and each
``execute`` call returns the next table's rows in the loader's read order
(grade settings, scores, enrolments, classes, criteria, attendance).
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from progression.exceptions import DatabaseConnectionError, TermNotFoundError
from progression.models import (
    AssignmentScore,
    AttendanceSummary,
    GradeSetting,
    PromotionCriteria,
    SchoolClass,
    StudentEnrollment,
    Term,
)
from progression.services.snapshot_loader import SnapshotLoader, _parse_json_ids
from tests.fixtures.sample_records import ACADEMIC_YEAR, TERM_ID


def _result(rows: list) -> MagicMock:
    """Mimic ``(await db.execute(stmt)).scalars().all()``."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    return result


def _configure(session: AsyncMock, **tables) -> None:
    session.get = AsyncMock(return_value=Term(
        term_id=TERM_ID, academic_year=ACADEMIC_YEAR, name="First Term", sequence=1
    ))
    session.execute = AsyncMock(side_effect=[
        _result(tables.get("grades", [])),
        _result(tables.get("scores", [])),
        _result(tables.get("enrollments", [])),
        _result(tables.get("classes", [])),
        _result(tables.get("criteria", [])),
        _result(tables.get("attendance", [])),
    ])


async def test_load_freezes_every_table(mock_db_session):
    _configure(
        mock_db_session,
        grades=[
            GradeSetting(position=0, grade="A", score_range="80-100", remarks="Very Good"),
            GradeSetting(position=1, grade="F", score_range="0-79", remarks=None),
        ],
        scores=[AssignmentScore(
            student_id="kofi", subject_id="math", class_id="b4", term_id=TERM_ID,
            assignment_type_id="exam", score=Decimal("45.50"), max_score=Decimal("50.00"),
        )],
        enrollments=[StudentEnrollment(student_id="kofi", class_id="b4", enrollment_order=3)],
        classes=[SchoolClass(class_id="b4", name="Basic 4", school_level="Upper Primary", is_terminal=False)],
        criteria=[PromotionCriteria(
            academic_year=ACADEMIC_YEAR, school_level=None,
            min_average=Decimal("50.00"), max_failed_subjects=2,
            min_attendance_percent=Decimal("90.00"), fail_threshold=Decimal("40.00"),
            compulsory_subjects='["math", "eng"]', elective_subjects=None,
            min_electives_to_pass=0,
        )],
        attendance=[
            AttendanceSummary(student_id="kofi", term_id=TERM_ID, days_present=45, total_days=50),
            AttendanceSummary(student_id="ama", term_id=TERM_ID, days_present=0, total_days=0),
        ],
    )

    snapshot = await SnapshotLoader(mock_db_session, {"exam": 1.0}).load(TERM_ID)

    assert snapshot.term(TERM_ID).academic_year == ACADEMIC_YEAR
    assert [g.grade for g in snapshot.grade_settings] == ["A", "F"]
    assert snapshot.grade_settings[1].remarks == ""
    assert snapshot.scores[0].score == 45.5
    assert snapshot.roster["kofi"].enrollment_order == 3
    assert snapshot.school_level_of("b4") == "Upper Primary"
    assert snapshot.criteria[0].compulsory_subjects == ("math", "eng")
    assert snapshot.criteria[0].min_average == 50.0
    assert snapshot.attendance_for("kofi", TERM_ID) == 90.0
    assert snapshot.attendance_for("ama", TERM_ID) is None, (
        "A term with no recorded school days has no attendance percentage"
    )
    assert dict(snapshot.assessment_weights) == {"exam": 1.0}
    mock_db_session.get.assert_awaited_once_with(Term, TERM_ID)
    assert mock_db_session.execute.await_count == 6


async def test_snapshot_cannot_be_modified(mock_db_session):
    _configure(mock_db_session)

    snapshot = await SnapshotLoader(mock_db_session).load(TERM_ID)

    with pytest.raises(TypeError):
        snapshot.roster["x"] = None  # type: ignore[index]


async def test_unknown_term_raises(mock_db_session):
    mock_db_session.get = AsyncMock(return_value=None)

    with pytest.raises(TermNotFoundError):
        await SnapshotLoader(mock_db_session).load("T9-1999")
    mock_db_session.execute.assert_not_awaited()


async def test_database_failure_becomes_connection_error(mock_db_session):
    mock_db_session.get = AsyncMock(
        side_effect=OperationalError("SELECT", {}, Exception("connection refused"))
    )

    with pytest.raises(DatabaseConnectionError) as exc_info:
        await SnapshotLoader(mock_db_session).load(TERM_ID)
    assert "connection refused" in str(exc_info.value)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ('["math", "eng"]', ("math", "eng")),
        ("[1, 2]", ("1", "2")),
        ("", ()),
        (None, ()),
        ("not json", ()),
        ('{"math": 1}', ()),
    ],
)
def test_parse_json_ids(raw, expected):
    assert _parse_json_ids(raw) == expected
