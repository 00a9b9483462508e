"""Unit tests for summaries and competition ranking (progression/services/ranking.py).

Summaries are built directly so each test controls averages and fail counts
exactly.  No database or external services are used.
"""

from __future__ import annotations

import pytest

from progression.exceptions import EmptyRosterError, InvalidRankingRequestError
from progression.schemas.results import StudentTermSummary, SubjectAggregate
from progression.services.ranking import RankingEngine, competition_ranks, summarize
from tests.fixtures.sample_records import TERM_ID


def _summary(
    student_id: str,
    average: float,
    failed: int = 0,
    *,
    class_id: str = "b4",
    level: str | None = "Upper Primary",
    order: int = 0,
    graded: int = 3,
    term_id: str = TERM_ID,
) -> StudentTermSummary:
    return StudentTermSummary(
        student_id=student_id,
        class_id=class_id,
        term_id=term_id,
        school_level=level,
        enrollment_order=order,
        overall_average=average,
        graded_subject_count=graded,
        failed_subject_count=failed,
    )


def _aggregate(student_id: str, subject_id: str, percentage: float | None) -> SubjectAggregate:
    if percentage is None:
        return SubjectAggregate(
            student_id=student_id, subject_id=subject_id, term_id=TERM_ID,
            grade="N/A", remark="No Scores Recorded", status="no_scores",
        )
    return SubjectAggregate(
        student_id=student_id, subject_id=subject_id, term_id=TERM_ID,
        percentage=percentage, grade="B", remark="Good",
    )


def _ranks(summaries, field: str = "class_rank") -> dict[str, int | None]:
    return {s.student_id: getattr(s, field) for s in summaries}


@pytest.fixture
def engine() -> RankingEngine:
    return RankingEngine()


# ---------------------------------------------------------------------------
# competition_ranks
# ---------------------------------------------------------------------------


def test_competition_ranks_skip_after_ties():
    assert competition_ranks([90, 75, 75, 70, 70, 60], lambda x: x) == [1, 2, 2, 4, 4, 6]
    assert competition_ranks([], lambda x: x) == []


# ---------------------------------------------------------------------------
# summarize
# ---------------------------------------------------------------------------


def test_summary_excludes_subjects_without_scores():
    """A 'No Scores Recorded' subject is not averaged in as zero."""
    summary = summarize(
        "kofi", "b4", TERM_ID,
        [_aggregate("kofi", "math", 80), _aggregate("kofi", "eng", None), _aggregate("kofi", "sci", 30)],
        fail_threshold=40,
    )

    assert summary.overall_average == 55.0, "Average must be over the two graded subjects"
    assert summary.overall_total == 110.0
    assert summary.graded_subject_count == 2
    assert summary.failed_subject_count == 1
    assert len(summary.subject_aggregates) == 3, "The ungraded subject stays on the report"


def test_summary_without_any_scores():
    summary = summarize("esi", "b4", TERM_ID, [_aggregate("esi", "math", None)], fail_threshold=40)

    assert summary.has_scores is False
    assert summary.overall_average == 0.0
    assert summary.failed_subject_count == 0


def test_summary_fail_threshold_is_strict():
    """A subject exactly at the pass mark is passed."""
    summary = summarize("kofi", "b4", TERM_ID, [_aggregate("kofi", "math", 40)], fail_threshold=40)

    assert summary.failed_subject_count == 0


# ---------------------------------------------------------------------------
# rank
# ---------------------------------------------------------------------------


def test_tied_students_share_rank_and_next_rank_skips(engine):
    """75.0/0 fails twice share rank 1; the 70.0 student is 3rd, not 2nd."""
    summaries = [_summary("yaw", 70.0), _summary("kofi", 75.0), _summary("ama", 75.0)]

    ranked = engine.rank(summaries, "class")

    assert _ranks(ranked) == {"kofi": 1, "ama": 1, "yaw": 3}


def test_failed_count_breaks_average_ties(engine):
    ranked = engine.rank([_summary("kofi", 75.0, failed=1), _summary("ama", 75.0, failed=0)], "class")

    assert _ranks(ranked) == {"ama": 1, "kofi": 2}


def test_tied_students_listed_in_enrolment_order(engine):
    """Shared ranks are listed by enrolment order, then student id."""
    ranked = engine.rank(
        [_summary("zed", 75.0, order=1), _summary("abe", 75.0, order=2), _summary("ben", 75.0, order=1)],
        "class",
    )

    assert [s.student_id for s in ranked] == ["ben", "zed", "abe"]
    assert {s.class_rank for s in ranked} == {1}


def test_ranking_is_idempotent_and_does_not_mutate_input(engine):
    summaries = [_summary("yaw", 70.0), _summary("kofi", 75.0), _summary("ama", 75.0, order=-1)]

    first = engine.rank(summaries, "class")
    second = engine.rank(summaries, "class")

    assert [s.model_dump() for s in first] == [s.model_dump() for s in second]
    assert all(s.class_rank is None for s in summaries), "Input summaries must not be modified"
    assert [s.model_dump() for s in engine.rank(first, "class")] == [s.model_dump() for s in first]


def test_students_without_scores_are_unranked_and_last(engine):
    ranked = engine.rank(
        [_summary("esi", 0.0, graded=0, order=0), _summary("kofi", 40.0, order=5)], "class"
    )

    assert [s.student_id for s in ranked] == ["kofi", "esi"]
    assert _ranks(ranked) == {"kofi": 1, "esi": None}


def test_class_scope_ranks_each_class_separately(engine):
    ranked = engine.rank(
        [_summary("kofi", 80.0, class_id="b4"), _summary("abena", 60.0, class_id="b5"),
         _summary("ama", 70.0, class_id="b4")],
        "class",
    )

    assert _ranks(ranked) == {"kofi": 1, "ama": 2, "abena": 1}


def test_level_scope_groups_by_school_level(engine):
    summaries = [
        _summary("kofi", 80.0, class_id="b4"),
        _summary("abena", 85.0, class_id="b5"),
        _summary("kwame", 90.0, class_id="jhs3", level="JHS"),
        _summary("adjoa", 50.0, class_id="x1", level=None),
    ]

    ranked = engine.rank(summaries, "level")

    assert _ranks(ranked, "level_rank") == {"abena": 1, "kofi": 2, "kwame": 1, "adjoa": None}


def test_school_scope_ranks_everyone_together(engine):
    ranked = engine.rank(
        [_summary("kofi", 80.0, class_id="b4"), _summary("kwame", 90.0, class_id="jhs3", level="JHS")],
        "school",
    )

    assert _ranks(ranked, "school_rank") == {"kwame": 1, "kofi": 2}


def test_rank_all_populates_every_scope(engine):
    ranked = engine.rank_all([
        _summary("kofi", 80.0, class_id="b4"),
        _summary("abena", 85.0, class_id="b5"),
    ])

    kofi = next(s for s in ranked if s.student_id == "kofi")
    assert (kofi.class_rank, kofi.level_rank, kofi.school_rank) == (1, 2, 2)
    assert [s.student_id for s in ranked] == ["abena", "kofi"], "Result is in school order"


# ---------------------------------------------------------------------------
# Invalid requests
# ---------------------------------------------------------------------------


def test_empty_class_ranking_returns_empty_list(engine):
    assert engine.rank([], "class") == []


@pytest.mark.parametrize("scope", ["level", "school"])
def test_empty_level_or_school_ranking_raises(engine, scope):
    with pytest.raises(EmptyRosterError) as exc_info:
        engine.rank([], scope)
    assert exc_info.value.scope == scope


def test_mixed_terms_rejected(engine):
    with pytest.raises(InvalidRankingRequestError):
        engine.rank([_summary("kofi", 80.0), _summary("ama", 70.0, term_id="T2-2024")], "class")


def test_duplicate_student_rejected(engine):
    with pytest.raises(InvalidRankingRequestError):
        engine.rank([_summary("kofi", 80.0), _summary("kofi", 70.0)], "school")


def test_unknown_scope_rejected(engine):
    with pytest.raises(InvalidRankingRequestError):
        engine.rank([_summary("kofi", 80.0)], "district")


# ---------------------------------------------------------------------------
# Subject positions
# ---------------------------------------------------------------------------


def test_subject_positions_use_competition_ranking_within_class(engine):
    def summary(student_id, class_id, pct):
        return summarize(
            student_id, class_id, TERM_ID, [_aggregate(student_id, "math", pct)], fail_threshold=40
        )

    summaries = [
        summary("kofi", "b4", 80), summary("ama", "b4", 80),
        summary("yaw", "b4", 60), summary("esi", "b4", None),
        summary("abena", "b5", 50),
    ]

    positioned = engine.assign_subject_positions(summaries)

    positions = {s.student_id: s.subject_aggregates[0].position for s in positioned}
    assert positions == {"kofi": 1, "ama": 1, "yaw": 3, "esi": None, "abena": 1}
    assert summaries[0].subject_aggregates[0].position is None, "Input must not be modified"


def test_summary_built_from_aggregates_alone_is_ranked(engine):
    summary = StudentTermSummary(
        student_id="kofi",
        class_id="b4",
        term_id=TERM_ID,
        subject_aggregates=[_aggregate("kofi", "math", 55)],
        overall_average=55,
        failed_subject_count=1,
    )

    ranked = engine.rank([summary], "class")

    assert summary.has_scores is True
    assert _ranks(ranked) == {"kofi": 1}
