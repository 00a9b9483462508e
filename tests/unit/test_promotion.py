"""Unit tests for PromotionEvaluator (progression/services/promotion.py).

Every failing rule must contribute its reason; a passing student is promoted,
or graduates from a terminal class.
"""

from __future__ import annotations

import pytest

from progression.exceptions import InvalidPercentageError
from progression.schemas.records import PromotionCriteria
from progression.schemas.results import StudentTermSummary, SubjectAggregate
from progression.services.promotion import (
    GRADUATE,
    PROMOTE,
    REASON_ATTENDANCE,
    REASON_AVERAGE,
    REASON_ELECTIVES,
    REASON_FAILED_SUBJECTS,
    REASON_INCOMPLETE,
    RETAIN,
    PromotionEvaluator,
)
from tests.fixtures.sample_records import TERM_ID

CRITERIA = PromotionCriteria(
    min_average=50, max_failed_subjects=2, min_attendance_percent=90, fail_threshold=40
)


def _summary(average: float, failed: int = 0, graded: int = 5, aggregates=()) -> StudentTermSummary:
    return StudentTermSummary(
        student_id="kofi",
        class_id="b4",
        term_id=TERM_ID,
        overall_average=average,
        graded_subject_count=graded,
        failed_subject_count=failed,
        subject_aggregates=list(aggregates),
    )


def _graded(subject_id: str, percentage: float) -> SubjectAggregate:
    return SubjectAggregate(
        student_id="kofi", subject_id=subject_id, term_id=TERM_ID,
        percentage=percentage, grade="B", remark="Good",
    )


@pytest.fixture
def evaluator() -> PromotionEvaluator:
    return PromotionEvaluator()


def test_passing_student_is_promoted_with_no_reasons(evaluator):
    decision = evaluator.evaluate(_summary(55, failed=1), 96, CRITERIA)

    assert decision.decision == PROMOTE
    assert decision.reasons == []
    assert (decision.student_id, decision.class_id) == ("kofi", "b4")


def test_all_failing_rules_are_reported(evaluator):
    """Failing both average and attendance yields both reasons, not just the first."""
    decision = evaluator.evaluate(_summary(45, failed=0), 80, CRITERIA)

    assert decision.decision == RETAIN
    assert decision.reasons == [REASON_AVERAGE, REASON_ATTENDANCE]


def test_too_many_failed_subjects(evaluator):
    decision = evaluator.evaluate(_summary(60, failed=3), 95, CRITERIA)

    assert decision.decision == RETAIN
    assert decision.reasons == [REASON_FAILED_SUBJECTS]


def test_thresholds_are_inclusive(evaluator):
    """Exactly the minimum average/attendance and exactly the max failures still pass."""
    decision = evaluator.evaluate(_summary(50, failed=2), 90, CRITERIA)

    assert decision.decision == PROMOTE


def test_terminal_class_graduates(evaluator):
    decision = evaluator.evaluate(_summary(70), 95, CRITERIA, is_terminal_class=True)

    assert decision.decision == GRADUATE


def test_failing_terminal_student_is_retained(evaluator):
    decision = evaluator.evaluate(_summary(30), 95, CRITERIA, is_terminal_class=True)

    assert decision.decision == RETAIN


def test_missing_attendance_skips_attendance_rule(evaluator):
    decision = evaluator.evaluate(_summary(60), None, CRITERIA)

    assert decision.decision == PROMOTE


def test_student_without_scores_is_retained_as_incomplete(evaluator):
    decision = evaluator.evaluate(_summary(0, graded=0), 100, CRITERIA)

    assert decision.decision == RETAIN
    assert decision.reasons == [REASON_INCOMPLETE]


@pytest.mark.parametrize("attendance", [-1, 100.5])
def test_invalid_attendance_raises(evaluator, attendance):
    with pytest.raises(InvalidPercentageError):
        evaluator.evaluate(_summary(60), attendance, CRITERIA)


def test_failed_compulsory_subjects_listed(evaluator):
    criteria = CRITERIA.model_copy(update={"compulsory_subjects": ("math", "eng", "sci")})
    summary = _summary(70, aggregates=[_graded("math", 35), _graded("eng", 80)])

    decision = evaluator.evaluate(summary, 95, criteria)

    assert decision.decision == RETAIN
    assert decision.reasons == ["Failed compulsory subjects: math, sci"], (
        "An ungraded compulsory subject counts as failed"
    )


def test_minimum_electives(evaluator):
    criteria = CRITERIA.model_copy(update={
        "elective_subjects": ("french", "ict", "music"),
        "min_electives_to_pass": 2,
    })
    one_elective = _summary(70, aggregates=[_graded("french", 70), _graded("ict", 20)])
    two_electives = _summary(70, aggregates=[_graded("french", 70), _graded("music", 40)])

    assert evaluator.evaluate(one_elective, 95, criteria).reasons == [REASON_ELECTIVES]
    assert evaluator.evaluate(two_electives, 95, criteria).decision == PROMOTE


def test_summary_built_from_aggregates_alone_is_evaluated(evaluator):
    """The graded count follows the aggregates when the caller leaves it out."""
    summary = StudentTermSummary(
        student_id="kofi",
        class_id="b4",
        term_id=TERM_ID,
        subject_aggregates=[_graded("math", 55)],
        overall_average=55,
        failed_subject_count=1,
    )

    decision = evaluator.evaluate(summary, 96, CRITERIA)

    assert summary.graded_subject_count == 1
    assert decision.decision == PROMOTE
    assert decision.reasons == []
