"""
Promotion / retention / graduation decisions.

Every rule is evaluated and every failing rule contributes a reason, so the
promotion-review screen can show all causes at once.  Any failure retains the
student; otherwise students of a terminal class graduate and everyone else is
promoted.
"""

import logging
from typing import Callable, Optional

from progression.schemas.records import PromotionCriteria
from progression.schemas.results import PromotionDecision, StudentTermSummary
from progression.services.grading_scheme import check_percentage

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Reason labels (rendered verbatim in the UI)
# ---------------------------------------------------------------------------

REASON_AVERAGE = "Average below threshold"
REASON_FAILED_SUBJECTS = "Too many failed subjects"
REASON_ATTENDANCE = "Insufficient attendance"
REASON_INCOMPLETE = "Incomplete academic record"
REASON_ELECTIVES = "Too few elective subjects passed"
REASON_COMPULSORY_PREFIX = "Failed compulsory subjects"

PROMOTE = "Promote"
RETAIN = "Retain"
GRADUATE = "Graduate"

Rule = Callable[[StudentTermSummary, Optional[float], PromotionCriteria], Optional[str]]


# ---------------------------------------------------------------------------
# Rules: each returns a reason when the student fails it, else None
# ---------------------------------------------------------------------------

def _average_rule(summary, attendance, criteria):
    if summary.overall_average < criteria.min_average:
        return REASON_AVERAGE
    return None


def _failed_subjects_rule(summary, attendance, criteria):
    if summary.failed_subject_count > criteria.max_failed_subjects:
        return REASON_FAILED_SUBJECTS
    return None


def _attendance_rule(summary, attendance, criteria):
    # Attendance not supplied: nothing to judge
    if attendance is None:
        return None
    if attendance < criteria.min_attendance_percent:
        return REASON_ATTENDANCE
    return None


def _passed(summary: StudentTermSummary, criteria: PromotionCriteria) -> set[str]:
    return {
        a.subject_id
        for a in summary.subject_aggregates
        if a.is_graded and a.percentage >= criteria.fail_threshold
    }


def _compulsory_rule(summary, attendance, criteria):
    if not criteria.compulsory_subjects:
        return None
    passed = _passed(summary, criteria)
    failed = [s for s in criteria.compulsory_subjects if s not in passed]
    if failed:
        return f"{REASON_COMPULSORY_PREFIX}: {', '.join(failed)}"
    return None


def _electives_rule(summary, attendance, criteria):
    if criteria.min_electives_to_pass <= 0:
        return None
    passed = _passed(summary, criteria)
    count = sum(1 for s in criteria.elective_subjects if s in passed)
    if count < criteria.min_electives_to_pass:
        return REASON_ELECTIVES
    return None


# ---------------------------------------------------------------------------
# PromotionEvaluator
# ---------------------------------------------------------------------------

class PromotionEvaluator:
    """Apply promotion criteria to a student's term summary.

    Rules, in order:
      1) overall average at or above ``min_average``
      2) failed subjects at most ``max_failed_subjects``
      3) attendance at or above ``min_attendance_percent``
      4) every compulsory subject passed
      5) at least ``min_electives_to_pass`` electives passed
    """

    rules: tuple[Rule, ...] = (
        _average_rule,
        _failed_subjects_rule,
        _attendance_rule,
        _compulsory_rule,
        _electives_rule,
    )

    def evaluate(
        self,
        summary: StudentTermSummary,
        attendance_percent: Optional[float],
        criteria: PromotionCriteria,
        is_terminal_class: bool = False,
    ) -> PromotionDecision:
        """Decide Promote, Retain or Graduate for one student.

        Args:
            summary: The student's term summary.
            attendance_percent: Attendance for the term, or None when the
                attendance subsystem has no record (rule 3 is skipped).
            criteria: Thresholds for the student's academic year/level.
            is_terminal_class: Whether a passing student graduates.

        Raises:
            InvalidPercentageError: If ``attendance_percent`` is outside 0-100.
        """
        if attendance_percent is not None:
            attendance_percent = check_percentage(attendance_percent)

        if not summary.has_scores:
            logger.info("Student %s retained: no recorded subjects", summary.student_id)
            return self._decision(summary, RETAIN, [REASON_INCOMPLETE])

        reasons = [
            reason
            for rule in self.rules
            if (reason := rule(summary, attendance_percent, criteria)) is not None
        ]

        if reasons:
            decision = RETAIN
        elif is_terminal_class:
            decision = GRADUATE
        else:
            decision = PROMOTE

        logger.debug("Student %s: %s %s", summary.student_id, decision, reasons)
        return self._decision(summary, decision, reasons)

    @staticmethod
    def _decision(
        summary: StudentTermSummary, decision: str, reasons: list[str]
    ) -> PromotionDecision:
        return PromotionDecision(
            student_id=summary.student_id,
            class_id=summary.class_id,
            decision=decision,
            reasons=reasons,
        )
