"""
Student standings and competition ranking.

Builds per-student term summaries from subject aggregates and ranks them at
class, school-level and whole-school scope.  Ranking is a pure function of
its input: records are copied, never mutated, and ties are broken on stable
keys so repeated calls always agree.
"""

import logging
from collections import defaultdict
from typing import Callable, Hashable, Iterable, Literal, Optional, Sequence, TypeVar

from progression.exceptions import EmptyRosterError, InvalidRankingRequestError
from progression.schemas.results import StudentTermSummary, SubjectAggregate
from progression.services.grading_scheme import round_half_up

logger = logging.getLogger(__name__)

Scope = Literal["class", "level", "school"]

T = TypeVar("T")

# Which summary field each scope populates
SCOPE_FIELDS: dict[str, str] = {
    "class": "class_rank",
    "level": "level_rank",
    "school": "school_rank",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def competition_ranks(ordered: Sequence[T], tie_key: Callable[[T], Hashable]) -> list[int]:
    """Assign 1,1,3-style ranks to an already sorted sequence.

    Items with equal ``tie_key`` share a rank; the next distinct item's rank is
    the number of items strictly ahead of it plus one.
    """
    ranks: list[int] = []
    rank = 0
    previous: object = object()
    for position, item in enumerate(ordered, 1):
        key = tie_key(item)
        if key != previous:
            rank = position
            previous = key
        ranks.append(rank)
    return ranks


def standing_key(summary: StudentTermSummary) -> tuple:
    """Sort key: best average first, fewer fails, earlier enrolment, then id."""
    return (
        -summary.overall_average,
        summary.failed_subject_count,
        summary.enrollment_order,
        summary.student_id,
    )


def _tie_key(summary: StudentTermSummary) -> tuple[float, int]:
    return summary.overall_average, summary.failed_subject_count


def summarize(
    student_id: str,
    class_id: str,
    term_id: str,
    aggregates: Iterable[SubjectAggregate],
    *,
    fail_threshold: float,
    enrollment_order: int = 0,
    school_level: Optional[str] = None,
    decimals: int = 2,
) -> StudentTermSummary:
    """Build a student's term summary from their subject aggregates.

    Subjects marked "No Scores Recorded" are carried on the summary for the
    report card but left out of the total, the average and the fail count.
    """
    aggregates = list(aggregates)
    graded = [a.percentage for a in aggregates if a.is_graded]
    total = sum(graded)
    average = total / len(graded) if graded else 0.0
    failed = sum(1 for p in graded if p < fail_threshold)

    return StudentTermSummary(
        student_id=student_id,
        class_id=class_id,
        term_id=term_id,
        school_level=school_level,
        enrollment_order=enrollment_order,
        subject_aggregates=aggregates,
        overall_average=round_half_up(average, decimals),
        overall_total=round_half_up(total, decimals),
        graded_subject_count=len(graded),
        failed_subject_count=failed,
    )


# ---------------------------------------------------------------------------
# RankingEngine
# ---------------------------------------------------------------------------

class RankingEngine:
    """Rank term summaries at class, level or school scope."""

    def rank(
        self, summaries: Sequence[StudentTermSummary], scope: Scope
    ) -> list[StudentTermSummary]:
        """Populate the scope's rank field on copies of ``summaries``.

        Args:
            summaries: Summaries sharing one term.
            scope: ``class`` ranks each class separately, ``level`` each
                school level separately, ``school`` everyone together.

        Returns:
            New summaries, grouped by class/level (sorted by group id), each
            group listing ranked students in rank order followed by students
            without recorded subjects (rank ``None``) in enrolment order.

        Raises:
            InvalidRankingRequestError: Unknown scope, mixed terms, or a
                student listed twice.
            EmptyRosterError: No summaries for a level or school ranking.
        """
        field_name = SCOPE_FIELDS.get(scope)
        if field_name is None:
            raise InvalidRankingRequestError(f"Unknown ranking scope {scope!r}")
        if not summaries:
            if scope == "class":
                return []
            raise EmptyRosterError(scope)
        self._check_request(summaries)

        groups: dict[str, list[StudentTermSummary]] = defaultdict(list)
        for summary in summaries:
            groups[self._group_of(summary, scope)].append(summary)

        ranked: list[StudentTermSummary] = []
        for group_id in sorted(groups):
            members = groups[group_id]
            if scope == "level" and group_id == "":
                # Students whose class has no school level cannot be level-ranked
                ranked.extend(s.model_copy(update={field_name: None}) for s in members)
                continue
            ranked.extend(self._rank_group(members, field_name))

        logger.debug(
            "Ranked %d summaries at %s scope across %d group(s)",
            len(summaries), scope, len(groups),
        )
        return ranked

    def rank_all(self, summaries: Sequence[StudentTermSummary]) -> list[StudentTermSummary]:
        """Populate class, level and school ranks; return in school standing order."""
        if not summaries:
            raise EmptyRosterError("school")
        result = list(summaries)
        for scope in ("class", "level", "school"):
            result = self.rank(result, scope)
        return result

    def assign_subject_positions(
        self, summaries: Sequence[StudentTermSummary]
    ) -> list[StudentTermSummary]:
        """Return copies whose graded aggregates carry their in-class subject position.

        Positions use competition ranking on the subject percentage among
        students of the same class; ungraded subjects get no position.
        """
        copies = [s.model_copy(deep=True) for s in summaries]

        cells: dict[tuple[str, str], list[SubjectAggregate]] = defaultdict(list)
        for summary in copies:
            for aggregate in summary.subject_aggregates:
                aggregate.position = None
                if aggregate.is_graded:
                    cells[(summary.class_id, aggregate.subject_id)].append(aggregate)

        for members in cells.values():
            members.sort(key=lambda a: -a.percentage)
            for aggregate, position in zip(members, competition_ranks(members, lambda a: a.percentage)):
                aggregate.position = position

        return copies

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _group_of(summary: StudentTermSummary, scope: Scope) -> str:
        if scope == "class":
            return summary.class_id
        if scope == "level":
            return summary.school_level or ""
        return ""

    @staticmethod
    def _check_request(summaries: Sequence[StudentTermSummary]) -> None:
        terms = {s.term_id for s in summaries}
        if len(terms) > 1:
            raise InvalidRankingRequestError(
                f"Cannot rank summaries from different terms: {sorted(terms)}"
            )
        seen: set[str] = set()
        for summary in summaries:
            if summary.student_id in seen:
                raise InvalidRankingRequestError(
                    f"Student {summary.student_id} appears more than once"
                )
            seen.add(summary.student_id)

    @staticmethod
    def _rank_group(
        members: Sequence[StudentTermSummary], field_name: str
    ) -> list[StudentTermSummary]:
        eligible = sorted((s for s in members if s.has_scores), key=standing_key)
        excluded = sorted(
            (s for s in members if not s.has_scores),
            key=lambda s: (s.enrollment_order, s.student_id),
        )
        ranks = competition_ranks(eligible, _tie_key)
        return [
            *(s.model_copy(update={field_name: r}) for s, r in zip(eligible, ranks)),
            *(s.model_copy(update={field_name: None}) for s in excluded),
        ]
