"""
Subject score aggregation.

Combines the raw assessment scores of one student in one subject and term
into a single percentage and resolves it to a letter grade.  Data-entry
problems (zero max score, score above max) are recovered locally and flagged
on the aggregate; they never abort the surrounding batch.
"""

import logging
from collections import defaultdict
from typing import Iterable, Mapping, Optional, Sequence

from progression.config import Settings
from progression.exceptions import MixedScoreGroupError
from progression.schemas.records import AssignmentScore
from progression.schemas.results import EngineWarning, SubjectAggregate
from progression.services.grading_scheme import (
    MAX_PERCENTAGE,
    MIN_PERCENTAGE,
    GradingSchemeResolver,
    round_half_up,
)

logger = logging.getLogger(__name__)

_GROUP_KEYS = ("student_id", "subject_id", "term_id")


class ScoreAggregator:
    """Aggregate assessment scores into graded subject results.

    Args:
        resolver: Resolver built from the snapshot's grading scheme.
        sentinel_grade: Grade/remark used when no scheme row matches.
        no_scores_remark: Remark for a subject without usable scores.
        percentage_decimals: Decimal places kept on the stored percentage.
        grade_lookup_decimals: Precision the percentage is rounded to
            before it is looked up in the scheme.
        assessment_weights: Optional assignment_type_id → weight mapping.
            When given, each type's own percentage is combined as a
            weighted mean instead of pooling every raw mark.
    """

    def __init__(
        self,
        resolver: GradingSchemeResolver,
        *,
        sentinel_grade: str = "N/A",
        no_scores_remark: str = "No Scores Recorded",
        percentage_decimals: int = 2,
        grade_lookup_decimals: int = 0,
        assessment_weights: Optional[Mapping[str, float]] = None,
    ) -> None:
        self.resolver = resolver
        self.sentinel_grade = sentinel_grade
        self.no_scores_remark = no_scores_remark
        self.percentage_decimals = percentage_decimals
        self.grade_lookup_decimals = grade_lookup_decimals
        self.assessment_weights: dict[str, float] = dict(assessment_weights or {})

    @classmethod
    def from_settings(
        cls,
        resolver: GradingSchemeResolver,
        settings: Settings,
        assessment_weights: Optional[Mapping[str, float]] = None,
    ) -> "ScoreAggregator":
        return cls(
            resolver,
            sentinel_grade=settings.sentinel_grade,
            no_scores_remark=settings.no_scores_remark,
            percentage_decimals=settings.percentage_decimals,
            grade_lookup_decimals=settings.grade_lookup_decimals,
            assessment_weights=assessment_weights,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def aggregate(
        self,
        scores: Sequence[AssignmentScore],
        *,
        student_id: Optional[str] = None,
        subject_id: Optional[str] = None,
        term_id: Optional[str] = None,
    ) -> SubjectAggregate:
        """Aggregate one student+subject+term group of scores.

        Args:
            scores: Every score row of the group (may be empty).
            student_id: Group key; required when ``scores`` is empty.
            subject_id: Group key; required when ``scores`` is empty.
            term_id: Group key; required when ``scores`` is empty.

        Returns:
            A graded :class:`SubjectAggregate`, or one marked
            ``no_scores`` when nothing usable was recorded.

        Raises:
            MixedScoreGroupError: If rows disagree on a group key.
        """
        keys = self._group_keys(scores, student_id=student_id, subject_id=subject_id, term_id=term_id)
        warnings: list[EngineWarning] = []
        flagged = False

        usable: list[AssignmentScore] = []
        for row in scores:
            context = {**keys, "assignment_type_id": row.assignment_type_id}
            if row.max_score <= 0:
                warnings.append(EngineWarning(
                    code="invalid_max_score",
                    message=f"Score row with max_score={row.max_score:g} excluded",
                    context=context,
                ))
                continue
            if row.score > row.max_score:
                flagged = True
                warnings.append(EngineWarning(
                    code="score_exceeds_max",
                    message=f"Score {row.score:g} exceeds max {row.max_score:g}; percentage clamped",
                    context=context,
                ))
            elif row.score < 0:
                flagged = True
                warnings.append(EngineWarning(
                    code="negative_score",
                    message=f"Negative score {row.score:g} recorded; percentage clamped",
                    context=context,
                ))
            usable.append(row)

        if self.assessment_weights:
            raw, weight_warnings = self._weighted_percentage(usable, keys)
            warnings.extend(weight_warnings)
        else:
            raw = self._pooled_percentage(usable)

        if raw is None:
            logger.debug("No usable scores for %s", keys)
            return self._no_scores(keys, warnings, flagged)

        percentage = min(max(raw, MIN_PERCENTAGE), MAX_PERCENTAGE)
        if percentage != raw:
            flagged = True

        resolution = self.resolver.resolve(round_half_up(percentage, self.grade_lookup_decimals))
        grade, remark = resolution.label(self.sentinel_grade)
        if not resolution.found:
            warnings.append(EngineWarning(
                code="grade_not_found",
                message=(
                    f"No grade covers {resolution.percentage:g}%; "
                    f"'{self.sentinel_grade}' shown"
                ),
                context=dict(keys),
            ))

        if flagged:
            logger.warning("Aggregate flagged for audit: %s", keys)

        return SubjectAggregate(
            **keys,
            percentage=round_half_up(percentage, self.percentage_decimals),
            grade=grade,
            remark=remark,
            status="graded",
            flagged_for_audit=flagged,
            warnings=warnings,
        )

    def aggregate_student(
        self,
        scores: Iterable[AssignmentScore],
        *,
        student_id: str,
        term_id: str,
        subject_ids: Sequence[str] = (),
    ) -> list[SubjectAggregate]:
        """Aggregate every subject of one student for one term.

        Args:
            scores: The student's score rows for the term.
            student_id: The student.
            term_id: The term.
            subject_ids: Subjects the student is expected to have; any of
                these without rows come back as "No Scores Recorded".

        Returns:
            Aggregates in ``subject_ids`` order, followed by any other
            subjects found in ``scores`` sorted by id.
        """
        by_subject: dict[str, list[AssignmentScore]] = defaultdict(list)
        for row in scores:
            by_subject[row.subject_id].append(row)

        ordered = list(dict.fromkeys(subject_ids))
        expected = set(ordered)
        ordered += sorted(s for s in by_subject if s not in expected)

        return [
            self.aggregate(
                by_subject.get(subject_id, []),
                student_id=student_id,
                subject_id=subject_id,
                term_id=term_id,
            )
            for subject_id in ordered
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _group_keys(scores: Sequence[AssignmentScore], **given: Optional[str]) -> dict[str, str]:
        keys: dict[str, str] = {}
        for name in _GROUP_KEYS:
            expected = given.get(name)
            if expected is None and scores:
                expected = getattr(scores[0], name)
            if expected is None:
                raise MixedScoreGroupError(
                    f"{name} is required when aggregating an empty score list", field=name
                )
            for row in scores:
                if getattr(row, name) != expected:
                    raise MixedScoreGroupError(
                        f"Score rows disagree on {name}: {getattr(row, name)!r} != {expected!r}",
                        field=name,
                    )
            keys[name] = expected
        return keys

    @staticmethod
    def _pooled_percentage(rows: Sequence[AssignmentScore]) -> Optional[float]:
        if not rows:
            return None
        total_max = sum(r.max_score for r in rows)
        return sum(r.score for r in rows) / total_max * 100

    def _weighted_percentage(
        self, rows: Sequence[AssignmentScore], keys: Mapping[str, str]
    ) -> tuple[Optional[float], list[EngineWarning]]:
        warnings: list[EngineWarning] = []
        by_type: dict[str, list[AssignmentScore]] = defaultdict(list)
        for row in rows:
            by_type[row.assignment_type_id].append(row)

        weighted_sum = 0.0
        total_weight = 0.0
        for type_id in sorted(by_type):
            weight = self.assessment_weights.get(type_id)
            if weight is None or weight <= 0:
                warnings.append(EngineWarning(
                    code="unweighted_assessment",
                    message=f"Assessment type {type_id!r} has no weight; its scores are excluded",
                    context={**keys, "assignment_type_id": type_id},
                ))
                continue
            weighted_sum += self._pooled_percentage(by_type[type_id]) * weight
            total_weight += weight

        if total_weight <= 0:
            return None, warnings
        return weighted_sum / total_weight, warnings

    def _no_scores(
        self, keys: Mapping[str, str], warnings: list[EngineWarning], flagged: bool
    ) -> SubjectAggregate:
        return SubjectAggregate(
            **keys,
            percentage=None,
            grade=self.sentinel_grade,
            remark=self.no_scores_remark,
            status="no_scores",
            flagged_for_audit=flagged,
            warnings=warnings,
        )
