"""
Report compilation for one student or a whole class.

Runs aggregation → summaries → ranking → promotion over one frozen
:class:`EngineSnapshot`.  Every call recomputes the full term from the
snapshot, so compiling the same student twice yields identical reports and
nothing carries over between calls.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Collection, Optional

from progression.config import Settings, get_settings
from progression.exceptions import (
    EmptyRosterError,
    InvalidRankingRequestError,
    PromotionCriteriaNotFoundError,
    StudentNotFoundError,
)
from progression.schemas.records import AssignmentScore, PromotionCriteria, Term
from progression.schemas.results import EngineWarning, StudentReport, StudentTermSummary
from progression.services.grading_scheme import GradingSchemeResolver
from progression.services.promotion import PromotionEvaluator
from progression.services.ranking import SCOPE_FIELDS, RankingEngine, Scope, standing_key, summarize
from progression.services.score_aggregator import ScoreAggregator
from progression.services.snapshot import EngineSnapshot

logger = logging.getLogger(__name__)


@dataclass
class Standings:
    """Fully ranked summaries of every enrolled student for one term."""

    term: Term
    summaries: list[StudentTermSummary]
    criteria: dict[str, PromotionCriteria] = field(default_factory=dict)  # by class_id
    warnings: list[EngineWarning] = field(default_factory=list)

    def class_size(self, class_id: str) -> int:
        return sum(1 for s in self.summaries if s.class_id == class_id)

    def warnings_for(self, class_id: str) -> list[EngineWarning]:
        """Batch warnings relevant to one class; other classes' criteria_missing are dropped."""
        return [
            w for w in self.warnings
            if w.code != "criteria_missing" or w.context.get("class_id") == class_id
        ]


@dataclass
class ClassReports:
    """Reports of one class in rank order, with the batch-level warnings."""

    reports: list[StudentReport]
    warnings: list[EngineWarning] = field(default_factory=list)


class ReportCompiler:
    """Compile report records from a snapshot.

    Args:
        snapshot: The frozen inputs of this computation.
        settings: Engine settings; defaults to the application settings.
    """

    def __init__(self, snapshot: EngineSnapshot, settings: Optional[Settings] = None) -> None:
        self.snapshot = snapshot
        self.settings = settings or get_settings()
        self.resolver = GradingSchemeResolver(snapshot.grade_settings)
        self.aggregator = ScoreAggregator.from_settings(
            self.resolver, self.settings, snapshot.assessment_weights
        )
        self.ranking = RankingEngine()
        self.evaluator = PromotionEvaluator()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compile(self, student_id: str, term_id: str) -> StudentReport:
        """Compile one student's report for a term.

        Raises:
            TermNotFoundError: Unknown term.
            StudentNotFoundError: Student not on the roster.
            PromotionCriteriaNotFoundError: No criteria for the student's
                academic year and fallback is disabled.
        """
        self.snapshot.term(term_id)
        if student_id not in self.snapshot.roster:
            raise StudentNotFoundError(student_id, term_id)

        class_id = self.snapshot.roster[student_id].class_id
        standings = self.standings(term_id, strict_classes={class_id})
        summary = next(s for s in standings.summaries if s.student_id == student_id)
        return self._report(summary, standings)

    def compile_class(self, class_id: str, term_id: str) -> list[StudentReport]:
        """Compile every report of a class, in class rank order.

        Raises:
            TermNotFoundError: Unknown term.
            EmptyRosterError: Nobody is enrolled in the class.
            PromotionCriteriaNotFoundError: As for :meth:`compile`.
        """
        return self.class_reports(class_id, term_id).reports

    def class_reports(self, class_id: str, term_id: str) -> ClassReports:
        """Like :meth:`compile_class`, also returning the batch-level warnings."""
        self.snapshot.term(term_id)
        if not any(r.class_id == class_id for r in self.snapshot.roster.values()):
            raise EmptyRosterError("class", class_id)

        standings = self.standings(term_id, strict_classes={class_id})
        members = sorted(
            (s for s in standings.summaries if s.class_id == class_id),
            key=lambda s: (s.class_rank is None, s.class_rank or 0, standing_key(s)),
        )
        reports = [self._report(s, standings) for s in members]
        logger.info(
            "Compiled %d report(s) for class %s, term %s", len(reports), class_id, term_id
        )
        return ClassReports(reports=reports, warnings=standings.warnings_for(class_id))

    def rank_term(
        self, term_id: str, scope: Scope, group: Optional[str] = None
    ) -> list[StudentTermSummary]:
        """Return ranked summaries for a ranking display.

        Args:
            term_id: The term.
            scope: ``class``, ``level`` or ``school``.
            group: Restrict to one class id (class scope) or school level
                (level scope); ignored for school scope.

        Missing promotion criteria never abort a ranking: the default fail
        threshold is used for the failed-subject tie-break instead.
        """
        rank_field = SCOPE_FIELDS.get(scope)
        if rank_field is None:
            raise InvalidRankingRequestError(f"Unknown ranking scope {scope!r}")
        standings = self.standings(term_id, strict=False)
        summaries = standings.summaries
        group_attr = {"class": "class_id", "level": "school_level"}.get(scope)
        if group is not None and group_attr is not None:
            summaries = [s for s in summaries if getattr(s, group_attr) == group]
            if not summaries:
                raise EmptyRosterError(scope, group)

        # Without a group, keep each class (or level) together in rank order.
        return sorted(
            summaries,
            key=lambda s: (
                (getattr(s, group_attr) or "") if group_attr else "",
                getattr(s, rank_field) is None,
                getattr(s, rank_field) or 0,
                standing_key(s),
            ),
        )

    def standings(
        self,
        term_id: str,
        strict: bool = True,
        strict_classes: Optional[Collection[str]] = None,
    ) -> Standings:
        """Aggregate, summarise and rank every enrolled student for a term.

        Args:
            term_id: The term.
            strict: Raise when promotion criteria are missing (unless the
                fallback setting is on); when False, always fall back.
            strict_classes: Limit ``strict`` to these class ids. Other
                classes only need a fail threshold for ranking, so they fall
                back to the defaults with a ``criteria_missing`` warning.

        Raises:
            TermNotFoundError: Unknown term.
            EmptyRosterError: The roster is empty.
        """
        term = self.snapshot.term(term_id)
        roster = sorted(
            self.snapshot.roster.values(), key=lambda r: (r.enrollment_order, r.student_id)
        )
        if not roster:
            raise EmptyRosterError("school")

        warnings: list[EngineWarning] = list(self.resolver.warnings)

        by_student: dict[str, list[AssignmentScore]] = defaultdict(list)
        class_subjects: dict[str, dict[str, None]] = defaultdict(dict)
        unenrolled: set[str] = set()
        for row in self.snapshot.scores:
            if row.term_id != term_id:
                continue
            entry = self.snapshot.roster.get(row.student_id)
            if entry is None:
                unenrolled.add(row.student_id)
                continue
            by_student[row.student_id].append(row)
            class_subjects[entry.class_id][row.subject_id] = None

        if unenrolled:
            logger.warning("Ignoring scores for %d unenrolled student(s)", len(unenrolled))
            warnings.append(EngineWarning(
                code="unenrolled_scores",
                message=f"Scores recorded for {len(unenrolled)} student(s) not on the roster were ignored",
                context={"student_ids": sorted(unenrolled)},
            ))

        criteria_by_class: dict[str, PromotionCriteria] = {}
        summaries: list[StudentTermSummary] = []
        for entry in roster:
            if entry.class_id not in criteria_by_class:
                required = strict and (strict_classes is None or entry.class_id in strict_classes)
                criteria, missing = self._criteria_for(term, entry.class_id, required)
                criteria_by_class[entry.class_id] = criteria
                if missing is not None:
                    warnings.append(missing)

            aggregates = self.aggregator.aggregate_student(
                by_student.get(entry.student_id, []),
                student_id=entry.student_id,
                term_id=term_id,
                subject_ids=list(class_subjects[entry.class_id]),
            )
            summaries.append(summarize(
                entry.student_id,
                entry.class_id,
                term_id,
                aggregates,
                fail_threshold=criteria_by_class[entry.class_id].fail_threshold,
                enrollment_order=entry.enrollment_order,
                school_level=self.snapshot.school_level_of(entry.class_id),
                decimals=self.settings.percentage_decimals,
            ))

        ranked = self.ranking.assign_subject_positions(self.ranking.rank_all(summaries))
        logger.info("Standings computed for %d student(s), term %s", len(ranked), term_id)
        return Standings(term=term, summaries=ranked, criteria=criteria_by_class, warnings=warnings)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _criteria_for(
        self, term: Term, class_id: str, strict: bool
    ) -> tuple[PromotionCriteria, Optional[EngineWarning]]:
        level = self.snapshot.school_level_of(class_id)
        criteria = self.snapshot.criteria_for(term.academic_year, level)
        if criteria is not None:
            return criteria, None

        if strict and not self.settings.criteria_fallback_enabled:
            raise PromotionCriteriaNotFoundError(term.academic_year, level)

        logger.warning(
            "No promotion criteria for %s (level %s); using defaults", term.academic_year, level
        )
        defaults = PromotionCriteria(
            academic_year=term.academic_year,
            school_level=level,
            min_average=self.settings.default_min_average,
            max_failed_subjects=self.settings.default_max_failed_subjects,
            min_attendance_percent=self.settings.default_min_attendance_percent,
            fail_threshold=self.settings.default_fail_threshold,
        )
        warning = EngineWarning(
            code="criteria_missing",
            message=(
                f"No promotion criteria configured for {term.academic_year}"
                f"{f' ({level})' if level else ''}; default thresholds applied"
            ),
            context={"academic_year": term.academic_year, "school_level": level, "class_id": class_id},
        )
        return defaults, warning

    def _is_terminal(self, class_id: str) -> bool:
        school_class = self.snapshot.classes.get(class_id)
        if school_class is not None and school_class.is_terminal:
            return True
        return class_id in self.settings.terminal_class_ids

    def _report(self, summary: StudentTermSummary, standings: Standings) -> StudentReport:
        criteria = standings.criteria[summary.class_id]
        warnings = standings.warnings_for(summary.class_id)

        attendance = self.snapshot.attendance_for(summary.student_id, summary.term_id)
        if attendance is None:
            warnings.append(EngineWarning(
                code="attendance_missing",
                message="No attendance recorded for this term; attendance rule skipped",
                context={"student_id": summary.student_id, "term_id": summary.term_id},
            ))

        is_terminal = self._is_terminal(summary.class_id)
        decision = self.evaluator.evaluate(summary, attendance, criteria, is_terminal)

        return StudentReport(
            **summary.model_dump(),
            decision=decision,
            attendance_percent=attendance,
            is_terminal_class=is_terminal,
            class_size=standings.class_size(summary.class_id),
            warnings=warnings,
        )
