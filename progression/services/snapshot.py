"""Immutable point-in-time snapshot of every input the engine reads.

Configuration can be edited in another tab while reports are generated, so
each computation is handed one frozen snapshot and never goes back to the
source for more data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from progression.exceptions import TermNotFoundError
from progression.schemas.records import (
    AssignmentScore,
    AttendanceRecord,
    GradeSetting,
    PromotionCriteria,
    RosterEntry,
    SchoolClass,
    Term,
)
from progression.schemas.requests import SnapshotPayload


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class EngineSnapshot:
    """Read-only bundle of records for one computation.

    Use :meth:`build` or :meth:`from_payload` rather than the constructor so
    every collection is copied into a tuple or read-only mapping.
    """

    terms: Mapping[str, Term]
    grade_settings: tuple[GradeSetting, ...] = ()
    scores: tuple[AssignmentScore, ...] = ()
    roster: Mapping[str, RosterEntry] = field(default_factory=lambda: _frozen({}))
    classes: Mapping[str, SchoolClass] = field(default_factory=lambda: _frozen({}))
    criteria: tuple[PromotionCriteria, ...] = ()
    attendance: Mapping[tuple[str, str], float] = field(default_factory=lambda: _frozen({}))
    assessment_weights: Mapping[str, float] = field(default_factory=lambda: _frozen({}))

    @classmethod
    def build(
        cls,
        *,
        terms: Iterable[Term],
        grade_settings: Iterable[GradeSetting] = (),
        scores: Iterable[AssignmentScore] = (),
        roster: Iterable[RosterEntry] = (),
        classes: Iterable[SchoolClass] = (),
        criteria: Iterable[PromotionCriteria] = (),
        attendance: Iterable[AttendanceRecord] = (),
        assessment_weights: Optional[Mapping[str, float]] = None,
    ) -> EngineSnapshot:
        """Copy the given records into a frozen snapshot.

        Grading-scheme order is preserved exactly; it decides which row wins
        when ranges overlap.
        """
        return cls(
            terms=_frozen({t.term_id: t for t in terms}),
            grade_settings=tuple(grade_settings),
            scores=tuple(scores),
            roster=_frozen({r.student_id: r for r in roster}),
            classes=_frozen({c.class_id: c for c in classes}),
            criteria=tuple(criteria),
            attendance=_frozen({(a.student_id, a.term_id): a.attendance_percent for a in attendance}),
            assessment_weights=_frozen(dict(assessment_weights or {})),
        )

    @classmethod
    def from_payload(cls, payload: SnapshotPayload) -> EngineSnapshot:
        """Freeze the records posted by an API client."""
        return cls.build(
            terms=payload.terms,
            grade_settings=payload.grade_settings,
            scores=payload.scores,
            roster=payload.roster,
            classes=payload.classes,
            criteria=payload.criteria,
            attendance=payload.attendance,
            assessment_weights=payload.assessment_weights,
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def term(self, term_id: str) -> Term:
        """Return the term or raise :class:`TermNotFoundError`."""
        try:
            return self.terms[term_id]
        except KeyError:
            raise TermNotFoundError(term_id) from None

    def school_level_of(self, class_id: str) -> Optional[str]:
        school_class = self.classes.get(class_id)
        return school_class.school_level if school_class else None

    def attendance_for(self, student_id: str, term_id: str) -> Optional[float]:
        return self.attendance.get((student_id, term_id))

    def criteria_for(
        self, academic_year: str, school_level: Optional[str]
    ) -> Optional[PromotionCriteria]:
        """Most specific criteria for a year and level.

        Preference: exact year and level, the year's level-less record, then
        records with no year (standing rules) for the level, then for all.
        """
        candidates = [
            (academic_year, school_level),
            (academic_year, None),
            (None, school_level),
            (None, None),
        ]
        for year, level in candidates:
            for record in self.criteria:
                if record.academic_year == year and record.school_level == level:
                    return record
        return None
