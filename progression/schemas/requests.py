"""Pydantic v2 request/response schemas for the engine API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from progression.schemas.records import (
    AssignmentScore,
    AttendanceRecord,
    GradeSetting,
    PromotionCriteria,
    RosterEntry,
    SchoolClass,
    Term,
)
from progression.schemas.results import EngineWarning, StudentReport, StudentTermSummary

RankingScope = Literal["class", "level", "school"]


class SnapshotPayload(BaseModel):
    """Every record one computation needs, posted by a client that owns the data.

    Attributes:
        terms: Known terms (at least the one being computed).
        grade_settings: Grading scheme rows in configured priority order.
        scores: Assessment scores; rows for other terms are ignored.
        roster: Class enrolments with admission order.
        classes: Class metadata (school level, terminal flag).
        criteria: Promotion criteria records.
        attendance: Attendance percentages per student and term.
        assessment_weights: Optional assignment_type_id → weight mapping.
    """

    model_config = ConfigDict(strict=False, populate_by_name=True)

    terms: list[Term] = Field(..., min_length=1)
    grade_settings: list[GradeSetting] = Field(default_factory=list)
    scores: list[AssignmentScore] = Field(default_factory=list)
    roster: list[RosterEntry] = Field(default_factory=list)
    classes: list[SchoolClass] = Field(default_factory=list)
    criteria: list[PromotionCriteria] = Field(default_factory=list)
    attendance: list[AttendanceRecord] = Field(default_factory=list)
    assessment_weights: dict[str, float] = Field(default_factory=dict)


class ResolveGradeRequest(BaseModel):
    """Request payload for POST /grading/resolve."""

    model_config = ConfigDict(strict=False, populate_by_name=True)

    percentage: float = Field(..., description="Percentage to resolve, 0-100")
    scheme: list[GradeSetting] = Field(default_factory=list)


class ResolveGradeResponse(BaseModel):
    """Response payload for POST /grading/resolve."""

    found: bool
    grade: str
    remark: str
    low: float | None = None
    high: float | None = None
    warnings: list[EngineWarning] = Field(default_factory=list)


class ValidateSchemeRequest(BaseModel):
    """Request payload for POST /grading/validate."""

    model_config = ConfigDict(strict=False, populate_by_name=True)

    scheme: list[GradeSetting] = Field(default_factory=list)


class ValidateSchemeResponse(BaseModel):
    """Response payload for POST /grading/validate."""

    valid: bool
    warnings: list[EngineWarning] = Field(default_factory=list)


class CompileReportRequest(BaseModel):
    """Request payload for POST /engine/report."""

    model_config = ConfigDict(strict=False, populate_by_name=True)

    snapshot: SnapshotPayload
    student_id: str
    term_id: str


class CompileClassRequest(BaseModel):
    """Request payload for POST /engine/class-reports."""

    model_config = ConfigDict(strict=False, populate_by_name=True)

    snapshot: SnapshotPayload
    class_id: str
    term_id: str


class RankingRequest(BaseModel):
    """Request payload for POST /engine/rankings."""

    model_config = ConfigDict(strict=False, populate_by_name=True)

    snapshot: SnapshotPayload
    term_id: str
    scope: RankingScope = "class"
    group: str | None = Field(
        default=None, description="Class id (class scope) or school level (level scope)"
    )


class ClassReportsResponse(BaseModel):
    """Report cards for every student of a class."""

    term_id: str
    class_id: str
    reports: list[StudentReport]
    total: int
    warnings: list[EngineWarning] = Field(default_factory=list)


class RankingResponse(BaseModel):
    """Ranked summaries for one scope."""

    term_id: str
    scope: RankingScope
    group: str | None = None
    rankings: list[StudentTermSummary]
    total: int
