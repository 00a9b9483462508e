"""Pydantic v2 schemas for records derived by the engine.

None of these are persisted; they are recomputed on every request and handed
to the renderer / promotion-review screens.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

DecisionLabel = Literal["Promote", "Retain", "Graduate"]
AggregateStatus = Literal["graded", "no_scores"]


class EngineWarning(BaseModel):
    """A non-fatal configuration or data-quality issue.

    Attributes:
        code: Machine-readable category (e.g. 'malformed_range').
        message: Human-readable description.
        context: Identifiers of the offending row / student / subject.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    code: str
    message: str
    context: dict[str, Any] = Field(default_factory=dict)


class SubjectAggregate(BaseModel):
    """Resolved percentage and grade for one student in one subject and term."""

    model_config = ConfigDict(populate_by_name=True)

    student_id: str
    subject_id: str
    term_id: str
    percentage: float | None = Field(default=None, description="None when no scores recorded")
    grade: str
    remark: str
    status: AggregateStatus = "graded"
    flagged_for_audit: bool = False
    position: int | None = Field(default=None, description="Rank among classmates in this subject")
    warnings: list[EngineWarning] = Field(default_factory=list)

    @property
    def is_graded(self) -> bool:
        return self.status == "graded" and self.percentage is not None


class StudentTermSummary(BaseModel):
    """A student's aggregated standing for one term."""

    model_config = ConfigDict(populate_by_name=True)

    student_id: str
    class_id: str
    term_id: str
    school_level: str | None = None
    enrollment_order: int = 0
    subject_aggregates: list[SubjectAggregate] = Field(default_factory=list)
    overall_average: float = 0.0
    overall_total: float = 0.0
    graded_subject_count: int = 0
    failed_subject_count: int = 0
    class_rank: int | None = None
    level_rank: int | None = None
    school_rank: int | None = None

    @model_validator(mode="after")
    def _count_graded_subjects(self) -> StudentTermSummary:
        # Aggregates, when present, are the source of truth for the count.
        if self.subject_aggregates:
            self.graded_subject_count = sum(1 for a in self.subject_aggregates if a.is_graded)
        return self

    @property
    def has_scores(self) -> bool:
        return self.graded_subject_count > 0 or any(
            a.is_graded for a in self.subject_aggregates
        )


class PromotionDecision(BaseModel):
    """Outcome of evaluating promotion criteria for one student."""

    model_config = ConfigDict(populate_by_name=True)

    student_id: str
    class_id: str
    decision: DecisionLabel
    reasons: list[str] = Field(default_factory=list)


class StudentReport(StudentTermSummary):
    """Everything a report card needs for one student and term."""

    decision: PromotionDecision
    attendance_percent: float | None = None
    is_terminal_class: bool = False
    class_size: int = Field(default=0, description="Number of students enrolled in the class")
    warnings: list[EngineWarning] = Field(default_factory=list)
