"""Pydantic v2 record, result and request/response schemas."""

from progression.schemas.records import (
    AssignmentScore,
    AttendanceRecord,
    GradeSetting,
    PromotionCriteria,
    RosterEntry,
    SchoolClass,
    Term,
)
from progression.schemas.requests import (
    ClassReportsResponse,
    CompileClassRequest,
    CompileReportRequest,
    RankingRequest,
    RankingResponse,
    ResolveGradeRequest,
    ResolveGradeResponse,
    SnapshotPayload,
    ValidateSchemeRequest,
    ValidateSchemeResponse,
)
from progression.schemas.results import (
    EngineWarning,
    PromotionDecision,
    StudentReport,
    StudentTermSummary,
    SubjectAggregate,
)

__all__ = [
    "GradeSetting",
    "AssignmentScore",
    "PromotionCriteria",
    "RosterEntry",
    "SchoolClass",
    "Term",
    "AttendanceRecord",
    "EngineWarning",
    "SubjectAggregate",
    "StudentTermSummary",
    "PromotionDecision",
    "StudentReport",
    "SnapshotPayload",
    "ResolveGradeRequest",
    "ResolveGradeResponse",
    "ValidateSchemeRequest",
    "ValidateSchemeResponse",
    "CompileReportRequest",
    "CompileClassRequest",
    "RankingRequest",
    "RankingResponse",
    "ClassReportsResponse",
]
