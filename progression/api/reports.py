"""Database-backed report and ranking routes.

Provides:
    GET /terms/{term_id}/students/{student_id}/report   - One student's report.
    GET /terms/{term_id}/classes/{class_id}/reports     - Every report of a class.
    GET /terms/{term_id}/rankings                       - Ranked summaries.

Each request loads one snapshot of the term through :class:`SnapshotLoader`
and computes from it; nothing is written back.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query

from progression.api.dependencies import SettingsDep, SnapshotLoaderDep
from progression.schemas.requests import ClassReportsResponse, RankingResponse, RankingScope
from progression.schemas.results import StudentReport
from progression.services.report_compiler import ReportCompiler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/terms", tags=["reports"])


@router.get(
    "/{term_id}/students/{student_id}/report",
    response_model=StudentReport,
    summary="Get a student's report for a term",
    responses={
        404: {"description": "Unknown term or student"},
        409: {"description": "Missing promotion criteria"},
        503: {"description": "Database unavailable"},
    },
)
async def get_student_report(
    term_id: str,
    student_id: str,
    loader: SnapshotLoaderDep,
    settings: SettingsDep,
) -> StudentReport:
    """Compile a student's report from the current database state."""
    snapshot = await loader.load(term_id)
    return ReportCompiler(snapshot, settings).compile(student_id, term_id)


@router.get(
    "/{term_id}/classes/{class_id}/reports",
    response_model=ClassReportsResponse,
    summary="Get every report of a class",
    responses={
        404: {"description": "Unknown term"},
        409: {"description": "Empty class or missing promotion criteria"},
        503: {"description": "Database unavailable"},
    },
)
async def get_class_reports(
    term_id: str,
    class_id: str,
    loader: SnapshotLoaderDep,
    settings: SettingsDep,
) -> ClassReportsResponse:
    """Compile the class's reports in class rank order."""
    snapshot = await loader.load(term_id)
    compiler = ReportCompiler(snapshot, settings)
    compiled = compiler.class_reports(class_id, term_id)
    return ClassReportsResponse(
        term_id=term_id,
        class_id=class_id,
        reports=compiled.reports,
        total=len(compiled.reports),
        warnings=compiled.warnings,
    )


@router.get(
    "/{term_id}/rankings",
    response_model=RankingResponse,
    summary="Rank students for a term",
    responses={
        404: {"description": "Unknown term"},
        409: {"description": "No students in the requested group"},
        503: {"description": "Database unavailable"},
    },
)
async def get_rankings(
    term_id: str,
    loader: SnapshotLoaderDep,
    settings: SettingsDep,
    scope: RankingScope = Query(default="class", description="class, level or school"),
    group: Optional[str] = Query(
        default=None, description="Class id (class scope) or school level (level scope)"
    ),
) -> RankingResponse:
    """Return summaries sorted by the requested scope's rank."""
    snapshot = await loader.load(term_id)
    rankings = ReportCompiler(snapshot, settings).rank_term(term_id, scope, group)
    logger.info("Ranked %d student(s) at %s scope for term %s", len(rankings), scope, term_id)
    return RankingResponse(
        term_id=term_id, scope=scope, group=group, rankings=rankings, total=len(rankings)
    )
