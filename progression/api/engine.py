"""Stateless engine API routes.

Provides:
    POST /engine/report          - Compile one student's report.
    POST /engine/class-reports   - Compile every report of a class.
    POST /engine/rankings        - Ranked summaries for a scope.

Each request carries its own snapshot of records, so a client that owns the
data (e.g. the desktop app's local store) can use the engine without a
database.  Domain exceptions are converted to structured errors by the
handlers registered in :mod:`progression.main`.
"""

import logging

from fastapi import APIRouter

from progression.api.dependencies import SettingsDep
from progression.schemas.requests import (
    ClassReportsResponse,
    CompileClassRequest,
    CompileReportRequest,
    RankingRequest,
    RankingResponse,
)
from progression.schemas.results import StudentReport
from progression.services.report_compiler import ReportCompiler
from progression.services.snapshot import EngineSnapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/engine", tags=["engine"])

_ERROR_RESPONSES = {
    404: {"description": "Unknown term or student"},
    409: {"description": "Empty roster or missing promotion criteria"},
    422: {"description": "Invalid request"},
}


@router.post(
    "/report",
    response_model=StudentReport,
    summary="Compile one student's report",
    responses=_ERROR_RESPONSES,
)
async def compile_report(request: CompileReportRequest, settings: SettingsDep) -> StudentReport:
    """Compile the report of ``student_id`` for ``term_id`` from the posted snapshot."""
    compiler = ReportCompiler(EngineSnapshot.from_payload(request.snapshot), settings)
    return compiler.compile(request.student_id, request.term_id)


@router.post(
    "/class-reports",
    response_model=ClassReportsResponse,
    summary="Compile every report of a class",
    responses=_ERROR_RESPONSES,
)
async def compile_class_reports(
    request: CompileClassRequest, settings: SettingsDep
) -> ClassReportsResponse:
    """Compile the class's reports in class rank order."""
    compiler = ReportCompiler(EngineSnapshot.from_payload(request.snapshot), settings)
    compiled = compiler.class_reports(request.class_id, request.term_id)
    return ClassReportsResponse(
        term_id=request.term_id,
        class_id=request.class_id,
        reports=compiled.reports,
        total=len(compiled.reports),
        warnings=compiled.warnings,
    )


@router.post(
    "/rankings",
    response_model=RankingResponse,
    summary="Rank students for a term",
    responses=_ERROR_RESPONSES,
)
async def rank_students(request: RankingRequest, settings: SettingsDep) -> RankingResponse:
    """Return summaries sorted by the requested scope's rank."""
    compiler = ReportCompiler(EngineSnapshot.from_payload(request.snapshot), settings)
    rankings = compiler.rank_term(request.term_id, request.scope, request.group)
    return RankingResponse(
        term_id=request.term_id,
        scope=request.scope,
        group=request.group,
        rankings=rankings,
        total=len(rankings),
    )
