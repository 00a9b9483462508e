"""Grading-scheme API routes.

Provides:
    POST /grading/resolve    - Resolve one percentage against a posted scheme.
    POST /grading/validate   - Report configuration problems in a posted scheme.

The scheme editor calls ``/grading/validate`` before saving so overlaps and
gaps are shown to the administrator instead of silently mis-grading later.
"""

import logging

from fastapi import APIRouter

from progression.api.dependencies import SettingsDep
from progression.schemas.requests import (
    ResolveGradeRequest,
    ResolveGradeResponse,
    ValidateSchemeRequest,
    ValidateSchemeResponse,
)
from progression.services.grading_scheme import (
    GradingSchemeResolver,
    check_percentage,
    round_half_up,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/grading", tags=["grading"])


@router.post(
    "/resolve",
    response_model=ResolveGradeResponse,
    summary="Resolve a percentage to a grade",
    responses={
        200: {"description": "Resolution (``found`` is false when no row matches)"},
        422: {"description": "Percentage outside 0-100"},
    },
)
async def resolve_grade(request: ResolveGradeRequest, settings: SettingsDep) -> ResolveGradeResponse:
    """Return the first scheme row whose inclusive range contains the percentage.

    The percentage is rounded half-up to ``grade_lookup_decimals`` first, as
    report-card aggregation does.

    Raises:
        InvalidPercentageError: Handled globally as 422.
    """
    value = round_half_up(check_percentage(request.percentage), settings.grade_lookup_decimals)
    resolution = GradingSchemeResolver(request.scheme).resolve(value)
    grade, remark = resolution.label(settings.sentinel_grade)
    band = resolution.band
    return ResolveGradeResponse(
        found=resolution.found,
        grade=grade,
        remark=remark,
        low=band.low if band else None,
        high=band.high if band else None,
        warnings=resolution.warnings,
    )


@router.post(
    "/validate",
    response_model=ValidateSchemeResponse,
    summary="Validate a grading scheme",
)
async def validate_grading_scheme(
    request: ValidateSchemeRequest, settings: SettingsDep
) -> ValidateSchemeResponse:
    """Return every warning for the scheme; ``valid`` is true when there are none."""
    warnings = GradingSchemeResolver(request.scheme).validate(
        lookup_decimals=settings.grade_lookup_decimals
    )
    if warnings:
        logger.info("Grading scheme has %d problem(s)", len(warnings))
    return ValidateSchemeResponse(valid=not warnings, warnings=warnings)
