"""
Grading scheme resolution and validation.

Maps a percentage to a letter grade by walking the configured scheme in its
saved order and returning the first row whose inclusive range contains the
percentage.  Rows are reordered in the scheme editor to express priority, so
an earlier row beats a later overlapping one.

Malformed rows never abort a computation: they are skipped and reported as
warnings so the caller can surface them next to the affected report.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Sequence

from progression.exceptions import InvalidPercentageError
from progression.schemas.records import GradeSetting
from progression.schemas.results import EngineWarning

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MIN_PERCENTAGE = 0.0
MAX_PERCENTAGE = 100.0

# "80-100", "79.5 - 89.4", "80–89" (en dash from pasted spreadsheets)
_RANGE_PATTERN = re.compile(
    r"^\s*(\d+(?:\.\d+)?)\s*[-–—]\s*(\d+(?:\.\d+)?)\s*$"
)

# Float slack when comparing adjacent band edges
_EDGE_TOLERANCE = 1e-9


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GradeBand:
    """A parsed grading-scheme row."""

    index: int
    grade: str
    remarks: str
    low: float
    high: float

    def contains(self, percentage: float) -> bool:
        return self.low <= percentage <= self.high

    def describe(self) -> str:
        return f"'{self.grade}' ({_fmt(self.low)}-{_fmt(self.high)})"


@dataclass
class GradeResolution:
    """Result of resolving one percentage; ``band`` is None for NotFound."""

    percentage: float
    band: Optional[GradeBand] = None
    warnings: list[EngineWarning] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.band is not None

    def label(self, sentinel: str = "N/A") -> tuple[str, str]:
        """Return ``(grade, remark)``, substituting the sentinel for NotFound."""
        if self.band is None:
            return sentinel, sentinel
        return self.band.grade, self.band.remarks


# ---------------------------------------------------------------------------
# Helper utilities
# ---------------------------------------------------------------------------

def _fmt(value: float) -> str:
    return f"{value:g}"


def _is_blank(row: GradeSetting) -> bool:
    """The scheme editor always keeps one empty trailing row; ignore it."""
    return not (row.grade.strip() or row.range.strip() or row.remarks.strip())


def parse_range(value: str) -> Optional[tuple[float, float]]:
    """Parse a range string such as ``"80-100"`` into ``(low, high)``.

    Returns None when the string is not two non-negative numbers separated by
    a dash, or when the lower bound exceeds the upper bound.
    """
    match = _RANGE_PATTERN.match(value or "")
    if not match:
        return None
    low, high = float(match.group(1)), float(match.group(2))
    if low > high:
        return None
    return low, high


def check_percentage(value: Any) -> float:
    """Return ``value`` as a float, or raise if it is not a finite 0-100 number."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidPercentageError(value)
    number = float(value)
    if not math.isfinite(number) or not MIN_PERCENTAGE <= number <= MAX_PERCENTAGE:
        raise InvalidPercentageError(value)
    return number


def round_half_up(value: float, decimals: int) -> float:
    """Round like a report card does (0.5 always rounds up), not banker's rounding."""
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def compile_scheme(
    scheme: Sequence[GradeSetting],
) -> tuple[list[GradeBand], list[EngineWarning]]:
    """Parse every row of a scheme, keeping configured order.

    Returns:
        ``(bands, warnings)`` where malformed rows are absent from ``bands``
        and described in ``warnings``.
    """
    bands: list[GradeBand] = []
    warnings: list[EngineWarning] = []
    for index, row in enumerate(scheme):
        if _is_blank(row):
            continue
        bounds = parse_range(row.range)
        if bounds is None:
            warnings.append(EngineWarning(
                code="malformed_range",
                message=f"Grade '{row.grade}' has an unreadable range {row.range!r}; row skipped",
                context={"index": index, "grade": row.grade, "range": row.range},
            ))
            continue
        bands.append(GradeBand(
            index=index,
            grade=row.grade,
            remarks=row.remarks,
            low=bounds[0],
            high=bounds[1],
        ))
    return bands, warnings


# ---------------------------------------------------------------------------
# GradingSchemeResolver
# ---------------------------------------------------------------------------

class GradingSchemeResolver:
    """Resolve percentages against one frozen copy of a grading scheme.

    The scheme is copied and parsed once at construction, so edits made to the
    caller's list afterwards cannot leak into an in-flight computation.
    """

    def __init__(self, scheme: Sequence[GradeSetting]) -> None:
        self.scheme: tuple[GradeSetting, ...] = tuple(scheme)
        self.bands, self.warnings = compile_scheme(self.scheme)
        for warning in self.warnings:
            logger.warning("Grading scheme: %s", warning.message)

    def resolve(self, percentage: float) -> GradeResolution:
        """Return the first band containing ``percentage`` (inclusive).

        Raises:
            InvalidPercentageError: If ``percentage`` is not a finite 0-100 number.
        """
        value = check_percentage(percentage)
        for band in self.bands:
            if band.contains(value):
                return GradeResolution(percentage=value, band=band, warnings=list(self.warnings))
        logger.debug("No grade band contains %s", _fmt(value))
        return GradeResolution(percentage=value, warnings=list(self.warnings))

    def validate(self, lookup_decimals: int = 0) -> list[EngineWarning]:
        """Report every configuration problem in the scheme.

        Args:
            lookup_decimals: Precision percentages are rounded to before
                lookup; neighbouring bands closer than one step apart (such
                as ``80-89`` and ``90-100`` at 0 decimals) leave no gap.

        Returns:
            Warnings for malformed rows, out-of-bounds rows, overlapping
            pairs, uncovered intervals, and an empty scheme.
        """
        warnings = list(self.warnings)
        if not self.bands:
            warnings.append(EngineWarning(
                code="empty_scheme",
                message="The grading scheme has no usable rows; every grade will be N/A",
            ))
            return warnings

        for band in self.bands:
            if band.high > MAX_PERCENTAGE:
                warnings.append(EngineWarning(
                    code="out_of_bounds_range",
                    message=f"Grade {band.describe()} extends beyond 100",
                    context={"index": band.index, "grade": band.grade},
                ))

        warnings.extend(self._overlap_warnings())
        warnings.extend(self._gap_warnings(lookup_decimals))
        return warnings

    def _overlap_warnings(self) -> list[EngineWarning]:
        warnings: list[EngineWarning] = []
        for position, first in enumerate(self.bands):
            for second in self.bands[position + 1:]:
                if first.low <= second.high and second.low <= first.high:
                    low, high = max(first.low, second.low), min(first.high, second.high)
                    warnings.append(EngineWarning(
                        code="overlapping_range",
                        message=(
                            f"Grade {first.describe()} overlaps {second.describe()}; "
                            f"'{first.grade}' takes priority for {_fmt(low)}-{_fmt(high)}"
                        ),
                        context={
                            "first_index": first.index,
                            "second_index": second.index,
                            "first_grade": first.grade,
                            "second_grade": second.grade,
                            "overlap": [low, high],
                        },
                    ))
        return warnings

    def _gap_warnings(self, lookup_decimals: int) -> list[EngineWarning]:
        step = 10.0 ** -lookup_decimals
        gaps: list[tuple[float, float]] = []
        covered_to: Optional[float] = None

        for band in sorted(self.bands, key=lambda b: (b.low, b.high)):
            low, high = max(band.low, MIN_PERCENTAGE), min(band.high, MAX_PERCENTAGE)
            if low > high:
                continue
            if covered_to is None:
                if low > MIN_PERCENTAGE:
                    gaps.append((MIN_PERCENTAGE, low))
                covered_to = high
                continue
            if low - covered_to > step + _EDGE_TOLERANCE:
                gaps.append((covered_to, low))
            covered_to = max(covered_to, high)

        if covered_to is None:
            gaps.append((MIN_PERCENTAGE, MAX_PERCENTAGE))
        elif covered_to < MAX_PERCENTAGE:
            gaps.append((covered_to, MAX_PERCENTAGE))

        return [
            EngineWarning(
                code="coverage_gap",
                message=f"No grade covers percentages between {_fmt(low)} and {_fmt(high)}",
                context={"low": low, "high": high},
            )
            for low, high in gaps
        ]


# ---------------------------------------------------------------------------
# Module-level shortcuts
# ---------------------------------------------------------------------------

def resolve(percentage: float, scheme: Sequence[GradeSetting]) -> GradeResolution:
    """Resolve one percentage against ``scheme`` (first match wins)."""
    return GradingSchemeResolver(scheme).resolve(percentage)


def validate_scheme(
    scheme: Sequence[GradeSetting], lookup_decimals: int = 0
) -> list[EngineWarning]:
    """Return every configuration warning for ``scheme``."""
    return GradingSchemeResolver(scheme).validate(lookup_decimals=lookup_decimals)
