"""Unit tests for grade resolution and scheme validation
(progression/services/grading_scheme.py).

No database or external services are used.
"""

from __future__ import annotations

import math

import pytest

from progression.exceptions import InvalidPercentageError
from progression.schemas.records import GradeSetting
from progression.services.grading_scheme import (
    GradingSchemeResolver,
    check_percentage,
    parse_range,
    resolve,
    round_half_up,
    validate_scheme,
)


def _codes(warnings) -> list[str]:
    return [w.code for w in warnings]


# ---------------------------------------------------------------------------
# parse_range / helpers
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "text, expected",
    [
        ("80-100", (80.0, 100.0)),
        (" 79.5 - 89.4 ", (79.5, 89.4)),
        ("80–89", (80.0, 89.0)),
        ("50-50", (50.0, 50.0)),
        ("100-80", None),
        ("abc", None),
        ("80", None),
        ("", None),
    ],
)
def test_parse_range(text, expected):
    """Ranges are two non-negative numbers joined by a dash with low <= high."""
    assert parse_range(text) == expected


@pytest.mark.parametrize("bad", [-0.01, 100.01, math.nan, math.inf, True, "50", None])
def test_check_percentage_rejects_invalid_values(bad):
    """Anything that is not a finite number in [0, 100] raises InvalidPercentageError."""
    with pytest.raises(InvalidPercentageError) as exc_info:
        check_percentage(bad)
    assert exc_info.value.value is bad, "The rejected value must be kept on the exception"


def test_round_half_up_is_not_bankers_rounding():
    """Half-way values round away from zero, matching report-card arithmetic."""
    assert round_half_up(89.5, 0) == 90.0
    assert round_half_up(88.5, 0) == 89.0
    assert round_half_up(2.675, 2) == 2.68
    assert round_half_up(74.994, 2) == 74.99


# ---------------------------------------------------------------------------
# resolve
# ---------------------------------------------------------------------------


def test_every_whole_percentage_resolves_to_exactly_one_band(default_scheme):
    """With a non-overlapping scheme covering 0-100, each percentage hits one band.

    The returned band's bounds must contain the percentage.
    """
    resolver = GradingSchemeResolver(default_scheme)
    for p in range(0, 101):
        resolution = resolver.resolve(p)
        assert resolution.found, f"{p} must resolve to a grade"
        assert resolution.band.low <= p <= resolution.band.high, (
            f"Band {resolution.band.describe()} does not contain {p}"
        )
        matches = [b for b in resolver.bands if b.contains(p)]
        assert len(matches) == 1, f"{p} matched {len(matches)} bands"


def test_resolve_returns_grade_and_remark(default_scheme):
    resolution = resolve(85, default_scheme)

    assert resolution.label() == ("A", "Very Good")


def test_gap_in_scheme_returns_not_found():
    """A percentage outside every configured range resolves to NotFound.

    The scheme leaves 0-59 uncovered; 50 must not silently fall into B.
    """
    scheme = [
        GradeSetting(grade="A", range="80-100"),
        GradeSetting(grade="B", range="60-79"),
    ]
    resolution = resolve(50, scheme)

    assert resolution.found is False, "50 is not covered by any range"
    assert resolution.label("N/A") == ("N/A", "N/A"), (
        "NotFound must render as the sentinel grade and remark"
    )


def test_overlapping_ranges_first_row_wins():
    """When ranges overlap, the earlier row in configured order wins."""
    scheme = [
        GradeSetting(grade="A+", range="70-100"),
        GradeSetting(grade="A", range="75-100"),
    ]
    assert resolve(80, scheme).band.grade == "A+"

    reordered = list(reversed(scheme))
    assert resolve(80, reordered).band.grade == "A", (
        "Reordering the rows must change which overlapping row wins"
    )


def test_range_bounds_are_inclusive(default_scheme):
    resolver = GradingSchemeResolver(default_scheme)

    assert resolver.resolve(90).band.grade == "A+"
    assert resolver.resolve(89).band.grade == "A"
    assert resolver.resolve(0).band.grade == "F"
    assert resolver.resolve(100).band.grade == "A+"


def test_resolve_rejects_out_of_range_percentage(default_scheme):
    with pytest.raises(InvalidPercentageError):
        resolve(101, default_scheme)


def test_malformed_row_is_skipped_with_warning():
    """An unreadable range is skipped and reported; other rows still resolve."""
    scheme = [
        GradeSetting(grade="A", range="eighty-100"),
        GradeSetting(grade="B", range="0-100"),
    ]
    resolver = GradingSchemeResolver(scheme)

    assert _codes(resolver.warnings) == ["malformed_range"]
    assert resolver.warnings[0].context["index"] == 0
    resolution = resolver.resolve(90)
    assert resolution.band.grade == "B", "The malformed row must not match anything"
    assert _codes(resolution.warnings) == ["malformed_range"], (
        "Scheme warnings travel with each resolution"
    )


def test_blank_trailing_row_is_ignored(default_scheme):
    """The editor's empty placeholder row is neither a band nor a warning."""
    resolver = GradingSchemeResolver([*default_scheme, GradeSetting(grade="", range="")])

    assert resolver.warnings == []
    assert len(resolver.bands) == len(default_scheme)


def test_resolver_copies_the_scheme(default_scheme):
    """Editing the caller's list after construction does not change resolution."""
    resolver = GradingSchemeResolver(default_scheme)
    default_scheme.insert(0, GradeSetting(grade="Z", range="0-100"))

    assert resolver.resolve(95).band.grade == "A+"


# ---------------------------------------------------------------------------
# validate_scheme
# ---------------------------------------------------------------------------


def test_default_scheme_is_valid_at_whole_number_precision(default_scheme):
    """80-89 followed by 90-100 leaves no gap when lookups use whole numbers."""
    assert validate_scheme(default_scheme, lookup_decimals=0) == []


def test_gaps_between_bands_reported_at_finer_precision(default_scheme):
    """At two-decimal lookups 89.5 falls between 80-89 and 90-100."""
    warnings = validate_scheme(default_scheme, lookup_decimals=2)

    gaps = [w for w in warnings if w.code == "coverage_gap"]
    assert len(gaps) == 5, f"Expected one gap between each pair of bands, got {gaps}"
    assert (gaps[0].context["low"], gaps[0].context["high"]) == (49.0, 50.0)


def test_uncovered_low_end_reported():
    scheme = [
        GradeSetting(grade="A", range="80-100"),
        GradeSetting(grade="B", range="60-79"),
    ]
    warnings = validate_scheme(scheme)

    assert _codes(warnings) == ["coverage_gap"]
    assert warnings[0].context == {"low": 0.0, "high": 60.0}


def test_overlap_reported_with_priority_row():
    scheme = [
        GradeSetting(grade="A+", range="70-100"),
        GradeSetting(grade="A", range="75-100"),
        GradeSetting(grade="F", range="0-69"),
    ]
    warnings = validate_scheme(scheme)

    overlaps = [w for w in warnings if w.code == "overlapping_range"]
    assert len(overlaps) == 1
    assert overlaps[0].context["first_grade"] == "A+"
    assert overlaps[0].context["overlap"] == [75.0, 100.0]
    assert "'A+' takes priority" in overlaps[0].message


def test_out_of_bounds_and_empty_scheme():
    assert "out_of_bounds_range" in _codes(
        validate_scheme([GradeSetting(grade="A", range="0-110")])
    )
    assert _codes(validate_scheme([])) == ["empty_scheme"]
    assert _codes(validate_scheme([GradeSetting(grade="A", range="x")])) == [
        "malformed_range",
        "empty_scheme",
    ]
