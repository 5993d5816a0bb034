"""
tests/test_time_utils.py — Unit tests for period resolution.

Tests cover:
  - Effective reference month (two-month publication lag)
  - Each period selector's range and label
  - Year boundaries
  - Strict YYYY-MM parsing and inclusive month ranges
"""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from comexdata_shared.models.trade import Period, SummaryPeriod
from comexdata_shared.time_utils import (
    PeriodError,
    format_period,
    month_abbreviation,
    month_range,
    parse_year_month,
    reference_months,
    resolve_period,
)

TODAY = date(2024, 5, 15)


# ---------------------------------------------------------------------------
# reference_months
# ---------------------------------------------------------------------------

class TestReferenceMonths:
    def test_applies_two_month_lag(self):
        ref = reference_months(TODAY)
        assert (ref.year, ref.month) == (2024, 3)
        assert (ref.previous_year, ref.previous_month) == (2024, 2)

    def test_crosses_year_boundary(self):
        ref = reference_months(date(2024, 1, 31))
        assert (ref.year, ref.month) == (2023, 11)
        assert (ref.previous_year, ref.previous_month) == (2023, 10)

    def test_previous_month_crosses_year(self):
        ref = reference_months(date(2024, 3, 1))
        assert (ref.year, ref.month) == (2024, 1)
        assert (ref.previous_year, ref.previous_month) == (2023, 12)


# ---------------------------------------------------------------------------
# resolve_period
# ---------------------------------------------------------------------------

class TestResolvePeriod:
    def test_current_month(self):
        resolved = resolve_period(SummaryPeriod.CURRENT_MONTH, today=TODAY)
        assert resolved.period == Period.of("2024-02", "2024-02")
        assert resolved.label == "fev/2024"

    def test_year_to_date(self):
        resolved = resolve_period(SummaryPeriod.YEAR_TO_DATE, today=TODAY)
        assert resolved.period == Period.of("2024-01", "2024-03")
        assert resolved.label == "Jan-mar/2024"

    def test_last_year(self):
        resolved = resolve_period(SummaryPeriod.LAST_YEAR, today=TODAY)
        assert resolved.period == Period.of("2023-01", "2023-12")
        assert resolved.label == "2023"

    def test_custom_used_verbatim(self):
        custom = Period.of("2022-04", "2022-09")
        resolved = resolve_period(SummaryPeriod.CUSTOM, custom, today=TODAY)
        assert resolved.period == custom
        assert resolved.label == "2022-04 - 2022-09"

    def test_custom_without_period_raises(self):
        with pytest.raises(PeriodError, match="Custom period is required"):
            resolve_period(SummaryPeriod.CUSTOM, today=TODAY)

    def test_selector_outside_allowed_set_raises(self):
        with pytest.raises(PeriodError, match="Unsupported period type"):
            resolve_period(
                SummaryPeriod.LAST_YEAR,
                today=TODAY,
                allowed={SummaryPeriod.CURRENT_MONTH, SummaryPeriod.CUSTOM},
            )

    def test_unknown_selector_raises(self):
        with pytest.raises(PeriodError):
            resolve_period("weekly", today=TODAY)  # type: ignore[arg-type]

    def test_current_month_in_january_uses_previous_year(self):
        resolved = resolve_period(SummaryPeriod.CURRENT_MONTH, today=date(2024, 2, 10))
        assert resolved.period == Period.of("2023-11", "2023-11")
        assert resolved.label == "nov/2023"

    def test_year_to_date_in_february_covers_previous_year(self):
        resolved = resolve_period(SummaryPeriod.YEAR_TO_DATE, today=date(2024, 2, 10))
        assert resolved.period == Period.of("2023-01", "2023-12")
        assert resolved.label == "Jan-dez/2023"


# ---------------------------------------------------------------------------
# Formatting / parsing helpers
# ---------------------------------------------------------------------------

class TestHelpers:
    def test_month_abbreviations_are_lowercase_without_dot(self):
        names = [month_abbreviation(m) for m in range(1, 13)]
        assert names == [
            "jan", "fev", "mar", "abr", "mai", "jun",
            "jul", "ago", "set", "out", "nov", "dez",
        ]

    def test_format_period_zero_pads(self):
        assert format_period(2024, 3) == "2024-03"
        assert format_period(2024) == "2024-01"

    def test_parse_year_month(self):
        assert parse_year_month("2024-12") == (2024, 12)

    @pytest.mark.parametrize("raw", ["2024-13", "2024-00", "2024-1", "24-01", "2024/01", ""])
    def test_parse_year_month_rejects_malformed(self, raw):
        with pytest.raises(PeriodError):
            parse_year_month(raw)

    def test_month_range_is_inclusive_and_chronological(self):
        assert month_range("2023-11", "2024-02") == [
            (2023, 11), (2023, 12), (2024, 1), (2024, 2),
        ]

    def test_month_range_single_month(self):
        assert month_range("2024-05", "2024-05") == [(2024, 5)]

    def test_month_range_reversed_raises(self):
        with pytest.raises(PeriodError, match="after period end"):
            month_range("2024-03", "2024-01")


# ---------------------------------------------------------------------------
# Period model
# ---------------------------------------------------------------------------

class TestPeriodModel:
    @pytest.mark.parametrize(
        ("from_", "to"),
        [("2024-13", "garbage"), ("2024-06", "2024-01"), ("2024-1", "2024-02"), ("", "2024-02")],
    )
    def test_invalid_bounds_fail_construction(self, from_, to):
        with pytest.raises(ValidationError):
            Period.of(from_, to)
        with pytest.raises(PeriodError):
            Period.parse(from_, to)

    def test_reversed_bounds_by_alias(self):
        with pytest.raises(ValidationError, match="after period end"):
            Period.model_validate({"from": "2024-06", "to": "2024-01"})

    def test_single_month_and_year_crossing_are_valid(self):
        assert Period.parse("2024-05", "2024-05").to == "2024-05"
        assert Period.model_validate({"from": "2023-11", "to": "2024-02"}).from_ == "2023-11"
