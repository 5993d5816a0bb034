"""
time_utils.py — Period resolution for ComexStat queries.

ComexStat publishes monthly data with a two-month lag, so every relative
period is computed from an *effective reference month*: the first day of the
real current month shifted back two months.

Usage:
    from comexdata_shared.time_utils import resolve_period, month_range

    resolved = resolve_period(SummaryPeriod.YEAR_TO_DATE, today=date(2024, 5, 15))
    resolved.period   # Period(from_="2024-01", to="2024-03")
    resolved.label    # "Jan-mar/2024"

    month_range("2023-11", "2024-02")
    # [(2023, 11), (2023, 12), (2024, 1), (2024, 2)]
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from datetime import date

from dateutil.relativedelta import relativedelta

from comexdata_shared.models.trade import (
    Period,
    PeriodError,
    SummaryPeriod,
    check_period_bounds,
    parse_year_month,
)

# Months of publication lag on the upstream side
REPORTING_LAG_MONTHS = 2

# pt-BR short month names, lower case, without the trailing dot
_MONTH_ABBREVIATIONS: dict[int, str] = {
    1: "jan", 2: "fev", 3: "mar", 4: "abr", 5: "mai", 6: "jun",
    7: "jul", 8: "ago", 9: "set", 10: "out", 11: "nov", 12: "dez",
}

__all__ = [
    "PeriodError",
    "ReferenceMonths",
    "ResolvedPeriod",
    "format_period",
    "month_abbreviation",
    "month_range",
    "parse_year_month",
    "reference_months",
    "resolve_period",
]


@dataclass(frozen=True)
class ResolvedPeriod:
    period: Period
    label: str


@dataclass(frozen=True)
class ReferenceMonths:
    """Effective "now" after the reporting lag, and the month before it."""

    year: int
    month: int
    previous_year: int
    previous_month: int


def month_abbreviation(month: int) -> str:
    return _MONTH_ABBREVIATIONS[month]


def format_period(year: int, month: int = 1) -> str:
    return f"{year}-{month:02d}"


def month_range(from_: str, to: str) -> list[tuple[int, int]]:
    """Every (year, month) in the inclusive range, chronologically."""
    (start_year, start_month), (end_year, end_month) = check_period_bounds(from_, to)
    current = date(start_year, start_month, 1)
    end = date(end_year, end_month, 1)

    months = []
    while current <= end:
        months.append((current.year, current.month))
        current = current + relativedelta(months=1)
    return months


def reference_months(today: date) -> ReferenceMonths:
    reference = date(today.year, today.month, 1) - relativedelta(months=REPORTING_LAG_MONTHS)
    previous = reference - relativedelta(months=1)
    return ReferenceMonths(
        year=reference.year,
        month=reference.month,
        previous_year=previous.year,
        previous_month=previous.month,
    )


def resolve_period(
    period_type: SummaryPeriod,
    custom_period: Period | None = None,
    *,
    today: date,
    allowed: Collection[SummaryPeriod] | None = None,
) -> ResolvedPeriod:
    """
    Turn a period selector into a concrete month range and display label.

    Args:
        period_type:   Selector.
        custom_period: Required when period_type is CUSTOM; used verbatim.
        today:         Real current date; the reporting lag is applied here.
        allowed:       Optional subset of selectors the caller supports.

    Raises:
        PeriodError: unsupported selector, or CUSTOM without a period.
    """
    if allowed is not None and period_type not in allowed:
        raise PeriodError("Unsupported period type.")

    ref = reference_months(today)

    match period_type:
        case SummaryPeriod.CURRENT_MONTH:
            month = format_period(ref.previous_year, ref.previous_month)
            return ResolvedPeriod(
                Period.of(month, month),
                f"{month_abbreviation(ref.previous_month)}/{ref.previous_year}",
            )
        case SummaryPeriod.YEAR_TO_DATE:
            return ResolvedPeriod(
                Period.of(format_period(ref.year, 1), format_period(ref.year, ref.month)),
                f"Jan-{month_abbreviation(ref.month)}/{ref.year}",
            )
        case SummaryPeriod.LAST_YEAR:
            last_year = ref.year - 1
            return ResolvedPeriod(
                Period.of(format_period(last_year, 1), format_period(last_year, 12)),
                str(last_year),
            )
        case SummaryPeriod.CUSTOM:
            if custom_period is None:
                raise PeriodError("Custom period is required when period type is custom.")
            return ResolvedPeriod(
                custom_period, f"{custom_period.from_} - {custom_period.to}"
            )
        case _:
            raise PeriodError("Unsupported period type.")
