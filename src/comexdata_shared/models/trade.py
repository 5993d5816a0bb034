"""
models/trade.py — Selectors and derived trade records.

Monetary fields are always in millions of US dollars (FOB).
"""

from __future__ import annotations

import re
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class SummaryPeriod(StrEnum):
    CURRENT_MONTH = "currentMonth"
    YEAR_TO_DATE = "yearToDate"
    LAST_YEAR = "lastYear"
    CUSTOM = "custom"


class TradeFlow(StrEnum):
    EXPORT = "export"
    IMPORT = "import"
    CURRENT = "current"


class TimeSeriesPeriodicity(StrEnum):
    MONTHLY = "monthly"
    ANNUAL = "annual"


class TimeSeriesSeries(StrEnum):
    EXPORT = "export"
    IMPORT = "import"
    CURRENT = "current"
    BALANCE = "balance"


class AggregationLevel(StrEnum):
    NCM = "ncm"            # 8 digits
    HEADING = "heading"    # 4 digits
    CHAPTER = "chapter"    # 2 digits


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PeriodError(ValueError):
    """Raised for an unsupported selector or an unusable period."""


_YEAR_MONTH_RE = re.compile(r"(\d{4})-(0[1-9]|1[0-2])")


def parse_year_month(raw: str) -> tuple[int, int]:
    """
    Parse a strict ``YYYY-MM`` string.

    Raises:
        PeriodError: if the string is not a valid year-month (e.g. "2024-13").
    """
    m = _YEAR_MONTH_RE.fullmatch(raw or "") if isinstance(raw, str) else None
    if not m:
        raise PeriodError(f"Invalid period '{raw}'. Expected format YYYY-MM.")
    return int(m.group(1)), int(m.group(2))


def check_period_bounds(from_: str, to: str) -> tuple[tuple[int, int], tuple[int, int]]:
    """Parse both ends of a month range; the start must not be after the end."""
    start = parse_year_month(from_)
    end = parse_year_month(to)
    if start > end:
        raise PeriodError(f"Period start '{from_}' is after period end '{to}'.")
    return start, end


class Period(BaseModel):
    """Inclusive ``YYYY-MM`` month range; invalid bounds fail construction."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_: str = Field(alias="from")
    to: str

    @model_validator(mode="after")
    def _bounds(self) -> "Period":
        check_period_bounds(self.from_, self.to)
        return self

    @classmethod
    def of(cls, from_: str, to: str) -> "Period":
        return cls(from_=from_, to=to)

    @classmethod
    def parse(cls, from_: str, to: str) -> "Period":
        """Like ``of`` but raises ``PeriodError`` instead of ``ValidationError``."""
        check_period_bounds(from_, to)
        return cls(from_=from_, to=to)


class SummaryRecord(_CamelModel):
    period: str
    exports: float
    imports: float
    trade_balance: float
    trade_current: float


class TimeSeriesSector(_CamelModel):
    code: str
    name: str
    value: float


class TimeSeriesRecord(_CamelModel):
    period: str                     # "YYYY" or "YYYY-MM"
    year: str
    month: str | None = None        # zero-padded, monthly only
    exports: float | None = None
    imports: float | None = None
    current: float | None = None
    balance: float | None = None
    sectors: list[TimeSeriesSector] | None = None


class PartnerCountryRecord(_CamelModel):
    country: str
    exports: float | None = None
    imports: float | None = None
    current: float | None = None
    balance: float | None = None
    percentage: float = 0.0


class ProductRecord(_CamelModel):
    code: str
    description: str
    value: float
    weight: float | None = None
    quantity: float | None = None
    percentage: float = 0.0


class NationalComparisonRecord(_CamelModel):
    participation: float
    ranking: int


class DashboardRecord(_CamelModel):
    summary: SummaryRecord
    top_exports: list[ProductRecord]
    top_imports: list[ProductRecord]
    top_partners: list[PartnerCountryRecord]
