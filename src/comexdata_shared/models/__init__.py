"""
comexdata_shared.models — Pydantic models for selectors, domain records and
the ComexStat wire format.

Domain records serialize with camelCase aliases (``tradeBalance``, ``topN``…)
so the same dump is used for API responses and cache entries.
"""

from comexdata_shared.models.comexstat import UpstreamFilter, UpstreamQuery, UpstreamRow
from comexdata_shared.models.trade import (
    AggregationLevel,
    DashboardRecord,
    NationalComparisonRecord,
    PartnerCountryRecord,
    Period,
    ProductRecord,
    SummaryPeriod,
    SummaryRecord,
    TimeSeriesPeriodicity,
    TimeSeriesRecord,
    TimeSeriesSector,
    TimeSeriesSeries,
    TradeFlow,
)

__all__ = [
    "AggregationLevel",
    "DashboardRecord",
    "NationalComparisonRecord",
    "PartnerCountryRecord",
    "Period",
    "ProductRecord",
    "SummaryPeriod",
    "SummaryRecord",
    "TimeSeriesPeriodicity",
    "TimeSeriesRecord",
    "TimeSeriesSector",
    "TimeSeriesSeries",
    "TradeFlow",
    "UpstreamFilter",
    "UpstreamQuery",
    "UpstreamRow",
]
