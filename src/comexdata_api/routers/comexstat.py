"""
ComexStat aggregation endpoints.

Thin adapters from query strings to ComexStatService; all validation of
selectors happens through the enum-typed parameters, and engine errors are
rendered by the app-level exception handler.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from comexdata_api.errors import QueryValidationError
from comexdata_api.responses import wrap_response
from comexdata_api.services.comexstat_service import ComexStatService
from comexdata_shared.models.trade import (
    AggregationLevel,
    Period,
    PeriodError,
    SummaryPeriod,
    TimeSeriesPeriodicity,
    TimeSeriesSeries,
    TradeFlow,
)

router = APIRouter(prefix="/comexstat", tags=["comexstat"])


def get_comexstat_service(request: Request) -> ComexStatService:
    return request.app.state.comexstat_service


def _period(period_from: str, period_to: str) -> Period:
    try:
        return Period.parse(period_from, period_to)
    except PeriodError as exc:
        raise QueryValidationError(str(exc)) from exc


def _custom_period(period_from: str | None, period_to: str | None) -> Period | None:
    if period_from is None and period_to is None:
        return None
    if not period_from or not period_to:
        raise QueryValidationError("Both 'from' and 'to' are required for a custom period.")
    return _period(period_from, period_to)


@router.get("/summary", summary="Summary board for a period selector")
async def summary(
    period: SummaryPeriod = Query(SummaryPeriod.YEAR_TO_DATE),
    period_from: str | None = Query(None, alias="from", description="YYYY-MM"),
    period_to: str | None = Query(None, alias="to", description="YYYY-MM"),
    service: ComexStatService = Depends(get_comexstat_service),
):
    data = await service.get_summary(period, _custom_period(period_from, period_to))
    return wrap_response(data)


@router.get("/summary-history", summary="Summary board month by month")
async def summary_history(
    period_from: str = Query(..., alias="from", description="YYYY-MM"),
    period_to: str = Query(..., alias="to", description="YYYY-MM"),
    service: ComexStatService = Depends(get_comexstat_service),
):
    data = await service.get_summary_history(period_from, period_to)
    return wrap_response(data)


@router.get("/timeseries", summary="Monthly or annual trade series")
async def timeseries(
    start_year: int = Query(..., alias="startYear"),
    end_year: int | None = Query(None, alias="endYear"),
    periodicity: TimeSeriesPeriodicity = Query(TimeSeriesPeriodicity.MONTHLY),
    series: TimeSeriesSeries = Query(TimeSeriesSeries.CURRENT),
    include_sectors: bool = Query(False, alias="includeSectors"),
    service: ComexStatService = Depends(get_comexstat_service),
):
    data = await service.get_time_series(
        periodicity, series, start_year, end_year, include_sectors
    )
    return wrap_response(data)


@router.get("/partners", summary="Top partner countries")
async def partners(
    flow: TradeFlow = Query(TradeFlow.CURRENT),
    period: SummaryPeriod = Query(SummaryPeriod.YEAR_TO_DATE),
    period_from: str | None = Query(None, alias="from", description="YYYY-MM"),
    period_to: str | None = Query(None, alias="to", description="YYYY-MM"),
    top_n: int = Query(10, alias="topN", ge=1),
    service: ComexStatService = Depends(get_comexstat_service),
):
    data = await service.get_partner_countries(
        flow, period, _custom_period(period_from, period_to), top_n
    )
    return wrap_response(data)


@router.get("/products", summary="Most traded products")
async def products(
    flow: TradeFlow = Query(TradeFlow.EXPORT),
    periodicity: TimeSeriesPeriodicity = Query(TimeSeriesPeriodicity.ANNUAL),
    year: int | None = Query(None),
    period_from: str | None = Query(None, alias="from", description="YYYY-MM"),
    period_to: str | None = Query(None, alias="to", description="YYYY-MM"),
    aggregation: AggregationLevel = Query(AggregationLevel.HEADING),
    top_n: int = Query(20, alias="topN", ge=1),
    service: ComexStatService = Depends(get_comexstat_service),
):
    period_input = year if year is not None else _custom_period(period_from, period_to)
    data = await service.get_top_products(flow, periodicity, period_input, aggregation, top_n)
    return wrap_response(data)


@router.get("/national-comparison", summary="Share of the national total and state ranking")
async def national_comparison(
    period_from: str = Query(..., alias="from", description="YYYY-MM"),
    period_to: str = Query(..., alias="to", description="YYYY-MM"),
    flow: TradeFlow = Query(TradeFlow.EXPORT),
    service: ComexStatService = Depends(get_comexstat_service),
):
    data = await service.get_national_comparison(flow, _period(period_from, period_to))
    return wrap_response(data)


@router.get("/dashboard", summary="Consolidated dashboard data")
async def dashboard(
    year: int | None = Query(None),
    service: ComexStatService = Depends(get_comexstat_service),
):
    data = await service.get_dashboard(year)
    return wrap_response(data)
