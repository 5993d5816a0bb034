"""
ComexStat aggregation service.

Each public coroutine maps one domain query onto one or more concurrent
``/general`` calls scoped to the configured region, merges the export/import
responses into derived records and memoizes the result for 24 hours.

Monetary values are reported in millions of US dollars (FOB), except the
national participation, which is a ratio of raw totals.
"""

from __future__ import annotations

import asyncio
import unicodedata
from collections.abc import Callable, Collection
from datetime import date, datetime, timezone

from pydantic import TypeAdapter

from comexdata_api.errors import QueryValidationError
from comexdata_api.sources.comexstat import ComexStatSource
from comexdata_api.utils.cache import CacheBackend, CachingOrchestrator, build_cache_key
from comexdata_api.utils.logging import get_logger
from comexdata_shared.config import settings
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
from comexdata_shared.time_utils import (
    PeriodError,
    ResolvedPeriod,
    check_period_bounds,
    format_period,
    month_abbreviation,
    month_range,
    reference_months,
    resolve_period,
)

log = get_logger(__name__)

FOB = "metricFOB"
CIF = "metricCIF"
KG = "metricKG"
SECTOR_DETAIL = "ISICSection"
COUNTRY_DETAIL = "country"
STATE_DETAIL = "state"

PARTNER_PERIODS = frozenset(
    {SummaryPeriod.CURRENT_MONTH, SummaryPeriod.YEAR_TO_DATE, SummaryPeriod.CUSTOM}
)

_SUMMARY = TypeAdapter(SummaryRecord)
_SUMMARY_HISTORY = TypeAdapter(list[SummaryRecord])
_TIME_SERIES = TypeAdapter(list[TimeSeriesRecord])
_PARTNERS = TypeAdapter(list[PartnerCountryRecord])
_PRODUCTS = TypeAdapter(list[ProductRecord])
_NATIONAL = TypeAdapter(NationalComparisonRecord)


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def to_millions(value: float | None) -> float:
    return value / 1_000_000 if value else 0.0


def _first_fob(rows: list[UpstreamRow]) -> float:
    return (rows[0].metric_fob or 0.0) if rows else 0.0


def _share(value: float | None, total: float) -> float:
    return value / total * 100 if total > 0 and value is not None else 0.0


def _same_name(a: str, b: str) -> bool:
    return unicodedata.normalize("NFC", a).strip() == unicodedata.normalize("NFC", b).strip()


class ComexStatService:
    """Aggregation engine over the ComexStat general query endpoint."""

    def __init__(
        self,
        source: ComexStatSource,
        cache: CacheBackend | None = None,
        *,
        region_id: int | None = None,
        region_name: str | None = None,
        clock: Callable[[], date] | None = None,
    ) -> None:
        self._source = source
        self._cache = CachingOrchestrator(cache)
        self._region_id = region_id if region_id is not None else settings.region_id
        self._region_name = region_name or settings.region_name
        self._clock = clock or _utc_today

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def _region_filter(self) -> tuple[UpstreamFilter, ...]:
        return (UpstreamFilter(filter=STATE_DETAIL, values=(self._region_id,)),)

    def _resolve(
        self,
        period_type: SummaryPeriod,
        custom_period: Period | None,
        allowed: Collection[SummaryPeriod] | None = None,
    ) -> ResolvedPeriod:
        try:
            return resolve_period(
                period_type, custom_period, today=self._clock(), allowed=allowed
            )
        except PeriodError as exc:
            raise QueryValidationError(str(exc)) from exc

    @staticmethod
    def _require_valid_period(period: Period | None) -> None:
        # model_copy/model_construct skip Period's own bounds check
        if period is None:
            return
        try:
            check_period_bounds(period.from_, period.to)
        except PeriodError as exc:
            raise QueryValidationError(str(exc)) from exc

    async def _query(self, operation: str, **params) -> list[UpstreamRow]:
        return await self._source.query(UpstreamQuery(**params), operation=operation)

    @staticmethod
    def _flows(flow: TradeFlow | TimeSeriesSeries) -> list[TradeFlow]:
        """Upstream directions needed to answer a flow or series selector."""
        match flow:
            case TradeFlow.EXPORT | TimeSeriesSeries.EXPORT:
                return [TradeFlow.EXPORT]
            case TradeFlow.IMPORT | TimeSeriesSeries.IMPORT:
                return [TradeFlow.IMPORT]
            case TradeFlow.CURRENT | TimeSeriesSeries.CURRENT | TimeSeriesSeries.BALANCE:
                return [TradeFlow.EXPORT, TradeFlow.IMPORT]
        raise QueryValidationError(f"Unsupported flow '{flow}'.")

    @staticmethod
    def _require_direction(flow: TradeFlow) -> None:
        if flow is TradeFlow.CURRENT:
            raise QueryValidationError("Flow must be 'export' or 'import'.")

    @staticmethod
    def _require_positive(top_n: int) -> None:
        if top_n < 1:
            raise QueryValidationError("topN must be a positive integer.")

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    async def get_summary(
        self,
        period_type: SummaryPeriod,
        custom_period: Period | None = None,
    ) -> SummaryRecord:
        self._require_valid_period(custom_period)
        key = build_cache_key(
            "summary", {"periodType": period_type, "customPeriod": custom_period}
        )

        async def resolve() -> SummaryRecord:
            resolved = self._resolve(period_type, custom_period)
            export_rows, import_rows = await asyncio.gather(
                self._query(
                    "summary",
                    flow=TradeFlow.EXPORT,
                    month_detail=False,
                    period=resolved.period,
                    filters=self._region_filter,
                    metrics=(FOB,),
                ),
                self._query(
                    "summary",
                    flow=TradeFlow.IMPORT,
                    month_detail=False,
                    period=resolved.period,
                    filters=self._region_filter,
                    metrics=(FOB, CIF),
                ),
            )
            exports = to_millions(_first_fob(export_rows))
            imports = to_millions(_first_fob(import_rows))
            return SummaryRecord(
                period=resolved.label,
                exports=exports,
                imports=imports,
                trade_balance=exports - imports,
                trade_current=exports + imports,
            )

        return await self._cache.get_or_compute(key, resolve, _SUMMARY)

    async def get_summary_history(self, from_: str, to: str) -> list[SummaryRecord]:
        """
        One summary record per month of the inclusive ``[from_, to]`` range.

        Output order always follows the requested range; months the upstream
        did not return are reported as zero.
        """
        try:
            months = month_range(from_, to)
        except PeriodError as exc:
            raise QueryValidationError(str(exc)) from exc

        key = build_cache_key("summary-history", {"from": from_, "to": to})

        async def resolve() -> list[SummaryRecord]:
            period = Period.of(from_, to)
            export_rows, import_rows = await asyncio.gather(
                self._query(
                    "summary_history",
                    flow=TradeFlow.EXPORT,
                    month_detail=True,
                    period=period,
                    filters=self._region_filter,
                    metrics=(FOB,),
                ),
                self._query(
                    "summary_history",
                    flow=TradeFlow.IMPORT,
                    month_detail=True,
                    period=period,
                    filters=self._region_filter,
                    metrics=(FOB, CIF),
                ),
            )

            def by_month(rows: list[UpstreamRow]) -> dict[tuple[int, int], float]:
                return {
                    (row.year, row.month): to_millions(row.metric_fob)
                    for row in rows
                    if row.year is not None and row.month is not None
                }

            exports_by_month = by_month(export_rows)
            imports_by_month = by_month(import_rows)

            records = []
            for year, month in months:
                exports = exports_by_month.get((year, month), 0.0)
                imports = imports_by_month.get((year, month), 0.0)
                records.append(
                    SummaryRecord(
                        period=f"{month_abbreviation(month)}/{year}",
                        exports=exports,
                        imports=imports,
                        trade_balance=exports - imports,
                        trade_current=exports + imports,
                    )
                )
            return records

        return await self._cache.get_or_compute(key, resolve, _SUMMARY_HISTORY)

    # ------------------------------------------------------------------
    # Time series
    # ------------------------------------------------------------------

    async def get_time_series(
        self,
        periodicity: TimeSeriesPeriodicity,
        series: TimeSeriesSeries,
        start_year: int,
        end_year: int | None = None,
        include_sectors: bool = False,
    ) -> list[TimeSeriesRecord]:
        key = build_cache_key(
            "timeseries",
            {
                "periodicity": periodicity,
                "series": series,
                "startYear": start_year,
                "endYear": end_year,
                "includeSectors": include_sectors,
            },
        )

        async def resolve() -> list[TimeSeriesRecord]:
            effective_end = (
                end_year if end_year is not None else reference_months(self._clock()).year
            )
            if start_year > effective_end:
                raise QueryValidationError(
                    f"startYear {start_year} is after endYear {effective_end}."
                )

            period = Period.of(format_period(start_year, 1), format_period(effective_end, 12))
            monthly = periodicity is TimeSeriesPeriodicity.MONTHLY
            flows = self._flows(series)
            responses = await asyncio.gather(
                *(
                    self._query(
                        "time_series",
                        flow=flow,
                        month_detail=monthly,
                        period=period,
                        filters=self._region_filter,
                        details=(SECTOR_DETAIL,) if include_sectors else None,
                        metrics=(FOB,),
                    )
                    for flow in flows
                )
            )

            by_period: dict[str, TimeSeriesRecord] = {}
            for flow, rows in zip(flows, responses):
                for row in rows:
                    if row.year is None:
                        continue
                    month = f"{row.month:02d}" if monthly and row.month is not None else None
                    period_key = f"{row.year}-{month}" if month else str(row.year)

                    record = by_period.get(period_key)
                    if record is None:
                        record = TimeSeriesRecord(period=period_key, year=str(row.year), month=month)
                        by_period[period_key] = record

                    value = to_millions(row.metric_fob)
                    # Sector breakdowns return one row per sector; totals add up.
                    if flow is TradeFlow.EXPORT:
                        record.exports = (record.exports or 0.0) + value
                    else:
                        record.imports = (record.imports or 0.0) + value

                    if include_sectors and row.sector:
                        if record.sectors is None:
                            record.sectors = []
                        record.sectors.append(
                            TimeSeriesSector(code=row.sector_code or "", name=row.sector, value=value)
                        )

            results = list(by_period.values())
            for record in results:
                if record.exports is None or record.imports is None:
                    continue
                if series is TimeSeriesSeries.CURRENT:
                    record.current = record.exports + record.imports
                elif series is TimeSeriesSeries.BALANCE:
                    record.balance = record.exports - record.imports

            results.sort(key=lambda r: r.period)
            return results

        return await self._cache.get_or_compute(key, resolve, _TIME_SERIES)

    # ------------------------------------------------------------------
    # Partner countries
    # ------------------------------------------------------------------

    async def get_partner_countries(
        self,
        flow: TradeFlow,
        period_type: SummaryPeriod,
        custom_period: Period | None = None,
        top_n: int = 10,
    ) -> list[PartnerCountryRecord]:
        self._require_positive(top_n)
        self._require_valid_period(custom_period)
        key = build_cache_key(
            "partners",
            {
                "flow": flow,
                "periodType": period_type,
                "customPeriod": custom_period,
                "topN": top_n,
            },
        )

        async def resolve() -> list[PartnerCountryRecord]:
            resolved = self._resolve(period_type, custom_period, allowed=PARTNER_PERIODS)
            flows = self._flows(flow)
            responses = await asyncio.gather(
                *(
                    self._query(
                        "partner_countries",
                        flow=direction,
                        month_detail=False,
                        period=resolved.period,
                        filters=self._region_filter,
                        details=(COUNTRY_DETAIL,),
                        metrics=(FOB,),
                    )
                    for direction in flows
                )
            )

            by_country: dict[str, PartnerCountryRecord] = {}
            for direction, rows in zip(flows, responses):
                for row in rows:
                    if not row.country:
                        continue
                    record = by_country.setdefault(row.country, PartnerCountryRecord(country=row.country))
                    value = to_millions(row.metric_fob)
                    if direction is TradeFlow.EXPORT:
                        record.exports = (record.exports or 0.0) + value
                    else:
                        record.imports = (record.imports or 0.0) + value

            def metric(record: PartnerCountryRecord) -> float | None:
                if flow is TradeFlow.EXPORT:
                    return record.exports
                if flow is TradeFlow.IMPORT:
                    return record.imports
                return record.current

            results = list(by_country.values())
            for record in results:
                record.current = (record.exports or 0.0) + (record.imports or 0.0)
                record.balance = (record.exports or 0.0) - (record.imports or 0.0)

            total = sum(metric(record) or 0.0 for record in results)
            for record in results:
                record.percentage = _share(metric(record), total)

            results.sort(key=lambda r: metric(r) or 0.0, reverse=True)
            return results[:top_n]

        return await self._cache.get_or_compute(key, resolve, _PARTNERS)

    # ------------------------------------------------------------------
    # Top products
    # ------------------------------------------------------------------

    async def get_top_products(
        self,
        flow: TradeFlow,
        periodicity: TimeSeriesPeriodicity,
        period: Period | int | None = None,
        aggregation: AggregationLevel = AggregationLevel.HEADING,
        top_n: int = 20,
    ) -> list[ProductRecord]:
        """
        Top products by FOB value at the given aggregation level.

        ``period`` is an explicit month range, a bare year (January to
        December), or None for the year before the effective reference year.
        """
        self._require_direction(flow)
        self._require_positive(top_n)
        if isinstance(period, Period):
            self._require_valid_period(period)
        key = build_cache_key(
            "products",
            {
                "flow": flow,
                "periodicity": periodicity,
                "period": period,
                "aggregation": aggregation,
                "topN": top_n,
            },
        )

        async def resolve() -> list[ProductRecord]:
            if period is None or isinstance(period, int):
                year = period if period is not None else reference_months(self._clock()).year - 1
                query_period = Period.of(format_period(year, 1), format_period(year, 12))
            else:
                query_period = period

            rows = await self._query(
                "top_products",
                flow=flow,
                month_detail=periodicity is TimeSeriesPeriodicity.MONTHLY,
                period=query_period,
                filters=self._region_filter,
                details=(aggregation.value,),
                metrics=(FOB, KG),
            )

            products = []
            for row in rows:
                code, description = row.product(aggregation)
                products.append(
                    ProductRecord(
                        code=code,
                        description=description,
                        value=to_millions(row.metric_fob),
                        weight=row.metric_kg or None,
                    )
                )

            total = sum(product.value for product in products)
            for product in products:
                product.percentage = _share(product.value, total)

            products.sort(key=lambda p: p.value, reverse=True)
            return products[:top_n]

        return await self._cache.get_or_compute(key, resolve, _PRODUCTS)

    # ------------------------------------------------------------------
    # National comparison
    # ------------------------------------------------------------------

    async def get_national_comparison(
        self,
        flow: TradeFlow,
        period: Period,
    ) -> NationalComparisonRecord:
        """
        Region share of the national total and its rank among all states.

        Ranking is 1-based over states sorted by value, or 0 when the region
        is missing from the per-state breakdown. Names are compared after NFC
        normalization so composed and decomposed accents match.
        """
        self._require_direction(flow)
        self._require_valid_period(period)
        key = build_cache_key("national-comparison", {"flow": flow, "period": period})

        async def resolve() -> NationalComparisonRecord:
            national_rows, region_rows, state_rows = await asyncio.gather(
                self._query(
                    "national_comparison",
                    flow=flow,
                    month_detail=False,
                    period=period,
                    metrics=(FOB,),
                ),
                self._query(
                    "national_comparison",
                    flow=flow,
                    month_detail=False,
                    period=period,
                    filters=self._region_filter,
                    metrics=(FOB,),
                ),
                self._query(
                    "national_comparison",
                    flow=flow,
                    month_detail=False,
                    period=period,
                    details=(STATE_DETAIL,),
                    metrics=(FOB,),
                ),
            )

            national_total = _first_fob(national_rows)
            region_total = _first_fob(region_rows)

            states = sorted(
                ((row.state, row.metric_fob or 0.0) for row in state_rows),
                key=lambda item: item[1],
                reverse=True,
            )
            ranking = next(
                (
                    index + 1
                    for index, (name, _) in enumerate(states)
                    if name and _same_name(name, self._region_name)
                ),
                0,
            )
            if ranking == 0:
                log.warning("region_not_ranked", region=self._region_name, states=len(states))

            return NationalComparisonRecord(
                participation=_share(region_total, national_total),
                ranking=ranking,
            )

        return await self._cache.get_or_compute(key, resolve, _NATIONAL)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    async def get_dashboard(self, year: int | None = None) -> DashboardRecord:
        """Summary, top export/import headings and top partners in one call."""
        target_year = year if year is not None else self._clock().year

        summary, top_exports, top_imports, top_partners = await asyncio.gather(
            self.get_summary(SummaryPeriod.YEAR_TO_DATE),
            self.get_top_products(
                TradeFlow.EXPORT,
                TimeSeriesPeriodicity.ANNUAL,
                target_year - 1,
                AggregationLevel.HEADING,
                10,
            ),
            self.get_top_products(
                TradeFlow.IMPORT,
                TimeSeriesPeriodicity.ANNUAL,
                target_year - 1,
                AggregationLevel.HEADING,
                10,
            ),
            self.get_partner_countries(TradeFlow.CURRENT, SummaryPeriod.YEAR_TO_DATE, None, 10),
        )
        return DashboardRecord(
            summary=summary,
            top_exports=top_exports,
            top_imports=top_imports,
            top_partners=top_partners,
        )
