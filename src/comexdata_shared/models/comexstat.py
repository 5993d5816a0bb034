"""
models/comexstat.py — Wire format of the ComexStat ``POST /general`` endpoint.

Request bodies are built from ``UpstreamQuery`` and serialized with camelCase
keys. Response rows are loosely typed upstream; ``UpstreamRow`` decodes them
into typed fields so the merge code never touches raw dicts.

Row field names depend on the requested ``details``/``metrics``:

    metricFOB, metricCIF, metricKG         — numbers (or "1234,5" strings)
    year, monthNumber | month              — period columns
    country | countryName                  — details: ["country"]
    state | stateName                      — details: ["state"]
    ISICSection, coIsicSection             — details: ["ISICSection"]
    ncmCode/ncm, headingCode/heading,
    chapterCode/chapter                    — details: ["ncm" | "heading" | "chapter"]
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from comexdata_shared.models.trade import AggregationLevel, Period, TradeFlow

# Aggregation level → (code attribute, description attribute) on UpstreamRow
PRODUCT_FIELDS: dict[AggregationLevel, tuple[str, str]] = {
    AggregationLevel.NCM: ("ncm_code", "ncm"),
    AggregationLevel.HEADING: ("heading_code", "heading"),
    AggregationLevel.CHAPTER: ("chapter_code", "chapter"),
}


def parse_number(value: Any) -> float | None:
    """Coerce an upstream metric to float; None for blanks and non-finite values."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class UpstreamFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    filter: str
    values: tuple[int | str, ...]


class UpstreamQuery(BaseModel):
    """One ``/general`` request. Only export and import flows exist upstream."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    flow: TradeFlow
    month_detail: bool
    period: Period
    filters: tuple[UpstreamFilter, ...] | None = None
    details: tuple[str, ...] | None = None
    metrics: tuple[str, ...] | None = None

    @field_validator("flow")
    @classmethod
    def single_direction(cls, v: TradeFlow) -> TradeFlow:
        if v is TradeFlow.CURRENT:
            raise ValueError("upstream queries take 'export' or 'import' only")
        return v

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class UpstreamRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    year: int | None = None
    month: int | None = Field(
        default=None, validation_alias=AliasChoices("monthNumber", "month")
    )

    metric_fob: float | None = Field(default=None, validation_alias="metricFOB")
    metric_cif: float | None = Field(default=None, validation_alias="metricCIF")
    metric_kg: float | None = Field(default=None, validation_alias="metricKG")

    country: str | None = Field(
        default=None, validation_alias=AliasChoices("country", "countryName")
    )
    state: str | None = Field(
        default=None, validation_alias=AliasChoices("state", "stateName")
    )
    sector: str | None = Field(default=None, validation_alias="ISICSection")
    sector_code: str | None = Field(
        default=None, validation_alias=AliasChoices("coIsicSection", "ISICSectionCode")
    )

    ncm_code: str | None = Field(default=None, validation_alias="ncmCode")
    ncm: str | None = None
    heading_code: str | None = Field(default=None, validation_alias="headingCode")
    heading: str | None = None
    chapter_code: str | None = Field(default=None, validation_alias="chapterCode")
    chapter: str | None = None

    @field_validator("metric_fob", "metric_cif", "metric_kg", mode="before")
    @classmethod
    def _number(cls, v: Any) -> float | None:
        return parse_number(v)

    @field_validator("year", "month", mode="before")
    @classmethod
    def _integer(cls, v: Any) -> int | None:
        number = parse_number(v)
        return int(number) if number is not None else None

    @field_validator(
        "country", "state", "sector", "sector_code",
        "ncm_code", "ncm", "heading_code", "heading", "chapter_code", "chapter",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> str | None:
        if v is None:
            return None
        return v if isinstance(v, str) else str(v)

    def product(self, aggregation: AggregationLevel) -> tuple[str, str]:
        """Return ``(code, description)`` for the given aggregation level."""
        code_attr, desc_attr = PRODUCT_FIELDS[aggregation]
        return getattr(self, code_attr) or "", getattr(self, desc_attr) or ""
