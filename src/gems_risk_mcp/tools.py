"""
Tool implementations

Each coroutine takes the shared CreditRiskService plus validated tool
arguments and returns the Markdown shown to the assistant. Tool calls never
raise: data errors become their own report, anything unexpected is logged
and reported as a generic tool error.
"""

import functools
import logging
from typing import Any, Awaitable, Callable

from . import codes
from .codes import DataSource
from .formatting import (
    COMPARISON_METRICS,
    SENIORITY_NOTE,
    format_credit_risk,
    format_default_rates,
    format_error,
    format_filters,
    format_multidimensional,
    format_no_combination,
    format_project_type_table,
    format_recovery_rates,
    format_region_comparison,
    format_segment,
    format_sector_table,
    format_seniority,
    format_time_series,
    format_unknown,
)
from .results import DataErrorType, Err, Ok, UnknownEntity
from .service import DEFAULT_TIME_SERIES_YEARS, CreditRiskService

logger = logging.getLogger(__name__)


def tool_guard(func: Callable[..., Awaitable[str]]) -> Callable[..., Awaitable[str]]:
    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> str:
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            logger.exception("Tool %s failed", func.__name__)
            return f"⚠️ **Error executing tool {func.__name__}**\n\n{e}"
    return wrapper


def _render(result, subject: str, render: Callable[[Ok], str]) -> str:
    if isinstance(result, UnknownEntity):
        return format_unknown(result)
    if isinstance(result, Err):
        return format_error(result.error, subject)
    return render(result)


# ============================================================================
# Region tools
# ============================================================================

@tool_guard
async def get_default_rates(service: CreditRiskService, region: str, data_source: str = "public") -> str:
    source = DataSource(data_source)
    result = await service.region_metrics(region, source)
    return _render(result, "default rate", lambda ok: format_default_rates(ok.value, ok.warnings, source))


@tool_guard
async def get_recovery_rates(service: CreditRiskService, region: str, data_source: str = "public") -> str:
    source = DataSource(data_source)
    result = await service.region_metrics(region, source)
    return _render(result, "recovery rate", lambda ok: format_recovery_rates(ok.value, ok.warnings, source))


@tool_guard
async def query_credit_risk(service: CreditRiskService, region: str, data_source: str = "public") -> str:
    source = DataSource(data_source)
    result = await service.region_metrics(region, source)
    return _render(result, "credit risk", lambda ok: format_credit_risk(ok.value, ok.warnings, source))


@tool_guard
async def compare_regions(service: CreditRiskService, metric: str, data_source: str = "public") -> str:
    if metric not in COMPARISON_METRICS:
        return f"Unknown metric: {metric}. Available metrics: {', '.join(COMPARISON_METRICS)}"
    source = DataSource(data_source)
    result = await service.all_region_metrics(source)
    return _render(
        result,
        "regional comparison",
        lambda ok: format_region_comparison(ok.value, metric, source, ok.warnings),
    )


# ============================================================================
# Sector / project type tools
# ============================================================================

@tool_guard
async def get_sector_analysis(service: CreditRiskService, sector: str | None = None, data_source: str = "public") -> str:
    source = DataSource(data_source)
    dimension = codes.lookup_sector(sector or "all")
    if dimension is None:
        return format_unknown(UnknownEntity("sector", str(sector), tuple(codes.SECTOR_CODES)))

    if dimension.code == codes.TOTAL:
        result = await service.all_sector_metrics(source)
        return _render(result, "sector", lambda ok: format_sector_table(ok.value, source, ok.warnings))

    result = await service.sector_metrics(dimension.slug, source)
    return _render(result, "sector", lambda ok: format_segment(ok.value, source, "Sector Analysis"))


@tool_guard
async def get_project_type_analysis(
    service: CreditRiskService, project_type: str | None = None, data_source: str = "public"
) -> str:
    source = DataSource(data_source)
    dimension = codes.lookup_project_type(project_type or "all")
    if dimension is None:
        return format_unknown(UnknownEntity("project type", str(project_type), tuple(codes.PROJECT_TYPE_CODES)))

    if dimension.code == codes.TOTAL:
        result = await service.all_project_type_metrics(source)
        return _render(result, "project type", lambda ok: format_project_type_table(ok.value, source, ok.warnings))

    result = await service.project_type_metrics(dimension.slug, source)
    return _render(result, "project type", lambda ok: format_segment(ok.value, source, "Project Type Analysis"))


# ============================================================================
# Trend, seniority, multi-dimensional
# ============================================================================

@tool_guard
async def get_time_series(
    service: CreditRiskService,
    region: str | None = None,
    years: int = DEFAULT_TIME_SERIES_YEARS,
    data_source: str = "public",
) -> str:
    source = DataSource(data_source)
    result = await service.time_series(region or "global", years, source)
    return _render(result, "time series", lambda ok: format_time_series(ok.value, source))


@tool_guard
async def get_seniority_analysis(service: CreditRiskService, region: str | None = None, data_source: str = "public") -> str:
    source = DataSource(data_source)
    result = await service.seniority_analysis(region or "global", source)
    if isinstance(result, Err):
        return format_error(result.error, "seniority", note=SENIORITY_NOTE)
    return _render(result, "seniority", lambda ok: format_seniority(ok.value, ok.warnings, source))


@tool_guard
async def query_multidimensional(
    service: CreditRiskService,
    region: str | None = None,
    sector: str | None = None,
    project_type: str | None = None,
    data_source: str = "public",
) -> str:
    source = DataSource(data_source)
    region, sector, project_type = region or "global", sector or "all", project_type or "all"
    result = await service.multidimensional(region, sector, project_type, source)

    if isinstance(result, Err):
        # Lookups already succeeded if the service got as far as querying
        filters = (
            codes.lookup_region(region).name,
            codes.lookup_sector(sector).name,
            codes.lookup_project_type(project_type).name,
        )
        if result.error.type == DataErrorType.NO_DATA:
            return format_no_combination(*filters)
        return format_error(
            result.error,
            "multi-dimensional",
            note=f"**Query Parameters:**\n{format_filters(*filters)}",
        )
    return _render(result, "multi-dimensional", lambda ok: format_multidimensional(ok.value, source))
