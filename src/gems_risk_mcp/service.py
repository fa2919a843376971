"""
GEMs metric fetchers

CreditRiskService turns a structured request (region, sector, project type,
seniority, data source) into Data360 queries, picks the latest observation,
validates it and falls back to the recovery-rate estimator when needed.
Independent queries for one answer are fanned out with asyncio.gather and
joined before the result is built.
"""

import asyncio
import logging
import math
from datetime import date
from typing import Callable

from . import codes
from .client import Data360Client
from .codes import DataSource
from .estimation import estimate_recovery_rate
from .results import (
    DataError,
    DataErrorType,
    Err,
    MetricResult,
    MultiDimensionalMetrics,
    ObservationRecord,
    Ok,
    RegionMetrics,
    Result,
    SegmentMetrics,
    SeniorityMetrics,
    TimeSeries,
    TimeSeriesPoint,
    UnknownEntity,
)

logger = logging.getLogger(__name__)

HISTORY_START_YEAR = "1994"
REFERENCE_PERIOD = "2024"
MAX_DATA_AGE_YEARS = 2
DEFAULT_TIME_SERIES_YEARS = 10


# ============================================================================
# Record helpers
# ============================================================================

def _period_key(record: ObservationRecord) -> int:
    year = record.year
    return year if year is not None else -1


def latest_record(records: list[ObservationRecord]) -> ObservationRecord:
    """Most recent record; sorted() is stable so the first of equal periods wins"""
    return sorted(records, key=_period_key, reverse=True)[0]


def parse_rate(record: ObservationRecord, label: str) -> Result[float]:
    """Percentages must parse and lie in [0, 100]; anything else is INVALID_DATA"""
    try:
        value = float(record.obs_value)
    except (TypeError, ValueError):
        return Err(DataError(
            type=DataErrorType.INVALID_DATA,
            message=f"Non-numeric {label}: {record.obs_value!r}",
            details=f"Period {record.time_period}",
        ))

    if not 0 <= value <= 100:
        return Err(DataError(
            type=DataErrorType.INVALID_DATA,
            message=f"Invalid {label}: {value}%",
            details=f"{label.capitalize()} must be between 0-100%",
        ))

    return Ok(value)


def check_units(record: ObservationRecord, expected_metric: str) -> None:
    if record.unit_measure is not None and record.unit_measure != codes.PERCENT_UNIT:
        logger.warning(
            "Expected percentage unit (%s) for %s, got %s",
            codes.PERCENT_UNIT, expected_metric, record.unit_measure,
        )
    if record.metric is not None and record.metric != expected_metric:
        logger.warning("Expected METRIC='%s', got METRIC='%s'", expected_metric, record.metric)


def _unknown(kind: str, slug: str, table: dict[str, str]) -> UnknownEntity:
    return UnknownEntity(kind=kind, slug=str(slug), valid=tuple(table))


def _collect(names: list[str], results: list) -> Result[list]:
    """Keep the successes; each dropped member becomes a warning naming it"""
    kept, omitted = [], []
    for name, result in zip(names, results):
        if isinstance(result, Ok):
            kept.append(result.value)
        else:
            omitted.append(DataError(
                type=result.error.type,
                message=f"{name}: {result.error.message}",
                details=result.error.details,
                suggested_action=result.error.suggested_action,
            ))
    if not kept:
        return _first_error(results)
    return Ok(kept, warnings=tuple(omitted))


def _first_error(results: list) -> Err:
    for result in results:
        if isinstance(result, Err):
            return result
    return Err(DataError(
        type=DataErrorType.NO_DATA,
        message="No data available for this query",
        suggested_action="Try broader filters (e.g., global region, all sectors)",
    ))


# ============================================================================
# Service
# ============================================================================

class CreditRiskService:
    """Long-lived fetch layer shared by every tool; owns the API client and its cache"""

    def __init__(
        self,
        client: Data360Client,
        reference_period: str = REFERENCE_PERIOD,
        today: Callable[[], date] = date.today,
    ):
        self.client = client
        self.reference_period = reference_period
        self._today = today

    @property
    def current_year(self) -> int:
        return self._today().year

    @property
    def period(self) -> str:
        return f"{HISTORY_START_YEAR}-{self.reference_period}"

    def _query(
        self,
        indicator: str,
        metric: str,
        region: str,
        sector: str | None = codes.TOTAL,
        project_type: str | None = None,
        seniority: str | None = None,
        time_period: str | None = None,
    ) -> dict[str, str]:
        params = {
            "DATABASE_ID": codes.DATABASE_ID,
            "INDICATOR": indicator,
            "METRIC": metric,
            "REF_AREA": region,
        }
        if sector is not None:
            params["SECTOR"] = sector
        if project_type is not None:
            params["PROJECT_TYPE"] = project_type
        if seniority is not None:
            params["SENIORITY"] = seniority
        params["TIME_PERIOD"] = time_period or self.reference_period
        return params

    async def _latest_rate(
        self, params: dict[str, str], label: str, metric: str
    ) -> Result[tuple[float, int | None]]:
        result = await self.client.fetch(params)
        if isinstance(result, Err):
            return result

        record = latest_record(result.value)
        check_units(record, metric)
        rate = parse_rate(record, label)
        if isinstance(rate, Err):
            return rate
        return Ok((rate.value, record.year))

    def _secondary_value(self, result: Result, label: str, warnings: list[DataError]) -> float:
        """Loan counts/volumes are informational; failures become 0 plus a caveat"""
        if isinstance(result, Err):
            warnings.append(result.error)
            return 0.0

        record = latest_record(result.value)
        try:
            value = float(record.obs_value)
        except (TypeError, ValueError):
            warnings.append(DataError(
                type=DataErrorType.INVALID_DATA,
                message=f"Non-numeric {label}: {record.obs_value!r}",
            ))
            return 0.0

        if not math.isfinite(value) or value < 0:
            warnings.append(DataError(
                type=DataErrorType.INVALID_DATA,
                message=f"Invalid {label}: {record.obs_value!r}",
                details=f"Period {record.time_period}",
            ))
            return 0.0
        return value

    # ------------------------------------------------------------------------
    # Recovery rates
    # ------------------------------------------------------------------------

    async def recovery_rate(
        self,
        region_code: str,
        data_source: DataSource = DataSource.PUBLIC,
        seniority_code: str = codes.TOTAL,
    ) -> Result[float]:
        """Latest ARR observation; old data is returned with a STALE_DATA warning"""
        params = self._query(
            data_source.recovery_indicator,
            codes.RECOVERY_RATE_METRIC,
            region_code,
            sector=codes.TOTAL,
            project_type=codes.TOTAL,
            seniority=seniority_code,
        )
        result = await self._latest_rate(params, "recovery rate", codes.RECOVERY_RATE_METRIC)
        if isinstance(result, Err):
            return result

        rate, year = result.value
        if year is not None:
            age = self.current_year - year
            if age > MAX_DATA_AGE_YEARS:
                return Ok(rate, warnings=(DataError(
                    type=DataErrorType.STALE_DATA,
                    message=f"Data is {age} years old (from {year})",
                    suggested_action="Consider data age when making decisions",
                ),))
        return Ok(rate)

    @staticmethod
    def _resolve_recovery(recovery: Result[float], default_rate: float) -> tuple[float, bool, DataError | None]:
        if isinstance(recovery, Ok):
            warning = recovery.warnings[0] if recovery.warnings else None
            return recovery.value, False, warning
        return estimate_recovery_rate(default_rate), True, recovery.error

    # ------------------------------------------------------------------------
    # Regions
    # ------------------------------------------------------------------------

    async def region_metrics(
        self, region: str, data_source: DataSource = DataSource.PUBLIC
    ) -> MetricResult[RegionMetrics]:
        dimension = codes.lookup_region(region)
        if dimension is None:
            return _unknown("region", region, codes.REGION_CODES)
        data_source = DataSource(data_source)
        code = dimension.code

        default_params = self._query(data_source.default_indicator, codes.DEFAULT_RATE_METRIC, code)
        count_params = self._query(codes.HISTORICAL_INDICATOR, codes.COUNTERPART_METRIC, code)
        volume_params = self._query(codes.HISTORICAL_INDICATOR, codes.SIGNED_AMOUNT_METRIC, code)

        default_result, count_result, volume_result, recovery_result = await asyncio.gather(
            self._latest_rate(default_params, "default rate", codes.DEFAULT_RATE_METRIC),
            self.client.fetch(count_params),
            self.client.fetch(volume_params),
            self.recovery_rate(code, data_source),
        )

        if isinstance(default_result, Err):
            return default_result
        default_rate, _ = default_result.value

        warnings: list[DataError] = []
        number_of_loans = self._secondary_value(count_result, "loan count", warnings)
        total_volume = self._secondary_value(volume_result, "loan volume", warnings) * 1e6

        recovery_rate, is_estimated, recovery_error = self._resolve_recovery(recovery_result, default_rate)
        if recovery_error is not None:
            warnings.append(recovery_error)

        return Ok(RegionMetrics(
            region_code=code,
            region=dimension.name,
            default_rate=default_rate,
            recovery_rate=round(recovery_rate, 1),
            number_of_loans=round(number_of_loans),
            total_volume=round(total_volume),
            period=self.period,
            is_estimated=is_estimated,
            recovery_error=recovery_error,
        ), warnings=tuple(warnings))

    async def all_region_metrics(
        self, data_source: DataSource = DataSource.PUBLIC
    ) -> Result[list[RegionMetrics]]:
        results = await asyncio.gather(
            *(self.region_metrics(slug, data_source) for slug in codes.REGION_CODES)
        )
        names = [codes.region_name(code) for code in codes.REGION_CODES.values()]
        return _collect(names, results)

    # ------------------------------------------------------------------------
    # Sectors and project types
    # ------------------------------------------------------------------------

    async def _segment_metrics(
        self,
        label: str,
        code: str,
        name: str,
        params: dict[str, str],
        region_code: str,
        data_source: DataSource,
    ) -> Result[SegmentMetrics]:
        default_result, recovery_result = await asyncio.gather(
            self._latest_rate(params, f"default rate for {label} {code}", codes.DEFAULT_RATE_METRIC),
            self.recovery_rate(region_code, data_source),
        )
        if isinstance(default_result, Err):
            return default_result
        default_rate, _ = default_result.value

        recovery_rate, is_estimated, recovery_error = self._resolve_recovery(recovery_result, default_rate)
        return Ok(SegmentMetrics(
            code=code,
            name=name,
            default_rate=default_rate,
            recovery_rate=recovery_rate,
            period=self.period,
            is_estimated=is_estimated,
            recovery_error=recovery_error,
        ), warnings=(recovery_error,) if recovery_error else ())

    async def sector_metrics_by_code(
        self,
        sector_code: str,
        data_source: DataSource = DataSource.PUBLIC,
        region_code: str = codes.TOTAL,
        project_type_code: str = codes.TOTAL,
    ) -> Result[SegmentMetrics]:
        data_source = DataSource(data_source)
        params = self._query(
            data_source.default_indicator,
            codes.DEFAULT_RATE_METRIC,
            region_code,
            sector=sector_code,
            project_type=project_type_code,
        )
        return await self._segment_metrics(
            "sector", sector_code, codes.sector_name(sector_code), params, region_code, data_source
        )

    async def sector_metrics(
        self, sector: str, data_source: DataSource = DataSource.PUBLIC
    ) -> MetricResult[SegmentMetrics]:
        dimension = codes.lookup_sector(sector)
        if dimension is None:
            return _unknown("sector", sector, codes.SECTOR_CODES)
        return await self.sector_metrics_by_code(dimension.code, data_source)

    async def all_sector_metrics(
        self, data_source: DataSource = DataSource.PUBLIC
    ) -> Result[list[SegmentMetrics]]:
        results = await asyncio.gather(
            *(self.sector_metrics_by_code(code, data_source) for code in codes.COMPARISON_SECTOR_CODES)
        )
        names = [codes.sector_name(code) for code in codes.COMPARISON_SECTOR_CODES]
        return _collect(names, results)

    async def project_type_metrics_by_code(
        self,
        project_type_code: str,
        data_source: DataSource = DataSource.PUBLIC,
        region_code: str = codes.TOTAL,
        sector_code: str = codes.TOTAL,
    ) -> Result[SegmentMetrics]:
        data_source = DataSource(data_source)
        params = self._query(
            data_source.default_indicator,
            codes.DEFAULT_RATE_METRIC,
            region_code,
            sector=sector_code,
            project_type=project_type_code,
        )
        return await self._segment_metrics(
            "project type",
            project_type_code,
            codes.project_type_name(project_type_code),
            params,
            region_code,
            data_source,
        )

    async def project_type_metrics(
        self, project_type: str, data_source: DataSource = DataSource.PUBLIC
    ) -> MetricResult[SegmentMetrics]:
        dimension = codes.lookup_project_type(project_type)
        if dimension is None:
            return _unknown("project type", project_type, codes.PROJECT_TYPE_CODES)
        return await self.project_type_metrics_by_code(dimension.code, data_source)

    async def all_project_type_metrics(
        self, data_source: DataSource = DataSource.PUBLIC
    ) -> Result[list[SegmentMetrics]]:
        results = await asyncio.gather(
            *(self.project_type_metrics_by_code(code, data_source)
              for code in codes.COMPARISON_PROJECT_TYPE_CODES)
        )
        names = [codes.project_type_name(code) for code in codes.COMPARISON_PROJECT_TYPE_CODES]
        return _collect(names, results)

    # ------------------------------------------------------------------------
    # Seniority
    # ------------------------------------------------------------------------

    async def seniority_analysis(
        self, region: str = "global", data_source: DataSource = DataSource.PUBLIC
    ) -> MetricResult[SeniorityMetrics]:
        dimension = codes.lookup_region(region)
        if dimension is None:
            return _unknown("region", region, codes.REGION_CODES)
        data_source = DataSource(data_source)

        secured, unsecured = await asyncio.gather(
            self.recovery_rate(dimension.code, data_source, seniority_code="SS"),
            self.recovery_rate(dimension.code, data_source, seniority_code="SU"),
        )
        if isinstance(secured, Err):
            return secured
        if isinstance(unsecured, Err):
            return unsecured

        return Ok(SeniorityMetrics(
            region=dimension.name,
            secured_rate=secured.value,
            unsecured_rate=unsecured.value,
            period=self.period,
        ), warnings=secured.warnings + unsecured.warnings)

    # ------------------------------------------------------------------------
    # Time series
    # ------------------------------------------------------------------------

    async def _time_series_point(
        self, region_code: str, year: int, data_source: DataSource
    ) -> TimeSeriesPoint | None:
        params = self._query(
            data_source.default_indicator,
            codes.DEFAULT_RATE_METRIC,
            region_code,
            sector=codes.TOTAL,
            project_type=codes.TOTAL,
            time_period=str(year),
        )
        result = await self._latest_rate(params, "default rate", codes.DEFAULT_RATE_METRIC)
        if isinstance(result, Err):
            logger.debug("Skipping %s for %s: %s", year, region_code, result.error.message)
            return None
        return TimeSeriesPoint(year=year, default_rate=result.value[0])

    async def time_series(
        self,
        region: str = "global",
        years: int = DEFAULT_TIME_SERIES_YEARS,
        data_source: DataSource = DataSource.PUBLIC,
    ) -> MetricResult[TimeSeries]:
        """One independent query per year, current_year - years through current_year"""
        dimension = codes.lookup_region(region)
        if dimension is None:
            return _unknown("region", region, codes.REGION_CODES)
        data_source = DataSource(data_source)

        end_year = self.current_year
        start_year = end_year - years
        points = await asyncio.gather(
            *(self._time_series_point(dimension.code, year, data_source)
              for year in range(start_year, end_year + 1))
        )
        points = [p for p in points if p is not None]

        if not points:
            return Err(DataError(
                type=DataErrorType.NO_DATA,
                message="No historical data available for the specified parameters",
                suggested_action="Try broader filters or a different time range",
            ))

        return Ok(TimeSeries(region=dimension.name, years=years, points=points))

    # ------------------------------------------------------------------------
    # Multi-dimensional
    # ------------------------------------------------------------------------

    async def multidimensional(
        self,
        region: str = "global",
        sector: str = "all",
        project_type: str = "all",
        data_source: DataSource = DataSource.PUBLIC,
    ) -> MetricResult[MultiDimensionalMetrics]:
        region_dim = codes.lookup_region(region)
        if region_dim is None:
            return _unknown("region", region, codes.REGION_CODES)
        sector_dim = codes.lookup_sector(sector)
        if sector_dim is None:
            return _unknown("sector", sector, codes.SECTOR_CODES)
        project_type_dim = codes.lookup_project_type(project_type)
        if project_type_dim is None:
            return _unknown("project type", project_type, codes.PROJECT_TYPE_CODES)
        data_source = DataSource(data_source)

        params = self._query(
            data_source.default_indicator,
            codes.DEFAULT_RATE_METRIC,
            region_dim.code,
            sector=sector_dim.code,
            project_type=project_type_dim.code,
        )
        default_result, recovery_result = await asyncio.gather(
            self._latest_rate(params, "default rate", codes.DEFAULT_RATE_METRIC),
            self.recovery_rate(region_dim.code, data_source),
        )
        if isinstance(default_result, Err):
            return default_result
        default_rate, _ = default_result.value

        recovery_rate, is_estimated, recovery_error = self._resolve_recovery(recovery_result, default_rate)
        return Ok(MultiDimensionalMetrics(
            region=region_dim.name,
            sector=sector_dim.name,
            project_type=project_type_dim.name,
            default_rate=default_rate,
            recovery_rate=recovery_rate,
            period=self.period,
            is_estimated=is_estimated,
            recovery_error=recovery_error,
        ), warnings=(recovery_error,) if recovery_error else ())
