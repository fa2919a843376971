"""
Typed results for the GEMs data layer

Every fetch returns one of three variants instead of raising:
  - Ok: the payload plus any non-fatal warnings (stale data, estimated values)
  - Err: a DataError describing why the critical data could not be produced
  - UnknownEntity: the caller asked for a region/sector/etc. that does not exist
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field


T = TypeVar("T")


class DataErrorType(str, Enum):
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    NO_DATA = "no_data"
    INVALID_DATA = "invalid_data"
    STALE_DATA = "stale_data"
    MALFORMED_RESPONSE = "malformed_response"
    API_ERROR = "api_error"


@dataclass(frozen=True)
class DataError:
    type: DataErrorType
    message: str
    details: Any = None
    suggested_action: str | None = None


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    warnings: tuple[DataError, ...] = ()


@dataclass(frozen=True)
class Err:
    error: DataError


@dataclass(frozen=True)
class UnknownEntity:
    """Lookup miss; `valid` lists the slugs the caller could have used."""
    kind: str
    slug: str
    valid: tuple[str, ...] = field(default_factory=tuple)


Result = Union[Ok[T], Err]
MetricResult = Union[Ok[T], Err, UnknownEntity]


# ============================================================================
# Upstream records
# ============================================================================

class ObservationRecord(BaseModel):
    """One row of the Data360 `value` array"""
    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    time_period: str = Field(alias="TIME_PERIOD")
    obs_value: str | None = Field(default=None, alias="OBS_VALUE")
    unit_measure: str | None = Field(default=None, alias="UNIT_MEASURE")
    metric: str | None = Field(default=None, alias="METRIC")
    ref_area: str | None = Field(default=None, alias="REF_AREA")
    sector: str | None = Field(default=None, alias="SECTOR")
    project_type: str | None = Field(default=None, alias="PROJECT_TYPE")
    seniority: str | None = Field(default=None, alias="SENIORITY")

    @property
    def year(self) -> int | None:
        try:
            return int(self.time_period[:4])
        except ValueError:
            return None


# ============================================================================
# Metric payloads
# ============================================================================

class RegionMetrics(BaseModel):
    region_code: str
    region: str
    default_rate: float
    recovery_rate: float
    number_of_loans: int
    total_volume: float
    period: str
    is_estimated: bool
    recovery_error: DataError | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True)


class SegmentMetrics(BaseModel):
    """Default/recovery pair for one sector or project type"""
    code: str
    name: str
    default_rate: float
    recovery_rate: float
    period: str
    is_estimated: bool
    recovery_error: DataError | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True)


class SeniorityMetrics(BaseModel):
    region: str
    secured_rate: float
    unsecured_rate: float
    period: str

    @property
    def security_premium(self) -> float:
        return self.secured_rate - self.unsecured_rate


class TimeSeriesPoint(BaseModel):
    year: int
    default_rate: float


class TimeSeries(BaseModel):
    region: str
    years: int
    points: list[TimeSeriesPoint]


class MultiDimensionalMetrics(BaseModel):
    region: str
    sector: str
    project_type: str
    default_rate: float
    recovery_rate: float
    period: str
    is_estimated: bool
    recovery_error: DataError | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True)
