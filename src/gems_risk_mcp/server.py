"""
GEMs Credit Risk MCP Server
Exposes IFC Global Emerging Markets default/recovery statistics from the
World Bank Data360 API - Claude asks, the server fetches, validates and reports
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated, AsyncIterator, Literal

from mcp.server.fastmcp import FastMCP
from pydantic import Field
from smithery.decorators import smithery

from . import codes, tools
from .cache import ResponseCache
from .client import Data360Client
from .config import ConfigSchema, ServerSettings, configure_logging, load_settings
from .service import DEFAULT_TIME_SERIES_YEARS, CreditRiskService

logger = logging.getLogger(__name__)

SERVER_NAME = "gems-risk"
MAX_TIME_SERIES_YEARS = 30

DATA_SOURCE_DESCRIPTION = (
    'Data source: "public" (public sector lending) or "private" '
    '(private sector lending, recommended). Default: public'
)


# ============================================================================
# Tool argument schemas
# ============================================================================

# Enums are advertised in the schema but not enforced, so an unknown slug
# still reaches the tool and gets a list of valid values back.
def _enum(description: str, values):
    return Field(description=description, json_schema_extra={"enum": list(values)})


RegionArg = Annotated[str, _enum("Region to query (e.g., global, east-asia, latin-america)", codes.REGION_CODES)]
OptionalRegionArg = Annotated[
    str | None, _enum("Region to analyze (defaults to global)", codes.REGION_CODES)
]
SectorArg = Annotated[
    str | None, _enum('Economic sector to analyze, or "all" for all sectors', codes.SECTOR_CODES)
]
ProjectTypeArg = Annotated[
    str | None, _enum('Project financing type to analyze, or "all" for comparison', codes.PROJECT_TYPE_CODES)
]
DataSourceArg = Annotated[Literal["public", "private"], Field(description=DATA_SOURCE_DESCRIPTION)]
MetricArg = Annotated[
    Literal["default-rate", "recovery-rate", "both"], Field(description="Metric to compare across regions")
]
YearsArg = Annotated[
    int,
    Field(ge=1, le=MAX_TIME_SERIES_YEARS, description="Number of recent years to analyze (default: 10)"),
]


# ============================================================================
# Service wiring
# ============================================================================

def build_service(settings: ServerSettings) -> CreditRiskService:
    cache = ResponseCache(ttl=settings.cache_ttl_seconds)
    client = Data360Client(
        cache,
        base_url=settings.api_base_url,
        timeout=settings.request_timeout_seconds,
    )
    return CreditRiskService(client, reference_period=settings.reference_period)


def build_server(service: CreditRiskService, settings: ServerSettings | None = None) -> FastMCP:
    """Register the GEMs tools against one shared service"""
    settings = settings or ServerSettings()

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[CreditRiskService]:
        async with service.client.cache.sweeping(settings.cache_sweep_interval_seconds):
            yield service

    server = FastMCP(name=SERVER_NAME, lifespan=lifespan)

    @server.tool()
    async def get_default_rates(region: RegionArg, data_source: DataSourceArg = "public") -> str:
        """Query default frequencies for emerging market lending by region.

        Returns the latest average default rate (percentage of loans that defaulted),
        loan counts and signed volumes. Data sources: "public" (public sector/government
        lending) or "private" (private sector/corporate lending, 4x more observations).
        """
        return await tools.get_default_rates(service, region, data_source)

    @server.tool()
    async def get_recovery_rates(region: RegionArg, data_source: DataSourceArg = "public") -> str:
        """Retrieve recovery rates for defaulted loans by region.

        If the recovery indicator has no data the rate is approximated from the default
        rate and the report says so, including the formula used.
        """
        return await tools.get_recovery_rates(service, region, data_source)

    @server.tool()
    async def query_credit_risk(region: RegionArg, data_source: DataSourceArg = "public") -> str:
        """Get comprehensive credit risk statistics for a region.

        <returns>
            Default rate, recovery rate, number of loans, total volume and expected loss
            (Default Rate x (1 - Recovery Rate)).
        </returns>
        """
        return await tools.query_credit_risk(service, region, data_source)

    @server.tool()
    async def get_sector_analysis(sector: SectorArg = None, data_source: DataSourceArg = "public") -> str:
        """Analyze credit risk performance by economic sector (GICS sectors + IFC categories).

        Omit sector (or pass "all") for a comparison table of the main sectors.
        """
        return await tools.get_sector_analysis(service, sector, data_source)

    @server.tool()
    async def compare_regions(metric: MetricArg, data_source: DataSourceArg = "public") -> str:
        """Compare credit risk metrics across all emerging market regions."""
        return await tools.compare_regions(service, metric, data_source)

    @server.tool()
    async def get_project_type_analysis(
        projectType: ProjectTypeArg = None, data_source: DataSourceArg = "public"
    ) -> str:
        """Analyze credit risk by project financing type (Corporate Finance, Project Finance, etc.)."""
        return await tools.get_project_type_analysis(service, projectType, data_source)

    @server.tool()
    async def get_time_series(
        region: OptionalRegionArg = None,
        years: YearsArg = DEFAULT_TIME_SERIES_YEARS,
        data_source: DataSourceArg = "public",
    ) -> str:
        """Analyze historical trends in default rates over time (1994-2024).

        <workflow>
            <step>One query per year, from (current year - years) to the current year</step>
            <step>Years without usable data are skipped and reported as omitted</step>
        </workflow>
        """
        return await tools.get_time_series(service, region, years, data_source)

    @server.tool()
    async def get_seniority_analysis(region: OptionalRegionArg = None, data_source: DataSourceArg = "public") -> str:
        """Compare recovery rates by debt seniority (Senior Secured vs Senior Unsecured)."""
        return await tools.get_seniority_analysis(service, region, data_source)

    @server.tool()
    async def query_multidimensional(
        region: OptionalRegionArg = None,
        sector: SectorArg = None,
        projectType: ProjectTypeArg = None,
        data_source: DataSourceArg = "public",
    ) -> str:
        """Query credit risk data with multiple filters (region + sector + project type).

        More specific filters have smaller samples. An empty combination is reported
        with suggestions for broadening it; no substitute data is returned.
        """
        return await tools.query_multidimensional(service, region, sector, projectType, data_source)

    return server


# ============================================================================
# FastMCP Server with Smithery
# ============================================================================

@smithery.server(config_schema=ConfigSchema)
def create_server():
    """Create GEMs Credit Risk MCP server"""
    settings = load_settings()
    return build_server(build_service(settings), settings)


# For local development with smithery CLI
def main():
    """Entry point for local development"""
    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info("Starting %s MCP server (%s)", SERVER_NAME, settings.transport)
    server = create_server()
    server.run(transport=settings.transport)  # This is synchronous and handles its own event loop


if __name__ == "__main__":
    main()
