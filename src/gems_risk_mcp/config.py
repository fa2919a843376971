"""
Server configuration

Process-wide settings come from GEMS_* environment variables (a local .env
file is honoured). Smithery session configuration is not needed: every
session shares one cache and one API client.
"""

import logging
import os
import sys
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .cache import CACHE_TTL_SECONDS, SWEEP_INTERVAL_SECONDS
from .client import DATA360_BASE_URL, DEFAULT_TIMEOUT_SECONDS
from .service import REFERENCE_PERIOD

ENV_PREFIX = "GEMS_"


class ConfigSchema(BaseModel):
    """No per-session configuration needed for this server"""
    pass


class ServerSettings(BaseModel):
    api_base_url: str = Field(default=DATA360_BASE_URL, description="Data360 API base URL")
    request_timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    cache_ttl_seconds: float = Field(default=CACHE_TTL_SECONDS, gt=0)
    cache_sweep_interval_seconds: float = Field(default=SWEEP_INTERVAL_SECONDS, gt=0)
    reference_period: str = Field(default=REFERENCE_PERIOD, pattern=r"^\d{4}$")
    log_level: str = Field(default="INFO")
    transport: Literal["stdio", "sse", "streamable-http"] = "stdio"


def load_settings(environ: dict[str, str] | None = None) -> ServerSettings:
    """Build settings from GEMS_* variables, e.g. GEMS_CACHE_TTL_SECONDS=120"""
    if environ is None:
        load_dotenv()
        environ = dict(os.environ)

    values = {}
    for name in ServerSettings.model_fields:
        key = f"{ENV_PREFIX}{name.upper()}"
        if key in environ:
            values[name] = environ[key]
    return ServerSettings.model_validate(values)


def configure_logging(level: str = "INFO") -> None:
    # stdout carries the stdio MCP protocol
    logging.basicConfig(
        level=level.upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
