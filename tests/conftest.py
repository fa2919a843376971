"""
Shared fixtures: a routed fake for the Data360 HTTP session, a controllable
clock for the cache, and a service wired on top of both.
"""

import json
from datetime import date
from unittest.mock import Mock

import pytest
import requests

from gems_risk_mcp.cache import ResponseCache
from gems_risk_mcp.client import Data360Client
from gems_risk_mcp.service import CreditRiskService


TODAY = date(2025, 6, 1)


def make_response(status_code=200, payload=None, body=None, reason="OK"):
    """Real requests.Response so .ok / .json() behave as in production"""
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response.url = "https://data360api.worldbank.org/data360/data"
    if body is None:
        body = json.dumps(payload if payload is not None else {"value": []})
    response._content = body.encode("utf-8")
    response.encoding = "utf-8"
    return response


class Data360Stub:
    """Answers session.get() by matching query parameters; unmatched queries get an empty value array"""

    def __init__(self):
        self.routes = []

    @staticmethod
    def row(period, value, metric="ADR", unit="PT", **extra):
        record = {"TIME_PERIOD": period, "OBS_VALUE": value, "METRIC": metric, "UNIT_MEASURE": unit}
        record.update(extra)
        return record

    def respond(self, rows, **match):
        self.routes.append((match, make_response(payload={"value": rows, "count": len(rows)})))
        return self

    def respond_with(self, response_or_exc, **match):
        self.routes.append((match, response_or_exc))
        return self

    def __call__(self, url, params=None, headers=None, timeout=None):
        params = params or {}
        for match, outcome in self.routes:
            if all(params.get(key) == value for key, value in match.items()):
                if isinstance(outcome, BaseException):
                    raise outcome
                return outcome
        return make_response(payload={"value": [], "count": 0})


class FakeClock:
    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def stub():
    return Data360Stub()


@pytest.fixture
def session(stub):
    session = Mock(spec=requests.Session)
    session.get.side_effect = stub
    return session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ResponseCache(ttl=300, clock=clock)


@pytest.fixture
def client(cache, session):
    return Data360Client(cache, session=session, timeout=5)


@pytest.fixture
def service(client):
    return CreditRiskService(client, reference_period="2024", today=lambda: TODAY)


@pytest.fixture
def global_public(stub):
    """Global public-sector default 3.5%, recovery 73%, counts and volumes"""
    stub.respond([stub.row("2024", "3.5")], INDICATOR="IFC_GEM_PBD", METRIC="ADR", REF_AREA="_T")
    stub.respond([stub.row("2024", "73", metric="ARR")], INDICATOR="IFC_GEM_PBR", METRIC="ARR", REF_AREA="_T")
    stub.respond([stub.row("2024", "15420", metric="CP", unit="N")], METRIC="CP", REF_AREA="_T")
    stub.respond([stub.row("2024", "425000", metric="SA", unit="USD")], METRIC="SA", REF_AREA="_T")
    return stub
