"""Tests for the Markdown reports."""

import pytest

from gems_risk_mcp import formatting
from gems_risk_mcp.codes import DataSource
from gems_risk_mcp.results import (
    DataError,
    DataErrorType,
    MultiDimensionalMetrics,
    RegionMetrics,
    SegmentMetrics,
    SeniorityMetrics,
    TimeSeries,
    TimeSeriesPoint,
    UnknownEntity,
)


def region(**overrides):
    fields = dict(
        region_code="_T",
        region="Global Emerging Markets",
        default_rate=3.5,
        recovery_rate=73.0,
        number_of_loans=15420,
        total_volume=425e9,
        period="1994-2024",
        is_estimated=False,
        recovery_error=None,
    )
    fields.update(overrides)
    return RegionMetrics(**fields)


def segment(code, name, default_rate, recovery_rate=73.0, is_estimated=False, recovery_error=None):
    return SegmentMetrics(
        code=code,
        name=name,
        default_rate=default_rate,
        recovery_rate=recovery_rate,
        period="1994-2024",
        is_estimated=is_estimated,
        recovery_error=recovery_error,
    )


NO_RECOVERY = DataError(type=DataErrorType.NO_DATA, message="No data available for this query")
STALE = DataError(type=DataErrorType.STALE_DATA, message="Data is 4 years old (from 2021)")


# ===== Shared blocks =====


class TestAttribution:
    def test_public_points_at_private(self):
        text = formatting.data_source_attribution(DataSource.PUBLIC)
        assert "PUBLIC SECTOR dataset" in text
        assert 'use data_source="private"' in text

    def test_private_points_at_public(self):
        text = formatting.data_source_attribution("private")
        assert "PRIVATE SECTOR dataset" in text
        assert 'use data_source="public"' in text


class TestEstimationNote:
    def test_discloses_formula_and_confidence(self):
        text = formatting.estimation_note(5.1, NO_RECOVERY)
        assert "73% (baseline) + (3.5% - 5.10%) × 1.5" in text
        assert "Moderate (±5-10% typical variance)" in text
        assert "**Why approximated:** No data available for this query" in text

    def test_discloses_clamp(self):
        text = formatting.estimation_note(20.0, NO_RECOVERY)
        assert "(3.5% - 20.00%) × 1.5, clamped to 60-80%" in text

    def test_without_reason(self):
        assert "Why approximated" not in formatting.estimation_note(2.0, None)


# ===== Errors =====


class TestFormatError:
    def test_each_type_has_a_distinct_heading(self):
        headings = set()
        for error_type in DataErrorType:
            text = formatting.format_error(DataError(type=error_type, message="boom"))
            headings.add(text.splitlines()[0])
        assert len(headings) == len(DataErrorType)

    @pytest.mark.parametrize(
        "error_type, heading",
        [
            (DataErrorType.NETWORK_ERROR, "World Bank Data360 API is currently unavailable"),
            (DataErrorType.TIMEOUT, "Request Timeout"),
            (DataErrorType.RATE_LIMITED, "API Rate Limit Exceeded"),
            (DataErrorType.NO_DATA, "No credit risk data available"),
            (DataErrorType.INVALID_DATA, "Invalid credit risk data received"),
            (DataErrorType.MALFORMED_RESPONSE, "Unexpected response from World Bank Data360 API"),
            (DataErrorType.API_ERROR, "World Bank Data360 API error"),
        ],
    )
    def test_headings(self, error_type, heading):
        assert heading in formatting.format_error(DataError(type=error_type, message="boom"))

    def test_suggested_action_is_shown(self):
        error = DataError(
            type=DataErrorType.RATE_LIMITED,
            message="API rate limit exceeded",
            suggested_action="Wait 2-3 minutes before retrying",
        )
        assert "Wait 2-3 minutes before retrying" in formatting.format_error(error)

    def test_subject_and_note(self):
        text = formatting.format_error(NO_RECOVERY, "seniority", note=formatting.SENIORITY_NOTE)
        assert "No seniority data available" in text
        assert text.endswith(formatting.SENIORITY_NOTE)

    def test_unknown_entity_lists_valid_slugs(self):
        text = formatting.format_unknown(UnknownEntity("region", "atlantis", ("global", "mena")))
        assert text == "No data available for region: atlantis. Available regions: global, mena"


# ===== Region reports =====


class TestRegionReports:
    def test_default_rates(self):
        text = formatting.format_default_rates(region(), (), DataSource.PUBLIC)
        assert "**Default Rate:** 3.5%" in text
        assert "15,420 loans totaling $425.0 billion USD" in text
        assert "**Period:** 1994-2024" in text
        assert "Data caveats" not in text

    def test_default_rates_lists_caveats(self):
        warning = DataError(type=DataErrorType.NO_DATA, message="No loan count data")
        text = formatting.format_default_rates(region(number_of_loans=0), (warning,), DataSource.PUBLIC)
        assert "**Data caveats:**\n- No loan count data" in text

    def test_recovery_rates_real(self):
        text = formatting.format_recovery_rates(region(), (), DataSource.PUBLIC)
        assert "**Recovery Rate:** 73%" in text
        assert "approximated" not in text.lower()

    def test_recovery_rates_estimated(self):
        data = region(default_rate=5.1, recovery_rate=70.6, is_estimated=True, recovery_error=NO_RECOVERY)
        text = formatting.format_recovery_rates(data, (NO_RECOVERY,), DataSource.PUBLIC)
        assert "Recovery rate approximated" in text
        assert "(3.5% - 5.10%)" in text
        assert "Data caveats" not in text

    def test_recovery_rates_stale(self):
        data = region(recovery_error=STALE)
        text = formatting.format_recovery_rates(data, (STALE,), DataSource.PUBLIC)
        assert "**Data Age Warning:** Data is 4 years old (from 2021)" in text

    def test_credit_risk_expected_loss(self):
        text = formatting.format_credit_risk(region(), (), DataSource.PUBLIC)
        assert "**Expected Loss:** 0.94%" in text or "**Expected Loss:** 0.95%" in text
        assert "strong credit performance" in text

    def test_region_comparison_orders(self):
        regions = [
            region(region="A", default_rate=5.0, recovery_rate=60.0),
            region(region="B", default_rate=2.0, recovery_rate=80.0, is_estimated=True),
        ]
        text = formatting.format_region_comparison(regions, "both", DataSource.PUBLIC)
        assert text.index("1. **B:** 2%") < text.index("2. **A:** 5%")
        assert "1. **B:** 80%*" in text
        assert "* = Recovery rate estimated" in text

    def test_region_comparison_default_only(self):
        text = formatting.format_region_comparison([region()], "default-rate", DataSource.PUBLIC)
        assert "## Default Rates" in text
        assert "## Recovery Rates" not in text


# ===== Segment reports =====


class TestSegmentReports:
    def test_single_segment(self):
        text = formatting.format_segment(segment("F", "GICS: Financials", 2.8, 78.0), DataSource.PUBLIC)
        assert text.startswith("# Sector Analysis: GICS: Financials")
        assert "Below-average risk vs global 3.5%." in text

    def test_table_sorted_with_insights(self):
        sectors = [
            segment("E", "GICS: Energy", 5.0),
            segment("F", "GICS: Financials", 2.0, 80.0, is_estimated=True),
        ]
        text = formatting.format_sector_table(sectors, DataSource.PRIVATE)
        assert text.index("GICS: Financials |") < text.index("GICS: Energy |")
        assert "- Lowest risk: GICS: Financials (2.00%)" in text
        assert "- Risk spread: 3.00% difference" in text
        assert "* = Recovery rate estimated" in text

    def test_table_lists_omitted_members(self):
        omitted = (DataError(type=DataErrorType.TIMEOUT, message="GICS: Energy: Request timed out after 5000ms"),)
        text = formatting.format_sector_table([segment("F", "GICS: Financials", 2.0)], DataSource.PUBLIC, omitted)
        assert "*1 of 2 sectors had no usable data and were omitted:*" in text
        assert "- GICS: Energy: Request timed out after 5000ms" in text

    def test_table_without_omissions_has_no_note(self):
        text = formatting.format_sector_table([segment("F", "GICS: Financials", 2.0)], DataSource.PUBLIC)
        assert "omitted" not in text

    def test_project_type_table_title(self):
        text = formatting.format_project_type_table([segment("PF", "Project Finance", 3.0)], DataSource.PUBLIC)
        assert text.startswith("# Credit Risk by Project Type")


# ===== Time series, seniority, multi-dimensional =====


class TestOtherReports:
    def test_time_series_trend_and_omissions(self):
        series = TimeSeries(
            region="Global Emerging Markets",
            years=3,
            points=[TimeSeriesPoint(year=2022, default_rate=4.0), TimeSeriesPoint(year=2025, default_rate=3.0)],
        )
        text = formatting.format_time_series(series, DataSource.PUBLIC)
        assert "📉 Decreasing" in text
        assert "| 2025 | 3.00% | -1.00% |" in text
        assert "2 of 4 years had no usable data" in text

    def test_seniority(self):
        data = SeniorityMetrics(region="Global Emerging Markets", secured_rate=82.0, unsecured_rate=64.0,
                                period="1994-2024")
        text = formatting.format_seniority(data, (STALE,), DataSource.PUBLIC)
        assert "**Security Premium:** 18.00%" in text
        assert "Significant security premium" in text
        assert "Data Age Warning" in text

    def test_no_combination(self):
        text = formatting.format_no_combination("Middle East & North Africa", "Renewables", "Structured Finance")
        assert text.startswith("ℹ️ **No data available for this combination**")
        assert "- Sector: Renewables" in text

    def test_multidimensional(self):
        data = MultiDimensionalMetrics(
            region="Latin America & Caribbean",
            sector="Infrastructure",
            project_type="Project Finance",
            default_rate=2.2,
            recovery_rate=71.0,
            period="1994-2024",
            is_estimated=False,
            recovery_error=None,
        )
        text = formatting.format_multidimensional(data, DataSource.PUBLIC)
        assert "**below global average** (3.5%) by 1.30 percentage points" in text
        assert "**Low Risk:**" in text
