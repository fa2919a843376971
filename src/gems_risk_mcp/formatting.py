"""
Markdown reports for the GEMs tools

Pure functions: metric payloads (or errors) in, Markdown strings out.
"""

from typing import Iterable

from .codes import DATA_SOURCE_INFO, DataSource
from .estimation import (
    BASELINE_DEFAULT_RATE,
    BASELINE_RECOVERY_RATE,
    CORRELATION_SLOPE,
    MAX_RECOVERY_RATE,
    MIN_RECOVERY_RATE,
    expected_loss,
)
from .results import (
    DataError,
    DataErrorType,
    MultiDimensionalMetrics,
    RegionMetrics,
    SegmentMetrics,
    SeniorityMetrics,
    TimeSeries,
    UnknownEntity,
)

GLOBAL_AVERAGE_DEFAULT_RATE = BASELINE_DEFAULT_RATE

_PLURALS = {
    "region": "regions",
    "sector": "sectors",
    "project type": "project types",
    "seniority": "seniority levels",
}


def _rate(value: float) -> str:
    """3.5 -> '3.5', 73.0 -> '73'"""
    return f"{round(value, 2):g}"


def _billions(amount: float) -> str:
    return f"{amount / 1e9:.1f}"


def _risk_vs_global(default_rate: float) -> str:
    if default_rate < GLOBAL_AVERAGE_DEFAULT_RATE:
        return f"Below-average risk vs global {_rate(GLOBAL_AVERAGE_DEFAULT_RATE)}%."
    return f"Above-average risk vs global {_rate(GLOBAL_AVERAGE_DEFAULT_RATE)}%."


# ============================================================================
# Shared blocks
# ============================================================================

def data_source_attribution(data_source: DataSource) -> str:
    data_source = DataSource(data_source)
    info = DATA_SOURCE_INFO[data_source]
    alternative = data_source.alternative
    alt_info = DATA_SOURCE_INFO[alternative]
    return (
        f"*Data Source: {info['label']}*\n"
        f"*Characteristics: {info['description']}, {info['sample_size']}*\n"
        f"*Alternative: {alt_info['label']} available (use data_source=\"{alternative.value}\")*"
    )


def estimation_note(default_rate: float, reason: DataError | None) -> str:
    """Discloses how an estimated recovery rate was derived"""
    text = (
        "⚠️ **Data Status:** Recovery rate approximated (real data unavailable)\n\n"
        "**Approximation Method:**\n"
        "- Based on inverse correlation between default and recovery rates\n"
        f"- Formula: {_rate(BASELINE_RECOVERY_RATE)}% (baseline) + "
        f"({_rate(BASELINE_DEFAULT_RATE)}% - {default_rate:.2f}%) × {CORRELATION_SLOPE}, "
        f"clamped to {_rate(MIN_RECOVERY_RATE)}-{_rate(MAX_RECOVERY_RATE)}%\n"
        "- Confidence: Moderate (±5-10% typical variance)\n"
        "- Source: Statistical analysis of IFC_GEM historical data (1994-2024)\n\n"
    )
    if reason is not None:
        text += f"**Why approximated:** {reason.message}\n\n"
    return text


def _recovery_status(default_rate: float, is_estimated: bool, recovery_error: DataError | None) -> str:
    if is_estimated:
        return estimation_note(default_rate, recovery_error)
    if recovery_error is not None and recovery_error.type == DataErrorType.STALE_DATA:
        return f"⚠️ **Data Age Warning:** {recovery_error.message}\n\n"
    return ""


def _omissions(omitted: Iterable[DataError], shown: int, noun: str) -> str:
    omitted = list(omitted)
    if not omitted:
        return ""
    total = shown + len(omitted)
    text = f"*{len(omitted)} of {total} {noun} had no usable data and were omitted:*\n"
    text += "\n".join(f"- {e.message}" for e in omitted)
    return text + "\n\n"


def _caveats(warnings: Iterable[DataError], skip: DataError | None = None) -> str:
    lines = [f"- {w.message}" for w in warnings if w is not skip]
    if not lines:
        return ""
    return "**Data caveats:**\n" + "\n".join(lines) + "\n\n"


# ============================================================================
# Errors
# ============================================================================

def format_error(error: DataError, subject: str = "credit risk", note: str | None = None) -> str:
    """One template per error type so callers can tell failures apart"""
    action = error.suggested_action

    if error.type == DataErrorType.NETWORK_ERROR:
        text = (
            "⚠️ **World Bank Data360 API is currently unavailable**\n\n"
            f"Unable to retrieve real-time {subject} data.\n\n"
            f"**Reason:** {error.message}\n\n"
            f"{action or 'Please try again later.'}"
        )
    elif error.type == DataErrorType.TIMEOUT:
        text = (
            "⚠️ **Request Timeout**\n\n"
            f"{error.message}\n\n"
            f"{action or 'Try again in a few moments.'}"
        )
    elif error.type == DataErrorType.RATE_LIMITED:
        text = (
            "⚠️ **API Rate Limit Exceeded**\n\n"
            f"{error.message}\n\n"
            f"{action or 'Wait a few minutes before retrying.'}"
        )
    elif error.type == DataErrorType.NO_DATA:
        text = (
            f"ℹ️ **No {subject} data available**\n\n"
            f"{error.message}\n\n"
            f"{action or 'Try querying global data or broader filters.'}"
        )
    elif error.type == DataErrorType.INVALID_DATA:
        text = (
            f"⚠️ **Invalid {subject} data received**\n\n"
            f"{error.message}\n\n"
            f"{error.details or 'The upstream value failed validation and was not used.'}"
        )
    elif error.type == DataErrorType.MALFORMED_RESPONSE:
        text = (
            "⚠️ **Unexpected response from World Bank Data360 API**\n\n"
            f"{error.message}\n\n"
            "The API may be changing its format. Please try again later."
        )
    elif error.type == DataErrorType.API_ERROR:
        reason = f" ({error.details})" if error.details else ""
        text = (
            "⚠️ **World Bank Data360 API error**\n\n"
            f"{error.message}{reason}\n\n"
            f"{action or 'Please try again.'}"
        )
    else:
        text = (
            "⚠️ **Data Age Warning**\n\n"
            f"{error.message}\n\n"
            f"{action or ''}"
        )

    if note:
        text += f"\n\n{note}"
    return text


def format_unknown(entity: UnknownEntity) -> str:
    plural = _PLURALS.get(entity.kind, f"{entity.kind}s")
    return (
        f"No data available for {entity.kind}: {entity.slug}. "
        f"Available {plural}: {', '.join(entity.valid)}"
    )


# ============================================================================
# Region reports
# ============================================================================

def format_default_rates(data: RegionMetrics, warnings: Iterable[DataError], data_source: DataSource) -> str:
    return (
        f"# Default Rates for {data.region}\n\n"
        f"**Default Rate:** {_rate(data.default_rate)}%\n\n"
        f"**Period:** {data.period}\n\n"
        f"**Context:** Out of {data.number_of_loans:,} loans totaling "
        f"${_billions(data.total_volume)} billion USD, {_rate(data.default_rate)}% resulted in default.\n\n"
        f"{_caveats(warnings, skip=data.recovery_error)}"
        f"{data_source_attribution(data_source)}"
    )


def format_recovery_rates(data: RegionMetrics, warnings: Iterable[DataError], data_source: DataSource) -> str:
    text = f"# Recovery Rates for {data.region}\n\n**Recovery Rate:** {_rate(data.recovery_rate)}%\n\n"
    text += _recovery_status(data.default_rate, data.is_estimated, data.recovery_error)
    text += f"**Analysis:** When loans default, lenders recover {_rate(data.recovery_rate)}% of loan value.\n\n"
    text += f"**Period:** {data.period}\n\n"
    if data.is_estimated:
        text += "*Approximated based on default rate correlation*\n\n"
    text += _caveats(warnings, skip=data.recovery_error)
    text += data_source_attribution(data_source)
    return text


def format_credit_risk(data: RegionMetrics, warnings: Iterable[DataError], data_source: DataSource) -> str:
    loss = expected_loss(data.default_rate, data.recovery_rate)
    recovery_note = " (approximated - see note below)" if data.is_estimated else ""
    strength = "strong" if data.default_rate < 4 else "moderate"

    text = (
        f"# Credit Risk Profile: {data.region}\n\n"
        "## Key Metrics\n\n"
        f"**Default Rate:** {_rate(data.default_rate)}%\n"
        f"**Recovery Rate:** {_rate(data.recovery_rate)}%{recovery_note}\n"
        f"**Number of Loans:** {data.number_of_loans:,}\n"
        f"**Total Volume:** ${_billions(data.total_volume)}B USD\n"
        f"**Period:** {data.period}\n\n"
        "## Risk Assessment\n\n"
        f"**Expected Loss:** {loss:.2f}%\n\n"
        "The expected loss represents the percentage of loan value expected to be lost "
        "after accounting for defaults and recoveries.\n\n"
        f"With a {_rate(data.default_rate)}% default rate and {_rate(data.recovery_rate)}% recovery rate, "
        f"{data.region} demonstrates {strength} credit performance for emerging market lending.\n\n"
    )
    text += _recovery_status(data.default_rate, data.is_estimated, data.recovery_error)
    text += _caveats(warnings, skip=data.recovery_error)
    text += data_source_attribution(data_source)
    return text


COMPARISON_METRICS = ("default-rate", "recovery-rate", "both")


def format_region_comparison(
    regions: list[RegionMetrics],
    metric: str,
    data_source: DataSource,
    omitted: Iterable[DataError] = (),
) -> str:
    text = "# Regional Credit Risk Comparison\n\n"

    if metric in ("default-rate", "both"):
        text += "## Default Rates\n\n"
        for i, r in enumerate(sorted(regions, key=lambda r: r.default_rate), start=1):
            text += f"{i}. **{r.region}:** {_rate(r.default_rate)}%\n"
        text += "\n"

    if metric in ("recovery-rate", "both"):
        text += "## Recovery Rates\n\n"
        for i, r in enumerate(sorted(regions, key=lambda r: r.recovery_rate, reverse=True), start=1):
            mark = "*" if r.is_estimated else ""
            text += f"{i}. **{r.region}:** {_rate(r.recovery_rate)}%{mark}\n"
        text += "\n"
        if any(r.is_estimated for r in regions):
            text += "* = Recovery rate estimated from default rate correlation\n\n"

    text += _omissions(omitted, len(regions), "regions")
    text += data_source_attribution(data_source)
    return text


# ============================================================================
# Sector / project type reports
# ============================================================================

def format_segment(data: SegmentMetrics, data_source: DataSource, title: str = "Sector Analysis") -> str:
    loss = expected_loss(data.default_rate, data.recovery_rate)
    recovery_note = " (estimated)" if data.is_estimated else ""

    text = (
        f"# {title}: {data.name}\n\n"
        f"**Default Rate:** {data.default_rate:.2f}%\n"
        f"**Recovery Rate:** {data.recovery_rate:.2f}%{recovery_note}\n"
        f"**Expected Loss:** {loss:.2f}%\n"
        f"**Period:** {data.period}\n\n"
        f"{_risk_vs_global(data.default_rate)}\n\n"
    )
    text += _recovery_status(data.default_rate, data.is_estimated, data.recovery_error)
    text += data_source_attribution(data_source)
    return text


def _segment_table(
    title: str,
    column: str,
    segments: list[SegmentMetrics],
    data_source: DataSource,
    omitted: Iterable[DataError] = (),
) -> str:
    ordered = sorted(segments, key=lambda s: s.default_rate)

    text = f"# {title}\n\n"
    text += f"| {column} | Default Rate | Recovery Rate | Expected Loss |\n"
    text += f"|{'-' * (len(column) + 2)}|--------------|---------------|---------------|\n"
    for s in ordered:
        loss = expected_loss(s.default_rate, s.recovery_rate)
        mark = "*" if s.is_estimated else ""
        text += f"| {s.name} | {s.default_rate:.2f}% | {s.recovery_rate:.2f}%{mark} | {loss:.2f}% |\n"

    lowest, highest = ordered[0], ordered[-1]
    best_recovery = max(ordered, key=lambda s: s.recovery_rate)
    text += "\n**Key Insights:**\n"
    text += f"- Lowest risk: {lowest.name} ({lowest.default_rate:.2f}%)\n"
    text += f"- Highest risk: {highest.name} ({highest.default_rate:.2f}%)\n"
    text += f"- Best recovery: {best_recovery.name} ({best_recovery.recovery_rate:.2f}%)\n"
    text += f"- Risk spread: {highest.default_rate - lowest.default_rate:.2f}% difference\n\n"

    if any(s.is_estimated for s in ordered):
        text += "* = Recovery rate estimated\n\n"
    stale = next((s.recovery_error for s in ordered
                  if s.recovery_error is not None and s.recovery_error.type == DataErrorType.STALE_DATA), None)
    if stale is not None:
        text += f"⚠️ **Data Age Warning:** {stale.message}\n\n"

    text += _omissions(omitted, len(ordered), f"{column.lower()}s")
    text += data_source_attribution(data_source)
    return text


def format_sector_table(
    sectors: list[SegmentMetrics], data_source: DataSource, omitted: Iterable[DataError] = ()
) -> str:
    return _segment_table("Credit Risk by Sector", "Sector", sectors, data_source, omitted)


def format_project_type_table(
    project_types: list[SegmentMetrics], data_source: DataSource, omitted: Iterable[DataError] = ()
) -> str:
    return _segment_table("Credit Risk by Project Type", "Project Type", project_types, data_source, omitted)


# ============================================================================
# Time series
# ============================================================================

def format_time_series(series: TimeSeries, data_source: DataSource) -> str:
    points = series.points
    first, last = points[0], points[-1]
    rates = [p.default_rate for p in points]
    change = last.default_rate - first.default_rate
    percent_change = f"{change / first.default_rate * 100:.1f}%" if first.default_rate else "n/a"
    if change > 0:
        trend = "📈 Increasing"
    elif change < 0:
        trend = "📉 Decreasing"
    else:
        trend = "➡️ Stable"

    text = f"# Historical Credit Risk Trend: {series.region}\n\n"
    text += f"**Period:** {first.year} - {last.year} ({series.years} years)\n\n"

    text += "## Summary Statistics\n\n"
    text += f"- **Current Rate ({last.year}):** {last.default_rate:.2f}%\n"
    text += f"- **Average Rate:** {sum(rates) / len(rates):.2f}%\n"
    text += f"- **Highest Rate:** {max(rates):.2f}%\n"
    text += f"- **Lowest Rate:** {min(rates):.2f}%\n"
    text += f"- **Change:** {'+' if change > 0 else ''}{change:.2f}% ({percent_change})\n"
    text += f"- **Trend:** {trend}\n\n"

    text += "## Year-by-Year Data\n\n"
    text += "| Year | Default Rate | Change |\n"
    text += "|------|--------------|--------|\n"
    previous = None
    for point in points:
        if previous is None:
            change_str = "-"
        else:
            delta = point.default_rate - previous.default_rate
            change_str = f"{'+' if delta > 0 else ''}{delta:.2f}%"
        text += f"| {point.year} | {point.default_rate:.2f}% | {change_str} |\n"
        previous = point

    expected_points = series.years + 1
    if len(points) < expected_points:
        text += f"\n*{expected_points - len(points)} of {expected_points} years had no usable data and were omitted.*\n"

    text += "\n" + data_source_attribution(data_source)
    return text


# ============================================================================
# Seniority
# ============================================================================

SENIORITY_NOTE = "**Note:** Seniority data may only be available at the global level."


def format_seniority(data: SeniorityMetrics, warnings: Iterable[DataError], data_source: DataSource) -> str:
    ss, su = data.secured_rate, data.unsecured_rate
    premium = data.security_premium

    text = f"# Debt Seniority Analysis: {data.region}\n\n"
    text += "## Recovery Rates by Seniority\n\n"
    text += "| Seniority Level | Recovery Rate | Risk Level |\n"
    text += "|-----------------|---------------|------------|\n"
    text += f"| **Senior Secured (SS)** | {ss:.2f}% | Lower Risk |\n"
    text += f"| **Senior Unsecured (SU)** | {su:.2f}% | Higher Risk |\n\n"

    text += "## Key Metrics\n\n"
    text += f"- **Security Premium:** {premium:.2f}%\n"
    if su:
        text += f"- **Relative Advantage:** {premium / su * 100:.1f}% better recovery for secured debt\n\n"
    else:
        text += "- **Relative Advantage:** n/a (no unsecured recoveries)\n\n"

    text += "## Analysis\n\n"
    if premium > 10:
        text += (f"**Significant security premium detected.** Collateralized loans recover {premium:.2f}% more "
                 "than uncollateralized loans, highlighting the importance of security in credit structuring.\n\n")
    elif premium > 5:
        text += (f"**Moderate security premium.** Collateral provides a {premium:.2f}% recovery advantage, "
                 "demonstrating tangible risk mitigation benefits.\n\n")
    else:
        text += (f"**Limited security premium.** The {premium:.2f}% difference suggests other factors may be "
                 "more significant in determining recovery rates.\n\n")

    text += "**Implications for Lending:**\n"
    text += f"- Senior secured loans offer {ss:.2f}% average recovery on default\n"
    text += f"- Senior unsecured loans offer {su:.2f}% average recovery on default\n"
    text += f"- Security reduces expected loss by {premium:.2f} percentage points\n\n"

    for warning in warnings:
        if warning.type == DataErrorType.STALE_DATA:
            text += f"⚠️ **Data Age Warning:** {warning.message}\n\n"
    text += f"*Period: {data.period}*\n\n"
    text += data_source_attribution(data_source)
    return text


# ============================================================================
# Multi-dimensional
# ============================================================================

def format_filters(region: str, sector: str, project_type: str) -> str:
    return f"- Region: {region}\n- Sector: {sector}\n- Project Type: {project_type}"


def format_no_combination(region: str, sector: str, project_type: str) -> str:
    return (
        "ℹ️ **No data available for this combination**\n\n"
        "**Filters Applied:**\n"
        f"{format_filters(region, sector, project_type)}\n\n"
        "**Suggestions:**\n"
        "- Try broader filters (e.g., all sectors or all project types)\n"
        "- Use global region instead of specific region\n"
        "- This combination may have insufficient sample size"
    )


def format_multidimensional(data: MultiDimensionalMetrics, data_source: DataSource) -> str:
    loss = expected_loss(data.default_rate, data.recovery_rate)
    average = GLOBAL_AVERAGE_DEFAULT_RATE
    if data.default_rate < average:
        comparison = "below"
    elif data.default_rate > average:
        comparison = "above"
    else:
        comparison = "at"

    text = "# Multi-Dimensional Credit Risk Analysis\n\n"
    text += "## Query Parameters\n\n"
    text += f"- **Region:** {data.region}\n"
    text += f"- **Sector:** {data.sector}\n"
    text += f"- **Project Type:** {data.project_type}\n\n"

    text += "## Risk Metrics\n\n"
    text += "| Metric | Value |\n"
    text += "|--------|-------|\n"
    text += f"| **Default Rate** | {data.default_rate:.2f}% |\n"
    text += f"| **Recovery Rate** | {data.recovery_rate:.2f}%{' (estimated)' if data.is_estimated else ''} |\n"
    text += f"| **Expected Loss** | {loss:.2f}% |\n\n"

    text += "## Risk Assessment\n\n"
    text += (f"Default rate is **{comparison} global average** ({_rate(average)}%) by "
             f"{abs(data.default_rate - average):.2f} percentage points.\n\n")
    if data.default_rate < 2.5:
        text += "**Low Risk:** This combination shows significantly lower default risk.\n\n"
    elif data.default_rate < 3.5:
        text += "**Below Average Risk:** This combination performs better than the global average.\n\n"
    elif data.default_rate < 4.5:
        text += "**Above Average Risk:** This combination shows elevated default risk.\n\n"
    else:
        text += "**High Risk:** This combination shows significantly higher default risk.\n\n"

    text += "**Sample Size Note:** More specific filters may have smaller sample sizes and higher variance.\n\n"
    text += _recovery_status(data.default_rate, data.is_estimated, data.recovery_error)
    text += data_source_attribution(data_source)
    return text
