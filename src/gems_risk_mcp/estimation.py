"""
Recovery-rate fallback heuristic

Inverse linear correlation between default and recovery rates, anchored at
the global GEMs averages. Moderate confidence, +/-5-10% typical variance.
"""

BASELINE_RECOVERY_RATE = 73.0
BASELINE_DEFAULT_RATE = 3.5
CORRELATION_SLOPE = 1.5
MIN_RECOVERY_RATE = 60.0
MAX_RECOVERY_RATE = 80.0


def estimate_recovery_rate(default_rate: float) -> float:
    adjustment = (BASELINE_DEFAULT_RATE - default_rate) * CORRELATION_SLOPE
    return max(MIN_RECOVERY_RATE, min(MAX_RECOVERY_RATE, BASELINE_RECOVERY_RATE + adjustment))


def expected_loss(default_rate: float, recovery_rate: float) -> float:
    """Percentage of loan value lost after recoveries"""
    return default_rate * (100 - recovery_rate) / 100
