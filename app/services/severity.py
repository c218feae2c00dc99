from typing import Optional

from app.core.config import settings
from app.schemas.leak import Severity

MS_PER_MINUTE = 60_000

# lower bound (minutes) of each band, highest first
SEVERE_MIN = 15
CRITICAL_MIN = 10
MODERATE_MIN = 5  # debounce: shorter leaks are never persisted

def elapsed_minutes(start_time_ms: int, now_ms: int) -> float:
    # a start time ahead of the clock counts as a leak that has not started yet
    return max(0.0, (now_ms - start_time_ms) / MS_PER_MINUTE)

def classify_severity(duration_min: float) -> Severity:
    if duration_min >= SEVERE_MIN:
        return Severity.SEVERE
    if duration_min >= CRITICAL_MIN:
        return Severity.CRITICAL
    if duration_min >= MODERATE_MIN:
        return Severity.MODERATE
    return Severity.NORMAL

def hourly_cost(
    lpm: float,
    annual_cost_per_lpm: Optional[float] = None,
    hours_per_year: Optional[int] = None,
) -> float:
    annual = settings.ANNUAL_COST_PER_LPM if annual_cost_per_lpm is None else annual_cost_per_lpm
    hours = hours_per_year or settings.HOURS_PER_YEAR
    return round(lpm * annual / hours, 2)
