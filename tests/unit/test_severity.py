import pytest

from app.schemas.leak import Severity
from app.services.severity import classify_severity, elapsed_minutes, hourly_cost
from tests.conftest import NOW_MS, minutes_ago


@pytest.mark.parametrize(
    "minutes, expected",
    [
        (0, Severity.NORMAL),
        (4.99, Severity.NORMAL),
        (5, Severity.MODERATE),
        (9.99, Severity.MODERATE),
        (10, Severity.CRITICAL),
        (14.99, Severity.CRITICAL),
        (15, Severity.SEVERE),
        (240, Severity.SEVERE),
    ],
)
def test_classify_severity_bands_are_lower_bound_inclusive(minutes, expected):
    assert classify_severity(minutes) is expected


def test_elapsed_minutes_from_epoch_ms():
    assert elapsed_minutes(minutes_ago(6), NOW_MS) == pytest.approx(6.0)


def test_elapsed_minutes_never_negative_for_future_start():
    assert elapsed_minutes(NOW_MS + 120_000, NOW_MS) == 0.0


def test_hourly_cost_rounds_to_cents():
    assert hourly_cost(10) == 0.40
    assert hourly_cost(20) == 0.80
    assert hourly_cost(0) == 0.0


def test_hourly_cost_accepts_overrides():
    assert hourly_cost(10, annual_cost_per_lpm=876, hours_per_year=8760) == 1.0
