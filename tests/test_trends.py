import pytest

from safetyanalytics.app.services.trends import (
    analyze_trend,
    classify_direction,
    monthly_counts,
    percent_change,
    period_trend,
    recent_monthly_series,
    window_counts,
)


def test_percent_change_zero_previous():
    assert percent_change(5, 0) == 0
    assert percent_change(0, 0) == 0
    assert percent_change(6, 4) == 50


def test_window_counts(dated_frame):
    df = dated_frame([
        "2024-03-31", "2024-03-15", "2024-03-02",  # current 30 days
        "2024-03-01", "2024-02-10",                # previous 30 days
        "2024-01-01",
        None,
    ])
    result = window_counts(df, 30, as_of="2024-03-31")
    assert result["current"] == 3
    assert result["previous"] == 2
    assert result["change_percent"] == 50
    assert result["window_end"] == "2024-03-31"


def test_window_counts_defaults_to_latest_date(dated_frame):
    df = dated_frame(["2024-03-31", "2024-03-15", "2024-01-20"])
    assert window_counts(df, 30)["window_end"] == "2024-03-31"
    assert period_trend(df, 30) == 0  # nothing in the previous window


def test_window_counts_empty():
    result = window_counts(None, 30, as_of="2024-01-01")
    assert result["current"] == 0
    assert result["change_percent"] == 0


@pytest.mark.parametrize("change, expected", [
    (-6, "improving"),
    (6, "worsening"),
    (5, "stable"),
    (-5, "stable"),
    (0, "stable"),
])
def test_classify_direction(change, expected):
    assert classify_direction(change, 5) == expected


def test_analyze_trend_falling_counts_improve():
    result = analyze_trend([10, 8, 6, 4, 2])
    assert result["direction"] == "improving"
    assert result["prediction"] == pytest.approx(0, abs=1e-6)
    assert result["change_percent"] == pytest.approx(-100)
    assert result["confidence"] == pytest.approx(100)
    assert "Positive safety trend" in result["factors"]


def test_analyze_trend_rising_counts_worsen():
    result = analyze_trend([2, 4, 6, 8, 10], metric="near misses")
    assert result["metric"] == "near misses"
    assert result["direction"] == "worsening"
    assert result["prediction"] == pytest.approx(12)
    assert result["change_percent"] == pytest.approx(100)


def test_analyze_trend_flat_and_short_series():
    flat = analyze_trend([5, 5, 5, 5])
    assert flat["direction"] == "stable"
    assert flat["confidence"] == 0
    assert flat["change_percent"] == pytest.approx(0, abs=1e-6)

    single = analyze_trend([7])
    assert single == {
        "metric": "incidents",
        "direction": "stable",
        "change_percent": 0.0,
        "prediction": 7.0,
        "confidence": 0.0,
        "slope": 0.0,
        "factors": [],
    }
    assert analyze_trend([])["prediction"] == 0


def test_analyze_trend_reversal_factor():
    result = analyze_trend([3, 6, 2, 5])
    assert "Trend reversal detected" in result["factors"]


def test_monthly_counts_excludes_undated(dated_frame):
    df = dated_frame(["2024-02-03", "2024-01-15", "2024-02-20", None, "bad"])
    assert monthly_counts(df) == [
        {"month": "2024-01", "count": 1},
        {"month": "2024-02", "count": 2},
    ]


def test_recent_monthly_series_zero_fills(dated_frame):
    df = dated_frame(["2024-03-01", "2024-03-09", "2024-01-31", "2023-12-31"])
    assert recent_monthly_series(df, 3, as_of="2024-03-15") == [1, 0, 2]
    assert recent_monthly_series(None, 4) == [0, 0, 0, 0]
