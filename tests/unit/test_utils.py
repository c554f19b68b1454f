import pytest

from report_ai.utils.retry import async_retry, backoff_delay
from report_ai.utils.series import (
    autocorrelation,
    linear_trend,
    mean_absolute_percentage_error,
    numeric_fields,
    numeric_series,
    pearson,
    trend_direction,
    z_scores,
)


def test_backoff_delay_grows_exponentially():
    assert backoff_delay(1000, 2.0, 0) == 1.0
    assert backoff_delay(1000, 2.0, 1) == 2.0
    assert backoff_delay(250, 3.0, 2) == pytest.approx(2.25)


@pytest.mark.asyncio
async def test_async_retry_retries_then_succeeds():
    delays = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    attempts = {"count": 0}

    @async_retry(attempts=3, delay=0.1, backoff=2.0, exceptions=(ValueError,), sleep=fake_sleep)
    async def flaky() -> str:
        attempts["count"] += 1
        if attempts["count"] < 3:
            raise ValueError("fail")
        return "ok"

    assert await flaky() == "ok"
    assert attempts["count"] == 3
    assert delays == pytest.approx([0.1, 0.2])


@pytest.mark.asyncio
async def test_async_retry_reraises_last_error_and_ignores_other_types():
    async def fake_sleep(delay: float) -> None:
        return None

    @async_retry(attempts=2, exceptions=(ValueError,), sleep=fake_sleep)
    async def always_fails() -> None:
        raise ValueError("still failing")

    @async_retry(attempts=5, exceptions=(ValueError,), sleep=fake_sleep)
    async def wrong_type() -> None:
        raise KeyError("no retry")

    with pytest.raises(ValueError):
        await always_fails()
    with pytest.raises(KeyError):
        await wrong_type()


def test_numeric_fields_use_majority_rule():
    records = [
        {"load": 1, "name": "a", "mixed": 1},
        {"load": 2.5, "name": "b", "mixed": "x"},
        {"load": None, "name": "c", "mixed": "y", "flag": True},
    ]
    assert numeric_fields(records) == ["load"]
    assert numeric_series(records, "load") == [1.0, 2.5]


def test_linear_trend_and_direction():
    slope, intercept = linear_trend([1, 3, 5, 7])
    assert slope == pytest.approx(2.0)
    assert intercept == pytest.approx(1.0)
    assert linear_trend([4]) == (0.0, 4.0)
    assert trend_direction(2.0, 4.0) == "increasing"
    assert trend_direction(-2.0, 4.0) == "decreasing"
    assert trend_direction(0.001, 100.0) == "stable"


def test_autocorrelation_detects_period():
    values = [1, 5, 1, 5, 1, 5, 1, 5]
    assert autocorrelation(values, 2) > 0.5
    assert autocorrelation(values, 1) < 0
    assert autocorrelation([3, 3, 3], 1) == 0.0


def test_pearson_handles_degenerate_input():
    assert pearson([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
    assert pearson([1, 2], [2, 4]) == 0.0
    assert pearson([1, 2, 3], [5, 5, 5]) == 0.0


def test_z_scores_and_mape():
    assert z_scores([2, 2, 2]) == [0.0, 0.0, 0.0]
    scores = z_scores([1, 2, 3])
    assert scores[1] == pytest.approx(0.0)
    assert scores[0] == pytest.approx(-scores[2])
    assert mean_absolute_percentage_error([100, 0, 200], [90, 5, 220]) == pytest.approx(0.1)
