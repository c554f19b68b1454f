"""Small numeric helpers over record lists used by the pipeline stages."""

from __future__ import annotations

import statistics
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def numeric_fields(records: Sequence[Mapping[str, Any]]) -> List[str]:
    """Fields whose non-null values are numeric in the majority of records."""

    seen: Dict[str, int] = {}
    numeric: Dict[str, int] = {}
    for record in records:
        for key, value in record.items():
            if value is None:
                continue
            seen[key] = seen.get(key, 0) + 1
            if is_number(value):
                numeric[key] = numeric.get(key, 0) + 1
    return [key for key, total in seen.items() if numeric.get(key, 0) * 2 > total]


def numeric_series(records: Iterable[Mapping[str, Any]], field: str) -> List[float]:
    return [float(record[field]) for record in records if is_number(record.get(field))]


def linear_trend(values: Sequence[float]) -> Tuple[float, float]:
    """Least-squares ``(slope, intercept)`` against the sample index."""

    if len(values) < 2:
        return 0.0, float(values[0]) if values else 0.0
    result = statistics.linear_regression(range(len(values)), values)
    return result.slope, result.intercept


def trend_direction(slope: float, scale: float, *, tolerance: float = 0.01) -> str:
    if scale and abs(slope) / abs(scale) < tolerance:
        return "stable"
    if slope > 0:
        return "increasing"
    if slope < 0:
        return "decreasing"
    return "stable"


def autocorrelation(values: Sequence[float], lag: int) -> float:
    if lag <= 0 or lag >= len(values):
        return 0.0
    mean = statistics.fmean(values)
    denominator = sum((value - mean) ** 2 for value in values)
    if denominator == 0:
        return 0.0
    numerator = sum(
        (values[index] - mean) * (values[index + lag] - mean)
        for index in range(len(values) - lag)
    )
    return numerator / denominator


def pearson(xs: Sequence[float], ys: Sequence[float]) -> float:
    if len(xs) != len(ys) or len(xs) < 3:
        return 0.0
    if len(set(xs)) < 2 or len(set(ys)) < 2:
        return 0.0
    return statistics.correlation(xs, ys)


def z_scores(values: Sequence[float]) -> List[float]:
    if len(values) < 2:
        return [0.0 for _ in values]
    mean = statistics.fmean(values)
    deviation = statistics.pstdev(values)
    if deviation == 0:
        return [0.0 for _ in values]
    return [(value - mean) / deviation for value in values]


def mean_absolute_percentage_error(
    actual: Sequence[float], predicted: Sequence[float]
) -> float:
    """MAPE as a fraction; points whose actual value is zero are skipped."""

    errors = [
        abs((observed - estimate) / observed)
        for observed, estimate in zip(actual, predicted)
        if observed != 0
    ]
    if not errors:
        return 0.0
    return statistics.fmean(errors)


def residual_stdev(values: Sequence[float], slope: float, intercept: float) -> float:
    residuals = [value - (intercept + slope * index) for index, value in enumerate(values)]
    if len(residuals) < 2:
        return 0.0
    return statistics.stdev(residuals)
