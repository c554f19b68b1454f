"""Pattern recognition stage: trends, cycles and cross-field correlations."""

from __future__ import annotations

import itertools
import statistics
import time
from typing import Any, Dict, List, Mapping, Sequence

from report_ai.domain.models import AgentContext, AgentResult, AgentType
from report_ai.utils.series import (
    autocorrelation,
    is_number,
    linear_trend,
    numeric_fields,
    numeric_series,
    pearson,
    trend_direction,
)

from .base import BaseAgent, sample, to_json

# Candidate periods: hourly samples per day, daily per week, monthly per year.
CYCLE_LAGS = {24: "daily", 7: "weekly", 12: "yearly"}
CYCLE_THRESHOLD = 0.5
CORRELATION_THRESHOLD = 0.5


def time_patterns(records: Sequence[Mapping[str, Any]], fields: Sequence[str]) -> List[Dict[str, Any]]:
    patterns = []
    for field in fields:
        values = numeric_series(records, field)
        if len(values) < 2:
            continue
        slope, intercept = linear_trend(values)
        patterns.append(
            {
                "field": field,
                "slope": round(slope, 6),
                "intercept": round(intercept, 6),
                "direction": trend_direction(slope, statistics.fmean(values)),
                "strength": round(abs(pearson(range(len(values)), values)), 3),
            }
        )
    return patterns


def cyclic_patterns(records: Sequence[Mapping[str, Any]], fields: Sequence[str]) -> List[Dict[str, Any]]:
    patterns = []
    for field in fields:
        values = numeric_series(records, field)
        for lag, label in CYCLE_LAGS.items():
            if len(values) < lag * 2:
                continue
            strength = autocorrelation(values, lag)
            if strength >= CYCLE_THRESHOLD:
                patterns.append(
                    {"field": field, "period": lag, "label": label, "strength": round(strength, 3)}
                )
    return patterns


def correlations(records: Sequence[Mapping[str, Any]], fields: Sequence[str]) -> List[Dict[str, Any]]:
    found = []
    for first, second in itertools.combinations(fields, 2):
        pairs = [
            (record[first], record[second])
            for record in records
            if is_number(record.get(first)) and is_number(record.get(second))
        ]
        if len(pairs) < 3:
            continue
        coefficient = pearson([float(a) for a, _ in pairs], [float(b) for _, b in pairs])
        if abs(coefficient) >= CORRELATION_THRESHOLD:
            found.append(
                {"field1": first, "field2": second, "correlation": round(coefficient, 3)}
            )
    return found


def main_trend(patterns: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    if not patterns:
        return {"main_trend": "stable", "trend_strength": 0.0, "field": None}
    strongest = max(patterns, key=lambda pattern: pattern["strength"])
    return {
        "main_trend": strongest["direction"],
        "trend_strength": strongest["strength"],
        "field": strongest["field"],
    }


class PatternRecognitionAgent(BaseAgent):
    agent_type = AgentType.PATTERN_RECOGNITION

    async def process(self, data: Any, context: AgentContext) -> AgentResult:
        started = time.perf_counter()
        self.progress(context, 0, "Starting pattern recognition")
        records = self.records_from(data, context)
        fields = numeric_fields(records)

        self.progress(context, 25, "Identifying time-series patterns")
        await self.call_ai(f"Analyse the time-series patterns in this data:\n{sample(records)}")
        trends_by_field = time_patterns(records, fields)

        self.progress(context, 50, "Analysing cyclic patterns")
        await self.call_ai(
            f"Identify cyclic patterns and seasonal characteristics in this data:\n{sample(records)}"
        )
        cycles = cyclic_patterns(records, fields)

        self.progress(context, 75, "Running correlation analysis")
        await self.call_ai(f"Analyse correlations between the data fields:\n{sample(records)}")
        related = correlations(records, fields)

        self.progress(context, 100, "Generating trend analysis")
        trend = main_trend(trends_by_field)
        trend["analysis"] = await self.call_ai(
            "Describe the overall trend and direction of change given these "
            f"measurements:\n{to_json(trends_by_field)[:1000]}"
        )

        return self.build_result(
            started=started,
            data={
                "time_patterns": trends_by_field,
                "cyclic_patterns": cycles,
                "correlations": related,
                "trends": trend,
            },
            insights=[
                f"Identified {len(trends_by_field)} time patterns",
                f"Found {len(cycles)} cyclic features",
                f"Detected {len(related)} correlated field pairs",
                f"Main trend: {trend['main_trend']}",
            ],
            confidence=0.85 if fields else 0.3,
            size_of=records,
            patterns_found=len(trends_by_field) + len(cycles),
        )
