"""Anomaly detection stage: outliers, sudden changes, pattern breaks and risk."""

from __future__ import annotations

import time
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from report_ai.domain.models import AgentContext, AgentResult, AgentStatus, AgentType
from report_ai.utils.series import numeric_fields, numeric_series, z_scores

from .base import BaseAgent, sample

HIGH_Z = 3.0
MEDIUM_Z = 2.0
SUDDEN_CHANGE_Z = 3.0
PATTERN_BREAK_Z = 3.0


def statistical_anomalies(
    records: Sequence[Mapping[str, Any]], fields: Iterable[str]
) -> List[Dict[str, Any]]:
    found = []
    for field in fields:
        values = numeric_series(records, field)
        for index, (value, score) in enumerate(zip(values, z_scores(values))):
            if abs(score) > HIGH_Z:
                severity = "high"
            elif abs(score) > MEDIUM_Z:
                severity = "medium"
            else:
                continue
            found.append(
                {
                    "type": "outlier",
                    "field": field,
                    "index": index,
                    "value": value,
                    "z_score": round(score, 3),
                    "severity": severity,
                    "description": f"{field} is {'above' if score > 0 else 'below'} the expected range",
                }
            )
    return found


def sudden_changes(
    records: Sequence[Mapping[str, Any]], fields: Iterable[str]
) -> List[Dict[str, Any]]:
    """Consecutive-point jumps whose size is an outlier among all jumps."""

    found = []
    for field in fields:
        values = numeric_series(records, field)
        deltas = [current - previous for previous, current in zip(values, values[1:])]
        for offset, (delta, score) in enumerate(zip(deltas, z_scores(deltas))):
            if abs(score) <= SUDDEN_CHANGE_Z:
                continue
            found.append(
                {
                    "type": "sudden_change",
                    "field": field,
                    "index": offset + 1,
                    "magnitude": round(delta, 4),
                    "severity": "high" if abs(score) > HIGH_Z + 1 else "medium",
                    "description": f"{field} {'rose' if delta > 0 else 'dropped'} sharply",
                }
            )
    return found


def pattern_breaks(
    records: Sequence[Mapping[str, Any]], cycles: Iterable[Mapping[str, Any]]
) -> List[Dict[str, Any]]:
    """Points deviating from the value one known cycle earlier."""

    found = []
    for cycle in cycles:
        field, period = cycle.get("field"), int(cycle.get("period", 0))
        values = numeric_series(records, field) if field else []
        if period <= 0 or len(values) <= period:
            continue
        deviations = [values[index] - values[index - period] for index in range(period, len(values))]
        for offset, score in enumerate(z_scores(deviations)):
            if abs(score) > PATTERN_BREAK_Z:
                found.append(
                    {
                        "type": "pattern_break",
                        "field": field,
                        "index": offset + period,
                        "pattern": cycle.get("label", f"{period}-step cycle"),
                        "deviation": round(score, 3),
                        "severity": "low",
                        "description": f"{field} broke its {period}-step cycle",
                    }
                )
    return found


def assess_risk(anomalies: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    high = sum(1 for anomaly in anomalies if anomaly["severity"] == "high")
    if high:
        overall = "high"
    elif len(anomalies) > 3:
        overall = "medium"
    else:
        overall = "low"

    recommendations = []
    if high:
        recommendations.append("Inspect high-risk anomalies immediately")
    if len(anomalies) > 5:
        recommendations.append("Increase monitoring frequency")
    recommendations.append("Review anomaly detection thresholds regularly")
    return {
        "overall_risk": overall,
        "risk_score": min(len(anomalies) * 10 + high * 20, 100),
        "recommendations": recommendations,
    }


class AnomalyDetectionAgent(BaseAgent):
    agent_type = AgentType.ANOMALY_DETECTION

    async def process(self, data: Any, context: AgentContext) -> AgentResult:
        started = time.perf_counter()
        self.progress(context, 0, "Starting anomaly detection")
        records = self.records_from(data, context)
        fields = numeric_fields(records)

        self.progress(context, 25, "Running statistical outlier detection")
        await self.call_ai(f"Detect statistical outliers in this data:\n{sample(records)}")
        statistical = statistical_anomalies(records, fields)

        self.progress(context, 50, "Detecting time-series anomalies")
        await self.call_ai(f"Detect anomalous changes in this time series:\n{sample(records)}")
        time_series = sudden_changes(records, fields)

        self.progress(context, 75, "Identifying pattern anomalies")
        await self.call_ai(
            f"Identify pattern anomalies and behavioural deviations:\n{sample(records)}"
        )
        patterns = context.find_result(AgentType.PATTERN_RECOGNITION)
        cycles = (
            patterns.data.get("cyclic_patterns", [])
            if patterns is not None and isinstance(patterns.data, dict)
            else []
        )
        pattern = pattern_breaks(records, cycles)

        self.progress(context, 100, "Assessing anomaly risk")
        anomalies = [*statistical, *time_series, *pattern]
        risk = assess_risk(anomalies)
        risk["analysis"] = await self.call_ai(
            "Assess the overall risk and impact of the detected anomalies.\n"
            f"Count: {len(anomalies)}\n"
            f"Types: {', '.join(anomaly['type'] for anomaly in anomalies) or 'none'}"
        )

        by_severity = {level: 0 for level in ("high", "medium", "low")}
        for anomaly in anomalies:
            by_severity[anomaly["severity"]] += 1

        return self.build_result(
            started=started,
            status=AgentStatus.WARNING if anomalies else AgentStatus.SUCCESS,
            data={
                "statistical_anomalies": statistical,
                "time_series_anomalies": time_series,
                "pattern_anomalies": pattern,
                "risk_assessment": risk,
            },
            insights=[
                f"Detected {len(anomalies)} anomalies",
                f"High-risk anomalies: {by_severity['high']}",
                f"Medium-risk anomalies: {by_severity['medium']}",
                f"Overall risk level: {risk['overall_risk']}",
            ],
            confidence=0.9,
            size_of=records,
            anomalies_count=len(anomalies),
        )
