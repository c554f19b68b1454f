"""Predictive modelling stage: linear-trend model with holdout validation and forecast."""

from __future__ import annotations

import time
from typing import Any, Dict, List, Sequence

from report_ai.domain.exceptions import AgentError
from report_ai.domain.models import AgentContext, AgentResult, AgentType
from report_ai.utils.series import (
    linear_trend,
    mean_absolute_percentage_error,
    numeric_fields,
    numeric_series,
    residual_stdev,
    trend_direction,
)

from .base import BaseAgent, sample, to_json

DEFAULT_HORIZON = 30
HOLDOUT_FRACTION = 0.2
MIN_POINTS = 3
Z_95 = 1.96


def split_holdout(values: Sequence[float]) -> tuple[List[float], List[float]]:
    holdout = max(1, int(len(values) * HOLDOUT_FRACTION))
    return list(values[:-holdout]), list(values[-holdout:])


def validate_linear_model(values: Sequence[float]) -> Dict[str, float]:
    """Fit on the leading points and score the trailing holdout."""

    train, test = split_holdout(values)
    slope, intercept = linear_trend(train)
    predicted = [intercept + slope * (len(train) + offset) for offset in range(len(test))]
    mape = mean_absolute_percentage_error(test, predicted)
    mse = sum((actual - guess) ** 2 for actual, guess in zip(test, predicted)) / len(test)
    accuracy = max(0.0, 100.0 * (1.0 - mape))
    # Shrink confidence for short histories.
    confidence = accuracy * len(values) / (len(values) + 10)
    return {
        "accuracy": round(accuracy, 2),
        "confidence": round(confidence, 2),
        "mape": round(mape, 6),
        "mse": round(mse, 6),
        "train_size": len(train),
        "test_size": len(test),
    }


def forecast(values: Sequence[float], horizon: int) -> Dict[str, Any]:
    slope, intercept = linear_trend(values)
    spread = Z_95 * residual_stdev(values, slope, intercept)
    start = len(values)
    predicted = [round(intercept + slope * (start + step), 4) for step in range(horizon)]
    return {
        "trend": trend_direction(slope, sum(values) / len(values)),
        "values": predicted,
        "confidence_intervals": [
            {"lower": round(value - spread, 4), "upper": round(value + spread, 4)}
            for value in predicted
        ],
    }


class PredictiveModelingAgent(BaseAgent):
    agent_type = AgentType.PREDICTIVE_MODELING

    async def process(self, data: Any, context: AgentContext) -> AgentResult:
        started = time.perf_counter()
        self.progress(context, 0, "Starting predictive modelling")
        records = self.records_from(data, context)
        target = self._target_field(records, context)
        values = numeric_series(records, target) if target else []
        if len(values) < MIN_POINTS:
            raise AgentError(
                "Not enough numeric data to build a forecast",
                context={"target": target, "points": len(values)},
            )

        self.progress(context, 20, "Selecting forecasting model")
        reasoning = await self.call_ai(
            "Choose the most suitable forecasting model for this data.\n"
            f"Analysis type: {context.analysis_type}\nSample: {sample(records, 500)}"
        )
        model = {"type": "linear_trend", "target": target, "reasoning": reasoning}

        self.progress(context, 40, "Engineering features")
        features = {
            "features": ["index", "trend"],
            "sample_count": len(values),
            "analysis": await self.call_ai(
                f"Design features for forecasting '{target}':\n{sample(values)}"
            ),
        }

        self.progress(context, 60, "Training model")
        slope, intercept = linear_trend(values)
        model["parameters"] = {"slope": round(slope, 6), "intercept": round(intercept, 6)}

        self.progress(context, 80, "Validating model performance")
        validation = validate_linear_model(values)
        validation_notes = await self.call_ai(
            "Evaluate the performance and reliability of a linear trend model with "
            f"these holdout metrics:\n{to_json(validation)}"
        )

        self.progress(context, 100, "Generating predictions")
        horizon = int(context.parameters.get("forecast_horizon", DEFAULT_HORIZON))
        predictions = forecast(values, horizon)
        predictions["analysis"] = await self.call_ai(
            f"Interpret this {horizon}-step forecast for '{target}':\n"
            f"{to_json(predictions['values'])[:1000]}"
        )

        return self.build_result(
            started=started,
            data={
                "model": model,
                "features": features,
                "validation": {**validation, "evaluation": validation_notes},
                "predictions": predictions,
            },
            insights=[
                f"Selected model: {model['type']} on '{target}'",
                f"Model accuracy: {validation['accuracy']}%",
                f"Forecast confidence: {validation['confidence']}%",
                f"Forecast trend: {predictions['trend']}",
            ],
            confidence=validation["confidence"] / 100,
            size_of=records,
            model_type=model["type"],
        )

    @staticmethod
    def _target_field(records, context: AgentContext):
        requested = context.parameters.get("target_field")
        if requested:
            return requested
        fields = numeric_fields(records)
        return fields[0] if fields else None
