"""
Growth trend analysis over a child's series of evaluated measurements.

Trends are fitted on Z-scores rather than raw values so that normal growth
shows up as a flat line.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Literal, Sequence, Tuple, Union

import numpy as np

from .who_lms import Indicator

Direction = Literal["improving", "stable", "declining", "fluctuating"]
Level = Literal["low", "medium", "high"]
Measure = Literal["weight", "height", "head_circumference"]

STABLE_VELOCITY = 0.05  # Z per month
FLUCTUATING_ACCELERATION = 0.1

# measure -> ((age upper bound in months, expected gain per month), ...)
EXPECTED_VELOCITY = {
    "weight": ((3, 0.8), (6, 0.6), (12, 0.4), (24, 0.25), (float("inf"), 0.15)),
    "height": ((3, 3.5), (6, 2.0), (12, 1.5), (24, 1.0), (float("inf"), 0.8)),
    "head_circumference": ((3, 2.0), (6, 1.0), (12, 0.5), (24, 0.25), (float("inf"), 0.1)),
}

_UNITS = {"weight": "kg/month", "height": "cm/month", "head_circumference": "cm/month"}

_INDICATOR_NAMES = {
    Indicator.WEIGHT_FOR_AGE: "weight",
    Indicator.HEIGHT_FOR_AGE: "height",
    Indicator.WEIGHT_FOR_HEIGHT: "weight-for-height",
    Indicator.HEAD_CIRCUMFERENCE_FOR_AGE: "head circumference",
}


@dataclass(frozen=True)
class GrowthPoint:
    age_months: float
    value: float
    z_score: float


@dataclass(frozen=True)
class TrendAnalysis:
    direction: Direction
    velocity: float
    acceleration: float
    consistency: float
    significance: Level
    risk_level: Level
    recommendation: str


@dataclass(frozen=True)
class GrowthVelocity:
    measure: str
    velocity: float
    expected_velocity: float
    percent_of_expected: float
    status: Literal["slow", "normal", "fast"]
    message: str


@dataclass(frozen=True)
class FalteringResult:
    has_faltering: bool
    severity: Literal["none", "mild", "moderate", "severe"]
    indicators: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


def _sorted(points: Iterable[GrowthPoint]) -> List[GrowthPoint]:
    return sorted(points, key=lambda p: p.age_months)


def linear_fit(x: Sequence[float], y: Sequence[float]) -> Tuple[float, float, float]:
    """Least squares line through (x, y). Returns (slope, intercept, r_squared)."""
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    if len(xs) < 2 or np.ptp(xs) == 0:
        return 0.0, 0.0, 0.0

    slope, intercept = np.polyfit(xs, ys, 1)
    predicted = slope * xs + intercept
    ss_tot = float(np.sum((ys - ys.mean()) ** 2))
    ss_res = float(np.sum((ys - predicted) ** 2))
    r2 = 0.0 if ss_tot == 0 else 1.0 - ss_res / ss_tot
    return float(slope), float(intercept), r2


def _recommendation(name: str, direction: Direction, latest_z: float, risk: Level, significance: Level) -> str:
    if risk == "high":
        if direction == "declining":
            return f"{name.capitalize()} shows a worrying decline. Consult a doctor promptly for evaluation."
        return f"{name.capitalize()} is outside the normal range. A medical evaluation is needed."
    if direction == "declining" and significance == "high":
        return f"{name.capitalize()} is declining consistently. Review nutrition and consult a health worker."
    if direction == "improving":
        return f"{name.capitalize()} is improving. Keep up the current feeding and care routine."
    if direction == "fluctuating":
        return f"{name.capitalize()} is fluctuating. Check measurement consistency and care routine."
    if direction == "stable" and -1 <= latest_z <= 1:
        return f"{name.capitalize()} is stable within the normal range."
    return f"Keep monitoring {name} regularly."


def analyze_trend(
    points: Iterable[GrowthPoint],
    indicator: Union[Indicator, str] = Indicator.WEIGHT_FOR_AGE,
) -> TrendAnalysis:
    name = _INDICATOR_NAMES[Indicator(indicator)]
    pts = _sorted(points)
    if len(pts) < 2:
        return TrendAnalysis(
            direction="stable",
            velocity=0.0,
            acceleration=0.0,
            consistency=0.0,
            significance="low",
            risk_level="low",
            recommendation="More measurements are needed for trend analysis.",
        )

    ages = [p.age_months for p in pts]
    zs = [p.z_score for p in pts]
    velocity, _, r2 = linear_fit(ages, zs)
    consistency = max(0.0, r2)

    acceleration = 0.0
    if len(pts) >= 3:
        mid = len(pts) // 2
        first, _, _ = linear_fit(ages[: mid + 1], zs[: mid + 1])
        second, _, _ = linear_fit(ages[mid:], zs[mid:])
        acceleration = second - first

    if abs(velocity) < STABLE_VELOCITY:
        direction: Direction = "stable"
    elif abs(acceleration) > FLUCTUATING_ACCELERATION:
        direction = "fluctuating"
    elif velocity > 0:
        direction = "improving"
    else:
        direction = "declining"

    if consistency > 0.7 and abs(velocity) > 0.1:
        significance: Level = "high"
    elif consistency > 0.4 and abs(velocity) > 0.05:
        significance = "medium"
    else:
        significance = "low"

    latest_z = zs[-1]
    if abs(latest_z) > 2:
        risk: Level = "high"
    elif abs(latest_z) > 1 and direction == "declining":
        risk = "medium"
    else:
        risk = "low"

    return TrendAnalysis(
        direction=direction,
        velocity=velocity,
        acceleration=acceleration,
        consistency=consistency,
        significance=significance,
        risk_level=risk,
        recommendation=_recommendation(name, direction, latest_z, risk, significance),
    )


def expected_velocity(measure: Measure, age_months: float) -> float:
    for upper, v in EXPECTED_VELOCITY[measure]:
        if age_months < upper:
            return v
    return EXPECTED_VELOCITY[measure][-1][1]


def growth_velocity(points: Iterable[GrowthPoint], measure: Measure) -> GrowthVelocity:
    """Raw-value gain per month between the first and last point vs the expected gain for the age."""
    if measure not in EXPECTED_VELOCITY:
        raise ValueError(f"Unknown measure {measure!r}")
    pts = _sorted(points)
    if len(pts) < 2:
        return GrowthVelocity(
            measure=measure,
            velocity=0.0,
            expected_velocity=0.0,
            percent_of_expected=0.0,
            status="normal",
            message="At least 2 measurements are needed to compute growth velocity.",
        )

    first, last = pts[0], pts[-1]
    months = last.age_months - first.age_months
    velocity = (last.value - first.value) / months if months > 0 else 0.0
    expected = expected_velocity(measure, last.age_months)
    pct = velocity / expected * 100.0 if expected > 0 else 0.0

    if pct < 70:
        status = "slow"
    elif pct > 130:
        status = "fast"
    else:
        status = "normal"

    label = measure.replace("_", " ")
    text = f"{velocity:.2f} {_UNITS[measure]}, {pct:.0f}% of expected"
    if status == "slow":
        message = f"{label.capitalize()} velocity is slow ({text}). Review nutritional intake."
    elif status == "fast":
        message = f"{label.capitalize()} velocity is fast ({text}). Keep monitoring."
    else:
        message = f"{label.capitalize()} velocity is normal ({text})."

    return GrowthVelocity(
        measure=measure,
        velocity=velocity,
        expected_velocity=expected,
        percent_of_expected=pct,
        status=status,
        message=message,
    )


def detect_faltering(
    weight_points: Iterable[GrowthPoint],
    height_points: Iterable[GrowthPoint],
) -> FalteringResult:
    """Growth faltering from weight-for-age and height-for-age series."""
    weights = _sorted(weight_points)
    heights = _sorted(height_points)
    indicators: List[str] = []

    weight_trend = analyze_trend(weights, Indicator.WEIGHT_FOR_AGE)
    if weight_trend.direction == "declining" and weight_trend.significance == "high":
        indicators.append("Consistent decline in weight-for-age")

    height_trend = analyze_trend(heights, Indicator.HEIGHT_FOR_AGE)
    if height_trend.direction == "declining" and height_trend.significance == "high":
        indicators.append("Consistent decline in height-for-age")

    if weights and weights[-1].z_score < -2:
        indicators.append("Weight-for-age below -2 SD")
    if heights and heights[-1].z_score < -2:
        indicators.append("Height-for-age below -2 SD")

    if not indicators:
        return FalteringResult(has_faltering=False, severity="none")

    if any(p.z_score < -3 for p in weights + heights):
        severity = "severe"
        recommendations = [
            "Consult a paediatrician promptly",
            "A full medical evaluation is needed",
        ]
    elif len(indicators) >= 2:
        severity = "moderate"
        recommendations = [
            "See a doctor soon",
            "Review feeding patterns and nutritional intake",
        ]
    else:
        severity = "mild"
        recommendations = [
            "Monitor growth more closely",
            "Pay attention to nutritional intake and feeding patterns",
        ]
    recommendations += [
        "Measure growth more frequently",
        "Keep a daily food diary",
    ]

    return FalteringResult(
        has_faltering=True,
        severity=severity,
        indicators=indicators,
        recommendations=recommendations,
    )
