"""
Tests for growth trend, velocity and faltering analysis.
"""

import pytest

from src.models.growth.trends import (
    GrowthPoint,
    analyze_trend,
    detect_faltering,
    expected_velocity,
    growth_velocity,
    linear_fit,
)


def _series(z0, slope, ages, value0=7.0, gain=0.4):
    return [GrowthPoint(age_months=a, value=value0 + gain * (a - ages[0]), z_score=z0 + slope * (a - ages[0])) for a in ages]


class TestLinearFit:
    def test_perfect_line(self):
        slope, intercept, r2 = linear_fit([0, 1, 2, 3], [1.0, 3.0, 5.0, 7.0])
        assert slope == pytest.approx(2.0)
        assert intercept == pytest.approx(1.0)
        assert r2 == pytest.approx(1.0)

    def test_degenerate_inputs(self):
        assert linear_fit([1.0], [2.0]) == (0.0, 0.0, 0.0)
        assert linear_fit([3.0, 3.0], [1.0, 2.0]) == (0.0, 0.0, 0.0)


class TestAnalyzeTrend:
    def test_too_few_points(self):
        t = analyze_trend([GrowthPoint(6, 7.9, 0.0)])
        assert t.direction == "stable"
        assert t.velocity == 0.0
        assert "More measurements" in t.recommendation

    def test_consistent_decline(self):
        t = analyze_trend(_series(0.0, -0.2, [0, 1, 2, 3, 4, 5, 6]), "weight_for_age")
        assert t.direction == "declining"
        assert t.velocity == pytest.approx(-0.2)
        assert t.acceleration == pytest.approx(0.0, abs=1e-9)
        assert t.consistency == pytest.approx(1.0)
        assert t.significance == "high"
        assert t.risk_level == "medium"

    def test_improving(self):
        t = analyze_trend(_series(-1.5, 0.15, [6, 7, 8, 9]), "height_for_age")
        assert t.direction == "improving"
        assert t.risk_level == "low"

    def test_flat_series_is_stable(self):
        t = analyze_trend(_series(0.5, 0.0, [0, 2, 4, 6]))
        assert t.direction == "stable"
        assert t.consistency == 0.0
        assert t.significance == "low"
        assert "stable within the normal range" in t.recommendation

    def test_order_does_not_matter(self):
        pts = _series(0.0, -0.2, [0, 1, 2, 3, 4])
        assert analyze_trend(list(reversed(pts))) == analyze_trend(pts)

    def test_high_risk_when_latest_outside_two_sd(self):
        t = analyze_trend(_series(-2.1, -0.01, [0, 1, 2]))
        assert t.risk_level == "high"

    def test_fluctuating(self):
        pts = [
            GrowthPoint(0, 7.0, 0.0),
            GrowthPoint(1, 7.2, 0.0),
            GrowthPoint(2, 7.4, 0.0),
            GrowthPoint(3, 8.0, 1.0),
            GrowthPoint(4, 8.5, 2.0),
        ]
        t = analyze_trend(pts)
        assert t.direction == "fluctuating"


class TestGrowthVelocity:
    def test_expected_bands(self):
        assert expected_velocity("weight", 2) == 0.8
        assert expected_velocity("weight", 6) == 0.4
        assert expected_velocity("height", 30) == 0.8
        assert expected_velocity("head_circumference", 11.9) == 0.5

    def test_normal(self):
        v = growth_velocity([GrowthPoint(6, 7.9, 0.0), GrowthPoint(9, 9.1, 0.0)], "weight")
        assert v.velocity == pytest.approx(0.4)
        assert v.expected_velocity == 0.4
        assert v.status == "normal"

    def test_slow(self):
        v = growth_velocity([GrowthPoint(6, 7.9, 0.0), GrowthPoint(9, 8.2, -0.8)], "weight")
        assert v.status == "slow"
        assert v.percent_of_expected == pytest.approx(25.0)

    def test_fast(self):
        v = growth_velocity([GrowthPoint(12, 75.0, 0.0), GrowthPoint(15, 81.0, 1.0)], "height")
        assert v.status == "fast"

    def test_single_point(self):
        v = growth_velocity([GrowthPoint(6, 7.9, 0.0)], "weight")
        assert v.velocity == 0.0
        assert v.status == "normal"

    def test_unknown_measure(self):
        with pytest.raises(ValueError):
            growth_velocity([], "arm_span")


class TestFaltering:
    def test_no_faltering(self):
        r = detect_faltering(_series(0.2, 0.0, [0, 1, 2]), _series(0.1, 0.0, [0, 1, 2]))
        assert r.has_faltering is False
        assert r.severity == "none"
        assert r.recommendations == []

    def test_mild(self):
        r = detect_faltering(_series(0.0, -0.2, [0, 1, 2, 3, 4]), _series(0.0, 0.0, [0, 1, 2, 3, 4]))
        assert r.has_faltering is True
        assert r.severity == "mild"
        assert r.indicators == ["Consistent decline in weight-for-age"]

    def test_moderate(self):
        r = detect_faltering(_series(-1.0, -0.3, [0, 1, 2, 3, 4]), [])
        assert r.severity == "moderate"
        assert len(r.indicators) == 2

    def test_severe(self):
        r = detect_faltering(_series(-2.0, -0.4, [0, 1, 2, 3]), _series(-1.0, 0.0, [0, 1, 2, 3]))
        assert r.severity == "severe"
        assert "Weight-for-age below -2 SD" in r.indicators
        assert any("paediatrician" in rec for rec in r.recommendations)
