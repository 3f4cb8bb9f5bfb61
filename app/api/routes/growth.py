from __future__ import annotations

from fastapi import APIRouter, HTTPException

from app.schemas.growth import GrowthInput, GrowthOutput, TrendRequest, TrendResponse
from app.services.growth_service import get_evaluator
from src.models.growth.evaluate import Measurement
from src.models.growth.trends import GrowthPoint, analyze_trend


router = APIRouter(prefix="/growth", tags=["growth"])


def _measurement(inp: GrowthInput) -> Measurement:
    values = {
        "weight_kg": inp.weight_kg,
        "height_cm": inp.height_cm,
        "head_circumference_cm": inp.head_circumference_cm,
    }
    if inp.age_months is not None:
        return Measurement(sex=inp.sex, age_months=inp.age_months, **values)
    if inp.birth_date is None:
        raise HTTPException(status_code=422, detail="Either age_months or birth_date is required")
    try:
        return Measurement.from_dates(inp.sex, inp.birth_date, inp.measured_on, **values)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/evaluate", response_model=GrowthOutput)
def evaluate_growth(inp: GrowthInput) -> GrowthOutput:
    result = get_evaluator().evaluate(_measurement(inp))
    return GrowthOutput(child_id=inp.child_id, **result.to_dict())


@router.post("/trend", response_model=TrendResponse)
def growth_trend(req: TrendRequest) -> TrendResponse:
    points = [GrowthPoint(age_months=p.age_months, value=p.value, z_score=p.z_score) for p in req.points]
    trend = analyze_trend(points, req.indicator)
    return TrendResponse(
        child_id=req.child_id,
        indicator=req.indicator,
        direction=trend.direction,
        velocity=trend.velocity,
        acceleration=trend.acceleration,
        consistency=trend.consistency,
        significance=trend.significance,
        risk_level=trend.risk_level,
        recommendation=trend.recommendation,
    )
