from datetime import date
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class GrowthInput(BaseModel):
    child_id: Optional[str] = Field(None, description="Unique child identifier")
    sex: str = Field(..., description="MALE or FEMALE (M/F accepted)")
    age_months: Optional[float] = Field(None, description="Age in months; derived from birth_date when absent")
    birth_date: Optional[date] = None
    measured_on: Optional[date] = Field(None, description="Defaults to today (UTC)")
    # Not constrained here: bad values come back as per-indicator 'invalid' outcomes
    weight_kg: Optional[float] = None
    height_cm: Optional[float] = None
    head_circumference_cm: Optional[float] = None


class IndicatorOut(BaseModel):
    indicator: str
    outcome: Literal["ok", "out_of_range", "invalid", "not_measured"]
    z_score: Optional[float] = None
    status: Optional[Literal["normal", "warning", "alert"]] = None
    percentile: Optional[float] = None
    classification: Optional[str] = None
    message: Optional[str] = None
    value: Optional[Union[float, str]] = None
    x: Optional[float] = None
    L: Optional[float] = None
    M: Optional[float] = None
    S: Optional[float] = None
    table: Optional[str] = None
    lower: Optional[float] = None
    upper: Optional[float] = None
    reason: Optional[str] = None


class GrowthOutput(BaseModel):
    child_id: Optional[str] = None
    sex: str
    age_months: Optional[float] = None
    bmi: Optional[float] = None
    indicators: Dict[str, IndicatorOut]


class TrendPointIn(BaseModel):
    age_months: float
    value: float
    z_score: float


class TrendRequest(BaseModel):
    child_id: Optional[str] = None
    indicator: Literal[
        "weight_for_age",
        "height_for_age",
        "weight_for_height",
        "head_circumference_for_age",
    ] = "weight_for_age"
    points: List[TrendPointIn] = Field(default_factory=list)


class TrendResponse(BaseModel):
    child_id: Optional[str] = None
    indicator: str
    direction: Literal["improving", "stable", "declining", "fluctuating"]
    velocity: float
    acceleration: float
    consistency: float
    significance: Literal["low", "medium", "high"]
    risk_level: Literal["low", "medium", "high"]
    recommendation: str
