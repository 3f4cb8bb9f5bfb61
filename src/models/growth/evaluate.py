"""
Growth evaluation: lookup -> LMS transform -> status, per indicator.

Every call returns the same four indicators. Each one carries its own
tagged outcome so a bad or missing input for one indicator never hides
the others:

  ok            ZScoreResult
  out_of_range  OutOfRange (age or height outside the WHO table)
  invalid       InvalidInput (non-positive/implausible value, unknown sex)
  not_measured  NotMeasured (the field was not supplied)
"""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .age import DateLike, age_in_months
from .config import AGE_RANGE_MONTHS, BMI_RANGE, LMS_EPSILON, PLAUSIBILITY_LIMITS
from .growth_status import (
    DEFAULT_BANDS,
    Status,
    StatusBands,
    classify_indicator,
    classify_zscore,
    status_message,
    zscore_to_percentile,
)
from .who_lms import Indicator, OutOfRange, WHOReference, lms_zscore, normalize_sex

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Measurement:
    sex: str
    age_months: Optional[float]
    weight_kg: Optional[float] = None
    height_cm: Optional[float] = None
    head_circumference_cm: Optional[float] = None

    @classmethod
    def from_dates(
        cls,
        sex: str,
        birth_date: DateLike,
        measured_on: Optional[DateLike] = None,
        **values: Optional[float],
    ) -> "Measurement":
        return cls(sex=sex, age_months=age_in_months(birth_date, measured_on), **values)


@dataclass(frozen=True)
class ZScoreResult:
    indicator: str
    value: float
    x: float
    L: float
    M: float
    S: float
    z_score: float
    status: Status
    percentile: float
    classification: str
    message: str
    outcome: str = "ok"


@dataclass(frozen=True)
class InvalidInput:
    indicator: str
    reason: str
    value: Optional[Any] = None
    outcome: str = "invalid"


@dataclass(frozen=True)
class NotMeasured:
    indicator: str
    outcome: str = "not_measured"


IndicatorOutcome = Union[ZScoreResult, OutOfRange, InvalidInput, NotMeasured]

# indicator -> (field holding the measured value, field holding the lookup variable; None = age)
_INPUTS = {
    Indicator.WEIGHT_FOR_AGE: ("weight_kg", None),
    Indicator.HEIGHT_FOR_AGE: ("height_cm", None),
    Indicator.WEIGHT_FOR_HEIGHT: ("weight_kg", "height_cm"),
    Indicator.HEAD_CIRCUMFERENCE_FOR_AGE: ("head_circumference_cm", None),
}


def calculate_bmi(weight_kg: float, height_cm: float) -> float:
    """Calculate BMI from weight and height."""
    height_m = height_cm / 100
    return round(weight_kg / (height_m * height_m), 1)


def _outcome_dict(outcome: IndicatorOutcome) -> Dict[str, Any]:
    d = asdict(outcome)
    if isinstance(outcome, OutOfRange):
        d["reason"] = outcome.reason
    return d


@dataclass(frozen=True)
class GrowthEvaluation:
    sex: str
    age_months: Optional[float]
    results: Mapping[Indicator, IndicatorOutcome]
    bmi: Optional[float] = None

    def __getitem__(self, indicator: Union[Indicator, str]) -> IndicatorOutcome:
        return self.results[Indicator(indicator)]

    def scores(self) -> Dict[Indicator, ZScoreResult]:
        return {k: v for k, v in self.results.items() if isinstance(v, ZScoreResult)}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sex": self.sex,
            "age_months": self.age_months,
            "bmi": self.bmi,
            "indicators": {k.value: _outcome_dict(v) for k, v in self.results.items()},
        }


class GrowthEvaluator:
    """Evaluates measurements against an injected, read-only WHO reference."""

    def __init__(
        self,
        reference: WHOReference,
        bands: StatusBands = DEFAULT_BANDS,
        epsilon: float = LMS_EPSILON,
        limits: Optional[Mapping[str, float]] = None,
        bmi_range: Optional[Tuple[float, float]] = BMI_RANGE,
    ) -> None:
        self.reference = reference
        self.bands = bands
        self.epsilon = epsilon
        self.limits = dict(PLAUSIBILITY_LIMITS if limits is None else limits)
        self.bmi_range = bmi_range

    def _invalid_reason(self, field: str, value: Any) -> Optional[str]:
        try:
            v = float(value)
        except (TypeError, ValueError):
            return f"{field} is not a number: {value!r}"
        if not math.isfinite(v):
            return f"{field} must be a finite number, got {value!r}"
        if v <= 0:
            return f"{field} must be positive, got {v:g}"
        limit = self.limits.get(field)
        if limit is not None and v > limit:
            return f"{field} {v:g} exceeds plausible maximum {limit:g}"
        return None

    def _implausible_bmi(self, weight_kg: float, height_cm: float) -> Optional[str]:
        if self.bmi_range is None:
            return None
        lo, hi = self.bmi_range
        bmi = calculate_bmi(float(weight_kg), float(height_cm))
        if bmi < lo or bmi > hi:
            return f"weight/height pair gives implausible BMI {bmi:g} (expected {lo:g}..{hi:g})"
        return None

    @staticmethod
    def _finite_age(age: Any) -> Optional[float]:
        try:
            a = float(age)
        except (TypeError, ValueError):
            return None
        return a if math.isfinite(a) else None

    def evaluate_indicator(
        self, indicator: Union[Indicator, str], m: Measurement
    ) -> IndicatorOutcome:
        indicator = Indicator(indicator)
        name = indicator.value
        value_field, x_field = _INPUTS[indicator]
        value = getattr(m, value_field)
        x_value = getattr(m, x_field) if x_field else m.age_months

        if value is None or (x_field is not None and x_value is None):
            return NotMeasured(indicator=name)

        try:
            sex = normalize_sex(m.sex)
        except ValueError as e:
            log.debug("%s invalid: %s", name, e)
            return InvalidInput(indicator=name, reason=str(e), value=m.sex)

        reason = self._invalid_reason(value_field, value)
        if reason is not None:
            log.debug("%s invalid: %s", name, reason)
            return InvalidInput(indicator=name, reason=reason, value=value)
        if x_field is not None:
            reason = self._invalid_reason(x_field, x_value)
            if reason is None:
                reason = self._implausible_bmi(value, x_value)
            if reason is not None:
                log.debug("%s invalid: %s", name, reason)
                return InvalidInput(indicator=name, reason=reason, value=x_value)

        age = self._finite_age(m.age_months)
        lo, hi = AGE_RANGE_MONTHS
        if x_field is None:
            if age is None:
                reason = f"age_months must be a finite number, got {m.age_months!r}"
                log.debug("%s invalid: %s", name, reason)
                return InvalidInput(indicator=name, reason=reason, value=m.age_months)
            x = age
        else:
            # unknown age falls back to the length table; a known age must still be under five
            if age is not None and not lo <= age <= hi:
                out = OutOfRange(indicator=name, table="age", x=age, lower=lo, upper=hi)
                log.debug("%s out of range: %s", name, out.reason)
                return out
            x = float(x_value)

        row = self.reference.lookup(indicator, sex, x, age_months=age)
        if isinstance(row, OutOfRange):
            log.debug("%s out of range: %s", name, row.reason)
            return row

        v = float(value)
        z = lms_zscore(v, row.L, row.M, row.S, self.epsilon)
        return ZScoreResult(
            indicator=name,
            value=v,
            x=row.x,
            L=row.L,
            M=row.M,
            S=row.S,
            z_score=z,
            status=classify_zscore(z, self.bands),
            percentile=zscore_to_percentile(z),
            classification=classify_indicator(indicator, z, self.bands),
            message=status_message(indicator, z, self.bands),
        )

    def evaluate(self, m: Measurement) -> GrowthEvaluation:
        results = {ind: self.evaluate_indicator(ind, m) for ind in Indicator}

        bmi = None
        if (
            m.weight_kg is not None
            and m.height_cm is not None
            and self._invalid_reason("weight_kg", m.weight_kg) is None
            and self._invalid_reason("height_cm", m.height_cm) is None
            and self._implausible_bmi(m.weight_kg, m.height_cm) is None
        ):
            bmi = calculate_bmi(float(m.weight_kg), float(m.height_cm))

        try:
            sex = normalize_sex(m.sex)
        except ValueError:
            sex = str(m.sex)

        return GrowthEvaluation(
            sex=sex,
            age_months=self._finite_age(m.age_months),
            results=MappingProxyType(results),
            bmi=bmi,
        )


def evaluate(reference: WHOReference, measurement: Measurement, **kwargs: Any) -> GrowthEvaluation:
    """Convenience wrapper: GrowthEvaluator(reference, **kwargs).evaluate(measurement)."""
    return GrowthEvaluator(reference, **kwargs).evaluate(measurement)
