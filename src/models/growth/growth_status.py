from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal, Union

from scipy import stats

from .config import ALERT_Z, WARNING_Z
from .who_lms import Indicator

Status = Literal["normal", "warning", "alert"]


@dataclass(frozen=True)
class StatusBands:
    """
    Symmetric Z-score cut-offs shared by every indicator:
      normal  |Z| <= warning
      warning warning < |Z| < alert
      alert   |Z| >= alert
    """

    warning: float = WARNING_Z
    alert: float = ALERT_Z

    def __post_init__(self) -> None:
        if not 0 < self.warning < self.alert:
            raise ValueError(
                f"Status bands need 0 < warning < alert, got warning={self.warning} alert={self.alert}"
            )


DEFAULT_BANDS = StatusBands()


def classify_zscore(z: float, bands: StatusBands = DEFAULT_BANDS) -> Status:
    # Every real z (including +/-inf) lands in exactly one band; NaN is a caller bug.
    if math.isnan(z):
        raise ValueError("Cannot classify a NaN z-score")
    dist = abs(z)
    if dist <= bands.warning:
        return "normal"
    if dist < bands.alert:
        return "warning"
    return "alert"


# Labels per band, ordered from far below to far above the median.
_CLASSIFICATIONS = {
    Indicator.WEIGHT_FOR_AGE: (
        "severely_underweight",
        "underweight",
        "normal",
        "high_weight",
        "very_high_weight",
    ),
    Indicator.HEIGHT_FOR_AGE: (
        "severely_stunted",
        "stunted",
        "normal",
        "tall",
        "very_tall",
    ),
    Indicator.WEIGHT_FOR_HEIGHT: (
        "severely_wasted",
        "wasted",
        "normal",
        "overweight",
        "obese",
    ),
    Indicator.HEAD_CIRCUMFERENCE_FOR_AGE: (
        "severe_microcephaly",
        "microcephaly",
        "normal",
        "macrocephaly",
        "severe_macrocephaly",
    ),
}

_DISPLAY_NAMES = {
    Indicator.WEIGHT_FOR_AGE: "Weight-for-age",
    Indicator.HEIGHT_FOR_AGE: "Height-for-age",
    Indicator.WEIGHT_FOR_HEIGHT: "Weight-for-height",
    Indicator.HEAD_CIRCUMFERENCE_FOR_AGE: "Head circumference-for-age",
}

_ADVICE = {
    "normal": "",
    "warning": " Monitor growth closely.",
    "alert": " Consult a doctor promptly.",
}


def _band_index(z: float, bands: StatusBands) -> int:
    if z <= -bands.alert:
        return 0
    if z < -bands.warning:
        return 1
    if z <= bands.warning:
        return 2
    if z < bands.alert:
        return 3
    return 4


def classify_indicator(
    indicator: Union[Indicator, str], z: float, bands: StatusBands = DEFAULT_BANDS
) -> str:
    """Clinical label for an indicator's z-score, e.g. 'stunted' or 'wasted'."""
    if math.isnan(z):
        raise ValueError("Cannot classify a NaN z-score")
    return _CLASSIFICATIONS[Indicator(indicator)][_band_index(z, bands)]


def zscore_to_percentile(z: float) -> float:
    """Convert Z-score to percentile using the standard normal CDF."""
    return round(float(stats.norm.cdf(z) * 100.0), 2)


def status_message(indicator: Union[Indicator, str], z: float, bands: StatusBands = DEFAULT_BANDS) -> str:
    indicator = Indicator(indicator)
    label = classify_indicator(indicator, z, bands).replace("_", " ")
    status = classify_zscore(z, bands)
    return f"{_DISPLAY_NAMES[indicator]} {label} (Z-score: {z:.1f}).{_ADVICE[status]}"
