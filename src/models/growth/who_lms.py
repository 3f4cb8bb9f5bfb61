from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Literal, Mapping, Optional, Union

import numpy as np
import pandas as pd

from .config import LENGTH_HEIGHT_CUTOFF_MONTHS, LMS_EPSILON, SEXES, TABLE_LAYOUT

log = logging.getLogger(__name__)

Sex = Literal["M", "F"]

_SEX_ALIASES = {
    "M": "M",
    "MALE": "M",
    "F": "F",
    "FEMALE": "F",
}


class ReferenceDataError(ValueError):
    """A WHO LMS table is missing rows, columns or holds invalid values."""


class Indicator(str, Enum):
    WEIGHT_FOR_AGE = "weight_for_age"
    HEIGHT_FOR_AGE = "height_for_age"
    WEIGHT_FOR_HEIGHT = "weight_for_height"
    HEAD_CIRCUMFERENCE_FOR_AGE = "head_circumference_for_age"

    @property
    def age_indexed(self) -> bool:
        return self is not Indicator.WEIGHT_FOR_HEIGHT


_AGE_TABLES = {
    Indicator.WEIGHT_FOR_AGE: "wfa",
    Indicator.HEIGHT_FOR_AGE: "hfa",
    Indicator.HEAD_CIRCUMFERENCE_FOR_AGE: "hcfa",
}


def normalize_sex(sex: str) -> Sex:
    """Map MALE/FEMALE (or M/F, any case) to the table code used in the CSVs."""
    key = str(sex).strip().upper()
    if key not in _SEX_ALIASES:
        raise ValueError(f"Unknown sex {sex!r}; expected MALE or FEMALE")
    return _SEX_ALIASES[key]  # type: ignore[return-value]


@dataclass(frozen=True)
class LMSRow:
    """One WHO reference row: index value x (age in months or cm) and its L, M, S."""

    x: float
    L: float
    M: float
    S: float


@dataclass(frozen=True)
class OutOfRange:
    """The lookup variable falls outside the table's supported domain."""

    indicator: str
    table: str
    x: float
    lower: float
    upper: float
    outcome: str = "out_of_range"

    @property
    def reason(self) -> str:
        return f"{self.x:g} outside supported range [{self.lower:g}, {self.upper:g}]"


@dataclass(frozen=True)
class LMSTable:
    key: str
    sex: str
    x: np.ndarray
    L: np.ndarray
    M: np.ndarray
    S: np.ndarray

    def __len__(self) -> int:
        return len(self.x)

    @property
    def lower(self) -> float:
        return float(self.x[0])

    @property
    def upper(self) -> float:
        return float(self.x[-1])

    def covers(self, x: float) -> bool:
        return self.lower <= x <= self.upper

    def interpolate(self, x: float) -> LMSRow:
        """
        Linear interpolation of L, M and S independently between the two rows
        bracketing x. A value on a table row returns that row unchanged.
        """
        if not self.covers(x):
            raise ValueError(f"{x} outside {self.key}/{self.sex} range [{self.lower}, {self.upper}]")
        return LMSRow(
            x=float(x),
            L=float(np.interp(x, self.x, self.L)),
            M=float(np.interp(x, self.x, self.M)),
            S=float(np.interp(x, self.x, self.S)),
        )


@dataclass(frozen=True)
class WHOReference:
    """
    Read-only WHO LMS reference tables keyed by (table, sex).

    Table keys:
      - wfa / hfa / hcfa: x = age in months
      - wfl: x = recumbent length in cm (used under 24 months)
      - wfh: x = standing height in cm (used from 24 months)
    """

    tables: Mapping[tuple[str, str], LMSTable]
    source: Optional[str] = None
    length_height_cutoff: float = LENGTH_HEIGHT_CUTOFF_MONTHS

    def table(self, key: str, sex: str) -> LMSTable:
        code = normalize_sex(sex)
        try:
            return self.tables[(key, code)]
        except KeyError:
            raise ValueError(f"No WHO table {key!r} for sex={code}") from None

    def table_for(self, indicator: Union[Indicator, str], age_months: Optional[float] = None) -> str:
        indicator = Indicator(indicator)
        if indicator.age_indexed:
            return _AGE_TABLES[indicator]
        if age_months is not None and age_months >= self.length_height_cutoff:
            return "wfh"
        return "wfl"

    def lookup_table(self, key: str, sex: str, x: float, indicator: Optional[str] = None) -> Union[LMSRow, OutOfRange]:
        tbl = self.table(key, sex)
        if not tbl.covers(x):
            return OutOfRange(
                indicator=indicator or key,
                table=key,
                x=float(x),
                lower=tbl.lower,
                upper=tbl.upper,
            )
        return tbl.interpolate(x)

    def lookup(
        self,
        indicator: Union[Indicator, str],
        sex: str,
        x: float,
        *,
        age_months: Optional[float] = None,
    ) -> Union[LMSRow, OutOfRange]:
        """
        Resolve the (interpolated) LMS row for an indicator.

        x is the age in months for age-indexed indicators and the
        length/height in cm for weight-for-height. For weight-for-height the
        child's age picks the length (< 24 months or unknown) or height table.
        """
        indicator = Indicator(indicator)
        key = self.table_for(indicator, age_months)
        return self.lookup_table(key, sex, x, indicator=indicator.value)


def _load_table(path: Path) -> pd.DataFrame:
    df = pd.read_csv(path)
    required = {"sex", "x", "L", "M", "S"}
    missing = required - set(df.columns)
    if missing:
        raise ReferenceDataError(
            f"{path.name} missing columns: {sorted(missing)}. Required={sorted(required)}"
        )
    df = df.copy()
    df["sex"] = df["sex"].astype(str).str.strip().str.upper()
    for c in ["x", "L", "M", "S"]:
        df[c] = pd.to_numeric(df[c], errors="coerce")
    if df[["x", "L", "M", "S"]].isna().any().any():
        raise ReferenceDataError(f"{path.name} has empty or non-numeric cells")
    return df.sort_values(["sex", "x"]).reset_index(drop=True)


def _frozen(values: pd.Series) -> np.ndarray:
    arr = values.to_numpy(dtype=float, copy=True)
    arr.setflags(write=False)
    return arr


def _build_table(key: str, sex: str, df: pd.DataFrame, name: str) -> LMSTable:
    _, _, first, last, step = TABLE_LAYOUT[key]
    sdf = df[df["sex"] == sex]
    if sdf.empty:
        raise ReferenceDataError(f"{name} has no rows for sex={sex}")

    xs = sdf["x"].to_numpy(dtype=float)
    expected = np.arange(first, last + step / 2.0, step)
    if len(xs) != len(expected) or not np.allclose(xs, expected, atol=1e-9):
        raise ReferenceDataError(
            f"{name} sex={sex} must cover {first:g}..{last:g} in steps of {step:g} "
            f"without gaps or duplicates (got {len(xs)} rows, {xs.min():g}..{xs.max():g})"
        )
    if (sdf["M"] <= 0).any() or (sdf["S"] <= 0).any():
        raise ReferenceDataError(f"{name} sex={sex} has non-positive M or S values")

    return LMSTable(
        key=key,
        sex=sex,
        x=_frozen(sdf["x"]),
        L=_frozen(sdf["L"]),
        M=_frozen(sdf["M"]),
        S=_frozen(sdf["S"]),
    )


def load_who_reference(who_lms_dir: Union[str, Path]) -> WHOReference:
    """
    Loads and validates every WHO LMS table from a directory.

      wfa_lms.csv   (x=age_months, 0..60)
      hfa_lms.csv   (x=age_months, 0..60)
      hcfa_lms.csv  (x=age_months, 0..60)
      wfl_lms.csv   (x=length_cm, 45..110)
      wfh_lms.csv   (x=height_cm, 65..120)

    Each CSV has columns: sex, x, L, M, S with sex values 'M' or 'F'.
    Any missing or malformed table raises; nothing is validated lazily.
    """
    d = Path(who_lms_dir)
    if not d.is_dir():
        raise FileNotFoundError(f"WHO LMS directory not found: {d}")

    tables: dict[tuple[str, str], LMSTable] = {}
    for key, (fname, *_rest) in TABLE_LAYOUT.items():
        path = d / fname
        if not path.exists():
            raise FileNotFoundError(f"WHO LMS table not found: {path}")
        df = _load_table(path)
        for sex in SEXES:
            tables[(key, sex)] = _build_table(key, sex, df, fname)

    log.info("Loaded %d WHO LMS tables from %s", len(tables), d)
    return WHOReference(tables=MappingProxyType(tables), source=str(d))


def lms_zscore(value: float, L: float, M: float, S: float, epsilon: float = LMS_EPSILON) -> float:
    """
    WHO LMS z-score formula:
      If |L| > epsilon: Z = ((value/M)^L - 1) / (L*S)
      If |L| <= epsilon: Z = ln(value/M) / S
    """
    if not np.isfinite(value) or value <= 0:
        raise ValueError(f"Measurement must be a positive number, got {value!r}")
    if M <= 0 or S <= 0:
        raise ValueError(f"Invalid LMS parameters M={M!r} S={S!r}")
    if abs(L) <= epsilon:
        return float(np.log(value / M) / S)
    return float(((value / M) ** L - 1.0) / (L * S))


def value_at_zscore(z: float, L: float, M: float, S: float, epsilon: float = LMS_EPSILON) -> float:
    """Inverse of lms_zscore: the measurement lying z standard deviations from M."""
    if abs(L) <= epsilon:
        return float(M * np.exp(S * z))
    base = 1.0 + L * S * z
    if base <= 0:
        raise ValueError(f"Z={z} is outside the support of L={L}, S={S}")
    return float(M * base ** (1.0 / L))


def _sd_label(z: float) -> str:
    if z < 0:
        return f"SD{abs(z):g}neg"
    return f"SD{z:g}"


def reference_curve(
    ref: WHOReference,
    indicator: Union[Indicator, str],
    sex: str,
    z_lines: Iterable[float] = (-3, -2, 0, 2, 3),
    age_months: Optional[float] = None,
) -> pd.DataFrame:
    """
    Values at the requested Z lines for every row of an indicator's table,
    in WHO chart column naming (SD3neg, SD2neg, SD0, SD2, SD3).
    """
    key = ref.table_for(indicator, age_months)
    tbl = ref.table(key, sex)
    out = pd.DataFrame({"x": tbl.x, "L": tbl.L, "M": tbl.M, "S": tbl.S})
    for z in z_lines:
        out[_sd_label(z)] = [
            value_at_zscore(z, l, m, s) for l, m, s in zip(tbl.L, tbl.M, tbl.S)
        ]
    return out
