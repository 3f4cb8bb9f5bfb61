from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from src.models.growth.config import BMI_RANGE, LENGTH_HEIGHT_CUTOFF_MONTHS, LMS_EPSILON, PROJECT_ROOT
from src.models.growth.evaluate import GrowthEvaluator
from src.models.growth.growth_status import StatusBands
from src.models.growth.who_lms import load_who_reference

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = PROJECT_ROOT / "configs" / "config.yaml"

_EVALUATOR: GrowthEvaluator | None = None


def _resolve(path: Union[str, Path]) -> Path:
    p = Path(path)
    return p if p.is_absolute() else PROJECT_ROOT / p


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Read the service YAML config. GROWTH_CONFIG overrides the default location."""
    cfg_path = _resolve(path or os.environ.get("GROWTH_CONFIG") or DEFAULT_CONFIG_PATH)
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def build_evaluator(cfg: Dict[str, Any]) -> GrowthEvaluator:
    """Load the WHO reference named by cfg and wire the evaluator from the growth section."""
    growth = cfg.get("growth") or {}
    bands_cfg = growth.get("status_bands") or {}
    bands = StatusBands(
        warning=float(bands_cfg.get("warning", StatusBands.warning)),
        alert=float(bands_cfg.get("alert", StatusBands.alert)),
    )
    limits = dict(growth.get("plausibility") or {})
    bmi = limits.pop("bmi", None)

    ref = load_who_reference(_resolve(cfg["paths"]["who_lms_dir"]))
    cutoff = float(growth.get("length_height_cutoff_months", LENGTH_HEIGHT_CUTOFF_MONTHS))
    if cutoff != ref.length_height_cutoff:
        ref = replace(ref, length_height_cutoff=cutoff)

    return GrowthEvaluator(
        ref,
        bands=bands,
        epsilon=float(growth.get("lms_epsilon", LMS_EPSILON)),
        limits={k: float(v) for k, v in limits.items()} if limits else None,
        bmi_range=(float(bmi[0]), float(bmi[1])) if bmi else BMI_RANGE,
    )


def init_evaluator(path: Optional[Union[str, Path]] = None) -> GrowthEvaluator:
    global _EVALUATOR
    _EVALUATOR = build_evaluator(load_config(path))
    log.info(
        "Growth evaluator ready (reference=%s, bands=%s/%s)",
        _EVALUATOR.reference.source,
        _EVALUATOR.bands.warning,
        _EVALUATOR.bands.alert,
    )
    return _EVALUATOR


def get_evaluator() -> GrowthEvaluator:
    if _EVALUATOR is None:
        return init_evaluator()
    return _EVALUATOR
