"""
Convert WHO Child Growth Standards downloads into the CSV layout read by
load_who_reference (columns sex, x, L, M, S).

WHO publishes each table per sex as a tab-separated .txt or an .xlsx file,
e.g. ``wfa_boys_0-to-5-years_zscores.txt`` or ``lhfa-girls-zscore-expanded-tables.xlsx``.
The table and sex are taken from the file name.

    python -m src.models.growth.who_extract_lms data/raw/who data/who
"""
from __future__ import annotations

import argparse
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from .config import TABLE_LAYOUT

log = logging.getLogger(__name__)

# file name token -> table key; longer tokens first so "wfl" never matches inside "lhfa"
_TABLE_TOKENS = (
    ("weight-for-length", "wfl"),
    ("weight-for-height", "wfh"),
    ("weight-for-age", "wfa"),
    ("length-height-for-age", "hfa"),
    ("head-circumference-for-age", "hcfa"),
    ("lhfa", "hfa"),
    ("hcfa", "hcfa"),
    ("wfa", "wfa"),
    ("wfl", "wfl"),
    ("wfh", "wfh"),
    ("hfa", "hfa"),
    ("lfa", "hfa"),
)

# table key -> accepted index column names (normalized)
_X_COLUMNS = {
    "wfa": ("month", "months", "age", "age_months"),
    "hfa": ("month", "months", "age", "age_months"),
    "hcfa": ("month", "months", "age", "age_months"),
    "wfl": ("length", "length_cm", "lengthcm"),
    "wfh": ("height", "height_cm", "heightcm"),
}


@dataclass(frozen=True)
class SourceFile:
    path: Path
    table: str
    sex: str


def _norm(s: str) -> str:
    return str(s).strip().lower().replace(" ", "_")


def guess_sex(name: str) -> Optional[str]:
    tokens = set(re.split(r"[^a-z]+", name.lower()))
    if tokens & {"boy", "boys", "male"}:
        return "M"
    if tokens & {"girl", "girls", "female"}:
        return "F"
    return None


def guess_table(name: str) -> Optional[str]:
    n = name.lower().replace("_", "-")
    for token, key in _TABLE_TOKENS:
        if token in n:
            return key
    return None


def classify_file(path: Path) -> SourceFile:
    sex = guess_sex(path.name)
    table = guess_table(path.name)
    if sex is None:
        raise ValueError(
            f"Cannot infer sex from filename: {path.name}. "
            f"Rename to include 'boys'/'girls' (or 'male'/'female')."
        )
    if table is None:
        raise ValueError(
            f"Cannot infer table from filename: {path.name}. "
            f"Expected one of wfa, lhfa, hcfa, wfl, wfh."
        )
    return SourceFile(path=path, table=table, sex=sex)


def _read_raw(path: Path) -> pd.DataFrame:
    if path.suffix.lower() == ".xlsx":
        return pd.read_excel(path)
    return pd.read_csv(path, sep="\t")


def extract_lms(src: SourceFile) -> pd.DataFrame:
    df = _read_raw(src.path)
    norm = {_norm(c): c for c in df.columns}

    x_col = next((norm[c] for c in _X_COLUMNS[src.table] if c in norm), None)
    if x_col is None:
        if "day" in norm:
            raise ValueError(
                f"{src.path.name} is indexed by day; use the monthly (or 0.5 cm) table instead"
            )
        raise ValueError(f"{src.path.name}: no index column among {_X_COLUMNS[src.table]}")
    missing = [c for c in ("l", "m", "s") if c not in norm]
    if missing:
        raise ValueError(f"{src.path.name} missing LMS columns: {missing}")

    out = df[[x_col, norm["l"], norm["m"], norm["s"]]].copy()
    out.columns = ["x", "L", "M", "S"]
    for c in ["x", "L", "M", "S"]:
        out[c] = pd.to_numeric(out[c], errors="coerce")
    out = out.dropna(subset=["x", "L", "M", "S"])

    _, _, first, last, _ = TABLE_LAYOUT[src.table]
    out = out[(out["x"] >= first) & (out["x"] <= last)]
    out.insert(0, "sex", src.sex)
    return out.sort_values("x").reset_index(drop=True)


def convert(raw_dir: Path, out_dir: Path) -> Dict[str, Path]:
    """Convert every recognised file in raw_dir; returns {table key: written csv}."""
    raw_dir = Path(raw_dir)
    out_dir = Path(out_dir)
    if not raw_dir.is_dir():
        raise FileNotFoundError(f"Missing folder: {raw_dir.resolve()}")

    files = sorted(p for p in raw_dir.iterdir() if p.suffix.lower() in (".txt", ".xlsx"))
    if not files:
        raise FileNotFoundError(f"No .txt or .xlsx files found in {raw_dir.resolve()}")

    frames: Dict[str, List[pd.DataFrame]] = {}
    for f in files:
        src = classify_file(f)
        df = extract_lms(src)
        log.info("%s -> %s sex=%s rows=%d", f.name, src.table, src.sex, len(df))
        frames.setdefault(src.table, []).append(df)

    out_dir.mkdir(parents=True, exist_ok=True)
    written: Dict[str, Path] = {}
    for key, parts in frames.items():
        merged = (
            pd.concat(parts, ignore_index=True)
            .drop_duplicates()
            .sort_values(["sex", "x"])
            .reset_index(drop=True)
        )
        path = out_dir / TABLE_LAYOUT[key][0]
        merged.to_csv(path, index=False)
        written[key] = path
        log.info("Saved %s rows=%d", path, len(merged))

    for key in TABLE_LAYOUT:
        if key not in written:
            log.warning("No source file for %s; %s not written", key, TABLE_LAYOUT[key][0])
    return written


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Convert WHO LMS downloads to reference CSVs")
    parser.add_argument("raw_dir", type=Path)
    parser.add_argument("out_dir", type=Path)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    convert(args.raw_dir, args.out_dir)


if __name__ == "__main__":
    main()
