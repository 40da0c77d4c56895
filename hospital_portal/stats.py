"""
Summary figures for dashboard cards, computed from fetched collections.
"""

from typing import Any, Dict, Mapping, Optional

import pandas as pd


def to_frame(rows) -> pd.DataFrame:
    """DataFrame over the mapping rows of *rows*; anything else is ignored."""
    records = [r for r in (rows or []) if isinstance(r, Mapping)] if isinstance(rows, list) else []
    return pd.DataFrame.from_records(records)


def count_by(rows, key: str) -> Dict[str, int]:
    """Row counts per value of *key* (lower-cased), most frequent first."""
    df = to_frame(rows)
    if df.empty or key not in df.columns:
        return {}
    vals = df[key].dropna().astype(str).str.lower()
    return {str(k): int(v) for k, v in vals.value_counts().items()}


def total_amount(rows, key: str = "amount", where: Optional[Mapping[str, Any]] = None) -> float:
    """Sum of numeric *key* over rows matching every ``where`` field (case-insensitive)."""
    df = to_frame(rows)
    if df.empty or key not in df.columns:
        return 0.0
    for col, expected in (where or {}).items():
        if col not in df.columns:
            return 0.0
        df = df[df[col].astype(str).str.lower() == str(expected).lower()]
    return float(pd.to_numeric(df[key], errors="coerce").fillna(0).sum())


def count_where(rows, **conditions) -> int:
    df = to_frame(rows)
    if df.empty:
        return 0
    mask = pd.Series(True, index=df.index)
    for col, expected in conditions.items():
        if col not in df.columns:
            return 0
        mask &= df[col].astype(str).str.lower() == str(expected).lower()
    return int(mask.sum())
