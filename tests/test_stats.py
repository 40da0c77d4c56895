"""
Unit tests for dashboard summary figures.
"""

import pandas as pd

from hospital_portal.stats import count_by, count_where, to_frame, total_amount


PAYMENTS = [
    {"amount": 100, "status": "paid"},
    {"amount": 250.5, "status": "Pending"},
    {"amount": "40", "status": "pending"},
    {"amount": None, "status": "paid"},
    {"status": "failed"},
]


# ── Tests: to_frame ──────────────────────────────────────────────────

def test_to_frame_ignores_non_mappings():
    df = to_frame([{"a": 1}, "junk", None, {"a": 2}])
    assert isinstance(df, pd.DataFrame)
    assert list(df["a"]) == [1, 2]
    assert to_frame({"not": "a list"}).empty
    assert to_frame(None).empty


# ── Tests: count_by / count_where ────────────────────────────────────

def test_count_by_lowercases_values():
    counts = count_by(PAYMENTS, "status")
    assert counts["pending"] == 2
    assert counts["paid"] == 2
    assert list(counts)[-1] == "failed"


def test_count_by_missing_key_or_rows():
    assert count_by(PAYMENTS, "missing") == {}
    assert count_by([], "status") == {}


def test_count_where():
    assert count_where(PAYMENTS, status="PAID") == 2
    assert count_where(PAYMENTS, status="refunded") == 0
    assert count_where(PAYMENTS, kind="x") == 0
    assert count_where(None, status="paid") == 0


# ── Tests: total_amount ──────────────────────────────────────────────

def test_total_amount_coerces_numbers():
    assert total_amount(PAYMENTS) == 390.5


def test_total_amount_filtered():
    assert total_amount(PAYMENTS, where={"status": "pending"}) == 290.5
    assert total_amount(PAYMENTS, where={"kind": "x"}) == 0.0
    assert total_amount([], "amount") == 0.0
