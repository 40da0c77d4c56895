"""
Unit tests for the terminal client – text rendering and command handling.
"""

import json

from hospital_portal.cli import Browser, render_text
from hospital_portal.client import ApiClient
from hospital_portal.config import TOKEN_KEY, USER_KEY
from hospital_portal.session import SessionGate
from hospital_portal.storage import MemoryStore
from hospital_portal.table import Column, DataTable, RowAction

from conftest import BASE_URL

ADMIN = {"_id": "u1", "name": "Root", "role": "admin"}


def make_browser(http, user=ADMIN):
    store = MemoryStore({TOKEN_KEY: "tok", USER_KEY: json.dumps(user)})
    gate = SessionGate(store, ApiClient(BASE_URL, session=http))
    gate.mark_ready()
    return Browser(gate)


def route_payments(http, rows):
    http.route("GET", "/payments/admin", 200, rows)
    http.route("GET", "/payments/admin/stats", 200, {"totalRevenue": 75, "byStatus": []})


PAYMENTS = [
    {"_id": f"pay{i}", "description": f"Bill {i}", "amount": 10 * i, "status": "pending" if i % 2 else "paid"}
    for i in range(1, 13)
]


# ── Tests: render_text ───────────────────────────────────────────────

def test_render_text_table():
    table = DataTable([Column("name", "Name", sortable=True)], page_size=2, on_row_select=lambda ids: None)
    table.sort_by("name")
    out = render_text(table.render([{"id": 1, "name": "b"}, {"id": 2, "name": "a"}, {"id": 3, "name": "c"}],
                                   selected=[2]))
    lines = out.splitlines()
    assert "Name ▲" in lines[0]
    assert "[x]" in lines[1] and "a" in lines[1]
    assert lines[-1] == "Page 1 of 2 (3 rows)"


def test_render_text_actions_and_modes():
    cols = [Column("name", "Name"), Column("actions", "Actions", actions=[RowAction("Open", lambda r: None)])]
    table = DataTable(cols)
    out = render_text(table.render([{"id": 1, "name": "x"}]))
    assert "0:Open" in out
    assert "sel" not in out
    assert render_text(table.render([])) == "(No data available)"
    assert render_text(table.render(None, loading=True)) == "(Loading data...)"


# ── Tests: Browser ───────────────────────────────────────────────────

def test_views_lists_own_role_only(http):
    out = make_browser(http).handle("views")
    assert "admin_patients" in out
    assert "patient_payments" not in out


def test_open_unknown_or_foreign_view(http):
    browser = make_browser(http)
    assert "Unknown view" in browser.handle("open patient_payments")
    assert "Open a view first" in browser.handle("next")


def test_open_and_paginate(http):
    route_payments(http, PAYMENTS)
    browser = make_browser(http)

    out = browser.handle("open admin_payments")
    assert "== Payments ==" in out
    assert "Total revenue: $75.00" in out
    assert "Page 1 of 2 (12 rows)" in out

    assert "Page 2 of 2" in browser.handle("next")
    assert browser.handle("next") == "Already on the last page."
    assert "Page 1 of 2" in browser.handle("page 1")
    assert browser.handle("page 7") == "No such page."


def test_select_and_prune_on_refresh(http):
    route_payments(http, PAYMENTS)
    browser = make_browser(http)
    browser.handle("open admin_payments")

    browser.handle("select 1")
    assert browser.selected == ["pay1"]
    browser.handle("select all")
    assert browser.selected == [f"pay{i}" for i in range(1, 11)]
    assert browser.handle("select 42") == "No such row."

    route_payments(http, PAYMENTS[5:])
    browser.handle("refresh")
    assert browser.selected == [f"pay{i}" for i in range(6, 11)]


def test_act_refreshes_after_success(http):
    route_payments(http, PAYMENTS[:1])
    http.route("PUT", "/payments/pay1", 200, {"status": "paid"})
    browser = make_browser(http)
    browser.handle("open admin_payments")

    out = browser.handle("act 1 0")

    assert "[success] Payment updated successfully!" in out
    assert "== Payments ==" in out
    assert len(http.calls_to("/payments/admin")) == 2


def test_act_failure_keeps_rows(http):
    route_payments(http, PAYMENTS[:1])
    http.route("PUT", "/payments/pay1", 500, {"msg": "Ledger locked"})
    browser = make_browser(http)
    browser.handle("open admin_payments")

    out = browser.handle("act 1 0")

    assert out == "[error] Failed to update payment. Ledger locked"
    assert len(http.calls_to("/payments/admin")) == 1
    assert browser.handle("act 1 5") == "No such action."


def test_sort_and_quit(http):
    route_payments(http, PAYMENTS[:3])
    browser = make_browser(http)
    browser.handle("open admin_payments")
    out = browser.handle("sort amount")
    assert "Amount ▲" in out
    assert browser.handle("quit") is None
    assert browser.handle("") == ""


def test_logout(http):
    browser = make_browser(http)
    assert browser.handle("logout") == "Logged out."
    assert not browser.gate.is_authenticated
