"""
Interactive terminal client for the Hospital Portal.
Log in once, then browse the pages of your role as paginated tables.
"""

import getpass
from typing import List, Optional

import pandas as pd

from hospital_portal.client import ApiClient, CancelToken
from hospital_portal.config import API_BASE_URL, STATE_DB_URI
from hospital_portal.errors import ApiError, RequestCancelled, SessionExpired
from hospital_portal.formatting import format_error_message
from hospital_portal.pages import PageContext, find_page, load_page, pages_for_role
from hospital_portal.session import SessionGate
from hospital_portal.storage import SqlStore, init_engine
from hospital_portal.table import DataTable, TableView, prune_selection

HELP = """Commands:
  views              list the pages you can open
  open <view>        load a page (e.g. open admin_patients)
  next | prev        change page
  page <n>           jump to page n
  sort <column>      sort by a column (again to reverse)
  select <n|all>     toggle row n of this page, or the whole page
  act <n> <k>        run action k on row n
  refresh            reload the current page
  logout | quit"""


def render_text(view: TableView) -> str:
    """Plain-text rendering of a table view."""
    if view.mode != "table":
        return f"({view.message})"
    labels = [f"{h.label} {h.indicator}".strip() for h in view.headers]
    records = []
    for n, row in enumerate(view.rows, 1):
        cells = ["" if c is None else str(c) for c in row.cells]
        mark = "[x]" if row.selected else "[ ]"
        actions = ", ".join(f"{a.index}:{a.label}" for a in row.actions)
        records.append([n, mark] + cells + ([actions] if view.has_actions else []))
    columns = ["#", "sel"] + labels + (["Actions"] if view.has_actions else [])
    df = pd.DataFrame(records, columns=columns)
    if not view.selectable:
        df = df.drop(columns=["sel"])
    lines = [df.to_string(index=False)]
    if view.show_pagination:
        lines.append(f"Page {view.page} of {view.total_pages} ({view.total_rows} rows)")
    return "\n".join(lines)


class Browser:
    """State of the terminal session: open page, its table and the selection."""

    def __init__(self, gate: SessionGate):
        self.gate = gate
        self.page = None
        self.table: Optional[DataTable] = None
        self.rows: List = []
        self.selected: List = []
        self.cancel: Optional[CancelToken] = None
        self.ctx: Optional[PageContext] = None
        self.messages: List[str] = []

    def notify(self, kind: str, text: str) -> None:
        self.messages.append(f"[{kind}] {text}")

    def on_select(self, ids) -> None:
        self.selected = list(ids)

    def open(self, name: str) -> str:
        page = find_page(name)
        if page is None or page.role != self.gate.identity.role:
            return f"Unknown view '{name}'. Type 'views' to list yours."
        if self.cancel is not None:
            self.cancel.cancel()
        self.page = page
        ctx = PageContext(client=self.gate.client, notify=self.notify)
        self.ctx = ctx
        self.table = DataTable(page.columns(ctx), page_size=page.page_size,
                               on_row_select=self.on_select, empty_message=page.empty_message)
        self.selected = []
        return self.refresh()

    def refresh(self) -> str:
        if self.page is None:
            return "No view open."
        self.cancel = CancelToken()
        try:
            data = load_page(self.page, self.gate.client, cancel=self.cancel)
        except RequestCancelled:
            return ""
        self.rows = data.rows
        self.selected = prune_selection(self.selected, self.rows)
        lines = [f"== {self.page.title} =="]
        lines += [f"  {label}: {value}" for label, value in data.cards]
        lines.append(self.show())
        return "\n".join(lines)

    def show(self) -> str:
        return render_text(self.table.render(self.rows, selected=self.selected))

    def visible_row(self, n: int):
        pairs = self.table.sorted_rows(self.rows)
        start = (self.table.page - 1) * self.table.page_size
        index = start + n - 1
        if n < 1 or index >= min(len(pairs), start + self.table.page_size):
            return None
        return pairs[index]

    def handle(self, line: str) -> Optional[str]:
        """Run one command; returns text to print, or None to quit."""
        parts = line.split()
        if not parts:
            return ""
        cmd, args = parts[0].lower(), parts[1:]

        if cmd in {"quit", "exit"}:
            return None
        if cmd == "help":
            return HELP
        if cmd == "logout":
            self.gate.logout()
            return "Logged out."
        if cmd == "views":
            return "\n".join(f"  {p.name:<22} {p.title}" for p in pages_for_role(self.gate.identity.role))
        if cmd == "open" and args:
            return self.open(args[0])
        if self.table is None:
            return "Open a view first (type 'views')."
        if cmd == "refresh":
            return self.refresh()
        if cmd == "next":
            return self.show() if self.table.next_page() else "Already on the last page."
        if cmd == "prev":
            return self.show() if self.table.prev_page() else "Already on the first page."
        if cmd == "page" and args and args[0].isdigit():
            return self.show() if self.table.go_to_page(int(args[0])) else "No such page."
        if cmd == "sort" and args:
            self.table.sort_by(args[0])
            return self.show()
        if cmd == "select" and args:
            if args[0] == "all":
                self.table.select_all(self.rows, self.selected)
            else:
                hit = self.visible_row(int(args[0])) if args[0].isdigit() else None
                if hit is None:
                    return "No such row."
                self.table.toggle_row(hit[0], self.selected)
            return self.show()
        if cmd == "act" and len(args) == 2 and args[0].isdigit() and args[1].isdigit():
            hit = self.visible_row(int(args[0]))
            if hit is None:
                return "No such row."
            self.messages = []
            if not self.table.click_action(hit[1], int(args[1])):
                return "No such action."
            out = list(self.messages)
            if self.ctx.changed:
                self.ctx.changed = False
                out.append(self.refresh())
            return "\n".join(out)
        return "Unknown command. Type 'help'."


def login_prompt(gate: SessionGate) -> bool:
    """Ask for credentials until login succeeds; False when the user gives up."""
    while True:
        try:
            email = input("Email (or 'quit'): ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            return False
        if not email or email.lower() in {"quit", "exit"}:
            print("Goodbye.")
            return False
        try:
            password = getpass.getpass("Password: ")
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            return False
        result = gate.login(email, password)
        if result.success:
            return True
        print(f"\n[ERROR] {result.message}\n")


def main():
    print("=== Hospital Portal: terminal client ===\n")

    engine = init_engine(STATE_DB_URI)
    gate = SessionGate(SqlStore(engine), ApiClient(API_BASE_URL))
    gate.on_expired(lambda: print("\n[auth] Your session has expired. Please log in again."))

    gate.start()
    if gate.is_authenticated:
        print(f"[auth] Welcome back, {gate.identity.name} (role={gate.identity.role})")

    while True:
        if not gate.is_authenticated and not login_prompt(gate):
            return

        browser = Browser(gate)
        print("\nType 'views' to list pages, 'help' for commands.")

        while gate.is_authenticated:
            try:
                line = input(f"\n{gate.identity.role}> ").strip()
            except (EOFError, KeyboardInterrupt):
                print("\nExiting.")
                return
            try:
                out = browser.handle(line)
            except SessionExpired:
                break
            except ApiError as e:
                print(f"\n[ERROR] {format_error_message(e)}")
                continue
            if out is None:
                print("Goodbye.")
                return
            if out:
                print(out)


if __name__ == "__main__":
    main()
