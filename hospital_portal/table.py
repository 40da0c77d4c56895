"""
DataTable – turns an in-memory collection plus column descriptors into a
sorted, paginated, optionally selectable table with per-row actions.

The table never mutates the caller's collection and performs no I/O; every
mutation goes through the caller's callbacks. It owns only the current page
and sort state. Selection stays with the caller: the table reports the new
selection through ``on_row_select`` and keeps no copy of it.

Rows are identified by their ``id`` field, then ``_id``, then their position
in the supplied collection. Positional ids change when the collection is
reordered between renders, so callers should always supply a stable id.
"""

from dataclasses import dataclass, field
from functools import cmp_to_key
from math import ceil
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from hospital_portal.config import DEFAULT_PAGE_SIZE, EMPTY_MESSAGE

SORT_ASC = "asc"
SORT_DESC = "desc"
SORT_INDICATORS = {SORT_ASC: "▲", SORT_DESC: "▼"}
UNSORTED_INDICATOR = "↕"
LOADING_MESSAGE = "Loading data..."


# ── Static / computed values ─────────────────────────────────────────

@dataclass(frozen=True)
class Static:
    value: Any

    def resolve(self, row) -> Any:
        return self.value


@dataclass(frozen=True)
class Computed:
    fn: Callable[[Any], Any]

    def resolve(self, row) -> Any:
        return self.fn(row)


def static_or_computed(value):
    """Wrap a plain value or a ``row -> value`` callable."""
    if isinstance(value, (Static, Computed)):
        return value
    return Computed(value) if callable(value) else Static(value)


# ── Descriptors ──────────────────────────────────────────────────────

@dataclass
class RowAction:
    label: Any
    on_click: Callable[[Any], Any]
    variant: Any = "primary"
    icon: Optional[str] = None

    def __post_init__(self):
        self.label = static_or_computed(self.label)
        self.variant = static_or_computed(self.variant)


@dataclass
class Column:
    key: str
    label: str
    sortable: bool = False
    render: Optional[Callable[[Any, Any], Any]] = None
    actions: Any = None      # list of RowAction, or row -> list of RowAction

    def __post_init__(self):
        if self.actions is not None:
            self.actions = static_or_computed(self.actions)


# ── Render model ─────────────────────────────────────────────────────

@dataclass
class HeaderCell:
    key: str
    label: str
    sortable: bool
    direction: Optional[str] = None     # set on the sorted column only

    @property
    def sorted(self) -> bool:
        return self.direction is not None

    @property
    def indicator(self) -> str:
        if not self.sortable:
            return ""
        return SORT_INDICATORS.get(self.direction, UNSORTED_INDICATOR)


@dataclass
class ActionView:
    index: int
    label: str
    variant: str
    icon: Optional[str] = None


@dataclass
class RowView:
    row_id: Any
    record: Any
    cells: List[Any]
    selected: bool = False
    actions: List[ActionView] = field(default_factory=list)


@dataclass
class TableView:
    mode: str                            # "loading", "empty" or "table"
    message: str = ""
    headers: List[HeaderCell] = field(default_factory=list)
    rows: List[RowView] = field(default_factory=list)
    page: int = 1
    total_pages: int = 0
    total_rows: int = 0
    page_size: int = DEFAULT_PAGE_SIZE
    selectable: bool = False
    has_actions: bool = False
    all_selected: bool = False

    @property
    def page_numbers(self) -> List[int]:
        return list(range(1, self.total_pages + 1))

    @property
    def show_pagination(self) -> bool:
        return self.total_pages > 1

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


# ── Helpers ──────────────────────────────────────────────────────────

def field_value(row, key: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(key)
    return getattr(row, key, None)


def row_id(row, index: int) -> Any:
    value = field_value(row, "id")
    if value is None:
        value = field_value(row, "_id")
    return index if value is None else value


def compare_values(a, b) -> int:
    """Native ordering; values that cannot be compared count as equal."""
    try:
        if a < b:
            return -1
        if a > b:
            return 1
    except TypeError:
        pass
    return 0


def as_rows(data) -> List[Any]:
    if isinstance(data, (list, tuple)):
        return list(data)
    return []


def prune_selection(selected: Iterable[Any], data) -> List[Any]:
    """Drop selected ids that no longer match a row of *data*."""
    present = [row_id(row, i) for i, row in enumerate(as_rows(data))]
    return [rid for rid in selected if rid in present]


# ── Component ────────────────────────────────────────────────────────

class DataTable:
    def __init__(
        self,
        columns: Sequence[Column],
        page_size: int = DEFAULT_PAGE_SIZE,
        on_row_click: Optional[Callable[[Any], Any]] = None,
        on_row_select: Optional[Callable[[List[Any]], Any]] = None,
        empty_message: str = EMPTY_MESSAGE,
    ):
        self.columns: List[Column] = list(columns)
        self.page_size = page_size
        self.on_row_click = on_row_click
        self.on_row_select = on_row_select
        self.empty_message = empty_message
        self.page = 1
        self.sort_key: Optional[str] = None
        self.sort_direction = SORT_ASC
        self._total_pages = 0

    # ── Configuration ────────────────────────────────────────────────

    @property
    def page_size(self) -> int:
        return self._page_size

    @page_size.setter
    def page_size(self, value: int) -> None:
        if int(value) < 1:
            raise ValueError("page_size must be at least 1")
        self._page_size = int(value)

    @property
    def selectable(self) -> bool:
        return self.on_row_select is not None

    @property
    def actions_column(self) -> Optional[Column]:
        return next((c for c in self.columns if c.actions is not None), None)

    @property
    def data_columns(self) -> List[Column]:
        return [c for c in self.columns if c.actions is None]

    def column(self, key: str) -> Optional[Column]:
        return next((c for c in self.columns if c.key == key), None)

    def set_columns(self, columns: Sequence[Column]) -> None:
        """Swap the column set; a different set resets page and sort."""
        columns = list(columns)
        if columns != self.columns:
            self.columns = columns
            self.reset()

    def reset(self) -> None:
        self.page = 1
        self.sort_key = None
        self.sort_direction = SORT_ASC

    def restore(self, page=None, sort_key: Optional[str] = None, direction: Optional[str] = None) -> None:
        """Re-establish state carried by a request; the page is clamped on render."""
        if page is not None:
            self.page = max(1, int(page))
        col = self.column(sort_key) if sort_key else None
        if col is not None and col.sortable:
            self.sort_key = sort_key
            self.sort_direction = SORT_DESC if direction == SORT_DESC else SORT_ASC

    # ── Sorting ──────────────────────────────────────────────────────

    def sort_by(self, key: str) -> None:
        col = self.column(key)
        if col is None or not col.sortable:
            return
        if self.sort_key == key and self.sort_direction == SORT_ASC:
            self.sort_direction = SORT_DESC
        else:
            self.sort_direction = SORT_ASC
        self.sort_key = key

    def next_sort(self, key: str) -> Tuple[str, str]:
        """The (key, direction) a click on *key* would produce."""
        if self.sort_key == key and self.sort_direction == SORT_ASC:
            return key, SORT_DESC
        return key, SORT_ASC

    def sorted_rows(self, data) -> List[Tuple[Any, Any]]:
        """(row id, row) pairs in display order."""
        indexed = [(row_id(row, i), row) for i, row in enumerate(as_rows(data))]
        if not self.sort_key:
            return indexed
        key = self.sort_key
        sign = 1 if self.sort_direction == SORT_ASC else -1
        return sorted(
            indexed,
            key=cmp_to_key(lambda a, b: sign * compare_values(field_value(a[1], key), field_value(b[1], key))),
        )

    # ── Pagination ───────────────────────────────────────────────────

    @property
    def total_pages(self) -> int:
        """Page count as of the last render."""
        return self._total_pages

    def _visible(self, data) -> List[Tuple[Any, Any]]:
        ordered = self.sorted_rows(data)
        self._total_pages = ceil(len(ordered) / self.page_size)
        self.page = min(max(self.page, 1), max(self._total_pages, 1))
        start = (self.page - 1) * self.page_size
        return ordered[start:start + self.page_size]

    def go_to_page(self, page: int) -> bool:
        if 1 <= page <= self._total_pages:
            self.page = page
            return True
        return False

    def next_page(self) -> bool:
        return self.go_to_page(self.page + 1)

    def prev_page(self) -> bool:
        return self.go_to_page(self.page - 1)

    # ── Rendering ────────────────────────────────────────────────────

    def render(self, data, loading: bool = False, selected: Iterable[Any] = ()) -> TableView:
        if loading:
            return TableView(mode="loading", message=LOADING_MESSAGE, page=self.page, page_size=self.page_size)

        rows = as_rows(data)
        if not rows:
            self._total_pages = 0
            self.page = 1
            return TableView(mode="empty", message=self.empty_message, page_size=self.page_size)

        chosen = list(selected or ())
        visible = self._visible(rows)
        headers = [
            HeaderCell(
                key=c.key,
                label=c.label,
                sortable=c.sortable,
                direction=self.sort_direction if c.key == self.sort_key else None,
            )
            for c in self.data_columns
        ]
        has_actions = self.actions_column is not None

        row_views = []
        for rid, record in visible:
            cells = []
            for c in self.data_columns:
                value = field_value(record, c.key)
                cells.append(c.render(value, record) if c.render else value)
            row_views.append(RowView(
                row_id=rid,
                record=record,
                cells=cells,
                selected=rid in chosen,
                actions=self._action_views(record) if has_actions else [],
            ))

        return TableView(
            mode="table",
            headers=headers,
            rows=row_views,
            page=self.page,
            total_pages=self._total_pages,
            total_rows=len(rows),
            page_size=self.page_size,
            selectable=self.selectable,
            has_actions=has_actions,
            all_selected=bool(row_views) and all(r.selected for r in row_views),
        )

    # ── Actions ──────────────────────────────────────────────────────

    def actions_for(self, row) -> List[RowAction]:
        col = self.actions_column
        if col is None:
            return []
        return list(col.actions.resolve(row) or [])

    def _action_views(self, row) -> List[ActionView]:
        views = []
        for i, action in enumerate(self.actions_for(row)):
            views.append(ActionView(
                index=i,
                label=str(action.label.resolve(row)),
                variant=action.variant.resolve(row) or "primary",
                icon=action.icon,
            ))
        return views

    def click_action(self, row, index: int) -> bool:
        """Run one row action. The row's own click handler is not invoked."""
        actions = self.actions_for(row)
        if not 0 <= index < len(actions):
            return False
        actions[index].on_click(row)
        return True

    def click_row(self, row) -> None:
        if self.on_row_click:
            self.on_row_click(row)

    # ── Selection ────────────────────────────────────────────────────

    def page_ids(self, data) -> List[Any]:
        return [rid for rid, _ in self._visible(as_rows(data))]

    def select_all(self, data, selected: Iterable[Any]) -> List[Any]:
        """
        Header checkbox: select exactly the current page's rows, or, when they
        are all selected already, deselect exactly those.
        """
        current = list(selected or ())
        if not self.on_row_select:
            return current
        ids = self.page_ids(data)
        if ids and all(i in current for i in ids):
            new = [i for i in current if i not in ids]
        else:
            new = ids
        self.on_row_select(new)
        return new

    def toggle_row(self, rid: Any, selected: Iterable[Any]) -> List[Any]:
        current = list(selected or ())
        if not self.on_row_select:
            return current
        if rid in current:
            new = [i for i in current if i != rid]
        else:
            new = current + [rid]
        self.on_row_select(new)
        return new
