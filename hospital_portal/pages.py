"""
Portal page definitions: what each role can open, where its data comes from,
how the table is laid out and which row actions and forms it offers.
"""

import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from string import Formatter
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import quote

from hospital_portal.client import ApiClient, CancelToken, as_collection
from hospital_portal.config import DEFAULT_PAGE_SIZE, EMPTY_MESSAGE
from hospital_portal.errors import ApiError, SessionExpired
from hospital_portal.formatting import (
    filter_by_search,
    format_currency,
    format_date,
    format_error_message,
    format_time,
    status_badge_text,
    truncate,
)
from hospital_portal.forms import require_valid
from hospital_portal.stats import count_by, count_where, total_amount
from hospital_portal.table import Column, RowAction, row_id

FEEDBACK_CATEGORIES = ("complaint", "suggestion", "other")
MESSAGE_CATEGORIES = ("clinical", "scheduling", "urgent", "other")
MESSAGE_PRIORITIES = ("low", "medium", "high")
COMPLAINT_STATUSES = ("received", "reviewing", "resolved", "rejected")
BADGES = ("⭐ Top Performer", "🌟 Patient Favorite", "🏆 Most Improved")
EXTEND_DAYS = 30
PRESCRIPTION_FIELDS = ("medicine", "dosage", "frequency", "duration")


@dataclass
class PageContext:
    """Runtime collaborators handed to column and action builders."""
    client: ApiClient
    notify: Callable[[str, str], None]      # (kind, text) -> transient message
    changed: bool = False                   # set once an action succeeded


@dataclass
class PageForm:
    fields: List[Tuple[str, str]]           # (name, label)
    endpoint: str                           # may name fields, e.g. "/complaints/{complaintId}"
    title: str
    success: str
    required: Tuple[str, ...] = ()
    email: Tuple[str, ...] = ()
    phone: Tuple[str, ...] = ()
    choices: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    method: str = "POST"
    body: Optional[Callable[[Dict[str, str]], Dict[str, Any]]] = None

    @property
    def path_fields(self) -> List[str]:
        return [name for _text, name, _spec, _conv in Formatter().parse(self.endpoint) if name]


@dataclass
class Page:
    name: str
    path: str
    role: str
    title: str
    sources: Dict[str, str]
    table_source: Optional[str]             # None for form-only pages
    columns: Callable[[PageContext], List[Column]]
    collection_key: Optional[str] = None
    search_keys: Tuple[str, ...] = ()
    summary: Optional[Callable[[Dict[str, Any]], List[tuple]]] = None
    form: Optional[PageForm] = None
    empty_message: str = EMPTY_MESSAGE
    page_size: int = DEFAULT_PAGE_SIZE


@dataclass
class PageData:
    payloads: Dict[str, Any]
    rows: List[Any]
    cards: List[tuple] = field(default_factory=list)


# ── Field helpers ────────────────────────────────────────────────────

def record_id(row) -> Any:
    """Backend id of *row*, resolved the same way the table identifies rows."""
    return row_id(row, None)


def name_of(value, row=None) -> str:
    """Nested user references come back either populated or as a bare id."""
    if isinstance(value, dict):
        return value.get("name") or value.get("email") or "N/A"
    return str(value) if value else "N/A"


def short_date(value, row=None) -> str:
    return format_date(value, "short")


def time_cell(value, row=None) -> str:
    return format_time(value)


def money(value, row=None) -> str:
    return format_currency(value)


def status_cell(value, row=None) -> str:
    return status_badge_text(value)


def text_cell(value, row=None) -> str:
    return truncate(value, 60)


def active_cell(is_deleted, row=None) -> str:
    return "Inactive" if is_deleted else "Active"


def valid_to_cell(value, row=None) -> str:
    return format_date(value, "short") if value else "No Expiry"


def expiry_cell(is_expired, row=None) -> str:
    return "Expired" if is_expired else "Active"


def no_columns(ctx: PageContext) -> List[Column]:
    return []


def is_status(row, *statuses) -> bool:
    return str(row.get("status") or "").lower() in statuses


def status_count(stats, status: str) -> int:
    """Count for *status* in a ``{"byStatus": [{"_id": ..., "count": ...}]}`` payload."""
    if not isinstance(stats, dict):
        return 0
    for entry in stats.get("byStatus") or []:
        if isinstance(entry, dict) and entry.get("_id") == status:
            return int(entry.get("count") or 0)
    return 0


def stat_value(stats, key: str, default=0):
    return stats.get(key, default) if isinstance(stats, dict) else default


# ── Actions ──────────────────────────────────────────────────────────

def backend_action(ctx: PageContext, call: Callable[[ApiClient, Any], Any], success, failure: str):
    """
    Wrap a backend call as a row-action handler.

    Failures become a transient error message and leave ``ctx.changed``
    untouched, so the table is only refreshed after a confirmed success.
    """
    def on_click(row):
        try:
            call(ctx.client, row)
        except SessionExpired:
            raise
        except ApiError as e:
            print(f"[ERROR] {failure}: {e}", file=sys.stderr)
            ctx.notify("error", f"{failure}. {format_error_message(e)}")
            return
        ctx.changed = True
        ctx.notify("success", success(row) if callable(success) else success)

    return on_click


def toggle_user_action(ctx: PageContext, noun: str) -> RowAction:
    return RowAction(
        label=lambda r: "Activate" if r.get("isDeleted") else "Deactivate",
        variant=lambda r: "success" if r.get("isDeleted") else "danger",
        on_click=backend_action(
            ctx,
            lambda c, r: c.put(f"/auth/admin/users/{record_id(r)}/toggle"),
            lambda r: f"{noun} {'activated' if r.get('isDeleted') else 'deactivated'} successfully!",
            f"Failed to update {noun.lower()} status",
        ),
    )


# ── Patient pages ────────────────────────────────────────────────────

def appointment_columns(ctx: PageContext) -> List[Column]:
    def actions(row):
        if not is_status(row, "scheduled", "pending"):
            return []
        return [RowAction(
            label="Cancel",
            variant="danger",
            on_click=backend_action(
                ctx,
                lambda c, r: c.delete(f"/appointments/{record_id(r)}"),
                "Appointment cancelled successfully!",
                "Failed to cancel appointment",
            ),
        )]

    return [
        Column("doctor", "Doctor", render=name_of),
        Column("date", "Date", sortable=True, render=short_date),
        Column("time", "Time", render=time_cell),
        Column("reason", "Reason", render=text_cell),
        Column("status", "Status", sortable=True, render=status_cell),
        Column("actions", "Actions", actions=actions),
    ]


def patient_payment_columns(ctx: PageContext) -> List[Column]:
    def actions(row):
        if not is_status(row, "pending"):
            return []
        return [RowAction(
            label="Pay Now",
            variant="success",
            on_click=backend_action(
                ctx,
                lambda c, r: c.put(f"/payments/{record_id(r)}/pay"),
                "Payment completed successfully!",
                "Payment failed",
            ),
        )]

    return [
        Column("description", "Description", render=text_cell),
        Column("amount", "Amount", sortable=True, render=money),
        Column("status", "Status", sortable=True, render=status_cell),
        Column("createdAt", "Date", sortable=True, render=short_date),
        Column("actions", "Actions", actions=actions),
    ]


def report_columns(ctx: PageContext) -> List[Column]:
    return [
        Column("title", "Title", sortable=True),
        Column("doctor", "Doctor", render=name_of),
        Column("diagnosis", "Diagnosis", render=text_cell),
        Column("createdAt", "Date", sortable=True, render=short_date),
    ]


def patient_dashboard_summary(p: Dict[str, Any]) -> List[tuple]:
    appointments = as_collection(p.get("appointments"))
    payments = as_collection(p.get("payments"))
    return [
        ("Upcoming appointments", count_where(appointments, status="scheduled")),
        ("Medical reports", len(as_collection(p.get("reports")))),
        ("Pending payments", count_where(payments, status="pending")),
        ("Amount due", format_currency(total_amount(payments, "amount", where={"status": "pending"}))),
    ]


def patient_payments_summary(p: Dict[str, Any]) -> List[tuple]:
    payments = as_collection(p.get("payments"))
    return [
        ("Total paid", format_currency(total_amount(payments, "amount", where={"status": "paid"}))),
        ("Outstanding", format_currency(total_amount(payments, "amount", where={"status": "pending"}))),
    ]


# ── Doctor pages ─────────────────────────────────────────────────────

def assigned_patient_columns(ctx: PageContext) -> List[Column]:
    def actions(row):
        if not is_status(row, "scheduled"):
            return []
        return [RowAction(
            label="Mark Completed",
            variant="success",
            on_click=backend_action(
                ctx,
                lambda c, r: c.put(f"/appointments/{record_id(r)}", json={"status": "completed"}),
                "Appointment marked as completed!",
                "Failed to update appointment",
            ),
        )]

    return [
        Column("patient", "Patient", render=name_of),
        Column("date", "Date", sortable=True, render=short_date),
        Column("time", "Time", render=time_cell),
        Column("reason", "Reason", render=text_cell),
        Column("status", "Status", sortable=True, render=status_cell),
        Column("actions", "Actions", actions=actions),
    ]


def duty_columns(ctx: PageContext) -> List[Column]:
    return [
        Column("date", "Date", sortable=True, render=short_date),
        Column("shift", "Shift", sortable=True, render=status_cell),
        Column("department", "Department", sortable=True),
        Column("notes", "Notes", render=text_cell),
    ]


def doctor_dashboard_summary(p: Dict[str, Any]) -> List[tuple]:
    today = as_collection(p.get("today"))
    return [
        ("Today's appointments", len(today)),
        ("Completed today", count_by(today, "status").get("completed", 0)),
        ("Reports written", len(as_collection(p.get("reports")))),
        ("Upcoming duties", len(as_collection(p.get("duties")))),
    ]


def doctor_report_columns(ctx: PageContext) -> List[Column]:
    return [
        Column("patient", "Patient", render=name_of),
        Column("diagnosis", "Diagnosis", sortable=True, render=text_cell),
        Column("createdAt", "Written", sortable=True, render=short_date),
    ]


def report_body(values: Dict[str, str]) -> Dict[str, Any]:
    """Fold the flat prescription fields into the ``prescriptions`` list the backend expects."""
    prescription = {k: values[k] for k in PRESCRIPTION_FIELDS if k in values}
    body = {k: v for k, v in values.items() if k not in PRESCRIPTION_FIELDS}
    body["prescriptions"] = [prescription] if prescription else []
    return body


def message_columns(ctx: PageContext) -> List[Column]:
    return [
        Column("subject", "Subject", sortable=True, render=text_cell),
        Column("category", "Category", sortable=True, render=lambda v, r: status_badge_text(v or "other")),
        Column("priority", "Priority", sortable=True, render=lambda v, r: status_badge_text(v or "medium")),
        Column("status", "Status", sortable=True, render=lambda v, r: status_badge_text(v or "unread")),
        Column("createdAt", "Sent", sortable=True, render=lambda v, r: format_date(v, "datetime") if v else "-"),
    ]


def messages_summary(p: Dict[str, Any]) -> List[tuple]:
    messages = as_collection(p.get("messages"))
    return [
        ("Total messages", len(messages)),
        ("Unread messages", count_where(messages, status="unread")),
        ("High priority", count_where(messages, priority="high")),
    ]


# ── Admin pages ──────────────────────────────────────────────────────

def patient_admin_columns(ctx: PageContext) -> List[Column]:
    return [
        Column("name", "Patient Name", sortable=True),
        Column("email", "Email", sortable=True),
        Column("createdAt", "Registered", sortable=True, render=short_date),
        Column("isDeleted", "Status", render=active_cell),
        Column("actions", "Actions", actions=lambda r: [toggle_user_action(ctx, "Patient")]),
    ]


def doctor_admin_columns(ctx: PageContext) -> List[Column]:
    return [
        Column("name", "Doctor Name", sortable=True),
        Column("email", "Email", sortable=True),
        Column("specialization", "Specialization", sortable=True),
        Column("isDeleted", "Status", render=active_cell),
        Column("actions", "Actions", actions=lambda r: [toggle_user_action(ctx, "Doctor")]),
    ]


def payment_admin_columns(ctx: PageContext) -> List[Column]:
    def actions(row):
        if not is_status(row, "pending"):
            return []
        return [RowAction(
            label="Mark Paid",
            variant="success",
            on_click=backend_action(
                ctx,
                lambda c, r: c.put(f"/payments/{record_id(r)}", json={"status": "paid"}),
                "Payment updated successfully!",
                "Failed to update payment",
            ),
        )]

    return [
        Column("patient", "Patient", render=name_of),
        Column("description", "Description", render=text_cell),
        Column("amount", "Amount", sortable=True, render=money),
        Column("status", "Status", sortable=True, render=status_cell),
        Column("createdAt", "Date", sortable=True, render=short_date),
        Column("actions", "Actions", actions=actions),
    ]


def complaint_columns(ctx: PageContext) -> List[Column]:
    mark_read = RowAction(
        label="Mark Read",
        variant="secondary",
        on_click=backend_action(
            ctx,
            lambda c, r: c.put(f"/complaints/{record_id(r)}", json={"status": "read"}),
            "Complaint marked as read.",
            "Failed to update complaint",
        ),
    )
    delete = RowAction(
        label="Delete",
        variant="danger",
        on_click=backend_action(
            ctx,
            lambda c, r: c.delete(f"/complaints/{record_id(r)}"),
            "Complaint deleted successfully!",
            "Failed to delete complaint",
        ),
    )

    return [
        Column("patient", "From", render=name_of),
        Column("category", "Category", sortable=True, render=status_cell),
        Column("message", "Message", render=text_cell),
        Column("status", "Status", sortable=True, render=status_cell),
        Column("createdAt", "Received", sortable=True, render=short_date),
        Column("actions", "Actions",
               actions=lambda r: [mark_read, delete] if is_status(r, "unread") else [delete]),
    ]


def duty_admin_columns(ctx: PageContext) -> List[Column]:
    delete = RowAction(
        label="Delete",
        variant="danger",
        on_click=backend_action(
            ctx,
            lambda c, r: c.delete(f"/duties/{record_id(r)}"),
            "Duty deleted successfully!",
            "Failed to delete duty",
        ),
    )
    return [
        Column("doctor", "Doctor", render=name_of),
        Column("date", "Date", sortable=True, render=short_date),
        Column("shift", "Shift", sortable=True, render=status_cell),
        Column("department", "Department", sortable=True),
        Column("actions", "Actions", actions=[delete]),
    ]


def recommendation_columns(ctx: PageContext) -> List[Column]:
    def extend_body(row):
        return {"validTo": (datetime.now(timezone.utc) + timedelta(days=EXTEND_DAYS)).isoformat()}

    extend = RowAction(
        label="Extend",
        variant="secondary",
        on_click=backend_action(
            ctx,
            lambda c, r: c.put(f"/recommendations/{record_id(r)}", json=extend_body(r)),
            "Recommendation updated successfully!",
            "Failed to update recommendation",
        ),
    )
    expire = RowAction(
        label="Expire",
        variant="danger",
        on_click=backend_action(
            ctx,
            lambda c, r: c.put(f"/recommendations/{record_id(r)}", json={"isExpired": True}),
            "Recommendation updated successfully!",
            "Failed to update recommendation",
        ),
    )

    return [
        Column("doctorId", "Doctor", render=name_of),
        Column("badge", "Badge", sortable=True),
        Column("reason", "Reason", render=text_cell),
        Column("validFrom", "Valid From", sortable=True, render=short_date),
        Column("validTo", "Valid To", sortable=True, render=valid_to_cell),
        Column("isExpired", "Status", render=expiry_cell),
        Column("actions", "Actions", actions=lambda r: [] if r.get("isExpired") else [extend, expire]),
    ]


def recommendations_summary(p: Dict[str, Any]) -> List[tuple]:
    recs = as_collection(p.get("recommendations"))
    return [
        ("Active recommendations", sum(1 for r in recs if isinstance(r, dict) and not r.get("isExpired"))),
        ("Top performers", count_where(recs, badge=BADGES[0])),
        ("Patient favorites", count_where(recs, badge=BADGES[1])),
    ]


def admin_dashboard_summary(p: Dict[str, Any]) -> List[tuple]:
    return [
        ("Total patients", len(as_collection(p.get("patients"), "patients"))),
        ("Total doctors", len(as_collection(p.get("doctors"), "doctors"))),
        ("Total revenue", format_currency(stat_value(p.get("payment_stats"), "totalRevenue"))),
        ("Pending payments", status_count(p.get("payment_stats"), "pending")),
        ("Unread complaints", stat_value(p.get("complaint_stats"), "unread")),
        ("Active duties", stat_value(p.get("duty_stats"), "totalActive")),
    ]


def admin_patients_summary(p: Dict[str, Any]) -> List[tuple]:
    patients = as_collection(p.get("patients"), "patients")
    return [
        ("Total patients", len(patients)),
        ("Active", sum(1 for r in patients if isinstance(r, dict) and not r.get("isDeleted"))),
        ("With unpaid bills", status_count(p.get("payment_stats"), "pending")),
        ("Scheduled appointments", len(as_collection(p.get("scheduled")))),
    ]


def admin_payments_summary(p: Dict[str, Any]) -> List[tuple]:
    stats = p.get("payment_stats")
    return [
        ("Total revenue", format_currency(stat_value(stats, "totalRevenue"))),
        ("Pending", status_count(stats, "pending")),
        ("Paid", status_count(stats, "paid")),
    ]


# ── Registry ─────────────────────────────────────────────────────────

PAGES: List[Page] = [
    Page(
        name="patient_dashboard", path="/patient", role="patient", title="Patient Dashboard",
        sources={"appointments": "/appointments/patient", "reports": "/reports/patient", "payments": "/payments"},
        table_source="appointments", columns=appointment_columns, summary=patient_dashboard_summary,
        empty_message="No appointments yet", page_size=5,
    ),
    Page(
        name="patient_appointments", path="/patient/appointments", role="patient", title="My Appointments",
        sources={"appointments": "/appointments/patient"},
        table_source="appointments", columns=appointment_columns, search_keys=("reason", "status"),
        empty_message="No appointments found",
        form=PageForm(
            title="Book Consultation", endpoint="/appointments",
            fields=[("doctorId", "Doctor ID"), ("date", "Date"), ("time", "Time"), ("reason", "Reason")],
            required=("doctorId", "date", "time", "reason"),
            success="Appointment booked successfully!",
        ),
    ),
    Page(
        name="patient_payments", path="/patient/payments", role="patient", title="My Payments",
        sources={"payments": "/payments"},
        table_source="payments", columns=patient_payment_columns, summary=patient_payments_summary,
        empty_message="No payments found",
    ),
    Page(
        name="patient_reports", path="/patient/reports", role="patient", title="Medical Reports",
        sources={"reports": "/reports/patient"},
        table_source="reports", columns=report_columns, search_keys=("title", "diagnosis"),
        empty_message="No reports available",
    ),
    Page(
        name="patient_feedback", path="/patient/feedback", role="patient", title="Complaints & Suggestions",
        sources={}, table_source=None, columns=no_columns,
        form=PageForm(
            title="Send Feedback", endpoint="/complaints",
            fields=[("category", "Category"), ("message", "Message")],
            required=("category", "message"), choices={"category": FEEDBACK_CATEGORIES},
            success="Thank you for your feedback!",
        ),
    ),
    Page(
        name="doctor_dashboard", path="/doctor", role="doctor", title="Doctor Dashboard",
        sources={
            "today": "/appointments/doctor?range=today",
            "reports": "/reports/doctor",
            "duties": "/duties/doctor?range=upcoming",
        },
        table_source="today", columns=assigned_patient_columns, summary=doctor_dashboard_summary,
        empty_message="No appointments today", page_size=5,
    ),
    Page(
        name="doctor_patients", path="/doctor/patients", role="doctor", title="Assigned Patients",
        sources={"appointments": "/appointments/doctor?range=all"},
        table_source="appointments", columns=assigned_patient_columns, search_keys=("reason", "status"),
        empty_message="No assigned patients",
    ),
    Page(
        name="doctor_duties", path="/doctor/duties", role="doctor", title="Duty Schedule",
        sources={"duties": "/duties/doctor?range=upcoming"},
        table_source="duties", columns=duty_columns, empty_message="No upcoming duties",
    ),
    Page(
        name="doctor_reports", path="/doctor/reports", role="doctor", title="Write Report",
        sources={"reports": "/reports/doctor"},
        table_source="reports", columns=doctor_report_columns, search_keys=("diagnosis",),
        empty_message="No reports written yet",
        form=PageForm(
            title="Medical Report", endpoint="/reports", body=report_body,
            fields=[("appointmentId", "Appointment ID"), ("diagnosis", "Diagnosis"),
                    ("medicine", "Medicine name"), ("dosage", "Dosage"), ("frequency", "Frequency"),
                    ("duration", "Duration"), ("notes", "Notes")],
            required=("appointmentId", "diagnosis") + PRESCRIPTION_FIELDS,
            success="Medical report created successfully!",
        ),
    ),
    Page(
        name="doctor_messages", path="/doctor/messages", role="doctor", title="Message Admin",
        sources={"messages": "/messages/sent"},
        table_source="messages", columns=message_columns, search_keys=("subject", "category"),
        summary=messages_summary, empty_message="No messages sent yet",
        form=PageForm(
            title="Compose Message", endpoint="/messages",
            fields=[("subject", "Subject"), ("body", "Message"), ("category", "Category"), ("priority", "Priority")],
            required=("subject", "body"),
            choices={"category": MESSAGE_CATEGORIES, "priority": MESSAGE_PRIORITIES},
            success="Message sent to admin successfully!",
        ),
    ),
    Page(
        name="admin_dashboard", path="/admin", role="admin", title="Admin Dashboard",
        sources={
            "patients": "/auth/admin/patients",
            "doctors": "/auth/admin/doctors",
            "payment_stats": "/payments/admin/stats",
            "complaint_stats": "/complaints/admin/stats",
            "duty_stats": "/duties/admin/stats",
            "complaints": "/complaints/admin?status=unread&limit=5",
        },
        table_source="complaints", columns=complaint_columns, summary=admin_dashboard_summary,
        empty_message="No unread complaints", page_size=5,
    ),
    Page(
        name="admin_patients", path="/admin/patients", role="admin", title="Manage Patients",
        sources={
            "patients": "/auth/admin/patients",
            "payment_stats": "/payments/admin/stats",
            "scheduled": "/appointments/admin?status=scheduled",
        },
        table_source="patients", collection_key="patients", columns=patient_admin_columns,
        search_keys=("name", "email"), summary=admin_patients_summary, empty_message="No patients found",
        form=PageForm(
            title="Add Patient", endpoint="/auth/register-patient",
            fields=[("name", "Full name"), ("email", "Email")],
            required=("name", "email"), email=("email",),
            success="Patient created successfully!",
        ),
    ),
    Page(
        name="admin_doctors", path="/admin/doctors", role="admin", title="Manage Doctors",
        sources={"doctors": "/auth/admin/doctors"},
        table_source="doctors", collection_key="doctors", columns=doctor_admin_columns,
        search_keys=("name", "email", "specialization"), empty_message="No doctors found",
        form=PageForm(
            title="Add Doctor", endpoint="/auth/register-doctor",
            fields=[("name", "Full name"), ("email", "Email"), ("specialization", "Specialization"),
                    ("phone", "Phone")],
            required=("name", "email", "specialization"), email=("email",), phone=("phone",),
            success="Doctor created successfully!",
        ),
    ),
    Page(
        name="admin_payments", path="/admin/payments", role="admin", title="Payments",
        sources={"payments": "/payments/admin", "payment_stats": "/payments/admin/stats"},
        table_source="payments", columns=payment_admin_columns, search_keys=("description", "status"),
        summary=admin_payments_summary, empty_message="No payments found",
    ),
    Page(
        name="admin_complaints", path="/admin/complaints", role="admin", title="Complaint Inbox",
        sources={"complaints": "/complaints/admin"},
        table_source="complaints", columns=complaint_columns, search_keys=("category", "message"),
        empty_message="Inbox is empty",
        form=PageForm(
            title="Reply to Complaint", endpoint="/complaints/{complaintId}", method="PUT",
            fields=[("complaintId", "Complaint ID"), ("status", "Status"), ("adminNotes", "Admin notes")],
            required=("complaintId", "status"), choices={"status": COMPLAINT_STATUSES},
            success="Complaint updated successfully!",
        ),
    ),
    Page(
        name="admin_duties", path="/admin/duties", role="admin", title="Assign Duties",
        sources={"duties": "/duties/admin"},
        table_source="duties", columns=duty_admin_columns, search_keys=("department", "shift"),
        empty_message="No duties assigned",
        form=PageForm(
            title="Assign Duty", endpoint="/duties",
            fields=[("doctorId", "Doctor ID"), ("date", "Date"), ("shift", "Shift"), ("department", "Department")],
            required=("doctorId", "date", "shift", "department"),
            success="Duty assigned successfully!",
        ),
    ),
    Page(
        name="admin_recommend", path="/admin/recommend", role="admin", title="Doctor Recommendations",
        sources={"recommendations": "/recommendations/admin"},
        table_source="recommendations", columns=recommendation_columns, search_keys=("reason", "badge"),
        summary=recommendations_summary, empty_message="No recommendations",
        form=PageForm(
            title="Recommend Doctor", endpoint="/recommendations",
            fields=[("doctorId", "Doctor ID"), ("badge", "Badge"), ("reason", "Reason for award"),
                    ("validFrom", "Valid from"), ("validTo", "Valid to (optional)")],
            required=("doctorId", "badge", "reason", "validFrom"), choices={"badge": BADGES},
            success="Doctor recommended successfully!",
        ),
    ),
]

PAGES_BY_NAME = {p.name: p for p in PAGES}


def pages_for_role(role: str) -> List[Page]:
    role = str(role or "").lower()
    return [p for p in PAGES if p.role == role]


def find_page(name: str) -> Optional[Page]:
    return PAGES_BY_NAME.get(name)


# ── Loading / submitting ─────────────────────────────────────────────

def load_page(page: Page, client: ApiClient, search: Optional[str] = None,
              cancel: Optional[CancelToken] = None) -> PageData:
    """Fetch every source of *page* together and derive the table rows and cards."""
    payloads = client.fetch_all(page.sources, cancel=cancel)
    rows = as_collection(payloads.get(page.table_source), page.collection_key) if page.table_source else []
    if search and page.search_keys:
        rows = filter_by_search(rows, search, page.search_keys)
    cards = page.summary(payloads) if page.summary else []
    return PageData(payloads=payloads, rows=rows, cards=cards)


def submit_form(page: Page, data: Dict[str, str], client: ApiClient) -> str:
    """Validate locally, then send. Raises ValidationError before any request is made."""
    form = page.form
    if form is None:
        raise ValueError(f"Page {page.name} has no form")
    values = {name: str(data.get(name) or "").strip() for name, _label in form.fields}
    require_valid(values, required=form.required, email=form.email, phone=form.phone, choices=form.choices)

    in_path = form.path_fields
    path = form.endpoint.format(**{k: quote(values[k], safe="") for k in in_path})
    payload = {k: v for k, v in values.items() if v and k not in in_path}
    if form.body is not None:
        payload = form.body(payload)
    client.request(form.method, path, json=payload)
    return form.success
