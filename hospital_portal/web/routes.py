"""
Flask route handlers for the portal pages.
"""

import sys
from urllib.parse import urlencode

from flask import flash, g, jsonify, redirect, render_template, request, session

from hospital_portal.client import ApiClient
from hospital_portal.errors import ApiError, SessionExpired, ValidationError
from hospital_portal.formatting import format_error_message
from hospital_portal.forms import validate
from hospital_portal.pages import PAGES, PageContext, load_page, pages_for_role, submit_form
from hospital_portal.rbac import check_access, home_for_role
from hospital_portal.session import SessionGate
from hospital_portal.storage import SessionCookieStore
from hospital_portal.table import DataTable

# Set once the stored token has been checked in this browser session
VERIFIED_KEY = "_verified"


def table_state():
    """Page, sort and search parameters carried in the query string."""
    args = request.values
    try:
        page_no = int(args.get("page", 1))
    except ValueError:
        page_no = 1
    return {
        "page": page_no,
        "sort": args.get("sort") or None,
        "dir": args.get("dir") or None,
        "q": (args.get("q") or "").strip(),
    }


def state_url(path, state, **overrides):
    params = {k: v for k, v in {**state, **overrides}.items() if v not in (None, "")}
    if params.get("page") == 1:
        del params["page"]
    query = urlencode(params)
    return f"{path}?{query}" if query else path


def register_routes(app):
    """Register the login, portal page and utility routes on the Flask *app*."""

    # ── Session per request ──────────────────────────────────────────

    @app.before_request
    def load_session():
        client = ApiClient(app.config["API_BASE_URL"], session=app.extensions["portal_http"])
        gate = SessionGate(SessionCookieStore(session), client)
        gate.on_expired(lambda: session.pop(VERIFIED_KEY, None))
        if session.get(VERIFIED_KEY):
            gate.mark_ready()
        else:
            gate.start()
            session[VERIFIED_KEY] = True
        g.gate = gate
        g.client = client

    @app.context_processor
    def inject_identity():
        gate = g.get("gate")
        identity = gate.identity if gate is not None else None
        return {
            "identity": identity,
            "nav_pages": pages_for_role(identity.role) if identity else [],
        }

    # ── Health ───────────────────────────────────────────────────────

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({
            "service": "Hospital Portal",
            "status": "running",
            "backend": app.config["API_BASE_URL"],
        })

    # ── Auth ─────────────────────────────────────────────────────────

    @app.route("/", methods=["GET", "POST"])
    def login():
        gate = g.gate
        if request.method == "GET":
            if gate.is_authenticated:
                return redirect(home_for_role(gate.identity.role))
            return render_template("login.html", errors={}, values={})

        values = {"email": request.form.get("email", "").strip(), "password": request.form.get("password", "")}
        errors = validate(values, required=("email", "password"))
        if errors:
            return render_template("login.html", errors=errors, values=values), 400

        result = gate.login(values["email"], values["password"])
        if not result.success:
            return render_template("login.html", errors={}, values=values, message=result.message), 401

        session[VERIFIED_KEY] = True
        return redirect(home_for_role(result.user.role))

    @app.route("/logout", methods=["POST"])
    def logout():
        g.gate.logout()
        flash("You have been logged out.", "success")
        return redirect("/")

    # ── Portal pages ─────────────────────────────────────────────────

    def guard(page):
        decision = check_access(g.gate, page.path, page.role)
        if not decision.allowed:
            return redirect(decision.redirect)
        return None

    def render_page(page, form_errors=None, form_values=None, status=200):
        state = table_state()
        ctx = PageContext(client=g.client, notify=lambda kind, text: flash(text, kind))
        table = DataTable(page.columns(ctx), page_size=page.page_size, empty_message=page.empty_message)
        table.restore(page=state["page"], sort_key=state["sort"], direction=state["dir"])

        try:
            data = load_page(page, g.client, search=state["q"])
        except SessionExpired:
            raise
        except ApiError as e:
            print(f"[ERROR] Loading {page.name} failed: {e}", file=sys.stderr)
            return render_template(
                "page.html", page=page, view=None, cards=[], state=state,
                error=f"Failed to load data. {format_error_message(e)}",
                retry_url=state_url(page.path, state),
                form_errors=form_errors or {}, form_values=form_values or {},
            ), 502

        view = table.render(data.rows)
        state["page"] = view.page

        def sort_url(key):
            sort_key, direction = table.next_sort(key)
            return state_url(page.path, state, sort=sort_key, dir=direction, page=1)

        def page_url(n):
            return state_url(page.path, state, page=n)

        return render_template(
            "page.html", page=page, view=view, cards=data.cards, state=state, error=None,
            sort_url=sort_url, page_url=page_url,
            form_errors=form_errors or {}, form_values=form_values or {},
        ), status

    def make_views(page):
        def show():
            denied = guard(page)
            if denied:
                return denied
            return render_page(page)

        def act():
            denied = guard(page)
            if denied:
                return denied
            state = table_state()
            back = state_url(page.path, state)
            ctx = PageContext(client=g.client, notify=lambda kind, text: flash(text, kind))
            table = DataTable(page.columns(ctx), page_size=page.page_size)
            try:
                data = load_page(page, g.client, search=state["q"])
            except SessionExpired:
                raise
            except ApiError as e:
                flash(f"Failed to load data. {format_error_message(e)}", "error")
                return redirect(back)

            wanted = request.form.get("row_id", "")
            row = next((r for rid, r in table.sorted_rows(data.rows) if str(rid) == wanted), None)
            if row is None:
                flash("That record is no longer available.", "error")
                return redirect(back)
            try:
                index = int(request.form.get("action", "-1"))
            except ValueError:
                index = -1
            if not table.click_action(row, index):
                flash("Unknown action.", "error")
            return redirect(back)

        def create():
            denied = guard(page)
            if denied:
                return denied
            try:
                message = submit_form(page, request.form, g.client)
            except ValidationError as e:
                return render_page(page, form_errors=e.errors, form_values=request.form.to_dict(), status=400)
            except SessionExpired:
                raise
            except ApiError as e:
                flash(f"Failed to save. {format_error_message(e)}", "error")
                return render_page(page, form_values=request.form.to_dict(), status=e.status or 502)
            flash(message, "success")
            return redirect(page.path)

        return show, act, create

    for page in PAGES:
        show, act, create = make_views(page)
        app.add_url_rule(page.path, endpoint=page.name, view_func=show, methods=["GET"])
        app.add_url_rule(f"{page.path}/action", endpoint=f"{page.name}_action", view_func=act, methods=["POST"])
        if page.form is not None:
            app.add_url_rule(f"{page.path}/new", endpoint=f"{page.name}_new", view_func=create, methods=["POST"])

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(SessionExpired)
    def session_expired(e):
        flash("Your session has expired. Please log in again.", "error")
        return redirect("/")

    @app.errorhandler(404)
    def not_found(e):
        return render_template("error.html", code=404, message="Page not found"), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return render_template("error.html", code=405, message="Method not allowed"), 405

    @app.errorhandler(500)
    def internal_error(e):
        return render_template("error.html", code=500, message="Internal server error"), 500
