"""Flask web application for vehicle service records."""

import logging
from datetime import date
from pathlib import Path

from flask import Flask, Response, render_template, request, redirect, url_for, flash

# Add parent directory to path for record imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from records.catalog import (
    BRAKE_CORNERS,
    ENUM_FIELDS,
    SERVICE_FLAGS,
    ServiceCategory,
    option_matches,
)
from records.config import load_settings
from records.editor import SCANNING, begin_edit, build_patch, set_field, toggle_service_flag
from records.errors import AuthError, PersistenceError
from records.identity import IdentityProvider
from records.listing import RecordsView, open_view
from records.normalizer import normalize_record
from records.registration import blank_form, submit_record
from records.report import csv_filename, format_timestamp
from records.store import YamlRecordStore

settings = load_settings()
logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")

app = Flask(__name__)
app.secret_key = settings.secret_key

# Form field names for text inputs and radios
TEXT_FIELDS = [
    "regNumber",
    "kilometers",
    "brand",
    "model",
    "year",
    "gearbox",
    "motivePower",
    "driveMode",
    "vehicleScanning.type",
    "additionalInfo",
] + [f"brakePercentages.{corner}" for corner in BRAKE_CORNERS]

FLAG_GROUPS = [ServiceCategory.ENGINE.value, ServiceCategory.CHASSIS.value, SCANNING]


def get_view() -> RecordsView:
    """The records view for this process, signed in on first use."""
    view = app.config.get("RECORDS_VIEW")
    if view is None:
        store = YamlRecordStore(settings.data_dir)
        identity = IdentityProvider(settings.identity_file)
        view = open_view(store, settings.scope_key, identity, settings.auth_token)
        app.config["RECORDS_VIEW"] = view
    return view


def apply_form(session, form) -> None:
    """Copy submitted form values onto an edit session."""
    for name in TEXT_FIELDS:
        if name in form:
            set_field(session, name, form.get(name, ""))
    record = session.working
    groups = {
        ServiceCategory.ENGINE.value: record.engine_services,
        ServiceCategory.CHASSIS.value: record.chassis_services,
        SCANNING: record.vehicle_scanning,
    }
    for group in FLAG_GROUPS:
        for index, item in enumerate(groups[group]):
            for flag in SERVICE_FLAGS:
                checked = f"{group}-{index}-{flag}" in form
                if getattr(item, flag) != checked:
                    toggle_service_flag(session, group, index, flag)


def format_value(value):
    """Format a scalar for display."""
    if value is None or value == "":
        return "—"
    return str(value)


# Register template filters
app.jinja_env.filters["format_value"] = format_value
app.jinja_env.filters["format_timestamp"] = format_timestamp
app.jinja_env.globals.update(
    ENUM_FIELDS=ENUM_FIELDS,
    BRAKE_CORNERS=BRAKE_CORNERS,
    SERVICE_FLAGS=SERVICE_FLAGS,
    ServiceCategory=ServiceCategory,
    option_matches=option_matches,
)


@app.route("/", methods=["GET"])
def register_form():
    """Vehicle service registration form."""
    view = get_view()
    record = normalize_record(blank_form())
    return render_template("register.html", view=view, record=record, active_tab="register")


@app.route("/", methods=["POST"])
def register():
    """Handle registration form submission."""
    view = get_view()
    session = begin_edit(normalize_record(blank_form()))
    apply_form(session, request.form)

    try:
        record_id = submit_record(
            view.store, view.scope_key, view.identity.current_user_id, build_patch(session)
        )
    except (AuthError, PersistenceError) as e:
        flash(f"Error saving data: {e}", "error")
        # Keep what the user entered
        return render_template(
            "register.html", view=view, record=session.working, active_tab="register"
        )

    flash(f"Service registration successful! Document ID: {record_id}", "success")
    return redirect(url_for("register_form"))


@app.route("/records")
def records():
    """All registered records, newest first."""
    view = get_view()
    pending = view.get(view.pending_delete) if view.pending_delete else None
    return render_template(
        "records.html",
        view=view,
        records=view.records,
        pending=pending,
        active_tab="records",
    )


@app.route("/records/<record_id>/edit", methods=["GET"])
def edit_form(record_id: str):
    """Edit form, always started fresh from the stored record."""
    view = get_view()
    # Any earlier session was abandoned by navigating away
    view.cancel_edit()
    if not view.begin_edit(record_id):
        flash(view.message, "error")
        return redirect(url_for("records"))
    session = view.session
    return render_template(
        "edit.html",
        view=view,
        record_id=record_id,
        record=session.working,
        active_tab="records",
    )


@app.route("/records/<record_id>/edit", methods=["POST"])
def save_edit(record_id: str):
    """Apply the edit form and save. A failed save stays on the form."""
    view = get_view()
    session = view.session
    if session is None or session.record_id != record_id:
        flash("This record is no longer being edited.", "error")
        return redirect(url_for("records"))

    try:
        apply_form(session, request.form)
    except ValueError as e:
        flash(str(e), "error")
        return redirect(url_for("edit_form", record_id=record_id))

    if not view.save():
        flash(view.message, "error")
        return render_template(
            "edit.html",
            view=view,
            record_id=record_id,
            record=session.working,
            active_tab="records",
        )

    flash(view.message, "success")
    return redirect(url_for("records"))


@app.route("/records/<record_id>/cancel", methods=["POST"])
def cancel_edit(record_id: str):
    get_view().cancel_edit()
    return redirect(url_for("records"))


@app.route("/records/<record_id>/delete", methods=["POST"])
def request_delete(record_id: str):
    """First step of deleting: ask for confirmation."""
    get_view().request_delete(record_id)
    return redirect(url_for("records"))


@app.route("/records/delete/confirm", methods=["POST"])
def confirm_delete():
    view = get_view()
    if view.confirm_delete():
        flash(view.message, "success")
    elif view.pending_delete:
        flash(view.message, "error")
    return redirect(url_for("records"))


@app.route("/records/delete/cancel", methods=["POST"])
def cancel_delete():
    get_view().cancel_delete()
    return redirect(url_for("records"))


@app.route("/records/export.csv")
def export_csv():
    """Download every displayed record as CSV."""
    view = get_view()
    text = view.export_csv()
    if text is None:
        flash(view.notice, "info")
        return redirect(url_for("records"))
    return Response(
        text.encode("utf-8"),
        mimetype="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{csv_filename(date.today())}"'
        },
    )


@app.route("/records/<record_id>/print")
def print_record(record_id: str):
    """Standalone printable document; opens the print dialog on load."""
    view = get_view()
    html = view.print_record(record_id)
    if html is None:
        flash(view.message, "error")
        return redirect(url_for("records"))
    return Response(html, mimetype="text/html")


if __name__ == "__main__":
    # Run with debug mode for development
    # Using 5001 to avoid conflict with macOS AirPlay Receiver on 5000
    app.run(debug=True, host="0.0.0.0", port=5001)
