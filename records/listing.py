"""
State behind the records screen.

Consumes full snapshots from the store, keeps the newest-first list, and
owns the single edit session and the single pending delete. Every failure
is turned into a message string here; callers never see exceptions.
"""

import logging
from typing import Any, Dict, List, Optional

from .editor import DeleteConfirmation, EditSession, RecordEditor
from .errors import AuthError, PersistenceError, SubscriptionError
from .normalizer import normalize_record
from .ordering import sort_records
from .record import VehicleRecord
from .report import render_csv, render_print_html
from .store import Subscription

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = "User not authenticated. Cannot fetch records."
NOTHING_TO_EXPORT = "No records to export."


class RecordsView:
    """Live list of records plus the edit and delete state for one screen."""

    def __init__(self, store, scope_key: str, identity):
        self.store = store
        self.scope_key = scope_key
        self.identity = identity
        self.records: List[VehicleRecord] = []
        self.loading = True
        self.auth_error: Optional[str] = None
        self.error: Optional[str] = None
        self.message: Optional[str] = None
        self.notice: Optional[str] = None
        self.editor = RecordEditor(store, scope_key)
        self.deletion = DeleteConfirmation()
        self._subscription: Optional[Subscription] = None

    # -------------------------------------------------------------------------
    # Subscription
    # -------------------------------------------------------------------------

    def start(self) -> bool:
        """Subscribe to the scope. Returns False when no user is signed in."""
        if not self.identity.current_user_id:
            self.auth_error = NOT_AUTHENTICATED
            self.loading = False
            return False
        self.stop()
        self._subscription = self.store.subscribe(
            self.scope_key, self.on_snapshot, self.on_error
        )
        return True

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def on_snapshot(self, raw_records: List[Dict[str, Any]]) -> None:
        # Replaces the list wholesale; the edit session holds its own copy
        self.records = sort_records(normalize_record(r) for r in raw_records)
        self.loading = False
        self.error = None

    def on_error(self, error: SubscriptionError) -> None:
        self.error = str(error)
        self.loading = False
        self._subscription = None

    def get(self, record_id: str) -> Optional[VehicleRecord]:
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    @property
    def session(self) -> Optional[EditSession]:
        return self.editor.session

    def begin_edit(self, record_id: str) -> bool:
        record = self.get(record_id)
        if record is None:
            self.message = f"Record '{record_id}' not found."
            return False
        self.editor.begin_edit(record)
        self.message = None
        return True

    def set_field(self, field_path: str, value: Any) -> bool:
        try:
            self.editor.set_field(field_path, value)
        except (RuntimeError, ValueError) as e:
            self.message = str(e)
            return False
        return True

    def toggle_service_flag(self, category, index: int, flag: str) -> bool:
        try:
            self.editor.toggle_service_flag(category, index, flag)
        except (RuntimeError, ValueError) as e:
            self.message = str(e)
            return False
        return True

    def save(self) -> bool:
        """Write the edit session. On failure the session stays open."""
        if not self.editor.editing:
            self.message = "No record is being edited."
            return False
        try:
            self.editor.commit()
        except PersistenceError as e:
            self.message = f"Error saving record: {e}"
            return False
        self.message = "Record updated successfully!"
        return True

    def cancel_edit(self) -> None:
        self.editor.cancel()
        self.message = None

    # -------------------------------------------------------------------------
    # Deleting
    # -------------------------------------------------------------------------

    @property
    def pending_delete(self) -> Optional[str]:
        return self.deletion.pending_id

    def request_delete(self, record_id: str) -> None:
        self.deletion.request(record_id)

    def confirm_delete(self) -> bool:
        try:
            deleted = self.deletion.confirm(self.store, self.scope_key)
        except PersistenceError as e:
            self.message = f"Error deleting record: {e}"
            return False
        if deleted is None:
            return False
        self.message = "Record deleted successfully!"
        return True

    def cancel_delete(self) -> None:
        self.deletion.cancel()

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    def export_csv(self) -> Optional[str]:
        """CSV for the displayed records, or None with a notice when empty."""
        if not self.records:
            self.notice = NOTHING_TO_EXPORT
            return None
        self.notice = None
        return render_csv(self.records)

    def print_record(self, record_id: str, auto_print: bool = True) -> Optional[str]:
        record = self.get(record_id)
        if record is None:
            self.message = f"Record '{record_id}' not found."
            return None
        return render_print_html(record, auto_print=auto_print)


def open_view(store, scope_key: str, identity, token: Optional[str] = None) -> RecordsView:
    """Sign in, then start a view. Auth failures end up in `view.auth_error`."""
    view = RecordsView(store, scope_key, identity)
    try:
        identity.sign_in(token)
    except AuthError as e:
        logger.error("Sign-in failed: %s", e)
        view.auth_error = f"Authentication failed: {e}"
        view.loading = False
        return view
    view.start()
    return view
