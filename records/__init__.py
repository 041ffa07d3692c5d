"""
Vehicle service record models.

This package provides the data model and logic behind the service records:
- ServiceItem / VehicleRecord: the stored checklist entries and the record
- normalize_record: defaults for legacy and partial documents
- Editor: isolated edit sessions, field mutations, delete confirmation
- Report: printable HTML and CSV export
- Store: live snapshot subscriptions and CRUD (in-memory or YAML files)
- RecordsView: list-screen state that turns failures into messages
"""

from .catalog import (
    CHASSIS_SERVICES,
    ENGINE_SERVICES,
    SERVICE_FLAGS,
    ServiceCategory,
)
from .errors import AuthError, PersistenceError, RecordError, SubscriptionError
from .service_item import ServiceItem
from .record import VehicleRecord
from .normalizer import normalize_record
from .ordering import sort_records, timestamp_value
from .editor import (
    DeleteConfirmation,
    EditSession,
    Mutation,
    MutationKind,
    RecordEditor,
    begin_edit,
    build_patch,
    parse_field_path,
    set_field,
    toggle_service_flag,
)
from .report import csv_filename, format_timestamp, render_csv, render_print_html
from .store import MemoryRecordStore, YamlRecordStore, collection_path
from .identity import IdentityProvider
from .registration import blank_form, submit_record
from .listing import RecordsView, open_view

__all__ = [
    "CHASSIS_SERVICES",
    "ENGINE_SERVICES",
    "SERVICE_FLAGS",
    "ServiceCategory",
    "AuthError",
    "PersistenceError",
    "RecordError",
    "SubscriptionError",
    "ServiceItem",
    "VehicleRecord",
    "normalize_record",
    "sort_records",
    "timestamp_value",
    "DeleteConfirmation",
    "EditSession",
    "Mutation",
    "MutationKind",
    "RecordEditor",
    "begin_edit",
    "build_patch",
    "parse_field_path",
    "set_field",
    "toggle_service_flag",
    "csv_filename",
    "format_timestamp",
    "render_csv",
    "render_print_html",
    "MemoryRecordStore",
    "YamlRecordStore",
    "collection_path",
    "IdentityProvider",
    "blank_form",
    "submit_record",
    "RecordsView",
    "open_view",
]
