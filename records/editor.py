"""Edit sessions, field mutations and delete confirmation for vehicle records."""

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from .catalog import BRAKE_CORNERS, SERVICE_FLAGS, ServiceCategory
from .errors import PersistenceError
from .normalizer import catalog_services
from .record import READ_ONLY_FIELDS, SCALAR_FIELDS, STRUCTURED_FIELDS, VehicleRecord

logger = logging.getLogger(__name__)

BRAKE_PREFIX = "brakePercentages."
SCAN_TYPE_PATH = "vehicleScanning.type"
SCANNING = "vehicleScanning"


class MutationKind(Enum):
    """What part of the working record a mutation addresses."""

    SET_SCALAR = 1
    SET_BRAKE_CORNER = 2
    SET_SCAN_TYPE = 3


@dataclass(frozen=True)
class Mutation:
    """A single field change. `target` is the field name or brake corner."""

    kind: MutationKind
    target: str
    value: Any


def parse_field_path(field_path: str, value: Any) -> Mutation:
    """
    Map a form field name to a mutation.

    Only `brakePercentages.<corner>` and `vehicleScanning.type` are nested;
    every other name, dotted or not, is a flat top-level field.
    """
    if field_path.startswith(BRAKE_PREFIX):
        corner = field_path[len(BRAKE_PREFIX):]
        if corner in BRAKE_CORNERS:
            return Mutation(MutationKind.SET_BRAKE_CORNER, corner, value)
    if field_path == SCAN_TYPE_PATH:
        return Mutation(MutationKind.SET_SCAN_TYPE, "type", value)
    return Mutation(MutationKind.SET_SCALAR, field_path, value)


class EditSession:
    """An isolated working copy of one record."""

    def __init__(self, record: VehicleRecord):
        self.record_id = record.id
        self.working = copy.deepcopy(record)
        # Records created before the catalog lists existed
        for category in ServiceCategory:
            services = self.working.services(category)
            if not services:
                services.extend(catalog_services(category))


def begin_edit(record: VehicleRecord) -> EditSession:
    return EditSession(record)


def apply_mutation(session: EditSession, mutation: Mutation) -> EditSession:
    record = session.working
    if mutation.kind is MutationKind.SET_BRAKE_CORNER:
        record.brake_percentages[mutation.target] = mutation.value
    elif mutation.kind is MutationKind.SET_SCAN_TYPE:
        record.vehicle_scanning[0].type = mutation.value
    else:
        name = mutation.target
        if name in READ_ONLY_FIELDS:
            raise ValueError(f"Field '{name}' cannot be edited")
        if name in STRUCTURED_FIELDS:
            raise ValueError(f"Field '{name}' cannot be set as a whole; set its parts instead")
        attr = SCALAR_FIELDS.get(name)
        if attr is not None:
            setattr(record, attr, mutation.value)
        else:
            record.extra[name] = mutation.value
    return session


def set_field(session: EditSession, field_path: str, value: Any) -> EditSession:
    """Set one field on the working copy, addressed by its form name."""
    return apply_mutation(session, parse_field_path(field_path, value))


def _category(category: Union[ServiceCategory, str]) -> ServiceCategory:
    if isinstance(category, ServiceCategory):
        return category
    try:
        return ServiceCategory(category)
    except ValueError:
        raise ValueError(f"Unknown service category '{category}'") from None


def toggle_service_flag(
    session: EditSession,
    category: Union[ServiceCategory, str],
    index: int,
    flag: str,
) -> EditSession:
    """
    Flip one done/urgent/later flag on a service or the scan entry.

    Out-of-range indexes are ignored.
    """
    if flag not in SERVICE_FLAGS:
        raise ValueError(f"Unknown service flag '{flag}'")
    if category == SCANNING:
        services = session.working.vehicle_scanning
    else:
        services = session.working.services(_category(category))
    if index < 0 or index >= len(services):
        return session
    item = services[index]
    setattr(item, flag, not getattr(item, flag))
    return session


def build_patch(session: EditSession) -> Dict[str, Any]:
    """The full edited document, every field included, for a whole overwrite."""
    return copy.deepcopy(session.working.to_dict())


class RecordEditor:
    """Holds at most one edit session and writes it back to the store."""

    def __init__(self, store, scope_key: str):
        self.store = store
        self.scope_key = scope_key
        self.session: Optional[EditSession] = None

    @property
    def editing(self) -> bool:
        return self.session is not None

    def begin_edit(self, record: VehicleRecord) -> EditSession:
        self.session = begin_edit(record)
        return self.session

    def _require_session(self) -> EditSession:
        if self.session is None:
            raise RuntimeError("No record is being edited")
        return self.session

    def set_field(self, field_path: str, value: Any) -> EditSession:
        return set_field(self._require_session(), field_path, value)

    def toggle_service_flag(self, category, index: int, flag: str) -> EditSession:
        return toggle_service_flag(self._require_session(), category, index, flag)

    def commit(self) -> Dict[str, Any]:
        """
        Overwrite the stored record with the working copy.

        On failure the session stays open so the user can retry or cancel.
        """
        session = self._require_session()
        patch = build_patch(session)
        try:
            self.store.update(self.scope_key, session.record_id, patch)
        except PersistenceError:
            logger.warning("Saving record %s failed", session.record_id, exc_info=True)
            raise
        logger.info("Saved record %s", session.record_id)
        self.session = None
        return patch

    def cancel(self) -> None:
        self.session = None


class DeleteConfirmation:
    """Idle -> pending(record id) -> Idle. One pending record at a time."""

    def __init__(self):
        self.pending_id: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.pending_id is not None

    def request(self, record_id: str) -> None:
        self.pending_id = record_id

    def cancel(self) -> None:
        self.pending_id = None

    def confirm(self, store, scope_key: str) -> Optional[str]:
        """Delete the pending record. Returns its id, or None when idle."""
        if self.pending_id is None:
            return None
        record_id = self.pending_id
        try:
            store.delete(scope_key, record_id)
        except PersistenceError:
            logger.warning("Deleting record %s failed", record_id, exc_info=True)
            raise
        logger.info("Deleted record %s", record_id)
        self.pending_id = None
        return record_id
