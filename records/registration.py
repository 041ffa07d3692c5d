"""New record submission."""

import copy
import logging
from typing import Any, Dict, Optional

from .catalog import ServiceCategory
from .errors import AuthError, PersistenceError
from .normalizer import catalog_services, default_scan_item
from .record import SCALAR_FIELDS, empty_brakes

logger = logging.getLogger(__name__)


def blank_form() -> Dict[str, Any]:
    """Empty registration form with every catalog service unflagged."""
    form: Dict[str, Any] = {key: "" for key in SCALAR_FIELDS}
    for category in ServiceCategory:
        form[category.value] = [s.to_dict() for s in catalog_services(category)]
    form["vehicleScanning"] = [default_scan_item().to_dict()]
    form["brakePercentages"] = empty_brakes()
    return form


def submit_record(store, scope_key: str, user_id: Optional[str], form: Dict[str, Any]) -> str:
    """Store a filled-in form for `user_id` and return the new record id."""
    if not user_id:
        raise AuthError("User not authenticated. Please sign in again.")
    data = copy.deepcopy(form)
    data["userId"] = user_id
    try:
        return store.create(scope_key, data)
    except PersistenceError:
        logger.warning("Registering record for %s failed", user_id, exc_info=True)
        raise
