"""Turn raw stored documents into VehicleRecord objects with defaults filled."""

from typing import Any, Dict, List, Optional

from .catalog import BRAKE_CORNERS, ServiceCategory
from .record import (
    READ_ONLY_FIELDS,
    SCALAR_FIELDS,
    STRUCTURED_FIELDS,
    VehicleRecord,
    empty_brakes,
)
from .service_item import ServiceItem

_KNOWN_KEYS = set(SCALAR_FIELDS) | set(READ_ONLY_FIELDS) | set(STRUCTURED_FIELDS)


def default_scan_item() -> ServiceItem:
    return ServiceItem(type="", done=False, urgent=False, later=False)


def catalog_services(category: ServiceCategory) -> List[ServiceItem]:
    """Fresh, all-unflagged service items for every catalog entry."""
    return [ServiceItem(type=t) for t in category.catalog]


def _parse_item(dct: Any) -> Optional[ServiceItem]:
    if not isinstance(dct, dict):
        return None
    item_type = dct.get("type")
    return ServiceItem(
        type="" if item_type is None else str(item_type),
        done=bool(dct.get("done")),
        urgent=bool(dct.get("urgent")),
        later=bool(dct.get("later")),
    )


def _parse_services(value: Any) -> List[ServiceItem]:
    # Passed through as stored; no re-sync against the catalog
    if not isinstance(value, list):
        return []
    items = [_parse_item(v) for v in value]
    return [i for i in items if i is not None]


def _parse_scanning(value: Any) -> List[ServiceItem]:
    if isinstance(value, list) and value:
        item = _parse_item(value[0])
        if item is not None:
            return [item]
    return [default_scan_item()]


def _parse_brakes(value: Any) -> Dict[str, Any]:
    brakes = empty_brakes()
    if isinstance(value, dict):
        for corner in BRAKE_CORNERS:
            stored = value.get(corner)
            if stored is not None:
                brakes[corner] = stored
    return brakes


def normalize_record(raw: Any) -> VehicleRecord:
    """
    Build a VehicleRecord from a raw stored document.

    Total over any input: brake corners default to '', the scan list always
    ends up with exactly one entry, additionalInfo defaults to '', and
    missing scalars become ''. Engine and chassis lists are kept as stored.
    """
    dct: Dict[str, Any] = raw if isinstance(raw, dict) else {}

    scalars = {}
    for key, attr in SCALAR_FIELDS.items():
        value = dct.get(key)
        scalars[attr] = "" if value is None else value

    record_id = dct.get("id")
    return VehicleRecord(
        id=None if record_id is None else str(record_id),
        engine_services=_parse_services(dct.get("engineServices")),
        chassis_services=_parse_services(dct.get("chassisServices")),
        vehicle_scanning=_parse_scanning(dct.get("vehicleScanning")),
        brake_percentages=_parse_brakes(dct.get("brakePercentages")),
        user_id=dct.get("userId"),
        timestamp=dct.get("timestamp"),
        extra={k: v for k, v in dct.items() if k not in _KNOWN_KEYS},
        **scalars,
    )
