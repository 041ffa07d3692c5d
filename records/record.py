"""VehicleRecord - the aggregate for one vehicle service entry."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .catalog import BRAKE_CORNERS, ServiceCategory
from .service_item import ServiceItem

# Stored (camelCase) key -> attribute name for plain scalar fields
SCALAR_FIELDS = {
    "regNumber": "reg_number",
    "brand": "brand",
    "model": "model",
    "year": "year",
    "kilometers": "kilometers",
    "gearbox": "gearbox",
    "motivePower": "motive_power",
    "driveMode": "drive_mode",
    "additionalInfo": "additional_info",
}

READ_ONLY_FIELDS = ("id", "userId", "timestamp")

# Nested fields, edited through their parts rather than replaced whole
STRUCTURED_FIELDS = ("engineServices", "chassisServices", "vehicleScanning", "brakePercentages")


def empty_brakes() -> Dict[str, Any]:
    return {corner: "" for corner in BRAKE_CORNERS}


@dataclass
class VehicleRecord:
    """One vehicle inspection/service record as held in memory."""

    id: Optional[str] = None
    reg_number: Any = ""
    brand: Any = ""
    model: Any = ""
    year: Any = ""
    kilometers: Any = ""
    gearbox: Any = ""
    motive_power: Any = ""
    drive_mode: Any = ""
    engine_services: List[ServiceItem] = field(default_factory=list)
    chassis_services: List[ServiceItem] = field(default_factory=list)
    vehicle_scanning: List[ServiceItem] = field(default_factory=lambda: [ServiceItem()])
    brake_percentages: Dict[str, Any] = field(default_factory=empty_brakes)
    additional_info: Any = ""
    user_id: Optional[str] = None
    timestamp: Any = None
    # Stored keys this model does not know about, written back untouched
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def scan(self) -> ServiceItem:
        """The single vehicle scanning entry."""
        return self.vehicle_scanning[0]

    def services(self, category: ServiceCategory) -> List[ServiceItem]:
        if category is ServiceCategory.ENGINE:
            return self.engine_services
        return self.chassis_services

    def get_scalar(self, key: str) -> Any:
        """Look up a scalar by its stored key, falling back to extra fields."""
        attr = SCALAR_FIELDS.get(key)
        if attr is not None:
            return getattr(self, attr)
        return self.extra.get(key)

    def to_dict(self, include_id: bool = False) -> Dict[str, Any]:
        """Serialize to the stored document format (camelCase keys)."""
        d: Dict[str, Any] = {}
        if include_id:
            d["id"] = self.id
        d.update(self.extra)
        for key, attr in SCALAR_FIELDS.items():
            d[key] = getattr(self, attr)
        d["engineServices"] = [s.to_dict() for s in self.engine_services]
        d["chassisServices"] = [s.to_dict() for s in self.chassis_services]
        d["vehicleScanning"] = [s.to_dict() for s in self.vehicle_scanning]
        d["brakePercentages"] = dict(self.brake_percentages)
        d["userId"] = self.user_id
        d["timestamp"] = self.timestamp
        return d
