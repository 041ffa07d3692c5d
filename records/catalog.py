"""Fixed service catalog and option enumerations for vehicle records."""

from enum import Enum
from typing import Tuple

ENGINE_SERVICES: Tuple[str, ...] = (
    "Oil change",
    "Oil filter change",
    "Air filter change",
    "AC filter change",
    "Oil seal replacement",
    "Belt replacement",
    "Water pump replacement",
    "Thermostat replacement",
    "Coolant hose replacement",
    "Drive pulley replacement",
    "Engine mount replacement",
    "Spark plug replacement",
    "Fuel injector repair",
    "Fuel injector replacement",
    "Throttle body repair",
)

CHASSIS_SERVICES: Tuple[str, ...] = (
    "Shock absorber replacement",
    "Lower arm replacement",
    "Rack end replacement",
    "Ball joint replacement",
    "Front brake repair",
    "Front brake replacement",
    "Rear brake repair",
    "Rear brake replacement",
)


class ServiceCategory(Enum):
    """Service lists on a record, valued by their stored key."""

    ENGINE = "engineServices"
    CHASSIS = "chassisServices"

    @property
    def catalog(self) -> Tuple[str, ...]:
        if self is ServiceCategory.ENGINE:
            return ENGINE_SERVICES
        return CHASSIS_SERVICES

    @property
    def label(self) -> str:
        return "Engine Services" if self is ServiceCategory.ENGINE else "Chassis Services"


SERVICE_FLAGS: Tuple[str, ...] = ("done", "urgent", "later")

GEARBOX_OPTIONS: Tuple[str, ...] = ("Auto", "Manual")
MOTIVE_POWER_OPTIONS: Tuple[str, ...] = ("Petrol", "Diesel", "Gas", "Hybrid", "PHEV", "HEV")
DRIVE_MODE_OPTIONS: Tuple[str, ...] = ("Rear", "Front", "4x4")

# Record field -> (label, options)
ENUM_FIELDS = {
    "gearbox": ("Gearbox", GEARBOX_OPTIONS),
    "motivePower": ("Motive Power", MOTIVE_POWER_OPTIONS),
    "driveMode": ("Drive Mode", DRIVE_MODE_OPTIONS),
}

# Stored key -> label, in print/grid order
BRAKE_CORNERS = {
    "frontLeft": "Front Left",
    "frontRight": "Front Right",
    "rearLeft": "Rear Left",
    "rearRight": "Rear Right",
}


def option_matches(option: str, value) -> bool:
    """Compare an enum option to a stored value, ignoring whitespace.

    Older forms stored the drive mode as "4 x 4".
    """
    if value is None:
        return False
    return "".join(str(value).split()) == "".join(option.split())

