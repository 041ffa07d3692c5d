"""ServiceItem dataclass for checklist entries."""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class ServiceItem:
    """A checklist entry. Flags are independent; an item can be urgent and later."""

    type: str = ""
    done: bool = False
    urgent: bool = False
    later: bool = False

    @property
    def active_flags(self):
        """Labels of the flags that are set, in done/urgent/later order."""
        return [
            label
            for label, value in (("Done", self.done), ("Urgent", self.urgent), ("Later", self.later))
            if value
        ]

    @property
    def is_flagged(self) -> bool:
        return self.done or self.urgent or self.later

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "done": self.done,
            "urgent": self.urgent,
            "later": self.later,
        }
