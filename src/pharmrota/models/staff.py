"""Staff member model (pharmacists and technicians)."""
from dataclasses import dataclass
from typing import Optional, Tuple

from .shift import normalize_day, normalize_days, normalize_time, overlaps


@dataclass(frozen=True)
class UnavailabilityRule:
    """A recurring weekly window during which a staff member cannot work."""

    weekday: str
    start_time: str
    end_time: str

    def __post_init__(self):
        object.__setattr__(self, "weekday", normalize_day(self.weekday))
        object.__setattr__(self, "start_time", normalize_time(self.start_time))
        object.__setattr__(self, "end_time", normalize_time(self.end_time))

    def blocks(self, weekday: str, start_time: str, end_time: str) -> bool:
        """True if this rule overlaps the given window on the given weekday."""
        return self.weekday == weekday and overlaps(
            self.start_time, self.end_time, start_time, end_time
        )

    def to_dict(self) -> dict:
        return {"weekday": self.weekday, "start_time": self.start_time, "end_time": self.end_time}

    @classmethod
    def from_dict(cls, d: dict) -> "UnavailabilityRule":
        return cls(
            weekday=d.get("weekday", d.get("day", "")),
            start_time=d.get("start_time", d.get("startTime", "")),
            end_time=d.get("end_time", d.get("endTime", "")),
        )


@dataclass(frozen=True)
class StaffMember:
    """
    A pharmacist or technician as supplied by the reference data.

    ``working_days`` empty means the working pattern was never configured;
    such staff are treated as available every day.
    """

    id: str
    name: str
    role: str = "technician"
    band: str = ""
    trained_locations: Tuple[str, ...] = ()
    training: Tuple[str, ...] = ()
    warfarin_trained: bool = False
    working_days: Tuple[str, ...] = ()
    unavailability: Tuple[UnavailabilityRule, ...] = ()
    is_default: bool = False
    primary_location: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "id", str(self.id).strip())
        object.__setattr__(self, "name", str(self.name).strip())
        object.__setattr__(self, "trained_locations", tuple(self.trained_locations))
        object.__setattr__(self, "training", tuple(self.training))
        object.__setattr__(self, "working_days", tuple(normalize_days(self.working_days)))
        object.__setattr__(self, "unavailability", tuple(self.unavailability))

    def has_training(self, tag: Optional[str]) -> bool:
        """True if the staff member holds the given training tag (case-insensitive)."""
        if not tag:
            return True
        key = tag.strip().lower()
        if key in ("warfarin", "warfarintrained") and self.warfarin_trained:
            return True
        return key in {t.strip().lower() for t in self.training}

    def is_trained_for(self, location: str, directorate: Optional[str] = None) -> bool:
        """True if the location (or its directorate) is in the trained set."""
        trained = {t.strip().lower() for t in self.trained_locations}
        if location.strip().lower() in trained:
            return True
        return bool(directorate) and directorate.strip().lower() in trained

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "band": self.band,
            "trained_locations": list(self.trained_locations),
            "training": list(self.training),
            "warfarin_trained": self.warfarin_trained,
            "working_days": list(self.working_days),
            "unavailability": [r.to_dict() for r in self.unavailability],
            "is_default": self.is_default,
            "primary_location": self.primary_location,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "StaffMember":
        """Create from dictionary."""
        return cls(
            id=str(d.get("id", "")),
            name=d.get("name", ""),
            role=str(d.get("role", "technician")),
            band=str(d.get("band", "") or ""),
            trained_locations=tuple(d.get("trained_locations", ()) or ()),
            training=tuple(d.get("training", ()) or ()),
            warfarin_trained=bool(d.get("warfarin_trained", False)),
            working_days=tuple(d.get("working_days", ()) or ()),
            unavailability=tuple(
                UnavailabilityRule.from_dict(r) for r in d.get("unavailability", ()) or ()
            ),
            is_default=bool(d.get("is_default", False)),
            primary_location=d.get("primary_location"),
        )
