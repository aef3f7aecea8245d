"""Assignment, conflict and rota document models."""
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from .constraints import CoverageTarget
from .shift import AssignmentType, normalize_time, overlaps, weekday_name


@dataclass(frozen=True)
class Assignment:
    """
    One row of a daily rota.

    ``staff_id`` is None for an unfilled placeholder. ``shared`` marks a row
    that may overlap another shared row held by the same staff member;
    ``exclusive`` marks a do-not-split row. ``item_key`` names the work
    item the row was generated for; rows created by hand may have none.
    """
    staff_id: Optional[str]
    type: AssignmentType
    location: str
    date: date
    start_time: str
    end_time: str
    category: str = ""
    shared: bool = False
    exclusive: bool = False
    item_key: Optional[str] = None

    @property
    def is_gap(self) -> bool:
        return self.staff_id is None

    def overlaps(self, other: "Assignment") -> bool:
        """True if both rows fall on the same date with intersecting windows."""
        return self.date == other.date and overlaps(
            self.start_time, self.end_time, other.start_time, other.end_time
        )

    def clashes_with(self, other: "Assignment") -> bool:
        """True if holding both rows would double-book one person."""
        return self.overlaps(other) and not (self.shared and other.shared)

    def with_staff(self, staff_id: Optional[str]) -> "Assignment":
        return replace(self, staff_id=staff_id)

    def cell_key(self) -> "CellKey":
        return CellKey(
            kind=self.type.value,
            location=self.location,
            date=self.date,
            start_time=self.start_time,
            end_time=self.end_time,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "staff_id": self.staff_id,
            "type": self.type.value,
            "location": self.location,
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "category": self.category,
            "shared": self.shared,
            "exclusive": self.exclusive,
            "item_key": self.item_key,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Assignment":
        day = d["date"]
        return cls(
            staff_id=d.get("staff_id"),
            type=AssignmentType.from_string(d.get("type", "role")),
            location=d["location"],
            date=day if isinstance(day, date) else date.fromisoformat(day),
            start_time=normalize_time(d["start_time"]),
            end_time=normalize_time(d["end_time"]),
            category=d.get("category", ""),
            shared=bool(d.get("shared", False)),
            exclusive=bool(d.get("exclusive", False)),
            item_key=d.get("item_key"),
        )


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Conflict:
    """A problem found in a rota document."""
    type: str
    description: str
    severity: Severity
    location: Optional[str] = None
    staff_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "severity": self.severity.value,
            "location": self.location,
            "staff_id": self.staff_id,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Conflict":
        return cls(
            type=d["type"],
            description=d["description"],
            severity=Severity(d["severity"]),
            location=d.get("location"),
            staff_id=d.get("staff_id"),
        )


@dataclass(frozen=True)
class CellKey:
    """
    Stable identifier of one rota cell, used to key free-text overrides.

    Encoded as ``type-location-YYYY-MM-DD-start-end``. Cells that belong to
    a row kind rather than a location (``unavailable``, ``management``,
    ``dispensary`` notes) drop the location: ``type-YYYY-MM-DD-start-end``.
    Parsing works from the right so hyphenated location names survive a
    round trip.
    """
    kind: str
    date: date
    start_time: str
    end_time: str
    location: Optional[str] = None

    UNAVAILABLE = "unavailable"

    def encode(self) -> str:
        stamp = f"{self.date.isoformat()}-{self.start_time}-{self.end_time}"
        if self.location is None:
            return f"{self.kind}-{stamp}"
        return f"{self.kind}-{self.location}-{stamp}"

    @classmethod
    def unavailable(cls, day: date, start_time: str, end_time: str) -> "CellKey":
        return cls(kind=cls.UNAVAILABLE, date=day, start_time=start_time, end_time=end_time)

    @classmethod
    def parse(cls, key: str) -> "CellKey":
        parts = str(key).split("-")
        if len(parts) < 6 or not parts[0]:
            raise ValueError(f"Malformed cell key: {key!r}")
        kind = parts[0]
        year, month, day = parts[-5], parts[-4], parts[-3]
        start_time, end_time = parts[-2], parts[-1]
        middle = parts[1:-5]
        try:
            when = date(int(year), int(month), int(day))
        except ValueError:
            raise ValueError(f"Malformed date in cell key: {key!r}") from None
        if kind == cls.UNAVAILABLE and middle:
            raise ValueError(f"Unexpected location in cell key: {key!r}")
        return cls(
            kind=kind,
            date=when,
            start_time=start_time,
            end_time=end_time,
            location="-".join(middle) if middle else None,
        )

    def __str__(self) -> str:
        return self.encode()


class RotaStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


def new_rota_id(day: date) -> str:
    return f"rota-{day.isoformat()}-{uuid.uuid4().hex[:8]}"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass
class RotaDocument:
    """The rota for one calendar date; seven of these make a week."""

    date: date
    week_start: date
    id: str = ""
    assignments: List[Assignment] = field(default_factory=list)
    coverage: List[CoverageTarget] = field(default_factory=list)
    conflicts: List[Conflict] = field(default_factory=list)
    status: RotaStatus = RotaStatus.DRAFT
    included: bool = True

    # Provenance
    generated_by: str = ""
    generated_at: Optional[datetime] = None
    published_by: Optional[str] = None
    published_at: Optional[datetime] = None
    publish_date: Optional[str] = None
    publish_time: Optional[str] = None
    published_set_id: Optional[str] = None
    last_edited: Optional[datetime] = None

    cell_overrides: Dict[CellKey, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.id:
            self.id = new_rota_id(self.date)
        if isinstance(self.status, str):
            self.status = RotaStatus(self.status)

    @property
    def weekday(self) -> str:
        return weekday_name(self.date)

    @property
    def is_draft(self) -> bool:
        return self.status == RotaStatus.DRAFT

    @property
    def gaps(self) -> List[Assignment]:
        return [a for a in self.assignments if a.is_gap]

    def assignments_for(self, staff_id: str) -> List[Assignment]:
        return [a for a in self.assignments if a.staff_id == staff_id]

    def staff_ids(self) -> List[str]:
        seen: List[str] = []
        for a in self.assignments:
            if a.staff_id is not None and a.staff_id not in seen:
                seen.append(a.staff_id)
        return seen

    def flat_overrides(self) -> Dict[str, str]:
        """Overrides keyed by their encoded cell key, as the presentation layer reads them."""
        return {key.encode(): text for key, text in self.cell_overrides.items()}

    def set_overrides(self, overrides: Mapping[str, str]) -> None:
        """Replace the override map from encoded keys; every key must fall on this date."""
        parsed: Dict[CellKey, str] = {}
        for raw, text in overrides.items():
            key = CellKey.parse(raw)
            if key.date != self.date:
                raise ValueError(f"Cell key {raw!r} does not belong to {self.date.isoformat()}")
            parsed[key] = str(text)
        self.cell_overrides = parsed

    def to_dataframe(self) -> pd.DataFrame:
        """Convert assignments to a DataFrame."""
        columns = ["date", "type", "location", "start_time", "end_time", "staff_id", "category"]
        if not self.assignments:
            return pd.DataFrame(columns=columns)
        rows = [
            {
                "date": a.date.isoformat(),
                "type": a.type.value,
                "location": a.location,
                "start_time": a.start_time,
                "end_time": a.end_time,
                "staff_id": a.staff_id,
                "category": a.category,
            }
            for a in self.assignments
        ]
        return pd.DataFrame(rows, columns=columns)

    def summary(self) -> Dict[str, Any]:
        """Get summary dictionary for display."""
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "status": self.status.value,
            "assignments": len(self.assignments),
            "gaps": len(self.gaps),
            "errors": sum(1 for c in self.conflicts if c.severity == Severity.ERROR),
            "warnings": sum(1 for c in self.conflicts if c.severity == Severity.WARNING),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "week_start": self.week_start.isoformat(),
            "status": self.status.value,
            "included": self.included,
            "assignments": [a.to_dict() for a in self.assignments],
            "coverage": [t.to_dict() for t in self.coverage],
            "conflicts": [c.to_dict() for c in self.conflicts],
            "generated_by": self.generated_by,
            "generated_at": _iso(self.generated_at),
            "published_by": self.published_by,
            "published_at": _iso(self.published_at),
            "publish_date": self.publish_date,
            "publish_time": self.publish_time,
            "published_set_id": self.published_set_id,
            "last_edited": _iso(self.last_edited),
            "cell_overrides": self.flat_overrides(),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "RotaDocument":
        doc = cls(
            id=d["id"],
            date=date.fromisoformat(d["date"]),
            week_start=date.fromisoformat(d["week_start"]),
            status=RotaStatus(d.get("status", "draft")),
            included=bool(d.get("included", True)),
            assignments=[Assignment.from_dict(a) for a in d.get("assignments", [])],
            coverage=[CoverageTarget.from_dict(t) for t in d.get("coverage", [])],
            conflicts=[Conflict.from_dict(c) for c in d.get("conflicts", [])],
            generated_by=d.get("generated_by", ""),
            generated_at=_parse_dt(d.get("generated_at")),
            published_by=d.get("published_by"),
            published_at=_parse_dt(d.get("published_at")),
            publish_date=d.get("publish_date"),
            publish_time=d.get("publish_time"),
            published_set_id=d.get("published_set_id"),
            last_edited=_parse_dt(d.get("last_edited")),
        )
        doc.set_overrides(d.get("cell_overrides", {}))
        return doc
