"""Duty requirements, clinic slots, ad hoc role requests and the work items built from them."""
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from .constraints import CoverageTarget
from .schedule import Assignment
from .shift import DAY_END, DAY_START, AssignmentType, normalize_day, normalize_days, normalize_time


@dataclass(frozen=True)
class WorkItem:
    """One thing the generator must staff on one date."""
    key: str
    type: AssignmentType
    location: str
    category: str
    start_time: str
    end_time: str
    min_staff: int
    ideal_staff: int
    difficulty: int = 5
    training_type: Optional[str] = None
    requires_warfarin: bool = False
    do_not_split: bool = False
    shared: bool = False
    preferred_staff: Tuple[str, ...] = ()
    directorate: Optional[str] = None

    def assignment_for(self, staff_id: Optional[str], on_date: date) -> Assignment:
        return Assignment(
            staff_id=staff_id,
            type=self.type,
            location=self.location,
            date=on_date,
            start_time=self.start_time,
            end_time=self.end_time,
            category=self.category,
            shared=self.shared,
            exclusive=self.do_not_split,
            item_key=self.key,
        )

    def coverage_target(self) -> CoverageTarget:
        return CoverageTarget(
            location=self.location,
            type=self.type,
            start_time=self.start_time,
            end_time=self.end_time,
            minimum=self.min_staff,
            ideal=self.ideal_staff,
            category=self.category,
            training_type=self.training_type,
            directorate=self.directorate,
            item_key=self.key,
        )


@dataclass(frozen=True)
class DutyRequirement:
    """A named duty (ward, dispensary, management) with staffing targets."""

    id: str
    name: str
    category: str = "ward"
    min_staff: int = 1
    ideal_staff: int = 1
    difficulty: int = 5
    training_type: Optional[str] = None
    do_not_split: bool = False
    shared: bool = False
    days: Tuple[str, ...] = ()
    active: bool = True
    start_time: str = DAY_START
    end_time: str = DAY_END
    directorate: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "days", tuple(normalize_days(self.days)))
        object.__setattr__(self, "start_time", normalize_time(self.start_time))
        object.__setattr__(self, "end_time", normalize_time(self.end_time))
        object.__setattr__(self, "difficulty", max(1, min(10, int(self.difficulty))))
        object.__setattr__(self, "min_staff", max(0, int(self.min_staff)))
        object.__setattr__(self, "ideal_staff", max(self.min_staff, int(self.ideal_staff)))

    def applies_on(self, weekday: str) -> bool:
        """True if the requirement is active and allowed on the weekday."""
        return self.active and (not self.days or weekday in self.days)

    def work_item(self) -> WorkItem:
        return WorkItem(
            key=f"requirement:{self.id}",
            type=AssignmentType.from_category(self.category),
            location=self.name,
            category=self.category,
            start_time=self.start_time,
            end_time=self.end_time,
            min_staff=self.min_staff,
            ideal_staff=self.ideal_staff,
            difficulty=self.difficulty,
            training_type=self.training_type,
            do_not_split=self.do_not_split,
            shared=self.shared,
            directorate=self.directorate,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "min_staff": self.min_staff,
            "ideal_staff": self.ideal_staff,
            "difficulty": self.difficulty,
            "training_type": self.training_type,
            "do_not_split": self.do_not_split,
            "shared": self.shared,
            "days": list(self.days),
            "active": self.active,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "directorate": self.directorate,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "DutyRequirement":
        return cls(
            id=str(d.get("id", d.get("name", ""))),
            name=d.get("name", ""),
            category=d.get("category", "ward"),
            min_staff=int(d.get("min_staff", 1)),
            ideal_staff=int(d.get("ideal_staff", d.get("min_staff", 1))),
            difficulty=int(d.get("difficulty", 5)),
            training_type=d.get("training_type") or None,
            do_not_split=bool(d.get("do_not_split", False)),
            shared=bool(d.get("shared", False)),
            days=tuple(d.get("days", ()) or ()),
            active=bool(d.get("active", True)),
            start_time=d.get("start_time", DAY_START),
            end_time=d.get("end_time", DAY_END),
            directorate=d.get("directorate") or None,
        )


@dataclass(frozen=True)
class ClinicSlot:
    """A recurring, time-boxed clinic on a fixed weekday."""

    id: str
    name: str
    weekday: str
    start_time: str
    end_time: str
    requires_warfarin: bool = True
    active: bool = True
    include_by_default: bool = True
    preferred_staff: Tuple[str, ...] = ()
    difficulty: int = 5

    def __post_init__(self):
        object.__setattr__(self, "weekday", normalize_day(self.weekday))
        object.__setattr__(self, "start_time", normalize_time(self.start_time))
        object.__setattr__(self, "end_time", normalize_time(self.end_time))
        object.__setattr__(self, "preferred_staff", tuple(self.preferred_staff))

    def work_item(self) -> WorkItem:
        return WorkItem(
            key=f"clinic:{self.id}",
            type=AssignmentType.CLINIC,
            location=self.name,
            category="clinic",
            start_time=self.start_time,
            end_time=self.end_time,
            min_staff=1,
            ideal_staff=1,
            difficulty=self.difficulty,
            requires_warfarin=self.requires_warfarin,
            preferred_staff=self.preferred_staff,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "weekday": self.weekday,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "requires_warfarin": self.requires_warfarin,
            "active": self.active,
            "include_by_default": self.include_by_default,
            "preferred_staff": list(self.preferred_staff),
            "difficulty": self.difficulty,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ClinicSlot":
        return cls(
            id=str(d.get("id", d.get("name", ""))),
            name=d.get("name", ""),
            weekday=d.get("weekday", ""),
            start_time=d.get("start_time", DAY_START),
            end_time=d.get("end_time", DAY_END),
            requires_warfarin=bool(d.get("requires_warfarin", True)),
            active=bool(d.get("active", True)),
            include_by_default=bool(d.get("include_by_default", True)),
            preferred_staff=tuple(d.get("preferred_staff", ()) or ()),
            difficulty=int(d.get("difficulty", 5)),
        )


@dataclass(frozen=True)
class RoleRequest:
    """An ad hoc role added for one weekday of one week (e.g. a training session)."""

    name: str
    start_time: str = DAY_START
    end_time: str = DAY_END
    count: int = 1
    training_type: Optional[str] = None
    difficulty: int = 5
    category: str = "role"

    def __post_init__(self):
        object.__setattr__(self, "start_time", normalize_time(self.start_time))
        object.__setattr__(self, "end_time", normalize_time(self.end_time))

    def work_item(self, weekday: str, index: int) -> WorkItem:
        return WorkItem(
            key=f"role:{weekday}:{index}:{self.name}",
            type=AssignmentType.ROLE,
            location=self.name,
            category=self.category,
            start_time=self.start_time,
            end_time=self.end_time,
            min_staff=self.count,
            ideal_staff=self.count,
            difficulty=self.difficulty,
            training_type=self.training_type,
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "count": self.count,
            "training_type": self.training_type,
            "difficulty": self.difficulty,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "RoleRequest":
        return cls(
            name=d.get("name", ""),
            start_time=d.get("start_time", DAY_START),
            end_time=d.get("end_time", DAY_END),
            count=int(d.get("count", 1)),
            training_type=d.get("training_type") or None,
            difficulty=int(d.get("difficulty", 5)),
            category=d.get("category", "role"),
        )
