"""Assignment type definitions, day constants and time-window helpers."""
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, List, Optional


class AssignmentType(str, Enum):
    """Kinds of cell a staff member can occupy on a daily rota."""
    WARD = "ward"
    DISPENSARY = "dispensary"
    CLINIC = "clinic"
    MANAGEMENT = "management"
    ROLE = "role"

    @classmethod
    def from_category(cls, category: Optional[str]) -> "AssignmentType":
        """Map a requirement category (ward, EAU, dispensary...) to an assignment type."""
        mapping = {
            "ward": cls.WARD, "eau": cls.WARD, "amu": cls.WARD, "directorate": cls.WARD,
            "dispensary": cls.DISPENSARY,
            "clinic": cls.CLINIC, "clinics": cls.CLINIC,
            "management": cls.MANAGEMENT, "management time": cls.MANAGEMENT,
        }
        return mapping.get(str(category or "").strip().lower(), cls.ROLE)

    @classmethod
    def from_string(cls, s: str) -> "AssignmentType":
        """Parse an assignment type from its value or a category alias."""
        key = str(s).strip().lower()
        for member in cls:
            if member.value == key:
                return member
        return cls.from_category(key)


# Day constants
WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
WEEKEND = ["Saturday", "Sunday"]
ALL_DAYS = WEEKDAYS + WEEKEND

DAY_ALIASES = {
    "mon": "Monday", "monday": "Monday",
    "tue": "Tuesday", "tues": "Tuesday", "tuesday": "Tuesday",
    "wed": "Wednesday", "wednesday": "Wednesday",
    "thu": "Thursday", "thur": "Thursday", "thurs": "Thursday", "thursday": "Thursday",
    "fri": "Friday", "friday": "Friday",
    "sat": "Saturday", "saturday": "Saturday",
    "sun": "Sunday", "sunday": "Sunday",
}

# Working-day boundaries
DAY_START = "09:00"
MIDDAY = "13:00"
DAY_END = "17:00"


def normalize_day(s: str) -> str:
    """Normalize day string to canonical format (Monday, Tuesday, etc.)."""
    key = str(s).strip().lower()
    return DAY_ALIASES.get(key, str(s).strip())


def normalize_days(days: Optional[Iterable[str]]) -> List[str]:
    """Normalize and validate a list of day names, keeping the given order."""
    result: List[str] = []
    for d in days or []:
        day = normalize_day(d)
        if day not in ALL_DAYS:
            raise ValueError(f"Unknown weekday: {d!r}")
        if day not in result:
            result.append(day)
    return result


def weekday_name(d: date) -> str:
    """English weekday name for a date."""
    return ALL_DAYS[d.weekday()]


def week_dates(week_start: date) -> List[date]:
    """The seven dates of the week starting at ``week_start``."""
    return [week_start + timedelta(days=i) for i in range(7)]


def monday_of(d: date) -> date:
    return d - timedelta(days=d.weekday())


def to_minutes(t: str) -> int:
    """Convert "HH:MM" to minutes after midnight."""
    try:
        hours, minutes = str(t).strip().split(":")
        h, m = int(hours), int(minutes)
    except ValueError:
        raise ValueError(f"Invalid time {t!r}, expected HH:MM") from None
    if not (0 <= h <= 24 and 0 <= m < 60):
        raise ValueError(f"Invalid time {t!r}, expected HH:MM")
    return h * 60 + m


def normalize_time(t: str) -> str:
    """Zero-pad a time string ("9:00" -> "09:00")."""
    total = to_minutes(t)
    return f"{total // 60:02d}:{total % 60:02d}"


def overlaps(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """True when two half-open windows [start, end) intersect."""
    return to_minutes(a_start) < to_minutes(b_end) and to_minutes(a_end) > to_minutes(b_start)


def contains(outer_start: str, outer_end: str, inner_start: str, inner_end: str) -> bool:
    """True when the inner window lies entirely inside the outer one."""
    return (
        to_minutes(outer_start) <= to_minutes(inner_start)
        and to_minutes(inner_end) <= to_minutes(outer_end)
    )
