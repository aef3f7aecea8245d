"""CSV loading and saving for reference data (staff, requirements, clinics)."""
from pathlib import Path
from typing import List, Tuple, Union

import pandas as pd

from pharmrota.models.reference import ReferenceData
from pharmrota.models.requirement import ClinicSlot, DutyRequirement
from pharmrota.models.staff import StaffMember, UnavailabilityRule
from pharmrota.utils.logging_setup import get_logger

logger = get_logger("pharmrota.io.csv_loader")

LIST_SEPARATOR = ";"

STAFF_COLUMNS = [
    "id", "name", "role", "band", "trained_locations", "training", "warfarin_trained",
    "working_days", "unavailability", "is_default", "primary_location",
]

Source = Union[str, Path, pd.DataFrame]


def _safe_int(value, default: int = 0) -> int:
    """Safely convert value to int."""
    try:
        return int(float(value))
    except (ValueError, TypeError):
        return default


def _safe_bool(value, default: bool = False) -> bool:
    """Safely convert value to bool."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        if not value.strip():
            return default
        return value.strip().lower() in ("1", "true", "yes", "y")
    return default


def _split(value) -> Tuple[str, ...]:
    """Split a ';'-separated cell into trimmed, non-empty parts."""
    return tuple(p.strip() for p in str(value or "").split(LIST_SEPARATOR) if p.strip())


def parse_unavailability(value) -> Tuple[UnavailabilityRule, ...]:
    """
    Parse cells like ``"Wednesday 13:00-17:00; Fri 09:00-13:00"``.

    Raises:
        ValueError: a part is not "<day> <start>-<end>"
    """
    rules = []
    for part in _split(value):
        try:
            day, window = part.split()
            start, end = window.split("-")
        except ValueError:
            raise ValueError(f"Invalid unavailability entry: {part!r}") from None
        rules.append(UnavailabilityRule(weekday=day, start_time=start, end_time=end))
    return tuple(rules)


def _read(source: Source) -> pd.DataFrame:
    if isinstance(source, pd.DataFrame):
        df = source.copy()
    else:
        df = pd.read_csv(source, dtype=str)
    return df.fillna("")


def _text(row, column: str, default: str = "") -> str:
    value = str(row.get(column, default)).strip()
    return value or default


def load_staff(source: Source) -> List[StaffMember]:
    """
    Load staff from CSV file or DataFrame.

    List columns (trained_locations, training, working_days, unavailability)
    are ';'-separated.
    """
    df = _read(source)
    if "name" not in df.columns:
        raise ValueError("Staff CSV must have a 'name' column")

    staff = []
    for idx, row in df.iterrows():
        name = _text(row, "name")
        if not name:
            continue
        staff.append(StaffMember(
            id=_text(row, "id") or f"staff-{idx}",
            name=name,
            role=_text(row, "role", "technician"),
            band=_text(row, "band"),
            trained_locations=_split(row.get("trained_locations")),
            training=_split(row.get("training")),
            warfarin_trained=_safe_bool(row.get("warfarin_trained")),
            working_days=_split(row.get("working_days")),
            unavailability=parse_unavailability(row.get("unavailability")),
            is_default=_safe_bool(row.get("is_default")),
            primary_location=_text(row, "primary_location") or None,
        ))
    logger.info(f"Loaded {len(staff)} staff")
    return staff


def load_requirements(source: Source) -> List[DutyRequirement]:
    """Load duty requirements from CSV file or DataFrame."""
    df = _read(source)
    if "name" not in df.columns:
        raise ValueError("Requirements CSV must have a 'name' column")

    requirements = []
    for idx, row in df.iterrows():
        name = _text(row, "name")
        if not name:
            continue
        min_staff = _safe_int(row.get("min_staff"), 1)
        requirements.append(DutyRequirement(
            id=_text(row, "id") or f"req-{idx}",
            name=name,
            category=_text(row, "category", "ward"),
            min_staff=min_staff,
            ideal_staff=_safe_int(row.get("ideal_staff"), min_staff),
            difficulty=_safe_int(row.get("difficulty"), 5),
            training_type=_text(row, "training_type") or None,
            do_not_split=_safe_bool(row.get("do_not_split")),
            shared=_safe_bool(row.get("shared")),
            days=_split(row.get("days")),
            active=_safe_bool(row.get("active"), True),
            start_time=_text(row, "start_time", "09:00"),
            end_time=_text(row, "end_time", "17:00"),
            directorate=_text(row, "directorate") or None,
        ))
    logger.info(f"Loaded {len(requirements)} requirements")
    return requirements


def load_clinics(source: Source) -> List[ClinicSlot]:
    """Load clinic slots from CSV file or DataFrame."""
    df = _read(source)
    missing = {"name", "weekday", "start_time", "end_time"} - set(df.columns)
    if missing:
        raise ValueError(f"Clinics CSV is missing columns: {', '.join(sorted(missing))}")

    clinics = []
    for idx, row in df.iterrows():
        name = _text(row, "name")
        if not name:
            continue
        clinics.append(ClinicSlot(
            id=_text(row, "id") or f"clinic-{idx}",
            name=name,
            weekday=_text(row, "weekday"),
            start_time=_text(row, "start_time"),
            end_time=_text(row, "end_time"),
            requires_warfarin=_safe_bool(row.get("requires_warfarin"), True),
            active=_safe_bool(row.get("active"), True),
            include_by_default=_safe_bool(row.get("include_by_default"), True),
            preferred_staff=_split(row.get("preferred_staff")),
            difficulty=_safe_int(row.get("difficulty"), 5),
        ))
    logger.info(f"Loaded {len(clinics)} clinics")
    return clinics


def load_reference(directory: Union[str, Path]) -> ReferenceData:
    """
    Load a reference snapshot from a directory holding ``staff.csv``,
    ``requirements.csv`` and optionally ``clinics.csv``.
    """
    directory = Path(directory)
    clinics_path = directory / "clinics.csv"
    return ReferenceData(
        staff=load_staff(directory / "staff.csv"),
        requirements=load_requirements(directory / "requirements.csv"),
        clinics=load_clinics(clinics_path) if clinics_path.exists() else (),
    )


def staff_to_dataframe(staff: List[StaffMember]) -> pd.DataFrame:
    """Convert staff to the CSV column layout."""
    if not staff:
        return pd.DataFrame(columns=STAFF_COLUMNS)
    rows = []
    for s in staff:
        rows.append({
            "id": s.id,
            "name": s.name,
            "role": s.role,
            "band": s.band,
            "trained_locations": LIST_SEPARATOR.join(s.trained_locations),
            "training": LIST_SEPARATOR.join(s.training),
            "warfarin_trained": int(s.warfarin_trained),
            "working_days": LIST_SEPARATOR.join(s.working_days),
            "unavailability": LIST_SEPARATOR.join(
                f"{r.weekday} {r.start_time}-{r.end_time}" for r in s.unavailability
            ),
            "is_default": int(s.is_default),
            "primary_location": s.primary_location or "",
        })
    return pd.DataFrame(rows, columns=STAFF_COLUMNS)


def save_staff(staff: List[StaffMember], path: Union[str, Path]) -> None:
    """Save staff to CSV file."""
    staff_to_dataframe(staff).to_csv(path, index=False)
