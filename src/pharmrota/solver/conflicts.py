"""
Conflict Detection
==================
Audit a rota document for understaffing, double bookings and training gaps.

Pure: the same document always yields the same conflicts, and nothing is
modified. Run after generation and again after every edit.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from pharmrota.models.constraints import CoverageTarget
from pharmrota.models.schedule import Assignment, Conflict, RotaDocument, Severity
from pharmrota.models.shift import AssignmentType, to_minutes
from pharmrota.models.staff import StaffMember
from pharmrota.utils.logging_setup import get_logger

logger = get_logger("pharmrota.solver.conflicts")

UNDERSTAFFED = "understaffed"
BELOW_IDEAL = "below_ideal"
DOUBLE_BOOKING = "double_booking"
TRAINING_MISMATCH = "training_mismatch"
MISSING_TRAINING = "missing_training"
UNKNOWN_STAFF = "unknown_staff"


def _counts_toward(target: CoverageTarget, row: Assignment) -> bool:
    """Rows count toward the work item they were generated for; unkeyed rows by location."""
    if target.item_key is not None and row.item_key is not None:
        return row.item_key == target.item_key
    return row.location == target.location and row.type == target.type


def coverage_count(target: CoverageTarget, assignments: Iterable[Assignment]) -> int:
    """
    Number of distinct staff covering the target for its whole window.

    The window is cut at every row boundary inside it; the count is the
    minimum head-count over those segments, so two half-day rows cover a
    full-day target once. Two requirements sharing a location and window
    are counted separately through their item keys.
    """
    t_start, t_end = to_minutes(target.start_time), to_minutes(target.end_time)
    rows = [
        (to_minutes(a.start_time), to_minutes(a.end_time), a.staff_id)
        for a in assignments
        if not a.is_gap
        and _counts_toward(target, a)
        and to_minutes(a.start_time) < t_end
        and to_minutes(a.end_time) > t_start
    ]
    points = {t_start, t_end}
    for start, end, _ in rows:
        points.update(p for p in (start, end) if t_start < p < t_end)
    cuts = sorted(points)

    counts = []
    for lo, hi in zip(cuts, cuts[1:]):
        staff = {sid for start, end, sid in rows if start <= lo and end >= hi}
        counts.append(len(staff))
    return min(counts) if counts else 0


def _coverage_conflicts(document: RotaDocument) -> List[Conflict]:
    conflicts: List[Conflict] = []
    day = document.date.isoformat()
    for target in document.coverage:
        filled = coverage_count(target, document.assignments)
        window = f"{target.start_time}-{target.end_time}"
        if filled < target.minimum:
            conflicts.append(Conflict(
                type=UNDERSTAFFED,
                description=(
                    f"{target.location} {window} on {day}: {filled} assigned, "
                    f"minimum {target.minimum}"
                ),
                severity=Severity.ERROR,
                location=target.location,
            ))
        elif filled < target.ideal:
            conflicts.append(Conflict(
                type=BELOW_IDEAL,
                description=(
                    f"{target.location} {window} on {day}: {filled} assigned, "
                    f"below ideal {target.ideal}"
                ),
                severity=Severity.WARNING,
                location=target.location,
            ))
    return conflicts


def find_double_bookings(assignments: Sequence[Assignment]) -> List[Conflict]:
    """One error per pair of clashing rows held by the same staff member."""
    conflicts: List[Conflict] = []
    rows = [a for a in assignments if not a.is_gap]
    for i, a in enumerate(rows):
        for b in rows[i + 1:]:
            if a.staff_id == b.staff_id and a.clashes_with(b):
                conflicts.append(Conflict(
                    type=DOUBLE_BOOKING,
                    description=(
                        f"{a.staff_id} is double-booked on {a.date.isoformat()}: "
                        f"{a.location} {a.start_time}-{a.end_time} overlaps "
                        f"{b.location} {b.start_time}-{b.end_time}"
                    ),
                    severity=Severity.ERROR,
                    location=a.location,
                    staff_id=a.staff_id,
                ))
    return conflicts


def _training_conflicts(
    document: RotaDocument, staff: Mapping[str, StaffMember]
) -> List[Conflict]:
    conflicts: List[Conflict] = []
    targets = {(t.location, t.type): t for t in document.coverage}
    keyed = {t.item_key: t for t in document.coverage if t.item_key is not None}
    seen = set()
    for a in document.assignments:
        if a.is_gap or (a.staff_id, a.location) in seen:
            continue
        seen.add((a.staff_id, a.location))
        member = staff.get(a.staff_id)
        if member is None:
            conflicts.append(Conflict(
                type=UNKNOWN_STAFF,
                description=f"{a.staff_id} at {a.location} is not in the staff list",
                severity=Severity.WARNING,
                location=a.location,
                staff_id=a.staff_id,
            ))
            continue

        target = keyed.get(a.item_key) or targets.get((a.location, a.type))
        if a.type == AssignmentType.WARD and member.trained_locations:
            directorate = target.directorate if target else None
            if not member.is_trained_for(a.location, directorate):
                conflicts.append(Conflict(
                    type=TRAINING_MISMATCH,
                    description=f"{member.name} is not trained for {a.location}",
                    severity=Severity.WARNING,
                    location=a.location,
                    staff_id=member.id,
                ))
        if target and target.training_type and not member.has_training(target.training_type):
            conflicts.append(Conflict(
                type=MISSING_TRAINING,
                description=f"{member.name} lacks {target.training_type} training for {a.location}",
                severity=Severity.WARNING,
                location=a.location,
                staff_id=member.id,
            ))
    return conflicts


def detect_conflicts(
    document: RotaDocument,
    staff: Optional[Mapping[str, StaffMember]] = None,
) -> List[Conflict]:
    """
    Detect all conflicts in one rota document.

    Args:
        document: The document to audit
        staff: Staff by ID; training checks are skipped when omitted

    Returns:
        Conflicts ordered coverage first, then double bookings, then training
    """
    conflicts = _coverage_conflicts(document)
    conflicts.extend(find_double_bookings(document.assignments))
    if staff is not None:
        conflicts.extend(_training_conflicts(document, staff))

    errors = sum(1 for c in conflicts if c.severity == Severity.ERROR)
    logger.debug(
        f"{document.date.isoformat()}: {errors} errors, {len(conflicts) - errors} warnings"
    )
    return conflicts


@dataclass
class ConflictSummary:
    """Counts of conflicts across a set of documents."""
    errors: int = 0
    warnings: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return self.errors > 0


def summarize(documents: Iterable[RotaDocument]) -> ConflictSummary:
    summary = ConflictSummary()
    for doc in documents:
        for c in doc.conflicts:
            if c.severity == Severity.ERROR:
                summary.errors += 1
            else:
                summary.warnings += 1
            summary.by_type[c.type] = summary.by_type.get(c.type, 0) + 1
    return summary
