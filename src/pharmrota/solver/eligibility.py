"""
Constraint Evaluator
====================
Decides whether a staff member may take a work item on a date.

Checks run in a fixed order and stop at the first failure:
    1. working day
    2. unavailability rules (minus rules ignored for this rota, plus rules
       added for this rota only)
    3. training
    4. do-not-split exclusivity
"""
from dataclasses import dataclass
from datetime import date
from typing import Collection, Iterable, Mapping, Optional, Sequence

from pharmrota.models.requirement import WorkItem
from pharmrota.models.schedule import Assignment
from pharmrota.models.shift import AssignmentType, weekday_name
from pharmrota.models.staff import StaffMember, UnavailabilityRule

NOT_WORKING_DAY = "not_working_day"
UNAVAILABLE = "unavailable"
MISSING_TRAINING = "missing_training"
WARFARIN_REQUIRED = "warfarin_required"
DO_NOT_SPLIT = "do_not_split"


@dataclass(frozen=True)
class Eligibility:
    """Outcome of an eligibility check."""
    eligible: bool
    reason: Optional[str] = None
    detail: str = ""

    def __bool__(self) -> bool:
        return self.eligible


ELIGIBLE = Eligibility(True)


def working_days_for(
    staff: StaffMember,
    working_days_override: Optional[Mapping[str, Sequence[str]]] = None,
) -> Sequence[str]:
    """Working days for a staff member, with any per-rota override applied."""
    if working_days_override and staff.id in working_days_override:
        return working_days_override[staff.id]
    return staff.working_days


def is_eligible(
    staff: StaffMember,
    item: WorkItem,
    on_date: date,
    *,
    working_days_override: Optional[Mapping[str, Sequence[str]]] = None,
    ignored_rules: Optional[Mapping[str, Collection[int]]] = None,
    rota_unavailability: Optional[Mapping[str, Sequence[UnavailabilityRule]]] = None,
    day_assignments: Iterable[Assignment] = (),
) -> Eligibility:
    """
    Check whether ``staff`` may be placed on ``item`` on ``on_date``.

    Args:
        staff: Candidate staff member
        item: Work item (requirement, clinic or role) to be staffed
        on_date: Date of the rota
        working_days_override: Per-staff working days for this rota
        ignored_rules: Per-staff unavailability rule indexes to disregard
        rota_unavailability: Per-staff ad hoc rules that apply to this rota only
        day_assignments: Rows already placed on this date

    Returns:
        Eligibility with the reason code of the first failed check
    """
    weekday = weekday_name(on_date)

    days = working_days_for(staff, working_days_override)
    if days and weekday not in days:
        return Eligibility(False, NOT_WORKING_DAY, f"{staff.name} does not work on {weekday}")

    ignored = set((ignored_rules or {}).get(staff.id, ()))
    for index, rule in enumerate(staff.unavailability):
        if index in ignored:
            continue
        if rule.blocks(weekday, item.start_time, item.end_time):
            return Eligibility(
                False, UNAVAILABLE,
                f"{staff.name} unavailable {rule.weekday} {rule.start_time}-{rule.end_time}",
            )
    for rule in (rota_unavailability or {}).get(staff.id, ()):
        if rule.blocks(weekday, item.start_time, item.end_time):
            return Eligibility(
                False, UNAVAILABLE,
                f"{staff.name} has protected time {rule.weekday} {rule.start_time}-{rule.end_time} this week",
            )

    if item.type == AssignmentType.CLINIC:
        if item.requires_warfarin and not staff.warfarin_trained:
            return Eligibility(False, WARFARIN_REQUIRED, f"{staff.name} is not warfarin-trained")
    elif item.training_type and not staff.has_training(item.training_type):
        return Eligibility(
            False, MISSING_TRAINING, f"{staff.name} lacks {item.training_type} training"
        )

    own = [a for a in day_assignments if a.staff_id == staff.id and a.date == on_date]
    if any(a.exclusive for a in own):
        return Eligibility(False, DO_NOT_SPLIT, f"{staff.name} is committed to a do-not-split duty")
    if item.do_not_split and own:
        return Eligibility(False, DO_NOT_SPLIT, f"{item.location} cannot share {staff.name}'s day")

    return ELIGIBLE


def has_capacity(staff_id: str, row: Assignment, day_assignments: Iterable[Assignment]) -> bool:
    """True if ``row`` would not double-book ``staff_id`` against rows already placed."""
    return not any(
        a.staff_id == staff_id and row.clashes_with(a) for a in day_assignments
    )
