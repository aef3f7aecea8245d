"""
Assignment Generator
====================
Build a week of draft rota documents from a staff roster and the duty
catalogue using a deterministic, priority-ordered greedy fill.

Per selected date:
    1. Build the work list (requirements, clinics, ad hoc roles) and order
       it by difficulty, then category priority.
    2. Fill every item up to its minimum, then top items up to ideal.
    3. Leave an empty placeholder row for every place still short of the
       minimum; the conflict detector reports it.

The same inputs always produce the same rows in the same order.
"""
from datetime import date, datetime, timedelta
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from pharmrota.errors import PreconditionError
from pharmrota.models.constraints import CoverageTarget, EngineConfig
from pharmrota.models.requirement import ClinicSlot, DutyRequirement, RoleRequest, WorkItem
from pharmrota.models.schedule import Assignment, RotaDocument
from pharmrota.models.shift import ALL_DAYS, AssignmentType, normalize_days
from pharmrota.models.staff import StaffMember, UnavailabilityRule
from pharmrota.solver.conflicts import detect_conflicts
from pharmrota.solver.eligibility import has_capacity, is_eligible
from pharmrota.utils.logging_setup import GeneratorLogger, get_logger, log_eligibility

logger = get_logger("pharmrota.solver.generator")


def work_item_order(item: WorkItem, config: EngineConfig) -> Tuple:
    """Sort key: hardest first, then category priority, then stable identity."""
    return (
        -item.difficulty,
        config.category_rank(item.category),
        item.location.lower(),
        item.start_time,
        item.key,
    )


def build_work_list(
    weekday: str,
    requirements: Sequence[DutyRequirement],
    clinics: Sequence[ClinicSlot],
    role_requests: Sequence[RoleRequest] = (),
    config: Optional[EngineConfig] = None,
) -> List[WorkItem]:
    """Ordered work items for one weekday."""
    config = config or EngineConfig()
    items = [r.work_item() for r in requirements if r.applies_on(weekday)]
    items.extend(c.work_item() for c in clinics if c.active and c.weekday == weekday)
    items.extend(r.work_item(weekday, i) for i, r in enumerate(role_requests))
    return sorted(items, key=lambda item: work_item_order(item, config))


def rank_candidates(
    item: WorkItem,
    roster: Sequence[StaffMember],
    day_rows: Sequence[Assignment],
    clinic_load: Optional[Mapping[str, int]] = None,
) -> List[StaffMember]:
    """
    Candidate order for one pick.

    Preferred staff (clinics) come first, fewest clinics this week first,
    then in their listed order. Everyone else is ordered by: primary
    location is this item, trained for the ward's location, fewest clinics
    this week (clinics only), default-roster flag, fewest rows already held
    today, name, then ID.
    """
    load = clinic_load or {}
    is_clinic = item.type == AssignmentType.CLINIC
    by_id = {s.id: s for s in roster}
    preferred = [by_id[sid] for sid in item.preferred_staff if sid in by_id]
    if is_clinic:
        preferred.sort(key=lambda s: load.get(s.id, 0))
    preferred_ids = {s.id for s in preferred}

    held: Dict[str, int] = {}
    for row in day_rows:
        if row.staff_id is not None:
            held[row.staff_id] = held.get(row.staff_id, 0) + 1

    location = item.location.strip().lower()

    def key(s: StaffMember):
        primary = bool(s.primary_location) and s.primary_location.strip().lower() == location
        untrained = (
            item.type == AssignmentType.WARD
            and not s.is_trained_for(item.location, item.directorate)
        )
        weekly = load.get(s.id, 0) if is_clinic else 0
        return (not primary, untrained, weekly, not s.is_default, held.get(s.id, 0),
                s.name.lower(), s.id)

    others = sorted((s for s in roster if s.id not in preferred_ids), key=key)
    return preferred + others


def _next_candidate(
    item: WorkItem,
    on_date: date,
    roster: Sequence[StaffMember],
    day_rows: Sequence[Assignment],
    taken: Sequence[Assignment],
    working_days_override: Optional[Mapping[str, Sequence[str]]],
    ignored_unavailability: Optional[Mapping[str, Sequence[int]]],
    rota_unavailability: Optional[Mapping[str, Sequence[UnavailabilityRule]]],
    clinic_load: Optional[Mapping[str, int]],
) -> Optional[StaffMember]:
    already = {a.staff_id for a in taken}
    for staff in rank_candidates(item, roster, day_rows, clinic_load):
        if staff.id in already:
            continue
        if not has_capacity(staff.id, item.assignment_for(staff.id, on_date), day_rows):
            continue
        verdict = is_eligible(
            staff, item, on_date,
            working_days_override=working_days_override,
            ignored_rules=ignored_unavailability,
            rota_unavailability=rota_unavailability,
            day_assignments=day_rows,
        )
        log_eligibility(logger, staff.id, item.location, verdict.eligible, verdict.detail)
        if verdict:
            return staff
    return None


def generate_day(
    on_date: date,
    roster: Sequence[StaffMember],
    items: Sequence[WorkItem],
    *,
    working_days_override: Optional[Mapping[str, Sequence[str]]] = None,
    ignored_unavailability: Optional[Mapping[str, Sequence[int]]] = None,
    rota_unavailability: Optional[Mapping[str, Sequence[UnavailabilityRule]]] = None,
    clinic_load: Optional[Mapping[str, int]] = None,
    log: Optional[GeneratorLogger] = None,
) -> Tuple[List[Assignment], List[CoverageTarget]]:
    """
    Staff one date.

    ``clinic_load`` counts the clinics each staff member already holds
    earlier in the week.

    Returns:
        (rows, coverage targets), rows grouped by work item in work-list
        order with placeholders after the filled rows of their item
    """
    log = log or GeneratorLogger()
    filled: Dict[str, List[Assignment]] = {item.key: [] for item in items}
    day_rows: List[Assignment] = []

    for target_of in (lambda i: i.min_staff, lambda i: i.ideal_staff):
        for item in items:
            taken = filled[item.key]
            while len(taken) < target_of(item):
                staff = _next_candidate(
                    item, on_date, roster, day_rows, taken,
                    working_days_override, ignored_unavailability,
                    rota_unavailability, clinic_load,
                )
                if staff is None:
                    break
                row = item.assignment_for(staff.id, on_date)
                taken.append(row)
                day_rows.append(row)

    rows: List[Assignment] = []
    for item in items:
        taken = filled[item.key]
        rows.extend(taken)
        missing = item.min_staff - len(taken)
        if missing > 0:
            log.shortfall(item.location, len(taken), item.min_staff)
            rows.extend(item.assignment_for(None, on_date) for _ in range(missing))
    return rows, [item.coverage_target() for item in items]


def generate_week(
    week_start: date,
    roster: Sequence[StaffMember],
    selected_weekdays: Sequence[str],
    *,
    requirements: Sequence[DutyRequirement] = (),
    clinics: Sequence[ClinicSlot] = (),
    role_requests: Optional[Mapping[str, Sequence[RoleRequest]]] = None,
    working_days_override: Optional[Mapping[str, Sequence[str]]] = None,
    ignored_unavailability: Optional[Mapping[str, Sequence[int]]] = None,
    rota_unavailability: Optional[Mapping[str, Sequence[UnavailabilityRule]]] = None,
    generated_by: str = "system",
    generated_at: Optional[datetime] = None,
    config: Optional[EngineConfig] = None,
) -> List[RotaDocument]:
    """
    Generate the seven draft documents of a week.

    Dates outside ``selected_weekdays`` get an empty document flagged
    ``included=False``.

    Raises:
        PreconditionError: no staff, no weekdays, or a week start that is
            not a Monday; nothing is produced
    """
    if not roster:
        raise PreconditionError("No staff selected for generation")
    weekdays = normalize_days(selected_weekdays)
    if not weekdays:
        raise PreconditionError("No weekdays selected for generation")
    if week_start.weekday() != 0:
        raise PreconditionError(f"Week start {week_start.isoformat()} is not a Monday")

    config = config or EngineConfig()
    role_requests = role_requests or {}
    generated_at = generated_at or datetime.now()
    staff_lookup = {s.id: s for s in roster}
    clinic_load: Dict[str, int] = {}
    log = GeneratorLogger()

    log.phase(f"Generating week of {week_start.isoformat()}")
    log.detail("staff", len(roster))
    log.detail("weekdays", ", ".join(weekdays))

    documents: List[RotaDocument] = []
    for offset, weekday in enumerate(ALL_DAYS):
        on_date = week_start + timedelta(days=offset)
        doc = RotaDocument(
            date=on_date,
            week_start=week_start,
            included=weekday in weekdays,
            generated_by=generated_by,
            generated_at=generated_at,
        )
        if doc.included:
            items = build_work_list(
                weekday, requirements, clinics, role_requests.get(weekday, ()), config
            )
            log.enter(f"{weekday} {on_date.isoformat()}: {len(items)} work items")
            doc.assignments, doc.coverage = generate_day(
                on_date, roster, items,
                working_days_override=working_days_override,
                ignored_unavailability=ignored_unavailability,
                rota_unavailability=rota_unavailability,
                clinic_load=clinic_load,
                log=log,
            )
            for row in doc.assignments:
                if row.type == AssignmentType.CLINIC and not row.is_gap:
                    clinic_load[row.staff_id] = clinic_load.get(row.staff_id, 0) + 1
            doc.conflicts = detect_conflicts(doc, staff_lookup)
            log.exit(f"{len(doc.assignments)} rows, {len(doc.gaps)} gaps, {len(doc.conflicts)} conflicts")
        documents.append(doc)

    log.step(f"Generated {sum(len(d.assignments) for d in documents)} rows across {len(weekdays)} days")
    return documents
