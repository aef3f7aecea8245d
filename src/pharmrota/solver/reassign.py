"""
Reassignment Protocol
=====================
Replace one staff member with another on a slot, a day or a whole week,
and swap two staff members.

Every mutated document has its conflicts re-detected before it is
returned. Week scope applies date by date: a failing date is reported in
the outcomes and dates already changed stay changed.
"""
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Mapping, Optional, Set, Tuple

from pharmrota.core.dto import DateOutcome, ReassignResult
from pharmrota.errors import NotFoundError, PreconditionError, RotaError, StaleReferenceError
from pharmrota.models.constraints import EngineConfig
from pharmrota.models.schedule import Assignment, RotaDocument
from pharmrota.models.shift import (
    MIDDAY, AssignmentType, contains, monday_of, normalize_time, to_minutes, week_dates,
)
from pharmrota.models.staff import StaffMember
from pharmrota.solver.conflicts import detect_conflicts
from pharmrota.solver.lifecycle import ensure_reassignable
from pharmrota.utils.logging_setup import get_logger

logger = get_logger("pharmrota.solver.reassign")


class Scope(str, Enum):
    SLOT = "slot"
    DAY = "day"
    WEEK = "week"


@dataclass(frozen=True)
class ReassignRequest:
    """
    Move rows from ``original_staff_id`` to ``new_staff_id``.

    ``original_staff_id=None`` fills an empty slot (slot scope only);
    ``new_staff_id=None`` vacates the matched rows.
    """
    date: date
    original_staff_id: Optional[str]
    new_staff_id: Optional[str]
    scope: Scope = Scope.SLOT
    location: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    respect_continuity: bool = True
    assignment_type: Optional[AssignmentType] = None


@dataclass(frozen=True)
class SlotRef:
    """One side of a swap."""
    date: date
    location: str
    start_time: str
    end_time: Optional[str] = None
    staff_id: Optional[str] = None


def _default_end(assignment: Assignment, start_time: str, midday: str) -> str:
    if to_minutes(start_time) < to_minutes(midday) < to_minutes(assignment.end_time):
        return midday
    return assignment.end_time


def normalize_granularity(
    assignment: Assignment,
    start_time: str,
    end_time: Optional[str] = None,
    midday: str = MIDDAY,
) -> List[Assignment]:
    """
    Split ``assignment`` so the requested window becomes a row of its own.

    A missing ``end_time`` means the half-day starting at ``start_time``.
    Pieces keep the original staff, type and flags; they are returned in
    time order and exactly tile the original window.

    Raises:
        StaleReferenceError: the window does not lie inside the row
    """
    start_time = normalize_time(start_time)
    end_time = normalize_time(end_time) if end_time else _default_end(assignment, start_time, midday)
    if to_minutes(start_time) >= to_minutes(end_time) or not contains(
        assignment.start_time, assignment.end_time, start_time, end_time
    ):
        raise StaleReferenceError(
            f"{start_time}-{end_time} is not inside {assignment.location} "
            f"{assignment.start_time}-{assignment.end_time}"
        )
    bounds = [
        (assignment.start_time, start_time),
        (start_time, end_time),
        (end_time, assignment.end_time),
    ]
    return [
        replace(assignment, start_time=s, end_time=e)
        for s, e in bounds
        if to_minutes(s) < to_minutes(e)
    ]


def _matches(row: Assignment, request: ReassignRequest) -> bool:
    return (
        row.location == request.location
        and row.start_time == request.start_time
        and (request.end_time is None or row.end_time == request.end_time)
        and row.staff_id == request.original_staff_id
    )


def _find_slot(rows: List[Assignment], request: ReassignRequest) -> int:
    for i, row in enumerate(rows):
        if _matches(row, request):
            return i
    raise StaleReferenceError(
        f"No row for {request.original_staff_id} at {request.location} "
        f"{request.start_time}-{request.end_time or '?'} on {request.date.isoformat()}"
    )


def _find_containing(rows: List[Assignment], request: ReassignRequest) -> Optional[int]:
    start = to_minutes(request.start_time)
    end = to_minutes(request.end_time) if request.end_time else None
    for i, row in enumerate(rows):
        if row.location != request.location or row.staff_id != request.original_staff_id:
            continue
        r_start, r_end = to_minutes(row.start_time), to_minutes(row.end_time)
        if end is None and r_start <= start < r_end:
            return i
        if end is not None and r_start <= start and end <= r_end:
            return i
    return None


def _is_protected(row: Assignment, config: EngineConfig) -> bool:
    return row.exclusive or config.is_continuity_location(row.location)


def _touching(a: Assignment, b: Assignment) -> bool:
    return (
        to_minutes(a.start_time) <= to_minutes(b.end_time)
        and to_minutes(b.start_time) <= to_minutes(a.end_time)
    )


def _expand_blocks(
    rows: List[Assignment], indexes: Set[int], request: ReassignRequest, config: EngineConfig
) -> Set[int]:
    """Grow the selection to whole contiguous blocks at protected locations."""
    if not request.respect_continuity:
        return set(indexes)
    selected = set(indexes)
    for i in indexes:
        row = rows[i]
        if row.is_gap or not _is_protected(row, config):
            continue
        block = {i}
        grew = True
        while grew:
            grew = False
            for j, other in enumerate(rows):
                if j in block or other.staff_id != row.staff_id or other.location != row.location:
                    continue
                if any(_touching(other, rows[k]) for k in block):
                    block.add(j)
                    grew = True
        selected |= block
    return selected


def _new_row(rows: List[Assignment], document: RotaDocument, request: ReassignRequest,
             config: EngineConfig) -> Assignment:
    """A fresh row for filling a slot that has no placeholder."""
    template = next((r for r in rows if r.location == request.location), None)
    target = next((t for t in document.coverage if t.location == request.location), None)

    kind = request.assignment_type
    if kind is None:
        kind = template.type if template else (target.type if target else None)
    if kind is None:
        raise PreconditionError(f"Cannot infer assignment type for {request.location}")

    end_time = request.end_time
    if end_time is None:
        if to_minutes(request.start_time) < to_minutes(config.midday):
            end_time = config.midday
        else:
            end_time = config.day_end

    category = template.category if template else (target.category if target else kind.value)
    return Assignment(
        staff_id=request.new_staff_id,
        type=kind,
        location=request.location,
        date=document.date,
        start_time=request.start_time,
        end_time=end_time,
        category=category,
        shared=template.shared if template else False,
        exclusive=template.exclusive if template else False,
        item_key=template.item_key if template else (target.item_key if target else None),
    )


def _reassign_slot(rows: List[Assignment], document: RotaDocument,
                   request: ReassignRequest, config: EngineConfig) -> Set[int]:
    if not request.location or not request.start_time:
        raise PreconditionError("Slot reassignment needs a location and a start time")
    try:
        index = _find_slot(rows, request)
    except StaleReferenceError as exc:
        index = _find_containing(rows, request)
        if index is None:
            if request.original_staff_id is not None:
                raise NotFoundError(str(exc)) from exc
            rows.append(_new_row(rows, document, request, config))
            logger.info(f"Created {request.location} {request.start_time} row on {document.date}")
            return {len(rows) - 1}
        if not (request.respect_continuity and _is_protected(rows[index], config)):
            logger.debug(f"Splitting {rows[index].location} row for {request.start_time} edit")
            rows[index:index + 1] = normalize_granularity(
                rows[index], request.start_time, request.end_time, config.midday
            )
            index = _find_slot(rows, request)
    return _expand_blocks(rows, {index}, request, config)


def _reassign_all(rows: List[Assignment], request: ReassignRequest, config: EngineConfig) -> Set[int]:
    if request.original_staff_id is None:
        raise PreconditionError(f"{request.scope.value} reassignment needs an original staff member")
    selected = {
        i for i, row in enumerate(rows)
        if row.staff_id == request.original_staff_id
        and (request.location is None or row.location == request.location)
    }
    if not selected and request.scope == Scope.DAY:
        where = f" at {request.location}" if request.location else ""
        raise NotFoundError(
            f"{request.original_staff_id} holds no rows{where} on {request.date.isoformat()}"
        )
    return _expand_blocks(rows, selected, request, config)


def _check_no_clash(rows: List[Assignment], changed: Set[int], staff_id: str) -> None:
    for i in changed:
        for j, other in enumerate(rows):
            if j == i or j in changed or other.staff_id != staff_id:
                continue
            if rows[i].clashes_with(other):
                raise PreconditionError(
                    f"{staff_id} would be double-booked: {rows[i].location} "
                    f"{rows[i].start_time}-{rows[i].end_time} overlaps "
                    f"{other.location} {other.start_time}-{other.end_time}"
                )


def apply_to_document(
    document: RotaDocument,
    request: ReassignRequest,
    *,
    config: Optional[EngineConfig] = None,
    staff: Optional[Mapping[str, StaffMember]] = None,
    now: Optional[datetime] = None,
    check_clashes: bool = True,
) -> Tuple[RotaDocument, List[Assignment]]:
    """
    Apply one reassignment to one document.

    Returns:
        (updated copy of the document, rows that changed)
    """
    ensure_reassignable(document)
    config = config or EngineConfig()
    rows = list(document.assignments)

    if request.scope == Scope.SLOT:
        changed = _reassign_slot(rows, document, request, config)
    else:
        changed = _reassign_all(rows, request, config)

    for i in changed:
        rows[i] = rows[i].with_staff(request.new_staff_id)
    if check_clashes and request.new_staff_id is not None:
        _check_no_clash(rows, changed, request.new_staff_id)

    updated = replace(document, assignments=rows, last_edited=now or datetime.now())
    updated.conflicts = detect_conflicts(updated, staff)
    return updated, [rows[i] for i in sorted(changed)]


def reassign(
    documents: Mapping[date, RotaDocument],
    request: ReassignRequest,
    *,
    config: Optional[EngineConfig] = None,
    staff: Optional[Mapping[str, StaffMember]] = None,
    now: Optional[datetime] = None,
    check_clashes: bool = True,
) -> ReassignResult:
    """
    Reassign at the request's scope.

    Args:
        documents: Rota documents by date (the week's documents for week scope)
        request: What to move and where
        config: Engine configuration (continuity locations, day boundaries)
        staff: Staff by ID, for validating the new staff and training audits
        now: Edit time stamped as ``last_edited``

    Returns:
        ReassignResult with updated document copies and per-date outcomes

    Raises:
        PreconditionError, NotFoundError, LifecycleError: for slot and day
            scope; week scope records these per date instead
    """
    config = config or EngineConfig()
    now = now or datetime.now()
    if request.original_staff_id == request.new_staff_id:
        raise PreconditionError("Original and new staff are the same")
    if staff is not None and request.new_staff_id is not None and request.new_staff_id not in staff:
        raise NotFoundError(f"Unknown staff member: {request.new_staff_id}")

    kwargs = dict(config=config, staff=staff, now=now, check_clashes=check_clashes)

    if request.scope != Scope.WEEK:
        document = documents.get(request.date)
        if document is None:
            raise NotFoundError(f"No rota for {request.date.isoformat()}")
        updated, changed = apply_to_document(document, request, **kwargs)
        logger.info(
            f"Reassigned {len(changed)} rows on {request.date}: "
            f"{request.original_staff_id} → {request.new_staff_id} ({request.scope.value})"
        )
        return ReassignResult(
            success=True,
            documents={request.date: updated},
            outcomes=[DateOutcome(request.date, document.id, True, changed=len(changed))],
        )

    result = ReassignResult(success=True)
    for on_date in week_dates(monday_of(request.date)):
        document = documents.get(on_date)
        if document is None:
            result.outcomes.append(DateOutcome(on_date, None, False, error="No rota for this date"))
            result.success = False
            continue
        try:
            updated, changed = apply_to_document(document, replace(request, date=on_date), **kwargs)
        except RotaError as exc:
            logger.warning(f"Week reassignment failed on {on_date}: {exc}")
            result.outcomes.append(DateOutcome(on_date, document.id, False, error=str(exc)))
            result.success = False
            continue
        result.documents[on_date] = updated
        result.outcomes.append(DateOutcome(on_date, document.id, True, changed=len(changed)))

    logger.info(
        f"Week reassignment {request.original_staff_id} → {request.new_staff_id}: "
        f"{sum(o.changed for o in result.outcomes)} rows, {len(result.failed_dates)} failed dates"
    )
    return result


def _clash_keys(documents: Mapping[date, RotaDocument], staff_ids: Set[str]) -> Set[Tuple]:
    keys = set()
    for doc in documents.values():
        rows = [a for a in doc.assignments if a.staff_id in staff_ids]
        for i, a in enumerate(rows):
            for b in rows[i + 1:]:
                if a.staff_id == b.staff_id and a.clashes_with(b):
                    keys.add((a.staff_id, a.date, a.location, a.start_time, b.location, b.start_time))
    return keys


def swap(
    documents: Mapping[date, RotaDocument],
    source: SlotRef,
    target: SlotRef,
    *,
    scope: Scope = Scope.SLOT,
    respect_continuity: bool = True,
    config: Optional[EngineConfig] = None,
    staff: Optional[Mapping[str, StaffMember]] = None,
    now: Optional[datetime] = None,
) -> ReassignResult:
    """
    Exchange the occupants of two slots with two sequential reassignments.

    When the target slot is empty the source is vacated and the source's
    staff member takes the target (a row is created if it has no
    placeholder). The pair is validated as a whole: the intermediate state
    may double-book, the final state may not.
    """
    if source.staff_id is None:
        raise PreconditionError("Swap source must hold a staff member")
    if (
        scope != Scope.SLOT
        and target.staff_id is not None
        and source.date == target.date
        and source.location == target.location
    ):
        raise PreconditionError("Day and week swaps need two different locations")

    def leg(ref: SlotRef, original, new, leg_scope: Scope) -> ReassignRequest:
        return ReassignRequest(
            date=ref.date,
            original_staff_id=original,
            new_staff_id=new,
            scope=leg_scope,
            location=ref.location,
            start_time=ref.start_time,
            end_time=ref.end_time,
            respect_continuity=respect_continuity,
        )

    if target.staff_id is None:
        first = leg(source, source.staff_id, None, scope)
        second = leg(target, None, source.staff_id, Scope.SLOT)
    else:
        first = leg(source, source.staff_id, target.staff_id, scope)
        second = leg(target, target.staff_id, source.staff_id, scope)

    kwargs = dict(config=config, staff=staff, now=now, check_clashes=False)
    involved = {s for s in (source.staff_id, target.staff_id) if s is not None}
    before = _clash_keys(documents, involved)

    first_result = reassign(documents, first, **kwargs)
    merged = {**documents, **first_result.documents}
    second_result = reassign(merged, second, **kwargs)
    result = first_result.merge(second_result)

    after = _clash_keys({**merged, **second_result.documents}, involved)
    introduced = after - before
    if introduced:
        staff_id, on_date, loc_a, start_a, loc_b, start_b = sorted(introduced)[0]
        raise PreconditionError(
            f"Swap would double-book {staff_id} on {on_date.isoformat()}: "
            f"{loc_a} {start_a} and {loc_b} {start_b}"
        )
    return result
