"""Immutable snapshot of the reference data the engine reads."""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import NotFoundError
from .requirement import ClinicSlot, DutyRequirement
from .staff import StaffMember


@dataclass(frozen=True)
class ReferenceData:
    """
    Staff, requirements and clinics loaded once and passed by value.

    The generator and reassignment functions only ever receive a snapshot,
    never a live collection.
    """

    staff: Tuple[StaffMember, ...] = ()
    requirements: Tuple[DutyRequirement, ...] = ()
    clinics: Tuple[ClinicSlot, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "staff", tuple(self.staff))
        object.__setattr__(self, "requirements", tuple(self.requirements))
        object.__setattr__(self, "clinics", tuple(self.clinics))

    def staff_by_id(self) -> Dict[str, StaffMember]:
        return {s.id: s for s in self.staff}

    def get_staff(self, staff_id: str) -> StaffMember:
        for s in self.staff:
            if s.id == staff_id:
                return s
        raise NotFoundError(f"Unknown staff member: {staff_id}")

    def select_staff(self, staff_ids: Iterable[str]) -> Tuple[StaffMember, ...]:
        """Staff for the given IDs, in the given order."""
        return tuple(self.get_staff(sid) for sid in staff_ids)

    def default_roster(self) -> Tuple[StaffMember, ...]:
        return tuple(s for s in self.staff if s.is_default)

    def active_requirements(self) -> Tuple[DutyRequirement, ...]:
        return tuple(r for r in self.requirements if r.active)

    def select_clinics(self, clinic_ids: Optional[Iterable[str]] = None) -> Tuple[ClinicSlot, ...]:
        """
        Active clinics for a generation run.

        With no explicit selection, every active clinic flagged
        ``include_by_default`` is used.
        """
        if clinic_ids is None:
            return tuple(c for c in self.clinics if c.active and c.include_by_default)
        by_id = {c.id: c for c in self.clinics}
        selected: List[ClinicSlot] = []
        for cid in clinic_ids:
            if cid not in by_id:
                raise NotFoundError(f"Unknown clinic: {cid}")
            if by_id[cid].active:
                selected.append(by_id[cid])
        return tuple(selected)
