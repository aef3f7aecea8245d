"""Persisted, resumable generation input for one week."""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from .requirement import RoleRequest
from .staff import UnavailabilityRule


@dataclass
class RotaConfiguration:
    """
    What an operator chose before generating a week.

    Saved on every adjustment; each save becomes a new revision and the
    previous revision is kept as history.
    ``rota_unavailability`` holds protected time added for this week only,
    on top of each staff member's own rules.
    """

    week_start: date
    staff_ids: List[str] = field(default_factory=list)
    clinic_ids: Optional[List[str]] = None
    weekdays: List[str] = field(default_factory=list)
    working_days: Dict[str, List[str]] = field(default_factory=dict)
    ignored_unavailability: Dict[str, List[int]] = field(default_factory=dict)
    rota_unavailability: Dict[str, List[UnavailabilityRule]] = field(default_factory=dict)
    role_requests: Dict[str, List[RoleRequest]] = field(default_factory=dict)
    modified_by: str = ""
    modified_at: Optional[datetime] = None
    is_generated: bool = False
    generated_at: Optional[datetime] = None
    revision: int = 0

    def to_dict(self) -> Dict:
        return {
            "week_start": self.week_start.isoformat(),
            "staff_ids": list(self.staff_ids),
            "clinic_ids": list(self.clinic_ids) if self.clinic_ids is not None else None,
            "weekdays": list(self.weekdays),
            "working_days": {k: list(v) for k, v in self.working_days.items()},
            "ignored_unavailability": {k: list(v) for k, v in self.ignored_unavailability.items()},
            "rota_unavailability": {
                k: [r.to_dict() for r in v] for k, v in self.rota_unavailability.items()
            },
            "role_requests": {
                day: [r.to_dict() for r in reqs] for day, reqs in self.role_requests.items()
            },
            "modified_by": self.modified_by,
            "modified_at": self.modified_at.isoformat() if self.modified_at else None,
            "is_generated": self.is_generated,
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
        }

    @classmethod
    def from_dict(cls, d: Dict, revision: int = 0) -> "RotaConfiguration":
        clinic_ids = d.get("clinic_ids")
        return cls(
            week_start=date.fromisoformat(d["week_start"]),
            staff_ids=list(d.get("staff_ids", [])),
            clinic_ids=list(clinic_ids) if clinic_ids is not None else None,
            weekdays=list(d.get("weekdays", [])),
            working_days={k: list(v) for k, v in d.get("working_days", {}).items()},
            ignored_unavailability={
                k: [int(i) for i in v] for k, v in d.get("ignored_unavailability", {}).items()
            },
            rota_unavailability={
                k: [UnavailabilityRule.from_dict(r) for r in v]
                for k, v in d.get("rota_unavailability", {}).items()
            },
            role_requests={
                day: [RoleRequest.from_dict(r) for r in reqs]
                for day, reqs in d.get("role_requests", {}).items()
            },
            modified_by=d.get("modified_by", ""),
            modified_at=datetime.fromisoformat(d["modified_at"]) if d.get("modified_at") else None,
            is_generated=bool(d.get("is_generated", False)),
            generated_at=datetime.fromisoformat(d["generated_at"]) if d.get("generated_at") else None,
            revision=revision,
        )
