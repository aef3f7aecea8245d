"""
Pydantic Validated Models
=========================
Validation layer for requests that cross the engine boundary
(generation, reassignment, engine configuration).

Usage:
    from pharmrota.models.validated import GenerateRequest

    request = GenerateRequest(week_start="2024-04-01", staff_ids=["t1"],
                              selected_weekdays=["Mon", "Tue"])

The dataclass models stay the engine's working types; each validated
model converts into them.
"""
import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .shift import normalize_days, normalize_time


class ScopeEnum(str, Enum):
    """Breadth of a reassignment."""
    SLOT = "slot"
    DAY = "day"
    WEEK = "week"


def _time(v: Optional[str]) -> Optional[str]:
    return normalize_time(v) if v else v


class RoleRequestModel(BaseModel):
    """An ad hoc role for one weekday."""
    model_config = ConfigDict(validate_assignment=True)

    name: str = Field(min_length=1)
    start_time: str = Field(default="09:00")
    end_time: str = Field(default="17:00")
    count: int = Field(default=1, ge=1, le=20)
    training_type: Optional[str] = None
    difficulty: int = Field(default=5, ge=1, le=10)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return normalize_time(v)

    @model_validator(mode="after")
    def validate_window(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self

    def to_dataclass(self):
        from pharmrota.models.requirement import RoleRequest

        return RoleRequest(
            name=self.name,
            start_time=self.start_time,
            end_time=self.end_time,
            count=self.count,
            training_type=self.training_type,
            difficulty=self.difficulty,
        )


class UnavailabilityRuleModel(BaseModel):
    """A protected-time window that applies to one week's rota only."""
    model_config = ConfigDict(validate_assignment=True)

    weekday: str
    start_time: str
    end_time: str

    @field_validator("weekday")
    @classmethod
    def validate_weekday(cls, v: str) -> str:
        (day,) = normalize_days([v])
        return day

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return normalize_time(v)

    @model_validator(mode="after")
    def validate_window(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self

    def to_dataclass(self):
        from pharmrota.models.staff import UnavailabilityRule

        return UnavailabilityRule(self.weekday, self.start_time, self.end_time)



class GenerateRequest(BaseModel):
    """
    Pydantic-validated request to generate a week's rota.

    Day names are normalized (``"mon"`` -> ``"Monday"``); unknown names are
    rejected. Emptiness of staff or weekdays is not a validation error here:
    the generator reports it as a precondition failure.
    """
    model_config = ConfigDict(validate_assignment=True)

    week_start: datetime.date
    staff_ids: List[str] = Field(default_factory=list)
    selected_weekdays: List[str] = Field(default_factory=list)
    working_days_override: Dict[str, List[str]] = Field(default_factory=dict)
    extra_role_requests_by_weekday: Dict[str, List[RoleRequestModel]] = Field(default_factory=dict)
    selected_clinic_ids: Optional[List[str]] = None
    ignored_unavailability: Dict[str, List[int]] = Field(default_factory=dict)
    rota_unavailability: Dict[str, List[UnavailabilityRuleModel]] = Field(default_factory=dict)

    @field_validator("selected_weekdays")
    @classmethod
    def validate_weekdays(cls, v: List[str]) -> List[str]:
        return normalize_days(v)

    @field_validator("working_days_override")
    @classmethod
    def validate_working_days(cls, v: Dict[str, List[str]]) -> Dict[str, List[str]]:
        return {staff_id: normalize_days(days) for staff_id, days in v.items()}

    @field_validator("extra_role_requests_by_weekday")
    @classmethod
    def validate_role_days(cls, v):
        result = {}
        for day, requests in v.items():
            (canonical,) = normalize_days([day])
            result.setdefault(canonical, []).extend(requests)
        return result

    @field_validator("ignored_unavailability")
    @classmethod
    def validate_ignored(cls, v: Dict[str, List[int]]) -> Dict[str, List[int]]:
        for staff_id, indexes in v.items():
            if any(i < 0 for i in indexes):
                raise ValueError(f"negative unavailability rule index for {staff_id}")
        return v

    def role_requests(self):
        """Role requests as engine dataclasses, keyed by weekday."""
        return {
            day: [r.to_dataclass() for r in requests]
            for day, requests in self.extra_role_requests_by_weekday.items()
        }

    def rota_rules(self):
        """Per-rota protected time as engine dataclasses, keyed by staff ID."""
        return {
            staff_id: [r.to_dataclass() for r in rules]
            for staff_id, rules in self.rota_unavailability.items()
        }

    def to_configuration(self, modified_by: str = ""):
        """Convert to the persisted RotaConfiguration dataclass."""
        from pharmrota.models.configuration import RotaConfiguration

        return RotaConfiguration(
            week_start=self.week_start,
            staff_ids=list(self.staff_ids),
            clinic_ids=list(self.selected_clinic_ids) if self.selected_clinic_ids is not None else None,
            weekdays=list(self.selected_weekdays),
            working_days={k: list(v) for k, v in self.working_days_override.items()},
            ignored_unavailability={k: list(v) for k, v in self.ignored_unavailability.items()},
            rota_unavailability=self.rota_rules(),
            role_requests=self.role_requests(),
            modified_by=modified_by,
        )

    @classmethod
    def from_configuration(cls, config) -> "GenerateRequest":
        """Rebuild a request from a saved RotaConfiguration (resume)."""
        return cls(
            week_start=config.week_start,
            staff_ids=list(config.staff_ids),
            selected_weekdays=list(config.weekdays),
            working_days_override={k: list(v) for k, v in config.working_days.items()},
            extra_role_requests_by_weekday={
                day: [r.to_dict() for r in reqs] for day, reqs in config.role_requests.items()
            },
            selected_clinic_ids=config.clinic_ids,
            ignored_unavailability={k: list(v) for k, v in config.ignored_unavailability.items()},
            rota_unavailability={
                k: [r.to_dict() for r in v] for k, v in config.rota_unavailability.items()
            },
        )


class ReassignRequestModel(BaseModel):
    """Pydantic-validated reassignment request."""
    model_config = ConfigDict(validate_assignment=True)

    date: datetime.date
    original_staff_id: Optional[str] = None
    new_staff_id: Optional[str] = None
    scope: ScopeEnum = ScopeEnum.SLOT
    location: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    respect_continuity: bool = True
    rota_ids_by_date: Dict[datetime.date, str] = Field(default_factory=dict)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        return _time(v)

    @model_validator(mode="after")
    def validate_scope(self):
        """Cross-field validation."""
        if self.scope == ScopeEnum.SLOT and (not self.location or not self.start_time):
            raise ValueError("slot scope requires location and start_time")
        if self.scope != ScopeEnum.SLOT and not self.original_staff_id:
            raise ValueError(f"{self.scope.value} scope requires original_staff_id")
        if self.original_staff_id is None and self.new_staff_id is None:
            raise ValueError("at least one of original_staff_id and new_staff_id is required")
        return self

    def to_dataclass(self):
        """Convert to the ReassignRequest the reassignment protocol works with."""
        from pharmrota.solver.reassign import ReassignRequest, Scope

        return ReassignRequest(
            date=self.date,
            original_staff_id=self.original_staff_id,
            new_staff_id=self.new_staff_id,
            scope=Scope(self.scope.value),
            location=self.location,
            start_time=self.start_time,
            end_time=self.end_time,
            respect_continuity=self.respect_continuity,
        )


class ValidatedEngineConfig(BaseModel):
    """Pydantic-validated engine configuration."""
    model_config = ConfigDict(validate_assignment=True)

    category_priority: Dict[str, int] = Field(
        default_factory=lambda: {
            "ward": 0, "eau": 0, "dispensary": 1, "clinic": 2, "pharmacy": 2, "management": 3,
        }
    )
    default_category_rank: int = Field(default=2, ge=0)
    continuity_locations: List[str] = Field(default_factory=lambda: ["EAU", "AMU"])
    midday: str = Field(default="13:00")
    day_end: str = Field(default="17:00")
    retention_months: int = Field(default=2, ge=1, le=24)

    @field_validator("midday", "day_end")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return normalize_time(v)

    @field_validator("category_priority")
    @classmethod
    def validate_priority(cls, v: Dict[str, int]) -> Dict[str, int]:
        return {k.strip().lower(): rank for k, rank in v.items()}

    @model_validator(mode="after")
    def validate_boundaries(self):
        if not self.midday < self.day_end:
            raise ValueError("midday must be before day_end")
        return self

    def to_dataclass(self):
        """Convert to dataclass EngineConfig."""
        from pharmrota.models.constraints import EngineConfig

        return EngineConfig(
            category_priority=dict(self.category_priority),
            default_category_rank=self.default_category_rank,
            continuity_locations=list(self.continuity_locations),
            midday=self.midday,
            day_end=self.day_end,
            retention_months=self.retention_months,
        )

    @classmethod
    def from_dataclass(cls, config) -> "ValidatedEngineConfig":
        return cls(**config.to_dict())
