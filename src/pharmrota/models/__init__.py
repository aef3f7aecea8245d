# pharmrota/models - Data models for the rota engine
from .configuration import RotaConfiguration
from .constraints import CoverageTarget, EngineConfig
from .reference import ReferenceData
from .requirement import ClinicSlot, DutyRequirement, RoleRequest, WorkItem
from .schedule import Assignment, CellKey, Conflict, RotaDocument, RotaStatus, Severity
from .shift import ALL_DAYS, WEEKDAYS, WEEKEND, AssignmentType
from .staff import StaffMember, UnavailabilityRule

__all__ = [
    "StaffMember", "UnavailabilityRule",
    "AssignmentType", "WEEKDAYS", "WEEKEND", "ALL_DAYS",
    "DutyRequirement", "ClinicSlot", "RoleRequest", "WorkItem",
    "Assignment", "CellKey", "Conflict", "Severity", "RotaDocument", "RotaStatus",
    "EngineConfig", "CoverageTarget", "RotaConfiguration",
    "ReferenceData",
]
