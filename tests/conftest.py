"""Pytest configuration and fixtures."""
import sys
from datetime import date, datetime
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from pharmrota.models.constraints import CoverageTarget, EngineConfig
from pharmrota.models.reference import ReferenceData
from pharmrota.models.requirement import ClinicSlot, DutyRequirement
from pharmrota.models.schedule import Assignment, RotaDocument
from pharmrota.models.shift import AssignmentType
from pharmrota.models.staff import StaffMember, UnavailabilityRule

MONDAY = date(2024, 4, 8)


@pytest.fixture
def week_start():
    """A Monday with no bank holiday in its week."""
    return MONDAY


@pytest.fixture
def generated_at():
    return datetime(2024, 4, 5, 10, 0, 0)


@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def sample_staff():
    """A small technician team."""
    return [
        StaffMember(
            id="t1", name="Alice", trained_locations=("Ward 1", "EAU"),
            training=("AccuracyChecker",), warfarin_trained=True, is_default=True,
        ),
        StaffMember(
            id="t2", name="Bob", trained_locations=("Ward 1",), is_default=True,
            working_days=("Monday", "Tuesday", "Wednesday", "Thursday", "Friday"),
        ),
        StaffMember(
            id="t3", name="Carol", warfarin_trained=True,
            unavailability=(UnavailabilityRule("Wednesday", "13:00", "17:00"),),
        ),
        StaffMember(id="t4", name="Dan", working_days=("Monday", "Tuesday")),
    ]


@pytest.fixture
def sample_requirements():
    return [
        DutyRequirement(id="r-ward1", name="Ward 1", category="ward",
                        min_staff=1, ideal_staff=1, difficulty=8),
        DutyRequirement(id="r-disp", name="Dispensary", category="dispensary",
                        min_staff=1, ideal_staff=2, difficulty=5),
        DutyRequirement(id="r-mgmt", name="Management Time", category="management",
                        min_staff=0, ideal_staff=1, difficulty=1),
    ]


@pytest.fixture
def sample_clinics():
    return [
        ClinicSlot(id="c-warf", name="Warfarin Clinic", weekday="Tuesday",
                   start_time="09:00", end_time="13:00"),
    ]


@pytest.fixture
def reference(sample_staff, sample_requirements, sample_clinics):
    return ReferenceData(
        staff=sample_staff, requirements=sample_requirements, clinics=sample_clinics
    )


@pytest.fixture
def staff_by_id(sample_staff):
    return {s.id: s for s in sample_staff}


def row(staff_id, location, start="09:00", end="17:00", kind=AssignmentType.WARD,
        on=MONDAY, **kwargs):
    """Build an Assignment with short defaults."""
    return Assignment(
        staff_id=staff_id, type=kind, location=location, date=on,
        start_time=start, end_time=end, category=kwargs.pop("category", kind.value), **kwargs,
    )


def target(location, start="09:00", end="17:00", kind=AssignmentType.WARD,
           minimum=1, ideal=1, **kwargs):
    return CoverageTarget(
        location=location, type=kind, start_time=start, end_time=end,
        minimum=minimum, ideal=ideal, **kwargs,
    )


@pytest.fixture
def monday_document():
    """A Monday draft with a ward, a dispensary, a split EAU day and an empty clinic."""
    return RotaDocument(
        date=MONDAY,
        week_start=MONDAY,
        id="rota-mon",
        assignments=[
            row("t1", "Ward 1"),
            row("t2", "Dispensary", kind=AssignmentType.DISPENSARY),
            row("t3", "EAU", "09:00", "13:00"),
            row("t3", "EAU", "13:00", "17:00"),
            row(None, "Warfarin Clinic", "09:00", "13:00", kind=AssignmentType.CLINIC),
        ],
        coverage=[
            target("Ward 1"),
            target("Dispensary", kind=AssignmentType.DISPENSARY),
            target("EAU"),
            target("Warfarin Clinic", "09:00", "13:00", kind=AssignmentType.CLINIC),
        ],
    )
