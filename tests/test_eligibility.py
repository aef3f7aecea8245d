"""Tests for the constraint evaluator."""
from datetime import date

from pharmrota.models.requirement import WorkItem
from pharmrota.models.shift import AssignmentType
from pharmrota.models.staff import StaffMember, UnavailabilityRule
from pharmrota.solver.eligibility import (
    DO_NOT_SPLIT,
    MISSING_TRAINING,
    NOT_WORKING_DAY,
    UNAVAILABLE,
    WARFARIN_REQUIRED,
    has_capacity,
    is_eligible,
    working_days_for,
)

from conftest import row

MONDAY = date(2024, 4, 8)
TUESDAY = date(2024, 4, 9)
WEDNESDAY = date(2024, 4, 10)


def item(location="Ward 1", kind=AssignmentType.WARD, start="09:00", end="17:00", **kwargs):
    return WorkItem(
        key=f"test:{location}", type=kind, location=location, category=kind.value,
        start_time=start, end_time=end, min_staff=1, ideal_staff=1, **kwargs,
    )


class TestWorkingDays:
    """Tests for the working-day check."""

    def test_not_working_day(self):
        """Test staff are rejected outside their working days."""
        s = StaffMember(id="s1", name="Sam", working_days=("Monday",))
        verdict = is_eligible(s, item(), TUESDAY)
        assert not verdict
        assert verdict.reason == NOT_WORKING_DAY

    def test_unconfigured_working_days_means_available(self):
        """Test an empty working-day set is treated as every day."""
        s = StaffMember(id="s1", name="Sam")
        assert is_eligible(s, item(), date(2024, 4, 13))

    def test_override_replaces_working_days(self):
        """Test a per-rota override takes precedence over the staff pattern."""
        s = StaffMember(id="s1", name="Sam", working_days=("Monday",))
        override = {"s1": ["Tuesday"]}
        assert is_eligible(s, item(), TUESDAY, working_days_override=override)
        assert not is_eligible(s, item(), MONDAY, working_days_override=override)
        assert working_days_for(s, override) == ["Tuesday"]
        assert working_days_for(s) == ("Monday",)


class TestUnavailability:
    """Tests for unavailability rules."""

    def setup_method(self):
        self.staff = StaffMember(
            id="s1", name="Sam",
            unavailability=(UnavailabilityRule("Wednesday", "13:00", "17:00"),),
        )

    def test_overlapping_rule_blocks(self):
        """Test a full-day item overlapping the rule is blocked."""
        verdict = is_eligible(self.staff, item(), WEDNESDAY)
        assert verdict.reason == UNAVAILABLE

    def test_touching_window_is_allowed(self):
        """Test a morning item ending when the rule starts is allowed."""
        assert is_eligible(self.staff, item(end="13:00"), WEDNESDAY)

    def test_other_weekday_is_allowed(self):
        """Test the rule only applies on its weekday."""
        assert is_eligible(self.staff, item(), TUESDAY)

    def test_ignored_rule(self):
        """Test an ignored rule index is disregarded for this rota."""
        assert is_eligible(self.staff, item(), WEDNESDAY, ignored_rules={"s1": [0]})
        assert not is_eligible(self.staff, item(), WEDNESDAY, ignored_rules={"s1": [1]})

    def test_rota_rule_blocks(self):
        """Test protected time added for one rota blocks like a standing rule."""
        extra = {"s1": [UnavailabilityRule("Monday", "09:00", "13:00")]}
        verdict = is_eligible(self.staff, item(), MONDAY, rota_unavailability=extra)
        assert not verdict
        assert verdict.reason == UNAVAILABLE
        assert is_eligible(self.staff, item(start="13:00"), MONDAY, rota_unavailability=extra)

    def test_rota_rule_not_ignorable(self):
        """Test ignored indexes only apply to the staff member's own rules."""
        extra = {"s1": [UnavailabilityRule("Wednesday", "09:00", "10:00")]}
        verdict = is_eligible(self.staff, item(), WEDNESDAY,
                              ignored_rules={"s1": [0]}, rota_unavailability=extra)
        assert verdict.reason == UNAVAILABLE

    def test_rota_rule_for_other_staff(self):
        extra = {"s2": [UnavailabilityRule("Monday", "09:00", "17:00")]}
        assert is_eligible(self.staff, item(), MONDAY, rota_unavailability=extra)


class TestTraining:
    """Tests for the training checks."""

    def test_missing_training_tag(self):
        """Test a training-gated item rejects staff without the tag."""
        s = StaffMember(id="s1", name="Sam")
        verdict = is_eligible(s, item(training_type="AccuracyChecker"), MONDAY)
        assert verdict.reason == MISSING_TRAINING

    def test_training_tag_present(self):
        """Test staff holding the tag pass."""
        s = StaffMember(id="s1", name="Sam", training=("AccuracyChecker",))
        assert is_eligible(s, item(training_type="AccuracyChecker"), MONDAY)

    def test_clinic_requires_warfarin(self):
        """Test warfarin clinics need warfarin-trained staff."""
        s = StaffMember(id="s1", name="Sam")
        clinic = item("Warfarin Clinic", AssignmentType.CLINIC, end="13:00", requires_warfarin=True)
        assert is_eligible(s, clinic, MONDAY).reason == WARFARIN_REQUIRED

        trained = StaffMember(id="s2", name="Tia", warfarin_trained=True)
        assert is_eligible(trained, clinic, MONDAY)

    def test_clinic_without_warfarin_requirement(self):
        """Test clinics that do not require warfarin accept anyone."""
        s = StaffMember(id="s1", name="Sam")
        clinic = item("Anticoag Review", AssignmentType.CLINIC, end="13:00")
        assert is_eligible(s, clinic, MONDAY)


class TestExclusivity:
    """Tests for do-not-split exclusivity."""

    def test_committed_to_exclusive_row(self):
        """Test nobody committed to a do-not-split duty takes anything else."""
        s = StaffMember(id="s1", name="Sam")
        placed = [row("s1", "EAU", "09:00", "13:00", exclusive=True)]
        verdict = is_eligible(s, item("Dispensary", AssignmentType.DISPENSARY, start="13:00"),
                              MONDAY, day_assignments=placed)
        assert verdict.reason == DO_NOT_SPLIT

    def test_do_not_split_item_needs_empty_day(self):
        """Test a do-not-split item cannot take someone already placed."""
        s = StaffMember(id="s1", name="Sam")
        placed = [row("s1", "Dispensary", "13:00", "17:00", kind=AssignmentType.DISPENSARY)]
        verdict = is_eligible(s, item("EAU", end="13:00", do_not_split=True),
                              MONDAY, day_assignments=placed)
        assert verdict.reason == DO_NOT_SPLIT

    def test_other_staff_rows_ignored(self):
        """Test rows held by other staff do not count."""
        s = StaffMember(id="s1", name="Sam")
        placed = [row("s2", "EAU", exclusive=True)]
        assert is_eligible(s, item("EAU", do_not_split=True), MONDAY, day_assignments=placed)


class TestCheckOrder:
    """Tests that checks short-circuit in order."""

    def test_working_day_reported_before_unavailability(self):
        """Test the first failing check is the one reported."""
        s = StaffMember(
            id="s1", name="Sam", working_days=("Monday",),
            unavailability=(UnavailabilityRule("Wednesday", "09:00", "17:00"),),
        )
        assert is_eligible(s, item(training_type="X"), WEDNESDAY).reason == NOT_WORKING_DAY

    def test_unavailability_reported_before_training(self):
        """Test unavailability outranks training."""
        s = StaffMember(
            id="s1", name="Sam",
            unavailability=(UnavailabilityRule("Monday", "09:00", "17:00"),),
        )
        assert is_eligible(s, item(training_type="X"), MONDAY).reason == UNAVAILABLE

    def test_eligible_has_no_reason(self):
        """Test an eligible verdict carries no reason."""
        verdict = is_eligible(StaffMember(id="s1", name="Sam"), item(), MONDAY)
        assert verdict.eligible
        assert verdict.reason is None


class TestCapacity:
    """Tests for has_capacity."""

    def test_half_days_do_not_block_each_other(self):
        """Test a morning row leaves the afternoon free."""
        placed = [row("s1", "Ward 1", "09:00", "13:00")]
        assert has_capacity("s1", row("s1", "Ward 2", "13:00", "17:00"), placed)

    def test_full_day_blocks(self):
        """Test a full-day row blocks any overlapping row."""
        placed = [row("s1", "Ward 1")]
        assert not has_capacity("s1", row("s1", "Ward 2", "13:00", "17:00"), placed)

    def test_shared_rows_may_overlap(self):
        """Test two split-shareable rows may overlap."""
        placed = [row("s1", "Ward 1", shared=True)]
        assert has_capacity("s1", row("s1", "Ward 2", shared=True), placed)
