"""Tests for conflict detection."""
import copy

from pharmrota.models.schedule import RotaDocument, Severity
from pharmrota.models.shift import AssignmentType
from pharmrota.models.staff import StaffMember
from pharmrota.solver.conflicts import (
    BELOW_IDEAL,
    DOUBLE_BOOKING,
    MISSING_TRAINING,
    TRAINING_MISMATCH,
    UNDERSTAFFED,
    UNKNOWN_STAFF,
    coverage_count,
    detect_conflicts,
    find_double_bookings,
    summarize,
)

from conftest import MONDAY, row, target


def document(assignments, coverage=()):
    return RotaDocument(date=MONDAY, week_start=MONDAY, id="doc",
                        assignments=list(assignments), coverage=list(coverage))


def types(conflicts):
    return [c.type for c in conflicts]


class TestCoverageCount:
    """Tests for coverage_count."""

    def test_two_halves_cover_once(self):
        """Test a morning and an afternoon row cover a full-day target once."""
        rows = [row("a", "Ward 1", "09:00", "13:00"), row("b", "Ward 1", "13:00", "17:00")]
        assert coverage_count(target("Ward 1"), rows) == 1

    def test_half_day_only(self):
        """Test a single half-day row leaves the other half uncovered."""
        rows = [row("a", "Ward 1", "09:00", "13:00")]
        assert coverage_count(target("Ward 1"), rows) == 0

    def test_keyed_rows_count_for_their_item_only(self):
        """Test rows generated for one requirement do not cover a same-named sibling."""
        kind = AssignmentType.DISPENSARY
        rows = [
            row("a", "Dispensary", "09:00", "13:00", kind=kind, item_key="requirement:d1"),
            row("b", "Dispensary", "09:00", "13:00", kind=kind, item_key="requirement:d2"),
        ]
        first = target("Dispensary", "09:00", "13:00", kind, item_key="requirement:d1")
        second = target("Dispensary", "09:00", "13:00", kind, minimum=2,
                        item_key="requirement:d2")
        assert coverage_count(first, rows) == 1
        assert coverage_count(second, rows) == 1
        assert types(detect_conflicts(document(rows, [first, second]))) == [UNDERSTAFFED]

    def test_unkeyed_rows_count_by_location(self):
        """Test hand-made rows without an item key still count by location and type."""
        rows = [row("a", "Ward 1"), row("b", "Ward 1", item_key="requirement:w")]
        assert coverage_count(target("Ward 1", item_key="requirement:w"), rows) == 2
        assert coverage_count(target("Ward 1"), rows) == 2
        assert coverage_count(target("Ward 1", "09:00", "13:00"), rows) == 1

    def test_distinct_staff(self):
        """Test two full-day staff count twice, one person split in two counts once."""
        assert coverage_count(target("Ward 1"), [row("a", "Ward 1"), row("b", "Ward 1")]) == 2
        split = [row("a", "Ward 1", "09:00", "13:00"), row("a", "Ward 1", "13:00", "17:00")]
        assert coverage_count(target("Ward 1"), split) == 1

    def test_gaps_and_other_locations_ignored(self):
        """Test placeholders and other locations are not counted."""
        rows = [row(None, "Ward 1"), row("a", "Ward 2")]
        assert coverage_count(target("Ward 1"), rows) == 0


class TestCoverageConflicts:
    """Tests for understaffing conflicts."""

    def test_below_minimum_is_error(self):
        """Test an unfilled minimum is an error."""
        doc = document([row(None, "Ward 1")], [target("Ward 1")])
        conflicts = detect_conflicts(doc)
        assert types(conflicts) == [UNDERSTAFFED]
        assert conflicts[0].severity == Severity.ERROR
        assert conflicts[0].location == "Ward 1"

    def test_below_ideal_is_warning(self):
        """Test minimum met but ideal missed is a warning."""
        doc = document([row("a", "Ward 1")], [target("Ward 1", ideal=2)])
        conflicts = detect_conflicts(doc)
        assert types(conflicts) == [BELOW_IDEAL]
        assert conflicts[0].severity == Severity.WARNING

    def test_ideal_met(self):
        """Test no coverage conflict at ideal."""
        doc = document([row("a", "Ward 1"), row("b", "Ward 1")], [target("Ward 1", ideal=2)])
        assert detect_conflicts(doc) == []


class TestDoubleBooking:
    """Tests for double-booking detection."""

    def test_overlap_is_error(self):
        """Test overlapping rows for one person are an error."""
        rows = [row("a", "Ward 1"), row("a", "Dispensary", "13:00", "17:00",
                                        kind=AssignmentType.DISPENSARY)]
        conflicts = find_double_bookings(rows)
        assert types(conflicts) == [DOUBLE_BOOKING]
        assert conflicts[0].staff_id == "a"
        assert conflicts[0].severity == Severity.ERROR

    def test_adjacent_rows_are_fine(self):
        """Test back-to-back half days do not clash."""
        rows = [row("a", "Ward 1", "09:00", "13:00"), row("a", "Ward 2", "13:00", "17:00")]
        assert find_double_bookings(rows) == []

    def test_shared_rows(self):
        """Test two split-shareable rows may overlap; one shared row may not."""
        both = [row("a", "Ward 1", shared=True), row("a", "Ward 2", shared=True)]
        assert find_double_bookings(both) == []
        one = [row("a", "Ward 1", shared=True), row("a", "Ward 2")]
        assert types(find_double_bookings(one)) == [DOUBLE_BOOKING]

    def test_gaps_never_double_book(self):
        """Test placeholders are not a person."""
        assert find_double_bookings([row(None, "Ward 1"), row(None, "Ward 2")]) == []


class TestTrainingConflicts:
    """Tests for training audits."""

    def test_ward_outside_trained_set(self):
        """Test a ward outside a non-empty trained set is a warning."""
        staff = {"a": StaffMember(id="a", name="Amy", trained_locations=("Ward 2",))}
        doc = document([row("a", "Ward 1")], [target("Ward 1")])
        conflicts = detect_conflicts(doc, staff)
        assert types(conflicts) == [TRAINING_MISMATCH]
        assert conflicts[0].severity == Severity.WARNING

    def test_directorate_counts_as_trained(self):
        """Test directorate training satisfies the ward check."""
        staff = {"a": StaffMember(id="a", name="Amy", trained_locations=("Surgery",))}
        doc = document([row("a", "Ward 1")], [target("Ward 1", directorate="Surgery")])
        assert detect_conflicts(doc, staff) == []

    def test_empty_trained_set_not_flagged(self):
        """Test staff with no recorded training locations are not flagged."""
        staff = {"a": StaffMember(id="a", name="Amy")}
        doc = document([row("a", "Ward 1")], [target("Ward 1")])
        assert detect_conflicts(doc, staff) == []

    def test_non_ward_rows_not_flagged(self):
        """Test the trained-location check applies to wards only."""
        staff = {"a": StaffMember(id="a", name="Amy", trained_locations=("Ward 2",))}
        doc = document([row("a", "Dispensary", kind=AssignmentType.DISPENSARY)])
        assert detect_conflicts(doc, staff) == []

    def test_missing_training_tag(self):
        """Test a missing training tag is a warning."""
        staff = {"a": StaffMember(id="a", name="Amy")}
        doc = document([row("a", "Ward 1")], [target("Ward 1", training_type="AccuracyChecker")])
        assert types(detect_conflicts(doc, staff)) == [MISSING_TRAINING]

    def test_unknown_staff(self):
        """Test staff IDs missing from the lookup are a warning."""
        doc = document([row("ghost", "Ward 1")], [target("Ward 1")])
        conflicts = detect_conflicts(doc, {})
        assert types(conflicts) == [UNKNOWN_STAFF]
        assert conflicts[0].staff_id == "ghost"

    def test_training_skipped_without_lookup(self):
        """Test training audits need a staff lookup."""
        doc = document([row("ghost", "Ward 1")], [target("Ward 1")])
        assert detect_conflicts(doc) == []


class TestPurity:
    """Tests that detection is pure and idempotent."""

    def test_idempotent(self, monday_document, staff_by_id):
        """Test repeated runs agree and the document is not modified."""
        before = copy.deepcopy(monday_document)
        first = detect_conflicts(monday_document, staff_by_id)
        second = detect_conflicts(monday_document, staff_by_id)
        assert first == second
        assert monday_document == before

    def test_ordering(self):
        """Test coverage conflicts come before double bookings."""
        doc = document(
            [row("a", "Ward 1"), row("a", "Ward 2")],
            [target("Ward 1", ideal=2)],
        )
        assert types(detect_conflicts(doc)) == [BELOW_IDEAL, DOUBLE_BOOKING]


class TestSummarize:
    """Tests for summarize."""

    def test_counts(self, monday_document):
        """Test errors, warnings and per-type counts across documents."""
        monday_document.conflicts = detect_conflicts(monday_document)
        summary = summarize([monday_document])
        assert summary.has_errors
        assert summary.errors == 1
        assert summary.by_type == {UNDERSTAFFED: 1}
