"""Tests for reference-data loading and rota export."""
import json

import pandas as pd
import pytest

from pharmrota.io.csv_loader import (
    load_clinics,
    load_reference,
    load_requirements,
    load_staff,
    parse_unavailability,
    save_staff,
    staff_to_dataframe,
)
from pharmrota.io.results_export import (
    WEEK_COLUMNS,
    build_export,
    export_week,
    staff_matrix,
    week_to_dataframe,
)
from pharmrota.models.staff import UnavailabilityRule


@pytest.fixture
def staff_df():
    return pd.DataFrame({
        "id": ["t1", "t2", ""],
        "name": ["Alice", "Bob", "Carol"],
        "trained_locations": ["Ward 1; EAU", "", ""],
        "training": ["AccuracyChecker", "", ""],
        "warfarin_trained": ["yes", "0", ""],
        "working_days": ["Mon;Tue;Wed", "", "Friday"],
        "unavailability": ["Wednesday 13:00-17:00", "", ""],
        "is_default": ["1", "true", "no"],
    })


class TestParseUnavailability:
    """Tests for unavailability cells."""

    def test_parses_multiple(self):
        """Test several ';'-separated entries."""
        rules = parse_unavailability("Wednesday 13:00-17:00; fri 9:00-13:00")
        assert rules == (
            UnavailabilityRule("Wednesday", "13:00", "17:00"),
            UnavailabilityRule("Friday", "09:00", "13:00"),
        )

    def test_empty(self):
        """Test empty cells give no rules."""
        assert parse_unavailability("") == ()
        assert parse_unavailability(None) == ()

    def test_invalid(self):
        """Test malformed entries raise ValueError."""
        with pytest.raises(ValueError):
            parse_unavailability("Wednesday afternoon")


class TestLoadStaff:
    """Tests for load_staff."""

    def test_from_dataframe(self, staff_df):
        """Test list, boolean and unavailability columns."""
        staff = load_staff(staff_df)
        assert [s.id for s in staff] == ["t1", "t2", "staff-2"]
        alice = staff[0]
        assert alice.trained_locations == ("Ward 1", "EAU")
        assert alice.warfarin_trained
        assert alice.working_days == ("Monday", "Tuesday", "Wednesday")
        assert alice.unavailability == (UnavailabilityRule("Wednesday", "13:00", "17:00"),)
        assert [s.is_default for s in staff] == [True, True, False]
        assert staff[1].working_days == ()

    def test_requires_name_column(self):
        """Test a missing name column raises ValueError."""
        with pytest.raises(ValueError):
            load_staff(pd.DataFrame({"id": ["t1"]}))

    def test_skips_blank_names(self):
        """Test rows without a name are skipped."""
        assert load_staff(pd.DataFrame({"name": ["", "Dan"]}))[0].name == "Dan"

    def test_save_and_reload(self, staff_df, tmp_path):
        """Test saving to CSV and loading back keeps the key fields."""
        staff = load_staff(staff_df)
        path = tmp_path / "staff.csv"
        save_staff(staff, path)
        reloaded = load_staff(path)
        assert reloaded == staff

    def test_empty_dataframe_layout(self):
        """Test an empty staff list still has the CSV columns."""
        assert "unavailability" in staff_to_dataframe([]).columns


class TestLoadRequirements:
    """Tests for load_requirements and load_clinics."""

    def test_requirements_defaults(self):
        """Test defaults for missing cells."""
        df = pd.DataFrame({
            "name": ["Ward 1", "Dispensary"],
            "category": ["ward", "dispensary"],
            "min_staff": ["2", ""],
            "ideal_staff": ["", "3"],
            "days": ["", "Mon; Tue"],
            "do_not_split": ["", "yes"],
        })
        reqs = load_requirements(df)
        assert reqs[0].min_staff == 2 and reqs[0].ideal_staff == 2
        assert reqs[0].difficulty == 5
        assert reqs[0].active
        assert reqs[1].min_staff == 1 and reqs[1].ideal_staff == 3
        assert reqs[1].days == ("Monday", "Tuesday")
        assert reqs[1].do_not_split
        assert (reqs[1].start_time, reqs[1].end_time) == ("09:00", "17:00")

    def test_clinics(self):
        """Test clinic loading with preferred staff."""
        df = pd.DataFrame({
            "id": ["c1"],
            "name": ["Warfarin Clinic"],
            "weekday": ["tue"],
            "start_time": ["9:00"],
            "end_time": ["13:00"],
            "preferred_staff": ["t3;t1"],
        })
        (clinic,) = load_clinics(df)
        assert clinic.weekday == "Tuesday"
        assert clinic.start_time == "09:00"
        assert clinic.preferred_staff == ("t3", "t1")
        assert clinic.requires_warfarin

    def test_clinics_missing_columns(self):
        """Test required clinic columns."""
        with pytest.raises(ValueError):
            load_clinics(pd.DataFrame({"name": ["Clinic"]}))

    def test_load_reference_without_clinics(self, tmp_path, staff_df):
        """Test a reference directory with no clinics file."""
        staff_df.to_csv(tmp_path / "staff.csv", index=False)
        pd.DataFrame({"name": ["Ward 1"]}).to_csv(tmp_path / "requirements.csv", index=False)
        reference = load_reference(tmp_path)
        assert len(reference.staff) == 3
        assert [r.name for r in reference.requirements] == ["Ward 1"]
        assert reference.clinics == ()


class TestExport:
    """Tests for rota export."""

    def test_week_to_dataframe(self, monday_document, staff_by_id):
        """Test one row per assignment with staff names."""
        df = week_to_dataframe([monday_document], staff_by_id)
        assert list(df.columns) == WEEK_COLUMNS
        assert len(df) == 5
        assert df.iloc[0]["staff_name"] == "Alice"
        assert df.iloc[-1]["staff_name"] == ""
        assert set(df["weekday"]) == {"Monday"}

    def test_staff_matrix(self, monday_document):
        """Test the staff by date grid."""
        matrix = staff_matrix([monday_document])
        assert list(matrix.index) == ["t1", "t2", "t3"]
        assert matrix.loc["t3", "2024-04-08"] == "EAU 09:00-13:00 / EAU 13:00-17:00"

    def test_export_week(self, monday_document, tmp_path):
        """Test JSON export with summary."""
        path = export_week([monday_document], tmp_path / "out" / "week.json")
        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload["meta"]["week_start"] == "2024-04-08"
        assert payload["meta"]["documents"] == 1
        assert payload["documents"][0]["id"] == monday_document.id

    def test_build_export_empty(self):
        """Test exporting nothing."""
        payload = build_export([])
        assert payload["meta"]["week_start"] is None
        assert payload["summary"]["errors"] == 0
