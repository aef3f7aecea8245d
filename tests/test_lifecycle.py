"""Tests for the rota lifecycle and retention policy."""
from dataclasses import replace
from datetime import date, datetime, timedelta

import pytest

from pharmrota.errors import LifecycleError, PreconditionError
from pharmrota.models.schedule import RotaDocument, RotaStatus
from pharmrota.solver.lifecycle import (
    WeekState,
    archive_document,
    check_transition,
    ensure_editable,
    ensure_reassignable,
    publish_documents,
    published_set_id,
    retention_cutoff,
    stale_drafts,
    week_state,
)

from conftest import MONDAY

NOW = datetime(2024, 4, 5, 14, 30, 5)


def week(status=RotaStatus.DRAFT, week_start=MONDAY):
    return [
        RotaDocument(date=week_start + timedelta(days=i), week_start=week_start, status=status)
        for i in range(7)
    ]


class TestTransitions:
    """Tests for allowed state transitions."""

    def test_allowed(self):
        """Test draft to published to archived."""
        check_transition(RotaDocument(date=MONDAY, week_start=MONDAY), RotaStatus.PUBLISHED)
        check_transition(
            RotaDocument(date=MONDAY, week_start=MONDAY, status=RotaStatus.PUBLISHED),
            RotaStatus.ARCHIVED,
        )

    def test_no_way_back(self):
        """Test published cannot return to draft and archived is final."""
        published = RotaDocument(date=MONDAY, week_start=MONDAY, status=RotaStatus.PUBLISHED)
        with pytest.raises(LifecycleError):
            check_transition(published, RotaStatus.DRAFT)
        archived = RotaDocument(date=MONDAY, week_start=MONDAY, status=RotaStatus.ARCHIVED)
        for status in RotaStatus:
            with pytest.raises(LifecycleError):
                check_transition(archived, status)

    def test_lifecycle_error_is_precondition(self):
        """Test LifecycleError is a PreconditionError."""
        assert issubclass(LifecycleError, PreconditionError)

    def test_edit_guards(self):
        """Test drafts are editable, published only reassignable, archived frozen."""
        draft, published, archived = (
            RotaDocument(date=MONDAY, week_start=MONDAY, status=s)
            for s in (RotaStatus.DRAFT, RotaStatus.PUBLISHED, RotaStatus.ARCHIVED)
        )
        ensure_editable(draft)
        ensure_reassignable(published)
        with pytest.raises(LifecycleError):
            ensure_editable(published)
        with pytest.raises(LifecycleError):
            ensure_reassignable(archived)


class TestPublish:
    """Tests for publishing."""

    def test_stamps_one_set_id(self):
        """Test every document of the week gets the same set ID and stamps."""
        published, set_id = publish_documents(week(), "alice", NOW)
        assert set_id == f"2024-04-08-{int(NOW.timestamp() * 1000)}"
        assert {d.published_set_id for d in published} == {set_id}
        assert all(d.status == RotaStatus.PUBLISHED for d in published)
        assert all(d.published_by == "alice" and d.published_at == NOW for d in published)
        assert all(d.publish_date == "05/04/2024" for d in published)
        assert all(d.publish_time == "14:30:05" for d in published)

    def test_inputs_unchanged(self):
        """Test publishing returns copies."""
        drafts = week()
        publish_documents(drafts, "alice", NOW)
        assert all(d.status == RotaStatus.DRAFT for d in drafts)

    def test_set_id_format(self):
        """Test the set ID is the week start plus epoch milliseconds."""
        assert published_set_id(MONDAY, datetime.fromtimestamp(1.5)) == "2024-04-08-1500"

    def test_empty(self):
        """Test publishing nothing is refused."""
        with pytest.raises(PreconditionError):
            publish_documents([], "alice", NOW)

    def test_mixed_weeks(self):
        """Test documents from two weeks cannot be published together."""
        docs = week()[:1] + week(week_start=MONDAY + timedelta(days=7))[:1]
        with pytest.raises(PreconditionError):
            publish_documents(docs, "alice", NOW)

    def test_non_draft(self):
        """Test already published documents cannot be published again."""
        with pytest.raises(LifecycleError):
            publish_documents(week(RotaStatus.PUBLISHED), "alice", NOW)


class TestArchive:
    """Tests for archiving."""

    def test_archive_one(self):
        """Test archiving one document leaves the others published."""
        published, _ = publish_documents(week(), "alice", NOW)
        archived = archive_document(published[2])
        assert archived.status == RotaStatus.ARCHIVED
        assert archived.published_set_id == published[2].published_set_id
        assert [d.status for d in published] == [RotaStatus.PUBLISHED] * 7

    def test_archive_draft(self):
        """Test drafts cannot be archived."""
        with pytest.raises(LifecycleError):
            archive_document(week()[0])


class TestWeekState:
    """Tests for week_state."""

    def test_states(self):
        """Test the week state follows its documents."""
        assert week_state([]) == WeekState.CONFIGURING
        assert week_state(week()) == WeekState.DRAFT
        mixed = week(RotaStatus.ARCHIVED)[:3] + week(RotaStatus.PUBLISHED)[3:]
        assert week_state(mixed) == WeekState.PUBLISHED
        assert week_state(week(RotaStatus.ARCHIVED)) == WeekState.ARCHIVED


class TestRetention:
    """Tests for the stale-draft retention policy."""

    def test_cutoff(self):
        """Test the default cutoff is two months back."""
        assert retention_cutoff(date(2024, 6, 15)) == date(2024, 4, 15)
        assert retention_cutoff(date(2024, 4, 30)) == date(2024, 2, 29)
        assert retention_cutoff(date(2024, 6, 15), months=1) == date(2024, 5, 15)

    def test_only_old_drafts_are_stale(self):
        """Test only drafts dated before the cutoff are stale."""
        cutoff = date(2024, 4, 10)
        docs = week()
        old_published = replace(docs[0], status=RotaStatus.PUBLISHED)
        old_archived = replace(docs[1], status=RotaStatus.ARCHIVED)
        candidates = [old_published, old_archived] + docs[2:]
        stale = stale_drafts(candidates, cutoff)
        assert [d.date for d in stale] == []

        stale = stale_drafts(docs, cutoff)
        assert [d.date for d in stale] == [date(2024, 4, 8), date(2024, 4, 9)]
