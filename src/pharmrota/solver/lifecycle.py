"""
Rota Lifecycle
==============
State machine for rota documents and weeks, and the stale-draft retention
policy.

Document states: draft -> published -> archived. There is no way back to
draft; a published rota is corrected through reassignment only.

Week states add ``configuring``: a saved configuration with no documents.
"""
from dataclasses import replace
from datetime import date, datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from dateutil.relativedelta import relativedelta

from pharmrota.errors import LifecycleError, PreconditionError
from pharmrota.models.schedule import RotaDocument, RotaStatus
from pharmrota.utils.logging_setup import get_logger

logger = get_logger("pharmrota.solver.lifecycle")

TRANSITIONS: Dict[RotaStatus, Set[RotaStatus]] = {
    RotaStatus.DRAFT: {RotaStatus.PUBLISHED},
    RotaStatus.PUBLISHED: {RotaStatus.ARCHIVED},
    RotaStatus.ARCHIVED: set(),
}

DEFAULT_RETENTION_MONTHS = 2


class WeekState(str, Enum):
    CONFIGURING = "configuring"
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


def check_transition(document: RotaDocument, target: RotaStatus) -> None:
    """Raise LifecycleError unless ``document`` may move to ``target``."""
    if target not in TRANSITIONS[document.status]:
        raise LifecycleError(
            f"Rota {document.id} cannot go from {document.status.value} to {target.value}"
        )


def ensure_editable(document: RotaDocument) -> None:
    """Direct edits (cell overrides, regeneration) are allowed on drafts only."""
    if document.status != RotaStatus.DRAFT:
        raise LifecycleError(f"Rota {document.id} is {document.status.value}; only drafts can be edited")


def ensure_reassignable(document: RotaDocument) -> None:
    """Reassignment is allowed on drafts and published rotas, never on archived ones."""
    if document.status == RotaStatus.ARCHIVED:
        raise LifecycleError(f"Rota {document.id} is archived and cannot be changed")


def week_state(documents: Iterable[RotaDocument]) -> WeekState:
    """State of a week from its current documents."""
    statuses = {d.status for d in documents}
    if RotaStatus.PUBLISHED in statuses:
        return WeekState.PUBLISHED
    if RotaStatus.DRAFT in statuses:
        return WeekState.DRAFT
    if statuses:
        return WeekState.ARCHIVED
    return WeekState.CONFIGURING


def published_set_id(week_start: date, now: datetime) -> str:
    """Identifier shared by every document published together."""
    return f"{week_start.isoformat()}-{int(now.timestamp() * 1000)}"


def publish_documents(
    documents: Sequence[RotaDocument],
    publisher: str,
    now: Optional[datetime] = None,
) -> Tuple[List[RotaDocument], str]:
    """
    Publish the draft documents of one week.

    Args:
        documents: The week's draft documents
        publisher: Identity stamped as ``published_by``
        now: Publication time (defaults to now)

    Returns:
        (published copies, shared published_set_id)

    Raises:
        PreconditionError: no documents, or documents from different weeks
        LifecycleError: any document is not a draft
    """
    if not documents:
        raise PreconditionError("No draft rotas to publish")
    weeks = {d.week_start for d in documents}
    if len(weeks) != 1:
        raise PreconditionError("Cannot publish documents from more than one week together")
    for doc in documents:
        check_transition(doc, RotaStatus.PUBLISHED)

    now = now or datetime.now()
    set_id = published_set_id(documents[0].week_start, now)
    published = [
        replace(
            doc,
            status=RotaStatus.PUBLISHED,
            published_by=publisher,
            published_at=now,
            publish_date=now.strftime("%d/%m/%Y"),
            publish_time=now.strftime("%H:%M:%S"),
            published_set_id=set_id,
        )
        for doc in documents
    ]
    logger.info(f"Published {len(published)} rotas for week {documents[0].week_start} as {set_id}")
    return published, set_id


def archive_document(document: RotaDocument) -> RotaDocument:
    """Archive one published document; other documents are untouched."""
    check_transition(document, RotaStatus.ARCHIVED)
    return replace(document, status=RotaStatus.ARCHIVED)


def retention_cutoff(today: Optional[date] = None, months: int = DEFAULT_RETENTION_MONTHS) -> date:
    """Drafts dated before this day are stale."""
    today = today or date.today()
    return today - relativedelta(months=months)


def stale_drafts(documents: Iterable[RotaDocument], cutoff: date) -> List[RotaDocument]:
    """Draft documents dated strictly before ``cutoff``; other states are never stale."""
    return [d for d in documents if d.status == RotaStatus.DRAFT and d.date < cutoff]
