"""
Rota Service
============
Request/response operations over a RotaStore: generate, fetch, reassign,
swap, publish, archive, sweep and cell overrides.

Each operation loads what it needs, calls the pure engine functions and
writes back the documents it changed. Audit events go to structlog.
"""
from datetime import date, datetime
from typing import Dict, List, Mapping, Optional, Union

from pharmrota.core.dto import GenerateResult, PublishResult, ReassignResult, SweepResult
from pharmrota.errors import LifecycleError, NotFoundError, PreconditionError
from pharmrota.io.store import RotaStore
from pharmrota.models.configuration import RotaConfiguration
from pharmrota.models.constraints import EngineConfig
from pharmrota.models.reference import ReferenceData
from pharmrota.models.schedule import Assignment, RotaDocument, RotaStatus
from pharmrota.models.shift import monday_of
from pharmrota.models.validated import GenerateRequest, ReassignRequestModel
from pharmrota.solver import generator, lifecycle
from pharmrota.solver.lifecycle import WeekState
from pharmrota.solver.reassign import ReassignRequest, Scope, SlotRef, reassign, swap
from pharmrota.utils.logging_setup import get_logger, log_function_call
from pharmrota.utils.structured_logging import audit_context, get_structured_logger

logger = get_logger("pharmrota.engine.service")
audit = get_structured_logger("pharmrota.audit")

_STATUS_ORDER = {RotaStatus.PUBLISHED: 0, RotaStatus.DRAFT: 1, RotaStatus.ARCHIVED: 2}


class RotaService:
    """
    Engine operations against one store and one reference snapshot.

    Usage:
        service = RotaService(RotaStore("data/rotas.db"), load_reference("data/"))
        result = service.generate_week(GenerateRequest(...), generated_by="alice")
        service.publish_week(result.week_start, publisher="alice")
    """

    def __init__(
        self,
        store: RotaStore,
        reference: ReferenceData,
        config: Optional[EngineConfig] = None,
    ):
        self.store = store
        self.reference = reference
        self.config = config or EngineConfig()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def save_configuration(self, request: GenerateRequest, modified_by: str = "") -> RotaConfiguration:
        """Record the operator's current choices for a week (resumable)."""
        configuration = request.to_configuration(modified_by=modified_by)
        configuration.modified_at = datetime.now()
        configuration.revision = self.store.save_configuration(configuration)
        return configuration

    def get_configuration(self, week_start: date) -> Optional[RotaConfiguration]:
        return self.store.get_configuration(week_start)

    def resume_request(self, week_start: date) -> Optional[GenerateRequest]:
        """Rebuild the last saved generation request for a week."""
        configuration = self.store.get_configuration(week_start)
        if configuration is None:
            return None
        return GenerateRequest.from_configuration(configuration)

    # ------------------------------------------------------------------
    # Generation and queries
    # ------------------------------------------------------------------

    @log_function_call
    def generate_week(
        self,
        request: GenerateRequest,
        generated_by: str = "system",
        now: Optional[datetime] = None,
    ) -> GenerateResult:
        """
        Generate (or regenerate) the draft rota for a week.

        Existing drafts of the week are cleared first. A week with a
        published rota is refused: corrections go through reassignment.

        Raises:
            PreconditionError: no staff or weekdays, week start not a Monday
            NotFoundError: unknown staff or clinic IDs
            LifecycleError: the week is already published
        """
        with audit_context(week_start=request.week_start.isoformat(), edited_by=generated_by):
            now = now or datetime.now()
            week_start = request.week_start
            existing = self.store.list_documents(week_start=week_start, status=RotaStatus.PUBLISHED)
            if existing:
                raise LifecycleError(
                    f"Week {week_start.isoformat()} is published; use reassignment to change it"
                )

            roster = self.reference.select_staff(request.staff_ids)
            clinics = self.reference.select_clinics(request.selected_clinic_ids)
            documents = generator.generate_week(
                week_start,
                roster,
                request.selected_weekdays,
                requirements=self.reference.active_requirements(),
                clinics=clinics,
                role_requests=request.role_requests(),
                working_days_override=request.working_days_override,
                ignored_unavailability=request.ignored_unavailability,
                rota_unavailability=request.rota_rules(),
                generated_by=generated_by,
                generated_at=now,
                config=self.config,
            )

            configuration = request.to_configuration(modified_by=generated_by)
            configuration.modified_at = now
            configuration.is_generated = True
            configuration.generated_at = now
            self.store.save_configuration(configuration)

            self.store.clear_drafts(week_start)
            self.store.save_documents(documents)

            assignments = [a for doc in documents for a in doc.assignments]
            audit.info(
                "week_generated",
                week_start=week_start.isoformat(),
                generated_by=generated_by,
                staff=len(roster),
                assignments=len(assignments),
                gaps=sum(len(doc.gaps) for doc in documents),
            )
            return GenerateResult(
                week_start=week_start,
                rota_ids_by_date={doc.date: doc.id for doc in documents},
                assignments=assignments,
                documents=documents,
            )

    def get_document(self, rota_id: str) -> RotaDocument:
        return self.store.get_document(rota_id)

    def get_assignments(self, rota_id: str) -> List[Assignment]:
        """Current assignments of one rota document."""
        return list(self.store.get_document(rota_id).assignments)

    def week_documents(self, week_start: date, status: Optional[RotaStatus] = None) -> List[RotaDocument]:
        return self.store.list_documents(week_start=week_start, status=status)

    def current_documents(self, week_start: date) -> Dict[date, RotaDocument]:
        """
        The live document per date of a week.

        Published beats draft beats archived when a date has several.
        """
        current: Dict[date, RotaDocument] = {}
        for doc in self.store.list_documents(week_start=week_start):
            held = current.get(doc.date)
            if held is None or _STATUS_ORDER[doc.status] < _STATUS_ORDER[held.status]:
                current[doc.date] = doc
        return current

    def week_state(self, week_start: date) -> Optional[WeekState]:
        """Lifecycle state of a week; None when nothing exists for it."""
        documents = self.store.list_documents(week_start=week_start)
        if documents:
            return lifecycle.week_state(documents)
        if self.store.get_configuration(week_start) is not None:
            return WeekState.CONFIGURING
        return None

    # ------------------------------------------------------------------
    # Reassignment
    # ------------------------------------------------------------------

    def _documents_for(
        self,
        dates: List[date],
        rota_ids_by_date: Optional[Mapping[date, str]],
    ) -> Dict[date, RotaDocument]:
        if rota_ids_by_date:
            documents = {}
            for on_date, rota_id in rota_ids_by_date.items():
                documents[on_date] = self.store.get_document(rota_id)
            return documents
        documents = {}
        for week_start in sorted({monday_of(d) for d in dates}):
            documents.update(self.current_documents(week_start))
        return documents

    def _persist(self, result: ReassignResult) -> None:
        for doc in result.documents.values():
            self.store.save_document(doc)

    def reassign(
        self,
        request: Union[ReassignRequest, ReassignRequestModel],
        rota_ids_by_date: Optional[Mapping[date, str]] = None,
        edited_by: str = "",
    ) -> ReassignResult:
        """
        Apply a reassignment and persist every document it changed.

        Documents come from ``rota_ids_by_date`` when given, otherwise from
        the live documents of the request's week.
        """
        if isinstance(request, ReassignRequestModel):
            rota_ids_by_date = rota_ids_by_date or request.rota_ids_by_date
            request = request.to_dataclass()
        with audit_context(week_start=monday_of(request.date).isoformat(), edited_by=edited_by):
            documents = self._documents_for([request.date], rota_ids_by_date)
            result = reassign(
                documents, request,
                config=self.config,
                staff=self.reference.staff_by_id(),
            )
            self._persist(result)
            audit.info(
                "rota_reassigned",
                date=request.date.isoformat(),
                scope=request.scope.value,
                original_staff_id=request.original_staff_id,
                new_staff_id=request.new_staff_id,
                edited_by=edited_by,
                changed=sum(o.changed for o in result.outcomes),
                failed_dates=[d.isoformat() for d in result.failed_dates],
            )
            return result

    def swap(
        self,
        source: SlotRef,
        target: SlotRef,
        scope: Scope = Scope.SLOT,
        respect_continuity: bool = True,
        edited_by: str = "",
    ) -> ReassignResult:
        """Exchange two slots' occupants and persist the changed documents."""
        with audit_context(week_start=monday_of(source.date).isoformat(), edited_by=edited_by):
            documents = self._documents_for([source.date, target.date], None)
            result = swap(
                documents, source, target,
                scope=scope,
                respect_continuity=respect_continuity,
                config=self.config,
                staff=self.reference.staff_by_id(),
            )
            self._persist(result)
            audit.info(
                "rota_swapped",
                source=f"{source.staff_id}@{source.location}",
                target=f"{target.staff_id}@{target.location}",
                scope=scope.value,
                edited_by=edited_by,
            )
            return result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def publish_week(
        self,
        week_start: date,
        publisher: str,
        now: Optional[datetime] = None,
    ) -> PublishResult:
        """
        Publish the week's drafts as one set.

        Any previously published set for the week is archived first.
        """
        with audit_context(week_start=week_start.isoformat(), edited_by=publisher):
            drafts = self.store.list_documents(week_start=week_start, status=RotaStatus.DRAFT)
            if not drafts:
                raise PreconditionError(f"No draft rotas for week {week_start.isoformat()}")
            published, set_id = lifecycle.publish_documents(drafts, publisher, now)

            previous = self.store.list_documents(week_start=week_start, status=RotaStatus.PUBLISHED)
            archived = [lifecycle.archive_document(doc) for doc in previous]
            self.store.save_documents(archived)
            self.store.save_documents(published)

            audit.info(
                "week_published",
                week_start=week_start.isoformat(),
                publisher=publisher,
                published_set_id=set_id,
                archived_previous=len(archived),
            )
            return PublishResult(
                week_start=week_start,
                published_set_id=set_id,
                rota_ids=[doc.id for doc in published],
                archived_ids=[doc.id for doc in archived],
            )

    def archive_document(self, rota_id: str) -> RotaDocument:
        """Archive one published document; the rest of its week is untouched."""
        archived = lifecycle.archive_document(self.store.get_document(rota_id))
        self.store.save_document(archived)
        audit.info("rota_archived", rota_id=rota_id, date=archived.date.isoformat())
        return archived

    def archive_week(self, week_start: date) -> List[str]:
        """Archive every published document of a week."""
        published = self.store.list_documents(week_start=week_start, status=RotaStatus.PUBLISHED)
        if not published:
            raise NotFoundError(f"No published rotas for week {week_start.isoformat()}")
        archived = [lifecycle.archive_document(doc) for doc in published]
        self.store.save_documents(archived)
        audit.info("week_archived", week_start=week_start.isoformat(), documents=len(archived))
        return [doc.id for doc in archived]

    def sweep_stale_drafts(
        self,
        today: Optional[date] = None,
        months: Optional[int] = None,
    ) -> SweepResult:
        """Delete drafts dated before the retention cutoff. Irreversible."""
        if months is None:
            months = self.config.retention_months
        cutoff = lifecycle.retention_cutoff(today, months)
        stale = lifecycle.stale_drafts(self.store.list_documents(status=RotaStatus.DRAFT), cutoff)
        ids = [doc.id for doc in stale]
        self.store.delete_documents(ids)
        audit.info("stale_drafts_swept", cutoff=cutoff.isoformat(), deleted=len(ids))
        return SweepResult(cutoff=cutoff, deleted_ids=ids)

    def save_cell_overrides(
        self,
        rota_id: str,
        overrides: Mapping[str, str],
        now: Optional[datetime] = None,
    ) -> RotaDocument:
        """Replace a draft's free-text cell overrides."""
        with audit_context(rota_id=rota_id):
            document = self.store.get_document(rota_id)
            lifecycle.ensure_editable(document)
            try:
                document.set_overrides(overrides)
            except ValueError as exc:
                raise PreconditionError(str(exc)) from exc
            document.last_edited = now or datetime.now()
            self.store.save_document(document)
            audit.info("overrides_saved", date=document.date.isoformat(), cells=len(overrides))
            return document
