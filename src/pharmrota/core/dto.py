from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List

import pandas as pd

from pharmrota.errors import PartialFailure
from pharmrota.models.schedule import Assignment, RotaDocument


@dataclass
class DateOutcome:
    date: date
    rota_id: str | None
    success: bool
    changed: int = 0
    error: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "rota_id": self.rota_id,
            "success": self.success,
            "changed": self.changed,
            "error": self.error,
        }


@dataclass
class ReassignResult:
    success: bool
    documents: Dict[date, RotaDocument] = field(default_factory=dict)
    outcomes: List[DateOutcome] = field(default_factory=list)

    @property
    def updated_assignments(self) -> Dict[date, List[Assignment]]:
        """Post-mutation rows per date; callers reconcile local copies from these."""
        return {d: list(doc.assignments) for d, doc in sorted(self.documents.items())}

    @property
    def failed_dates(self) -> List[date]:
        return [o.date for o in self.outcomes if not o.success]

    def raise_for_failures(self) -> None:
        if not self.success:
            failed = ", ".join(d.isoformat() for d in self.failed_dates)
            raise PartialFailure(f"Reassignment failed on {failed}", self.outcomes)

    def merge(self, other: ReassignResult) -> ReassignResult:
        return ReassignResult(
            success=self.success and other.success,
            documents={**self.documents, **other.documents},
            outcomes=self.outcomes + other.outcomes,
        )


@dataclass
class GenerateResult:
    week_start: date
    rota_ids_by_date: Dict[date, str]
    assignments: List[Assignment]
    documents: List[RotaDocument] = field(default_factory=list)

    def to_dataframe(self) -> pd.DataFrame:
        frames = [doc.to_dataframe() for doc in self.documents if doc.assignments]
        if not frames:
            return RotaDocument(date=self.week_start, week_start=self.week_start).to_dataframe()
        return pd.concat(frames, ignore_index=True)


@dataclass
class PublishResult:
    week_start: date
    published_set_id: str
    rota_ids: List[str]
    archived_ids: List[str] = field(default_factory=list)


@dataclass
class SweepResult:
    cutoff: date
    deleted_ids: List[str]
