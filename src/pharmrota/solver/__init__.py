# pharmrota/solver - Rota generation, conflict detection, reassignment and lifecycle
from .conflicts import detect_conflicts
from .eligibility import Eligibility, is_eligible
from .generator import build_work_list, generate_week
from .lifecycle import WeekState, archive_document, publish_documents, stale_drafts, week_state
from .reassign import ReassignRequest, Scope, SlotRef, normalize_granularity, reassign, swap

__all__ = [
    "is_eligible", "Eligibility",
    "build_work_list", "generate_week",
    "detect_conflicts",
    "ReassignRequest", "Scope", "SlotRef", "normalize_granularity", "reassign", "swap",
    "WeekState", "week_state", "publish_documents", "archive_document", "stale_drafts",
]
