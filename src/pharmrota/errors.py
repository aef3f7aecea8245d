"""
Error types raised by the rota engine.

Every operation signals failure with a subclass of ``RotaError`` so callers
(the CLI, a web layer) can catch one base class.
"""
from typing import List, Optional


class RotaError(Exception):
    """Base class for rota engine errors."""


class PreconditionError(RotaError):
    """Raised when inputs do not satisfy an operation's preconditions."""


class NotFoundError(RotaError):
    """Raised when a referenced document, staff member or assignment is missing."""


class StaleReferenceError(RotaError):
    """Raised when an assignment reference no longer matches the stored rows."""


class LifecycleError(PreconditionError):
    """Raised when a document's status forbids the requested change."""


class PartialFailure(RotaError):
    """Raised when a multi-date operation failed on some dates.

    Changes already applied to the other dates are not rolled back.
    """

    def __init__(self, message: str, outcomes: Optional[List] = None):
        super().__init__(message)
        self.outcomes = list(outcomes or [])

    @property
    def failed(self) -> List:
        return [o for o in self.outcomes if not o.success]
