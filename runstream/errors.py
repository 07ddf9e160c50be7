"""Error definitions shared across the event stream layers."""

from typing import List, Optional


class RunStreamError(Exception):
    """Base exception for all runstream errors."""
    pass


class EventContractError(RunStreamError):
    """Raised when an event breaks the producer contract.

    Covers unrecognized event kinds and payloads whose shape does not match
    their kind. These are logic errors in the event producer, not
    user-recoverable conditions.
    """
    pass


class UnknownStepError(EventContractError):
    """Raised when an event addresses a run step that was never created."""

    def __init__(self, step_id: str, kind: Optional[str] = None):
        self.step_id = step_id
        self.kind = kind
        message = f"Unknown run step '{step_id}'"
        if kind:
            message += f" referenced by {kind} event"
        super().__init__(message)


class FinalizedContentError(EventContractError):
    """Raised when a delta targets a step whose content is already finalized."""

    def __init__(self, step_id: str, kind: Optional[str] = None):
        self.step_id = step_id
        self.kind = kind
        message = f"Run step '{step_id}' is already completed"
        if kind:
            message += f"; cannot apply {kind} event"
        super().__init__(message)


class HandlerError(RunStreamError):
    """Raised at the completion barrier when one or more handlers failed.

    The first failure is chained as ``__cause__``; every failure is kept in
    ``errors`` in the order it was observed.
    """

    def __init__(self, errors: List[BaseException]):
        self.errors = list(errors)
        first = self.errors[0] if self.errors else None
        message = f"{len(self.errors)} event handler(s) failed"
        if first is not None:
            message += f": {type(first).__name__}: {first}"
        super().__init__(message)
