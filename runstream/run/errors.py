"""Run controller errors."""

from ..errors import RunStreamError


class RunError(RunStreamError):
    """Base exception for run controller errors."""
    pass


class RunConfigError(RunError):
    """The run configuration is invalid (unknown graph type, bad handler map)."""
    pass


class RunInputError(RunError):
    """Inputs or stream configuration rejected before streaming started."""
    pass


class RunStateError(RunError):
    """Operation not allowed in the run's current state (e.g. processing twice)."""
    pass
