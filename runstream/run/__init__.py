from .errors import RunConfigError, RunError, RunInputError, RunStateError
from .options import GraphConfig, RunConfig, StreamConfig
from .result import RunResult
from .runner import Run, RunState

__all__ = [
    "Run",
    "RunState",
    "RunResult",
    "RunConfig",
    "GraphConfig",
    "StreamConfig",
    "RunError",
    "RunConfigError",
    "RunInputError",
    "RunStateError",
]
