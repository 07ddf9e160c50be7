"""Orchestration-specific error definitions."""

from typing import Any, Dict, Optional

from ..errors import RunStreamError


class OrchestratorError(RunStreamError):
    """Base exception for orchestration errors."""
    pass


class ToolNotFoundError(OrchestratorError):
    """The model asked for a tool the graph does not have."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Tool '{tool_name}' is not registered")


class ToolExecutionError(OrchestratorError):
    """Exception raised when a tool execution fails."""

    def __init__(
        self,
        tool_name: str,
        original_error: Exception,
        metadata: Optional[Dict[str, Any]] = None
    ):
        self.tool_name = tool_name
        self.original_error = original_error
        self.metadata = metadata or {}

        message = f"Tool '{tool_name}' failed: {str(original_error)}"
        super().__init__(message)


class MaxIterationsExceeded(OrchestratorError):
    """The model kept requesting tools past the iteration limit."""

    def __init__(self, max_iterations: int):
        self.max_iterations = max_iterations
        super().__init__(f"Graph stopped after {max_iterations} model calls without a final answer")
