"""Orchestration: the graph that drives model calls and tools.

Exports:
    StandardGraph: single-agent model/tool loop emitting run events
    Tool / ToolRegistry: tool interface and per-graph registry
    Calculator: bundled arithmetic tool
"""

from .errors import MaxIterationsExceeded, OrchestratorError, ToolExecutionError, ToolNotFoundError
from .graph import StandardGraph
from .tool_registry import Tool, ToolRegistry
from .tools import Calculator

__all__ = [
    "StandardGraph",
    "Tool",
    "ToolRegistry",
    "Calculator",
    "OrchestratorError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "MaxIterationsExceeded",
]
