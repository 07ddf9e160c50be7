"""Tool registry for orchestration.

Tools are registered per graph so that each run sees only the tools its
configuration names. A tool receives the parsed arguments of a model tool
call and returns the text handed back to the model.
"""

from typing import Any, Dict, Iterable, List, Optional
from abc import ABC, abstractmethod
import logging

logger = logging.getLogger(__name__)


class Tool(ABC):
    """Base class for tools a graph can invoke."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name the model uses to call this tool."""
        pass

    @property
    def description(self) -> str:
        """Human-readable description of what this tool does."""
        return ""

    @property
    def parameters(self) -> Dict[str, Any]:
        """JSON schema of the arguments object."""
        return {"type": "object", "properties": {}}

    @abstractmethod
    async def invoke(self, args: Dict[str, Any]) -> str:
        """Run the tool.

        Args:
            args: Arguments parsed from the model's tool call

        Returns:
            Tool output as text
        """
        pass

    def schema(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "parameters": self.parameters}


class ToolRegistry:
    """Name-keyed collection of Tool instances."""

    def __init__(self, tools: Optional[Iterable[Tool]] = None):
        self._tools: Dict[str, Tool] = {}
        for tool in tools or ():
            self.register_tool(tool)

    def register_tool(self, tool: Tool) -> None:
        """Register a tool instance.

        Raises:
            ValueError: If a tool with the same name is already registered
            TypeError: If tool doesn't implement the Tool interface
        """
        if not isinstance(tool, Tool):
            raise TypeError(f"Tool must inherit from Tool base class, got {type(tool)}")

        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' already registered")

        self._tools[tool.name] = tool
        logger.debug(f"Registered tool '{tool.name}'")

    def get_tool(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def list_tools(self) -> List[Dict[str, Any]]:
        """Schemas of all registered tools, in registration order."""
        return [tool.schema() for tool in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)
