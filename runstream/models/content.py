"""Content part models for the reconstructed run output."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ContentType(str, Enum):
    """Kinds of content parts that make up a run's output."""
    TEXT = "text"
    REASONING = "think"
    TOOL_CALL = "tool_call"


@dataclass
class ToolCallPart:
    """Tool invocation as seen in the aggregated content.

    ``args`` accumulates the raw argument string as chunks arrive;
    ``output`` is set once the tool finishes.
    """
    id: str
    name: str = ""
    args: str = ""
    output: Optional[str] = None


@dataclass
class ContentPart:
    """One unit of the final reconstructed message."""
    type: ContentType
    text: str = ""
    tool_call: Optional[ToolCallPart] = None
    step_id: Optional[str] = None
    finalized: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Wire-friendly representation keyed by content type."""
        if self.type == ContentType.TOOL_CALL and self.tool_call is not None:
            return {
                "type": self.type.value,
                "tool_call": {
                    "id": self.tool_call.id,
                    "name": self.tool_call.name,
                    "args": self.tool_call.args,
                    "output": self.tool_call.output,
                },
            }
        return {"type": self.type.value, self.type.value: self.text}
