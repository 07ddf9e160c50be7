from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ..models.content import ContentPart, ContentType
from ..models.messages import BaseMessage, UsageMetadata
from ..observability.metrics import RunMetrics


@dataclass(frozen=True)
class RunResult:
    """Final state of a completed run."""
    final_content_parts: Tuple[ContentPart, ...]
    final_messages: Tuple[BaseMessage, ...]
    usage: Tuple[UsageMetadata, ...]
    metrics: Optional[RunMetrics] = None

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.final_content_parts if p.type == ContentType.TEXT)

    @property
    def total_tokens(self) -> int:
        return sum(u.total_tokens for u in self.usage)
