from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol


@dataclass
class RunMetrics:
    run_id: str
    thread_id: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    latency_ms: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    model_invocations: int = 0
    events_by_kind: Dict[str, int] = field(default_factory=dict)
    handler_errors: int = 0
    error_class: Optional[str] = None
    tools_used: List[str] = field(default_factory=list)

    @property
    def total_events(self) -> int:
        return sum(self.events_by_kind.values())


class MetricsSink(Protocol):
    async def record(self, metrics: RunMetrics) -> None: ...
    async def flush(self) -> None: ...
