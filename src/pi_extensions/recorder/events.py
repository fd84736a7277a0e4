from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ModelRef:
    provider: str
    id: str


@dataclass(frozen=True)
class SessionStartEvent:
    session_id: str
    cwd: str
    session_file: str | None = None
    model: ModelRef | None = None


@dataclass(frozen=True)
class SessionShutdownEvent:
    pass


@dataclass(frozen=True)
class InputEvent:
    text: str
    source: str = "interactive"


@dataclass(frozen=True)
class TurnStartEvent:
    turn_index: int
    timestamp: int = field(default_factory=now_ms)


@dataclass(frozen=True)
class TurnEndEvent:
    # Completed assistant message: role, provider, model, content blocks,
    # usage {input, output, cost: {total}} and stopReason.
    message: dict[str, Any]
    turn_index: int | None = None


@dataclass(frozen=True)
class ToolCallEvent:
    tool_call_id: str
    tool_name: str
    input: dict[str, Any]


@dataclass(frozen=True)
class ToolResultEvent:
    tool_call_id: str
    content: list[dict[str, Any]] | str
    is_error: bool = False


@dataclass(frozen=True)
class ModelSelectEvent:
    model: ModelRef
    previous_model: ModelRef | None = None
    source: str = "set"
