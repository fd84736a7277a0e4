from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class RecorderContext:
    """Correlation state for one recorded session.

    Built on session start and dropped on shutdown. Assumes the host runs at
    most one turn at a time.
    """

    session_id: str
    current_turn_id: int | None = None
    current_turn_started_at: int = 0
    tool_call_starts: dict[str, int] = field(default_factory=dict)
