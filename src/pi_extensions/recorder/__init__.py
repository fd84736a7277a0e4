from pi_extensions.recorder.events import (
    InputEvent,
    ModelRef,
    ModelSelectEvent,
    SessionShutdownEvent,
    SessionStartEvent,
    ToolCallEvent,
    ToolResultEvent,
    TurnEndEvent,
    TurnStartEvent,
)
from pi_extensions.recorder.recorder import ActivityRecorder
from pi_extensions.recorder.store import RecorderStore

__all__ = [
    "ActivityRecorder",
    "InputEvent",
    "ModelRef",
    "ModelSelectEvent",
    "RecorderStore",
    "SessionShutdownEvent",
    "SessionStartEvent",
    "ToolCallEvent",
    "ToolResultEvent",
    "TurnEndEvent",
    "TurnStartEvent",
]
