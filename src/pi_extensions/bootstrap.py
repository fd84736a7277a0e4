from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from pi_extensions.app_config import AppConfig
from pi_extensions.logging_config import setup_logging
from pi_extensions.recorder import ActivityRecorder, SessionStartEvent
from pi_extensions.tool import Tool
from pi_extensions.tool_registry import get_all
from pi_extensions.tool_runner import ToolRunner


@dataclass
class AppRuntime:
    runner: ToolRunner
    recorder: ActivityRecorder | None
    tools: list[Tool]
    session_id: str
    log_descriptions: list[str]


def bootstrap_runtime(app: AppConfig) -> AppRuntime:
    log_descriptions = setup_logging(level=app.log_level, consumers=app.log_consumers)

    tools = get_all(
        app.working_directory,
        kagi_enabled=app.kagi_enabled,
        kagi_config_path=app.kagi_config_path,
    )

    session_id = str(uuid4())
    recorder: ActivityRecorder | None = None
    if app.recorder_enabled:
        recorder = ActivityRecorder(app.recorder_db_path)
        recorder.handle(
            SessionStartEvent(
                session_id=session_id,
                cwd=str(Path(app.working_directory or Path.cwd()).resolve()),
            )
        )

    runner = ToolRunner(
        tools,
        recorder=recorder,
        max_tool_result_chars=app.max_tool_result_chars,
    )

    return AppRuntime(
        runner=runner,
        recorder=recorder,
        tools=tools,
        session_id=session_id,
        log_descriptions=log_descriptions,
    )
