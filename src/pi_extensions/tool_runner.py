from __future__ import annotations

import asyncio
import inspect
from typing import Any
from uuid import uuid4

from loguru import logger

from pi_extensions.recorder import ActivityRecorder, ToolCallEvent, ToolResultEvent
from pi_extensions.tool import Tool, ToolResult


class ToolRunner:
    def __init__(
        self,
        tools: list[Tool],
        *,
        recorder: ActivityRecorder | None = None,
        max_tool_result_chars: int = 40_000,
    ) -> None:
        self._tool_map: dict[str, Tool] = {t.name: t for t in tools}
        self._recorder = recorder
        self._max_tool_result_chars = max_tool_result_chars

    @property
    def tool_names(self) -> list[str]:
        return list(self._tool_map)

    async def run(
        self,
        tool_name: str,
        tool_input: dict[str, Any],
        *,
        tool_call_id: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ToolResult:
        call_id = tool_call_id or str(uuid4())
        self._record(ToolCallEvent(tool_call_id=call_id, tool_name=tool_name, input=tool_input))

        tool = self._tool_map.get(tool_name)
        if tool is None:
            result = ToolResult(f'Error: unknown tool "{tool_name}"', is_error=True)
        else:
            try:
                if cancel_event is not None and _accepts_cancel_event(tool):
                    result = await tool.execute(tool_input, cancel_event=cancel_event)
                else:
                    result = await tool.execute(tool_input)
            except Exception as ex:
                logger.error(f"Tool {tool_name} raised: {ex}")
                result = ToolResult(f'Error executing tool "{tool_name}": {ex}', is_error=True)
            result = self._truncate_tool_result(result, tool_name)

        self._record(
            ToolResultEvent(
                tool_call_id=call_id,
                content=[{"type": "text", "text": result.text}],
                is_error=result.is_error,
            )
        )
        return result

    def _record(self, event: ToolCallEvent | ToolResultEvent) -> None:
        if self._recorder is not None:
            self._recorder.handle(event)

    def _truncate_tool_result(self, result: ToolResult, tool_name: str) -> ToolResult:
        text = result.text
        if self._max_tool_result_chars <= 0 or len(text) <= self._max_tool_result_chars:
            return result

        original_length = len(text)
        message = (
            f"\n\n[OUTPUT TRUNCATED: Showing {self._max_tool_result_chars:,} "
            f"of {original_length:,} characters from {tool_name}]"
        )
        logger.warning(
            f"{tool_name} output truncated from {original_length:,} "
            f"to {self._max_tool_result_chars:,} chars"
        )
        return ToolResult(text[: self._max_tool_result_chars] + message, is_error=result.is_error)


def _accepts_cancel_event(tool: Tool) -> bool:
    return "cancel_event" in inspect.signature(tool.execute).parameters
