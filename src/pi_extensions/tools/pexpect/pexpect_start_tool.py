from typing import Any

from loguru import logger

from pi_extensions.tool import ToolResult
from pi_extensions.tools.pexpect.pexpect_client import PexpectCliClient


class PexpectStartTool:
    def __init__(self, client: PexpectCliClient):
        self._client = client

    @property
    def name(self) -> str:
        return "pexpect_start"

    @property
    def description(self) -> str:
        return (
            "Start a new pexpect session for automating interactive CLI programs "
            "(SSH, databases, editors, interactive shells). Returns a session ID for "
            "subsequent commands. Sessions run as pueue tasks and persist until explicitly stopped."
        )

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "name": {
                    "type": "string",
                    "description": "Optional label to identify the session (e.g., 'ssh-prod', 'db-session')",
                },
            },
            "required": [],
        }

    async def execute(self, tool_input: dict[str, Any]) -> ToolResult:
        name = tool_input.get("name")
        try:
            await self._client.ensure_pueue_running()
            session_id = await self._client.start(name)
        except Exception as ex:
            logger.error(f"pexpect_start failed: {ex}")
            return ToolResult(f"Failed to start session: {ex}", is_error=True)

        if name:
            return ToolResult(f"Started session `{session_id}` ({name})")
        return ToolResult(f"Started session `{session_id}`")
