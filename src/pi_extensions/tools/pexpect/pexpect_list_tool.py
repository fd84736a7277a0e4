from typing import Any

from pi_extensions.tool import ToolResult
from pi_extensions.tools.pexpect.pexpect_client import PexpectCliClient


class PexpectListTool:
    def __init__(self, client: PexpectCliClient):
        self._client = client

    @property
    def name(self) -> str:
        return "pexpect_list"

    @property
    def description(self) -> str:
        return (
            "List all active pexpect sessions managed by pueue. "
            "Shows session IDs, status, and optional names."
        )

    @property
    def input_schema(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}, "required": []}

    async def execute(self, tool_input: dict[str, Any]) -> ToolResult:
        try:
            await self._client.ensure_pueue_running()
            sessions = await self._client.list_sessions()
        except Exception as ex:
            return ToolResult(f"Failed to list sessions: {ex}", is_error=True)

        if not sessions:
            return ToolResult("No active pexpect sessions. Use pexpect_start to create one.")

        lines = ["Active pexpect sessions:", ""]
        for session in sessions:
            if session.name:
                lines.append(f"- `{session.id}`: {session.status} ({session.name})")
            else:
                lines.append(f"- `{session.id}`: {session.status}")
        return ToolResult("\n".join(lines))
