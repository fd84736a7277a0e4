from typing import Any

from pi_extensions.tool import ToolResult
from pi_extensions.tools.pexpect.pexpect_client import PexpectCliClient


class PexpectStopTool:
    def __init__(self, client: PexpectCliClient):
        self._client = client

    @property
    def name(self) -> str:
        return "pexpect_stop"

    @property
    def description(self) -> str:
        return "Stop a pexpect session and clean up resources. The session's pueue task will be terminated."

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "session_id": {
                    "type": "string",
                    "description": "The 8-character hex session ID to stop",
                },
            },
            "required": ["session_id"],
        }

    async def execute(self, tool_input: dict[str, Any]) -> ToolResult:
        session_id = tool_input["session_id"]
        try:
            await self._client.ensure_pueue_running()

            session = await self._client.find_session(session_id)
            if session is None:
                return ToolResult(f"Session `{session_id}` not found or already stopped.")

            await self._client.stop(session_id)
        except Exception as ex:
            return ToolResult(f"Failed to stop session: {ex}", is_error=True)

        if session.name:
            return ToolResult(f"Stopped session `{session_id}` ({session.name})")
        return ToolResult(f"Stopped session `{session_id}`")
