from typing import Any

from loguru import logger

from pi_extensions.tool import ToolResult
from pi_extensions.tools.pexpect.pexpect_client import PexpectCliClient


class PexpectExecTool:
    def __init__(self, client: PexpectCliClient):
        self._client = client

    @property
    def name(self) -> str:
        return "pexpect_exec"

    @property
    def description(self) -> str:
        return (
            "Execute Python/pexpect code in an existing session. The `pexpect` module is "
            "pre-imported and a `child` variable persists across executions.\n\n"
            "Common patterns:\n"
            "- Spawn process: `child = pexpect.spawn('ssh user@host')`\n"
            "- Wait for prompt: `child.expect('password:')`\n"
            "- Send input: `child.sendline('mypassword')`\n"
            "- Get output: `print(child.before.decode())`\n\n"
            "Use print() to return output to the agent."
        )

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "session_id": {
                    "type": "string",
                    "description": "The 8-character hex session ID from pexpect_start",
                },
                "code": {
                    "type": "string",
                    "description": "Python code to execute. The pexpect module and child variable are available.",
                },
                "timeout": {
                    "type": "number",
                    "description": "Execution timeout in milliseconds (default: no timeout)",
                },
            },
            "required": ["session_id", "code"],
        }

    async def execute(self, tool_input: dict[str, Any]) -> ToolResult:
        session_id = tool_input["session_id"]
        try:
            await self._client.ensure_pueue_running()

            # The session manager may stop the session between this check and the exec.
            if await self._client.find_session(session_id) is None:
                return ToolResult(
                    f"Session `{session_id}` not found. Use pexpect_list to see active sessions.",
                    is_error=True,
                )

            logger.info(f"Executing in session {session_id}")
            output = await self._client.exec_in_session(session_id, tool_input["code"], tool_input.get("timeout"))
        except Exception as ex:
            logger.error(f"pexpect_exec failed in session {session_id}: {ex}")
            return ToolResult(f"Execution failed: {ex}", is_error=True)

        return ToolResult(output.strip() or "(no output)")
