import re
from dataclasses import dataclass

from loguru import logger

from pi_extensions.errors import ExecutionTimeoutError, PrerequisiteMissingError, ProcessFailedError
from pi_extensions.tools.process import run_process

_PUEUE_NOT_RUNNING = "pueue daemon is not running. Start it with: pueued -d"
_PEXPECT_CLI_NOT_INSTALLED = "pexpect-cli not found. Install it and make sure it is in PATH."

# "abc12345: Running (my-session)" or "abc12345: Running"
_SESSION_LINE = re.compile(r"^([a-f0-9]+):\s*(\w+)(?:\s*\(([^)]+)\))?", re.IGNORECASE)


@dataclass(frozen=True)
class PexpectSession:
    id: str
    status: str
    name: str | None = None


def parse_session_list(output: str) -> list[PexpectSession]:
    sessions: list[PexpectSession] = []
    for line in output.strip().splitlines():
        if not line.strip():
            continue
        match = _SESSION_LINE.match(line)
        if match:
            sessions.append(PexpectSession(id=match.group(1), status=match.group(2), name=match.group(3)))
    return sessions


class PexpectCliClient:
    """Start/List/Exec/Stop against the pexpect-cli session manager."""

    def __init__(self, binary: str = "pexpect-cli", pueue_binary: str = "pueue"):
        self._binary = binary
        self._pueue_binary = pueue_binary

    async def ensure_pueue_running(self) -> None:
        result = await run_process([self._pueue_binary, "status"], not_found_message=_PUEUE_NOT_RUNNING)
        if result.returncode != 0:
            raise PrerequisiteMissingError(_PUEUE_NOT_RUNNING)

    async def _run(self, args: list[str]) -> str:
        result = await run_process([self._binary, *args], not_found_message=_PEXPECT_CLI_NOT_INSTALLED)
        if result.returncode != 0:
            raise ProcessFailedError(
                result.stderr.strip() or f"{self._binary} exited with code {result.returncode}",
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result.stdout.strip()

    async def start(self, name: str | None = None) -> str:
        args = ["--start"]
        if name:
            args.extend(["--name", name])
        session_id = await self._run(args)
        logger.info(f"Started pexpect session {session_id}")
        return session_id

    async def list_sessions(self) -> list[PexpectSession]:
        return parse_session_list(await self._run(["--list"]))

    async def find_session(self, session_id: str) -> PexpectSession | None:
        for session in await self.list_sessions():
            if session.id == session_id:
                return session
        return None

    async def exec_in_session(self, session_id: str, code: str, timeout_ms: float | None = None) -> str:
        timeout = timeout_ms / 1000 if timeout_ms else None
        try:
            result = await run_process(
                [self._binary, session_id],
                input_text=code,
                timeout=timeout,
                not_found_message=_PEXPECT_CLI_NOT_INSTALLED,
            )
        except ExecutionTimeoutError as ex:
            raise ExecutionTimeoutError(f"Execution timed out after {timeout_ms:g}ms") from ex

        if result.returncode != 0 and result.stderr:
            raise ProcessFailedError(result.stderr.strip(), returncode=result.returncode, stderr=result.stderr)
        return result.stdout

    async def stop(self, session_id: str) -> None:
        await self._run(["--stop", session_id])
        logger.info(f"Stopped pexpect session {session_id}")
