import asyncio
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from pi_extensions.errors import ExecutionTimeoutError, PrerequisiteMissingError

_KILL_GRACE_SECONDS = 5


@dataclass(frozen=True)
class ProcessResult:
    returncode: int
    stdout: str
    stderr: str


async def run_process(
    argv: Sequence[str],
    *,
    cwd: str | None = None,
    input_text: str | None = None,
    timeout: float | None = None,
    not_found_message: str | None = None,
) -> ProcessResult:
    """Run a program to completion and capture its output.

    ``input_text`` is written to stdin, which is then closed. When ``timeout``
    (seconds) elapses the child is killed and reaped before
    ExecutionTimeoutError is raised.
    """
    logger.debug(f"spawn: {list(argv)} (cwd={cwd}, timeout={timeout})")
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE if input_text is not None else subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
    except FileNotFoundError as ex:
        raise PrerequisiteMissingError(not_found_message or f"{argv[0]} not found") from ex

    return await _communicate(proc, argv[0], input_text, timeout)


async def run_shell(command: str, *, timeout: float | None = None) -> ProcessResult:
    """Run ``command`` through the shell, with the same timeout handling as run_process."""
    logger.debug(f"shell: {command} (timeout={timeout})")
    proc = await asyncio.create_subprocess_shell(
        command,
        stdin=subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    return await _communicate(proc, command, None, timeout)


async def _communicate(
    proc: asyncio.subprocess.Process,
    label: str,
    input_text: str | None,
    timeout: float | None,
) -> ProcessResult:
    stdin_bytes = input_text.encode() if input_text is not None else None
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(stdin_bytes), timeout=timeout)
    except asyncio.TimeoutError:
        try:
            proc.kill()
            await asyncio.wait_for(proc.wait(), timeout=_KILL_GRACE_SECONDS)
        except (asyncio.TimeoutError, ProcessLookupError):
            pass
        logger.warning(f"{label} killed after {timeout}s")
        raise ExecutionTimeoutError(f"{label} timed out after {timeout}s")

    return ProcessResult(
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )
