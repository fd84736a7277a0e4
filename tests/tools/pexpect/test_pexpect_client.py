import asyncio
import unittest
from unittest.mock import AsyncMock, patch

from pi_extensions.errors import ExecutionTimeoutError, PrerequisiteMissingError, ProcessFailedError
from pi_extensions.tools.pexpect.pexpect_client import PexpectCliClient, PexpectSession, parse_session_list
from pi_extensions.tools.process import ProcessResult

_RUN_PROCESS = "pi_extensions.tools.pexpect.pexpect_client.run_process"


def _ok(stdout: str = "") -> ProcessResult:
    return ProcessResult(returncode=0, stdout=stdout, stderr="")


class TestParseSessionList(unittest.TestCase):
    def test_with_and_without_names(self) -> None:
        output = "a1b2c3d4: Running (ssh-prod)\n\n0f0f0f0f: Queued\ngarbage line\n"
        self.assertEqual(
            parse_session_list(output),
            [
                PexpectSession("a1b2c3d4", "Running", "ssh-prod"),
                PexpectSession("0f0f0f0f", "Queued", None),
            ],
        )

    def test_empty(self) -> None:
        self.assertEqual(parse_session_list(""), [])


class TestPexpectCliClient(unittest.TestCase):
    def setUp(self) -> None:
        self.client = PexpectCliClient()

    @patch(_RUN_PROCESS, new_callable=AsyncMock)
    def test_pueue_not_running(self, mock_run: AsyncMock) -> None:
        mock_run.return_value = ProcessResult(returncode=1, stdout="", stderr="Couldn't connect to daemon")

        with self.assertRaises(PrerequisiteMissingError) as ctx:
            asyncio.run(self.client.ensure_pueue_running())

        self.assertIn("pueued -d", str(ctx.exception))

    @patch(_RUN_PROCESS, new_callable=AsyncMock)
    def test_start_with_name(self, mock_run: AsyncMock) -> None:
        mock_run.return_value = _ok("a1b2c3d4\n")

        session_id = asyncio.run(self.client.start("db"))

        self.assertEqual(session_id, "a1b2c3d4")
        self.assertEqual(mock_run.call_args.args[0], ["pexpect-cli", "--start", "--name", "db"])

    @patch(_RUN_PROCESS, new_callable=AsyncMock)
    def test_start_failure(self, mock_run: AsyncMock) -> None:
        mock_run.return_value = ProcessResult(returncode=2, stdout="", stderr="pueue add failed\n")

        with self.assertRaises(ProcessFailedError) as ctx:
            asyncio.run(self.client.start())

        self.assertEqual(str(ctx.exception), "pueue add failed")

    @patch(_RUN_PROCESS, new_callable=AsyncMock)
    def test_find_session(self, mock_run: AsyncMock) -> None:
        mock_run.return_value = _ok("a1b2c3d4: Running\nbeefbeef: Running (web)\n")

        session = asyncio.run(self.client.find_session("beefbeef"))
        missing = asyncio.run(self.client.find_session("deadbeef"))

        self.assertEqual(session, PexpectSession("beefbeef", "Running", "web"))
        self.assertIsNone(missing)

    @patch(_RUN_PROCESS, new_callable=AsyncMock)
    def test_exec_pipes_code_to_stdin(self, mock_run: AsyncMock) -> None:
        mock_run.return_value = _ok("hello\n")

        output = asyncio.run(self.client.exec_in_session("a1b2c3d4", "print('hello')", 1500))

        self.assertEqual(output, "hello\n")
        self.assertEqual(mock_run.call_args.args[0], ["pexpect-cli", "a1b2c3d4"])
        self.assertEqual(mock_run.call_args.kwargs["input_text"], "print('hello')")
        self.assertEqual(mock_run.call_args.kwargs["timeout"], 1.5)

    @patch(_RUN_PROCESS, new_callable=AsyncMock)
    def test_exec_without_timeout(self, mock_run: AsyncMock) -> None:
        mock_run.return_value = _ok("")

        asyncio.run(self.client.exec_in_session("a1b2c3d4", "pass"))

        self.assertIsNone(mock_run.call_args.kwargs["timeout"])

    @patch(_RUN_PROCESS, new_callable=AsyncMock)
    def test_exec_timeout_reported_in_ms(self, mock_run: AsyncMock) -> None:
        mock_run.side_effect = ExecutionTimeoutError("pexpect-cli timed out after 0.25s")

        with self.assertRaises(ExecutionTimeoutError) as ctx:
            asyncio.run(self.client.exec_in_session("a1b2c3d4", "import time; time.sleep(10)", 250))

        self.assertEqual(str(ctx.exception), "Execution timed out after 250ms")

    @patch(_RUN_PROCESS, new_callable=AsyncMock)
    def test_exec_error_with_stderr(self, mock_run: AsyncMock) -> None:
        mock_run.return_value = ProcessResult(returncode=1, stdout="", stderr="NameError: name 'x' is not defined\n")

        with self.assertRaises(ProcessFailedError) as ctx:
            asyncio.run(self.client.exec_in_session("a1b2c3d4", "x"))

        self.assertEqual(str(ctx.exception), "NameError: name 'x' is not defined")

    @patch(_RUN_PROCESS, new_callable=AsyncMock)
    def test_exec_nonzero_without_stderr_returns_stdout(self, mock_run: AsyncMock) -> None:
        mock_run.return_value = ProcessResult(returncode=1, stdout="partial\n", stderr="")

        self.assertEqual(asyncio.run(self.client.exec_in_session("a1b2c3d4", "x")), "partial\n")

    @patch(_RUN_PROCESS, new_callable=AsyncMock)
    def test_stop(self, mock_run: AsyncMock) -> None:
        mock_run.return_value = _ok()

        asyncio.run(self.client.stop("a1b2c3d4"))

        self.assertEqual(mock_run.call_args.args[0], ["pexpect-cli", "--stop", "a1b2c3d4"])


if __name__ == "__main__":
    unittest.main()
