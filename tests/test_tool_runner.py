import asyncio
import unittest
from unittest.mock import MagicMock

from pi_extensions.recorder import ActivityRecorder, ToolCallEvent, ToolResultEvent
from pi_extensions.tool import ToolResult
from pi_extensions.tool_runner import ToolRunner


class _Tool:
    def __init__(self, name: str = "echo", result: ToolResult | None = None, error: Exception | None = None):
        self._name = name
        self._result = result or ToolResult("ok")
        self._error = error
        self.calls: list[dict] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return "test tool"

    @property
    def input_schema(self) -> dict:
        return {"type": "object"}

    async def execute(self, tool_input: dict) -> ToolResult:
        self.calls.append(tool_input)
        if self._error is not None:
            raise self._error
        return self._result


class _CancellableTool(_Tool):
    def __init__(self) -> None:
        super().__init__(name="fetch")
        self.cancel_events: list[asyncio.Event | None] = []

    async def execute(self, tool_input: dict, *, cancel_event: asyncio.Event | None = None) -> ToolResult:
        self.cancel_events.append(cancel_event)
        return await super().execute(tool_input)


class ToolRunnerTests(unittest.TestCase):
    def test_runs_tool_by_name(self) -> None:
        tool = _Tool()
        runner = ToolRunner([tool])

        result = asyncio.run(runner.run("echo", {"x": 1}))

        self.assertEqual(result, ToolResult("ok"))
        self.assertEqual(tool.calls, [{"x": 1}])
        self.assertEqual(runner.tool_names, ["echo"])

    def test_unknown_tool(self) -> None:
        result = asyncio.run(ToolRunner([_Tool()]).run("missing", {}))

        self.assertTrue(result.is_error)
        self.assertEqual(result.text, 'Error: unknown tool "missing"')

    def test_tool_exception_becomes_error_result(self) -> None:
        runner = ToolRunner([_Tool(error=RuntimeError("kaboom"))])

        result = asyncio.run(runner.run("echo", {}))

        self.assertTrue(result.is_error)
        self.assertEqual(result.text, 'Error executing tool "echo": kaboom')

    def test_truncates_long_output(self) -> None:
        runner = ToolRunner([_Tool(result=ToolResult("a" * 50))], max_tool_result_chars=10)

        result = asyncio.run(runner.run("echo", {}))

        self.assertTrue(result.text.startswith("a" * 10 + "\n\n[OUTPUT TRUNCATED: Showing 10 of 50 characters"))

    def test_zero_limit_disables_truncation(self) -> None:
        runner = ToolRunner([_Tool(result=ToolResult("a" * 50))], max_tool_result_chars=0)

        self.assertEqual(asyncio.run(runner.run("echo", {})).text, "a" * 50)

    def test_records_call_and_result(self) -> None:
        recorder = MagicMock(spec=ActivityRecorder)
        runner = ToolRunner([_Tool(result=ToolResult("boom", is_error=True))], recorder=recorder)

        asyncio.run(runner.run("echo", {"q": "x"}, tool_call_id="tc-1"))

        events = [c.args[0] for c in recorder.handle.call_args_list]
        self.assertEqual(events[0], ToolCallEvent(tool_call_id="tc-1", tool_name="echo", input={"q": "x"}))
        self.assertEqual(
            events[1],
            ToolResultEvent(tool_call_id="tc-1", content=[{"type": "text", "text": "boom"}], is_error=True),
        )

    def test_generated_call_id_is_shared(self) -> None:
        recorder = MagicMock(spec=ActivityRecorder)
        runner = ToolRunner([_Tool()], recorder=recorder)

        asyncio.run(runner.run("echo", {}))

        call_event, result_event = [c.args[0] for c in recorder.handle.call_args_list]
        self.assertTrue(call_event.tool_call_id)
        self.assertEqual(call_event.tool_call_id, result_event.tool_call_id)

    def test_forwards_cancel_event(self) -> None:
        tool = _CancellableTool()
        runner = ToolRunner([tool])

        async def scenario() -> asyncio.Event:
            cancel = asyncio.Event()
            await runner.run("fetch", {}, cancel_event=cancel)
            return cancel

        cancel = asyncio.run(scenario())

        self.assertIs(tool.cancel_events[0], cancel)

    def test_cancel_event_ignored_by_tools_without_it(self) -> None:
        tool = _Tool()
        runner = ToolRunner([tool])

        async def scenario() -> ToolResult:
            return await runner.run("echo", {"x": 1}, cancel_event=asyncio.Event())

        self.assertEqual(asyncio.run(scenario()), ToolResult("ok"))
        self.assertEqual(tool.calls, [{"x": 1}])


if __name__ == "__main__":
    unittest.main()
