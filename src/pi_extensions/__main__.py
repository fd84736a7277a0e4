import asyncio
import json

from dotenv import load_dotenv
from loguru import logger

from pi_extensions.app_config import load_json_config, parse_app_config, resolve_runtime_env
from pi_extensions.bootstrap import bootstrap_runtime
from pi_extensions.recorder import InputEvent, SessionShutdownEvent


def parse_command(line: str) -> tuple[str, dict]:
    """Split ``<tool_name> [json object]`` into the tool name and its input."""
    tool_name, _, raw_input = line.strip().partition(" ")
    raw_input = raw_input.strip()
    if not raw_input:
        return tool_name, {}
    tool_input = json.loads(raw_input)
    if not isinstance(tool_input, dict):
        raise ValueError("tool input must be a JSON object")
    return tool_name, tool_input


async def main() -> None:
    load_dotenv()

    app = parse_app_config(load_json_config(), resolve_runtime_env())
    runtime = bootstrap_runtime(app)

    print("pi-extensions (type 'exit' to quit, '/tools' to list tools)")
    print("Usage: <tool_name> {json input}")
    print("Tools:")
    for t in runtime.tools:
        print(f"  - {t.name}")
    if runtime.recorder is not None:
        print(f"Recorder: {app.recorder_db_path} (session: {runtime.session_id})")
    if runtime.log_descriptions:
        print(f"Logging: {', '.join(runtime.log_descriptions)}")
    print()

    try:
        while True:
            try:
                user_input = input("tool> ")
            except (EOFError, KeyboardInterrupt):
                break

            trimmed = user_input.strip()

            if trimmed in ("exit", "quit"):
                break

            if not trimmed:
                continue

            if trimmed == "/tools":
                for name in runtime.runner.tool_names:
                    print(f"  - {name}")
                continue

            if runtime.recorder is not None:
                runtime.recorder.handle(InputEvent(text=trimmed))

            try:
                tool_name, tool_input = parse_command(trimmed)
            except ValueError as ex:
                print(f"Invalid input: {ex}\n")
                continue

            try:
                result = await runtime.runner.run(tool_name, tool_input)
            except Exception as ex:
                logger.error(f"Unhandled error: {ex}")
                continue

            prefix = "[error] " if result.is_error else ""
            print(f"{prefix}{result.text}\n")
    finally:
        if runtime.recorder is not None:
            runtime.recorder.handle(SessionShutdownEvent())


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
