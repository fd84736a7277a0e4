from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from pi_extensions.tool import Tool
from pi_extensions.tools.ast_grep.ast_grep_tool import AstGrepTool
from pi_extensions.tools.github.github_search_code_tool import GitHubSearchCodeTool
from pi_extensions.tools.pexpect.pexpect_client import PexpectCliClient
from pi_extensions.tools.pexpect.pexpect_exec_tool import PexpectExecTool
from pi_extensions.tools.pexpect.pexpect_list_tool import PexpectListTool
from pi_extensions.tools.pexpect.pexpect_start_tool import PexpectStartTool
from pi_extensions.tools.pexpect.pexpect_stop_tool import PexpectStopTool
from pi_extensions.tools.web.fetch_url_tool import FetchUrlTool


@dataclass(frozen=True)
class ToolGroup:
    enabled: Callable[[dict], bool]
    build: Callable[[dict], list[Tool]]


def _always(_: dict) -> bool:
    return True


def _base_tools(ctx: dict) -> list[Tool]:
    return [
        FetchUrlTool(),
        GitHubSearchCodeTool(),
        AstGrepTool(ctx["working_directory"]),
    ]


def _pexpect_tools(ctx: dict) -> list[Tool]:
    client = PexpectCliClient()
    return [
        PexpectStartTool(client),
        PexpectListTool(client),
        PexpectExecTool(client),
        PexpectStopTool(client),
    ]


def _kagi_enabled(ctx: dict) -> bool:
    return bool(ctx.get("kagi_enabled"))


def _kagi_tools(ctx: dict) -> list[Tool]:
    from pi_extensions.tools.kagi.kagi_search_tool import KagiSearchTool

    return [KagiSearchTool(ctx.get("kagi_config_path"))]


_GROUPS = [
    ToolGroup(enabled=_always, build=_base_tools),
    ToolGroup(enabled=_always, build=_pexpect_tools),
    ToolGroup(enabled=_kagi_enabled, build=_kagi_tools),
]


def get_all(
    working_directory: str | None = None,
    kagi_enabled: bool = True,
    kagi_config_path: str | None = None,
) -> list[Tool]:
    ctx = {
        "working_directory": working_directory,
        "kagi_enabled": kagi_enabled,
        "kagi_config_path": kagi_config_path,
    }

    tools: list[Tool] = []
    for group in _GROUPS:
        if group.enabled(ctx):
            tools.extend(group.build(ctx))
    return tools
