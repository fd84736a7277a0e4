import asyncio
from pathlib import Path
from typing import Any

import httpx
from loguru import logger

from pi_extensions.tool import ToolResult
from pi_extensions.tools.kagi.kagi_client import KagiClient
from pi_extensions.tools.kagi.kagi_config import get_session_token, load_config
from pi_extensions.tools.kagi.kagi_parser import QuickAnswer, SearchResult

_DEFAULT_LIMIT = 10


def format_output(results: list[SearchResult], quick_answer: QuickAnswer | None) -> str:
    lines: list[str] = []

    if quick_answer is not None:
        lines.extend(["## Quick Answer", "", quick_answer.markdown, ""])
        if quick_answer.references:
            lines.append("### References")
            for ref in quick_answer.references:
                lines.append(f"- [{ref.title}]({ref.url}) ({ref.contribution})")
            lines.append("")

    lines.extend(["## Search Results", ""])
    for i, result in enumerate(results, 1):
        lines.append(f"{i}. **[{result.title}]({result.url})**")
        if result.snippet:
            lines.append(f"   {result.snippet}")
        lines.append("")

    return "\n".join(lines)


class KagiSearchTool:
    def __init__(
        self,
        config_path: str | Path | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config_path = config_path
        self._transport = transport
        self._client: KagiClient | None = None

    @property
    def name(self) -> str:
        return "kagi_search"

    @property
    def description(self) -> str:
        return "Search the web using Kagi. Returns search results and optionally a Quick Answer summary."

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search query",
                },
                "limit": {
                    "type": "number",
                    "description": "Max results (default 10)",
                },
                "quick_answer": {
                    "type": "boolean",
                    "description": "Include Quick Answer if available (default true)",
                },
            },
            "required": ["query"],
        }

    async def _ensure_client(self) -> KagiClient:
        if self._client is None:
            config = load_config(self._config_path)
            token = await get_session_token(config)
            client = KagiClient(timeout=config.timeout, transport=self._transport)
            await client.authenticate(token)
            self._client = client
        return self._client

    async def execute(self, tool_input: dict[str, Any]) -> ToolResult:
        try:
            kagi = await self._ensure_client()
            query = tool_input["query"]
            limit = tool_input.get("limit")
            limit = _DEFAULT_LIMIT if limit is None else int(limit)
            include_quick_answer = tool_input.get("quick_answer", True)

            if include_quick_answer:
                results, quick_answer = await asyncio.gather(
                    kagi.search(query, limit),
                    kagi.get_quick_answer(query),
                )
            else:
                results, quick_answer = await kagi.search(query, limit), None

            return ToolResult(format_output(results, quick_answer))
        except Exception as ex:
            self._client = None
            logger.error(f"kagi_search failed: {ex}")
            return ToolResult(f"Kagi search failed: {ex}", is_error=True)
