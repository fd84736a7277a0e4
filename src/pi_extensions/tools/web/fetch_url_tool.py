import asyncio
from typing import Any

import httpx
from loguru import logger

from pi_extensions.tool import ToolResult

_JINA_READER_ORIGIN = "https://r.jina.ai/"
_TIMEOUT_SECONDS = 60

_HEADERS = {
    "Accept": "text/markdown",
}


class FetchUrlTool:
    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport

    @property
    def name(self) -> str:
        return "fetch_url"

    @property
    def description(self) -> str:
        return (
            "Fetch a webpage and return its content as markdown. "
            "Use this to read web pages, documentation, articles, etc."
        )

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "url": {
                    "type": "string",
                    "description": "The URL to fetch",
                },
            },
            "required": ["url"],
        }

    async def execute(
        self,
        tool_input: dict[str, Any],
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> ToolResult:
        url: str = tool_input["url"]
        reader_url = f"{_JINA_READER_ORIGIN}{url}"

        try:
            async with httpx.AsyncClient(
                headers=_HEADERS,
                timeout=_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                request = client.get(reader_url)
                if cancel_event is None:
                    response = await request
                else:
                    response = await _until_cancelled(request, cancel_event)
                    if response is None:
                        return ToolResult(f"Fetch cancelled: {url}", is_error=True)
        except httpx.TimeoutException:
            return ToolResult(f"Failed to fetch: request timed out after {_TIMEOUT_SECONDS} seconds", is_error=True)
        except httpx.HTTPError as ex:
            logger.warning(f"fetch_url failed for {url}: {ex}")
            return ToolResult(f"Failed to fetch: {ex}", is_error=True)

        if not response.is_success:
            return ToolResult(
                f"Failed to fetch: {response.status_code} {response.reason_phrase}",
                is_error=True,
            )

        return ToolResult(response.text)


async def _until_cancelled(request, cancel_event: asyncio.Event) -> httpx.Response | None:
    """Await ``request`` unless ``cancel_event`` fires first; returns None when cancelled."""
    request_task = asyncio.ensure_future(request)
    cancel_task = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({request_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        cancel_task.cancel()

    if request_task in done:
        return request_task.result()

    request_task.cancel()
    try:
        await request_task
    except asyncio.CancelledError:
        pass
    return None
