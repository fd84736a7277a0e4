import httpx
from loguru import logger

from pi_extensions.errors import AuthenticationError
from pi_extensions.tools.kagi.kagi_parser import (
    QuickAnswer,
    SearchResult,
    parse_quick_answer,
    parse_search_results,
)

_BASE_URL = "https://kagi.com"
_SEARCH_PATH = "/html/search"
_QUICK_ANSWER_PATH = "/mother/context"
_SESSION_COOKIE = "kagi_session"
_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36"
_SIGNIN_MARKERS = ("/signin", "/welcome")


def _redirects_to_signin(response: httpx.Response) -> bool:
    if not 300 <= response.status_code < 400:
        return False
    location = response.headers.get("location", "")
    return any(marker in location for marker in _SIGNIN_MARKERS)


class KagiClient:
    """Cookie-authenticated client for Kagi's HTML search and Quick Answer.

    Discard the instance after any error; a fresh one re-authenticates.
    """

    def __init__(self, timeout: float = 30, transport: httpx.AsyncBaseTransport | None = None):
        self._timeout = timeout
        self._transport = transport
        self._cookies: list[str] = []
        self._session_cookie = ""

    @property
    def cookie_header(self) -> str:
        return "; ".join(self._cookies)

    @property
    def session_cookie(self) -> str:
        return self._session_cookie

    def _client(self) -> httpx.AsyncClient:
        # No cookie jar reuse between requests: the Cookie header is sent explicitly.
        return httpx.AsyncClient(
            base_url=_BASE_URL,
            headers={"User-Agent": _USER_AGENT},
            timeout=self._timeout,
            follow_redirects=False,
            transport=self._transport,
        )

    async def authenticate(self, token: str) -> None:
        async with self._client() as client:
            response = await client.get(_SEARCH_PATH, params={"token": token})

        self._cookies = [c.split(";", 1)[0] for c in response.headers.get_list("set-cookie")]
        self._session_cookie = ""
        for cookie in self._cookies:
            if cookie.startswith(f"{_SESSION_COOKIE}="):
                self._session_cookie = cookie.split("=", 1)[1]
                break

        if _redirects_to_signin(response):
            raise AuthenticationError("Authentication failed")

        if not self._session_cookie:
            logger.warning("Kagi authentication returned no kagi_session cookie")

    async def search(self, query: str, limit: int = 10) -> list[SearchResult]:
        async with self._client() as client:
            response = await client.get(
                _SEARCH_PATH,
                params={"q": query},
                headers={"Cookie": self.cookie_header, "Accept": "text/html"},
            )
        if _redirects_to_signin(response):
            raise AuthenticationError("Kagi session expired")
        response.raise_for_status()
        return parse_search_results(response.text, limit)

    async def get_quick_answer(self, query: str) -> QuickAnswer | None:
        try:
            async with self._client() as client:
                response = await client.post(
                    _QUICK_ANSWER_PATH,
                    params={"q": query},
                    headers={
                        "Cookie": self.cookie_header,
                        "Accept": "application/vnd.kagi.stream",
                        "X-Kagi-Authorization": self._session_cookie,
                        "Origin": _BASE_URL,
                        "Referer": str(httpx.URL(f"{_BASE_URL}/search", params={"q": query})),
                    },
                )
            return parse_quick_answer(response.text)
        except Exception as ex:
            logger.debug(f"Kagi Quick Answer unavailable: {ex}")
            return None
