"""Best-effort extraction of results from Kagi's HTML and Quick Answer stream.

Kagi publishes no API for either, so everything here keys off markup class
names and line prefixes observed in captured responses. Keep the tests in
tests/tools/kagi pinned to literal samples so upstream drift shows up as a
test failure.
"""

import json
import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag
from loguru import logger

QUICK_ANSWER_PREFIX = "new_message.json:"

_REFERENCE_PATTERN = re.compile(r"\[\^\d+\]:\s*\[([^\]]+)\]\((.+?)\)\s*\((\d+)%\)")


@dataclass(frozen=True)
class SearchResult:
    title: str
    url: str
    snippet: str


@dataclass(frozen=True)
class Reference:
    title: str
    url: str
    contribution: str


@dataclass(frozen=True)
class QuickAnswer:
    markdown: str
    references: list[Reference] = field(default_factory=list)


def _class_contains(fragment: str):
    return lambda c: c is not None and fragment in c


def _text(tag: Tag) -> str:
    return " ".join(tag.get_text(" ").split())


def parse_search_results(html: str, limit: int = 10) -> list[SearchResult]:
    soup = BeautifulSoup(html, "lxml")
    is_result = _class_contains("search-result")

    results: list[SearchResult] = []
    for block in soup.find_all("div", class_=is_result):
        if len(results) >= limit:
            break
        # Nested blocks belong to their outermost result
        if block.find_parent("div", class_=is_result) is not None:
            continue

        title_el = block.find("a", class_=_class_contains("__sri-title"))
        url_el = block.find("a", class_=_class_contains("__sri-url"), href=True)
        if title_el is None or url_el is None:
            continue

        snippet_el = block.find("div", class_=_class_contains("__sri-desc"))
        results.append(
            SearchResult(
                title=_text(title_el),
                url=url_el["href"],
                snippet=_text(snippet_el) if snippet_el is not None else "",
            )
        )

    return results


def parse_references(references_md: str) -> list[Reference]:
    return [
        Reference(title=m.group(1), url=m.group(2), contribution=f"{m.group(3)}%")
        for m in _REFERENCE_PATTERN.finditer(references_md)
    ]


def parse_quick_answer(stream_text: str) -> QuickAnswer | None:
    for line in stream_text.split("\n"):
        if not line.startswith(QUICK_ANSWER_PREFIX):
            continue

        try:
            data = json.loads(line[len(QUICK_ANSWER_PREFIX):])
        except json.JSONDecodeError:
            logger.debug("Skipping malformed Quick Answer line")
            continue
        if not isinstance(data, dict):
            continue

        markdown = data.get("md") or ""
        if markdown:
            return QuickAnswer(markdown=markdown, references=parse_references(data.get("references_md") or ""))

    return None
