import json
import unittest

from pi_extensions.tools.kagi.kagi_parser import (
    QUICK_ANSWER_PREFIX,
    Reference,
    parse_quick_answer,
    parse_references,
    parse_search_results,
)

_RESULTS_HTML = """
<html><body>
<div class="_0_main">
  <div class="search-result" data-rank="1">
    <div class="__sri_title_box">
      <a class="__sri-title __sri_title_link" href="https://docs.python.org/3/library/asyncio.html">
        asyncio &mdash; Asynchronous
        I/O
      </a>
    </div>
    <a class="__sri-url" href="https://docs.python.org/3/library/asyncio.html">docs.python.org</a>
    <div class="__sri-desc">asyncio is a library to write <b>concurrent</b> code using the async/await syntax.</div>
  </div>
  <div class="search-result">
    <a class="__sri-title" href="https://realpython.com/async-io-python/">Async IO in Python</a>
    <a class="__sri-url" href="https://realpython.com/async-io-python/">realpython.com</a>
  </div>
  <div class="search-result">
    <div class="__sri-desc">Orphan snippet with no link</div>
  </div>
  <div class="search-result">
    <a class="__sri-title" href="https://peps.python.org/pep-0492/">PEP 492</a>
    <a class="__sri-url" href="https://peps.python.org/pep-0492/">peps.python.org</a>
    <div class="__sri-desc">Coroutines with async and await syntax</div>
    <div class="sri-group">
      <div class="search-result sr-group-item">
        <a class="__sri-title" href="https://peps.python.org/pep-0525/">PEP 525</a>
        <a class="__sri-url" href="https://peps.python.org/pep-0525/">peps.python.org</a>
      </div>
    </div>
  </div>
</div>
</body></html>
"""


class TestParseSearchResults(unittest.TestCase):
    def test_extracts_title_url_and_snippet(self) -> None:
        results = parse_search_results(_RESULTS_HTML)

        first = results[0]
        self.assertEqual(first.title, "asyncio — Asynchronous I/O")
        self.assertEqual(first.url, "https://docs.python.org/3/library/asyncio.html")
        self.assertEqual(first.snippet, "asyncio is a library to write concurrent code using the async/await syntax.")

    def test_missing_snippet_is_empty_string(self) -> None:
        results = parse_search_results(_RESULTS_HTML)
        self.assertEqual(results[1].title, "Async IO in Python")
        self.assertEqual(results[1].snippet, "")

    def test_blocks_without_title_or_url_are_dropped(self) -> None:
        urls = [r.url for r in parse_search_results(_RESULTS_HTML)]
        self.assertNotIn("", urls)
        self.assertEqual(len(urls), 3)

    def test_nested_block_counts_once(self) -> None:
        results = parse_search_results(_RESULTS_HTML)
        self.assertEqual(results[2].title, "PEP 492")
        self.assertNotIn("https://peps.python.org/pep-0525/", [r.url for r in results])

    def test_limit(self) -> None:
        results = parse_search_results(_RESULTS_HTML, limit=2)
        self.assertEqual(len(results), 2)

    def test_no_results(self) -> None:
        self.assertEqual(parse_search_results("<html><body><p>Nothing here</p></body></html>"), [])


class TestParseReferences(unittest.TestCase):
    def test_parses_footnote_references(self) -> None:
        md = (
            "[^1]: [asyncio docs](https://docs.python.org/3/library/asyncio.html) (62%)\n"
            "[^2]: [Real Python](https://realpython.com/async-io-python/) (38%)"
        )
        self.assertEqual(
            parse_references(md),
            [
                Reference("asyncio docs", "https://docs.python.org/3/library/asyncio.html", "62%"),
                Reference("Real Python", "https://realpython.com/async-io-python/", "38%"),
            ],
        )

    def test_ignores_unrelated_text(self) -> None:
        self.assertEqual(parse_references("no references here"), [])


class TestParseQuickAnswer(unittest.TestCase):
    def _line(self, payload: object) -> str:
        return QUICK_ANSWER_PREFIX + json.dumps(payload)

    def test_first_line_with_markdown_wins(self) -> None:
        stream = "\n".join([
            "hi:{}",
            self._line({"state": "pending", "md": ""}),
            self._line({
                "md": "asyncio runs coroutines on an event loop.[^1]",
                "references_md": "[^1]: [asyncio docs](https://docs.python.org/3/library/asyncio.html) (100%)",
            }),
            self._line({"md": "a later message"}),
        ])

        answer = parse_quick_answer(stream)

        self.assertIsNotNone(answer)
        self.assertEqual(answer.markdown, "asyncio runs coroutines on an event loop.[^1]")
        self.assertEqual(answer.references[0].contribution, "100%")

    def test_without_references(self) -> None:
        answer = parse_quick_answer(self._line({"md": "Just an answer"}))
        self.assertEqual(answer.markdown, "Just an answer")
        self.assertEqual(answer.references, [])

    def test_malformed_line_is_skipped(self) -> None:
        stream = "\n".join([
            QUICK_ANSWER_PREFIX + "{not json",
            QUICK_ANSWER_PREFIX + "[1, 2]",
            self._line({"md": "recovered"}),
        ])
        self.assertEqual(parse_quick_answer(stream).markdown, "recovered")

    def test_no_answer(self) -> None:
        self.assertIsNone(parse_quick_answer(""))
        self.assertIsNone(parse_quick_answer("update.json:{\"md\": \"wrong prefix\"}"))


if __name__ == "__main__":
    unittest.main()
