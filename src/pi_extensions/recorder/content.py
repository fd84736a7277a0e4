from __future__ import annotations

MAX_CONTENT_CHARS = 50 * 1024
TRUNCATION_MARKER = "\n... [truncated at 50KB]"


def cap_text(text: str) -> str:
    if len(text) > MAX_CONTENT_CHARS:
        return text[:MAX_CONTENT_CHARS] + TRUNCATION_MARKER
    return text


def extract_text_content(content: list[dict] | str | None) -> str:
    """Join the text blocks of a message or tool result, capped at 50KB."""
    if content is None:
        return ""
    if isinstance(content, str):
        return cap_text(content)

    texts = [
        str(block["text"])
        for block in content
        if isinstance(block, dict) and block.get("type") == "text" and block.get("text")
    ]
    return cap_text("\n".join(texts))
