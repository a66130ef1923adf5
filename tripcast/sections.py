# ABOUTME: Splits generated suggestion text into ordered, labeled sections for display.
# ABOUTME: Uses a forward scanner over **bold** labels and falls back to blank-line blocks.

import re

from tripcast.models import SuggestionSection

MARKER = "**"
LABEL_SEPARATORS = ":-\u2013\u2014"
ZERO_WIDTH = re.compile("[\u200b\u200c\u200d\u2060\ufeff]")
DANGLING_BULLETS = {"-", "*", "\u2022"}


def sanitize_suggestion(raw: object) -> str:
    """Normalize line endings, emphasis markers, blank lines and stray whitespace."""
    if raw is None:
        return ""
    text = raw if isinstance(raw, str) else str(raw)
    text = ZERO_WIDTH.sub("", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"\*\s*\*", MARKER, text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    return text.strip()


def _clean_label(raw: str) -> str:
    return raw.strip().rstrip(LABEL_SEPARATORS).strip()


def _skip_separator(text: str, pos: int) -> int:
    """Skip spaces, at most one separator on the label's line, then any whitespace.

    A dash at the start of the following line is a bullet, not a separator.
    """
    while pos < len(text) and text[pos] in " \t":
        pos += 1
    if pos < len(text) and text[pos] in LABEL_SEPARATORS:
        pos += 1
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _next_label(text: str, start: int) -> tuple[int, str, int] | None:
    """Find the next single-line **label** at or after start.

    Returns (label start, cleaned label, content start) or None.
    """
    pos = start
    while True:
        opening = text.find(MARKER, pos)
        if opening == -1:
            return None
        closing = text.find(MARKER, opening + len(MARKER))
        if closing == -1:
            return None
        inner = text[opening + len(MARKER) : closing]
        label = _clean_label(inner)
        if label and "\n" not in inner:
            return opening, label, _skip_separator(text, closing + len(MARKER))
        pos = opening + 1


def _trim_content(content: str) -> str:
    content = content.strip()
    lines = content.split("\n")
    while lines and lines[-1].strip() in DANGLING_BULLETS:
        lines.pop()
    return "\n".join(lines).strip()


def _labeled_sections(text: str) -> list[SuggestionSection]:
    sections: dict[str, str] = {}
    found = _next_label(text, 0)
    while found is not None:
        _, label, content_start = found
        following = _next_label(text, content_start)
        content_end = following[0] if following else len(text)
        content = _trim_content(text[content_start:content_end])
        if label in sections:
            sections[label] += "\n\n" + content
        else:
            sections[label] = content
        found = following
    return [SuggestionSection(label=label, content=content) for label, content in sections.items()]


def _block_sections(text: str) -> list[SuggestionSection]:
    blocks = [b.strip() for b in re.split(r"\n{2,}", text) if b.strip()]
    if len(blocks) == 1:
        return [SuggestionSection(label="Recommendations", content=blocks[0])]
    return [
        SuggestionSection(label="Overview" if i == 0 else f"Section {i + 1}", content=block)
        for i, block in enumerate(blocks)
    ]


def parse_sections(raw: object) -> list[SuggestionSection]:
    """Ordered sections of a suggestion. Never raises; empty or None input gives an empty list."""
    text = sanitize_suggestion(raw)
    if not text:
        return []
    return _labeled_sections(text) or _block_sections(text)
