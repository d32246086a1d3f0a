"""
README normalization.

Turns arbitrary Markdown/HTML into a line list that renders cleanly in a plain
text preview: images and HTML tags are dropped, blank runs are collapsed and
fenced code blocks are passed through untouched.
"""

import re
from typing import Iterable, List

IMG_TAG_RX = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
HTML_TAG_RX = re.compile(r"<\s*[^>]*>")
FENCE_RX = re.compile(r"^\s*```")
STANDALONE_IMAGE_RX = re.compile(r"^!\[[^\]]*\]\(.*\)$")
WHITESPACE_RUN_RX = re.compile(r"\s+")


def strip_html_tags(line: str) -> str:
    """
    Remove HTML tags from a line, keeping the text between them.

    Whitespace left behind by removed tags is collapsed to single spaces.
    """
    cleaned = HTML_TAG_RX.sub("", line)
    return WHITESPACE_RUN_RX.sub(" ", cleaned).strip()


def is_standalone_image(line: str) -> bool:
    """Return True for a trimmed line that is only a Markdown image."""
    return bool(STANDALONE_IMAGE_RX.match(line))


def _normalize_line(line: str) -> str:
    """Clean a line outside a fence; an empty result marks a blank line."""
    trimmed = line.strip()
    if not trimmed or is_standalone_image(trimmed):
        return ""
    if "<" in trimmed and HTML_TAG_RX.search(trimmed):
        trimmed = strip_html_tags(trimmed)
        if is_standalone_image(trimmed):
            return ""
    return trimmed


def _drop_outer_blanks(lines: List[str]) -> List[str]:
    start = 0
    while start < len(lines) and lines[start] == "":
        start += 1
    end = len(lines)
    while end > start and lines[end - 1] == "":
        end -= 1
    return lines[start:end]


def process_readme_lines(lines: Iterable[str]) -> List[str]:
    """
    Normalize README lines in a single pass.

    Lines inside ``` fences are emitted verbatim. Fence lines are trimmed.
    Outside fences lines are trimmed, standalone images count as blank, HTML
    tags are stripped, and consecutive blank lines collapse to one. Blank lines
    at the start and end of the document are removed.
    """
    processed: List[str] = []
    prev_was_empty = False
    in_code_block = False

    for line in lines:
        if FENCE_RX.match(line):
            in_code_block = not in_code_block
            processed.append(line.strip())
            prev_was_empty = False
            continue

        if in_code_block:
            processed.append(line)
            prev_was_empty = False
            continue

        cleaned = _normalize_line(line)
        if FENCE_RX.match(cleaned):
            # Markup such as <b>```</b> only becomes a fence once tags are gone
            in_code_block = not in_code_block
            processed.append(cleaned)
            prev_was_empty = False
        elif cleaned == "":
            if not prev_was_empty:
                processed.append("")
            prev_was_empty = True
        else:
            processed.append(cleaned)
            prev_was_empty = False

    return _drop_outer_blanks(processed)


def process_readme_content(content: str) -> List[str]:
    """
    Normalize raw README text into display lines.

    `<img>` tags are removed from the whole text first (they may span lines),
    then the text is split on newlines and passed to process_readme_lines().

    Parameters:
        content (str): Raw README body.

    Returns:
        List[str]: Processed lines; empty when the document has no content.
    """
    if not content:
        return []
    text = IMG_TAG_RX.sub("", content)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return process_readme_lines(text.split("\n"))


def lines_to_text(lines: Iterable[str]) -> str:
    """Join processed lines back into the on-disk text representation."""
    return "\n".join(lines)


def text_to_lines(text: str) -> List[str]:
    """Split cached README text into lines; the inverse of lines_to_text()."""
    if text == "":
        return []
    return text.split("\n")
