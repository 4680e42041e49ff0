"""
Line-level Markdown helpers used by the segmenter.

Regex-based: headings are recognized by their `## ` / `### ` prefix, and
lines inside fenced code blocks are never treated as headings. Paragraphs
are blank-line separated blocks.

Author: articheck maintainers | 2026-10-19
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple


# ---------------------------------------------------------------------------
# Heading extraction
# ---------------------------------------------------------------------------

_HEADING_RE = re.compile(r"^(#{1,6})[ \t]+(.+?)[ \t]*$")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n[ \t]*\n")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


@dataclass
class Block:
    """A heading (or None for leading content) with the body that follows it."""
    heading: Optional[str]
    body: str
    level: int = 0


def _fence_marker(stripped: str) -> str:
    if stripped.startswith("```"):
        return "```"
    if stripped.startswith("~~~"):
        return "~~~"
    return ""


def extract_headings(lines: List[str]) -> List[Tuple[int, int, str]]:
    """
    Extract headings from Markdown lines.

    Returns list of (line_index_0based, level, title).
    """
    headings = []
    fence = ""

    for i, line in enumerate(lines):
        stripped = line.strip()
        marker = _fence_marker(stripped)
        if marker:
            if not fence:
                fence = marker
            elif marker == fence:
                fence = ""
            continue
        if fence:
            continue

        m = _HEADING_RE.match(line)
        if m:
            headings.append((i, len(m.group(1)), m.group(2).strip()))

    return headings


def has_headings(text: str, levels: Tuple[int, ...] = (2, 3)) -> bool:
    """Whether the text contains at least one heading at the given levels."""
    return any(level in levels for _, level, _ in extract_headings(text.splitlines()))


def split_at_headings(text: str, level: int) -> List[Block]:
    """
    Split text at headings of exactly `level`.

    The first block carries heading None and holds any content before the
    first heading; it is omitted when empty. Bodies are stripped.
    """
    lines = text.splitlines()
    cuts = [(i, title) for i, lv, title in extract_headings(lines) if lv == level]

    blocks: List[Block] = []
    lead_end = cuts[0][0] if cuts else len(lines)
    lead = "\n".join(lines[:lead_end]).strip()
    if lead:
        blocks.append(Block(heading=None, body=lead, level=0))

    for n, (line_idx, title) in enumerate(cuts):
        end = cuts[n + 1][0] if n + 1 < len(cuts) else len(lines)
        body = "\n".join(lines[line_idx + 1:end]).strip()
        blocks.append(Block(heading=title, body=body, level=level))

    return blocks


# ---------------------------------------------------------------------------
# Finer units
# ---------------------------------------------------------------------------

def split_paragraphs(text: str) -> List[str]:
    """Blank-line separated blocks, stripped, empties dropped."""
    return [p.strip() for p in _PARAGRAPH_SPLIT_RE.split(text) if p.strip()]


def split_lines(text: str) -> List[str]:
    return [ln.strip() for ln in text.splitlines() if ln.strip()]


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]
