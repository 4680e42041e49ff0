"""
Parser for raw verification-model responses.

The model answers with the verified section text, optionally followed by
change blocks in a small marker grammar:

    ---CHANGES---
    [type]: citation_added
    [original]: The original text
    [modified]: The modified text
    [reason]: Why this change was made
    ---END CHANGES---

Parsing is best-effort: a malformed block is dropped on its own, and the
verified text never keeps marker tokens. Nothing here raises on bad input.

Author: articheck maintainers | 2026-10-19
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from articheck.models import Change, ChangeKind, Citation

import logging

logger = logging.getLogger(__name__)

CHANGES_START = "---CHANGES---"
CHANGES_END = "---END CHANGES---"
CHANGE_FIELDS = ("type", "original", "modified", "reason")

_BLOCK_RE = re.compile(re.escape(CHANGES_START) + r"(.*?)" + re.escape(CHANGES_END), re.DOTALL)
_UNTERMINATED_RE = re.compile(re.escape(CHANGES_START) + r".*\Z", re.DOTALL)
_MARKER_RE = re.compile(re.escape(CHANGES_END) + "|" + re.escape(CHANGES_START))
_FIELD_RE = re.compile(
    r"^[ \t]*\[(" + "|".join(CHANGE_FIELDS) + r")\]:[ \t]*(.*?)[ \t]*$",
    re.MULTILINE,
)
_EXCESS_BLANK_RE = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)+")

# [title](http(s)://url), not preceded by "!" (image); one level of
# balanced parentheses allowed inside the URL
_CITATION_RE = re.compile(r"(?<!!)\[([^\]]+)\]\((https?://(?:[^()\s]|\([^()\s]*\))+)\)")


@dataclass
class ParsedResponse:
    """Structured view of one raw model response."""
    verified_text: str
    edits: List[Change] = field(default_factory=list)
    dropped_blocks: int = 0


def _parse_block(body: str) -> Optional[Change]:
    """Parse the inside of one change block; None if it is not acceptable."""
    fields: Dict[str, str] = {}
    for m in _FIELD_RE.finditer(body):
        fields.setdefault(m.group(1), m.group(2))

    missing = [f for f in CHANGE_FIELDS if f not in fields]
    if missing:
        logger.debug(f"[parser] dropping change block, missing fields: {missing}")
        return None

    kind = ChangeKind.parse(fields["type"])
    if kind is None:
        logger.debug(f"[parser] dropping change block, unknown kind {fields['type']!r}")
        return None

    return Change(
        kind=kind,
        original=fields["original"],
        modified=fields["modified"],
        reason=fields["reason"],
    )


def strip_change_blocks(text: str) -> str:
    """Remove every change block and stray marker token from text."""
    text = _BLOCK_RE.sub("", text)
    text = _UNTERMINATED_RE.sub("", text)
    text = _MARKER_RE.sub("", text)
    text = _EXCESS_BLANK_RE.sub("\n\n", text)
    return text.strip()


def parse_response(raw: Optional[str]) -> ParsedResponse:
    """
    Split a raw response into verified text and structured edits.

    Blocks with a missing field or a kind outside ChangeKind are dropped
    individually; the rest of the response is still parsed.
    """
    if not raw:
        return ParsedResponse(verified_text="")

    edits: List[Change] = []
    dropped = 0
    for m in _BLOCK_RE.finditer(raw):
        change = _parse_block(m.group(1))
        if change is None:
            dropped += 1
        else:
            edits.append(change)

    if _UNTERMINATED_RE.search(_BLOCK_RE.sub("", raw)):
        logger.debug("[parser] dropping unterminated change block")
        dropped += 1

    return ParsedResponse(
        verified_text=strip_change_blocks(raw),
        edits=edits,
        dropped_blocks=dropped,
    )


def extract_citations(text: str) -> List[Citation]:
    """Extract [title](http(s)://url) links in order of appearance."""
    return [
        Citation(title=m.group(1), url=m.group(2), position=i)
        for i, m in enumerate(_CITATION_RE.finditer(text or ""))
    ]


def confidence_score(edit_count: int) -> float:
    """Diagnostic score: 1 minus 0.1 per edit, clamped at 0."""
    return round(max(0.0, 1.0 - 0.1 * edit_count), 4)
