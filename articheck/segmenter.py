"""
Document segmentation into a bounded number of verifiable sections.

The segmenter applies an ordered fallback cascade until the section count
lands inside [min_sections, max_sections]:

    1. split at level-2 headings
    2. re-split at nested level-3 headings
    3. split oversized sections in two at paragraph boundaries
    4. re-split the whole document by paragraphs (finer units if needed)
    5. merge adjacent sections when there are too many
    6. re-index

The count bounds are enforced; the per-section word bounds are only
reported by validate().

Author: articheck maintainers | 2026-10-19
"""

import math
from typing import Callable, List, Optional, Sequence, Tuple

from articheck.config import SegmentConfig
from articheck.md_parser import (
    Block,
    has_headings,
    split_at_headings,
    split_lines,
    split_paragraphs,
    split_sentences,
)
from articheck.models import (
    Section,
    SegmentationResult,
    ValidationReport,
    count_words,
)

import logging

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Packing
# ---------------------------------------------------------------------------

def pack_units(units: Sequence[str], groups: int, joiner: str = "\n\n") -> List[str]:
    """
    Greedily pack contiguous units into at most `groups` word-balanced groups.

    A new group starts when the running word count would exceed the
    per-group average, or when the remaining units are just enough to give
    every remaining group one unit. With len(units) >= groups the result has
    exactly `groups` entries. Units are never split.
    """
    if not units or groups <= 0:
        return []

    total = sum(count_words(u) for u in units)
    per_group = math.ceil(total / groups)

    out: List[str] = []
    current: List[str] = []
    words = 0

    for i, unit in enumerate(units):
        w = count_words(unit)
        remaining = len(units) - i
        slots_after_current = groups - len(out) - 1
        can_open = current and len(out) < groups - 1
        if can_open and (words + w > per_group or remaining <= slots_after_current):
            out.append(joiner.join(current))
            current = [unit]
            words = w
        else:
            current.append(unit)
            words += w

    if current:
        out.append(joiner.join(current))
    return out


_UNIT_SPLITTERS: List[Tuple[str, Callable[[str], List[str]], str]] = [
    ("paragraphs", split_paragraphs, "\n\n"),
    ("lines", split_lines, "\n"),
    ("sentences", split_sentences, " "),
    ("words", str.split, " "),
]


def split_by_paragraphs(text: str, target: int) -> List[Block]:
    """
    Re-split text into exactly `target` unheaded groups.

    Paragraphs are used whenever there are enough of them; otherwise the
    split falls back to lines, sentences and finally words. Inputs with
    fewer than `target` words are padded with empty groups.
    """
    units: List[str] = []
    for unit_name, splitter, joiner in _UNIT_SPLITTERS:
        units = splitter(text)
        if len(units) >= target:
            if unit_name != "paragraphs":
                logger.debug(f"[segmenter] only a few paragraphs, splitting by {unit_name}")
            break

    groups = pack_units(units, target, joiner)
    while len(groups) < target:
        groups.append("")
    return [Block(heading=None, body=g, level=0) for g in groups]


# ---------------------------------------------------------------------------
# Cascade steps
# ---------------------------------------------------------------------------

def _split_nested_h3(blocks: List[Block]) -> List[Block]:
    """Re-split each block at level-3 headings nested in its body."""
    result: List[Block] = []

    for block in blocks:
        subs = split_at_headings(block.body, 3)
        nested = [b for b in subs if b.heading is not None]
        if not nested:
            result.append(block)
            continue

        lead = subs[0] if subs[0].heading is None else None
        if block.heading is None:
            pieces = subs
        elif lead is not None:
            pieces = [Block(block.heading, lead.body, block.level)] + nested
        else:
            # No lead text: parent heading keeps the first nested block inline
            first = nested[0]
            body = f"### {first.heading}\n\n{first.body}".rstrip()
            pieces = [Block(block.heading, body, block.level)] + nested[1:]

        if len(pieces) > 1:
            result.extend(pieces)
        else:
            result.append(block)

    return result


def _split_large(blocks: List[Block], config: SegmentConfig) -> List[Block]:
    """Split blocks well above the per-section mean in two, while still short."""
    total = sum(count_words(b.body) for b in blocks)
    target = total / config.min_sections
    threshold = target * config.split_factor

    result: List[Block] = []
    for i, block in enumerate(blocks):
        remaining = len(blocks) - i
        words = count_words(block.body)
        if words > threshold and len(result) + remaining < config.min_sections:
            halves = pack_units(split_paragraphs(block.body), 2)
            if len(halves) > 1:
                result.append(Block(block.heading, halves[0], block.level))
                result.extend(Block(None, h, 0) for h in halves[1:])
                continue
        result.append(block)

    return result


def _merge_groups(blocks: List[Block], max_sections: int) -> List[Block]:
    """Merge adjacent blocks into exactly max_sections contiguous groups."""
    base, extra = divmod(len(blocks), max_sections)
    merged: List[Block] = []
    start = 0

    for g in range(max_sections):
        size = base + (1 if g < extra else 0)
        group = blocks[start:start + size]
        start += size

        lead_idx = next((i for i, b in enumerate(group) if b.heading is not None), None)
        parts = []
        for i, b in enumerate(group):
            if b.heading is not None and i != lead_idx:
                parts.append(f"### {b.heading}\n\n{b.body}".rstrip())
            elif b.body:
                parts.append(b.body)

        if lead_idx is None:
            merged.append(Block(None, "\n\n".join(parts), 0))
        else:
            lead = group[lead_idx]
            merged.append(Block(lead.heading, "\n\n".join(parts), lead.level))

    return merged


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def divide(document: str, config: Optional[SegmentConfig] = None) -> SegmentationResult:
    """
    Split a Markdown document into sections and report the strategy used.

    Deterministic and pure: the same document and config always produce
    the same sections.
    """
    cfg = config or SegmentConfig()
    text = document.replace("\r\n", "\n")
    lo, hi = cfg.min_sections, cfg.max_sections

    if not has_headings(text):
        blocks = split_by_paragraphs(text, lo)
        strategy = "paragraphs"
    else:
        blocks = split_at_headings(text, 2)
        strategy = "h2"

        if len(blocks) < lo:
            refined = _split_nested_h3(blocks)
            if len(refined) > len(blocks):
                strategy = "h3"
            blocks = refined

        if len(blocks) < lo:
            refined = _split_large(blocks, cfg)
            if len(refined) > len(blocks):
                strategy = "split_large"
            blocks = refined

        if len(blocks) < lo:
            blocks = split_by_paragraphs(text, lo)
            strategy = "paragraphs"

    merged = False
    if len(blocks) > hi:
        logger.debug(f"[segmenter] merging {len(blocks)} sections into {hi}")
        blocks = _merge_groups(blocks, hi)
        merged = True

    sections = [
        Section(
            index=i,
            heading=b.heading,
            original_text=b.body,
            level=b.level if b.heading is not None and b.level else 2,
        )
        for i, b in enumerate(blocks)
    ]

    logger.info(
        f"[segmenter] {len(sections)} sections via {strategy}"
        f"{' (merged)' if merged else ''}, "
        f"{sum(s.word_count for s in sections)} words"
    )
    return SegmentationResult(sections=sections, strategy=strategy, merged=merged)


def segment(document: str, config: Optional[SegmentConfig] = None) -> List[Section]:
    """Split a document into an ordered, contiguously indexed list of sections."""
    return divide(document, config).sections


def validate(sections: Sequence[Section], config: Optional[SegmentConfig] = None) -> ValidationReport:
    """
    Check a partition against the count and size targets.

    Emits one warning per violated constraint. Never raises and never
    modifies the sections.
    """
    cfg = config or SegmentConfig()
    warnings: List[str] = []
    n = len(sections)

    if n < cfg.min_sections:
        warnings.append(f"Only {n} sections, minimum is {cfg.min_sections}")
    if n > cfg.max_sections:
        warnings.append(f"{n} sections exceeds maximum of {cfg.max_sections}")

    for pos, section in enumerate(sections):
        number = getattr(section, "index", pos) + 1
        words = count_words(getattr(section, "original_text", "") or "")
        if words < cfg.min_words:
            warnings.append(
                f"Section {number} has only {words} words (minimum is {cfg.min_words})"
            )
        if words > cfg.max_words:
            warnings.append(
                f"Section {number} has {words} words (maximum is {cfg.max_words})"
            )

    return ValidationReport(valid=not warnings, warnings=warnings)
