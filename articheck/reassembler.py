"""
Reassembly of verified sections into a single document, plus exports
and aggregate statistics.

All functions are pure: they read sections and never modify them.

Author: articheck maintainers | 2026-10-19
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from articheck.models import CHANGE_KINDS, Section

import logging

logger = logging.getLogger(__name__)

SOURCES_HEADING = "## Sources"


@dataclass
class SourceEntry:
    """A citation together with the index of the section it came from."""
    title: str
    url: str
    section_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "url": self.url, "section_index": self.section_index}


@dataclass
class ChangeStats:
    """Edit totals across a document."""
    total: int = 0
    by_kind: Dict[str, int] = field(default_factory=lambda: {k: 0 for k in CHANGE_KINDS})

    def to_dict(self) -> Dict[str, Any]:
        return {"total": self.total, "by_kind": dict(self.by_kind)}


def _ordered(sections: Iterable[Section]) -> List[Section]:
    return sorted(sections, key=lambda s: s.index)


# ---------------------------------------------------------------------------
# Reassembly
# ---------------------------------------------------------------------------

def render_section(section: Section) -> str:
    """Heading line + blank line + content, or content alone when untitled."""
    content = section.content
    if section.heading:
        if not content.strip():
            return section.heading_line()
        return f"{section.heading_line()}\n\n{content}"
    return content


def reassemble(sections: Sequence[Section]) -> str:
    """Join sections in index order, verified text first, original otherwise."""
    blocks = [render_section(s) for s in _ordered(sections)]
    return "\n\n".join(b for b in blocks if b.strip())


# ---------------------------------------------------------------------------
# Citations and statistics
# ---------------------------------------------------------------------------

def collect_citations(sections: Sequence[Section]) -> List[SourceEntry]:
    """Every citation in section order, duplicates included."""
    entries: List[SourceEntry] = []
    for section in _ordered(sections):
        for citation in sorted(section.citations, key=lambda c: c.position):
            entries.append(SourceEntry(citation.title, citation.url, section.index))
    return entries


def unique_sources(sections: Sequence[Section]) -> List[SourceEntry]:
    """Citations deduplicated by URL; the first-seen title wins."""
    seen: Dict[str, SourceEntry] = {}
    for entry in collect_citations(sections):
        seen.setdefault(entry.url, entry)
    return list(seen.values())


def count_citations(sections: Sequence[Section]) -> int:
    """Total citations, not deduplicated."""
    return sum(len(s.citations) for s in sections)


def count_changes(sections: Sequence[Section]) -> ChangeStats:
    """Total edit count and a histogram by change kind."""
    stats = ChangeStats()
    for section in sections:
        for change in section.edits:
            stats.by_kind[change.kind.value] = stats.by_kind.get(change.kind.value, 0) + 1
            stats.total += 1
    return stats


def document_stats(sections: Sequence[Section]) -> Dict[str, Any]:
    """All aggregates in one JSON-serializable dict."""
    verified = [s for s in sections if s.is_verified]
    confidences = [s.confidence for s in verified if s.confidence is not None]
    return {
        "sections": len(sections),
        "verified_sections": len(verified),
        "unverified_sections": len(sections) - len(verified),
        "changes": count_changes(sections).to_dict(),
        "citations": count_citations(sections),
        "unique_sources": len(unique_sources(sections)),
        "mean_confidence": (
            round(sum(confidences) / len(confidences), 4) if confidences else None
        ),
    }


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------

def export_inline(
    sections: Sequence[Section],
    title: Optional[str] = None,
    include_metadata: bool = False,
    verified_on: Optional[date] = None,
) -> str:
    """
    Reassembled document with citations left inline.

    With no title and no metadata this is exactly reassemble(sections).
    """
    parts: List[str] = []
    if title:
        parts.append(f"# {title}\n\n")
    if include_metadata:
        day = (verified_on or date.today()).isoformat()
        parts.append(f"> **Verified:** {day}\n")
        parts.append(f"> **Citations:** {count_citations(sections)}\n\n")
        parts.append("---\n\n")
    parts.append(reassemble(sections))
    return "".join(parts)


def format_sources(entries: Sequence[SourceEntry]) -> str:
    """Numbered Markdown list of sources."""
    return "".join(f"{i}. [{e.title}]({e.url})\n" for i, e in enumerate(entries, 1))


def export_with_sources(sections: Sequence[Section], title: Optional[str] = None) -> str:
    """Inline export followed by a numbered, URL-deduplicated sources list."""
    markdown = export_inline(sections, title=title)
    sources = unique_sources(sections)
    if sources:
        markdown += f"\n\n---\n\n{SOURCES_HEADING}\n\n" + format_sources(sources)
    logger.debug(
        f"[reassembler] sources list: {len(sources)} unique of "
        f"{count_citations(sections)} citations"
    )
    return markdown
