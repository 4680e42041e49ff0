"""
Core data models for the articheck verification pipeline.

All models are JSON-serializable dataclasses shared by the segmenter,
response parser, dispatcher and reassembler.

Author: articheck maintainers | 2026-10-19
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import hashlib
import re


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ChangeKind(str, Enum):
    """Closed set of edit kinds a verification pass may report."""
    CITATION_ADDED = "citation_added"
    LINK_REMOVED = "link_removed"
    LANGUAGE_SOFTENED = "language_softened"
    CLAIM_REMOVED = "claim_removed"
    FACT_CORRECTED = "fact_corrected"

    @classmethod
    def parse(cls, value: str) -> Optional["ChangeKind"]:
        """Return the matching kind, or None for anything outside the set."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


CHANGE_KINDS: List[str] = [k.value for k in ChangeKind]


# ---------------------------------------------------------------------------
# Citation
# ---------------------------------------------------------------------------

@dataclass
class Citation:
    """A hyperlink found in verified text."""
    title: str
    url: str
    position: int       # 0-based occurrence order within the section

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "url": self.url, "position": self.position}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Citation":
        return cls(title=d["title"], url=d["url"], position=d.get("position", 0))


# ---------------------------------------------------------------------------
# Change
# ---------------------------------------------------------------------------

@dataclass
class Change:
    """One alteration the verification step made to a section."""
    kind: ChangeKind
    original: str
    modified: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "original": self.original,
            "modified": self.modified,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Change":
        return cls(
            kind=ChangeKind(d["kind"]),
            original=d.get("original", ""),
            modified=d.get("modified", ""),
            reason=d.get("reason", ""),
        )


# ---------------------------------------------------------------------------
# Fact-check result
# ---------------------------------------------------------------------------

@dataclass
class FactCheckResult:
    """Output of one verification call, already parsed."""
    verified_text: str
    citations: List[Citation] = field(default_factory=list)
    edits: List[Change] = field(default_factory=list)
    confidence: float = 1.0     # reporting only

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verified_text": self.verified_text,
            "citations": [c.to_dict() for c in self.citations],
            "edits": [e.to_dict() for e in self.edits],
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FactCheckResult":
        return cls(
            verified_text=d["verified_text"],
            citations=[Citation.from_dict(c) for c in d.get("citations", [])],
            edits=[Change.from_dict(e) for e in d.get("edits", [])],
            confidence=d.get("confidence", 1.0),
        )


# ---------------------------------------------------------------------------
# Section
# ---------------------------------------------------------------------------

@dataclass
class Section:
    """
    A contiguous slice of the source document.

    Created once by the segmenter, mutated once by apply_result(), then
    read-only for the reassembler.
    """
    index: int
    heading: Optional[str]
    original_text: str
    level: int = 2              # Markdown depth used when rendering the heading
    section_id: str = ""
    verified_text: Optional[str] = None
    citations: List[Citation] = field(default_factory=list)
    edits: List[Change] = field(default_factory=list)
    confidence: Optional[float] = None

    def __post_init__(self):
        if not self.section_id:
            self.section_id = make_section_id(self.index, self.original_text)

    @property
    def is_verified(self) -> bool:
        return self.verified_text is not None

    @property
    def content(self) -> str:
        """Effective content: verified text once available, source otherwise."""
        return self.verified_text if self.verified_text is not None else self.original_text

    @property
    def word_count(self) -> int:
        return count_words(self.original_text)

    def heading_line(self) -> str:
        return f"{'#' * self.level} {self.heading}"

    def render_source(self) -> str:
        """Heading + original text, as sent to the verification service."""
        if self.heading:
            return f"{self.heading_line()}\n\n{self.original_text}"
        return self.original_text

    def apply_result(self, result: FactCheckResult) -> None:
        """Set the verification fields. A section is verified exactly once."""
        if self.verified_text is not None:
            raise ValueError(f"Section {self.section_id} is already verified")
        self.verified_text = result.verified_text
        self.citations = list(result.citations)
        self.edits = list(result.edits)
        self.confidence = result.confidence

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "heading": self.heading,
            "level": self.level,
            "section_id": self.section_id,
            "original_text": self.original_text,
            "verified_text": self.verified_text,
            "citations": [c.to_dict() for c in self.citations],
            "edits": [e.to_dict() for e in self.edits],
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Section":
        return cls(
            index=d["index"],
            heading=d.get("heading"),
            original_text=d["original_text"],
            level=d.get("level", 2),
            section_id=d.get("section_id", ""),
            verified_text=d.get("verified_text"),
            citations=[Citation.from_dict(c) for c in d.get("citations", [])],
            edits=[Change.from_dict(e) for e in d.get("edits", [])],
            confidence=d.get("confidence"),
        )


# ---------------------------------------------------------------------------
# Dispatch outcome
# ---------------------------------------------------------------------------

@dataclass
class DispatchOutcome:
    """Per-section record produced by the dispatcher: a result or a failure."""
    section_id: str
    result: Optional[FactCheckResult] = None
    error: Optional[BaseException] = None
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "section_id": self.section_id,
            "ok": self.ok,
            "elapsed_ms": self.elapsed_ms,
        }
        if self.error is not None:
            d["error"] = f"{type(self.error).__name__}: {self.error}"
        return d


# ---------------------------------------------------------------------------
# Segmentation results
# ---------------------------------------------------------------------------

@dataclass
class ValidationReport:
    """Outcome of a segmentation shape check. Warnings are advisory."""
    valid: bool
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "warnings": list(self.warnings)}


@dataclass
class SegmentationResult:
    """Sections plus the cascade step that produced them."""
    sections: List[Section]
    strategy: str               # h2 | h3 | split_large | paragraphs
    merged: bool = False

    @property
    def total_sections(self) -> int:
        return len(self.sections)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy,
            "merged": self.merged,
            "total_sections": self.total_sections,
            "sections": [s.to_dict() for s in self.sections],
        }


# ---------------------------------------------------------------------------
# Utility
# ---------------------------------------------------------------------------

_WORD_RE = re.compile(r"\S+")


def count_words(text: str) -> int:
    """Number of whitespace-separated tokens."""
    return len(_WORD_RE.findall(text))


def content_hash(text: str) -> str:
    """Compute SHA-256 hash of text content."""
    return f"sha256:{hashlib.sha256(text.encode('utf-8')).hexdigest()}"


def make_section_id(index: int, text: str) -> str:
    """Stable section identity: position plus a content hash prefix."""
    return f"S{index:02d}_{content_hash(text)[7:15]}"
