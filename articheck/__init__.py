"""
articheck — section-wise fact verification for long-form Markdown

Pipeline:
    segmenter:        Heading/paragraph cascade into 4-6 bounded sections
    dispatcher:       Bounded concurrent fan-out to a verification callable
    response_parser:  Change blocks + citations out of raw model text
    reassembler:      Verified document, sources list, edit statistics

Supporting modules:
    checker:          LLM-backed verification callable
    pipeline:         verify_document() orchestration and failure policy
    templates:        Instruction template import (tagged shapes)
    prompts:          Jinja2 system/request prompts and compliance presets

Author: articheck maintainers | 2026-10-19
"""

__version__ = "0.1.0"

from articheck.models import (
    Change,
    ChangeKind,
    Citation,
    DispatchOutcome,
    FactCheckResult,
    Section,
)
from articheck.segmenter import divide, segment, validate
from articheck.response_parser import extract_citations, parse_response
from articheck.dispatcher import BoundedDispatcher, dispatch_all
from articheck.reassembler import export_inline, export_with_sources, reassemble
from articheck.pipeline import VerificationError, verify_document

__all__ = [
    # Models
    "Change",
    "ChangeKind",
    "Citation",
    "DispatchOutcome",
    "FactCheckResult",
    "Section",
    # Core
    "segment",
    "divide",
    "validate",
    "parse_response",
    "extract_citations",
    "BoundedDispatcher",
    "dispatch_all",
    "reassemble",
    "export_inline",
    "export_with_sources",
    "verify_document",
    "VerificationError",
]
