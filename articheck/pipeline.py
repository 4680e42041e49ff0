"""
End-to-end document verification: segment, validate, dispatch, apply,
reassemble.

The pipeline is the dispatcher's caller and therefore owns the failure
policy: with on_failure="fallback" failed sections keep their original
text; with on_failure="abort" a VerificationError is raised once every
section has resolved.

Author: articheck maintainers | 2026-10-19
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from articheck.config import CheckerConfig
from articheck.dispatcher import BoundedDispatcher, VerifyFn
from articheck.checker import apply_outcomes
from articheck.llm_backend import LLMBackend
from articheck.models import DispatchOutcome, Section, ValidationReport
from articheck.reassembler import document_stats, export_inline, export_with_sources
from articheck.segmenter import divide, validate

import logging

logger = logging.getLogger(__name__)


class VerificationError(Exception):
    """Raised when the caller asked to abort on any section failure."""

    def __init__(self, failures: List[DispatchOutcome]):
        self.failures = failures
        ids = ", ".join(f.section_id for f in failures)
        super().__init__(f"{len(failures)} section(s) failed verification: {ids}")


@dataclass
class VerificationRun:
    """Everything one document verification produced."""
    sections: List[Section]
    strategy: str
    validation: ValidationReport
    outcomes: Dict[str, DispatchOutcome] = field(default_factory=dict)
    failures: List[DispatchOutcome] = field(default_factory=list)
    title: Optional[str] = None
    backend: Dict[str, Any] = field(default_factory=dict)   # model endpoint + token usage

    @property
    def inline(self) -> str:
        return export_inline(self.sections, title=self.title)

    @property
    def with_sources(self) -> str:
        return export_with_sources(self.sections, title=self.title)

    @property
    def stats(self) -> Dict[str, Any]:
        return document_stats(self.sections)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "strategy": self.strategy,
            "backend": dict(self.backend),
            "validation": self.validation.to_dict(),
            "sections": [s.to_dict() for s in self.sections],
            "outcomes": [o.to_dict() for o in self.outcomes.values()],
            "stats": self.stats,
        }


def verify_document(
    document: str,
    verify: VerifyFn,
    config: Optional[CheckerConfig] = None,
    on_failure: Optional[str] = None,
    title: Optional[str] = None,
) -> VerificationRun:
    """
    Verify a document section by section.

    Args:
        document: Markdown source
        verify: Callable turning a Section into a FactCheckResult
        config: CheckerConfig (segmentation targets, concurrency, policy)
        on_failure: "fallback" or "abort"; overrides config.on_failure
        title: Optional document title for exports

    Raises:
        VerificationError: on_failure="abort" and at least one section failed
    """
    cfg = config or CheckerConfig()
    policy = on_failure or cfg.on_failure
    if policy not in ("fallback", "abort"):
        raise ValueError(f"on_failure must be 'fallback' or 'abort', got {policy!r}")

    division = divide(document, cfg.segment)
    report = validate(division.sections, cfg.segment)
    for warning in report.warnings:
        logger.info(f"[pipeline] segmentation: {warning}")

    dispatcher = BoundedDispatcher(cfg.dispatch.max_concurrency)
    outcomes = dispatcher.dispatch_all(division.sections, verify)

    failed = [o for o in outcomes.values() if not o.ok]
    if failed and policy == "abort":
        raise VerificationError(failed)

    failures = apply_outcomes(division.sections, outcomes)
    logger.info(
        f"[pipeline] verified {len(division.sections) - len(failures)}/"
        f"{len(division.sections)} sections"
    )
    backend = getattr(verify, "backend", None)
    return VerificationRun(
        sections=division.sections,
        strategy=division.strategy,
        validation=report,
        outcomes=outcomes,
        failures=failures,
        title=title,
        backend=backend.run_info() if isinstance(backend, LLMBackend) else {},
    )
