"""
Per-section verification: prompt the model, parse its answer, and turn
dispatcher outcomes back into section state.

Author: articheck maintainers | 2026-10-19
"""

import re
from typing import Dict, List, Optional, Sequence

from articheck.config import LLMConfig
from articheck.llm_backend import LLMBackend
from articheck.models import CHANGE_KINDS, DispatchOutcome, FactCheckResult, Section
from articheck.prompts import build_instruction, render_prompt
from articheck.response_parser import (
    CHANGES_END,
    CHANGES_START,
    confidence_score,
    extract_citations,
    parse_response,
)

import logging

logger = logging.getLogger(__name__)

_LEADING_HEADING_RE = re.compile(r"\A\s*#{1,6}[ \t]+(.+?)[ \t]*#*[ \t]*(?:\n|\Z)")


def system_prompt() -> str:
    """Fact-checker system prompt describing the change-block protocol."""
    return render_prompt(
        "system.j2",
        start_marker=CHANGES_START,
        end_marker=CHANGES_END,
        kinds=CHANGE_KINDS,
    )


def strip_echoed_heading(text: str, heading: Optional[str]) -> str:
    """Drop a leading heading line that repeats the section heading."""
    if not heading:
        return text
    m = _LEADING_HEADING_RE.match(text)
    if m and m.group(1).strip().lower() == heading.strip().lower():
        return text[m.end():].lstrip("\n")
    return text


def build_result(raw: str, heading: Optional[str] = None) -> FactCheckResult:
    """Parse a raw model response into a FactCheckResult."""
    parsed = parse_response(raw)
    verified = strip_echoed_heading(parsed.verified_text, heading)
    return FactCheckResult(
        verified_text=verified,
        citations=extract_citations(verified),
        edits=parsed.edits,
        confidence=confidence_score(len(parsed.edits)),
    )


class SectionVerifier:
    """
    Verification callable for the dispatcher.

    Sends heading + text and the client instruction to an LLM backend and
    returns the parsed FactCheckResult. Backend errors propagate so the
    dispatcher can record them against the section.
    """

    def __init__(
        self,
        backend: LLMBackend,
        instruction: Optional[str] = None,
        llm_config: Optional[LLMConfig] = None,
    ):
        self.backend = backend
        self.instruction = instruction or build_instruction()
        self.llm_config = llm_config or LLMConfig()
        self._system_prompt = system_prompt()

    def __call__(self, section: Section) -> FactCheckResult:
        user_prompt = render_prompt(
            "request.j2",
            instruction=self.instruction,
            content=section.render_source(),
        )
        raw = self.backend.call(
            self._system_prompt,
            user_prompt,
            temperature=self.llm_config.temperature,
            max_tokens=self.llm_config.max_tokens,
            timeout=self.llm_config.timeout,
        )
        result = build_result(raw, section.heading)
        logger.debug(
            f"[checker] {section.section_id}: {len(result.edits)} edits, "
            f"{len(result.citations)} citations"
        )
        return result


def apply_outcomes(
    sections: Sequence[Section],
    outcomes: Dict[str, DispatchOutcome],
) -> List[DispatchOutcome]:
    """
    Apply successful results to their sections.

    Failed sections are left unverified (their original text stays the
    effective content). Returns the failed outcomes.
    """
    failures: List[DispatchOutcome] = []
    for section in sections:
        outcome = outcomes.get(section.section_id)
        if outcome is None:
            continue
        if outcome.ok:
            section.apply_result(outcome.result)
        else:
            failures.append(outcome)
    return failures
