"""
Tests for the LLM-backed verifier and the end-to-end pipeline

Author: articheck maintainers | 2026-10-19
"""

import json
from typing import Any, Dict, List

import pytest

from articheck.checker import (
    SectionVerifier,
    apply_outcomes,
    build_result,
    strip_echoed_heading,
    system_prompt,
)
from articheck.config import CheckerConfig, DispatchConfig
from articheck.dispatcher import dispatch_all
from articheck.llm_backend import LLMBackend
from articheck.models import FactCheckResult, Section
from articheck.pipeline import VerificationError, verify_document
from articheck.response_parser import CHANGES_END, CHANGES_START


class FakeBackend(LLMBackend):
    """Backend stub returning a canned response and recording prompts."""

    def __init__(self, response: str = "ok"):
        super().__init__()
        self.response = response
        self.calls: List[Dict[str, Any]] = []

    def call(self, system_prompt, user_prompt, temperature=0.3, max_tokens=4096, timeout=120):
        self.calls.append({
            "system": system_prompt,
            "user": user_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        return self.response

    def endpoint_info(self):
        return {"local_only": True, "endpoint": "fake", "model": "fake"}

    @property
    def is_local(self):
        return True

    @property
    def model_name(self):
        return "fake"


class TestPrompts:
    """Tests for the verifier prompts."""

    def test_system_prompt_protocol(self):
        """Test that the system prompt describes the change-block grammar."""
        text = system_prompt()
        assert CHANGES_START in text
        assert CHANGES_END in text
        assert "citation_added | link_removed | language_softened" in text

    def test_request_contains_section(self):
        """Test that heading and text are sent after the instruction."""
        backend = FakeBackend()
        verifier = SectionVerifier(backend, instruction="Check everything.")

        verifier(Section(index=0, heading="Intro", original_text="Rates rose 5%."))

        user = backend.calls[0]["user"]
        assert user == "Check everything.\n\n---CONTENT TO VERIFY---\n## Intro\n\nRates rose 5%."
        assert backend.calls[0]["temperature"] == 0.3
        assert backend.calls[0]["max_tokens"] == 4096


class TestBuildResult:
    """Tests for turning raw text into a FactCheckResult."""

    def test_sample_response(self, sample_response):
        """Test edits, citations and confidence from a model answer."""
        result = build_result(sample_response, "Intro")

        assert len(result.edits) == 1
        assert [c.url for c in result.citations] == ["https://fed.gov/rates", "https://bls.gov/cpi"]
        assert result.confidence == 0.9
        assert CHANGES_START not in result.verified_text

    def test_echoed_heading_stripped(self):
        """Test that a repeated section heading is removed from the answer."""
        assert strip_echoed_heading("## Intro\n\nBody", "intro") == "Body"
        assert strip_echoed_heading("## Other\n\nBody", "Intro") == "## Other\n\nBody"
        assert strip_echoed_heading("## Intro\n\nBody", None) == "## Intro\n\nBody"

    def test_verifier_end_to_end(self, sample_response):
        """Test a verifier call with an echoed heading in the answer."""
        backend = FakeBackend("## Intro\n\n" + sample_response)
        result = SectionVerifier(backend)(Section(index=0, heading="Intro", original_text="x"))
        assert result.verified_text.startswith("Rates rose")


class TestApplyOutcomes:
    """Tests for applying dispatcher outcomes."""

    def test_apply_and_failures(self, sample_sections):
        """Test that results land on sections and failures are returned."""

        def verify(section):
            if section.index == 1:
                raise RuntimeError("boom")
            return FactCheckResult(verified_text=section.original_text + " (checked)")

        outcomes = dispatch_all(sample_sections, verify)
        failures = apply_outcomes(sample_sections, outcomes)

        assert [f.section_id for f in failures] == [sample_sections[1].section_id]
        assert sample_sections[0].verified_text == "Rates rose 5% in 2023. (checked)"
        assert sample_sections[1].is_verified is False

    def test_verified_once(self):
        """Test that a section cannot be verified twice."""
        section = Section(index=0, heading=None, original_text="x")
        section.apply_result(FactCheckResult(verified_text="y"))
        with pytest.raises(ValueError):
            section.apply_result(FactCheckResult(verified_text="z"))


class TestVerifyDocument:
    """Tests for verify_document()."""

    def test_all_verified(self, make_doc, sample_response):
        """Test a full run through a fake backend."""
        backend = FakeBackend(sample_response)
        config = CheckerConfig(dispatch=DispatchConfig(max_concurrency=2))

        run = verify_document(make_doc(5, 250), SectionVerifier(backend), config=config, title="T")

        assert run.strategy == "h2"
        assert len(backend.calls) == 5
        assert not run.failures
        assert run.stats["changes"]["total"] == 5
        assert run.stats["citations"] == 10
        assert run.stats["unique_sources"] == 2
        assert run.inline.startswith("# T\n\n## Heading 0\n\nRates rose")
        assert run.with_sources.endswith(
            "## Sources\n\n1. [4.5%](https://fed.gov/rates)\n2. [BLS](https://bls.gov/cpi)\n"
        )
        json.dumps(run.to_dict())

    def test_fallback_keeps_original(self, make_doc):
        """Test that a failed section keeps its original text."""

        def verify(section):
            if section.index == 2:
                raise TimeoutError("slow upstream")
            return FactCheckResult(verified_text="VERIFIED")

        run = verify_document(make_doc(4, 250), verify)

        assert len(run.failures) == 1
        assert run.sections[2].is_verified is False
        assert run.sections[2].original_text in run.inline
        assert run.inline.count("VERIFIED") == 3

    def test_abort_raises(self, make_doc):
        """Test that the abort policy fails the whole document."""

        def verify(section):
            if section.index == 0:
                raise TimeoutError("slow upstream")
            return FactCheckResult(verified_text="VERIFIED")

        with pytest.raises(VerificationError) as exc_info:
            verify_document(make_doc(4, 250), verify, on_failure="abort")

        assert len(exc_info.value.failures) == 1
        assert isinstance(exc_info.value.failures[0].error, TimeoutError)

    def test_invalid_policy(self, make_doc, echo_verify):
        """Test that an unknown failure policy is rejected."""
        with pytest.raises(ValueError):
            verify_document(make_doc(4, 250), echo_verify, on_failure="retry")
