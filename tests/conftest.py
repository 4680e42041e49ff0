"""
Pytest Configuration and Fixtures

Author: articheck maintainers | 2026-10-19
"""

import sys
import tempfile
from pathlib import Path
from typing import Callable, Generator, List

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from articheck.models import FactCheckResult, Section


def words(n: int, seed: str = "word") -> str:
    """A paragraph of exactly n words."""
    return " ".join(f"{seed}{i}" for i in range(n))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment settings out of the tests."""
    for key in (
        "ARTICHECK_BACKEND",
        "ARTICHECK_MODEL",
        "ARTICHECK_ENDPOINT",
        "ARTICHECK_CONCURRENCY",
        "OPENROUTER_API_KEY",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def make_doc() -> Callable[..., str]:
    """Build a Markdown document with `count` H2 sections of `size` words each."""

    def _make(count: int, size: int = 300, level: int = 2) -> str:
        hashes = "#" * level
        parts = [f"{hashes} Heading {i}\n\n{words(size, f's{i}w')}" for i in range(count)]
        return "\n\n".join(parts) + "\n"

    return _make


@pytest.fixture
def sample_sections() -> List[Section]:
    """Four unverified sections, the second one untitled."""
    return [
        Section(index=0, heading="Intro", original_text="Rates rose 5% in 2023."),
        Section(index=1, heading=None, original_text="Loose paragraph."),
        Section(index=2, heading="Market", original_text="The market grew."),
        Section(index=3, heading="Outlook", original_text="Growth will continue."),
    ]


@pytest.fixture
def echo_verify() -> Callable[[Section], FactCheckResult]:
    """A verifier that returns the section text unchanged."""

    def _verify(section: Section) -> FactCheckResult:
        return FactCheckResult(verified_text=section.original_text)

    return _verify


SAMPLE_RESPONSE = """Rates rose [4.5%](https://fed.gov/rates) in 2023, per [BLS](https://bls.gov/cpi).

---CHANGES---
[type]: fact_corrected
[original]: Rates rose 5% in 2023.
[modified]: Rates rose 4.5% in 2023.
[reason]: Official figure is 4.5%.
---END CHANGES---
"""


@pytest.fixture
def sample_response() -> str:
    """A well-formed model response with one change block and two citations."""
    return SAMPLE_RESPONSE
