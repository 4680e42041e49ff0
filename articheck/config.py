"""
Configuration for the articheck pipeline.

Dataclass sub-configurations combined into CheckerConfig, loaded from
articheck.yaml with environment variable overrides.

Author: articheck maintainers | 2026-10-19
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging
import os

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "articheck.yaml"

# Segmentation targets
MIN_SECTIONS = 4
MAX_SECTIONS = 6
MIN_WORDS = 200
MAX_WORDS = 800
SPLIT_FACTOR = 1.5

DEFAULT_CONCURRENCY = 4

OPENROUTER_ENDPOINT = "https://openrouter.ai/api/v1"
OLLAMA_ENDPOINT = "http://127.0.0.1:11434"
DEFAULT_FACTCHECK_MODEL = "openai/gpt-4o-search-preview"


@dataclass
class SegmentConfig:
    """Section count and size targets. Word bounds are advisory."""
    min_sections: int = MIN_SECTIONS
    max_sections: int = MAX_SECTIONS
    min_words: int = MIN_WORDS
    max_words: int = MAX_WORDS
    split_factor: float = SPLIT_FACTOR

    def __post_init__(self):
        self.min_sections = max(1, self.min_sections)
        self.max_sections = max(self.min_sections, self.max_sections)
        self.min_words = max(0, self.min_words)
        self.max_words = max(self.min_words, self.max_words)
        self.split_factor = max(1.0, self.split_factor)


@dataclass
class DispatchConfig:
    """Bounded fan-out settings."""
    max_concurrency: int = DEFAULT_CONCURRENCY

    def __post_init__(self):
        self.max_concurrency = max(1, self.max_concurrency)


@dataclass
class LLMConfig:
    """Verification model backend configuration."""
    backend: str = "openrouter"                 # openrouter | ollama
    model: str = DEFAULT_FACTCHECK_MODEL
    endpoint: str = OPENROUTER_ENDPOINT
    temperature: float = 0.3
    max_tokens: int = 4096
    timeout: int = 120
    api_key: str = ""                           # From env when empty
    site_url: str = "http://localhost:3000"
    app_title: str = "SEO Article Fact-Checker"


@dataclass
class CheckerConfig:
    """
    Top-level configuration.

    Combines segmentation, dispatch and LLM sub-configurations with the
    instruction settings used to build the per-client verification prompt.
    """
    segment: SegmentConfig = field(default_factory=SegmentConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)

    # Instruction
    preset: str = "general"                     # general | finra | sec | hipaa
    custom_prompt: str = ""
    guidelines: str = ""
    allowed_domains: List[str] = field(default_factory=list)

    # Pipeline control
    on_failure: str = "fallback"                # fallback | abort

    def __post_init__(self):
        if self.on_failure not in ("fallback", "abort"):
            raise ValueError(f"on_failure must be 'fallback' or 'abort', got {self.on_failure!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "segment": {
                "min_sections": self.segment.min_sections,
                "max_sections": self.segment.max_sections,
                "min_words": self.segment.min_words,
                "max_words": self.segment.max_words,
                "split_factor": self.segment.split_factor,
            },
            "dispatch": {
                "max_concurrency": self.dispatch.max_concurrency,
            },
            "llm": {
                "backend": self.llm.backend,
                "model": self.llm.model,
                "endpoint": self.llm.endpoint,
                "temperature": self.llm.temperature,
                "max_tokens": self.llm.max_tokens,
                "timeout": self.llm.timeout,
                "site_url": self.llm.site_url,
                "app_title": self.llm.app_title,
            },
            "preset": self.preset,
            "custom_prompt": self.custom_prompt,
            "guidelines": self.guidelines,
            "allowed_domains": list(self.allowed_domains),
            "on_failure": self.on_failure,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CheckerConfig":
        seg_d = d.get("segment") or {}
        disp_d = d.get("dispatch") or {}
        llm_d = d.get("llm") or {}
        backend = llm_d.get("backend", "openrouter")
        return cls(
            segment=SegmentConfig(
                min_sections=seg_d.get("min_sections", MIN_SECTIONS),
                max_sections=seg_d.get("max_sections", MAX_SECTIONS),
                min_words=seg_d.get("min_words", MIN_WORDS),
                max_words=seg_d.get("max_words", MAX_WORDS),
                split_factor=seg_d.get("split_factor", SPLIT_FACTOR),
            ),
            dispatch=DispatchConfig(
                max_concurrency=disp_d.get("max_concurrency", DEFAULT_CONCURRENCY),
            ),
            llm=LLMConfig(
                backend=backend,
                model=llm_d.get("model", DEFAULT_FACTCHECK_MODEL),
                endpoint=llm_d.get("endpoint", default_endpoint(backend)),
                temperature=llm_d.get("temperature", 0.3),
                max_tokens=llm_d.get("max_tokens", 4096),
                timeout=llm_d.get("timeout", 120),
                api_key=llm_d.get("api_key", ""),
                site_url=llm_d.get("site_url", "http://localhost:3000"),
                app_title=llm_d.get("app_title", "SEO Article Fact-Checker"),
            ),
            preset=d.get("preset", "general"),
            custom_prompt=d.get("custom_prompt", ""),
            guidelines=d.get("guidelines", ""),
            allowed_domains=list(d.get("allowed_domains") or []),
            on_failure=d.get("on_failure", "fallback"),
        )


def default_endpoint(backend: str) -> str:
    return OLLAMA_ENDPOINT if backend == "ollama" else OPENROUTER_ENDPOINT


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def find_config_file(start_path: Optional[Path] = None) -> Optional[Path]:
    """
    Find articheck.yaml by searching upward from start_path.

    Search order:
    1. start_path / articheck.yaml and its parents (max 10 levels)
    2. ~/.config/articheck/articheck.yaml
    """
    current = Path(start_path or Path.cwd()).resolve()
    for _ in range(10):
        candidate = current / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        if current.parent == current:
            break
        current = current.parent

    user_config = Path.home() / ".config" / "articheck" / CONFIG_FILENAME
    if user_config.exists():
        return user_config
    return None


def load_config(config_path: Optional[Path] = None) -> CheckerConfig:
    """
    Load configuration from YAML with environment variable overrides.

    Environment variables override file values:
    - ARTICHECK_BACKEND -> llm.backend
    - ARTICHECK_MODEL -> llm.model
    - ARTICHECK_ENDPOINT -> llm.endpoint
    - ARTICHECK_CONCURRENCY -> dispatch.max_concurrency
    - OPENROUTER_API_KEY -> llm.api_key (when not set in the file)

    An explicit config_path that does not exist raises FileNotFoundError;
    a YAML syntax error propagates as yaml.YAMLError.
    """
    if config_path is None:
        config_path = find_config_file()
    elif not Path(config_path).exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    if config_path:
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{config_path}: top-level YAML must be a mapping")
        config = CheckerConfig.from_dict(data)
    else:
        logger.info("No config file found, using defaults")
        config = CheckerConfig()

    return _apply_env_overrides(config)


def _apply_env_overrides(config: CheckerConfig) -> CheckerConfig:
    backend = os.environ.get("ARTICHECK_BACKEND")
    if backend:
        if backend != config.llm.backend and "ARTICHECK_ENDPOINT" not in os.environ:
            config.llm.endpoint = default_endpoint(backend)
        config.llm.backend = backend
    if os.environ.get("ARTICHECK_MODEL"):
        config.llm.model = os.environ["ARTICHECK_MODEL"]
    if os.environ.get("ARTICHECK_ENDPOINT"):
        config.llm.endpoint = os.environ["ARTICHECK_ENDPOINT"]
    concurrency = os.environ.get("ARTICHECK_CONCURRENCY")
    if concurrency:
        try:
            config.dispatch = DispatchConfig(max_concurrency=int(concurrency))
        except ValueError:
            logger.warning(f"Ignoring non-integer ARTICHECK_CONCURRENCY={concurrency!r}")
    if not config.llm.api_key and os.environ.get("OPENROUTER_API_KEY"):
        config.llm.api_key = os.environ["OPENROUTER_API_KEY"]
    return config
