"""
Jinja2 prompt templates for the verification model.

Provides render_prompt() which loads .j2 templates from this directory,
and build_instruction() which assembles the per-client instruction from a
preset, an optional custom prompt, guidelines and preferred domains.

Author: articheck maintainers | 2026-10-19
"""

from pathlib import Path
from typing import Any, List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined

import logging

logger = logging.getLogger(__name__)

_TEMPLATE_DIR = Path(__file__).parent

PRESETS = ("general", "finra", "sec", "hipaa")

_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=False,  # Plain text prompts, not HTML
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=False,
    undefined=StrictUndefined,
)


def render_prompt(template_name: str, **kwargs: Any) -> str:
    """
    Render a prompt template with the given variables.

    Args:
        template_name: Template filename (e.g. "system.j2")
        **kwargs: Variables to pass to the template

    Returns:
        Rendered prompt string
    """
    return _env.get_template(template_name).render(**kwargs)


def list_templates() -> List[str]:
    """List available prompt templates."""
    return sorted(p.name for p in _TEMPLATE_DIR.glob("*.j2"))


def preset_instruction(preset: str) -> str:
    """Instruction text of a built-in preset."""
    key = (preset or "general").lower()
    if key not in PRESETS:
        raise ValueError(f"Unknown preset: {preset!r}. Use one of {', '.join(PRESETS)}.")
    return render_prompt(f"{key}.j2")


def build_instruction(
    preset: str = "general",
    custom_prompt: Optional[str] = None,
    guidelines: Optional[str] = None,
    allowed_domains: Optional[Sequence[str]] = None,
) -> str:
    """
    Assemble the instruction sent with every section.

    A custom prompt replaces the preset. A preset of "none" falls back to
    "general". Guidelines and preferred domains are appended when given.
    """
    if custom_prompt and custom_prompt.strip():
        instruction = custom_prompt.strip()
        logger.debug(f"[prompts] custom instruction replaces preset {preset!r}")
    else:
        key = (preset or "general").lower()
        key = "general" if key == "none" else key
        instruction = preset_instruction(key)
        logger.debug(f"[prompts] using preset {key!r}")

    if guidelines and guidelines.strip():
        instruction += f"\n\nADDITIONAL GUIDELINES:\n{guidelines.strip()}"

    domains = [d.strip() for d in (allowed_domains or []) if d and d.strip()]
    if domains:
        instruction += "\n\nPREFERRED SOURCES (prioritize these domains):\n" + "\n".join(domains)

    return instruction
