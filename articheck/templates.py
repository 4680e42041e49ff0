"""
Import of instruction templates from external files.

A template file is resolved into exactly one shape by explicit matching:

    PromptShape   {"prompt": "..."}
    StepsShape    {"steps": [{"prompt": "..."} | {"content": "..."}, ...]}
    FieldShape    {"content" | "text" | "template" | "message": "..."}
    RawTextShape  anything else (non-JSON text, or JSON of no known shape)

Variables use {{name}}, {name} or ${name} placeholders.

Author: articheck maintainers | 2026-10-19
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple, Union

import logging

logger = logging.getLogger(__name__)

FIELD_NAMES = ("content", "text", "template", "message")

_VARIABLE_PATTERNS = (
    re.compile(r"\{\{(\w+)\}\}"),
    re.compile(r"\{(\w+)\}"),
    re.compile(r"\$\{(\w+)\}"),
)


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PromptShape:
    prompt: str
    kind: str = "prompt"

    def prompt_text(self) -> str:
        return self.prompt


@dataclass(frozen=True)
class StepsShape:
    steps: Tuple[str, ...]
    kind: str = "steps"

    def prompt_text(self) -> str:
        return "\n\n".join(s for s in self.steps if s)


@dataclass(frozen=True)
class FieldShape:
    field_name: str
    value: str
    kind: str = "field"

    def prompt_text(self) -> str:
        return self.value


@dataclass(frozen=True)
class RawTextShape:
    text: str
    kind: str = "raw"

    def prompt_text(self) -> str:
        return self.text


TemplateShape = Union[PromptShape, StepsShape, FieldShape, RawTextShape]


@dataclass
class TemplateVariable:
    name: str
    description: str = ""
    required: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "required": self.required}


@dataclass
class ImportedTemplate:
    """An instruction template resolved from a file."""
    name: str
    description: str
    shape: TemplateShape
    variables: List[TemplateVariable] = field(default_factory=list)
    original: Any = None

    @property
    def prompt_text(self) -> str:
        return self.shape.prompt_text()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "shape": self.shape.kind,
            "prompt_text": self.prompt_text,
            "variables": [v.to_dict() for v in self.variables],
        }


# ---------------------------------------------------------------------------
# Shape resolution
# ---------------------------------------------------------------------------

def _step_text(step: Any) -> str:
    if isinstance(step, Mapping):
        for key in ("prompt", "content"):
            value = step.get(key)
            if isinstance(value, str) and value:
                return value
    return ""


def resolve_shape(data: Any, raw: str) -> TemplateShape:
    """Pick the first matching shape for decoded JSON data."""
    if not isinstance(data, Mapping):
        return RawTextShape(raw)

    prompt = data.get("prompt")
    if isinstance(prompt, str) and prompt:
        return PromptShape(prompt)

    steps = data.get("steps")
    if isinstance(steps, list):
        texts = tuple(_step_text(s) for s in steps)
        if any(texts):
            return StepsShape(texts)

    for name in FIELD_NAMES:
        value = data.get(name)
        if isinstance(value, str) and value:
            return FieldShape(name, value)

    return RawTextShape(raw)


def parse_template(content: str) -> ImportedTemplate:
    """
    Resolve a template file's content. Never raises on malformed input:
    anything that is not a recognised JSON shape becomes raw text.
    """
    try:
        data = json.loads(content)
    except ValueError:
        logger.debug("[templates] not JSON, importing as raw text")
        shape = RawTextShape(content)
        return ImportedTemplate(
            name="Imported Template",
            description="Imported from text file",
            shape=shape,
            variables=extract_variables(content),
            original={"prompt": content},
        )

    shape = resolve_shape(data, content)
    meta = data if isinstance(data, Mapping) else {}
    name = meta.get("name") if isinstance(meta.get("name"), str) else ""
    description = meta.get("description") if isinstance(meta.get("description"), str) else ""
    logger.debug(f"[templates] resolved shape {shape.kind!r}")
    return ImportedTemplate(
        name=name or "Unnamed Template",
        description=description or "",
        shape=shape,
        variables=extract_variables(shape.prompt_text()),
        original=data,
    )


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------

def extract_variables(text: str) -> List[TemplateVariable]:
    """Placeholders in first-seen order per pattern, without duplicates."""
    variables: List[TemplateVariable] = []
    seen = set()
    for pattern in _VARIABLE_PATTERNS:
        for m in pattern.finditer(text):
            name = m.group(1)
            if name not in seen:
                seen.add(name)
                variables.append(TemplateVariable(name=name, description=f"Variable: {name}"))
    return variables


def fill_variables(text: str, values: Mapping[str, str]) -> str:
    """Substitute every placeholder form of each given variable."""
    result = text
    for key, value in values.items():
        name = re.escape(key)
        # Longest forms first so {{x}} and ${x} do not leave stray braces
        result = re.sub(r"\{\{" + name + r"\}\}", lambda _m: value, result)
        result = re.sub(r"\$\{" + name + r"\}", lambda _m: value, result)
        result = re.sub(r"\{" + name + r"\}", lambda _m: value, result)
    return result


def validate_variables(
    variables: List[TemplateVariable],
    values: Mapping[str, str],
) -> Tuple[bool, List[str]]:
    """Return (valid, missing names) for required variables."""
    missing = [
        v.name for v in variables
        if v.required and not (values.get(v.name) or "").strip()
    ]
    return (not missing, missing)
