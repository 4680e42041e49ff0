"""
Tests for instruction template import

Author: articheck maintainers | 2026-10-19
"""

import json

from articheck.templates import (
    FieldShape,
    PromptShape,
    RawTextShape,
    StepsShape,
    TemplateVariable,
    extract_variables,
    fill_variables,
    parse_template,
    validate_variables,
)


class TestParseTemplate:
    """Tests for shape resolution."""

    def test_prompt_shape(self):
        """Test a JSON file with a prompt field."""
        tpl = parse_template(json.dumps({
            "name": "Finance",
            "description": "Finance checks",
            "prompt": "Verify {{topic}} claims.",
        }))

        assert isinstance(tpl.shape, PromptShape)
        assert tpl.name == "Finance"
        assert tpl.description == "Finance checks"
        assert tpl.prompt_text == "Verify {{topic}} claims."
        assert [v.name for v in tpl.variables] == ["topic"]

    def test_steps_shape(self):
        """Test a multi-step workflow file."""
        tpl = parse_template(json.dumps({
            "steps": [{"prompt": "Step one."}, {"content": "Step two."}, {"other": 1}],
        }))

        assert isinstance(tpl.shape, StepsShape)
        assert tpl.name == "Unnamed Template"
        assert tpl.prompt_text == "Step one.\n\nStep two."

    def test_prompt_beats_steps(self):
        """Test that shapes are matched in a fixed order."""
        tpl = parse_template(json.dumps({"prompt": "P", "steps": [{"prompt": "S"}]}))
        assert tpl.shape.kind == "prompt"

    def test_field_shape(self):
        """Test a file with one of the generic text fields."""
        tpl = parse_template(json.dumps({"template": "Hello ${name}"}))

        assert isinstance(tpl.shape, FieldShape)
        assert tpl.shape.field_name == "template"
        assert tpl.prompt_text == "Hello ${name}"

    def test_unknown_json_is_raw(self):
        """Test that JSON of no known shape is imported verbatim."""
        content = json.dumps({"foo": "bar"})
        tpl = parse_template(content)

        assert isinstance(tpl.shape, RawTextShape)
        assert tpl.prompt_text == content

    def test_json_list_is_raw(self):
        """Test that a non-object JSON document is raw text."""
        tpl = parse_template('["a", "b"]')
        assert tpl.shape.kind == "raw"

    def test_plain_text(self):
        """Test a non-JSON text file."""
        tpl = parse_template("Check every {claim} against {source}.")

        assert isinstance(tpl.shape, RawTextShape)
        assert tpl.name == "Imported Template"
        assert [v.name for v in tpl.variables] == ["claim", "source"]

    def test_to_dict(self):
        """Test the serializable view."""
        d = parse_template('{"prompt": "x"}').to_dict()
        assert d["shape"] == "prompt"
        assert d["prompt_text"] == "x"


class TestVariables:
    """Tests for placeholder handling."""

    def test_extract_all_forms(self):
        """Test the three placeholder syntaxes, deduplicated."""
        names = [v.name for v in extract_variables("{{a}} {b} ${c} {{a}}")]
        assert sorted(names) == ["a", "b", "c"]

    def test_fill_all_forms(self):
        """Test that every form of a variable is substituted."""
        text = fill_variables("{{name}}, ${name} and {name}", {"name": "Bob"})
        assert text == "Bob, Bob and Bob"

    def test_fill_leaves_unknown(self):
        """Test that unknown placeholders are kept."""
        assert fill_variables("{x} {y}", {"x": "1"}) == "1 {y}"

    def test_validate_missing(self):
        """Test required variables with blank values."""
        variables = [TemplateVariable("a"), TemplateVariable("b"), TemplateVariable("c", required=False)]

        valid, missing = validate_variables(variables, {"a": "x", "b": "   "})

        assert valid is False
        assert missing == ["b"]

    def test_validate_ok(self):
        """Test a complete set of values."""
        assert validate_variables([TemplateVariable("a")], {"a": "x"}) == (True, [])
