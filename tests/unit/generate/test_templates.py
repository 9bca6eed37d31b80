"""Tests for built-in job templates."""

from __future__ import annotations

import pytest

from synthgen.errors import ConfigError
from synthgen.generate.ids import assign_id
from synthgen.generate.templates import TEMPLATES, apply_template, get_template
from synthgen.models import GenerationConfig


@pytest.mark.parametrize("template_id", ["conditions", "fitness", "nutrition", "mindfulness"])
def test_content_templates_build_valid_configs(template_id):
    config = GenerationConfig.from_dict(apply_template(get_template(template_id)))

    assert config.count > 0
    assert "{count}" in config.user_prompt
    assert config.json_schema.schema["type"] == "array"


@pytest.mark.parametrize(
    "template_id, collection",
    [
        ("conditions", "conditions"),
        ("fitness", "exercises"),
        ("nutrition", "recipes"),
        ("mindfulness", "mindfulness_exercises"),
    ],
)
def test_template_collections(template_id, collection):
    assert get_template(template_id).config["collection"] == collection


@pytest.mark.parametrize(
    "template_id, id_field",
    [("conditions", "condition_name"), ("fitness", "exercise_name"), ("nutrition", "name")],
)
def test_template_schemas_require_an_id_field(template_id, id_field):
    schema = get_template(template_id).config["json_schema"]["schema"]
    assert id_field in schema["items"]["required"]
    assert assign_id({id_field: "Some Value"}, 0) == "some-value"


def test_custom_template_needs_prompts():
    with pytest.raises(ConfigError, match="system_prompt"):
        GenerationConfig.from_dict(apply_template(get_template("custom")))


def test_get_template_unknown():
    with pytest.raises(ConfigError, match="Unknown template 'yoga'"):
        get_template("yoga")


def test_overrides_win_over_template():
    merged = apply_template(get_template("fitness"), {"count": 7, "collection": "drills"})

    assert merged["count"] == 7
    assert merged["collection"] == "drills"
    assert merged["batch_size"] == 10


def test_none_overrides_ignored():
    merged = apply_template(get_template("nutrition"), {"count": None, "model": None})

    assert merged["count"] == 30
    assert "model" not in merged


def test_json_schema_override_replaces_whole_schema():
    schema = {"name": "Tiny", "schema": {"type": "array", "items": {"type": "string"}}}

    merged = apply_template(get_template("conditions"), {"json_schema": schema})

    assert merged["json_schema"] == schema


def test_apply_template_does_not_mutate_template():
    before = dict(TEMPLATES["fitness"].config)
    apply_template(TEMPLATES["fitness"], {"count": 1})
    assert TEMPLATES["fitness"].config == before


def test_no_template_uses_base_defaults():
    merged = apply_template(None, {"system_prompt": "s", "user_prompt": "u"})

    assert merged["job_name"] == "custom-generation"
    assert merged["sink"] == "document-store"
    assert merged["collection"] == "generated_content"
