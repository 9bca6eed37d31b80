"""Built-in job templates for the wellness content collections.

A template is a partial GenerationConfig: prompts, schema, collection and
batch sizing for one content type. ``apply_template()`` layers it over the
defaults and under any caller overrides:

  defaults  ←  template.config  ←  overrides
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from synthgen.errors import ConfigError

_BASE_CONFIG: dict[str, Any] = {
    "job_name": "custom-generation",
    "count": 10,
    "batch_size": 5,
    "system_prompt": "",
    "user_prompt": "",
    "json_schema": {
        "name": "CustomSchema",
        "schema": {"type": "array", "items": {"type": "object", "properties": {}}},
        "strict": True,
    },
    "collection": "generated_content",
    "sink": "document-store",
}


@dataclass(frozen=True)
class JobTemplate:
    id: str
    name: str
    description: str
    icon: str
    config: dict[str, Any] = field(default_factory=dict)


def _array_schema(name: str, properties: dict[str, Any], required: list[str]) -> dict[str, Any]:
    return {
        "name": name,
        "strict": True,
        "schema": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": properties,
                "required": required,
                "additionalProperties": False,
            },
        },
    }


_STR = {"type": "string"}
_STR_LIST = {"type": "array", "items": {"type": "string"}}

TEMPLATES: dict[str, JobTemplate] = {
    "conditions": JobTemplate(
        id="conditions",
        name="Health Conditions",
        description="Plain-language condition explainers with symptoms and self-care tips",
        icon="conditions",
        config={
            "job_name": "conditions",
            "count": 50,
            "batch_size": 10,
            "system_prompt": (
                "You are a careful health educator. Write accurate, non-alarming, "
                "plain-language content. Never give a diagnosis or dosage."
            ),
            "user_prompt": (
                "Generate {count} distinct common health conditions. For each give a short "
                "overview, typical symptoms, self-care tips and when to see a doctor."
            ),
            "json_schema": _array_schema(
                "Condition",
                {
                    "condition_name": _STR,
                    "overview": _STR,
                    "symptoms": _STR_LIST,
                    "self_care": _STR_LIST,
                    "see_a_doctor_if": _STR_LIST,
                },
                ["condition_name", "overview", "symptoms", "self_care", "see_a_doctor_if"],
            ),
            "collection": "conditions",
        },
    ),
    "fitness": JobTemplate(
        id="fitness",
        name="Fitness Exercises",
        description="Bodyweight and gym exercises with steps, muscles and difficulty",
        icon="fitness",
        config={
            "job_name": "fitness-exercises",
            "count": 40,
            "batch_size": 10,
            "system_prompt": "You are a certified personal trainer writing exercise guides.",
            "user_prompt": (
                "Generate {count} different exercises. Include target muscles, "
                "equipment, difficulty (beginner, intermediate, advanced) and numbered steps."
            ),
            "json_schema": _array_schema(
                "Exercise",
                {
                    "exercise_name": _STR,
                    "muscles": _STR_LIST,
                    "equipment": _STR,
                    "difficulty": {"type": "string", "enum": ["beginner", "intermediate", "advanced"]},
                    "steps": _STR_LIST,
                },
                ["exercise_name", "muscles", "equipment", "difficulty", "steps"],
            ),
            "collection": "exercises",
        },
    ),
    "nutrition": JobTemplate(
        id="nutrition",
        name="Nutrition",
        description="Healthy recipes with ingredients and approximate macros",
        icon="nutrition",
        config={
            "job_name": "nutrition-recipes",
            "count": 30,
            "batch_size": 5,
            "system_prompt": "You are a registered dietitian creating simple, healthy recipes.",
            "user_prompt": (
                "Generate {count} healthy recipes with ingredients, preparation steps "
                "and approximate calories, protein, carbs and fat per serving."
            ),
            "json_schema": _array_schema(
                "Recipe",
                {
                    "name": _STR,
                    "ingredients": _STR_LIST,
                    "steps": _STR_LIST,
                    "calories": {"type": "number"},
                    "protein_g": {"type": "number"},
                    "carbs_g": {"type": "number"},
                    "fat_g": {"type": "number"},
                },
                ["name", "ingredients", "steps", "calories", "protein_g", "carbs_g", "fat_g"],
            ),
            "collection": "recipes",
        },
    ),
    "mindfulness": JobTemplate(
        id="mindfulness",
        name="Mindfulness",
        description="Guided breathing and meditation exercises",
        icon="mindfulness",
        config={
            "job_name": "mindfulness-exercises",
            "count": 20,
            "batch_size": 5,
            "system_prompt": "You are a mindfulness coach writing short guided exercises.",
            "user_prompt": (
                "Generate {count} guided mindfulness exercises with a category, "
                "duration in minutes and a step-by-step script."
            ),
            "json_schema": _array_schema(
                "MindfulnessExercise",
                {
                    "name": _STR,
                    "category": _STR,
                    "duration_minutes": {"type": "integer"},
                    "script": _STR_LIST,
                },
                ["name", "category", "duration_minutes", "script"],
            ),
            "collection": "mindfulness_exercises",
        },
    ),
    "custom": JobTemplate(
        id="custom",
        name="Custom",
        description="Start from scratch",
        icon="custom",
    ),
}


def get_template(template_id: str) -> JobTemplate:
    """Return the built-in template *template_id*.

    Raises:
        ConfigError: Unknown template id.
    """
    try:
        return TEMPLATES[template_id]
    except KeyError:
        known = ", ".join(sorted(TEMPLATES))
        raise ConfigError(f"Unknown template '{template_id}'. Available: {known}") from None


def apply_template(template: JobTemplate | None, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build a raw job mapping: defaults ← template ← overrides.

    Merging is per top-level key; a json_schema is replaced whole, never mixed.

    ``None`` values in *overrides* are ignored so unset CLI flags do not
    clobber template values.
    """
    merged = dict(_BASE_CONFIG)
    if template is not None:
        merged.update(template.config)
    if overrides:
        merged.update({k: v for k, v in overrides.items() if v is not None})
    return merged
