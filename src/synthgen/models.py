"""Domain models for generation jobs."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from synthgen.errors import ConfigError

DEFAULT_JOB_NAME = "custom-generation"
DEFAULT_COUNT = 10
DEFAULT_BATCH_SIZE = 5
DEFAULT_MAX_BATCH_SIZE = 50
DEFAULT_COLLECTION = "generated_content"
DEFAULT_SCHEMA_NAME = "generated_item"

# Wire (camelCase) keys accepted alongside snake_case ones.
_ALIASES: dict[str, str] = {
    "jobName": "job_name",
    "batchSize": "batch_size",
    "systemPrompt": "system_prompt",
    "userPrompt": "user_prompt",
    "jsonSchema": "json_schema",
}


class SinkKind(str, Enum):
    DOCUMENT_STORE = "document-store"
    FILE = "file"

    @classmethod
    def parse(cls, value: str | SinkKind) -> SinkKind:
        """Parse a sink name; 'firestore' is accepted as a document-store alias."""
        if isinstance(value, SinkKind):
            return value
        raw = str(value).strip().lower()
        if raw == "firestore":
            return cls.DOCUMENT_STORE
        try:
            return cls(raw)
        except ValueError:
            choices = ", ".join(k.value for k in cls)
            raise ConfigError(f"Unknown sink '{value}'. Choose one of: {choices}") from None


@dataclass(frozen=True)
class JsonSchemaSpec:
    """JSON schema used for constrained decoding.

    Attributes:
        name: Schema object name sent to the provider.
        schema: The JSON schema body.
        strict: Whether the provider should enforce the schema strictly.
    """

    schema: dict[str, Any]
    name: str = DEFAULT_SCHEMA_NAME
    strict: bool = True

    @classmethod
    def from_dict(cls, raw: Any) -> JsonSchemaSpec:
        if not isinstance(raw, Mapping):
            raise ConfigError("json_schema must be a mapping with a 'schema' body")
        body = raw.get("schema")
        if not isinstance(body, Mapping) or not body:
            raise ConfigError("json_schema.schema is required and must be a non-empty mapping")
        return cls(
            schema=dict(body),
            name=str(raw.get("name") or DEFAULT_SCHEMA_NAME),
            strict=bool(raw.get("strict", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "schema": self.schema, "strict": self.strict}


@dataclass(frozen=True)
class GenerationConfig:
    """Input of one generation job. Immutable once the job is submitted."""

    system_prompt: str
    user_prompt: str
    json_schema: JsonSchemaSpec
    model: str
    job_name: str = DEFAULT_JOB_NAME
    count: int = DEFAULT_COUNT
    batch_size: int = DEFAULT_BATCH_SIZE
    collection: str = DEFAULT_COLLECTION
    sink: SinkKind = SinkKind.DOCUMENT_STORE

    def __post_init__(self) -> None:
        if self.count <= 0:
            raise ConfigError(f"count must be greater than 0, got {self.count}")
        if self.batch_size <= 0:
            raise ConfigError(f"batch_size must be greater than 0, got {self.batch_size}")

    @property
    def batch_count(self) -> int:
        return math.ceil(self.count / self.batch_size)

    def render_user_prompt(self, needed: int) -> str:
        """Return the user prompt with every ``{count}`` replaced by *needed*."""
        return self.user_prompt.replace("{count}", str(needed))

    @classmethod
    def from_dict(
        cls,
        raw: Mapping[str, Any],
        *,
        default_model: str = "gpt-4o-mini",
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    ) -> GenerationConfig:
        """Validate a raw job mapping (snake_case or camelCase keys).

        Raises:
            ConfigError: A required field is missing or a value is invalid.
        """
        if not isinstance(raw, Mapping):
            raise ConfigError("Generation config must be a mapping")
        data = {_ALIASES.get(k, k): v for k, v in raw.items()}

        missing = [
            name
            for name in ("system_prompt", "user_prompt", "json_schema")
            if not data.get(name)
        ]
        if missing:
            raise ConfigError(f"Missing required fields: {', '.join(missing)}")

        count = _as_int(data.get("count"), "count", DEFAULT_COUNT)
        batch_size = _as_int(data.get("batch_size"), "batch_size", DEFAULT_BATCH_SIZE)

        return cls(
            job_name=str(data.get("job_name") or DEFAULT_JOB_NAME),
            count=count,
            batch_size=min(batch_size, max_batch_size),
            system_prompt=str(data["system_prompt"]),
            user_prompt=str(data["user_prompt"]),
            json_schema=JsonSchemaSpec.from_dict(data["json_schema"]),
            collection=str(data.get("collection") or DEFAULT_COLLECTION),
            sink=SinkKind.parse(data.get("sink") or SinkKind.DOCUMENT_STORE),
            model=str(data.get("model") or default_model),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_name": self.job_name,
            "count": self.count,
            "batch_size": self.batch_size,
            "system_prompt": self.system_prompt,
            "user_prompt": self.user_prompt,
            "json_schema": self.json_schema.to_dict(),
            "collection": self.collection,
            "sink": self.sink.value,
            "model": self.model,
        }


@dataclass
class GeneratedItem:
    """One generated document: a derived id plus the opaque provider payload."""

    id: str
    data: Any = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "data": self.data}


def _as_int(value: Any, name: str, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    try:
        result = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if result != value and not isinstance(value, str):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if result <= 0:
        raise ConfigError(f"{name} must be greater than 0, got {result}")
    return result
