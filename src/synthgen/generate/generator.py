"""Schema-constrained batch generation with a chat-completion fallback.

One ``generate()`` call produces the items of one batch:

  1. STRUCTURED: ask the provider for output constrained to the job's JSON
     schema and parse the text strictly.
  2. CHAT: only if step 1 raised ProviderError or ParseError, reissue the
     prompt once as a plain chat completion ("Return JSON array only.") at
     temperature 0.7 and extract JSON leniently from the reply.

A failure of step 2 propagates to the caller, chained to the step 1 error.
Either way the parsed value is coerced to a list: a lone object becomes a
one-element list.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Protocol

from synthgen.errors import ParseError, ProviderError
from synthgen.llm.client import DEFAULT_FALLBACK_MODEL, resolve_model
from synthgen.models import JsonSchemaSpec

logger = logging.getLogger(__name__)

FALLBACK_INSTRUCTION = "Return JSON array only."
FALLBACK_TEMPERATURE = 0.7

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


class Provider(Protocol):
    """What the Generator needs from an LLM provider client."""

    def complete_structured(
        self, system_prompt: str, user_prompt: str, schema: JsonSchemaSpec, model: str
    ) -> str: ...

    def complete_chat(
        self, system_prompt: str, user_prompt: str, model: str, temperature: float
    ) -> str: ...


class Strategy(str, Enum):
    STRUCTURED = "structured"
    CHAT = "chat"


@dataclass
class GenerationResult:
    """Items of one batch and the strategy that produced them."""

    items: list[Any] = field(default_factory=list)
    strategy: Strategy = Strategy.STRUCTURED
    primary_error: str | None = None  # set when the CHAT fallback was used


# ------------------------------------------------------------------
# Parsing
# ------------------------------------------------------------------


def coerce_array(value: Any) -> list[Any]:
    """Wrap a non-list JSON value in a one-element list."""
    return value if isinstance(value, list) else [value]


def parse_items(text: str) -> list[Any]:
    """Strictly parse provider text as JSON. Empty text counts as ``[]``.

    Raises:
        ParseError: The text is not valid JSON.
    """
    raw = (text or "").strip() or "[]"
    try:
        return coerce_array(json.loads(raw))
    except json.JSONDecodeError as exc:
        raise ParseError(f"Provider returned invalid JSON: {exc.msg} ({raw[:120]!r})") from exc


def extract_items(text: str) -> list[Any]:
    """Leniently pull a JSON value out of free-form chat output.

    Tries, in order: the text as-is, the first Markdown code fence, the
    outermost ``[...]`` span, the outermost ``{...}`` span. Trailing commas
    are stripped before giving up on a candidate.

    Raises:
        ParseError: No candidate parses as JSON.
    """
    raw = (text or "").strip() or "[]"
    for candidate in _candidates(raw):
        for attempt in (candidate, _TRAILING_COMMA_RE.sub(r"\1", candidate)):
            try:
                return coerce_array(json.loads(attempt))
            except json.JSONDecodeError:
                continue
    raise ParseError(f"Cannot extract JSON from model output: {raw[:200]!r}")


def _candidates(raw: str) -> list[str]:
    found = [raw]
    fence = _FENCE_RE.search(raw)
    if fence:
        found.append(fence.group(1))
    for open_, close in (("[", "]"), ("{", "}")):
        start, end = raw.find(open_), raw.rfind(close)
        if start != -1 and end > start:
            found.append(raw[start : end + 1])
    return found


# ------------------------------------------------------------------
# Generator
# ------------------------------------------------------------------


class Generator:
    """Runs one provider batch with the structured → chat strategy."""

    def __init__(
        self,
        provider: Provider,
        *,
        model_map: Mapping[str, str] | None = None,
        fallback_model: str = DEFAULT_FALLBACK_MODEL,
        fallback_temperature: float = FALLBACK_TEMPERATURE,
    ) -> None:
        self._provider = provider
        self._model_map = dict(model_map or {})
        self._fallback_model = fallback_model
        self._fallback_temperature = fallback_temperature

    def resolve(self, model: str) -> str:
        return resolve_model(model, self._model_map, self._fallback_model)

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: JsonSchemaSpec,
        model: str,
    ) -> GenerationResult:
        """Generate one batch of items.

        Raises:
            ProviderError: The fallback provider call failed.
            ParseError: The fallback reply contained no usable JSON.
        """
        concrete = self.resolve(model)

        try:
            return GenerationResult(
                items=self._structured(system_prompt, user_prompt, schema, concrete),
                strategy=Strategy.STRUCTURED,
            )
        except (ProviderError, ParseError) as primary:
            logger.warning("Structured output failed, falling back to chat: %s", primary)
            try:
                items = self._chat(system_prompt, user_prompt, concrete)
            except (ProviderError, ParseError) as fallback:
                raise fallback from primary
            return GenerationResult(items=items, strategy=Strategy.CHAT, primary_error=str(primary))

    def _structured(
        self, system_prompt: str, user_prompt: str, schema: JsonSchemaSpec, model: str
    ) -> list[Any]:
        text = self._provider.complete_structured(system_prompt, user_prompt, schema, model)
        return parse_items(text)

    def _chat(self, system_prompt: str, user_prompt: str, model: str) -> list[Any]:
        text = self._provider.complete_chat(
            system_prompt,
            f"{user_prompt}\n{FALLBACK_INSTRUCTION}",
            model,
            self._fallback_temperature,
        )
        return extract_items(text)
