"""LiteLLM provider client with retry, model resolution, and API key validation.

Every provider call made by the generation pipeline routes through this module.
LiteLLM's built-in retry handles transient errors (num_retries, exponential
backoff); anything that still fails surfaces as ``ProviderError``.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping

import litellm

from synthgen.errors import ProviderError
from synthgen.models import JsonSchemaSpec

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_MODEL = "openai/gpt-4o-mini"


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def provider_of(model: str) -> str:
    """Return the provider prefix of a LiteLLM model string ('openai' if none)."""
    return model.split("/")[0].lower() if "/" in model else "openai"


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = provider_of(model)
    env_var = _PROVIDER_ENV.get(provider, f"{provider.upper()}_API_KEY")

    if env_var is None:
        return  # No key required (e.g. ollama)

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


def resolve_model(
    name: str,
    model_map: Mapping[str, str],
    fallback: str = DEFAULT_FALLBACK_MODEL,
) -> str:
    """Translate a logical model name into a concrete LiteLLM model string.

    Unknown names resolve to *fallback* instead of raising, so a job configured
    with a model the deployment does not know still runs on the cheap default.
    """
    resolved = model_map.get(name)
    if resolved is None:
        logger.debug("Unknown model '%s', using %s", name, fallback)
        return fallback
    return resolved


def schema_response_format(schema: JsonSchemaSpec) -> dict[str, Any]:
    """OpenAI-style ``response_format`` for JSON-schema constrained decoding."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": schema.name,
            "schema": schema.schema,
            "strict": schema.strict,
        },
    }


def complete(
    model: str,
    messages: list[dict],
    max_tokens: int = 4096,
    temperature: float | None = 0.0,
    num_retries: int = 3,
    response_format: dict[str, Any] | None = None,
) -> str:
    """Call litellm.completion() with retry/backoff. Returns content string.

    Args:
        model: LiteLLM model string (provider/model format).
        messages: OpenAI-style message list.
        max_tokens: Maximum output tokens.
        temperature: Sampling temperature; None leaves the provider default.
        num_retries: Number of retries on transient errors (exponential backoff).
        response_format: Optional structured-output constraint.

    Returns:
        The text content of the first choice ("" when the provider sent none).

    Raises:
        ProviderError: On persistent API failure after retries.
    """
    kwargs: dict[str, Any] = {
        "model": model,
        "messages": messages,
        "max_tokens": max_tokens,
        "num_retries": num_retries,
    }
    if temperature is not None:
        kwargs["temperature"] = temperature
    if response_format is not None:
        kwargs["response_format"] = response_format

    try:
        response = litellm.completion(**kwargs)
    except Exception as exc:
        raise ProviderError(f"{model}: {exc}") from exc

    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError) as exc:
        raise ProviderError(f"{model}: malformed response ({exc})") from exc
    return content or ""


class LiteLLMProvider:
    """Provider collaborator used by the Generator.

    Exposes the two calls the pipeline needs: a schema-constrained completion
    and a plain chat completion.
    """

    def __init__(self, max_tokens: int = 4096, num_retries: int = 3) -> None:
        self.max_tokens = max_tokens
        self.num_retries = num_retries

    def complete_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: JsonSchemaSpec,
        model: str,
    ) -> str:
        return complete(
            model=model,
            messages=_messages(system_prompt, user_prompt),
            max_tokens=self.max_tokens,
            temperature=None,
            num_retries=self.num_retries,
            response_format=schema_response_format(schema),
        )

    def complete_chat(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float,
    ) -> str:
        return complete(
            model=model,
            messages=_messages(system_prompt, user_prompt),
            max_tokens=self.max_tokens,
            temperature=temperature,
            num_retries=self.num_retries,
        )


def _messages(system_prompt: str, user_prompt: str) -> list[dict]:
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]
