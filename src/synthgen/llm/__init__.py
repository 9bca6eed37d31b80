"""LLM provider access."""

from synthgen.llm.client import LiteLLMProvider, resolve_model, validate_api_key

__all__ = ["LiteLLMProvider", "resolve_model", "validate_api_key"]
