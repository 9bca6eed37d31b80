"""synthgen configuration loader.

Priority (high → low):
  1. CLI flags           (handled at the call site, not in this module)
  2. Environment variables  (SYNTHGEN_MODEL, SYNTHGEN_OUT_DIR, SYNTHGEN_DB, SYNTHGEN_LOG_LEVEL)
  3. Per-project synthgen.yaml  (current working directory)
  4. Global ~/.synthgen/config.yaml  (defaults only, no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from synthgen.errors import ConfigError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".synthgen"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "synthgen.yaml"

# Fields that suggest an API key; forbidden in global config.
# Does NOT match legitimate config keys like max_tokens or max_requests.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # github_token, access_token (suffix)
    r"|^token$"                  # exactly "token"
    r"|_secret$"                 # client_secret (suffix)
    r"|^secret$"                 # exactly "secret"
    r"|passw(?:ord|d)"           # password, passwd
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["generation", "sink", "jobs", "rate_limits", "logging"]
)

_LOG_LEVELS: frozenset[str] = frozenset(["DEBUG", "INFO", "WARNING", "ERROR"])


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


def _default_model_map() -> dict[str, str]:
    return {
        "gpt-5": "openai/gpt-4o",
        "gpt-5-turbo": "openai/gpt-4o-mini",
        "gpt-4o": "openai/gpt-4o",
        "gpt-4o-mini": "openai/gpt-4o-mini",
    }


@dataclass
class GenerationCfg:
    """LLM generation settings (synthgen.yaml: generation:).

    Attributes:
        default_model: Logical model used when a job does not name one.
        fallback_model: Concrete provider model for unknown logical names.
        model_map: Logical name → LiteLLM ``provider/model`` string.
        fallback_temperature: Sampling temperature of the chat fallback call.
        max_batch_size: Upper bound applied to a job's batch_size.
        num_retries: LiteLLM transient-error retries per provider call.
        max_tokens: Output token ceiling per provider call.
    """

    default_model: str = "gpt-4o-mini"
    fallback_model: str = "openai/gpt-4o-mini"
    model_map: dict[str, str] = field(default_factory=_default_model_map)
    fallback_temperature: float = 0.7
    max_batch_size: int = 50
    num_retries: int = 3
    max_tokens: int = 4096


@dataclass
class SinkCfg:
    """Persistence settings (synthgen.yaml: sink:)."""

    chunk_size: int = 400
    out_dir: str = "output"
    db_path: str = "synthgen.db"


@dataclass
class JobsCfg:
    """Job record store (synthgen.yaml: jobs:). store is 'sqlite' or 'memory'."""

    store: str = "sqlite"
    db_path: str = "synthgen.db"


@dataclass
class RateLimitCfg:
    """One rate limiter family: at most *max_requests* per *window_seconds*."""

    window_seconds: float = 60.0
    max_requests: int = 10


def _default_rate_limits() -> dict[str, RateLimitCfg]:
    return {
        "generate": RateLimitCfg(window_seconds=60.0, max_requests=3),
        "analytics": RateLimitCfg(window_seconds=60.0, max_requests=5),
        "explore": RateLimitCfg(window_seconds=60.0, max_requests=10),
        "users": RateLimitCfg(window_seconds=60.0, max_requests=20),
    }


@dataclass
class RateLimitsCfg:
    """Per-endpoint-family limiters (synthgen.yaml: rate_limits:)."""

    sweep_interval_seconds: float = 300.0
    families: dict[str, RateLimitCfg] = field(default_factory=_default_rate_limits)


@dataclass
class LoggingCfg:
    level: str = "INFO"


@dataclass
class SynthgenConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    generation: GenerationCfg = field(default_factory=GenerationCfg)
    sink: SinkCfg = field(default_factory=SinkCfg)
    jobs: JobsCfg = field(default_factory=JobsCfg)
    rate_limits: RateLimitsCfg = field(default_factory=RateLimitsCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}', ignored.",
                UserWarning,
                stacklevel=4,
            )


def _positive_int(value: Any, name: str) -> int:
    try:
        result = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if result <= 0:
        raise ConfigError(f"{name} must be greater than 0, got {result}")
    return result


def _non_negative_int(value: Any, name: str) -> int:
    try:
        result = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if result < 0:
        raise ConfigError(f"{name} must not be negative, got {result}")
    return result


def _temperature(value: Any, name: str) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if not 0.0 <= result <= 2.0:
        raise ConfigError(f"{name} must be between 0 and 2, got {result}")
    return result


def _log_level(value: Any, name: str) -> str:
    level = str(value)
    if level.upper() not in _LOG_LEVELS:
        raise ConfigError(f"{name} must be one of {sorted(_LOG_LEVELS)}, got '{level}'")
    return level


def _positive_float(value: Any, name: str) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if result <= 0:
        raise ConfigError(f"{name} must be greater than 0, got {result}")
    return result


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> SynthgenConfig:
    """Build a *SynthgenConfig* from a merged raw YAML dict."""
    cfg = SynthgenConfig()

    if "generation" in data:
        g = data["generation"] or {}
        model_map = dict(cfg.generation.model_map)
        model_map.update({str(k): str(v) for k, v in (g.get("model_map") or {}).items()})
        cfg.generation = GenerationCfg(
            default_model=str(g.get("default_model", cfg.generation.default_model)),
            fallback_model=str(g.get("fallback_model", cfg.generation.fallback_model)),
            model_map=model_map,
            fallback_temperature=_temperature(
                g.get("fallback_temperature", cfg.generation.fallback_temperature),
                "generation.fallback_temperature",
            ),
            max_batch_size=_positive_int(
                g.get("max_batch_size", cfg.generation.max_batch_size),
                "generation.max_batch_size",
            ),
            num_retries=_non_negative_int(
                g.get("num_retries", cfg.generation.num_retries), "generation.num_retries"
            ),
            max_tokens=_positive_int(
                g.get("max_tokens", cfg.generation.max_tokens), "generation.max_tokens"
            ),
        )

    if "sink" in data:
        s = data["sink"] or {}
        cfg.sink = SinkCfg(
            chunk_size=_positive_int(s.get("chunk_size", cfg.sink.chunk_size), "sink.chunk_size"),
            out_dir=str(s.get("out_dir", cfg.sink.out_dir)),
            db_path=str(s.get("db_path", cfg.sink.db_path)),
        )

    if "jobs" in data:
        j = data["jobs"] or {}
        store = str(j.get("store", cfg.jobs.store))
        if store not in ("sqlite", "memory"):
            raise ConfigError(f"jobs.store must be 'sqlite' or 'memory', got '{store}'")
        cfg.jobs = JobsCfg(store=store, db_path=str(j.get("db_path", cfg.jobs.db_path)))

    if "rate_limits" in data:
        r = dict(data["rate_limits"] or {})
        sweep = r.pop("sweep_interval_seconds", cfg.rate_limits.sweep_interval_seconds)
        families = dict(cfg.rate_limits.families)
        for family, raw in r.items():
            defaults = families.get(family, RateLimitCfg())
            raw = raw or {}
            families[family] = RateLimitCfg(
                window_seconds=_positive_float(
                    raw.get("window_seconds", defaults.window_seconds),
                    f"rate_limits.{family}.window_seconds",
                ),
                max_requests=_positive_int(
                    raw.get("max_requests", defaults.max_requests),
                    f"rate_limits.{family}.max_requests",
                ),
            )
        cfg.rate_limits = RateLimitsCfg(
            sweep_interval_seconds=_positive_float(sweep, "rate_limits.sweep_interval_seconds"),
            families=families,
        )

    if "logging" in data:
        level = (data["logging"] or {}).get("level", cfg.logging.level)
        cfg.logging = LoggingCfg(level=_log_level(level, "logging.level"))

    return cfg


def _apply_env_overrides(cfg: SynthgenConfig) -> SynthgenConfig:
    """Apply SYNTHGEN_* environment variable overrides (layer 2)."""
    if model := os.environ.get("SYNTHGEN_MODEL"):
        cfg.generation.default_model = model
    if out_dir := os.environ.get("SYNTHGEN_OUT_DIR"):
        cfg.sink.out_dir = out_dir
    if db := os.environ.get("SYNTHGEN_DB"):
        cfg.sink.db_path = db
        cfg.jobs.db_path = db
    if level := os.environ.get("SYNTHGEN_LOG_LEVEL"):
        cfg.logging.level = _log_level(level, "SYNTHGEN_LOG_LEVEL")
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> SynthgenConfig:
    """Load and return a merged *SynthgenConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *synthgen.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *SynthgenConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields or a value
            is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    return _apply_env_overrides(cfg)
