# src/hashpaste/core/config.py
"""
Configuration schema and loading for hashpaste.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.

Precedence (highest to lowest):
1. CLI overrides
2. Environment variables (HASHPASTE_*, HASHPASTE_RETENTION__POLICY for nested keys)
3. YAML config file
4. Built-in defaults
"""

import os
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

from hashpaste.contracts.enums import HashAlgorithm, HashEncoding, RefreshTier, RetentionPolicy
from hashpaste.core.fingerprint import max_identifier_length

_DAY = 24 * 60 * 60


class FingerprintSettings(BaseModel):
    """How content is hashed and rendered into a public identifier."""

    model_config = {"frozen": True, "extra": "forbid"}

    algorithm: HashAlgorithm = Field(
        default=HashAlgorithm.SHA256,
        description="Cryptographic hash over the full content",
    )
    encoding: HashEncoding = Field(
        default=HashEncoding.BASE58,
        description="Text encoding of the hash: 'hex' or 'base58'",
    )
    id_length: int = Field(
        default=16,
        ge=4,
        description="Length of the public identifier (prefix of the encoded hash)",
    )

    @model_validator(mode="after")
    def validate_id_length(self) -> "FingerprintSettings":
        """Identifier must fit inside the shortest possible encoded hash."""
        limit = max_identifier_length(self.encoding)
        if self.id_length > limit:
            raise ValueError(f"id_length ({self.id_length}) must be <= {limit} for {self.encoding} encoding")
        return self


class LimitSettings(BaseModel):
    """Upload size bounds enforced at ingress."""

    model_config = {"frozen": True, "extra": "forbid"}

    min_content_size: int = Field(default=16, ge=1, description="Smallest accepted paste in bytes")
    max_content_size: int = Field(
        default=16 * 1024 * 1024,
        gt=0,
        description="Largest accepted paste in bytes",
    )

    @model_validator(mode="after")
    def validate_bounds(self) -> "LimitSettings":
        if self.min_content_size > self.max_content_size:
            raise ValueError(f"min_content_size ({self.min_content_size}) must be <= max_content_size ({self.max_content_size})")
        return self


class RetentionSettings(BaseModel):
    """Per-tier TTLs and read-refresh behaviour.

    Policies:
    - fixed: origin TTL set once at write time; reads never extend anything
    - read_refresh: origin_ttl_seconds at write time, then every successful
      read extends the tiers named by refresh_tiers

    Edge-cache TTL <= origin TTL is recommended but not enforced; a cached
    copy may legitimately outlive its origin entry.

    Example YAML:
        retention:
          policy: read_refresh
          origin_ttl_seconds: 86400
          refreshed_origin_ttl_seconds: 2592000
          cache_ttl_seconds: 3600
          refresh_tiers: both
    """

    model_config = {"frozen": True, "extra": "forbid"}

    policy: RetentionPolicy = Field(
        default=RetentionPolicy.READ_REFRESH,
        description="'fixed' or 'read_refresh'",
    )
    origin_ttl_seconds: int = Field(default=_DAY, gt=0, description="Origin TTL applied at write time")
    refreshed_origin_ttl_seconds: int = Field(
        default=30 * _DAY,
        gt=0,
        description="Origin TTL applied on read (read_refresh only)",
    )
    cache_ttl_seconds: int = Field(default=60 * 60, gt=0, description="Edge cache TTL")
    refresh_tiers: RefreshTier = Field(
        default=RefreshTier.ORIGIN,
        description="Tiers extended on read under read_refresh: origin, cache or both",
    )

    @property
    def refreshes_origin(self) -> bool:
        return self.policy is RetentionPolicy.READ_REFRESH and self.refresh_tiers in (RefreshTier.ORIGIN, RefreshTier.BOTH)

    @property
    def refreshes_cache(self) -> bool:
        return self.policy is RetentionPolicy.READ_REFRESH and self.refresh_tiers in (RefreshTier.CACHE, RefreshTier.BOTH)


class OriginSettings(BaseModel):
    """Origin store configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    backend: str = Field(default="sqlite", pattern="^(sqlite|memory)$", description="'sqlite' or 'memory'")
    database: str = Field(
        default=".hashpaste/origin.db",
        description="SQLite path, file: URI, or :memory: for the sqlite backend",
    )


class EdgeCacheSettings(BaseModel):
    """Edge cache configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = Field(default=True, description="Serve reads through the edge cache")
    max_entries: int = Field(default=1024, gt=0, description="LRU bound on cached entries")
    surrogate_key: str = Field(
        default="hashpaste",
        min_length=1,
        description="Tag applied to every cached entry for bulk invalidation",
    )


class ServerSettings(BaseModel):
    """HTTP server binding and presentation options."""

    model_config = {"frozen": True, "extra": "forbid"}

    host: str = Field(default="127.0.0.1", description="Host address to bind to")
    port: int = Field(default=8000, gt=0, le=65535, description="Port to listen on")
    workers: int = Field(default=1, gt=0, description="Number of uvicorn workers")
    hsts: bool = Field(default=True, description="Send Strict-Transport-Security on HTTPS requests")


class LoggingSettings(BaseModel):
    """Log output configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")


class HashpasteSettings(BaseModel):
    """Top-level hashpaste configuration.

    All settings are validated and frozen after construction.
    """

    model_config = {"frozen": True}

    fingerprint: FingerprintSettings = Field(default_factory=FingerprintSettings)
    limits: LimitSettings = Field(default_factory=LimitSettings)
    retention: RetentionSettings = Field(default_factory=RetentionSettings)
    origin: OriginSettings = Field(default_factory=OriginSettings)
    edge_cache: EdgeCacheSettings = Field(default_factory=EdgeCacheSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    verify_on_read: bool = Field(
        default=False,
        description="Re-hash content on download and compare with the stored fingerprint",
    )


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values."""

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            default = match.group(2)
            if default is not None:
                return default
            # No env var and no default - keep original (validation will likely reject it)
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lower_keys(value: Any) -> Any:
    """Dynaconf upper-cases keys it reads from the environment."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dicts, with override taking precedence.

    Returns:
        Merged configuration dict (new dict, does not mutate inputs).
    """
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_settings(
    config_file: Path | None = None,
    *,
    cli_overrides: dict[str, Any] | None = None,
) -> HashpasteSettings:
    """Load settings from an optional YAML file, the environment and CLI flags.

    Args:
        config_file: Optional path to a YAML configuration file
        cli_overrides: Nested dict of overrides from command-line flags

    Returns:
        Validated HashpasteSettings instance

    Raises:
        FileNotFoundError: If config_file is given but doesn't exist
        pydantic.ValidationError: If configuration fails validation
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if config_file is not None and not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="HASHPASTE",
        settings_files=[str(config_file)] if config_file is not None else [],
        environments=False,  # No [default]/[production] sections
        load_dotenv=False,
        merge_enabled=True,
    )

    # Filter out internal Dynaconf settings
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k: v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config = _lower_keys(raw_config)
    raw_config = _expand_env_vars(raw_config)

    if cli_overrides:
        raw_config = deep_merge(raw_config, cli_overrides)

    return HashpasteSettings(**raw_config)


def resolve_config(settings: HashpasteSettings) -> dict[str, Any]:
    """Convert validated settings to a JSON-safe dict of effective values."""
    return settings.model_dump(mode="json")
