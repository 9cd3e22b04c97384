# tests/core/test_config.py
"""Tests for configuration schema and loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from hashpaste.contracts.enums import HashAlgorithm, HashEncoding, RefreshTier, RetentionPolicy


class TestFingerprintSettings:
    """Identifier configuration validation."""

    def test_defaults(self) -> None:
        from hashpaste.core.config import FingerprintSettings

        settings = FingerprintSettings()
        assert settings.algorithm is HashAlgorithm.SHA256
        assert settings.encoding is HashEncoding.BASE58
        assert settings.id_length == 16

    def test_hex_allows_full_digest(self) -> None:
        from hashpaste.core.config import FingerprintSettings

        assert FingerprintSettings(encoding="hex", id_length=64).id_length == 64

    def test_base58_length_capped(self) -> None:
        from hashpaste.core.config import FingerprintSettings

        with pytest.raises(ValidationError, match="id_length"):
            FingerprintSettings(encoding="base58", id_length=33)

    def test_minimum_length(self) -> None:
        from hashpaste.core.config import FingerprintSettings

        with pytest.raises(ValidationError):
            FingerprintSettings(id_length=3)

    def test_unknown_algorithm_rejected(self) -> None:
        from hashpaste.core.config import FingerprintSettings

        with pytest.raises(ValidationError):
            FingerprintSettings(algorithm="md5")

    def test_extra_fields_forbidden(self) -> None:
        from hashpaste.core.config import FingerprintSettings

        with pytest.raises(ValidationError):
            FingerprintSettings(id_lenght=8)  # type: ignore[call-arg]


class TestLimitSettings:
    """Upload size bounds."""

    def test_defaults(self) -> None:
        from hashpaste.core.config import LimitSettings

        limits = LimitSettings()
        assert limits.min_content_size == 16
        assert limits.max_content_size == 16 * 1024 * 1024

    def test_min_above_max_rejected(self) -> None:
        from hashpaste.core.config import LimitSettings

        with pytest.raises(ValidationError, match="min_content_size"):
            LimitSettings(min_content_size=100, max_content_size=10)

    def test_settings_are_frozen(self) -> None:
        from hashpaste.core.config import LimitSettings

        limits = LimitSettings()
        with pytest.raises(ValidationError):
            limits.max_content_size = 1  # type: ignore[misc]


class TestRetentionSettings:
    """Retention policy and derived refresh flags."""

    def test_default_refreshes_origin_only(self) -> None:
        from hashpaste.core.config import RetentionSettings

        retention = RetentionSettings()
        assert retention.policy is RetentionPolicy.READ_REFRESH
        assert retention.refreshes_origin is True
        assert retention.refreshes_cache is False

    def test_both_tiers(self) -> None:
        from hashpaste.core.config import RetentionSettings

        retention = RetentionSettings(refresh_tiers=RefreshTier.BOTH)
        assert retention.refreshes_origin is True
        assert retention.refreshes_cache is True

    def test_fixed_policy_never_refreshes(self) -> None:
        from hashpaste.core.config import RetentionSettings

        retention = RetentionSettings(policy="fixed", refresh_tiers="both")
        assert retention.refreshes_origin is False
        assert retention.refreshes_cache is False

    @pytest.mark.parametrize("field", ["origin_ttl_seconds", "refreshed_origin_ttl_seconds", "cache_ttl_seconds"])
    def test_ttls_must_be_positive(self, field: str) -> None:
        from hashpaste.core.config import RetentionSettings

        with pytest.raises(ValidationError):
            RetentionSettings(**{field: 0})


class TestOriginSettings:
    def test_unknown_backend_rejected(self) -> None:
        from hashpaste.core.config import OriginSettings

        with pytest.raises(ValidationError):
            OriginSettings(backend="redis")


class TestDeepMerge:
    """Nested override merging."""

    def test_nested_override(self) -> None:
        from hashpaste.core.config import deep_merge

        base = {"server": {"host": "0.0.0.0", "port": 8000}, "verify_on_read": False}
        merged = deep_merge(base, {"server": {"port": 9000}})

        assert merged == {"server": {"host": "0.0.0.0", "port": 9000}, "verify_on_read": False}

    def test_inputs_not_mutated(self) -> None:
        from hashpaste.core.config import deep_merge

        base = {"server": {"port": 8000}}
        deep_merge(base, {"server": {"port": 9000}})
        assert base == {"server": {"port": 8000}}


class TestLoadSettings:
    """Loading from YAML, environment and CLI overrides."""

    def test_defaults_without_file(self) -> None:
        from hashpaste.core.config import load_settings

        settings = load_settings()
        assert settings.fingerprint.id_length == 16
        assert settings.origin.backend == "sqlite"
        assert settings.edge_cache.enabled is True

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        from hashpaste.core.config import load_settings

        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "missing.yaml")

    def test_yaml_file(self, tmp_path: Path) -> None:
        from hashpaste.core.config import load_settings

        config_file = tmp_path / "hashpaste.yaml"
        config_file.write_text(
            """
fingerprint:
  encoding: hex
  id_length: 8
retention:
  policy: fixed
  origin_ttl_seconds: 600
origin:
  backend: memory
"""
        )

        settings = load_settings(config_file)

        assert settings.fingerprint.encoding is HashEncoding.HEX
        assert settings.fingerprint.id_length == 8
        assert settings.retention.policy is RetentionPolicy.FIXED
        assert settings.retention.origin_ttl_seconds == 600
        assert settings.origin.backend == "memory"

    def test_env_var_expansion_in_values(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from hashpaste.core.config import load_settings

        config_file = tmp_path / "hashpaste.yaml"
        config_file.write_text(
            """
origin:
  database: "${PASTE_DB_PATH:-fallback.db}"
edge_cache:
  surrogate_key: "${PASTE_SURROGATE_KEY:-pastes}"
"""
        )
        monkeypatch.setenv("PASTE_DB_PATH", "/srv/paste/origin.db")
        monkeypatch.delenv("PASTE_SURROGATE_KEY", raising=False)

        settings = load_settings(config_file)

        assert settings.origin.database == "/srv/paste/origin.db"
        assert settings.edge_cache.surrogate_key == "pastes"

    def test_environment_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from hashpaste.core.config import load_settings

        config_file = tmp_path / "hashpaste.yaml"
        config_file.write_text("retention:\n  policy: read_refresh\n")
        monkeypatch.setenv("HASHPASTE_RETENTION__POLICY", "fixed")

        settings = load_settings(config_file)
        assert settings.retention.policy is RetentionPolicy.FIXED

    def test_cli_overrides_win(self, tmp_path: Path) -> None:
        from hashpaste.core.config import load_settings

        config_file = tmp_path / "hashpaste.yaml"
        config_file.write_text("server:\n  port: 8080\n  host: 0.0.0.0\n")

        settings = load_settings(config_file, cli_overrides={"server": {"port": 9090}})

        assert settings.server.port == 9090
        assert settings.server.host == "0.0.0.0"

    def test_invalid_value_raises_validation_error(self, tmp_path: Path) -> None:
        from hashpaste.core.config import load_settings

        config_file = tmp_path / "hashpaste.yaml"
        config_file.write_text("fingerprint:\n  encoding: base64\n")

        with pytest.raises(ValidationError):
            load_settings(config_file)


class TestResolveConfig:
    def test_json_safe_dump(self) -> None:
        from hashpaste.core.config import HashpasteSettings, resolve_config

        resolved = resolve_config(HashpasteSettings())

        assert resolved["fingerprint"] == {"algorithm": "sha256", "encoding": "base58", "id_length": 16}
        assert resolved["retention"]["policy"] == "read_refresh"
        assert resolved["verify_on_read"] is False
