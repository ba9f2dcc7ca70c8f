"""Unit tests for core/config.py -- Settings policy and GateConfig construction."""

import pytest
from pydantic import ValidationError

from core.config import DEFAULT_EXCLUDED_PATTERNS, GateConfig, Settings


class TestSettings:
    def test_debug_mode_generates_secret_key(self):
        settings = Settings(debug=True, secret_key="")
        assert len(settings.secret_key) >= 32

    def test_production_mode_requires_secret_key(self):
        with pytest.raises(ValidationError, match="SECRET_KEY is required"):
            Settings(debug=False, secret_key="")

    def test_short_secret_key_rejected(self):
        with pytest.raises(ValidationError, match="at least 32 characters"):
            Settings(debug=True, secret_key="too-short")

    def test_gate_defaults(self, settings):
        assert settings.login_path == "/login"
        assert settings.protected_prefix == "/dashboard"
        assert settings.excluded_patterns == list(DEFAULT_EXCLUDED_PATTERNS)


class TestGateConfig:
    def test_from_settings_strips_trailing_slash(self):
        settings = Settings(debug=True, login_path="/signin/", protected_prefix="/app/")
        config = GateConfig.from_settings(settings)
        assert config.login_path == "/signin"
        assert config.protected_prefix == "/app"
        assert config.protected_home == "/app"

    def test_from_settings_compiles_patterns(self):
        settings = Settings(debug=True, excluded_patterns=[r"^/assets/"])
        config = GateConfig.from_settings(settings)
        assert len(config.excluded) == 1
        assert config.excluded[0].search("/assets/app.js")

    def test_is_immutable(self, gate_config):
        with pytest.raises(AttributeError):
            gate_config.login_path = "/elsewhere"

    @pytest.mark.parametrize("login_path", ["login", "//evil.example", "https://evil.example/login"])
    def test_rejects_non_absolute_paths(self, login_path):
        with pytest.raises(ValueError, match="absolute path"):
            GateConfig(login_path=login_path)

    def test_rejects_login_inside_protected_area(self):
        with pytest.raises(ValueError, match="protected_prefix"):
            GateConfig(login_path="/dashboard/login")
