from __future__ import annotations

from pathlib import Path

import pytest

from tf_autopilot.config import Settings


def test_settings_given_environment_when_loaded_then_credentials_and_port_are_read(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    # Given
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("GITHUB_TOKEN", "  ")
    monkeypatch.setenv("PORT", "8088")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    # When
    settings = Settings(_env_file=None)

    # Then
    assert settings.credential_for("openai") == "sk-env"
    assert settings.credential_for("copilot") is None
    assert settings.credential_for("gemini") is None
    assert settings.port == 8088


def test_settings_given_no_overrides_when_loaded_then_documented_defaults_apply(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    # Given
    for name in (
        "PORT",
        "OUTPUT_DIR",
        "DEFAULT_PROVIDER",
        "TERRAFORM_BINARY",
        "VALIDATE_TIMEOUT_SECONDS",
        "API_PREFIX",
        "LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)

    # When
    settings = Settings(_env_file=None)

    # Then
    assert settings.port == 5000
    assert settings.output_dir == Path("tf-generated-files")
    assert settings.default_provider == "openai"
    assert settings.terraform_binary == "terraform"
    assert settings.validate_timeout_seconds == 120
    assert settings.api_prefix == "/api/provision"
    assert settings.log_format == "console"


def test_settings_given_secret_when_rendered_then_value_is_masked(monkeypatch: pytest.MonkeyPatch) -> None:
    # Given
    monkeypatch.setenv("OPENAI_API_KEY", "sk-very-secret")

    # When
    rendered = repr(Settings(_env_file=None))

    # Then
    assert "sk-very-secret" not in rendered


def test_credential_for_given_unknown_provider_when_called_then_none_is_returned() -> None:
    # Given
    settings = Settings(_env_file=None)

    # When
    value = settings.credential_for("bard")

    # Then
    assert value is None
