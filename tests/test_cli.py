from __future__ import annotations

import pytest
from pydantic import SecretStr
from typer.testing import CliRunner

from conftest import FakeGenerator, FakeValidator
from tf_autopilot import cli
from tf_autopilot.config import Settings
from tf_autopilot.errors import GeneratorError, GeneratorFailureKind
from tf_autopilot.validator import CommandResult

runner = CliRunner()


@pytest.fixture
def settings(tmp_path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    value = Settings(
        _env_file=None,
        openai_api_key=SecretStr("sk-test"),
        github_token=None,
        gemini_api_key=None,
        output_dir=tmp_path / "tf-generated-files",
        terraform_binary="terraform-missing-for-tests",
    )
    monkeypatch.setattr(cli, "get_settings", lambda: value)
    # Keeps cached structlog loggers from binding to the runner's captured stdout.
    monkeypatch.setattr(cli, "configure_logging", lambda *args: None)
    return value


def test_generate_given_valid_generation_when_invoked_then_code_is_printed_and_saved(
    settings,
    make_pipeline,
    monkeypatch: pytest.MonkeyPatch,
    terraform_code,
) -> None:
    # Given
    monkeypatch.setattr(cli, "build_pipeline", lambda s, require_default_credential=True: make_pipeline())

    # When
    result = runner.invoke(cli.app, ["generate", "EC2 instance", "t3.micro in us-east-1"])

    # Then
    assert result.exit_code == 0
    assert "[1/3] Preparing pipeline" in result.output
    assert terraform_code in result.output
    assert "Saved:" in result.output
    assert "openai_ec2_instance_1.tf" in result.output


def test_generate_given_invalid_code_when_invoked_then_errors_are_listed_and_exit_code_is_one(
    settings,
    make_pipeline,
    monkeypatch: pytest.MonkeyPatch,
    invalid_result,
) -> None:
    # Given
    pipeline = make_pipeline(validator=FakeValidator(result=invalid_result))
    monkeypatch.setattr(cli, "build_pipeline", lambda s, require_default_credential=True: pipeline)

    # When
    result = runner.invoke(cli.app, ["generate", "EC2 instance", "t3.micro"])

    # Then
    assert result.exit_code == 1
    assert "validation: invalid" in result.output
    assert "Line 3: Unsupported argument" in result.output
    assert "Not saved" in result.output


def test_generate_given_generator_failure_when_invoked_then_failure_is_reported(
    settings,
    make_pipeline,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    # Given
    error = GeneratorError(GeneratorFailureKind.EMPTY_RESPONSE, "openai returned empty content")
    pipeline = make_pipeline(generator=FakeGenerator(error=error))
    monkeypatch.setattr(cli, "build_pipeline", lambda s, require_default_credential=True: pipeline)

    # When
    result = runner.invoke(cli.app, ["generate", "EC2 instance", "t3.micro"])

    # Then
    assert result.exit_code == 1
    assert "Generation failed: failed to generate terraform code: openai returned empty content" in result.output


def test_generate_given_unknown_provider_when_invoked_then_usage_error_is_raised(settings) -> None:
    # Given
    args = ["generate", "EC2 instance", "t3.micro", "--provider", "bard"]

    # When
    result = runner.invoke(cli.app, args)

    # Then
    assert result.exit_code == 2


def test_validate_given_missing_cli_when_invoked_then_reports_invalid(settings, tmp_path) -> None:
    # Given
    source = tmp_path / "main.tf"
    source.write_text('resource "null_resource" "x" {}', encoding="utf-8")

    # When
    result = runner.invoke(cli.app, ["validate", str(source)])

    # Then
    assert result.exit_code == 1
    assert "not installed" in result.output


def test_validate_given_passing_cli_when_invoked_then_exit_code_is_zero(
    settings,
    tmp_path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    # Given
    source = tmp_path / "main.tf"
    source.write_text('resource "null_resource" "x" {}', encoding="utf-8")
    monkeypatch.setattr(cli.TerraformValidator, "is_available", lambda self: True)
    monkeypatch.setattr(
        cli.TerraformValidator,
        "_run",
        lambda self, args, workspace: CommandResult(0, '{"valid": true}'),
    )

    # When
    result = runner.invoke(cli.app, ["validate", str(source)])

    # Then
    assert result.exit_code == 0
    assert "validation: valid" in result.output


def test_doctor_given_settings_when_invoked_then_credentials_are_reported_without_values(settings) -> None:
    # Given
    # Only the OpenAI credential is set.

    # When
    result = runner.invoke(cli.app, ["doctor"])

    # Then
    assert result.exit_code == 0
    assert "openai credential set: True" in result.output
    assert "copilot credential set: False" in result.output
    assert "sk-test" not in result.output
    assert "Terraform CLI available: False" in result.output
