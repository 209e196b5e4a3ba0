"""Typer-based CLI for serving, generating, and validating Terraform."""

from __future__ import annotations

from pathlib import Path

import typer

from tf_autopilot.config import Settings, get_settings
from tf_autopilot.errors import AutopilotError, ConfigurationError
from tf_autopilot.log import configure_logging
from tf_autopilot.models import GenerationRequest, ValidationResult
from tf_autopilot.pipeline import build_pipeline
from tf_autopilot.store import ArtifactStore
from tf_autopilot.validator import TerraformValidator

app = typer.Typer(add_completion=False, help="tf-autopilot: natural language to validated Terraform")

PROVIDERS = ("openai", "copilot", "gemini")


def _echo_step(step: int, total: int, message: str) -> None:
    """Print a normalized progress step line."""
    typer.echo(f"[{step}/{total}] {message}")


def _echo_validation(validation: ValidationResult) -> None:
    status = "valid" if validation.is_valid else "invalid"
    typer.echo(f"    validation: {status} ({validation.elapsed_millis} ms)")
    for error in validation.errors:
        typer.echo(f"    error: {error}")
    for warning in validation.warnings:
        typer.echo(f"    warning: {warning}")


def _settings_with(settings: Settings, **overrides: object) -> Settings:
    updates = {key: value for key, value in overrides.items() if value is not None}
    return settings.model_copy(update=updates) if updates else settings


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, help="Bind address (default from HOST)"),
    port: int | None = typer.Option(None, help="Listening port (default from PORT)"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from tf_autopilot.api import create_app

    settings = _settings_with(get_settings(), host=host, port=port)
    configure_logging(settings.log_level, settings.log_format)
    try:
        api = create_app(settings)
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    typer.echo(f"Server is running on port {settings.port}")
    uvicorn.run(api, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


@app.command("generate")
def generate(
    resource: str = typer.Argument(..., help="Resource to provision, e.g. 'EC2 instance'"),
    specs: str = typer.Argument(..., help="Free-text specification for the resource"),
    provider: str | None = typer.Option(None, help=f"Generator backend: {', '.join(PROVIDERS)}"),
    output_dir: Path | None = typer.Option(None, help="Directory for accepted .tf files"),
) -> None:
    """Generate, clean, and validate Terraform; save it when it validates."""
    settings = _settings_with(get_settings(), output_dir=output_dir)
    configure_logging(settings.log_level, settings.log_format)
    if provider is not None and provider not in PROVIDERS:
        raise typer.BadParameter(f"Unknown provider: {provider}")

    try:
        request = GenerationRequest(resource=resource, specs=specs)
    except ValueError as exc:
        raise typer.BadParameter("Resource and specs cannot be empty") from exc

    _echo_step(1, 3, "Preparing pipeline")
    try:
        pipeline = build_pipeline(settings, require_default_credential=False)
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    selected = provider or pipeline.default_provider

    _echo_step(2, 3, f"Generating and validating with {selected}")
    result = pipeline.run(request, provider=selected)

    _echo_step(3, 3, "Reporting result")
    if result.validation:
        _echo_validation(result.validation)
    if not result.succeeded:
        typer.echo(f"Generation failed: {result.error}", err=True)
        if result.detail:
            typer.echo(f"    details: {result.detail}", err=True)
        raise typer.Exit(code=1)

    typer.echo(result.code or "")
    if result.persisted:
        typer.echo(f"Saved: {result.persisted.path}")
    else:
        typer.echo("Not saved: generated code has validation errors")
        raise typer.Exit(code=1)


@app.command("validate")
def validate(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Terraform file"),
) -> None:
    """Validate an existing Terraform file with the local CLI."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    code = path.read_text(encoding="utf-8")
    if not code.strip():
        raise typer.BadParameter(f"File is empty: {path}")

    validator = TerraformValidator(settings.terraform_binary, settings.validate_timeout_seconds)
    try:
        validation = validator.validate(code)
    except AutopilotError as exc:
        typer.echo(f"Validation could not run: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    _echo_validation(validation)
    if not validation.is_valid:
        raise typer.Exit(code=1)


@app.command("doctor")
def doctor() -> None:
    """Print local environment diagnostics used by the service."""
    settings = get_settings()
    validator = TerraformValidator(settings.terraform_binary)
    store = ArtifactStore(settings.output_dir)

    typer.echo(f"Terraform CLI available: {validator.is_available()} ({settings.terraform_binary})")
    for provider in PROVIDERS:
        typer.echo(f"{provider} credential set: {bool(settings.credential_for(provider))}")
    typer.echo(f"Default provider: {settings.default_provider}")
    typer.echo(f"Output dir: {settings.output_dir} ({len(store.list_files())} files)")


if __name__ == "__main__":
    app()
