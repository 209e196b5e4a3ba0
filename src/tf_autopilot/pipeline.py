"""Generate, clean, validate, and persist Terraform for one request."""

from __future__ import annotations

from collections.abc import Mapping

from tf_autopilot.config import Settings
from tf_autopilot.errors import (
    AutopilotError,
    ConfigurationError,
    ContentError,
    GeneratorError,
    GeneratorFailureKind,
    ResourceError,
    ValidatorError,
)
from tf_autopilot.generator import CodeGenerator, build_generators
from tf_autopilot.log import get_logger
from tf_autopilot.models import (
    GeneratedArtifact,
    GenerationRequest,
    PipelineResult,
    PipelineState,
    ValidationResult,
)
from tf_autopilot.sanitizer import sanitize
from tf_autopilot.store import ArtifactStore
from tf_autopilot.validator import TerraformValidator, Validator

logger = get_logger(__name__)


class TerraformPipeline:
    """Backend-agnostic orchestrator.

    Files are written only when validation passes. Invalid code is still
    returned to the caller together with its diagnostics.
    """

    def __init__(
        self,
        generators: Mapping[str, CodeGenerator],
        validator: Validator,
        store: ArtifactStore,
        default_provider: str = "openai",
    ):
        if default_provider not in generators:
            raise ConfigurationError(f"unknown default provider: {default_provider}")
        self.generators = dict(generators)
        self.validator = validator
        self.store = store
        self.default_provider = default_provider

    @property
    def providers(self) -> list[str]:
        return sorted(self.generators)

    def run(self, request: GenerationRequest, provider: str | None = None) -> PipelineResult:
        """Drive one request to a terminal state.

        Adapter failures never escape; they are folded into a ``FAILED``
        result carrying the error message and detail.
        """
        provider = provider or self.default_provider
        state = PipelineState.RECEIVED
        artifact: GeneratedArtifact | None = None
        validation: ValidationResult | None = None

        try:
            generator = self.generators.get(provider)
            if generator is None:
                raise GeneratorError(
                    GeneratorFailureKind.NOT_CONFIGURED, f"unknown generator provider: {provider}"
                )

            state = PipelineState.GENERATING
            raw_text = generator.generate(request.resource, request.specs)

            state = PipelineState.SANITIZING
            artifact = GeneratedArtifact(raw_text=raw_text, normalized_text=sanitize(raw_text))

            state = PipelineState.VALIDATING
            validation = self.validator.validate(artifact.normalized_text)
            if not validation.is_valid:
                logger.info(
                    "Generated code failed validation",
                    provider=provider,
                    errors=len(validation.errors),
                )
                return PipelineResult(
                    state=PipelineState.PERSISTED_INVALID,
                    provider=provider,
                    artifact=artifact,
                    validation=validation,
                )

            persisted = self.store.save(artifact.normalized_text, request.resource, provider)
        except AutopilotError as exc:
            logger.warning("Pipeline failed", stage=state.value, provider=provider, error=str(exc))
            return PipelineResult(
                state=PipelineState.FAILED,
                provider=provider,
                artifact=artifact,
                validation=validation,
                error=_describe_failure(exc),
                detail=exc.detail,
                failed_at=state,
            )

        return PipelineResult(
            state=PipelineState.PERSISTED_VALID,
            provider=provider,
            artifact=artifact,
            validation=validation,
            persisted=persisted,
        )

    def validate_code(self, code: str) -> ValidationResult:
        """Validate caller-supplied code without generating or persisting anything."""
        return self.validator.validate(code)


def _describe_failure(exc: AutopilotError) -> str:
    if isinstance(exc, GeneratorError):
        return f"failed to generate terraform code: {exc.message}"
    if isinstance(exc, ContentError):
        return f"failed to clean terraform code: {exc.message}"
    if isinstance(exc, ValidatorError):
        return f"failed to validate terraform code: {exc.message}"
    if isinstance(exc, ResourceError):
        return f"failed to save terraform file: {exc.message}"
    return exc.message


def build_pipeline(settings: Settings, require_default_credential: bool = True) -> TerraformPipeline:
    """Wire the configured backends, the Terraform CLI validator, and the output store.

    Raises:
        ConfigurationError: If the default provider has no credential and
            ``require_default_credential`` is set.
    """
    if require_default_credential and not settings.credential_for(settings.default_provider):
        raise ConfigurationError(
            f"credential for default provider '{settings.default_provider}' is not set"
        )

    return TerraformPipeline(
        generators=build_generators(settings),
        validator=TerraformValidator(
            binary=settings.terraform_binary,
            timeout_seconds=settings.validate_timeout_seconds,
        ),
        store=ArtifactStore(settings.output_dir),
        default_provider=settings.default_provider,
    )
