"""FastAPI routes for generating and validating Terraform."""

from __future__ import annotations

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from tf_autopilot.config import Settings, get_settings
from tf_autopilot.errors import AutopilotError
from tf_autopilot.log import get_logger
from tf_autopilot.models import GenerationRequest, PipelineState, ValidationResult
from tf_autopilot.pipeline import TerraformPipeline, build_pipeline

logger = get_logger(__name__)

HEALTHY_STATUS = "Service is healthy"

PROVIDER_LABELS = {
    "copilot": "GitHub Copilot",
    "gemini": "Gemini",
}


class TerraformRequest(BaseModel):
    resource: str = ""
    specs: str = ""


class ValidationRequest(BaseModel):
    terraform_code: str = Field(default="", alias="terraformCode")


class TerraformResponse(BaseModel):
    message: str
    terraform_code: str = Field(serialization_alias="terraformCode")
    validation: ValidationResult | None = None


class ValidationResponse(BaseModel):
    message: str
    validation: ValidationResult


class HealthResponse(BaseModel):
    status: str


class ErrorResponse(BaseModel):
    error: str
    details: str = ""


router = APIRouter(tags=["Provision"])


def get_pipeline(request: Request) -> TerraformPipeline:
    return request.app.state.pipeline


def _error(status_code: int, error: str, details: str = "") -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, details=details).model_dump(),
    )


def _generation_messages(provider: str) -> tuple[str, str]:
    label = PROVIDER_LABELS.get(provider)
    if label is None:
        return (
            "Terraform code generated successfully",
            "Terraform code generated with validation errors",
        )
    return (
        f"Terraform code generated successfully using {label}",
        f"Terraform code generated using {label} with validation errors",
    )


def _generate(body: TerraformRequest, pipeline: TerraformPipeline, provider: str) -> JSONResponse:
    if not body.resource.strip() or not body.specs.strip():
        return _error(400, "Resource and specs fields cannot be empty")

    result = pipeline.run(GenerationRequest(resource=body.resource, specs=body.specs), provider)
    if not result.succeeded:
        return _error(500, result.error or "terraform generation failed", result.detail or "")

    success_message, invalid_message = _generation_messages(provider)
    if result.state is PipelineState.PERSISTED_VALID:
        status_code, message = 200, success_message
    else:
        status_code, message = 201, invalid_message

    response = TerraformResponse(
        message=message,
        terraform_code=result.code or "",
        validation=result.validation,
    )
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json", by_alias=True))


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status=HEALTHY_STATUS)


@router.post("/terraform")
def generate_terraform(
    body: TerraformRequest,
    pipeline: TerraformPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Generate Terraform with the default backend; persist it only when it validates."""
    return _generate(body, pipeline, pipeline.default_provider)


@router.post("/terraform-copilot")
def generate_terraform_with_copilot(
    body: TerraformRequest,
    pipeline: TerraformPipeline = Depends(get_pipeline),
) -> JSONResponse:
    return _generate(body, pipeline, "copilot")


@router.post("/terraform-gemini")
def generate_terraform_with_gemini(
    body: TerraformRequest,
    pipeline: TerraformPipeline = Depends(get_pipeline),
) -> JSONResponse:
    return _generate(body, pipeline, "gemini")


@router.post("/terraform-validate")
def validate_terraform(
    body: ValidationRequest,
    pipeline: TerraformPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Validate caller-supplied Terraform. 200 when valid, 422 when not."""
    if not body.terraform_code.strip():
        return _error(400, "terraformCode field cannot be empty")

    try:
        validation = pipeline.validate_code(body.terraform_code)
    except AutopilotError as exc:
        logger.error("Failed to validate terraform code", error=str(exc))
        return _error(500, "Failed to validate terraform code", str(exc))

    response = ValidationResponse(message="Terraform validation completed", validation=validation)
    status_code = 200 if validation.is_valid else 422
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json", by_alias=True))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    field_errors = []
    for error in exc.errors():
        loc = ".".join(str(x) for x in error.get("loc", []))
        field_errors.append(f"{loc}: {error.get('msg', 'Invalid value')}")
    return _error(400, "Invalid request format", "; ".join(field_errors))


async def autopilot_exception_handler(request: Request, exc: AutopilotError) -> JSONResponse:
    logger.error("Unhandled error", path=request.url.path, error=str(exc))
    return _error(500, exc.message, exc.detail or "")


def create_app(
    settings: Settings | None = None,
    pipeline: TerraformPipeline | None = None,
) -> FastAPI:
    """Create the application.

    When no pipeline is injected one is built from ``settings``; a missing
    default-provider credential raises ``ConfigurationError`` here, before
    the server accepts traffic.
    """
    settings = settings or get_settings()
    if pipeline is None:
        pipeline = build_pipeline(settings)

    app = FastAPI(
        title="Terraform Autopilot",
        description="Generate, validate, and store Terraform from natural-language requests",
        version="0.1.0",
    )
    app.state.pipeline = pipeline
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(AutopilotError, autopilot_exception_handler)
    app.include_router(router, prefix=settings.api_prefix)

    logger.info(
        "Provision API ready",
        prefix=settings.api_prefix,
        providers=pipeline.providers,
        default=pipeline.default_provider,
    )
    return app
