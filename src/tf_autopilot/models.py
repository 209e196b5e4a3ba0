"""Pydantic models shared across generation, validation, and persistence layers."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class GenerationRequest(BaseModel):
    """A natural-language infrastructure request."""

    resource: str
    specs: str

    @field_validator("resource", "specs")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty string")
        return value


class GeneratedArtifact(BaseModel):
    """Raw model response paired with its sanitized form."""

    model_config = ConfigDict(populate_by_name=True)

    raw_text: str = Field(alias="rawText")
    normalized_text: str = Field(min_length=1, alias="normalizedText")


class Diagnostic(BaseModel):
    """One finding reported by ``terraform validate -json``."""

    severity: Literal["error", "warning"]
    summary: str = ""
    detail: str = ""
    line: int = 0
    column: int = 0

    def format(self) -> str:
        return f"Line {self.line}: {self.summary} - {self.detail}"


class ValidationResult(BaseModel):
    """Outcome of one validation call. Immutable once built."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    is_valid: bool = Field(alias="isValid")
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    raw_output: str = Field(default="", alias="rawOutput")
    elapsed_millis: int = Field(default=0, ge=0, alias="elapsedMillis")

    @model_validator(mode="after")
    def _valid_means_no_errors(self) -> ValidationResult:
        if self.is_valid and self.errors:
            raise ValueError("a valid result cannot carry errors")
        return self


class PersistedFile(BaseModel):
    """An accepted artifact written to the output directory."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    path: str
    provider_tag: str = Field(alias="providerTag")
    sequence_index: int = Field(ge=1, alias="sequenceIndex")


class PipelineState(str, Enum):
    RECEIVED = "received"
    GENERATING = "generating"
    SANITIZING = "sanitizing"
    VALIDATING = "validating"
    PERSISTED_VALID = "persisted_valid"
    PERSISTED_INVALID = "persisted_invalid"
    FAILED = "failed"


class PipelineResult(BaseModel):
    """Terminal state of one generate/clean/validate/persist run."""

    state: PipelineState
    provider: str
    artifact: GeneratedArtifact | None = None
    validation: ValidationResult | None = None
    persisted: PersistedFile | None = None
    error: str | None = None
    detail: str | None = None
    failed_at: PipelineState | None = None

    @property
    def code(self) -> str | None:
        return self.artifact.normalized_text if self.artifact else None

    @property
    def succeeded(self) -> bool:
        return self.state in (PipelineState.PERSISTED_VALID, PipelineState.PERSISTED_INVALID)
