"""Exception taxonomy shared by the generation pipeline and its adapters."""

from __future__ import annotations

from enum import Enum


class GeneratorFailureKind(str, Enum):
    NOT_CONFIGURED = "not_configured"
    TIMEOUT = "timeout"
    PROVIDER_ERROR = "provider_error"
    EMPTY_RESPONSE = "empty_response"


class SanitizeFailureKind(str, Enum):
    EMPTY_INPUT = "empty_input"
    EMPTY_AFTER_CLEAN = "empty_after_clean"


class AllocationFailureKind(str, Enum):
    EXHAUSTED = "exhausted"


class AutopilotError(Exception):
    """Base class for every failure raised by ``tf_autopilot``."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class ConfigurationError(AutopilotError):
    """A required credential or setting is missing."""


class InputError(AutopilotError, ValueError):
    """Caller supplied blank or missing request fields."""


class UpstreamError(AutopilotError):
    """An external capability call failed."""


class GeneratorError(UpstreamError):
    def __init__(self, kind: GeneratorFailureKind, message: str, detail: str | None = None):
        super().__init__(message, detail)
        self.kind = kind


class ContentError(AutopilotError):
    """Generated text was empty or unusable."""


class SanitizeError(ContentError):
    def __init__(self, kind: SanitizeFailureKind, message: str):
        super().__init__(message)
        self.kind = kind


class ResourceError(AutopilotError):
    """Filesystem failure in a workspace or in the output directory."""


class ValidatorError(ResourceError):
    """The validation workspace could not be prepared."""


class AllocationError(ResourceError):
    def __init__(self, kind: AllocationFailureKind, message: str):
        super().__init__(message)
        self.kind = kind


class PersistenceError(ResourceError):
    """An accepted artifact could not be written."""
