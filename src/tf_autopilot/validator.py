"""Terraform CLI adapter: run ``init``/``validate`` in a throwaway workspace."""

from __future__ import annotations

import json
import shutil
import subprocess
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ValidationError

from tf_autopilot.errors import ValidatorError
from tf_autopilot.log import get_logger
from tf_autopilot.models import Diagnostic, ValidationResult

logger = get_logger(__name__)

WORKSPACE_PREFIX = "terraform_validate_"
SOURCE_FILENAME = "main.tf"
WRAPPER_PREFIX = "terraform validate failed:"


class Validator(Protocol):
    def validate(self, code: str) -> ValidationResult: ...


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    output: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


Runner = Callable[[list[str], Path, float], CommandResult]


def run_cmd(cmd: list[str], cwd: Path, timeout: float) -> CommandResult:
    """Run a command with stdout and stderr combined, never raising on exit status."""
    try:
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        partial = exc.output or ""
        if isinstance(partial, bytes):
            partial = partial.decode("utf-8", errors="replace")
        return CommandResult(returncode=-1, output=partial, timed_out=True)
    except OSError as exc:
        return CommandResult(returncode=127, output=str(exc))
    return CommandResult(returncode=proc.returncode, output=proc.stdout or "")


class _Position(BaseModel):
    line: int = 0
    column: int = 0


class _Range(BaseModel):
    filename: str = ""
    start: _Position = _Position()


class _RawDiagnostic(BaseModel):
    severity: str
    summary: str = ""
    detail: str = ""
    range: _Range | None = None


class _ValidateDocument(BaseModel):
    valid: bool
    error_count: int = 0
    warning_count: int = 0
    diagnostics: list[_RawDiagnostic] = []


def _parse_document(output: str) -> _ValidateDocument | None:
    try:
        data = json.loads(output)
    except ValueError:
        return None
    if not isinstance(data, dict) or "valid" not in data:
        return None
    try:
        return _ValidateDocument.model_validate(data)
    except ValidationError:
        return None


def _diagnostics_from(document: _ValidateDocument) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for raw in document.diagnostics:
        if raw.severity not in ("error", "warning"):
            continue
        start = raw.range.start if raw.range else _Position()
        diagnostics.append(
            Diagnostic(
                severity=raw.severity,
                summary=raw.summary,
                detail=raw.detail,
                line=start.line,
                column=start.column,
            )
        )
    return diagnostics


def parse_diagnostics(output: str) -> list[Diagnostic] | None:
    """Parse ``terraform validate -json`` output.

    Returns:
        Error and warning diagnostics in document order, or ``None`` when the
        output is not a structured validate document.
    """
    document = _parse_document(output)
    if document is None:
        return None
    return _diagnostics_from(document)


def extract_errors(output: str) -> list[str]:
    """Turn check-step output into error messages.

    Structured output is preferred. Otherwise every non-blank line becomes an
    error, and when even that yields nothing the whole output is the error.
    """
    document = _parse_document(output)
    if document is not None:
        errors = [d.format() for d in _diagnostics_from(document) if d.severity == "error"]
        if errors:
            return errors
        if not document.valid:
            return [f"Validation failed with {document.error_count} errors"]

    errors = [
        line.strip()
        for line in output.splitlines()
        if line.strip() and not line.strip().startswith(WRAPPER_PREFIX)
    ]
    return errors or [output]


def extract_warnings(output: str) -> list[str]:
    return [d.format() for d in parse_diagnostics(output) or [] if d.severity == "warning"]


class TerraformValidator:
    """Validate Terraform source with the local ``terraform`` CLI.

    Each call gets its own temporary directory holding a single ``main.tf``;
    the directory is removed on every exit path.
    """

    def __init__(
        self,
        binary: str = "terraform",
        timeout_seconds: float = 120.0,
        runner: Runner = run_cmd,
        which: Callable[[str], str | None] = shutil.which,
    ):
        self.binary = binary
        self.timeout_seconds = timeout_seconds
        self._runner = runner
        self._which = which

    def is_available(self) -> bool:
        return self._which(self.binary) is not None

    def validate(self, code: str) -> ValidationResult:
        """Run ``terraform init`` then ``terraform validate -json`` on ``code``.

        A missing CLI, a failed init, and a failed check are all reported as
        a negative ``ValidationResult``.

        Raises:
            ValidatorError: If the temporary workspace cannot be created.
        """
        started = time.monotonic()
        if not self.is_available():
            return ValidationResult(
                is_valid=False,
                errors=[f"Terraform CLI ({self.binary}) is not installed or not available in PATH"],
                elapsed_millis=_elapsed_ms(started),
            )

        workspace = _create_workspace(code)
        try:
            init = self._run(["init", "-input=false", "-backend=false", "-no-color"], workspace)
            if not init.ok:
                logger.warning("Terraform init failed", workspace=str(workspace), reason=self._describe(init))
                return ValidationResult(
                    is_valid=False,
                    errors=[f"Terraform init failed: {self._describe(init)}"],
                    raw_output=init.output,
                    elapsed_millis=_elapsed_ms(started),
                )

            check = self._run(["validate", "-no-color", "-json"], workspace)
            elapsed = _elapsed_ms(started)
        finally:
            _cleanup_workspace(workspace)

        if check.timed_out:
            return ValidationResult(
                is_valid=False,
                errors=[f"Terraform validate {self._describe(check)}"],
                raw_output=check.output,
                elapsed_millis=elapsed,
            )
        if not check.ok:
            return ValidationResult(
                is_valid=False,
                errors=extract_errors(check.output),
                warnings=extract_warnings(check.output),
                raw_output=check.output,
                elapsed_millis=elapsed,
            )
        return ValidationResult(
            is_valid=True,
            warnings=extract_warnings(check.output),
            raw_output=check.output,
            elapsed_millis=elapsed,
        )

    def _run(self, args: list[str], workspace: Path) -> CommandResult:
        return self._runner([self.binary, *args], workspace, self.timeout_seconds)

    def _describe(self, result: CommandResult) -> str:
        if result.timed_out:
            return f"timed out after {self.timeout_seconds:g}s"
        return f"exit status {result.returncode}"


def _elapsed_ms(started: float) -> int:
    return max(0, int((time.monotonic() - started) * 1000))


def _create_workspace(code: str) -> Path:
    try:
        workspace = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX))
    except OSError as exc:
        raise ValidatorError("failed to create temporary directory", str(exc)) from exc

    try:
        (workspace / SOURCE_FILENAME).write_text(code, encoding="utf-8")
    except OSError as exc:
        _cleanup_workspace(workspace)
        raise ValidatorError("failed to write terraform file", str(exc)) from exc
    return workspace


def _cleanup_workspace(workspace: Path) -> None:
    try:
        shutil.rmtree(workspace)
    except OSError as exc:
        logger.warning("Failed to clean up temp dir", workspace=str(workspace), error=str(exc))
