from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from tf_autopilot.models import ValidationResult
from tf_autopilot.pipeline import TerraformPipeline
from tf_autopilot.store import ArtifactStore

EC2_TERRAFORM = """resource "aws_instance" "web" {
  ami           = "ami-0c55b159cbfafe1f0"
  instance_type = "t3.micro"
}"""


class FakeGenerator:
    def __init__(self, provider: str = "openai", response: str = "", error: Exception | None = None):
        self.provider = provider
        self.response = response
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def generate(self, resource: str, specs: str) -> str:
        self.calls.append((resource, specs))
        if self.error is not None:
            raise self.error
        return self.response


class FakeValidator:
    def __init__(self, result: ValidationResult | None = None, error: Exception | None = None):
        self.result = result or ValidationResult(is_valid=True, raw_output='{"valid": true}')
        self.error = error
        self.calls: list[str] = []

    def validate(self, code: str) -> ValidationResult:
        self.calls.append(code)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def terraform_code() -> str:
    return EC2_TERRAFORM


@pytest.fixture
def fenced_response() -> str:
    return f"```terraform\n{EC2_TERRAFORM}\n```"


@pytest.fixture
def invalid_validate_output() -> str:
    return json.dumps(
        {
            "format_version": "1.0",
            "valid": False,
            "error_count": 2,
            "warning_count": 1,
            "diagnostics": [
                {
                    "severity": "error",
                    "summary": "Unsupported argument",
                    "detail": 'An argument named "instnce_type" is not expected here.',
                    "range": {"filename": "main.tf", "start": {"line": 3, "column": 3}},
                },
                {
                    "severity": "warning",
                    "summary": "Deprecated attribute",
                    "detail": "The attribute is deprecated.",
                    "range": {"filename": "main.tf", "start": {"line": 5, "column": 1}},
                },
                {
                    "severity": "error",
                    "summary": "Missing required argument",
                    "detail": 'The argument "ami" is required, but no definition was found.',
                    "range": {"filename": "main.tf", "start": {"line": 1, "column": 30}},
                },
            ],
        }
    )


@pytest.fixture
def invalid_result(invalid_validate_output) -> ValidationResult:
    return ValidationResult(
        is_valid=False,
        errors=[
            'Line 3: Unsupported argument - An argument named "instnce_type" is not expected here.',
            'Line 1: Missing required argument - The argument "ami" is required, but no definition was found.',
        ],
        raw_output=invalid_validate_output,
        elapsed_millis=42,
    )


@pytest.fixture
def make_pipeline(tmp_path, fenced_response):
    def _make(
        generator: FakeGenerator | None = None,
        validator: FakeValidator | None = None,
        extra_generators: list[FakeGenerator] | None = None,
    ) -> TerraformPipeline:
        generators = {"openai": generator or FakeGenerator(response=fenced_response)}
        for extra in extra_generators or []:
            generators[extra.provider] = extra
        return TerraformPipeline(
            generators=generators,
            validator=validator or FakeValidator(),
            store=ArtifactStore(tmp_path / "tf-generated-files"),
            default_provider="openai",
        )

    return _make
