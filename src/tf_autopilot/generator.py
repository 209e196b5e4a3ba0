"""Generator backends that turn a resource/specs pair into raw Terraform text."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Protocol

import httpx
import openai

from tf_autopilot.config import Settings
from tf_autopilot.errors import GeneratorError, GeneratorFailureKind, InputError
from tf_autopilot.log import get_logger
from tf_autopilot.prompting import build_terraform_prompt

logger = get_logger(__name__)

GENERATION_TIMEOUT_SECONDS = 30.0
MAX_OUTPUT_TOKENS = 2000
TEMPERATURE = 0.2

GITHUB_MODELS_URL = "https://models.inference.ai.azure.com/chat/completions"


class CodeGenerator(Protocol):
    """Anything that can produce raw Terraform text for a request."""

    provider: str

    def generate(self, resource: str, specs: str) -> str: ...


class PromptedGenerator:
    """Shared request checks and prompt construction for every backend.

    Subclasses implement ``_complete`` and raise ``GeneratorError`` for
    provider-side failures. The whole ``_complete`` call is bounded by
    ``timeout_seconds`` of wall-clock time, on top of any per-phase timeout
    the client enforces.
    """

    provider = ""

    def __init__(
        self,
        api_key: str | None,
        model_name: str,
        timeout_seconds: float = GENERATION_TIMEOUT_SECONDS,
    ):
        self._api_key = api_key
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def generate(self, resource: str, specs: str) -> str:
        """Generate raw Terraform text.

        Args:
            resource: Short description of the infrastructure resource.
            specs: Free-text specification for the resource.

        Returns:
            The model's response text, untouched.

        Raises:
            InputError: If either argument is blank.
            GeneratorError: If the backend is unconfigured, times out, fails,
                or answers with nothing.
        """
        if not isinstance(resource, str) or not resource.strip():
            raise InputError("resource cannot be empty")
        if not isinstance(specs, str) or not specs.strip():
            raise InputError("specs cannot be empty")
        if not self.is_configured:
            raise GeneratorError(
                GeneratorFailureKind.NOT_CONFIGURED,
                f"{self.provider} generator is not configured",
            )

        logger.info("Generating Terraform code", provider=self.provider, resource=resource)
        text = self._complete_within_deadline(build_terraform_prompt(resource, specs))
        if not text or not text.strip():
            raise GeneratorError(
                GeneratorFailureKind.EMPTY_RESPONSE,
                f"{self.provider} returned empty content",
            )

        logger.info("Generated Terraform code", provider=self.provider, chars=len(text))
        return text

    def _complete_within_deadline(self, prompt: str) -> str:
        # A running worker cannot be cancelled; on timeout it is left to finish
        # in the background and its result is discarded.
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(self._complete, prompt)
            return future.result(timeout=self.timeout_seconds)
        except FuturesTimeoutError as exc:
            logger.warning(
                "Generation deadline exceeded",
                provider=self.provider,
                timeout_seconds=self.timeout_seconds,
            )
            raise GeneratorError(
                GeneratorFailureKind.TIMEOUT,
                f"{self.provider} request timed out",
                f"no response within {self.timeout_seconds:g}s",
            ) from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _complete(self, prompt: str) -> str:
        raise NotImplementedError


class OpenAIGenerator(PromptedGenerator):
    """Chat completion through the official OpenAI SDK."""

    provider = "openai"

    def __init__(
        self,
        api_key: str | None,
        model_name: str = "gpt-3.5-turbo",
        client: Any = None,
        timeout_seconds: float = GENERATION_TIMEOUT_SECONDS,
    ):
        super().__init__(api_key, model_name, timeout_seconds)
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self._api_key)

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = openai.OpenAI(
                api_key=self._api_key,
                timeout=httpx.Timeout(self.timeout_seconds),
                max_retries=0,
            )
        return self._client

    def _complete(self, prompt: str) -> str:
        try:
            response = self._get_client().chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": prompt}],
                temperature=TEMPERATURE,
                max_tokens=MAX_OUTPUT_TOKENS,
            )
        except openai.APITimeoutError as exc:
            logger.warning("OpenAI request timed out", timeout_seconds=self.timeout_seconds)
            raise GeneratorError(
                GeneratorFailureKind.TIMEOUT, "OpenAI request timed out", str(exc)
            ) from exc
        except openai.OpenAIError as exc:
            logger.error("Error calling OpenAI API", error=str(exc))
            raise GeneratorError(
                GeneratorFailureKind.PROVIDER_ERROR, "failed to call OpenAI API", str(exc)
            ) from exc

        if not response.choices:
            raise GeneratorError(
                GeneratorFailureKind.EMPTY_RESPONSE, "no response choices from OpenAI API"
            )
        return response.choices[0].message.content or ""


class CopilotGenerator(PromptedGenerator):
    """Chat completion against the GitHub Models inference endpoint."""

    provider = "copilot"

    def __init__(
        self,
        api_key: str | None,
        model_name: str = "gpt-4o-mini",
        client: httpx.Client | None = None,
        url: str = GITHUB_MODELS_URL,
        timeout_seconds: float = GENERATION_TIMEOUT_SECONDS,
    ):
        super().__init__(api_key, model_name, timeout_seconds)
        self._client = client
        self.url = url

    def _post(self, payload: dict[str, Any]) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        if self._client is not None:
            return self._client.post(self.url, json=payload, headers=headers)
        with httpx.Client(timeout=httpx.Timeout(self.timeout_seconds)) as client:
            return client.post(self.url, json=payload, headers=headers)

    def _complete(self, prompt: str) -> str:
        payload = {
            "messages": [{"role": "user", "content": prompt}],
            "model": self.model_name,
            "max_tokens": MAX_OUTPUT_TOKENS,
            "temperature": TEMPERATURE,
        }
        try:
            response = self._post(payload)
        except httpx.TimeoutException as exc:
            logger.warning("GitHub Models request timed out", timeout_seconds=self.timeout_seconds)
            raise GeneratorError(
                GeneratorFailureKind.TIMEOUT, "GitHub Models request timed out", str(exc)
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Error calling GitHub Models API", error=str(exc))
            raise GeneratorError(
                GeneratorFailureKind.PROVIDER_ERROR, "failed to call GitHub Models API", str(exc)
            ) from exc

        if response.status_code != httpx.codes.OK:
            logger.error("GitHub Models API returned an error", status_code=response.status_code)
            raise GeneratorError(
                GeneratorFailureKind.PROVIDER_ERROR,
                f"GitHub Models API error (status {response.status_code})",
                response.text,
            )
        return _first_choice_content(response)


def _first_choice_content(response: httpx.Response) -> str:
    """Pull ``choices[0].message.content`` out of a chat completion body."""
    try:
        body = response.json()
    except ValueError as exc:
        raise GeneratorError(
            GeneratorFailureKind.PROVIDER_ERROR, "failed to parse GitHub Models response", str(exc)
        ) from exc
    if not isinstance(body, dict):
        raise GeneratorError(
            GeneratorFailureKind.PROVIDER_ERROR,
            "unexpected GitHub Models response",
            f"expected a JSON object, got {type(body).__name__}",
        )

    choices = body.get("choices") or []
    if not isinstance(choices, list):
        raise GeneratorError(
            GeneratorFailureKind.PROVIDER_ERROR,
            "unexpected GitHub Models response",
            f"choices must be a list, got {type(choices).__name__}",
        )
    if not choices:
        raise GeneratorError(
            GeneratorFailureKind.EMPTY_RESPONSE, "no response choices from GitHub Models API"
        )

    choice = choices[0]
    message = choice.get("message") if isinstance(choice, dict) else None
    if not isinstance(choice, dict) or (message is not None and not isinstance(message, dict)):
        raise GeneratorError(
            GeneratorFailureKind.PROVIDER_ERROR,
            "unexpected GitHub Models response",
            f"choice must be an object with an object message, got {choice!r:.200}",
        )

    content = (message or {}).get("content")
    if content is not None and not isinstance(content, str):
        raise GeneratorError(
            GeneratorFailureKind.PROVIDER_ERROR,
            "unexpected GitHub Models response",
            f"message content must be a string, got {type(content).__name__}",
        )
    return content or ""


class GeminiGenerator(PromptedGenerator):
    """Thin adapter around Google GenAI content generation."""

    provider = "gemini"

    def __init__(
        self,
        api_key: str | None,
        model_name: str = "gemini-2.5-flash",
        timeout_seconds: float = GENERATION_TIMEOUT_SECONDS,
    ):
        super().__init__(api_key, model_name, timeout_seconds)

    def _complete(self, prompt: str) -> str:
        from google import genai
        from google.genai import errors, types

        client = genai.Client(
            api_key=self._api_key,
            http_options=types.HttpOptions(timeout=int(self.timeout_seconds * 1000)),
        )
        try:
            response = client.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=TEMPERATURE,
                    max_output_tokens=MAX_OUTPUT_TOKENS,
                ),
            )
        except httpx.TimeoutException as exc:
            raise GeneratorError(
                GeneratorFailureKind.TIMEOUT, "Gemini request timed out", str(exc)
            ) from exc
        except (errors.APIError, httpx.HTTPError) as exc:
            logger.error("Error calling Gemini API", error=str(exc))
            raise GeneratorError(
                GeneratorFailureKind.PROVIDER_ERROR, "failed to call Gemini API", str(exc)
            ) from exc

        return response.text or ""


def build_generators(settings: Settings) -> dict[str, CodeGenerator]:
    """Construct every known backend keyed by provider tag.

    Backends without a credential are still registered; calling them raises
    ``GeneratorError`` with kind ``NOT_CONFIGURED``.
    """
    return {
        "openai": OpenAIGenerator(settings.credential_for("openai"), settings.openai_model),
        "copilot": CopilotGenerator(settings.credential_for("copilot"), settings.copilot_model),
        "gemini": GeminiGenerator(settings.credential_for("gemini"), settings.gemini_model),
    }
