from __future__ import annotations

import logging

import pytest
import structlog

from tf_autopilot import log


@pytest.fixture
def configured(monkeypatch: pytest.MonkeyPatch) -> dict[str, object]:
    captured: dict[str, object] = {}
    monkeypatch.setattr(log.structlog, "configure", lambda **kwargs: captured.update(kwargs))
    monkeypatch.setattr(log.logging, "basicConfig", lambda **kwargs: captured.update(basic=kwargs))
    return captured


def test_configure_logging_given_json_format_when_configured_then_json_renderer_is_last(configured) -> None:
    # Given
    level, log_format = "debug", "json"

    # When
    log.configure_logging(level, log_format)

    # Then
    processors = configured["processors"]
    assert isinstance(processors[-1], structlog.processors.JSONRenderer)
    assert log.add_service_context in processors
    assert configured["basic"]["level"] == logging.DEBUG


def test_configure_logging_given_console_format_when_configured_then_console_renderer_is_last(configured) -> None:
    # Given
    level, log_format = "INFO", "console"

    # When
    log.configure_logging(level, log_format)

    # Then
    assert isinstance(configured["processors"][-1], structlog.dev.ConsoleRenderer)
    assert logging.getLogger("httpx").level == logging.WARNING


def test_configure_logging_given_unknown_level_when_configured_then_info_is_used(configured) -> None:
    # Given
    level = "chatty"

    # When
    log.configure_logging(level)

    # Then
    assert configured["basic"]["level"] == logging.INFO


def test_add_service_context_given_event_when_processed_then_service_name_is_added() -> None:
    # Given
    event = {"event": "Saved terraform file", "path": "out/openai_ec2_instance_1.tf"}

    # When
    processed = log.add_service_context(logging.getLogger("test"), "info", event)

    # Then
    assert processed["service"] == "tf-autopilot"
    assert processed["path"] == "out/openai_ec2_instance_1.tf"
