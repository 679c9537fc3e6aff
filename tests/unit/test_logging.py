"""Unit tests for femtologging integration helpers.

Run with:
    pytest tests/unit/test_logging.py
"""

from __future__ import annotations

import pytest

from parcel.logging import (
    configure_logging,
    format_log_message,
    log_debug,
    log_error,
    log_exception,
    log_info,
    log_warning,
    normalize_log_level,
)


class _FakeLogger:
    """Collects log calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, object | None, bool]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        self.calls.append((level, message, exc_info, stack_info))
        return message


@pytest.mark.parametrize(
    ("raw", "expected", "invalid"),
    [
        ("debug", "DEBUG", False),
        ("  Warn ", "WARN", False),
        (None, "INFO", True),
        ("", "INFO", True),
        ("verbose", "INFO", True),
    ],
)
def test_normalize_log_level(raw: str | None, expected: str, *, invalid: bool) -> None:
    """Levels are upper-cased; unknown or empty values fall back to INFO."""
    assert normalize_log_level(raw) == (expected, invalid)


def test_format_log_message_interpolates_percent_style() -> None:
    """Templates use percent-style placeholders."""
    assert format_log_message("%s was created: %d bytes", "share://a.zip", 42) == (
        "share://a.zip was created: 42 bytes"
    )


@pytest.mark.parametrize(
    ("helper", "level"),
    [
        (log_debug, "DEBUG"),
        (log_info, "INFO"),
        (log_warning, "WARNING"),
        (log_error, "ERROR"),
    ],
)
def test_level_helpers_format_and_forward(helper: object, level: str) -> None:
    """Each helper emits its level with a pre-formatted message."""
    logger = _FakeLogger()

    helper(logger, "report %s", "r-1")  # type: ignore[operator]

    assert logger.calls == [(level, "report r-1", None, False)]


def test_log_warning_forwards_exc_info() -> None:
    """exc_info reaches the underlying logger untouched."""
    logger = _FakeLogger()
    exc = OSError("disk full")

    log_warning(logger, "retrying %s", "r-1", exc_info=exc)

    assert logger.calls == [("WARNING", "retrying r-1", exc, False)]


def test_log_exception_does_not_interpolate() -> None:
    """log_exception emits the message verbatim at ERROR."""
    logger = _FakeLogger()
    exc = ValueError("boom")

    log_exception(logger, "failed at 100%", exc)

    assert logger.calls == [("ERROR", "failed at 100%", exc, False)]


@pytest.mark.parametrize(
    ("raw", "expected", "invalid"),
    [("error", "ERROR", False), ("loud", "INFO", True)],
)
def test_configure_logging_calls_basic_config(
    monkeypatch: pytest.MonkeyPatch,
    raw: str,
    expected: str,
    *,
    invalid: bool,
) -> None:
    """configure_logging passes the normalized level to femtologging."""
    captured: dict[str, object] = {}

    def fake_basic_config(**kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr("parcel.logging.basicConfig", fake_basic_config)

    assert configure_logging(raw) == (expected, invalid)
    assert captured == {"level": expected, "force": False}
