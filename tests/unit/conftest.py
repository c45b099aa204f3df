"""Fixtures for unit tests."""

import logging
from typing import Generator

import pytest
import structlog
from structlog.testing import LogCapture


@pytest.fixture(name="log_output")
def fixture_log_output() -> LogCapture:
    """Collect structlog events emitted during a test."""
    return LogCapture()


@pytest.fixture(autouse=True)
def configure_structlog(log_output: LogCapture) -> Generator[None, None, None]:
    """Route structlog events into log_output through the CLI's filtering logger at --verbose level."""
    structlog.configure(
        processors=[log_output],
        wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()
