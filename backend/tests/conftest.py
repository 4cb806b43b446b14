"""
Shared fixtures for the table data tests
"""
import pytest
from loguru import logger

from tabledata.conversion import reset_default_registry


class LogCapture:
    """Collects loguru records so tests can assert on warnings and errors."""

    def __init__(self):
        self.records = []

    def sink(self, message):
        self.records.append(message.record)

    def messages(self, level=None):
        return [r["message"] for r in self.records if level is None or r["level"].name == level]

    def warnings(self):
        return self.messages("WARNING")

    def errors(self):
        return self.messages("ERROR")


@pytest.fixture
def log_capture():
    """Capture everything logged at DEBUG and above during a test."""
    capture = LogCapture()
    handler_id = logger.add(capture.sink, level="DEBUG")
    yield capture
    logger.remove(handler_id)


@pytest.fixture(autouse=True)
def fresh_default_registry():
    """Keep converters registered on the shared registry from leaking between tests."""
    reset_default_registry()
    yield
    reset_default_registry()
