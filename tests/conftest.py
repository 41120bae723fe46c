"""Pytest configuration shared by all gbuild tests."""

import logging
import sys
import warnings

import pytest
from rich.logging import RichHandler

# Stage threads may still hold file handles of tmp_path files at teardown
if sys.version_info >= (3, 13):
    warnings.filterwarnings("ignore", category=ResourceWarning)


@pytest.fixture(autouse=True)
def _drop_cli_log_handlers():  # noqa: PT004
    """Remove the RichHandler the CLI installs so later tests do not log to a closed console."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    root.setLevel(logging.WARNING)
