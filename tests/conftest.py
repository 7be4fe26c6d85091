"""Pytest configuration and fixtures for newtboot tests.

The console output module binds its stream when first imported, which under
pytest is a capture object that may already be closed by the time a later
test logs. Every test gets output routed to the current sys.stdout instead,
with verbose mode off.
"""

import sys

import pytest

from newtboot import output


@pytest.fixture(autouse=True)
def _route_console_output(monkeypatch):  # noqa: PT004
    """Point timestamped output at this test's stdout and reset verbosity."""
    monkeypatch.setattr(output, "_output_stream", sys.stdout)
    monkeypatch.setattr(output, "_verbose", False)
    output.init_timer()
    yield

    # Restore if they were closed during the test
    if sys.stdout.closed:
        sys.stdout = sys.__stdout__
    if sys.stderr.closed:
        sys.stderr = sys.__stderr__
