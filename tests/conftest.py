import logging
from pathlib import Path

import pytest
import structlog

INTEGRATION_DIR = Path(__file__).parent / "integration"


def pytest_collection_modifyitems(items, config):
    # Tests under tests/integration need a live server; mark them so `-m "not integration"` deselects them
    for item in items:
        if INTEGRATION_DIR in Path(str(item.fspath)).parents:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def capture_conduit_logs(caplog):
    """Let caplog see records of the ``conduit`` loggers, which do not propagate outside of tests."""
    caplog.set_level(logging.DEBUG)
    conduit_logger = logging.getLogger("conduit")
    original_propagate = conduit_logger.propagate
    conduit_logger.propagate = True
    yield
    conduit_logger.propagate = original_propagate


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any global structlog configuration made by a test that enabled structured logging."""
    yield
    structlog.reset_defaults()
