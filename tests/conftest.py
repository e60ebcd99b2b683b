"""
Pytest configuration and shared fixtures for the test suite.
"""

import json
import logging
import os
import tempfile

import pytest

from query_demo.config import SystemConfig, ExportConfig, APIConfig, LoggingConfig, set_config
from query_demo.errors import set_error_handler
from query_demo.models.entities import Record


class FakeTimer:
    """Stand-in for ``threading.Timer`` that fires only when told to."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled and not self.fired:
            self.fired = True
            self.function(*self.args, **self.kwargs)

    def join(self, timeout=None):
        self.fire()


@pytest.fixture
def fake_timers():
    """Factory producing FakeTimers; the created timers are kept on ``.created``."""
    created = []

    def factory(interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args=args, kwargs=kwargs)
        created.append(timer)
        return timer

    factory.created = created
    return factory


@pytest.fixture
def sample_records():
    """Small collection with a score tie between ids 2 and 4."""
    return (
        Record(id=1, name="Acme Analytics Suite", category="Analytics", score=92),
        Record(id=2, name="Beacon Billing", category="FinTech", score=84),
        Record(id=3, name="Cinder CRM", category="Sales", score=88),
        Record(id=4, name="Bolt Billing", category="FinTech", score=84),
        Record(id="x-5", name="Echo ETL", category="Data", score=81.5),
    )


@pytest.fixture
def temp_config_file():
    """Create a temporary configuration file for testing."""
    config_data = {
        "export": {
            "filename_prefix": "report",
            "download_dir": "out",
            "release_delay_seconds": 0.25
        },
        "api": {
            "host": "127.0.0.1",
            "port": 9000
        },
        "logging": {
            "level": "DEBUG",
            "format": "json"
        }
    }

    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
        json.dump(config_data, f)
        temp_file = f.name

    yield temp_file

    os.unlink(temp_file)


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up mock environment variables for testing."""
    env_vars = {
        "EXPORT_PREFIX": "env_results",
        "EXPORT_DIR": "/tmp/env-downloads",
        "EXPORT_RELEASE_DELAY": "2.5",
        "API_HOST": "127.0.0.1",
        "API_PORT": "8081",
        "LOG_LEVEL": "DEBUG"
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    return env_vars


@pytest.fixture
def test_config(tmp_path):
    """Configuration with an immediate release and a per-test download dir."""
    return SystemConfig(
        export=ExportConfig(
            download_dir=str(tmp_path / "downloads"),
            release_delay_seconds=0.0
        ),
        api=APIConfig(host="127.0.0.1", port=8000),
        logging=LoggingConfig(level="WARNING", format="text")
    )


@pytest.fixture(autouse=True)
def setup_test_config(test_config):
    """Automatically install the test configuration for all tests."""
    set_config(test_config)
    set_error_handler(None)

    yield test_config

    set_config(None)
    set_error_handler(None)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handler changes made by setup_logging (CLI runs, logging tests)."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level

    yield

    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
