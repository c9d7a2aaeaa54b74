"""
Pytest configuration and shared fixtures for fprint-verify tests.

Shared fixtures build FakeDevice scanners (see fakes.py) and temporary
audit logs.
"""

import logging
import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional, Set

import pytest

# Add the parent directory to the path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fprint_verify.constants import Fprintd, ENV_PREFIX
from fprint_verify.event_logger import EventLogger

from fakes import FakeDevice


# ===========================================================================
# Fixtures
# ===========================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    tmpdir = tempfile.mkdtemp(prefix="fprint_verify_test_")
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def audit_log_path(temp_dir: Path) -> Path:
    return temp_dir / "audit" / "verify.log"


@pytest.fixture
def event_logger(audit_log_path: Path) -> EventLogger:
    return EventLogger(str(audit_log_path))


@pytest.fixture
def make_device() -> Callable[..., FakeDevice]:
    """Factory for FakeDevice instances."""
    return FakeDevice


@pytest.fixture
def fake_device_factory():
    """
    Device factory for the CLI that remembers the device it built.

    Set .events / .failures before calling main().
    """
    class Factory:
        def __init__(self):
            self.events: List[str] = []
            self.failures: Dict[str, Set[int]] = {}
            self.device: Optional[FakeDevice] = None
            self.kwargs: Dict = {}

        def __call__(self, **kwargs):
            self.kwargs = kwargs
            self.device = FakeDevice(events=self.events, failures=self.failures,
                                     object_path=kwargs.get('object_path', Fprintd.DEFAULT_DEVICE_PATH),
                                     timeout=kwargs.get('timeout'))
            return self.device

    return Factory()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep FPRINT_VERIFY_* settings from the host out of tests."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def restore_root_logger():
    """Restore root logger handlers and level after tests that reconfigure logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


# ===========================================================================
# Pytest Configuration
# ===========================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
