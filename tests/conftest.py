"""
Pytest configuration and fixtures for bulk import tests
"""

import os

os.environ.setdefault("BI_AUTH_PASSWORD", "test-password")
os.environ.setdefault("BI_JWT_SECRET", "test-secret-that-is-at-least-32-characters")
os.environ.setdefault("BI_STORE_BACKEND", "sqlite")

import pytest  # noqa: E402

from bulk_import.imports.models import ImportType  # noqa: E402
from bulk_import.imports.orchestrator import ImportOrchestrator  # noqa: E402
from bulk_import.recovery.checkpoints import CheckpointStore  # noqa: E402
from tests.fakes import FakeClock, FakeStore, PassThroughValidator, SleepRecorder  # noqa: E402


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def checkpoint_dir(tmp_path):
    return tmp_path / "checkpoints"


@pytest.fixture
def checkpoints(checkpoint_dir, clock):
    return CheckpointStore(checkpoint_dir, clock=clock)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def validator():
    return PassThroughValidator()


@pytest.fixture
def make_orchestrator(store, checkpoints, validator, sleep):
    """Build an orchestrator wired to the in-memory fakes."""

    def _make(**overrides):
        options = {
            "batch_size": 50,
            "checkpoint_interval": 50,
            "max_attempts": 3,
            "retry_delay": 1.0,
            "checkpoint_retention": "7d",
            "sleep": sleep,
        }
        options.update(overrides)
        collaborators = {
            "store": options.pop("store", store),
            "validators": options.pop("validators", {ImportType.category: validator}),
            "checkpoints": options.pop("checkpoints", checkpoints),
        }
        return ImportOrchestrator(
            collaborators["store"],
            collaborators["validators"],
            collaborators["checkpoints"],
            **options,
        )

    return _make
