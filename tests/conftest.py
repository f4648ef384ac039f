"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import pytest

from entrywatch.namespaces import Mirror, ScenarioTargets
from tests.helpers.fake_controller import FakeController
from tests.helpers.sleep_recorder import SleepRecorder
from tests.helpers.subprocess_mock import MockSubprocessCapture, make_subprocess_mock


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    """Provide a non-blocking sleep that records its calls."""
    return SleepRecorder()


@pytest.fixture
def mirror_targets() -> ScenarioTargets:
    """Targets for the mirror policy with tenant ``ns1``."""
    return ScenarioTargets.resolve("ns1", Mirror())


@pytest.fixture
def fake_controller(mirror_targets: ScenarioTargets) -> FakeController:
    """Provide an in-memory controller that reconciles immediately."""
    return FakeController(targets=mirror_targets)


@pytest.fixture
def subprocess_capture() -> MockSubprocessCapture:
    """Provide an empty capture for subprocess mocks."""
    return MockSubprocessCapture()


@pytest.fixture
def mock_subprocess_run(
    monkeypatch: pytest.MonkeyPatch, subprocess_capture: MockSubprocessCapture
) -> MockSubprocessCapture:
    """Mock subprocess.run with always-successful results."""
    monkeypatch.setattr("subprocess.run", make_subprocess_mock(subprocess_capture))
    return subprocess_capture
