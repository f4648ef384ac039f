"""Scenario cases, fixtures and the driver that verifies them.

Public API
----------
ScenarioCase
    One routing-policy x security-mode combination.
STANDARD_CASES
    The four cases run by default.
ScenarioDriver
    Runs the create, update and delete phases against injected collaborators.
run_case
    Provisions an isolated environment for a case and drives it.
run_cases
    Runs several cases, optionally concurrently.

"""

from __future__ import annotations

from entrywatch.scenarios.cases import (
    STANDARD_CASES,
    ScenarioCase,
    SecurityMode,
    find_case,
)
from entrywatch.scenarios.driver import PhaseResult, ScenarioDriver, ScenarioReport
from entrywatch.scenarios.environment import CaseOutcome, run_case, run_cases

__all__ = [
    "STANDARD_CASES",
    "CaseOutcome",
    "PhaseResult",
    "ScenarioCase",
    "ScenarioDriver",
    "ScenarioReport",
    "SecurityMode",
    "find_case",
    "run_case",
    "run_cases",
]
