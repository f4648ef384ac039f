"""Polling helpers that wait for the controller to converge."""

from __future__ import annotations

from entrywatch.convergence.expectations import (
    Expectation,
    all_of,
    check_expectation,
    expectation_checks,
)
from entrywatch.convergence.poller import (
    APPLY,
    COLD_START,
    STEADY_STATE,
    AttemptOutcome,
    ConvergenceExhaustedError,
    Failed,
    Passed,
    PollSuccess,
    Retryable,
    RetryBudget,
    poll_until,
)

__all__ = [
    "APPLY",
    "COLD_START",
    "STEADY_STATE",
    "AttemptOutcome",
    "ConvergenceExhaustedError",
    "Expectation",
    "Failed",
    "Passed",
    "PollSuccess",
    "RetryBudget",
    "Retryable",
    "all_of",
    "check_expectation",
    "expectation_checks",
    "poll_until",
]
