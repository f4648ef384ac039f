"""Bounded polling until an asynchronously reconciled state is observed.

``poll_until`` calls an attempt function up to ``budget.max_attempts`` times.
Each attempt reports one of three outcomes:

- :class:`Passed`: the expected state is visible; polling stops immediately.
- :class:`Failed`: the backend answered but does not match yet.
- :class:`Retryable`: the backend could not answer (transport errors,
  missing records, unready servers).

``Failed`` and ``Retryable`` take the same path: sleep ``budget.interval_s``
and try again. When the budget is spent the last reason is raised in a
:class:`ConvergenceExhaustedError`.

Examples
--------
>>> budget = RetryBudget(max_attempts=3, interval_s=0.0)
>>> poll_until(budget, lambda: Passed()).attempts
1

"""

from __future__ import annotations

import dataclasses
import time
import typing as typ

from entrywatch.errors import EntrywatchError
from entrywatch.logging import get_logger, log_debug, log_error, log_info

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class RetryBudget:
    """How many times to poll and how long to wait between attempts.

    Attributes
    ----------
    max_attempts
        Total attempts, including the first. Must be at least 1.
    interval_s
        Seconds slept after each unsuccessful attempt except the last.

    """

    max_attempts: int
    interval_s: float

    def __post_init__(self) -> None:
        """Reject budgets that could never make an attempt."""
        if self.max_attempts < 1:
            msg = f"max_attempts must be >= 1, got {self.max_attempts}"
            raise ValueError(msg)
        if self.interval_s < 0:
            msg = f"interval_s must be >= 0, got {self.interval_s}"
            raise ValueError(msg)

    @property
    def total_wait_s(self) -> float:
        """Upper bound on time spent sleeping across all attempts."""
        return (self.max_attempts - 1) * self.interval_s


# The controller can take upwards of a minute to win leader election after
# the release starts, so first-time convergence gets a long budget.
COLD_START = RetryBudget(max_attempts=60, interval_s=1.0)
# Once the controller is warm a single mutation reconciles within seconds.
STEADY_STATE = RetryBudget(max_attempts=10, interval_s=0.5)
# The controller's mutating webhook sporadically refuses connections while
# starting, so the initial apply is retried too.
APPLY = RetryBudget(max_attempts=20, interval_s=0.5)


@dataclasses.dataclass(frozen=True, slots=True)
class Passed:
    """The expected state was observed."""


@dataclasses.dataclass(frozen=True, slots=True)
class Failed:
    """The backend answered but the state does not match yet."""

    reason: str


@dataclasses.dataclass(frozen=True, slots=True)
class Retryable:
    """The backend could not be observed on this attempt."""

    error: Exception

    @property
    def reason(self) -> str:
        """Describe the underlying error."""
        return f"{type(self.error).__name__}: {self.error}"


AttemptOutcome = Passed | Failed | Retryable


@dataclasses.dataclass(frozen=True, slots=True)
class PollSuccess:
    """Result of a poll that observed the expected state."""

    attempts: int


class ConvergenceExhaustedError(EntrywatchError):
    """Raised when the expected state was not observed within the budget.

    Attributes
    ----------
    attempts
        Number of attempts made.
    last_reason
        Failure reason reported by the final attempt.

    """

    def __init__(self, message: str, *, attempts: int, last_reason: str) -> None:
        """Initialise with the attempt count and last failure reason."""
        self.attempts = attempts
        self.last_reason = last_reason
        super().__init__(message)

    @classmethod
    def after(
        cls, description: str, attempts: int, last_reason: str
    ) -> ConvergenceExhaustedError:
        """Return an error for a budget spent without a pass."""
        msg = (
            f"{description} did not converge after {attempts} attempts; "
            f"last failure: {last_reason}"
        )
        return cls(msg, attempts=attempts, last_reason=last_reason)


def poll_until(
    budget: RetryBudget,
    attempt: typ.Callable[[], AttemptOutcome],
    *,
    description: str = "condition",
    sleep: typ.Callable[[float], None] = time.sleep,
) -> PollSuccess:
    """Call ``attempt`` until it passes or ``budget`` is spent.

    Parameters
    ----------
    budget
        Attempt count and interval.
    attempt
        Performs one observation and reports its outcome.
    description
        Human-readable label used in logs and the exhaustion error.
    sleep
        Blocking sleep used between attempts.

    Returns
    -------
    PollSuccess
        The number of attempts it took to pass.

    Raises
    ------
    ConvergenceExhaustedError
        If no attempt passed. Carries the last failure reason.

    """
    last_reason = "no attempt was made"
    for attempt_number in range(1, budget.max_attempts + 1):
        outcome = attempt()
        match outcome:
            case Passed():
                log_info(
                    logger,
                    "%s converged after %d attempt(s)",
                    description,
                    attempt_number,
                )
                return PollSuccess(attempts=attempt_number)
            case Failed(reason=reason):
                last_reason = reason
            case Retryable():
                last_reason = outcome.reason

        log_debug(
            logger,
            "%s not converged (attempt %d/%d): %s",
            description,
            attempt_number,
            budget.max_attempts,
            last_reason,
        )
        if attempt_number < budget.max_attempts:
            sleep(budget.interval_s)

    log_error(
        logger,
        "%s gave up after %d attempts: %s",
        description,
        budget.max_attempts,
        last_reason,
    )
    raise ConvergenceExhaustedError.after(description, budget.max_attempts, last_reason)
