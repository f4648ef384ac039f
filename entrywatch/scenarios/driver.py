"""Drive one scenario: create, patch and delete, verifying convergence after each.

The driver never writes config entries itself. It mutates source custom
resources through a :class:`~entrywatch.kube.mutator.ResourceMutator` and then
polls the backing store through a
:class:`~entrywatch.consul.client.ConfigEntryReader` until every kind reaches
the expected state for the phase.

Examples
--------
>>> targets = ScenarioTargets.resolve("ns1", Mirror())
>>> driver = ScenarioDriver(mutator=mutator, reader=reader, targets=targets)
>>> report = driver.run()
>>> [phase.phase for phase in report.phases]
['created', 'updated', 'deleted']

"""

from __future__ import annotations

import dataclasses
import time
import typing as typ

from entrywatch.convergence.expectations import all_of, expectation_checks
from entrywatch.convergence.poller import (
    APPLY,
    COLD_START,
    STEADY_STATE,
    AttemptOutcome,
    Passed,
    Retryable,
    RetryBudget,
    poll_until,
)
from entrywatch.kube.errors import KubectlError
from entrywatch.logging import get_logger, log_info
from entrywatch.scenarios.expectations import (
    created_expectations,
    deleted_expectations,
    updated_expectations,
)
from entrywatch.scenarios.fixtures import SOURCE_FIXTURES, render_manifests

if typ.TYPE_CHECKING:
    from entrywatch.consul.client import ConfigEntryReader
    from entrywatch.convergence.expectations import Expectation
    from entrywatch.kube.mutator import ResourceMutator
    from entrywatch.namespaces import ScenarioTargets
    from entrywatch.scenarios.fixtures import SourceFixture

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class PhaseResult:
    """Outcome of one verified phase."""

    phase: str
    attempts: int


@dataclasses.dataclass(slots=True)
class ScenarioReport:
    """Phases verified so far by a driver."""

    phases: list[PhaseResult] = dataclasses.field(default_factory=list)


class ScenarioDriver:
    """Run the create, update and delete phases of one scenario.

    Parameters
    ----------
    mutator
        Applies, patches and deletes the source custom resources.
    reader
        Reads config entries from the backing store.
    targets
        Backing namespaces resolved once for the scenario.
    cold_start
        Budget for the first convergence after the release starts.
    steady_state
        Budget for convergence after the update and delete phases.
    apply_budget
        Budget for retrying the initial apply while the webhook starts.
    fixtures
        Source custom resources to drive.
    sleep
        Blocking sleep used between poll attempts.

    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        mutator: ResourceMutator,
        reader: ConfigEntryReader,
        targets: ScenarioTargets,
        cold_start: RetryBudget = COLD_START,
        steady_state: RetryBudget = STEADY_STATE,
        apply_budget: RetryBudget = APPLY,
        fixtures: tuple[SourceFixture, ...] = SOURCE_FIXTURES,
        sleep: typ.Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialise the driver with its collaborators and budgets."""
        self._mutator = mutator
        self._reader = reader
        self._targets = targets
        self._cold_start = cold_start
        self._steady_state = steady_state
        self._apply_budget = apply_budget
        self._fixtures = fixtures
        self._sleep = sleep
        self.report = ScenarioReport()

    def run(self) -> ScenarioReport:
        """Run every phase in order and return the report."""
        self.create()
        self.verify_created()
        self.update()
        self.verify_updated()
        self.delete()
        self.verify_deleted()
        return self.report

    def create(self) -> None:
        """Apply all source custom resources, retrying while kubectl fails."""
        manifest = render_manifests(self._fixtures)

        def _apply() -> AttemptOutcome:
            try:
                self._mutator.apply(manifest)
            except KubectlError as exc:
                return Retryable(exc)
            return Passed()

        log_info(logger, "creating custom resources")
        poll_until(
            self._apply_budget,
            _apply,
            description="custom resource apply",
            sleep=self._sleep,
        )

    def verify_created(self) -> PhaseResult:
        """Wait for every entry to appear with its creation-time values."""
        return self._verify(
            "created", created_expectations(self._fixtures), self._cold_start
        )

    def update(self) -> None:
        """Merge-patch every source custom resource."""
        for fixture in self._fixtures:
            self._mutator.patch(fixture.kind, fixture.name, fixture.patch)

    def verify_updated(self) -> PhaseResult:
        """Wait for every entry to reflect its patch."""
        return self._verify(
            "updated", updated_expectations(self._fixtures), self._steady_state
        )

    def delete(self) -> None:
        """Delete every source custom resource."""
        for fixture in self._fixtures:
            self._mutator.delete(fixture.kind, fixture.name)

    def verify_deleted(self) -> PhaseResult:
        """Wait for every entry to be gone."""
        return self._verify(
            "deleted", deleted_expectations(self._fixtures), self._steady_state
        )

    def _verify(
        self, phase: str, expectations: list[Expectation], budget: RetryBudget
    ) -> PhaseResult:
        attempt = all_of(expectation_checks(self._reader, self._targets, expectations))
        success = poll_until(
            budget,
            attempt,
            description=f"{phase} config entries",
            sleep=self._sleep,
        )
        result = PhaseResult(phase=phase, attempts=success.attempts)
        self.report.phases.append(result)
        return result
