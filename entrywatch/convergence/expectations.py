"""Expectations over config entries and the "all of N" combinator.

An :class:`Expectation` names one config entry and the field values it should
hold (or that it should be absent). :func:`expectation_checks` turns a set of
expectations into one comparison closure per kind, and :func:`all_of` folds
those closures into a single attempt function for
:func:`entrywatch.convergence.poller.poll_until`. The combined attempt only
passes when every closure passes on the same attempt; a partial match is a
failure.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import typing as typ

from entrywatch.consul.errors import ConfigEntryNotFoundError, ConsulError
from entrywatch.convergence.poller import AttemptOutcome, Failed, Passed, Retryable
from entrywatch.namespaces import NamespaceScope

if typ.TYPE_CHECKING:
    from entrywatch.consul.client import ConfigEntryReader
    from entrywatch.consul.models import ConfigEntry, RecordKind
    from entrywatch.namespaces import ScenarioTargets

_MISSING = object()


def lookup_field(entry: object, path: str) -> object:
    """Resolve a dotted attribute path such as ``"splits.1.weight"``.

    Integer segments index into sequences. Returns a sentinel when any
    segment is missing so callers can report it as a mismatch.
    """
    current: object = entry
    for segment in path.split("."):
        if current is None:
            return _MISSING
        if segment.isdigit():
            if not isinstance(current, cabc.Sequence):
                return _MISSING
            index = int(segment)
            if index >= len(current):
                return _MISSING
            current = current[index]
        else:
            current = getattr(current, segment, _MISSING)
            if current is _MISSING:
                return _MISSING
    return current


@dataclasses.dataclass(frozen=True, slots=True)
class Expectation:
    """Expected state of one config entry.

    Attributes
    ----------
    kind
        Config entry kind.
    name
        Config entry name in the backing store.
    fields
        Dotted field path mapped to the expected value.
    present
        False when the entry is expected to be gone.
    scope
        Whether the entry lives in the tenant's backing namespace or the
        global one.

    """

    kind: RecordKind
    name: str
    fields: cabc.Mapping[str, object] = dataclasses.field(default_factory=dict)
    present: bool = True
    scope: NamespaceScope = NamespaceScope.TENANT

    def absent(self) -> Expectation:
        """Return the deletion counterpart of this expectation."""
        return dataclasses.replace(self, fields={}, present=False)

    def mismatches(self, entry: ConfigEntry) -> list[str]:
        """Describe every field of ``entry`` that differs from expectation."""
        problems: list[str] = []
        for path, expected in self.fields.items():
            actual = lookup_field(entry, path)
            if actual is _MISSING:
                problems.append(f"{path} is missing, expected {expected!r}")
            elif actual != expected:
                problems.append(f"{path} is {actual!r}, expected {expected!r}")
        return problems


def check_expectation(
    reader: ConfigEntryReader, namespace: str, expectation: Expectation
) -> AttemptOutcome:
    """Observe one entry once and compare it with ``expectation``."""
    label = f"{expectation.kind}/{expectation.name} in namespace '{namespace}'"
    try:
        entry = reader.get(namespace, expectation.kind, expectation.name)
    except ConfigEntryNotFoundError:
        if expectation.present:
            return Failed(f"{label} not found")
        return Passed()
    except ConsulError as exc:
        return Retryable(exc)

    if not expectation.present:
        return Failed(f"{label} still exists")

    problems = expectation.mismatches(entry)
    if problems:
        return Failed(f"{label}: {', '.join(problems)}")
    return Passed()


Check = typ.Callable[[], AttemptOutcome]


def expectation_checks(
    reader: ConfigEntryReader,
    targets: ScenarioTargets,
    expectations: cabc.Iterable[Expectation],
) -> dict[RecordKind, Check]:
    """Build one comparison closure per kind.

    Each closure queries the namespace chosen by the expectation's scope; the
    routing policy is not consulted again here.
    """
    checks: dict[RecordKind, Check] = {}
    for expectation in expectations:
        namespace = targets.namespace_for(expectation.scope)

        def _check(
            expectation: Expectation = expectation, namespace: str = namespace
        ) -> AttemptOutcome:
            return check_expectation(reader, namespace, expectation)

        checks[expectation.kind] = _check
    return checks


def all_of(checks: cabc.Mapping[RecordKind, Check]) -> Check:
    """Combine per-kind checks into one attempt that passes only if all do.

    Every check runs on every attempt so the failure reason lists all kinds
    that have not converged yet.
    """

    def _attempt() -> AttemptOutcome:
        reasons: list[str] = []
        for kind, check in checks.items():
            outcome = check()
            match outcome:
                case Passed():
                    continue
                case Failed(reason=reason):
                    reasons.append(reason)
                case Retryable():
                    reasons.append(f"{kind}: {outcome.reason}")
        if reasons:
            return Failed("; ".join(reasons))
        return Passed()

    return _attempt
