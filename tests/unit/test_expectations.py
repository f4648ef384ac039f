"""Unit tests for config entry expectations and the all-of combinator."""

from __future__ import annotations

import pytest

from entrywatch.consul.errors import ConfigEntryNotFoundError, ConsulTransportError
from entrywatch.consul.models import (
    ConfigEntry,
    RecordKind,
    ServiceDefaultsEntry,
    ServiceSplit,
    ServiceSplitterEntry,
)
from entrywatch.convergence.expectations import (
    Expectation,
    all_of,
    check_expectation,
    expectation_checks,
    lookup_field,
)
from entrywatch.convergence.poller import Failed, Passed, Retryable
from entrywatch.namespaces import (
    FixedDestination,
    Mirror,
    NamespaceScope,
    ScenarioTargets,
)


class _DictReader:
    """ConfigEntryReader backed by a dictionary, recording every lookup."""

    def __init__(
        self,
        entries: dict[tuple[str, RecordKind, str], ConfigEntry] | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self.entries = entries or {}
        self.error = error
        self.lookups: list[tuple[str, RecordKind, str]] = []

    def get(self, namespace: str, kind: RecordKind, name: str) -> ConfigEntry:
        self.lookups.append((namespace, kind, name))
        if self.error is not None:
            raise self.error
        try:
            return self.entries[(namespace, kind, name)]
        except KeyError:
            raise ConfigEntryNotFoundError.for_lookup(kind, name, namespace) from None


def _defaults(protocol: str, namespace: str = "ns1") -> ServiceDefaultsEntry:
    return ServiceDefaultsEntry(
        kind="service-defaults", name="defaults", namespace=namespace, protocol=protocol
    )


def _reader_with(entry: ServiceDefaultsEntry) -> _DictReader:
    key = (entry.namespace, RecordKind.SERVICE_DEFAULTS, entry.name)
    return _DictReader({key: entry})


DEFAULTS_HTTP = Expectation(
    kind=RecordKind.SERVICE_DEFAULTS, name="defaults", fields={"protocol": "http"}
)


class TestLookupField:
    """Tests for lookup_field."""

    def test_nested_index_path(self) -> None:
        """Digit segments index into lists."""
        entry = ServiceSplitterEntry(
            kind="service-splitter",
            name="splitter",
            splits=[ServiceSplit(weight=50), ServiceSplit(weight=50, service="b")],
        )
        assert lookup_field(entry, "splits.1.service") == "b"

    def test_missing_index_is_reported_as_missing(self) -> None:
        """An out-of-range index yields a mismatch, not an exception."""
        entry = ServiceSplitterEntry(kind="service-splitter", name="splitter")
        expectation = Expectation(
            kind=RecordKind.SERVICE_SPLITTER,
            name="splitter",
            fields={"splits.0.weight": 100},
        )
        assert expectation.mismatches(entry) == [
            "splits.0.weight is missing, expected 100"
        ]


class TestCheckExpectation:
    """Tests for check_expectation."""

    def test_matching_entry_passes(self) -> None:
        """A present entry with matching fields passes."""
        reader = _reader_with(_defaults("http"))
        assert check_expectation(reader, "ns1", DEFAULTS_HTTP) == Passed()

    def test_mismatching_field_fails_with_detail(self) -> None:
        """A field mismatch names the path, actual and expected values."""
        reader = _reader_with(_defaults("tcp"))
        outcome = check_expectation(reader, "ns1", DEFAULTS_HTTP)
        assert isinstance(outcome, Failed)
        assert "protocol is 'tcp', expected 'http'" in outcome.reason

    def test_missing_entry_fails_when_presence_expected(self) -> None:
        """A not-found entry is a failure for a presence check."""
        outcome = check_expectation(_DictReader(), "ns1", DEFAULTS_HTTP)
        assert isinstance(outcome, Failed)
        assert "not found" in outcome.reason

    def test_missing_entry_passes_when_absence_expected(self) -> None:
        """Not-found is the success condition for deletion checks."""
        outcome = check_expectation(_DictReader(), "ns1", DEFAULTS_HTTP.absent())
        assert outcome == Passed()

    def test_existing_entry_fails_when_absence_expected(self) -> None:
        """An entry that still exists fails a deletion check."""
        reader = _reader_with(_defaults("http"))
        outcome = check_expectation(reader, "ns1", DEFAULTS_HTTP.absent())
        assert isinstance(outcome, Failed)
        assert "still exists" in outcome.reason

    def test_transport_error_is_retryable(self) -> None:
        """Transport errors never pass, even for deletion checks."""
        error = ConsulTransportError.timeout("http://127.0.0.1:8500")
        reader = _DictReader(error=error)
        outcome = check_expectation(reader, "ns1", DEFAULTS_HTTP.absent())
        assert outcome == Retryable(error)

    def test_entry_in_other_namespace_does_not_satisfy(self) -> None:
        """A matching entry in the wrong namespace is still not found."""
        reader = _reader_with(_defaults("http", "other"))
        outcome = check_expectation(reader, "ns1", DEFAULTS_HTTP)
        assert isinstance(outcome, Failed)


class TestExpectationChecks:
    """Tests for expectation_checks namespace selection."""

    @pytest.mark.parametrize(
        ("policy", "expected_namespace"),
        [(Mirror(), "ns1"), (FixedDestination("from-k8s"), "from-k8s")],
    )
    def test_queries_resolved_namespaces(
        self, policy: Mirror | FixedDestination, expected_namespace: str
    ) -> None:
        """Tenant entries use the resolved namespace; global ones use default."""
        reader = _DictReader()
        targets = ScenarioTargets.resolve("ns1", policy)
        checks = expectation_checks(
            reader,
            targets,
            [
                DEFAULTS_HTTP,
                Expectation(
                    kind=RecordKind.PROXY_DEFAULTS,
                    name="global",
                    scope=NamespaceScope.GLOBAL,
                ),
            ],
        )
        for check in checks.values():
            check()
        assert reader.lookups == [
            (expected_namespace, RecordKind.SERVICE_DEFAULTS, "defaults"),
            ("default", RecordKind.PROXY_DEFAULTS, "global"),
        ]


class TestAllOf:
    """Tests for the all_of combinator."""

    def test_all_pass(self) -> None:
        """All passing checks pass together."""
        attempt = all_of(
            {
                RecordKind.SERVICE_DEFAULTS: Passed,
                RecordKind.SERVICE_ROUTER: Passed,
            }
        )
        assert attempt() == Passed()

    def test_partial_convergence_fails(self) -> None:
        """Five of six passing is still a failure naming the sixth."""
        checks = {kind: Passed for kind in RecordKind}
        checks[RecordKind.SERVICE_SPLITTER] = lambda: Failed("splitter lagging")
        outcome = all_of(checks)()
        assert outcome == Failed("splitter lagging")

    def test_every_check_runs_each_attempt(self) -> None:
        """Failures do not short-circuit the remaining checks."""
        calls: list[str] = []

        def _failing() -> Failed:
            calls.append("router")
            return Failed("router lagging")

        def _retryable() -> Retryable:
            calls.append("resolver")
            return Retryable(ConsulTransportError.timeout("http://x"))

        outcome = all_of(
            {
                RecordKind.SERVICE_ROUTER: _failing,
                RecordKind.SERVICE_RESOLVER: _retryable,
            }
        )()
        assert calls == ["router", "resolver"]
        assert isinstance(outcome, Failed)
        assert outcome.reason.startswith("router lagging; service-resolver: ")
