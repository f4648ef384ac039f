"""Expected config entry state after each scenario phase."""

from __future__ import annotations

import typing as typ

from entrywatch.consul.models import RecordKind
from entrywatch.convergence.expectations import Expectation
from entrywatch.scenarios.fixtures import SOURCE_FIXTURES, SourceFixture

FieldTable = dict[RecordKind, dict[str, object]]

CREATED_FIELDS: FieldTable = {
    RecordKind.SERVICE_DEFAULTS: {"protocol": "http"},
    RecordKind.SERVICE_RESOLVER: {"redirect.service": "bar"},
    RecordKind.PROXY_DEFAULTS: {"mesh_gateway.mode": "local"},
    RecordKind.SERVICE_ROUTER: {"routes.0.match.http.path_prefix": "/foo"},
    RecordKind.SERVICE_SPLITTER: {"splits.0.weight": 100},
    RecordKind.SERVICE_INTENTIONS: {"sources.0.action": "allow"},
}

UPDATED_FIELDS: FieldTable = {
    RecordKind.SERVICE_DEFAULTS: {"protocol": "tcp"},
    RecordKind.SERVICE_RESOLVER: {"redirect.service": "baz"},
    RecordKind.PROXY_DEFAULTS: {"mesh_gateway.mode": "remote"},
    RecordKind.SERVICE_ROUTER: {"routes.0.match.http.path_prefix": "/baz"},
    RecordKind.SERVICE_SPLITTER: {
        "splits.0.weight": 50,
        "splits.1.weight": 50,
        "splits.1.service": "other-splitter",
    },
    RecordKind.SERVICE_INTENTIONS: {"sources.0.action": "deny"},
}


def expectations_for(
    table: FieldTable,
    fixtures: typ.Iterable[SourceFixture] = SOURCE_FIXTURES,
) -> list[Expectation]:
    """Pair each fixture with the field values ``table`` expects for its kind."""
    return [
        Expectation(
            kind=fixture.kind,
            name=fixture.record_name,
            fields=table[fixture.kind],
            scope=fixture.scope,
        )
        for fixture in fixtures
    ]


def created_expectations(
    fixtures: typ.Iterable[SourceFixture] = SOURCE_FIXTURES,
) -> list[Expectation]:
    """Expectations after the custom resources are first applied."""
    return expectations_for(CREATED_FIELDS, fixtures)


def updated_expectations(
    fixtures: typ.Iterable[SourceFixture] = SOURCE_FIXTURES,
) -> list[Expectation]:
    """Expectations after every custom resource is patched."""
    return expectations_for(UPDATED_FIELDS, fixtures)


def deleted_expectations(
    fixtures: typ.Iterable[SourceFixture] = SOURCE_FIXTURES,
) -> list[Expectation]:
    """Expectations after every custom resource is deleted."""
    return [expectation.absent() for expectation in created_expectations(fixtures)]
