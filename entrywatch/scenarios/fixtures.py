"""Source custom resources applied by every scenario.

Each :class:`SourceFixture` describes one custom resource the controller turns
into a config entry: its initial ``spec``, the merge patch applied during the
update phase, and where the derived entry is expected to live.
"""

from __future__ import annotations

import dataclasses
import io
import typing as typ

from ruamel.yaml import YAML

from entrywatch.consul.models import RecordKind
from entrywatch.namespaces import NamespaceScope

API_VERSION = "consul.hashicorp.com/v1alpha1"

# Config entries for intentions are named after their destination service,
# not after the Kubernetes object.
INTENTION_DESTINATION = "svc1"


@dataclasses.dataclass(frozen=True, slots=True)
class SourceFixture:
    """A custom resource and the mutation applied to it.

    Attributes
    ----------
    kind
        Config entry kind the resource produces.
    name
        Kubernetes object name.
    spec
        ``spec`` of the resource at creation time.
    patch
        JSON merge patch applied during the update phase.
    entry_name
        Name of the derived config entry when it differs from ``name``.
    scope
        Where the derived entry is stored.

    """

    kind: RecordKind
    name: str
    spec: dict[str, typ.Any]
    patch: dict[str, typ.Any]
    entry_name: str | None = None
    scope: NamespaceScope = NamespaceScope.TENANT

    @property
    def record_name(self) -> str:
        """Return the name of the derived config entry."""
        return self.entry_name or self.name

    def manifest(self) -> dict[str, typ.Any]:
        """Return the custom resource as a manifest dictionary."""
        return {
            "apiVersion": API_VERSION,
            "kind": self.kind.kube_kind,
            "metadata": {
                "name": self.name,
                "labels": {"app.kubernetes.io/managed-by": "entrywatch"},
            },
            "spec": self.spec,
        }


SOURCE_FIXTURES: tuple[SourceFixture, ...] = (
    SourceFixture(
        kind=RecordKind.SERVICE_DEFAULTS,
        name="defaults",
        spec={"protocol": "http"},
        patch={"spec": {"protocol": "tcp"}},
    ),
    SourceFixture(
        kind=RecordKind.SERVICE_RESOLVER,
        name="resolver",
        spec={"redirect": {"service": "bar"}},
        patch={"spec": {"redirect": {"service": "baz"}}},
    ),
    SourceFixture(
        kind=RecordKind.PROXY_DEFAULTS,
        name="global",
        spec={"meshGateway": {"mode": "local"}},
        patch={"spec": {"meshGateway": {"mode": "remote"}}},
        scope=NamespaceScope.GLOBAL,
    ),
    SourceFixture(
        kind=RecordKind.SERVICE_ROUTER,
        name="router",
        spec={"routes": [{"match": {"http": {"pathPrefix": "/foo"}}}]},
        patch={"spec": {"routes": [{"match": {"http": {"pathPrefix": "/baz"}}}]}},
    ),
    SourceFixture(
        kind=RecordKind.SERVICE_SPLITTER,
        name="splitter",
        spec={"splits": [{"weight": 100}]},
        patch={
            "spec": {
                "splits": [
                    {"weight": 50},
                    {"weight": 50, "service": "other-splitter"},
                ]
            }
        },
    ),
    SourceFixture(
        kind=RecordKind.SERVICE_INTENTIONS,
        name="intentions",
        spec={
            "destination": {"name": INTENTION_DESTINATION},
            "sources": [{"name": "svc2", "action": "allow"}],
        },
        patch={"spec": {"sources": [{"name": "svc2", "action": "deny"}]}},
        entry_name=INTENTION_DESTINATION,
    ),
)


def render_manifests(fixtures: typ.Iterable[SourceFixture] = SOURCE_FIXTURES) -> str:
    """Render fixtures as a multi-document YAML stream for ``kubectl apply``."""
    yaml_serializer = YAML(typ="safe")
    yaml_serializer.default_flow_style = False
    yaml_serializer.indent(mapping=2, sequence=4, offset=2)
    with io.StringIO() as stream:
        yaml_serializer.dump_all([fixture.manifest() for fixture in fixtures], stream)
        return stream.getvalue()
