"""Typed config entries decoded from the Consul config API.

Consul returns config entries as PascalCase JSON objects. Each kind the
controller manages has its own ``msgspec.Struct`` so expectations can compare
typed attributes instead of walking raw dictionaries. Unknown fields (raft
indexes, metadata) are ignored during decoding.
"""

from __future__ import annotations

import enum

import msgspec


class RecordKind(enum.StrEnum):
    """Config entry kinds produced by the controller's custom resources."""

    SERVICE_DEFAULTS = "service-defaults"
    SERVICE_RESOLVER = "service-resolver"
    PROXY_DEFAULTS = "proxy-defaults"
    SERVICE_ROUTER = "service-router"
    SERVICE_SPLITTER = "service-splitter"
    SERVICE_INTENTIONS = "service-intentions"

    @property
    def kube_resource(self) -> str:
        """Return the ``kubectl`` resource name of the source custom resource."""
        return self.value.replace("-", "")

    @property
    def kube_kind(self) -> str:
        """Return the custom resource ``kind`` used in manifests."""
        return "".join(part.capitalize() for part in self.value.split("-"))


class ConfigEntry(msgspec.Struct, rename="pascal"):
    """Fields common to every config entry."""

    kind: str
    name: str
    namespace: str = ""


class ServiceDefaultsEntry(ConfigEntry):
    """``service-defaults`` entry."""

    protocol: str = ""


class ServiceResolverRedirect(msgspec.Struct, rename="pascal"):
    """Redirect target of a service resolver."""

    service: str = ""
    namespace: str = ""


class ServiceResolverEntry(ConfigEntry):
    """``service-resolver`` entry."""

    redirect: ServiceResolverRedirect | None = None


class MeshGatewayConfig(msgspec.Struct, rename="pascal"):
    """Mesh gateway settings."""

    mode: str = ""


class ProxyDefaultsEntry(ConfigEntry):
    """``proxy-defaults`` entry; a singleton named ``global``."""

    mesh_gateway: MeshGatewayConfig = msgspec.field(default_factory=MeshGatewayConfig)


class ServiceRouteHTTPMatch(msgspec.Struct, rename="pascal"):
    """HTTP match criteria of a route."""

    path_prefix: str = ""
    path_exact: str = ""


class ServiceRouteMatch(msgspec.Struct, rename="pascal"):
    """Match block of a route."""

    http: ServiceRouteHTTPMatch | None = msgspec.field(default=None, name="HTTP")


class ServiceRoute(msgspec.Struct, rename="pascal"):
    """Single route of a service router."""

    match: ServiceRouteMatch | None = None


class ServiceRouterEntry(ConfigEntry):
    """``service-router`` entry."""

    routes: list[ServiceRoute] = msgspec.field(default_factory=list)


class ServiceSplit(msgspec.Struct, rename="pascal"):
    """Weighted split of a service splitter."""

    weight: float
    service: str = ""


class ServiceSplitterEntry(ConfigEntry):
    """``service-splitter`` entry."""

    splits: list[ServiceSplit] = msgspec.field(default_factory=list)


class SourceIntention(msgspec.Struct, rename="pascal"):
    """Source of a service intention."""

    name: str
    action: str = ""


class ServiceIntentionsEntry(ConfigEntry):
    """``service-intentions`` entry, named after its destination service."""

    sources: list[SourceIntention] = msgspec.field(default_factory=list)


RECORD_TYPES: dict[RecordKind, type[ConfigEntry]] = {
    RecordKind.SERVICE_DEFAULTS: ServiceDefaultsEntry,
    RecordKind.SERVICE_RESOLVER: ServiceResolverEntry,
    RecordKind.PROXY_DEFAULTS: ProxyDefaultsEntry,
    RecordKind.SERVICE_ROUTER: ServiceRouterEntry,
    RecordKind.SERVICE_SPLITTER: ServiceSplitterEntry,
    RecordKind.SERVICE_INTENTIONS: ServiceIntentionsEntry,
}


def decode_config_entry(kind: RecordKind, payload: bytes) -> ConfigEntry:
    """Decode a JSON payload into the struct registered for ``kind``.

    Raises
    ------
    msgspec.DecodeError
        If the payload is not valid JSON or does not match the struct.

    """
    return msgspec.json.decode(payload, type=RECORD_TYPES[kind])
