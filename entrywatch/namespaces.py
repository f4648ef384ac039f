"""Routing policies that decide where derived config entries are stored.

The controller copies each custom resource from a Kubernetes namespace (the
*tenant*) into a Consul namespace (the *backing namespace*). Two mutually
exclusive policies decide which one:

- ``Mirror``: every tenant maps to a backing namespace of the same name.
- ``FixedDestination``: every tenant collapses into one configured namespace.

The policy is resolved once when a scenario is set up; queries then use the
resulting :class:`ScenarioTargets` and never branch on the policy again.

Examples
--------
>>> resolve_backing_namespace("ns1", Mirror())
'ns1'
>>> resolve_backing_namespace("ns1", FixedDestination("from-k8s"))
'from-k8s'

"""

from __future__ import annotations

import dataclasses
import enum

# Namespace that holds global, singleton config entries such as proxy-defaults.
DEFAULT_BACKING_NAMESPACE = "default"


@dataclasses.dataclass(frozen=True, slots=True)
class Mirror:
    """Mirror each tenant into a backing namespace with the same name."""


@dataclasses.dataclass(frozen=True, slots=True)
class FixedDestination:
    """Route every tenant into a single backing namespace."""

    target: str


RoutingPolicy = Mirror | FixedDestination


def resolve_backing_namespace(tenant: str, policy: RoutingPolicy) -> str:
    """Return the backing namespace holding records derived from ``tenant``."""
    match policy:
        case Mirror():
            return tenant
        case FixedDestination(target=target):
            return target


class NamespaceScope(enum.StrEnum):
    """Where an expected record lives relative to the scenario's tenant."""

    TENANT = "tenant"
    GLOBAL = "global"


@dataclasses.dataclass(frozen=True, slots=True)
class ScenarioTargets:
    """Backing namespaces resolved for one scenario run.

    Attributes
    ----------
    tenant_namespace
        Backing namespace for records derived from the scenario's tenant.
    global_namespace
        Backing namespace for singleton records that ignore routing.

    """

    tenant_namespace: str
    global_namespace: str = DEFAULT_BACKING_NAMESPACE

    @classmethod
    def resolve(cls, tenant: str, policy: RoutingPolicy) -> ScenarioTargets:
        """Resolve ``policy`` for ``tenant`` once, at scenario setup."""
        return cls(tenant_namespace=resolve_backing_namespace(tenant, policy))

    def namespace_for(self, scope: NamespaceScope) -> str:
        """Return the backing namespace to query for ``scope``."""
        if scope is NamespaceScope.GLOBAL:
            return self.global_namespace
        return self.tenant_namespace
