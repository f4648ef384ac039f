"""Scenario parameters: routing policy x security mode.

Each :class:`ScenarioCase` is one independently runnable scenario. The four
standard cases cover both routing policies with and without ACLs and TLS.
"""

from __future__ import annotations

import dataclasses
import enum

from entrywatch.errors import HarnessConfigError
from entrywatch.namespaces import FixedDestination, Mirror, RoutingPolicy

DEFAULT_TENANT = "ns1"
DEFAULT_DESTINATION = "from-k8s"


class SecurityMode(enum.StrEnum):
    """Whether the release runs with ACLs and TLS enabled."""

    OPEN = "open"
    SECURED = "secured"


def _helm_bool(value: bool) -> str:  # noqa: FBT001
    return "true" if value else "false"


@dataclasses.dataclass(frozen=True, slots=True)
class ScenarioCase:
    """One combination of routing policy and security mode.

    Attributes
    ----------
    name
        Human-readable case name used on the command line.
    policy
        Routing policy configured on the release.
    security
        Security mode of the release.
    tenant
        Kubernetes namespace holding the source custom resources.

    """

    name: str
    policy: RoutingPolicy
    security: SecurityMode = SecurityMode.OPEN
    tenant: str = DEFAULT_TENANT

    @property
    def secure(self) -> bool:
        """Return True when ACLs and TLS are enabled."""
        return self.security is SecurityMode.SECURED

    def with_tenant(self, tenant: str) -> ScenarioCase:
        """Return a copy running against a different tenant namespace."""
        return dataclasses.replace(self, tenant=tenant)

    def helm_values(self, image: str | None = None) -> dict[str, str]:
        """Return the ``--set`` values that configure the release for this case.

        With mirroring enabled the destination namespace setting is ignored by
        the chart; it is still set to the tenant so the values stay complete.
        """
        match self.policy:
            case Mirror():
                mirroring, destination = True, self.tenant
            case FixedDestination(target=target):
                mirroring, destination = False, target

        values = {
            "global.enableConsulNamespaces": "true",
            "controller.enabled": "true",
            "connectInject.enabled": "true",
            "connectInject.consulNamespaces.consulDestinationNamespace": destination,
            "connectInject.consulNamespaces.mirroringK8S": _helm_bool(mirroring),
            "global.acls.manageSystemACLs": _helm_bool(self.secure),
            "global.tls.enabled": _helm_bool(self.secure),
        }
        if image:
            values["global.image"] = image
        return values


STANDARD_CASES: tuple[ScenarioCase, ...] = (
    ScenarioCase(
        "single destination namespace (non-default)",
        FixedDestination(DEFAULT_DESTINATION),
    ),
    ScenarioCase(
        "single destination namespace (non-default); secure",
        FixedDestination(DEFAULT_DESTINATION),
        SecurityMode.SECURED,
    ),
    ScenarioCase("mirror k8s namespaces", Mirror()),
    ScenarioCase("mirror k8s namespaces; secure", Mirror(), SecurityMode.SECURED),
)


def find_case(name: str) -> ScenarioCase:
    """Return the standard case called ``name``.

    Raises
    ------
    HarnessConfigError
        If no standard case has that name.

    """
    for case in STANDARD_CASES:
        if case.name == name:
            return case
    raise HarnessConfigError.unknown_case(name, [case.name for case in STANDARD_CASES])
