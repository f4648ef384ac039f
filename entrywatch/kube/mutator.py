"""kubectl-backed mutations of the controller's source custom resources."""

from __future__ import annotations

import dataclasses
import typing as typ

from entrywatch.kube.kubectl import apply_manifest, delete_resource, patch_resource
from entrywatch.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from entrywatch.consul.models import RecordKind

logger = get_logger(__name__)


class ResourceMutator(typ.Protocol):
    """Declarative mutations against the system under test.

    Mutations are fire-and-forget: returning only means kubectl accepted the
    request, not that the controller has reconciled it.
    """

    def apply(self, manifest: str) -> None:
        """Create or update the objects in ``manifest``."""
        ...

    def patch(
        self, kind: RecordKind, name: str, patch: cabc.Mapping[str, object]
    ) -> None:
        """Merge-patch the source object of ``kind`` named ``name``."""
        ...

    def delete(self, kind: RecordKind, name: str) -> None:
        """Delete the source object of ``kind`` named ``name``."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class KubectlMutator:
    """:class:`ResourceMutator` that shells out to kubectl in one tenant."""

    tenant: str
    env: dict[str, str]

    def apply(self, manifest: str) -> None:
        """Apply ``manifest`` into the tenant namespace."""
        log_info(logger, "applying custom resources in %s", self.tenant)
        apply_manifest(manifest, self.tenant, self.env)

    def patch(
        self, kind: RecordKind, name: str, patch: cabc.Mapping[str, object]
    ) -> None:
        """Merge-patch a custom resource in the tenant namespace."""
        log_info(logger, "patching %s custom resource %s", kind, name)
        patch_resource(kind.kube_resource, name, patch, self.tenant, self.env)

    def delete(self, kind: RecordKind, name: str) -> None:
        """Delete a custom resource from the tenant namespace."""
        log_info(logger, "deleting %s custom resource %s", kind, name)
        delete_resource(kind.kube_resource, name, self.tenant, self.env)
