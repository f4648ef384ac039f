"""kubectl wrappers for the declarative mutation side of a scenario.

For lower-level operations, import directly from submodules:

- entrywatch.kube.kubectl: namespace, manifest, patch, delete and secret calls
- entrywatch.kube.mutator: the ResourceMutator protocol and its kubectl backend
- entrywatch.kube.portforward: loopback port-forwards to cluster pods
- entrywatch.kube.validation: executable checks and decoding helpers

"""

from __future__ import annotations

from entrywatch.kube.errors import HelmError, KubectlError, SecretDecodeError
from entrywatch.kube.mutator import KubectlMutator, ResourceMutator
from entrywatch.kube.validation import require_exe

__all__ = [
    "HelmError",
    "KubectlError",
    "KubectlMutator",
    "ResourceMutator",
    "SecretDecodeError",
    "require_exe",
]
