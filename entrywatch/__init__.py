"""Reconciliation-verification harness for a custom-resource controller.

entrywatch applies, patches and deletes custom resources in a Kubernetes
namespace and polls the Consul config API until the controller has
reconciled each change into the expected backing namespace.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
