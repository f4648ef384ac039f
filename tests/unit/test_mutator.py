"""Unit tests for the kubectl-backed resource mutator."""

from __future__ import annotations

import json

from entrywatch.consul.models import RecordKind
from entrywatch.kube.mutator import KubectlMutator
from tests.helpers.subprocess_mock import MockSubprocessCapture

ENV = {"KUBECONFIG": "/tmp/kubeconfig"}  # noqa: S108


class TestKubectlMutator:
    """Tests for KubectlMutator."""

    def test_apply_targets_tenant(
        self, mock_subprocess_run: MockSubprocessCapture
    ) -> None:
        """Manifests are applied into the tenant namespace."""
        KubectlMutator(tenant="ns1", env=ENV).apply("kind: ServiceRouter\n")
        assert mock_subprocess_run.calls == [
            ("kubectl", "apply", "--namespace=ns1", "-f", "-")
        ]

    def test_patch_uses_kube_resource_name(
        self, mock_subprocess_run: MockSubprocessCapture
    ) -> None:
        """Kinds are translated to kubectl resource names."""
        KubectlMutator(tenant="ns1", env=ENV).patch(
            RecordKind.SERVICE_SPLITTER, "splitter", {"spec": {"splits": []}}
        )
        call = mock_subprocess_run.calls[0]
        assert call[3:5] == ("servicesplitter", "splitter")
        assert json.loads(call[-1]) == {"spec": {"splits": []}}

    def test_delete(self, mock_subprocess_run: MockSubprocessCapture) -> None:
        """Deletes address the tenant namespace."""
        KubectlMutator(tenant="team-a", env=ENV).delete(
            RecordKind.PROXY_DEFAULTS, "global"
        )
        assert mock_subprocess_run.calls == [
            ("kubectl", "delete", "--namespace=team-a", "proxydefaults", "global")
        ]
