"""Kubernetes namespace and resource operations through kubectl.

All functions take an environment dictionary (see :func:`kubeconfig_env`) so
concurrent scenarios can target different kubeconfigs without touching the
process environment. Commands are single-shot; callers that need to wait for
the controller use :mod:`entrywatch.convergence`.

Examples
--------
Create the tenant namespace, tolerating a leftover one:

    env = kubeconfig_env(None)
    create_tenant_namespace("ns1", env)

Merge-patch a custom resource:

    patch_resource("servicedefaults", "defaults", {"spec": {"protocol": "tcp"}},
                   "ns1", env)

"""

from __future__ import annotations

import json
import os
import re
import subprocess
import typing as typ

from entrywatch.kube.errors import KubectlError, SecretDecodeError
from entrywatch.kube.validation import b64decode_k8s_secret_field
from entrywatch.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

logger = get_logger(__name__)

# Kubernetes secret keys must contain only alphanumeric, dot, underscore, or hyphen
_SECRET_KEY_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")

_DEFAULT_TIMEOUT = 60


def kubeconfig_env(kubeconfig: Path | None) -> dict[str, str]:
    """Return a copy of the environment with KUBECONFIG set when given."""
    env = dict(os.environ)
    if kubeconfig is not None:
        env["KUBECONFIG"] = str(kubeconfig)
    return env


def run_kubectl(
    args: cabc.Sequence[str],
    env: dict[str, str],
    *,
    stdin: str | None = None,
    timeout: int = _DEFAULT_TIMEOUT,
) -> str:
    """Run kubectl with ``args`` and return its standard output.

    Raises
    ------
    KubectlError
        If kubectl exits non-zero or exceeds ``timeout``.

    """
    cmd = ["kubectl", *args]
    try:
        # S603: kubectl via PATH is standard; args built from scenario config
        result = subprocess.run(  # noqa: S603
            cmd,
            input=stdin,
            capture_output=True,
            text=True,
            check=False,
            env=env,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise KubectlError.timed_out(cmd, timeout) from exc
    if result.returncode != 0:
        raise KubectlError.command_failed(cmd, result.returncode, result.stderr or "")
    return result.stdout or ""


def create_tenant_namespace(namespace: str, env: dict[str, str]) -> bool:
    """Create the scenario's tenant namespace.

    An "already exists" conflict is tolerated; any other failure propagates.

    Returns
    -------
    bool
        True if the namespace was created, False if it already existed.

    """
    log_info(logger, "creating namespace %s", namespace)
    try:
        run_kubectl(["create", "namespace", namespace], env)
    except KubectlError as exc:
        if exc.already_exists:
            log_info(logger, "namespace %s already exists, reusing", namespace)
            return False
        raise
    return True


def delete_namespace(namespace: str, env: dict[str, str]) -> None:
    """Delete a namespace and everything in it, ignoring a missing one."""
    run_kubectl(
        ["delete", "namespace", namespace, "--ignore-not-found", "--wait=false"], env
    )


def apply_manifest(manifest: str, namespace: str, env: dict[str, str]) -> None:
    """Apply a YAML manifest into ``namespace`` via stdin."""
    run_kubectl(["apply", f"--namespace={namespace}", "-f", "-"], env, stdin=manifest)


def patch_resource(
    resource: str,
    name: str,
    patch: cabc.Mapping[str, object],
    namespace: str,
    env: dict[str, str],
) -> None:
    """Apply a JSON merge patch to a namespaced resource."""
    run_kubectl(
        [
            "patch",
            f"--namespace={namespace}",
            resource,
            name,
            "--type=merge",
            "-p",
            json.dumps(patch),
        ],
        env,
    )


def delete_resource(
    resource: str, name: str, namespace: str, env: dict[str, str]
) -> None:
    """Delete a namespaced resource."""
    run_kubectl(["delete", f"--namespace={namespace}", resource, name], env)


def read_secret_field(
    secret_name: str, field: str, namespace: str, env: dict[str, str]
) -> str:
    """Read and decode a field from a Kubernetes secret.

    Dotted field names such as ``tls.crt`` are supported via quoted jsonpath.

    Parameters
    ----------
    secret_name : str
        Name of the Kubernetes secret.
    field : str
        Key within the secret's ``data`` section.
    namespace : str
        Kubernetes namespace containing the secret.
    env : dict[str, str]
        Environment dict with KUBECONFIG set.

    Returns
    -------
    str
        The decoded UTF-8 string value.

    Raises
    ------
    ValueError
        If field is empty or contains invalid characters.
    SecretDecodeError
        If the secret field is empty, missing, or not valid base64.

    """
    if not field:
        msg = "field cannot be empty"
        raise ValueError(msg)
    if not _SECRET_KEY_PATTERN.match(field):
        msg = (
            f"field '{field}' contains invalid characters; "
            "only alphanumeric, dot, underscore, and hyphen are allowed"
        )
        raise ValueError(msg)

    jsonpath = f"jsonpath={{.data['{field}']}}"
    output = run_kubectl(
        ["get", "secret", secret_name, f"--namespace={namespace}", "-o", jsonpath],
        env,
        timeout=30,
    ).strip()
    if not output:
        msg = (
            f"Secret '{secret_name}' field '{field}' is empty or missing "
            f"in namespace '{namespace}'"
        )
        raise SecretDecodeError(msg)

    return b64decode_k8s_secret_field(output)
