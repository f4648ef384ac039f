"""Helm release operations for scenario environments.

This module wraps the ``helm`` calls that install and remove the chart
release a scenario observes. It keeps subprocess usage in one place so the
scenario environment stays focused on workflow; chart contents are never
interpreted here.

Examples
--------
Install a release with scenario values and remove it afterwards:

    install_release("test-3f9a", Path("charts/consul"), values, "default", env)
    uninstall_release("test-3f9a", "default", env)

"""

from __future__ import annotations

import secrets
import subprocess
import typing as typ

from entrywatch.kube.errors import HelmError
from entrywatch.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

logger = get_logger(__name__)

# Timeout for Helm install operations (seconds).
_HELM_INSTALL_TIMEOUT = 600
_HELM_UNINSTALL_TIMEOUT = 300


def random_release_name(prefix: str = "test") -> str:
    """Return a unique, DNS-safe release name such as ``test-1a2b3c4d``."""
    return f"{prefix}-{secrets.token_hex(4)}"


def set_arguments(values: cabc.Mapping[str, str]) -> list[str]:
    """Render ``values`` as repeated ``--set key=value`` arguments, sorted by key."""
    args: list[str] = []
    for key in sorted(values):
        args.extend(["--set", f"{key}={values[key]}"])
    return args


def _run_helm(args: list[str], env: dict[str, str], timeout: int) -> None:
    cmd = ["helm", *args]
    try:
        # S603: helm via PATH is standard; args from validated config
        result = subprocess.run(  # noqa: S603
            cmd,
            capture_output=True,
            text=True,
            check=False,
            env=env,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise HelmError.timed_out(cmd, timeout) from exc
    if result.returncode != 0:
        raise HelmError.command_failed(cmd, result.returncode, result.stderr or "")


def install_release(
    release_name: str,
    chart_path: Path,
    values: cabc.Mapping[str, str],
    namespace: str,
    env: dict[str, str],
) -> None:
    """Install (or upgrade) a chart release and wait for its workloads.

    Raises
    ------
    HelmError
        If the chart directory does not exist, or helm fails or times out.

    """
    if not chart_path.exists():
        msg = f"Helm chart not found at {chart_path}"
        raise HelmError(msg)

    log_info(logger, "installing release %s from %s", release_name, chart_path)
    _run_helm(
        [
            "upgrade",
            "--install",
            release_name,
            str(chart_path),
            "--namespace",
            namespace,
            *set_arguments(values),
            "--wait",
            "--timeout",
            f"{_HELM_INSTALL_TIMEOUT}s",
        ],
        env,
        _HELM_INSTALL_TIMEOUT + 30,
    )


def uninstall_release(release_name: str, namespace: str, env: dict[str, str]) -> None:
    """Uninstall a chart release."""
    log_info(logger, "uninstalling release %s", release_name)
    _run_helm(
        ["uninstall", release_name, "--namespace", namespace, "--wait"],
        env,
        _HELM_UNINSTALL_TIMEOUT,
    )
