"""Port-forward a pod port to the loopback interface for the duration of a block."""

from __future__ import annotations

import contextlib
import socket
import subprocess
import tempfile
import typing as typ

from entrywatch.convergence.poller import (
    AttemptOutcome,
    Failed,
    Passed,
    RetryBudget,
    poll_until,
)
from entrywatch.kube.errors import KubectlError
from entrywatch.kube.validation import pick_free_loopback_port
from entrywatch.logging import get_logger, log_info

logger = get_logger(__name__)

_READY_BUDGET = RetryBudget(max_attempts=30, interval_s=0.5)
_STOP_TIMEOUT_S = 5


def _listening(port: int) -> bool:
    try:
        with socket.create_connection(("127.0.0.1", port), timeout=1):
            return True
    except OSError:
        return False


@contextlib.contextmanager
def port_forward(
    pod: str,
    remote_port: int,
    namespace: str,
    env: dict[str, str],
    *,
    ready_budget: RetryBudget = _READY_BUDGET,
) -> typ.Iterator[int]:
    """Forward ``pod:remote_port`` to a free loopback port and yield that port.

    Raises
    ------
    KubectlError
        If kubectl exits before the local port starts accepting connections.
    ConvergenceExhaustedError
        If the local port never accepts connections within ``ready_budget``.

    """
    local_port = pick_free_loopback_port()
    cmd = [
        "kubectl",
        "port-forward",
        f"pod/{pod}",
        f"{local_port}:{remote_port}",
        f"--namespace={namespace}",
    ]
    # Long-running kubectl writes stderr to a file, never a bounded pipe.
    stderr_log = tempfile.TemporaryFile(mode="w+", encoding="utf-8")  # noqa: SIM115
    # S603: kubectl via PATH is standard; pod and namespace from scenario config
    process = subprocess.Popen(  # noqa: S603
        cmd,
        env=env,
        stdout=subprocess.DEVNULL,
        stderr=stderr_log,
        text=True,
    )

    def _ready() -> AttemptOutcome:
        returncode = process.poll()
        if returncode is not None:
            stderr_log.seek(0)
            raise KubectlError.command_failed(cmd, returncode, stderr_log.read())
        if _listening(local_port):
            return Passed()
        return Failed(f"127.0.0.1:{local_port} not accepting connections yet")

    try:
        poll_until(
            ready_budget, _ready, description=f"port-forward to {pod}:{remote_port}"
        )
        log_info(
            logger, "forwarding 127.0.0.1:%d -> %s:%d", local_port, pod, remote_port
        )
        yield local_port
    finally:
        process.terminate()
        try:
            process.wait(timeout=_STOP_TIMEOUT_S)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
        stderr_log.close()
