"""Command-line entry point for running reconciliation scenarios.

Usage:
    entrywatch cases                          # List the standard cases
    entrywatch run                            # Run every standard case
    entrywatch run --case "mirror k8s namespaces" --jobs 2
    entrywatch entry service-defaults defaults --namespace ns1

Environment variables are documented on :class:`entrywatch.config.HarnessConfig`.
"""

from __future__ import annotations

import sys
import typing as typ

import msgspec
from cyclopts import App, Parameter

from entrywatch import __version__
from entrywatch.config import HarnessConfig
from entrywatch.consul.client import ConfigEntryClient
from entrywatch.consul.config import ConsulClientConfig
from entrywatch.consul.errors import ConsulConfigError, ConsulError
from entrywatch.consul.models import RecordKind
from entrywatch.errors import EntrywatchError
from entrywatch.kube.validation import require_exe
from entrywatch.logging import (
    configure_logging,
    get_logger,
    log_exception,
    log_warning,
)
from entrywatch.namespaces import resolve_backing_namespace
from entrywatch.scenarios.cases import STANDARD_CASES, find_case
from entrywatch.scenarios.environment import run_cases

logger = get_logger(__name__)

app = App(
    name="entrywatch",
    help="Verify that config entries converge after custom resource changes",
    version=__version__,
)


@app.command
def cases() -> int:
    """List the standard scenario cases.

    Returns:
        Exit code (always 0).

    """
    for case in STANDARD_CASES:
        backing = resolve_backing_namespace(case.tenant, case.policy)
        print(f"{case.name}")
        print(f"  tenant {case.tenant} -> backing namespace {backing}")
        print(f"  security: {case.security}")
    return 0


@app.command
def run(
    *,
    case: typ.Annotated[list[str] | None, Parameter(name="--case")] = None,
    jobs: int = 1,
    log_level: typ.Annotated[
        str | None, Parameter(env_var="ENTRYWATCH_LOG_LEVEL")
    ] = None,
) -> int:
    """Run scenario cases against the current cluster.

    Args:
        case: Names of the cases to run (repeatable). Defaults to all.
        jobs: Number of cases to run at once. Concurrent cases share the
            cluster-wide chart resources; use one cluster per run for full
            isolation.
        log_level: Log level override.

    Returns:
        Exit code (0 when every case passed, 1 when any failed, 2 on
        configuration errors).

    """
    if jobs < 1:
        print(f"Configuration error: --jobs must be >= 1, got {jobs}", file=sys.stderr)
        return 2

    try:
        config = HarnessConfig.from_env()
        selected = (
            [find_case(name) for name in case] if case else list(STANDARD_CASES)
        )
    except EntrywatchError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    level, invalid = configure_logging(log_level or config.log_level)
    if invalid:
        log_warning(logger, "unrecognised log level; using %s", level)

    try:
        for exe in ("kubectl", "helm"):
            require_exe(exe)
    except EntrywatchError as exc:
        log_exception(logger, str(exc), exc)
        return 2

    if not config.enable_enterprise:
        log_warning(
            logger,
            "skipping scenarios: ENTRYWATCH_ENABLE_ENTERPRISE is not set and "
            "namespaces require an enterprise server",
        )
        return 0

    outcomes = run_cases(selected, config, jobs=jobs)
    for outcome in outcomes:
        status = "PASS" if outcome.passed else "FAIL"
        print(f"{status}  {outcome.case.name}")
        if outcome.error is not None:
            print(f"      {outcome.error}")
    return 0 if all(outcome.passed for outcome in outcomes) else 1


@app.command
def entry(kind: str, name: str, *, namespace: str = "default") -> int:
    """Print one config entry from an already-running Consul server.

    The server is located through ``ENTRYWATCH_CONSUL_ADDRESS``,
    ``ENTRYWATCH_CONSUL_TOKEN`` and ``ENTRYWATCH_CONSUL_CA_FILE``.

    Args:
        kind: Config entry kind, e.g. ``service-defaults``.
        name: Config entry name.
        namespace: Consul namespace to read from.

    Returns:
        Exit code (0 when the entry was printed, 1 when it could not be read,
        2 on configuration errors).

    """
    try:
        record_kind = RecordKind(kind)
    except ValueError:
        known = ", ".join(sorted(RecordKind))
        print(
            f"Configuration error: unknown kind {kind!r}; expected one of {known}",
            file=sys.stderr,
        )
        return 2

    try:
        config = ConsulClientConfig.from_env()
    except ConsulConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    with ConfigEntryClient(config) as client:
        try:
            found = client.get(namespace, record_kind, name)
        except ConsulError as exc:
            print(str(exc), file=sys.stderr)
            return 1
    print(msgspec.json.format(msgspec.json.encode(found), indent=2).decode())
    return 0


def main() -> int:
    """Entry point for the CLI."""
    return app()


if __name__ == "__main__":
    sys.exit(main())
