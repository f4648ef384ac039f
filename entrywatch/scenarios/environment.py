"""Provision, run and tear down one isolated scenario.

A scenario gets its own chart release (random name) and its own tenant
namespace, then talks to the release's Consul server through a loopback
port-forward. Cleanup uninstalls the release and deletes the tenant unless
``no_cleanup_on_failure`` is set and the scenario failed.
"""

from __future__ import annotations

import concurrent.futures
import contextlib
import dataclasses
import typing as typ

from entrywatch.consul.client import ConfigEntryClient
from entrywatch.consul.config import ConsulClientConfig
from entrywatch.errors import EntrywatchError
from entrywatch.helm import install_release, random_release_name, uninstall_release
from entrywatch.kube.kubectl import (
    create_tenant_namespace,
    delete_namespace,
    kubeconfig_env,
    read_secret_field,
)
from entrywatch.kube.mutator import KubectlMutator
from entrywatch.kube.portforward import port_forward
from entrywatch.logging import get_logger, log_exception, log_info, log_warning
from entrywatch.namespaces import ScenarioTargets
from entrywatch.scenarios.driver import ScenarioDriver, ScenarioReport

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from entrywatch.config import HarnessConfig
    from entrywatch.scenarios.cases import ScenarioCase

logger = get_logger(__name__)

_HTTP_PORT = 8500
_HTTPS_PORT = 8501


def server_pod(release_name: str) -> str:
    """Return the name of the release's first Consul server pod."""
    return f"{release_name}-consul-server-0"


def bootstrap_token_secret(release_name: str) -> str:
    """Return the secret holding the release's bootstrap ACL token."""
    return f"{release_name}-consul-bootstrap-acl-token"


def ca_cert_secret(release_name: str) -> str:
    """Return the secret holding the release's CA certificate."""
    return f"{release_name}-consul-ca-cert"


def consul_client_config(
    release_name: str,
    local_port: int,
    *,
    secure: bool,
    namespace: str,
    env: dict[str, str],
) -> ConsulClientConfig:
    """Build client settings for a port-forwarded Consul server.

    Secure releases are reached over TLS with the bootstrap ACL token and the
    release's CA certificate, both read from Kubernetes secrets.
    """
    if not secure:
        return ConsulClientConfig(address=f"http://127.0.0.1:{local_port}")
    token = read_secret_field(
        bootstrap_token_secret(release_name), "token", namespace, env
    )
    ca_pem = read_secret_field(ca_cert_secret(release_name), "tls.crt", namespace, env)
    return ConsulClientConfig(
        address=f"https://127.0.0.1:{local_port}", token=token, ca_pem=ca_pem
    )


def _register_cleanup(
    stack: contextlib.ExitStack,
    action: typ.Callable[[], None],
    *,
    keep: typ.Callable[[], bool],
    label: str,
) -> None:
    def _cleanup() -> None:
        if keep():
            log_warning(logger, "scenario failed; leaving %s in place", label)
            return
        action()

    stack.callback(_cleanup)


def run_case(
    case: ScenarioCase,
    config: HarnessConfig,
    *,
    isolate_tenant: bool = False,
) -> ScenarioReport:
    """Provision an isolated environment for ``case`` and drive it.

    Parameters
    ----------
    case
        Routing policy, security mode and tenant to run.
    config
        Harness settings (chart, kubeconfig, budgets, cleanup policy).
    isolate_tenant
        Suffix the tenant with the release name so concurrent cases never
        share a namespace.

    Returns
    -------
    ScenarioReport
        Attempts taken by each verified phase.

    Raises
    ------
    EntrywatchError
        If provisioning fails or a phase does not converge.

    """
    env = kubeconfig_env(config.kubeconfig)
    release_name = random_release_name()
    if isolate_tenant:
        case = case.with_tenant(f"{case.tenant}-{release_name}")
    targets = ScenarioTargets.resolve(case.tenant, case.policy)
    log_info(
        logger,
        "running '%s' as release %s (tenant %s -> backing namespace %s)",
        case.name,
        release_name,
        case.tenant,
        targets.tenant_namespace,
    )

    failed = True

    def _keep() -> bool:
        return failed and config.no_cleanup_on_failure

    with contextlib.ExitStack() as stack:
        _register_cleanup(
            stack,
            lambda: uninstall_release(release_name, config.release_namespace, env),
            keep=_keep,
            label=f"release {release_name}",
        )
        install_release(
            release_name,
            config.chart_path,
            case.helm_values(config.consul_image),
            config.release_namespace,
            env,
        )

        create_tenant_namespace(case.tenant, env)
        _register_cleanup(
            stack,
            lambda: delete_namespace(case.tenant, env),
            keep=_keep,
            label=f"namespace {case.tenant}",
        )

        remote_port = _HTTPS_PORT if case.secure else _HTTP_PORT
        local_port = stack.enter_context(
            port_forward(
                server_pod(release_name), remote_port, config.release_namespace, env
            )
        )
        client_config = consul_client_config(
            release_name,
            local_port,
            secure=case.secure,
            namespace=config.release_namespace,
            env=env,
        )
        reader = stack.enter_context(ConfigEntryClient(client_config))

        driver = ScenarioDriver(
            mutator=KubectlMutator(tenant=case.tenant, env=env),
            reader=reader,
            targets=targets,
            cold_start=config.cold_start,
            steady_state=config.steady_state,
            apply_budget=config.apply,
        )
        report = driver.run()
        failed = False
        log_info(logger, "'%s' passed", case.name)
        return report


@dataclasses.dataclass(frozen=True, slots=True)
class CaseOutcome:
    """Result of running one case through :func:`run_cases`."""

    case: ScenarioCase
    report: ScenarioReport | None = None
    error: EntrywatchError | None = None

    @property
    def passed(self) -> bool:
        """Return True when every phase converged."""
        return self.error is None


def _run_one(
    case: ScenarioCase, config: HarnessConfig, *, isolate_tenant: bool
) -> CaseOutcome:
    try:
        report = run_case(case, config, isolate_tenant=isolate_tenant)
    except EntrywatchError as exc:
        log_exception(logger, f"'{case.name}' failed: {exc}", exc)
        return CaseOutcome(case=case, error=exc)
    return CaseOutcome(case=case, report=report)


def run_cases(
    cases: cabc.Sequence[ScenarioCase], config: HarnessConfig, *, jobs: int = 1
) -> list[CaseOutcome]:
    """Run ``cases`` sequentially, or ``jobs`` at a time on worker threads.

    Concurrent cases get their own release and a tenant namespace suffixed
    with the release name. They still share one cluster: the chart's CRDs,
    its webhook configurations and the global ``proxy-defaults`` entry are
    cluster-wide, so concurrent releases can interfere with each other. Full
    isolation needs one invocation per case, each with its own cluster
    through ``ENTRYWATCH_KUBECONFIG``. Outcomes keep the order of ``cases``.

    Raises
    ------
    ValueError
        If ``jobs`` is less than 1.

    """
    if jobs < 1:
        msg = f"jobs must be >= 1, got {jobs}"
        raise ValueError(msg)
    if jobs == 1:
        return [_run_one(case, config, isolate_tenant=False) for case in cases]

    log_warning(
        logger,
        "running %d cases at once in one cluster; chart CRDs, webhooks and the "
        "global proxy-defaults entry are shared between releases",
        min(jobs, len(cases)),
    )

    with concurrent.futures.ThreadPoolExecutor(max_workers=jobs) as executor:
        futures = [
            executor.submit(_run_one, case, config, isolate_tenant=True)
            for case in cases
        ]
        return [future.result() for future in futures]
