"""Unit tests for scenario provisioning, cleanup and concurrent runs."""

from __future__ import annotations

import contextlib
import dataclasses
import threading
import typing as typ

import pytest

from entrywatch.config import HarnessConfig
from entrywatch.convergence.poller import ConvergenceExhaustedError, RetryBudget
from entrywatch.kube.errors import HelmError
from entrywatch.namespaces import ScenarioTargets
from entrywatch.scenarios import environment
from entrywatch.scenarios.cases import STANDARD_CASES, ScenarioCase, find_case
from entrywatch.scenarios.driver import ScenarioReport
from tests.helpers.fake_controller import FakeController

if typ.TYPE_CHECKING:
    from entrywatch.consul.config import ConsulClientConfig

FAST = RetryBudget(max_attempts=2, interval_s=0.0)


@dataclasses.dataclass(slots=True)
class _Recorder:
    """Records cluster operations performed by run_case."""

    events: list[str] = dataclasses.field(default_factory=list)
    client_configs: list[ConsulClientConfig] = dataclasses.field(default_factory=list)
    controllers: list[FakeController] = dataclasses.field(default_factory=list)
    misroute: bool = False


@pytest.fixture
def recorder(monkeypatch: pytest.MonkeyPatch) -> _Recorder:
    """Replace every cluster collaborator of run_case with in-memory doubles."""
    rec = _Recorder()

    monkeypatch.setattr(environment, "random_release_name", lambda: "test-abcd")

    def _install(
        name: str, _chart: object, values: dict[str, str], _ns: str, _env: object
    ) -> None:
        mirroring = values["connectInject.consulNamespaces.mirroringK8S"]
        rec.events.append(f"install {name} mirroring={mirroring}")

    monkeypatch.setattr(environment, "install_release", _install)
    monkeypatch.setattr(
        environment,
        "uninstall_release",
        lambda name, _ns, _env: rec.events.append(f"uninstall {name}"),
    )
    monkeypatch.setattr(
        environment,
        "create_tenant_namespace",
        lambda ns, _env: rec.events.append(f"create namespace {ns}"),
    )
    monkeypatch.setattr(
        environment,
        "delete_namespace",
        lambda ns, _env: rec.events.append(f"delete namespace {ns}"),
    )
    monkeypatch.setattr(
        environment,
        "read_secret_field",
        lambda secret, field, _ns, _env: f"{secret}:{field}",
    )

    @contextlib.contextmanager
    def _port_forward(
        pod: str, remote_port: int, _ns: str, _env: dict[str, str]
    ) -> typ.Iterator[int]:
        rec.events.append(f"port-forward {pod}:{remote_port}")
        yield 41000
        rec.events.append("port-forward stopped")

    monkeypatch.setattr(environment, "port_forward", _port_forward)

    @contextlib.contextmanager
    def _client(config: ConsulClientConfig) -> typ.Iterator[object]:
        # The driver double swaps in its own reader.
        rec.client_configs.append(config)
        yield object()

    class _Driver(environment.ScenarioDriver):
        def __init__(self, **kwargs: typ.Any) -> None:  # noqa: ANN401
            targets: ScenarioTargets = kwargs["targets"]
            controller = FakeController(
                targets=targets,
                misroute_to="elsewhere" if rec.misroute else None,
            )
            rec.controllers.append(controller)
            kwargs["mutator"] = controller
            kwargs["reader"] = controller
            super().__init__(**kwargs)

    monkeypatch.setattr(environment, "ConfigEntryClient", _client)
    monkeypatch.setattr(environment, "ScenarioDriver", _Driver)
    return rec


def _config(**overrides: typ.Any) -> HarnessConfig:  # noqa: ANN401
    return HarnessConfig(cold_start=FAST, steady_state=FAST, apply=FAST, **overrides)


class TestRunCase:
    """Tests for run_case."""

    def test_provisions_runs_and_cleans_up(self, recorder: _Recorder) -> None:
        """A passing case installs, drives and tears down in order."""
        report = environment.run_case(find_case("mirror k8s namespaces"), _config())

        assert [p.phase for p in report.phases] == ["created", "updated", "deleted"]
        assert recorder.events == [
            "install test-abcd mirroring=true",
            "create namespace ns1",
            "port-forward test-abcd-consul-server-0:8500",
            "port-forward stopped",
            "delete namespace ns1",
            "uninstall test-abcd",
        ]
        assert recorder.client_configs[0].address == "http://127.0.0.1:41000"

    def test_secure_case_uses_tls_port_and_token(self, recorder: _Recorder) -> None:
        """Secure cases read the bootstrap token and CA from secrets."""
        case = find_case("single destination namespace (non-default); secure")
        environment.run_case(case, _config())

        assert "port-forward test-abcd-consul-server-0:8501" in recorder.events
        client_config = recorder.client_configs[0]
        assert client_config.address == "https://127.0.0.1:41000"
        assert client_config.token == "test-abcd-consul-bootstrap-acl-token:token"
        assert client_config.ca_pem == "test-abcd-consul-ca-cert:tls.crt"
        assert recorder.controllers[0].targets.tenant_namespace == "from-k8s"

    def test_failure_cleans_up_by_default(self, recorder: _Recorder) -> None:
        """A failed case still removes its release and namespace."""
        recorder.misroute = True
        with pytest.raises(ConvergenceExhaustedError):
            environment.run_case(STANDARD_CASES[0], _config())

        assert recorder.events[-2:] == ["delete namespace ns1", "uninstall test-abcd"]

    def test_failure_keeps_resources_when_requested(self, recorder: _Recorder) -> None:
        """no_cleanup_on_failure leaves a failed case's resources in place."""
        recorder.misroute = True
        with pytest.raises(ConvergenceExhaustedError):
            environment.run_case(
                STANDARD_CASES[0], _config(no_cleanup_on_failure=True)
            )

        assert "uninstall test-abcd" not in recorder.events
        assert "delete namespace ns1" not in recorder.events

    def test_success_cleans_up_even_when_keep_requested(
        self, recorder: _Recorder
    ) -> None:
        """no_cleanup_on_failure has no effect on passing cases."""
        environment.run_case(STANDARD_CASES[0], _config(no_cleanup_on_failure=True))
        assert recorder.events[-1] == "uninstall test-abcd"

    def test_isolated_tenant(self, recorder: _Recorder) -> None:
        """Isolated runs suffix the tenant with the release name."""
        environment.run_case(
            find_case("mirror k8s namespaces"), _config(), isolate_tenant=True
        )
        assert "create namespace ns1-test-abcd" in recorder.events
        assert recorder.controllers[0].targets == ScenarioTargets("ns1-test-abcd")


class TestRunCases:
    """Tests for run_cases."""

    def test_rejects_zero_jobs(self) -> None:
        """jobs must be at least one."""
        with pytest.raises(ValueError, match="jobs must be >= 1"):
            environment.run_cases(STANDARD_CASES, _config(), jobs=0)

    def test_sequential_collects_failures(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Failures become outcomes instead of aborting the run."""

        def _run_case(
            case: ScenarioCase, _config: HarnessConfig, *, isolate_tenant: bool
        ) -> ScenarioReport:
            assert isolate_tenant is False
            if case.secure:
                msg = "helm upgrade --install failed"
                raise HelmError(msg)
            return ScenarioReport()

        monkeypatch.setattr(environment, "run_case", _run_case)

        outcomes = environment.run_cases(STANDARD_CASES, _config())

        assert [o.case for o in outcomes] == list(STANDARD_CASES)
        assert [o.passed for o in outcomes] == [True, False, True, False]
        assert isinstance(outcomes[1].error, HelmError)

    def test_concurrent_runs_isolate_tenants(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Concurrent runs use worker threads with isolated tenants."""
        seen: list[tuple[str, bool, str]] = []
        lock = threading.Lock()

        def _run_case(
            case: ScenarioCase, _config: HarnessConfig, *, isolate_tenant: bool
        ) -> ScenarioReport:
            with lock:
                seen.append(
                    (case.name, isolate_tenant, threading.current_thread().name)
                )
            return ScenarioReport()

        monkeypatch.setattr(environment, "run_case", _run_case)

        outcomes = environment.run_cases(STANDARD_CASES, _config(), jobs=4)

        assert [o.case for o in outcomes] == list(STANDARD_CASES)
        assert all(o.passed for o in outcomes)
        assert all(isolated for _name, isolated, _thread in seen)
        assert all(thread != "MainThread" for _name, _iso, thread in seen)

    def test_concurrent_runs_warn_about_shared_cluster(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Running cases at once warns that cluster-wide resources are shared."""
        warnings: list[str] = []
        monkeypatch.setattr(
            environment,
            "log_warning",
            lambda _logger, msg, *args, **_kwargs: warnings.append(msg % args),
        )
        monkeypatch.setattr(
            environment,
            "run_case",
            lambda _case, _config, **_kwargs: ScenarioReport(),
        )

        environment.run_cases(STANDARD_CASES[:2], _config(), jobs=4)

        assert len(warnings) == 1
        assert "running 2 cases at once in one cluster" in warnings[0]
        assert "proxy-defaults" in warnings[0]

    def test_sequential_runs_do_not_warn(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A single job runs without the shared-cluster warning."""
        warnings: list[str] = []
        monkeypatch.setattr(
            environment,
            "log_warning",
            lambda _logger, msg, *args, **_kwargs: warnings.append(msg % args),
        )
        monkeypatch.setattr(
            environment,
            "run_case",
            lambda _case, _config, **_kwargs: ScenarioReport(),
        )

        environment.run_cases(STANDARD_CASES, _config(), jobs=1)

        assert warnings == []
