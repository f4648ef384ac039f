"""Harness configuration read from the environment.

Usage
-----
Create a configuration with defaults:

>>> config = HarnessConfig()
>>> config.cold_start.max_attempts
60

Or load from environment variables:

>>> import os
>>> os.environ["ENTRYWATCH_STEADY_STATE_ATTEMPTS"] = "20"
>>> HarnessConfig.from_env().steady_state.max_attempts
20

"""

from __future__ import annotations

import dataclasses as dc
import os
from pathlib import Path

from entrywatch.convergence.poller import APPLY, COLD_START, STEADY_STATE, RetryBudget
from entrywatch.errors import HarnessConfigError

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dc.dataclass(frozen=True, slots=True)
class HarnessConfig:
    """Settings shared by every scenario run.

    Attributes
    ----------
    kubeconfig
        Kubeconfig passed to kubectl and helm; None inherits ``KUBECONFIG``.
    chart_path
        Path of the chart installed for each scenario.
    release_namespace
        Kubernetes namespace the chart release is installed into.
    consul_image
        Optional ``global.image`` override for the release.
    enable_enterprise
        Scenarios rely on enterprise namespaces and are skipped without it.
    no_cleanup_on_failure
        Keep the release and tenant namespace around when a scenario fails.
    cold_start
        Budget for first-time convergence after the release starts.
    steady_state
        Budget for convergence after a single mutation.
    apply
        Budget for retrying the initial ``kubectl apply``.
    log_level
        Level passed to ``configure_logging``.

    """

    kubeconfig: Path | None = None
    chart_path: Path = dc.field(default_factory=lambda: Path("charts/consul"))
    release_namespace: str = "default"
    consul_image: str | None = None
    enable_enterprise: bool = False
    no_cleanup_on_failure: bool = False
    cold_start: RetryBudget = COLD_START
    steady_state: RetryBudget = STEADY_STATE
    apply: RetryBudget = APPLY
    log_level: str = "INFO"

    @staticmethod
    def _parse_positive_int(env_var: str, default: int) -> int:
        """Read a positive integer env var, falling back to a default."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            raise HarnessConfigError.invalid_integer(env_var, raw) from exc
        if value < 1:
            raise HarnessConfigError.invalid_integer(env_var, raw)
        return value

    @staticmethod
    def _parse_bool(env_var: str, *, default: bool) -> bool:
        """Read a boolean env var, falling back to a default."""
        raw = os.environ.get(env_var, "")
        normalized = raw.strip().lower()
        if not normalized:
            return default
        if normalized in _TRUE_VALUES:
            return True
        if normalized in _FALSE_VALUES:
            return False
        raise HarnessConfigError.invalid_boolean(env_var, raw)

    @staticmethod
    def _optional_str(env_var: str) -> str | None:
        return os.environ.get(env_var, "").strip() or None

    @classmethod
    def from_env(cls) -> HarnessConfig:
        """Create configuration from ``ENTRYWATCH_*`` environment variables.

        Raises
        ------
        HarnessConfigError
            If an integer or boolean variable holds an invalid value.

        """
        defaults = cls()
        kubeconfig = cls._optional_str("ENTRYWATCH_KUBECONFIG")
        chart_path = cls._optional_str("ENTRYWATCH_CHART_PATH")

        cold_start_attempts = cls._parse_positive_int(
            "ENTRYWATCH_COLD_START_ATTEMPTS", defaults.cold_start.max_attempts
        )
        steady_state_attempts = cls._parse_positive_int(
            "ENTRYWATCH_STEADY_STATE_ATTEMPTS", defaults.steady_state.max_attempts
        )

        return cls(
            kubeconfig=Path(kubeconfig) if kubeconfig else None,
            chart_path=Path(chart_path) if chart_path else defaults.chart_path,
            release_namespace=cls._optional_str("ENTRYWATCH_RELEASE_NAMESPACE")
            or defaults.release_namespace,
            consul_image=cls._optional_str("ENTRYWATCH_CONSUL_IMAGE"),
            enable_enterprise=cls._parse_bool(
                "ENTRYWATCH_ENABLE_ENTERPRISE", default=False
            ),
            no_cleanup_on_failure=cls._parse_bool(
                "ENTRYWATCH_NO_CLEANUP_ON_FAILURE", default=False
            ),
            cold_start=dc.replace(
                defaults.cold_start, max_attempts=cold_start_attempts
            ),
            steady_state=dc.replace(
                defaults.steady_state, max_attempts=steady_state_attempts
            ),
            log_level=cls._optional_str("ENTRYWATCH_LOG_LEVEL") or defaults.log_level,
        )
