"""Configuration for the Consul config entry client."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path

from entrywatch.consul.errors import ConsulConfigError

_DEFAULT_TIMEOUT_S = 10.0


@dataclasses.dataclass(frozen=True, slots=True)
class ConsulClientConfig:
    """Connection settings for a Consul HTTP API.

    Attributes
    ----------
    address
        Base URL of the HTTP API, e.g. ``http://127.0.0.1:8500``.
    token
        ACL token sent as ``X-Consul-Token``; None when ACLs are disabled.
    ca_pem
        PEM-encoded CA certificate used to verify the server in TLS mode.
    timeout_s
        Per-request timeout in seconds.

    """

    address: str
    token: str | None = None
    ca_pem: str | None = None
    timeout_s: float = _DEFAULT_TIMEOUT_S

    @property
    def secure(self) -> bool:
        """Return True when the API is reached over TLS."""
        return self.address.startswith("https://")

    @classmethod
    def from_env(cls) -> ConsulClientConfig:
        """Build configuration from environment variables.

        Reads ``ENTRYWATCH_CONSUL_ADDRESS`` (required),
        ``ENTRYWATCH_CONSUL_TOKEN`` and ``ENTRYWATCH_CONSUL_CA_FILE``.

        Raises
        ------
        ConsulConfigError
            If the address is missing or the CA file cannot be read.

        """
        address = os.environ.get("ENTRYWATCH_CONSUL_ADDRESS", "").strip()
        if not address:
            raise ConsulConfigError.missing_address()

        token = os.environ.get("ENTRYWATCH_CONSUL_TOKEN", "").strip() or None

        ca_pem: str | None = None
        ca_file = os.environ.get("ENTRYWATCH_CONSUL_CA_FILE", "").strip()
        if ca_file:
            try:
                ca_pem = Path(ca_file).read_text(encoding="utf-8")
            except OSError as exc:
                raise ConsulConfigError.unreadable_ca_file(ca_file, str(exc)) from exc

        return cls(address=address.rstrip("/"), token=token, ca_pem=ca_pem)
