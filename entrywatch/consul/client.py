"""Single-shot reader for Consul config entries.

The client performs exactly one HTTP request per call. Retrying is the job of
:mod:`entrywatch.convergence.poller`; this module only translates responses
into typed entries or structured errors.
"""

from __future__ import annotations

import ssl
import typing as typ
from urllib.parse import quote

import httpx
import msgspec

from entrywatch.consul.errors import (
    ConfigEntryNotFoundError,
    ConsulAPIError,
    ConsulResponseShapeError,
    ConsulTransportError,
)
from entrywatch.consul.models import ConfigEntry, RecordKind, decode_config_entry

if typ.TYPE_CHECKING:
    from entrywatch.consul.config import ConsulClientConfig

_HTTP_NOT_FOUND = 404
_HTTP_ERROR_STATUS_THRESHOLD = 400


class ConfigEntryReader(typ.Protocol):
    """Read-only access to config entries in a backing namespace."""

    def get(self, namespace: str, kind: RecordKind, name: str) -> ConfigEntry:
        """Return the entry or raise a :class:`ConsulError` subclass."""
        ...


def _verify_setting(config: ConsulClientConfig) -> ssl.SSLContext | bool:
    """Return the httpx ``verify`` value for the configured CA."""
    if config.ca_pem:
        return ssl.create_default_context(cadata=config.ca_pem)
    return True


class ConfigEntryClient:
    """httpx implementation of :class:`ConfigEntryReader`.

    Parameters
    ----------
    config
        Address, ACL token and CA settings.
    http_client
        Optional pre-built ``httpx.Client`` (used by tests). When omitted the
        instance creates and owns its own client.

    Examples
    --------
    >>> config = ConsulClientConfig(address="http://127.0.0.1:8500")
    >>> with ConfigEntryClient(config) as client:
    ...     entry = client.get("ns1", RecordKind.SERVICE_DEFAULTS, "defaults")

    """

    def __init__(
        self,
        config: ConsulClientConfig,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialise the client with connection settings."""
        self._config = config
        self._owns_client = http_client is None
        headers = {"Accept": "application/json"}
        if config.token:
            headers["X-Consul-Token"] = config.token
        self._headers = headers
        self._client = http_client or httpx.Client(
            timeout=config.timeout_s,
            verify=_verify_setting(config),
        )

    def __enter__(self) -> typ.Self:
        """Return the client for use in a ``with`` block."""
        return self

    def __exit__(self, *exc_info: object) -> None:
        """Close owned HTTP resources on exit."""
        self.close()

    def close(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            self._client.close()

    def get(self, namespace: str, kind: RecordKind, name: str) -> ConfigEntry:
        """Fetch one config entry.

        Parameters
        ----------
        namespace
            Backing namespace to query.
        kind
            Config entry kind.
        name
            Config entry name.

        Returns
        -------
        ConfigEntry
            The kind-specific struct for the entry.

        Raises
        ------
        ConfigEntryNotFoundError
            If the entry does not exist in ``namespace``.
        ConsulTransportError
            If the API could not be reached.
        ConsulAPIError
            If the API answered with any other error status.
        ConsulResponseShapeError
            If the body does not decode into the kind's struct.

        """
        response = self._send(namespace, kind, name)
        if response.status_code == _HTTP_NOT_FOUND:
            raise ConfigEntryNotFoundError.for_lookup(
                kind, name, namespace, response.text
            )
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise ConsulAPIError.http_error(response.status_code, response.text)

        try:
            return decode_config_entry(kind, response.content)
        except msgspec.DecodeError as exc:
            raise ConsulResponseShapeError.invalid_entry(kind, str(exc)) from exc

    def _send(self, namespace: str, kind: RecordKind, name: str) -> httpx.Response:
        url = f"{self._config.address}/v1/config/{kind}/{quote(name, safe='')}"
        try:
            return self._client.get(
                url, params={"ns": namespace}, headers=self._headers
            )
        except httpx.TimeoutException as exc:
            raise ConsulTransportError.timeout(self._config.address) from exc
        except httpx.RequestError as exc:
            raise ConsulTransportError.network_error(
                self._config.address, str(exc)
            ) from exc
