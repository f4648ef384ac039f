"""Errors raised by the config entry query client."""

from __future__ import annotations

import typing as typ

from entrywatch.errors import EntrywatchError

if typ.TYPE_CHECKING:
    from entrywatch.consul.models import RecordKind

# Marker Consul puts in the body of 404 responses for missing config entries.
NOT_FOUND_MARKER = "Config entry not found"

# Body preview length for error messages
_BODY_PREVIEW_LIMIT = 200


def _preview(body: str) -> str:
    body = body.strip()
    if len(body) > _BODY_PREVIEW_LIMIT:
        return body[:_BODY_PREVIEW_LIMIT] + "..."
    return body


class ConsulError(EntrywatchError):
    """Base exception for config entry lookups.

    During polling every ``ConsulError`` means "not yet converged".
    """


class ConfigEntryNotFoundError(ConsulError):
    """Raised when the requested config entry does not exist.

    This is the success condition of a deletion check and an expected
    transient state before the controller has created an entry.

    Attributes
    ----------
    kind
        Config entry kind that was requested.
    name
        Config entry name that was requested.
    namespace
        Backing namespace that was queried.

    """

    def __init__(
        self, message: str, *, kind: RecordKind, name: str, namespace: str
    ) -> None:
        """Initialise with the lookup coordinates."""
        self.kind = kind
        self.name = name
        self.namespace = namespace
        super().__init__(message)

    @classmethod
    def for_lookup(
        cls, kind: RecordKind, name: str, namespace: str, body: str = ""
    ) -> ConfigEntryNotFoundError:
        """Return an error for a 404 lookup, keeping Consul's wording."""
        detail = _preview(body) or f'{NOT_FOUND_MARKER} for "{kind}" / "{name}"'
        msg = f"Unexpected response code: 404 ({detail}) in namespace '{namespace}'"
        return cls(msg, kind=kind, name=name, namespace=namespace)


class ConsulTransportError(ConsulError):
    """Raised when the config API cannot be reached."""

    @classmethod
    def timeout(cls, address: str) -> ConsulTransportError:
        """Return an error for a request timeout."""
        return cls(f"Consul request to {address} timed out")

    @classmethod
    def network_error(cls, address: str, detail: str) -> ConsulTransportError:
        """Return an error for connection, DNS, or TLS failures."""
        return cls(f"Consul network error talking to {address}: {detail}")


class ConsulAPIError(ConsulError):
    """Raised when the config API answers with an unexpected status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, body: str = "") -> ConsulAPIError:
        """Return an error for non-2xx responses other than 404."""
        detail = _preview(body)
        msg = f"Unexpected response code: {status_code}"
        if detail:
            msg = f"{msg} ({detail})"
        return cls(msg, status_code=status_code)


class ConsulResponseShapeError(ConsulError):
    """Raised when a config entry body cannot be decoded."""

    @classmethod
    def invalid_entry(cls, kind: RecordKind, detail: str) -> ConsulResponseShapeError:
        """Return an error for a body that does not match the kind's schema."""
        return cls(f"Could not decode {kind} config entry: {detail}")


class ConsulConfigError(ConsulError):
    """Raised when query client configuration is invalid."""

    @classmethod
    def missing_address(cls) -> ConsulConfigError:
        """Return an error when no Consul address is configured."""
        return cls("ENTRYWATCH_CONSUL_ADDRESS is required for the Consul client")

    @classmethod
    def unreadable_ca_file(cls, path: str, detail: str) -> ConsulConfigError:
        """Return an error when the CA bundle cannot be read."""
        return cls(f"Could not read Consul CA file {path}: {detail}")
