"""Read access to Consul config entries.

Public API
----------
ConfigEntryClient
    httpx-backed single-shot reader.
ConfigEntryReader
    Protocol implemented by the client and by test fakes.
ConsulClientConfig
    Connection settings.
RecordKind
    Config entry kinds managed by the controller.
ConsulError
    Base exception; every subclass is retryable while polling.
ConfigEntryNotFoundError
    Structured not-found error.
ConsulTransportError
    Connectivity failure.

"""

from __future__ import annotations

from entrywatch.consul.client import ConfigEntryClient, ConfigEntryReader
from entrywatch.consul.config import ConsulClientConfig
from entrywatch.consul.errors import (
    ConfigEntryNotFoundError,
    ConsulAPIError,
    ConsulConfigError,
    ConsulError,
    ConsulResponseShapeError,
    ConsulTransportError,
)
from entrywatch.consul.models import (
    ConfigEntry,
    ProxyDefaultsEntry,
    RecordKind,
    ServiceDefaultsEntry,
    ServiceIntentionsEntry,
    ServiceResolverEntry,
    ServiceRouterEntry,
    ServiceSplitterEntry,
)

__all__ = [
    "ConfigEntry",
    "ConfigEntryClient",
    "ConfigEntryNotFoundError",
    "ConfigEntryReader",
    "ConsulAPIError",
    "ConsulClientConfig",
    "ConsulConfigError",
    "ConsulError",
    "ConsulResponseShapeError",
    "ConsulTransportError",
    "ProxyDefaultsEntry",
    "RecordKind",
    "ServiceDefaultsEntry",
    "ServiceIntentionsEntry",
    "ServiceResolverEntry",
    "ServiceRouterEntry",
    "ServiceSplitterEntry",
]
