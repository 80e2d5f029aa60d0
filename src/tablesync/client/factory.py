"""
Client adapter selection.

Adapters are held by an explicit ClientFactory instance instead of a process
wide registry; the transport factory and configuration are injected.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from ..errors import SyncError, DUPLICATE_ADAPTER, UNKNOWN_ADAPTER
from .local import LocalRoomClient
from .remote import RemoteRoomClient

logger = logging.getLogger(__name__)

LOCAL = 'local'
MOCK = 'mock'
REMOTE = 'remote'


def _build_local(engine, transport_factory=None, **options):
    return LocalRoomClient(engine, **options)


def _build_remote(engine, transport_factory=None, **options):
    return RemoteRoomClient(engine, transport_factory=transport_factory, **options)


class ClientFactory:
    """Creates room clients for the selected adapter, falling back to local."""

    def __init__(self, config=None, transport_factory: Optional[Callable] = None):
        self.config = config
        self.transport_factory = transport_factory
        self._builders: Dict[str, Callable[..., Any]] = {}
        self._default_key: Optional[str] = None

        self.register(LOCAL, _build_local, default=True)
        self.register(MOCK, _build_local)
        self.register(REMOTE, _build_remote)

        requested = (getattr(config, 'adapter', None) or '').lower()
        self.requested_adapter = requested if requested in self._builders else self._default_key
        self.active_adapter = self._effective_key(self.requested_adapter)

    @classmethod
    def from_config(cls, config):
        """Wire the websocket transport when the config names a relay."""
        transport_factory = None
        if getattr(config, 'relay_url', None):
            from ..transport.websocket import websocket_transport_factory
            transport_factory = websocket_transport_factory(config.relay_url)
        return cls(config=config, transport_factory=transport_factory)

    # ----- registry ----------------------------------------------------

    def register(self, key: str, builder: Callable[..., Any], default: bool = False, replace: bool = False):
        if not key or not isinstance(key, str):
            raise SyncError(UNKNOWN_ADAPTER, "Adapter key must be a non-empty string")
        if key in self._builders and not replace:
            raise SyncError(DUPLICATE_ADAPTER, f'Cannot register adapter "{key}" because it already exists')
        self._builders[key] = builder
        if default or self._default_key is None:
            self._default_key = key
        return builder

    def unregister(self, key: str) -> bool:
        if key not in self._builders:
            return False
        del self._builders[key]
        if self._default_key == key:
            self._default_key = next(iter(self._builders), None)
        return True

    def keys(self) -> List[str]:
        return list(self._builders)

    def is_configured(self, key: str) -> bool:
        if key not in self._builders:
            return False
        if key == REMOTE:
            return callable(self.transport_factory)
        return True

    def available(self) -> List[str]:
        return [key for key in self._builders if self.is_configured(key)]

    # ----- selection ---------------------------------------------------

    def _effective_key(self, key: Optional[str]) -> Optional[str]:
        if key == REMOTE and not self.is_configured(REMOTE):
            logger.warning("Remote adapter is not configured; continuing with local adapter.")
            return LOCAL
        return key

    def set_adapter(self, key: str):
        if key not in self._builders:
            raise SyncError(UNKNOWN_ADAPTER, f"Unknown client adapter: {key}")
        self.requested_adapter = key
        self.active_adapter = self._effective_key(key)

    def create_client(self, engine, **options):
        """Build a client for the active adapter, tagged with requested and effective adapter."""
        effective = self._effective_key(self.requested_adapter)
        if effective not in self._builders:
            effective = self._default_key
        if effective is None:
            raise SyncError(UNKNOWN_ADAPTER, "No client adapters registered")
        self.active_adapter = effective

        client = self._builders[effective](engine, transport_factory=self.transport_factory, **options)
        client.requested_adapter = self.requested_adapter
        client.adapter = effective
        return client
