"""
Client bridged to a remote authoritative room through a transport adapter.
"""

import inspect
import logging
from typing import Any, Callable, List, Optional

from ..constants import (
    RESET_SESSION, STATUS_CONNECTED, STATUS_CONNECTING, STATUS_DISCONNECTED, STATUS_ERROR,
    STATUS_IDLE,
)
from ..errors import (
    SyncError, NOT_CONNECTED, TRANSPORT_FACTORY_MISSING, TRANSPORT_UNAVAILABLE,
)
from ..models import make_action
from ..serialization import clone_state
from .base import RoomClient
from .local import check_engine_id

logger = logging.getLogger(__name__)


def missing_transport_factory(engine=None, options=None):
    raise SyncError(TRANSPORT_FACTORY_MISSING, "Remote client requires a transport_factory")


class RemoteRoomClient(RoomClient):
    """
    Room client whose intents travel through a transport.

    The transport factory is called as ``factory(engine=..., options=...)``
    and must return an object exposing any of ``connect``, ``disconnect``,
    ``send_action``, ``on_snapshot``, ``on_event``, ``on_disconnected`` and
    ``on_error``. Each capability is wired only if present.
    """

    adapter = 'remote'

    def __init__(self, engine, transport_factory: Optional[Callable] = None, scheduler=None):
        super().__init__(engine, scheduler=scheduler)
        self.transport_factory = transport_factory or missing_transport_factory
        self.transport = None
        self._transport_cleanups: List[Callable[[], Any]] = []

    async def connect(self, **options):
        self.set_status(STATUS_CONNECTING)
        try:
            await self._teardown_transport()

            check_engine_id(self.engine, options.get('engine_id'))

            # Placeholder until the first snapshot arrives.
            self._bot_task.cancel()
            self._replace_state(clone_state(self.engine.create_initial_state(
                user_id=options.get('user_id'),
                user_name=options.get('user_name') or '',
            )))

            transport = self.transport_factory(engine=self.engine, options=options)
            if not transport:
                raise SyncError(TRANSPORT_UNAVAILABLE, "transport_factory did not return a transport instance")
            self.transport = transport
            self._setup_transport_listeners(transport)

            handshake = getattr(transport, 'connect', None)
            if callable(handshake):
                result = handshake(options)
                if inspect.isawaitable(result):
                    await result

            self.set_status(STATUS_CONNECTED)
            return self.get_state()
        except Exception as e:
            logger.error(f"Remote connect failed: {e}")
            await self._teardown_transport()
            self.set_status(STATUS_ERROR, e)
            raise

    def _setup_transport_listeners(self, transport):
        cleanups = []

        on_snapshot = getattr(transport, 'on_snapshot', None)
        if callable(on_snapshot):
            cleanups.append(on_snapshot(self._handle_snapshot))

        on_event = getattr(transport, 'on_event', None)
        if callable(on_event):
            cleanups.append(on_event(self._handle_event))

        on_disconnected = getattr(transport, 'on_disconnected', None)
        if callable(on_disconnected):
            cleanups.append(on_disconnected(self._handle_disconnected))

        on_error = getattr(transport, 'on_error', None)
        if callable(on_error):
            cleanups.append(on_error(self._handle_error))

        self._transport_cleanups = cleanups

    def _handle_snapshot(self, snapshot):
        try:
            self._replace_state(clone_state(snapshot))
        except Exception as e:
            logger.error(f"Failed to apply remote snapshot: {e}")
            self.set_status(STATUS_ERROR, e)

    def _handle_event(self, action):
        try:
            self.dispatch(action)
        except Exception as e:
            logger.error(f"Failed to apply remote event {action!r}: {e}")
            self.set_status(STATUS_ERROR, e)

    def _handle_disconnected(self, error: Optional[BaseException] = None):
        logger.info(f"Transport disconnected: {error}")
        self.set_status(STATUS_DISCONNECTED, error)

    def _handle_error(self, error: BaseException):
        logger.error(f"Transport error: {error}")
        self.set_status(STATUS_ERROR, error)

    def _cleanup_transport_listeners(self):
        cleanups, self._transport_cleanups = self._transport_cleanups, []
        for cleanup in cleanups:
            if not callable(cleanup):
                continue
            try:
                cleanup()
            except Exception as e:
                logger.warning(f"Transport listener cleanup failed: {e}")

    async def _teardown_transport(self):
        transport, self.transport = self.transport, None
        try:
            close = getattr(transport, 'disconnect', None)
            if callable(close):
                result = close()
                if inspect.isawaitable(result):
                    await result
        except Exception as e:
            logger.warning(f"Transport disconnect failed: {e}")
        finally:
            self._cleanup_transport_listeners()

    async def disconnect(self):
        await self._teardown_transport()
        super().disconnect()

    def send_remote_action(self, action_type: str, payload: Any = None):
        """Hand an action to the transport; returns whatever the transport returns."""
        send_action = getattr(self.transport, 'send_action', None)
        if not callable(send_action):
            raise SyncError(NOT_CONNECTED, "Transport not initialised. Did you call connect()?")
        return send_action({'type': action_type, 'payload': payload if payload is not None else {}})

    def _submit(self, action_type: str, payload: Any = None):
        return self.send_remote_action(action_type, payload)

    def reset_session(self):
        result = None
        if self.transport is not None:
            result = self.send_remote_action(RESET_SESSION)
        self.dispatch(make_action(RESET_SESSION))
        self.set_status(STATUS_IDLE)
        return result
