"""
In-process client: the rules engine is the authority.
"""

import logging
from typing import Optional

from ..constants import STATUS_CONNECTED, STATUS_CONNECTING, STATUS_ERROR
from ..errors import SyncError, ENGINE_MISMATCH, raise_error
from ..serialization import clone_state
from .base import RoomClient

logger = logging.getLogger(__name__)


def check_engine_id(engine, engine_id: Optional[str]):
    """Raise ENGINE_MISMATCH when a requested engine id differs from the bound engine."""
    bound_id = getattr(engine, 'id', None)
    if engine_id and bound_id != engine_id:
        raise_error(ENGINE_MISMATCH, f"Client engine mismatch: expected {bound_id}, received {engine_id}")


class LocalRoomClient(RoomClient):
    """Runs the whole room locally. ``connect`` never suspends."""

    adapter = 'local'

    async def connect(self, user_id: Optional[str] = None, user_name: Optional[str] = None,
                      engine_id: Optional[str] = None, **options):
        self.set_status(STATUS_CONNECTING)
        try:
            check_engine_id(self.engine, engine_id)
        except SyncError as e:
            logger.error(f"Local connect failed: {e}")
            self.set_status(STATUS_ERROR, e)
            raise

        self._bot_task.cancel()
        self._replace_state(clone_state(self.engine.create_initial_state(
            user_id=user_id,
            user_name=user_name or '',
        )))
        self.run_automation()
        self.set_status(STATUS_CONNECTED)
        return self.get_state()
