"""
Room state container shared by the local and remote clients.
"""

import logging
from typing import Any, Callable, Dict, Optional

from ..automation import (
    get_bot_think_delay, resolve_bot_turn_player, select_bot_action, should_auto_ready_bots
)
from ..constants import (
    ADD_BOT, AUTO_READY_BOTS, CONNECTION_STATUSES, CREATE_ROOM, DRAW_CARD, PLAY_CARD, REMOVE_BOT,
    RESET_SESSION, RETURN_TO_LOBBY, SET_NAME, SET_PLAYER_STATUS, SET_SEAT_LAYOUT, START_GAME,
    STATUS_CONNECTED, STATUS_DISCONNECTED, STATUS_IDLE, TOGGLE_READY,
)
from ..models import Action, RoomState, StatusState, make_action
from ..scheduling import AsyncioScheduler, TaskSlot
from ..serialization import clone_state, freeze_snapshot
from ..snapshot import hydrate_room_snapshot

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class RoomClient:
    """
    Owns the live room state and connection status of one client.

    Every mutation goes through ``dispatch``. Consumers only ever see frozen
    snapshots; the live dict never leaves the container. After each committed
    change the automation policies run: bots are auto-readied in the lobby and
    a single delayed bot move is scheduled when a bot owns the turn.
    """

    adapter = 'base'

    def __init__(self, engine, scheduler=None):
        self.engine = engine
        self._state: RoomState = clone_state(engine.create_initial_state())
        self._status = StatusState()
        self._listeners: Dict[Listener, None] = {}
        self._status_listeners: Dict[Listener, None] = {}
        self._snapshot_cache = None
        self._bot_task = TaskSlot(scheduler or AsyncioScheduler())

    # ----- observation -------------------------------------------------

    def get_state(self):
        return self.export_room_snapshot()

    def get_status(self) -> StatusState:
        return self._status

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state listener once it has taken the current snapshot."""
        listener(self.export_room_snapshot())
        self._listeners[listener] = None

        def unsubscribe():
            self._listeners.pop(listener, None)
        return unsubscribe

    def subscribe_status(self, listener: Listener) -> Callable[[], None]:
        listener(self._status)
        self._status_listeners[listener] = None

        def unsubscribe():
            self._status_listeners.pop(listener, None)
        return unsubscribe

    def export_room_snapshot(self):
        """Frozen deep copy of the current state, cached until the next change."""
        if self._snapshot_cache is None:
            self._snapshot_cache = freeze_snapshot(clone_state(self._state))
        return self._snapshot_cache

    # ----- mutation ----------------------------------------------------

    def dispatch(self, action: Action):
        next_state = self.engine.reducer(self._state, action)
        if next_state is self._state:
            return
        self._state = next_state
        self._snapshot_cache = None
        self._notify()
        self.run_automation()

    def set_status(self, status: str, error: Optional[BaseException] = None):
        if status not in CONNECTION_STATUSES:
            raise ValueError(f"Unknown connection status: {status}")
        if status == self._status.status and error is self._status.error:
            return
        self._status = StatusState(status=status, error=error)
        for listener in list(self._status_listeners):
            listener(self._status)

    def _replace_state(self, state: RoomState):
        self._state = state
        self._snapshot_cache = None
        self._notify()

    def _notify(self):
        snapshot = self.export_room_snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    def set_engine(self, engine):
        """Swap the rules engine, re-seeding the room for the same identity."""
        if getattr(self.engine, 'id', None) == getattr(engine, 'id', None):
            return
        self._bot_task.cancel()
        self.engine = engine
        self._replace_state(clone_state(engine.create_initial_state(
            user_id=self._state.get('user_id'),
            user_name=self._state.get('user_name'),
        )))
        self.set_status(STATUS_IDLE)

    def load_room(self, room_snapshot, current_user: Optional[Dict[str, Any]] = None):
        """Adopt an existing room, reconciling it with the joining identity."""
        self._bot_task.cancel()
        state = hydrate_room_snapshot(room_snapshot, current_state=self._state, current_user=current_user)
        self._replace_state(state)
        self.run_automation()
        self.set_status(STATUS_CONNECTED)

    # ----- automation --------------------------------------------------

    def run_automation(self):
        if should_auto_ready_bots(self._state):
            self.dispatch(make_action(AUTO_READY_BOTS))
        self._schedule_bot_move()

    def _schedule_bot_move(self):
        self._bot_task.cancel()
        bot = resolve_bot_turn_player(self._state)
        if not bot:
            return

        delay = get_bot_think_delay(self.engine)
        logger.debug(f"Scheduling move for bot {bot.get('id')} in {delay}ms")
        self._bot_task.schedule(delay, self._play_bot_turn)

    def _play_bot_turn(self):
        # The state may have moved on while the bot was thinking.
        bot = resolve_bot_turn_player(self._state)
        if not bot:
            return
        action = select_bot_action(self.engine, self._state, bot)
        if action:
            self.dispatch(action)

    # ----- lifecycle ---------------------------------------------------

    async def connect(self, **options):
        raise NotImplementedError(f"{type(self).__name__}.connect must be implemented by subclasses")

    def disconnect(self):
        self._bot_task.cancel()
        self.set_status(STATUS_DISCONNECTED)
        self._listeners.clear()
        self._status_listeners.clear()

    # ----- convenience intents ----------------------------------------

    def _submit(self, action_type: str, payload: Any = None):
        return self.dispatch(make_action(action_type, payload))

    def set_display_name(self, name: str):
        self.dispatch(make_action(SET_NAME, name))

    def create_room(self, settings: Optional[Dict[str, Any]] = None, room_id: Optional[str] = None):
        return self._submit(CREATE_ROOM, {'settings': settings, 'room_id': room_id})

    def toggle_ready(self, player_id: str):
        return self._submit(TOGGLE_READY, {'player_id': player_id})

    def set_player_status(self, player_id: str, status: str):
        return self._submit(SET_PLAYER_STATUS, {'player_id': player_id, 'status': status})

    def update_seat_layout(self, seat_order=None, bench_order=None, max_seats=None, kicked_ids=None):
        return self._submit(SET_SEAT_LAYOUT, {
            'seat_order': seat_order,
            'bench_order': bench_order,
            'max_seats': max_seats,
            'kicked_ids': kicked_ids,
        })

    def add_bot(self):
        return self._submit(ADD_BOT)

    def remove_bot(self):
        return self._submit(REMOVE_BOT)

    def start_game(self):
        return self._submit(START_GAME)

    def play_card(self, player_id: str, card: Any, chosen_suit: Optional[str] = None):
        return self._submit(PLAY_CARD, {'player_id': player_id, 'card': card, 'chosen_suit': chosen_suit})

    def draw_card(self, player_id: str):
        return self._submit(DRAW_CARD, {'player_id': player_id})

    def return_to_lobby(self):
        return self._submit(RETURN_TO_LOBBY)

    def reset_session(self):
        self.dispatch(make_action(RESET_SESSION))
        self.set_status(STATUS_IDLE)
