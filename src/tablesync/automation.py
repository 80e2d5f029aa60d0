"""Bot automation policies run after every committed state change"""

import logging
from typing import Any, Dict, Optional

from .constants import PHASE_LOBBY, PHASE_PLAYING

logger = logging.getLogger(__name__)


def _players(state) -> list:
    players = state.get('players') if state else None
    return list(players) if isinstance(players, (list, tuple)) else []


def should_auto_ready_bots(state) -> bool:
    """True when every human in the lobby is ready and some bot is not."""
    if not state or state.get('phase') != PHASE_LOBBY:
        return False
    players = _players(state)
    humans = [player for player in players if not player.get('is_bot')]
    if not humans:
        return False
    humans_ready = all(player.get('is_ready') for player in humans)
    bots_need_ready = any(player.get('is_bot') and not player.get('is_ready') for player in players)
    return humans_ready and bots_need_ready


def resolve_bot_turn_player(state) -> Optional[Dict[str, Any]]:
    """Return the bot owning the current turn, if any."""
    if not state or state.get('phase') != PHASE_PLAYING:
        return None
    current_turn = state.get('current_turn')
    for player in _players(state):
        if player.get('id') == current_turn and player.get('is_bot'):
            return player
    return None


def select_bot_action(engine, state, player) -> Optional[Dict[str, Any]]:
    get_bot_action = getattr(engine, 'get_bot_action', None)
    if not callable(get_bot_action) or not player:
        return None
    action = get_bot_action(state, player)
    if not action:
        logger.debug(f"Engine returned no action for bot {player.get('id')}")
        return None
    return action


def get_bot_think_delay(engine) -> float:
    """Engine-declared bot delay in milliseconds, zero when missing or invalid."""
    delay = getattr(engine, 'bot_think_delay', None)
    if isinstance(delay, bool) or not isinstance(delay, (int, float)):
        return 0
    return delay if delay >= 0 else 0
