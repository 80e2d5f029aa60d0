"""
Room snapshot reconciliation.

Merges an externally sourced room snapshot with the identity of the user
joining it, keeping ids unique, seats within capacity and the host seated.
"""

import math
from typing import Any, Dict, List, Optional, Tuple

from .constants import (
    DEFAULT_PLAYER_NAME, PHASE_LOBBY, PLAYER_NOT_READY, PLAYER_READY, PLAYER_STATUSES, ROOM_PHASES
)
from .serialization import clone_state


def normalise_player_status(player: Dict[str, Any]) -> Dict[str, Any]:
    """Seat a record, keeping status and is_ready consistent (a valid status wins)."""
    status = player.get('status')
    if status not in PLAYER_STATUSES:
        status = PLAYER_READY if player.get('is_ready') else PLAYER_NOT_READY
    return {**player, 'is_spectator': False, 'status': status}


def normalise_spectator(player: Dict[str, Any]) -> Dict[str, Any]:
    return {**player, 'is_spectator': True, 'is_ready': False, 'status': PLAYER_NOT_READY}


def dedupe_by_id(records: List[Dict[str, Any]], seen: Optional[set] = None) -> List[Dict[str, Any]]:
    """Drop records whose id was already seen; the first occurrence wins."""
    seen = set() if seen is None else seen
    unique = []
    for record in records:
        record_id = record.get('id')
        if record_id in seen:
            continue
        seen.add(record_id)
        unique.append(record)
    return unique


def ensure_phase(phase: Any) -> str:
    return phase if phase in ROOM_PHASES else PHASE_LOBBY


def seat_limit(snapshot: Dict[str, Any]) -> float:
    settings = snapshot.get('room_settings') or {}
    limit = settings.get('max_players')
    if isinstance(limit, bool) or not isinstance(limit, (int, float)):
        return math.inf
    return limit


def _index_of(records: List[Dict[str, Any]], record_id: Any) -> int:
    for index, record in enumerate(records):
        if record.get('id') == record_id:
            return index
    return -1


def _resolve_identity(
    snapshot: Dict[str, Any],
    current_state: Dict[str, Any],
    current_user: Dict[str, Any],
) -> Tuple[Any, str]:
    user_id = current_user.get('user_id')
    if user_id is None:
        user_id = current_state.get('user_id')
    if user_id is None:
        user_id = snapshot.get('user_id')

    user_name = current_user.get('user_name')
    if user_name is None:
        user_name = current_state.get('user_name')
    if user_name is None:
        user_name = snapshot.get('user_name')
    if user_name is None:
        user_name = DEFAULT_PLAYER_NAME
    return user_id, user_name


def _add_or_update_user(snapshot: Dict[str, Any], user_id: Any, user_name: str) -> None:
    players = snapshot['players']
    spectators = snapshot['spectators']
    player_index = _index_of(players, user_id)
    spectator_index = _index_of(spectators, user_id)

    if player_index >= 0:
        players[player_index] = normalise_player_status({
            **players[player_index], 'name': user_name, 'is_bot': False,
        })
        return

    if spectator_index >= 0:
        spectators[spectator_index] = normalise_spectator({
            **spectators[spectator_index], 'name': user_name, 'is_bot': False, 'is_host': False,
        })
        return

    if len(players) >= seat_limit(snapshot):
        spectators.append(normalise_spectator({
            'id': user_id, 'name': user_name, 'is_bot': False, 'is_host': False,
        }))
    else:
        players.append(normalise_player_status({
            'id': user_id, 'name': user_name, 'is_bot': False, 'is_host': False, 'is_ready': False,
        }))


def _elevate_host(snapshot: Dict[str, Any]) -> None:
    host_id = snapshot.get('host_id')
    if not host_id:
        return

    players = snapshot['players']
    if _index_of(players, host_id) >= 0:
        return

    spectators = snapshot['spectators']
    host_index = _index_of(spectators, host_id)
    if host_index < 0:
        return

    host_record = spectators.pop(host_index)
    if len(players) >= seat_limit(snapshot):
        # No free seat: the host stays benched rather than displacing anyone.
        spectators.append(normalise_spectator(host_record))
    else:
        players.insert(0, normalise_player_status(host_record))


def hydrate_room_snapshot(
    room_snapshot: Any,
    current_state: Optional[Dict[str, Any]] = None,
    current_user: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Reconcile a room snapshot with the identity of the user adopting it.

    Args:
        room_snapshot: Incoming room state, never mutated (frozen views accepted)
        current_state: The adopting client's current state, used for identity fallback
        current_user: Explicit identity, ``{"user_id": ..., "user_name": ...}``

    Returns:
        A new room state dict. Hydrating the result again with the same
        identity yields the same seating.
    """
    snapshot = clone_state(room_snapshot) or {}
    current_state = current_state or {}
    current_user = current_user or {}

    seen: set = set()
    snapshot['players'] = dedupe_by_id(
        [normalise_player_status(dict(player)) for player in snapshot.get('players') or []], seen
    )
    snapshot['spectators'] = dedupe_by_id(
        [normalise_spectator(dict(spectator)) for spectator in snapshot.get('spectators') or []], seen
    )

    user_id, user_name = _resolve_identity(snapshot, current_state, current_user)
    snapshot['user_id'] = user_id
    snapshot['user_name'] = user_name

    _add_or_update_user(snapshot, user_id, user_name)
    _elevate_host(snapshot)

    snapshot['phase'] = ensure_phase(snapshot.get('phase'))
    return snapshot
