"""Shared constants for room state, player status and connection status"""

# Room phases. PHASE_IDLE is engine-owned and only exists before a room is created.
PHASE_IDLE = 'idle'
PHASE_LOBBY = 'roomLobby'
PHASE_PLAYING = 'playing'
PHASE_FINISHED = 'finished'

ROOM_PHASES = (PHASE_LOBBY, PHASE_PLAYING, PHASE_FINISHED)

# Player readiness
PLAYER_NOT_READY = 'notReady'
PLAYER_READY = 'ready'
PLAYER_NEEDS_TIME = 'needsTime'

PLAYER_STATUSES = (PLAYER_NOT_READY, PLAYER_READY, PLAYER_NEEDS_TIME)

# Connection status of a client
STATUS_IDLE = 'idle'
STATUS_CONNECTING = 'connecting'
STATUS_CONNECTED = 'connected'
STATUS_DISCONNECTED = 'disconnected'
STATUS_ERROR = 'error'

CONNECTION_STATUSES = (
    STATUS_IDLE, STATUS_CONNECTING, STATUS_CONNECTED, STATUS_DISCONNECTED, STATUS_ERROR
)

# Reserved internal actions
AUTO_READY_BOTS = 'AUTO_READY_BOTS'
RESET_SESSION = 'RESET_SESSION'

# Convenience actions
SET_NAME = 'SET_NAME'
CREATE_ROOM = 'CREATE_ROOM'
TOGGLE_READY = 'TOGGLE_READY'
SET_PLAYER_STATUS = 'SET_PLAYER_STATUS'
SET_SEAT_LAYOUT = 'SET_SEAT_LAYOUT'
ADD_BOT = 'ADD_BOT'
REMOVE_BOT = 'REMOVE_BOT'
START_GAME = 'START_GAME'
PLAY_CARD = 'PLAY_CARD'
DRAW_CARD = 'DRAW_CARD'
RETURN_TO_LOBBY = 'RETURN_TO_LOBBY'

DEFAULT_PLAYER_NAME = 'Player'
