# src/tablesync/errors.py

class SyncError(Exception):
    """Base exception for synchronization client errors."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")

# Specific error codes
ENGINE_MISMATCH = "ENGINE_MISMATCH"
TRANSPORT_FACTORY_MISSING = "TRANSPORT_FACTORY_MISSING"
TRANSPORT_UNAVAILABLE = "TRANSPORT_UNAVAILABLE"
NOT_CONNECTED = "NOT_CONNECTED"
CLONE_FAILED = "CLONE_FAILED"
UNKNOWN_ADAPTER = "UNKNOWN_ADAPTER"
DUPLICATE_ADAPTER = "DUPLICATE_ADAPTER"
NO_EVENT_LOOP = "NO_EVENT_LOOP"
INVALID_ENGINE = "INVALID_ENGINE"
REMOTE_ERROR = "REMOTE_ERROR"

# Helper function to raise common errors
def raise_error(code: str, message: str):
    raise SyncError(code, message)
