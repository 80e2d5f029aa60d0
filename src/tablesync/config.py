"""
Environment-driven configuration for clients and the relay server.
"""

import importlib
import os
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import SyncError, INVALID_ENGINE
from .models import GameEngine

DEFAULT_ENGINE_PATH = "tablesync.rooms:lobby_engine"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass
class ClientConfig:
    adapter: str = "local"
    relay_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ClientConfig":
        return cls(
            adapter=os.getenv("TABLESYNC_ADAPTER", "local").lower(),
            relay_url=os.getenv("TABLESYNC_RELAY_URL") or None,
        )


@dataclass
class RelayConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False
    log_level: str = "info"
    engine_path: str = DEFAULT_ENGINE_PATH
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "RelayConfig":
        origins = os.getenv("TABLESYNC_CORS_ORIGINS", "*")
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", 8000)),
            reload=_env_flag("RELOAD"),
            log_level=os.getenv("LOG_LEVEL", "info").lower(),
            engine_path=os.getenv("TABLESYNC_ENGINE", DEFAULT_ENGINE_PATH),
            cors_origins=[origin.strip() for origin in origins.split(",") if origin.strip()] or ["*"],
        )


def load_engine(path: str) -> GameEngine:
    """
    Resolve a ``module:attribute`` path to a GameEngine.

    Raises:
        SyncError: INVALID_ENGINE if the path cannot be resolved
    """
    module_name, _, attribute = (path or "").partition(":")
    if not module_name or not attribute:
        raise SyncError(INVALID_ENGINE, f"Engine path must look like 'package.module:engine', got {path!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise SyncError(INVALID_ENGINE, f"Cannot import engine module {module_name}: {e}") from e

    engine = getattr(module, attribute, None)
    if not isinstance(engine, GameEngine):
        raise SyncError(INVALID_ENGINE, f"{path} is not a GameEngine")
    return engine
