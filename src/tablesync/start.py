#!/usr/bin/env python3
"""Startup script for the tablesync relay"""

import uvicorn

from .config import RelayConfig


def main():
    config = RelayConfig.from_env()

    print(f"Starting tablesync relay on {config.host}:{config.port} (engine {config.engine_path})")
    print(f"Health check available at: http://{config.host}:{config.port}/health")
    print(f"WebSocket endpoint: ws://{config.host}:{config.port}/ws/<room_id>")

    uvicorn.run(
        "tablesync.main:app",
        host=config.host,
        port=config.port,
        reload=config.reload,
        log_level=config.log_level,
    )


if __name__ == "__main__":
    main()
