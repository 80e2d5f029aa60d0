"""FastAPI entry point for the tablesync relay"""

import logging

from .config import RelayConfig
from .relay import create_app

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

config = RelayConfig.from_env()
app = create_app(config=config)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.host, port=config.port)
