"""ASGI entry point for uvicorn with hot reload support.

Usage:
    uvicorn app.asgi:app --reload --host 0.0.0.0 --port 3000
"""

from app.config import RelayConfig
from app.logging_filters import configure_logging
from app.main import create_app

_config = RelayConfig.from_json_file()
configure_logging(_config.log_level)

# Lifespan (sweeper start/stop, client shutdown) is attached by create_app.
app = create_app(_config).fastapi_app
