"""ASGI entry point.

    uvicorn gamesrandom.main:app

Reads config.yaml (or the file named by GAMESRANDOM_CONFIG) at import.
"""

import logging

from gamesrandom.config import load_config
from gamesrandom.server import create_app

logging.basicConfig(level=logging.INFO)

load_config()
app = create_app()
