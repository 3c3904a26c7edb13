"""ASGI entrypoint.

Run: `uvicorn api_app:app --reload`
The API lives under `/api`, the path the browser client calls.
"""

import logging

from fastapi import FastAPI

from story_reel.backend import config
from story_reel.backend.app import app as core_app

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

app = FastAPI()
app.mount("/api", core_app)
