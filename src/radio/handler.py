"""
Public radio API entry point.

Local dev:
    PYTHONPATH=src uv run uvicorn radio.handler:app --reload --port 8000

Container:
    PORT=8000 radio-api

Lambda handler:
    radio.handler.handler
"""

import logging

import uvicorn
from fastapi import FastAPI
from mangum import Mangum

from radio.routes import listeners, listening, milestones
from shared.config import HOST, LOG_LEVEL, PORT

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")
logging.getLogger().setLevel(LOG_LEVEL)

app = FastAPI(
    title="Radio API",
    description="Listening time, milestone feed, listener profiles and leaderboard.",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(listening.router)
app.include_router(milestones.router)
app.include_router(listeners.router)


@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok"}


# Mangum adapts the FastAPI ASGI app for AWS Lambda + API Gateway (HTTP API).
handler = Mangum(app, lifespan="off")


def main():
    uvicorn.run(app, host=HOST, port=PORT)
