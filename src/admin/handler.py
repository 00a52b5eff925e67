"""
Admin API entry point.

Local dev:
    PYTHONPATH=src uv run uvicorn admin.handler:app --reload --port 8001

Container:
    PORT=8001 radio-admin-api

Lambda handler:
    admin.handler.handler
"""

import logging

import uvicorn
from fastapi import FastAPI
from mangum import Mangum

from admin.routes import listeners, milestones
from shared.config import HOST, LOG_LEVEL, PORT

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")
logging.getLogger().setLevel(LOG_LEVEL)

app = FastAPI(
    title="Radio Admin API",
    description="Back office for listener accounts and the milestone log. All routes require an admin token.",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(listeners.router)
app.include_router(milestones.router)


@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok"}


# Mangum adapts the FastAPI ASGI app for AWS Lambda + API Gateway (HTTP API).
handler = Mangum(app, lifespan="off")


def main():
    uvicorn.run(app, host=HOST, port=PORT)
