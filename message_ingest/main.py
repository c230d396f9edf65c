"""
Message Ingest Service

Application entry point. Sets up FastAPI app and includes all routes.

    uvicorn message_ingest.main:app
"""

import logging

from fastapi import FastAPI, Request

from message_ingest.api import router
from message_ingest.config import API_VERSION, SERVICE_DESCRIPTION, SERVICE_NAME
from message_ingest.metrics import record_request

# --- Logging ---
logging.basicConfig(level=logging.INFO, format="%(message)s")

# --- App ---
app = FastAPI(
    title=SERVICE_NAME,
    description=SERVICE_DESCRIPTION,
    version=API_VERSION,
)


# --- Metrics middleware ---
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    response = await call_next(request)
    record_request(request.url.path)
    return response


# --- Include routes ---
app.include_router(router)
