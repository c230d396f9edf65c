"""
Message Ingest Service - Metrics Endpoint

GET /metrics - Returns basic per-instance runtime metrics.
"""

from fastapi import APIRouter

from message_ingest.metrics import snapshot

router = APIRouter(tags=["Metrics"])


@router.get(
    "/metrics",
    summary="Service metrics",
    description="Returns per-instance runtime metrics: uptime, request count, and stored/failed message counts.",
    responses={
        200: {
            "description": "Metrics retrieved successfully",
            "content": {
                "application/json": {
                    "example": {
                        "service": "message-ingest",
                        "uptime_seconds": 3600,
                        "requests_total": 500,
                        "last_request_at": "2025-11-30T19:00:00+00:00",
                        "messages_stored": 480,
                        "messages_malformed": 2,
                        "storage_failures": 18,
                    }
                }
            },
        },
    },
)
async def get_metrics():
    return snapshot()
