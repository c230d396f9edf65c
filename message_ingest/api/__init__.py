"""
API Routes - combines all route modules
"""

from fastapi import APIRouter

from message_ingest.api.health import router as health_router
from message_ingest.api.messages import router as messages_router
from message_ingest.api.metrics import router as metrics_router
from message_ingest.api.process import router as process_router

router = APIRouter()
router.include_router(messages_router)
router.include_router(process_router)
router.include_router(health_router)
router.include_router(metrics_router)
