"""
Message Ingest Service - Process Endpoint

POST /process - Pub/Sub push handler, stores message content in Cloud Storage
"""

import base64
import binascii
import logging

from fastapi import APIRouter, Request
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from message_ingest import metrics
from message_ingest.config import MAX_DELIVERY_ATTEMPTS, get_config
from message_ingest.errors import MalformedMessageError, PermanentStorageError, StorageError
from message_ingest.handler import IngestionHandler
from message_ingest.response import APIResponse, ErrorCodes, error_response, success_response
from message_ingest.schemas import PubSubEnvelope, decode_message
from message_ingest.storage import GCSObjectStore, create_storage_client

# --- Logging ---
logger = logging.getLogger(__name__)

# --- Ingestion handler ---
handler = None


def get_handler() -> IngestionHandler:
    global handler
    if handler is None:
        config = get_config()
        handler = IngestionHandler(GCSObjectStore(create_storage_client(config)), config)
        logger.info(f"initialized handler: bucket={config.bucket_name}")
    return handler


# --- Router ---
router = APIRouter(tags=["Processing"])


@router.post(
    "/process",
    summary="Process queued message",
    description=f"""
Pub/Sub push endpoint that stores each message as an object.

**This endpoint is private** - only Pub/Sub should invoke it via authenticated push.

## Processing Steps

1. **Decode**: Base64 decode the message data and parse `{{"id", "content"}}`
2. **Validate**: `id` must be a UUID
3. **Store**: Write the UTF-8 content to `gs://{{bucket}}/{{id}}`

Redelivered messages overwrite the same object with the same bytes.

## Retry Behavior

Pub/Sub redelivers on every non-2xx response. After {MAX_DELIVERY_ATTEMPTS} attempts
the subscription's dead-letter policy moves the message to the dead-letter topic.

- `200` message stored, acknowledged
- `400` malformed message, dead-lettered once attempts run out
- `500` permanent storage failure (access denied, missing bucket), needs an operator
- `503` transient storage failure, redelivered
    """,
    response_model=APIResponse,
    responses={
        200: {
            "description": "Message stored",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "data": {
                            "status": "stored",
                            "id": "11111111-1111-1111-1111-111111111111",
                        },
                        "error": None,
                    }
                }
            },
        },
        400: {
            "description": "Malformed envelope or message",
            "content": {
                "application/json": {
                    "example": {
                        "success": False,
                        "data": None,
                        "error": {
                            "code": "MALFORMED_MESSAGE",
                            "message": "missing message id",
                        },
                    }
                }
            },
        },
        503: {
            "description": "Transient storage failure",
            "content": {
                "application/json": {
                    "example": {
                        "success": False,
                        "data": None,
                        "error": {
                            "code": "STORAGE_UNAVAILABLE",
                            "message": "failed to store message",
                        },
                    }
                }
            },
        },
    },
)
async def process(request: Request):
    """
    Pub/Sub push handler.
    - Decodes message
    - Writes content to the configured bucket under the message id
    - Returns 200 to ack, non-2xx to trigger redelivery
    """
    try:
        envelope = await request.json()
    except Exception:
        logger.error("invalid JSON envelope")
        metrics.record_malformed()
        return error_response(ErrorCodes.INVALID_ENVELOPE, "invalid JSON envelope")

    # --- Parse Pub/Sub push envelope ---
    if not isinstance(envelope, dict) or not isinstance(envelope.get("message"), dict):
        logger.error("missing 'message' in envelope")
        metrics.record_malformed()
        return error_response(ErrorCodes.MISSING_MESSAGE, "missing 'message' in envelope")

    try:
        push = PubSubEnvelope.model_validate(envelope)
    except ValidationError as e:
        logger.error(f"invalid push envelope: {e.error_count()} errors")
        metrics.record_malformed()
        return error_response(ErrorCodes.INVALID_ENVELOPE, "invalid push envelope")

    pubsub_id = push.message.messageId
    attempt = push.deliveryAttempt

    try:
        data = base64.b64decode(push.message.data, validate=True)
    except (binascii.Error, TypeError, ValueError) as e:
        logger.error(f"failed to decode message data: {e}")
        metrics.record_malformed()
        return error_response(ErrorCodes.INVALID_BASE64, "failed to decode message data")

    try:
        msg = decode_message(data)
    except MalformedMessageError as e:
        logger.error(f"malformed message pubsub_id={pubsub_id} attempt={attempt}: {e}")
        metrics.record_malformed()
        return error_response(ErrorCodes.MALFORMED_MESSAGE, str(e))

    # --- Store (blocking client call, off the event loop; the handler logs failures) ---
    try:
        key = await run_in_threadpool(get_handler().handle, msg)
    except PermanentStorageError:
        metrics.record_storage_failure()
        return error_response(
            ErrorCodes.STORAGE_ERROR, "storage rejected the write", status_code=500
        )
    except StorageError:
        metrics.record_storage_failure()
        return error_response(
            ErrorCodes.STORAGE_UNAVAILABLE, "failed to store message", status_code=503
        )

    metrics.record_stored()
    return success_response({"status": "stored", "id": key})
