"""
Message Ingest Service - Messages Endpoints

POST /api/messages - Publishes a message to Pub/Sub, returns 202
GET /api/messages/{message_id} - Returns the stored content
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from message_ingest.config import get_config
from message_ingest.errors import ObjectNotFoundError, PermanentStorageError, StorageError
from message_ingest.publisher import MessagePublisher, create_publisher
from message_ingest.response import APIResponse, ErrorCodes, error_response, success_response
from message_ingest.schemas import Message, MessageData, MessageRequest
from message_ingest.storage import GCSObjectStore, ObjectStore, create_storage_client

# --- Logging ---
logger = logging.getLogger(__name__)

# --- Global clients (reused across requests) ---
publisher = None
store = None


def get_publisher() -> MessagePublisher:
    global publisher
    if publisher is None:
        publisher = create_publisher(get_config())
        logger.info(f"initialized publisher: {publisher.topic_path}")
    return publisher


def get_store() -> ObjectStore:
    global store
    if store is None:
        store = GCSObjectStore(create_storage_client(get_config()))
        logger.info("initialized storage client")
    return store


def get_bucket_name() -> str:
    return get_config().bucket_name


# --- Router ---
router = APIRouter(prefix="/api/messages", tags=["Messages"])


@router.post(
    "",
    summary="Post a message",
    description="""
Queues a message for storage.

```json
{
    "id": "11111111-1111-1111-1111-111111111111",
    "content": "Hello, World!"
}
```

The message is published to Pub/Sub with the id as ordering key and stored
asynchronously under `gs://{bucket}/{id}`. Posting the same id again
overwrites the stored content.
    """,
    response_model=APIResponse,
    status_code=202,
    responses={
        202: {
            "description": "Message accepted and queued",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "data": {
                            "status": "accepted",
                            "id": "11111111-1111-1111-1111-111111111111",
                        },
                        "error": None,
                    }
                }
            },
        },
        400: {
            "description": "Invalid request - missing or invalid fields",
            "content": {
                "application/json": {
                    "example": {
                        "success": False,
                        "data": None,
                        "error": {"code": "VALIDATION_ERROR", "message": "id: Input should be a valid UUID"},
                    }
                }
            },
        },
        503: {
            "description": "Service unavailable - failed to queue message",
            "content": {
                "application/json": {
                    "example": {
                        "success": False,
                        "data": None,
                        "error": {"code": "SERVICE_UNAVAILABLE", "message": "failed to queue message"},
                    }
                }
            },
        },
    },
)
async def post_message(request: Request):
    try:
        body = await request.json()
    except Exception:
        return error_response(ErrorCodes.VALIDATION_ERROR, "invalid JSON")

    try:
        req = MessageRequest.model_validate(body)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"]) or "body"
        return error_response(ErrorCodes.VALIDATION_ERROR, f"{field}: {first['msg']}")

    message = Message(id=req.id, content=req.content)

    # --- Publish to Pub/Sub ---
    try:
        await run_in_threadpool(get_publisher().publish, message)
    except Exception as e:
        logger.error(f"publish failed id={message.key}: {e}")
        return error_response(
            ErrorCodes.SERVICE_UNAVAILABLE, "failed to queue message", status_code=503
        )

    return success_response({"status": "accepted", "id": message.key}, status_code=202)


@router.get(
    "/{message_id}",
    summary="Get a stored message",
    description="Returns the content stored under the message id.",
    response_model=APIResponse,
    responses={
        200: {
            "description": "Message found",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "data": {
                            "id": "11111111-1111-1111-1111-111111111111",
                            "content": "Hello, World!",
                        },
                        "error": None,
                    }
                }
            },
        },
        404: {
            "description": "No message stored under this id",
            "content": {
                "application/json": {
                    "example": {
                        "success": False,
                        "data": None,
                        "error": {"code": "NOT_FOUND", "message": "message not found"},
                    }
                }
            },
        },
    },
)
async def get_message(message_id: str):
    try:
        key = str(UUID(message_id))
    except ValueError:
        return error_response(ErrorCodes.VALIDATION_ERROR, "message id must be a UUID")

    try:
        body = await run_in_threadpool(get_store().get, get_bucket_name(), key)
    except ObjectNotFoundError:
        return error_response(ErrorCodes.NOT_FOUND, "message not found", status_code=404)
    except PermanentStorageError as e:
        logger.error(f"read failed id={key}: {e}")
        return error_response(ErrorCodes.STORAGE_ERROR, "storage rejected the read", status_code=500)
    except StorageError as e:
        logger.warning(f"read failed id={key}: {e}")
        return error_response(
            ErrorCodes.STORAGE_UNAVAILABLE, "storage unavailable", status_code=503
        )

    data = MessageData(id=key, content=body.decode("utf-8", errors="replace"))
    return success_response(data.model_dump())
