"""
Message Ingest Service - Schemas

Pydantic models for queue payloads, request/response validation and
Swagger documentation.
"""

import json
from typing import Any, Dict, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError, field_validator

from message_ingest.errors import MalformedMessageError

# --- Domain Models ---


def is_utf8_encodable(text: str) -> bool:
    """False for text holding lone surrogates, which JSON escapes allow."""
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


class Message(BaseModel):
    """A queued message. The id doubles as the storage key."""

    id: UUID = Field(..., description="Caller-supplied unique message id")
    content: str = Field(..., description="Opaque UTF-8 text content")

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "id": "11111111-1111-1111-1111-111111111111",
                "content": "Hello, World!",
            }
        },
    }

    @property
    def key(self) -> str:
        return str(self.id)

    def to_payload(self) -> bytes:
        return json.dumps({"id": self.key, "content": self.content}).encode("utf-8")


def decode_message(data: Union[bytes, str, Dict[str, Any]]) -> Message:
    """
    Decode a queue payload into a Message.

    Raises MalformedMessageError if the payload is not UTF-8 JSON, or if
    the id is missing or not a UUID, or if content is missing.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedMessageError("payload is not valid UTF-8") from e

    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise MalformedMessageError("payload is not valid JSON") from e

    if not isinstance(data, dict):
        raise MalformedMessageError("payload must be a JSON object")
    if not data.get("id"):
        raise MalformedMessageError("missing message id")
    if not isinstance(data.get("content"), str):
        raise MalformedMessageError("missing message content")
    if not is_utf8_encodable(data["content"]):
        raise MalformedMessageError("message content is not encodable as UTF-8")

    try:
        return Message.model_validate({"id": data["id"], "content": data["content"]})
    except ValidationError as e:
        raise MalformedMessageError(f"invalid message id: {data['id']!r}") from e


# --- Pub/Sub push models ---


class PubSubMessage(BaseModel):
    """Pub/Sub message structure."""

    data: str = Field(
        ...,
        description="Base64 encoded message data",
    )
    attributes: Dict[str, str] = Field(
        default_factory=dict,
        description="Message attributes",
    )
    messageId: Optional[str] = Field(
        None,
        description="Pub/Sub message ID",
    )
    orderingKey: Optional[str] = Field(
        None,
        description="Ordering key (the message id)",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "data": "eyJpZCI6ICIxMTExMTExMS0xMTExLTExMTEtMTExMS0xMTExMTExMTExMTEiLCAiY29udGVudCI6ICJIZWxsbywgV29ybGQhIn0=",
                "attributes": {"message_id": "11111111-1111-1111-1111-111111111111"},
                "messageId": "12345",
                "orderingKey": "11111111-1111-1111-1111-111111111111",
            }
        }
    }


class PubSubEnvelope(BaseModel):
    """Pub/Sub push request envelope."""

    message: PubSubMessage = Field(
        ...,
        description="The Pub/Sub message",
    )
    subscription: Optional[str] = Field(
        None,
        description="Subscription name",
    )
    deliveryAttempt: Optional[int] = Field(
        None,
        description="Delivery attempt, set when a dead-letter policy is configured",
    )


# --- API Models ---


class MessageRequest(BaseModel):
    """JSON request body for POST /api/messages."""

    id: UUID = Field(..., description="Unique message id, used as the storage key")
    content: str = Field(..., description="Text content to store")

    @field_validator("content")
    @classmethod
    def content_must_be_utf8(cls, v: str) -> str:
        if not is_utf8_encodable(v):
            raise ValueError("content is not encodable as UTF-8")
        return v

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "11111111-1111-1111-1111-111111111111",
                "content": "Hello, World!",
            }
        }
    }


class MessageData(BaseModel):
    """A stored message as returned by GET /api/messages/{id}."""

    id: str = Field(..., description="Message id")
    content: str = Field(..., description="Stored content")

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "11111111-1111-1111-1111-111111111111",
                "content": "Hello, World!",
            }
        }
    }
