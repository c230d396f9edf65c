"""
Message Ingest Service - Configuration

All environment variables, constants, and settings in one place.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

# --- API Configuration ---
API_VERSION = "1.0.0"

# --- Delivery Configuration ---
MAX_DELIVERY_ATTEMPTS = 5  # dead-letter threshold
SUBSCRIBER_MAX_MESSAGES = 10
ACK_DEADLINE_SECONDS = 60
STORAGE_TIMEOUT_SECONDS = 30  # per request, below the ack deadline

# --- Local emulators ---
LOCAL_PUBSUB_ENDPOINT = "localhost:8085"
LOCAL_STORAGE_ENDPOINT = "http://localhost:4443"
LOCAL_PROJECT_ID = "local-project"

APP_ENVS = ("local", "cloud")

# --- Service Info ---
SERVICE_NAME = "Message Ingest Service"
SERVICE_DESCRIPTION = """
## Overview
Consumes `{id, content}` messages from Pub/Sub and stores each content
as an object in Cloud Storage, keyed by the message id.

## Features
- Idempotent writes: redelivery of a message overwrites the same object
- Pub/Sub push (`/process`) and pull (`python -m message_ingest.subscriber`) delivery
- Companion API to post and retrieve messages
- Runs against the Pub/Sub and GCS emulators with `APP_ENV=local`
"""


class ConfigError(ValueError):
    """Raised when the runtime configuration is incomplete."""


class EndpointConfig(BaseModel):
    """Endpoint overrides. None routes calls to the live service."""

    pubsub_endpoint: Optional[str] = Field(None, description="Pub/Sub emulator host:port")
    storage_endpoint: Optional[str] = Field(None, description="GCS emulator base URL")

    model_config = {"frozen": True}

    @property
    def emulated(self) -> bool:
        return bool(self.pubsub_endpoint or self.storage_endpoint)


class AppConfig(BaseModel):
    """Runtime configuration shared by the API, the handler and provisioning."""

    app_env: str = Field("cloud", description="local or cloud")
    project_id: str = Field(..., description="GCP project id")
    queue_name: str = Field(..., description="Pub/Sub topic id")
    subscription_name: str = Field(..., description="Pub/Sub subscription id")
    dead_letter_topic: str = Field(..., description="Dead-letter topic id")
    bucket_name: str = Field(..., description="GCS bucket name")
    push_endpoint: Optional[str] = Field(None, description="Push endpoint for the subscription")
    endpoints: EndpointConfig = Field(default_factory=EndpointConfig)

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "app_env": "local",
                "project_id": "local-project",
                "queue_name": "message-queue",
                "subscription_name": "message-queue-sub",
                "dead_letter_topic": "message-queue-dead-letter",
                "bucket_name": "message-bucket",
                "push_endpoint": None,
                "endpoints": {
                    "pubsub_endpoint": "localhost:8085",
                    "storage_endpoint": "http://localhost:4443",
                },
            }
        },
    }

    @property
    def topic_path(self) -> str:
        return f"projects/{self.project_id}/topics/{self.queue_name}"

    @property
    def subscription_path(self) -> str:
        return f"projects/{self.project_id}/subscriptions/{self.subscription_name}"

    @property
    def dead_letter_topic_path(self) -> str:
        return f"projects/{self.project_id}/topics/{self.dead_letter_topic}"


def load_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Resolve the runtime configuration from environment variables.

    APP_ENV=local points both clients at the emulators unless
    PUBSUB_ENDPOINT / STORAGE_ENDPOINT say otherwise. APP_ENV=cloud only
    uses an endpoint when one is set explicitly.
    """
    env = os.environ if environ is None else environ

    app_env = env.get("APP_ENV", "cloud").strip().lower()
    if app_env not in APP_ENVS:
        raise ConfigError(f"APP_ENV must be one of {', '.join(APP_ENVS)}, got {app_env!r}")

    local = app_env == "local"

    project_id = env.get("GCP_PROJECT_ID", "").strip() or (LOCAL_PROJECT_ID if local else "")
    if not project_id:
        raise ConfigError("GCP_PROJECT_ID is required")

    queue_name = env.get("QUEUE_NAME", "message-queue").strip()
    bucket_name = env.get("BUCKET_NAME", "message-bucket").strip()
    if not queue_name:
        raise ConfigError("QUEUE_NAME must not be empty")
    if not bucket_name:
        raise ConfigError("BUCKET_NAME must not be empty")

    endpoints = EndpointConfig(
        pubsub_endpoint=env.get("PUBSUB_ENDPOINT") or (LOCAL_PUBSUB_ENDPOINT if local else None),
        storage_endpoint=env.get("STORAGE_ENDPOINT") or (LOCAL_STORAGE_ENDPOINT if local else None),
    )

    return AppConfig(
        app_env=app_env,
        project_id=project_id,
        queue_name=queue_name,
        subscription_name=env.get("SUBSCRIPTION_NAME") or f"{queue_name}-sub",
        dead_letter_topic=env.get("DEAD_LETTER_TOPIC") or f"{queue_name}-dead-letter",
        bucket_name=bucket_name,
        push_endpoint=env.get("PUSH_ENDPOINT") or None,
        endpoints=endpoints,
    )


# --- Cached runtime configuration ---
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    global _config
    if _config is None:
        _config = load_config()
    return _config
