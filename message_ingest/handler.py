"""
Message Ingest Service - Ingestion Handler

Stores one message as one object: key = message id, body = UTF-8 content.

Redelivery of the same message overwrites the same key with the same
bytes, so at-least-once delivery converges to a single object. Storage
failures are raised, never swallowed, so the transport redelivers.
"""

import logging
from typing import Any, Dict, Union

from message_ingest.config import AppConfig
from message_ingest.errors import PermanentStorageError, StorageError
from message_ingest.schemas import Message, decode_message
from message_ingest.storage import ObjectStore

# --- Logging ---
logger = logging.getLogger(__name__)


class IngestionHandler:
    """Stateless; one instance is shared by all concurrent deliveries."""

    def __init__(self, store: ObjectStore, config: AppConfig):
        self.store = store
        self.config = config

    def handle(self, message: Message) -> str:
        """Write the message content under its id. Returns the storage key."""
        bucket = self.config.bucket_name
        key = message.key
        body = message.content.encode("utf-8")

        try:
            self.store.put(bucket, key, body)
        except PermanentStorageError as e:
            logger.error(f"permanent storage failure: gs://{bucket}/{key}: {e}")
            raise
        except StorageError as e:
            logger.warning(f"transient storage failure: gs://{bucket}/{key}: {e}")
            raise

        logger.info(f"stored: gs://{bucket}/{key} bytes={len(body)}")
        return key

    def handle_payload(self, data: Union[bytes, str, Dict[str, Any]]) -> str:
        """Decode a raw queue payload and handle it."""
        return self.handle(decode_message(data))
