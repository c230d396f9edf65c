"""
Message Ingest Service - Object Store

Thin put/get wrapper over Google Cloud Storage. Client errors are
translated into the storage error taxonomy; nothing is retried here.
"""

import logging
from abc import ABC, abstractmethod

from google.api_core import exceptions as gexc
from google.auth.credentials import AnonymousCredentials
from google.cloud import storage

from message_ingest.config import STORAGE_TIMEOUT_SECONDS, AppConfig
from message_ingest.errors import ObjectNotFoundError, classify_storage_error

# --- Logging ---
logger = logging.getLogger(__name__)

CONTENT_TYPE = "text/plain; charset=utf-8"


class ObjectStore(ABC):
    """Blob store interface used by the handler and the companion API."""

    @abstractmethod
    def put(self, bucket: str, key: str, data: bytes) -> None:
        """Create or overwrite the object at bucket/key."""

    @abstractmethod
    def get(self, bucket: str, key: str) -> bytes:
        """Return the object body. Raises ObjectNotFoundError if absent."""


class GCSObjectStore(ObjectStore):
    """Cloud Storage backed object store. The client is shared across threads."""

    def __init__(self, client: storage.Client):
        self.client = client

    def put(self, bucket: str, key: str, data: bytes) -> None:
        blob = self.client.bucket(bucket).blob(key)
        try:
            # single-request upload; the object only becomes visible once complete.
            # retry=None: redelivery is the only retry.
            blob.upload_from_string(
                data, content_type=CONTENT_TYPE, timeout=STORAGE_TIMEOUT_SECONDS, retry=None
            )
        except Exception as e:
            raise classify_storage_error(e) from e

    def get(self, bucket: str, key: str) -> bytes:
        blob = self.client.bucket(bucket).blob(key)
        try:
            return blob.download_as_bytes(timeout=STORAGE_TIMEOUT_SECONDS, retry=None)
        except gexc.NotFound as e:
            # distinguish a missing object from a missing bucket
            if self._bucket_exists(bucket):
                raise ObjectNotFoundError(f"gs://{bucket}/{key} not found") from e
            raise classify_storage_error(e) from e
        except Exception as e:
            raise classify_storage_error(e) from e

    def _bucket_exists(self, bucket: str) -> bool:
        try:
            return self.client.bucket(bucket).exists(timeout=STORAGE_TIMEOUT_SECONDS, retry=None)
        except Exception as e:
            raise classify_storage_error(e) from e


def create_storage_client(config: AppConfig) -> storage.Client:
    """Build a storage client, pointed at the emulator when an endpoint override is set."""
    endpoint = config.endpoints.storage_endpoint
    if endpoint:
        logger.info(f"using storage emulator: {endpoint}")
        return storage.Client(
            project=config.project_id,
            credentials=AnonymousCredentials(),
            client_options={"api_endpoint": endpoint},
        )
    return storage.Client(project=config.project_id)
