"""
Shared fixtures - in-memory object store and a test configuration
"""

import threading
from typing import Dict, List, Tuple

import pytest

from message_ingest.config import AppConfig, EndpointConfig
from message_ingest.errors import ObjectNotFoundError, PermanentStorageError
from message_ingest.handler import IngestionHandler
from message_ingest.storage import ObjectStore

TEST_BUCKET = "test-bucket"


class InMemoryObjectStore(ObjectStore):
    """Dict-backed ObjectStore. Records every put so tests can count writes."""

    def __init__(self):
        self.objects: Dict[Tuple[str, str], bytes] = {}
        self.puts: List[Tuple[str, str]] = []
        self.buckets = {TEST_BUCKET}
        self._lock = threading.Lock()

    def put(self, bucket: str, key: str, data: bytes) -> None:
        if bucket not in self.buckets:
            raise PermanentStorageError(f"bucket not found: {bucket}")
        with self._lock:
            self.puts.append((bucket, key))
            self.objects[(bucket, key)] = bytes(data)

    def get(self, bucket: str, key: str) -> bytes:
        if bucket not in self.buckets:
            raise PermanentStorageError(f"bucket not found: {bucket}")
        try:
            return self.objects[(bucket, key)]
        except KeyError:
            raise ObjectNotFoundError(f"gs://{bucket}/{key} not found")

    def keys(self, bucket: str = TEST_BUCKET) -> List[str]:
        return sorted(k for b, k in self.objects if b == bucket)


@pytest.fixture
def config():
    return AppConfig(
        app_env="local",
        project_id="test-project",
        queue_name="test-queue",
        subscription_name="test-queue-sub",
        dead_letter_topic="test-queue-dead-letter",
        bucket_name=TEST_BUCKET,
        endpoints=EndpointConfig(
            pubsub_endpoint="localhost:8085",
            storage_endpoint="http://localhost:4443",
        ),
    )


@pytest.fixture
def store():
    return InMemoryObjectStore()


@pytest.fixture
def handler(store, config):
    return IngestionHandler(store, config)
