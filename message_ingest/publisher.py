"""
Message Ingest Service - Publisher

Publishes messages to the Pub/Sub topic with the message id as ordering key.
"""

import logging

import grpc
from google.cloud import pubsub_v1
from google.pubsub_v1.services.publisher.transports import PublisherGrpcTransport

from message_ingest.config import AppConfig
from message_ingest.schemas import Message

# --- Logging ---
logger = logging.getLogger(__name__)

PUBLISH_TIMEOUT_SECONDS = 10.0


class MessagePublisher:
    def __init__(self, client: pubsub_v1.PublisherClient, topic_path: str):
        self.client = client
        self.topic_path = topic_path

    def publish(self, message: Message) -> str:
        """Publish and wait for the server ack. Returns the Pub/Sub message id."""
        future = self.client.publish(
            self.topic_path,
            data=message.to_payload(),
            ordering_key=message.key,
            message_id=message.key,
        )
        try:
            pubsub_id = future.result(timeout=PUBLISH_TIMEOUT_SECONDS)
        except Exception:
            # a failed publish pauses the ordering key until resumed
            self.client.resume_publish(self.topic_path, message.key)
            raise
        logger.info(f"published: id={message.key} pubsub_id={pubsub_id}")
        return pubsub_id


def create_publisher_client(config: AppConfig) -> pubsub_v1.PublisherClient:
    """Build a publisher client with message ordering enabled."""
    options = pubsub_v1.types.PublisherOptions(enable_message_ordering=True)
    endpoint = config.endpoints.pubsub_endpoint
    if endpoint:
        logger.info(f"using pubsub emulator: {endpoint}")
        transport = PublisherGrpcTransport(channel=grpc.insecure_channel(endpoint))
        return pubsub_v1.PublisherClient(publisher_options=options, transport=transport)
    return pubsub_v1.PublisherClient(publisher_options=options)


def create_publisher(config: AppConfig) -> MessagePublisher:
    client = create_publisher_client(config)
    return MessagePublisher(client, config.topic_path)
