"""
Message Ingest Service - Provisioning

Creates the topic, dead-letter topic, subscription and bucket the service
runs against. Every step tolerates an existing resource, so it can be run
repeatedly against the emulators or a real project.

Names come from the same AppConfig the service reads at runtime, so the
provisioned resources always match what the handler is configured with.
"""

import logging
from typing import Dict

from google.api_core import exceptions as gexc
from google.cloud import pubsub_v1, storage

from message_ingest.config import ACK_DEADLINE_SECONDS, MAX_DELIVERY_ATTEMPTS, AppConfig

# --- Logging ---
logger = logging.getLogger(__name__)


def dead_letter_subscription_path(config: AppConfig) -> str:
    return f"projects/{config.project_id}/subscriptions/{config.dead_letter_topic}-sub"


def subscription_request(config: AppConfig) -> dict:
    """Request body for the main subscription."""
    request = {
        "name": config.subscription_path,
        "topic": config.topic_path,
        "ack_deadline_seconds": ACK_DEADLINE_SECONDS,
        "enable_message_ordering": True,
        "dead_letter_policy": {
            "dead_letter_topic": config.dead_letter_topic_path,
            "max_delivery_attempts": MAX_DELIVERY_ATTEMPTS,
        },
    }
    if config.push_endpoint:
        request["push_config"] = {"push_endpoint": config.push_endpoint}
    else:
        # only available on pull subscriptions
        request["enable_exactly_once_delivery"] = True
    return request


def _create_topic(publisher: pubsub_v1.PublisherClient, topic_path: str) -> None:
    try:
        publisher.create_topic(request={"name": topic_path})
        logger.info(f"created topic: {topic_path}")
    except gexc.AlreadyExists:
        logger.info(f"topic exists: {topic_path}")


def _create_subscription(subscriber: pubsub_v1.SubscriberClient, request: dict) -> None:
    try:
        subscriber.create_subscription(request=request)
        logger.info(f"created subscription: {request['name']}")
    except gexc.AlreadyExists:
        logger.info(f"subscription exists: {request['name']}")


def _create_bucket(storage_client: storage.Client, bucket_name: str) -> None:
    try:
        storage_client.create_bucket(bucket_name)
        logger.info(f"created bucket: {bucket_name}")
    except gexc.Conflict:
        logger.info(f"bucket exists: {bucket_name}")


def provision(
    config: AppConfig,
    publisher: pubsub_v1.PublisherClient,
    subscriber: pubsub_v1.SubscriberClient,
    storage_client: storage.Client,
) -> Dict[str, str]:
    """
    Create all resources and return their names.

    On a real project the Pub/Sub service agent also needs publisher rights
    on the dead-letter topic and subscriber rights on the subscription;
    those grants are not made here.
    """
    _create_topic(publisher, config.dead_letter_topic_path)
    _create_subscription(
        subscriber,
        {"name": dead_letter_subscription_path(config), "topic": config.dead_letter_topic_path},
    )
    _create_topic(publisher, config.topic_path)
    _create_subscription(subscriber, subscription_request(config))
    _create_bucket(storage_client, config.bucket_name)

    return {
        "topic": config.topic_path,
        "subscription": config.subscription_path,
        "dead_letter_topic": config.dead_letter_topic_path,
        "bucket": config.bucket_name,
    }


def teardown(
    config: AppConfig,
    publisher: pubsub_v1.PublisherClient,
    subscriber: pubsub_v1.SubscriberClient,
    storage_client: storage.Client,
) -> None:
    """Delete everything provision() created, including stored objects."""
    for path in (config.subscription_path, dead_letter_subscription_path(config)):
        try:
            subscriber.delete_subscription(request={"subscription": path})
            logger.info(f"deleted subscription: {path}")
        except gexc.NotFound:
            logger.info(f"subscription not found: {path}")

    for path in (config.topic_path, config.dead_letter_topic_path):
        try:
            publisher.delete_topic(request={"topic": path})
            logger.info(f"deleted topic: {path}")
        except gexc.NotFound:
            logger.info(f"topic not found: {path}")

    try:
        storage_client.bucket(config.bucket_name).delete(force=True)
        logger.info(f"deleted bucket: {config.bucket_name}")
    except gexc.NotFound:
        logger.info(f"bucket not found: {config.bucket_name}")
