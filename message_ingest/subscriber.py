"""
Message Ingest Service - Pull Subscriber

Streaming-pull consumer for deployments without a push endpoint.

    python -m message_ingest.subscriber

Messages are acked only after the object is stored. Failures are nacked
and redelivered; after MAX_DELIVERY_ATTEMPTS the subscription's
dead-letter policy moves them to the dead-letter topic. On shutdown the
stream is cancelled and in-flight messages are left unacked.
"""

import logging
import signal
import threading
from concurrent import futures
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import grpc
from google.cloud import pubsub_v1
from google.cloud.pubsub_v1.subscriber import exceptions as sub_exceptions
from google.cloud.pubsub_v1.subscriber.scheduler import ThreadScheduler
from google.pubsub_v1.services.subscriber.transports import SubscriberGrpcTransport

from message_ingest.config import SUBSCRIBER_MAX_MESSAGES, AppConfig, load_config
from message_ingest.errors import MalformedMessageError, StorageError
from message_ingest.handler import IngestionHandler
from message_ingest.storage import GCSObjectStore, create_storage_client

# --- Logging ---
logger = logging.getLogger(__name__)


class MessageSubscriber:
    def __init__(
        self,
        client: pubsub_v1.SubscriberClient,
        subscription_path: str,
        handler: IngestionHandler,
        max_messages: int = SUBSCRIBER_MAX_MESSAGES,
        exactly_once: bool = True,
    ):
        self.client = client
        self.subscription_path = subscription_path
        self.handler = handler
        self.max_messages = max_messages
        self.exactly_once = exactly_once
        self._future = None
        self._stopping = threading.Event()

    def callback(self, message) -> None:
        """Handle one delivery. Runs on a scheduler worker thread."""
        attempt = message.delivery_attempt
        try:
            key = self.handler.handle_payload(message.data)
        except MalformedMessageError as e:
            logger.error(f"malformed message {message.message_id} attempt={attempt}: {e}")
            message.nack()
            return
        except StorageError:
            # logged by the handler at the level its kind calls for
            message.nack()
            return
        except Exception:
            logger.exception(f"unexpected failure for {message.message_id}")
            message.nack()
            return

        if self._stopping.is_set():
            # shutting down: leave it unacked, the redelivery rewrites the same bytes
            logger.info(f"stored {key} during shutdown, leaving {message.message_id} unacked")
            return

        if not self.exactly_once:
            message.ack()
            return

        try:
            message.ack_with_response().result()
        except sub_exceptions.AcknowledgeError as e:
            # object is already stored; a redelivery rewrites the same bytes
            logger.warning(f"ack failed for {key}: {e.error_code}")

    def start(self):
        self._stopping.clear()
        flow_control = pubsub_v1.types.FlowControl(max_messages=self.max_messages)
        scheduler = ThreadScheduler(executor=ThreadPoolExecutor(max_workers=self.max_messages))
        self._future = self.client.subscribe(
            self.subscription_path,
            callback=self.callback,
            flow_control=flow_control,
            scheduler=scheduler,
        )
        logger.info(f"listening on {self.subscription_path} max_messages={self.max_messages}")
        return self._future

    def stop(self) -> None:
        self._stopping.set()
        if self._future is not None:
            logger.info("stopping subscriber")
            self._future.cancel()

    def run(self, timeout: Optional[float] = None) -> None:
        """Block until cancelled, interrupted or timed out."""
        future = self.start()
        with self.client:
            try:
                future.result(timeout=timeout)
            except (futures.TimeoutError, KeyboardInterrupt):
                self.stop()
                future.result()
            except futures.CancelledError:
                logger.info("stream cancelled")
        logger.info("subscriber stopped")


def create_subscriber_client(config: AppConfig) -> pubsub_v1.SubscriberClient:
    endpoint = config.endpoints.pubsub_endpoint
    if endpoint:
        logger.info(f"using pubsub emulator: {endpoint}")
        transport = SubscriberGrpcTransport(channel=grpc.insecure_channel(endpoint))
        return pubsub_v1.SubscriberClient(transport=transport)
    return pubsub_v1.SubscriberClient()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    config = load_config()
    store = GCSObjectStore(create_storage_client(config))
    handler = IngestionHandler(store, config)
    subscriber = MessageSubscriber(
        create_subscriber_client(config),
        config.subscription_path,
        handler,
        # the emulator does not support exactly-once delivery
        exactly_once=not config.endpoints.emulated,
    )

    signal.signal(signal.SIGTERM, lambda signum, frame: subscriber.stop())
    subscriber.run()


if __name__ == "__main__":
    main()
