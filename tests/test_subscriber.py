"""
Tests for the streaming-pull subscriber - ack after store, nack on failure
"""

import json
import logging
import threading
from concurrent import futures
from unittest.mock import MagicMock

import pytest
from google.cloud.pubsub_v1.subscriber.exceptions import AcknowledgeError, AcknowledgeStatus

from message_ingest.errors import PermanentStorageError, TransientStorageError
from message_ingest.handler import IngestionHandler
from message_ingest.subscriber import MessageSubscriber

from conftest import TEST_BUCKET

HELLO_ID = "11111111-1111-1111-1111-111111111111"
SUBSCRIPTION = "projects/test-project/subscriptions/test-queue-sub"


def pubsub_message(payload, attempt=1):
    """Mock of a received pubsub_v1 Message."""
    message = MagicMock()
    if not isinstance(payload, bytes):
        payload = json.dumps(payload).encode("utf-8")
    message.data = payload
    message.message_id = "pubsub-1"
    message.delivery_attempt = attempt
    return message


def failing_handler(config, exc):
    store = MagicMock()
    store.put.side_effect = exc
    return IngestionHandler(store, config)


class TestCallback:
    """Tests for MessageSubscriber.callback."""

    def test_stores_then_acks(self, handler, store):
        subscriber = MessageSubscriber(MagicMock(), SUBSCRIPTION, handler)
        message = pubsub_message({"id": HELLO_ID, "content": "Hello, World!"})

        subscriber.callback(message)

        assert store.objects[(TEST_BUCKET, HELLO_ID)] == b"Hello, World!"
        message.ack_with_response.return_value.result.assert_called_once()
        message.nack.assert_not_called()

    def test_plain_ack_without_exactly_once(self, handler):
        subscriber = MessageSubscriber(MagicMock(), SUBSCRIPTION, handler, exactly_once=False)
        message = pubsub_message({"id": HELLO_ID, "content": "x"})

        subscriber.callback(message)

        message.ack.assert_called_once()
        message.ack_with_response.assert_not_called()

    def test_ack_failure_is_not_fatal(self, handler, store):
        subscriber = MessageSubscriber(MagicMock(), SUBSCRIPTION, handler)
        message = pubsub_message({"id": HELLO_ID, "content": "x"})
        message.ack_with_response.return_value.result.side_effect = AcknowledgeError(
            AcknowledgeStatus.INVALID_ACK_ID, None
        )

        subscriber.callback(message)

        assert store.keys() == [HELLO_ID]
        message.nack.assert_not_called()

    def test_malformed_message_is_nacked(self, handler, store):
        subscriber = MessageSubscriber(MagicMock(), SUBSCRIPTION, handler)
        message = pubsub_message(b'{"content": "no id"}')

        subscriber.callback(message)

        message.nack.assert_called_once()
        message.ack_with_response.assert_not_called()
        assert store.puts == []

    @pytest.mark.parametrize(
        "exc",
        [TransientStorageError("timeout"), PermanentStorageError("403"), RuntimeError("boom")],
    )
    def test_failures_are_nacked(self, config, exc):
        subscriber = MessageSubscriber(MagicMock(), SUBSCRIPTION, failing_handler(config, exc))
        message = pubsub_message({"id": HELLO_ID, "content": "x"}, attempt=3)

        subscriber.callback(message)

        message.nack.assert_called_once()
        message.ack.assert_not_called()
        message.ack_with_response.assert_not_called()

    def test_redelivery_converges(self, handler, store):
        subscriber = MessageSubscriber(MagicMock(), SUBSCRIPTION, handler)
        for attempt in range(1, 4):
            subscriber.callback(pubsub_message({"id": HELLO_ID, "content": "x"}, attempt))

        assert store.keys() == [HELLO_ID]


class TestRun:
    """Tests for start/stop/run."""

    def test_start_subscribes_with_flow_control(self, handler):
        client = MagicMock()
        subscriber = MessageSubscriber(client, SUBSCRIPTION, handler, max_messages=4)

        subscriber.start()

        args, kwargs = client.subscribe.call_args
        assert args[0] == SUBSCRIPTION
        assert kwargs["callback"] == subscriber.callback
        assert kwargs["flow_control"].max_messages == 4

    def test_timeout_cancels_stream(self, handler):
        client = MagicMock()
        future = client.subscribe.return_value
        future.result.side_effect = [futures.TimeoutError(), None]
        subscriber = MessageSubscriber(client, SUBSCRIPTION, handler)

        subscriber.run(timeout=0.01)

        future.cancel.assert_called_once()

    def test_stop_cancels_stream(self, handler):
        client = MagicMock()
        subscriber = MessageSubscriber(client, SUBSCRIPTION, handler)
        subscriber.start()

        subscriber.stop()

        client.subscribe.return_value.cancel.assert_called_once()


class BlockingStore:
    """ObjectStore whose put waits until released, to hold a delivery in flight."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.objects = {}

    def put(self, bucket, key, data):
        self.entered.set()
        assert self.release.wait(timeout=5)
        self.objects[(bucket, key)] = data


class TestShutdown:
    """A delivery still in flight when the subscriber stops is never acked."""

    @pytest.mark.parametrize("exactly_once", [True, False])
    def test_in_flight_message_not_acked_after_stop(self, config, exactly_once):
        store = BlockingStore()
        client = MagicMock()
        subscriber = MessageSubscriber(
            client, SUBSCRIPTION, IngestionHandler(store, config), exactly_once=exactly_once
        )
        subscriber.start()
        message = pubsub_message({"id": HELLO_ID, "content": "x"})

        worker = threading.Thread(target=subscriber.callback, args=(message,))
        worker.start()
        assert store.entered.wait(timeout=5)

        subscriber.stop()
        store.release.set()
        worker.join(timeout=5)

        client.subscribe.return_value.cancel.assert_called_once()
        assert store.objects[(TEST_BUCKET, HELLO_ID)] == b"x"
        message.ack.assert_not_called()
        message.ack_with_response.assert_not_called()

    def test_timeout_stops_acking(self, handler):
        client = MagicMock()
        client.subscribe.return_value.result.side_effect = [futures.TimeoutError(), None]
        subscriber = MessageSubscriber(client, SUBSCRIPTION, handler)

        subscriber.run(timeout=0.01)
        message = pubsub_message({"id": HELLO_ID, "content": "x"})
        subscriber.callback(message)

        message.ack_with_response.assert_not_called()

    def test_restart_acks_again(self, handler):
        subscriber = MessageSubscriber(MagicMock(), SUBSCRIPTION, handler, exactly_once=False)
        subscriber.start()
        subscriber.stop()
        subscriber.start()

        message = pubsub_message({"id": HELLO_ID, "content": "x"})
        subscriber.callback(message)

        message.ack.assert_called_once()


class TestFailureLogging:
    """Storage failures are logged once, by the handler."""

    @pytest.mark.parametrize(
        "exc,level",
        [(TransientStorageError("timeout"), logging.WARNING), (PermanentStorageError("403"), logging.ERROR)],
    )
    def test_single_log_record(self, config, caplog, exc, level):
        subscriber = MessageSubscriber(MagicMock(), SUBSCRIPTION, failing_handler(config, exc))

        with caplog.at_level(logging.INFO, logger="message_ingest"):
            subscriber.callback(pubsub_message({"id": HELLO_ID, "content": "x"}))

        failures = [r for r in caplog.records if r.levelno >= logging.WARNING]
        assert len(failures) == 1
        assert failures[0].levelno == level
        assert failures[0].name == "message_ingest.handler"
