"""
Tests for queue payload decoding
"""

import json

import pytest
from pydantic import ValidationError

from message_ingest.errors import MalformedMessageError
from message_ingest.schemas import Message, decode_message

HELLO_ID = "11111111-1111-1111-1111-111111111111"


class TestDecodeMessage:
    """Tests for decode_message."""

    def test_decodes_bytes(self):
        payload = json.dumps({"id": HELLO_ID, "content": "Hello, World!"}).encode("utf-8")
        message = decode_message(payload)
        assert message.key == HELLO_ID
        assert message.content == "Hello, World!"

    def test_decodes_str_and_dict(self):
        as_str = decode_message(json.dumps({"id": HELLO_ID, "content": "a"}))
        as_dict = decode_message({"id": HELLO_ID, "content": "a"})
        assert as_str == as_dict

    def test_content_is_not_altered(self):
        content = "  leading and trailing  \n\t"
        message = decode_message({"id": HELLO_ID, "content": content})
        assert message.content == content

    def test_extra_fields_ignored(self):
        message = decode_message({"id": HELLO_ID, "content": "a", "source": "api"})
        assert message.key == HELLO_ID

    def test_lone_surrogate_content_rejected(self):
        with pytest.raises(MalformedMessageError, match="UTF-8"):
            decode_message({"id": HELLO_ID, "content": "bad \ud800"})

    @pytest.mark.parametrize(
        "payload",
        [
            b"\xff\xfe not utf-8",
            b"not json",
            b"[1, 2, 3]",
            b'"just a string"',
            b'{"content": "no id"}',
            b'{"id": "", "content": "empty id"}',
            b'{"id": "not-a-uuid", "content": "x"}',
            b'{"id": "11111111-1111-1111-1111-111111111111"}',
            b'{"id": "11111111-1111-1111-1111-111111111111", "content": 42}',
            b'{"id": "11111111-1111-1111-1111-111111111111", "content": "bad \\ud800"}',
            b"",
        ],
    )
    def test_malformed_payloads(self, payload):
        with pytest.raises(MalformedMessageError):
            decode_message(payload)


class TestMessage:
    """Tests for the Message model."""

    def test_key_is_canonical(self):
        message = Message(id=HELLO_ID.upper(), content="x")
        assert message.key == HELLO_ID

    def test_is_immutable(self):
        message = Message(id=HELLO_ID, content="x")
        with pytest.raises(ValidationError):
            message.content = "y"

    def test_payload_round_trip(self):
        message = Message(id=HELLO_ID, content="ünïcödé")
        assert decode_message(message.to_payload()) == message
