import dataclasses
import time

import pytest

from relay.message import Message


def test_timestamp_captured_at_construction():
    before = int(time.time() * 1000)
    msg = Message("1", "hello", "AAPL")
    after = int(time.time() * 1000)
    assert before <= msg.timestamp <= after


def test_message_is_immutable():
    msg = Message("1", "hello", "AAPL")
    with pytest.raises(dataclasses.FrozenInstanceError):
        msg.instrument = "MSFT"


def test_str_includes_fields():
    msg = Message("abc", "payload", "TSLA", timestamp=42)
    text = str(msg)
    assert "abc" in text
    assert "TSLA" in text
    assert "payload" in text
    assert "42" in text
