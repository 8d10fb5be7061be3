from __future__ import annotations

import io
import threading
from typing import List, Optional

import pytest
from confluent_kafka import TIMESTAMP_CREATE_TIME

from recordcat.models import Record, timestamp_from_ms


class FakeError:
    def __init__(self, code: int, text: str = "boom") -> None:
        self._code = code
        self._text = text

    def code(self) -> int:
        return self._code

    def __str__(self) -> str:
        return self._text


class FakeMessage:
    """Quacks like confluent_kafka.Message."""

    def __init__(
        self,
        topic: str = "foo",
        partition: int = 0,
        offset: int = 0,
        key: Optional[bytes] = None,
        value: Optional[bytes] = None,
        ts_ms: int = 0,
        error: Optional[FakeError] = None,
    ) -> None:
        self._topic = topic
        self._partition = partition
        self._offset = offset
        self._key = key
        self._value = value
        self._ts_ms = ts_ms
        self._error = error

    def topic(self):
        return self._topic

    def partition(self):
        return self._partition

    def offset(self):
        return self._offset

    def key(self):
        return self._key

    def value(self):
        return self._value

    def timestamp(self):
        return TIMESTAMP_CREATE_TIME, self._ts_ms

    def leader_epoch(self):
        return None

    def error(self):
        return self._error


class FakeConsumer:
    """Hands out scripted batches, then sets the stop event."""

    def __init__(self, batches: List[List[FakeMessage]], stop_event: threading.Event) -> None:
        self._batches = list(batches)
        self._stop_event = stop_event
        self.polls = 0

    def consume(self, num_messages: int = 1, timeout: float = -1):
        self.polls += 1
        if not self._batches:
            self._stop_event.set()
            return []
        return self._batches.pop(0)


class CutoffReached(Exception):
    pass


def raise_cutoff(sink) -> None:
    raise CutoffReached()


@pytest.fixture
def record() -> Record:
    return Record(
        topic="foo",
        partition=3,
        offset=42,
        key=b"k",
        value=b"v",
        timestamp=timestamp_from_ms(1_600_000_000_123),
    )


@pytest.fixture
def sink() -> io.BytesIO:
    return io.BytesIO()


def make_records(n: int, topic: str = "foo", partition: int = 0) -> List[Record]:
    return [
        Record(topic=topic, partition=partition, offset=i, value=f"value-{i}".encode())
        for i in range(n)
    ]
