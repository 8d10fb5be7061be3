# recordcat/services/consume.py

from __future__ import annotations

import logging
import os
import re
import threading
from dataclasses import dataclass
from typing import BinaryIO, Callable, Dict, Iterable, Iterator, List, Optional

from confluent_kafka import KafkaError, TopicPartition

from recordcat.format import CompiledTemplate, Renderer, SourceError
from recordcat.models import Record

logger = logging.getLogger(__name__)

_EXACT_OR_RANGE = re.compile(r"^(\d+)(?:-(\d+))?$")


class InvalidOffsetError(ValueError):
    pass


@dataclass(frozen=True)
class OffsetSpec:
    """
    Where to start consuming each partition.

    kind is one of "start", "end", "start+", "end-" or "exact"; ``value``
    carries the relative distance or exact offset, and ``end`` the exclusive
    upper bound of an exact range (-1 when open ended).
    """

    kind: str
    value: int = 0
    end: int = -1

    def resolve(self, low: int, high: int) -> int:
        """Turn this into a concrete offset given a partition's watermarks."""
        if self.kind == "start":
            return low
        if self.kind == "end":
            return high
        if self.kind == "start+":
            return min(low + self.value, high)
        if self.kind == "end-":
            return max(high - self.value, low)
        return self.value

    def in_range(self, offset: int) -> bool:
        # An out of range reset may deliver records before the exact start.
        if self.kind == "exact" and self.value > 0 and offset < self.value:
            return False
        if self.end > 0 and offset >= self.end:
            return False
        return True

    @property
    def auto_offset_reset(self) -> str:
        return "latest" if self.kind in ("end", "end-") else "earliest"


def parse_offset(text: str) -> OffsetSpec:
    """Parse ``start``, ``end``, ``start+N``, ``end-N``, ``N`` or ``N-M``."""
    if text == "start":
        return OffsetSpec("start")
    if text == "end":
        return OffsetSpec("end")
    if text.startswith("start+"):
        return OffsetSpec("start+", _parse_relative(text, text[len("start+") :]))
    if text.startswith("end-"):
        return OffsetSpec("end-", _parse_relative(text, text[len("end-") :]))

    match = _EXACT_OR_RANGE.match(text)
    if match is None:
        raise InvalidOffsetError(f"unable to parse exact or range offset in {text!r}")
    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else -1
    if 0 <= end <= start:
        raise InvalidOffsetError(f"offset range {text!r} ends before it starts")
    return OffsetSpec("exact", start, end)


def _parse_relative(text: str, number: str) -> int:
    if not number.isdigit():
        raise InvalidOffsetError(f"unable to parse relative offset number in {text!r}")
    return int(number)


def exit_process(sink: BinaryIO) -> None:
    """Flush what has been written and stop the process on the spot."""
    sink.flush()
    os._exit(0)


class ConsumeOutput:
    """
    Renders consumed records to a byte sink.

    ``emit`` may be called from several delivery threads: writes and the
    emitted-record counter are serialized so the cutoff fires exactly once.
    When ``max_records`` is reached ``terminate`` is called with the sink;
    by default that exits the process without draining fetched batches.
    """

    def __init__(
        self,
        template: CompiledTemplate,
        sink: BinaryIO,
        *,
        max_records: int = 0,
        offsets: Optional[OffsetSpec] = None,
        terminate: Callable[[BinaryIO], None] = exit_process,
    ) -> None:
        self.sink = sink
        self.max_records = max_records
        self.offsets = offsets
        self.num = 0
        self._renderer = Renderer(template)
        self._terminate = terminate
        self._lock = threading.Lock()

    def emit(self, record: Record) -> None:
        if self.offsets is not None and not self.offsets.in_range(record.offset):
            logger.debug(
                "Skipping %s[%d] offset %d outside requested range.",
                record.topic,
                record.partition,
                record.offset,
            )
            return

        with self._lock:
            self.num += 1
            self.sink.write(self._renderer.render(record))
            if self.num == self.max_records:
                logger.info("Consumed %d records; exiting.", self.num)
                self._terminate(self.sink)

    def consume(self, batches: Iterable[List[Record]]) -> int:
        for batch in batches:
            for record in batch:
                self.emit(record)
        self.sink.flush()
        return self.num


def iter_batches(
    consumer,
    *,
    batch_size: int = 500,
    timeout: float = 1.0,
    stop_event: Optional[threading.Event] = None,
) -> Iterator[List[Record]]:
    """
    Poll ``consumer`` until ``stop_event`` is set, yielding one list of
    records per fetch. Partition EOF markers are skipped; any other error
    raises SourceError.
    """
    if stop_event is None:
        stop_event = threading.Event()

    while not stop_event.is_set():
        messages = consumer.consume(num_messages=batch_size, timeout=timeout)
        batch: List[Record] = []
        for msg in messages:
            err = msg.error()
            if err is not None:
                if err.code() == KafkaError._PARTITION_EOF:
                    continue
                raise SourceError(f"consumer error: {err}")
            batch.append(Record.from_message(msg))
        if batch:
            yield batch


def assign_partitions(
    consumer,
    selected: Dict[str, List[int]],
    offsets: OffsetSpec,
    *,
    timeout: float = 10.0,
) -> List[TopicPartition]:
    """Assign ``selected`` partitions directly, resolving ``offsets`` per partition."""
    assignment: List[TopicPartition] = []
    for topic, partitions in selected.items():
        for partition in partitions:
            low, high = consumer.get_watermark_offsets(TopicPartition(topic, partition), timeout=timeout)
            start = offsets.resolve(low, high)
            logger.info(
                "Assigning %s[%d] at offset %d (low=%d high=%d).", topic, partition, start, low, high
            )
            assignment.append(TopicPartition(topic, partition, start))
    consumer.assign(assignment)
    return assignment


def subscribe_group(consumer, topics: List[str], *, regex: bool = False) -> List[str]:
    """Subscribe as a group member; librdkafka treats ``^``-prefixed names as patterns."""
    names = [t if not regex or t.startswith("^") else "^" + t for t in topics]

    def _on_assign(_consumer, partitions) -> None:
        for tp in partitions:
            logger.info("Group assigned %s[%d].", tp.topic, tp.partition)

    consumer.subscribe(names, on_assign=_on_assign)
    return names
