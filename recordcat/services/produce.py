# recordcat/services/produce.py

from __future__ import annotations

import logging
from typing import BinaryIO, Iterator, List, Optional, Tuple

from recordcat.format import CompiledTemplate, InputError, Renderer, compile_template
from recordcat.format.delimited import DEFAULT_MAX_READ_BUF, split_records
from recordcat.models import Record

logger = logging.getLogger(__name__)

DEFAULT_ECHO_FORMAT = r"Successful send to topic %t partition %p offset %o\n"


class ProduceError(RuntimeError):
    pass


def iter_key_values(
    stream: BinaryIO,
    delim: bytes,
    *,
    keyed: bool = False,
    max_buf: int = DEFAULT_MAX_READ_BUF,
) -> Iterator[Tuple[Optional[bytes], bytes]]:
    """
    Yield (key, value) pairs read from ``stream``.

    Unkeyed input yields every token as a value with no key; keyed input
    alternates key and value tokens.
    """
    tokens = split_records(stream, delim, max_buf=max_buf)
    for token in tokens:
        if not keyed:
            yield None, token
            continue
        value = next(tokens, None)
        if value is None:
            raise InputError("missing final value delim")
        yield token, value


class DeliveryReporter:
    """Delivery callback that records failures and optionally echoes successes."""

    def __init__(self, sink: BinaryIO, echo: Optional[CompiledTemplate] = None) -> None:
        self.sink = sink
        self.delivered = 0
        self.errors: List[str] = []
        self._renderer = Renderer(echo) if echo is not None else None

    def __call__(self, err, msg) -> None:
        if err is not None:
            logger.error("Delivery failed for topic=%s: %s", msg.topic() if msg else "?", err)
            self.errors.append(str(err))
            return
        self.delivered += 1
        if self._renderer is not None:
            self.sink.write(self._renderer.render(Record.from_message(msg)))


def run_produce(
    producer,
    topic: str,
    stream: BinaryIO,
    sink: BinaryIO,
    *,
    delim: bytes = b"\n",
    keyed: bool = False,
    max_buf: int = DEFAULT_MAX_READ_BUF,
    echo: Optional[CompiledTemplate] = None,
    flush_timeout: float = 30.0,
) -> int:
    """
    Produce every record read from ``stream`` to ``topic``.

    Returns the number of delivered records; the first delivery failure
    stops reading input, and ProduceError is raised after flushing.
    """
    reporter = DeliveryReporter(sink, echo)
    produced = 0

    for key, value in iter_key_values(stream, delim, keyed=keyed, max_buf=max_buf):
        while True:
            try:
                producer.produce(topic=topic, key=key, value=value, on_delivery=reporter)
                break
            except BufferError:
                # Local queue full: serve delivery reports and retry.
                producer.poll(1.0)
        producer.poll(0)
        produced += 1
        if reporter.errors:
            logger.error("Delivery failed; no longer reading input.")
            break

    remaining = producer.flush(flush_timeout)
    sink.flush()
    logger.info("Produced %d records to '%s'; %d delivered.", produced, topic, reporter.delivered)

    if remaining:
        raise ProduceError(f"{remaining} records still undelivered after {flush_timeout:.0f}s")
    if reporter.errors:
        raise ProduceError(f"unable to produce record: {reporter.errors[0]}")
    return reporter.delivered


def echo_template(fmt: Optional[str]) -> CompiledTemplate:
    return compile_template(fmt if fmt is not None else DEFAULT_ECHO_FORMAT)
