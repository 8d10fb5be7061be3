from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from confluent_kafka import TIMESTAMP_NOT_AVAILABLE
from pydantic import BaseModel, ConfigDict, Field, field_validator

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_ONE_MICROSECOND = timedelta(microseconds=1)


def timestamp_from_ms(ms: int) -> datetime:
    return EPOCH + timedelta(milliseconds=ms)


class Record(BaseModel):
    """One Kafka record as seen by the formatter. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    topic: str
    partition: int = 0
    offset: int = 0
    timestamp: datetime = Field(default=EPOCH)
    key: Optional[bytes] = None
    value: Optional[bytes] = None
    leader_epoch: int = -1

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def timestamp_ns(self) -> int:
        return (self.timestamp - EPOCH) // _ONE_MICROSECOND * 1000

    @classmethod
    def from_message(cls, msg: Any) -> "Record":
        """Build a Record from a confluent_kafka ``Message``."""
        ts_type, ts_ms = msg.timestamp()
        if ts_type == TIMESTAMP_NOT_AVAILABLE or ts_ms is None or ts_ms < 0:
            ts_ms = 0

        leader_epoch = None
        if hasattr(msg, "leader_epoch"):
            leader_epoch = msg.leader_epoch()

        return cls(
            topic=msg.topic() or "",
            partition=msg.partition() if msg.partition() is not None else -1,
            offset=msg.offset() if msg.offset() is not None else -1,
            timestamp=timestamp_from_ms(ts_ms),
            key=msg.key(),
            value=msg.value(),
            leader_epoch=leader_epoch if leader_epoch is not None else -1,
        )
