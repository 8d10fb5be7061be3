from .record import EPOCH, Record, timestamp_from_ms

__all__ = [
    "EPOCH",
    "Record",
    "timestamp_from_ms",
]
