# recordcat/kafka_helpers.py

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional

from confluent_kafka import Consumer, Producer
from kafka import KafkaConsumer
from kafka.errors import KafkaError, NoBrokersAvailable

from recordcat.config import KafkaSettings

logger = logging.getLogger(__name__)


def build_producer(settings: KafkaSettings) -> Producer:
    conf = settings.client_conf()
    conf.setdefault("acks", "all")
    return Producer(conf)


def build_consumer(
    settings: KafkaSettings,
    *,
    group_id: Optional[str] = None,
    auto_offset_reset: str = "earliest",
) -> Consumer:
    """
    Create a confluent_kafka Consumer.

    Without a group the consumer is only ever used with assign(); librdkafka
    still wants a group.id, so a throwaway one is set and commits are off.
    """
    conf = settings.client_conf()
    conf.update(
        {
            "group.id": group_id or f"{settings.client_id}-direct",
            "auto.offset.reset": auto_offset_reset,
            "enable.auto.commit": bool(group_id),
            "enable.partition.eof": False,
        }
    )
    return Consumer(conf)


def match_topic_partitions(
    available: Dict[str, List[int]],
    topics: Iterable[str],
    *,
    regex: bool = False,
    partitions: Optional[Iterable[int]] = None,
) -> Dict[str, List[int]]:
    """
    Pick the topic partitions to consume from cluster metadata.

    ``available`` maps topic name to its partition ids. With ``regex`` the
    requested topics are patterns searched within each topic name.
    """
    wanted = set(partitions) if partitions else None

    if regex:
        patterns = [re.compile(t) for t in topics]
        names = [name for name in sorted(available) if any(p.search(name) for p in patterns)]
    else:
        names = [t for t in topics if t in available]
        missing = [t for t in topics if t not in available]
        for name in missing:
            logger.warning("Topic '%s' does not exist; skipping.", name)

    out: Dict[str, List[int]] = {}
    for name in names:
        parts = sorted(p for p in available[name] if wanted is None or p in wanted)
        if parts:
            out[name] = parts
    return out


def fetch_topic_partitions(consumer: Consumer, timeout: float = 10.0) -> Dict[str, List[int]]:
    metadata = consumer.list_topics(timeout=timeout)
    return {name: list(md.partitions) for name, md in metadata.topics.items() if md.error is None}


def check_connection(settings: KafkaSettings) -> bool:
    """
    Try to connect to Kafka by listing topics once.
    """
    bootstrap = settings.bootstrap_servers
    try:
        consumer = KafkaConsumer(metadata_max_age_ms=3000, **settings.kafka_python_conf())
        topics = consumer.topics()
        logger.info("Connected to Kafka broker(s) %s; %d topics visible.", bootstrap, len(topics))
        consumer.close()
        return True
    except NoBrokersAvailable as exc:
        logger.error("No Kafka broker available at %s (%s)", bootstrap, exc)
        return False
    except KafkaError as exc:
        logger.error("Unable to talk to Kafka at %s (%s)", bootstrap, exc)
        return False
