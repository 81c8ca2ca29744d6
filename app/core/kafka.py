"""
Kafka producer for attendance events.

Publishing is fire-and-forget: a failed publish is logged and never fails the
request that triggered it.
"""

import json
from typing import Optional

from aiokafka import AIOKafkaProducer

from app.core.config import settings
from app.core.events import EventEnvelope
from app.core.logging import get_logger
from app.core.topics import KafkaTopics

logger = get_logger(__name__)


class KafkaProducer:
    """Process-wide aiokafka producer."""

    _producer: Optional[AIOKafkaProducer] = None
    _started: bool = False

    @classmethod
    async def start(cls) -> None:
        if not settings.KAFKA_ENABLED:
            logger.info("Kafka is disabled, events will not be published")
            return
        if cls._started:
            return

        cls._producer = AIOKafkaProducer(
            bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
            client_id=settings.KAFKA_CLIENT_ID,
            value_serializer=lambda v: json.dumps(v).encode("utf-8"),
            key_serializer=lambda k: k.encode("utf-8") if k else None,
        )
        try:
            await cls._producer.start()
            cls._started = True
            logger.info(
                f"Kafka producer connected to {settings.KAFKA_BOOTSTRAP_SERVERS}"
            )
        except Exception as e:
            logger.warning(f"Failed to start Kafka producer: {e}")
            cls._producer = None

    @classmethod
    async def stop(cls) -> None:
        if cls._producer is not None:
            await cls._producer.stop()
        cls._producer = None
        cls._started = False

    @classmethod
    async def send(
        cls, topic: str, event: EventEnvelope, key: Optional[str] = None
    ) -> bool:
        if not cls._started or cls._producer is None:
            logger.debug(f"Kafka producer not started, dropping {event.event_type}")
            return False
        await cls._producer.send_and_wait(
            topic, value=event.model_dump(mode="json"), key=key
        )
        return True


async def publish_event(event: EventEnvelope, key: Optional[str] = None) -> None:
    """
    Publish an event to its topic.

    Errors are logged as warnings; the attendance state is already committed.
    """
    topic = KafkaTopics.for_event(event.event_type)
    try:
        if await KafkaProducer.send(topic, event, key=key):
            logger.info(f"Published {event.event_type.value} event to {topic}")
    except Exception as e:
        logger.warning(f"Failed to publish {event.event_type.value} event: {e}")
