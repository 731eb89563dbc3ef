from __future__ import annotations

from typing import Any, ClassVar, Optional
import logging

from pydantic import ConfigDict, Field
from confluent_kafka import Producer as ConfluentProducer
from kafka_bridge.config import BaseConfig

logger = logging.getLogger(__name__)


class ProducerConfig(BaseConfig):
    # Enable wrapper-based constructor extraction using these keys
    WRAPPER_DATA_PATH: ClassVar[Optional[str]] = "kafka-producer"

    model_config = ConfigDict(extra="ignore")

    bootstrap_servers: str = Field("localhost:9092", alias="bootstrap.servers")
    topic: str = Field("test_topic", alias="topic", exclude=True)
    client_id: str = Field("kafka-bridge", alias="client.id")
    linger_ms: int = Field(5, alias="linger.ms")
    acks: str = Field("all", alias="acks")


class KafkaProducer:
    """Kafka producer bridge using confluent-kafka.

    Forwards plain text payloads, unmodified and without a key, to the single
    topic named in `ProducerConfig`. Delivery results are only logged.
    """

    _producer: ConfluentProducer
    _topic: str

    def __init__(self, config: ProducerConfig) -> None:
        self._producer = ConfluentProducer(config.model_dump(by_alias=True))
        self._topic = config.topic

    @property
    def topic(self) -> str:
        return self._topic

    def _delivery_report(self, err: Exception | None, msg: Any) -> None:
        if err is not None:
            logger.error("Delivery failed for message: %s", err)
        else:
            logger.debug(
                "Message delivered to %s [%s] at offset %s",
                msg.topic(),
                msg.partition(),
                msg.offset(),
            )

    def send_message(self, message: str, timeout: float = 0.0) -> None:
        """Send `message` to the configured topic.

        Args:
            message: text payload, sent as-is
            timeout: max time (seconds) to poll for delivery callbacks

        Errors raised by the client (`KafkaException`, `BufferError` on a
        full local queue) are not handled here.
        """
        logger.info("Produce message => %s", message)
        self._producer.produce(
            topic=self._topic,
            value=message,
            callback=self._delivery_report,
        )
        self._producer.poll(timeout)

    def flush(self, timeout: float) -> int:
        """Block until all messages are delivered or timeout (seconds) elapses.

        Returns the number of messages still waiting for delivery.
        """
        remaining = self._producer.flush(timeout)
        if remaining:
            logger.warning("%d message(s) still queued after flush", remaining)
        return remaining
