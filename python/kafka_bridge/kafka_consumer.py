from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Generator
from typing import ClassVar, Optional

from confluent_kafka import Consumer as ConfluentConsumer
from pydantic import ConfigDict, Field
from kafka_bridge.config import BaseConfig

logger = logging.getLogger(__name__)

MessageCallback = Callable[[str], None]


class ConsumerConfig(BaseConfig):
    """Configuration for Kafka consumer, mirrors producer-style alias names."""

    WRAPPER_DATA_PATH: ClassVar[Optional[str]] = "kafka-consumer"

    model_config = ConfigDict(extra="ignore")

    bootstrap_servers: str = Field("localhost:9092", alias="bootstrap.servers")
    group_id: str = Field("testgroup", alias="group.id")
    topic: str = Field("test_topic", alias="topic", exclude=True)
    auto_offset_reset: str = Field("latest", alias="auto.offset.reset")
    enable_auto_commit: bool = Field(True, alias="enable.auto.commit")


def consume_message(message: str) -> None:
    logger.info("Consumer message => %s", message)


class KafkaConsumer:
    """Consumer bridge bound to one topic and one consumer group.

    Either iterate over `messages(timeout, auto_stop)` directly:

        for msg in consumer.messages(timeout=1.0, auto_stop=True):
            handle(msg)

    or register a callback once with `start(callback)`, which runs the poll
    loop on a background thread until `stop()` is called.
    """

    def __init__(self, config: ConsumerConfig) -> None:
        """Initialize the Kafka consumer from a validated `ConsumerConfig`."""
        # pass confluent-kafka configuration as alias-keyed mapping
        self._consumer: ConfluentConsumer = ConfluentConsumer(
            config.model_dump(by_alias=True),
        )
        self._topic = config.topic
        self._manual_commit = not config.enable_auto_commit
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._closed = False
        self._consumer.subscribe([config.topic])

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @staticmethod
    def _decode(value: bytes | str | None) -> str:
        if isinstance(value, (bytes, bytearray)):
            return value.decode("utf-8")
        return "" if value is None else value

    def messages(self, timeout: float, auto_stop: bool) -> Generator[str, None, None]:
        """Yield message bodies as they arrive.

        Continue looping until `stop()` is called. If no message is available
        within `timeout`, the poll returns `None` and the loop continues, or
        ends when `auto_stop` is set.
        """
        try:
            while not self._stop_event.is_set():
                msg = self._consumer.poll(timeout)
                if msg is None:
                    if auto_stop:
                        logger.info(
                            "No message received within timeout, stopping consumer"
                        )
                        break
                    continue
                if msg.error():
                    logger.error("Consumer error: %s", msg.error())
                    continue
                yield self._decode(msg.value())
                if self._manual_commit:
                    self._consumer.commit(message=msg, asynchronous=True)
        finally:
            self.close()

    def _run(self, callback: MessageCallback, timeout: float) -> None:
        logger.info("Consumer listening on topic %s", self._topic)
        for message in self.messages(timeout=timeout, auto_stop=False):
            try:
                callback(message)
            except Exception:
                logger.exception("Consumer callback failed for message: %s", message)

    def start(
        self, callback: MessageCallback = consume_message, timeout: float = 1.0
    ) -> None:
        """Register `callback` and start polling on a background thread."""
        if self._thread is not None:
            raise RuntimeError("consumer already started")
        self._thread = threading.Thread(
            target=self._run,
            args=(callback, timeout),
            name=f"kafka-consumer-{self._topic}",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Ask the poll loop to finish and wait for the thread to exit."""
        self._stop_event.set()
        if self._thread is None:
            self.close()
            return
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning("Consumer thread did not stop within %s s", timeout)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._consumer.close()
            logger.info("Kafka consumer closed")
        except Exception:
            logger.exception("Error closing consumer")
