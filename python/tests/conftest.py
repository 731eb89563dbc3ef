from __future__ import annotations

import queue
import time
from typing import Any

import pytest

from kafka_bridge import kafka_consumer, kafka_producer


class FakeMessage:
    def __init__(self, value: Any, error: Any = None, topic: str = "test_topic") -> None:
        self._value = value
        self._error = error
        self._topic = topic

    def value(self) -> Any:
        return self._value

    def error(self) -> Any:
        return self._error

    def topic(self) -> str:
        return self._topic

    def partition(self) -> int:
        return 0

    def offset(self) -> int:
        return 0


class FakeProducer:
    """Stands in for confluent_kafka.Producer, records produce calls."""

    instances: list["FakeProducer"] = []

    def __init__(self, config: dict[str, Any]) -> None:
        self.config = config
        self.produced: list[dict[str, Any]] = []
        self.polls: list[float] = []
        self.flushed: list[float] = []
        self.error: Exception | None = None
        FakeProducer.instances.append(self)

    def produce(self, topic: str, value: Any = None, key: Any = None, callback: Any = None) -> None:
        if self.error is not None:
            raise self.error
        self.produced.append({"topic": topic, "value": value, "key": key})
        if callback is not None:
            callback(None, FakeMessage(value, topic=topic))

    def poll(self, timeout: float) -> int:
        self.polls.append(timeout)
        return 0

    def flush(self, timeout: float) -> int:
        self.flushed.append(timeout)
        return 0


class FakeConsumer:
    """Stands in for confluent_kafka.Consumer, serves messages from a queue."""

    instances: list["FakeConsumer"] = []

    def __init__(self, config: dict[str, Any]) -> None:
        self.config = config
        self.topics: list[str] = []
        self.pending: queue.Queue[FakeMessage] = queue.Queue()
        self.commits: list[FakeMessage] = []
        self.close_calls = 0
        FakeConsumer.instances.append(self)

    def subscribe(self, topics: list[str]) -> None:
        self.topics = list(topics)

    def feed(self, *messages: FakeMessage) -> None:
        for msg in messages:
            self.pending.put(msg)

    def poll(self, timeout: float) -> FakeMessage | None:
        try:
            return self.pending.get_nowait()
        except queue.Empty:
            time.sleep(min(timeout, 0.01))
            return None

    def commit(self, message: FakeMessage, asynchronous: bool = True) -> None:
        self.commits.append(message)

    def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def fake_producer_cls(monkeypatch: pytest.MonkeyPatch) -> type[FakeProducer]:
    FakeProducer.instances = []
    monkeypatch.setattr(kafka_producer, "ConfluentProducer", FakeProducer)
    return FakeProducer


@pytest.fixture
def fake_consumer_cls(monkeypatch: pytest.MonkeyPatch) -> type[FakeConsumer]:
    FakeConsumer.instances = []
    monkeypatch.setattr(kafka_consumer, "ConfluentConsumer", FakeConsumer)
    return FakeConsumer
