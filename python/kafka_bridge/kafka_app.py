from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
import logging
import sys

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError

from kafka_bridge.config import config_path
from kafka_bridge.kafka_producer import ProducerConfig, KafkaProducer
from kafka_bridge.kafka_consumer import ConsumerConfig, KafkaConsumer, consume_message

# seconds spent serving delivery callbacks after each send
PRODUCE_POLL_TIMEOUT: float = 1.0
SHUTDOWN_TIMEOUT: float = 10.0


def configure_logging() -> None:
    """Send diagnostic lines, message text only, to stdout."""
    logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stdout)


configure_logging()
logger = logging.getLogger("kafka_bridge_app")


def get_producer(request: Request) -> KafkaProducer:
    producer: KafkaProducer | None = request.app.state.producer
    if producer is None:
        raise HTTPException(status_code=503, detail="Producer not initialized")
    return producer


async def get_message(request: Request) -> str:
    """Read `message` from the query string, falling back to a form body."""
    message = request.query_params.get("message")
    if message is None:
        form = await request.form()
        value = form.get("message")
        if isinstance(value, str):
            message = value
    if message is None:
        raise RequestValidationError(
            [
                {
                    "type": "missing",
                    "loc": ("query", "message"),
                    "msg": "Field required",
                    "input": None,
                }
            ]
        )
    return message


def _build_missing_bridges(app: FastAPI, cfg_path: Path | None) -> None:
    path = cfg_path or config_path()
    logger.info("Loading config from %s", path)

    if app.state.producer is None:
        try:
            config = ProducerConfig.from_yaml(path)
            logger.info("ProducerConfig loaded for topic %s", config.topic)
            app.state.producer = KafkaProducer(config)
        except Exception as exc:
            logger.exception("Failed to initialize Kafka producer: %s", exc)

    if app.state.consumer is None:
        try:
            consumer_cfg = ConsumerConfig.from_yaml(path)
            logger.info(
                "ConsumerConfig loaded for topic %s group %s",
                consumer_cfg.topic,
                consumer_cfg.group_id,
            )
            app.state.consumer = KafkaConsumer(consumer_cfg)
        except Exception as exc:
            logger.exception("Failed to initialize Kafka consumer: %s", exc)


def create_app(
    producer: KafkaProducer | None = None,
    consumer: KafkaConsumer | None = None,
    cfg_path: Path | None = None,
) -> FastAPI:
    """Build the HTTP intake around explicitly constructed bridges.

    Bridges that are not passed in are built from the YAML configuration when
    the application starts. A bridge that fails to initialize stays unset.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.producer is None or app.state.consumer is None:
            _build_missing_bridges(app, cfg_path)
        if app.state.consumer is not None:
            app.state.consumer.start(consume_message)
        yield
        if app.state.consumer is not None:
            app.state.consumer.stop(SHUTDOWN_TIMEOUT)
        if app.state.producer is not None:
            app.state.producer.flush(SHUTDOWN_TIMEOUT)

    app = FastAPI(title="Kafka Bridge API", lifespan=lifespan)
    app.state.producer = producer
    app.state.consumer = consumer

    @app.post("/kafka", response_class=Response)
    def send_message(
        message: str = Depends(get_message),
        producer: KafkaProducer = Depends(get_producer),
    ) -> Response:
        """Forward `message` to the producer and answer with an empty 200."""
        producer.send_message(message, timeout=PRODUCE_POLL_TIMEOUT)
        return Response(status_code=200)

    @app.get("/")
    def root() -> dict[str, str]:
        return {"status": "ok", "service": "kafka-bridge"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
