"""
Kafka Producer for product events.

Publishes product-changed events to a Kafka topic for downstream consumers.
"""
import json
from typing import Optional

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from internal.domain.errors import EventPublishError
from internal.domain.product import Product
from pkg.logger.logger import get_logger


logger = get_logger(__name__)


class KafkaProductNotifier:
    """
    Kafka producer for product events.

    Delivery is confirmed once the broker acknowledges the message; retries
    are left to the aiokafka client.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        topic: str,
        client_id: str = "catalog-service",
    ) -> None:
        """
        Initialize the Kafka producer.

        Args:
            bootstrap_servers: Comma-separated list of Kafka brokers.
            topic: Topic product events are published to.
            client_id: Client identifier for the producer.
        """
        self._bootstrap_servers = bootstrap_servers
        self._topic = topic
        self._client_id = client_id
        self._producer: Optional[AIOKafkaProducer] = None

    @property
    def topic(self) -> str:
        """Destination topic."""
        return self._topic

    async def start(self) -> None:
        """Start the Kafka producer."""
        self._producer = AIOKafkaProducer(
            bootstrap_servers=self._bootstrap_servers,
            client_id=self._client_id,
            value_serializer=lambda v: json.dumps(v).encode("utf-8"),
            key_serializer=lambda k: k.encode("utf-8") if k else None,
            acks="all",
        )
        await self._producer.start()
        logger.info(
            "Kafka producer started",
            bootstrap_servers=self._bootstrap_servers,
            topic=self._topic,
        )

    async def stop(self) -> None:
        """Stop the Kafka producer."""
        if self._producer:
            await self._producer.stop()
            self._producer = None
            logger.info("Kafka producer stopped")

    async def publish_product(self, product: Product) -> None:
        """
        Publish a product event.

        Args:
            product: The product to announce.

        Raises:
            EventPublishError: If the producer is not started, the message
                cannot be serialized or the broker rejects it.
        """
        if not self._producer:
            raise EventPublishError(product.sku, "producer not started")

        try:
            await self._producer.send_and_wait(
                topic=self._topic,
                key=product.sku,
                value=product.to_dict(),
            )
        except (TypeError, ValueError) as e:
            raise EventPublishError(product.sku, f"failed to serialize message: {e}") from e
        except KafkaError as e:
            raise EventPublishError(product.sku, f"failed to send product update: {e}") from e

        logger.info(
            "Product published to Kafka",
            topic=self._topic,
            sku=product.sku,
        )


class LoggingProductNotifier:
    """Notifier that only logs events, used when the queue is mocked."""

    def __init__(self, topic: str = "product.exchange") -> None:
        self._topic = topic

    async def start(self) -> None:
        logger.info("Using mock queue, product events will only be logged")

    async def stop(self) -> None:
        pass

    async def publish_product(self, product: Product) -> None:
        logger.info(
            "Mock queue received product",
            topic=self._topic,
            sku=product.sku,
        )
