"""
AMQP template for the Job Dispatch Service.

Wraps a kombu connection with the send and topology operations the
producer and listener need. Request handlers publish from worker
threads, so every operation borrows a connection or producer from
kombu's pools instead of sharing one channel. Delivery, routing and
acknowledgment are left entirely to kombu and the broker.
"""

from typing import Any, Optional
import logging

from kombu import Connection, Exchange, Queue
from kombu.pools import connections, producers

from app.core.config import get_settings

logger = logging.getLogger(__name__)


class AmqpTemplate:
    """Publishes converted payloads to an exchange through pooled kombu producers."""

    def __init__(
        self,
        connection: Connection,
        exchange: str,
        routing_key: str,
        queue: str,
        serializer: str = "json",
    ):
        self.connection = connection
        self.exchange = exchange
        self.routing_key = routing_key
        self.queue = queue
        self.serializer = serializer

    @staticmethod
    def convert(payload: Any) -> Any:
        """Convert a payload into a serializable message body."""
        if hasattr(payload, "to_dict"):
            return payload.to_dict()
        return payload

    def convert_and_send(self, exchange: str, routing_key: str, payload: Any) -> None:
        """Convert ``payload`` and publish it to ``exchange`` with ``routing_key``."""
        body = self.convert(payload)
        with producers[self.connection].acquire(block=True) as producer:
            producer.publish(
                body,
                exchange=exchange,
                routing_key=routing_key,
                serializer=self.serializer,
            )
        logger.debug(f"Published message to exchange '{exchange}' with routing key '{routing_key}'")

    def build_exchange(self) -> Exchange:
        return Exchange(self.exchange, type="direct", durable=True)

    def build_queue(self, exchange: Optional[Exchange] = None) -> Queue:
        return Queue(
            self.queue,
            exchange=exchange or self.build_exchange(),
            routing_key=self.routing_key,
            durable=True,
        )

    def declare_topology(self) -> Queue:
        """Declare the configured exchange, queue and binding on the broker."""
        queue = self.build_queue()
        with connections[self.connection].acquire(block=True) as conn:
            queue(conn.default_channel).declare()
        logger.info(
            f"Declared queue '{self.queue}' bound to exchange '{self.exchange}' "
            f"with routing key '{self.routing_key}'"
        )
        return queue

    def ping(self, timeout: Optional[float] = None) -> None:
        """Make sure the broker is reachable; raises whatever kombu raises."""
        with connections[self.connection].acquire(block=True) as conn:
            conn.ensure_connection(max_retries=1, timeout=timeout)

    def close(self) -> None:
        # Pooled clones belong to kombu's process-wide pool group
        self.connection.release()


def create_amqp_template(url: Optional[str] = None) -> AmqpTemplate:
    """Build a template from configuration."""
    settings = get_settings()
    connection = Connection(
        url or settings.RABBITMQ_URL,
        connect_timeout=settings.BROKER_CONNECT_TIMEOUT,
    )
    return AmqpTemplate(
        connection,
        exchange=settings.JSA_RABBITMQ_EXCHANGE,
        routing_key=settings.JSA_RABBITMQ_ROUTINGKEY,
        queue=settings.JSA_RABBITMQ_QUEUE,
    )
