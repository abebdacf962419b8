"""
Queue listener process.

Consumes the configured queue and hands every message body to
``Producer.receive``. Run with ``python -m app.messaging.listener``.
"""

from typing import Any, List
import logging

from kombu import Queue
from kombu.message import Message
from kombu.mixins import ConsumerMixin

from app.utils.logger import setup_logging
from app.utils.metrics import setup_metrics
from .amqp import AmqpTemplate, create_amqp_template
from .producer import Producer

logger = logging.getLogger(__name__)


class JobMessageListener(ConsumerMixin):
    """Pushes messages from a queue to a producer's receive callback."""

    def __init__(self, amqp_template: AmqpTemplate, producer: Producer, queue: Queue = None):
        self.connection = amqp_template.connection
        self.queue = queue or amqp_template.build_queue()
        self.producer = producer

    def get_consumers(self, Consumer, channel) -> List:
        return [
            Consumer(
                queues=[self.queue],
                callbacks=[self.on_message],
                accept=["json", "text/plain"],
            )
        ]

    def on_message(self, body: Any, message: Message) -> None:
        # Ack only once the callback returned; callback errors go to kombu
        self.producer.receive(body)
        message.ack()

    def on_consume_ready(self, connection, channel, consumers, **kwargs):
        logger.info(f"Listening on queue '{self.queue.name}'")


def run_listener() -> None:
    """Entry point for the listener process."""
    setup_logging()
    setup_metrics()

    amqp_template = create_amqp_template()
    amqp_template.declare_topology()

    listener = JobMessageListener(amqp_template, Producer(amqp_template))
    try:
        listener.run()
    except KeyboardInterrupt:
        logger.info("Listener stopped")
    finally:
        amqp_template.close()


if __name__ == "__main__":
    run_listener()
