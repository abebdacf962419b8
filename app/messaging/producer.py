from typing import Any
import logging

from app.models.schedule_job import ScheduleJob
from app.utils.metrics import set_message_published, set_message_received
from .amqp import AmqpTemplate

logger = logging.getLogger(__name__)


class Producer:
    """Forwards schedule jobs to the broker and logs messages pushed back to it."""

    def __init__(self, amqp_template: AmqpTemplate):
        self.amqp_template = amqp_template

    @property
    def exchange(self) -> str:
        return self.amqp_template.exchange

    @property
    def routing_key(self) -> str:
        return self.amqp_template.routing_key

    def produce_job(self, job: ScheduleJob) -> None:
        """Send a job to the configured exchange and routing key."""
        self.send(self.exchange, self.routing_key, job)

    def send(self, exchange: str, routing_key: str, job: ScheduleJob) -> None:
        """Send a job to ``exchange`` with ``routing_key``. Broker errors propagate."""
        self.amqp_template.convert_and_send(exchange, routing_key, job)
        set_message_published(exchange, routing_key)
        logger.info(f"Send msg = {job}")

    def receive(self, message: Any) -> None:
        """Called by the queue listener for every delivered message."""
        set_message_received(self.amqp_template.queue)
        logger.info(f"{message}")
