from .amqp import AmqpTemplate, create_amqp_template
from .producer import Producer
from .listener import JobMessageListener, run_listener

__all__ = [
    "AmqpTemplate",
    "create_amqp_template",
    "Producer",
    "JobMessageListener",
    "run_listener",
]
