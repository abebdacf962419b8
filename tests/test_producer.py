"""Tests for the Producer."""

import logging
from unittest.mock import Mock

import pytest

from app.messaging.producer import Producer
from app.models.schedule_job import ScheduleJob


@pytest.fixture
def job():
    return ScheduleJob(job_id=1, job_name="sync", job_group="etl", interface_name="syncJob")


def test_send_forwards_exactly_once(producer, mock_amqp_template, job):
    producer.send("orders.direct", "orders.created", job)

    mock_amqp_template.convert_and_send.assert_called_once_with("orders.direct", "orders.created", job)
    # The very same object is handed over, not a copy
    assert mock_amqp_template.convert_and_send.call_args.args[2] is job


def test_send_logs_the_job(producer, job, caplog):
    with caplog.at_level(logging.INFO, logger="app.messaging.producer"):
        producer.send("x", "y", job)

    assert f"Send msg = {job}" in caplog.text


def test_send_propagates_broker_errors(producer, mock_amqp_template, job):
    mock_amqp_template.convert_and_send.side_effect = ConnectionError("broker down")

    with pytest.raises(ConnectionError):
        producer.send("x", "y", job)


def test_produce_job_uses_configured_defaults(producer, mock_amqp_template, job):
    producer.produce_job(job)

    mock_amqp_template.convert_and_send.assert_called_once_with("jsa.direct", "jsa.routingkey", job)


def test_receive_only_logs(producer, mock_amqp_template, caplog):
    message = {"jobId": 1, "jobName": "sync"}

    with caplog.at_level(logging.INFO, logger="app.messaging.producer"):
        assert producer.receive(message) is None

    assert str(message) in caplog.text
    mock_amqp_template.convert_and_send.assert_not_called()


def test_receive_accepts_plain_text(caplog):
    producer = Producer(Mock(queue="jsa.queue"))

    with caplog.at_level(logging.INFO, logger="app.messaging.producer"):
        producer.receive("hello")

    assert "hello" in caplog.text
