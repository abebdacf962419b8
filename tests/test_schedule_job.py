"""Tests for the ScheduleJob entity."""

from app.models.schedule_job import ScheduleJob


FIELDS = {
    "job_id": 42,
    "job_name": "nightly-report",
    "job_group": "reports",
    "job_status": "1",
    "cron_expression": "0 0 2 * * ?",
    "description": "Builds the nightly report",
    "interface_name": "reportJob",
}


def test_attributes_round_trip():
    job = ScheduleJob()
    for name, value in FIELDS.items():
        setattr(job, name, value)

    for name, value in FIELDS.items():
        assert getattr(job, name) == value


def test_cron_expression_is_not_validated():
    job = ScheduleJob(job_id=1, cron_expression="not a cron expression")
    assert job.cron_expression == "not a cron expression"


def test_str_contains_every_field():
    job = ScheduleJob(**FIELDS)

    assert str(job) == (
        "ScheduleJob [jobId=42, jobName=nightly-report, jobGroup=reports, "
        "jobStatus=1, cronExpression=0 0 2 * * ?, description=Builds the nightly report, "
        "interfaceName=reportJob]"
    )


def test_str_renders_unset_fields_as_none():
    job = ScheduleJob(job_id=7)

    text = str(job)
    assert text.startswith("ScheduleJob [jobId=7, ")
    assert "jobName=None" in text
    assert "interfaceName=None]" in text


def test_to_dict_uses_camel_case_keys():
    data = ScheduleJob(**FIELDS).to_dict()

    assert data == {
        "jobId": 42,
        "jobName": "nightly-report",
        "jobGroup": "reports",
        "jobStatus": "1",
        "cronExpression": "0 0 2 * * ?",
        "description": "Builds the nightly report",
        "interfaceName": "reportJob",
    }


def test_persisted_under_schedule_job_table(db_session):
    db_session.add(ScheduleJob(**FIELDS))
    db_session.commit()

    stored = db_session.get(ScheduleJob, 42)
    assert ScheduleJob.__tablename__ == "schedule_job"
    assert {key: getattr(stored, key) for key in FIELDS} == FIELDS


def test_update_from_dict_ignores_unknown_keys():
    job = ScheduleJob(**FIELDS)

    job.update_from_dict({"job_name": "renamed", "unexpected": True})

    assert job.job_name == "renamed"
    assert job.job_group == "reports"
    assert not hasattr(job, "unexpected")
