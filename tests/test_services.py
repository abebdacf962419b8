"""Tests for the job and user services."""

import pytest

from app.core.exceptions import JobConflictError, JobNotFoundError
from app.schemas.schedule_job import ScheduleJobCreate, ScheduleJobUpdate


class TestJobService:
    def test_create_and_get(self, job_service):
        job = job_service.create_job(ScheduleJobCreate(job_id=1, job_name="one", cron_expression="bogus"))

        assert job_service.get_job(1) is job
        assert job.cron_expression == "bogus"

    def test_create_duplicate(self, job_service, create_schedule_job):
        create_schedule_job(job_id=1)

        with pytest.raises(JobConflictError) as exc_info:
            job_service.create_job(ScheduleJobCreate(job_id=1))

        assert exc_info.value.to_dict()["details"] == {"job_id": 1}

    def test_get_missing(self, job_service):
        assert job_service.get_job(123) is None
        with pytest.raises(JobNotFoundError):
            job_service.get_job_or_raise(123)

    def test_get_jobs_filters_and_pages(self, job_service, create_schedule_job):
        for job_id in range(1, 6):
            create_schedule_job(job_id=job_id, job_status="1" if job_id % 2 else "0")

        assert [j.job_id for j in job_service.get_jobs(skip=1, limit=2)] == [2, 3]
        assert [j.job_id for j in job_service.get_jobs(job_status="0")] == [2, 4]

    def test_update_ignores_unset_fields(self, job_service, create_schedule_job):
        create_schedule_job(job_id=1, job_name="keep", description="old")

        job = job_service.update_job(1, ScheduleJobUpdate(description="new"))

        assert job.job_name == "keep"
        assert job.description == "new"

    def test_update_can_clear_field(self, job_service, create_schedule_job):
        create_schedule_job(job_id=1, description="old")

        job = job_service.update_job(1, ScheduleJobUpdate(description=None))

        assert job.description is None

    def test_delete(self, job_service, create_schedule_job):
        create_schedule_job(job_id=1)

        job_service.delete_job(1)

        assert job_service.get_job(1) is None
        with pytest.raises(JobNotFoundError):
            job_service.delete_job(1)


class TestUserService:
    def test_create_user_hashes_password(self, user_service, authorization_server):
        user = user_service.create_user("dave", "secret", authorities=["ROLE_USER", "ROLE_ADMIN"])

        assert user.password_hash != "secret"
        assert authorization_server.password_encoder().matches("secret", user.password_hash)
        assert user.authority_list == ["ROLE_USER", "ROLE_ADMIN"]
        assert user.enabled

    def test_duplicate_username(self, user_service):
        user_service.create_user("erin", "secret")

        with pytest.raises(ValueError):
            user_service.create_user("erin", "other")

    def test_set_enabled(self, user_service):
        user_service.create_user("frank", "secret")

        assert user_service.set_enabled("frank", False).enabled is False
        assert user_service.set_enabled("nobody", False) is None


def test_error_timestamp_is_utc_aware():
    error = JobNotFoundError(7)

    assert error.timestamp.utcoffset().total_seconds() == 0
    assert error.to_dict()["timestamp"].endswith("+00:00")
