from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from app.core.exceptions import JobConflictError, JobNotFoundError
from app.models.schedule_job import ScheduleJob
from app.schemas.schedule_job import ScheduleJobCreate, ScheduleJobUpdate


class JobService:
    """Service for managing schedule job records."""

    def __init__(self, db: Session):
        self.db = db

    def create_job(self, job_data: ScheduleJobCreate) -> ScheduleJob:
        """Create a new job."""
        if self.get_job(job_data.job_id) is not None:
            raise JobConflictError(job_data.job_id)

        job = ScheduleJob(**job_data.model_dump())

        try:
            self.db.add(job)
            self.db.commit()
            self.db.refresh(job)
            return job
        except IntegrityError:
            self.db.rollback()
            raise JobConflictError(job_data.job_id)

    def get_job(self, job_id: int) -> Optional[ScheduleJob]:
        """Get a job by ID."""
        return self.db.query(ScheduleJob).filter(ScheduleJob.job_id == job_id).first()

    def get_job_or_raise(self, job_id: int) -> ScheduleJob:
        job = self.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def get_jobs(
        self,
        skip: int = 0,
        limit: int = 100,
        job_group: Optional[str] = None,
        job_status: Optional[str] = None,
    ) -> List[ScheduleJob]:
        """Get all jobs with pagination."""
        query = self.db.query(ScheduleJob)

        if job_group is not None:
            query = query.filter(ScheduleJob.job_group == job_group)
        if job_status is not None:
            query = query.filter(ScheduleJob.job_status == job_status)

        return query.order_by(ScheduleJob.job_id).offset(skip).limit(limit).all()

    def update_job(self, job_id: int, job_data: ScheduleJobUpdate) -> ScheduleJob:
        """Update an existing job; only fields present in the request change."""
        job = self.get_job_or_raise(job_id)
        job.update_from_dict(job_data.model_dump(exclude_unset=True))

        self.db.commit()
        self.db.refresh(job)
        return job

    def delete_job(self, job_id: int) -> None:
        """Delete a job by ID."""
        job = self.get_job_or_raise(job_id)
        self.db.delete(job)
        self.db.commit()
