from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from app.api.dependencies import get_job_service, get_producer, require_scope
from app.models.oauth_token import OAuth2Token
from app.messaging.producer import Producer
from app.schemas.oauth import OAuth2ErrorResponse
from app.schemas.schedule_job import (
    DispatchRequest,
    DispatchResponse,
    ScheduleJobCreate,
    ScheduleJobResponse,
    ScheduleJobUpdate,
)
from app.services.job_service import JobService
from app.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/jobs",
    tags=["jobs"],
    responses={
        401: {"model": OAuth2ErrorResponse, "description": "Missing or invalid access token"},
        403: {"model": OAuth2ErrorResponse, "description": "Insufficient scope"},
        404: {"description": "Job not found"},
    },
)


@router.get(
    "",
    response_model=List[ScheduleJobResponse],
    summary="List all jobs",
    description="Get a page of schedule jobs ordered by job ID",
)
def list_jobs(
    skip: int = Query(0, ge=0, description="Number of jobs to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of jobs"),
    job_group: Optional[str] = Query(None, description="Filter by job group"),
    job_status: Optional[str] = Query(None, description="Filter by job status"),
    token: OAuth2Token = Depends(require_scope("read")),
    job_service: JobService = Depends(get_job_service),
) -> List[ScheduleJobResponse]:
    jobs = job_service.get_jobs(skip=skip, limit=limit, job_group=job_group, job_status=job_status)
    logger.info(f"Retrieved {len(jobs)} jobs for client {token.client_id}")
    return jobs


@router.get(
    "/{job_id}",
    response_model=ScheduleJobResponse,
    summary="Get job details",
)
def get_job(
    job_id: int = Path(..., description="Job ID"),
    token: OAuth2Token = Depends(require_scope("read")),
    job_service: JobService = Depends(get_job_service),
) -> ScheduleJobResponse:
    return job_service.get_job_or_raise(job_id)


@router.post(
    "",
    response_model=ScheduleJobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new job",
    responses={409: {"description": "A job with this ID already exists"}},
)
def create_job(
    job_data: ScheduleJobCreate,
    token: OAuth2Token = Depends(require_scope("write")),
    job_service: JobService = Depends(get_job_service),
) -> ScheduleJobResponse:
    """
    Create a schedule job.

    The job ID is assigned by the caller. The cron expression is stored
    as given; nothing here schedules the job.
    """
    job = job_service.create_job(job_data)
    logger.info(f"Job {job.job_id} created by client {token.client_id}")
    return job


@router.put(
    "/{job_id}",
    response_model=ScheduleJobResponse,
    summary="Update a job",
)
def update_job(
    job_update: ScheduleJobUpdate,
    job_id: int = Path(..., description="Job ID"),
    token: OAuth2Token = Depends(require_scope("write")),
    job_service: JobService = Depends(get_job_service),
) -> ScheduleJobResponse:
    job = job_service.update_job(job_id, job_update)
    logger.info(f"Job {job_id} updated by client {token.client_id}")
    return job


@router.delete(
    "/{job_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a job",
)
def delete_job(
    job_id: int = Path(..., description="Job ID"),
    token: OAuth2Token = Depends(require_scope("write")),
    job_service: JobService = Depends(get_job_service),
) -> None:
    job_service.delete_job(job_id)
    logger.info(f"Job {job_id} deleted by client {token.client_id}")


@router.post(
    "/{job_id}/dispatch",
    response_model=DispatchResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Publish a job to the broker",
)
def dispatch_job(
    job_id: int = Path(..., description="Job ID"),
    dispatch: Optional[DispatchRequest] = Body(None),
    token: OAuth2Token = Depends(require_scope("write")),
    job_service: JobService = Depends(get_job_service),
    producer: Producer = Depends(get_producer),
) -> DispatchResponse:
    """
    Publish the stored job as a JSON message.

    Exchange and routing key default to the configured ones when the body
    leaves them out. Broker failures are not caught here.
    """
    job = job_service.get_job_or_raise(job_id)

    exchange = (dispatch and dispatch.exchange) or producer.exchange
    routing_key = (dispatch and dispatch.routing_key) or producer.routing_key

    producer.send(exchange, routing_key, job)

    return DispatchResponse(job_id=job.job_id, exchange=exchange, routing_key=routing_key)
