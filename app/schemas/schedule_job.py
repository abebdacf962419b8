from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class ScheduleJobBase(BaseModel):
    """Base schema with common schedule job attributes."""
    job_name: Optional[str] = Field(None, description="Name of the job", examples=["nightly-report"])
    job_group: Optional[str] = Field(None, description="Group the job belongs to", examples=["reports"])
    job_status: Optional[str] = Field(None, description="Free-text job status", examples=["1"])
    cron_expression: Optional[str] = Field(
        None,
        description="Schedule expression, stored as-is",
        examples=["0 0/5 * * * ?"]
    )
    description: Optional[str] = Field(None, description="Detailed description of the job")
    interface_name: Optional[str] = Field(
        None,
        description="Callback implementing the job",
        examples=["reportJob"]
    )


class ScheduleJobCreate(ScheduleJobBase):
    """Schema for creating a schedule job; the caller assigns the ID."""
    job_id: int = Field(..., description="Unique job ID")


class ScheduleJobUpdate(ScheduleJobBase):
    """Schema for updating an existing schedule job."""
    pass


class ScheduleJobResponse(ScheduleJobBase):
    """Schema for schedule job responses from the API."""
    job_id: int

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "job_id": 1,
                "job_name": "nightly-report",
                "job_group": "reports",
                "job_status": "1",
                "cron_expression": "0 0 2 * * ?",
                "description": "Builds the nightly report",
                "interface_name": "reportJob"
            }
        }
    )


class DispatchRequest(BaseModel):
    """Where to publish a job; omitted values fall back to the configured defaults."""
    exchange: Optional[str] = Field(None, description="Target exchange")
    routing_key: Optional[str] = Field(None, description="Routing key")


class DispatchResponse(BaseModel):
    job_id: int
    exchange: str
    routing_key: str
