# Import schemas for easier access from elsewhere in the application
from .schedule_job import (
    ScheduleJobCreate, ScheduleJobUpdate, ScheduleJobResponse,
    DispatchRequest, DispatchResponse
)
from .oauth import TokenResponse, CheckTokenResponse, OAuth2ErrorResponse
