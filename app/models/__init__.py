from app.db.base import Base

# Import models for easier access from elsewhere in the application
from .schedule_job import ScheduleJob
from .oauth_token import OAuth2Token
from .user import User
