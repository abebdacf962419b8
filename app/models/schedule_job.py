from typing import Any, Dict
from sqlalchemy import Column, BigInteger, String, Text
from app.db.base import Base, SerializableMixin


class ScheduleJob(SerializableMixin, Base):
    """Model representing a scheduled job definition."""

    __tablename__ = "schedule_job"

    # Assigned by the caller, never generated
    job_id = Column(BigInteger, primary_key=True, autoincrement=False)

    job_name = Column(String(255), nullable=True)
    job_group = Column(String(255), nullable=True)
    job_status = Column(String(64), nullable=True)

    # Stored as opaque text; interpreted by whichever scheduler consumes the job
    cron_expression = Column(String(255), nullable=True)

    description = Column(Text, nullable=True)
    interface_name = Column(String(255), nullable=True)  # Callback implementing the job

    # Attribute name -> camelCase key used in message bodies
    WIRE_FIELDS = {
        "job_id": "jobId",
        "job_name": "jobName",
        "job_group": "jobGroup",
        "job_status": "jobStatus",
        "cron_expression": "cronExpression",
        "description": "description",
        "interface_name": "interfaceName",
    }

    def to_dict(self) -> Dict[str, Any]:
        """Convert the job to its message body representation."""
        return {wire: getattr(self, attr) for attr, wire in self.WIRE_FIELDS.items()}

    def __str__(self) -> str:
        return (
            f"ScheduleJob [jobId={self.job_id}, jobName={self.job_name}, "
            f"jobGroup={self.job_group}, jobStatus={self.job_status}, "
            f"cronExpression={self.cron_expression}, description={self.description}, "
            f"interfaceName={self.interface_name}]"
        )

    def __repr__(self):
        return f"<ScheduleJob(job_id={self.job_id}, job_name='{self.job_name}')>"
