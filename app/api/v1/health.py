# app/api/v1/health.py

from fastapi import APIRouter, Depends, HTTPException, status
from typing import Any, Dict, Optional
import psutil
from datetime import datetime, timezone
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.api.dependencies import get_amqp_template
from app.core.config import Settings, get_settings
from app.db.session import get_db
from app.messaging.amqp import AmqpTemplate
from app.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/health",
    tags=["health"],
    responses={
        503: {"description": "Service Unavailable"}
    }
)


class ComponentStatus(BaseModel):
    status: str
    response_time_ms: float = 0
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class SystemMetrics(BaseModel):
    cpu_usage_percent: Optional[float] = None
    cpu_count: Optional[int] = None
    memory_usage_percent: Optional[float] = None
    memory_available_gb: Optional[float] = None
    process_memory_mb: Optional[float] = None


class ServiceStatus(BaseModel):
    status: str
    service: str
    timestamp: datetime
    details: Optional[Dict[str, Any]] = None


class HealthCheckResponse(BaseModel):
    status: str
    timestamp: datetime
    service: str
    version: str
    environment: str
    uptime_seconds: int
    components: Dict[str, ComponentStatus]
    metrics: SystemMetrics


def check_database_health(db: Session) -> ComponentStatus:
    """Check database connectivity."""
    try:
        start_time = datetime.now(timezone.utc)
        db.execute(text("SELECT 1"))
        response_time = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000

        return ComponentStatus(status="healthy", response_time_ms=response_time)
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return ComponentStatus(status="unhealthy", error=str(e))


def check_broker_health(amqp_template: AmqpTemplate, timeout: float) -> ComponentStatus:
    """Check that the message broker accepts connections."""
    try:
        start_time = datetime.now(timezone.utc)
        amqp_template.ping(timeout=timeout)
        response_time = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000

        return ComponentStatus(
            status="healthy",
            response_time_ms=response_time,
            details={
                "exchange": amqp_template.exchange,
                "routing_key": amqp_template.routing_key,
                "queue": amqp_template.queue,
            }
        )
    except Exception as e:
        logger.error(f"Broker health check failed: {str(e)}")
        return ComponentStatus(status="unhealthy", error=str(e))


def get_system_metrics() -> SystemMetrics:
    """Get system-level metrics."""
    try:
        memory = psutil.virtual_memory()
        process = psutil.Process()

        return SystemMetrics(
            cpu_usage_percent=psutil.cpu_percent(interval=None),
            cpu_count=psutil.cpu_count(),
            memory_usage_percent=memory.percent,
            memory_available_gb=round(memory.available / (1024 ** 3), 2),
            process_memory_mb=round(process.memory_info().rss / (1024 ** 2), 2),
        )
    except Exception as e:
        logger.error(f"Failed to get system metrics: {str(e)}")
        return SystemMetrics()


@router.get(
    "",
    response_model=HealthCheckResponse,
    summary="Comprehensive health check",
    description="Check the health of all system components"
)
def health_check(
    db: Session = Depends(get_db),
    amqp_template: AmqpTemplate = Depends(get_amqp_template),
    settings: Settings = Depends(get_settings)
) -> HealthCheckResponse:
    """
    Comprehensive health check endpoint.

    Checks database and broker connectivity and reports system resource
    usage. Returns HTTP 503 if any component is unhealthy.
    """
    db_status = check_database_health(db)
    broker_status = check_broker_health(amqp_template, settings.BROKER_CONNECT_TIMEOUT)

    is_healthy = db_status.status == "healthy" and broker_status.status == "healthy"

    response = HealthCheckResponse(
        status="healthy" if is_healthy else "degraded",
        timestamp=datetime.now(timezone.utc),
        service=settings.SERVICE_NAME,
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        uptime_seconds=int((datetime.now(timezone.utc) - settings.START_TIME).total_seconds()),
        components={
            "database": db_status,
            "broker": broker_status,
        },
        metrics=get_system_metrics()
    )

    if not is_healthy:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=response.model_dump(mode="json")
        )

    return response


@router.get(
    "/live",
    response_model=ServiceStatus,
    summary="Liveness check",
    description="Simple liveness check for Kubernetes"
)
def liveness(settings: Settings = Depends(get_settings)) -> ServiceStatus:
    """Liveness check; does not check external dependencies."""
    return ServiceStatus(
        status="healthy",
        service=settings.SERVICE_NAME,
        timestamp=datetime.now(timezone.utc)
    )


@router.get(
    "/ready",
    response_model=ServiceStatus,
    summary="Readiness check",
    description="Readiness check for Kubernetes"
)
def readiness(
    db: Session = Depends(get_db),
    amqp_template: AmqpTemplate = Depends(get_amqp_template),
    settings: Settings = Depends(get_settings)
) -> ServiceStatus:
    """
    Readiness check endpoint.

    The service is ready when the database answers and the broker accepts
    connections.
    """
    try:
        db.execute(text("SELECT 1"))
        amqp_template.ping(timeout=settings.BROKER_CONNECT_TIMEOUT)

        return ServiceStatus(
            status="healthy",
            service=settings.SERVICE_NAME,
            timestamp=datetime.now(timezone.utc),
            details={
                "database": "connected",
                "broker": "connected"
            }
        )

    except Exception as e:
        logger.error(f"Readiness check failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "status": "not_ready",
                "error": str(e),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        )
