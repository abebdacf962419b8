from contextlib import asynccontextmanager
from typing import AsyncGenerator

from authlib.oauth2 import OAuth2Error
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST
import uvicorn

from app.api import dependencies
from app.api.middleware import register_middleware
from app.api.oauth import router as oauth_router
from app.api.v1 import api_router
from app.core.config import get_settings
from app.core.exceptions import JobDispatchError, http_status_for
from app.db.session import init_db
from app.utils.logger import get_logger, setup_logging
from app.utils.metrics import get_metrics

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    logger.info(f"Starting {settings.SERVICE_NAME} {settings.VERSION} ({settings.ENVIRONMENT})")
    init_db()

    yield

    # Shutdown
    if dependencies._amqp_template is not None:
        dependencies._amqp_template.close()
        dependencies._amqp_template = None
    logger.info("Broker connection released")


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="Job Dispatch Service",
        description="Stores schedule jobs, publishes them to RabbitMQ and issues OAuth2 tokens",
        version=settings.VERSION,
        lifespan=lifespan,
    )

    register_middleware(app)

    @app.exception_handler(JobDispatchError)
    async def job_dispatch_exception_handler(request: Request, exc: JobDispatchError) -> JSONResponse:
        return JSONResponse(
            status_code=http_status_for(exc),
            content=exc.to_dict(),
        )

    @app.exception_handler(OAuth2Error)
    async def oauth2_exception_handler(request: Request, exc: OAuth2Error) -> JSONResponse:
        """Render bearer token rejections with their WWW-Authenticate challenge."""
        status_code, body, headers = exc()
        logger.info(f"Resource request rejected: {exc.error}")
        return JSONResponse(status_code=status_code, content=dict(body), headers=dict(headers))

    app.include_router(oauth_router)
    app.include_router(api_router)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()


def main():
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
