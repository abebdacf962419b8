# app/api/dependencies.py

from typing import Callable, Optional
import logging

from authlib.oauth2 import ResourceProtector
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.authorization_server import AuthorizationServerConfig, get_authorization_server
from app.db.session import get_db
from app.messaging.amqp import AmqpTemplate, create_amqp_template
from app.messaging.producer import Producer
from app.models.oauth_token import OAuth2Token
from app.services.job_service import JobService

logger = logging.getLogger(__name__)

_amqp_template: Optional[AmqpTemplate] = None


def get_amqp_template() -> AmqpTemplate:
    """Process-wide AMQP template, created on first use."""
    global _amqp_template
    if _amqp_template is None:
        _amqp_template = create_amqp_template()
    return _amqp_template


def get_producer(amqp_template: AmqpTemplate = Depends(get_amqp_template)) -> Producer:
    return Producer(amqp_template)


def get_job_service(db: Session = Depends(get_db)) -> JobService:
    return JobService(db)


def get_resource_protector(
    db: Session = Depends(get_db),
    authorization_server: AuthorizationServerConfig = Depends(get_authorization_server),
) -> ResourceProtector:
    return authorization_server.resource_protector(db)


def require_scope(scope: str) -> Callable[..., OAuth2Token]:
    """
    Dependency factory requiring a bearer token granted ``scope``.

    A missing, unknown or expired token is rejected with 401, a token
    without the scope with 403. Both come back as Authlib errors.
    """
    def dependency(
        request: Request,
        protector: ResourceProtector = Depends(get_resource_protector),
    ) -> OAuth2Token:
        token = protector.validate_request([scope], request)
        logger.debug(f"Bearer token of client {token.client_id} accepted for scope '{scope}'")
        return token

    return dependency
