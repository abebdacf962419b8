# app/api/oauth.py

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.authorization_server import (
    AuthorizationServerConfig,
    CHECK_TOKEN_ENDPOINT,
    StarletteOAuth2Request,
    TOKEN_ENDPOINT,
    get_authorization_server,
)
from app.db.session import get_db
from app.schemas.oauth import CheckTokenResponse, OAuth2ErrorResponse, TokenResponse
from app.utils.logger import get_logger
from app.utils.metrics import TOKEN_REQUEST_DURATION, timing_metric

logger = get_logger(__name__)

INTROSPECTION_ENDPOINT_NAME = "introspection"


router = APIRouter(
    tags=["oauth2"],
    responses={
        400: {"model": OAuth2ErrorResponse, "description": "Invalid request"},
        401: {"model": OAuth2ErrorResponse, "description": "Client authentication failed"},
    },
)


async def parse_oauth2_request(request: Request) -> StarletteOAuth2Request:
    """Read the request body up front so the endpoints themselves can stay synchronous."""
    form = {}
    if request.method == "POST":
        parsed = await request.form()
        form = {key: value for key, value in parsed.items() if isinstance(value, str)}

    return StarletteOAuth2Request(
        request.method,
        str(request.url),
        request.headers,
        args=dict(request.query_params),
        form=form,
    )


@router.post(
    AuthorizationServerConfig.path(TOKEN_ENDPOINT),
    response_model=TokenResponse,
    summary="Issue an access token",
)
@timing_metric(TOKEN_REQUEST_DURATION)
def token(
    oauth2_request: StarletteOAuth2Request = Depends(parse_oauth2_request),
    db: Session = Depends(get_db),
    authorization_server: AuthorizationServerConfig = Depends(get_authorization_server),
) -> JSONResponse:
    """
    Token endpoint.

    Accepts ``grant_type=password`` (``username``, ``password``, optional
    ``scope``) and ``grant_type=refresh_token`` (``refresh_token``,
    optional narrower ``scope``). Runs in the worker thread pool since
    bcrypt checks block.
    """
    server = authorization_server.authorization_server(db)
    return server.create_token_response(oauth2_request)


@router.api_route(
    CHECK_TOKEN_ENDPOINT,
    methods=["GET", "POST"],
    response_model=CheckTokenResponse,
    response_model_exclude_none=True,
    summary="Inspect an access token",
)
def check_token(
    oauth2_request: StarletteOAuth2Request = Depends(parse_oauth2_request),
    db: Session = Depends(get_db),
    authorization_server: AuthorizationServerConfig = Depends(get_authorization_server),
) -> JSONResponse:
    """Token introspection; only authenticated clients may call it."""
    server = authorization_server.authorization_server(db)
    return server.create_endpoint_response(INTROSPECTION_ENDPOINT_NAME, oauth2_request)
