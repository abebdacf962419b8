"""
Authorization server configuration.

Token issuing, refreshing and introspection are handled by Authlib. This
module wires the bcrypt password encoder, the in-memory trusted client and
the database token table into it, and supplies the password and
refresh-token hooks. The token endpoint is served under ``/login`` instead
of ``/oauth/token``, and inspecting tokens requires an authenticated client.
"""

from functools import lru_cache
from typing import Any, Dict, List, Optional
import logging
import time

from authlib.common.security import generate_token
from authlib.integrations.sqla_oauth2 import create_bearer_token_validator
from authlib.oauth2 import ResourceProtector
from authlib.oauth2.rfc6749 import AuthorizationServer, OAuth2Request, grants
from authlib.oauth2.rfc6749.errors import InvalidGrantError, InvalidRequestError
from authlib.oauth2.rfc6749.requests import OAuth2Payload
from authlib.oauth2.rfc6749.util import scope_to_list
from authlib.oauth2.rfc6750 import BearerTokenGenerator
from authlib.oauth2.rfc7662 import IntrospectionEndpoint
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.models.oauth_token import OAuth2Token
from app.models.user import User
from app.utils.metrics import set_token_metrics
from .config import Settings, get_settings
from .security import (
    ClientDetails,
    InMemoryClientDetailsService,
    JWTAccessTokenGenerator,
    PasswordEncoder,
    UserDetailsService,
)

logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "/oauth/token"
CHECK_TOKEN_ENDPOINT = "/oauth/check_token"
RESOURCE_REALM = "oauth2-resource"

# Every method a client may be configured for; the client decides which apply
CLIENT_AUTH_METHODS = ["client_secret_basic", "client_secret_post"]


class FormPayload(OAuth2Payload):
    def __init__(self, data: Dict[str, str]):
        self._data = data

    @property
    def data(self) -> Dict[str, str]:
        return self._data

    @property
    def datalist(self) -> Dict[str, List[str]]:
        return {key: [value] for key, value in self._data.items()}


class StarletteOAuth2Request(OAuth2Request):
    """OAuth2 request built from an already parsed Starlette request."""

    def __init__(self, method: str, uri: str, headers, args: Dict[str, str], form: Dict[str, str]):
        super().__init__(method, uri, headers=headers)
        self._args = args
        self._form = form
        self.payload = FormPayload({**args, **form})
        self.refresh_token = None

    @property
    def args(self) -> Dict[str, str]:
        return self._args

    @property
    def form(self) -> Dict[str, str]:
        return self._form

    @property
    def data(self) -> Dict[str, str]:
        return self.payload.data

    @property
    def datalist(self) -> Dict[str, List[str]]:
        return self.payload.datalist


class PasswordGrant(grants.ResourceOwnerPasswordCredentialsGrant):
    TOKEN_ENDPOINT_AUTH_METHODS = CLIENT_AUTH_METHODS

    def authenticate_user(self, username: str, password: str) -> User:
        user = self.server.user_details_service.load_user_by_username(username)

        # Unknown users and wrong passwords look the same to the caller
        if user is None or not self.server.password_encoder.matches(password, user.password_hash):
            logger.info(f"Authentication failed for user: {username}")
            raise InvalidGrantError("Bad credentials")

        if not user.enabled:
            raise InvalidGrantError("User is disabled")

        logger.info(f"User authenticated: {username}")
        return user


class RefreshTokenGrant(grants.RefreshTokenGrant):
    TOKEN_ENDPOINT_AUTH_METHODS = CLIENT_AUTH_METHODS

    def authenticate_refresh_token(self, refresh_token: str) -> Optional[OAuth2Token]:
        token = self.server.db.query(OAuth2Token).filter_by(refresh_token=refresh_token).first()
        if token is None or token.is_refresh_token_expired():
            return None
        return token

    def authenticate_user(self, refresh_token: OAuth2Token) -> User:
        # Reloaded on every refresh so a disabled account stops here
        user = refresh_token.user
        if user is None:
            raise InvalidGrantError("User not found")
        if not user.enabled:
            logger.info(f"Refresh rejected for disabled user: {user.username}")
            raise InvalidGrantError("User is disabled")
        return user

    def issue_token(self, user: User, refresh_token: OAuth2Token) -> Dict[str, Any]:
        scope = self.request.form.get("scope") or refresh_token.get_scope()
        token = self.generate_token(user=user, scope=scope, include_refresh_token=False)

        # The refresh token is reused until it expires
        token["refresh_token"] = refresh_token.refresh_token
        self.request.refresh_token = refresh_token
        return token

    def revoke_old_credential(self, refresh_token: OAuth2Token) -> None:
        self.server.db.delete(refresh_token)
        self.server.db.commit()


class CheckTokenEndpoint(IntrospectionEndpoint):
    CLIENT_AUTH_METHODS = CLIENT_AUTH_METHODS

    def authenticate_token(self, request: StarletteOAuth2Request, client: ClientDetails) -> Optional[OAuth2Token]:
        # GET passes the token as a query parameter, POST as a form field
        token_string = request.payload.data.get("token")
        if not token_string:
            raise InvalidRequestError('Missing "token" in request.')

        token = self.query_token(token_string, request.payload.data.get("token_type_hint"))
        if token and self.check_permission(token, client, request):
            return token
        return None

    def query_token(self, token_string: str, token_type_hint: Optional[str]) -> Optional[OAuth2Token]:
        return self.server.db.query(OAuth2Token).filter_by(access_token=token_string).first()

    def check_permission(self, token: OAuth2Token, client: ClientDetails, request) -> bool:
        # Any authenticated client may inspect any token
        return True

    def introspect_token(self, token: OAuth2Token) -> Dict[str, Any]:
        payload = {
            "active": True,
            "exp": token.get_expires_at(),
            "client_id": token.client_id,
            "scope": scope_to_list(token.get_scope()) or [],
        }
        if token.user is not None:
            payload["user_name"] = token.user.username
            payload["authorities"] = token.user.authority_list
        return payload


class DispatchAuthorizationServer(AuthorizationServer):
    """Authlib authorization server bound to one database session."""

    def __init__(self, config: "AuthorizationServerConfig", db: Session):
        super().__init__(scopes_supported=set(config.SCOPES))
        self.db = db
        self.password_encoder = config.password_encoder()
        self.user_details_service = UserDetailsService(db)
        self._client_details_service = config.client_details_service()

        self.register_token_generator("default", config.token_generator())
        self.register_grant(PasswordGrant)
        self.register_grant(RefreshTokenGrant)
        self.register_endpoint(CheckTokenEndpoint)

    def query_client(self, client_id: str) -> Optional[ClientDetails]:
        return self._client_details_service.load_client_by_client_id(client_id)

    def generate_token(self, grant_type, client, user=None, scope=None, expires_in=None, include_refresh_token=True):
        # Nothing requested means the client's full scope
        return super().generate_token(
            grant_type,
            client,
            user=user,
            scope=client.get_allowed_scope(scope),
            expires_in=expires_in,
            include_refresh_token=include_refresh_token,
        )

    def save_token(self, token: Dict[str, Any], request: StarletteOAuth2Request) -> None:
        client = request.client
        refresh_token_expires_at = None
        if token.get("refresh_token"):
            previous = getattr(request, "refresh_token", None)
            if previous is not None:
                refresh_token_expires_at = previous.refresh_token_expires_at
            else:
                refresh_token_expires_at = int(time.time()) + client.refresh_token_validity_seconds

        self.db.add(OAuth2Token(
            client_id=client.get_client_id(),
            user_id=request.user.id if request.user is not None else None,
            token_type=token["token_type"],
            access_token=token["access_token"],
            refresh_token=token.get("refresh_token"),
            refresh_token_expires_at=refresh_token_expires_at,
            scope=token.get("scope", ""),
            expires_in=token["expires_in"],
        ))
        self.db.commit()

        grant_type = request.form.get("grant_type")
        set_token_metrics(grant_type)
        logger.info(f"Issued {grant_type} token for client {client.get_client_id()}")

    def create_oauth2_request(self, request: StarletteOAuth2Request) -> StarletteOAuth2Request:
        return request

    def handle_response(self, status_code: int, payload: Dict[str, Any], headers) -> JSONResponse:
        return JSONResponse(payload, status_code=status_code, headers=dict(headers))

    def handle_error_response(self, request: StarletteOAuth2Request, error) -> JSONResponse:
        set_token_metrics(request.form.get("grant_type") or "", error=error.error)
        logger.info(f"OAuth2 request rejected: {error.error}: {error.description}")
        return super().handle_error_response(request, error)

    def send_signal(self, name: str, *args, **kwargs) -> None:
        logger.debug(f"OAuth2 signal: {name}")


def _generate_refresh_token(**kwargs) -> str:
    return generate_token(48)


class AuthorizationServerConfig:
    """Parameters and component factories for the authorization server."""

    TRUSTED_CLIENT_ID = "squeezer"
    TRUSTED_CLIENT_PASSWORD = "squeezer"
    SCOPES = ["read", "write"]

    token_expiration = 10000
    # 1 day for refresh token expiration
    refresh_token_expiration = 86400

    allow_form_authentication_for_clients = True

    path_mapping: Dict[str, str] = {TOKEN_ENDPOINT: "/login"}

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._password_encoder = PasswordEncoder(rounds=self.settings.BCRYPT_ROUNDS)
        self._client_details_service = self._configure_clients(InMemoryClientDetailsService())

    def password_encoder(self) -> PasswordEncoder:
        return self._password_encoder

    def client_details_service(self) -> InMemoryClientDetailsService:
        return self._client_details_service

    def token_generator(self) -> BearerTokenGenerator:
        return BearerTokenGenerator(
            access_token_generator=JWTAccessTokenGenerator(
                self.settings.OAUTH2_JWT_SECRET,
                self.settings.OAUTH2_JWT_ALGORITHM,
            ),
            refresh_token_generator=_generate_refresh_token,
            expires_generator=lambda client, grant_type: client.access_token_validity_seconds,
        )

    def authorization_server(self, db: Session) -> DispatchAuthorizationServer:
        return DispatchAuthorizationServer(self, db)

    def resource_protector(self, db: Session) -> ResourceProtector:
        """Protector validating bearer tokens against the token table."""
        protector = ResourceProtector()
        validator_cls = create_bearer_token_validator(db, OAuth2Token)
        protector.register_token_validator(validator_cls(realm=RESOURCE_REALM))
        return protector

    @classmethod
    def path(cls, default_path: str) -> str:
        """Path an endpoint is actually served under."""
        return cls.path_mapping.get(default_path, default_path)

    def _configure_clients(self, clients: InMemoryClientDetailsService) -> InMemoryClientDetailsService:
        auth_methods = ["client_secret_basic"]
        if self.allow_form_authentication_for_clients:
            auth_methods.append("client_secret_post")

        clients.register(ClientDetails(
            client_id=self.TRUSTED_CLIENT_ID,
            client_secret=self._password_encoder.encode(self.TRUSTED_CLIENT_PASSWORD),
            password_encoder=self._password_encoder,
            grant_types={"refresh_token", "password"},
            scope=list(self.SCOPES),
            access_token_validity_seconds=self.token_expiration,
            refresh_token_validity_seconds=self.refresh_token_expiration,
            auth_methods=auth_methods,
        ))
        return clients


@lru_cache()
def get_authorization_server() -> AuthorizationServerConfig:
    """Return the process-wide authorization server configuration."""
    return AuthorizationServerConfig()
