"""
Security primitives for the authorization server.

Provides the bcrypt password encoder, the client registration Authlib
authenticates against, the user lookup for the password grant, and the
signed access token values.
"""

import bcrypt
import jwt
import time
import uuid
from typing import Dict, List, Optional, Set
import logging

from authlib.oauth2.rfc6749 import ClientMixin
from authlib.oauth2.rfc6749.util import list_to_scope, scope_to_list
from sqlalchemy.orm import Session

from app.models.user import User

logger = logging.getLogger(__name__)


class PasswordEncoder:
    """Hashes and verifies secrets with bcrypt."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def encode(self, raw_password: str) -> str:
        """Hash password using bcrypt."""
        return bcrypt.hashpw(raw_password.encode('utf-8'), bcrypt.gensalt(self.rounds)).decode('utf-8')

    def matches(self, raw_password: Optional[str], encoded_password: Optional[str]) -> bool:
        """Verify password against hash."""
        if not raw_password or not encoded_password:
            return False
        try:
            return bcrypt.checkpw(raw_password.encode('utf-8'), encoded_password.encode('utf-8'))
        except ValueError as e:
            logger.warning(f"Encoded password does not look like bcrypt: {e}")
            return False


class ClientDetails(ClientMixin):
    """OAuth2 client registration held in memory."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        password_encoder: PasswordEncoder,
        grant_types: Set[str],
        scope: List[str],
        access_token_validity_seconds: int,
        refresh_token_validity_seconds: int,
        auth_methods: List[str],
    ):
        self.client_id = client_id
        self.client_secret = client_secret  # bcrypt encoded
        self.password_encoder = password_encoder
        self.grant_types = grant_types
        self.scope = scope
        self.access_token_validity_seconds = access_token_validity_seconds
        self.refresh_token_validity_seconds = refresh_token_validity_seconds
        self.auth_methods = auth_methods

    def get_client_id(self) -> str:
        return self.client_id

    def get_default_redirect_uri(self) -> Optional[str]:
        return None

    def get_allowed_scope(self, scope: Optional[str]) -> str:
        """No requested scope means all of the client's scope."""
        if not scope:
            return list_to_scope(self.scope)
        return list_to_scope([s for s in scope_to_list(scope) if s in self.scope])

    def check_redirect_uri(self, redirect_uri: str) -> bool:
        return False

    def check_client_secret(self, client_secret: str) -> bool:
        return self.password_encoder.matches(client_secret, self.client_secret)

    def check_endpoint_auth_method(self, method: str, endpoint: str) -> bool:
        return method in self.auth_methods

    def check_response_type(self, response_type: str) -> bool:
        return False

    def check_grant_type(self, grant_type: str) -> bool:
        return grant_type in self.grant_types


class InMemoryClientDetailsService:
    """Client registry held in process memory."""

    def __init__(self):
        self.clients: Dict[str, ClientDetails] = {}

    def register(self, client: ClientDetails) -> ClientDetails:
        self.clients[client.client_id] = client
        logger.info(f"Registered client: {client.client_id} with grant types: {sorted(client.grant_types)}")
        return client

    def load_client_by_client_id(self, client_id: str) -> Optional[ClientDetails]:
        return self.clients.get(client_id)


class UserDetailsService:
    """Looks users up in the ``users`` table."""

    def __init__(self, db: Session):
        self.db = db

    def load_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()


class JWTAccessTokenGenerator:
    """Access token values signed as JWTs; the token table stays authoritative."""

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        self.secret_key = secret_key
        self.algorithm = algorithm

    def __call__(self, client: ClientDetails, grant_type: str, user: Optional[User], scope: str) -> str:
        now = int(time.time())
        payload = {
            "jti": str(uuid.uuid4()),
            "client_id": client.get_client_id(),
            "scope": scope_to_list(scope) or [],
            "iat": now,
            "exp": now + client.access_token_validity_seconds,
        }
        if user is not None:
            payload["sub"] = user.username
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
