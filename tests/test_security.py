"""Tests for the password encoder, client registry and authorization server wiring."""

import jwt
import pytest

from app.core.authorization_server import (
    AuthorizationServerConfig,
    CHECK_TOKEN_ENDPOINT,
    TOKEN_ENDPOINT,
)
from app.core.security import JWTAccessTokenGenerator, PasswordEncoder, UserDetailsService


@pytest.fixture
def encoder():
    return PasswordEncoder(rounds=4)


@pytest.fixture
def trusted_client(authorization_server):
    return authorization_server.client_details_service().load_client_by_client_id("squeezer")


def test_password_encoder(encoder):
    encoded = encoder.encode("squeezer")

    assert encoded.startswith("$2")
    assert encoder.matches("squeezer", encoded)
    assert not encoder.matches("wrong", encoded)
    assert not encoder.matches("squeezer", "not-a-bcrypt-hash")
    assert not encoder.matches(None, encoded)


def test_trusted_client_registration(authorization_server, trusted_client):
    assert trusted_client.grant_types == {"password", "refresh_token"}
    assert trusted_client.scope == ["read", "write"]
    assert trusted_client.access_token_validity_seconds == 10000
    assert trusted_client.refresh_token_validity_seconds == 86400
    # The secret is kept bcrypt encoded
    assert trusted_client.client_secret != "squeezer"
    assert trusted_client.check_client_secret("squeezer")
    assert not trusted_client.check_client_secret("nope")


def test_trusted_client_grant_types(trusted_client):
    assert trusted_client.check_grant_type("password")
    assert trusted_client.check_grant_type("refresh_token")
    assert not trusted_client.check_grant_type("client_credentials")
    assert not trusted_client.check_grant_type("implicit")
    assert not trusted_client.check_response_type("code")


def test_trusted_client_auth_methods(trusted_client):
    assert trusted_client.check_endpoint_auth_method("client_secret_basic", "token")
    assert trusted_client.check_endpoint_auth_method("client_secret_post", "token")
    assert not trusted_client.check_endpoint_auth_method("none", "token")


def test_form_authentication_can_be_switched_off(monkeypatch):
    monkeypatch.setattr(AuthorizationServerConfig, "allow_form_authentication_for_clients", False)

    client = AuthorizationServerConfig().client_details_service().load_client_by_client_id("squeezer")

    assert client.check_endpoint_auth_method("client_secret_basic", "token")
    assert not client.check_endpoint_auth_method("client_secret_post", "token")


def test_unknown_client_lookup(authorization_server):
    assert authorization_server.client_details_service().load_client_by_client_id("nobody") is None


def test_allowed_scope(trusted_client):
    assert trusted_client.get_allowed_scope(None) == "read write"
    assert trusted_client.get_allowed_scope("write") == "write"
    assert trusted_client.get_allowed_scope("read admin") == "read"


def test_path_mapping():
    assert AuthorizationServerConfig.path(TOKEN_ENDPOINT) == "/login"
    assert AuthorizationServerConfig.path(CHECK_TOKEN_ENDPOINT) == CHECK_TOKEN_ENDPOINT
    assert AuthorizationServerConfig.allow_form_authentication_for_clients


def test_user_details_service(db_session, user_service):
    user_service.create_user("gina", "secret")
    users = UserDetailsService(db_session)

    assert users.load_user_by_username("gina").username == "gina"
    assert users.load_user_by_username("nobody") is None


def test_jwt_access_token_generator(trusted_client, create_user):
    user = create_user(username="ivy", password="secret")
    generator = JWTAccessTokenGenerator("test-secret")

    value = generator(client=trusted_client, grant_type="password", user=user, scope="read")
    claims = jwt.decode(value, "test-secret", algorithms=["HS256"])

    assert claims["client_id"] == "squeezer"
    assert claims["sub"] == "ivy"
    assert claims["scope"] == ["read"]
    assert claims["exp"] - claims["iat"] == 10000
    # Two tokens for the same grant never collide
    assert generator(client=trusted_client, grant_type="password", user=user, scope="read") != value
