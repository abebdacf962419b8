"""Test fixtures and configuration for the Job Dispatch Service."""

import os
import uuid
from typing import Callable, Dict, Generator, Optional
from unittest.mock import Mock

# Configure the application before any app module reads its settings
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RABBITMQ_URL"] = "memory://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["OAUTH2_JWT_SECRET"] = "test-secret"
os.environ["LOG_LEVEL"] = "DEBUG"
# Test clients talk plain http; Authlib only accepts that when told to
os.environ["AUTHLIB_INSECURE_TRANSPORT"] = "1"

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from kombu import Connection
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Import application modules
from app.api.dependencies import get_amqp_template
from app.core.authorization_server import AuthorizationServerConfig, get_authorization_server
from app.db.base import Base
from app.db.session import get_db
from app.main import create_app
from app.messaging.amqp import AmqpTemplate
from app.messaging.producer import Producer
from app.models.schedule_job import ScheduleJob
from app.services.job_service import JobService
from app.services.user_service import UserService

TRUSTED_CLIENT = (AuthorizationServerConfig.TRUSTED_CLIENT_ID, AuthorizationServerConfig.TRUSTED_CLIENT_PASSWORD)

# ===============================
# Database Fixtures
# ===============================

@pytest.fixture(scope="session")
def engine():
    """Create a SQLAlchemy engine for testing."""
    # Use in-memory SQLite for tests
    test_db_url = os.environ.get("TEST_DATABASE_URL", "sqlite:///:memory:")

    engine = create_engine(
        test_db_url,
        connect_args={"check_same_thread": False} if test_db_url.startswith("sqlite") else {},
        poolclass=StaticPool,
        echo=False
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    yield engine

    # Drop all tables after tests
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(engine):
    """Create a new database session for a test."""
    # Connect to the database
    connection = engine.connect()
    # Begin a non-ORM transaction
    transaction = connection.begin()
    # Bind a session to the connection
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=connection)
    session = TestSessionLocal()

    yield session

    # Roll back the transaction and close the session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def override_get_db(db_session):
    """Override the get_db dependency for testing."""
    def _override_get_db():
        try:
            yield db_session
        finally:
            pass

    return _override_get_db


# ===============================
# Broker Fixtures
# ===============================

@pytest.fixture(scope="function")
def amqp_template() -> Generator[AmqpTemplate, None, None]:
    """Template on kombu's in-memory transport; names are unique per test."""
    suffix = uuid.uuid4().hex[:8]
    template = AmqpTemplate(
        Connection("memory://"),
        exchange=f"test.direct.{suffix}",
        routing_key=f"test.routingkey.{suffix}",
        queue=f"test.queue.{suffix}",
    )

    yield template

    template.close()


@pytest.fixture(scope="function")
def mock_amqp_template() -> Mock:
    """Template double recording convert_and_send calls."""
    template = Mock(spec=AmqpTemplate)
    template.exchange = "jsa.direct"
    template.routing_key = "jsa.routingkey"
    template.queue = "jsa.queue"
    return template


@pytest.fixture(scope="function")
def producer(mock_amqp_template) -> Producer:
    return Producer(mock_amqp_template)


# ===============================
# Application Fixtures
# ===============================

@pytest.fixture(scope="function")
def app(override_get_db, amqp_template):
    """Create a FastAPI application for testing."""
    app = create_app()

    # Override the database and broker dependencies
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_amqp_template] = lambda: amqp_template

    return app


@pytest.fixture(scope="function")
def client(app):
    """Create a test client for the application."""
    with TestClient(app) as client:
        yield client


# ===============================
# Service Fixtures
# ===============================

@pytest.fixture(scope="function")
def authorization_server() -> AuthorizationServerConfig:
    return get_authorization_server()


@pytest.fixture(scope="function")
def job_service(db_session):
    """Create a JobService instance for testing."""
    return JobService(db_session)


@pytest.fixture(scope="function")
def user_service(db_session, authorization_server):
    """Create a UserService instance for testing."""
    return UserService(db_session, authorization_server.password_encoder())


# ===============================
# Model Factory Fixtures
# ===============================

@pytest.fixture
def create_schedule_job(db_session):
    """Factory fixture to create a schedule job for testing."""
    counter = iter(range(1, 10000))

    def _create_schedule_job(**kwargs):
        """Create a schedule job with default values."""
        job_id = kwargs.pop("job_id", None) or next(counter)
        job_data = {
            "job_id": job_id,
            "job_name": f"test-job-{job_id}",
            "job_group": "test",
            "job_status": "1",
            "cron_expression": "0 0/5 * * * ?",
            "description": "Test job for unit tests",
            "interface_name": "testJob",
        }
        job_data.update(kwargs)

        job = ScheduleJob(**job_data)
        db_session.add(job)
        db_session.commit()
        db_session.refresh(job)
        return job

    return _create_schedule_job


@pytest.fixture
def create_user(user_service):
    """Factory fixture to create a resource owner for the password grant."""
    def _create_user(username: str = "alice", password: str = "password", **kwargs):
        return user_service.create_user(username, password, **kwargs)

    return _create_user


# ===============================
# OAuth2 Fixtures
# ===============================

@pytest.fixture
def request_token(client):
    """Call the token endpoint with the trusted client's credentials."""
    def _request_token(auth=TRUSTED_CLIENT, **form):
        return client.post("/login", data=form, auth=auth)

    return _request_token


@pytest.fixture
def access_token(create_user, request_token) -> Callable[..., str]:
    """Obtain an access token for a freshly created user."""
    def _access_token(scope: Optional[str] = None) -> str:
        username = f"user-{uuid.uuid4().hex[:8]}"
        create_user(username=username, password="password")
        form = {"grant_type": "password", "username": username, "password": "password"}
        if scope is not None:
            form["scope"] = scope
        response = request_token(**form)
        assert response.status_code == 200, response.text
        return response.json()["access_token"]

    return _access_token


@pytest.fixture
def auth_headers(access_token) -> Callable[..., Dict[str, str]]:
    def _auth_headers(scope: Optional[str] = None) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token(scope)}"}

    return _auth_headers


# ===============================
# Utility Fixtures
# ===============================

@pytest.fixture
def assert_json_response():
    """Fixture to assert JSON response structure."""
    def _assert_json_response(response, status_code=200, expected_keys=None):
        assert response.status_code == status_code, f"Expected status code {status_code}, got {response.status_code}: {response.text}"

        data = response.json()
        assert isinstance(data, dict), f"Expected JSON object, got {type(data)}"

        if expected_keys:
            for key in expected_keys:
                assert key in data, f"Expected key '{key}' not found in response: {data}"

        return data

    return _assert_json_response


# ===============================
# Async Fixtures
# ===============================

@pytest_asyncio.fixture
async def async_client(app):
    """Create an async test client for the application."""
    from httpx import ASGITransport, AsyncClient
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
