"""Test configuration and fixtures."""

from datetime import date
from typing import AsyncGenerator, Generator, Protocol
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.clients.audit import get_audit_service
from src.clients.registry import get_registry_service
from src.main import app
from src.matching.models import (
    DemographicLookupResult,
    PersonRecord,
    RegistryPerson,
    RegistrySearchResult,
)
from src.services.audit_service import AuditService
from src.services.registry_service import RegistryService

# NHS numbers with valid Modulus 11 check digits
VALID_NHS_NUMBER = "9449305552"
OTHER_VALID_NHS_NUMBER = "9434765919"
# Check digit computes to 10, so never valid
INVALID_NHS_NUMBER = "1234567890"


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Configure pytest-anyio to use asyncio."""
    return "asyncio"


def make_person(**overrides: object) -> PersonRecord:
    """Person record with complete, valid demographics."""
    fields: dict = {
        "given": "Octavia",
        "family": "Chislett",
        "birth_date": date(2008, 9, 20),
        "gender": "female",
        "phone": "0117 496 0123",
        "email": "octavia.chislett@mail.co.uk",
        "address_postal_code": "BS1 4DJ",
    }
    fields.update(overrides)
    return PersonRecord(**fields)


def make_registry_person(**overrides: object) -> RegistryPerson:
    """Registry demographics agreeing with ``make_person``."""
    fields: dict = {
        "nhs_number": VALID_NHS_NUMBER,
        "given_names": ["Octavia"],
        "family_names": ["Chislett"],
        "birth_date": date(2008, 9, 20),
        "gender": "female",
        "phone_numbers": ["0117 496 0123"],
        "emails": ["octavia.chislett@mail.co.uk"],
        "address_postal_codes": ["BS1 4DJ"],
    }
    fields.update(overrides)
    return RegistryPerson(**fields)


@pytest.fixture
def person() -> PersonRecord:
    """Complete, valid person record."""
    return make_person()


@pytest.fixture
def mock_registry_service() -> AsyncMock:
    """Mock registry gateway service for testing."""
    mock = AsyncMock(spec=RegistryService)
    mock.search.return_value = RegistrySearchResult.matched(VALID_NHS_NUMBER, 0.98)
    mock.lookup_by_identifier.return_value = DemographicLookupResult(
        result=make_registry_person()
    )
    mock.health_check.return_value = True
    return mock


@pytest.fixture
def mock_audit_service() -> AsyncMock:
    """Mock audit service for testing."""
    return AsyncMock(spec=AuditService)


class ClientFactory(Protocol):
    """Protocol for client factory fixture."""

    def __call__(self) -> AsyncClient: ...


@pytest.fixture
def client_factory(
    mock_registry_service: AsyncMock,
    mock_audit_service: AsyncMock,
) -> Generator[ClientFactory, None, None]:
    """Factory for creating test clients with mocked dependencies."""

    def _create_client() -> AsyncClient:
        app.dependency_overrides[get_registry_service] = lambda: mock_registry_service
        app.dependency_overrides[get_audit_service] = lambda: mock_audit_service

        transport = ASGITransport(app=app)
        return AsyncClient(transport=transport, base_url="http://testserver")

    yield _create_client

    app.dependency_overrides.clear()


@pytest.fixture
async def client(
    client_factory: ClientFactory,
) -> AsyncGenerator[AsyncClient, None]:
    """Async client for testing endpoints."""
    async with client_factory() as c:
        yield c
