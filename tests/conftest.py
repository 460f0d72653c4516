"""Pytest fixtures for testing"""

import copy
from typing import Any, Awaitable, Callable, Dict, Generator, Iterable

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from mock.account_server import main as mock_account_server
from onboarding_gateway.api.dependencies import get_account_client, get_session_registry
from onboarding_gateway.api.main import create_app
from onboarding_gateway.domain.models import FileHandle, ProfileBranch, ValidationResult
from onboarding_gateway.domain.pipeline import WizardSession
from onboarding_gateway.domain.stages import STAGE_CATALOG
from onboarding_gateway.infrastructure.clients.accounts import AccountServiceClient
from onboarding_gateway.infrastructure.database.models import Base
from onboarding_gateway.infrastructure.database.session import get_db
from onboarding_gateway.infrastructure.sessions import SessionRegistry

# Test database
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

MOCK_ACCOUNT_API = "http://mock-accounts/api"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24

_ADDRESS = {
    "street": "12 Mabini St",
    "barangay": "San Roque",
    "countryIso": "PH",
    "stateIso": "NCR",
    "cityName": "Quezon City",
    "postalCode": "1100",
}

VALID_STAGE_VALUES: Dict[str, Dict[str, Any]] = {
    "personal-identification": {
        "firstName": "Juan",
        "middleName": "Reyes",
        "lastName": "Dela Cruz",
        "nationalId": "PH-0001-2345",
        "tin": "111-222-333",
        "phoneNumber": "+639170000000",
    },
    "home-address": dict(_ADDRESS),
    "personal-profile": {
        "placeOfBirth": "Manila",
        "gender": "male",
        "civilStatus": "single",
        "nationality": "Filipino",
        "contactEmail": "juan@example.com",
        "secondaryIdType": "Postal ID",
        "secondaryIdNumber": "PID-778899",
        "emergencyContactName": "Rosa Dela Cruz",
        "emergencyContactRelationship": "parent",
        "emergencyContactPhone": "+639171111111",
        "isPoliticallyExposedPerson": False,
    },
    "employment": {
        "occupation": "Rice farmer",
        "sourceOfIncome": "business",
        "monthlyIncome": "25000",
    },
    "industry": {"industryKey": "agriculture"},
    "bank-details": {
        "bankName": "BDO",
        "accountNumber": "001234567",
        "accountName": "Juan Dela Cruz",
        "accountType": "Savings Account",
        "branchCode": "0123",
        "branchName": "Makati Ayala",
    },
    "declarations": {
        "liabilityAccepted": True,
        "termsAccepted": True,
        "riskDisclosureAccepted": True,
    },
    "entity-information": {
        "entityType": "MSME",
        "entityName": "Acme Co.",
        "registrationNumber": "REG-123",
        "tin": "999-888-777",
        "contactPersonName": "Ana Lim",
        "contactPersonPosition": "CFO",
        "contactPersonEmail": "ana@acme.example",
        "contactPersonPhone": "+639181112222",
    },
    "registered-address": dict(_ADDRESS),
    "business-registration": {
        "businessRegistrationType": "SEC",
        "businessRegistrationDate": "2019-03-14",
        "corporateTin": "999-888-777-000",
        "natureOfBusiness": "Agricultural supply",
        "authorizedSignatoryName": "Ana Lim",
        "authorizedSignatoryPosition": "CFO",
        "authorizedSignatoryIdNumber": "SIG-4455",
        "pepStatus": False,
    },
    "principal-office": {
        "principalOfficeStreet": "88 Ayala Ave",
        "principalOfficeBarangay": "Bel-Air",
        "principalOfficeCountry": "PH",
        "principalOfficeState": "NCR",
        "principalOfficeCity": "Makati",
        "principalOfficePostalCode": "1209",
    },
    "income-details": {
        "grossAnnualIncome": "Php 250,001 - Php 500,000",
        "incomeFromBusiness": True,
        "incomeBusinessSpecify": "Rice trading",
        "confirmationAccepted": True,
    },
    "investor-bank-details": {
        "accountName": "Acme Co.",
        "bankAccount": "Savings Account",
        "accountNumber": "9876543210",
    },
    "lending-criteria": {
        "requirementsCriteria": "Collateral-backed loans only",
        "docReq": "Audited financial statements",
        "maxFacility": "100000",
        "interestRate": "2.5",
    },
}


def png_handle(filename: str = "id.png") -> FileHandle:
    return FileHandle.from_bytes(filename, "image/png", PNG_BYTES)


@pytest.fixture
def stage_values() -> Dict[str, Dict[str, Any]]:
    """Valid field values for every stage, keyed by stage name"""
    return copy.deepcopy(VALID_STAGE_VALUES)


@pytest.fixture
def file_handle() -> Callable[..., FileHandle]:
    return png_handle


@pytest.fixture
def drive_to_confirmation(
    stage_values: Dict[str, Dict[str, Any]],
) -> Callable[..., Awaitable[ValidationResult]]:
    """Fill, attach and advance through every stage of a branch"""

    async def _drive(
        session: WizardSession,
        branch: ProfileBranch,
        skip_slots: Iterable[str] = (),
        overrides: Dict[str, Dict[str, Any]] | None = None,
    ) -> ValidationResult:
        skipped = set(skip_slots)
        session.select_branch(branch)
        result = ValidationResult(stage="branch-selection")
        for stage in STAGE_CATALOG[branch]:
            values = {**stage_values[stage.name], **(overrides or {}).get(stage.name, {})}
            session.update_fields(values)
            for slot in stage.files:
                if slot.name not in skipped:
                    await session.attach(slot.name, png_handle(f"{slot.name}.png"))
            result = session.advance()
            if not result.passed:
                return result
        return result

    return _drive


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def mock_accounts() -> Generator[Any, None, None]:
    """In-process mock account service, reset per test"""
    mock_account_server.reset()
    yield mock_account_server
    mock_account_server.reset()


@pytest.fixture
def account_client(mock_accounts) -> AccountServiceClient:
    """Account client wired to the in-process mock account service"""
    transport = httpx.ASGITransport(app=mock_accounts.app)
    return AccountServiceClient(base_url=MOCK_ACCOUNT_API, transport=transport)


@pytest.fixture
def client(db: Session, registry: SessionRegistry) -> TestClient:
    """Create FastAPI test client with test database and a fresh session registry"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_registry] = lambda: registry
    return TestClient(app)


@pytest.fixture
def e2e_client(client: TestClient, account_client: AccountServiceClient) -> TestClient:
    """Test client whose account service calls hit the mock account server"""
    client.app.dependency_overrides[get_account_client] = lambda: account_client
    return client
