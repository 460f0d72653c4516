"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Header, Request

from onboarding_gateway.domain.submission import SubmissionOrchestrator
from onboarding_gateway.infrastructure.clients.accounts import AccountServiceClient
from onboarding_gateway.infrastructure.clients.identity import BearerCredential
from onboarding_gateway.infrastructure.sessions import SessionRegistry, registry


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_session_registry() -> SessionRegistry:
    """Provide the process-wide session registry"""
    return registry


def get_account_client() -> AccountServiceClient:
    """Provide Account service client instance"""
    return AccountServiceClient()


def get_credentials(authorization: str | None = Header(default=None)) -> BearerCredential:
    """Bearer credential forwarded from the caller"""
    return BearerCredential.from_authorization_header(authorization)


def get_orchestrator(account_client: AccountServiceClient = Depends(get_account_client)) -> SubmissionOrchestrator:
    return SubmissionOrchestrator(account_client)
