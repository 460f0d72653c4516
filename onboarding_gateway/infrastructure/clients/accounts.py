"""Account/profile service HTTP client for account creation and KYC completion"""

import logging
from typing import Any, Dict, Mapping

import httpx

from onboarding_gateway.config import settings
from onboarding_gateway.domain.exceptions import AccountServiceError
from onboarding_gateway.infrastructure.observability.metrics import (
    account_service_failure_counter,
    account_service_latency_histogram,
)

logger = logging.getLogger(__name__)


class AccountServiceClient:
    """Client for the external account, profile and KYC ingestion API"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.account_api_base).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def create_account(self, account_type: str, profile_data: Mapping[str, Any], token: str) -> str:
        """
        Create a borrower or investor account and return its profile id.

        Empty values are never sent; the service fills its own defaults.

        Raises:
            AccountServiceError: On timeout, HTTP errors, or invalid response
        """
        body = {
            "accountType": account_type,
            "profileData": {k: v for k, v in profile_data.items() if v is not None and v != ""},
        }
        data = await self._request("create_account", "POST", "/accounts/create", token, json=body)
        try:
            account_id = data["accountId"] if "accountId" in data else data["account"]["profile"]["id"]
        except (KeyError, TypeError) as e:
            raise AccountServiceError("create_account", f"Response has no account id: {e}") from e
        if account_id is None or account_id == "":
            raise AccountServiceError("create_account", "Response has no account id: id is empty")
        return str(account_id)

    async def complete_kyc(self, account_type: str, kyc_data: Mapping[str, Any], token: str) -> Dict[str, Any]:
        """
        Submit the canonical KYC payload for an account.

        Raises:
            AccountServiceError: On timeout, HTTP errors, or invalid response
        """
        body = {"accountType": account_type, "kycData": dict(kyc_data)}
        return await self._request("complete_kyc", "POST", "/profile/complete-kyc", token, json=body)

    async def get_existing_account_data(self, target_account_type: str, token: str) -> Dict[str, Any]:
        """Data from the user's other account, used to prefill a new one"""
        return await self._request(
            "existing_account_data",
            "GET",
            "/profile/existing-account-data",
            token,
            params={"targetAccountType": target_account_type},
        )

    async def list_accounts(self, token: str) -> Dict[str, Any]:
        return await self._request("list_accounts", "GET", "/accounts", token)

    async def get_profile(self, token: str) -> Dict[str, Any]:
        return await self._request("get_profile", "GET", "/profile", token)

    async def get_permissions(self, token: str) -> Dict[str, Any]:
        return await self._request("get_permissions", "GET", "/team/my-permissions", token)

    async def _request(self, operation: str, method: str, path: str, token: str, **kwargs: Any) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with account_service_latency_histogram.labels(operation=operation).time():
                    response = await client.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
                response.raise_for_status()
                data = response.json()
            except httpx.TimeoutException as e:
                account_service_failure_counter.labels(operation=operation).inc()
                raise AccountServiceError(operation, f"timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                account_service_failure_counter.labels(operation=operation).inc()
                raise AccountServiceError(
                    operation,
                    f"HTTP {e.response.status_code}",
                    status_code=e.response.status_code,
                    body=e.response.text,
                ) from e
            except httpx.RequestError as e:
                account_service_failure_counter.labels(operation=operation).inc()
                raise AccountServiceError(operation, f"request failed: {type(e).__name__}") from e
            except ValueError as e:
                account_service_failure_counter.labels(operation=operation).inc()
                raise AccountServiceError(
                    operation,
                    "response is not JSON",
                    status_code=response.status_code,
                    body=response.text,
                ) from e

        if not isinstance(data, dict) or data.get("success") is False:
            account_service_failure_counter.labels(operation=operation).inc()
            message = data.get("error", "request was not successful") if isinstance(data, dict) else "unexpected body"
            raise AccountServiceError(operation, message, status_code=response.status_code, body=response.text)

        logger.debug("Account service call succeeded", extra={"operation": operation})
        return data
