"""Bearer credentials for calls made on the user's behalf"""

from typing import Protocol

from onboarding_gateway.domain.exceptions import CredentialError


class CredentialProvider(Protocol):
    async def get_token(self) -> str:
        ...


class BearerCredential:
    """Credential taken from the caller's own Authorization header"""

    def __init__(self, token: str | None):
        self._token = token.strip() if token else None

    @classmethod
    def from_authorization_header(cls, header: str | None) -> "BearerCredential":
        if not header:
            return cls(None)
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer":
            return cls(None)
        return cls(token)

    async def get_token(self) -> str:
        """
        Raises:
            CredentialError: If no bearer token was supplied
        """
        if not self._token:
            raise CredentialError("Authentication token not found; sign in again")
        return self._token
