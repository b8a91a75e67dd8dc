from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel

ALLOW_STATUS = "allow"


class ProviderResult(BaseModel):
    """Verdict returned by an authorization code exchange."""
    status: Optional[str] = None
    status_msg: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.status is not None and self.status.lower() == ALLOW_STATUS


class ProviderAdapter(ABC):
    """
    Contract of a redirect-based MFA provider.

    An adapter is bound to one set of credentials and one callback URL.
    Failures are reported as ProviderError subclasses.
    """

    @abstractmethod
    async def health_check(self) -> None:
        """Raise ProviderUnavailable if the provider cannot be used."""
        pass

    @abstractmethod
    def generate_state(self) -> str:
        """Return a fresh CSRF state token."""
        pass

    @abstractmethod
    async def create_auth_url(self, username: str, state: str) -> str:
        """Return the URL the browser is sent to for the challenge."""
        pass

    @abstractmethod
    async def exchange_authorization_code(self, code: str, username: str) -> ProviderResult:
        """Exchange the code returned on callback for the verification result."""
        pass
