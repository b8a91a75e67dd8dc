"""
Provider credential resolution with per-client overrides.
"""
from pydantic import BaseModel, ConfigDict, Field

from ..config import AuthenticatorConfig


class ProviderCredentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    client_id: str
    secret: str = Field(repr=False)
    api_hostname: str


class CredentialResolver:
    def resolve(self, config: AuthenticatorConfig, tenant_client_id: str) -> ProviderCredentials:
        """
        Return the credentials for ``tenant_client_id`` (the tenant's internal
        client id). Every matching override replaces the working triple, so
        the last match wins. Without a match the base triple is returned.
        """
        client_id = config.client_id
        secret = config.secret
        hostname = config.api_hostname

        for entry in config.overrides:
            if entry.tenant_client_id.lower() == (tenant_client_id or "").lower():
                client_id = entry.provider_client_id
                secret = entry.provider_secret
                hostname = entry.api_hostname or config.api_hostname

        return ProviderCredentials(client_id=client_id, secret=secret, api_hostname=hostname)
