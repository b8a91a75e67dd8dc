"""Fakes and constants shared by the tests."""

import itertools

from duoflow.mfa.base import ProviderAdapter, ProviderResult

BASE_CONFIG = {
    "duoApiHostname": "api-base.duosecurity.com",
    "duoIntegrationKey": "DIBASEINTEGRATIONKEY",
    "duoSecretKey": "s" * 40,
}

PROVIDER_URL = "https://api-base.duosecurity.com/oauth/v1/authorize"


class FakeProvider(ProviderAdapter):
    def __init__(self, factory):
        self.factory = factory

    async def health_check(self):
        if self.factory.health_error is not None:
            raise self.factory.health_error

    def generate_state(self):
        return f"state-{next(self.factory.state_counter)}"

    async def create_auth_url(self, username, state):
        if self.factory.auth_url_error is not None:
            raise self.factory.auth_url_error
        return self.factory.auth_url or f"{PROVIDER_URL}?state={state}"

    async def exchange_authorization_code(self, code, username):
        self.factory.exchanges.append((code, username))
        if self.factory.exchange_error is not None:
            raise self.factory.exchange_error
        return ProviderResult(status=self.factory.exchange_status)


class FakeProviderFactory:
    """Provider factory recording every client it builds."""

    name = "fake"

    def __init__(self):
        self.created = []
        self.exchanges = []
        self.state_counter = itertools.count(1)
        self.init_error = None
        self.health_error = None
        self.auth_url_error = None
        self.auth_url = None
        self.exchange_error = None
        self.exchange_status = "allow"

    def __call__(self, credentials, redirect_url):
        self.created.append((credentials, redirect_url))
        if self.init_error is not None:
            raise self.init_error
        return FakeProvider(self)


