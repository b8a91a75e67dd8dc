"""
Duo Universal Prompt provider implementation.
"""
import os
import asyncio
import functools
from concurrent.futures import ThreadPoolExecutor

from duo_universal.client import Client, DuoException

from ..base import ProviderAdapter, ProviderResult
from ..credentials import ProviderCredentials
from ..exceptions import ChallengeGenerationError, ExchangeError, ProviderUnavailable
from ...observability.logging import StructuredLogger

logger = StructuredLogger(__name__)

# Duo's client is synchronous; network calls run in this pool
_executor = None


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(max_workers=int(os.getenv("DUO_MAX_WORKERS", "5")))
    return _executor


def shutdown_executor() -> None:
    """Release the worker pool. The next provider call starts a fresh one."""
    global _executor
    if _executor is not None:
        _executor.shutdown(wait=False)
        _executor = None


class DuoUniversalProvider(ProviderAdapter):
    name = "duo"

    def __init__(self, credentials: ProviderCredentials, redirect_url: str):
        try:
            self.client = Client(
                client_id=credentials.client_id,
                client_secret=credentials.secret,
                host=credentials.api_hostname,
                redirect_uri=redirect_url,
            )
        except DuoException as e:
            raise ProviderUnavailable(f"Duo client initialization failed: {e}") from e

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_get_executor(), functools.partial(func, *args))

    async def health_check(self) -> None:
        try:
            await self._run(self.client.health_check)
        except DuoException as e:
            raise ProviderUnavailable(f"Duo health check failed: {e}") from e

    def generate_state(self) -> str:
        return self.client.generate_state()

    async def create_auth_url(self, username: str, state: str) -> str:
        # signed locally, no network round trip
        try:
            return self.client.create_auth_url(username, state)
        except DuoException as e:
            raise ChallengeGenerationError(f"Duo auth URL creation failed: {e}") from e

    async def exchange_authorization_code(self, code: str, username: str) -> ProviderResult:
        try:
            token = await self._run(self.client.exchange_authorization_code_for_2fa_result, code, username)
        except DuoException as e:
            raise ExchangeError(f"Duo code exchange failed: {e}") from e

        auth_result = (token or {}).get("auth_result") or {}
        logger.debug("Duo code exchanged", username=username, status=auth_result.get("status"))
        return ProviderResult(status=auth_result.get("status"), status_msg=auth_result.get("status_msg"))
