"""
Second-factor orchestration.

The flow spans two HTTP requests. The first issues a challenge and redirects
the browser to the provider. The second arrives after the provider redirects
back and exchanges the returned code for a verdict. Anything that does not
line up with the challenge bound to the session restarts the challenge.
"""
import hmac
from enum import Enum
from typing import Callable, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel

from ..config import AuthenticatorConfig
from ..observability.logging import StructuredLogger
from ..observability.metrics import mfa_challenges_counter, mfa_verifications_counter
from .base import ProviderAdapter, ProviderResult
from .callback import CallbackURLBuilder
from .context import LoginContext, UserRef
from .credentials import CredentialResolver, ProviderCredentials
from .exceptions import (
    ChallengeGenerationError,
    ConfigurationError,
    IdentityMismatch,
    IdentityResolutionError,
    ProviderError,
    StateMismatch,
    VerificationDenied,
)
from .identity import FlowUserResolver, IdentityResolver
from .policy import PolicyEngine
from .providers.duo import DuoUniversalProvider
from .username import UsernameTransformer

logger = StructuredLogger(__name__)

VERIFICATION_FAILED_MESSAGE = "You did not pass multifactor verification."

# reasons reported as their own verification outcome
_AVAILABILITY_REASONS = ("fail_open", "fail_secure")

ProviderFactory = Callable[[ProviderCredentials, str], ProviderAdapter]


class FlowState(str, Enum):
    NOT_CONFIGURED = "not_configured"
    NO_USER = "no_user"
    BYPASSED = "bypassed"
    AWAITING_CHALLENGE = "awaiting_challenge"
    CHALLENGE_ISSUED = "challenge_issued"
    CALLBACK_RECEIVED = "callback_received"
    VERIFIED = "verified"
    DENIED = "denied"
    RESTARTED = "restarted"


class FlowOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    CHALLENGE = "challenge"
    FAILURE_CHALLENGE = "failure_challenge"


class FlowError(str, Enum):
    INTERNAL_ERROR = "internal_error"
    INVALID_CREDENTIALS = "invalid_credentials"


class FlowResult(BaseModel):
    state: FlowState
    outcome: FlowOutcome
    transitions: List[FlowState] = []
    reason: Optional[str] = None
    error: Optional[FlowError] = None
    redirect_url: Optional[str] = None
    message: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def authenticated(self) -> bool:
        return self.outcome == FlowOutcome.SUCCESS


class FlowController:
    """
    Stateless driver of the second-factor step. Collaborators are injected so
    a host can swap the provider or the identity resolution.
    """

    def __init__(
        self,
        provider_factory: ProviderFactory = DuoUniversalProvider,
        policy: PolicyEngine = None,
        credentials: CredentialResolver = None,
        callback: CallbackURLBuilder = None,
        username: UsernameTransformer = None,
        identity_resolver: IdentityResolver = None,
    ):
        self.provider_factory = provider_factory
        self.policy = policy or PolicyEngine()
        self.credentials = credentials or CredentialResolver()
        self.callback = callback or CallbackURLBuilder()
        self.username = username or UsernameTransformer()
        self.identity_resolver = identity_resolver or FlowUserResolver()

    @property
    def provider_name(self) -> str:
        return getattr(self.provider_factory, "name", "unknown")

    async def authenticate(self, context: LoginContext) -> FlowResult:
        trace: List[FlowState] = []

        try:
            config = AuthenticatorConfig.from_config_map(context.config)
        except ConfigurationError as e:
            logger.error(f"{e}! All authentications will fail.", key=e.key)
            return self._finish(trace, FlowState.NOT_CONFIGURED, FlowOutcome.FAILURE,
                                error=FlowError.INTERNAL_ERROR)

        try:
            user = self._resolve_user(context, config)
        except IdentityResolutionError:
            logger.error("Received a flow request with no user! Returning internal error.")
            return self._finish(trace, FlowState.NO_USER, FlowOutcome.FAILURE,
                                error=FlowError.INTERNAL_ERROR)

        if not self.policy.verification_required(config, user):
            logger.info("Skipping Duo MFA based on group membership",
                        username=user.username, groups=sorted(user.groups))
            return self._finish(trace, FlowState.BYPASSED, FlowOutcome.SUCCESS, reason="group_filter")

        username = self.username.transform(user.username, user, config)

        # a stored state means this is the request coming back from the provider
        if not await context.notes.get_duo_state():
            return await self._start(context, config, username, trace)

        return await self._handle_callback(context, config, username, trace)

    def _resolve_user(self, context: LoginContext, config: AuthenticatorConfig) -> UserRef:
        if config.use_impersonator:
            user = self.identity_resolver.resolve_effective_identity(context)
        else:
            user = context.user
        if user is None:
            raise IdentityResolutionError("No user attached to the login flow")
        return user

    def _provider(self, context: LoginContext, config: AuthenticatorConfig, force_token: bool) -> ProviderAdapter:
        redirect_url = self.callback.redirect_url(context, force_token)
        credentials = self.credentials.resolve(config, context.client.id)
        return self.provider_factory(credentials, redirect_url)

    async def _start(self, context, config, username, trace) -> FlowResult:
        trace.append(FlowState.AWAITING_CHALLENGE)

        try:
            provider = self._provider(context, config, force_token=True)
            await provider.health_check()
        except ProviderError as e:
            logger.warning("Duo initialization failed", error=str(e), exc_info=True)
            mfa_challenges_counter.labels(provider=self.provider_name, status="unavailable").inc()
            if self.policy.allow_when_unavailable(config):
                return self._finish(trace, FlowState.BYPASSED, FlowOutcome.SUCCESS, reason="fail_open")
            return self._finish(trace, FlowState.DENIED, FlowOutcome.FAILURE, reason="fail_secure",
                                error=FlowError.INVALID_CREDENTIALS)

        state = provider.generate_state()
        await context.notes.bind(state, username)

        try:
            auth_url = await provider.create_auth_url(username, state)
            parsed = urlparse(auth_url)
            if not parsed.scheme or not parsed.netloc:
                raise ChallengeGenerationError(f"Provider returned an unusable auth URL: {auth_url!r}")
        except ProviderError as e:
            logger.warning("Authentication against Duo failed", error=str(e), exc_info=True)
            mfa_challenges_counter.labels(provider=self.provider_name, status="challenge_failed").inc()
            if self.policy.allow_when_challenge_failed(config):
                return self._finish(trace, FlowState.BYPASSED, FlowOutcome.SUCCESS, reason="fail_open")
            return self._finish(trace, FlowState.DENIED, FlowOutcome.FAILURE, reason="fail_secure",
                                error=FlowError.INVALID_CREDENTIALS)

        mfa_challenges_counter.labels(provider=self.provider_name, status="issued").inc()
        return self._finish(trace, FlowState.CHALLENGE_ISSUED, FlowOutcome.CHALLENGE,
                            redirect_url=auth_url, status_code=303)

    async def _restart(self, context, config, username, trace) -> FlowResult:
        trace.append(FlowState.RESTARTED)
        mfa_verifications_counter.labels(outcome="restarted").inc()
        return await self._start(context, config, username, trace)

    async def _handle_callback(self, context, config, username, trace) -> FlowResult:
        state = context.query_params.get("state")
        duo_code = context.query_params.get("duo_code")
        if state is None or duo_code is None:
            logger.warning("Received a Duo callback that was missing information. Starting over.")
            return await self._restart(context, config, username, trace)

        trace.append(FlowState.CALLBACK_RECEIVED)
        stored_state = await context.notes.get_duo_state()
        stored_username = await context.notes.get_duo_username()

        try:
            provider = self._provider(context, config, force_token=False)
            result = await provider.exchange_authorization_code(duo_code, username)
        except ProviderError as e:
            logger.warning("There was a problem exchanging the Duo token. Returning start page.",
                           error=str(e), exc_info=True)
            return await self._restart(context, config, username, trace)

        try:
            self._check_binding(state, stored_state, username, stored_username)
        except StateMismatch:
            logger.warning("Login state did not match saved value. Returning start page.")
            return await self._restart(context, config, username, trace)
        except IdentityMismatch:
            logger.warning("Duo username did not match saved value. Returning start page.",
                           saved_username=stored_username, username=username)
            return await self._restart(context, config, username, trace)

        try:
            self._require_allow(result)
        except VerificationDenied as e:
            logger.info("Duo verification denied", username=username, status=e.status)
            return self._finish(trace, FlowState.DENIED, FlowOutcome.FAILURE_CHALLENGE,
                                error=FlowError.INVALID_CREDENTIALS,
                                message=VERIFICATION_FAILED_MESSAGE, status_code=403)

        logger.info("Duo verification passed", username=username)
        return self._finish(trace, FlowState.VERIFIED, FlowOutcome.SUCCESS)

    @staticmethod
    def _check_binding(state: str, stored_state: str, username: str, stored_username: Optional[str]) -> None:
        if not hmac.compare_digest(state.encode("utf-8"), stored_state.encode("utf-8")):
            raise StateMismatch("Echoed state does not match the session")
        if stored_username is None or username.lower() != stored_username.lower():
            raise IdentityMismatch("Username does not match the session")

    @staticmethod
    def _require_allow(result: ProviderResult) -> None:
        if not result.allowed:
            raise VerificationDenied(result.status)

    @staticmethod
    def _finish(trace: List[FlowState], state: FlowState, outcome: FlowOutcome, reason: str = None, **fields) -> FlowResult:
        trace.append(state)
        # issued challenges are counted in mfa_challenges_total
        if state is not FlowState.CHALLENGE_ISSUED:
            label = reason if reason in _AVAILABILITY_REASONS else state.value
            mfa_verifications_counter.labels(outcome=label).inc()
        return FlowResult(state=state, outcome=outcome, transitions=list(trace), reason=reason, **fields)
