"""
Exceptions raised inside the second-factor flow.

Fatal errors abort the flow with an internal error. Provider errors are
recovered by the availability policy or by restarting the challenge.
"""


class MFAFlowError(Exception):
    """Base class for second-factor flow errors."""


class ConfigurationError(MFAFlowError):
    """Required authenticator configuration is missing or invalid."""

    def __init__(self, message: str, key: str = None):
        super().__init__(message)
        self.key = key


class IdentityResolutionError(MFAFlowError):
    """No user could be resolved for the flow."""


class ProviderError(MFAFlowError):
    """The MFA provider failed a call."""


class ProviderUnavailable(ProviderError):
    """Provider client could not be built, or its health check failed."""


class ChallengeGenerationError(ProviderError):
    """The provider could not produce a challenge URL."""


class ExchangeError(ProviderError):
    """Authorization code exchange failed."""


class StateMismatch(MFAFlowError):
    """Echoed state token differs from the one bound to the session."""


class IdentityMismatch(MFAFlowError):
    """Effective username differs from the one bound to the session."""


class VerificationDenied(MFAFlowError):
    """Provider returned a non-allow status."""

    def __init__(self, status: str = None):
        super().__init__(f"Provider returned status {status!r}")
        self.status = status
