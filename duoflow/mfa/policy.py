"""
Policy decisions for the second-factor step.
"""
from ..config import AuthenticatorConfig
from .context import UserRef


class PolicyEngine:
    def verification_required(self, config: AuthenticatorConfig, user: UserRef) -> bool:
        """Everyone verifies unless a group filter is set and the user is in none of its groups."""
        if not config.group_filter:
            return True
        return not config.group_filter.isdisjoint(user.groups)

    def allow_when_unavailable(self, config: AuthenticatorConfig) -> bool:
        """Provider client or health check failed before a challenge. Denies unless fail-safe is set and not false."""
        return config.fail_safe is not None and config.fail_safe != "false"

    def allow_when_challenge_failed(self, config: AuthenticatorConfig) -> bool:
        """Challenge URL could not be created. Allows only when fail-safe is unset or true."""
        # NOTE: opposite default to allow_when_unavailable; kept as deployed
        return config.fail_safe is None or config.fail_safe == "true"
