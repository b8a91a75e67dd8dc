"""
Identity presented to the provider.
"""
import re

from ..config import AuthenticatorConfig
from ..observability.logging import StructuredLogger
from .context import UserRef
from .replacement import to_python_replacement

logger = StructuredLogger(__name__)


class UsernameTransformer:
    def transform(self, raw_username: str, user: UserRef, config: AuthenticatorConfig) -> str:
        """
        Apply the configured regex rewrite, then let a non-empty custom
        attribute replace the result entirely.
        """
        username = raw_username

        if config.username_regex_match is not None:
            new_username = re.sub(
                config.username_regex_match,
                to_python_replacement(config.username_regex_replace),
                username,
            )
            logger.info("Used regex to update username", username=raw_username, new_username=new_username)
            username = new_username

        if config.username_attribute is not None:
            value = user.first_attribute(config.username_attribute)
            if value:
                logger.info("Using custom attribute as username", username=raw_username,
                            attribute=config.username_attribute, new_username=value)
                username = value

        return username
