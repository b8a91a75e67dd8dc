"""
Authenticator configuration.

The host hands the authenticator a flat string map (as entered by an
administrator). It is validated once per login attempt into an immutable
AuthenticatorConfig.
"""
import re
from typing import FrozenSet, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .mfa.exceptions import ConfigurationError
from .mfa.replacement import to_python_replacement
from .observability.logging import StructuredLogger

logger = StructuredLogger(__name__)

# Configuration keys
DUO_API_HOSTNAME = "duoApiHostname"
DUO_INTEGRATION_KEY = "duoIntegrationKey"
DUO_SECRET_KEY = "duoSecretKey"
DUO_GROUPS = "duoGroups"
DUO_FAIL_SAFE = "duoFailSafe"
DUO_CUSTOM_CLIENT_IDS = "duoClientIds"
DUO_USERNAME_FORMATTER_REGEX_MATCH = "duoUsernameFormatterRegexMatch"
DUO_USERNAME_FORMATTER_REGEX_REPLACE = "duoUsernameFormatterRegexReplace"
DUO_USERNAME_CUSTOM_ATTRIBUTE = "duoUsernameCustomAttribute"
DUO_USE_IMPERSONATOR = "duoUseImpersonator"

NONE_SENTINEL = "none"
OVERRIDE_SEPARATOR = "##"


def _is_unset(value: Optional[str]) -> bool:
    return value is None or value.strip() == "" or value.strip().lower() == NONE_SENTINEL


class OverrideEntry(BaseModel):
    """Provider credentials for one tenant client."""
    model_config = ConfigDict(frozen=True)

    tenant_client_id: str
    provider_client_id: str
    provider_secret: str = Field(repr=False)
    api_hostname: Optional[str] = None

    @classmethod
    def parse(cls, raw: str) -> Optional["OverrideEntry"]:
        """Parse ``tenantClientId,providerClientId,providerSecret[,hostname]``.

        Returns None when the entry does not have three or four fields.
        """
        parts = raw.split(",")
        # trailing empty fields are not counted
        while parts and parts[-1] == "":
            parts.pop()
        if len(parts) not in (3, 4):
            return None
        hostname = parts[3] if len(parts) == 4 else None
        return cls(
            tenant_client_id=parts[0],
            provider_client_id=parts[1],
            provider_secret=parts[2],
            api_hostname=hostname or None,
        )


def parse_overrides(raw: Optional[str]) -> Tuple[OverrideEntry, ...]:
    """Split the ``##`` separated override list, skipping malformed entries."""
    if raw is None or raw.strip() == "":
        return ()
    entries = []
    for position, chunk in enumerate(raw.split(OVERRIDE_SEPARATOR)):
        entry = OverrideEntry.parse(chunk)
        if entry is None:
            logger.warning("Skipping malformed client override entry", position=position)
            continue
        entries.append(entry)
    return tuple(entries)


def _parse_fail_safe(raw: Optional[str]) -> Optional[str]:
    if raw is None or raw.strip() == "":
        return None
    value = raw.strip().lower()
    if value not in ("true", "false"):
        logger.warning(
            "Fail-safe flag is not a boolean, each call site applies its own reading",
            value=raw.strip(),
        )
    return value


def _parse_groups(raw: Optional[str]) -> Optional[FrozenSet[str]]:
    if _is_unset(raw):
        return None
    groups = frozenset(name.strip() for name in raw.split(",") if name.strip())
    return groups or None


class AuthenticatorConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    client_id: str
    secret: str = Field(repr=False)
    api_hostname: str
    overrides: Tuple[OverrideEntry, ...] = ()
    group_filter: Optional[FrozenSet[str]] = None
    # lowercased flag as entered; None keeps the per-call-site defaults
    fail_safe: Optional[str] = None
    username_regex_match: Optional[str] = None
    username_regex_replace: str = ""
    username_attribute: Optional[str] = None
    use_impersonator: bool = False

    @classmethod
    def from_config_map(cls, config: Optional[Mapping[str, str]]) -> "AuthenticatorConfig":
        """
        Validate the host's configuration map.

        Raises ConfigurationError when the map is absent, a required key is
        missing, or the username regex or its replacement is unusable.
        """
        if config is None:
            raise ConfigurationError("Duo Authenticator is not configured")

        required = (
            (DUO_API_HOSTNAME, "API hostname"),
            (DUO_INTEGRATION_KEY, "Integration Key"),
            (DUO_SECRET_KEY, "Secret Key"),
        )
        for key, label in required:
            if _is_unset(config.get(key)):
                raise ConfigurationError(f"Duo Authenticator is missing {label} configuration", key=key)

        regex_match = config.get(DUO_USERNAME_FORMATTER_REGEX_MATCH)
        regex_replace = config.get(DUO_USERNAME_FORMATTER_REGEX_REPLACE) or ""
        if _is_unset(regex_match):
            regex_match = None
        else:
            try:
                compiled = re.compile(regex_match)
            except re.error as e:
                raise ConfigurationError(
                    f"Invalid username regex: {e}", key=DUO_USERNAME_FORMATTER_REGEX_MATCH
                ) from e
            # group references are only checked once the template is compiled
            try:
                compiled.sub(to_python_replacement(regex_replace), "")
            except (re.error, IndexError) as e:
                raise ConfigurationError(
                    f"Invalid username replacement: {e}", key=DUO_USERNAME_FORMATTER_REGEX_REPLACE
                ) from e

        attribute = config.get(DUO_USERNAME_CUSTOM_ATTRIBUTE)

        return cls(
            client_id=config[DUO_INTEGRATION_KEY].strip(),
            secret=config[DUO_SECRET_KEY].strip(),
            api_hostname=config[DUO_API_HOSTNAME].strip(),
            overrides=parse_overrides(config.get(DUO_CUSTOM_CLIENT_IDS)),
            group_filter=_parse_groups(config.get(DUO_GROUPS)),
            fail_safe=_parse_fail_safe(config.get(DUO_FAIL_SAFE)),
            username_regex_match=regex_match,
            username_regex_replace=regex_replace,
            username_attribute=None if _is_unset(attribute) else attribute.strip(),
            use_impersonator=(config.get(DUO_USE_IMPERSONATOR) or "false").strip().lower() == "true",
        )
