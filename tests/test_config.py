"""Tests for authenticator configuration parsing."""

import logging

import pytest

from duoflow.config import (
    DUO_API_HOSTNAME,
    DUO_CUSTOM_CLIENT_IDS,
    DUO_FAIL_SAFE,
    DUO_GROUPS,
    DUO_INTEGRATION_KEY,
    DUO_SECRET_KEY,
    DUO_USE_IMPERSONATOR,
    DUO_USERNAME_CUSTOM_ATTRIBUTE,
    DUO_USERNAME_FORMATTER_REGEX_MATCH,
    DUO_USERNAME_FORMATTER_REGEX_REPLACE,
    AuthenticatorConfig,
    OverrideEntry,
    parse_overrides,
)
from duoflow.mfa.exceptions import ConfigurationError

from tests.support import BASE_CONFIG


def config_with(**extra):
    values = dict(BASE_CONFIG)
    values.update(extra)
    return values


class TestRequiredKeys:
    """Missing credentials make the authenticator unusable."""

    def test_valid_config(self):
        config = AuthenticatorConfig.from_config_map(BASE_CONFIG)
        assert config.client_id == "DIBASEINTEGRATIONKEY"
        assert config.api_hostname == "api-base.duosecurity.com"
        assert config.overrides == ()
        assert config.group_filter is None
        assert config.fail_safe is None
        assert config.use_impersonator is False

    def test_no_config(self):
        with pytest.raises(ConfigurationError):
            AuthenticatorConfig.from_config_map(None)

    @pytest.mark.parametrize("key", [DUO_API_HOSTNAME, DUO_INTEGRATION_KEY, DUO_SECRET_KEY])
    def test_missing_key(self, key):
        values = dict(BASE_CONFIG)
        del values[key]
        with pytest.raises(ConfigurationError) as exc:
            AuthenticatorConfig.from_config_map(values)
        assert exc.value.key == key

    @pytest.mark.parametrize("value", ["none", "NONE", "", "   "])
    def test_sentinel_counts_as_missing(self, value):
        with pytest.raises(ConfigurationError) as exc:
            AuthenticatorConfig.from_config_map(config_with(**{DUO_API_HOSTNAME: value}))
        assert exc.value.key == DUO_API_HOSTNAME

    def test_secret_not_in_repr(self):
        config = AuthenticatorConfig.from_config_map(BASE_CONFIG)
        assert "s" * 40 not in repr(config)


class TestOverrides:
    """Per-client credential overrides."""

    def test_three_and_four_part_entries(self):
        entries = parse_overrides("client-a,DIA,secretA##client-b,DIB,secretB,api-b.duosecurity.com")
        assert entries == (
            OverrideEntry(tenant_client_id="client-a", provider_client_id="DIA", provider_secret="secretA"),
            OverrideEntry(tenant_client_id="client-b", provider_client_id="DIB", provider_secret="secretB",
                          api_hostname="api-b.duosecurity.com"),
        )

    def test_malformed_entries_are_skipped(self):
        entries = parse_overrides("only,two##client-a,DIA,secretA##a,b,c,d,e##")
        assert [e.tenant_client_id for e in entries] == ["client-a"]

    def test_trailing_comma_is_ignored(self):
        (entry,) = parse_overrides("client-a,DIA,secretA,")
        assert entry.api_hostname is None

    @pytest.mark.parametrize("raw", [None, "", "  "])
    def test_empty(self, raw):
        assert parse_overrides(raw) == ()

    def test_overrides_from_map(self):
        config = AuthenticatorConfig.from_config_map(
            config_with(**{DUO_CUSTOM_CLIENT_IDS: "client-a,DIA,secretA##bad"})
        )
        assert len(config.overrides) == 1


class TestOptionalSettings:
    def test_group_filter(self):
        config = AuthenticatorConfig.from_config_map(config_with(**{DUO_GROUPS: "admins, ops ,"}))
        assert config.group_filter == frozenset({"admins", "ops"})

    @pytest.mark.parametrize("value", ["none", " none ", "", ","])
    def test_group_filter_disabled(self, value):
        config = AuthenticatorConfig.from_config_map(config_with(**{DUO_GROUPS: value}))
        assert config.group_filter is None

    @pytest.mark.parametrize("value,expected", [("true", "true"), (" False ", "false"), ("", None)])
    def test_fail_safe(self, value, expected):
        config = AuthenticatorConfig.from_config_map(config_with(**{DUO_FAIL_SAFE: value}))
        assert config.fail_safe == expected

    def test_fail_safe_keeps_other_values(self, caplog):
        with caplog.at_level(logging.WARNING, logger="duoflow.config"):
            config = AuthenticatorConfig.from_config_map(config_with(**{DUO_FAIL_SAFE: "Yes"}))
        assert config.fail_safe == "yes"
        assert "Fail-safe flag is not a boolean" in caplog.text

    def test_invalid_regex(self):
        with pytest.raises(ConfigurationError):
            AuthenticatorConfig.from_config_map(config_with(**{DUO_USERNAME_FORMATTER_REGEX_MATCH: "(unclosed"}))

    @pytest.mark.parametrize("replacement", ["$2", "${user}", "trailing\\", "$x"])
    def test_invalid_replacement(self, replacement):
        with pytest.raises(ConfigurationError) as exc:
            AuthenticatorConfig.from_config_map(config_with(**{
                DUO_USERNAME_FORMATTER_REGEX_MATCH: "(a)lice",
                DUO_USERNAME_FORMATTER_REGEX_REPLACE: replacement,
            }))
        assert exc.value.key == DUO_USERNAME_FORMATTER_REGEX_REPLACE

    def test_valid_replacement(self):
        config = AuthenticatorConfig.from_config_map(config_with(**{
            DUO_USERNAME_FORMATTER_REGEX_MATCH: "(?P<user>a)lice",
            DUO_USERNAME_FORMATTER_REGEX_REPLACE: "${user}-$1",
        }))
        assert config.username_regex_replace == "${user}-$1"

    def test_regex_none_sentinel(self):
        config = AuthenticatorConfig.from_config_map(config_with(**{DUO_USERNAME_FORMATTER_REGEX_MATCH: "None"}))
        assert config.username_regex_match is None

    def test_attribute_and_impersonator(self):
        config = AuthenticatorConfig.from_config_map(
            config_with(**{DUO_USERNAME_CUSTOM_ATTRIBUTE: "duo_name", DUO_USE_IMPERSONATOR: "TRUE"})
        )
        assert config.username_attribute == "duo_name"
        assert config.use_impersonator is True
