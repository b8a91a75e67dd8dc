"""Shared fixtures for the second-factor tests."""

import itertools

import pytest

from duoflow.mfa.context import ClientRef, FlowExecution, LoginContext, UserRef
from duoflow.mfa.session import MappingSessionNotes

from tests.support import BASE_CONFIG, FakeProviderFactory


@pytest.fixture
def provider_factory():
    return FakeProviderFactory()


@pytest.fixture
def auth_notes():
    """The host's auth-note bag."""
    return {}


@pytest.fixture
def user():
    return UserRef(
        id="u-1",
        username="alice",
        groups=frozenset({"staff"}),
        attributes={"duo_name": ["alice.duo"], "empty": [""]},
    )


@pytest.fixture
def make_context(auth_notes, user):
    codes = itertools.count(1)

    def _make(**overrides):
        values = dict(
            realm="acme",
            client=ClientRef(id="c-internal-1", client_id="portal"),
            execution=FlowExecution(id="exec-1", alternative=True),
            tab_id="tab-1",
            base_uri="https://sso.example.com/",
            refresh_url="https://sso.example.com/realms/acme/login-actions/authenticate?execution=exec-1",
            notes=MappingSessionNotes(auth_notes),
            generate_access_code=lambda: f"code-{next(codes)}",
            query_params={},
            user=user,
            config=dict(BASE_CONFIG),
        )
        values.update(overrides)
        return LoginContext(**values)

    return _make
