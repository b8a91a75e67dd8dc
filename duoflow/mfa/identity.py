"""
Resolution of the user whose identity is verified.
"""
from abc import ABC, abstractmethod
from typing import Callable, Optional

from .context import LoginContext, UserRef


class IdentityResolver(ABC):
    @abstractmethod
    def resolve_effective_identity(self, context: LoginContext) -> Optional[UserRef]:
        pass


class FlowUserResolver(IdentityResolver):
    """The user already attached to the login flow."""

    def resolve_effective_identity(self, context):
        return context.user


class ImpersonatorIdentityResolver(IdentityResolver):
    """
    Verify the impersonating administrator while an impersonation session is
    active. ``impersonator_id_lookup`` returns the impersonator's id (or None
    when not impersonating); ``user_lookup`` loads a user by id. Falls back to
    the flow user when either comes back empty.
    """

    def __init__(self, impersonator_id_lookup: Callable[[LoginContext], Optional[str]],
                 user_lookup: Callable[[str], Optional[UserRef]]):
        self.impersonator_id_lookup = impersonator_id_lookup
        self.user_lookup = user_lookup

    def resolve_effective_identity(self, context):
        impersonator_id = self.impersonator_id_lookup(context)
        if impersonator_id is None:
            return context.user

        impersonator = self.user_lookup(impersonator_id)
        if impersonator is not None:
            return impersonator
        return context.user
