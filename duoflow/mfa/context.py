"""
What the host login flow exposes to the second-factor step for one request.
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from .session import SessionNotes


class UserRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    groups: FrozenSet[str] = frozenset()
    attributes: Dict[str, List[str]] = {}

    def first_attribute(self, name: str) -> Optional[str]:
        values = self.attributes.get(name)
        return values[0] if values else None


class ClientRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str  # internal id, matched against client overrides
    client_id: str  # public id, echoed in the callback URL


class FlowExecution(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    alternative: bool = False


@dataclass
class LoginContext:
    realm: str
    client: ClientRef
    execution: FlowExecution
    tab_id: str
    base_uri: str
    refresh_url: str
    notes: SessionNotes
    generate_access_code: Callable[[], str]
    query_params: Mapping[str, str] = field(default_factory=dict)
    user: Optional[UserRef] = None
    config: Optional[Mapping[str, str]] = None
