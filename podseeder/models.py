"""
Models for podseeder.

Immutable dataclasses describing accounts, pods and run configuration.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

DEFAULT_PASSWORD = "password"
CONTENT_TYPE_BYTE = "application/octet-stream"


def account_email(name: str) -> str:
    """Email address used when creating the account for ``name``."""
    return f"{name}@example.org"


class AuthzFlavor(Enum):
    """Kind of authorization document attached next to an uploaded file."""
    WAC = "WAC"  # .acl
    ACP = "ACP"  # .acr

    @property
    def suffix(self) -> str:
        return ".acl" if self is AuthzFlavor.WAC else ".acr"


@dataclass(frozen=True)
class AccountOrder:
    """Account to create for one source subdirectory."""
    username: str
    password: str
    pod_name: str
    email: str
    index: int
    dir: str
    create_account_uri: Optional[str] = None


@dataclass(frozen=True)
class PodIdentity:
    """A pod with its owner, storage root and authentication origin."""
    username: str
    web_id: str
    pod_uri: str
    oidc_issuer: str
    index: int
    dir: str

    @property
    def key(self) -> str:
        return self.web_id


@dataclass(frozen=True)
class PopulateConfig:
    """Immutable configuration for populate runs."""
    add_acl: bool = False
    add_acr: bool = False
    max_parallelism: int = 1
    upload_retries: int = 20
    authz_retries: int = 15
    content_type: str = CONTENT_TYPE_BYTE

    @property
    def flavors(self) -> tuple:
        """Requested authorization flavors, WAC before ACP."""
        flavors = []
        if self.add_acl:
            flavors.append(AuthzFlavor.WAC)
        if self.add_acr:
            flavors.append(AuthzFlavor.ACP)
        return tuple(flavors)


@dataclass(frozen=True)
class SessionCredential:
    """Credential used for requests against one pod."""
    web_id: str
    token: Optional[str] = None

    @property
    def headers(self) -> dict:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}
