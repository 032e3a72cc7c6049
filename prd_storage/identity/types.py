"""
Identity types.

Remote records belong to a user: the caller's ``user_id`` is the Cosmos
partition owner of every document it writes. Without a resolvable
identity no remote call is attempted.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from ..exceptions import AuthenticationError


class AuthProvider(Enum):
    """Where an identity came from."""

    CONFIG = "config"  # settings.yaml
    STATIC = "static"  # handed in by the embedding application
    TOKEN = "token"  # cached access token of the hosted backend


@dataclass
class UserIdentity:
    """The caller on whose behalf records are read and written."""

    user_id: str
    display_name: str
    email: str | None = None
    org_id: str | None = None

    auth_provider: AuthProvider = AuthProvider.CONFIG
    auth_token: str | None = None
    token_expiry: datetime | None = None

    @property
    def requires_token(self) -> bool:
        return self.auth_provider is AuthProvider.TOKEN

    def is_expired(self, now: datetime | None = None) -> bool:
        """True once ``token_expiry`` has passed. Identities without expiry never expire."""
        if self.token_expiry is None:
            return False
        return (now or datetime.now(UTC)) >= self.token_expiry

    def is_authenticated(self, now: datetime | None = None) -> bool:
        """Whether remote calls may be made with this identity.

        Token identities need an unexpired token; config and static ones
        only need a user id.
        """
        if not self.user_id:
            return False
        if self.requires_token and not self.auth_token:
            return False
        return not self.is_expired(now)

    def to_dict(self) -> dict[str, Any]:
        """Serialize without the token itself."""
        data: dict[str, Any] = {
            "user_id": self.user_id,
            "display_name": self.display_name,
            "auth_provider": self.auth_provider.value,
        }
        for key in ("email", "org_id"):
            if getattr(self, key) is not None:
                data[key] = getattr(self, key)
        if self.token_expiry is not None:
            data["token_expiry"] = self.token_expiry.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserIdentity":
        expiry = data.get("token_expiry")
        return cls(
            user_id=data["user_id"],
            display_name=data.get("display_name") or data["user_id"],
            email=data.get("email"),
            org_id=data.get("org_id"),
            auth_provider=AuthProvider(data.get("auth_provider", AuthProvider.CONFIG.value)),
            token_expiry=datetime.fromisoformat(expiry) if expiry else None,
        )


class AuthenticationRequiredError(AuthenticationError):
    """No usable identity: signed out, unconfigured or expired."""

    def __init__(self, reason: str = "Authentication required"):
        super().__init__("identity", reason)
