"""
Identity provider interface and a fixed-identity implementation.
"""

from abc import ABC, abstractmethod

from .types import AuthenticationRequiredError, AuthProvider, UserIdentity


class IdentityProvider(ABC):
    """Abstract identity provider.

    Remote stores call ``get_current_identity`` before every operation;
    a provider that cannot resolve an identity must raise
    ``AuthenticationRequiredError`` so the call fails before any network I/O.
    """

    @abstractmethod
    async def get_current_identity(self) -> UserIdentity:
        """Get the current authenticated caller identity.

        Raises:
            AuthenticationRequiredError: If no identity is available
        """
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        """Clear the cached identity.

        After sign out, get_current_identity() raises
        AuthenticationRequiredError until an identity is available again.
        """
        ...

    @property
    @abstractmethod
    def provider_type(self) -> AuthProvider:
        """Get the provider type."""
        ...


class StaticIdentityProvider(IdentityProvider):
    """Provider returning an identity supplied by the embedding application."""

    def __init__(self, identity: UserIdentity | None = None):
        self._identity = identity

    async def get_current_identity(self) -> UserIdentity:
        if self._identity is None or not self._identity.is_authenticated():
            raise AuthenticationRequiredError("No authenticated user")
        return self._identity

    async def sign_out(self) -> None:
        self._identity = None

    def sign_in(self, identity: UserIdentity) -> None:
        """Replace the current identity."""
        self._identity = identity

    @property
    def provider_type(self) -> AuthProvider:
        return AuthProvider.STATIC
