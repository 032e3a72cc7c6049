"""
Caller identity resolution for remote storage operations.
"""

from .config_provider import ConfigFileIdentityProvider
from .provider import IdentityProvider, StaticIdentityProvider
from .token_provider import AuthTokenIdentityProvider, decode_jwt_claims
from .types import AuthenticationRequiredError, AuthProvider, UserIdentity

__all__ = [
    # Types
    "AuthProvider",
    "UserIdentity",
    # Errors
    "AuthenticationRequiredError",
    # Providers
    "IdentityProvider",
    "ConfigFileIdentityProvider",
    "StaticIdentityProvider",
    "AuthTokenIdentityProvider",
    "decode_jwt_claims",
]
