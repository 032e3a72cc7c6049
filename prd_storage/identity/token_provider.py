"""
Access-token identity provider.

Resolves the caller from the access token the hosted backend issued at
sign-in, cached as JSON on disk:

```json
{
  "access_token": "<jwt>",
  "expires_at_unix": 1735689600,
  "user_email": "alice@example.com"
}
```

The user id is the token's ``sub`` claim. Claims are read without
signature verification; the remote store validates the token itself.
"""

import base64
import binascii
import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .provider import IdentityProvider
from .types import AuthenticationRequiredError, AuthProvider, UserIdentity

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_PATH = Path.home() / ".prd_storage" / "auth-token.json"


def decode_jwt_claims(token: str) -> dict[str, Any]:
    """Return the unverified claims of a JWT; empty when it cannot be decoded."""
    parts = token.split(".")
    if len(parts) != 3:
        return {}

    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (binascii.Error, ValueError) as e:
        logger.debug(f"Undecodable access token payload: {e}")
        return {}
    return claims if isinstance(claims, dict) else {}


class AuthTokenIdentityProvider(IdentityProvider):
    """Identity provider backed by a cached access token file.

    The resolved identity is cached until its token expires; after that the
    file is read again, so a token refreshed by the host application is
    picked up without restarting.
    """

    def __init__(self, token_path: Path | str | None = None):
        """
        Args:
            token_path: Token file. Defaults to PRD_STORAGE_AUTH_TOKEN_PATH or
                ~/.prd_storage/auth-token.json
        """
        env_path = os.environ.get("PRD_STORAGE_AUTH_TOKEN_PATH")
        self.token_path = Path(token_path or env_path or DEFAULT_TOKEN_PATH)
        self._identity: UserIdentity | None = None

    async def get_current_identity(self) -> UserIdentity:
        if self._identity is not None and self._identity.is_authenticated():
            return self._identity

        self._identity = None
        identity = self._load_identity()
        if not identity.is_authenticated():
            raise AuthenticationRequiredError(f"Access token in {self.token_path} has expired")

        self._identity = identity
        logger.info(f"Token identity resolved: {identity.user_id}")
        return identity

    async def sign_out(self) -> None:
        """Forget the cached identity and delete the token file."""
        self._identity = None
        try:
            self.token_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove token file {self.token_path}: {e}")

    @property
    def provider_type(self) -> AuthProvider:
        return AuthProvider.TOKEN

    def _load_identity(self) -> UserIdentity:
        try:
            data = json.loads(self.token_path.read_text())
        except FileNotFoundError:
            raise AuthenticationRequiredError(f"No access token at {self.token_path}") from None
        except (OSError, ValueError) as e:
            raise AuthenticationRequiredError(f"Unreadable access token file: {e}") from e

        if not isinstance(data, dict) or not data.get("access_token"):
            raise AuthenticationRequiredError(f"No access_token in {self.token_path}")

        token = str(data["access_token"])
        claims = decode_jwt_claims(token)

        user_id = data.get("user_id") or claims.get("sub")
        if not user_id:
            raise AuthenticationRequiredError("Access token carries no subject")

        email = data.get("user_email") or claims.get("email")
        expires_at = data.get("expires_at_unix") or claims.get("exp")

        return UserIdentity(
            user_id=str(user_id),
            display_name=email or str(user_id),
            email=email,
            auth_provider=AuthProvider.TOKEN,
            auth_token=token,
            token_expiry=datetime.fromtimestamp(float(expires_at), UTC) if expires_at else None,
        )
