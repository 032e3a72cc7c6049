"""
Settings-file identity provider.

Reads the caller from the ``identity`` section of a YAML settings file,
for development machines and single-user deployments.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from .provider import IdentityProvider
from .types import AuthenticationRequiredError, AuthProvider, UserIdentity

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path.home() / ".prd_storage" / "settings.yaml"

_IDENTITY_KEYS = ("user_id", "display_name", "email", "org_id")


class ConfigFileIdentityProvider(IdentityProvider):
    """Identity from ``~/.prd_storage/settings.yaml``:

    ```yaml
    identity:
      user_id: "user-abc123"
      display_name: "Alice Product"
      email: "alice@example.com"
      org_id: "org-xyz"
    ```

    A settings file without ``identity.user_id`` yields no identity: records
    are never written to a shared, anonymous partition.
    """

    def __init__(self, config_path: Path | None = None):
        self.config_path = config_path or DEFAULT_SETTINGS_PATH
        self._identity: UserIdentity | None = None
        self._signed_out = False

    async def get_current_identity(self) -> UserIdentity:
        if self._signed_out:
            raise AuthenticationRequiredError("Signed out")
        if self._identity is None:
            self._identity = self._identity_from_settings(self._read_settings())
        return self._identity

    async def sign_out(self) -> None:
        """Stop resolving an identity until ``sign_in``. The file is left untouched."""
        self._identity = None
        self._signed_out = True

    async def sign_in(self) -> UserIdentity:
        """Resume resolution, re-reading the settings file."""
        self._signed_out = False
        self._identity = None
        return await self.get_current_identity()

    @property
    def provider_type(self) -> AuthProvider:
        return AuthProvider.CONFIG

    async def update_config(self, **values: str | None) -> UserIdentity:
        """Write identity fields (user_id, display_name, email, org_id) and sign in.

        Fields passed as None keep their current value.

        Raises:
            ValueError: For fields outside the identity section
        """
        unknown = set(values) - set(_IDENTITY_KEYS)
        if unknown:
            raise ValueError(f"Unknown identity fields: {', '.join(sorted(unknown))}")

        settings = self._read_settings()
        section = settings.get("identity")
        if not isinstance(section, dict):
            section = settings["identity"] = {}
        section.update({key: value for key, value in values.items() if value is not None})

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(yaml.safe_dump(settings, default_flow_style=False))
        logger.info(f"Identity settings written to {self.config_path}")

        return await self.sign_in()

    def _identity_from_settings(self, settings: dict[str, Any]) -> UserIdentity:
        section = settings.get("identity")
        user_id = section.get("user_id") if isinstance(section, dict) else None
        if not user_id:
            raise AuthenticationRequiredError(
                f"No identity.user_id configured in {self.config_path}"
            )

        return UserIdentity(
            user_id=str(user_id),
            display_name=section.get("display_name") or str(user_id),
            email=section.get("email"),
            org_id=section.get("org_id"),
            auth_provider=AuthProvider.CONFIG,
        )

    def _read_settings(self) -> dict[str, Any]:
        """Parsed settings file; empty when missing or unreadable."""
        try:
            settings = yaml.safe_load(self.config_path.read_text())
        except FileNotFoundError:
            return {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not read identity settings {self.config_path}: {e}")
            return {}
        return settings if isinstance(settings, dict) else {}
