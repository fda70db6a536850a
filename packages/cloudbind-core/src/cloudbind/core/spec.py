from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Optional

from pydantic import BaseModel
from pydantic.config import ConfigDict

# ---------------------------------------------------------------------------
# Families / auth modes
# ---------------------------------------------------------------------------


class ProviderFamily(str, enum.Enum):
    STORAGE = "storage"
    DATABASE = "database"


class AuthMode(str, enum.Enum):
    STATIC_PASSWORD = "static_password"
    AMBIENT_IDENTITY = "ambient_identity"


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Credential:
    """Resolved identity + optional secret.

    The auth mode is never supplied: an absent or empty secret means the caller's
    ambient identity (IAM role, Entra ID token) is used instead of a password.
    The secret is excluded from repr so credentials can be logged safely.
    """

    identity: str
    secret: Optional[str] = field(default=None, repr=False)

    @property
    def auth_mode(self) -> AuthMode:
        if self.secret:
            return AuthMode.STATIC_PASSWORD
        return AuthMode.AMBIENT_IDENTITY

    @property
    def is_ambient(self) -> bool:
        return self.auth_mode is AuthMode.AMBIENT_IDENTITY


class CredentialEnvSpec(BaseModel):
    """Names of the env variables a provider family reads credentials from."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    identity_var: str
    secret_var: str
    connection_string_var: Optional[str] = None


# ---------------------------------------------------------------------------
# Connection spec / report
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConnectionSpec:
    """Fully resolved configuration handed to exactly one client factory."""

    provider_key: str
    family: ProviderFamily
    credential: Credential
    endpoint: Optional[str] = None
    extra_options: Dict[str, str] = field(default_factory=dict)

    def option(self, key: str, default: str | None = None) -> str | None:
        return self.extra_options.get(key, default)

    def flag(self, key: str) -> bool:
        return (self.extra_options.get(key) or "").strip().lower() in {"1", "true", "yes", "on"}


class ConnectionReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    vendor_product_name: str
    vendor_version: str
    driver_name: str
    driver_version: str
    effective_endpoint: str
    effective_user: str
    is_valid: bool


@dataclass(frozen=True)
class ObjectMeta:
    key: str
    size: Optional[int] = None
    etag: Optional[str] = None
