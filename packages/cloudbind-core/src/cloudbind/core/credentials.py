"""Credential resolution.

Resolution order (first match wins):

  1) connection string  `AccountName=...;AccountKey=...`
  2) explicit identity/secret from the caller (an empty secret is a deliberate
     ambient-identity signal, not a missing value)
  3) env snapshot, using family-specific variable names

The resolver only reads the env mapping it is given. It never touches
os.environ; build the snapshot once at process start (see runtime.envfiles).
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

from cloudbind.core.exception import MissingCredential
from cloudbind.core.result import Result
from cloudbind.core.spec import Credential, CredentialEnvSpec, ProviderFamily

log = logging.getLogger("cloudbind.core.credentials")

DEFAULT_DB_IDENTITY = "admin"

CONNECTION_STRING_IDENTITY_KEY = "AccountName"
CONNECTION_STRING_SECRET_KEY = "AccountKey"

DEFAULT_ENV_NAMES: Dict[ProviderFamily, CredentialEnvSpec] = {
    ProviderFamily.DATABASE: CredentialEnvSpec(identity_var="DB_USERNAME", secret_var="DB_PASSWORD"),
    ProviderFamily.STORAGE: CredentialEnvSpec(
        identity_var="AZURE_STORAGE_ACCOUNT",
        secret_var="AZURE_STORAGE_KEY",
        connection_string_var="AZURE_STORAGE_CONNECTION_STRING",
    ),
}


def parse_connection_string(text: str | None) -> Dict[str, str]:
    """Parse `Key=Value;Key=Value` into a dict.

    Tolerant: segments without '=' or with an empty key are skipped, values may
    contain '=' (base64 account keys end with '=='), the last duplicate wins.
    """
    out: Dict[str, str] = {}
    for part in (text or "").split(";"):
        if "=" not in part:
            continue
        k, v = part.split("=", 1)
        k = k.strip()
        if not k:
            continue
        out[k] = v
    return out


def mask_secret(secret: str | None, limit: int = 8) -> str:
    """Preview for logs: at most `limit` leading chars followed by '...'."""
    if not secret:
        return "(empty)"
    return secret[: max(0, int(limit))] + "..."


def _from_connection_string(text: str) -> tuple[Optional[str], Optional[str]]:
    parts = parse_connection_string(text)
    return parts.get(CONNECTION_STRING_IDENTITY_KEY), parts.get(CONNECTION_STRING_SECRET_KEY)


def resolve_credential(
    identity: str | None = None,
    secret: str | None = None,
    *,
    env: Mapping[str, str],
    connection_string: str | None = None,
    family: ProviderFamily,
    env_names: CredentialEnvSpec | None = None,
) -> Result[Credential]:
    names = env_names or DEFAULT_ENV_NAMES[family]

    if connection_string:
        source = "connection_string"
        ident, sec = _from_connection_string(connection_string)
    elif identity is not None or secret is not None:
        source = "explicit"
        ident, sec = identity, secret
    else:
        source = "env"
        ident = env.get(names.identity_var)
        sec = env.get(names.secret_var)
        if sec is None:
            sec = ""

    if family is ProviderFamily.STORAGE:
        if not ident:
            hint = f"set {names.connection_string_var} or {names.identity_var}" if names.connection_string_var else f"set {names.identity_var}"
            return Result.failure(MissingCredential(f"Storage account identity not found ({source}); {hint}"))
        if not sec:
            hint = f"set {names.connection_string_var} or {names.secret_var}" if names.connection_string_var else f"set {names.secret_var}"
            return Result.failure(MissingCredential(f"Storage account secret not found ({source}); {hint}"))
    else:
        if not ident:
            ident = DEFAULT_DB_IDENTITY
        if sec is None:
            sec = ""

    cred = Credential(identity=ident, secret=sec)
    log.debug("credential resolved source=%s identity=%s auth_mode=%s", source, cred.identity, cred.auth_mode.value)
    return Result.success(cred)
