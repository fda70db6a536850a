from __future__ import annotations

import logging
from typing import Mapping, Optional
from urllib.parse import urlsplit

from cloudbind.core.exception import InvalidEndpoint, UnknownProvider
from cloudbind.core.registry.providers import ProviderRegistry
from cloudbind.core.result import Result
from cloudbind.core.spec import ConnectionSpec, Credential, ProviderFamily

log = logging.getLogger("cloudbind.core.binding")

_JDBC_PREFIX = "jdbc:"
_STORAGE_SCHEMES = {"http", "https"}


def strip_jdbc(endpoint: str) -> str:
    e = endpoint.strip()
    if e.lower().startswith(_JDBC_PREFIX):
        return e[len(_JDBC_PREFIX):]
    return e


def check_endpoint(endpoint: Optional[str], family: ProviderFamily) -> Optional[str]:
    """Return a reason string when the endpoint is not acceptable, else None.

    database: required; `[jdbc:]scheme://host:port[/db][?query]`
    storage:  optional; when given `http(s)://host[:port][/path]`
    """
    if endpoint is None or not endpoint.strip():
        if family is ProviderFamily.DATABASE:
            return "database providers require an endpoint"
        return None

    raw = strip_jdbc(endpoint) if family is ProviderFamily.DATABASE else endpoint.strip()
    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError as e:
        return f"malformed URL ({e})"

    if not parts.scheme:
        return "missing scheme"
    if not parts.hostname:
        return "missing host"

    if family is ProviderFamily.DATABASE:
        if port is None:
            return "missing port (expected host:port)"
        return None

    if parts.scheme.lower() not in _STORAGE_SCHEMES:
        return f"unsupported scheme {parts.scheme!r} for storage (expected http/https)"
    return None


def bind_provider(
    provider_key: str,
    endpoint: Optional[str],
    credential: Credential,
    extra_options: Mapping[str, str] | None,
    family: ProviderFamily,
    *,
    providers: ProviderRegistry,
) -> Result[ConnectionSpec]:
    key = (provider_key or "").strip()
    if not key or key not in providers:
        return Result.failure(UnknownProvider(provider_key, providers.list()))

    entry = providers.get(key)
    if entry.family is not family:
        return Result.failure(
            UnknownProvider(
                key,
                providers.list(family),
                reason=f"Provider {key!r} is a {entry.family.value} provider, requested {family.value}. "
                f"Known {family.value} providers: {providers.list(family)}",
            )
        )

    reason = check_endpoint(endpoint, family)
    if reason:
        return Result.failure(InvalidEndpoint(endpoint, reason))

    spec = ConnectionSpec(
        provider_key=key,
        family=family,
        credential=credential,
        endpoint=endpoint.strip() if endpoint and endpoint.strip() else None,
        extra_options={str(k): str(v) for k, v in (extra_options or {}).items()},
    )
    log.debug("provider bound key=%s family=%s endpoint=%s", key, family.value, spec.endpoint or "(provider default)")
    return Result.success(spec)
