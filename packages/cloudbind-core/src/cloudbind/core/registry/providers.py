from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional

from cloudbind.core.connectors.base import ClientFactory
from cloudbind.core.spec import CredentialEnvSpec, ProviderFamily


@dataclass(frozen=True)
class ProviderEntry:
    key: str
    family: ProviderFamily
    factory: ClientFactory
    env_names: Optional[CredentialEnvSpec] = None
    description: str = ""


class ProviderRegistry:
    """
    Explicit provider key -> factory mapping.

    There is no process-wide instance: build one (or use default_providers())
    and pass it to bind_provider / the pipeline. Adding a provider never
    touches resolution logic:

        providers = default_providers()

        @providers.register("minio", ProviderFamily.STORAGE)
        class MinioFactory:
            def open(self, spec): ...
    """

    def __init__(self) -> None:
        self._items: Dict[str, ProviderEntry] = {}

    def add(
        self,
        key: str,
        family: ProviderFamily,
        factory: ClientFactory,
        *,
        env_names: CredentialEnvSpec | None = None,
        description: str = "",
    ) -> ProviderEntry:
        if not key or not key.strip():
            raise ValueError("provider key must be non-empty")
        entry = ProviderEntry(key=key, family=family, factory=factory, env_names=env_names, description=description)
        self._items[key] = entry
        return entry

    def register(
        self,
        key: str,
        family: ProviderFamily,
        *,
        env_names: CredentialEnvSpec | None = None,
        description: str = "",
    ) -> Callable[[type], type]:
        def deco(cls):
            self.add(key, family, cls(), env_names=env_names, description=description)
            return cls
        return deco

    def get(self, key: str) -> ProviderEntry:
        if key not in self._items:
            raise KeyError(f"Unknown provider: {key}. Loaded: {self.list()}")
        return self._items[key]

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[ProviderEntry]:
        return iter([self._items[k] for k in sorted(self._items)])

    def list(self, family: ProviderFamily | None = None) -> list[str]:
        return sorted(k for k, e in self._items.items() if family is None or e.family is family)


def default_providers() -> ProviderRegistry:
    """Fresh registry with the built-in AWS/Azure providers."""
    from cloudbind.core.builtins import register_builtin_providers

    reg = ProviderRegistry()
    register_builtin_providers(reg)
    return reg
