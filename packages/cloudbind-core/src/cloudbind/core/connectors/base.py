from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from cloudbind.core.spec import ConnectionSpec, ObjectMeta


@runtime_checkable
class ProbeableHandle(Protocol):
    """
    What the connection validator needs from any opened resource.

    metadata() keys:
      product_name, product_version, driver_name, driver_version, url, user
    """

    def metadata(self) -> Dict[str, Any]: ...

    def is_valid(self, timeout_seconds: float) -> bool: ...

    def close(self) -> None: ...


@runtime_checkable
class StorageHandle(ProbeableHandle, Protocol):
    """
    Object/blob store contract.

    Handles should:
      - treat containers (S3 buckets, Azure containers) as flat key spaces
      - return None from get_object() for missing keys instead of raising
      - release network resources in close()
    """

    def container_exists(self, name: str) -> bool: ...

    def create_container(self, name: str) -> None: ...

    def put_object(self, container: str, key: str, data: bytes) -> None: ...

    def list_objects(self, container: str) -> List[ObjectMeta]: ...

    def get_object(self, container: str, key: str) -> Optional[bytes]: ...

    def remove_object(self, container: str, key: str) -> None: ...

    def delete_container(self, name: str) -> None: ...


@runtime_checkable
class DbHandle(ProbeableHandle, Protocol):
    """Relational database connection contract (metadata + liveness only)."""


@runtime_checkable
class ClientFactory(Protocol):
    """Opens the vendor resource for a bound ConnectionSpec."""

    def open(self, spec: ConnectionSpec) -> ProbeableHandle: ...
