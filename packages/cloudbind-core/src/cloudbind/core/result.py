from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Value-or-error returned at the resolver/binder/validator boundaries.

    Callers decide where to surface the error:

        res = resolve_credential(env=env, family=ProviderFamily.DATABASE)
        if not res.ok:
            log.error("resolution failed: %s", res.error)
        cred = res.unwrap()   # re-raises the stored error
    """

    value: Optional[T] = None
    error: Optional[Exception] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
