from __future__ import annotations

import logging

from cloudbind.core.spec import ConnectionSpec

log = logging.getLogger("cloudbind.core.builtin")


class _HandleBase:
    """Small concrete base for built-in handles (keeps lifecycle consistent)."""

    def __init__(self, spec: ConnectionSpec):
        self.spec = spec
        self.provider_key = spec.provider_key

    def close(self) -> None:
        return None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.close()
        except Exception:
            log.warning("handle close failed; continuing", exc_info=True)
