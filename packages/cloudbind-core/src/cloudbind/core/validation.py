"""Connection validation.

Turns an opened handle into a ConnectionReport. The liveness probe is the
handle's own is_valid(); this module only enforces the time budget and
assembles the report.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict

from cloudbind.core.connectors.base import ProbeableHandle
from cloudbind.core.exception import AcquisitionError, ValidationTimeout
from cloudbind.core.result import Result
from cloudbind.core.spec import ConnectionReport

log = logging.getLogger("cloudbind.core.validation")

DEFAULT_TIMEOUT_SECONDS = 5


def _s(meta: Dict[str, Any], key: str) -> str:
    v = meta.get(key)
    return "" if v is None else str(v)


def _probe(handle: ProbeableHandle, timeout_seconds: float) -> bool:
    # Daemon thread: an overrunning check is abandoned and never holds up
    # interpreter exit.
    outcome: Dict[str, Any] = {}

    def _run() -> None:
        try:
            outcome["valid"] = bool(handle.is_valid(timeout_seconds))
        except Exception as e:
            outcome["error"] = e

    t = threading.Thread(target=_run, name="cloudbind-probe", daemon=True)
    t.start()
    t.join(timeout_seconds)
    if t.is_alive():
        raise ValidationTimeout(timeout_seconds)
    if "error" in outcome:
        raise outcome["error"]
    return outcome["valid"]


def validate_connection(
    handle: ProbeableHandle,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    *,
    provider_key: str = "",
) -> Result[ConnectionReport]:
    if timeout_seconds <= 0:
        # No probe can finish in a zero budget.
        return Result.failure(ValidationTimeout(timeout_seconds))

    try:
        meta = dict(handle.metadata() or {})
    except Exception as e:
        err = AcquisitionError(provider_key or "unknown", f"metadata lookup failed: {e}")
        err.__cause__ = e
        return Result.failure(err)

    try:
        valid = _probe(handle, timeout_seconds)
    except ValidationTimeout as e:
        return Result.failure(e)
    except Exception as e:
        err = AcquisitionError(provider_key or "unknown", f"liveness probe failed: {e}")
        err.__cause__ = e
        return Result.failure(err)

    report = ConnectionReport(
        vendor_product_name=_s(meta, "product_name"),
        vendor_version=_s(meta, "product_version"),
        driver_name=_s(meta, "driver_name"),
        driver_version=_s(meta, "driver_version"),
        effective_endpoint=_s(meta, "url"),
        effective_user=_s(meta, "user"),
        is_valid=valid,
    )
    log.debug("connection validated product=%s valid=%s", report.vendor_product_name, report.is_valid)
    return Result.success(report)
