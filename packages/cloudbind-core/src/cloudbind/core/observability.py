from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from cloudbind.core.runtime.settings import Settings


def _now_ms() -> int:
    return int(time.time() * 1000)


def _dur_ms(t0: float, t1: float) -> int:
    return int((t1 - t0) * 1000)


def configure_logging(settings: Settings) -> None:
    fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    if (settings.log_format or "text").lower() == "json":
        # JSON payload already includes timestamp; keep formatter minimal.
        fmt = "%(message)s"
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=fmt,
    )


def log_event(logger: logging.Logger, *, settings: Settings, level: int, event: str, **fields: Any) -> None:
    """Emit an event log.

    - text format: one-liner `event key=value ...`
    - json format: one JSON object per line

    Never pass raw secrets as fields; use credentials.mask_secret().
    """
    if settings.log_format.lower() == "json":
        payload = {"ts_ms": _now_ms(), "event": event, **fields}
        logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
        return

    parts = [event]
    for k, v in fields.items():
        parts.append(f"{k}={v}")
    logger.log(level, " ".join(parts))


@dataclass
class StageSummary:
    state: str
    duration_ms: int


@dataclass
class PipelineSummary:
    provider: str
    family: str
    final_state: str
    duration_ms: int
    stages: list[StageSummary] = field(default_factory=list)
    error: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "provider": self.provider,
            "family": self.family,
            "final_state": self.final_state,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "stages": [{"state": s.state, "duration_ms": s.duration_ms} for s in self.stages],
        }


class PipelineObserver:
    """Records state transitions of one resolve/bind/acquire/validate run."""

    def __init__(self, *, settings: Settings, logger: logging.Logger, provider: str, family: str):
        self.settings = settings
        self.logger = logger
        self.provider = provider
        self.family = family
        self._t0: float | None = None
        self._t_stage: float | None = None
        self._stages: list[StageSummary] = []

    def start(self, *, state: str) -> None:
        self._t0 = self._t_stage = time.perf_counter()
        log_event(self.logger, settings=self.settings, level=logging.INFO, event="pipeline_start", provider=self.provider, family=self.family, state=state)

    def transition(self, *, state: str, **fields: Any) -> None:
        now = time.perf_counter()
        dur = _dur_ms(self._t_stage, now) if self._t_stage is not None else 0
        self._t_stage = now
        self._stages.append(StageSummary(state=state, duration_ms=dur))
        log_event(self.logger, settings=self.settings, level=logging.INFO, event="state", provider=self.provider, state=state, duration_ms=dur, **fields)

    def finish(self, *, final_state: str, error: Optional[BaseException] = None) -> PipelineSummary:
        dur = _dur_ms(self._t0, time.perf_counter()) if self._t0 is not None else 0
        summary = PipelineSummary(
            provider=self.provider,
            family=self.family,
            final_state=final_state,
            duration_ms=dur,
            stages=list(self._stages),
            error=f"{type(error).__name__}: {error}" if error is not None else None,
        )
        level = logging.ERROR if error is not None else logging.INFO
        log_event(self.logger, settings=self.settings, level=level, event="pipeline_summary", **summary.as_dict())
        return summary
