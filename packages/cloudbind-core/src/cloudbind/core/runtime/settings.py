from __future__ import annotations

import os
from importlib import import_module

from pydantic import BaseModel, Field


def _bool(v: str | None, default: bool) -> bool:
    if v is None or v == "":
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    # Defaults are static. Use load_settings(env=...) to read from an env snapshot.
    log_level: str = "INFO"

    # - log_format: "text" (default) or "json". When json, cloudbind emits one JSON
    #   object per line, suitable for log aggregation.
    log_format: str = "text"

    # Liveness probe budget used by the connection validator.
    validation_timeout_seconds: float = Field(default=5, ge=0)

    # AWS
    aws_region: str = "us-east-1"
    # Path-style S3 addressing (LocalStack/MinIO). Per-run --option force_path_style overrides.
    s3_path_style: bool = False

    # Storage round-trip defaults
    default_container: str = "cloudbind-playground"
    object_key: str = "cloudbind/hello.txt"
    cleanup: bool = False

    @classmethod
    def from_env(cls, env: dict[str, str], overrides: dict | None = None) -> "Settings":
        """Build Settings from an explicit env snapshot (does not read os.environ)."""
        def g(key: str, default: str | None = None) -> str | None:
            return env.get(key, default)  # type: ignore[return-value]

        data = {
            "log_level": g("CLOUDBIND_LOG_LEVEL", "INFO"),
            "log_format": g("CLOUDBIND_LOG_FORMAT", "text"),
            "validation_timeout_seconds": g("CLOUDBIND_VALIDATION_TIMEOUT") or 5,
            "aws_region": g("CLOUDBIND_AWS_REGION") or g("AWS_REGION") or g("AWS_DEFAULT_REGION") or "us-east-1",
            "s3_path_style": _bool(g("CLOUDBIND_S3_PATH_STYLE"), False),
            "default_container": g("CLOUDBIND_CONTAINER", "cloudbind-playground"),
            "object_key": g("CLOUDBIND_OBJECT_KEY", "cloudbind/hello.txt"),
            "cleanup": _bool(g("CLOUDBIND_CLEANUP"), False),
        }
        if overrides:
            data.update(overrides)
        return cls(**data)


def load_settings(overrides: dict | None = None, *, env: dict[str, str] | None = None) -> Settings:
    """Load settings from (1) env snapshot, (2) optional settings module, (3) explicit overrides.

    If env is not provided, a snapshot of os.environ is taken here.
    """
    env2 = {k: str(v) for k, v in os.environ.items()} if env is None else env
    s = Settings.from_env(env2)
    mod = env2.get("CLOUDBIND_SETTINGS_MODULE")
    if mod:
        m = import_module(mod)
        data = getattr(m, "SETTINGS", {})
        if not isinstance(data, dict):
            raise TypeError("CLOUDBIND_SETTINGS_MODULE must expose SETTINGS: dict")
        s = s.model_copy(update=data)
    if overrides:
        s = s.model_copy(update=overrides)
    return s
