"""cloudbind core package.

Public entrypoints:
- cloudbind.core.api: stable API surface for integrations/custom providers
- cloudbind.core.pipeline.run_pipeline: resolve/bind/acquire/validate one resource

Internal modules may change without notice.
"""

from __future__ import annotations

from cloudbind.core.pipeline import run_pipeline

__all__ = ["run_pipeline"]
