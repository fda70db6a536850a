"""Deferred imports of vendor SDKs.

boto3, azure-storage-blob, azure-identity and SQLAlchemy are declared
dependencies of cloudbind-core, but they are only imported when a provider
is opened so `cloudbind providers` and credential resolution stay fast.
DB drivers (PyMySQL, psycopg2) are extras and are loaded by SQLAlchemy itself.
"""

from __future__ import annotations

import importlib


def require(target: str):
    """Import `pkg.mod` (module) or `pkg.mod:Name` (attribute)."""
    if ":" in target:
        module_name, attr = target.split(":", 1)
        return require_attr(module_name, attr)
    try:
        return importlib.import_module(target)
    except ImportError as e:
        raise RuntimeError(_broken_install(target, e)) from e


def require_attr(module_name: str, attr_name: str):
    try:
        return getattr(importlib.import_module(module_name), attr_name)
    except (ImportError, AttributeError) as e:
        raise RuntimeError(_broken_install(f"{module_name}:{attr_name}", e)) from e


def _broken_install(target: str, err: Exception) -> str:
    return (
        f"cloudbind could not import {target} ({err}). "
        "It ships as a dependency of cloudbind-core; reinstall with `pip install cloudbind-core`."
    )
