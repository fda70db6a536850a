"""Public, stable API surface for cloudbind.

If you're adding providers or embedding cloudbind in your own codebase,
import from **`cloudbind.core.api`**.

Everything outside this package is considered internal and may change without
notice, even in minor releases.
"""

from __future__ import annotations

# Resolution / binding / validation
from cloudbind.core.binding import bind_provider, check_endpoint
# Handle + factory contracts
from cloudbind.core.connectors import require, require_attr
from cloudbind.core.connectors.base import ClientFactory, DbHandle, ProbeableHandle, StorageHandle
from cloudbind.core.credentials import mask_secret, parse_connection_string, resolve_credential
# Exceptions
from cloudbind.core.exception import (
    AcquisitionError,
    ConfigError,
    ConnectorError,
    InvalidEndpoint,
    MissingCredential,
    UnknownProvider,
    ValidationTimeout,
)
# Pipeline
from cloudbind.core.pipeline import PipelineOutcome, PipelineState, acquire, run_database, run_pipeline, run_storage
# Registry
from cloudbind.core.registry.providers import ProviderEntry, ProviderRegistry, default_providers
from cloudbind.core.result import Result
# Settings
from cloudbind.core.runtime.settings import Settings, load_settings
# Data model
from cloudbind.core.spec import (
    AuthMode,
    ConnectionReport,
    ConnectionSpec,
    Credential,
    CredentialEnvSpec,
    ObjectMeta,
    ProviderFamily,
)
from cloudbind.core.validation import validate_connection

__all__ = [
    # data model
    "AuthMode",
    "ProviderFamily",
    "Credential",
    "CredentialEnvSpec",
    "ConnectionSpec",
    "ConnectionReport",
    "ObjectMeta",
    "Result",
    # operations
    "resolve_credential",
    "parse_connection_string",
    "mask_secret",
    "bind_provider",
    "check_endpoint",
    "validate_connection",
    # pipeline
    "run_pipeline",
    "run_storage",
    "run_database",
    "acquire",
    "PipelineOutcome",
    "PipelineState",
    # registry
    "ProviderRegistry",
    "ProviderEntry",
    "default_providers",
    # contracts
    "ProbeableHandle",
    "StorageHandle",
    "DbHandle",
    "ClientFactory",
    "require",
    "require_attr",
    # settings
    "Settings",
    "load_settings",
    # exceptions
    "ConfigError",
    "MissingCredential",
    "UnknownProvider",
    "InvalidEndpoint",
    "ValidationTimeout",
    "ConnectorError",
    "AcquisitionError",
]
