from pathlib import Path

import sys

# Allow running tests without installing the package.
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest
from cloudbind.core.registry.providers import ProviderRegistry
from cloudbind.core.runtime.settings import Settings
from cloudbind.core.spec import CredentialEnvSpec, ProviderFamily

from _fakes import FakeDbFactory, FakeStorageFactory


@pytest.fixture()
def settings():
    return Settings(log_level="INFO", log_format="text", validation_timeout_seconds=5)


@pytest.fixture()
def storage_factory():
    return FakeStorageFactory()


@pytest.fixture()
def db_factory():
    return FakeDbFactory()


@pytest.fixture()
def providers(storage_factory, db_factory):
    reg = ProviderRegistry()
    reg.add(
        "azureblob",
        ProviderFamily.STORAGE,
        storage_factory,
        env_names=CredentialEnvSpec(
            identity_var="AZURE_STORAGE_ACCOUNT",
            secret_var="AZURE_STORAGE_KEY",
            connection_string_var="AZURE_STORAGE_CONNECTION_STRING",
        ),
    )
    reg.add("aws-rds", ProviderFamily.DATABASE, db_factory)
    reg.add("azure-database", ProviderFamily.DATABASE, db_factory)
    return reg
