"""Built-in AWS/Azure providers."""

from __future__ import annotations

from cloudbind.core.builtins.database import AzureDatabaseFactory, RdsFactory
from cloudbind.core.builtins.storage import AzureBlobFactory, S3Factory
from cloudbind.core.registry.providers import ProviderRegistry
from cloudbind.core.spec import CredentialEnvSpec, ProviderFamily


def register_builtin_providers(registry: ProviderRegistry) -> ProviderRegistry:
    registry.add(
        "aws-s3",
        ProviderFamily.STORAGE,
        S3Factory(),
        env_names=CredentialEnvSpec(identity_var="AWS_ACCESS_KEY_ID", secret_var="AWS_SECRET_ACCESS_KEY"),
        description="Amazon S3 (boto3); endpoint override for LocalStack/MinIO",
    )
    registry.add(
        "azureblob",
        ProviderFamily.STORAGE,
        AzureBlobFactory(),
        env_names=CredentialEnvSpec(
            identity_var="AZURE_STORAGE_ACCOUNT",
            secret_var="AZURE_STORAGE_KEY",
            connection_string_var="AZURE_STORAGE_CONNECTION_STRING",
        ),
        description="Azure Blob Storage (azure-storage-blob); endpoint override for Azurite",
    )
    registry.add(
        "aws-rds",
        ProviderFamily.DATABASE,
        RdsFactory(),
        env_names=CredentialEnvSpec(identity_var="DB_USERNAME", secret_var="DB_PASSWORD"),
        description="Amazon RDS MySQL/PostgreSQL (SQLAlchemy); empty password = IAM auth token",
    )
    registry.add(
        "azure-database",
        ProviderFamily.DATABASE,
        AzureDatabaseFactory(),
        env_names=CredentialEnvSpec(identity_var="DB_USERNAME", secret_var="DB_PASSWORD"),
        description="Azure Database for MySQL/PostgreSQL (SQLAlchemy); empty password = Entra ID token",
    )
    return registry
