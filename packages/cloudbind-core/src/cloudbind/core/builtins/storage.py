from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from cloudbind.core.builtins._base import _HandleBase
from cloudbind.core.connectors import require
from cloudbind.core.spec import ConnectionSpec, ObjectMeta

log = logging.getLogger("cloudbind.core.builtin.storage")

AZURE_BLOB_URL_TEMPLATE = "https://{account}.blob.core.windows.net"


def _timeout_seconds(spec: ConnectionSpec) -> Optional[float]:
    raw = spec.option("connect_timeout")
    return float(raw) if raw else None


def _error_code(exc: Exception) -> str:
    resp = getattr(exc, "response", None) or {}
    return str((resp.get("Error") or {}).get("Code") or "")


class S3StorageHandle(_HandleBase):
    """
    S3 handle backed by a boto3 client.

    Options (ConnectionSpec.extra_options):
      - region: bucket/client region (default us-east-1)
      - force_path_style: "true" for LocalStack/MinIO style endpoints
    """

    def __init__(self, spec: ConnectionSpec, client: Any):
        super().__init__(spec)
        self._client = client

    @property
    def region(self) -> str:
        return self.spec.option("region") or "us-east-1"

    def container_exists(self, name: str) -> bool:
        ClientError = require("botocore.exceptions:ClientError")
        try:
            self._client.head_bucket(Bucket=name)
            return True
        except ClientError as e:
            if _error_code(e) in {"404", "NoSuchBucket", "NotFound"}:
                return False
            raise

    def create_container(self, name: str) -> None:
        kwargs: Dict[str, Any] = {"Bucket": name}
        # us-east-1 rejects an explicit LocationConstraint
        if self.region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        self._client.create_bucket(**kwargs)

    def put_object(self, container: str, key: str, data: bytes) -> None:
        self._client.put_object(Bucket=container, Key=key, Body=data)

    def list_objects(self, container: str) -> List[ObjectMeta]:
        out: List[ObjectMeta] = []
        paginator = self._client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=container):
            for obj in page.get("Contents", []):
                out.append(ObjectMeta(key=obj["Key"], size=obj.get("Size"), etag=(obj.get("ETag") or "").strip('"') or None))
        return out

    def get_object(self, container: str, key: str) -> Optional[bytes]:
        ClientError = require("botocore.exceptions:ClientError")
        try:
            resp = self._client.get_object(Bucket=container, Key=key)
        except ClientError as e:
            if _error_code(e) in {"404", "NoSuchKey", "NotFound"}:
                return None
            raise
        return resp["Body"].read()

    def remove_object(self, container: str, key: str) -> None:
        self._client.delete_object(Bucket=container, Key=key)

    def delete_container(self, name: str) -> None:
        self._client.delete_bucket(Bucket=name)

    def metadata(self) -> Dict[str, Any]:
        boto3 = require("boto3")
        meta = self._client.meta
        return {
            "product_name": "Amazon S3",
            "product_version": getattr(meta.service_model, "api_version", ""),
            "driver_name": "boto3",
            "driver_version": getattr(boto3, "__version__", ""),
            "url": meta.endpoint_url,
            "user": self.spec.credential.identity,
        }

    def is_valid(self, timeout_seconds: float) -> bool:
        ClientError = require("botocore.exceptions:ClientError")
        BotoCoreError = require("botocore.exceptions:BotoCoreError")
        try:
            self._client.list_buckets()
            return True
        except (ClientError, BotoCoreError):
            log.warning("S3 liveness probe failed", exc_info=True)
            return False

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            close()


class S3Factory:
    """
    boto3 client factory for aws-s3 (and S3-compatible endpoints).

    An ambient credential (empty secret) leaves the keys to the boto3 default
    chain. The pipeline never produces one for storage, since storage
    resolution requires a secret; callers reach it by binding a
    Credential(identity, "") themselves.
    """

    def open(self, spec: ConnectionSpec) -> S3StorageHandle:
        boto3 = require("boto3")
        Config = require("botocore.config:Config")

        region = spec.option("region") or "us-east-1"
        s3_cfg = {"addressing_style": "path"} if spec.flag("force_path_style") else {}
        timeouts: Dict[str, Any] = {}
        budget = _timeout_seconds(spec)
        if budget is not None:
            timeouts = {"connect_timeout": budget, "read_timeout": budget}
        kwargs: Dict[str, Any] = {
            "region_name": region,
            "config": Config(
                region_name=region,
                signature_version="s3v4",
                s3=s3_cfg,
                retries={"total_max_attempts": 2, "mode": "standard"},
                **timeouts,
            ),
        }
        cred = spec.credential
        if not cred.is_ambient:
            kwargs["aws_access_key_id"] = cred.identity
            kwargs["aws_secret_access_key"] = cred.secret
        # ambient: boto3 default chain (instance profile, SSO, env)
        if spec.endpoint:
            kwargs["endpoint_url"] = spec.endpoint

        client = boto3.client("s3", **kwargs)
        return S3StorageHandle(spec, client)


class AzureBlobHandle(_HandleBase):
    """Azure Blob Storage handle backed by a BlobServiceClient."""

    def __init__(self, spec: ConnectionSpec, service: Any):
        super().__init__(spec)
        self._svc = service

    def container_exists(self, name: str) -> bool:
        return bool(self._svc.get_container_client(name).exists())

    def create_container(self, name: str) -> None:
        self._svc.create_container(name)

    def put_object(self, container: str, key: str, data: bytes) -> None:
        self._svc.get_blob_client(container=container, blob=key).upload_blob(data, overwrite=True)

    def list_objects(self, container: str) -> List[ObjectMeta]:
        out: List[ObjectMeta] = []
        for b in self._svc.get_container_client(container).list_blobs():
            out.append(ObjectMeta(key=b.name, size=b.size, etag=(b.etag or "").strip('"') or None))
        return out

    def get_object(self, container: str, key: str) -> Optional[bytes]:
        ResourceNotFoundError = require("azure.core.exceptions:ResourceNotFoundError")
        try:
            return self._svc.get_blob_client(container=container, blob=key).download_blob().readall()
        except ResourceNotFoundError:
            return None

    def remove_object(self, container: str, key: str) -> None:
        self._svc.get_blob_client(container=container, blob=key).delete_blob()

    def delete_container(self, name: str) -> None:
        self._svc.delete_container(name)

    def metadata(self) -> Dict[str, Any]:
        blob = require("azure.storage.blob")
        return {
            "product_name": "Azure Blob Storage",
            "product_version": getattr(self._svc, "api_version", ""),
            "driver_name": "azure-storage-blob",
            "driver_version": getattr(blob, "__version__", ""),
            "url": self._svc.url,
            "user": self.spec.credential.identity,
        }

    def is_valid(self, timeout_seconds: float) -> bool:
        AzureError = require("azure.core.exceptions:AzureError")
        try:
            self._svc.get_service_properties(timeout=max(1, int(timeout_seconds)))
            return True
        except AzureError:
            log.warning("Azure Blob liveness probe failed", exc_info=True)
            return False

    def close(self) -> None:
        self._svc.close()


class AzureBlobFactory:
    """
    BlobServiceClient factory for azureblob.

    identity = storage account name, secret = account key. An endpoint overrides
    the public account URL (e.g. Azurite: http://127.0.0.1:10000/devstoreaccount1).
    An ambient credential switches to DefaultAzureCredential; as with S3 the
    pipeline only yields one when the caller binds it directly.
    """

    def account_url(self, spec: ConnectionSpec) -> str:
        if spec.endpoint:
            return spec.endpoint.rstrip("/")
        return AZURE_BLOB_URL_TEMPLATE.format(account=spec.credential.identity)

    def open(self, spec: ConnectionSpec) -> AzureBlobHandle:
        BlobServiceClient = require("azure.storage.blob:BlobServiceClient")
        cred = spec.credential
        if cred.is_ambient:
            DefaultAzureCredential = require("azure.identity:DefaultAzureCredential")
            credential: Any = DefaultAzureCredential()
        else:
            credential = {"account_name": cred.identity, "account_key": cred.secret}
        kwargs: Dict[str, Any] = {"retry_total": 1}
        budget = _timeout_seconds(spec)
        if budget is not None:
            kwargs["connection_timeout"] = budget
            kwargs["read_timeout"] = budget
        svc = BlobServiceClient(account_url=self.account_url(spec), credential=credential, **kwargs)
        return AzureBlobHandle(spec, svc)
