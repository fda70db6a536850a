from __future__ import annotations

import json
from pathlib import Path

import pytest

from cloudbind.core import pipeline
from cloudbind.core.cli import main

JDBC = "jdbc:postgresql://myserver.postgres.database.azure.com:5432/mydatabase?sslmode=require"


@pytest.fixture()
def clean_env(monkeypatch):
    for k in (
        "DB_USERNAME",
        "DB_PASSWORD",
        "AZURE_STORAGE_ACCOUNT",
        "AZURE_STORAGE_KEY",
        "AZURE_STORAGE_CONNECTION_STRING",
        "CLOUDBIND_SETTINGS_MODULE",
        "CLOUDBIND_LOG_FORMAT",
    ):
        monkeypatch.delenv(k, raising=False)


@pytest.fixture()
def fake_registry(monkeypatch, providers):
    monkeypatch.setattr(pipeline, "default_providers", lambda: providers)
    return providers


def _last_json(out: str) -> dict:
    lines = [ln for ln in out.strip().splitlines() if ln.startswith("{")]
    return json.loads(lines[-1])


def test_cli_lists_builtin_providers(capsys, clean_env):
    rc = main(["providers", "--json"])
    assert rc == 0
    items = json.loads(capsys.readouterr().out)
    assert {i["key"]: i["family"] for i in items} == {
        "aws-rds": "database",
        "aws-s3": "storage",
        "azure-database": "database",
        "azureblob": "storage",
    }


def test_cli_database_ambient_identity(capsys, clean_env, fake_registry):
    rc = main(["database", "--provider", "azure-database", "--endpoint", JDBC, "--json"])
    out = _last_json(capsys.readouterr().out)
    assert rc == 0
    assert out["state"] == "VALIDATED"
    assert out["auth_mode"] == "ambient_identity"
    assert out["report"]["effective_user"] == "admin"
    assert out["report"]["is_valid"] is True


def test_cli_database_missing_endpoint_exits_nonzero(capsys, clean_env, fake_registry):
    rc = main(["database", "--provider", "aws-rds", "--json"])
    out = _last_json(capsys.readouterr().out)
    assert rc == 1
    assert out["state"] == "FAILED"
    assert out["error"].startswith("InvalidEndpoint")
    assert out["report"] is None


def test_cli_database_text_output(capsys, clean_env, fake_registry, monkeypatch):
    monkeypatch.setenv("DB_USERNAME", "app")
    monkeypatch.setenv("DB_PASSWORD", "pw")
    rc = main(["database", "--provider", "aws-rds", "--endpoint", "jdbc:mysql://h:3306/d"])
    out = capsys.readouterr().out
    assert rc == 0
    assert "- User: app" in out
    assert "- Connection valid: True" in out
    assert out.strip().endswith("VALIDATED")


def test_cli_storage_with_env_file_and_options(tmp_path: Path, capsys, clean_env, fake_registry, storage_factory):
    env_file = tmp_path / "azurite.env"
    env_file.write_text(
        "# azurite well-known dev account\n"
        "AZURE_STORAGE_ACCOUNT=devstoreaccount1\n"
        "export AZURE_STORAGE_KEY='Eby8vdM02xNO=='\n",
        encoding="utf-8",
    )
    rc = main(
        [
            "--env-file",
            str(env_file),
            "storage",
            "--provider",
            "azureblob",
            "--endpoint",
            "http://127.0.0.1:10000/devstoreaccount1",
            "--container",
            "testcontainer",
            "--option",
            "force_path_style=true",
            "--cleanup",
            "--json",
        ]
    )
    out = _last_json(capsys.readouterr().out)
    assert rc == 0, out
    (handle,) = storage_factory.opened
    assert handle.spec.credential.identity == "devstoreaccount1"
    assert handle.spec.credential.secret == "Eby8vdM02xNO=="
    assert handle.spec.extra_options["force_path_style"] == "true"
    assert handle.containers == {}
    assert out["endpoint"] == "http://127.0.0.1:10000/devstoreaccount1"


def test_cli_rejects_malformed_option(clean_env, fake_registry):
    with pytest.raises(SystemExit):
        main(["database", "--provider", "aws-rds", "--endpoint", JDBC, "--option", "novalue"])


def test_cli_reports_malformed_settings(clean_env, monkeypatch):
    monkeypatch.setenv("CLOUDBIND_VALIDATION_TIMEOUT", "soon")
    with pytest.raises(SystemExit, match="Invalid cloudbind settings"):
        main(["providers"])
