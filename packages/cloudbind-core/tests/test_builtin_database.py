from __future__ import annotations

from types import SimpleNamespace

import pytest
import sqlalchemy as sa

from cloudbind.core.builtins import database as dbmod
from cloudbind.core.builtins.database import (
    AZURE_DB_TOKEN_SCOPE,
    AzureDatabaseFactory,
    RdsFactory,
    SqlAlchemyDbHandle,
    SqlAlchemyFactory,
    to_sqlalchemy_url,
)
from cloudbind.core.spec import ConnectionSpec, Credential, ProviderFamily


def _spec(endpoint: str, cred: Credential = Credential("admin", ""), key: str = "aws-rds", **opts) -> ConnectionSpec:
    return ConnectionSpec(
        provider_key=key,
        family=ProviderFamily.DATABASE,
        credential=cred,
        endpoint=endpoint,
        extra_options={k: str(v) for k, v in opts.items()},
    )


def test_jdbc_mysql_url():
    url = to_sqlalchemy_url(_spec("jdbc:mysql://h:3306/d"))
    assert url.drivername == "mysql+pymysql"
    assert (url.host, url.port, url.database) == ("h", 3306, "d")
    assert url.username == "admin"
    assert url.password is None


def test_jdbc_postgres_url_keeps_query_and_password():
    url = to_sqlalchemy_url(
        _spec("jdbc:postgresql://myserver.postgres.database.azure.com:5432/mydatabase?sslmode=require", key="azure-database"),
        password="pw",
    )
    assert url.drivername == "postgresql+psycopg2"
    assert url.query == {"sslmode": "require"}
    assert url.password == "pw"


def test_driver_option_overrides_drivername():
    url = to_sqlalchemy_url(_spec("postgresql://h:5432/d", driver="postgresql+psycopg"))
    assert url.drivername == "postgresql+psycopg"


def test_handle_metadata_and_probe_on_sqlite():
    engine = sa.create_engine("sqlite://")
    h = SqlAlchemyDbHandle(_spec("jdbc:mysql://h:3306/d"), engine)
    meta = h.metadata()
    assert meta["product_name"] == "sqlite"
    assert meta["driver_name"] == "pysqlite"
    assert meta["url"] == "sqlite://"
    assert meta["product_version"]
    assert h.is_valid(5) is True
    h.close()


class _CapturingHandle:
    def __init__(self, spec, engine):
        self.spec = spec
        self.engine = engine


@pytest.fixture()
def captured_engine(monkeypatch):
    """Swap create_engine for an in-memory sqlite engine and skip the real connect."""
    real_create_engine = sa.create_engine
    seen: dict = {}

    def _create_engine(url, **kwargs):
        seen["url"] = url
        seen["kwargs"] = kwargs
        return real_create_engine("sqlite://")

    monkeypatch.setattr(sa, "create_engine", _create_engine)
    monkeypatch.setattr(dbmod, "SqlAlchemyDbHandle", _CapturingHandle)
    return seen


def _fire_do_connect(engine) -> dict:
    cparams: dict = {}
    for fn in engine.dialect.dispatch.do_connect:
        fn(engine.dialect, None, [], cparams)
    return cparams


def test_static_password_goes_into_url(captured_engine):
    h = SqlAlchemyFactory().open(_spec("jdbc:mysql://h:3306/d", Credential("admin", "s3cr3t"), connect_timeout=7))
    assert captured_engine["url"].password == "s3cr3t"
    assert captured_engine["kwargs"]["connect_args"] == {"connect_timeout": 7, "read_timeout": 7, "write_timeout": 7}
    assert captured_engine["kwargs"]["pool_pre_ping"] is True
    assert _fire_do_connect(h.engine) == {}


def test_rds_ambient_injects_iam_token(captured_engine, monkeypatch):
    import boto3

    calls = []

    class FakeRds:
        def generate_db_auth_token(self, **kwargs):
            calls.append(kwargs)
            return f"token-{len(calls)}"

    monkeypatch.setattr(boto3, "client", lambda service, region_name=None: FakeRds())
    h = RdsFactory().open(_spec("jdbc:mysql://db.rds.amazonaws.com:3306/mydb", region="eu-west-1"))

    assert captured_engine["url"].password is None
    assert _fire_do_connect(h.engine) == {"password": "token-1"}
    assert _fire_do_connect(h.engine) == {"password": "token-2"}
    assert calls[0] == {
        "DBHostname": "db.rds.amazonaws.com",
        "Port": 3306,
        "DBUsername": "admin",
        "Region": "eu-west-1",
    }


def test_rds_static_password_skips_token(captured_engine, monkeypatch):
    import boto3

    def _boom(*a, **kw):
        raise AssertionError("boto3 must not be used for static passwords")

    monkeypatch.setattr(boto3, "client", _boom)
    h = RdsFactory().open(_spec("jdbc:mysql://h:3306/d", Credential("admin", "pw")))
    assert _fire_do_connect(h.engine) == {}


def test_azure_database_ambient_injects_entra_token(captured_engine, monkeypatch):
    import azure.identity as identity_mod

    scopes = []

    class FakeCredential:
        def get_token(self, scope):
            scopes.append(scope)
            return SimpleNamespace(token="entra-token")

    monkeypatch.setattr(identity_mod, "DefaultAzureCredential", FakeCredential)
    h = AzureDatabaseFactory().open(
        _spec("jdbc:postgresql://srv.postgres.database.azure.com:5432/db?sslmode=require", key="azure-database")
    )
    assert _fire_do_connect(h.engine) == {"password": "entra-token"}
    assert scopes == [AZURE_DB_TOKEN_SCOPE]


def test_failed_connect_disposes_engine(monkeypatch):
    disposed = []

    class FakeEngine:
        def connect(self):
            raise sa.exc.OperationalError("connect", {}, Exception("refused"))

        def dispose(self):
            disposed.append(True)

    monkeypatch.setattr(sa, "create_engine", lambda url, **kw: FakeEngine())
    with pytest.raises(sa.exc.OperationalError):
        SqlAlchemyFactory().open(_spec("jdbc:mysql://h:3306/d", Credential("admin", "pw")))
    assert disposed == [True]


def test_postgres_connect_args_bound_statements():
    spec = _spec("jdbc:postgresql://h:5432/d", connect_timeout="2.5", key="azure-database")
    assert SqlAlchemyFactory().connect_args(spec) == {
        "connect_timeout": 3,
        "options": "-c statement_timeout=3000",
    }


def test_unknown_driver_gets_no_timeout_args():
    spec = _spec("sqlite://h:1/d", connect_timeout="5")
    assert SqlAlchemyFactory().connect_args(spec) == {}
    assert SqlAlchemyFactory().connect_args(_spec("jdbc:mysql://h:3306/d")) == {}


def test_close_leaves_connection_to_running_liveness_check():
    engine = sa.create_engine("sqlite://")
    h = SqlAlchemyDbHandle(_spec("jdbc:mysql://h:3306/d"), engine)
    conn = h._conn
    h._busy.acquire()
    try:
        h.close()
        assert conn.closed is False
    finally:
        h._busy.release()
    conn.close()


def test_close_after_liveness_check_closes_connection():
    engine = sa.create_engine("sqlite://")
    h = SqlAlchemyDbHandle(_spec("jdbc:mysql://h:3306/d"), engine)
    assert h.is_valid(1) is True
    conn = h._conn
    h.close()
    assert conn.closed is True
