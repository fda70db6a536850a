from __future__ import annotations

import logging
import math
import threading
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qsl, urlsplit

from cloudbind.core.binding import strip_jdbc
from cloudbind.core.builtins._base import _HandleBase
from cloudbind.core.connectors import require
from cloudbind.core.spec import ConnectionSpec

log = logging.getLogger("cloudbind.core.builtin.database")

# JDBC subprotocol -> SQLAlchemy drivername
DRIVERNAMES: Dict[str, str] = {
    "mysql": "mysql+pymysql",
    "mariadb": "mysql+pymysql",
    "postgresql": "postgresql+psycopg2",
    "postgres": "postgresql+psycopg2",
}

AZURE_DB_TOKEN_SCOPE = "https://ossrdbms-aad.database.windows.net/.default"

TokenFn = Callable[[], str]


def _drivername(spec: ConnectionSpec) -> str:
    scheme = urlsplit(strip_jdbc(spec.endpoint or "")).scheme.lower()
    return spec.option("driver") or DRIVERNAMES.get(scheme, scheme)


def to_sqlalchemy_url(spec: ConnectionSpec, *, password: Optional[str] = None):
    """Convert a (JDBC-style) endpoint into a sqlalchemy URL.

        jdbc:mysql://h:3306/d          -> mysql+pymysql://user@h:3306/d
        jdbc:postgresql://h:5432/d?x=y -> postgresql+psycopg2://user@h:5432/d?x=y

    The `driver` extra option overrides the drivername (e.g. postgresql+psycopg).
    """
    sa = require("sqlalchemy")
    parts = urlsplit(strip_jdbc(spec.endpoint or ""))
    database = parts.path.lstrip("/") or None
    return sa.engine.URL.create(
        drivername=_drivername(spec),
        username=spec.credential.identity,
        password=password,
        host=parts.hostname,
        port=parts.port,
        database=database,
        query=dict(parse_qsl(parts.query)),
    )


class SqlAlchemyDbHandle(_HandleBase):
    """One open connection on a dedicated engine; closing disposes both."""

    def __init__(self, spec: ConnectionSpec, engine: Any):
        super().__init__(spec)
        self._engine = engine
        self._conn = engine.connect()
        self._busy = threading.Lock()

    def metadata(self) -> Dict[str, Any]:
        dialect = self._engine.dialect
        server = dialect.server_version_info or ()
        dbapi = getattr(dialect, "dbapi", None)
        return {
            "product_name": dialect.name,
            "product_version": ".".join(str(p) for p in server),
            "driver_name": dialect.driver,
            "driver_version": getattr(dbapi, "__version__", "") if dbapi is not None else "",
            "url": self._engine.url.render_as_string(hide_password=True),
            "user": self._engine.url.username or "",
        }

    def is_valid(self, timeout_seconds: float) -> bool:
        sa = require("sqlalchemy")
        with self._busy:
            try:
                self._conn.execute(sa.text("SELECT 1"))
                return True
            except sa.exc.SQLAlchemyError:
                log.warning("database liveness probe failed", exc_info=True)
                return False

    def close(self) -> None:
        if not self._busy.acquire(blocking=False):
            # A timed-out liveness check still owns the connection; leave it to that thread.
            log.warning("liveness check still running; abandoning its connection")
            self._engine.dispose(close=False)
            return
        try:
            self._conn.close()
        finally:
            self._busy.release()
            self._engine.dispose()


class SqlAlchemyFactory:
    """
    Generic SQLAlchemy factory.

    Static credentials go into the URL. Ambient credentials leave the URL
    password empty and inject a fresh token for every DBAPI connect via the
    engine's do_connect event.
    """

    def token_fn(self, spec: ConnectionSpec) -> Optional[TokenFn]:
        return None

    def connect_args(self, spec: ConnectionSpec) -> Dict[str, Any]:
        raw = spec.option("connect_timeout")
        if not raw:
            return {}
        seconds = max(1, math.ceil(float(raw)))
        driver = _drivername(spec)
        if driver.startswith("mysql"):
            return {"connect_timeout": seconds, "read_timeout": seconds, "write_timeout": seconds}
        if driver.startswith("postgresql"):
            return {"connect_timeout": seconds, "options": f"-c statement_timeout={seconds * 1000}"}
        # other DBAPIs spell their timeouts differently
        return {}

    def open(self, spec: ConnectionSpec) -> SqlAlchemyDbHandle:
        sa = require("sqlalchemy")
        cred = spec.credential
        url = to_sqlalchemy_url(spec, password=None if cred.is_ambient else cred.secret)
        engine = sa.create_engine(url, pool_pre_ping=True, connect_args=self.connect_args(spec))

        token_fn = self.token_fn(spec) if cred.is_ambient else None
        if token_fn is not None:
            @sa.event.listens_for(engine, "do_connect")
            def _inject_token(dialect, conn_rec, cargs, cparams):
                cparams["password"] = token_fn()

        try:
            return SqlAlchemyDbHandle(spec, engine)
        except Exception:
            engine.dispose()
            raise


class RdsFactory(SqlAlchemyFactory):
    """aws-rds: ambient mode uses an RDS IAM auth token generated with boto3."""

    def token_fn(self, spec: ConnectionSpec) -> Optional[TokenFn]:
        boto3 = require("boto3")
        parts = urlsplit(strip_jdbc(spec.endpoint or ""))
        region = spec.option("region") or "us-east-1"
        client = boto3.client("rds", region_name=region)

        def _token() -> str:
            return client.generate_db_auth_token(
                DBHostname=parts.hostname,
                Port=parts.port,
                DBUsername=spec.credential.identity,
                Region=region,
            )

        return _token


class AzureDatabaseFactory(SqlAlchemyFactory):
    """azure-database: ambient mode uses an Entra ID access token (DefaultAzureCredential)."""

    def token_fn(self, spec: ConnectionSpec) -> Optional[TokenFn]:
        DefaultAzureCredential = require("azure.identity:DefaultAzureCredential")
        credential = DefaultAzureCredential()
        scope = spec.option("token_scope") or AZURE_DB_TOKEN_SCOPE

        def _token() -> str:
            return credential.get_token(scope).token

        return _token
