"""Resolve -> bind -> acquire -> validate, one resource per run.

    UNRESOLVED -> CREDENTIAL_RESOLVED -> SPEC_BOUND -> ACQUIRED -> VALIDATED | FAILED

Any error short-circuits to FAILED; there are no retries. The handle is
closed on every exit path, and a factory that fails to open never leaves a
handle behind.
"""

from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Mapping, Optional

from cloudbind.core.binding import bind_provider
from cloudbind.core.connectors.base import ProbeableHandle, StorageHandle
from cloudbind.core.credentials import mask_secret, resolve_credential
from cloudbind.core.exception import AcquisitionError, ConfigError, ConnectorError
from cloudbind.core.observability import PipelineObserver, PipelineSummary, log_event
from cloudbind.core.registry.providers import ProviderRegistry, default_providers
from cloudbind.core.runtime.settings import Settings, load_settings
from cloudbind.core.spec import ConnectionReport, ConnectionSpec, Credential, ProviderFamily
from cloudbind.core.validation import validate_connection

log = logging.getLogger("cloudbind.core.pipeline")

Work = Callable[[ProbeableHandle], None]


class PipelineState(str, enum.Enum):
    UNRESOLVED = "UNRESOLVED"
    CREDENTIAL_RESOLVED = "CREDENTIAL_RESOLVED"
    SPEC_BOUND = "SPEC_BOUND"
    ACQUIRED = "ACQUIRED"
    VALIDATED = "VALIDATED"
    FAILED = "FAILED"


@dataclass
class PipelineOutcome:
    state: PipelineState
    failed_at: Optional[PipelineState] = None
    credential: Optional[Credential] = None
    spec: Optional[ConnectionSpec] = None
    report: Optional[ConnectionReport] = None
    error: Optional[Exception] = None
    summary: Optional[PipelineSummary] = None

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.VALIDATED and self.report is not None and self.report.is_valid


@contextmanager
def acquire(spec: ConnectionSpec, providers: ProviderRegistry) -> Iterator[ProbeableHandle]:
    """Open the handle for `spec` and always close it."""
    factory = providers.get(spec.provider_key).factory
    try:
        handle = factory.open(spec)
    except Exception as e:
        raise AcquisitionError(spec.provider_key, f"open failed: {e}") from e
    try:
        yield handle
    finally:
        try:
            handle.close()
        except Exception:
            log.warning("handle close failed provider=%s; continuing", spec.provider_key, exc_info=True)


def default_options(settings: Settings, family: ProviderFamily, timeout_seconds: float | None = None) -> Dict[str, str]:
    opts: Dict[str, str] = {"region": settings.aws_region}
    budget = settings.validation_timeout_seconds if timeout_seconds is None else timeout_seconds
    if budget > 0:
        # vendor clients share the liveness budget for connect/read timeouts
        opts["connect_timeout"] = f"{budget:g}"
    if family is ProviderFamily.STORAGE and settings.s3_path_style:
        opts["force_path_style"] = "true"
    return opts


def run_pipeline(
    provider_key: str,
    family: ProviderFamily,
    *,
    env: Mapping[str, str],
    identity: str | None = None,
    secret: str | None = None,
    connection_string: str | None = None,
    endpoint: str | None = None,
    extra_options: Mapping[str, str] | None = None,
    timeout_seconds: float | None = None,
    settings: Settings | None = None,
    providers: ProviderRegistry | None = None,
    work: Work | None = None,
) -> PipelineOutcome:
    settings = settings or load_settings(env=dict(env))
    providers = providers if providers is not None else default_providers()
    timeout = settings.validation_timeout_seconds if timeout_seconds is None else timeout_seconds

    obs = PipelineObserver(settings=settings, logger=log, provider=provider_key, family=family.value)
    obs.start(state=PipelineState.UNRESOLVED.value)
    outcome = PipelineOutcome(state=PipelineState.UNRESOLVED)

    def fail(err: Exception) -> PipelineOutcome:
        outcome.failed_at = outcome.state
        outcome.state = PipelineState.FAILED
        outcome.error = err
        obs.transition(state=PipelineState.FAILED.value, failed_at=outcome.failed_at.value)
        outcome.summary = obs.finish(final_state=PipelineState.FAILED.value, error=err)
        return outcome

    # 1) credential
    env_names = providers.get(provider_key).env_names if provider_key in providers else None
    if connection_string is None and env_names is not None and env_names.connection_string_var:
        connection_string = env.get(env_names.connection_string_var) or None

    res = resolve_credential(
        identity,
        secret,
        env=env,
        connection_string=connection_string,
        family=family,
        env_names=env_names,
    )
    if not res.ok:
        return fail(res.error)
    cred = res.unwrap()
    outcome.credential = cred
    outcome.state = PipelineState.CREDENTIAL_RESOLVED
    obs.transition(
        state=outcome.state.value,
        identity=cred.identity,
        auth_mode=cred.auth_mode.value,
        secret=mask_secret(cred.secret),
    )

    # 2) bind
    opts = default_options(settings, family, timeout)
    opts.update({str(k): str(v) for k, v in (extra_options or {}).items()})
    bound = bind_provider(provider_key, endpoint, cred, opts, family, providers=providers)
    if not bound.ok:
        return fail(bound.error)
    spec = bound.unwrap()
    outcome.spec = spec
    outcome.state = PipelineState.SPEC_BOUND
    obs.transition(state=outcome.state.value, endpoint=spec.endpoint or "(provider default)", options=spec.extra_options)

    # 3) acquire + 4) validate
    try:
        with acquire(spec, providers) as handle:
            outcome.state = PipelineState.ACQUIRED
            obs.transition(state=outcome.state.value, handle=type(handle).__name__)

            checked = validate_connection(handle, timeout, provider_key=spec.provider_key)
            if not checked.ok:
                return fail(checked.error)
            outcome.report = checked.unwrap()
            log_event(log, settings=settings, level=logging.INFO, event="connection_report", **outcome.report.model_dump())

            if work is not None:
                try:
                    work(handle)
                except (ConfigError, ConnectorError):
                    raise
                except Exception as e:
                    raise ConnectorError(f"[{spec.provider_key}] {type(e).__name__}: {e}") from e
    except (ConfigError, ConnectorError) as e:
        return fail(e)

    outcome.state = PipelineState.VALIDATED
    obs.transition(state=outcome.state.value, is_valid=outcome.report.is_valid)
    outcome.summary = obs.finish(final_state=outcome.state.value)
    return outcome


def run_storage_roundtrip(
    handle: StorageHandle,
    *,
    container: str,
    key: str,
    content: bytes,
    cleanup: bool = False,
) -> bytes:
    """Create container if missing, upload, list, download, optionally clean up."""
    log.info("Checking if container exists: %s", container)
    if not handle.container_exists(container):
        log.info("Creating container: %s", container)
        handle.create_container(container)
    else:
        log.info("Using existing container: %s", container)

    log.info("Uploading object: %s", key)
    handle.put_object(container, key, content)

    names = [m.key for m in handle.list_objects(container)]
    for n in names:
        log.debug("- %s", n)
    if key not in names:
        raise ConnectorError(f"Container {container} does not contain expected object: {key}")

    log.info("Downloading object: %s", key)
    data = handle.get_object(container, key)
    if data is None:
        raise ConnectorError(f"Object not found after upload: {container}/{key}")
    log.info("Downloaded %d bytes", len(data))

    if cleanup:
        log.info("Cleaning up - removing object %s and container %s", key, container)
        handle.remove_object(container, key)
        handle.delete_container(container)
    return data


def run_storage(
    provider_key: str,
    *,
    env: Mapping[str, str],
    container: str | None = None,
    key: str | None = None,
    content: bytes | None = None,
    settings: Settings | None = None,
    **kwargs,
) -> PipelineOutcome:
    settings = settings or load_settings(env=dict(env))
    container = container or settings.default_container
    key = key or settings.object_key
    payload = content if content is not None else f"Hello, cloudbind {provider_key}!".encode("utf-8")

    def _work(handle: ProbeableHandle) -> None:
        run_storage_roundtrip(handle, container=container, key=key, content=payload, cleanup=settings.cleanup)  # type: ignore[arg-type]

    return run_pipeline(provider_key, ProviderFamily.STORAGE, env=env, settings=settings, work=_work, **kwargs)


def run_database(
    provider_key: str,
    *,
    env: Mapping[str, str],
    endpoint: str | None,
    **kwargs,
) -> PipelineOutcome:
    return run_pipeline(provider_key, ProviderFamily.DATABASE, env=env, endpoint=endpoint, **kwargs)
