import argparse
import json
import sys

from pydantic import ValidationError

from cloudbind.core.observability import configure_logging
from cloudbind.core.pipeline import run_database, run_storage
from cloudbind.core.registry.providers import default_providers
from cloudbind.core.runtime.envfiles import build_env_snapshot
from cloudbind.core.runtime.settings import load_settings


def _parse_options(items) -> dict:
    out = {}
    for raw in items or []:
        if "=" not in raw:
            raise SystemExit(f"--option expects key=value, got: {raw!r}")
        k, v = raw.split("=", 1)
        out[k.strip()] = v
    return out


def _print_outcome(outcome, *, as_json: bool) -> None:
    if as_json:
        out = {
            "state": outcome.state.value,
            "failed_at": outcome.failed_at.value if outcome.failed_at else None,
            "provider": outcome.spec.provider_key if outcome.spec else None,
            "endpoint": outcome.spec.endpoint if outcome.spec else None,
            "auth_mode": outcome.credential.auth_mode.value if outcome.credential else None,
            "report": outcome.report.model_dump() if outcome.report else None,
            "error": f"{type(outcome.error).__name__}: {outcome.error}" if outcome.error else None,
        }
        print(json.dumps(out, ensure_ascii=False))
        return

    if outcome.report is not None:
        r = outcome.report
        print("=== Connection Information ===")
        print(f"- Product: {r.vendor_product_name}")
        print(f"- Version: {r.vendor_version}")
        print(f"- Driver Name: {r.driver_name}")
        print(f"- Driver Version: {r.driver_version}")
        print(f"- Endpoint: {r.effective_endpoint}")
        print(f"- User: {r.effective_user}")
        print(f"- Connection valid: {r.is_valid}")
    if outcome.error is not None:
        print(f"ERROR: {outcome.error}", file=sys.stderr)
    print(outcome.state.value)


def main(argv=None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = argparse.ArgumentParser(prog="cloudbind", description="cloudbind CLI")
    parser.add_argument("--env-file", action="append", default=[], help="dotenv file merged into the env snapshot (repeatable)")
    sp = parser.add_subparsers(dest="cmd", required=True)

    provp = sp.add_parser("providers", help="List registered providers")
    provp.add_argument("--json", action="store_true", help="Output machine-readable JSON")

    def common(p):
        p.add_argument("--provider", required=True, help="Provider key (see `cloudbind providers`)")
        p.add_argument("--endpoint", default=None)
        p.add_argument("--identity", default=None, help="Explicit identity (account name / username)")
        p.add_argument("--secret", default=None, help="Explicit secret; empty string selects ambient identity")
        p.add_argument("--option", action="append", default=[], help="Provider option key=value (repeatable)")
        p.add_argument("--timeout", type=float, default=None, help="Liveness probe timeout seconds")
        p.add_argument("--json", action="store_true", help="Output machine-readable JSON")

    stp = sp.add_parser("storage", help="Resolve, bind and exercise an object store")
    common(stp)
    stp.add_argument("--container", default=None)
    stp.add_argument("--key", default=None)
    stp.add_argument("--connection-string", default=None)
    stp.add_argument("--cleanup", action="store_true", help="Remove the object and container afterwards")

    dbp = sp.add_parser("database", help="Resolve, bind and validate a database connection")
    common(dbp)

    args = parser.parse_args(argv)
    env = build_env_snapshot(args.env_file)
    try:
        settings = load_settings(env=env)
    except ValidationError as e:
        raise SystemExit(f"Invalid cloudbind settings: {e}")
    configure_logging(settings)

    if args.cmd == "providers":
        providers = default_providers()
        if args.json:
            print(json.dumps(
                [{"key": e.key, "family": e.family.value, "description": e.description} for e in providers],
                ensure_ascii=False,
            ))
        else:
            for e in providers:
                print(f"{e.key:<16} {e.family.value:<9} {e.description}")
        return 0

    common_kwargs = dict(
        identity=args.identity,
        secret=args.secret,
        extra_options=_parse_options(args.option),
        timeout_seconds=args.timeout,
    )

    if args.cmd == "storage":
        if args.cleanup:
            settings = settings.model_copy(update={"cleanup": True})
        outcome = run_storage(
            args.provider,
            env=env,
            container=args.container,
            key=args.key,
            settings=settings,
            endpoint=args.endpoint,
            connection_string=args.connection_string,
            **common_kwargs,
        )
    elif args.cmd == "database":
        outcome = run_database(
            args.provider,
            env=env,
            endpoint=args.endpoint,
            settings=settings,
            **common_kwargs,
        )
    else:
        return 1

    _print_outcome(outcome, as_json=bool(args.json))
    return 0 if outcome.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
