"""dbscope CLI — validate manifests, check SQL, run the servers, and query audit logs."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

# Ensure project root is importable when running as script
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


def cmd_validate(args: argparse.Namespace) -> None:
    """Validate a dbscope.yaml manifest."""
    from runtime.manifest_loader import load_manifest

    path = args.manifest
    try:
        manifest = load_manifest(path)
    except FileNotFoundError:
        print(f"Error: manifest not found: {path}", file=sys.stderr)
        sys.exit(1)
    except Exception as exc:
        print(f"Error: invalid manifest: {exc}", file=sys.stderr)
        sys.exit(1)

    policy = manifest.security_policy()
    print(f"Manifest OK: {manifest.app.name} v{manifest.app.version}")
    print(f"  Policy mode:   {manifest.runtime.policy_mode.value}")
    print(f"  Driver:        {manifest.database.driver.value}")
    print(f"  Statements:    {', '.join(sorted(policy.allowed_statement_prefixes))}")
    print(f"  Max row limit: {policy.max_row_limit}")
    print(f"  Allowed tools: {', '.join(manifest.policy.tools.allow) or '(none)'}")
    print(f"  Export dir:    {manifest.export.dir}")
    print(f"  Audit path:    {manifest.audit.path}")

    # Validate tool references exist
    from runtime.tools.registry import create_default_registry

    registry = create_default_registry()
    for tool_name in manifest.policy.tools.allow:
        if tool_name not in registry:
            print(f"  Warning: tool '{tool_name}' is not a known built-in tool")


def cmd_check(args: argparse.Namespace) -> None:
    """Classify a SQL string and show the bounded form that would run."""
    from contracts.security import DEFAULT_ALLOWED_STATEMENTS, DEFAULT_MAX_ROW_LIMIT
    from runtime.guard.limits import enforce_limit
    from runtime.guard.statement import has_ordering, validate_statement

    prefixes = DEFAULT_ALLOWED_STATEMENTS
    max_limit = DEFAULT_MAX_ROW_LIMIT
    if args.manifest:
        from runtime.manifest_loader import load_manifest

        try:
            policy = load_manifest(args.manifest).security_policy()
        except Exception as exc:
            print(f"Error loading manifest: {exc}", file=sys.stderr)
            sys.exit(1)
        prefixes = tuple(policy.allowed_statement_prefixes)
        max_limit = policy.max_row_limit
    if args.max_limit is not None:
        max_limit = args.max_limit

    outcome = validate_statement(args.sql, prefixes)
    if not outcome.accepted or outcome.normalized_statement is None:
        print(f"REJECTED: {outcome.reason}")
        sys.exit(1)

    print("ACCEPTED")
    print(f"  Bounded:  {enforce_limit(outcome.normalized_statement, max_limit)}")
    print(f"  Ordered:  {'yes' if has_ordering(outcome.normalized_statement) else 'no (not exportable)'}")


def cmd_run(args: argparse.Namespace) -> None:
    """Start the dbscope HTTP server."""
    os.environ["DBSCOPE_MANIFEST"] = args.manifest

    # Validate first
    from runtime.manifest_loader import load_manifest

    try:
        manifest = load_manifest(args.manifest)
    except Exception as exc:
        print(f"Error loading manifest: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Starting dbscope runtime for '{manifest.app.name}'...")
    print(f"  Manifest: {args.manifest}")
    print(f"  Host:     {args.host}")
    print(f"  Port:     {args.port}")
    print(f"  Policy:   {manifest.runtime.policy_mode.value}")
    print()

    import uvicorn

    uvicorn.run(
        "runtime.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )


def cmd_mcp(args: argparse.Namespace) -> None:
    """Serve the tools over MCP stdio."""
    os.environ["DBSCOPE_MANIFEST"] = args.manifest

    from runtime.mcp_server import mcp

    mcp.run(transport="stdio")


def cmd_logs(args: argparse.Namespace) -> None:
    """Query audit logs."""
    from contracts.audit import AuditEvent, LogLevel
    from runtime.audit.query import query_by_request, query_filtered, tail

    log_path = args.log_path

    if not Path(log_path).exists():
        print(f"No audit log found at {log_path}", file=sys.stderr)
        sys.exit(1)

    if args.request_id:
        entries = query_by_request(log_path, args.request_id)
    elif args.event or args.level:
        try:
            event = AuditEvent(args.event) if args.event else None
            level = LogLevel(args.level) if args.level else None
        except ValueError:
            valid = ", ".join(e.value for e in AuditEvent)
            print(f"Unknown event type or level: {args.event or args.level}", file=sys.stderr)
            print(f"Valid events: {valid}", file=sys.stderr)
            sys.exit(1)
        entries, _ = query_filtered(log_path, event=event, min_level=level, limit=args.limit)
        entries.reverse()
    else:
        entries = tail(log_path, n=args.limit)

    if not entries:
        print("No matching audit entries.")
        return

    for entry in entries:
        record = json.loads(entry.model_dump_json())
        if args.json:
            print(json.dumps(record))
        else:
            ts = record["ts"][:19]
            event = record["event"]
            level = record["level"].upper()
            rid = record["request_id"][:8]
            detail = json.dumps(record.get("detail", {}))
            print(f"{ts}  {level:5s} [{event:13s}]  {rid}  {record['message']}  {detail}")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="dbscope",
        description="dbscope — read-only database access with query safety checks",
    )
    sub = parser.add_subparsers(dest="command")

    # validate
    p_val = sub.add_parser("validate", help="Validate a dbscope.yaml manifest")
    p_val.add_argument(
        "manifest", nargs="?", default="dbscope.yaml", help="Path to manifest"
    )
    p_val.set_defaults(func=cmd_validate)

    # check
    p_chk = sub.add_parser("check", help="Validate and bound a SQL statement offline")
    p_chk.add_argument("sql", help="SQL statement to check")
    p_chk.add_argument("--manifest", "-m", help="Take the security policy from a manifest")
    p_chk.add_argument("--max-limit", type=int, help="Override the maximum row limit")
    p_chk.set_defaults(func=cmd_check)

    # run
    p_run = sub.add_parser("run", help="Start the dbscope HTTP server")
    p_run.add_argument(
        "manifest", nargs="?", default="dbscope.yaml", help="Path to manifest"
    )
    p_run.add_argument("--host", default="127.0.0.1", help="Bind address")
    p_run.add_argument("--port", type=int, default=8080, help="Port")
    p_run.add_argument("--reload", action="store_true", help="Enable auto-reload")
    p_run.set_defaults(func=cmd_run)

    # mcp
    p_mcp = sub.add_parser("mcp", help="Serve tools over MCP stdio")
    p_mcp.add_argument(
        "manifest", nargs="?", default="dbscope.yaml", help="Path to manifest"
    )
    p_mcp.set_defaults(func=cmd_mcp)

    # logs
    p_logs = sub.add_parser("logs", help="Query audit logs")
    p_logs.add_argument("log_path", help="Path to audit JSONL file")
    p_logs.add_argument("--request-id", "-r", help="Filter by request ID")
    p_logs.add_argument("--event", "-e", help="Filter by event type")
    p_logs.add_argument("--level", "-l", help="Minimum level (debug, info, warn, error)")
    p_logs.add_argument("--limit", "-n", type=int, default=20, help="Max entries")
    p_logs.add_argument("--json", action="store_true", help="Output raw JSON")
    p_logs.set_defaults(func=cmd_logs)

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
