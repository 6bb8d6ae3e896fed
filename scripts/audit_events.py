"""
Command-line access to the Audit Event Service.

Examples:
    python scripts/audit_events.py add --entity User --action CREATE \\
        --event "User alice created" --author admin
    python scripts/audit_events.py list --filter action=CREATE --filter action=UPDATE
    python scripts/audit_events.py get 4b0c7a1e-...
    python scripts/audit_events.py delete 4b0c7a1e-...
"""

import argparse
import json
import sys

import httpx

from audit_api.client import AuditEventClient


def parse_filters(pairs: list) -> dict:
    """Turn repeated ``field=value`` options into keyword filters."""
    filters = {}
    for pair in pairs or []:
        field, sep, value = pair.partition("=")
        if not sep:
            raise SystemExit(f"Invalid filter (expected field=value): {pair}")
        filters.setdefault(field, []).append(value)
    return filters


def main():
    parser = argparse.ArgumentParser(description="Record and query audit events")
    parser.add_argument(
        "--api-url",
        default="http://localhost:8080",
        help="Base URL of the audit event API"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Record a new event")
    add.add_argument("--entity", required=True)
    add.add_argument("--action", required=True)
    add.add_argument("--event", default="")
    add.add_argument("--author", default="")

    listing = commands.add_parser("list", help="List events, newest first")
    listing.add_argument(
        "--filter", "-f",
        action="append",
        help="field=value; repeat a field to match any of its values"
    )

    for name in ("get", "delete"):
        sub = commands.add_parser(name, help=f"{name.capitalize()} one event")
        sub.add_argument("event_id")

    args = parser.parse_args()

    with AuditEventClient(args.api_url) as client:
        try:
            if args.command == "add":
                result = client.create_event(args.entity, args.action, args.event, args.author)
            elif args.command == "list":
                result = client.list_events(**parse_filters(args.filter))
            elif args.command == "get":
                result = client.get_event(args.event_id)
            else:
                client.delete_event(args.event_id)
                result = {"deleted": args.event_id}
        except httpx.HTTPStatusError as e:
            print(f"Error {e.response.status_code}: {e.response.text}", file=sys.stderr)
            sys.exit(1)
        except httpx.ConnectError:
            print(f"Could not connect to API at {args.api_url}", file=sys.stderr)
            sys.exit(1)

    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
