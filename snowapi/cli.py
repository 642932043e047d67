"""Command line interface: ``python -m snowapi``.

Reads connection settings from the ``SNOWAPI_*`` environment variables
(see ``ClientConfig.from_env``) and prints JSON to stdout.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from typing import Any

from . import __version__
from .config import ClientConfig
from .errors import SnowAPIError, UnexpectedStatusError
from .sql_api import Client, ExecutionResult, StatementRequest


def _result_to_json(result: ExecutionResult) -> dict[str, Any]:
    data = dataclasses.asdict(result)
    data["status"] = result.status.value
    return data


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, indent=2, default=str))


def _int_at_least(minimum: int):
    def parse(value: str) -> int:
        try:
            number = int(value)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
        if number < minimum:
            raise argparse.ArgumentTypeError(f"must be >= {minimum}, got {number}")
        return number

    return parse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snowapi", description="Run statements through the Snowflake SQL API."
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging (default: False)"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    query = sub.add_parser("query", help="Submit a statement and print its result")
    query.add_argument("statement", help="SQL text")
    query.add_argument(
        "--async", dest="async_", action="store_true",
        help="Return the handle immediately instead of waiting",
    )
    query.add_argument(
        "--timeout", type=int, default=60,
        help="Server-side statement timeout in seconds (default: 60)",
    )
    query.add_argument(
        "--poll-interval", type=float, default=1.0,
        help="Seconds between status polls (default: 1.0)",
    )
    query.add_argument(
        "--max-attempts", type=_int_at_least(1), default=60,
        help="Maximum number of status polls (default: 60)",
    )
    query.add_argument("--request-id", help="Idempotency key for safe resubmission")

    status = sub.add_parser("status", help="Print the status of a statement")
    status.add_argument("handle", help="Statement handle")
    status.add_argument(
        "--partition", type=_int_at_least(0), default=0, help="Result partition (default: 0)"
    )

    cancel = sub.add_parser("cancel", help="Cancel a running statement")
    cancel.add_argument("handle", help="Statement handle")

    return parser


def _run(args: argparse.Namespace, client: Client) -> None:
    if args.command == "query":
        request = StatementRequest(
            statement=args.statement,
            timeout=args.timeout,
            request_id=args.request_id,
        )
        result = client.submit(request, async_=args.async_)
        if result.is_running and not args.async_:
            if not result.statement_handle:
                raise UnexpectedStatusError(
                    status=result.status_code,
                    message="running statement response has no statementHandle",
                )
            result = client.wait_until_complete(
                result.statement_handle, args.poll_interval, args.max_attempts
            )
        _print_json(_result_to_json(result))
    elif args.command == "status":
        result, _ = client.poll(args.handle, args.partition)
        _print_json(_result_to_json(result))
    elif args.command == "cancel":
        _print_json(_result_to_json(client.cancel(args.handle)))


def main(argv: list[str] | None = None, client: Client | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if client is None:
            client = Client(ClientConfig.from_env())
        with client:
            _run(args, client)
    except SnowAPIError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
