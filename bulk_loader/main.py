"""Command-line bootstrap for the bulk loader (upsert, delete, status)."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from pydantic import BaseModel

from bulk_loader.core.config import Settings, get_settings
from bulk_loader.core.errors import BulkLoadError, BulkLoaderError
from bulk_loader.services import display
from bulk_loader.services.bulk_api import BulkApiClient
from bulk_loader.services.bulk_load import bulk_delete, bulk_status, bulk_upsert

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)-5s | %(message)s",
        datefmt="%H:%M:%S",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _minutes(value: str) -> float:
    minutes = float(value)
    if minutes < 0:
        raise argparse.ArgumentTypeError("wait must be 0 or more minutes")
    return minutes


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bulk-loader",
        description="Load CSV records into an org through the asynchronous Bulk API.",
    )
    parser.add_argument("--instance-url", help="Org instance URL (overrides INSTANCE_URL)")
    parser.add_argument("--access-token", help="Org access token (overrides ACCESS_TOKEN)")
    parser.add_argument("--api-version", help="API version, e.g. 58.0 (overrides API_VERSION)")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    upsert = commands.add_parser("upsert", help="bulk upsert records from a CSV file")
    upsert.add_argument("-s", "--sobjecttype", required=True, help="object type to upsert into")
    upsert.add_argument("-f", "--csvfile", required=True, help="path to the CSV file")
    upsert.add_argument(
        "-i", "--externalid", help="external id field; looked up on the object when omitted"
    )
    upsert.add_argument(
        "-w", "--wait", type=_minutes, default=None, help="minutes to wait for batches to complete"
    )

    delete = commands.add_parser("delete", help="bulk delete records listed in a CSV file")
    delete.add_argument("-s", "--sobjecttype", required=True, help="object type to delete from")
    delete.add_argument("-f", "--csvfile", required=True, help="CSV file with an Id column")
    delete.add_argument(
        "-w", "--wait", type=_minutes, default=None, help="minutes to wait for batches to complete"
    )

    status = commands.add_parser("status", help="view the status of a bulk job or batch")
    status.add_argument("-i", "--jobid", required=True, help="job id")
    status.add_argument("-b", "--batchid", help="batch id")

    return parser


def resolve_settings(args: argparse.Namespace) -> Settings:
    """Apply command-line overrides on top of environment settings."""
    settings = get_settings()
    overrides = {
        "instance_url": args.instance_url,
        "access_token": args.access_token,
        "api_version": args.api_version,
    }
    overrides = {key: value for key, value in overrides.items() if value}
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    if not overrides:
        return settings
    return Settings(**{**settings.model_dump(), **overrides})


async def run_command(args: argparse.Namespace, settings: Settings):
    async with BulkApiClient(settings) as connection:
        if args.command == "upsert":
            return await bulk_upsert(
                connection,
                args.sobjecttype,
                args.csvfile,
                external_id_field=args.externalid,
                wait_minutes=args.wait,
                settings=settings,
            )
        if args.command == "delete":
            return await bulk_delete(
                connection,
                args.sobjecttype,
                args.csvfile,
                wait_minutes=args.wait,
                settings=settings,
            )
        return await bulk_status(connection, args.jobid, args.batchid)


def _to_jsonable(result):
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json", by_alias=True)
    if isinstance(result, list):
        return [_to_jsonable(item) for item in result]
    return result


def print_result(result, as_json: bool) -> None:
    if as_json:
        display.info(json.dumps({"status": 0, "result": _to_jsonable(result)}, indent=2))
        return
    if isinstance(result, list) and result:
        display.info(f"\n{len(result)} batch(es) queued for job {result[0].job_id}.")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = resolve_settings(args)
    configure_logging(settings.log_level)

    try:
        result = asyncio.run(run_command(args, settings))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except BulkLoadError as e:
        logger.debug(f"{len(e.failures)} batch(es) failed, {len(e.outcomes)} succeeded")
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except (BulkLoaderError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print_result(result, args.json)
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
