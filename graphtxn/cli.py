"""
Process entry — install the schema, run the toggle, print what happened.

Usage:
    python -m graphtxn
    python -m graphtxn --backend=memory --runs=3
    python -m graphtxn --address=dgraph:9080 --terms="Ann Lee" --balance=10

This is the only place that decides whether the process terminates:
everything below it returns Results.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence

import structlog
from kungfu import Result, Ok, Error

from graphtxn._errors import StoreError
from graphtxn.config import Settings, get_settings
from graphtxn.observability import configure_logging
from graphtxn.store import DEFAULT_SCHEMA, DgraphGateway, Gateway, MemoryGateway
from graphtxn.workflow import Action, ToggleOutcome, ToggleRequest, WorkflowError, toggle

logger = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Arguments
# ═══════════════════════════════════════════════════════════════════════════════


def _positive(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="graphtxn",
        description="Create the record if the query finds nothing, delete the first match otherwise",
    )
    parser.add_argument("--backend", "-b", choices=["dgraph", "memory"], help="Store backend")
    parser.add_argument("--address", "-a", help="Dgraph gRPC address (default: localhost:9080)")
    parser.add_argument("--terms", "-t", help="Words matched against the name index")
    parser.add_argument("--name", help="Name of a created record (default: terms)")
    parser.add_argument("--balance", type=int, help="Balance of a created record")
    parser.add_argument("--type", dest="type_tag", help="Type label of a created record")
    parser.add_argument(
        "--drop-all",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Drop all data and schema first",
    )
    parser.add_argument("--runs", "-n", type=_positive, default=1, help="Toggle this many times (default: 1)")
    parser.add_argument("--log-level", help="Logging level")
    parser.add_argument("--log-format", choices=["json", "console"], help="Log renderer")
    return parser


def resolve_settings(args: argparse.Namespace, base: Settings) -> Settings:
    """Command-line values override environment settings."""
    overrides = {
        key: value
        for key, value in vars(args).items()
        if value is not None and key in Settings.model_fields
    }
    return base.model_copy(update=overrides)


def make_request(settings: Settings) -> ToggleRequest:
    return ToggleRequest(
        terms=settings.terms,
        name=settings.name,
        balance=settings.balance,
        type_tag=settings.type_tag,
        placeholder=settings.placeholder,
    )


def open_gateway(settings: Settings) -> Gateway:
    match settings.backend:
        case "memory":
            return MemoryGateway()
        case _:
            return DgraphGateway.connect(settings.address)


# ═══════════════════════════════════════════════════════════════════════════════
# Run
# ═══════════════════════════════════════════════════════════════════════════════


async def run(
    settings: Settings,
    runs: int = 1,
    gateway: Gateway | None = None,
) -> Result[list[ToggleOutcome], StoreError | WorkflowError]:
    """Set up the store and toggle ``runs`` times, stopping at the first error."""
    gateway = gateway if gateway is not None else open_gateway(settings)
    request = make_request(settings)
    outcomes: list[ToggleOutcome] = []

    try:
        if settings.drop_all:
            dropped = await gateway.drop_all()
            if isinstance(dropped, Error):
                return Error(dropped.value)
            logger.info("store.dropped")

        installed = await gateway.install_schema(DEFAULT_SCHEMA)
        if isinstance(installed, Error):
            return Error(installed.value)
        logger.info("schema.installed", backend=settings.backend)

        for _ in range(runs):
            match await toggle(gateway, request):
                case Ok(outcome):
                    print_outcome(outcome)
                    outcomes.append(outcome)
                case Error(e):
                    return Error(e)
    finally:
        await gateway.close()

    return Ok(outcomes)


def print_outcome(outcome: ToggleOutcome) -> None:
    print(outcome.observed.raw.decode())
    match outcome.action:
        case Action.CREATE:
            print(f"✓ Created {outcome.decision.record.name!r} as {outcome.created_uid}")
        case Action.DELETE:
            print(f"✓ Deleted {outcome.decision.target}")
    print(outcome.confirmation.raw.decode())


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = resolve_settings(args, get_settings())
    configure_logging(settings.log_level, settings.log_format)

    match asyncio.run(run(settings, args.runs)):
        case Ok(_):
            return
        case Error(e):
            logger.error("graphtxn.failed", kind=e.kind.name, error=str(e))
            print(f"✗ Failed: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    main()
