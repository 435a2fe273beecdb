"""
Catalog snapshot job.

Mounts a catalog view with the given filters, resolves every visible entry
and prints one JSON object per species to stdout.

    python -m dexcatalog.jobs.snapshot --generation 1 --type fire --search char
"""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from typing import Any, TextIO

from dexcatalog.models.filters import CATEGORIES, GENERATIONS
from dexcatalog.services.catalog_client import CatalogClient
from dexcatalog.services.catalog_view import CatalogView, ViewStatus

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dexcatalog.jobs.snapshot",
        description="Print a filtered snapshot of the species catalog as JSON lines.",
    )
    parser.add_argument(
        "--generation",
        type=int,
        action="append",
        default=[],
        choices=sorted(GENERATIONS),
        help="Generation to include (repeatable)",
    )
    parser.add_argument(
        "--type",
        dest="types",
        action="append",
        default=[],
        choices=sorted(CATEGORIES),
        help="Type to include (repeatable)",
    )
    parser.add_argument("--search", default="", help="Name substring to match")
    parser.add_argument(
        "--pages",
        type=int,
        default=1,
        help="Pages to load when browsing without generation or type filters",
    )
    return parser


async def run_snapshot(
    client: CatalogClient,
    generations: Sequence[int] = (),
    types: Sequence[str] = (),
    search: str = "",
    pages: int = 1,
    view: CatalogView | None = None,
) -> list[dict[str, Any]]:
    """
    Collect the resolved visible entries for a filter selection.

    Args:
        client: Catalog client
        generations: Generation numbers to scan
        types: Type names to scan or filter by
        search: Raw search input
        pages: Pages to load in unfiltered browsing
        view: View to drive; a new one is created when omitted

    Returns:
        One record per visible species, in catalog order

    Raises:
        RuntimeError: If the catalog could not be acquired
    """
    view = view or CatalogView(client)
    await view.mount()
    try:
        if generations or types:
            await view.set_filters(types, generations)
        for _ in range(pages - 1):
            if not await view.load_more_pages():
                break

        view.set_search_input(search)
        view.debouncer.flush()
        await view.drain()

        if view.view_status() is ViewStatus.ERROR:
            errors = [state.error for state in view.states.values() if state.error]
            raise RuntimeError(f"Catalog unavailable: {'; '.join(errors)}")

        records = []
        for stub in view.visible():
            detail = await view.ensure_resolved(stub.identifier)
            if detail is None:
                logger.warning("Skipping %s, details unavailable", stub.identifier)
                continue
            records.append(
                {
                    "id": detail.numeric_id,
                    "name": detail.identifier,
                    "types": list(detail.categories),
                    "image": detail.image_refs.best(),
                    "stats": dict(detail.stat_block),
                }
            )
        logger.info("Snapshot contains %d species", len(records))
        return records
    finally:
        await view.aclose()


def write_records(records: Sequence[dict[str, Any]], out: TextIO) -> None:
    for record in records:
        out.write(json.dumps(record) + "\n")


async def _run(args: argparse.Namespace) -> None:
    async with CatalogClient() as client:
        records = await run_snapshot(
            client,
            generations=args.generation,
            types=args.types,
            search=args.search,
            pages=args.pages,
        )
    write_records(records, sys.stdout)


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    args = build_parser().parse_args(argv)
    asyncio.run(_run(args))


if __name__ == "__main__":
    main()
