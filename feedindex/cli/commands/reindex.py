"""Reindex command - run the indexer for one feed."""

import asyncio
import sys

import cyclopts

from feedindex.cli.console import get_console
from feedindex.config import Config, configure_logging
from feedindex.domain.shared.error import FeedIndexError
from feedindex.infrastructure.di import FeedIndexers, create_container

app = cyclopts.App(name="reindex", help="Reindex a feed fully or by id")


async def _run(config: Config, feed: str, ids: list[str]) -> None:
    container = create_container(config)
    try:
        indexers = await container.get(FeedIndexers)
        indexer = indexers[feed]
        if ids:
            await indexer.execute_list(ids)
        else:
            await indexer.execute_full()
    finally:
        await container.close()


@app.default
def reindex(feed: str, /, *, ids: list[str] | None = None, full: bool = False) -> None:
    """Reindex a feed.

    Args:
        feed: Name of a configured feed.
        ids: Identities to recompute. Omit together with --full for a full rebuild.
        full: Truncate the feed table and rebuild it from the whole source.
    """
    console = get_console()
    config = Config()
    configure_logging(config.logging)

    if config.get_feed(feed) is None:
        known = ", ".join(f.name for f in config.feeds) or "(none)"
        console.error(f"Unknown feed '{feed}'", hint=f"Configured feeds: {known}")
        sys.exit(1)
    if full and ids:
        console.error("--full and --ids are mutually exclusive")
        sys.exit(1)
    if not full and not ids:
        console.error("Nothing to do", hint="Pass --full or --ids")
        sys.exit(1)

    try:
        asyncio.run(_run(config, feed, ids or []))
    except FeedIndexError as e:
        console.error(e.message)
        sys.exit(1)

    console.success(f"Feed '{feed}' reindexed" + (f" ({len(ids)} ids)" if ids else ""))
