"""Feeds command - list configured feeds."""

import cyclopts

from feedindex.cli.console import get_console
from feedindex.config import Config

app = cyclopts.App(name="feeds", help="List configured feeds")


@app.default
def feeds() -> None:
    """Show every configured feed with its tables and producer."""
    console = get_console()
    config = Config()

    if not config.feeds:
        console.info("No feeds configured")
        return

    rows = [
        {
            "name": feed.name,
            "source": f"{feed.metadata.source_table_name}.{feed.metadata.source_table_field}",
            "feed": f"{feed.metadata.feed_table_name}.{feed.metadata.feed_table_field}",
            "producer": feed.producer,
            "batch": feed.metadata.batch_size,
        }
        for feed in config.feeds
    ]
    console.table(
        rows,
        [("name", "Feed"), ("source", "Source"), ("feed", "Table"), ("producer", "Producer"), ("batch", "Batch")],
    )
