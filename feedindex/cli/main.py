"""Main CLI application using Cyclopts.

Runs indexing calls in-process against the configured database.
"""

import cyclopts

from feedindex.cli.commands import feeds, reindex

app = cyclopts.App(
    name="feedindex",
    help="Materialize denormalized feed tables from their source tables",
)

app.command(feeds.app, name="feeds")
app.command(reindex.app, name="reindex")


def main() -> None:
    app()
