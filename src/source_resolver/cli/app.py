import logging
import os

import typer

from source_resolver.cli.associations import associations_app
from source_resolver.cli.query import query_app
from source_resolver.cli.serve import serve_app

app = typer.Typer(
    name="source-resolver",
    help="Source resolver CLI: reconcile versions and resolve error locations.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.add_typer(associations_app, name="associations")
app.add_typer(query_app, name="query")
app.add_typer(serve_app, name="serve")


def main() -> None:
    logging.basicConfig(
        level=os.getenv("SOURCE_RESOLVER_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app()
