"""Command line entry points for causeway."""

import logging

from typer import Option, Typer

from ..configuration.cli import config_app
from .hierarchy import hierarchy_app


cli = Typer(help="causeway command line tools")
cli.add_typer(hierarchy_app, name="hierarchy")
cli.add_typer(config_app, name="config")


@cli.callback()
def main(verbose: bool = Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    """Causal hierarchy extraction for session transcripts."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = ["cli", "config_app", "hierarchy_app"]
