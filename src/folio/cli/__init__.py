# ABOUTME: CLI package for folio, built on Click.
# ABOUTME: Defines the root command group, logging setup, and registers subcommands.

import logging

import click
from rich.logging import RichHandler

from folio.cli.commands import (
    import_cmd,
    info_cmd,
    inspect_cmd,
    ls_cmd,
    pages_cmd,
    read_cmd,
    rm_cmd,
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(package_name="folio")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """folio - an EPUB reader core: parse, paginate, and keep a reading library."""
    _configure_logging(verbose)


cli.add_command(inspect_cmd.inspect)
cli.add_command(pages_cmd.pages)
cli.add_command(import_cmd.import_command)
cli.add_command(ls_cmd.ls)
cli.add_command(info_cmd.info)
cli.add_command(read_cmd.read)
cli.add_command(rm_cmd.rm)
