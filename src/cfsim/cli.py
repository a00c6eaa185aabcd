"""Command line interface: parse, simulate and serve Construction Files."""

import json
import os
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer
from eliot import FileDestination, add_destinations, remove_destination

from cfsim.engine import products_table, simulate
from cfsim.errors import ConstructionFileError
from cfsim.files import write_products
from cfsim.parser import parse
from cfsim.server import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_TRANSPORT, run_server

app = typer.Typer(help="Parse and simulate Construction Files.", no_args_is_help=True)

STRICT_DEFAULT = os.getenv("CFSIM_STRICT_PARSE", "0").lower() in ("1", "true", "yes")


@contextmanager
def _log_to(log_file: Optional[Path]):
    """Send eliot messages to ``log_file`` for the duration of one command."""
    if log_file is None:
        yield
        return
    with open(log_file, "a") as output:
        destination = FileDestination(file=output)
        add_destinations(destination)
        try:
            yield
        finally:
            remove_destination(destination)


def _read(path: Path) -> str:
    if str(path) == "-":
        return sys.stdin.read()
    return path.read_text()


@app.command("parse")
def parse_command(
    path: Path = typer.Argument(..., help="CF text file, or - for stdin"),
    strict: bool = typer.Option(STRICT_DEFAULT, "--strict", help="Fail on unrecognized lines"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Append eliot JSON logs here"),
):
    """Print the structured form of a Construction File as JSON."""
    with _log_to(log_file):
        try:
            cf = parse(_read(path), strict=strict)
        except ConstructionFileError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1)
    typer.echo(cf.model_dump_json(indent=2))


@app.command("simulate")
def simulate_command(
    path: Path = typer.Argument(..., help="CF text file, or - for stdin"),
    linear: bool = typer.Option(False, "--linear", help="Accept linear Gibson products"),
    output_format: str = typer.Option("table", "--format", help="table, json, fasta or genbank"),
    strict: bool = typer.Option(STRICT_DEFAULT, "--strict", help="Fail on unrecognized lines"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Append eliot JSON logs here"),
):
    """Simulate every step and print the products."""
    with _log_to(log_file):
        try:
            cf = parse(_read(path), strict=strict)
            products = simulate(cf, check_circular=not linear)
        except ConstructionFileError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1)

        if output_format == "table":
            for row in products_table(products):
                typer.echo("\t".join(str(cell) for cell in row))
        elif output_format == "json":
            typer.echo(json.dumps([p._asdict() for p in products], indent=2))
        elif output_format in ("fasta", "genbank", "gb"):
            typer.echo(write_products(products, output_format), nl=False)
        else:
            typer.echo(f"Error: unknown format {output_format!r}", err=True)
            raise typer.Exit(code=2)


@app.command("serve")
def serve_command(
    transport: str = typer.Option(DEFAULT_TRANSPORT, help="stdio, sse or streamable-http"),
    host: str = typer.Option(DEFAULT_HOST, help="Host for HTTP transports"),
    port: int = typer.Option(DEFAULT_PORT, help="Port for HTTP transports"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Append eliot JSON logs here"),
):
    """Run the MCP server."""
    with _log_to(log_file):
        run_server(transport=transport, host=host, port=port)


if __name__ == "__main__":
    app()
