import typer

from .._version import __version__
from .config import app as config_app
from .parse import inspect_command, parse_command


__all__ = ["app", "run"]


app = typer.Typer(help="Decode text lines into typed records with named capture groups", add_completion=False)


@app.callback(invoke_without_command=True)
def version_callback(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show rexcap version and exit", is_eager=True),
) -> None:
    """Handle global options before any sub-command executes."""

    if version:
        typer.echo(f"rexcap {__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


app.command("parse", help="Decode each line of a text file into JSONL records.")(parse_command)
app.command("inspect", help="Show the named capture groups of a pattern.")(inspect_command)
app.add_typer(config_app, name="config")


def run() -> None:
    """Entry point compatible with ``python -m rexcap`` and console scripts."""

    from typer.main import get_command

    cli = get_command(app)
    cli()
