"""Utility commands to inspect the resolved rexcap configuration."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from ..config import get_settings

__all__ = ["app"]

app = typer.Typer(help="Inspect the resolved configuration.", add_completion=False)


@app.command("show")
def show_settings(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config-file",
        exists=True,
        dir_okay=False,
        readable=True,
        help="Alternative TOML/YAML configuration to use instead of REXCAP_CONFIG_FILE.",
    ),
    refresh: bool = typer.Option(
        False,
        "--refresh",
        help="Ignore the cache and rebuild the settings from the environment.",
    ),
) -> None:
    """Print the settings as JSON."""

    try:
        settings = get_settings(refresh=refresh, config_file=config_file)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)
    payload = {
        "config_source": str(settings.config_file) if settings.config_file else "environment",
        "settings": settings.as_dict(),
    }
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
