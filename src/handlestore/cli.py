"""Command-line interface for handlestore."""

import logging
import os
from pathlib import Path
from typing import Annotated, Optional

import typer

from handlestore.base import HandleStoreError
from handlestore.config import StoreConfig
from handlestore.store import LocalStore

app = typer.Typer(
    name="handlestore",
    help="Local on-disk resource store with scoped file handles",
    add_completion=False,
)


def _load_config(base_path: Path, config_file: Optional[Path]) -> StoreConfig:
    if config_file is not None:
        return StoreConfig.from_file(config_file, base_path=str(base_path))
    return StoreConfig(base_path=str(base_path))


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Manage handlestore directories."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command(name="init")
def init_cmd(
    base_path: Annotated[Path, typer.Argument(help="Store base directory")],
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML or JSON configuration file"),
    ] = None,
) -> None:
    """Create the store directory and its topics."""
    try:
        config = _load_config(base_path, config_file)
        with LocalStore(config) as store:
            typer.echo(f"Store initialized at {store.path}")
            for topic in store.topics:
                typer.echo(f"  {topic}/")
    except (HandleStoreError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command(name="info")
def info_cmd(
    base_path: Annotated[Path, typer.Argument(help="Store base directory")],
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML or JSON configuration file"),
    ] = None,
) -> None:
    """Show topics and how many entries each holds."""
    if not base_path.is_dir():
        typer.echo(f"Error: Store not found: {base_path}", err=True)
        raise typer.Exit(1)

    try:
        config = _load_config(base_path, config_file)
        with LocalStore(config) as store:
            typer.echo(f"Store: {store.path}")
            for topic in store.topics:
                count = len(os.listdir(store.topic(topic).name))
                typer.echo(f"  {topic:<12} {count:>6} entries")
    except (HandleStoreError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command(name="purge-tmp")
def purge_tmp_cmd(
    base_path: Annotated[Path, typer.Argument(help="Store base directory")],
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML or JSON configuration file"),
    ] = None,
) -> None:
    """Remove leftover temporary directories and files."""
    if not base_path.is_dir():
        typer.echo(f"Error: Store not found: {base_path}", err=True)
        raise typer.Exit(1)

    try:
        config = _load_config(base_path, config_file)
        with LocalStore(config) as store:
            removed = store.purge_temporary()
    except (HandleStoreError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Removed {len(removed)} temporary entries")


if __name__ == "__main__":
    app()
