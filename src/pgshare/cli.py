"""pgshare CLI: share throwaway PostgreSQL clusters between processes."""

from pathlib import Path

import typer
from pydantic import ValidationError

from pgshare import __version__

from .commands import execute, init, runtimes, shell
from .config import find_config, load_config, set_active_config
from .logging import configure_logging
from .output import OutputContext, get_output_context, set_output_context


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"pgshare {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="pgshare",
    help="Create, start, share, and tear down PostgreSQL clusters safely",
    no_args_is_help=True,
)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v, -vv)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format for automation",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        help="Config file (default: ./pgshare.toml if present)",
    ),
) -> None:
    """pgshare - share throwaway PostgreSQL clusters between processes."""
    console = configure_logging(
        verbosity=verbose,
        quiet=quiet,
        no_color=no_color,
    )
    set_output_context(OutputContext(console=console, json_mode=json_output))

    if config_path is not None and not config_path.is_file():
        get_output_context().error(f"Config file not found: {config_path}")
        raise typer.Exit(2)
    try:
        config = load_config(config_path or find_config())
    except (ValidationError, ValueError) as e:
        # tomllib.TOMLDecodeError is a ValueError
        get_output_context().error(f"Invalid config: {e}")
        raise typer.Exit(2) from None
    set_active_config(config)


app.command()(shell)
app.command("exec", context_settings={"allow_interspersed_args": False})(execute)
app.command()(runtimes)
app.command()(init)


if __name__ == "__main__":
    app()
