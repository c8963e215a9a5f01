"""Init command implementation."""

from pathlib import Path

import typer

from ..config import write_config_template
from ..constants import CONFIG_FILE
from ..output import get_output_context


def init() -> None:
    """Write a pgshare.toml config template in the current directory."""
    ctx = get_output_context()
    config_path = Path.cwd() / CONFIG_FILE

    if config_path.exists():
        ctx.error(f"Config already exists: {config_path}")
        raise typer.Exit(1)

    write_config_template(config_path)
    ctx.success(f"Created config template: {config_path}", {"config": str(config_path)})
