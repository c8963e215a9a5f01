"""Runtimes command implementation."""

from ..config import get_active_config
from ..output import get_output_context


def runtimes() -> None:
    """List discovered PostgreSQL runtimes, marking the default with =>."""
    ctx = get_output_context()
    strategy = get_active_config().runtime.strategy()

    found = sorted(strategy.runtimes(), key=lambda r: r.version.sort_key(), reverse=True)
    default = strategy.fallback()

    if ctx.json_mode:
        ctx.print_json(
            [
                {
                    "version": str(runtime.version),
                    "bindir": str(runtime.bindir),
                    "default": runtime == default,
                }
                for runtime in found
            ]
        )
        return

    if not found:
        ctx.print("[yellow]No PostgreSQL runtimes found[/yellow]")
        return

    for runtime in found:
        marker = "=>" if runtime == default else "  "
        ctx.print(f"{marker} {str(runtime.version):<10} {runtime.bindir}")
