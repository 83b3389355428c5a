"""
Shared plumbing for CLI commands.
"""

import asyncio
import sys
import traceback
from typing import Awaitable, Callable, NoReturn, TypeVar

import click
from rich.console import Console

from ..services.registry import ApiServices

T = TypeVar("T")

console = Console()


def run_with_services(action: Callable[[ApiServices], Awaitable[T]]) -> T:
    """Run ``action`` against a fresh set of services and close them afterwards."""

    async def _main() -> T:
        async with ApiServices.create() as services:
            return await action(services)

    return asyncio.run(_main())


def fail(label: str, error: Exception) -> NoReturn:
    """Print an error and exit with status 1."""
    console.print(f"[red]{label}:[/red] {error}")
    ctx = click.get_current_context(silent=True)
    if ctx is not None and ctx.obj and ctx.obj.get("debug"):
        console.print(traceback.format_exc())
    sys.exit(1)
