"""
CLI commands for the stored auth token.
"""

import click

from ..core.config import get_settings
from ..core.exceptions import ConfigurationError
from ..data.token_store import FileTokenStore
from .common import console, fail


def _store() -> FileTokenStore:
    return FileTokenStore(get_settings().api.auth_storage_path)


def mask_token(token: str) -> str:
    """Show only the last four characters of a token."""
    if len(token) <= 4:
        return "*" * len(token)
    return "*" * (len(token) - 4) + token[-4:]


@click.group()
def token():
    """Auth token commands."""
    pass


@token.command("set")
@click.argument("value")
def set_token(value: str):
    """Store VALUE as the bearer token."""
    try:
        _store().set_token(value)
    except (ConfigurationError, OSError) as e:
        fail("Token Error", e)
    console.print("[green]Token stored[/green]")


@token.command("clear")
def clear_token():
    """Remove the stored token."""
    try:
        _store().clear_token()
    except (ConfigurationError, OSError) as e:
        fail("Token Error", e)
    console.print("[green]Token cleared[/green]")


@token.command("show")
def show_token():
    """Show the stored token, masked."""
    try:
        value = _store().get_token()
    except ConfigurationError as e:
        fail("Token Error", e)

    if not value:
        console.print("[yellow]No token stored[/yellow]")
        return
    console.print(mask_token(value))
