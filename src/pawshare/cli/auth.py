"""CLI: pawshare auth login|status|logout"""

import click
from rich.console import Console

from pawshare.client import AsyncPawshare

console = Console()


def _load_config() -> dict:
    from pawshare.cli.main import _load_config
    return _load_config()


def _save_config(cfg: dict) -> None:
    from pawshare.cli.main import _save_config
    _save_config(cfg)


def _run(coro):
    from pawshare.cli.main import _run
    return _run(coro)


@click.group()
def auth():
    """Authentication commands."""


@auth.command("login")
def auth_login():
    """Log in with an emailed one-time code."""

    async def _login():
        cfg = _load_config()
        client = AsyncPawshare()
        try:
            email = click.prompt("Email")
            with console.status("Sending sign-in code..."):
                await client.auth.request_code(email)
            console.print("[green]Code sent! Check your email.[/green]")

            code = click.prompt("Code")
            with console.status("Verifying..."):
                identity = await client.auth.verify_code(email, code)
        finally:
            await client.close()
        console.print(f"[green]Logged in as {identity.email} (ID: {identity.id})[/green]")

        _save_config({**cfg, "access_token": identity.access_token, "refresh_token": identity.refresh_token,
                      "user_id": identity.id, "email": identity.email})
        console.print("[dim]Token saved to ~/.pawshare/config.json[/dim]")

    _run(_login())


@auth.command("status")
def auth_status():
    """Show current auth status."""
    cfg = _load_config()
    if cfg.get("access_token"):
        console.print(f"[green]Logged in[/green] as {cfg.get('email', 'unknown')} (ID: {cfg.get('user_id')})")
    else:
        console.print("[yellow]Not logged in. Run `pawshare auth login`.[/yellow]")


@auth.command("logout")
def auth_logout():
    """Clear saved credentials."""
    _save_config({})
    console.print("[green]Logged out.[/green]")
