"""
pawshare CLI — `pawshare` command.

Commands:
  pawshare auth login               Email one-time-code sign in
  pawshare conversations            List conversations with unread badges
  pawshare unread                   Show unread counts (--mark-all to clear)
  pawshare chat <conversation-id>   Interactive live conversation
  pawshare send <conversation-id> <message>
"""

import asyncio
import json
import logging
from pathlib import Path

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install pawshare[cli]")

from pawshare.client import AsyncPawshare

console = Console()
CONFIG_FILE = Path.home() / ".pawshare" / "config.json"


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _get_client(**kwargs) -> AsyncPawshare:
    cfg = _load_config()
    if not cfg.get("access_token") or not cfg.get("user_id"):
        console.print("[red]Not logged in. Run `pawshare auth login` first.[/red]")
        raise SystemExit(1)
    return AsyncPawshare(access_token=cfg["access_token"], user_id=cfg["user_id"], **kwargs)


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output.")
def main(verbose: bool):
    """pawshare CLI — messages and unread counts for dog owners and walkers."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


# Register subcommands from separate modules
from pawshare.cli.auth import auth
from pawshare.cli.chat import chat_cmd, send_cmd
from pawshare.cli.conversations import conversations_cmd, unread_cmd

main.add_command(auth)
main.add_command(chat_cmd)
main.add_command(send_cmd)
main.add_command(conversations_cmd)
main.add_command(unread_cmd)


if __name__ == "__main__":
    main()
