"""CLI: pawshare conversations, pawshare unread"""

import json

import click
from rich.console import Console
from rich.table import Table

console = Console()


def _get_client():
    from pawshare.cli.main import _get_client
    return _get_client()


def _run(coro):
    from pawshare.cli.main import _run
    return _run(coro)


@click.command("conversations")
@click.option("--json-output", "--json", is_flag=True)
def conversations_cmd(json_output: bool):
    """List conversations, most recent first."""

    async def _list():
        client = _get_client()
        try:
            await client.connect()
            summaries = client.conversations()
        finally:
            await client.close()
        if json_output:
            click.echo(json.dumps([
                {"id": s.id, "name": s.display_name, "unread": s.unread_count,
                 "last_message_at": s.conversation.last_message_at.isoformat()
                 if s.conversation.last_message_at else None}
                for s in summaries
            ], indent=2))
            return
        table = Table(title=f"Conversations ({len(summaries)})")
        table.add_column("ID", style="bold")
        table.add_column("With")
        table.add_column("About")
        table.add_column("Unread", justify="right")
        table.add_column("Last activity")
        for s in summaries:
            c = s.conversation
            table.add_row(
                c.id,
                s.display_name,
                (c.availability.title if c.availability else "") or "",
                f"[red]{s.unread_count}[/red]" if s.unread_count else "",
                c.last_message_at.strftime("%Y-%m-%d %H:%M") if c.last_message_at else "",
            )
        console.print(table)

    _run(_list())


@click.command("unread")
@click.option("--mark-all", is_flag=True, help="Mark every unread message as read.")
@click.option("--json-output", "--json", is_flag=True)
def unread_cmd(mark_all: bool, json_output: bool):
    """Show unread message counts."""

    async def _unread():
        client = _get_client()
        try:
            await client.connect()
            tracker = client.unread
            if mark_all:
                await tracker.mark_all_read()
            aggregate = tracker.aggregate
            names = {s.id: s.display_name for s in client.conversations()}
        finally:
            await client.close()
        if json_output:
            click.echo(json.dumps({"total": aggregate.total, "by_conversation": aggregate.by_conversation}))
            return
        console.print(f"[bold]{aggregate.total}[/bold] unread")
        for conversation_id, count in aggregate.by_conversation.items():
            console.print(f"  {names.get(conversation_id, conversation_id)}: {count}")

    _run(_unread())
