"""CLI: pawshare chat, pawshare send"""

import asyncio

import click
from rich.console import Console

from pawshare.errors import SendError
from pawshare.models.message import Message
from pawshare.models.notification import ToastDescriptor

console = Console()


def _get_client(**kwargs):
    from pawshare.cli.main import _get_client
    return _get_client(**kwargs)


def _run(coro):
    from pawshare.cli.main import _run
    return _run(coro)


def _print_toast(toast: ToastDescriptor) -> None:
    console.print(f"[yellow]🔔 {toast.sender_name}:[/yellow] {toast.body}")


@click.command("chat")
@click.argument("conversation_id")
def chat_cmd(conversation_id: str):
    """Interactive chat in a conversation."""

    async def _chat():
        client = _get_client(on_toast=_print_toast)
        try:
            await client.connect()
            try:
                session = await client.open_conversation(conversation_id)
            except KeyError:
                console.print(f"[red]No conversation {conversation_id}[/red]")
                return
            viewer = client.identity.id
            if session.error:
                console.print(f"[red]{session.error}[/red]")
            shown: set[str] = set()

            def show(entries) -> None:
                for entry in entries:
                    if not isinstance(entry, Message) or entry.id in shown:
                        continue
                    shown.add(entry.id)
                    who = "[cyan]You[/cyan]" if entry.sender_id == viewer else "[green]Them[/green]"
                    console.print(f"{who}: {entry.content}")

            show(session.timeline)
            session.add_listener(show)
            console.print("[cyan]Type your message (/quit to exit)[/cyan]\n")
            while True:
                msg = await asyncio.to_thread(click.prompt, "", prompt_suffix="> ")
                if msg.lower() in ("/quit", "/exit"):
                    break
                if msg.lower() == "/retry":
                    await session.retry()
                    continue
                try:
                    await session.send(msg)
                except SendError as e:
                    console.print(f"[red]{e}[/red] [dim](unsent: {(e.details or {}).get('body', '')})[/dim]")
        except (KeyboardInterrupt, EOFError, click.Abort):
            pass
        finally:
            await client.close()

    _run(_chat())


@click.command("send")
@click.argument("conversation_id")
@click.argument("message")
def send_cmd(conversation_id: str, message: str):
    """Send a one-shot message."""

    async def _send():
        client = _get_client()
        try:
            await client.connect()
            session = await client.open_conversation(conversation_id)
            await session.send(message)
            console.print("[green]Sent.[/green]")
        except KeyError:
            console.print(f"[red]No conversation {conversation_id}[/red]")
        except SendError as e:
            console.print(f"[red]{e}[/red]")
            raise SystemExit(1)
        finally:
            await client.close()

    _run(_send())
