"""CLI commands for nova."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from nova import __logo__, __version__
from nova.mail.notify import Notifier

app = typer.Typer(
    name="nova",
    help=f"{__logo__} nova - Personal AI Secretary",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} nova v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging, including reasoning prompts"),
):
    """nova - Personal AI Secretary."""
    from nova.logging_config import setup_logging

    setup_logging(verbose=verbose)


# ============================================================================
# Shared helpers
# ============================================================================


def _validate_api_key(config):
    """Ensure the reasoning model has credentials. Exits with rich error if not."""
    import os

    if not config.agent.api_key and not os.environ.get("OPENAI_API_KEY"):
        console.print("[red]Error: No API key configured.[/red]")
        console.print("Set agent.apiKey in ~/.nova/config.json or NOVA_AGENT__API_KEY")
        raise typer.Exit(1)


def _config_accounts(config):
    from nova.mail.types import MailAccount

    return [MailAccount(id=a.id, email=a.email, name=a.name) for a in config.email.accounts]


class ConsoleNotifier(Notifier):
    """Prints owner notifications in the terminal."""

    async def deliver(self, target: str, message: str) -> None:
        console.print(f"\n[bold green]{__logo__} → {target}[/bold green]\n{message}")


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """Initialize nova configuration."""
    from nova.config.loader import get_config_path, save_config
    from nova.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config())
    console.print(f"[green]✓[/green] Created config at {config_path}")

    console.print(f"\n{__logo__} nova is ready!")
    console.print("\nNext steps:")
    console.print("  1. Set [cyan]agent.apiKey[/cyan] and [cyan]owner.number[/cyan] in ~/.nova/config.json")
    console.print("  2. Optionally set [cyan]store.redisUrl[/cyan] and [cyan]memory.apiKey[/cyan]")
    console.print('  3. Chat: [cyan]nova agent -m "What\'s on my plate tonight?"[/cyan]')


# ============================================================================
# Gateway
# ============================================================================


@app.command()
def gateway(
    port: int = typer.Option(None, "--port", "-p", help="Gateway port (default from config)"),
):
    """Start the webhook gateway and the reminder sweep."""
    from nova.config.loader import load_config
    from nova.gateway.server import GatewayServer
    from nova.runtime import build_runtime

    config = load_config()
    _validate_api_key(config)
    port = port or config.gateway.port

    console.print(f"{__logo__} Starting nova gateway on port {port}...")

    allow_from = list(config.gateway.allow_from)
    if config.owner.number:
        allow_from.append(config.owner.number)

    async def run():
        runtime = await build_runtime(config)
        server = GatewayServer(
            runtime.pipeline,
            reminders=runtime.reminders,
            accounts=lambda: _config_accounts(config),
            allow_from=allow_from,
            host=config.gateway.host,
            port=port,
        )
        console.print(f"[green]✓[/green] Reminder sweep: every {config.scheduler.sweep_interval_s:g}s")
        try:
            runtime.start()
            await server.start()
            while True:
                await asyncio.sleep(3600)
        finally:
            await server.stop()
            await runtime.close()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\nShutting down...")


# ============================================================================
# Agent Commands
# ============================================================================


@app.command()
def agent(
    message: str = typer.Option(None, "--message", "-m", help="Message to send to nova"),
    context: str = typer.Option("general", "--context", "-c", help="Action context (general/email/error)"),
):
    """Talk to nova directly (debug REPL)."""
    from nova.config.loader import load_config
    from nova.runtime import build_runtime

    config = load_config()
    _validate_api_key(config)

    async def handle(runtime, text: str):
        result = await runtime.pipeline.run(text, channel="terminal", action_context=context)
        decision = result.decision
        console.print(f"\n{__logo__} {decision.response}")
        status = "[green]✓[/green]" if result.execution.success else "[red]✗[/red]"
        console.print(
            f"  [dim]action: {decision.action or 'none'} {status} "
            f"{result.execution.error or ''}[/dim]"
        )

    async def run():
        runtime = await build_runtime(config, notifier=ConsoleNotifier())
        try:
            if message:
                await handle(runtime, message)
                return

            console.print(f"{__logo__} Interactive mode (Ctrl+C to exit)\n")
            while True:
                try:
                    user_input = console.input("[bold blue]You:[/bold blue] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\nGoodbye!")
                    break
                if user_input.strip():
                    await handle(runtime, user_input)
        finally:
            await runtime.close()

    asyncio.run(run())


# ============================================================================
# Reminder Commands
# ============================================================================

reminders_app = typer.Typer(help="Manage scheduled reminders")
app.add_typer(reminders_app, name="reminders")


async def _open_reminders(config):
    from nova.scheduler.service import ReminderStore
    from nova.store.redis_store import open_store

    store = await open_store(config.store)
    if not store.persistent:
        console.print("[yellow]Warning: no durable store configured; reminders are not shared[/yellow]")
    return store, ReminderStore(
        store,
        merge_window_ms=config.scheduler.merge_window_ms,
        index_key=config.scheduler.index_key,
    )


@reminders_app.command("list")
def reminders_list():
    """List pending reminders."""
    from nova.config.loader import load_config

    config = load_config()

    async def run():
        store, reminders = await _open_reminders(config)
        try:
            return await reminders.get_pending_reminders()
        finally:
            await store.close()

    pending = asyncio.run(run())
    if not pending:
        console.print("No pending reminders.")
        return

    table = Table(title="Pending Reminders")
    table.add_column("ID", style="cyan")
    table.add_column("Task")
    table.add_column("Fires")
    table.add_column("In")
    table.add_column("Tasks", justify="right")

    for p in pending:
        table.add_row(p.id, p.task, p.time, p.time_until, str(p.merged_count))

    console.print(table)


@reminders_app.command("add")
def reminders_add(
    task: str = typer.Argument(..., help="What to follow up on"),
    when: str = typer.Option("15 minutes", "--in", "-i", help="Delay, e.g. '30 minutes' or '2 hours'"),
    context: str = typer.Option("Scheduled from CLI", "--context", help="Why the reminder exists"),
):
    """Schedule a reminder (merged with any reminder close by)."""
    from nova.config.loader import load_config
    from nova.scheduler.service import parse_delay

    config = load_config()
    delay_ms = parse_delay(when)
    if delay_ms is None:
        console.print(f"[red]Error: could not parse delay '{when}'[/red]")
        raise typer.Exit(1)

    async def run():
        store, reminders = await _open_reminders(config)
        try:
            return await reminders.schedule_wakeup(task, delay_ms, context)
        finally:
            await store.close()

    reminder_id = asyncio.run(run())
    console.print(f"[green]✓[/green] Scheduled ({reminder_id})")


@reminders_app.command("cancel")
def reminders_cancel(
    reminder_id: str = typer.Argument(..., help="Reminder ID to cancel"),
):
    """Cancel a reminder."""
    from nova.config.loader import load_config

    config = load_config()

    async def run():
        store, reminders = await _open_reminders(config)
        try:
            await reminders.cancel_reminder(reminder_id)
        finally:
            await store.close()

    asyncio.run(run())
    console.print(f"[green]✓[/green] Cancelled {reminder_id}")


# ============================================================================
# Status
# ============================================================================


@app.command()
def accounts():
    """List configured email accounts."""
    from nova.config.loader import load_config

    config = load_config()
    rows = _config_accounts(config)
    if not rows:
        console.print("No email accounts configured.")
        return

    table = Table(title="Email Accounts")
    table.add_column("ID", style="cyan")
    table.add_column("Email")
    table.add_column("Name")
    for account in rows:
        table.add_row(account.id, account.email, account.name)
    console.print(table)


@app.command()
def status():
    """Show nova status."""
    from nova.config.loader import get_config_path, load_config

    config_path = get_config_path()
    config = load_config()
    summary = config.summary()

    console.print(f"{__logo__} nova Status\n")
    console.print(
        f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}"
    )
    console.print(f"Model: {config.agent.model}")
    console.print(f"Gateway port: {summary['port']}")
    for name, state in summary["services"].items():
        console.print(f"{name}: {'[green]✓[/green]' if state == 'set' else '[dim]not set[/dim]'}")
    console.print(f"Accounts: {', '.join(summary['accounts']) or '[dim]none[/dim]'}")
    console.print(f"Merge window: {summary['merge_window_min']} min")


if __name__ == "__main__":
    app()
