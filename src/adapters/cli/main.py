"""
adapters.cli.main - CLI adapter for the agent runtime.

Mirrors src/adapters/rest/ but for terminal use. Uses the same
ServiceFactory and AgentExecutor as the REST API so behaviour is identical.

Commands
--------
  ask        One-shot request to the agent
  chat       Interactive session (keeps one SessionContext for its lifetime)
  status     Model, API key, memory/history sizes, mood
  memory     Show the persistent key/value memory
  model      Show or switch the default model (aliases: chat, code, fast, best)
  upgrades   Show the self-upgrade log
  clear      Clear the conversation history

Inside chat, the same words work as direct commands, plus "errors" (this
session's error log) and "stop" (stop a running automation).

Usage
-----
  python run_cli.py ask "create a file notes.txt with hello"
  python run_cli.py chat
"""

from __future__ import annotations

import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# ── Ensure src/ is on the path ──
_SRC = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(_SRC))

import typer
from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from application.context import SessionContext
from application.dto import AgentOutcome, AgentResult
from factory import ServiceFactory
from infrastructure.config import Settings
from infrastructure.llm.gateway import MODEL_ALIASES, resolve_model

__version__ = "1.0.0"

console = Console()
app = typer.Typer(
    help="Tool-using agent runtime CLI",
    add_completion=False,
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

async def _make_factory() -> ServiceFactory:
    config = Settings.from_env()
    factory = ServiceFactory(config)
    await factory.initialize()
    return factory


def _print_result(result: AgentResult) -> None:
    border = {
        AgentOutcome.COMPLETED: "green",
        AgentOutcome.INCOMPLETE: "yellow",
        AgentOutcome.FAILED: "red",
    }[result.outcome]

    if result.tools_executed:
        t = Table(box=box.SIMPLE, show_header=True, padding=(0, 1))
        t.add_column("Tool", style="bold")
        t.add_column("OK")
        t.add_column("Result", overflow="fold")
        for inv in result.tools_executed:
            t.add_row(
                inv.tool,
                "[green]✓[/green]" if inv.success else "[red]✗[/red]",
                inv.result[:120],
            )
        console.print(t)

    console.print(Panel(
        Markdown(result.reply or "_(empty reply)_"),
        title=f"Agent · {result.model}",
        subtitle=(
            f"{result.iterations} iteration(s) · "
            f"{result.usage.get('total_tokens', 0)} tokens · "
            f"mood {result.mood.get('current', '?')} ({result.mood.get('energy', '?')})"
        ),
        border_style=border,
    ))


async def _status_table(factory: ServiceFactory, ctx: Optional[SessionContext] = None) -> Table:
    config = await factory.runtime_config.get()
    memory_keys = await factory.memory.keys()
    messages = await factory.history.messages()
    mood = await factory.mood.state()

    t = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    t.add_column("Field", style="bold")
    t.add_column("Value")
    t.add_row("Model", config.default_model)
    t.add_row("Provider", factory.config.llm_provider)
    t.add_row(
        "API key",
        "[green]✓ set[/green]" if factory.config.api_key_configured else "[red]✗ not set[/red]",
    )
    t.add_row("Max iterations", str(config.max_iterations))
    t.add_row("Memory", f"{len(memory_keys)} items")
    t.add_row("History", f"{len(messages)} messages")
    t.add_row("Mood", f"{mood.current} (energy {mood.energy})")
    if ctx is not None:
        t.add_row("Uptime", f"{ctx.uptime_seconds}s")
        t.add_row("Tokens", str(ctx.total_tokens))
        t.add_row("Cost", f"${ctx.total_cost:.4f}")
        t.add_row("Errors", str(len(ctx.errors)))
        t.add_row("Last path", ctx.last_created_path or "none")
    return t


async def _memory_text(factory: ServiceFactory) -> str:
    entries = await factory.memory.entries()
    if not entries:
        return "(no memories stored)"
    return json.dumps({k: e.to_dict() for k, e in entries.items()}, indent=2, ensure_ascii=False)


async def _switch_model(factory: ServiceFactory, name: str) -> str:
    model_id = resolve_model(name)
    await factory.runtime_config.set_default_model(model_id)
    return model_id


async def _upgrades_text(factory: ServiceFactory) -> str:
    entries = await factory.upgrades.entries()
    if not entries:
        return "No self-upgrades recorded yet."
    return "\n".join(f"[{u.get('time')}] {u.get('file')}: {u.get('reason')}" for u in entries)


def _errors_text(ctx: SessionContext) -> str:
    if not ctx.errors:
        return "No errors this session."
    return "\n".join(
        f"[{datetime.fromtimestamp(e['time'] / 1000):%H:%M:%S}] {e['error']}"
        for e in ctx.errors
    )


async def _direct_command(factory: ServiceFactory, ctx: SessionContext, text: str) -> bool:
    """Handle chat input that bypasses the model. Returns True if handled."""
    cmd, _, arg = text.strip().partition(" ")
    cmd = cmd.lower()
    arg = arg.strip()

    if cmd == "status":
        console.print(Panel(await _status_table(factory, ctx), title="Status", border_style="blue"))
    elif cmd == "memory":
        console.print(Panel(await _memory_text(factory), title="Memory", border_style="blue"))
    elif cmd == "errors":
        console.print(Panel(_errors_text(ctx), title="Errors", border_style="red"))
    elif cmd in ("upgrade", "upgrades"):
        console.print(Panel(await _upgrades_text(factory), title="Self-upgrades", border_style="magenta"))
    elif cmd == "model" and arg:
        model_id = await _switch_model(factory, arg)
        console.print(f"[green]Switched to model:[/green] {model_id}")
    elif cmd == "clear":
        await factory.history.clear()
        ctx.short_term.clear()
        ctx.errors.clear()
        console.print("[green]History and context cleared.[/green]")
    elif cmd == "stop":
        factory.create_automation_service().stop(ctx)
        console.print("[yellow]Automation stopped.[/yellow]")
    else:
        return False
    return True


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"agent-runtime v{__version__}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Commands: Agent
# ---------------------------------------------------------------------------

@app.command()
def ask(
    message: str = typer.Argument(..., help="What you want the agent to do."),
    model: Optional[str] = typer.Option(
        None, "--model", "-m", help="Model id or alias for this request only.",
    ),
) -> None:
    """Send one request to the agent and print the result."""
    async def _run() -> None:
        factory = await _make_factory()
        ctx = factory.create_session()
        agent = factory.create_agent()

        with console.status("[bold cyan]Thinking…", spinner="dots"):
            result = await agent.run(ctx, message, model=resolve_model(model) if model else None)
        _print_result(result)
        if result.outcome is AgentOutcome.FAILED:
            raise typer.Exit(code=1)

    asyncio.run(_run())


@app.command()
def chat() -> None:
    """Start an interactive session."""
    async def _run() -> None:
        factory = await _make_factory()
        ctx = factory.create_session(conversation_id="cli")
        agent = factory.create_agent()
        profile = await factory.profiles.profile()

        console.print(Panel(
            f"[bold]Agent chat[/bold]"
            + (f" with [bold]{profile.display_name}[/bold]" if profile.display_name else "")
            + "\nDirect commands: status, memory, errors, model <name>, upgrades, clear, stop.\n"
            "Type [bold]exit[/bold] / [bold]quit[/bold] to stop.",
            border_style="cyan",
        ))

        while True:
            try:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")
            except (KeyboardInterrupt, EOFError):
                console.print("\n[dim]Goodbye![/dim]")
                break

            if user_input.strip().lower() in ("exit", "quit", "q", "bye"):
                console.print("[dim]Goodbye![/dim]")
                break

            if not user_input.strip():
                continue

            if await _direct_command(factory, ctx, user_input):
                continue

            with console.status("[bold cyan]Thinking…", spinner="dots"):
                result = await agent.run(ctx, user_input)

            console.print()
            _print_result(result)

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Commands: Inspection / configuration
# ---------------------------------------------------------------------------

@app.command()
def status() -> None:
    """Show model, API key, memory/history sizes and mood."""
    async def _run() -> None:
        factory = await _make_factory()
        console.print(Panel(await _status_table(factory), title="Status", border_style="blue"))

    asyncio.run(_run())


@app.command()
def memory() -> None:
    """Show the persistent key/value memory."""
    async def _run() -> None:
        factory = await _make_factory()
        console.print(Panel(await _memory_text(factory), title="Memory", border_style="blue"))

    asyncio.run(_run())


@app.command()
def model(
    name: Optional[str] = typer.Argument(
        None, help="Model id or alias (chat, code, fast, best). Omit to list.",
    ),
) -> None:
    """Show available model aliases or switch the default model."""
    async def _run() -> None:
        factory = await _make_factory()
        if name:
            model_id = await _switch_model(factory, name)
            console.print(f"[green]Switched to model:[/green] {model_id}")
            return

        config = await factory.runtime_config.get()
        t = Table(box=box.SIMPLE, show_header=True, padding=(0, 2))
        t.add_column("Alias", style="bold")
        t.add_column("Model")
        for alias, model_id in MODEL_ALIASES.items():
            t.add_row(alias, model_id)
        console.print(Panel(t, title=f"Current: {config.default_model}", border_style="blue"))

    asyncio.run(_run())


@app.command()
def upgrades() -> None:
    """Show the self-upgrade log."""
    async def _run() -> None:
        factory = await _make_factory()
        console.print(Panel(await _upgrades_text(factory), title="Self-upgrades", border_style="magenta"))

    asyncio.run(_run())


@app.command()
def clear() -> None:
    """Clear the persisted conversation history."""
    async def _run() -> None:
        factory = await _make_factory()
        await factory.history.clear()
        console.print("[green]History cleared.[/green]")

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Global version option
# ---------------------------------------------------------------------------

@app.callback()
def _callback(
    version: bool = typer.Option(
        False, "--version", "-v",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Tool-using agent runtime CLI"""


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
