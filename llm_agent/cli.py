"""
Command line front-end for the LLM agent.

Commands:
    chat: Interactive chat session driven by the agent loop.
    providers: List the known LLM providers and their models.
    configure: Save provider / model / API key (optionally test the connection).
    tools: Show which tools are enabled and which credentials are set.
    enable: Enable a tool, optionally storing credentials (key=value).
    disable: Disable a tool.

Usage:
    llm-agent chat
    llm-agent configure --provider openai --model gpt-4 --api-key sk-... --test
    llm-agent enable google_search -c google_api_key=... -c search_engine_id=...
    llm-agent disable execute_python
"""

import json
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from llm_agent.agents.agent_loop import AgentLoopController
from llm_agent.config.store import ConfigStore
from llm_agent.domain.listener import NullListener
from llm_agent.domain.models import AgentStatus, LLMConfig, ToolCallRequest, ToolResult
from llm_agent.providers import PROVIDER_REGISTRY, check_connection, create_model_client
from llm_agent.tools.definitions import TOOL_SCHEMAS, ToolKind, resolve_kind
from llm_agent.tools.registry import default_registry

app = typer.Typer(help="LLM Agent CLI", add_completion=False)
console = Console()

_STATUS_STYLE = {
    AgentStatus.READY: "green",
    AgentStatus.THINKING: "cyan",
    AgentStatus.EXECUTING: "yellow",
    AgentStatus.ERROR: "red",
}


class RichConsoleListener(NullListener):
    """把循环事件渲染到终端。"""

    def __init__(self, out: Console = console):
        self._console = out

    def on_assistant_message(self, text: str) -> None:
        self._console.print(Panel(Markdown(text), title="Assistant", border_style="green"))

    def on_tool_call_started(self, call: ToolCallRequest) -> None:
        args = json.dumps(call.arguments, ensure_ascii=False)
        self._console.print(f"[yellow]⚙ {call.name}[/yellow] [dim]{args}[/dim]")

    def on_tool_call_finished(self, name: str, result: ToolResult) -> None:
        if result.success:
            self._console.print(f"  [green]✓ {name} completed[/green]")
        else:
            self._console.print(f"  [red]✗ {name} failed:[/red] {result.error}")

    def on_status_changed(self, status: AgentStatus) -> None:
        if status in (AgentStatus.THINKING, AgentStatus.EXECUTING):
            style = _STATUS_STYLE[status]
            self._console.print(f"[{style}]… {status.value}[/{style}]")

    def on_error(self, message: str) -> None:
        self._console.print(f"[bold red]Error:[/bold red] {message}")


def _store() -> ConfigStore:
    return ConfigStore().load()


def _require_tool(name: str) -> ToolKind:
    kind = resolve_kind(name)
    if kind is None:
        known = ", ".join(k.value for k in ToolKind)
        console.print(f"[red]Unknown tool:[/red] {name}  (known: {known})")
        raise typer.Exit(code=1)
    return kind


def _mask(value: str) -> str:
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}…{value[-4:]}"


# ---------------------------------------------------------------------------
# Commands: chat
# ---------------------------------------------------------------------------

@app.command()
def chat():
    """Interactive chat session. Type /clear to reset the conversation, /exit to stop."""
    store = _store()
    client = create_model_client(store.llm_config)
    registry = default_registry(store.tool_config)
    controller = AgentLoopController(client, registry, store, listener=RichConsoleListener())

    enabled = [t.display_name for t in registry.available_tools(store.tool_config)]
    console.print(Panel(
        "[bold]LLM Agent Chat[/bold]\n"
        f"Provider: [cyan]{client.name}[/cyan]\n"
        f"Tools: {', '.join(enabled) or 'none'}\n"
        "Type [bold]/clear[/bold] to reset, [bold]/exit[/bold] to stop.",
        border_style="cyan",
    ))

    while True:
        try:
            text = Prompt.ask("[bold cyan]You[/bold cyan]")
        except (KeyboardInterrupt, EOFError):
            console.print("\n[dim]Goodbye![/dim]")
            break

        command = text.strip().lower()
        if command in ("/exit", "exit", "quit"):
            console.print("[dim]Goodbye![/dim]")
            break
        if command == "/clear":
            if controller.clear():
                console.print("[dim]Conversation cleared.[/dim]")
            continue
        if not command:
            continue

        controller.submit(text)
        console.print()


# ---------------------------------------------------------------------------
# Commands: configuration
# ---------------------------------------------------------------------------

@app.command()
def providers():
    """List the known LLM providers."""
    t = Table(box=box.SIMPLE)
    t.add_column("ID", style="bold")
    t.add_column("Name")
    t.add_column("Models")
    t.add_column("Base URL", style="dim")
    for provider in PROVIDER_REGISTRY.values():
        t.add_row(provider.id, provider.name, ", ".join(provider.models), provider.base_url or "-")
    console.print(t)


@app.command()
def configure(
    provider: str = typer.Option(..., "--provider", "-p", help="Provider id (see 'providers')."),
    model: str = typer.Option(None, "--model", "-m", help="Model id; defaults to the provider's first model."),
    api_key: str = typer.Option("", "--api-key", "-k", help="API key for the provider."),
    base_url: str = typer.Option("", "--base-url", help="Override the provider's base URL."),
    test: bool = typer.Option(False, "--test", help="Send a tiny request to verify the settings."),
):
    """Save the LLM provider configuration."""
    config = PROVIDER_REGISTRY.get(provider.lower())
    if config is None:
        console.print(f"[red]Unknown provider:[/red] {provider}")
        raise typer.Exit(code=1)
    if config.requires_key and not api_key:
        console.print(f"[yellow]No API key given; {config.name} will fall back to the offline mock.[/yellow]")

    store = _store()
    llm_config = LLMConfig(
        provider_id=config.id,
        model_id=model or config.models[0],
        api_key=api_key,
        base_url=base_url,
    )
    store.save_llm_config(llm_config)
    console.print(f"[green]Saved[/green] {config.name} / {llm_config.model_id}")

    if test:
        with console.status("[bold cyan]Testing connection...", spinner="dots"):
            ok = check_connection(create_model_client(llm_config))
        if ok:
            console.print("[green]Connection successful![/green]")
        else:
            console.print("[red]Connection failed.[/red] Check the API key and base URL.")
            raise typer.Exit(code=1)


@app.command()
def tools():
    """Show tool status."""
    store = _store()
    t = Table(box=box.SIMPLE)
    t.add_column("Tool", style="bold")
    t.add_column("Name")
    t.add_column("Enabled")
    t.add_column("Credentials", style="dim")
    for kind in ToolKind:
        creds = store.tool_config.credentials_for(kind.value)
        enabled = "[green]yes[/green]" if store.tool_config.is_enabled(kind.value) else "[red]no[/red]"
        cred_text = ", ".join(f"{k}={_mask(v)}" for k, v in creds.items()) or "-"
        t.add_row(kind.value, TOOL_SCHEMAS[kind].display_name, enabled, cred_text)
    console.print(t)


@app.command()
def enable(
    name: str = typer.Argument(..., help="Tool name, e.g. google_search."),
    credential: Optional[List[str]] = typer.Option(
        None, "--credential", "-c",
        help="Credential as key=value (repeatable), e.g. google_api_key=...",
    ),
):
    """Enable a tool and optionally store its credentials."""
    kind = _require_tool(name)
    store = _store()
    config = store.tool_config
    config.set_enabled(kind.value, True)
    for item in credential or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            console.print(f"[red]Invalid credential:[/red] {item!r} (expected key=value)")
            raise typer.Exit(code=1)
        if key.strip() == "enabled":
            console.print("[red]Invalid credential:[/red] 'enabled' is a reserved key")
            raise typer.Exit(code=1)
        config.tools[kind.value].credentials[key.strip()] = value
    store.save_tool_config(config)
    console.print(f"[green]Enabled[/green] {kind.value}")


@app.command()
def disable(name: str = typer.Argument(..., help="Tool name, e.g. execute_python.")):
    """Disable a tool."""
    kind = _require_tool(name)
    store = _store()
    config = store.tool_config
    config.set_enabled(kind.value, False)
    store.save_tool_config(config)
    console.print(f"[yellow]Disabled[/yellow] {kind.value}")


if __name__ == "__main__":
    app()
