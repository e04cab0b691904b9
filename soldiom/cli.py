"""Soldiom CLI — Typer + Rich terminal interface.

Commands: chat, ask, render, roles, models, keys, and the ``tools``
sub-app for the single-shot inference utilities.
"""

from __future__ import annotations

import asyncio
import json
import mimetypes
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from soldiom import __version__
from soldiom.display import BRAND, StreamingReplyView, render_nodes
from soldiom.keys import PROVIDERS, get_configured_keys, load_keys_env
from soldiom.logging_config import configure_logging
from soldiom.markdown.structurer import structure
from soldiom.providers.litellm_provider import LiteLLMProvider
from soldiom.providers.registry import (
    load_chat_config,
    load_inference_config,
    load_models,
    load_roles,
    resolve_model,
)
from soldiom.schemas.streaming import TurnStatus
from soldiom.tools.inference import InferenceClient, InferenceError
from soldiom.turn import ChatSession

console = Console()

# ── App and sub-apps ─────────────────────────────────────────────

app = typer.Typer(
    name="soldiom",
    help="Streaming AI assistant with web-grounded answers and AI tools.",
    no_args_is_help=False,
    rich_markup_mode="rich",
)

tools_app = typer.Typer(
    name="tools",
    help="Single-shot AI tools (image, code, translation, summary, voice).",
    no_args_is_help=True,
)
app.add_typer(tools_app, name="tools")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"soldiom {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Soldiom — streaming AI assistant."""
    configure_logging(verbose)
    load_keys_env()
    if ctx.invoked_subcommand is None:
        chat(role=None, model=None, think=False)


# ── Helpers ──────────────────────────────────────────────────────


def _fail(message: str) -> None:
    console.print(f"[red]{escape(message)}[/red]")
    raise typer.Exit(1)


def _build_session(role_key: str | None, model_key: str | None, think: bool) -> tuple[ChatSession, dict]:
    """Load config and build a ChatSession, exiting on configuration errors."""
    try:
        chat_config = load_chat_config()
        registry = load_models()
        roles = load_roles()
    except (FileNotFoundError, ValueError) as e:
        _fail(f"Configuration error: {e}")

    try:
        model = resolve_model(registry, model_key or chat_config.default_model)
    except KeyError as e:
        _fail(str(e.args[0]))

    role = roles.get(role_key or chat_config.default_role)
    if role is None:
        _fail(f"Unknown role '{role_key}'. Available: {', '.join(sorted(roles))}")

    transport = LiteLLMProvider(model, chat_config)
    return ChatSession(transport, role, thinking=think), roles


def _inference_client() -> InferenceClient:
    try:
        return InferenceClient(load_inference_config())
    except (FileNotFoundError, ValueError) as e:
        _fail(f"Configuration error: {e}")


def _run_tool(coro):
    """Run an inference coroutine with a spinner; exit 1 on InferenceError."""
    try:
        with console.status("Working...", spinner="dots"):
            return asyncio.run(coro)
    except InferenceError as e:
        _fail(f"Tool failed: {e}")


# ── Chat commands ────────────────────────────────────────────────


_ROLE_OPT = typer.Option(None, "--role", "-r", help="Conversation role key.")
_MODEL_OPT = typer.Option(None, "--model", "-m", help="Model registry key or LiteLLM id.")
_THINK_OPT = typer.Option(False, "--think", help="Enable extended thinking.")


@app.command()
def chat(
    role: str | None = _ROLE_OPT,
    model: str | None = _MODEL_OPT,
    think: bool = _THINK_OPT,
) -> None:
    """Start an interactive chat."""
    from soldiom.repl import ChatREPL

    session, roles = _build_session(role, model, think)
    ChatREPL(session, roles, console=console, inference=_inference_client()).run()


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Message to send."),
    role: str | None = _ROLE_OPT,
    model: str | None = _MODEL_OPT,
    think: bool = _THINK_OPT,
) -> None:
    """Send one message and stream the reply."""
    if not prompt.strip():
        _fail("Message must not be empty.")

    session, _ = _build_session(role, model, think)
    with StreamingReplyView(console) as view:
        result = asyncio.run(session.send(prompt, on_update=view.update))

    if result.status == TurnStatus.FAILED:
        raise typer.Exit(1)


@app.command()
def render(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Markdown file."),
    as_json: bool = typer.Option(False, "--json", help="Print render nodes as JSON."),
) -> None:
    """Structure a markdown file and print the result."""
    nodes = structure(path.read_text(encoding="utf-8"))
    if as_json:
        typer.echo(json.dumps([node.model_dump() for node in nodes], indent=2))
        return
    console.print(render_nodes(nodes))


@app.command()
def roles() -> None:
    """List conversation roles."""
    try:
        role_map = load_roles()
    except (FileNotFoundError, ValueError) as e:
        _fail(f"Configuration error: {e}")

    table = Table(title="Roles", title_style=f"bold {BRAND['accent']}")
    table.add_column("Key", style="bold")
    table.add_column("Name")
    table.add_column("Description", style=BRAND["dim"])
    for key, role in role_map.items():
        table.add_row(key, role.name, role.description)
    console.print(table)


@app.command()
def models() -> None:
    """List chat models in the registry."""
    try:
        registry = load_models()
    except (FileNotFoundError, ValueError) as e:
        _fail(f"Configuration error: {e}")

    configured = get_configured_keys()
    table = Table(title="Models", title_style=f"bold {BRAND['accent']}")
    table.add_column("Key", style="bold")
    table.add_column("Model")
    table.add_column("Provider")
    table.add_column("Search")
    table.add_column("Thinking")
    table.add_column("Key set")
    for key, cfg in registry.items():
        table.add_row(
            key,
            cfg.model,
            cfg.provider,
            "✓" if cfg.supports_search else "",
            "✓" if cfg.supports_thinking else "",
            "[green]✓[/green]" if configured.get(cfg.api_key_env) else "[red]✗[/red]",
        )
    console.print(table)


@app.command()
def keys() -> None:
    """Show which provider API keys are configured."""
    configured = get_configured_keys()
    table = Table(title="API keys", title_style=f"bold {BRAND['accent']}")
    table.add_column("Variable", style="bold")
    table.add_column("Provider")
    table.add_column("Used for", style=BRAND["dim"])
    table.add_column("Status")
    for env_var, name, used_for in PROVIDERS:
        status = "[green]set[/green]" if configured[env_var] else "[red]missing[/red]"
        table.add_row(env_var, name, used_for, status)
    console.print(table)


# ── Tools ────────────────────────────────────────────────────────


@tools_app.command("image")
def tool_image(
    prompt: str = typer.Argument(..., help="Image description."),
    output: Path = typer.Option(Path("image.png"), "--output", "-o", help="Where to save the image."),
) -> None:
    """Generate an image from a prompt."""
    data = _run_tool(_inference_client().generate_image(prompt))
    output.write_bytes(data)
    console.print(f"[green]Image saved to[/green] {output}")


@tools_app.command("code")
def tool_code(prompt: str = typer.Argument(..., help="Code prompt.")) -> None:
    """Complete code from a prompt."""
    text = _run_tool(_inference_client().generate_code(prompt))
    console.print(render_nodes(structure(f"```\n{text}\n```")))


@tools_app.command("translate")
def tool_translate(
    text: str = typer.Argument(..., help="Text to translate."),
    src: str = typer.Option("eng_Latn", "--src", help="Source language code."),
    tgt: str = typer.Option("fra_Latn", "--tgt", help="Target language code."),
) -> None:
    """Translate text between languages."""
    console.print(_run_tool(_inference_client().translate_text(text, src, tgt)))


@tools_app.command("summarize")
def tool_summarize(text: str = typer.Argument(..., help="Text to summarize.")) -> None:
    """Summarize a passage of text."""
    console.print(_run_tool(_inference_client().summarize_text(text)))


@tools_app.command("transcribe")
def tool_transcribe(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Audio file."),
) -> None:
    """Transcribe speech from an audio file."""
    content_type = mimetypes.guess_type(path.name)[0] or "audio/wav"
    console.print(
        _run_tool(_inference_client().transcribe_audio(path.read_bytes(), content_type))
    )


@tools_app.command("speak")
def tool_speak(
    text: str = typer.Argument(..., help="Text to speak."),
    output: Path = typer.Option(Path("speech.flac"), "--output", "-o", help="Where to save the audio."),
) -> None:
    """Synthesize speech from text."""
    data = _run_tool(_inference_client().text_to_speech(text))
    output.write_bytes(data)
    console.print(f"[green]Audio saved to[/green] {output}")
