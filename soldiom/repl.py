"""Interactive chat REPL.

Launch with ``soldiom`` (no subcommand) or ``soldiom chat``. Plain input
is sent to the assistant; lines starting with ``/`` are commands.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from soldiom.display import BRAND, StreamingReplyView
from soldiom.schemas.config import RoleConfig
from soldiom.tools.inference import InferenceClient, InferenceError
from soldiom.turn import ChatSession

logger = logging.getLogger(__name__)

_HELP = [
    ("/role <key>", "Switch conversation role (starts a new chat)"),
    ("/roles", "List available roles"),
    ("/think", "Toggle extended thinking (starts a new chat)"),
    ("/new", "Start a new chat"),
    ("/voice <file>", "Transcribe an audio file and send it"),
    ("/help", "Show this help"),
    ("/exit", "Leave the chat"),
]


class ChatREPL:
    """Interactive loop around a ChatSession.

    Dispatches slash commands and streams every other line as a turn.
    """

    def __init__(
        self,
        session: ChatSession,
        roles: dict[str, RoleConfig],
        *,
        console: Console | None = None,
        inference: InferenceClient | None = None,
    ) -> None:
        self.session = session
        self.roles = roles
        self.console = console or Console()
        self.inference = inference

    def run(self) -> None:
        """Main REPL loop."""
        self._print_banner()

        while True:
            try:
                prompt_text = Text()
                prompt_text.append(f"\n{self.session.role.key}", style=BRAND["accent"])
                if self.session.thinking:
                    prompt_text.append(" (thinking)", style=BRAND["dim"])
                prompt_text.append(" ▸ ", style=BRAND["dim"])

                user_input = self.console.input(prompt_text).strip()
                if not user_input:
                    continue

                if not self.dispatch(user_input):
                    break

            except (KeyboardInterrupt, EOFError):
                break

        self.console.print(f"\n[{BRAND['dim']}]Goodbye.[/{BRAND['dim']}]")

    def dispatch(self, user_input: str) -> bool:
        """Handle one line of input. Returns False when the REPL should exit."""
        if not user_input.startswith("/"):
            self.send(user_input)
            return True

        command, _, arg = user_input[1:].partition(" ")
        command = command.lower()
        arg = arg.strip()

        if command in ("exit", "quit"):
            return False
        if command == "help":
            self._print_help()
        elif command == "roles":
            self._print_roles()
        elif command == "role":
            self._switch_role(arg)
        elif command == "think":
            self.session.set_thinking(not self.session.thinking)
            state = "on" if self.session.thinking else "off"
            self.console.print(f"[{BRAND['dim']}]Extended thinking {state}. New chat started.[/]")
            if self.session.thinking and not self.session.transport.supports_thinking:
                self.console.print(
                    f"[yellow]{self.session.transport.display_name} does not support "
                    "extended thinking; the flag will be ignored.[/yellow]"
                )
        elif command == "new":
            self.session.reset()
            self.console.print(f"[{BRAND['dim']}]New chat started.[/]")
        elif command == "voice":
            self._voice(arg)
        else:
            self.console.print(f"[red]Unknown command:[/red] /{escape(command)}. Type /help.")
        return True

    def send(self, text: str) -> None:
        """Stream one assistant reply for ``text``."""
        self.console.print()
        with StreamingReplyView(self.console) as view:
            try:
                asyncio.run(self.session.send(text, on_update=view.update))
            except KeyboardInterrupt:
                logger.debug("Reply interrupted by user")

    def _switch_role(self, key: str) -> None:
        role = self.roles.get(key)
        if role is None:
            self.console.print(
                f"[red]Unknown role '{escape(key)}'.[/red] Available: {', '.join(sorted(self.roles))}"
            )
            return
        self.session.set_role(role)
        self.console.print(f"[{BRAND['dim']}]Now chatting with {role.name}. New chat started.[/]")

    def _voice(self, arg: str) -> None:
        if self.inference is None:
            self.console.print("[red]Voice input is not available.[/red]")
            return
        path = Path(arg).expanduser()
        if not arg or not path.is_file():
            self.console.print(f"[red]Audio file not found:[/red] {arg or '(none)'}")
            return

        content_type = mimetypes.guess_type(path.name)[0] or "audio/wav"
        try:
            with self.console.status("Transcribing...", spinner="dots"):
                text = asyncio.run(
                    self.inference.transcribe_audio(path.read_bytes(), content_type)
                )
        except InferenceError as e:
            self.console.print(f"[red]Transcription failed:[/red] {escape(str(e))}")
            return

        if not text.strip():
            self.console.print(f"[{BRAND['dim']}]No speech recognized.[/]")
            return
        self.console.print(f"[{BRAND['dim']}]You said:[/] {escape(text)}")
        self.send(text)

    def _print_banner(self) -> None:
        title = Text("Soldiom", style=f"bold {BRAND['accent']}")
        title.append(f"  {self.session.role.name} · {self.session.transport.display_name}",
                     style=BRAND["dim"])
        self.console.print(title)
        self.console.print(f"[{BRAND['dim']}]Type /help for commands. "
                           "Soldiom can make mistakes. Check important info.[/]")

    def _print_help(self) -> None:
        table = Table(show_header=False, box=None, padding=(0, 2))
        for command, description in _HELP:
            table.add_row(f"[bold]{command}[/bold]", description)
        self.console.print(table)

    def _print_roles(self) -> None:
        table = Table(show_header=False, box=None, padding=(0, 2))
        for key, role in self.roles.items():
            marker = "●" if key == self.session.role.key else " "
            table.add_row(marker, f"[bold]{key}[/bold]", role.name, f"[{BRAND['dim']}]{role.description}[/]")
        self.console.print(table)
