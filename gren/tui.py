"""Interactive TUI for gren using Textual.

The app holds one ``AppState``. Key presses and command results are fed to
``update``; the commands it returns run as Textual workers, and each one
posts exactly one result message back.
"""

from typing import Iterable, Optional

from textual import events, work
from textual.app import App, ComposeResult
from textual.widgets import Static

from .core import CommandDispatcher, initial_commands, update
from .core.commands import Command, OpenConfigFile, Quit
from .core.messages import KeyPressed, Message, WindowResized
from .core.update import initial_state
from .logging_config import get_logger
from .models.state import AppState
from .ui import render

logger = get_logger(__name__)


def normalize_key(event: events.Key) -> str:
    """Printable characters as themselves, everything else by Textual's key name."""
    if event.character and len(event.character) == 1 and event.character.isprintable():
        return "space" if event.character == " " else event.character
    if event.key == "escape":
        return "esc"
    return event.key


class GrenApp(App):
    """Textual application hosting the gren state machine."""

    TITLE = "gren"

    DEFAULT_CSS = """
    #body {
        padding: 0 1;
    }
    """

    def __init__(self, dispatcher: CommandDispatcher):
        super().__init__()
        self.dispatcher = dispatcher
        self.state: AppState = initial_state()

    def compose(self) -> ComposeResult:
        yield Static(id="body")

    def on_mount(self) -> None:
        self.state = initial_state(self.size.width, self.size.height)
        self._refresh_body()
        self.run_commands(initial_commands())

    # ------------------------------------------------------------------ input

    def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()
        self.apply(KeyPressed(normalize_key(event)))

    async def action_help_quit(self) -> None:
        """ctrl+c belongs to the state machine, not Textual's quit help."""
        self.apply(KeyPressed("ctrl+c"))

    def on_resize(self, event: events.Resize) -> None:
        self.apply(WindowResized(event.size.width, event.size.height))

    # ------------------------------------------------------------------ loop

    def apply(self, message: Optional[Message]) -> None:
        """Feed one message to ``update`` and run the resulting commands."""
        if message is None:
            return
        self.state, commands = update(self.state, message)
        self._refresh_body()
        self.run_commands(commands)

    def run_commands(self, commands: Iterable[Command]) -> None:
        for command in commands:
            if isinstance(command, Quit):
                self.call_later(self.action_quit)
                return
            self.run_command(command)

    @work(thread=False, exit_on_error=False)
    async def run_command(self, command: Command) -> None:
        if isinstance(command, OpenConfigFile):
            # the editor needs the terminal
            with self.suspend():
                message = self.dispatcher.run(command)
        else:
            message = await self.dispatcher.dispatch(command)
        self.apply(message)

    def _refresh_body(self) -> None:
        self.query_one("#body", Static).update(render(self.state))

    async def action_quit(self) -> None:
        """Override quit action to clean up resources before exiting."""
        try:
            self.workers.cancel_all()
            self.dispatcher.close()
        except Exception as e:
            logger.debug(f"Error during shutdown: {e}")
        finally:
            self.exit()
