"""The application core: messages, commands, the pure update function and the dispatcher."""

from .dispatcher import CommandDispatcher
from .update import initial_commands, update

__all__ = ["CommandDispatcher", "initial_commands", "update"]
