"""Presentation of the application state."""

from .render import render

__all__ = ["render"]
