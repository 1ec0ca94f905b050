"""Command line interface for the Acoem integration."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# ``cli.app`` must keep resolving to the module so tests can patch its
# factories; the Typer instance is ``cli.app.app``.

__all__ = []
