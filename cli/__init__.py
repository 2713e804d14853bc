"""Command line entry points for the instrument aggregator."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# ``cli.app`` must keep resolving to the module (tests patch ``cli.app.ApiClient``),
# so the Typer instance is not re-exported here.

__all__ = []
