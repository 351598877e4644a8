from __future__ import annotations

from importlib import import_module
from types import ModuleType
from typing import TYPE_CHECKING, Any

__all__ = ["main", "console"]

if TYPE_CHECKING:
    import sheetkit.cli.console as console
    import sheetkit.cli.main as main

_ALIAS_MODULES: dict[str, str] = {
    "main": "sheetkit.cli.main",
    "console": "sheetkit.cli.console",
}


def __getattr__(name: str) -> Any:
    module_name = _ALIAS_MODULES.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_loaded: ModuleType = import_module(module_name)
    globals()[name] = module_loaded
    return module_loaded


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))
