from __future__ import annotations

from importlib import import_module
from importlib.metadata import PackageNotFoundError, version
from types import ModuleType
from typing import TYPE_CHECKING, Any

__all__ = [
    "__version__",
    "io_xlsx",
    "io_csv",
    "cli",
]

try:
    __version__ = version("sheetkit")
except PackageNotFoundError:
    __version__ = "0.0.0"

if TYPE_CHECKING:
    import sheetkit.cli as cli
    import sheetkit.io.csv as io_csv
    import sheetkit.io.xlsx as io_xlsx

_ALIAS_MODULES: dict[str, str] = {
    "io_xlsx": "sheetkit.io.xlsx",
    "io_csv": "sheetkit.io.csv",
    "cli": "sheetkit.cli",
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
