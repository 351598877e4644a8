from __future__ import annotations

from collections.abc import Iterable, Sequence
from importlib import import_module
from types import ModuleType
from typing import Any


def _derive_module_candidates(names: Iterable[str]) -> set[str]:
    # "a.b.c" -> {"a", "b", "c"}; matches both top-level and leaf names
    set_candidates: set[str] = set()
    for _name in names:
        if not _name:
            continue
        l_parts = _name.split(".")
        set_candidates |= set(l_parts)
    return set_candidates


def build_optional_dependency_error(
    *,
    feature: str,
    extras: Sequence[str],
    missing_module: str | None,
) -> ModuleNotFoundError:
    c_extras = ",".join(dict.fromkeys(extras))
    c_missing = (
        f"Missing optional dependency `{missing_module}`."
        if missing_module
        else "Missing optional dependency."
    )
    return ModuleNotFoundError(
        f"{feature} is unavailable. {c_missing} "
        f"Install extras with `pip install \"sheetkit[{c_extras}]\"`."
    )


def import_optional_module(
    *,
    module_name: str,
    package: str,
    feature: str,
    extras: Sequence[str],
    required_modules: Sequence[str],
) -> ModuleType:
    """
    Import a feature module, translating a missing third-party library into a
    ``ModuleNotFoundError`` that tells the user which extra to install.

    Only libraries listed in ``required_modules`` are translated; any other
    missing module is re-raised untouched so genuine bugs are not masked.
    An empty ``required_modules`` translates every missing module.
    """
    try:
        return import_module(module_name, package=package)
    except ModuleNotFoundError as exc:
        set_missing = _derive_module_candidates([exc.name or ""])
        set_required = _derive_module_candidates(required_modules)

        if not required_modules or set_missing & set_required:
            raise build_optional_dependency_error(
                feature=feature,
                extras=extras,
                missing_module=exc.name,
            ) from exc
        raise


def import_optional_attr(
    *,
    module_name: str,
    attr_name: str,
    package: str,
    feature: str,
    extras: Sequence[str],
    required_modules: Sequence[str],
) -> Any:
    module = import_optional_module(
        module_name=module_name,
        package=package,
        feature=feature,
        extras=extras,
        required_modules=required_modules,
    )
    return getattr(module, attr_name)
