from __future__ import annotations

import re
import sys
from pathlib import Path

import pytest

# Ensure src-layout imports work when running tests from repo checkout.
SRC_DIR = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC_DIR))

import sheetkit  # noqa: E402
from sheetkit._optional_deps import import_optional_module  # noqa: E402


def test_optional_import_error_contains_install_hint() -> None:
    with pytest.raises(ModuleNotFoundError) as exc_info:
        import_optional_module(
            module_name=".missing_feature_module",
            package="sheetkit",
            feature="sheetkit.io.xlsx",
            extras=("xlsx",),
            required_modules=("missing_feature_module",),
        )

    message = str(exc_info.value)
    assert "sheetkit.io.xlsx is unavailable" in message
    assert re.search(r'pip install "sheetkit\[xlsx\]"', message)


def test_unrelated_missing_module_is_not_masked() -> None:
    with pytest.raises(ModuleNotFoundError) as exc_info:
        import_optional_module(
            module_name=".missing_feature_module",
            package="sheetkit",
            feature="sheetkit.io.xlsx",
            extras=("xlsx",),
            required_modules=("xlsxwriter",),
        )
    assert "unavailable" not in str(exc_info.value)


def test_lazy_aliases_resolve_subpackages() -> None:
    assert sheetkit.io_xlsx.__name__ == "sheetkit.io.xlsx"
    assert sheetkit.io_csv.__name__ == "sheetkit.io.csv"
    with pytest.raises(AttributeError):
        sheetkit.no_such_alias  # noqa: B018
    with pytest.raises(AttributeError):
        sheetkit.io_xlsx.NoSuchWriter  # noqa: B018
