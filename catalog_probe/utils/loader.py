from __future__ import annotations

import importlib
from typing import Any, Iterable, List, Sequence

from ..errors import ConfigError, InputError


def load_symbol(dotted: str) -> Any:
    """
    Load a class or function from a dotted path.
    Supports both "package.module:ClassName" and "package.module.ClassName".
    """
    try:
        if ":" in dotted:
            module_name, symbol_name = dotted.split(":", 1)
        else:
            module_name, symbol_name = dotted.rsplit(".", 1)
        module = importlib.import_module(module_name)
        return getattr(module, symbol_name)
    except (ValueError, ImportError, AttributeError) as exc:
        raise ConfigError(f"Cannot load {dotted!r}: {exc}") from exc


def parse_codes(lines: Iterable[str], skip_prefixes: Sequence[str] = ("Processing:",)) -> List[str]:
    """
    Trimmed, non-empty lines that are not status/log noise, in file order.
    Duplicates are kept: each occurrence is checked on its own.
    """
    prefixes = tuple(skip_prefixes)
    codes: List[str] = []
    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        if prefixes and line.startswith(prefixes):
            continue
        codes.append(line)
    return codes


def load_codes(path: str, skip_prefixes: Sequence[str] = ("Processing:",)) -> List[str]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return parse_codes(f, skip_prefixes)
    except (OSError, UnicodeDecodeError) as exc:
        raise InputError(f"Cannot read codes from {path}: {exc}") from exc
