"""Parameter model for command line construction.

Callers describe command line parameters as a mapping, as an ordered sequence of
entries, or as a mix of both. Before anything is rendered, the structure is
normalized in a single pass into a closed set of entry types:

- Bare: a lone value (positional argument or switch)
- Pair: a key followed by zero or more values
- Group: a nested mapping found inside a sequence, kept at its position

Keys given as `Flag` are symbolic: they gain their dash prefix at render time.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Flag:
    """Symbolic flag identifier.

    The name is rendered with a `--` prefix (or `-` for a single character name)
    and underscores become dashes. A trailing `=` selects assignment style.

    Examples:
        Flag("verbose")  -> --verbose
        Flag("v")        -> -v
        Flag("key_name") -> --key-name
        Flag("key_name=") with value "x" -> --key-name=x
    """

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Bare:
    """A value with no separate key, rendered like a key on its own."""

    value: Any


@dataclass(frozen=True)
class Pair:
    """A key and the values that follow it."""

    key: Any
    values: tuple[Any, ...]


@dataclass(frozen=True)
class Group:
    """Entries of a mapping nested inside a parameter sequence."""

    entries: tuple["ParamEntry", ...]


ParamEntry = Bare | Pair | Group


def is_sequence_value(value: object) -> bool:
    """Check whether a parameter value expands into multiple tokens.

    Strings, bytes, mappings and path-like objects are scalars even though
    some of them are iterable.
    """
    if isinstance(value, (str, bytes, bytearray, Mapping, os.PathLike, Flag)):
        return False
    return hasattr(value, "__iter__")


def normalize_params(params: object) -> tuple[ParamEntry, ...]:
    """Normalize a caller supplied parameter structure into entries.

    Args:
        params: None, a mapping of key to value, or a sequence whose items are
            barewords, `[key, *values]` lists/tuples, or nested mappings

    Returns:
        Entries in render order. Empty for None or any empty structure.

    Raises:
        TypeError: If params is neither a mapping nor a sequence
    """
    if params is None:
        return ()
    if isinstance(params, Mapping):
        return tuple(Pair(key, (value,)) for key, value in params.items())
    if isinstance(params, (list, tuple)):
        return tuple(_normalize_item(item) for item in params)
    if isinstance(params, str) and params == "":
        return ()
    raise TypeError(f"params must be a mapping or a sequence, not {type(params).__name__}")


def _normalize_item(item: object) -> ParamEntry:
    if isinstance(item, Mapping):
        return Group(normalize_params(item))
    if isinstance(item, (list, tuple)):
        if len(item) == 0:
            return Pair(None, ())
        return Pair(item[0], tuple(item[1:]))
    return Bare(item)
