"""Escaping of parameter values for safe inclusion in a shell command line.

Every character outside a small shell-inert set is backslash-escaped, so a
sanitized value can never end the current token or start a new command.
"""

import os
import re
from collections.abc import Iterable

from safespawn.params import Flag, is_sequence_value

# Characters that never carry meaning for a POSIX shell.
_UNSAFE_CHARACTER = re.compile(r"([^A-Za-z0-9_\-./\n])")


def shell_escape(text: str) -> str:
    """Escape text so a POSIX shell reads it back as exactly one word.

    Args:
        text: Raw text to escape

    Returns:
        Escaped text. An empty string becomes `''` so it still forms a word.

    Example:
        shell_escape("P@$s w0rd%") returns the text P\\@\\$s\\ w0rd\\%
    """
    if text == "":
        return "''"
    escaped = _UNSAFE_CHARACTER.sub(r"\\\1", text)
    # A backslash-newline is a line continuation, so newlines are quoted instead.
    return escaped.replace("\n", "'\n'")


def stringify(value: object) -> str:
    """Render a scalar parameter value as text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Flag):
        return value.name
    if isinstance(value, (bytes, bytearray)):
        return os.fsdecode(bytes(value))
    if isinstance(value, os.PathLike):
        return os.fsdecode(os.fspath(value))
    return str(value)


def sanitize_value(value: object) -> str | list[str] | None:
    """Sanitize one parameter value.

    Args:
        value: None, a scalar, or a sequence of scalars (possibly nested)

    Returns:
        None for None, a flat list of escaped tokens for a sequence (None
        elements dropped), or a single escaped token for a scalar.
    """
    if value is None:
        return None
    if is_sequence_value(value):
        return list(_sanitize_sequence(value))  # type: ignore[arg-type]
    return shell_escape(stringify(value))


def _sanitize_sequence(values: Iterable[object]) -> Iterable[str]:
    for item in values:
        sanitized = sanitize_value(item)
        if sanitized is None:
            continue
        if isinstance(sanitized, list):
            yield from sanitized
        else:
            yield sanitized
