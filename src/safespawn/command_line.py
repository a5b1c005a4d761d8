"""Command line construction from a command and structured parameters.

Parameter forms and what they render (after `command `):

    {"--user": "bob"}              --user bob
    {"--user=": "bob"}             --user=bob
    {Flag("user"): "bob"}          --user bob
    {Flag("user_name="): "bob"}    --user-name=bob
    {Flag("v"): None}              -v
    {"-f": ["a", "b"]}             -f a b
    {None: ["a", "b"]}             a b
    [["-f", "a", "b"]]             -f a b
    [[Flag("key")]]                --key
    ["log", Flag("oneline")]       log --oneline
    ["log", {Flag("grep"): "x"}]   log --grep x

Keys are used as given apart from escaping; every value is escaped with
`shell_escape`. The command itself is never escaped.
"""

import os
import re
from collections.abc import Sequence

from safespawn.params import Bare, Flag, Group, Pair, ParamEntry, normalize_params
from safespawn.sanitize import sanitize_value, shell_escape

_KEY_PATTERN = re.compile(r"(--?)?(.+?)(=?)", re.DOTALL)
_SINGLE_CHARACTER_FLAG = re.compile(r".=?", re.DOTALL)


def build_command_line(command: str | os.PathLike[str], params: object = None) -> str:
    """Build a full command line.

    Args:
        command: Executable name or path, used verbatim
        params: Optional parameters (mapping, sequence, or nested mix)

    Returns:
        The command, followed by one space and the rendered parameters when
        there are any.

    Raises:
        TypeError: If params is neither a mapping nor a sequence
    """
    rendered = render_params(params)
    command_text = os.fspath(command)
    if not rendered:
        return command_text
    return f"{command_text} {rendered}"


def build_pipeline(stages: Sequence[object]) -> tuple[str, ...]:
    """Build one command line per pipeline stage.

    Args:
        stages: Each stage is a command, or a `(command, params)` pair

    Returns:
        Command lines in stage order
    """
    command_lines: list[str] = []
    for stage in stages:
        if isinstance(stage, (list, tuple)):
            if len(stage) != 2:
                raise TypeError("pipeline stages must be a command or a (command, params) pair")
            command, params = stage
            command_lines.append(build_command_line(command, params))
        else:
            command_lines.append(build_command_line(stage))  # type: ignore[arg-type]
    return tuple(command_lines)


def render_params(params: object) -> str:
    """Render parameters without the leading command."""
    groups = _render_entries(normalize_params(params))
    return " ".join(group for group in groups if group)


def _render_entries(entries: tuple[ParamEntry, ...]) -> list[str]:
    groups: list[str] = []
    for entry in entries:
        match entry:
            case Bare(value=value):
                groups.append(_render_group(value, ()))
            case Pair(key=key, values=values):
                groups.append(_render_group(key, values))
            case Group(entries=nested):
                groups.extend(_render_entries(nested))
    return groups


def _render_group(key: object, values: tuple[object, ...]) -> str:
    rendered_key = render_key(key)
    tokens = sanitize_value(list(values)) or []
    value_text = " ".join(tokens)
    if rendered_key is None:
        return value_text
    if not value_text:
        return rendered_key
    joiner = "" if rendered_key.endswith("=") else " "
    return f"{rendered_key}{joiner}{value_text}"


def render_key(key: object) -> str | None:
    """Render a parameter key.

    Args:
        key: None, a `Flag`, a literal string, or any other scalar

    Returns:
        None when the key is absent, otherwise the key text. Literal strings
        keep an existing `-`/`--` prefix and trailing `=` unescaped; only the
        part in between is escaped.
    """
    if key is None:
        return None
    if isinstance(key, Flag):
        key = _flag_to_option(key)
    if isinstance(key, str):
        if key == "":
            return None
        match = _KEY_PATTERN.fullmatch(key)
        assert match is not None
        prefix, body, suffix = match.group(1) or "", match.group(2), match.group(3)
        return f"{prefix}{shell_escape(body)}{suffix}"
    rendered = sanitize_value(key)
    if isinstance(rendered, list):
        return " ".join(rendered) or None
    return rendered


def _flag_to_option(flag: Flag) -> str:
    dash = "-" if _SINGLE_CHARACTER_FLAG.fullmatch(flag.name) else "--"
    return f"{dash}{flag.name.replace('_', '-')}"
