"""
Evaluation of kubectl style path expressions ({.spec.ports[0].port}) against
arbitrary resource manifests, and the mapping of such an expression to a legal
secret key
"""

# Standard
from typing import Any
import json
import re

# Third Party
from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse

# First Party
import alog

# Local
from .exceptions import ConfigError

log = alog.use_channel("RPATH")

# A path expression is a single brace-enclosed, dot-rooted expression
_PATH_EXPR = re.compile(r"^\{(\..*)\}$", re.DOTALL)

# One dot-led field name, possibly holding \. escapes for literal dots
_FIELD = re.compile(r"\.((?:[^.\[\]\\]|\\.)+)")

# Everything outside of this set is dropped when turning a path into a key
_ILLEGAL_KEY_CHARS = re.compile(r"[^-._a-zA-Z0-9]+")


def is_path_expression(value: str) -> bool:
    """True if the value is a brace-enclosed path expression rather than a
    plain key
    """
    return bool(value) and value.startswith("{")


def path_to_key(path: str) -> str:
    """Turn a path expression into a legal secret key by removing every
    character that is not allowed in a key, e.g.
    {.spec.ports[0].targetPort} -> .spec.ports0.targetPort
    """
    key = _ILLEGAL_KEY_CHARS.sub("", path)
    if not key:
        raise ConfigError(f"path expression '{path}' does not yield a usable key")
    return key


def get_path_value(obj: dict, path: str) -> str:
    """Evaluate a path expression against a resource manifest and render the
    result the way kubectl -o jsonpath does

    Args:
        obj:  dict
            The resource manifest
        path:  str
            The expression, e.g. {.status.ports[0].port}

    Returns:
        value:  str
            The rendered matches, joined with a single space. If nothing
            matches, this is the empty string.
    """
    match = _PATH_EXPR.match(path or "")
    if not match:
        raise ConfigError(
            f"invalid path expression '{path}': must be of the form {{.field...}}"
        )
    try:
        expr = parse("$" + _FIELD.sub(_quote_escaped_field, match.group(1)))
    except JSONPathError as err:
        raise ConfigError(f"invalid path expression '{path}': {err}") from err
    values = [_render(found.value) for found in expr.find(obj)]
    log.debug4("Path %s resolved to %s", path, values)
    return " ".join(values)


def _quote_escaped_field(match: re.Match) -> str:
    """kubectl escapes the dots inside a field name with a backslash. Such
    fields become quoted fields, which hold any character.
    """
    name = match.group(1)
    if "\\" not in name:
        return match.group(0)
    return ".'" + re.sub(r"\\(.)", r"\1", name) + "'"


def _render(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)
