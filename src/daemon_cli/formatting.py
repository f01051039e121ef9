"""Output templates for command handlers.

Templates use ``str.format`` fields whose names are a dotted path into the
value being rendered, optionally piped through template functions:

    render_template("{Version}", info)          -> "1.2.3"
    render_template("{.|json}", info)           -> '{"Version":"1.2.3"}'
    render_template("{Platform.Name|json}", info)

``FORMAT_FUNCS`` is the function table; ``json`` is the only entry.
"""

from __future__ import annotations

import json
import string
from collections.abc import Callable, Mapping
from typing import Any

from .errors import TemplateError


def to_json(value: Any) -> str:
    """Serialize a value to compact JSON."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


FORMAT_FUNCS: dict[str, Callable[[Any], str]] = {
    "json": to_json,
}


def resolve_path(value: Any, path: str) -> Any:
    """Walk a dotted path through mappings and attributes.

    ``""`` and ``"."`` return the value itself.
    """
    path = path.strip().lstrip(".")
    if not path:
        return value
    for part in path.split("."):
        if isinstance(value, Mapping):
            value = value[part]
        else:
            value = getattr(value, part)
    return value


class _TemplateFormatter(string.Formatter):
    def get_field(self, field_name: str, args: Any, kwargs: Any) -> tuple[Any, str]:
        path, *pipeline = [part.strip() for part in field_name.split("|")]
        try:
            obj = resolve_path(kwargs["value"], path)
        except (KeyError, AttributeError, TypeError) as e:
            raise TemplateError(f"template field {path!r} not found") from e

        for name in pipeline:
            func = FORMAT_FUNCS.get(name)
            if func is None:
                raise TemplateError(f"template function {name!r} not defined")
            obj = func(obj)
        return obj, path


_formatter = _TemplateFormatter()


def render_template(template: str, value: Any) -> str:
    """Render ``template`` against ``value``.

    Raises:
        TemplateError: On unknown fields, unknown functions or bad syntax
    """
    try:
        return _formatter.vformat(template, (), {"value": value})
    except (ValueError, TypeError) as e:
        raise TemplateError(f"invalid template {template!r}: {e}") from e
