"""
Template variable interpolation.

Dashboard hosts expose a templating service whose ``replace`` method substitutes
variable references inside a query string. :class:`VariableTemplateSrv` is a
self-contained implementation of that service used when the adapter runs
outside a host, e.g. from the CLI. Supported references are ``$name``,
``${name}``, ``${name:format}`` and ``[[name]]``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, MutableMapping, Optional, Protocol, Sequence

VARIABLE_PATTERN = re.compile(r"\$(\w+)|\[\[([\s\S]+?)(?::(\w+))?\]\]|\${(\w+)(?:\.([^:^\}]+))?(?::(\w+))?}")

ScopedVars = Mapping[str, Any]


class TemplateService(Protocol):
    """Interface consumed by the datasource for variable interpolation."""

    def replace(self, target: str, scoped_vars: Optional[ScopedVars] = None, fmt: Optional[str] = None) -> str:
        """Return ``target`` with variable references substituted."""


def _regex_escape(value: str) -> str:
    return re.sub(r"[\\^$*+?.()|[\]{}/]", lambda match: "\\" + match.group(0), value)


def _format_regex(value: Any) -> str:
    if isinstance(value, str):
        return _regex_escape(value)
    escaped = [_regex_escape(str(item)) for item in value]
    if len(escaped) == 1:
        return escaped[0]
    return "(" + "|".join(escaped) + ")"


def _format_pipe(value: Any) -> str:
    if isinstance(value, str):
        return value
    return "|".join(str(item) for item in value)


def _format_csv(value: Any) -> str:
    if isinstance(value, str):
        return value
    return ",".join(str(item) for item in value)


def _format_glob(value: Any) -> str:
    if isinstance(value, str):
        return value
    if len(value) == 1:
        return str(value[0])
    return "{" + ",".join(str(item) for item in value) + "}"


FORMATTERS: Mapping[str, Callable[[Any], str]] = {
    "regex": _format_regex,
    "pipe": _format_pipe,
    "csv": _format_csv,
    "glob": _format_glob,
}


def _unwrap(value: Any) -> Any:
    # Scoped vars arrive as {"text": ..., "value": ...} from hosts.
    if isinstance(value, Mapping) and "value" in value:
        return value["value"]
    return value


@dataclass(slots=True)
class VariableTemplateSrv:
    """
    In-process :class:`TemplateService` backed by a mapping of variable values.

    Values may be strings or sequences of strings (multi-value variables).
    References to unknown variables are left untouched.
    """

    variables: MutableMapping[str, Any] = field(default_factory=dict)

    def set(self, name: str, value: str | Sequence[str]) -> None:
        self.variables[name] = value

    def replace(self, target: str, scoped_vars: Optional[ScopedVars] = None, fmt: Optional[str] = None) -> str:
        if not target:
            return target

        def substitute(match: re.Match[str]) -> str:
            name = match.group(1) or match.group(2) or match.group(4)
            explicit_format = match.group(3) or match.group(6)
            value = self._lookup(name, scoped_vars)
            if value is None:
                return match.group(0)
            formatter = FORMATTERS.get(explicit_format or fmt or "")
            if formatter is None:
                return value if isinstance(value, str) else _format_csv(value)
            return formatter(value)

        return VARIABLE_PATTERN.sub(substitute, target)

    def _lookup(self, name: str, scoped_vars: Optional[ScopedVars]) -> Any:
        if scoped_vars and name in scoped_vars:
            return _unwrap(scoped_vars[name])
        if name in self.variables:
            return _unwrap(self.variables[name])
        return None
