"""
Connection settings for the SAYMON datasource.

Hosts normally build :class:`InstanceSettings` directly from their settings
store. Stand-alone use (the CLI, scripts) goes through :func:`load_settings`,
which resolves values in this order, later sources winning:

1. The ``[saymon]`` table of a TOML file: an explicit path, else
   ``SAYMON_SETTINGS_PATH``, else ``.secrets/secret.toml`` or
   ``.secrets/secrets.toml`` under the current directory.
2. ``SAYMON_URL``, ``SAYMON_BASIC_AUTH``, ``SAYMON_WITH_CREDENTIALS`` and
   ``SAYMON_HONOR_TIME_RANGE`` environment variables.
3. Explicit overrides passed by the caller.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

JSON_CONTENT_TYPE = "application/json"
DEFAULT_NAME = "SAYMON"
DEFAULT_TYPE = "saymon-datasource"
SECTION = "saymon"

_ENV_SETTINGS_PATH = "SAYMON_SETTINGS_PATH"
_ENV_FIELDS = {
    "url": "SAYMON_URL",
    "basic_auth": "SAYMON_BASIC_AUTH",
    "with_credentials": "SAYMON_WITH_CREDENTIALS",
    "honor_time_range": "SAYMON_HONOR_TIME_RANGE",
}
_BOOL_FIELDS = {"with_credentials", "honor_time_range"}


class SettingsError(ValueError):
    """Raised when the datasource settings are incomplete or malformed."""


@dataclass(slots=True, frozen=True)
class InstanceSettings:
    """
    Immutable connection configuration of one datasource instance.

    Attributes
    ----------
    url:
        Base URL of the SAYMON server. A trailing slash is dropped.
    name:
        Display name of the datasource.
    type:
        Plugin type identifier.
    basic_auth:
        Pre-encoded ``Authorization`` header value, e.g. ``"Basic dXNlcjpwYXNz"``.
    with_credentials:
        Whether browser-style credentials accompany each request.
    honor_time_range:
        Query history for the host-supplied range instead of the last hour.
    """

    url: str
    name: str = DEFAULT_NAME
    type: str = DEFAULT_TYPE
    basic_auth: Optional[str] = None
    with_credentials: bool = False
    honor_time_range: bool = False
    headers: Mapping[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.url, str) or not self.url.strip():
            raise SettingsError("SAYMON datasource URL is not configured.")
        object.__setattr__(self, "url", self.url.strip().rstrip("/"))
        headers: Dict[str, str] = {"Content-Type": JSON_CONTENT_TYPE}
        if isinstance(self.basic_auth, str) and self.basic_auth:
            headers["Authorization"] = self.basic_auth
        object.__setattr__(self, "headers", headers)

    @property
    def auth_mode(self) -> str:
        return "basic-header" if "Authorization" in self.headers else "none"

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "InstanceSettings":
        """Build settings from host-style JSON (``basicAuth``, ``withCredentials``)."""

        return cls(
            url=payload.get("url", ""),
            name=payload.get("name") or DEFAULT_NAME,
            type=payload.get("type") or DEFAULT_TYPE,
            basic_auth=payload.get("basicAuth"),
            with_credentials=bool(payload.get("withCredentials", False)),
            honor_time_range=bool(payload.get("honorTimeRange", False)),
        )


def _coerce_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _candidate_paths() -> Iterable[Path]:
    env_override = os.getenv(_ENV_SETTINGS_PATH)
    if env_override:
        yield Path(env_override).expanduser()
    secrets_dir = Path.cwd() / ".secrets"
    for filename in ("secret.toml", "secrets.toml"):
        yield secrets_dir / filename


def _load_section(path: Path) -> Dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    section = raw.get(SECTION, {})
    if not isinstance(section, dict):
        raise SettingsError(f"[{SECTION}] in {path} must be a table.")
    return dict(section)


def load_settings(
    path: Optional[Path] = None,
    *,
    overrides: Optional[Mapping[str, object]] = None,
) -> InstanceSettings:
    """
    Resolve :class:`InstanceSettings` from file, environment and overrides.

    Parameters
    ----------
    path:
        TOML file to read. When given it must exist; otherwise the default
        locations are searched and skipped when absent.
    overrides:
        Field values taking precedence over everything else. ``None`` values
        are ignored.
    """

    values: Dict[str, object] = {}
    if path is not None:
        if not path.is_file():
            raise SettingsError(f"Settings file '{path}' does not exist.")
        values.update(_load_section(path))
    else:
        for candidate in _candidate_paths():
            if candidate.is_file():
                values.update(_load_section(candidate))
                break

    for key, env_name in _ENV_FIELDS.items():
        env_value = os.getenv(env_name)
        if env_value:
            values[key] = env_value

    if overrides:
        values.update({key: value for key, value in overrides.items() if value is not None})

    for key in _BOOL_FIELDS:
        if key in values:
            values[key] = _coerce_bool(values[key])

    if not values.get("url"):
        raise SettingsError(f"SAYMON datasource URL is not configured. Set [{SECTION}].url or {_ENV_FIELDS['url']}.")

    known = {"url", "name", "type", "basic_auth", "with_credentials", "honor_time_range"}
    return InstanceSettings(**{key: value for key, value in values.items() if key in known})  # type: ignore[arg-type]
