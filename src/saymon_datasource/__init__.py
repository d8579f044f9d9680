"""
Dashboard datasource for the SAYMON monitoring REST API.

Import :class:`SaymonDatasource` together with :class:`InstanceSettings` for the
main developer-facing surface; ``saymon-datasource`` is the command-line entry
point.
"""

from .adapters import (
    AdapterError,
    HTTPXTransport,
    MultipleQueriesUnsupported,
    SaymonDatasource,
    TransportError,
    map_to_text_value,
)
from .config import InstanceSettings, SettingsError, load_settings
from .models import DatasourceStatus, QueryOptions, QueryResult, QueryTarget, Series, TextValue, TimeRange

__all__ = [
    "AdapterError",
    "DatasourceStatus",
    "HTTPXTransport",
    "InstanceSettings",
    "MultipleQueriesUnsupported",
    "QueryOptions",
    "QueryResult",
    "QueryTarget",
    "SaymonDatasource",
    "Series",
    "SettingsError",
    "TextValue",
    "TimeRange",
    "TransportError",
    "load_settings",
    "map_to_text_value",
]
