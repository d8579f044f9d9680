"""
Datasource implementation and the HTTP transport it talks through.

* :class:`SaymonDatasource` implements the dashboard-facing operations.
* :class:`Transport` is the request capability it depends on;
  :class:`HTTPXTransport` is the default implementation.
"""

from .base import AdapterError, APIError, InvalidTimeRange, MultipleQueriesUnsupported, TransportError, UnexpectedPayload
from .datasource import ItemShape, SaymonDatasource, build_query_parameters, classify_item, map_to_text_value
from .transport import DatasourceRequest, DatasourceResponse, HTTPXTransport, Transport

__all__ = [
    "AdapterError",
    "APIError",
    "DatasourceRequest",
    "DatasourceResponse",
    "HTTPXTransport",
    "InvalidTimeRange",
    "ItemShape",
    "MultipleQueriesUnsupported",
    "SaymonDatasource",
    "Transport",
    "TransportError",
    "UnexpectedPayload",
    "build_query_parameters",
    "classify_item",
    "map_to_text_value",
]
