"""
SAYMON datasource: translates dashboard queries into SAYMON REST calls and
normalises the responses into the host's series and dropdown formats.

Every backend call goes through :meth:`SaymonDatasource.do_request`, which is
the single place where the configured headers and credential policy are
attached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from logging import LoggerAdapter
from typing import Any, List, Mapping, Optional, Sequence

from ..config import InstanceSettings
from ..core.logging import get_logger
from ..core.templating import ScopedVars, TemplateService, VariableTemplateSrv
from ..models import DatasourceStatus, QueryOptions, QueryResult, QueryTarget, Series, TextValue
from .base import InvalidTimeRange, MultipleQueriesUnsupported, TransportError, UnexpectedPayload
from .transport import DatasourceRequest, DatasourceResponse, HTTPXTransport, Transport

HEALTH_PATH = "/node/api/tags"
HISTORY_PATH = "/node/api/objects/{object_id}/history"
METRICS_PATH = "/node/api/objects/{object_id}/stat/metrics"
TAG_KEYS_PATH = "/tag-keys"
TAG_VALUES_PATH = "/tag-values"
SEARCH_PATH = "/search"
DEFAULT_LOOKBACK = "1h-ago"


class ItemShape(str, Enum):
    """Shape of a dropdown item returned by the backend, in matching precedence."""

    TEXT_VALUE = "text_value"
    STRUCTURED = "structured"
    SCALAR = "scalar"


def classify_item(item: Any) -> ItemShape:
    if isinstance(item, Mapping) and item.get("text") and item.get("value"):
        return ItemShape.TEXT_VALUE
    if isinstance(item, (Mapping, list, tuple)):
        return ItemShape.STRUCTURED
    return ItemShape.SCALAR


def map_to_text_value(items: Any) -> List[TextValue]:
    """
    Normalise an arbitrary JSON array into ``{text, value}`` pairs.

    Items carrying both ``text`` and ``value`` keep them; other objects use
    their position as the value; scalars are used as both text and value.
    """

    if items is None:
        return []
    if not isinstance(items, (list, tuple)):
        raise UnexpectedPayload(f"Expected a JSON array, got {type(items).__name__}.")

    mapped: List[TextValue] = []
    for index, item in enumerate(items):
        shape = classify_item(item)
        if shape is ItemShape.TEXT_VALUE:
            mapped.append(TextValue(text=item["text"], value=item["value"]))
        elif shape is ItemShape.STRUCTURED:
            mapped.append(TextValue(text=item, value=index))
        else:
            mapped.append(TextValue(text=item, value=item))
    return mapped


def build_query_parameters(options: QueryOptions) -> List[QueryTarget]:
    """Return the targets that name an object and a metric and are not hidden."""

    return [target for target in options.targets if target.object_id and target.metric_name and not target.hide]


@dataclass(slots=True)
class SaymonDatasource:
    """
    Datasource bound to one SAYMON server.

    Parameters
    ----------
    settings:
        Connection configuration, fixed for the lifetime of the instance.
    transport:
        Request machinery. Defaults to :class:`HTTPXTransport`.
    template_srv:
        Template variable service used by :meth:`metric_find_query`.
    """

    settings: InstanceSettings
    transport: Transport = field(default_factory=HTTPXTransport)
    template_srv: TemplateService = field(default_factory=VariableTemplateSrv)
    logger: LoggerAdapter = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.logger = get_logger(__name__, extra={"datasource": self.settings.name})

    @property
    def url(self) -> str:
        return self.settings.url

    # ------------------------------------------------------------------ host API

    async def test_datasource(self) -> Optional[DatasourceStatus]:
        """Return a success descriptor when the health endpoint answers 200, else ``None``."""

        response = await self.do_request("GET", self.url + HEALTH_PATH)
        if response.status == 200:
            return DatasourceStatus(status="success", message="Data source is working", title="Success")
        self.logger.warning("Health check returned unexpected status", extra={"status_code": response.status})
        return None

    async def query(self, options: QueryOptions | Mapping[str, Any]) -> QueryResult:
        """
        Fetch the history of the single eligible target in ``options``.

        Raises
        ------
        MultipleQueriesUnsupported
            When more than one target is eligible. No request is sent.
        """

        if isinstance(options, Mapping):
            options = QueryOptions.from_mapping(options)
        targets = self.build_query_parameters(options)

        if not targets:
            return QueryResult(data=[])
        if len(targets) > 1:
            raise MultipleQueriesUnsupported(len(targets))

        target = targets[0]
        self.logger.debug("Querying history", extra={"operation": "query", "target": target.label})
        response = await self.do_request(
            "GET",
            self.url + HISTORY_PATH.format(object_id=target.object_id),
            params=self._history_params(target, options),
        )
        return QueryResult(data=self._to_series(target, response.data))

    async def annotation_query(self, options: Any = None) -> None:
        """Annotations are not supported by SAYMON; always returns ``None``."""

        return None

    async def list_metrics(self, object_id: str) -> Any:
        """Return the metric names recorded for ``object_id``."""

        response = await self.do_request("GET", self.url + METRICS_PATH.format(object_id=object_id))
        return response.data

    async def metric_find_query(self, query: str, scoped_vars: Optional[ScopedVars] = None) -> List[TextValue]:
        interpolated = {"target": self.template_srv.replace(query, scoped_vars, "regex")}
        response = await self.do_request("POST", self.url + SEARCH_PATH, data=interpolated)
        return self.map_to_text_value(response.data)

    async def get_tag_keys(self, options: Optional[Mapping[str, Any]] = None) -> List[TextValue]:
        response = await self.do_request("POST", self.url + TAG_KEYS_PATH, data=dict(options or {}))
        return self.map_to_text_value(response.data)

    async def get_tag_values(self, options: Optional[Mapping[str, Any]] = None) -> List[TextValue]:
        response = await self.do_request("POST", self.url + TAG_VALUES_PATH, data=dict(options or {}))
        return self.map_to_text_value(response.data)

    # ------------------------------------------------------------------ helpers

    map_to_text_value = staticmethod(map_to_text_value)
    build_query_parameters = staticmethod(build_query_parameters)

    async def do_request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        data: Any = None,
    ) -> DatasourceResponse:
        """Send a request carrying the configured headers and credential flag."""

        request = DatasourceRequest(
            method=method,
            url=url,
            params=params,
            data=data,
            headers=dict(self.settings.headers),
            with_credentials=self.settings.with_credentials,
        )
        try:
            return await self.transport.request(request)
        except TransportError as exc:
            self.logger.error(
                "Backend request failed",
                extra={"method": method, "url": url, "status_code": exc.status_code, "error": str(exc)},
            )
            raise

    def _history_params(self, target: QueryTarget, options: QueryOptions) -> dict[str, Any]:
        if self.settings.honor_time_range:
            try:
                window = options.resolve_range()
            except (KeyError, TypeError, ValueError) as exc:
                raise InvalidTimeRange(f"Cannot interpret time range {options.raw_range!r}: {exc}") from exc
            if window is not None:
                start, end = window.to_epoch_ms()
                return {"from": start, "to": end, "metrics": target.metric_name}
        return {"from": DEFAULT_LOOKBACK, "metrics": target.metric_name}

    @staticmethod
    def _to_series(target: QueryTarget, payload: Any) -> List[Series]:
        if payload is None:
            return []
        if not isinstance(payload, (list, tuple)):
            raise UnexpectedPayload(f"Unexpected history payload for {target.label}: {type(payload).__name__}.")

        series: List[Series] = []
        for metric_data in payload:
            dps: Sequence[Sequence[Any]] = (metric_data.get("dps") if isinstance(metric_data, Mapping) else None) or []
            series.append(Series(target=target.label, datapoints=[list(reversed(point)) for point in dps]))
        return series
