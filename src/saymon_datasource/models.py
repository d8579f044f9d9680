"""
Value types exchanged between the dashboard host and the datasource.

Host payloads arrive as camelCase JSON; the ``from_mapping`` constructors
translate them into these dataclasses and ``to_dict`` goes the other way.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, List, Mapping, Optional, Sequence

DataPoint = List[Any]

_RELATIVE_TIME = re.compile(r"^now(?:-(\d+)([smhdw]))?$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}


@dataclass(slots=True, frozen=True)
class QueryTarget:
    """One query row authored in a dashboard panel."""

    object_id: Optional[str] = None
    metric_name: Optional[str] = None
    hide: bool = False
    ref_id: Optional[str] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "QueryTarget":
        return cls(
            object_id=payload.get("objectId"),
            metric_name=payload.get("metricName"),
            hide=bool(payload.get("hide", False)),
            ref_id=payload.get("refId"),
        )

    @property
    def label(self) -> str:
        return f"{self.object_id}:{self.metric_name}"


@dataclass(slots=True, frozen=True)
class TimeRange:
    start: datetime
    end: datetime

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any], *, now: Optional[datetime] = None) -> "TimeRange":
        """
        Parse host bounds: ``now``, ``now-<n><s|m|h|d|w>``, epoch milliseconds or ISO 8601.

        Raises ``ValueError`` for bounds in any other form and ``KeyError`` when one is missing.
        """

        reference = now or datetime.now(timezone.utc)
        return cls(start=_parse_time(payload["from"], reference), end=_parse_time(payload["to"], reference))

    def to_epoch_ms(self) -> tuple[int, int]:
        return int(self.start.timestamp() * 1000), int(self.end.timestamp() * 1000)


def _parse_time(value: Any, now: datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    text = str(value).strip()
    relative = _RELATIVE_TIME.match(text)
    if relative:
        amount, unit = relative.groups()
        if amount is None:
            return now
        return now - timedelta(seconds=int(amount) * _UNIT_SECONDS[unit])
    if text.isdigit():
        return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


@dataclass(slots=True)
class QueryOptions:
    """
    A batch of query targets plus the time range and templating context.

    Attributes
    ----------
    targets:
        Query rows from the panel, in panel order.
    range:
        Requested time window, when the caller already holds a parsed one.
    raw_range:
        Unparsed host window (``{"from": ..., "to": ...}``), parsed only on
        demand by :meth:`resolve_range`.
    scoped_vars:
        Template variables scoped to this request (e.g. repeated panels).
    interval:
        Suggested interval between points, as a host duration string.
    max_data_points:
        Upper bound on points the panel can render.
    """

    targets: Sequence[QueryTarget] = field(default_factory=tuple)
    range: Optional[TimeRange] = None
    raw_range: Optional[Mapping[str, Any]] = None
    scoped_vars: Mapping[str, Any] = field(default_factory=dict)
    interval: Optional[str] = None
    max_data_points: Optional[int] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "QueryOptions":
        raw_range = payload.get("range")
        return cls(
            targets=tuple(QueryTarget.from_mapping(item) for item in payload.get("targets") or ()),
            raw_range=dict(raw_range) if raw_range else None,
            scoped_vars=dict(payload.get("scopedVars") or {}),
            interval=payload.get("interval"),
            max_data_points=payload.get("maxDataPoints"),
        )

    def resolve_range(self) -> Optional[TimeRange]:
        if self.range is not None:
            return self.range
        if self.raw_range:
            return TimeRange.from_mapping(self.raw_range)
        return None


@dataclass(slots=True)
class Series:
    """Time series for one object+metric pair; datapoints are ``[value, timestamp]``."""

    target: str
    datapoints: List[DataPoint] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"target": self.target, "datapoints": [list(point) for point in self.datapoints]}


@dataclass(slots=True)
class QueryResult:
    data: List[Series] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"data": [series.to_dict() for series in self.data]}


@dataclass(slots=True, frozen=True)
class TextValue:
    """Entry of a template variable or tag dropdown."""

    text: Any
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "value": self.value}


@dataclass(slots=True, frozen=True)
class DatasourceStatus:
    """Success descriptor returned by the connectivity check."""

    status: str
    message: str
    title: str

    def to_dict(self) -> dict[str, str]:
        return {"status": self.status, "message": self.message, "title": self.title}


__all__ = [
    "DataPoint",
    "DatasourceStatus",
    "QueryOptions",
    "QueryResult",
    "QueryTarget",
    "Series",
    "TextValue",
    "TimeRange",
]
