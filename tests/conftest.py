from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List

import pytest
from typer.testing import CliRunner

from saymon_datasource.adapters.transport import DatasourceRequest, DatasourceResponse
from saymon_datasource.config import InstanceSettings

SAYMON_URL = "http://saymon.test"


@dataclass
class RecordingTransport:
    """Transport double that records requests and replays queued responses or errors."""

    responses: List[Any] = field(default_factory=list)
    requests: List[DatasourceRequest] = field(default_factory=list)

    def reply(self, data: Any = None, status: int = 200) -> "RecordingTransport":
        self.responses.append(DatasourceResponse(status=status, data=data))
        return self

    def fail(self, exc: Exception) -> "RecordingTransport":
        self.responses.append(exc)
        return self

    async def request(self, request: DatasourceRequest) -> DatasourceResponse:
        self.requests.append(request)
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture()
def settings() -> InstanceSettings:
    return InstanceSettings(url=SAYMON_URL + "/", basic_auth="Basic dXNlcjpwYXNz", with_credentials=True)


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def clean_env(monkeypatch, tmp_path):
    for name in ("SAYMON_URL", "SAYMON_BASIC_AUTH", "SAYMON_WITH_CREDENTIALS", "SAYMON_HONOR_TIME_RANGE", "SAYMON_SETTINGS_PATH"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture()
def cli_runner() -> CliRunner:
    return CliRunner()
