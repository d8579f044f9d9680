"""
Typer application exposing the datasource operations to operators.

Each command builds a :class:`SaymonDatasource` from the resolved settings,
runs one operation and prints its result as JSON.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import anyio
import typer

from ..adapters import AdapterError, HTTPXTransport, SaymonDatasource
from ..config import SettingsError, load_settings
from ..core.logging import configure_logging
from ..core.templating import VariableTemplateSrv
from ..models import QueryOptions, QueryTarget

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Query a SAYMON server the way the dashboard datasource does.\n\n"
        "Connection settings come from --settings, SAYMON_* environment variables "
        "or .secrets/secret.toml, in reverse order of precedence."
    ),
)


def _render(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2, default=str)


def _parse_variables(values: Optional[List[str]]) -> Dict[str, List[str]]:
    variables: Dict[str, List[str]] = {}
    for entry in values or []:
        if "=" not in entry:
            raise typer.BadParameter(f"Variable '{entry}' must use name=value format.")
        name, value = entry.split("=", 1)
        name = name.strip()
        if not name:
            raise typer.BadParameter(f"Variable '{entry}' is missing a name.")
        variables.setdefault(name, []).append(value)
    return variables


def _require_datasource(ctx: typer.Context) -> SaymonDatasource:
    datasource = ctx.obj.get("datasource") if isinstance(ctx.obj, dict) else None
    if not isinstance(datasource, SaymonDatasource):  # pragma: no cover - callback always sets it
        typer.echo("Datasource is not configured.", err=True)
        raise typer.Exit(code=2)
    return datasource


def _run(operation: Callable[[], Awaitable[Any]]) -> Any:
    try:
        return anyio.run(operation)
    except AdapterError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.callback(invoke_without_command=False)
def main(
    ctx: typer.Context,
    url: Optional[str] = typer.Option(None, "--url", help="Base URL of the SAYMON server."),
    basic_auth: Optional[str] = typer.Option(None, "--basic-auth", help="Authorization header value sent with every request."),
    with_credentials: Optional[bool] = typer.Option(None, "--with-credentials/--without-credentials", help="Forward stored credentials."),
    honor_time_range: Optional[bool] = typer.Option(None, "--honor-time-range/--last-hour", help="Query the requested range instead of the last hour."),
    settings_file: Optional[Path] = typer.Option(None, "--settings", help="TOML file with a [saymon] table."),
    timeout: float = typer.Option(15.0, "--timeout", help="HTTP timeout in seconds."),
    retries: int = typer.Option(0, "--retries", min=0, help="Extra attempts on network errors."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level, defaults to SAYMON_LOG_LEVEL or WARNING."),
) -> None:
    """
    Resolve settings and attach the datasource to the Typer context.
    """

    configure_logging(log_level, force=log_level is not None)
    overrides = {
        "url": url,
        "basic_auth": basic_auth,
        "with_credentials": with_credentials,
        "honor_time_range": honor_time_range,
    }
    try:
        settings = load_settings(settings_file, overrides=overrides)
    except SettingsError as exc:
        raise typer.BadParameter(str(exc)) from exc

    ctx.obj = {
        "datasource": SaymonDatasource(
            settings=settings,
            transport=HTTPXTransport(timeout=timeout, max_attempts=retries + 1),
        )
    }


@app.command("test")
def test_command(ctx: typer.Context) -> None:
    """Check connectivity against the SAYMON tags endpoint."""

    datasource = _require_datasource(ctx)
    status = _run(datasource.test_datasource)
    if status is None:
        typer.echo("Data source did not report success.", err=True)
        raise typer.Exit(code=1)
    typer.echo(_render(status.to_dict()))


@app.command("query")
def query_command(
    ctx: typer.Context,
    object_id: str = typer.Argument(..., help="SAYMON object identifier."),
    metric_name: str = typer.Argument(..., help="Metric to fetch."),
    range_from: str = typer.Option("now-1h", "--from", help="Range start: now, now-<n><s|m|h|d|w>, epoch ms or ISO 8601."),
    range_to: str = typer.Option("now", "--to", help="Range end, same forms as --from."),
) -> None:
    """
    Fetch the history of one object metric.

    --from and --to only apply together with --honor-time-range.
    """

    datasource = _require_datasource(ctx)
    options = QueryOptions(
        targets=(QueryTarget(object_id=object_id, metric_name=metric_name, ref_id="A"),),
        raw_range={"from": range_from, "to": range_to},
    )
    result = _run(lambda: datasource.query(options))
    typer.echo(_render(result.to_dict()))


@app.command("metrics")
def metrics_command(
    ctx: typer.Context,
    object_id: str = typer.Argument(..., help="SAYMON object identifier."),
) -> None:
    """List the metric names recorded for an object."""

    datasource = _require_datasource(ctx)
    typer.echo(_render(_run(lambda: datasource.list_metrics(object_id))))


@app.command("find")
def find_command(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Search expression, may reference template variables."),
    variable: Optional[List[str]] = typer.Option(None, "--var", "-v", help="Template variable as name=value; repeat for multi-value."),
) -> None:
    """Run a metric find query as used by dashboard template variables."""

    datasource = _require_datasource(ctx)
    datasource.template_srv = VariableTemplateSrv(variables=_parse_variables(variable))
    values = _run(lambda: datasource.metric_find_query(query))
    typer.echo(_render([item.to_dict() for item in values]))


@app.command("tag-keys")
def tag_keys_command(ctx: typer.Context) -> None:
    """List the tag keys known to the server."""

    datasource = _require_datasource(ctx)
    values = _run(datasource.get_tag_keys)
    typer.echo(_render([item.to_dict() for item in values]))


@app.command("tag-values")
def tag_values_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Tag key whose values are listed."),
) -> None:
    """List the values of one tag key."""

    datasource = _require_datasource(ctx)
    values = _run(lambda: datasource.get_tag_values({"key": key}))
    typer.echo(_render([item.to_dict() for item in values]))


if __name__ == "__main__":  # pragma: no cover
    app()
