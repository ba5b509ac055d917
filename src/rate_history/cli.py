from __future__ import annotations

from pathlib import Path

import typer

from rate_history.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from rate_history.errors import SearchValidationError
from rate_history.facets.selections import FACET_CHAIN, MULTI_VALUE_SEPARATOR, Selections
from rate_history.io.sources import build_page_fetcher
from rate_history.io.write import write_summary, write_table
from rate_history.logging import configure_logging
from rate_history.paths import build_output_paths
from rate_history.pipeline.session import ExplorerSession

app = typer.Typer(no_args_is_help=True, add_completion=False)

SELECT_HELP = "Facet selection as facet=value; comma-join values for multi-select facets."
RECORDS_HELP = "Local CSV/parquet rate table to search instead of the configured query source."


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _parse_selections(select: list[str] | None) -> Selections:
    collected: dict[str, list[str]] = {}
    for item in select or []:
        facet, separator, value = item.partition("=")
        if not separator or not facet.strip():
            raise typer.BadParameter(f"Expected facet=value, got '{item}'", param_hint="--select")
        collected.setdefault(facet.strip(), []).append(value)
    try:
        return Selections.from_mapping(
            {facet: MULTI_VALUE_SEPARATOR.join(values) for facet, values in collected.items()}
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--select") from exc


def _build_session(
    cfg: AppConfig,
    records: Path | None,
    per_hour: bool | None = None,
) -> ExplorerSession:
    try:
        fetch_page = build_page_fetcher(cfg.query, records_path=records)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return ExplorerSession(
        fetch_page,
        items_per_page=cfg.query.items_per_page,
        table_page_size=cfg.table.page_size,
        per_hour=cfg.chart.per_hour if per_hour is None else per_hour,
    )


def _run_search(session: ExplorerSession, selections: Selections) -> None:
    session.selections = selections
    try:
        applied = session.search()
    except SearchValidationError as exc:
        raise typer.BadParameter(str(exc), param_hint="--select") from exc
    if not applied:
        typer.echo(session.error_message or "Search did not complete.", err=True)
        raise typer.Exit(code=1)


@app.command()
def options(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    select: list[str] | None = typer.Option(None, "--select", "-s", help=SELECT_HELP),
    facet: str | None = typer.Option(None, help="Only list options for this facet."),
) -> None:
    """List the options each facet offers under the given selections."""
    configure_logging()
    cfg = _load_app_config(config)
    session = ExplorerSession()
    if not session.load_filter_options(cfg.filter_options.path):
        typer.echo(session.error_message, err=True)
        raise typer.Exit(code=1)
    session.selections = _parse_selections(select)

    facets = [facet] if facet else list(FACET_CHAIN)
    for name in facets:
        try:
            values = session.options_for(name)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--facet") from exc
        typer.echo(f"{name}: {', '.join(values) if values else '(none)'}")


@app.command()
def search(
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    select: list[str] | None = typer.Option(None, "--select", "-s", help=SELECT_HELP),
    records: Path | None = typer.Option(
        None, exists=True, readable=True, resolve_path=True, help=RECORDS_HELP
    ),
    page: int = typer.Option(1, min=1, help="Table page to print."),
) -> None:
    """Fetch matching records and write the latest rate per configuration."""
    configure_logging()
    cfg = _load_app_config(config)
    session = _build_session(cfg, records)
    _run_search(session, _parse_selections(select))

    paths = build_output_paths(out)
    fmt = cfg.outputs.tables_format
    entries_path = write_table(session.entries, paths.tables / "latest_entries", fmt=fmt)
    write_table(session.records, paths.tables / "records", fmt=fmt)
    write_summary(
        {
            "selections": session.selections.to_mapping(),
            "n_records": len(session.records),
            "n_entries": len(session.entries),
            "visible_columns": session.visible_columns(),
            "page_count": session.page_count(),
        },
        paths.root / "search_summary.json",
    )

    table = session.table_page(page)
    if not table.empty:
        typer.echo(table.to_string(index=False))
    typer.echo(
        f"Search complete. {len(session.entries)} configurations from "
        f"{len(session.records)} records (page {page}/{session.page_count()}). "
        f"Table: {entries_path}"
    )


@app.command()
def chart(
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    select: list[str] | None = typer.Option(None, "--select", "-s", help=SELECT_HELP),
    records: Path | None = typer.Option(
        None, exists=True, readable=True, resolve_path=True, help=RECORDS_HELP
    ),
    entry: list[int] | None = typer.Option(
        None, "--entry", "-e", help="Row index of a latest entry to chart (repeatable)."
    ),
    per_hour: bool | None = typer.Option(None, "--per-hour/--per-unit"),
) -> None:
    """Chart the rate history of selected latest entries."""
    configure_logging()
    cfg = _load_app_config(config)
    session = _build_session(cfg, records, per_hour=per_hour)
    _run_search(session, _parse_selections(select))

    indices = entry if entry else list(range(len(session.entries)))
    for index in indices:
        try:
            session.toggle_entry(index)
        except IndexError as exc:
            raise typer.BadParameter(str(exc), param_hint="--entry") from exc

    dataset = session.chart()
    paths = build_output_paths(out)
    chart_path = write_summary(dataset.to_dict(), paths.charts / "rate_history.json")
    write_table(dataset.to_frame(), paths.tables / "chart_points", fmt=cfg.outputs.tables_format)
    typer.echo(
        f"Chart complete. {len(dataset.series)} series over "
        f"{len(dataset.dates)} dates: {chart_path}"
    )


@app.command()
def export(
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    select: list[str] | None = typer.Option(None, "--select", "-s", help=SELECT_HELP),
    records: Path | None = typer.Option(
        None, exists=True, readable=True, resolve_path=True, help=RECORDS_HELP
    ),
) -> None:
    """Fetch every matching record and write export rows."""
    configure_logging()
    cfg = _load_app_config(config)
    session = _build_session(cfg, records)
    _run_search(session, _parse_selections(select))

    paths = build_output_paths(out)
    export_path = write_table(session.export_rows(), paths.exports / "rate_export", fmt="csv")
    typer.echo(f"Export complete. {len(session.records)} rows: {export_path}")


if __name__ == "__main__":
    app()
