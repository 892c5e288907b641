"""Command Line Interface for Admission Analytics.

This module provides a Typer CLI for loading an admissions CSV, running
the cleaning and enrichment pipeline and printing or exporting catalog
reports.

Every command works on one store: the DuckDB file given with ``--db``, or
the store configured through ``AA_DB_*`` environment variables. In-memory
stores only live for a single command, so ``run`` chains load, pipeline
and reports in one process.
"""

import logging
from pathlib import Path
from typing import Optional

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from admission_analytics import __version__
from admission_analytics.adapters.loaders import AdmissionCSVLoader
from admission_analytics.adapters.storage import DuckDBAdmissionStore, create_store
from admission_analytics.domain.ports import (
    AdmissionStorePort,
    AnalyticsError,
    DataQualityError,
    EnrichmentError,
    UnknownReportError,
)
from admission_analytics.domain.services.data_quality import check_data_quality
from admission_analytics.domain.services.reporting import THEMES, ReportingCatalog
from admission_analytics.infrastructure.logging_config import setup_logging
from admission_analytics.infrastructure.settings import settings
from admission_analytics.pipeline import run_pipeline

app = typer.Typer(
    name="admission-analytics",
    help="Descriptive analytics over hospital patient admissions",
    add_completion=False
)
console = Console()

DB_OPTION_HELP = "DuckDB database file (default: AA_DB_* configuration)"


def open_store(db: Optional[Path]) -> AdmissionStorePort:
    """Open the store for one command."""
    try:
        if db is not None:
            return DuckDBAdmissionStore(db_path=str(db))
        return create_store(settings.db_config)
    except (AnalyticsError, ValueError) as e:
        console.print(f"[red]✗[/red] Failed to open store: {str(e)}")
        raise typer.Exit(code=1)


def render_frame(frame: pd.DataFrame, title: str, limit: Optional[int] = None) -> Table:
    """Build a Rich table for a report frame; nulls render as blanks."""
    table = Table(title=title, show_lines=False)
    for column in frame.columns:
        table.add_column(str(column))

    rows = frame if limit is None else frame.head(limit)
    for row in rows.itertuples(index=False):
        table.add_row(*["" if pd.isna(value) else str(value) for value in row])
    return table


def _fail(message: str) -> None:
    console.print(f"[red]✗[/red] {message}")
    raise typer.Exit(code=1)


def _warn_malformed_dates(patient_ids: list) -> None:
    if patient_ids:
        console.print(
            f"[yellow]![/yellow] {len(patient_ids):,} rows have unparseable dates, stored as null "
            f"(patient ids: {', '.join(str(i) for i in patient_ids[:20])}"
            f"{', ...' if len(patient_ids) > 20 else ''})"
        )


@app.command()
def load(
    input_file: Path = typer.Argument(..., help="Admissions CSV file", exists=True, dir_okay=False),
    db: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Load an admissions CSV into the patient_admissions table.

    Examples:
        admission-analytics load data/healthcare_dataset.csv --db admissions.duckdb
    """
    store = open_store(db)
    try:
        loader = AdmissionCSVLoader()
        with console.status("[bold green]Loading admissions..."):
            result = loader.load(str(input_file), store)
        if result.is_failure():
            _fail(f"Load failed: {result.error}")
        console.print(f"[green]✓[/green] Loaded {result.value:,} rows from {input_file}")
        _warn_malformed_dates(loader.malformed_date_ids)
    finally:
        store.close()


@app.command()
def check(
    db: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Count negative billing amounts, impossible ages and inverted stays."""
    store = open_store(db)
    try:
        result = store.fetch_admissions()
        if result.is_failure():
            _fail(f"Could not read admissions: {result.error}")
        quality = check_data_quality(result.value)
    finally:
        store.close()

    table = Table(title="Data Quality", show_header=False, box=None, padding=(0, 2))
    table.add_row("Total records:", f"[bold]{quality.total_records:,}[/bold]")
    for label, count in (
        ("Negative billing:", quality.negative_billing),
        ("Invalid age:", quality.invalid_age),
        ("Date errors:", quality.date_errors),
    ):
        table.add_row(label, f"[red]{count:,}[/red]" if count else f"{count:,}")
    console.print(table)


@app.command()
def enrich(
    db: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
    strict: Optional[bool] = typer.Option(None, "--strict/--lenient", help="Fail on rows that cannot be enriched"),
    fail_on_defects: bool = typer.Option(False, "--fail-on-defects", help="Stop if the quality check finds defects"),
) -> None:
    """Normalize names, derive length_of_stay and age_group, create views."""
    store = open_store(db)
    try:
        report = run_pipeline(
            store,
            strict=settings.strict_enrichment if strict is None else strict,
            fail_on_defects=fail_on_defects,
        )
    except (EnrichmentError, DataQualityError) as e:
        _fail(str(e))
    except AnalyticsError as e:
        _fail(f"Pipeline failed: {str(e)}")
    finally:
        store.close()

    _print_pipeline_summary(report.summary())


def _print_pipeline_summary(summary: dict) -> None:
    enrichment = summary["enrichment"]
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_row("Records enriched:", f"[bold]{enrichment['records_enriched']:,}[/bold]")
    table.add_row("Rows updated:", f"{summary['rows_updated']:,}")
    table.add_row("Open stays:", f"{enrichment['null_length_of_stay']:,}")
    table.add_row("Negative stays:", f"{enrichment['negative_stays']:,}")
    table.add_row("Invalid ages:", f"{enrichment['invalid_ages']:,}")
    table.add_row("Malformed dates:", f"{enrichment['malformed_dates']:,}")
    table.add_row("Views:", ", ".join(summary["views"]))
    console.print("\n[bold]Enrichment Summary:[/bold]")
    console.print(table)


@app.command()
def report(
    name: str = typer.Argument(..., help="Catalog query name (see 'queries')"),
    db: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the result to this CSV file"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Print at most this many rows"),
) -> None:
    """Run one catalog query and print (or save) the result."""
    store = open_store(db)
    try:
        frame = ReportingCatalog(store, settings.catalog_config()).run(name)
    except UnknownReportError:
        _fail(f"Unknown report: {name}. Run 'queries' to list the catalog.")
    except AnalyticsError as e:
        _fail(str(e))
    finally:
        store.close()

    if output:
        frame.to_csv(output, index=False)
        console.print(f"[green]✓[/green] Wrote {len(frame):,} rows to {output}")
    else:
        console.print(render_frame(frame, name, limit))


@app.command()
def view(
    name: str = typer.Argument(..., help="View name (monthly_kpis or condition_summary)"),
    db: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
) -> None:
    """Print one of the persisted summary views."""
    if name not in AdmissionStorePort.VIEW_NAMES:
        _fail(f"Unknown view: {name}. Available: {', '.join(AdmissionStorePort.VIEW_NAMES)}")

    store = open_store(db)
    try:
        result = store.read_view(name)
    finally:
        store.close()
    if result.is_failure():
        _fail(f"Could not read view: {result.error}. Run 'enrich' first.")
    console.print(render_frame(result.value, name))


@app.command()
def export(
    db: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="CSV file to write"),
) -> None:
    """Write the flat export projection (all columns plus calendar fields) to CSV."""
    store = open_store(db)
    try:
        result = store.export_projection()
    finally:
        store.close()
    if result.is_failure():
        _fail(f"Export failed: {result.error}")

    if output is None:
        export_dir = Path(settings.export_dir)
        export_dir.mkdir(parents=True, exist_ok=True)
        output = export_dir / "admissions_export.csv"
    result.value.to_csv(output, index=False)
    console.print(f"[green]✓[/green] Exported {len(result.value):,} rows to {output}")


@app.command()
def run(
    input_file: Path = typer.Argument(..., help="Admissions CSV file", exists=True, dir_okay=False),
    db: Optional[Path] = typer.Option(None, "--db", help=DB_OPTION_HELP),
    strict: Optional[bool] = typer.Option(None, "--strict/--lenient", help="Fail on rows that cannot be enriched"),
    fail_on_defects: bool = typer.Option(False, "--fail-on-defects", help="Stop if the quality check finds defects"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", help="Write every report as CSV here"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Reports to run in parallel"),
) -> None:
    """Load a CSV, enrich it and run the whole report catalog.

    Examples:
        admission-analytics run data/healthcare_dataset.csv --output-dir reports/
        admission-analytics run data/healthcare_dataset.csv --lenient --workers 4
    """
    console.print("\n[bold blue]Admission Analytics[/bold blue]")
    console.print(f"[dim]Input file:[/dim] {input_file}")
    console.print()

    store = open_store(db)
    try:
        loader = AdmissionCSVLoader()
        loaded = loader.load(str(input_file), store)
        if loaded.is_failure():
            _fail(f"Load failed: {loaded.error}")
        console.print(f"[green]✓[/green] Loaded {loaded.value:,} rows")
        _warn_malformed_dates(loader.malformed_date_ids)

        try:
            pipeline_report = run_pipeline(
                store,
                strict=settings.strict_enrichment if strict is None else strict,
                fail_on_defects=fail_on_defects,
                malformed_date_ids=loader.malformed_date_ids,
            )
        except AnalyticsError as e:
            _fail(str(e))
        _print_pipeline_summary(pipeline_report.summary())

        catalog = ReportingCatalog(store, settings.catalog_config())
        results = catalog.run_all(max_workers=workers or settings.report_workers)
    finally:
        store.close()

    if output_dir:
        output_dir.mkdir(parents=True, exist_ok=True)

    status_table = Table(title="Reports")
    status_table.add_column("Report")
    status_table.add_column("Status")
    status_table.add_column("Rows", justify="right")
    for name, result in results.items():
        if result.is_success():
            if output_dir:
                result.value.to_csv(output_dir / f"{name}.csv", index=False)
            status_table.add_row(name, "[green]ok[/green]", f"{len(result.value):,}")
        else:
            status_table.add_row(name, f"[red]{result.error}[/red]", "")
    console.print(status_table)

    failed = sum(1 for result in results.values() if result.is_failure())
    if failed:
        _fail(f"{failed} of {len(results)} reports failed")


@app.command()
def queries(
    theme: Optional[str] = typer.Option(None, "--theme", "-t", help=f"Only this theme ({', '.join(THEMES)})"),
) -> None:
    """List the report catalog."""
    if theme is not None and theme not in THEMES:
        _fail(f"Unknown theme: {theme}. Available: {', '.join(THEMES)}")

    table = Table(title="Report Catalog")
    table.add_column("Name", style="bold")
    table.add_column("Theme")
    table.add_column("Description")
    for definition in ReportingCatalog.list_queries(theme):
        table.add_row(definition.name, definition.theme, definition.description)
    console.print(table)


@app.command()
def info() -> None:
    """Display system information and configuration."""
    console.print("[bold blue]System Information[/bold blue]\n")

    info_table = Table(show_header=False, box=None, padding=(0, 2))
    info_table.add_row("Application:", settings.app_name)
    info_table.add_row("Version:", __version__)
    info_table.add_row("Database Type:", settings.db_config.db_type)
    if settings.db_config.db_type == "duckdb":
        info_table.add_row("Database Path:", settings.get_db_path())
    info_table.add_row("Strict Enrichment:", "Enabled" if settings.strict_enrichment else "Disabled")
    info_table.add_row("High-Cost Percentile:", f"{settings.high_cost_percentile:.2f}")
    info_table.add_row("Report Workers:", str(settings.report_workers))
    info_table.add_row("Export Directory:", settings.export_dir)

    console.print(info_table)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
) -> None:
    """Serve the read-only HTTP API (reports, views, export, quality)."""
    import uvicorn

    console.print(f"[bold blue]Admission Analytics API[/bold blue] on http://{host}:{port}/api/docs")
    uvicorn.run("admission_analytics.dashboard.api.main:app", host=host, port=port, log_level=settings.log_level.lower())


def _show_version(value: bool) -> None:
    if value:
        console.print(f"Admission-Analytics v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show version information"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Admission Analytics: descriptive analytics over hospital admissions."""
    # Leave handlers alone when the host process already configured logging
    if not logging.getLogger().handlers:
        setup_logging(use_json=settings.json_logs, log_level=settings.log_level)
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


if __name__ == "__main__":
    app()
