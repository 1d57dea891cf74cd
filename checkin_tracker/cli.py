from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Mapping, NoReturn, Optional

import typer

from .config import ScoringOptions, as_dict as config_as_dict, configure_logging, get_config
from .models import CheckInError, ValidationResult
from .services import ImportResult, generate_plots, process_check_ins, render_summary_table
from .sheets import rows_from_table
from .validation import MeasurementValidator

app = typer.Typer(help="Validate, score, and summarise client check-in exports.")


def _fail(message: str, *, code: int = 1) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code)


@app.callback()
def _main() -> None:
    configure_logging()


def _resolve_import_format(source: Path, fmt: str) -> str:
    choice = fmt.lower()
    if choice not in {"auto", "csv", "json"}:
        raise typer.BadParameter("Format must be auto, csv, or json.", param_name="format")
    if choice == "auto":
        suffix = source.suffix.lower()
        if suffix == ".csv":
            return "csv"
        if suffix == ".json":
            return "json"
        raise ValueError("Could not infer file format. Specify --format explicitly.")
    return choice


def _load_import_rows(source: Path, fmt: str) -> list[Any]:
    if fmt == "json":
        try:
            payload = json.loads(source.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Import file is not valid JSON: {exc}") from exc
        if not isinstance(payload, list):
            raise ValueError("JSON import must contain a list of check-in objects.")
        return payload
    with source.open("r", encoding="utf-8", newline="") as handle:
        table = [row for row in csv.reader(handle)]
    if not table:
        return []
    return rows_from_table(table)


def _build_options(strict: bool, unclamped: bool) -> ScoringOptions:
    base = get_config().scoring
    return ScoringOptions(
        clamp_lower=base.clamp_lower and not unclamped,
        strict=base.strict or strict,
    )


def _run_import(source: Path, fmt: str, options: ScoringOptions) -> ImportResult:
    source_path = source.expanduser()
    if not source_path.exists():
        _fail(f"Import source not found: {source_path}")

    try:
        format_choice = _resolve_import_format(source_path, fmt)
        rows = _load_import_rows(source_path, format_choice)
        return process_check_ins(
            rows,
            options=options,
            validator=MeasurementValidator(get_config().measurement_rules),
        )
    except (CheckInError, ValueError) as exc:
        _fail(f"Import failed: {exc}")


def _echo_recap(result: ImportResult) -> None:
    progress = result.insights.progress
    typer.echo(
        f"Totals: {len(result.check_ins)} check-ins "
        f"({progress.start_date.isoformat()} – {progress.end_date.isoformat()}), "
        f"weight {progress.weight_change:+.1f}, body fat {progress.body_fat_change:+.1f}."
    )
    for category, tips in result.recommendations.to_dict().items():
        typer.echo(f" • {category}: {tips[0]}")


def _echo_issues(result: ImportResult) -> None:
    for entry in result.measurements:
        for name, outcome in entry["validation"].items():
            color = typer.colors.RED if not outcome.is_valid else typer.colors.YELLOW
            typer.secho(f"{entry['date']} {name}: {outcome.error or outcome.warning}", fg=color)


@app.command("import")
def import_check_ins(
    source: Path = typer.Option(
        ...,
        "--source",
        "-s",
        help="Check-in export to process (CSV sheet export or JSON rows).",
    ),
    fmt: str = typer.Option(
        "auto",
        "--format",
        "-f",
        case_sensitive=False,
        help="Source format: auto, csv, or json.",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the full import result as JSON to this path.",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Reject rows with missing numeric fields instead of treating them as 0.",
    ),
    unclamped: bool = typer.Option(
        False,
        "--unclamped",
        help="Allow negative category scores (no lower clamp).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="List every measurement warning and error.",
    ),
) -> None:
    """
    Import a batch of check-ins and print their scores.

    Examples:
        checkin-tracker import --source exports/week12.csv
        checkin-tracker import --source rows.json --strict --output result.json
    """
    result = _run_import(source, fmt, _build_options(strict, unclamped))

    typer.echo(render_summary_table(result))
    _echo_recap(result)
    if result.issue_count:
        typer.secho(f"{result.issue_count} measurement issue(s) flagged.", fg=typer.colors.YELLOW)
        if verbose:
            _echo_issues(result)

    if output is not None:
        target = output.expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
        typer.echo(f"Wrote import result to {target}")


@app.command("validate")
def validate_cli(
    measurement_type: str = typer.Argument(..., help="Measurement name (e.g. weight, bodyFat, waist)."),
    value: float = typer.Argument(..., help="Measured value."),
    previous: Optional[float] = typer.Option(
        None,
        "--previous",
        "-p",
        help="Previous value for the week-on-week change check.",
    ),
) -> None:
    """
    Check one measurement against the configured ranges.

    Example:
        checkin-tracker validate weight 100 --previous 90
    """
    validator = MeasurementValidator(get_config().measurement_rules)
    result: ValidationResult = validator.validate(measurement_type, value, previous)
    if not result.is_valid:
        _fail(f"Invalid: {result.error}")
    if result.warning:
        typer.secho(f"Valid with warning: {result.warning}", fg=typer.colors.YELLOW)
        return
    typer.echo("Valid.")


@app.command()
def plot(
    source: Path = typer.Option(..., "--source", "-s", help="Check-in export (CSV or JSON)."),
    fmt: str = typer.Option("auto", "--format", "-f", case_sensitive=False, help="auto, csv, or json."),
    to: Path = typer.Option(Path("plots"), "--to", help="Directory for the generated PNG files."),
) -> None:
    """
    Draw weight and body fat trend charts.

    Example:
        checkin-tracker plot --source exports/week12.csv --to plots/
    """
    result = _run_import(source, fmt, _build_options(False, False))
    try:
        paths = generate_plots(result, output_dir=to.expanduser())
    except RuntimeError as exc:
        _fail(str(exc))
    for path in paths:
        typer.echo(f"Saved {path}")


@app.command("config")
def config_show() -> None:
    """
    Show the effective configuration (scoring mode, measurement ranges).
    """
    config: Mapping[str, Any] = config_as_dict()
    typer.echo(f"Config source: {config.get('source')}")
    scoring = config.get("scoring", {})
    typer.echo(
        f"Scoring: clamp_lower={scoring.get('clamp_lower')}, strict={scoring.get('strict')}"
    )
    for name, rule in config.get("measurement_rules", {}).items():
        typer.echo(
            f"  {name}: {rule['min']}–{rule['max']}, warn above {rule['warning_threshold']}% change"
        )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
