"""Command line interface for the baroscope package."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .data import load_sample_log, summarize_log
from .demo import run_demo
from .plotting import generate_plots
from .reporting import export_report

app = typer.Typer(context_settings={"help_option_names": ["-h", "--help"]})


@app.command()
def report(
    input_path: Path = typer.Option(..., "--in", help="Sample log CSV written by 'baroscope-bmp280 run'."),
    report_dir: Path = typer.Option(..., "--report", help="Output directory for reports."),
    window: Optional[int] = typer.Option(
        None,
        "--window",
        help="Summarise only the last N samples (default: whole log).",
    ),
) -> None:
    """Summarise a recorded sample log."""

    if window is not None and window < 1:
        raise typer.BadParameter("--window must be at least 1", param_hint="--window")

    try:
        log = load_sample_log(input_path)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--in") from exc
    temperature, pressure = summarize_log(log, window)

    figure_path = None
    try:
        figure_path = generate_plots(log, report_dir)
    except RuntimeError as exc:
        typer.echo(f"[warning] plotting skipped: {exc}")

    export_report(
        log,
        temperature,
        pressure,
        report_dir,
        figure_path=figure_path,
        input_path=input_path,
    )

    typer.echo(f"Report written to {report_dir}")


@app.command()
def demo(
    out_dir: Path = typer.Option(Path("demo_output"), "--out", help="Target directory for demo report."),
    samples: int = typer.Option(120, "--samples", help="Number of simulated samples."),
) -> None:
    """Record a simulated session and write its report."""

    if samples < 1:
        raise typer.BadParameter("--samples must be at least 1", param_hint="--samples")
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    run_demo(out_dir, samples=samples)
    typer.echo(f"Demo log and report written to {out_dir}")


def run() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    run()
