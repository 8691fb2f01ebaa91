"""Report writers for recorded sample logs."""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pandas as pd

from .bmp280.window import Summary
from .data import SampleLog


def export_report(
    log: SampleLog,
    temperature: Summary,
    pressure: Summary,
    output_dir: Path,
    *,
    figure_path: Path | None = None,
    input_path: Path | None = None,
) -> None:
    """Persist the summary table and a markdown report to *output_dir*."""

    output_dir.mkdir(parents=True, exist_ok=True)
    _write_summary_csv(temperature, pressure, output_dir)
    _write_report_md(
        log,
        temperature,
        pressure,
        output_dir,
        figure_path=figure_path,
        input_path=input_path,
    )


def _write_summary_csv(temperature: Summary, pressure: Summary, output_dir: Path) -> None:
    rows = [
        {"channel": "temperature", "unit": "cC", **temperature.__dict__},
        {"channel": "pressure", "unit": "Pa", **pressure.__dict__},
    ]
    pd.DataFrame(rows).to_csv(output_dir / "summary.csv", index=False)


def _format_time(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _write_report_md(
    log: SampleLog,
    temperature: Summary,
    pressure: Summary,
    output_dir: Path,
    *,
    figure_path: Path | None,
    input_path: Path | None,
) -> None:
    lines: list[str] = []
    lines.append("# BMP280 Sample Report")
    if input_path is not None:
        lines.append(f"*Input file:* `{input_path}`  ")
    lines.append(f"*Samples in log:* {len(log.timestamp)}  ")
    lines.append(f"*Window:* {temperature.sample_count} samples  ")
    lines.append(f"*From:* {_format_time(temperature.time_start)}  ")
    lines.append(f"*To:* {_format_time(temperature.time_stop)}  ")
    if log.metadata.get("address"):
        lines.append(f"*Device:* {log.metadata['address']}  ")
    lines.append("")

    lines.append("## Summary")
    lines.append("| Channel | High | Low | Average |")
    lines.append("| --- | ---: | ---: | ---: |")
    lines.append(
        f"| Temperature (°C) | {temperature.high / 100:.2f} | {temperature.low / 100:.2f} "
        f"| {temperature.average / 100:.3f} |"
    )
    lines.append(
        f"| Pressure (hPa) | {pressure.high / 100:.2f} | {pressure.low / 100:.2f} "
        f"| {pressure.average / 100:.3f} |"
    )
    lines.append("")

    if figure_path is not None:
        lines.append(f"![Sample plots]({figure_path.name})")
        lines.append("")

    lines.append("### Notes")
    lines.append("- Readings use the 32-bit fixed-point compensation (0.01 °C, 1 Pa resolution).")

    (output_dir / "report.md").write_text("\n".join(lines), encoding="utf-8")
