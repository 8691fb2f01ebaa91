"""Plotting helpers for recorded sample logs."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np

from .data import SampleLog


def generate_plots(log: SampleLog, output_dir: Path) -> Path:
    plt = _require_matplotlib()
    output_dir.mkdir(parents=True, exist_ok=True)
    fig, (ax_temp, ax_press) = plt.subplots(2, 1, figsize=(10, 6), sharex=True)

    elapsed = log.timestamp - log.timestamp[0]
    _plot_channel(ax_temp, elapsed, log.temperature / 100.0, "Temperature", "°C", "tab:orange")
    _plot_channel(ax_press, elapsed, log.pressure / 100.0, "Pressure", "hPa", "tab:blue")
    ax_press.set_xlabel("Time (s)")

    fig.tight_layout()
    out_path = output_dir / "samples.png"
    fig.savefig(out_path, dpi=150)
    plt.close(fig)
    return out_path


def _plot_channel(ax, x: np.ndarray, y: np.ndarray, title: str, unit: str, color: str) -> None:
    ax.plot(x, y, color=color, linewidth=1.0)
    mean = float(np.mean(y))
    ax.axhline(mean, color="black", linewidth=0.8, linestyle="--", label=f"mean {mean:.2f} {unit}")
    ax.set_title(title)
    ax.set_ylabel(unit)
    ax.legend(loc="best")


def _require_matplotlib() -> Any:
    from pathlib import Path as _Path

    home_cache = _Path.home() / ".cache" / "fontconfig"
    try:
        home_cache.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError("matplotlib cannot write font cache in this environment") from exc

    try:
        import matplotlib
        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("matplotlib is required for plotting; install baroscope[plot]") from exc
    except Exception as exc:  # pragma: no cover - environment issues
        raise RuntimeError(f"matplotlib initialisation failed: {exc}") from exc
    return plt
