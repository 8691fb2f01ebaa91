"""Loading and replay of recorded BMP280 sample logs."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict

import numpy as np
import pandas as pd

from .bmp280.samples import CompensatedSample
from .bmp280.window import SampleWindow, Summary

REQUIRED_COLUMNS = {"timestamp", "temperature", "pressure"}


@dataclass(frozen=True)
class SampleLog:
    """Container for a recorded sample log."""

    dataframe: pd.DataFrame
    timestamp: np.ndarray
    temperature: np.ndarray
    pressure: np.ndarray
    metadata: Dict[str, str]


def load_sample_log(path: str | Path) -> SampleLog:
    """Load a CSV log written by the acquisition host.

    Parameters
    ----------
    path:
        Path to a CSV file with `timestamp`, `temperature` (centi-degC) and
        `pressure` (Pa) columns. Leading `# key=value` comment lines are
        collected as metadata.

    Returns
    -------
    SampleLog
        Samples ordered by timestamp.
    """

    path = Path(path)
    if not path.exists():  # pragma: no cover - defensive
        raise FileNotFoundError(path)

    metadata = _read_metadata(path)
    df = pd.read_csv(path, comment="#")
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")
    if df.empty:
        raise ValueError("Sample log contains no samples")

    df = df.sort_values("timestamp", kind="mergesort").reset_index(drop=True)
    return SampleLog(
        dataframe=df,
        timestamp=df["timestamp"].to_numpy(dtype=float),
        temperature=df["temperature"].to_numpy(dtype=np.int64),
        pressure=df["pressure"].to_numpy(dtype=np.int64),
        metadata=metadata,
    )


def _read_metadata(path: Path) -> Dict[str, str]:
    metadata: Dict[str, str] = {}
    with path.open("r", encoding="utf-8") as fh:
        for line in fh:
            if not line.startswith("#"):
                break
            for token in line[1:].split():
                if "=" in token:
                    key, value = token.split("=", 1)
                    metadata[key] = value
    return metadata


def replay(log: SampleLog, capacity: int) -> SampleWindow:
    """Push every logged sample through a window of the given capacity."""

    window = SampleWindow(capacity)
    for ts, temp, press in zip(log.timestamp, log.temperature, log.pressure):
        window.push(CompensatedSample(timestamp=float(ts), temperature=int(temp), pressure=int(press)))
    return window


def summarize_log(log: SampleLog, capacity: int | None = None) -> tuple[Summary, Summary]:
    """Return (temperature, pressure) summaries over the last `capacity` samples."""

    window = replay(log, len(log.timestamp) if capacity is None else capacity)
    return window.temperature_summary(), window.pressure_summary()
