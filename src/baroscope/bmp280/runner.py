from __future__ import annotations

import csv
import logging
import time
from dataclasses import asdict
from pathlib import Path
from typing import Callable, Dict, List, Optional, TextIO

import typer

from .calibration import load_calibration, save_calibration
from .config import HostConfig, load_config
from .device import CHIP_ID, DeviceController
from .samples import CompensatedSample
from .transport import SMBusTransport, SimulatedBMP280
from .window import SampleWindow

logger = logging.getLogger(__name__)

CSV_FIELDS = ["timestamp", "temperature", "pressure"]


class CsvLogger:
    """
    Lazily creates a CSV writer when the first sample arrives. Keeping writer
    creation lazy avoids touching the filesystem during dry runs or tests.
    """

    def __init__(self, path: Path):
        self.path = path
        self._handle: Optional[csv.DictWriter[str]] = None
        self._file_handle: Optional[TextIO] = None
        self._pending_metadata: List[str] = []

    def append(self, sample: CompensatedSample) -> None:
        if self._handle is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file_handle = self.path.open("w", newline="", encoding="utf-8")
            self._handle = csv.DictWriter(self._file_handle, fieldnames=CSV_FIELDS)
            for line in self._pending_metadata:
                self._file_handle.write(line + "\n")
            self._pending_metadata.clear()
            self._handle.writeheader()
        assert self._handle is not None
        self._handle.writerow(asdict(sample))
        if self._file_handle is not None:
            self._file_handle.flush()

    def set_metadata(self, metadata: Dict[str, object]) -> None:
        if not metadata:
            return
        line = "# " + " ".join(f"{key}={value}" for key, value in metadata.items())
        if self._handle is None:
            self._pending_metadata.append(line)
            return
        if self._file_handle is None:
            return
        self._file_handle.write(line + "\n")
        self._file_handle.flush()

    def close(self) -> None:
        if self._file_handle:
            self._file_handle.close()
            self._file_handle = None
            self._handle = None


class AcquisitionHost:
    """Periodically samples one device into a sliding window and optional CSV log."""

    def __init__(
        self,
        controller: DeviceController,
        config: HostConfig,
        *,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.controller = controller
        self.config = config
        self.window = SampleWindow(config.host.window_capacity)
        self.csv_logger = CsvLogger(config.output_csv) if config.output_csv else None
        self._callbacks: List[Callable[[CompensatedSample], None]] = []
        self._sleep = sleep
        self._monotonic = monotonic
        self.processed = 0

    def register_callback(self, callback: Callable[[CompensatedSample], None]) -> None:
        self._callbacks.append(callback)

    def start(self) -> None:
        """Configure the device and read its calibration."""
        with self.controller.lock:
            self.controller.configure(self.config.device.preset)
            coeffs = self.controller.load_calibration()
        if self.csv_logger:
            metadata: Dict[str, object] = {
                "address": f"0x{self.controller.address:02X}",
                "preset": self.controller.resolve_preset(self.config.device.preset).name.replace(" ", "_"),
            }
            metadata.update(coeffs.as_dict())
            self.csv_logger.set_metadata(metadata)

    def step(self) -> CompensatedSample:
        with self.controller.lock:
            sample = self.controller.acquire_compensated()
        self.window.push(sample)
        if self.csv_logger:
            self.csv_logger.append(sample)
        for callback in self._callbacks:
            callback(sample)
        self.processed += 1
        return sample

    def run(self) -> SampleWindow:
        max_samples = self.config.host.max_samples
        interval = max(self.config.host.interval_sec, 0.0)
        stats_interval = max(float(self.config.host.stats_log_interval), 1.0)
        next_log = self._monotonic() + stats_interval
        self.start()
        try:
            while max_samples == 0 or self.processed < max_samples:
                try:
                    self.step()
                except OSError:
                    logger.exception("Bus transaction failed after %d samples", self.processed)
                    raise
                if self._monotonic() >= next_log:
                    self.log_summary()
                    next_log = self._monotonic() + stats_interval
                if max_samples == 0 or self.processed < max_samples:
                    self._sleep(interval)
        except KeyboardInterrupt:
            logger.info("Stopping acquisition (Ctrl+C)")
        finally:
            if self.csv_logger:
                self.csv_logger.close()
            if len(self.window):
                self.log_summary()
            logger.info("Final stats: processed=%d window=%d/%d", self.processed, len(self.window), self.window.capacity)
        return self.window

    def log_summary(self) -> None:
        temp = self.window.temperature_summary()
        press = self.window.pressure_summary()
        logger.info(
            "window n=%d T[cC] high=%d low=%d avg=%.1f P[Pa] high=%d low=%d avg=%.1f",
            temp.sample_count,
            temp.high,
            temp.low,
            temp.average,
            press.high,
            press.low,
            press.average,
        )


def _open_transport(bus: int, address: int, simulate: bool):
    if simulate:
        return SimulatedBMP280(address=address, jitter=8.0)
    return SMBusTransport(bus)


calib_app = typer.Typer(help="Calibration coefficient utilities.")


@calib_app.command("dump")
def calib_dump(
    bus: int = typer.Option(1, "--bus", "-b", help="I2C bus number (/dev/i2c-N)"),
    address: str = typer.Option("0x76", "--address", "-a", help="Device address"),
    simulate: bool = typer.Option(False, "--simulate", help="Use the built-in simulated sensor"),
    out: Path = typer.Option(Path("bmp280_calibration.json"), "--out", help="Output JSON file"),
):
    try:
        addr = int(address, 0)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid address '{address}'") from exc
    transport = _open_transport(bus, addr, simulate)
    try:
        controller = DeviceController(transport, addr)
        chip = controller.chip_id()
        if chip != CHIP_ID:
            logger.warning("Unexpected chip id 0x%02X at 0x%02X", chip, addr)
        coeffs = controller.load_calibration()
    finally:
        transport.close()
    save_calibration(out, coeffs, address=addr)
    typer.echo(f"Saved calibration from device 0x{addr:02X} to {out}")


@calib_app.command("show")
def calib_show(
    input_path: Path = typer.Option(..., "--in", help="Calibration JSON file", exists=True, readable=True)
):
    try:
        coeffs = load_calibration(input_path)
    except ValueError as exc:
        typer.echo(f"Invalid calibration file: {exc}")
        raise typer.Exit(code=1) from exc
    for name, value in coeffs.as_dict().items():
        typer.echo(f"{name.upper()}: {value}")


app = typer.Typer(add_completion=False, help="BMP280 acquisition utilities.")
app.add_typer(calib_app, name="calib")


@app.command()
def presets():
    """List the device configuration presets."""
    for number, preset in DeviceController.PRESETS.items():
        typer.echo(f"{number}: ctrl=0x{preset.ctrl:02X} conf=0x{preset.conf:02X}  {preset.name}")


@app.command()
def run(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to host config JSON (defaults used when omitted)."
    ),
    preset: Optional[int] = typer.Option(None, "--preset", "-P", help="Device preset 1-6."),
    samples: Optional[int] = typer.Option(None, "--samples", "-n", help="Stop after N samples (0=forever)."),
    simulate: bool = typer.Option(False, "--simulate", help="Use the built-in simulated sensor."),
    override: Optional[List[str]] = typer.Option(
        None,
        "--set",
        help="Override config keys, e.g. --set device.address=0x77 --set host.interval_sec=0.5",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """Configure the sensor and log compensated samples."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    combined = list(override or [])
    if preset is not None:
        combined.append(f"device.preset={preset}")
    if samples is not None:
        combined.append(f"host.max_samples={samples}")
    try:
        cfg = load_config(config_path, combined or None)
    except (ValueError, OSError) as exc:
        raise typer.BadParameter(f"Failed to load configuration: {exc}") from exc
    transport = _open_transport(cfg.device.bus, cfg.device.address, simulate)
    try:
        controller = DeviceController(transport, cfg.device.address)
        host = AcquisitionHost(controller, cfg)
        host.register_callback(
            lambda sample: typer.echo(f"{sample.timestamp:.3f} {sample.temperature_c:7.2f} C {sample.pressure_hpa:9.2f} hPa")
        )
        host.run()
    finally:
        transport.close()
