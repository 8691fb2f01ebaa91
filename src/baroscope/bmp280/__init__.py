"""
Driver and acquisition helpers for the Bosch BMP280 pressure/temperature sensor.

The subpackage exposes the calibration store, the 32-bit fixed-point
compensation functions, the register-level device controller, bus transports
and the sliding sample window used by the host application.
"""

from .calibration import CalibrationCoefficients, CalibrationStore, load_calibration, save_calibration
from .compensation import TemperatureReading, compensate, compensate_pressure, compensate_temperature
from .config import DeviceSettings, HostConfig, HostRuntime, load_config
from .device import DeviceController, Preset
from .runner import AcquisitionHost, CsvLogger
from .samples import CompensatedSample, RawSample
from .transport import BusTransport, SMBusTransport, SimulatedBMP280
from .window import EmptyCollection, SampleWindow, Summary

__all__ = [
    "CalibrationCoefficients",
    "CalibrationStore",
    "load_calibration",
    "save_calibration",
    "TemperatureReading",
    "compensate",
    "compensate_pressure",
    "compensate_temperature",
    "DeviceSettings",
    "HostConfig",
    "HostRuntime",
    "load_config",
    "DeviceController",
    "Preset",
    "AcquisitionHost",
    "CsvLogger",
    "CompensatedSample",
    "RawSample",
    "BusTransport",
    "SMBusTransport",
    "SimulatedBMP280",
    "EmptyCollection",
    "SampleWindow",
    "Summary",
]
