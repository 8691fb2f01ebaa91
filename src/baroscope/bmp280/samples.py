from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RawSample:
    """Uncompensated ADC counts as read from the data registers."""

    timestamp: float
    temperature: int
    pressure: int


@dataclass(frozen=True)
class CompensatedSample:
    """Calibrated reading: centi-degrees Celsius and pascals."""

    timestamp: float
    temperature: int
    pressure: int

    @property
    def temperature_c(self) -> float:
        return self.temperature / 100.0

    @property
    def pressure_hpa(self) -> float:
        return self.pressure / 100.0
