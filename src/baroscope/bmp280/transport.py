from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple

import numpy as np

try:
    import smbus2  # type: ignore[import]
except ImportError:  # pragma: no cover - handled when the transport is opened
    smbus2 = None  # type: ignore[assignment]

from .calibration import CALIBRATION_SIZE, COEFFICIENT_LAYOUT, CalibrationCoefficients
from .device import CHIP_ID, REG_CHIP_ID, REG_PRESS_MSB

logger = logging.getLogger(__name__)


class BusTransport(Protocol):
    """Byte-level register access to devices on a two-wire bus."""

    def transfer(self, start_register: int, length: int, address: int) -> bytes:
        """Read ``length`` bytes starting at ``start_register``."""
        ...

    def write(self, data: bytes, address: int) -> None:
        """Write alternating register/value pairs in a single transaction."""
        ...


class SMBusTransport:
    """Linux I2C adapter (``/dev/i2c-N``) backed by smbus2."""

    def __init__(self, bus_number: int = 1) -> None:
        if smbus2 is None:
            raise ImportError("smbus2 is required but not installed. Install with 'pip install smbus2'.")
        self.bus_number = bus_number
        self._bus = smbus2.SMBus(bus_number)
        logger.info("Opened I2C bus %d", bus_number)

    def transfer(self, start_register: int, length: int, address: int) -> bytes:
        data = self._bus.read_i2c_block_data(address, start_register, length)
        return bytes(data)

    def write(self, data: bytes, address: int) -> None:
        message = smbus2.i2c_msg.write(address, list(data))
        self._bus.i2c_rdwr(message)

    def close(self) -> None:
        self._bus.close()

    def __enter__(self) -> "SMBusTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


# Datasheet worked example (BST-BMP280-DS001, section 8.2 / 3.11.3).
DATASHEET_CALIBRATION_BLOCK = bytes.fromhex(
    "706b" "4367" "18fc"
    "7d8e" "43d6" "d00b" "270b" "8c00" "f9ff" "8c3c" "f8c6" "7017"
    "0000"
)
DATASHEET_RAW_TEMPERATURE = 519888
DATASHEET_RAW_PRESSURE = 415148


def pack_raw(value: int) -> bytes:
    """Pack a 20-bit count into the msb/lsb/xlsb register layout."""
    return bytes([(value >> 12) & 0xFF, (value >> 4) & 0xFF, (value << 4) & 0xF0])


@dataclass
class SimulatedBMP280:
    """
    In-memory BMP280 register file implementing :class:`BusTransport`.

    Honours the reset command, register/value pair writes and the calibration
    block, and serves configurable raw counts from the data registers. An
    optional jitter (standard deviation in counts) is applied to each read of
    the data registers.
    """

    address: int = 0x76
    raw_temperature: int = DATASHEET_RAW_TEMPERATURE
    raw_pressure: int = DATASHEET_RAW_PRESSURE
    calibration_block: bytes = DATASHEET_CALIBRATION_BLOCK
    jitter: float = 0.0
    seed: Optional[int] = None
    reads: List[Tuple[int, int]] = field(default_factory=list)
    writes: List[bytes] = field(default_factory=list)
    resets: int = 0

    def __post_init__(self) -> None:
        self.registers = bytearray(256)
        self.registers[0x88 : 0x88 + len(self.calibration_block)] = self.calibration_block
        self.registers[REG_CHIP_ID] = CHIP_ID
        self._rng = np.random.default_rng(self.seed)
        self._lock = threading.Lock()

    @classmethod
    def with_coefficients(cls, coeffs: CalibrationCoefficients, **kwargs) -> "SimulatedBMP280":
        block = bytearray(CALIBRATION_SIZE)
        values = coeffs.as_dict()
        for name, msb, lsb, _signed in COEFFICIENT_LAYOUT:
            raw = values[name] & 0xFFFF
            block[msb] = raw >> 8
            block[lsb] = raw & 0xFF
        return cls(calibration_block=bytes(block), **kwargs)

    def transfer(self, start_register: int, length: int, address: int) -> bytes:
        self._check_address(address)
        with self._lock:
            self.reads.append((start_register, length))
            if start_register < REG_PRESS_MSB + 6 and start_register + length > REG_PRESS_MSB:
                self._latch_data_registers()
            return bytes(self.registers[start_register : start_register + length])

    def write(self, data: bytes, address: int) -> None:
        self._check_address(address)
        if len(data) % 2:
            raise ValueError("Register writes must be register/value pairs")
        with self._lock:
            self.writes.append(bytes(data))
            for idx in range(0, len(data), 2):
                register, value = data[idx], data[idx + 1]
                if register == 0xE0:
                    if value == 0xB6:
                        self._power_on_reset()
                    continue
                self.registers[register] = value

    def close(self) -> None:
        pass

    def _check_address(self, address: int) -> None:
        if address != self.address:
            raise OSError(f"No device acknowledged address 0x{address:02X}")

    def _power_on_reset(self) -> None:
        self.resets += 1
        self.registers[0xF3] = 0x00
        self.registers[0xF4] = 0x00
        self.registers[0xF5] = 0x00

    def _latch_data_registers(self) -> None:
        temperature = self.raw_temperature
        pressure = self.raw_pressure
        if self.jitter > 0:
            offsets = np.rint(self._rng.normal(scale=self.jitter, size=2)).astype(int)
            temperature += int(offsets[0])
            pressure += int(offsets[1])
        temperature = min(max(temperature, 0), 0xFFFFF)
        pressure = min(max(pressure, 0), 0xFFFFF)
        self.registers[0xF7:0xFA] = pack_raw(pressure)
        self.registers[0xFA:0xFD] = pack_raw(temperature)
