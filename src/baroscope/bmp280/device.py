from __future__ import annotations

import logging
import threading
import time
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, NamedTuple, Tuple

from .calibration import CALIBRATION_SIZE, CALIBRATION_START, CalibrationCoefficients, CalibrationStore
from .compensation import compensate
from .samples import CompensatedSample, RawSample

if TYPE_CHECKING:
    from .transport import BusTransport

logger = logging.getLogger(__name__)

REG_CALIB = CALIBRATION_START
REG_CHIP_ID = 0xD0
REG_RESET = 0xE0
REG_STATUS = 0xF3
REG_CTRL_MEAS = 0xF4
REG_CONFIG = 0xF5
REG_PRESS_MSB = 0xF7

CMD_RESET = 0xB6
MODE_MASK_OUT = 0xFC
CHIP_ID = 0x58

RESET_DELAY_US = 10_000
CONFIG_DELAY_US = 100_000

DEFAULT_PRESET = 1


class Preset(NamedTuple):
    ctrl: int
    conf: int
    name: str


def _unpack_20bit(msb: int, lsb: int, xlsb: int) -> int:
    return (msb << 12) | (lsb << 4) | (xlsb >> 4)


class DeviceController:
    """
    Register-level driver for a single BMP280 on a shared bus.

    The controller does not serialise access to the bus. Callers sharing a bus
    between threads or devices should hold :attr:`lock` (or a per-bus lock of
    their own) around each complete transaction, including the whole
    :meth:`configure` sequence.
    """

    # ctrl_meas = osrs_t | osrs_p | mode, config = t_sb | filter
    PRESETS: Mapping[int, Preset] = MappingProxyType(
        {
            1: Preset(0x57, 0x28, "handheld low-power"),
            2: Preset(0x2F, 0x10, "handheld dynamic"),
            3: Preset(0x25, 0x00, "weather monitoring"),
            4: Preset(0x2F, 0x48, "elevator / floor change"),
            5: Preset(0x2B, 0x00, "drop detection"),
            6: Preset(0x57, 0x10, "indoor navigation"),
        }
    )

    def __init__(
        self,
        bus: BusTransport,
        address: int = 0x76,
        *,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.bus = bus
        self.address = address
        self.calibration_store = CalibrationStore()
        self.lock = threading.Lock()
        self._clock = clock
        self._sleep = sleep

    def read_registers(self, start_address: int, length: int) -> bytes:
        return self.bus.transfer(start_address, length, self.address)

    def write_registers(self, pairs: Iterable[Tuple[int, int]]) -> None:
        data = bytearray()
        for register, value in pairs:
            data.append(register & 0xFF)
            data.append(value & 0xFF)
        self.bus.write(bytes(data), self.address)

    def reset(self) -> None:
        self.write_registers([(REG_RESET, CMD_RESET)])
        self._sleep(RESET_DELAY_US / 1e6)

    @classmethod
    def resolve_preset(cls, preset: int) -> Preset:
        """Look up a preset; anything outside 1..6 selects preset 1."""
        return cls.PRESETS.get(preset, cls.PRESETS[DEFAULT_PRESET])

    def configure(self, preset: int = DEFAULT_PRESET) -> None:
        selected = self.resolve_preset(preset)
        if preset not in self.PRESETS:
            logger.debug("Preset %r out of range, using preset %d", preset, DEFAULT_PRESET)
        logger.info("Configuring 0x%02X with preset '%s'", self.address, selected.name)
        self.configure_registers(selected.ctrl, selected.conf)

    def configure_registers(self, ctrl: int, conf: int) -> None:
        """
        Write ctrl_meas and config without racing an active measurement.

        The device is reset into sleep mode first; ctrl_meas is then written
        with the mode bits cleared, followed by config and finally the full
        ctrl_meas value, all in one bus transaction. A failure part way through
        leaves the device in an unknown state; run the sequence again.
        """
        ctrl &= 0xFF
        conf &= 0xFF
        masked = ctrl & MODE_MASK_OUT
        self.reset()
        self.write_registers(
            [
                (REG_CTRL_MEAS, masked),
                (REG_CONFIG, conf),
                (REG_CTRL_MEAS, ctrl),
            ]
        )
        self._sleep(CONFIG_DELAY_US / 1e6)

    def get_config(self) -> Tuple[int, int]:
        data = self.read_registers(REG_CTRL_MEAS, 2)
        return data[0], data[1]

    def chip_id(self) -> int:
        return self.read_registers(REG_CHIP_ID, 1)[0]

    def status(self) -> int:
        return self.read_registers(REG_STATUS, 1)[0]

    def load_calibration(self) -> CalibrationCoefficients:
        block = self.read_registers(REG_CALIB, CALIBRATION_SIZE)
        coeffs = self.calibration_store.load(block)
        logger.info("Loaded calibration from 0x%02X (T1=%d P1=%d)", self.address, coeffs.t1, coeffs.p1)
        return coeffs

    def calibration(self) -> CalibrationCoefficients:
        if not self.calibration_store.loaded:
            return self.load_calibration()
        return self.calibration_store.coefficients

    def acquire_raw(self) -> RawSample:
        data = self.read_registers(REG_PRESS_MSB, 6)
        timestamp = self._clock()
        pressure = _unpack_20bit(data[0], data[1], data[2])
        temperature = _unpack_20bit(data[3], data[4], data[5])
        return RawSample(timestamp=timestamp, temperature=temperature, pressure=pressure)

    def acquire_compensated(self) -> CompensatedSample:
        raw = self.acquire_raw()
        coeffs = self.calibration()
        sample = compensate(raw, coeffs)
        logger.debug(
            "raw T=%d P=%d -> %d cC %d Pa",
            raw.temperature,
            raw.pressure,
            sample.temperature,
            sample.pressure,
        )
        return sample
