"""
32-bit fixed-point compensation for BMP280 readings.

The formulas follow the vendor datasheet (BST-BMP280-DS001, section 8.2).
Every intermediate is wrapped to the width the vendor code uses so that
overflow and sign behaviour match the reference integer implementation.
Python's ``>>`` on ``int`` is already an arithmetic shift.
"""
from __future__ import annotations

from typing import NamedTuple

from .calibration import CalibrationCoefficients
from .samples import CompensatedSample, RawSample

_UINT32_MASK = 0xFFFFFFFF
_SIGN_BIT = 0x80000000


def to_int32(value: int) -> int:
    value &= _UINT32_MASK
    return value - 0x100000000 if value & _SIGN_BIT else value


def to_uint32(value: int) -> int:
    return value & _UINT32_MASK


class TemperatureReading(NamedTuple):
    temperature: int
    t_fine: int


def compensate_temperature(raw: int, coeffs: CalibrationCoefficients) -> TemperatureReading:
    """
    Convert a raw temperature count into hundredths of a degree Celsius.

    Returns the temperature together with ``t_fine``, which must be handed to
    :func:`compensate_pressure` for the pressure count of the same reading.
    """
    raw = to_int32(raw)
    t1 = coeffs.t1
    t2 = coeffs.t2
    t3 = coeffs.t3

    v1 = to_int32(((raw >> 3) - (t1 << 1)) * t2) >> 11
    delta = (raw >> 4) - t1
    v1a = to_int32(delta * delta)
    v2 = to_int32((v1a >> 12) * t3) >> 14

    t_fine = to_int32(v1 + v2)
    temperature = to_int32(5 * t_fine + 128) >> 8
    return TemperatureReading(temperature=temperature, t_fine=t_fine)


def compensate_pressure(raw: int, t_fine: int, coeffs: CalibrationCoefficients) -> int:
    """Convert a raw pressure count into pascals using ``t_fine``."""
    raw = to_uint32(raw)
    p1, p2, p3 = coeffs.p1, coeffs.p2, coeffs.p3
    p4, p5, p6 = coeffs.p4, coeffs.p5, coeffs.p6
    p7, p8, p9 = coeffs.p7, coeffs.p8, coeffs.p9

    v1 = to_int32((t_fine >> 1) - 64000)
    v1a = to_int32((v1 >> 2) * (v1 >> 2))

    v2 = to_int32(to_int32((v1a >> 11) * p6) + to_int32(to_int32(v1 * p5) << 1))
    v2 = to_int32((v2 >> 2) + to_int32(p4 << 16))

    v1 = to_int32((to_int32(p3 * (v1a >> 13)) >> 3) + (to_int32(p2 * v1) >> 1)) >> 18
    v1 = to_int32((32768 + v1) * p1) >> 15

    v3 = to_uint32((to_uint32(1048576 - raw) - (v2 >> 12)) * 3125)

    if v1 == 0:
        return 0

    divisor = to_uint32(v1)
    if v3 < _SIGN_BIT:
        v3 = to_uint32(v3 << 1) // divisor
    else:
        v3 = to_uint32((v3 // divisor) * 2)

    v3a = to_uint32((v3 >> 3) * (v3 >> 3))
    v1 = to_int32(p9 * to_int32(v3a >> 13)) >> 12
    v2 = to_int32(to_int32(v3 >> 2) * p8) >> 13

    return to_uint32(to_int32(v3) + (to_int32(v1 + v2 + p7) >> 4))


def compensate(raw: RawSample, coeffs: CalibrationCoefficients) -> CompensatedSample:
    reading = compensate_temperature(raw.temperature, coeffs)
    pressure = compensate_pressure(raw.pressure, reading.t_fine, coeffs)
    return CompensatedSample(
        timestamp=raw.timestamp,
        temperature=reading.temperature,
        pressure=pressure,
    )
