from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

CALIBRATION_START = 0x88
CALIBRATION_SIZE = 26

# (name, msb offset, lsb offset, signed) within the calibration block.
COEFFICIENT_LAYOUT: Tuple[Tuple[str, int, int, bool], ...] = (
    ("t1", 1, 0, False),
    ("t2", 3, 2, True),
    ("t3", 5, 4, True),
    ("p1", 7, 6, False),
    ("p2", 9, 8, True),
    ("p3", 11, 10, True),
    ("p4", 13, 12, True),
    ("p5", 15, 14, True),
    ("p6", 17, 16, True),
    ("p7", 19, 18, True),
    ("p8", 21, 20, True),
    ("p9", 23, 22, True),
)


def _read_u16(block: bytes, msb: int, lsb: int) -> int:
    return (block[msb] << 8) | block[lsb]


def _to_int16(value: int) -> int:
    return value - 0x10000 if value & 0x8000 else value


@dataclass(frozen=True)
class CalibrationCoefficients:
    t1: int = 0
    t2: int = 0
    t3: int = 0
    p1: int = 0
    p2: int = 0
    p3: int = 0
    p4: int = 0
    p5: int = 0
    p6: int = 0
    p7: int = 0
    p8: int = 0
    p9: int = 0

    @staticmethod
    def from_block(block: bytes) -> "CalibrationCoefficients":
        """
        Unpack the twelve trimming coefficients from the raw calibration block.

        The block is the 26 bytes read from register 0x88 onwards; the last two
        bytes are reserved and ignored.
        """
        if len(block) < CALIBRATION_SIZE:
            raise ValueError(
                f"Calibration block must be {CALIBRATION_SIZE} bytes, got {len(block)}"
            )
        values: Dict[str, int] = {}
        for name, msb, lsb, signed in COEFFICIENT_LAYOUT:
            raw = _read_u16(block, msb, lsb)
            values[name] = _to_int16(raw) if signed else raw
        return CalibrationCoefficients(**values)

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


class CalibrationStore:
    """Holds the coefficients for one device and whether they have been read."""

    def __init__(self) -> None:
        self._coefficients = CalibrationCoefficients()
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def coefficients(self) -> CalibrationCoefficients:
        return self._coefficients

    def load(self, block: bytes) -> CalibrationCoefficients:
        coeffs = CalibrationCoefficients.from_block(block)
        self._coefficients = coeffs
        self._loaded = True
        logger.debug("Calibration loaded: %s", coeffs.as_dict())
        return coeffs


def save_calibration(path: Path, coeffs: CalibrationCoefficients, *, address: Optional[int] = None) -> None:
    data: Dict[str, object] = {"coefficients": coeffs.as_dict()}
    if address is not None:
        data["address"] = f"0x{address:02X}"
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def load_calibration(path: Path) -> CalibrationCoefficients:
    data = json.loads(path.read_text(encoding="utf-8"))
    mapping = data.get("coefficients", data)
    try:
        values = {field.name: int(mapping[field.name]) for field in fields(CalibrationCoefficients)}
    except KeyError as exc:
        raise ValueError(f"Calibration file missing coefficient {exc}") from exc
    return CalibrationCoefficients(**values)
