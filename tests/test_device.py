from __future__ import annotations

from typing import List, Tuple

import pytest

from baroscope.bmp280.device import (
    CHIP_ID,
    CONFIG_DELAY_US,
    RESET_DELAY_US,
    DeviceController,
)
from baroscope.bmp280.transport import DATASHEET_CALIBRATION_BLOCK, SimulatedBMP280


class FakeBus:
    def __init__(self) -> None:
        self.registers = bytearray(256)
        self.transfers: List[Tuple[int, int, int]] = []
        self.writes: List[Tuple[bytes, int]] = []

    def transfer(self, start_register: int, length: int, address: int) -> bytes:
        self.transfers.append((start_register, length, address))
        return bytes(self.registers[start_register : start_register + length])

    def write(self, data: bytes, address: int) -> None:
        self.writes.append((bytes(data), address))


class FailingBus(FakeBus):
    def __init__(self, fail_on_write: int) -> None:
        super().__init__()
        self._fail_on_write = fail_on_write

    def write(self, data: bytes, address: int) -> None:
        if len(self.writes) == self._fail_on_write:
            raise OSError(121, "Remote I/O error")
        super().write(data, address)


def make_controller(bus=None, address: int = 0x76):
    bus = bus or FakeBus()
    sleeps: List[float] = []
    controller = DeviceController(bus, address, clock=lambda: 1000.0, sleep=sleeps.append)
    return controller, bus, sleeps


def test_reset_writes_command_and_waits() -> None:
    controller, bus, sleeps = make_controller()
    controller.reset()
    assert bus.writes == [(bytes([0xE0, 0xB6]), 0x76)]
    assert sleeps == [pytest.approx(RESET_DELAY_US / 1e6)]


def test_configure_registers_sequence() -> None:
    controller, bus, sleeps = make_controller()
    controller.configure_registers(0x57, 0x28)
    assert bus.writes == [
        (bytes([0xE0, 0xB6]), 0x76),
        (bytes([0xF4, 0x54, 0xF5, 0x28, 0xF4, 0x57]), 0x76),
    ]
    assert sleeps == [pytest.approx(RESET_DELAY_US / 1e6), pytest.approx(CONFIG_DELAY_US / 1e6)]


@pytest.mark.parametrize("preset", [1, 2, 3, 4, 5, 6])
def test_configure_preset_uses_table(preset: int) -> None:
    controller, bus, _ = make_controller()
    controller.configure(preset)
    expected = DeviceController.PRESETS[preset]
    payload = bus.writes[-1][0]
    assert payload == bytes([0xF4, expected.ctrl & 0xFC, 0xF5, expected.conf, 0xF4, expected.ctrl])


@pytest.mark.parametrize("preset", [0, 7, -1, 1000])
def test_out_of_range_preset_behaves_like_preset_one(preset: int) -> None:
    reference, reference_bus, reference_sleeps = make_controller()
    reference.configure(1)
    controller, bus, sleeps = make_controller()
    controller.configure(preset)
    assert bus.writes == reference_bus.writes
    assert sleeps == reference_sleeps


def test_preset_table_is_read_only() -> None:
    assert sorted(DeviceController.PRESETS) == [1, 2, 3, 4, 5, 6]
    with pytest.raises(TypeError):
        DeviceController.PRESETS[7] = DeviceController.PRESETS[1]  # type: ignore[index]


def test_acquire_raw_unpacks_20_bit_counts() -> None:
    controller, bus, _ = make_controller()
    bus.registers[0xF7:0xFD] = bytes([0x65, 0x5A, 0xC0, 0x7E, 0xED, 0x00])
    raw = controller.acquire_raw()
    assert bus.transfers[-1] == (0xF7, 6, 0x76)
    assert raw.timestamp == 1000.0
    assert raw.pressure == 415148
    assert raw.temperature == 519888


def test_acquire_raw_top_of_range_is_not_negative() -> None:
    controller, bus, _ = make_controller()
    bus.registers[0xF7:0xFD] = bytes([0xFF, 0xFF, 0xF0, 0xFF, 0xFF, 0xF0])
    raw = controller.acquire_raw()
    assert raw.pressure == 0xFFFFF
    assert raw.temperature == 0xFFFFF


def test_acquire_compensated_loads_calibration_once() -> None:
    controller, bus, _ = make_controller()
    bus.registers[0x88 : 0x88 + 26] = DATASHEET_CALIBRATION_BLOCK
    bus.registers[0xF7:0xFD] = bytes([0x65, 0x5A, 0xC0, 0x7E, 0xED, 0x00])
    first = controller.acquire_compensated()
    second = controller.acquire_compensated()
    assert (first.temperature, first.pressure) == (2508, 100656)
    assert second == first
    calibration_reads = [t for t in bus.transfers if t[0] == 0x88]
    assert calibration_reads == [(0x88, 26, 0x76)]
    assert controller.calibration_store.loaded


def test_get_config_reads_back_registers() -> None:
    controller, bus, _ = make_controller()
    bus.registers[0xF4] = 0x2F
    bus.registers[0xF5] = 0x48
    assert controller.get_config() == (0x2F, 0x48)
    assert bus.transfers[-1] == (0xF4, 2, 0x76)


def test_write_registers_masks_to_bytes() -> None:
    controller, bus, _ = make_controller(address=0x77)
    controller.write_registers([(0xF4, 0x1FF), (0xF5, 0x10)])
    assert bus.writes == [(bytes([0xF4, 0xFF, 0xF5, 0x10]), 0x77)]


def test_transport_failure_mid_configure_propagates() -> None:
    controller, bus, sleeps = make_controller(bus=FailingBus(fail_on_write=1))
    with pytest.raises(OSError):
        controller.configure(2)
    # reset went through, the configuration transaction did not
    assert len(bus.writes) == 1
    assert len(sleeps) == 1


def test_simulated_sensor_round_trip() -> None:
    sensor = SimulatedBMP280()
    controller, _, _ = make_controller(bus=sensor)
    assert controller.chip_id() == CHIP_ID
    controller.configure(4)
    assert controller.get_config() == (0x2F, 0x48)
    assert sensor.resets == 1
    sample = controller.acquire_compensated()
    assert (sample.temperature, sample.pressure) == (2508, 100656)


def test_simulated_sensor_reset_returns_to_sleep() -> None:
    sensor = SimulatedBMP280()
    controller, _, _ = make_controller(bus=sensor)
    controller.configure(1)
    controller.reset()
    assert controller.get_config() == (0x00, 0x00)


def test_wrong_address_raises_transport_error() -> None:
    sensor = SimulatedBMP280(address=0x77)
    controller, _, _ = make_controller(bus=sensor, address=0x76)
    with pytest.raises(OSError):
        controller.chip_id()


def test_controller_exposes_bus_lock() -> None:
    controller, _, _ = make_controller()
    with controller.lock:
        controller.reset()
    assert not controller.lock.locked()


def test_status_reads_status_register() -> None:
    controller, bus, _ = make_controller(address=0x77)
    bus.registers[0xF3] = 0x09
    assert controller.status() == 0x09
    assert bus.transfers == [(0xF3, 1, 0x77)]


def test_simulated_status_cleared_by_reset() -> None:
    sensor = SimulatedBMP280()
    sensor.registers[0xF3] = 0x08
    controller, _, _ = make_controller(bus=sensor)
    assert controller.status() == 0x08
    controller.reset()
    assert controller.status() == 0x00


def test_acquire_compensated_reads_data_before_calibration() -> None:
    controller, bus, _ = make_controller()
    bus.registers[0x88 : 0x88 + 26] = DATASHEET_CALIBRATION_BLOCK
    bus.registers[0xF7:0xFD] = bytes([0x65, 0x5A, 0xC0, 0x7E, 0xED, 0x00])
    controller.acquire_compensated()
    assert [t[0] for t in bus.transfers] == [0xF7, 0x88]


def test_simulated_temperature_only_read_is_fresh() -> None:
    sensor = SimulatedBMP280()
    controller, _, _ = make_controller(bus=sensor)
    controller.acquire_raw()
    sensor.raw_temperature = 400000
    data = controller.read_registers(0xFA, 3)
    assert (data[0] << 12) | (data[1] << 4) | (data[2] >> 4) == 400000
