from __future__ import annotations

import pytest

from baroscope.bmp280.samples import CompensatedSample
from baroscope.bmp280.window import EmptyCollection, SampleWindow


def sample(ts: float, temperature: int, pressure: int) -> CompensatedSample:
    return CompensatedSample(timestamp=ts, temperature=temperature, pressure=pressure)


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        SampleWindow(0)


def test_push_evicts_oldest_beyond_capacity() -> None:
    window = SampleWindow(4)
    pushed = [sample(float(i), 2000 + i, 100000 + i) for i in range(10)]
    sizes = [window.push(s) for s in pushed]
    assert sizes == [1, 2, 3, 4, 4, 4, 4, 4, 4, 4]
    assert len(window) == window.size() == 4
    assert list(window) == pushed[-4:]
    assert window.full()


def test_pop_front_back_order() -> None:
    window = SampleWindow(3)
    a, b, c = sample(1.0, 1, 1), sample(2.0, 2, 2), sample(3.0, 3, 3)
    for s in (a, b, c):
        window.push(s)
    assert window.front() == a
    assert window.back() == c
    assert window.time_start() == 1.0
    assert window.time_stop() == 3.0
    assert window.pop() == a
    assert window.front() == b
    assert len(window) == 2
    assert not window.full()


@pytest.mark.parametrize(
    "accessor",
    ["front", "back", "pop", "temperature_summary", "pressure_summary", "time_start", "time_stop"],
)
def test_empty_window_raises(accessor: str) -> None:
    window = SampleWindow(2)
    with pytest.raises(EmptyCollection):
        getattr(window, accessor)()


def test_empty_collection_is_an_index_error() -> None:
    window = SampleWindow(1)
    window.push(sample(0.0, 1, 1))
    window.clear()
    with pytest.raises(IndexError):
        window.pop()


def test_summaries_match_independent_statistics() -> None:
    temps = [2150, -300, 1875, 1875, 990]
    pressures = [101325, 99870, 100002, 98765, 103000]
    window = SampleWindow(10)
    for idx, (t, p) in enumerate(zip(temps, pressures)):
        window.push(sample(100.0 + idx, t, p))

    t_summary = window.temperature_summary()
    assert t_summary.high == max(temps)
    assert t_summary.low == min(temps)
    assert t_summary.average == pytest.approx(sum(temps) / len(temps))
    assert t_summary.sample_count == 5
    assert (t_summary.time_start, t_summary.time_stop) == (100.0, 104.0)

    p_summary = window.pressure_summary()
    assert p_summary.high == max(pressures)
    assert p_summary.low == min(pressures)
    assert p_summary.average == pytest.approx(sum(pressures) / len(pressures))


def test_mutations_invalidate_cache() -> None:
    window = SampleWindow(5)
    window.push(sample(0.0, 100, 1000))
    assert window.stale
    first = window.temperature_summary()
    assert not window.stale
    assert window.temperature_summary() == first

    window.push(sample(1.0, 300, 3000))
    assert window.stale
    assert window.temperature_summary().average == 200.0

    window.pop()
    assert window.stale
    assert window.temperature_summary().high == 300

    window.clear()
    assert window.stale


def test_consecutive_reads_are_identical() -> None:
    window = SampleWindow(3)
    for i in range(5):
        window.push(sample(float(i), 1000 + 7 * i, 90000 + 13 * i))
    assert window.pressure_summary() == window.pressure_summary()
    assert window.temperature_summary() == window.temperature_summary()


def test_explicit_summarize_clears_stale_flag() -> None:
    window = SampleWindow(2)
    window.summarize()
    assert not window.stale
    window.push(sample(0.0, 1, 1))
    assert window.stale
    window.summarize()
    assert not window.stale


def test_capacity_three_scenario() -> None:
    window = SampleWindow(3)
    temps = [1800, 1900, 2000, 2100]
    pressures = [99000, 99500, 100000, 100500]
    for idx, (t, p) in enumerate(zip(temps, pressures)):
        window.push(sample(float(idx), t, p))

    assert window.size() == 3
    assert [(s.temperature, s.pressure) for s in window] == [
        (1900, 99500),
        (2000, 100000),
        (2100, 100500),
    ]

    t_summary = window.temperature_summary()
    assert (t_summary.high, t_summary.low, t_summary.average) == (2100, 1900, 2000.0)
    p_summary = window.pressure_summary()
    assert (p_summary.high, p_summary.low, p_summary.average) == (100500, 99500, 100000.0)
    assert (p_summary.time_start, p_summary.time_stop) == (1.0, 3.0)
