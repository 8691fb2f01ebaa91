from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, Optional

import numpy as np

from .samples import CompensatedSample


class EmptyCollection(IndexError):
    """Raised when a sample is requested from an empty window."""


@dataclass(frozen=True)
class Summary:
    time_start: float
    time_stop: float
    sample_count: int
    high: int
    low: int
    average: float


@dataclass(frozen=True)
class _Aggregates:
    t_high: int
    t_low: int
    t_avg: float
    p_high: int
    p_low: int
    p_avg: float


class SampleWindow:
    """
    Fixed-capacity FIFO of compensated samples.

    New samples are pushed to the back; once the window is full each push
    evicts the oldest sample, so the window covers a moving interval whose
    length depends on the sampling rate. High/low/average summaries are
    cached and recomputed on the next summary request after any mutation.
    """

    def __init__(self, capacity: int = 60) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = int(capacity)
        self._samples: Deque[CompensatedSample] = deque()
        self._cache: Optional[_Aggregates] = None
        self._stale = True

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def stale(self) -> bool:
        return self._stale

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[CompensatedSample]:
        return iter(list(self._samples))

    def size(self) -> int:
        return len(self._samples)

    def full(self) -> bool:
        return len(self._samples) >= self._capacity

    def push(self, sample: CompensatedSample) -> int:
        self._samples.append(sample)
        while len(self._samples) > self._capacity:
            self._samples.popleft()
        self._stale = True
        return len(self._samples)

    def pop(self) -> CompensatedSample:
        if not self._samples:
            raise EmptyCollection("pop from an empty sample window")
        sample = self._samples.popleft()
        self._stale = True
        return sample

    def front(self) -> CompensatedSample:
        if not self._samples:
            raise EmptyCollection("sample window is empty")
        return self._samples[0]

    def back(self) -> CompensatedSample:
        if not self._samples:
            raise EmptyCollection("sample window is empty")
        return self._samples[-1]

    def clear(self) -> None:
        self._samples.clear()
        self._stale = True

    def time_start(self) -> float:
        return self.front().timestamp

    def time_stop(self) -> float:
        return self.back().timestamp

    def summarize(self) -> None:
        """Recompute the cached temperature and pressure aggregates."""
        if self._samples:
            temps = np.fromiter((s.temperature for s in self._samples), dtype=np.int64, count=len(self._samples))
            press = np.fromiter((s.pressure for s in self._samples), dtype=np.int64, count=len(self._samples))
            self._cache = _Aggregates(
                t_high=int(temps.max()),
                t_low=int(temps.min()),
                t_avg=float(temps.sum()) / temps.size,
                p_high=int(press.max()),
                p_low=int(press.min()),
                p_avg=float(press.sum()) / press.size,
            )
        else:
            self._cache = None
        self._stale = False

    def temperature_summary(self) -> Summary:
        aggregates = self._aggregates()
        return self._summary(aggregates.t_high, aggregates.t_low, aggregates.t_avg)

    def pressure_summary(self) -> Summary:
        aggregates = self._aggregates()
        return self._summary(aggregates.p_high, aggregates.p_low, aggregates.p_avg)

    def _aggregates(self) -> _Aggregates:
        if not self._samples:
            raise EmptyCollection("no samples to summarise")
        if self._stale or self._cache is None:
            self.summarize()
        assert self._cache is not None
        return self._cache

    def _summary(self, high: int, low: int, average: float) -> Summary:
        return Summary(
            time_start=self._samples[0].timestamp,
            time_stop=self._samples[-1].timestamp,
            sample_count=len(self._samples),
            high=high,
            low=low,
            average=average,
        )
