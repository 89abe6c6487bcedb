"""Fixed-capacity sample history used for sparklines."""

from __future__ import annotations

from collections import deque
from enum import Enum

MIN_CAPACITY = 2


class Channel(Enum):
    """A single scalar metric series."""

    CPU = "cpu"
    MEMORY = "memory"
    SWAP = "swap"
    GPU_UTIL = "gpu_util"
    GPU_MEM = "gpu_mem"
    NET_RX = "net_rx"
    NET_TX = "net_tx"
    DISK_READ = "disk_read"
    DISK_WRITE = "disk_write"


class HistoryStore:
    """Per-channel ring buffers, oldest sample first.

    Every channel gets its buffer up front, so the footprint after warm-up is
    ``capacity * len(Channel)`` samples for the rest of the run.
    """

    def __init__(self, capacity: int = 60) -> None:
        self._capacity = max(MIN_CAPACITY, int(capacity))
        self._series: dict[Channel, deque[float]] = {
            channel: deque(maxlen=self._capacity) for channel in Channel
        }

    @property
    def capacity(self) -> int:
        return self._capacity

    def push(self, channel: Channel, value: float) -> None:
        """Append *value*, evicting the oldest sample once at capacity."""
        self._series[channel].append(float(value))

    def series(self, channel: Channel) -> tuple[float, ...]:
        return tuple(self._series[channel])

    def __len__(self) -> int:
        return len(self._series)

    def total_samples(self) -> int:
        """Number of samples currently held across all channels."""
        return sum(len(buf) for buf in self._series.values())
